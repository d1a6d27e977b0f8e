# main.py - FastAPI wiring for the generation, apply and sandbox routes

from __future__ import annotations

from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import asyncio
import importlib
import inspect
import json
import os
import traceback

import uvicorn

from config.app_config import appConfig
from helpers.session import DEFAULT_SESSION_ID, GenerationTracker, SessionContext
from sandbox.base import NoActiveSandboxError
from sandbox.factory import available_providers
from sandbox.manager import SandboxManager

SESSION_HEADER = "X-Session-Id"


class InvalidRequestBody(Exception):
    pass


# --- Idle sandbox cleanup ---
class SessionCleaner:
    def __init__(self, sandboxes: SandboxManager):
        self.sandboxes = sandboxes
        self.max_age_ms = appConfig.sandbox.maxAgeMs
        self.cleanup_interval = appConfig.sandbox.cleanupIntervalMs / 1000
        self.running = False

    async def start_cleanup_task(self):
        """Terminate sandboxes that have not been touched for ``max_age_ms``."""
        self.running = True
        print("[SessionCleaner] Starting automatic cleanup task...")

        while self.running:
            await asyncio.sleep(self.cleanup_interval)
            try:
                stale = await self.sandboxes.cleanup(self.max_age_ms)
                if stale:
                    print(f"[SessionCleaner] Removed {len(stale)} idle sandbox(es)")
            except Exception as e:
                print(f"[SessionCleaner] Cleanup error: {e}")

    def stop(self):
        self.running = False
        print("[SessionCleaner] Stopping cleanup task...")


# --- Load All Route Modules ---
MODULES: Dict[str, Any] = {}
ROUTE_MODULES = (
    "analyze_edit_intent",
    "apply_ai_code_stream",
    "create_ai_sandbox",
    "generate_ai_stream",
    "get_sandbox_files",
    "install_packages",
    "kill_sandbox",
    "restart_vite",
    "run_command",
    "sandbox_status",
)


def _load_all():
    for alias in ROUTE_MODULES:
        try:
            MODULES[alias] = importlib.import_module(f"routes.{alias}")
            print(f"[main] Successfully loaded {alias}")
        except Exception as e:
            print(f"[main] Error importing {alias}: {e}")
            traceback.print_exc()

_load_all()


async def maybe_await(value: Any) -> Any:
    return await value if inspect.isawaitable(value) else value


# --- FastAPI Lifespan & App Initialization ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    print("[main] Backend starting...")
    app.state.sandboxes = SandboxManager()
    app.state.generations = GenerationTracker()
    cleaner = SessionCleaner(app.state.sandboxes)
    cleanup_task = asyncio.create_task(cleaner.start_cleanup_task())
    yield
    print("[main] Backend shutting down...")
    cleaner.stop()
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    await app.state.sandboxes.terminate_all()

app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Utility Functions ---
def create_error_response(message: str, status: int = 500) -> JSONResponse:
    print(f"Error Response: {message}")
    return JSONResponse(content={"success": False, "error": message}, status_code=status)

class CustomJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, bytes):
            return obj.decode('utf-8', errors='replace')
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return super().default(obj)

class CustomJSONResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return json.dumps(
            content, ensure_ascii=False, allow_nan=False, indent=None,
            separators=(",", ":"), cls=CustomJSONEncoder
        ).encode("utf-8")

def to_response(result: Any):
    return result if hasattr(result, 'headers') else CustomJSONResponse(result)

@app.exception_handler(NoActiveSandboxError)
async def no_active_sandbox_handler(request: Request, exc: NoActiveSandboxError):
    return create_error_response(str(exc), status=409)

@app.exception_handler(InvalidRequestBody)
async def invalid_body_handler(request: Request, exc: InvalidRequestBody):
    return create_error_response(str(exc), status=400)


def get_session_context(request: Request) -> SessionContext:
    session_id = request.headers.get(SESSION_HEADER) or DEFAULT_SESSION_ID
    return SessionContext(
        session_id=session_id,
        sandboxes=request.app.state.sandboxes,
        generations=request.app.state.generations,
    )

async def read_json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise InvalidRequestBody("Invalid JSON body")
    if not isinstance(body, dict):
        raise InvalidRequestBody("JSON body must be an object")
    return body

def _module(alias: str):
    mod = MODULES.get(alias)
    if mod is None:
        raise RuntimeError(f"{alias} module not loaded")
    return mod


# --- API Endpoints ---
@app.get("/health")
async def health(request: Request):
    return {
        "status": "healthy",
        "modules_loaded": list(MODULES.keys()),
        "sandboxes": request.app.state.sandboxes.count(),
        "provider": appConfig.sandbox.provider,
        "availableProviders": available_providers(),
    }

# --- Sandbox Management ---
@app.post("/api/create-ai-sandbox")
async def api_create_ai_sandbox(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("create_ai_sandbox").POST(body, ctx))
    return to_response(result)

@app.post("/api/kill-sandbox")
async def api_kill_sandbox(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("kill_sandbox").POST(body, ctx))
    return to_response(result)

@app.get("/api/sandbox-status")
async def api_sandbox_status(ctx: SessionContext = Depends(get_session_context)):
    result = await maybe_await(_module("sandbox_status").GET(ctx))
    return to_response(result)

# --- Code Generation and Application ---
@app.post("/api/generate-ai-code-stream")
async def api_generate_ai_code_stream(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    response = await maybe_await(_module("generate_ai_stream").POST(body, ctx))
    return to_response(response)

@app.post("/api/cancel-generation")
async def api_cancel_generation(ctx: SessionContext = Depends(get_session_context)):
    cancelled = ctx.generations.cancel(ctx.session_id)
    return CustomJSONResponse({
        "success": True,
        "cancelled": cancelled,
        "message": "Generation cancelled" if cancelled else "No generation in progress",
    })

@app.post("/api/apply-ai-code-stream")
async def api_apply_ai_code_stream(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    response = await maybe_await(_module("apply_ai_code_stream").POST(body, ctx))
    return to_response(response)

@app.post("/api/analyze-edit-intent")
async def api_analyze_edit_intent(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("analyze_edit_intent").POST(body, ctx))
    return to_response(result)

# --- Additional Sandbox Interaction Endpoints ---
@app.get("/api/get-sandbox-files")
async def api_get_sandbox_files(sandboxId: Optional[str] = None, ctx: SessionContext = Depends(get_session_context)):
    result = await maybe_await(_module("get_sandbox_files").GET(ctx, sandboxId))
    return to_response(result)

@app.post("/api/install-packages")
async def api_install_packages(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("install_packages").POST(body, ctx))
    return to_response(result)

@app.post("/api/restart-vite")
async def api_restart_vite(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("restart_vite").POST(body, ctx))
    return to_response(result)

@app.post("/api/run-command")
async def api_run_command(request: Request, ctx: SessionContext = Depends(get_session_context)):
    body = await read_json_body(request)
    result = await maybe_await(_module("run_command").POST(body, ctx))
    return to_response(result)


# --- Main Entrypoint ---
if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print(f"[main] Backend ready and running on http://localhost:{port}")
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=False)
