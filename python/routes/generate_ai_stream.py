# routes/generate_ai_stream.py - streaming code generation (intent -> context -> prompts -> model)
from __future__ import annotations

import asyncio
import inspect
from typing import Any, AsyncGenerator, AsyncIterator, Callable, Dict, List, Optional, TypedDict

from fastapi.responses import JSONResponse, StreamingResponse

# LangChain core
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser

# LangGraph
from langgraph.graph import StateGraph, START, END

from config.app_config import appConfig
from helpers.context_selector import format_files_for_ai, get_file_contents, select_files_for_edit
from helpers.file_manifest import build_manifest
from helpers.intent_analyzer import EditIntent
from helpers.llm_intent_analyzer import classify_edit_intent
from helpers.llm_providers import select_model
from helpers.prompts import EDIT_MODE_PROMPT, build_system_prompt, format_conversation_history
from helpers.session import DEFAULT_SESSION_ID, GenerationTracker, SessionContext
from helpers.sse import SSE_HEADERS, sse_format
from helpers.stream_parser import StreamTokenizer
from routes.get_sandbox_files import snapshot_files

TextStreamFactory = Callable[[str, str, str], AsyncIterator[str]]

GENERATION_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "{system_prompt}"),
    ("human", "{full_prompt}"),
])


# -------------------------------------------------------------------
# Agent State
# -------------------------------------------------------------------
class AgentState(TypedDict):
    prompt: str
    model: str
    is_edit: bool
    files: Dict[str, str]
    recent_messages: List[Dict[str, str]]
    manifest: Optional[Dict[str, Any]]
    edit_intent: Optional[EditIntent]
    file_context: Optional[Dict[str, Any]]
    system_prompt: str
    full_prompt: str
    progress_callbacks: List
    text_stream: TextStreamFactory
    intent_llm: Any
    use_model_intent: Optional[bool]
    tokenizer: StreamTokenizer
    cancel_event: asyncio.Event


def default_text_stream(system_prompt: str, full_prompt: str, model: str) -> AsyncIterator[str]:
    llm = select_model(
        model,
        temperature=appConfig.ai.defaultTemperature,
        max_tokens=appConfig.ai.maxTokens,
    )
    chain = GENERATION_PROMPT | llm | StrOutputParser()
    return chain.astream({"system_prompt": system_prompt, "full_prompt": full_prompt})


def send_progress(callbacks, data):
    for cb in callbacks:
        try:
            if inspect.iscoroutinefunction(cb):
                asyncio.create_task(cb(data))
            else:
                cb(data)
        except Exception as e:
            print(f"[progress] Error sending progress: {e}")


# -------------------------------------------------------------------
# Graph nodes
# -------------------------------------------------------------------
async def classify_intent_node(state: AgentState) -> AgentState:
    send_progress(state["progress_callbacks"], {"type": "status", "message": "Analyzing edit intent..."})

    intent = await classify_edit_intent(
        state["prompt"],
        state["manifest"],
        llm=state["intent_llm"],
        use_model=state["use_model_intent"],
    )
    state["edit_intent"] = intent

    send_progress(state["progress_callbacks"], {
        "type": "intent",
        "data": {
            "type": intent.type.value,
            "targetFiles": list(intent.targetFiles),
            "confidence": intent.confidence,
            "description": intent.description,
        },
    })
    return state


def select_context_node(state: AgentState) -> AgentState:
    selection = select_files_for_edit(state["prompt"], state["edit_intent"], state["manifest"])
    state["file_context"] = selection

    primary = selection["primaryFiles"]
    if primary:
        message = f"Editing {len(primary)} file(s): {', '.join(primary)}"
    else:
        message = "No existing file targeted, the model will decide where the change goes"
    send_progress(state["progress_callbacks"], {"type": "status", "message": message})
    return state


def build_prompts_node(state: AgentState) -> AgentState:
    selection = state["file_context"]
    manifest = state["manifest"]

    if selection is not None and manifest:
        primary = get_file_contents(selection["primaryFiles"], manifest)
        context = get_file_contents(selection["contextFiles"], manifest)
        system_prompt = "\n\n".join([
            EDIT_MODE_PROMPT,
            selection["instructions"],
            format_files_for_ai(primary, context),
        ])
    else:
        system_prompt = build_system_prompt(state["is_edit"], state["files"] if state["is_edit"] else None)

    full_prompt = format_conversation_history(state["recent_messages"]) + state["prompt"]

    state["system_prompt"] = system_prompt
    state["full_prompt"] = full_prompt
    print(f"[build_prompts] System prompt {len(system_prompt)} chars, user prompt {len(full_prompt)} chars")
    return state


async def generate_code_node(state: AgentState) -> AgentState:
    callbacks = state["progress_callbacks"]
    tokenizer = state["tokenizer"]
    cancel_event = state["cancel_event"]

    send_progress(callbacks, {"type": "status", "message": "Generating code..."})
    print(f"[generate_code] Streaming from {state['model']}")

    stream = state["text_stream"](state["system_prompt"], state["full_prompt"], state["model"])
    async for chunk in stream:
        if cancel_event.is_set():
            print("[generate_code] Cancelled, dropping remaining output")
            return state
        if not chunk:
            continue

        index = len(tokenizer.buffer)
        update = tokenizer.feed(chunk)
        send_progress(callbacks, {"type": "stream", "data": {"content": chunk, "index": index}})

        for f in update.new_files:
            print(f"[generate_code] Completed {f.path} ({len(f.content)} chars)")
            send_progress(callbacks, {"type": "file", "data": f.to_dict()})
        for name in update.new_packages:
            send_progress(callbacks, {"type": "package", "data": {"name": name}})
        if update.current is not None:
            send_progress(callbacks, {"type": "current", "data": update.current.to_dict()})

    snapshot = tokenizer.snapshot()
    print(f"[generate_code] Done: {len(snapshot['files'])} files, {len(snapshot['packages'])} packages")
    send_progress(callbacks, {"type": "complete", "data": snapshot})
    return state


def build_generation_graph():
    graph = StateGraph(AgentState)

    def entry_condition(s: AgentState) -> str:
        return "classify_intent" if (s["is_edit"] and s["manifest"]) else "build_prompts"

    graph.add_node("classify_intent", classify_intent_node)
    graph.add_node("select_context", select_context_node)
    graph.add_node("build_prompts", build_prompts_node)
    graph.add_node("generate_code", generate_code_node)

    graph.add_conditional_edges(START, entry_condition, {
        "classify_intent": "classify_intent",
        "build_prompts": "build_prompts",
    })
    graph.add_edge("classify_intent", "select_context")
    graph.add_edge("select_context", "build_prompts")
    graph.add_edge("build_prompts", "generate_code")
    graph.add_edge("generate_code", END)
    return graph.compile()


# -------------------------------------------------------------------
# Public API
# -------------------------------------------------------------------
async def _edit_files_from_sandbox(ctx: Optional[SessionContext], sandbox_id: Optional[str] = None) -> Dict[str, str]:
    provider = None
    if ctx is not None:
        provider = ctx.sandboxes.get(sandbox_id) if sandbox_id else ctx.active_provider()
    if provider is None or not provider.is_alive():
        print("[generate] Edit requested without files and no active sandbox")
        return {}
    try:
        return await snapshot_files(provider)
    except Exception as e:
        print(f"[generate] Could not read project files from {provider.sandbox_id}: {e}")
        return {}


async def stream_generate_code(
    prompt: str,
    model: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    is_edit: bool = False,
    ctx: Optional[SessionContext] = None,
    text_stream: Optional[TextStreamFactory] = None,
    intent_llm: Any = None,
    use_model_intent: Optional[bool] = None,
) -> AsyncGenerator[Dict[str, Any], None]:
    """Yield generation events until ``complete``, ``error`` or cancellation.

    A cancelled run simply stops: no ``error`` record is produced for it.
    """
    context = context or {}
    model = model or appConfig.ai.defaultModel
    tracker = ctx.generations if ctx else GenerationTracker()
    session_id = ctx.session_id if ctx else DEFAULT_SESSION_ID

    cancel_event = tracker.begin(session_id)
    tokenizer = StreamTokenizer()
    progress_queue: asyncio.Queue = asyncio.Queue()

    def progress_callback(data):
        progress_queue.put_nowait(data)

    agent_task: Optional[asyncio.Task] = None
    watcher: Optional[asyncio.Task] = None
    try:
        files = dict(context.get("files") or {})
        if is_edit and not files:
            yield {"type": "status", "message": "Reading project files from sandbox..."}
            files = await _edit_files_from_sandbox(ctx, context.get("sandboxId"))
        manifest = build_manifest(files) if (is_edit and files) else None

        initial_state = AgentState(
            prompt=prompt,
            model=model,
            is_edit=is_edit,
            files=files,
            recent_messages=list(context.get("recentMessages") or []),
            manifest=manifest,
            edit_intent=None,
            file_context=None,
            system_prompt="",
            full_prompt="",
            progress_callbacks=[progress_callback],
            text_stream=text_stream or default_text_stream,
            intent_llm=intent_llm,
            use_model_intent=use_model_intent,
            tokenizer=tokenizer,
            cancel_event=cancel_event,
        )
        agent = build_generation_graph()

        # Run the graph in a background task
        async def run_agent():
            try:
                await agent.ainvoke(initial_state)
            except Exception as e:
                if not cancel_event.is_set():
                    print(f"[generate] Generation failed: {e}")
                    progress_queue.put_nowait({
                        "type": "error",
                        "message": str(e) or e.__class__.__name__,
                        "data": tokenizer.snapshot(),
                    })
            finally:
                # Signal completion
                progress_queue.put_nowait(None)

        async def watch_cancel():
            await cancel_event.wait()
            print(f"[generate] Generation for session {session_id} cancelled")
            if agent_task is not None and not agent_task.done():
                agent_task.cancel()
            progress_queue.put_nowait(None)

        agent_task = asyncio.create_task(run_agent())
        watcher = asyncio.create_task(watch_cancel())

        while True:
            chunk = await progress_queue.get()
            if chunk is None or cancel_event.is_set():
                break
            yield chunk
    finally:
        for task in (watcher, agent_task):
            if task is not None and not task.done():
                task.cancel()
        tracker.finish(session_id, cancel_event)


async def generate_code(
    prompt: str,
    model: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    is_edit: bool = False,
    ctx: Optional[SessionContext] = None,
    text_stream: Optional[TextStreamFactory] = None,
    intent_llm: Any = None,
) -> Dict[str, Any]:
    """Non-streaming variant. Returns ``{success, files, packages, error?}``."""
    result: Dict[str, Any] = {"success": False, "files": [], "packages": []}
    async for event in stream_generate_code(
        prompt, model, context, is_edit, ctx=ctx, text_stream=text_stream, intent_llm=intent_llm
    ):
        if event["type"] == "complete":
            result.update(success=True, **event["data"])
        elif event["type"] == "error":
            result.update(error=event["message"], **event["data"])

    if not result["success"] and "error" not in result:
        result["error"] = "Generation cancelled"
    return result


async def POST(body: Dict[str, Any], ctx: SessionContext):
    prompt = (body.get("prompt") or "").strip()
    if not prompt:
        return JSONResponse(content={"success": False, "error": "Prompt is required"}, status_code=400)

    model = body.get("model") or appConfig.ai.defaultModel
    is_edit = bool(body.get("isEdit"))
    context = body.get("context") or {}
    print(f"[generate-ai-code-stream] model={model} isEdit={is_edit} session={ctx.session_id}")

    async def event_stream():
        events = stream_generate_code(prompt, model, context, is_edit, ctx=ctx)
        try:
            async for event in events:
                yield sse_format(event)
        finally:
            # also stops the graph task on client disconnect
            await events.aclose()

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
