# apply_ai_code_stream.py - write generated files into the session sandbox (merge or overwrite)

from typing import Any, AsyncIterator, Dict, List, Optional, Set

from fastapi.responses import JSONResponse, StreamingResponse

from helpers.code_merge import MERGE_INSTRUCTIONS, CodeMerger, create_merger
from helpers.session import SessionContext
from helpers.sse import SSE_HEADERS, sse_format
from helpers.stream_parser import parse_file_blocks, scan_packages
from sandbox.base import SandboxProvider, normalize_project_path


def _exists(normalized: str, existing: Set[str]) -> bool:
    return normalized in existing


async def _merge_or_overwrite(
    provider: SandboxProvider,
    file: Dict[str, str],
    merger: CodeMerger,
) -> str:
    """Try a surgical merge; any merge failure falls back to writing the generated content."""
    path = file["path"]
    try:
        original = await provider.read(path)
        result = await merger.merge(original, MERGE_INSTRUCTIONS, file["content"], path)
    except Exception as e:
        print(f"[apply-ai-code-stream] Merge of {path} failed ({e}), falling back to direct write")
        return await provider.write(path, file["content"])

    if result.success:
        print(f"[apply-ai-code-stream] Merged edits into {path}")
        return await provider.write(path, result.merged_code)

    print(f"[apply-ai-code-stream] Merge of {path} failed ({result.error}), falling back to direct write")
    return await provider.write(path, file["content"])


async def iter_apply_events(
    provider: SandboxProvider,
    files: List[Dict[str, str]],
    packages: Optional[List[str]] = None,
    merger: Optional[CodeMerger] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """Yield apply progress records; the last one is always ``complete``.

    Packages are installed before any file is written. An install failure is
    reported and application continues; a write failure stops the run.
    """
    packages = list(packages or [])
    applied: List[str] = []
    installed: List[str] = []
    error: Optional[str] = None

    if packages:
        yield {"type": "status", "message": f"Installing {len(packages)} package(s)..."}
        try:
            result = await provider.install(packages)
        except Exception as e:
            result = None
            install_error = str(e)
        else:
            install_error = result.stderr.strip() or f"exit code {result.exit_code}"
        if result is not None and result.success:
            installed = packages
            for name in packages:
                yield {"type": "package", "data": {"name": name}}
        else:
            print(f"[apply-ai-code-stream] Package install failed: {install_error}")
            yield {"type": "error", "message": f"Failed to install packages: {install_error}"}

    yield {"type": "status", "message": f"Applying {len(files)} file(s)..."}
    try:
        existing = set(await provider.files()) if files else set()
        for file in files:
            path = file["path"]
            normalized = normalize_project_path(path)
            if merger is not None and _exists(normalized, existing):
                await _merge_or_overwrite(provider, file, merger)
            else:
                await provider.write(path, file["content"])
            existing.add(normalized)
            applied.append(path)
            yield {"type": "file", "data": {"path": path, "status": "applied"}}
    except Exception as e:
        error = str(e)
        print(f"[apply-ai-code-stream] Apply aborted after {len(applied)} file(s): {error}")
        yield {"type": "error", "message": f"Failed to apply files: {error}"}

    yield {
        "type": "complete",
        "data": {
            "appliedFiles": applied,
            "installedPackages": installed,
            "success": error is None,
        },
    }


async def apply_generated_files(
    provider: SandboxProvider,
    files: List[Dict[str, str]],
    packages: Optional[List[str]] = None,
    merger: Optional[CodeMerger] = None,
) -> Dict[str, Any]:
    """Non-streaming apply. Returns ``{success, appliedFiles, installedPackages, error?}``."""
    errors: List[str] = []
    outcome: Dict[str, Any] = {}
    async for event in iter_apply_events(provider, files, packages, merger):
        if event["type"] == "error":
            errors.append(event["message"])
        elif event["type"] == "complete":
            outcome = dict(event["data"])
    if not outcome["success"]:
        outcome["error"] = errors[-1] if errors else "Unknown error"
    return outcome


def _files_from_body(body: Dict[str, Any]) -> List[Dict[str, str]]:
    files = body.get("files")
    if files:
        return [{"path": f["path"], "content": f.get("content", "")} for f in files if f.get("path")]
    # raw model output is accepted as well
    return parse_file_blocks(body.get("response") or "")


async def POST(body: Dict[str, Any], ctx: SessionContext, merger: Optional[CodeMerger] = None):
    files = _files_from_body(body)
    if not files:
        return JSONResponse(content={"success": False, "error": "Files are required"}, status_code=400)

    packages = body.get("packages") or scan_packages(body.get("response") or "")
    provider = ctx.require_provider(body.get("sandboxId"))
    if merger is None:
        merger = create_merger()

    print(f"[apply-ai-code-stream] Applying {len(files)} file(s), {len(packages)} package(s) "
          f"to {provider.sandbox_id} (merge: {merger.name if merger else 'off'})")

    async def event_stream():
        try:
            async for event in iter_apply_events(provider, files, packages, merger):
                yield sse_format(event)
        except Exception as e:
            print(f"[apply-ai-code-stream] Stream error: {e}")
            yield sse_format({"type": "error", "message": f"Application failed: {e}"})

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)
