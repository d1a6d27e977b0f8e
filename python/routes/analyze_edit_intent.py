# analyze_edit_intent.py - classify an edit request and pick the files it should touch

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from helpers.context_selector import select_files_for_edit
from helpers.file_manifest import build_manifest
from helpers.llm_intent_analyzer import classify_edit_intent, intent_payload
from helpers.llm_providers import select_model
from helpers.session import SessionContext
from routes.get_sandbox_files import snapshot_files


async def _resolve_manifest(body: Dict[str, Any], ctx: SessionContext) -> Optional[Dict[str, Any]]:
    manifest = body.get("manifest")
    if isinstance(manifest, dict) and manifest.get("files"):
        return manifest

    files = body.get("files")
    if isinstance(files, dict) and files:
        return build_manifest(files)

    provider = ctx.require_provider(body.get("sandboxId"))
    snapshot = await snapshot_files(provider)
    return build_manifest(snapshot, working_dir=provider.working_dir) if snapshot else None


async def POST(body: Dict[str, Any], ctx: SessionContext, llm: Any = None):
    """
    Body: {prompt, manifest? | files?, model?, useModel?, sandboxId?}
    Without a manifest or files the session sandbox is read.
    """
    prompt = (body.get("prompt") or "").strip()
    if not prompt:
        return JSONResponse(content={"success": False, "error": "Prompt is required"}, status_code=400)

    manifest = await _resolve_manifest(body, ctx)
    if not manifest:
        return JSONResponse(content={"success": False, "error": "No project files to analyze"}, status_code=400)

    use_model = body.get("useModel")
    if llm is None and use_model and body.get("model"):
        llm = select_model(body["model"], temperature=0.2)

    intent = await classify_edit_intent(prompt, manifest, llm=llm, use_model=use_model)
    selection = select_files_for_edit(prompt, intent, manifest)

    return {
        "success": True,
        "editIntent": intent_payload(intent),
        "fileContext": {
            "primaryFiles": selection["primaryFiles"],
            "contextFiles": selection["contextFiles"],
            "instructions": selection["instructions"],
        },
    }
