# run_command.py - run a shell command in the sandbox working directory

from typing import Any, Dict

from fastapi.responses import JSONResponse

from helpers.session import SessionContext


async def POST(body: Dict[str, Any], ctx: SessionContext):
    """
    Body (JSON):
      {"command": "ls -la src", "timeout": 30}

    Returns:
      {"success": bool, "stdout": str, "stderr": str, "exitCode": int}
    """
    command = (body.get("command") or "").strip()
    if not command:
        return JSONResponse(content={"success": False, "error": "Command is required"}, status_code=400)

    provider = ctx.require_provider(body.get("sandboxId"))
    print(f"[run-command] {provider.sandbox_id}: {command}")
    result = await provider.exec(command, timeout=body.get("timeout"))
    return result.to_dict()
