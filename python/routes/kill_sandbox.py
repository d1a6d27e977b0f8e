# kill_sandbox.py - tear down a sandbox and clear the session pointer

from typing import Any, Dict

from helpers.session import SessionContext


async def POST(body: Dict[str, Any], ctx: SessionContext) -> Dict[str, Any]:
    sandbox_id = body.get("sandboxId") or ctx.sandboxes.active_id(ctx.session_id)
    if not sandbox_id:
        return {"success": True, "sandboxKilled": False, "message": "No active sandbox to kill"}

    print(f"[kill-sandbox] Terminating {sandbox_id} for session {ctx.session_id}")
    killed = await ctx.sandboxes.terminate(sandbox_id)
    return {
        "success": True,
        "sandboxKilled": killed,
        "message": "Sandbox cleaned up" if killed else f"Sandbox {sandbox_id} was not tracked",
    }
