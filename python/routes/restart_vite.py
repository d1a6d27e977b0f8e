# restart_vite.py - restart the sandbox dev server and wait for it to answer

from typing import Any, Dict

from helpers.session import SessionContext


async def POST(body: Dict[str, Any], ctx: SessionContext) -> Dict[str, Any]:
    provider = ctx.require_provider(body.get("sandboxId"))
    print(f"[restart-vite] Restarting dev server in {provider.sandbox_id}")
    ready = await provider.restart_dev_server()
    return {
        "success": True,
        "ready": ready,
        "message": "Dev server restarted" if ready else "Dev server restarted but is not responding yet",
    }
