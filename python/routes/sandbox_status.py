# sandbox_status.py - report the session's sandbox and dev server health

from typing import Any, Dict

from helpers.session import SessionContext


async def GET(ctx: SessionContext) -> Dict[str, Any]:
    provider = ctx.active_provider()
    if provider is None or not provider.is_alive():
        return {
            "success": True,
            "active": False,
            "healthy": False,
            "sandboxData": None,
            "message": "No active sandbox",
        }

    healthy = await provider.check_health()

    return {
        "success": True,
        "active": True,
        "healthy": healthy,
        "sandboxData": provider.handle.to_dict(),
        "message": "Sandbox is active and healthy" if healthy else "Sandbox is active but the dev server is not responding",
    }
