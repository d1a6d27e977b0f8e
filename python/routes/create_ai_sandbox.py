# create_ai_sandbox.py - create (or reconnect to) the session's sandbox

from typing import Any, Dict

from helpers.session import SessionContext


async def POST(body: Dict[str, Any], ctx: SessionContext) -> Dict[str, Any]:
    """Body: ``{sandboxId?, provider?}``. Reconnects when an id is given, otherwise creates."""
    sandbox_id = body.get("sandboxId")
    provider_name = body.get("provider")

    try:
        if sandbox_id:
            provider = await ctx.sandboxes.reconnect_for_session(ctx.session_id, sandbox_id, provider_name)
            if provider is not None:
                return {
                    "success": True,
                    **provider.handle.to_dict(),
                    "message": "Reconnected to existing sandbox",
                }
            print(f"[create-ai-sandbox] Reconnect to {sandbox_id} failed, creating a new sandbox")

        provider = await ctx.sandboxes.create_for_session(ctx.session_id, provider_name)
    except ValueError as e:
        return {"success": False, "error": str(e)}
    except Exception as e:
        print(f"[create-ai-sandbox] Error: {e}")
        return {"success": False, "error": str(e), "details": e.__class__.__name__}

    return {
        "success": True,
        **provider.handle.to_dict(),
        "message": f"Sandbox created with the {provider.name} backend",
    }
