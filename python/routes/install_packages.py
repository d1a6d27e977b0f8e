# install_packages.py - install npm/bun packages into the session sandbox

import re
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse

from helpers.session import SessionContext

# scoped names, optional version or tag
PACKAGE_NAME_RE = re.compile(r"^(@[a-z0-9][\w.-]*/)?[a-z0-9][\w.-]*(@[\w.^~<>=*|-]+)?$", re.IGNORECASE)


def clean_packages(packages: Optional[List[Any]]) -> List[str]:
    """Deduplicate and drop anything that is not a plausible package specifier."""
    cleaned: List[str] = []
    for raw in packages or []:
        name = str(raw).strip()
        if not name or name in cleaned:
            continue
        if not PACKAGE_NAME_RE.match(name):
            print(f"[install-packages] Ignoring invalid package name: {name!r}")
            continue
        cleaned.append(name)
    return cleaned


async def POST(body: Dict[str, Any], ctx: SessionContext):
    packages = clean_packages(body.get("packages"))
    if not packages:
        return JSONResponse(content={"success": False, "error": "Packages array is required"}, status_code=400)

    provider = ctx.require_provider(body.get("sandboxId"))
    result = await provider.install(packages)
    if not result.success:
        return {
            "success": False,
            "error": result.stderr.strip() or f"Install exited with code {result.exit_code}",
            "packages": packages,
            **result.to_dict(),
        }
    return {
        "success": True,
        "installedPackages": packages,
        "message": f"Installed {len(packages)} package(s)",
        **result.to_dict(),
    }
