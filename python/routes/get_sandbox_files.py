# get_sandbox_files.py - project snapshot + manifest for the session sandbox

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from helpers.file_manifest import build_manifest
from helpers.session import SessionContext
from sandbox.base import SandboxIOError, SandboxProvider

SOURCE_EXTENSIONS = (".jsx", ".js", ".tsx", ".ts", ".css", ".json", ".html")
MAX_SNAPSHOT_FILE_CHARS = 10000
MAX_STRUCTURE_LINES = 50


async def snapshot_files(provider: SandboxProvider) -> Dict[str, str]:
    """Read every source file of the project, keyed by project-relative path."""
    paths = [p for p in await provider.files() if p.endswith(SOURCE_EXTENSIONS)]

    async def _read(path: str) -> Tuple[str, Optional[str]]:
        try:
            return path, await provider.read_listed(path)
        except Exception as e:
            print(f"[get-sandbox-files] Skipping unreadable {path}: {e}")
            return path, None

    files: Dict[str, str] = {}
    for path, content in await asyncio.gather(*(_read(p) for p in paths)):
        if content is not None and len(content) < MAX_SNAPSHOT_FILE_CHARS:
            files[path] = content
    return files


def build_structure(paths: List[str]) -> str:
    lines: List[str] = []
    seen_dirs = set()
    for path in sorted(paths):
        parts = path.split("/")
        for depth, directory in enumerate(parts[:-1]):
            key = "/".join(parts[:depth + 1])
            if key not in seen_dirs:
                seen_dirs.add(key)
                lines.append(f"{'  ' * depth}{directory}/")
        lines.append(f"{'  ' * (len(parts) - 1)}{parts[-1]}")
    return "\n".join(lines[:MAX_STRUCTURE_LINES])


async def GET(ctx: SessionContext, sandbox_id: Optional[str] = None) -> Dict[str, Any]:
    provider = ctx.require_provider(sandbox_id)
    print(f"[get-sandbox-files] Fetching and analyzing file structure of {provider.sandbox_id}...")
    try:
        files = await snapshot_files(provider)
    except SandboxIOError as e:
        return {"success": False, "error": str(e)}

    manifest = build_manifest(files, working_dir=provider.working_dir)
    return {
        "success": True,
        "files": files,
        "structure": build_structure(list(files)),
        "fileCount": len(files),
        "manifest": manifest,
    }
