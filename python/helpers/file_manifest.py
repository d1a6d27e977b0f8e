# helpers/file_manifest.py - structured index of a project's files
#   - imports / exports per JS/TS file
#   - component metadata (name, hooks, rendered children)
#   - file types, entry point, style files, routes and the component tree
# The manifest is rebuilt from raw contents every time the snapshot changes.
from __future__ import annotations

import re
import time
from typing import Any, Dict, List, Optional

IMPORT_RE = re.compile(r"""import\s+(?:(.+?)\s+from\s+)?['"](.+?)['"]""")
DEFAULT_EXPORT_RE = re.compile(r"export\s+default\s+(?:function\s+)?(\w+)")
NAMED_EXPORT_RE = re.compile(r"export\s+(?:const|let|var|function|class)\s+(\w+)")
EXPORT_BLOCK_RE = re.compile(r"export\s+\{([^}]+)\}")
JSX_RE = re.compile(r"<[A-Z]\w*|<[a-z]+\s+[^>]*/?>")
FUNC_COMPONENT_RE = re.compile(r"(?:export\s+)?(?:default\s+)?function\s+([A-Z]\w*)\s*\(")
ARROW_COMPONENT_RE = re.compile(r"(?:export\s+)?(?:default\s+)?(?:const|let)\s+([A-Z]\w*)\s*=\s*(?:\([^)]*\)|[^=;\n(])*=>")
HOOK_RE = re.compile(r"use[A-Z]\w*")
CHILD_COMPONENT_RE = re.compile(r"<([A-Z]\w*)[^>]*/?>")
ROUTE_RE = re.compile(r"""<Route\s+[^>]*?path=["']([^"']+)["'][^>]*?(?:element|component)=\{\s*<?\s*(\w+)""", re.DOTALL)

SCRIPT_EXTENSION_RE = re.compile(r"\.(jsx?|tsx?)$")
STYLE_EXTENSIONS = (".css", ".scss")

_ENTRY_CANDIDATES = (
    "src/main.jsx", "src/main.tsx", "src/main.js", "src/main.ts",
    "src/index.jsx", "src/index.tsx", "src/index.js", "src/index.ts",
)


def _split_names(block: str) -> List[str]:
    names = []
    for part in block.split(","):
        name = re.split(r"\s+as\s+", part.strip())[0].strip()
        if name:
            names.append(name)
    return names


def extract_imports(content: str) -> List[Dict[str, Any]]:
    imports = []
    for m in IMPORT_RE.finditer(content):
        clause, source = m.group(1), m.group(2)
        info: Dict[str, Any] = {
            "source": source,
            "imports": [],
            "defaultImport": None,
            "isLocal": source.startswith(("./", "../", "@/")),
        }
        if clause:
            default_match = re.match(r"^(\w+)(?:,|$)", clause)
            if default_match:
                info["defaultImport"] = default_match.group(1)
            named_match = re.search(r"\{([^}]+)\}", clause)
            if named_match:
                info["imports"] = _split_names(named_match.group(1))
        imports.append(info)
    return imports


def extract_exports(content: str) -> List[str]:
    exports: List[str] = []
    if re.search(r"export\s+default\s+", content):
        m = DEFAULT_EXPORT_RE.search(content)
        exports.append(f"default:{m.group(1)}" if m else "default")
    exports.extend(m.group(1) for m in NAMED_EXPORT_RE.finditer(content))
    for m in EXPORT_BLOCK_RE.finditer(content):
        exports.extend(_split_names(m.group(1)))
    return exports


def extract_component_info(content: str, file_path: str) -> Optional[Dict[str, Any]]:
    if not JSX_RE.search(content) and "React" not in content:
        return None

    name = ""
    m = FUNC_COMPONENT_RE.search(content) or ARROW_COMPONENT_RE.search(content)
    if m:
        name = m.group(1)
    else:
        base = SCRIPT_EXTENSION_RE.sub("", file_path.rsplit("/", 1)[-1])
        if base[:1].isupper():
            name = base
    if not name:
        return None

    hooks: List[str] = []
    for hook in HOOK_RE.findall(content):
        if hook not in hooks:
            hooks.append(hook)

    children: List[str] = []
    for child in CHILD_COMPONENT_RE.findall(content):
        if child != name and child not in children:
            children.append(child)

    return {
        "name": name,
        "hooks": hooks,
        "hasState": "useState" in hooks or "useReducer" in hooks,
        "childComponents": children,
    }


def determine_file_type(file_path: str, content: str) -> str:
    file_name = file_path.rsplit("/", 1)[-1].lower()
    dir_path = "/" + file_path.lower()

    if file_name.endswith(STYLE_EXTENSIONS):
        return "style"
    if "config" in file_name:
        return "config"
    if "/hooks/" in dir_path or file_name.startswith("use"):
        return "hook"
    if "/context/" in dir_path or "context" in file_name:
        return "context"
    if "layout" in file_name or "children" in content:
        return "layout"
    if "/pages/" in dir_path or "useRouter" in content or "useParams" in content:
        return "page"
    if "/utils/" in dir_path or "/lib/" in dir_path or "export default" not in content:
        return "utility"
    return "component"


def parse_javascript_file(content: str, file_path: str) -> Dict[str, Any]:
    return {
        "imports": extract_imports(content),
        "exports": extract_exports(content),
        "componentInfo": extract_component_info(content, file_path),
        "type": determine_file_type(file_path, content),
    }


def build_component_tree(files: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    tree: Dict[str, Dict[str, Any]] = {}
    for path, info in files.items():
        component = info.get("componentInfo")
        if component:
            file_type = info.get("type")
            tree[component["name"]] = {
                "file": path,
                "imports": [],
                "importedBy": [],
                "type": file_type if file_type in ("page", "layout") else "component",
            }

    for info in files.values():
        component = info.get("componentInfo")
        if not component:
            continue
        for imp in info.get("imports") or []:
            target = imp.get("defaultImport")
            if imp.get("isLocal") and target in tree:
                tree[component["name"]]["imports"].append(target)
                tree[target]["importedBy"].append(component["name"])
    return tree


def extract_routes(files: Dict[str, Dict[str, Any]]) -> List[Dict[str, str]]:
    routes: List[Dict[str, str]] = []
    by_component = {
        info["componentInfo"]["name"]: path
        for path, info in files.items() if info.get("componentInfo")
    }

    for path, info in files.items():
        content = info.get("content", "")
        if "<Route" in content:
            for m in ROUTE_RE.finditer(content):
                routes.append({
                    "path": m.group(1),
                    "component": by_component.get(m.group(2), path),
                })

        if path.startswith(("pages/", "src/pages/")) and SCRIPT_EXTENSION_RE.search(path):
            route_path = "/" + SCRIPT_EXTENSION_RE.sub("", re.sub(r"^(src/)?pages/", "", path))
            route_path = re.sub(r"/?index$", "", route_path) or "/"
            routes.append({"path": route_path, "component": path})

    return routes


def find_entry_point(paths: List[str]) -> str:
    for candidate in _ENTRY_CANDIDATES:
        if candidate in paths:
            return candidate
    for path in paths:
        if path.endswith(("App.jsx", "App.tsx")):
            return path
    return paths[0] if paths else ""


def build_manifest(
    raw_files: Dict[str, str],
    working_dir: str = "",
    modified: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """Build a FileManifest dict from ``{relative_path: content}``.

    Keys of ``manifest["files"]`` are project-relative paths (``src/App.jsx``);
    each FileInfo keeps the absolute ``path`` when ``working_dir`` is known.
    """
    now_ms = int(time.time() * 1000)
    modified = modified or {}
    files: Dict[str, Dict[str, Any]] = {}
    style_files: List[str] = []

    for relative_path, content in raw_files.items():
        relative_path = relative_path.lstrip("/")
        content = content or ""
        info: Dict[str, Any] = {
            "content": content,
            "type": determine_file_type(relative_path, content),
            "imports": [],
            "exports": [],
            "componentInfo": None,
            "lastModified": modified.get(relative_path, now_ms),
            "path": f"{working_dir.rstrip('/')}/{relative_path}" if working_dir else relative_path,
            "relativePath": relative_path,
        }
        if SCRIPT_EXTENSION_RE.search(relative_path):
            info.update(parse_javascript_file(content, relative_path))
        if relative_path.endswith(STYLE_EXTENSIONS):
            style_files.append(relative_path)
        files[relative_path] = info

    manifest = {
        "files": files,
        "routes": extract_routes(files),
        "componentTree": build_component_tree(files),
        "entryPoint": find_entry_point(list(files.keys())),
        "styleFiles": style_files,
        "timestamp": now_ms,
    }
    print(f"[file-manifest] Indexed {len(files)} files, entry point: {manifest['entryPoint'] or 'none'}")
    return manifest
