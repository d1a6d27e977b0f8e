# helpers/stream_parser.py - incremental <file>/<package> extraction from a model stream
"""
The model writes files as ``<file path="...">...</file>`` blocks and dependencies
as ``<package>name</package>``. Chunks can split a tag anywhere, so every call
re-scans the whole buffer instead of keeping parser state between chunks.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

FILE_BLOCK_RE = re.compile(r'<file\s+path="([^"]+)">([\s\S]*?)</file>')
PACKAGE_RE = re.compile(r"<package>([^<]+)</package>")

_OPEN_TAG = "<file"
_CLOSE_TAG = "</file>"
_HEADER_RE = re.compile(r'<file\s+path="([^"]*)">')
_PARTIAL_HEADER_RE = re.compile(r'<file(?:\s+path="([^"]*))?')


class FileKind(str, Enum):
    SCRIPT = "script"
    STYLE = "style"
    DATA = "data"
    MARKUP = "markup"
    TEXT = "text"


_KIND_BY_EXTENSION: Dict[str, FileKind] = {
    "js": FileKind.SCRIPT, "jsx": FileKind.SCRIPT, "ts": FileKind.SCRIPT,
    "tsx": FileKind.SCRIPT, "mjs": FileKind.SCRIPT, "cjs": FileKind.SCRIPT,
    "css": FileKind.STYLE, "scss": FileKind.STYLE, "sass": FileKind.STYLE,
    "less": FileKind.STYLE,
    "json": FileKind.DATA, "yml": FileKind.DATA, "yaml": FileKind.DATA,
    "toml": FileKind.DATA,
    "html": FileKind.MARKUP, "htm": FileKind.MARKUP, "svg": FileKind.MARKUP,
    "xml": FileKind.MARKUP, "md": FileKind.MARKUP,
}


def kind_for_path(path: str) -> FileKind:
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return FileKind.TEXT
    return _KIND_BY_EXTENSION.get(name.rsplit(".", 1)[-1].lower(), FileKind.TEXT)


@dataclass(frozen=True)
class StreamingFile:
    path: str
    content: str
    kind: FileKind
    completed: bool

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "content": self.content}


@dataclass
class ScanResult:
    completed: List[StreamingFile] = field(default_factory=list)
    current: Optional[StreamingFile] = None


def _strip_partial_close(content: str) -> str:
    # "hello</fi" -> "hello" while the closing tag is still arriving
    for size in range(len(_CLOSE_TAG) - 1, 0, -1):
        if content.endswith(_CLOSE_TAG[:size]):
            return content[:-size]
    return content


def _current_file(tail: str) -> Optional[StreamingFile]:
    idx = tail.rfind(_OPEN_TAG)
    if idx == -1:
        return None
    fragment = tail[idx:]
    if len(fragment) > len(_OPEN_TAG) and not fragment[len(_OPEN_TAG)].isspace():
        return None

    header = _HEADER_RE.match(fragment)
    if header:
        path = header.group(1).strip()
        content = _strip_partial_close(fragment[header.end():]).lstrip()
    else:
        partial = _PARTIAL_HEADER_RE.match(fragment)
        if partial is None:
            return None
        path = (partial.group(1) or "").strip()
        content = ""

    return StreamingFile(path=path, content=content, kind=kind_for_path(path), completed=False)


def scan(buffer: str, already_emitted: Iterable[str] = ()) -> ScanResult:
    """Scan the whole buffer for finished file blocks plus at most one open one.

    Paths in ``already_emitted`` are skipped; recording the returned paths there
    is the caller's job.
    """
    emitted: Set[str] = set(already_emitted)
    result = ScanResult()
    tail_start = 0

    for match in FILE_BLOCK_RE.finditer(buffer):
        tail_start = match.end()
        path = match.group(1).strip()
        if path in emitted:
            continue
        emitted.add(path)
        result.completed.append(StreamingFile(
            path=path,
            content=match.group(2).strip(),
            kind=kind_for_path(path),
            completed=True,
        ))

    result.current = _current_file(buffer[tail_start:])
    return result


def scan_packages(buffer: str, already_emitted: Iterable[str] = ()) -> List[str]:
    emitted: Set[str] = set(already_emitted)
    found: List[str] = []
    for match in PACKAGE_RE.finditer(buffer):
        name = match.group(1).strip()
        if name and name not in emitted:
            emitted.add(name)
            found.append(name)
    return found


def parse_file_blocks(content: str) -> List[Dict[str, str]]:
    """All completed blocks in ``content``, one per path (first occurrence wins)."""
    return [f.to_dict() for f in scan(content).completed]


@dataclass
class TokenizerUpdate:
    new_files: List[StreamingFile]
    new_packages: List[str]
    current: Optional[StreamingFile]


class StreamTokenizer:
    """Owns one generation's buffer and the paths/packages already reported."""

    def __init__(self):
        self.buffer = ""
        self.emitted_files: Set[str] = set()
        self.emitted_packages: Set[str] = set()
        self.files: List[StreamingFile] = []
        self.packages: List[str] = []

    def feed(self, chunk: str) -> TokenizerUpdate:
        self.buffer += chunk

        result = scan(self.buffer, self.emitted_files)
        for f in result.completed:
            self.emitted_files.add(f.path)
            self.files.append(f)

        new_packages = scan_packages(self.buffer, self.emitted_packages)
        self.emitted_packages.update(new_packages)
        self.packages.extend(new_packages)

        return TokenizerUpdate(
            new_files=result.completed,
            new_packages=new_packages,
            current=result.current,
        )

    def snapshot(self) -> Dict[str, list]:
        return {
            "files": [f.to_dict() for f in self.files],
            "packages": list(self.packages),
        }
