# sandbox/base.py - capability interface shared by every sandbox backend
from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config.app_config import appConfig


class SandboxError(Exception):
    """Base class for sandbox failures."""


class NoActiveSandboxError(SandboxError):
    """Raised when an operation needs a live sandbox and the session has none."""

    def __init__(self, message: str = "No active sandbox"):
        super().__init__(message)


class SandboxIOError(SandboxError):
    """A read or write failed on both the qualified and the relative path."""


@dataclass
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
            "success": self.success,
        }


@dataclass
class SandboxHandle:
    sandbox_id: str
    preview_url: str
    provider: str
    created_at: int = 0

    def __post_init__(self):
        if not self.created_at:
            self.created_at = int(time.time() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sandboxId": self.sandbox_id,
            "url": self.preview_url,
            "provider": self.provider,
            "createdAt": self.created_at,
        }


ROOT_CONFIG_FILES = frozenset({
    "tailwind.config.js",
    "vite.config.js",
    "package.json",
    "package-lock.json",
    "tsconfig.json",
    "postcss.config.js",
})


def normalize_project_path(path: str) -> str:
    """Canonical project-relative path: ``Header.jsx`` and ``/src/Header.jsx`` both become ``src/Header.jsx``."""
    normalized = path.strip().lstrip("/")
    file_name = normalized.rsplit("/", 1)[-1]
    if (
        not normalized.startswith(("src/", "public/"))
        and normalized != "index.html"
        and file_name not in ROOT_CONFIG_FILES
    ):
        normalized = "src/" + normalized
    return normalized


def is_excluded(path: str, excluded: Iterable[str]) -> bool:
    excluded = set(excluded)
    return any(part in excluded for part in path.split("/"))


class SandboxProvider(ABC):
    """One remote execution environment plus the dev server running inside it.

    Backends implement the ``_*_raw`` primitives against their SDK; the public
    methods add path normalization, the single alternate-path retry, listing
    filters, readiness polling and teardown semantics.
    """

    name = "sandbox"
    api_key_env = ""

    def __init__(
        self,
        working_dir: str,
        dev_port: int,
        startup_delay_ms: int,
        restart_delay_ms: int,
    ):
        self.working_dir = working_dir.rstrip("/")
        self.dev_port = dev_port
        self.startup_delay_ms = startup_delay_ms
        self.restart_delay_ms = restart_delay_ms
        self.handle: Optional[SandboxHandle] = None
        self._sandbox: Any = None

    # -------------------------------------------------------------------
    # Backend primitives
    # -------------------------------------------------------------------
    @abstractmethod
    async def _create_remote(self) -> SandboxHandle: ...

    @abstractmethod
    async def _connect_remote(self, sandbox_id: str) -> SandboxHandle: ...

    @abstractmethod
    async def _read_raw(self, path: str) -> str: ...

    @abstractmethod
    async def _write_raw(self, path: str, content: str) -> None: ...

    @abstractmethod
    async def _exec_raw(self, command: str, cwd: Optional[str] = None, timeout: Optional[float] = None) -> CommandResult: ...

    @abstractmethod
    async def _install_raw(self, packages: List[str]) -> CommandResult: ...

    @abstractmethod
    async def _start_dev_server(self) -> None: ...

    @abstractmethod
    async def _stop_dev_server(self) -> None: ...

    @abstractmethod
    async def _destroy_remote(self) -> None: ...

    def starter_files(self) -> Dict[str, str]:
        return {}

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    @property
    def sandbox_id(self) -> Optional[str]:
        return self.handle.sandbox_id if self.handle else None

    def is_alive(self) -> bool:
        return self.handle is not None and self._sandbox is not None

    def _require_sandbox(self) -> Any:
        if self._sandbox is None:
            raise NoActiveSandboxError()
        return self._sandbox

    async def create(self) -> SandboxHandle:
        if self.handle:
            await self.destroy()

        print(f"[{self.name}] Creating sandbox...")
        self.handle = await self._create_remote()
        print(f"[{self.name}] Sandbox {self.handle.sandbox_id} created, scaffolding starter project")

        await self.scaffold()
        await self._start_dev_server()
        await self.wait_until_ready(self.startup_delay_ms)
        print(f"[{self.name}] Sandbox ready at {self.handle.preview_url}")
        return self.handle

    async def reconnect(self, sandbox_id: str) -> bool:
        try:
            self.handle = await self._connect_remote(sandbox_id)
        except Exception as e:
            print(f"[{self.name}] Could not reconnect to {sandbox_id}: {e}")
            self.handle = None
            self._sandbox = None
            return False
        print(f"[{self.name}] Reconnected to sandbox {sandbox_id}")
        return True

    async def scaffold(self) -> None:
        for path, content in self.starter_files().items():
            await self.write(path, content)

    async def destroy(self) -> None:
        if self.handle is None and self._sandbox is None:
            return
        sandbox_id = self.sandbox_id
        try:
            await self._destroy_remote()
            print(f"[{self.name}] Sandbox {sandbox_id} destroyed")
        except Exception as e:
            print(f"[{self.name}] Failed to destroy sandbox {sandbox_id}: {e}")
        finally:
            self.handle = None
            self._sandbox = None

    # -------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------
    def path_forms(self, path: str) -> Tuple[str, str]:
        normalized = normalize_project_path(path)
        return normalized, f"{self.working_dir}/{normalized}"

    async def read(self, path: str) -> str:
        self._require_sandbox()
        normalized, full_path = self.path_forms(path)
        try:
            return await self._read_raw(full_path)
        except Exception as first:
            print(f"[{self.name}] Read of {full_path} failed ({first}), retrying as {normalized}")
            try:
                return await self._read_raw(normalized)
            except Exception as e:
                raise SandboxIOError(f"Unable to read file: {normalized}") from e

    async def read_listed(self, relative_path: str) -> str:
        """Read a path exactly as returned by ``files()``, without normalization."""
        self._require_sandbox()
        return await self._read_raw(f"{self.working_dir}/{relative_path.lstrip('/')}")

    async def write(self, path: str, content: str) -> str:
        """Write ``content`` and return the normalized path that was written."""
        self._require_sandbox()
        normalized, full_path = self.path_forms(path)
        try:
            await self._write_raw(full_path, content)
        except Exception as first:
            print(f"[{self.name}] Write of {full_path} failed ({first}), retrying as {normalized}")
            try:
                await self._write_raw(normalized, content)
            except Exception as e:
                raise SandboxIOError(f"Unable to write file: {normalized}") from e
        return normalized

    async def files(self, directory: Optional[str] = None) -> List[str]:
        self._require_sandbox()
        excluded = appConfig.files.excludedDirs
        prune = " -o ".join(f"-name '{d}'" for d in excluded)
        result = await self._exec_raw(
            f"find . \\( {prune} \\) -prune -o -type f -print",
            cwd=directory or self.working_dir,
        )
        paths = []
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            if line.startswith("./"):
                line = line[2:]
            if not is_excluded(line, excluded):
                paths.append(line)
        return sorted(paths)

    # -------------------------------------------------------------------
    # Commands and dev server
    # -------------------------------------------------------------------
    async def exec(self, command: str, timeout: Optional[float] = None) -> CommandResult:
        self._require_sandbox()
        return await self._exec_raw(command, cwd=self.working_dir, timeout=timeout)

    async def install(self, packages: List[str]) -> CommandResult:
        self._require_sandbox()
        if not packages:
            return CommandResult()
        print(f"[{self.name}] Installing packages: {', '.join(packages)}")
        result = await self._install_raw(list(packages))
        if result.success and appConfig.packages.autoRestartVite:
            try:
                await self.restart_dev_server()
            except Exception as e:
                print(f"[{self.name}] Dev server restart after install failed: {e}")
        elif not result.success:
            print(f"[{self.name}] Package install exited with {result.exit_code}")
        return result

    async def restart_dev_server(self) -> bool:
        self._require_sandbox()
        try:
            await self._stop_dev_server()
        except Exception as e:
            print(f"[{self.name}] Dev server was not running ({e})")
        await self._start_dev_server()
        return await self.wait_until_ready(self.restart_delay_ms)

    async def _probe_ready(self) -> bool:
        result = await self._exec_raw(
            f"curl -s -o /dev/null -w '%{{http_code}}' http://localhost:{self.dev_port}",
            timeout=5,
        )
        code = result.stdout.strip()
        return code[:1] in ("2", "3")

    async def check_health(self) -> bool:
        self._require_sandbox()
        try:
            return await self._probe_ready()
        except Exception as e:
            print(f"[{self.name}] Health probe failed for {self.sandbox_id}: {e}")
            return False

    async def wait_until_ready(self, budget_ms: int) -> bool:
        """Poll the dev port until it answers or ``budget_ms`` runs out. Never raises."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget_ms / 1000
        interval = appConfig.readiness.pollIntervalMs / 1000
        while True:
            try:
                ready = await self._probe_ready()
            except Exception:
                # probe errors mean the server is not up yet
                ready = False
            if ready:
                return True
            remaining = deadline - loop.time()
            if remaining <= 0:
                print(f"[{self.name}] Dev server not ready after {budget_ms}ms, continuing")
                return False
            await asyncio.sleep(min(interval, remaining))
