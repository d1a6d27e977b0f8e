# sandbox/daytona_provider.py - Daytona backend (bun dev server in a named process session)
import asyncio
import os
import shlex
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from daytona import (
    CreateSandboxFromSnapshotParams,
    Daytona,
    DaytonaConfig,
    SessionExecuteRequest,
)

from config.app_config import appConfig
from sandbox.base import CommandResult, SandboxHandle, SandboxProvider
from sandbox.scaffold import bun_starter_files


def build_preview_url(base_url: str, token: Optional[str]) -> str:
    if not token:
        return base_url
    parts = urlparse(base_url)
    query = dict(parse_qsl(parts.query))
    query["tkn"] = token
    return urlunparse(parts._replace(query=urlencode(query)))


class DaytonaProvider(SandboxProvider):
    """The Daytona SDK is synchronous; every call runs in a worker thread."""

    name = "daytona"
    api_key_env = "DAYTONA_API_KEY"

    def __init__(self, api_key: Optional[str] = None):
        cfg = appConfig.daytona
        super().__init__(
            working_dir=cfg.workingDirectory,
            dev_port=cfg.devPort,
            startup_delay_ms=cfg.devStartupDelay,
            restart_delay_ms=cfg.devRestartDelay,
        )
        self.session_id = cfg.devSessionId
        self.client = Daytona(DaytonaConfig(api_key=api_key or os.getenv(self.api_key_env)))

    def _handle_for(self, sandbox) -> SandboxHandle:
        preview = sandbox.get_preview_link(self.dev_port)
        return SandboxHandle(
            sandbox_id=sandbox.id,
            preview_url=build_preview_url(preview.url, getattr(preview, "token", None)),
            provider=self.name,
        )

    async def _create_remote(self) -> SandboxHandle:
        def _create():
            sandbox = self.client.create(CreateSandboxFromSnapshotParams(
                snapshot=appConfig.daytona.snapshotName,
                public=True,
            ))
            return sandbox, self._handle_for(sandbox)

        self._sandbox, handle = await asyncio.to_thread(_create)
        return handle

    async def _connect_remote(self, sandbox_id: str) -> SandboxHandle:
        def _connect():
            sandbox = self.client.get(sandbox_id)
            return sandbox, self._handle_for(sandbox)

        self._sandbox, handle = await asyncio.to_thread(_connect)
        return handle

    async def _read_raw(self, path: str) -> str:
        data = await asyncio.to_thread(self._sandbox.fs.download_file, path)
        return data.decode("utf-8") if isinstance(data, bytes) else str(data)

    async def _write_raw(self, path: str, content: str) -> None:
        sandbox = self._sandbox

        def _upload():
            if "/" in path:
                sandbox.process.exec(f"mkdir -p {shlex.quote(path.rsplit('/', 1)[0])}", cwd=self.working_dir, timeout=5)
            sandbox.fs.upload_file(content.encode("utf-8"), path)

        await asyncio.to_thread(_upload)

    async def _exec_raw(self, command: str, cwd: Optional[str] = None, timeout: Optional[float] = None) -> CommandResult:
        response = await asyncio.to_thread(
            self._sandbox.process.exec,
            command,
            cwd=cwd or self.working_dir,
            timeout=int(timeout) if timeout else None,
        )
        return CommandResult(stdout=response.result or "", stderr="", exit_code=response.exit_code)

    async def _install_raw(self, packages: List[str]) -> CommandResult:
        names = " ".join(shlex.quote(p) for p in packages)
        return await self._exec_raw(f"bun add {names}", timeout=appConfig.packages.installTimeout / 1000)

    def starter_files(self):
        return bun_starter_files()

    async def _start_dev_server(self) -> None:
        sandbox = self._sandbox

        def _start():
            sandbox.process.create_session(self.session_id)
            sandbox.process.execute_session_command(
                self.session_id,
                SessionExecuteRequest(command=f"cd {self.working_dir} && bun run dev", run_async=True),
            )

        await asyncio.to_thread(_start)

    async def _stop_dev_server(self) -> None:
        await asyncio.to_thread(self._sandbox.process.delete_session, self.session_id)

    async def _destroy_remote(self) -> None:
        if self._sandbox is not None:
            await asyncio.to_thread(self._sandbox.delete)
