# sandbox/e2b_provider.py - E2B backend (npm + Vite)
import os
import shlex
from typing import List, Optional

from e2b_code_interpreter import AsyncSandbox, CommandExitException

from config.app_config import appConfig
from sandbox.base import CommandResult, SandboxHandle, SandboxProvider
from sandbox.scaffold import vite_starter_files


class E2BProvider(SandboxProvider):
    name = "e2b"
    api_key_env = "E2B_API_KEY"

    def __init__(self, api_key: Optional[str] = None):
        super().__init__(
            working_dir=appConfig.e2b.workingDirectory,
            dev_port=appConfig.e2b.vitePort,
            startup_delay_ms=appConfig.e2b.viteStartupDelay,
            restart_delay_ms=appConfig.e2b.viteStartupDelay,
        )
        self.api_key = api_key or os.getenv(self.api_key_env)

    def _handle_for(self, sandbox: AsyncSandbox) -> SandboxHandle:
        return SandboxHandle(
            sandbox_id=sandbox.sandbox_id,
            preview_url=f"https://{sandbox.get_host(self.dev_port)}",
            provider=self.name,
        )

    async def _create_remote(self) -> SandboxHandle:
        self._sandbox = await AsyncSandbox.create(
            api_key=self.api_key,
            timeout=appConfig.e2b.timeoutMinutes * 60,
        )
        return self._handle_for(self._sandbox)

    async def _connect_remote(self, sandbox_id: str) -> SandboxHandle:
        self._sandbox = await AsyncSandbox.connect(sandbox_id, api_key=self.api_key)
        return self._handle_for(self._sandbox)

    async def _read_raw(self, path: str) -> str:
        return await self._sandbox.files.read(path)

    async def _write_raw(self, path: str, content: str) -> None:
        await self._sandbox.files.write(path, content)

    async def _exec_raw(self, command: str, cwd: Optional[str] = None, timeout: Optional[float] = None) -> CommandResult:
        try:
            result = await self._sandbox.commands.run(
                command,
                cwd=cwd or self.working_dir,
                timeout=timeout or 60,
            )
        except CommandExitException as e:
            # non-zero exit is a result, not a transport failure
            return CommandResult(stdout=e.stdout, stderr=e.stderr, exit_code=e.exit_code)
        return CommandResult(stdout=result.stdout, stderr=result.stderr, exit_code=result.exit_code)

    async def _install_raw(self, packages: List[str]) -> CommandResult:
        flags = "--legacy-peer-deps " if appConfig.packages.useLegacyPeerDeps else ""
        names = " ".join(shlex.quote(p) for p in packages)
        return await self._exec_raw(
            f"npm install {flags}{names}",
            timeout=appConfig.packages.installTimeout / 1000,
        )

    def starter_files(self):
        return vite_starter_files()

    async def scaffold(self) -> None:
        await super().scaffold()
        print(f"[{self.name}] Installing npm packages...")
        flags = " --legacy-peer-deps" if appConfig.packages.useLegacyPeerDeps else ""
        result = await self._exec_raw(f"npm install{flags}", timeout=appConfig.packages.installTimeout / 1000)
        if not result.success:
            print(f"[{self.name}] npm install had issues: {result.stderr[:500]}")

    async def _start_dev_server(self) -> None:
        await self._sandbox.commands.run(
            "npm run dev",
            cwd=self.working_dir,
            envs={"FORCE_COLOR": "0"},
            background=True,
        )

    async def _stop_dev_server(self) -> None:
        await self._exec_raw("pkill -f vite || true", timeout=10)

    async def _destroy_remote(self) -> None:
        if self._sandbox is not None:
            await self._sandbox.kill()
