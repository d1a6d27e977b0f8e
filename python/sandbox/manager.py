# sandbox/manager.py - live sandbox registry with one active handle per session
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from sandbox.base import NoActiveSandboxError, SandboxProvider

ProviderFactory = Callable[[Optional[str]], SandboxProvider]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ManagedSandbox:
    sandbox_id: str
    provider: SandboxProvider
    session_id: str
    created_at: int = field(default_factory=_now_ms)
    last_accessed: int = field(default_factory=_now_ms)

    def touch(self) -> SandboxProvider:
        self.last_accessed = _now_ms()
        return self.provider


class SandboxManager:
    """Owns every live sandbox by id plus the active pointer of each session.

    Lookups are plain dict reads; register/unregister take the lock.
    Concurrent applies against one sandbox are not coordinated here.
    """

    def __init__(self, provider_factory: Optional[ProviderFactory] = None):
        if provider_factory is None:
            from sandbox.factory import create_sandbox_provider
            provider_factory = create_sandbox_provider
        self._factory = provider_factory
        self._sandboxes: Dict[str, ManagedSandbox] = {}
        self._active: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------
    async def register(self, session_id: str, provider: SandboxProvider) -> None:
        sandbox_id = provider.sandbox_id
        if not sandbox_id:
            raise ValueError("Cannot register a sandbox without a handle")
        async with self._lock:
            self._sandboxes[sandbox_id] = ManagedSandbox(sandbox_id, provider, session_id)
            self._active[session_id] = sandbox_id
        print(f"[sandbox-manager] Registered {sandbox_id} as active for session {session_id}")

    def get(self, sandbox_id: str) -> Optional[SandboxProvider]:
        managed = self._sandboxes.get(sandbox_id)
        return managed.touch() if managed else None

    def active_id(self, session_id: str) -> Optional[str]:
        return self._active.get(session_id)

    def get_active(self, session_id: str) -> Optional[SandboxProvider]:
        sandbox_id = self._active.get(session_id)
        return self.get(sandbox_id) if sandbox_id else None

    def require_active(self, session_id: str) -> SandboxProvider:
        provider = self.get_active(session_id)
        if provider is None or not provider.is_alive():
            raise NoActiveSandboxError()
        return provider

    def set_active(self, session_id: str, sandbox_id: str) -> bool:
        if sandbox_id not in self._sandboxes:
            return False
        self._active[session_id] = sandbox_id
        return True

    def count(self) -> int:
        return len(self._sandboxes)

    # -------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------
    async def terminate(self, sandbox_id: str) -> bool:
        async with self._lock:
            managed = self._sandboxes.pop(sandbox_id, None)
            for session_id in [s for s, sid in self._active.items() if sid == sandbox_id]:
                del self._active[session_id]
        if managed is None:
            return False
        await managed.provider.destroy()
        return True

    async def terminate_session(self, session_id: str) -> bool:
        sandbox_id = self._active.get(session_id)
        return await self.terminate(sandbox_id) if sandbox_id else False

    async def terminate_all(self) -> None:
        async with self._lock:
            managed = list(self._sandboxes.values())
            self._sandboxes.clear()
            self._active.clear()
        await asyncio.gather(*(m.provider.destroy() for m in managed))
        if managed:
            print(f"[sandbox-manager] Terminated {len(managed)} sandbox(es)")

    async def cleanup(self, max_age_ms: int) -> List[str]:
        cutoff = _now_ms() - max_age_ms
        stale = [sid for sid, m in self._sandboxes.items() if m.last_accessed < cutoff]
        for sandbox_id in stale:
            print(f"[sandbox-manager] Cleaning up idle sandbox {sandbox_id}")
            await self.terminate(sandbox_id)
        return stale

    # -------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------
    async def create_for_session(self, session_id: str, provider_name: Optional[str] = None) -> SandboxProvider:
        await self.terminate_session(session_id)
        provider = self._factory(provider_name)
        try:
            await provider.create()
        except Exception:
            await provider.destroy()
            raise
        await self.register(session_id, provider)
        return provider

    async def reconnect_for_session(
        self,
        session_id: str,
        sandbox_id: str,
        provider_name: Optional[str] = None,
    ) -> Optional[SandboxProvider]:
        if sandbox_id in self._sandboxes:
            self.set_active(session_id, sandbox_id)
            return self.get(sandbox_id)

        provider = self._factory(provider_name)
        if not await provider.reconnect(sandbox_id):
            return None

        prior = self._active.get(session_id)
        if prior and prior != sandbox_id:
            await self.terminate(prior)
        await self.register(session_id, provider)
        return provider
