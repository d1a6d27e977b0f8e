# helpers/session.py - per-request session context and generation cancellation
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from sandbox.base import SandboxProvider
from sandbox.manager import SandboxManager

DEFAULT_SESSION_ID = "default"


class GenerationTracker:
    """One cancel event per session. Starting a generation cancels the previous one."""

    def __init__(self):
        self._events: Dict[str, asyncio.Event] = {}

    def begin(self, session_id: str) -> asyncio.Event:
        prior = self._events.get(session_id)
        if prior is not None and not prior.is_set():
            print(f"[generation] Cancelling in-flight generation for session {session_id}")
            prior.set()
        event = asyncio.Event()
        self._events[session_id] = event
        return event

    def cancel(self, session_id: str) -> bool:
        event = self._events.get(session_id)
        if event is None or event.is_set():
            return False
        event.set()
        return True

    def finish(self, session_id: str, event: asyncio.Event) -> None:
        if self._events.get(session_id) is event:
            del self._events[session_id]

    def is_running(self, session_id: str) -> bool:
        event = self._events.get(session_id)
        return event is not None and not event.is_set()


@dataclass
class SessionContext:
    session_id: str
    sandboxes: SandboxManager
    generations: GenerationTracker

    def active_provider(self) -> Optional[SandboxProvider]:
        return self.sandboxes.get_active(self.session_id)

    def require_provider(self, sandbox_id: Optional[str] = None) -> SandboxProvider:
        if sandbox_id:
            provider = self.sandboxes.get(sandbox_id)
            if provider is not None and provider.is_alive():
                return provider
        return self.sandboxes.require_active(self.session_id)
