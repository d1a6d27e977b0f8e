# sandbox/factory.py - backend selection by configuration
import os
from typing import Dict, List, Optional, Type

from config.app_config import appConfig
from sandbox.base import SandboxProvider
from sandbox.daytona_provider import DaytonaProvider
from sandbox.e2b_provider import E2BProvider

PROVIDERS: Dict[str, Type[SandboxProvider]] = {
    "e2b": E2BProvider,
    "daytona": DaytonaProvider,
}


def create_sandbox_provider(name: Optional[str] = None) -> SandboxProvider:
    name = (name or appConfig.sandbox.provider).lower()
    provider_cls = PROVIDERS.get(name)
    if provider_cls is None:
        raise ValueError(f"Unknown sandbox provider '{name}' (expected one of {', '.join(PROVIDERS)})")
    return provider_cls()


def available_providers() -> List[str]:
    return [name for name in PROVIDERS if is_provider_available(name)]


def is_provider_available(name: Optional[str] = None) -> bool:
    provider_cls = PROVIDERS.get((name or appConfig.sandbox.provider).lower())
    return bool(provider_cls and os.getenv(provider_cls.api_key_env))
