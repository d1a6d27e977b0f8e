# config/app_config.py - Backend Configuration

import os
from types import SimpleNamespace

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[config] Ignoring non-integer {name}={raw!r}, using {default}")
        return default


_E2B_TIMEOUT_MINUTES = _env_int("E2B_TIMEOUT_MINUTES", 15)

appConfig = SimpleNamespace(
    sandbox=SimpleNamespace(
        provider=os.getenv("SANDBOX_PROVIDER", "e2b").lower(),
        maxAgeMs=_env_int("SANDBOX_MAX_AGE_MS", 60 * 60 * 1000),  # 1 hour idle
        cleanupIntervalMs=_env_int("SANDBOX_CLEANUP_INTERVAL_MS", 60000),  # 1 minute
    ),

    e2b=SimpleNamespace(
        timeoutMinutes=_E2B_TIMEOUT_MINUTES,
        vitePort=5173,
        viteStartupDelay=_env_int("VITE_STARTUP_DELAY_MS", 15000),  # upper bound for readiness poll
        workingDirectory="/home/user/app",
    ),

    daytona=SimpleNamespace(
        snapshotName=os.getenv("DAYTONA_SNAPSHOT", "viber-workspace-template"),
        workingDirectory="/home/daytona/app",
        devPort=3000,
        devSessionId="bun-dev-server",
        devStartupDelay=_env_int("DAYTONA_STARTUP_DELAY_MS", 2000),
        devRestartDelay=_env_int("DAYTONA_RESTART_DELAY_MS", 1500),
    ),

    readiness=SimpleNamespace(
        pollIntervalMs=_env_int("READINESS_POLL_INTERVAL_MS", 500),
    ),

    ai=SimpleNamespace(
        defaultModel=os.getenv("DEFAULT_MODEL", "google/gemini-2.5-pro"),
        defaultTemperature=0.7,
        maxTokens=16000,
        intentModel=os.getenv("INTENT_MODEL", "google/gemini-2.5-flash"),
        intentTimeoutSeconds=_env_int("INTENT_TIMEOUT_SECONDS", 10),
        useModelIntent=_env_bool("USE_LLM_INTENT", False),
    ),

    merge=SimpleNamespace(
        provider=os.getenv("MERGE_PROVIDER", "llm").lower(),
        model=os.getenv("MERGE_MODEL", "google/gemini-2.5-flash-lite"),
        minLength=10,
        refusalPrefixes=("I cannot", "Sorry"),
        morphUrl="https://api.morphllm.com/v1/chat/completions",
        morphModel="morph-v3-large",
        timeoutSeconds=60,
    ),

    packages=SimpleNamespace(
        useLegacyPeerDeps=True,
        installTimeout=60000,  # 60 seconds
        autoRestartVite=True,
    ),

    ui=SimpleNamespace(
        maxRecentMessagesContext=20,
    ),

    files=SimpleNamespace(
        excludedDirs=("node_modules", ".git", ".next", "dist", "build"),
        maxContextFileChars=2000,
        maxPromptFileChars=5000,
    ),
)
