# helpers/llm_providers.py - chat model construction shared by generation, intent and merge

import os
from typing import Any, Dict, Optional

from langchain_anthropic import ChatAnthropic
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq
from langchain_openai import ChatOpenAI

# Env-driven defaults
ANTHROPIC_MODEL_DEFAULT = os.environ.get("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
OPENAI_MODEL_DEFAULT = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
GROQ_MODEL_DEFAULT = os.environ.get("GROQ_MODEL", "moonshotai/kimi-k2-instruct")
GOOGLE_MODEL_DEFAULT = os.environ.get("GOOGLE_MODEL", "gemini-2.5-pro")

# Pseudo/alias models -> real provider models
OSS_ALIASES = {
    "openai/gpt-oss-20b": ("groq", GROQ_MODEL_DEFAULT),
    "gpt-oss-20b": ("groq", GROQ_MODEL_DEFAULT),
}


def _clean_base_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return url[:-3] if url.endswith("/v1") else url


def _sampling_kwargs(temperature: Optional[float], max_tokens: Optional[int]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    return kwargs


def _build_anthropic(model_name: Optional[str] = None, **sampling) -> ChatAnthropic:
    kwargs = dict(sampling)
    base_url = _clean_base_url(os.environ.get("ANTHROPIC_BASE_URL"))
    if base_url:
        kwargs["base_url"] = base_url
    return ChatAnthropic(
        api_key=os.environ.get("ANTHROPIC_API_KEY"),
        model=model_name or ANTHROPIC_MODEL_DEFAULT,
        **kwargs,
    )


def _build_openai(model_name: Optional[str] = None, **sampling) -> ChatOpenAI:
    kwargs = dict(sampling)
    base_url = os.environ.get("OPENAI_BASE_URL")
    if base_url:
        kwargs["base_url"] = base_url
    return ChatOpenAI(
        api_key=os.environ.get("OPENAI_API_KEY"),
        model=model_name or OPENAI_MODEL_DEFAULT,
        **kwargs,
    )


def _build_groq(model_name: Optional[str] = None, **sampling) -> ChatGroq:
    return ChatGroq(
        api_key=os.environ.get("GROQ_API_KEY"),
        model=model_name or GROQ_MODEL_DEFAULT,
        **sampling,
    )


def _build_google(model_name: Optional[str] = None, **sampling) -> ChatGoogleGenerativeAI:
    if "max_tokens" in sampling:
        sampling["max_output_tokens"] = sampling.pop("max_tokens")
    return ChatGoogleGenerativeAI(
        api_key=os.environ.get("GOOGLE_API_KEY"),
        model=model_name or GOOGLE_MODEL_DEFAULT,
        **sampling,
    )


_BUILDERS = {
    "anthropic": _build_anthropic,
    "openai": _build_openai,
    "google": _build_google,
    "groq": _build_groq,
}


def select_model(model_str: str, temperature: Optional[float] = None, max_tokens: Optional[int] = None):
    """Resolve a user-supplied model string like ``openai/gpt-4o`` or ``claude-...``."""
    sampling = _sampling_kwargs(temperature, max_tokens)
    model_str = (model_str or "").strip()

    # Handle aliases first
    if model_str in OSS_ALIASES:
        provider, real_model = OSS_ALIASES[model_str]
        return _BUILDERS[provider](real_model, **sampling)

    # Provider-prefixed
    if "/" in model_str:
        provider, name = model_str.split("/", 1)
        builder = _BUILDERS.get(provider.lower())
        if builder:
            return builder(name, **sampling)

    # Fallback heuristics
    ms = model_str.lower()
    if ms.startswith("claude"):
        return _build_anthropic(model_str, **sampling)
    if ms.startswith("gpt"):
        return _build_openai(model_str, **sampling)
    if "gemini" in ms:
        return _build_google(model_str, **sampling)
    if "kimi-k2-instruct" in ms:
        return _build_groq(model_str, **sampling)

    # Final fallback -> Groq
    print(f"[model_select] Unknown model '{model_str}', falling back to Groq default")
    return _build_groq(None, **sampling)
