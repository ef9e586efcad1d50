"""Multi-provider chat completion (Groq, OpenAI, Anthropic) for answering quiz questions."""
import logging
import os
from typing import Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from .errors import ReasoningError

logger = logging.getLogger("quizbot")

# Supported providers and their default model
LLM_PROVIDERS = {
    "groq": "llama-3.3-70b-versatile",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-20241022",
}
DEFAULT_PROVIDER = "groq"

# Groq serves an OpenAI-compatible API
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


def get_api_key_for_provider(provider: str) -> str:
    """Return API key for provider from environment. Empty string if not set."""
    key_env = {
        "groq": "GROQ_API_KEY",
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
    }
    env_var = key_env.get((provider or "").lower(), "")
    if not env_var:
        return ""
    return (os.environ.get(env_var) or "").strip()


def default_model(provider: str) -> str:
    return LLM_PROVIDERS.get((provider or DEFAULT_PROVIDER).lower(), LLM_PROVIDERS[DEFAULT_PROVIDER])


async def call_llm(
    provider: str,
    model: str,
    api_key: str,
    prompt: str,
    system: Optional[str] = None,
    max_tokens: int = 500,
    temperature: float = 0.3,
) -> tuple[str, Optional[dict]]:
    """
    Call the configured LLM provider. Returns (response_text, usage_dict).
    usage_dict has prompt_tokens, completion_tokens, total_tokens when available.
    Raises ReasoningError if the provider is unknown or the request fails.
    """
    provider = (provider or DEFAULT_PROVIDER).lower()
    if provider not in LLM_PROVIDERS:
        raise ReasoningError(f"Unknown LLM provider: {provider}")
    if not api_key:
        raise ReasoningError(f"No API key for provider {provider}")
    model = model or default_model(provider)
    try:
        if provider == "anthropic":
            return await _call_anthropic(model, api_key, prompt, system, max_tokens, temperature)
        base_url = GROQ_BASE_URL if provider == "groq" else None
        return await _call_openai(model, api_key, prompt, system, max_tokens, temperature, base_url)
    except ReasoningError:
        raise
    except Exception as e:
        raise ReasoningError(f"{provider} request failed: {e}") from e


async def _call_openai(
    model: str,
    api_key: str,
    prompt: str,
    system: Optional[str],
    max_tokens: int,
    temperature: float,
    base_url: Optional[str] = None,
) -> tuple[str, Optional[dict]]:
    client = AsyncOpenAI(api_key=api_key, base_url=base_url)
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    resp = await client.chat.completions.create(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    raw = (resp.choices[0].message.content or "").strip() if resp.choices else ""
    usage = None
    if getattr(resp, "usage", None):
        u = resp.usage
        usage = {
            "prompt_tokens": getattr(u, "prompt_tokens", 0) or 0,
            "completion_tokens": getattr(u, "completion_tokens", 0) or 0,
            "total_tokens": getattr(u, "total_tokens", 0) or 0,
        }
    return raw, usage


async def _call_anthropic(
    model: str,
    api_key: str,
    prompt: str,
    system: Optional[str],
    max_tokens: int,
    temperature: float,
) -> tuple[str, Optional[dict]]:
    client = AsyncAnthropic(api_key=api_key)
    kwargs = {}
    if system:
        kwargs["system"] = system
    resp = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[{"role": "user", "content": prompt}],
        **kwargs,
    )
    raw = ""
    for block in getattr(resp, "content", []):
        if getattr(block, "type", None) == "text":
            raw = (getattr(block, "text", None) or "").strip()
            break
    usage = None
    if getattr(resp, "usage", None):
        u = resp.usage
        usage = {
            "prompt_tokens": getattr(u, "input_tokens", 0) or 0,
            "completion_tokens": getattr(u, "output_tokens", 0) or 0,
            "total_tokens": (getattr(u, "input_tokens", 0) or 0) + (getattr(u, "output_tokens", 0) or 0),
        }
    return raw, usage
