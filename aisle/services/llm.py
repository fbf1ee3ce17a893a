"""
LLM client for the onboarding conversation.

  - Reusable httpx client (connection pooling)
  - Provider chosen by FF_LLM_PROVIDER, all via OpenAI-compatible /chat/completions
  - Single attempt per call. A turn that fails is reported, never replayed,
    because a replayed turn could apply its mutations twice.
"""

import logging
import time
from typing import Any, Optional

import httpx

from ..core.config import get_settings
from ..core.errors import UpstreamModelFailure
from ..core.flags import get_flags

logger = logging.getLogger(__name__)

# ── Reusable client (connection pool) ────────────────────────────────

_client: Optional[httpx.AsyncClient] = None


def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        settings = get_settings()
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=10),
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
        )
    return _client


async def close_client():
    """Close the shared HTTP client. Call on app shutdown."""
    global _client
    if _client and not _client.is_closed:
        await _client.aclose()
        _client = None


# ── Provider config ──────────────────────────────────────────────────

def _get_provider_config(provider: Optional[str] = None) -> tuple[str, str, str]:
    """Returns (base_url, api_key, default_model) for a provider."""
    settings = get_settings()
    p = (provider or get_flags().llm_provider).lower()

    if p == "gemini":
        return (
            "https://generativelanguage.googleapis.com/v1beta/openai",
            settings.gemini_api_key,
            settings.default_llm_model,
        )
    elif p == "anthropic":
        return settings.anthropic_base_url, settings.anthropic_api_key, settings.default_llm_model
    elif p == "aiml":
        return settings.aiml_base_url, settings.aiml_api_key, settings.default_llm_model
    else:  # openai
        return settings.openai_base_url, settings.openai_api_key, settings.default_llm_model


# ── Main chat function ───────────────────────────────────────────────

async def chat(
    messages: list[dict],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[list[dict]] = None,
) -> dict:
    """
    One chat completion. Returns the full API response as dict.

    Raises UpstreamModelFailure on missing credentials, transport errors,
    timeouts, non-2xx responses and unreadable bodies.
    """
    settings = get_settings()
    provider = get_flags().llm_provider.lower()
    base_url, api_key, default_model = _get_provider_config(provider)

    if not api_key:
        raise UpstreamModelFailure(
            f"No API key for LLM provider '{provider}'. "
            "Set GEMINI_API_KEY, ANTHROPIC_API_KEY, AIML_API_KEY, or OPENAI_API_KEY."
        )

    payload: dict[str, Any] = {
        "model": model or default_model,
        "messages": messages,
        "temperature": temperature if temperature is not None else settings.default_llm_temperature,
        "max_tokens": max_tokens or settings.onboarding_max_tokens,
    }
    if tools:
        payload["tools"] = tools

    url = f"{base_url.rstrip('/')}/chat/completions"
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    start = time.monotonic()
    client = _get_client()

    try:
        resp = await client.post(url, json=payload, headers=headers)
        if resp.status_code >= 400:
            logger.error("LLM API error %d: %s", resp.status_code, resp.text[:500])
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("response body is not a JSON object")
    except httpx.TimeoutException as e:
        logger.error("LLM timed out after %.1fs (model=%s)", time.monotonic() - start, payload["model"])
        raise UpstreamModelFailure("The model call timed out.") from e
    except httpx.HTTPStatusError as e:
        raise UpstreamModelFailure(f"The model call failed with status {e.response.status_code}.") from e
    except (httpx.HTTPError, ValueError) as e:
        logger.error("LLM failed after %.1fs: %s", time.monotonic() - start, e)
        raise UpstreamModelFailure(f"The model call failed: {e}") from e

    usage = data.get("usage") or {}
    logger.info(
        "LLM chat: %dms | in=%d out=%d tokens | model=%s",
        int((time.monotonic() - start) * 1000),
        usage.get("prompt_tokens", 0),
        usage.get("completion_tokens", 0),
        payload["model"],
    )
    return data


async def chat_text(
    messages: list[dict],
    system: str = "",
    max_tokens: Optional[int] = None,
) -> str:
    """Send a conversation, get the assistant text back. No tools."""
    full = [{"role": "system", "content": system}] if system else []
    full.extend(messages)

    response = await chat(messages=full, max_tokens=max_tokens)
    try:
        return response["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise UpstreamModelFailure("The model returned no message.") from e
