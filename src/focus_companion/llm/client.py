# src/focus_companion/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set FOCUS_LLM_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set FOCUS_LLM_MODELS in .env."
    return msg


class OpenAICompatibleLLMClient:
    """
    Chat completions over any OpenAI-compatible endpoint (xAI, OpenRouter, ...).

    Behavior:
    - Tries models in the configured order.
    - If a model doesn't produce a first content token within first_token_timeout,
      we abort and try the next model.
    - 404 (model not available) -> try next, and skip that model for an hour.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    """

    def __init__(
        self,
        settings: Any,
        *,
        connect_timeout_s: float = 5.0,
        read_timeout_s: float = 25.0,
        first_token_timeout_s: float = 20.0,
    ) -> None:
        api_key = getattr(settings, "llm_api_key", None)
        base_url = (getattr(settings, "llm_base_url", "") or "").strip()
        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set FOCUS_LLM_API_KEY in your .env.")

        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set FOCUS_LLM_MODELS in your .env.")

        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._max_tokens = int(getattr(settings, "llm_max_tokens", 300))
        self._temperature = float(getattr(settings, "llm_temperature", 0.8))
        self._first_token_timeout_s = first_token_timeout_s
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

        # No automatic retries: quick fallback across models is preferable.
        self._client = OpenAI(
            base_url=base_url or None,
            api_key=str(api_key),
            timeout=httpx.Timeout(
                connect=connect_timeout_s,
                read=max(read_timeout_s, first_token_timeout_s),
                write=10.0,
                pool=connect_timeout_s,
            ),
            max_retries=0,
        )

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            deadline = t0 + self._first_token_timeout_s
            stream = None
            used_any = False

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    extra_headers=self._headers or None,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                )

                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break

                    content = None
                    if chunk.choices:
                        delta = chunk.choices[0].delta
                        content = delta.content if delta is not None else None

                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s", model)
                    return

                if last_error is None:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except openai.OpenAIError as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError("LLM authentication failed. Check FOCUS_LLM_API_KEY.") from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + 3600.0
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            finally:
                if stream is not None:
                    stream.close()

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
