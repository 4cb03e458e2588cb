# src/focus_companion/llm/generator.py

"""
Content generation on top of a streaming LLMClient.

Message layout sent to the model:
1. persona system prompt (with current civil time),
2. optional memory context as a second system message,
3. recent conversation turns,
4. the situation text as the final user turn.

The client is blocking (openai SDK iterator), so streams are drained in a
worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

from ..core.clock import Clock
from ..core.persona import INTENT_PARSER_PROMPT, REMIND_PARSER_PROMPT, get_system_prompt
from ..core.ports import ChatMessage, LLMClient

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

INTENTS = frozenset(
    {
        "next", "done", "skip", "extend", "status", "break", "done_today",
        "history", "remind_add", "remind_list", "remind_delete", "reset", "chat",
    }
)
MIN_INTENT_CONFIDENCE = 0.5


def _sanitize_memory(text: str) -> str:
    return (text or "").replace("\x00", "").strip()


class LLMContentGenerator:
    def __init__(self, llm: LLMClient, *, clock: Clock, persona_name: str = "Miu") -> None:
        self._llm = llm
        self._clock = clock
        self._persona_name = persona_name

    def _collect(self, messages: list[ChatMessage], system_prompt: str) -> str:
        out = ""
        for piece in self._llm.stream_chat(messages, system_prompt):
            if piece:
                out += piece
        return out.strip()

    def system_prompt(self) -> str:
        return get_system_prompt(self._persona_name, self._clock.display(), str(self._clock.tz))

    async def generate(
        self,
        situation: str,
        recent: list[ChatMessage] | None = None,
        memory: str = "",
    ) -> str:
        """Return the full reply. Raises when the client fails or produces nothing."""
        messages: list[ChatMessage] = []
        mem = _sanitize_memory(memory)
        if mem:
            messages.append({"role": "system", "content": f"What you remember about the user:\n{mem}"})
        messages.extend(recent or [])
        messages.append({"role": "user", "content": situation})

        text = await asyncio.to_thread(self._collect, messages, self.system_prompt())
        if not text:
            raise RuntimeError("LLM returned an empty reply")
        return text

    async def parse_remind(self, user_text: str) -> dict[str, Any] | None:
        """
        Ask the model to turn free text into {time, days, include_holidays, message}.

        Returns None when nothing usable comes back; validation is left to the registry.
        """
        messages: list[ChatMessage] = [{"role": "user", "content": user_text}]
        raw = await asyncio.to_thread(self._collect, messages, REMIND_PARSER_PROMPT)

        m = _JSON_OBJECT_RE.search(raw or "")
        if not m:
            logger.info("Remind parser returned no JSON object: %r", (raw or "")[:120])
            return None
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            logger.info("Remind parser returned invalid JSON: %r", m.group(0)[:120])
            return None

        if not isinstance(data, dict) or not data.get("time") or not data.get("message"):
            return None
        return data

    async def parse_intents(self, user_text: str) -> list[dict[str, Any]]:
        """
        Ask the model which commands a free-text message asks for.

        Returns [{"intent": str, "params": dict}, ...] in execution order, keeping
        only known intents with confidence >= 0.5. An empty list means plain chat.
        """
        messages: list[ChatMessage] = [{"role": "user", "content": user_text}]
        raw = await asyncio.to_thread(self._collect, messages, INTENT_PARSER_PROMPT)

        m = _JSON_OBJECT_RE.search(raw or "")
        if not m:
            logger.info("Intent parser returned no JSON object: %r", (raw or "")[:120])
            return []
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            logger.info("Intent parser returned invalid JSON: %r", m.group(0)[:120])
            return []

        items = data.get("intents") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []

        out: list[dict[str, Any]] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            intent = str(item.get("intent") or "").strip().lower()
            if intent not in INTENTS or intent == "chat":
                continue
            try:
                confidence = float(item.get("confidence", 1.0))
            except (TypeError, ValueError):
                continue
            if confidence < MIN_INTENT_CONFIDENCE:
                continue
            params = item.get("params")
            out.append({"intent": intent, "params": params if isinstance(params, dict) else {}})
        return out
