# src/focus_companion/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    Behavior:
    - Remind parser prompts -> returns {} (nothing extracted, structured form required)
    - Intent parser prompts -> no intents, so free text stays conversation
    - Everything else -> echoes the first line of the situation, so nudges still
      carry the relevant facts
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        sp = (system_prompt or "").lower()

        if "reminder parser" in sp:
            yield "{}"
            return
        if "intent parser" in sp:
            yield '{"intents": []}'
            return

        situation = ""
        for m in reversed(messages):
            if m["role"] == "user":
                situation = m["content"]
                break

        lines = [ln.strip() for ln in situation.splitlines() if ln.strip()]
        headline = lines[0].removeprefix("Situation:").strip() if lines else "Hello!"
        details = [ln for ln in lines[1:] if ln.startswith("- ")]

        yield "(offline) " + headline
        if details:
            yield "\n" + "\n".join(details)
