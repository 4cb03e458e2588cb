# tests/test_generator.py

from __future__ import annotations

import pytest

from focus_companion.llm.generator import LLMContentGenerator
from focus_companion.llm.offline import OfflineLLMClient

from .fakes import FakeClock, FakeLLMClient


@pytest.mark.asyncio
async def test_message_layout(clock: FakeClock) -> None:
    llm = FakeLLMClient("Sure!")
    gen = LLMContentGenerator(llm, clock=clock, persona_name="Miu")

    text = await gen.generate(
        "Situation: test",
        [{"role": "user", "content": "earlier"}],
        memory="likes tea",
    )

    assert text == "Sure!"
    messages, system_prompt = llm.calls[0]
    assert messages[0] == {"role": "system", "content": "What you remember about the user:\nlikes tea"}
    assert messages[1] == {"role": "user", "content": "earlier"}
    assert messages[-1] == {"role": "user", "content": "Situation: test"}
    assert "Miu" in system_prompt
    assert "Asia/Tokyo" in system_prompt


@pytest.mark.asyncio
async def test_empty_reply_raises(clock: FakeClock) -> None:
    gen = LLMContentGenerator(FakeLLMClient("   "), clock=clock)
    with pytest.raises(RuntimeError):
        await gen.generate("Situation: test")


@pytest.mark.asyncio
async def test_parse_remind_extracts_json(clock: FakeClock) -> None:
    llm = FakeLLMClient('Here you go: {"time": "21:30", "days": ["mon"], "message": "Stretch"} done')
    gen = LLMContentGenerator(llm, clock=clock)

    data = await gen.parse_remind("remind me to stretch on mondays at 21:30")
    assert data == {"time": "21:30", "days": ["mon"], "message": "Stretch"}


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["{}", "no json here", '{"time": "09:00"}', "{not json}"])
async def test_parse_remind_rejects_incomplete(clock: FakeClock, raw: str) -> None:
    gen = LLMContentGenerator(FakeLLMClient(raw), clock=clock)
    assert await gen.parse_remind("whatever") is None


@pytest.mark.asyncio
async def test_offline_client_echoes_situation(clock: FakeClock) -> None:
    gen = LLMContentGenerator(OfflineLLMClient(), clock=clock)

    text = await gen.generate("Situation: The user declared a new task.\n- Task: Write\n\nCheer them on.")

    assert text.startswith("(offline)")
    assert "The user declared a new task." in text
    assert "Task: Write" in text
    assert await gen.parse_remind("anything") is None


@pytest.mark.asyncio
async def test_parse_intents_keeps_order_and_drops_noise(clock: FakeClock) -> None:
    raw = (
        '{"intents": ['
        '{"intent": "done", "params": {"comment": "easy"}, "confidence": 0.9}, '
        '{"intent": "next", "params": {"task_name": "Shopping", "minutes": 30}, "confidence": 0.8}, '
        '{"intent": "break", "params": {}, "confidence": 0.3}, '
        '{"intent": "dance", "params": {}, "confidence": 1.0}, '
        '{"intent": "chat", "params": {}, "confidence": 1.0}'
        "]}"
    )
    llm = FakeLLMClient(raw)
    gen = LLMContentGenerator(llm, clock=clock)

    intents = await gen.parse_intents("done, shopping next")

    assert intents == [
        {"intent": "done", "params": {"comment": "easy"}},
        {"intent": "next", "params": {"task_name": "Shopping", "minutes": 30}},
    ]
    messages, system_prompt = llm.calls[0]
    assert messages == [{"role": "user", "content": "done, shopping next"}]
    assert "intent parser" in system_prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["no json", "{broken}", '{"intents": "next"}', '{"intents": []}'])
async def test_parse_intents_garbage_means_chat(clock: FakeClock, raw: str) -> None:
    gen = LLMContentGenerator(FakeLLMClient(raw), clock=clock)
    assert await gen.parse_intents("hello") == []


@pytest.mark.asyncio
async def test_offline_client_finds_no_intents(clock: FakeClock) -> None:
    gen = LLMContentGenerator(OfflineLLMClient(), clock=clock)
    assert await gen.parse_intents("finished, next is shopping") == []
