# tests/test_broadcast.py

from __future__ import annotations

import pytest

from focus_companion.connectors.broadcast import BroadcastMessenger

from .fakes import FakeMessenger


@pytest.mark.asyncio
async def test_one_failing_target_does_not_block_others() -> None:
    hub = BroadcastMessenger()
    broken = FakeMessenger(fail=True)
    healthy = FakeMessenger()
    hub.attach("matrix", broken)
    hub.attach("console", healthy)

    await hub.send_text(text="hello")

    assert healthy.texts == ["hello"]
    assert hub.targets == ["matrix", "console"]


@pytest.mark.asyncio
async def test_all_targets_failing_raises() -> None:
    hub = BroadcastMessenger()
    hub.attach("matrix", FakeMessenger(fail=True))

    with pytest.raises(RuntimeError):
        await hub.send_text(text="hello")

    hub.detach("matrix")
    assert hub.targets == []
    # Nothing attached: the message is dropped without an error.
    await hub.send_text(text="hello")
