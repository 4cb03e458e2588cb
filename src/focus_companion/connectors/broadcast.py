# src/focus_companion/connectors/broadcast.py

from __future__ import annotations

import logging

from ..core.ports import OutboundMessenger

logger = logging.getLogger(__name__)


class BroadcastMessenger:
    """
    OutboundMessenger that forwards every notification to all attached connectors.

    The scheduler is built before any connector is up, so it holds this hub
    and connectors attach themselves when they start. One failing connector
    never prevents delivery through the others.
    """

    def __init__(self) -> None:
        self._targets: list[tuple[str, OutboundMessenger]] = []

    def attach(self, name: str, messenger: OutboundMessenger) -> None:
        self._targets.append((name, messenger))
        logger.info("Outbound connector attached: %s", name)

    def detach(self, name: str) -> None:
        self._targets = [(n, m) for n, m in self._targets if n != name]

    @property
    def targets(self) -> list[str]:
        return [n for n, _ in self._targets]

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        if not self._targets:
            logger.warning("No outbound connector attached; dropping message: %r", text[:80])
            return

        delivered = 0
        for name, messenger in list(self._targets):
            try:
                await messenger.send_text(text=text, room_id=room_id, to_user_id=to_user_id)
                delivered += 1
            except Exception:
                logger.exception("Delivery via %s failed", name)

        if not delivered:
            raise RuntimeError("all outbound connectors failed")
