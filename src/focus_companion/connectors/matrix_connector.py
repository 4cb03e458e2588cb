# src/focus_companion/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from nio import AsyncClient, MatrixRoom, RoomMessageText, RoomSendError

from ..cli.commands import respond
from ..core.state import AppState
from .broadcast import BroadcastMessenger
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)


def _ms_now() -> int:
    return int(time.time() * 1000)


async def _send_text(client: AsyncClient, *, room_id: str, text: str) -> None:
    resp = await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content={"msgtype": "m.text", "body": text},
        ignore_unverified_devices=True,
    )
    if isinstance(resp, RoomSendError):
        raise RuntimeError(f"Matrix send failed: {resp.message}")


class MatrixMessenger:
    """Delivers notifications to the configured Matrix room."""

    def __init__(self, client: AsyncClient, default_room_id: str) -> None:
        self._client = client
        self._room_id = default_room_id

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        target = (room_id or self._room_id or "").strip()
        if not target:
            raise RuntimeError("no Matrix room configured for delivery")
        await _send_text(self._client, room_id=target, text=text)


async def run_matrix_bot(state: AppState, outbound: BroadcastMessenger, stop_event: asyncio.Event) -> None:
    """
    Matrix connector (async): init -> attach messenger -> callbacks -> sync loop.

    Only the owner's messages in the delivery room are handled. Commands and
    chat go through the same entry point as the console.
    """
    settings = state.settings
    room_id = (getattr(settings, "matrix_room_id", "") or "").strip()
    owner_id = (getattr(settings, "matrix_owner_id", "") or "").strip()
    if not room_id:
        logger.error("Matrix is enabled but FOCUS_MATRIX_ROOM_ID is not set.")
        return

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    startup_ts = _ms_now()
    logger.info("Matrix client started (user=%s, room=%s, owner=%s).", client.user_id, room_id, owner_id or "ANY")

    outbound.attach("matrix", MatrixMessenger(client, room_id))

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return
        if event.sender == client.user_id:
            return
        if room.room_id != room_id:
            return
        if owner_id and event.sender != owner_id:
            logger.debug("Ignoring message from non-owner %s", event.sender)
            return

        body = (event.body or "").strip()
        if not body:
            return
        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)

        with contextlib.suppress(Exception):
            await client.room_typing(room.room_id, typing_state=True, timeout=30000)

        try:
            reply = await respond(state, body)
        finally:
            with contextlib.suppress(Exception):
                await client.room_typing(room.room_id, typing_state=False, timeout=30000)

        if not reply:
            return
        try:
            await _send_text(client, room_id=room.room_id, text=reply)
        except Exception:
            logger.exception("Failed to send reply to %s", room.room_id)

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        logger.info("Matrix initial sync...")
        await client.sync(timeout=30000, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        while not stop_event.is_set():
            await client.sync(timeout=30000, full_state=False)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
        raise
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        outbound.detach("matrix")
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")
