# src/focus_companion/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import respond
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


class ConsoleMessenger:
    """Prints scheduler notifications to stdout."""

    def __init__(self, persona_name: str = "Miu") -> None:
        self._name = persona_name

    async def send_text(
        self,
        *,
        text: str,
        room_id: str | None = None,
        to_user_id: str | None = None,
    ) -> None:
        print(f"\n[{_ts_local()}] <<< {self._name}: {text}\n", flush=True)


_EOF = object()


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[object]) -> threading.Thread:
    """
    Read stdin in a daemon thread and hand lines to the loop.

    A daemon thread (not the default executor) so a pending input() never
    blocks interpreter shutdown.
    """

    def _push(item: object) -> bool:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # Loop already closed: the app is shutting down.
            return False
        return True

    def _reader() -> None:
        while True:
            try:
                line = input(">>> You: ")
            except (EOFError, KeyboardInterrupt):
                _push(_EOF)
                return
            if not _push(line):
                return

    thread = threading.Thread(target=_reader, name="console-stdin", daemon=True)
    thread.start()
    return thread


async def run_console_loop(state: AppState) -> None:
    """Console REPL on the shared event loop; timers keep firing between prompts."""
    name = str(getattr(state.settings, "persona_name", "Miu"))
    logger.info("Console connector started.")
    print(f"[{_ts_local()}] [CONSOLE] Type your messages. Use /help for commands. Use /exit to quit.\n")

    queue: asyncio.Queue[object] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), queue)

    while True:
        item = await queue.get()
        if item is _EOF:
            logger.info("Console EOF received, exiting.")
            break

        user_input = str(item).strip()
        if not user_input:
            continue
        _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = await respond(state, user_input)
        if reply:
            print(f"[{_ts_local()}] <<< {name}: {reply}\n")

    logger.info("Console connector finished.")
