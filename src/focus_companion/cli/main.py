# src/focus_companion/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs everything on one event loop:
- reminder recovery (re-arms the overdue reminder of a working task),
- holiday refresh, then the cron dispatcher,
- Matrix connector (optional),
- console REPL (optional); when it exits the app shuts down.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_cron, create_initial_state
from ..config import get_settings
from ..connectors.broadcast import BroadcastMessenger
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def run_app(settings) -> None:
    outbound = BroadcastMessenger()
    state = create_initial_state(settings=settings, outbound=outbound)

    if settings.console_enabled:
        outbound.attach("console", ConsoleMessenger(settings.persona_name))

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)

    await state.holidays.refresh()
    state.scheduler.recover()

    background: list[asyncio.Task[None]] = [
        asyncio.create_task(create_cron(state).run_forever(), name="cron"),
    ]
    if settings.matrix_enabled:
        from ..connectors.matrix_connector import run_matrix_bot

        background.append(asyncio.create_task(run_matrix_bot(state, outbound, stop_event), name="matrix"))

    try:
        if settings.console_enabled:
            console = asyncio.create_task(run_console_loop(state), name="console")
            stopper = asyncio.create_task(stop_event.wait())
            await asyncio.wait({console, stopper}, return_when=asyncio.FIRST_COMPLETED)
            stopper.cancel()
            console.cancel()
        else:
            logger.info("Console disabled. Running background connectors only. Press Ctrl+C to stop.")
            await stop_event.wait()
    finally:
        stop_event.set()
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        await state.scheduler.shutdown()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_app(settings))
    logger.info("Bye.")


if __name__ == "__main__":
    main()
