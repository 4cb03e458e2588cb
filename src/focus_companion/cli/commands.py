# src/focus_companion/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_models import CommandResult

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal error while handling a command."


class CommandRegistry:
    """Simple slash-command registry used by connectors (/next, /done, /help, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _int_arg(raw: str | None) -> int | None:
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


def _text(result: CommandResult) -> str:
    return result.response


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_next(state: AppState, args: list[str]) -> str:
    """/next <task name> <minutes>"""
    minutes = _int_arg(args[-1]) if args else None
    if len(args) < 2 or minutes is None:
        return "Usage: /next <task name> <minutes>"
    return _text(await task_api.start_task(state, " ".join(args[:-1]), minutes))


async def cmd_done(state: AppState, args: list[str]) -> str:
    comment = " ".join(args).strip() or None
    return _text(await task_api.complete_task(state, comment))


async def cmd_skip(state: AppState, args: list[str]) -> str:
    return _text(await task_api.skip_task(state))


async def cmd_extend(state: AppState, args: list[str]) -> str:
    minutes = _int_arg(args[0]) if args else None
    if minutes is None:
        return "Usage: /extend <minutes>"
    return _text(await task_api.extend_task(state, minutes))


async def cmd_reset(state: AppState, args: list[str]) -> str:
    return _text(await task_api.reset_task(state))


async def cmd_status(state: AppState, args: list[str]) -> str:
    return _text(await task_api.task_status(state))


async def cmd_break(state: AppState, args: list[str]) -> str:
    minutes = _int_arg(args[0]) if args else None
    if minutes is None:
        return "Usage: /break <minutes>"
    return _text(await task_api.start_break(state, minutes))


async def cmd_done_today(state: AppState, args: list[str]) -> str:
    return _text(await task_api.done_for_today(state))


async def cmd_history(state: AppState, args: list[str]) -> str:
    days = _int_arg(args[0]) if args else 0
    if days is None:
        return "Usage: /history [days]"
    return _text(await task_api.task_history(state, days))


async def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind add <text>    -> "09:00 weekdays [holidays] message" or free text
    /remind list          -> registered reminders
    /remind delete <id>   -> remove one
    """
    usage = "Usage: /remind add <HH:MM days [holidays] message> | /remind list | /remind delete <id>"
    if not args:
        return usage

    sub = args[0].lower()
    if sub == "add":
        text = " ".join(args[1:]).strip()
        if not text:
            return usage
        return _text(await task_api.add_custom_remind(state, text))

    if sub in ("list", "ls"):
        return _text(await task_api.list_custom_reminds(state))

    if sub in ("delete", "del", "rm"):
        remind_id = _int_arg(args[1]) if len(args) > 1 else None
        if remind_id is None:
            return usage
        return _text(await task_api.delete_custom_remind(state, remind_id))

    return usage


async def cmd_coins(state: AppState, args: list[str]) -> str:
    return _text(task_api.coin_balance(state))


async def respond(state: AppState, text: str) -> str | None:
    """
    Entry point for connectors: slash commands go to the registry, anything
    else is routed by intent (falling back to chat). Commands run one at a time.
    """
    text = (text or "").strip()
    if not text:
        return None

    async with state.lock:
        try:
            if text.startswith("/"):
                return await registry.handle(state, text)
            result = await task_api.handle_message(state, text)
            return result.response or None
        except Exception:
            logger.exception("Command handler crashed.")
            return INTERNAL_ERROR


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("next", cmd_next, help_text="Start a task: /next <task name> <minutes>.", aliases=["start"])
registry.register("done", cmd_done, help_text="Complete the current task: /done [comment].")
registry.register("skip", cmd_skip, help_text="Skip the current task.")
registry.register("extend", cmd_extend, help_text="Add minutes to the current task: /extend <minutes>.")
registry.register("reset", cmd_reset, help_text="Force-close the current task without commentary.")
registry.register("status", cmd_status, help_text="Show the current task.")
registry.register("break", cmd_break, help_text="Take a break: /break <minutes>.")
registry.register("done_today", cmd_done_today, help_text="Wrap up the day.")
registry.register("history", cmd_history, help_text="Task history: /history [days].")
registry.register("remind", cmd_remind, help_text="Recurring reminders: /remind add | list | delete <id>.")
registry.register("coins", cmd_coins, help_text="Show the coin balance.")
