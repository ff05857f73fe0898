"""Parse session input lines and route them to command handlers."""

from __future__ import annotations

import inspect
import logging
from typing import Mapping, Optional

from rich.text import Text

from .errors import SessionClosed
from .handlers import CommandHandlers
from .io import LineIO, Output

__all__ = [
    "COMMAND_ALIASES",
    "CommandDispatcher",
    "parse_command_line",
    "run_session",
]

LOGGER = logging.getLogger("quiz_trainer.quizzer")

COMMAND_ALIASES: Mapping[str, str] = {
    "h": "help",
    "help": "help",
    "list": "list",
    "show": "show",
    "add": "add",
    "delete": "delete",
    "edit": "edit",
    "test": "test",
    "p": "play",
    "play": "play",
    "credits": "credits",
    "q": "quit",
    "quit": "quit",
}


def parse_command_line(line: str) -> tuple[str, Optional[str]]:
    """Split ``line`` into a lower-cased command and its argument text.

    The argument is everything after the first run of whitespace, or
    ``None`` when nothing follows the command.
    """

    parts = line.strip().split(maxsplit=1)
    if not parts:
        return "", None
    command = parts[0].lower()
    argument = parts[1] if len(parts) > 1 else None
    return command, argument


class CommandDispatcher:
    def __init__(
        self,
        handlers: CommandHandlers,
        line_io: LineIO,
        output: Output,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._handlers = handlers
        self._line_io = line_io
        self._output = output
        self._logger = logger or LOGGER

    async def dispatch(self, line: str) -> None:
        command, argument = parse_command_line(line)
        if not command:
            self._line_io.prompt()
            return
        name = COMMAND_ALIASES.get(command)
        if name is None:
            self._logger.debug(
                "Unknown command",
                extra={"event": "unknown_command", "command": command},
            )
            self._output.emit(
                Text.assemble(
                    ("Error", "red"), f": Unknown command '{command}'."
                )
            )
            self._output.emit("Use 'help' to list the available commands.")
            self._line_io.prompt()
            return
        self._logger.debug(
            "Dispatching command",
            extra={"event": "dispatch", "command": name},
        )
        result = getattr(self._handlers, f"cmd_{name}")(argument)
        if inspect.isawaitable(result):
            await result


async def run_session(
    dispatcher: CommandDispatcher,
    line_io: LineIO,
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Read and dispatch command lines until the session is closed."""

    logger = logger or LOGGER
    line_io.prompt()
    try:
        while not line_io.closed:
            line = await line_io.read_line()
            await dispatcher.dispatch(line)
    except SessionClosed:
        logger.info("Input closed", extra={"event": "session_closed"})
    finally:
        line_io.close()
