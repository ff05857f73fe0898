"""Line input and colorized output for quiz sessions.

Two transports are supported: the local terminal (stdin/stdout through a Rich
console) and a TCP peer (asyncio streams). Both render with Rich so command
handlers can pass styled :class:`rich.text.Text` lines without caring where
they end up.
"""

from __future__ import annotations

import asyncio
import io
import sys
from typing import Optional, Protocol, Union

from rich.console import Console
from rich.text import Text

from .errors import SessionClosed

try:  # readline is unavailable on some platforms (e.g. Windows)
    import readline
except ImportError:  # pragma: no cover - platform dependent
    readline = None  # type: ignore[assignment]

__all__ = [
    "Line",
    "LineIO",
    "Output",
    "ConsoleOutput",
    "ConsoleLineIO",
    "StreamOutput",
    "StreamLineIO",
]

Line = Union[str, Text]

QUESTION_STYLE = "red"


class Output(Protocol):
    """Sink for display lines; ``style`` only affects presentation."""

    def emit(self, line: Line, style: Optional[str] = None) -> None: ...


class LineIO(Protocol):
    """Line-oriented input for one session."""

    @property
    def closed(self) -> bool: ...

    def prompt(self) -> None:
        """Signal readiness for the next command line."""

    async def read_line(self) -> str:
        """Wait for the next command line (raises ``SessionClosed``)."""

    async def ask(self, text: str) -> str:
        """Show ``text`` and wait for one trimmed answer line."""

    def prefill(self, text: str) -> None:
        """Offer ``text`` as editable default for the next ``ask``."""

    def close(self) -> None: ...


def _as_text(line: Line, style: Optional[str]) -> Text:
    if isinstance(line, str):
        return Text(line, style=style or "")
    text = line.copy()
    if style:
        text.style = style
    return text


class ConsoleOutput:
    """Print lines to a Rich console."""

    def __init__(self, console: Console) -> None:
        self._console = console

    @property
    def console(self) -> Console:
        return self._console

    def emit(self, line: Line, style: Optional[str] = None) -> None:
        self._console.print(_as_text(line, style), highlight=False)


class ConsoleLineIO:
    """Read lines from the local terminal via ``Console.input``.

    Blocking reads run in a worker thread so the session stays a coroutine.
    Prefilled text is only offered when stdin is an interactive terminal
    with readline support.
    """

    def __init__(
        self,
        console: Console,
        *,
        prompt_text: str = "quiz > ",
        interactive: Optional[bool] = None,
    ) -> None:
        self._console = console
        self._prompt_text = prompt_text
        self._interactive = (
            sys.stdin.isatty() if interactive is None else interactive
        )
        self._prompt_pending = False
        self._prefill: Optional[str] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def prompt(self) -> None:
        if not self._closed:
            self._prompt_pending = True

    async def read_line(self) -> str:
        prompt = Text(self._prompt_text) if self._prompt_pending else ""
        self._prompt_pending = False
        return await self._read(prompt)

    async def ask(self, text: str) -> str:
        line = await self._read(Text(text, style=QUESTION_STYLE))
        return line.strip()

    def prefill(self, text: str) -> None:
        if self._interactive and readline is not None:
            self._prefill = text

    def close(self) -> None:
        self._closed = True

    async def _read(self, prompt: Line) -> str:
        if self._closed:
            raise SessionClosed()
        prefill, self._prefill = self._prefill, None
        try:
            return await asyncio.to_thread(self._blocking_input, prompt, prefill)
        except (EOFError, KeyboardInterrupt) as exc:
            self._closed = True
            raise SessionClosed() from exc

    def _blocking_input(self, prompt: Line, prefill: Optional[str]) -> str:
        if prefill is None or readline is None:
            return self._console.input(prompt)
        readline.set_startup_hook(lambda: readline.insert_text(prefill))
        try:
            return self._console.input(prompt)
        finally:
            readline.set_startup_hook(None)


class StreamOutput:
    """Render Rich lines into ANSI text and write them to a TCP peer."""

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        *,
        width: int = 100,
        color_system: Optional[str] = "standard",
    ) -> None:
        self._writer = writer
        self._buffer = io.StringIO()
        self._console = Console(
            file=self._buffer,
            width=width,
            force_terminal=color_system is not None,
            color_system=color_system,
        )

    def emit(self, line: Line, style: Optional[str] = None) -> None:
        self.write(_as_text(line, style))

    def write(self, text: Text, *, end: str = "\n") -> None:
        if self._writer.is_closing():
            return
        self._console.print(text, end=end, highlight=False)
        rendered = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate(0)
        # Telnet style clients expect CRLF line endings.
        self._writer.write(rendered.replace("\n", "\r\n").encode("utf-8"))


class StreamLineIO:
    """Read lines from a connected TCP peer.

    Prefill has no meaning on a raw socket and is ignored.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        output: StreamOutput,
        *,
        prompt_text: str = "quiz > ",
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._output = output
        self._prompt_text = prompt_text
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._writer.is_closing()

    def prompt(self) -> None:
        if not self.closed:
            self._output.write(Text(self._prompt_text), end="")

    async def read_line(self) -> str:
        return await self._read()

    async def ask(self, text: str) -> str:
        if self.closed:
            raise SessionClosed()
        self._output.write(Text(text, style=QUESTION_STYLE), end="")
        line = await self._read()
        return line.strip()

    def prefill(self, text: str) -> None:
        del text

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._writer.is_closing():
            self._writer.close()

    async def _read(self) -> str:
        if self.closed:
            raise SessionClosed()
        try:
            await self._writer.drain()
            raw = await self._reader.readline()
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            self._closed = True
            raise SessionClosed() from exc
        if not raw:
            self._closed = True
            raise SessionClosed()
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")
