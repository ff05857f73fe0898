"""TCP front-end: one quiz session per connected peer."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from rich.text import Text

from .dispatcher import CommandDispatcher, run_session
from .handlers import CommandHandlers
from .io import StreamLineIO, StreamOutput
from .store import RecordStore

__all__ = ["handle_connection", "start_server"]

LOGGER = logging.getLogger("quiz_trainer.quizzer")

BANNER = "Quiz Trainer"


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    *,
    store: RecordStore,
    prompt_text: str,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Run a full session for one peer; the store is shared."""

    logger = logger or LOGGER
    peer = writer.get_extra_info("peername")
    logger.info("Peer connected", extra={"event": "connect", "peer": peer})

    output = StreamOutput(writer)
    line_io = StreamLineIO(reader, writer, output, prompt_text=prompt_text)
    handlers = CommandHandlers(store, line_io, output, logger=logger)
    dispatcher = CommandDispatcher(handlers, line_io, output, logger=logger)

    output.emit(Text(BANNER, style="bold green"))
    try:
        await run_session(dispatcher, line_io, logger=logger)
    finally:
        try:
            await writer.wait_closed()
        except ConnectionError:
            pass
        logger.info(
            "Peer disconnected", extra={"event": "disconnect", "peer": peer}
        )


async def start_server(
    store: RecordStore,
    *,
    host: str,
    port: int,
    prompt_text: str = "quiz > ",
    logger: Optional[logging.Logger] = None,
) -> asyncio.Server:
    """Start listening; every connection gets its own session."""

    logger = logger or LOGGER

    async def _on_connect(
        reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        await handle_connection(
            reader,
            writer,
            store=store,
            prompt_text=prompt_text,
            logger=logger,
        )

    server = await asyncio.start_server(_on_connect, host, port)
    sockets = server.sockets or ()
    addresses = [str(sock.getsockname()) for sock in sockets]
    logger.info(
        "Server listening",
        extra={"event": "listening", "addresses": addresses},
    )
    return server
