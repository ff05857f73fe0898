import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from ..config import (
    ConfigOverrides,
    LoadResult,
    QuizTrainerConfigError,
    load_config,
)
from ..core import configure_logger
from .dispatcher import CommandDispatcher, run_session
from .handlers import CommandHandlers
from .io import ConsoleLineIO, ConsoleOutput
from .server import start_server
from .store import JsonQuizStore

LOGGER_NAME = "quiz_trainer.quizzer"


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to quiz_trainer.toml (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to QUIZ_TRAINER_DATA_HOME).",
    )
    parser.add_argument(
        "--store",
        type=Path,
        help="JSON file holding the quizzes.",
    )
    parser.add_argument(
        "--no-seed",
        dest="seed",
        action="store_false",
        default=None,
        help="Do not seed sample quizzes into a new store.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror debug logs to stderr.",
    )


def build_start_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-trainer start",
        description="Run an interactive quiz session in this terminal.",
    )
    _add_common_arguments(parser)
    return parser


def build_serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz-trainer serve",
        description="Serve quiz sessions to TCP peers (e.g. telnet, nc).",
    )
    _add_common_arguments(parser)
    parser.add_argument("--host", help="Interface to bind.")
    parser.add_argument("--port", type=int, help="TCP port to listen on.")
    return parser


def _load(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> tuple[LoadResult, logging.Logger]:
    overrides = ConfigOverrides(
        store_path=args.store,
        seed=args.seed,
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        verbose=args.verbose,
    )
    try:
        result = load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except QuizTrainerConfigError as exc:
        parser.error(str(exc))
    logger, _ = configure_logger(
        LOGGER_NAME,
        log_dir=result.layout.path_for("logs"),
        level=result.config.logging.level,
        verbose=result.config.logging.verbose,
        filename="quiz_trainer.log",
    )
    return result, logger


def start(argv: Optional[Sequence[str]] = None) -> int:
    """Run one session on stdin/stdout until ``quit`` or end of input."""
    parser = build_start_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    result, logger = _load(parser, args)
    config = result.config

    console = Console()
    output = ConsoleOutput(console)
    line_io = ConsoleLineIO(console, prompt_text=config.prompt)
    store = JsonQuizStore(config.store.path, seed=config.store.seed)
    handlers = CommandHandlers(store, line_io, output, logger=logger)
    dispatcher = CommandDispatcher(handlers, line_io, output, logger=logger)

    logger.info(
        "Session started",
        extra={"event": "session_started", "store": config.store.path},
    )
    try:
        asyncio.run(run_session(dispatcher, line_io, logger=logger))
    except KeyboardInterrupt:
        logger.info(
            "Session interrupted", extra={"event": "session_interrupted"}
        )
    console.print("Bye!")
    return 0


async def _serve_forever(result: LoadResult, logger: logging.Logger) -> None:
    config = result.config
    store = JsonQuizStore(config.store.path, seed=config.store.seed)
    server = await start_server(
        store,
        host=config.server.host,
        port=config.server.port,
        prompt_text=config.prompt,
        logger=logger,
    )
    async with server:
        await server.serve_forever()


def serve(argv: Optional[Sequence[str]] = None) -> int:
    """Serve sessions to TCP peers until interrupted."""
    parser = build_serve_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    result, logger = _load(parser, args)
    server_cfg = result.config.server
    sys.stdout.write(
        f"Listening on {server_cfg.host}:{server_cfg.port} (Ctrl+C to stop)\n"
    )
    try:
        asyncio.run(_serve_forever(result, logger))
    except KeyboardInterrupt:
        logger.info("Server stopped", extra={"event": "server_stopped"})
    except OSError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    return 0
