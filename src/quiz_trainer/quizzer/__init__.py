from ._main import build_serve_parser, build_start_parser, serve, start
from .dispatcher import (
    COMMAND_ALIASES,
    CommandDispatcher,
    parse_command_line,
    run_session,
)
from .errors import (
    MissingParameterError,
    NotANumberError,
    NotFoundError,
    QuizError,
    SessionClosed,
    StoreError,
    ValidationError,
)
from .handlers import CommandHandlers
from .io import (
    ConsoleLineIO,
    ConsoleOutput,
    LineIO,
    Output,
    StreamLineIO,
    StreamOutput,
)
from .play import PlaySession, PlayState, answers_match, run_play_session
from .server import handle_connection, start_server
from .store import JsonQuizStore, QuizRecord, RecordStore
from .validation import validate_id

__all__ = [
    "build_start_parser",
    "build_serve_parser",
    "start",
    "serve",
    "COMMAND_ALIASES",
    "CommandDispatcher",
    "parse_command_line",
    "run_session",
    "QuizError",
    "MissingParameterError",
    "NotANumberError",
    "NotFoundError",
    "ValidationError",
    "StoreError",
    "SessionClosed",
    "CommandHandlers",
    "LineIO",
    "Output",
    "ConsoleLineIO",
    "ConsoleOutput",
    "StreamLineIO",
    "StreamOutput",
    "PlaySession",
    "PlayState",
    "answers_match",
    "run_play_session",
    "handle_connection",
    "start_server",
    "JsonQuizStore",
    "QuizRecord",
    "RecordStore",
    "validate_id",
]
