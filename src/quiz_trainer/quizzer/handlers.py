"""Command handlers for an interactive quiz session.

Each ``cmd_*`` method implements one session command. Every command except
``quit`` asks the line IO for the next prompt when it is done, including
after a failure, so a broken command never ends the session.
"""

from __future__ import annotations

import functools
import logging
import random
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from rich.text import Text

from .errors import NotFoundError, QuizError, SessionClosed, ValidationError
from .io import LineIO, Output
from .play import answers_match, run_play_session
from .store import QuizRecord, RecordStore
from .validation import validate_id

__all__ = ["CommandHandlers", "HELP_LINES", "CREDITS"]

LOGGER = logging.getLogger("quiz_trainer.quizzer")

ID_STYLE = "magenta"
ERROR_STYLE = "red"

HELP_LINES: tuple[tuple[str, str], ...] = (
    ("h|help", "Show this help."),
    ("list", "List the existing quizzes."),
    ("show <id>", "Show the question and the answer of the given quiz."),
    ("add", "Add a new quiz interactively."),
    ("delete <id>", "Delete the given quiz."),
    ("edit <id>", "Edit the given quiz."),
    ("test <id>", "Try to answer the given quiz."),
    ("p|play", "Play: answer every quiz in random order."),
    ("credits", "Credits."),
    ("q|quit", "Quit the program."),
)

CREDITS: tuple[str, ...] = ("Quiz Trainer maintainers",)

Handler = Callable[["CommandHandlers", Optional[str]], Awaitable[None]]


def _reprompts(func: Handler) -> Handler:
    """Report any failure and request the next prompt.

    ``SessionClosed`` is not a failure; it propagates so the session ends.
    """

    command = func.__name__.removeprefix("cmd_")

    @functools.wraps(func)
    async def wrapper(self: "CommandHandlers", *args: Optional[str]) -> None:
        try:
            await func(self, *args)
        except SessionClosed:
            raise
        except QuizError as exc:
            self._report(command, exc)
        except Exception as exc:
            self._report_unexpected(command, exc)
        self._next_prompt()

    return wrapper


class CommandHandlers:
    def __init__(
        self,
        store: RecordStore,
        line_io: LineIO,
        output: Output,
        *,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._line_io = line_io
        self._output = output
        self._rng = rng
        self._logger = logger or LOGGER

    def cmd_help(self, argument: Optional[str] = None) -> None:
        self._output.emit("Commands:")
        for usage, summary in HELP_LINES:
            self._output.emit(f" {usage} - {summary}")
        self._next_prompt()

    @_reprompts
    async def cmd_list(self, argument: Optional[str] = None) -> None:
        for record in await self._store.find_all():
            self._output.emit(
                Text.assemble(
                    " [", (str(record.id), ID_STYLE), "]: ", record.question
                )
            )

    @_reprompts
    async def cmd_show(self, argument: Optional[str]) -> None:
        record = await self._fetch(argument)
        self._output.emit(
            Text.assemble(
                " [",
                (str(record.id), ID_STYLE),
                "]: ",
                *_question_and_answer(record),
            )
        )

    @_reprompts
    async def cmd_add(self, argument: Optional[str] = None) -> None:
        question = await self._line_io.ask(" Enter a question: ")
        answer = await self._line_io.ask(" Enter the answer: ")
        record = await self._store.create(question, answer)
        self._logger.info(
            "Quiz added", extra={"event": "quiz_added", "quiz_id": record.id}
        )
        self._output.emit(
            Text.assemble(
                " ", ("Added", ID_STYLE), ": ", *_question_and_answer(record)
            )
        )

    @_reprompts
    async def cmd_delete(self, argument: Optional[str]) -> None:
        quiz_id = validate_id(argument)
        await self._store.delete_by_id(quiz_id)
        self._logger.info(
            "Quiz deleted", extra={"event": "quiz_deleted", "quiz_id": quiz_id}
        )

    @_reprompts
    async def cmd_edit(self, argument: Optional[str]) -> None:
        record = await self._fetch(argument)
        self._line_io.prefill(record.question)
        question = await self._line_io.ask(" Edit the question: ")
        self._line_io.prefill(record.answer)
        answer = await self._line_io.ask(" Edit the answer: ")
        record = await self._store.update(
            replace(record, question=question, answer=answer)
        )
        self._logger.info(
            "Quiz edited", extra={"event": "quiz_edited", "quiz_id": record.id}
        )
        self._output.emit(
            Text.assemble(
                " Changed quiz ",
                (str(record.id), ID_STYLE),
                " to: ",
                *_question_and_answer(record),
            )
        )

    @_reprompts
    async def cmd_test(self, argument: Optional[str]) -> None:
        record = await self._fetch(argument)
        answer = await self._line_io.ask(f" {record.question}? ")
        if answers_match(answer, record.answer):
            self._output.emit(" Your answer is correct.")
            self._output.emit("Correct", "green")
        else:
            self._output.emit(" Your answer is incorrect.")
            self._output.emit("Incorrect", "red")

    @_reprompts
    async def cmd_play(self, argument: Optional[str] = None) -> None:
        session = await run_play_session(
            self._store, self._line_io, self._output, rng=self._rng
        )
        self._logger.info(
            "Play session ended",
            extra={
                "event": "play_finished",
                "state": session.state.value,
                "score": session.score,
                "rounds": session.rounds,
            },
        )

    def cmd_credits(self, argument: Optional[str] = None) -> None:
        self._output.emit("Authors:")
        for author in CREDITS:
            self._output.emit(author, "green")
        self._next_prompt()

    def cmd_quit(self, argument: Optional[str] = None) -> None:
        self._line_io.close()

    async def _fetch(self, argument: Optional[str]) -> QuizRecord:
        quiz_id = validate_id(argument)
        record = await self._store.find_by_id(quiz_id)
        if record is None:
            raise NotFoundError(quiz_id)
        return record

    def _report(self, command: str, exc: QuizError) -> None:
        self._logger.warning(
            "Command failed: %s",
            exc,
            extra={
                "event": "command_failed",
                "command": command,
                "error": type(exc).__name__,
            },
        )
        if isinstance(exc, ValidationError):
            self._output.emit(" The quiz is invalid:", ERROR_STYLE)
        for message in exc.messages:
            self._emit_error(message)

    def _emit_error(self, message: str) -> None:
        self._output.emit(
            Text.assemble(
                ("Error", ERROR_STYLE),
                ": ",
                (message, f"{ERROR_STYLE} on bright_yellow"),
            )
        )

    def _report_unexpected(self, command: str, exc: Exception) -> None:
        self._logger.exception(
            "Command crashed: %s",
            exc,
            extra={
                "event": "command_crashed",
                "command": command,
                "error": type(exc).__name__,
            },
        )
        self._emit_error(str(exc) or type(exc).__name__)

    def _next_prompt(self) -> None:
        if not self._line_io.closed:
            self._line_io.prompt()


def _question_and_answer(record: QuizRecord) -> tuple[object, ...]:
    return (record.question, " ", ("=>", ID_STYLE), " ", record.answer)
