"""Randomized play sessions over every stored quiz.

A session draws quizzes at random without repetition and ends on the first
wrong answer or once every quiz has been asked.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rich.text import Text

from .io import LineIO, Output
from .store import QuizRecord, RecordStore

__all__ = [
    "PlayState",
    "PlaySession",
    "answers_match",
    "run_play_session",
]

SCORE_STYLE = "magenta"


class PlayState(Enum):
    SELECTING = "selecting"
    AWAITING_ANSWER = "awaiting_answer"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    FINISHED = "finished"


_TERMINAL = frozenset({PlayState.INCORRECT, PlayState.FINISHED})


def answers_match(given: str, expected: str) -> bool:
    """Compare answers ignoring surrounding whitespace and letter case."""

    return given.strip().lower() == expected.strip().lower()


@dataclass
class PlaySession:
    """Mutable state of one ``play`` command."""

    pool: list[QuizRecord]
    score: int = 0
    state: PlayState = PlayState.SELECTING
    asked: list[QuizRecord] = field(default_factory=list)

    @property
    def rounds(self) -> int:
        return len(self.asked)

    @property
    def is_over(self) -> bool:
        return self.state in _TERMINAL

    def next_record(self, rng: random.Random) -> Optional[QuizRecord]:
        """Remove a random quiz from the pool, or finish when it is empty."""

        self._expect(PlayState.SELECTING)
        if not self.pool:
            self.state = PlayState.FINISHED
            return None
        record = self.pool.pop(rng.randrange(len(self.pool)))
        self.asked.append(record)
        self.state = PlayState.AWAITING_ANSWER
        return record

    def submit(self, record: QuizRecord, answer: str) -> bool:
        self._expect(PlayState.AWAITING_ANSWER)
        if answers_match(answer, record.answer):
            self.score += 1
            self.state = PlayState.CORRECT
            return True
        self.state = PlayState.INCORRECT
        return False

    def advance(self) -> None:
        self._expect(PlayState.CORRECT)
        self.state = PlayState.SELECTING if self.pool else PlayState.FINISHED

    def _expect(self, state: PlayState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Play session is {self.state.value}, expected {state.value}."
            )


async def run_play_session(
    store: RecordStore,
    line_io: LineIO,
    output: Output,
    *,
    rng: Optional[random.Random] = None,
) -> PlaySession:
    """Ask every stored quiz once in random order and report the score.

    Store failures while loading the pool propagate before any question is
    asked. The caller is responsible for prompting afterwards.
    """

    rng = rng or random.Random()
    session = PlaySession(pool=list(await store.find_all()))

    while session.state is PlayState.SELECTING:
        record = session.next_record(rng)
        if record is None:
            break
        answer = await line_io.ask(f" {record.question}? ")
        if session.submit(record, answer):
            output.emit(f" CORRECT - {session.score} correct so far.")
            session.advance()
        else:
            output.emit(f" INCORRECT. End of game. Score: {session.score}")

    if session.state is PlayState.FINISHED:
        output.emit(
            f" Nothing left to ask. End of game. Score: {session.score}"
        )
    output.emit(Text(str(session.score)), SCORE_STYLE)
    return session
