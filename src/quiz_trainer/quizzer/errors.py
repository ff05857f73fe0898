"""Failures raised while running quiz commands."""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "QuizError",
    "MissingParameterError",
    "NotANumberError",
    "NotFoundError",
    "ValidationError",
    "StoreError",
    "SessionClosed",
]


class QuizError(RuntimeError):
    """Base class for failures a command handler reports and survives."""

    @property
    def messages(self) -> list[str]:
        """Lines shown to the user for this failure."""

        return [str(self)]


class MissingParameterError(QuizError):
    """The ``<id>`` argument was not supplied."""

    def __init__(self) -> None:
        super().__init__("Missing parameter <id>.")


class NotANumberError(QuizError):
    """The ``<id>`` argument does not start with an integer."""

    def __init__(self, raw: str) -> None:
        super().__init__(f"The value of parameter <id> is not a number: {raw!r}.")
        self.raw = raw


class NotFoundError(QuizError):
    """No quiz is stored under the requested id."""

    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"No quiz associated with id={quiz_id}.")
        self.quiz_id = quiz_id


class ValidationError(QuizError):
    """The store rejected a quiz; carries one message per field violation."""

    def __init__(self, messages: Sequence[str]) -> None:
        self._messages = list(messages)
        super().__init__("; ".join(self._messages) or "Invalid quiz.")

    @property
    def messages(self) -> list[str]:
        return list(self._messages)


class StoreError(QuizError):
    """Any other store failure (IO, corrupt document, ...)."""


class SessionClosed(Exception):
    """The input stream ended while a command was waiting for a line."""
