"""Quiz record persistence.

The session engine only depends on the :class:`RecordStore` protocol. The
bundled :class:`JsonQuizStore` keeps every quiz in a single JSON document and
is shared by all sessions of a server process.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from .errors import NotFoundError, StoreError, ValidationError

__all__ = [
    "QuizRecord",
    "RecordStore",
    "JsonQuizStore",
    "SAMPLE_QUIZZES",
    "validate_quiz",
]


_LOCK_SUFFIX = ".lock"
_LOCK_TIMEOUT_SECONDS = 5.0

SAMPLE_QUIZZES: tuple[tuple[str, str], ...] = (
    ("Capital of Italy", "Rome"),
    ("Capital of France", "Paris"),
    ("Capital of Spain", "Madrid"),
    ("Capital of Portugal", "Lisbon"),
)


@dataclass(frozen=True)
class QuizRecord:
    """A stored question/answer pair."""

    id: int
    question: str
    answer: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "question": self.question, "answer": self.answer}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizRecord":
        try:
            return cls(
                id=int(payload["id"]),
                question=str(payload["question"]),
                answer=str(payload["answer"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Malformed quiz entry: {payload!r}") from exc


class RecordStore(Protocol):
    """Async operations the command handlers need from a quiz store."""

    async def find_all(self) -> list[QuizRecord]: ...

    async def find_by_id(self, quiz_id: int) -> QuizRecord | None: ...

    async def create(self, question: str, answer: str) -> QuizRecord: ...

    async def update(self, record: QuizRecord) -> QuizRecord: ...

    async def delete_by_id(self, quiz_id: int) -> None: ...


def validate_quiz(question: str, answer: str) -> None:
    """Raise :class:`ValidationError` listing every empty field."""

    messages: list[str] = []
    if not question.strip():
        messages.append("Question must not be empty.")
    if not answer.strip():
        messages.append("Answer must not be empty.")
    if messages:
        raise ValidationError(messages)


class JsonQuizStore:
    """Store quizzes in a JSON document guarded by a lock file.

    Document layout::

        {"next_id": 5, "quizzes": [{"id": 1, "question": ..., "answer": ...}]}

    Blocking file IO runs in a worker thread; an ``asyncio.Lock`` keeps
    read-modify-write cycles of one process from interleaving.
    """

    def __init__(self, path: Path, *, seed: bool = True) -> None:
        self._path = Path(path)
        self._seed = seed
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def find_all(self) -> list[QuizRecord]:
        document = await asyncio.to_thread(self._read)
        return _records(document)

    async def find_by_id(self, quiz_id: int) -> QuizRecord | None:
        for record in await self.find_all():
            if record.id == quiz_id:
                return record
        return None

    async def create(self, question: str, answer: str) -> QuizRecord:
        validate_quiz(question, answer)
        async with self._lock:
            return await asyncio.to_thread(self._create, question, answer)

    async def update(self, record: QuizRecord) -> QuizRecord:
        validate_quiz(record.question, record.answer)
        async with self._lock:
            return await asyncio.to_thread(self._update, record)

    async def delete_by_id(self, quiz_id: int) -> None:
        async with self._lock:
            await asyncio.to_thread(self._delete, quiz_id)

    def _create(self, question: str, answer: str) -> QuizRecord:
        with _FileLock(self._lock_path()):
            document = self._read()
            record = QuizRecord(
                id=int(document["next_id"]), question=question, answer=answer
            )
            document["quizzes"].append(record.to_dict())
            document["next_id"] = record.id + 1
            self._write(document)
        return record

    def _update(self, record: QuizRecord) -> QuizRecord:
        with _FileLock(self._lock_path()):
            document = self._read()
            for index, entry in enumerate(document["quizzes"]):
                if int(entry["id"]) == record.id:
                    document["quizzes"][index] = record.to_dict()
                    break
            else:
                raise NotFoundError(record.id)
            self._write(document)
        return record

    def _delete(self, quiz_id: int) -> None:
        with _FileLock(self._lock_path()):
            document = self._read()
            remaining = [
                entry
                for entry in document["quizzes"]
                if int(entry["id"]) != quiz_id
            ]
            if len(remaining) == len(document["quizzes"]):
                return
            document["quizzes"] = remaining
            self._write(document)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return self._initial_document()
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreError(
                f"Failed to parse quiz store: {self._path}"
            ) from exc
        except OSError as exc:
            raise StoreError(
                f"Failed to read quiz store {self._path}: {exc}"
            ) from exc
        if not isinstance(payload, dict) or not isinstance(
            payload.get("quizzes"), list
        ):
            raise StoreError(f"Quiz store has an unexpected layout: {self._path}")
        records = [QuizRecord.from_dict(entry) for entry in payload["quizzes"]]
        if "next_id" not in payload:
            ids = [record.id for record in records]
            payload["next_id"] = max(ids, default=0) + 1
        return payload

    def _initial_document(self) -> dict[str, Any]:
        quizzes = []
        if self._seed:
            quizzes = [
                QuizRecord(index, question, answer).to_dict()
                for index, (question, answer) in enumerate(
                    SAMPLE_QUIZZES, start=1
                )
            ]
        return {"next_id": len(quizzes) + 1, "quizzes": quizzes}

    def _write(self, document: Mapping[str, Any]) -> None:
        try:
            _atomic_write_json(self._path, document)
        except OSError as exc:
            raise StoreError(
                f"Failed to write quiz store {self._path}: {exc}"
            ) from exc

    def _lock_path(self) -> Path:
        return self._path.with_name(self._path.name + _LOCK_SUFFIX)


def _records(document: Mapping[str, Any]) -> list[QuizRecord]:
    entries: Sequence[Mapping[str, Any]] = document["quizzes"]
    return sorted(
        (QuizRecord.from_dict(entry) for entry in entries),
        key=lambda record: record.id,
    )


class _FileLock:
    """Filesystem lock using exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_FileLock":
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(
                f"Cannot create store directory {self._path.parent}: {exc}"
            ) from exc
        deadline = time.time() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(
                    self._path,
                    os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                )
                os.close(fd)
                break
            except FileExistsError:
                if time.time() > deadline:
                    raise StoreError(
                        f"Timed out waiting for store lock: {self._path}"
                    )
                time.sleep(0.05)
            except OSError as exc:
                raise StoreError(
                    f"Cannot acquire store lock {self._path}: {exc}"
                ) from exc
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
    )
    try:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)
