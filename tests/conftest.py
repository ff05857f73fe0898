from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable when the package is not installed
ROOT = TESTS_DIR.parent
for extra in (ROOT / "src",):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import MemoryStore, RecordingOutput  # noqa: E402


@pytest.fixture
def store() -> MemoryStore:
    """An in-memory store holding the ``2+2`` quiz under id 1."""

    return MemoryStore([("2+2", "4")])


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()


@pytest.fixture
def workspace_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the quiz-trainer workspace at a per-test directory."""

    home = tmp_path / "data"
    monkeypatch.setenv("QUIZ_TRAINER_DATA_HOME", str(home))
    for name in ("QUIZ_TRAINER_CONFIG", "QUIZ_TRAINER_STORE_PATH"):
        monkeypatch.delenv(name, raising=False)
    return home
