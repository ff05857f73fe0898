"""Shared testing fakes for the quiz_trainer test suite."""

from .quiz import MemoryStore, RecordingOutput, ScriptedLineIO  # noqa: F401

__all__ = [
    "MemoryStore",
    "RecordingOutput",
    "ScriptedLineIO",
]
