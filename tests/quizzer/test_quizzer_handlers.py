from __future__ import annotations

import asyncio
import random

import pytest

from fixtures import MemoryStore, RecordingOutput, ScriptedLineIO
from quiz_trainer.quizzer.errors import SessionClosed, StoreError
from quiz_trainer.quizzer.handlers import CREDITS, HELP_LINES, CommandHandlers


def make_handlers(store, output, *, answers=(), seed=0):
    line_io = ScriptedLineIO(answers=list(answers))
    handlers = CommandHandlers(
        store, line_io, output, rng=random.Random(seed)
    )
    return handlers, line_io


def test_help_lists_every_command(store, output):
    handlers, line_io = make_handlers(store, output)

    handlers.cmd_help()

    assert output.lines[0] == "Commands:"
    assert len(output.lines) == len(HELP_LINES) + 1
    for usage, _ in HELP_LINES:
        assert usage in output.text
    assert store.calls == []
    assert line_io.prompts == 1


def test_list_shows_id_and_question(output):
    store = MemoryStore([("2+2", "4"), ("Capital of France", "Paris")])
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_list())

    assert output.lines == [" [1]: 2+2", " [2]: Capital of France"]
    assert line_io.prompts == 1


def test_list_reports_store_failure_and_reprompts(store, output):
    store.failure = StoreError("store offline")
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_list())

    assert output.lines == ["Error: store offline"]
    assert line_io.prompts == 1


def test_show_prints_question_and_answer(store, output):
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_show("1"))

    assert output.lines == [" [1]: 2+2 => 4"]
    assert line_io.prompts == 1


def test_show_unknown_id_reports_single_not_found(store, output):
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_show("99"))

    assert output.lines == ["Error: No quiz associated with id=99."]
    assert line_io.prompts == 1


@pytest.mark.parametrize(
    ("argument", "expected"),
    [(None, "Missing parameter <id>."), ("abc", "is not a number")],
)
def test_show_validation_failures(store, output, argument, expected):
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_show(argument))

    assert len(output.lines) == 1
    assert expected in output.lines[0]
    assert store.calls == []
    assert line_io.prompts == 1


def test_add_creates_trimmed_quiz_and_show_round_trips(output):
    store = MemoryStore()
    handlers, line_io = make_handlers(
        store, output, answers=["  Capital of Spain ", " Madrid  "]
    )

    asyncio.run(handlers.cmd_add())
    asyncio.run(handlers.cmd_show("1"))

    assert line_io.questions == [" Enter a question: ", " Enter the answer: "]
    assert output.lines == [
        " Added: Capital of Spain => Madrid",
        " [1]: Capital of Spain => Madrid",
    ]
    assert line_io.prompts == 2


def test_add_reports_every_validation_message(output):
    store = MemoryStore()
    handlers, line_io = make_handlers(store, output, answers=["", "   "])

    asyncio.run(handlers.cmd_add())

    assert output.lines == [
        " The quiz is invalid:",
        "Error: Question must not be empty.",
        "Error: Answer must not be empty.",
    ]
    assert store.records == {}
    assert line_io.prompts == 1


def test_delete_twice_is_silent(store, output):
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_delete("1"))
    asyncio.run(handlers.cmd_delete("1"))

    assert store.records == {}
    assert output.lines == []
    assert line_io.prompts == 2


def test_delete_requires_numeric_id(store, output):
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_delete("one"))

    assert "not a number" in output.text
    assert 1 in store.records
    assert line_io.prompts == 1


def test_edit_prefills_current_values_and_updates(store, output):
    handlers, line_io = make_handlers(store, output, answers=["2 + 2", "four"])

    asyncio.run(handlers.cmd_edit("1"))

    assert line_io.prefills == ["2+2", "4"]
    assert store.records[1].question == "2 + 2"
    assert store.records[1].answer == "four"
    assert output.lines == [" Changed quiz 1 to: 2 + 2 => four"]
    assert line_io.prompts == 1


def test_edit_unknown_id_does_not_ask(store, output):
    handlers, line_io = make_handlers(store, output, answers=["x", "y"])

    asyncio.run(handlers.cmd_edit("5"))

    assert line_io.questions == []
    assert output.lines == ["Error: No quiz associated with id=5."]
    assert line_io.prompts == 1


def test_edit_rejects_empty_answer(store, output):
    handlers, line_io = make_handlers(store, output, answers=["2+2", ""])

    asyncio.run(handlers.cmd_edit("1"))

    assert store.records[1].answer == "4"
    assert output.lines == [
        " The quiz is invalid:",
        "Error: Answer must not be empty.",
    ]
    assert line_io.prompts == 1


@pytest.mark.parametrize("reply", ["4", " 4 ", "4\t"])
def test_test_accepts_correct_answer(store, output, reply):
    handlers, line_io = make_handlers(store, output, answers=[reply])

    asyncio.run(handlers.cmd_test("1"))

    assert line_io.questions == [" 2+2? "]
    assert output.entries == [
        (" Your answer is correct.", None),
        ("Correct", "green"),
    ]
    assert line_io.prompts == 1


def test_test_wrong_answer_has_no_retry(store, output):
    handlers, line_io = make_handlers(store, output, answers=["5", "4"])

    asyncio.run(handlers.cmd_test("1"))

    assert len(line_io.questions) == 1
    assert output.entries[-1] == ("Incorrect", "red")
    assert line_io.answers == ["4"]
    assert line_io.prompts == 1


@pytest.mark.parametrize("reply", ["Paris", " paris ", "PARIS"])
def test_test_ignores_case_and_whitespace(output, reply):
    store = MemoryStore([("Capital of France", "Paris")])
    handlers, _ = make_handlers(store, output, answers=[reply])

    asyncio.run(handlers.cmd_test("1"))

    assert " Your answer is correct." in output.lines


def test_play_reprompts_once_after_session(output):
    store = MemoryStore([("2+2", "4"), ("3+3", "6")])
    handlers, line_io = make_handlers(store, output)

    # questions come in random order
    async def answer(text):
        line_io.questions.append(text)
        question = text.strip().rstrip("?")
        return {"2+2": "4", "3+3": "6"}[question]

    line_io.ask = answer  # type: ignore[method-assign]

    asyncio.run(handlers.cmd_play())

    assert len(line_io.questions) == 2
    assert "Score: 2" in output.text
    assert line_io.prompts == 1


def test_play_store_failure_is_reported(store, output):
    store.failure = StoreError("cannot load quizzes")
    handlers, line_io = make_handlers(store, output)

    asyncio.run(handlers.cmd_play())

    assert output.lines == ["Error: cannot load quizzes"]
    assert line_io.questions == []
    assert line_io.prompts == 1


def test_credits_are_static(store, output):
    handlers, line_io = make_handlers(store, output)

    handlers.cmd_credits()

    assert output.lines == ["Authors:", *CREDITS]
    assert line_io.prompts == 1


def test_quit_closes_without_prompt(store, output):
    handlers, line_io = make_handlers(store, output)

    handlers.cmd_quit()

    assert line_io.closed
    assert line_io.prompts == 0


def test_closed_input_while_asking_does_not_reprompt(store, output):
    handlers, line_io = make_handlers(store, output, answers=[])

    with pytest.raises(SessionClosed):
        asyncio.run(handlers.cmd_test("1"))

    assert line_io.prompts == 0
    assert output.lines == []


def test_unexpected_store_failure_is_reported_and_reprompts(store, output):
    store.failure = OSError("disk unplugged")
    handlers, line_io = make_handlers(store, output, answers=["q", "a"])

    asyncio.run(handlers.cmd_add())

    assert output.lines == ["Error: disk unplugged"]
    assert line_io.prompts == 1
    assert not line_io.closed


def test_session_continues_after_unexpected_failure(output):
    store = MemoryStore([("2+2", "4")])
    handlers, line_io = make_handlers(store, output)
    store.failure = KeyError("boom")

    asyncio.run(handlers.cmd_list())
    store.failure = None
    asyncio.run(handlers.cmd_list())

    assert output.lines == ["Error: 'boom'", " [1]: 2+2"]
    assert line_io.prompts == 2
