from __future__ import annotations

import json
import logging
from pathlib import Path

from quiz_trainer.core import logging as core_logging


def _handlers(logger: logging.Logger, marker: str) -> list[logging.Handler]:
    return [
        handler
        for handler in logger.handlers
        if getattr(handler, marker, False)
    ]


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "quiz_trainer.test",
        log_dir=log_dir,
        level="INFO",
        verbose=False,
        filename="test.log",
    )

    logger.debug("filtered out")
    logger.info("command failed", extra={"command": "show", "quiz_id": 3})

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "value": {"items": [Path(log_dir), 1], "mapping": {"k": "v"}},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    contents = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(contents) == 2
    first = json.loads(contents[0])
    assert first["message"] == "command failed"
    assert first["level"] == "INFO"
    assert first["logger"] == "quiz_trainer.test"
    assert first["extra"] == {"command": "show", "quiz_id": 3}

    payload = json.loads(contents[-1])
    assert "ValueError: boom" in payload["exception"]
    assert payload["extra"]["obj"] == "helper"
    assert payload["extra"]["value"]["items"] == [str(log_dir), 1]

    _reset(logger)


def test_configure_logger_default_filename(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "quiz_trainer.defaults", log_dir=tmp_path
    )

    assert log_path == tmp_path / "defaults.log"
    assert logger.propagate is False

    _reset(logger)


def test_reconfiguring_retargets_file_handler(tmp_path):
    name = "quiz_trainer.test_retarget"
    logger, first = core_logging.configure_logger(
        name, log_dir=tmp_path / "one", filename="a.log"
    )
    logger, second = core_logging.configure_logger(
        name, log_dir=tmp_path / "two", filename="a.log"
    )

    file_handlers = _handlers(logger, "_quiz_trainer_file")
    assert len(file_handlers) == 1
    assert Path(file_handlers[0].baseFilename) == second
    assert first != second

    _reset(logger)


def test_console_handler_toggle(tmp_path):
    log_dir = tmp_path / "logs"
    logger_name = "quiz_trainer.test_toggle"

    logger, _ = core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_handlers(logger, "_quiz_trainer_console")) == 1

    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(_handlers(logger, "_quiz_trainer_console")) == 1

    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not _handlers(logger, "_quiz_trainer_console")

    _reset(logger)


def test_verbose_lowers_file_level(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "quiz_trainer.test_verbose",
        log_dir=tmp_path,
        level="ERROR",
        verbose=True,
        filename="verbose.log",
    )
    logger.removeHandler(_handlers(logger, "_quiz_trainer_console")[0])

    logger.debug("detail")
    for handler in logger.handlers:
        handler.flush()

    assert "detail" in log_path.read_text(encoding="utf-8")

    _reset(logger)


def test_coerce_level_defaults():
    assert core_logging._coerce_level("bogus") == logging.INFO
    assert core_logging._coerce_level("warning") == logging.WARNING
