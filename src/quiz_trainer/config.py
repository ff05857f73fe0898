"""Configuration loader for quiz-trainer sessions and the socket server."""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from quiz_trainer.core import workspace as workspace_mod

CONFIG_FILENAME = "quiz_trainer.toml"
CONFIG_ENV = "QUIZ_TRAINER_CONFIG"
ENV_PREFIX = "QUIZ_TRAINER_"
STORE_FILENAME = "quizzes.json"

_DEFAULTS: dict[str, Any] = {
    "store": {"path": None, "seed": True},
    "server": {"host": "127.0.0.1", "port": 3030},
    "session": {"prompt": "quiz > "},
    "logging": {"level": "INFO", "verbose": False},
}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class QuizTrainerConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class StoreConfig:
    path: Path
    seed: bool


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizTrainerConfig:
    """Fully resolved configuration for a session or server run."""

    store: StoreConfig
    server: ServerConfig
    prompt: str
    logging: LoggingConfig


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    store_path: Optional[Path] = None
    seed: Optional[bool] = None
    host: Optional[str] = None
    port: Optional[int] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizTrainerConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document, surfacing failures as config errors."""

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise QuizTrainerConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise QuizTrainerConfigError(
            f"Failed to read config {path}: {exc}"
        ) from exc
    except tomllib.TOMLDecodeError as exc:
        raise QuizTrainerConfigError(
            f"Failed to parse config TOML: {exc}"
        ) from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base`` enforcing known keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise QuizTrainerConfigError(
                f"Unknown configuration key '{dotted}'."
            )
        if isinstance(base[key], MutableMapping):
            if not isinstance(value, Mapping):
                raise QuizTrainerConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted, type(value).__name__
                    )
                )
            merge_defaults(base[key], value, path=f"{dotted}.")
            continue
        base[key] = value


def read_template() -> str:
    """Return the packaged configuration template."""

    resource = resources.files("quiz_trainer").joinpath("template.toml")
    return resource.read_text(encoding="utf-8")


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    """Write the packaged template to ``path`` honouring ``overwrite``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise QuizTrainerConfigError(f"Config already exists: {path}")
    path.write_text(read_template(), encoding="utf-8")
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizTrainerConfigError(str(exc)) from exc

    default_path = layout.path_for("config") / CONFIG_FILENAME
    env_config = (env_map.get(CONFIG_ENV) or "").strip()
    if config_path is not None:
        requested = Path(config_path).expanduser()
    elif env_config:
        requested = Path(env_config).expanduser()
    else:
        requested = default_path

    table = copy.deepcopy(_DEFAULTS)
    loaded_path: Optional[Path] = None
    if requested.exists():
        merge_defaults(table, load_toml(requested))
        loaded_path = requested
    elif config_path is not None or env_config:
        raise QuizTrainerConfigError(f"Config file not found: {requested}")

    store_path = _pick_first(
        overrides.store_path,
        _env_path(env_map, "STORE_PATH"),
        _optional_path(table["store"]["path"], field="store.path"),
    )
    if store_path is None:
        store_path = layout.path_for("store") / STORE_FILENAME

    seed = _pick_first(
        overrides.seed,
        _env_bool(env_map, "STORE_SEED"),
        _require_bool(table["store"]["seed"], field="store.seed"),
    )
    host = _pick_first(
        overrides.host,
        _env_string(env_map, "HOST"),
        _require_string(table["server"]["host"], field="server.host"),
    )
    port = _require_port(
        _pick_first(
            overrides.port,
            _env_int(env_map, "PORT"),
            table["server"]["port"],
        )
    )
    prompt = table["session"]["prompt"]
    if not isinstance(prompt, str) or not prompt:
        raise QuizTrainerConfigError(
            "'session.prompt' must be a non-empty string."
        )
    level = _pick_first(
        _env_string(env_map, "LOG_LEVEL"),
        _require_string(table["logging"]["level"], field="logging.level"),
    ).upper()
    if level not in _LOG_LEVELS:
        expected = ", ".join(sorted(_LOG_LEVELS))
        raise QuizTrainerConfigError(
            f"Unknown log level '{level}'. Expected one of: {expected}."
        )
    verbose = _pick_first(
        overrides.verbose or None,
        _require_bool(table["logging"]["verbose"], field="logging.verbose"),
    )

    config = QuizTrainerConfig(
        store=StoreConfig(path=store_path, seed=seed),
        server=ServerConfig(host=host, port=port),
        prompt=prompt,
        logging=LoggingConfig(level=level, verbose=verbose),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _pick_first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizTrainerConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise QuizTrainerConfigError(f"'{field}' must be a boolean.")
    return value


def _require_port(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QuizTrainerConfigError("'server.port' must be an integer.")
    if not 0 <= value <= 65535:
        raise QuizTrainerConfigError(
            "'server.port' must be between 0 and 65535."
        )
    return value


def _optional_path(value: Any, *, field: str) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise QuizTrainerConfigError(
            f"'{field}' must be a non-empty string when set."
        )
    return Path(value).expanduser()


def _env_string(env: Mapping[str, str], suffix: str) -> Optional[str]:
    raw = env.get(ENV_PREFIX + suffix)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_path(env: Mapping[str, str], suffix: str) -> Optional[Path]:
    raw = _env_string(env, suffix)
    return Path(raw).expanduser() if raw else None


def _env_int(env: Mapping[str, str], suffix: str) -> Optional[int]:
    raw = _env_string(env, suffix)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise QuizTrainerConfigError(
            f"{ENV_PREFIX}{suffix} must be an integer, got '{raw}'."
        ) from exc


def _env_bool(env: Mapping[str, str], suffix: str) -> Optional[bool]:
    raw = _env_string(env, suffix)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise QuizTrainerConfigError(
        f"{ENV_PREFIX}{suffix} must be a boolean, got '{raw}'."
    )
