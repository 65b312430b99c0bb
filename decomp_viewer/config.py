"""Configuration loading for the decompiler viewer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

CONFIG_PATH_ENV = "DECOMP_VIEWER_CONFIG"
ENGINE_JAR_ENV = "DECOMP_VIEWER_ENGINE_JAR"
JAVA_HOME_ENV = "JAVA_HOME"

DEFAULT_ENGINE_OPTIONS: Dict[str, str] = {
    "ind": "   ",
    "din": "1",
    "dgs": "1",
    "hes": "1",
    "hdc": "1",
}
DEFAULT_EXTENSION = ".java"
DEFAULT_POLL_INTERVAL_MS = 150


class ConfigError(RuntimeError):
    """Raised when a configuration file or override is malformed."""


@dataclass(frozen=True)
class ViewerConfig:
    engine_jar: Optional[Path] = None
    java: Optional[Path] = None
    engine_options: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_ENGINE_OPTIONS)
    )
    extension: str = DEFAULT_EXTENSION
    delimiter: str = "/"
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    def with_options(self, overrides: Mapping[str, str]) -> "ViewerConfig":
        options = dict(self.engine_options)
        options.update(overrides)
        return replace(self, engine_options=options)


def load_config(
    path: Optional[Path] = None, *, environ: Optional[Mapping[str, str]] = None
) -> ViewerConfig:
    """Build a config from defaults, an optional JSON file and the environment."""

    env = os.environ if environ is None else environ
    config = ViewerConfig()

    if path is None and env.get(CONFIG_PATH_ENV):
        path = Path(env[CONFIG_PATH_ENV])
    if path is not None:
        config = _apply_file(config, path.expanduser())

    engine_jar = env.get(ENGINE_JAR_ENV)
    if engine_jar:
        config = replace(config, engine_jar=Path(engine_jar).expanduser())

    java_home = env.get(JAVA_HOME_ENV)
    if config.java is None and java_home:
        candidate = Path(java_home) / "bin" / ("java.exe" if os.name == "nt" else "java")
        if candidate.is_file():
            config = replace(config, java=candidate)

    return config


def parse_option_overrides(values: Optional[Sequence[str]]) -> Dict[str, str]:
    """Parse ``key=value`` pairs given on the command line."""

    overrides: Dict[str, str] = {}
    for value in values or []:
        key, separator, option_value = value.partition("=")
        key = key.strip().lstrip("-")
        if not separator or not key:
            raise ConfigError(f"Engine option must use key=value syntax: {value}")
        overrides[key] = option_value
    return overrides


def _apply_file(config: ViewerConfig, path: Path) -> ViewerConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top-level value must be an object")

    updates: dict[str, object] = {}
    for key in ("engine_jar", "java"):
        if key in data:
            value = data[key]
            if not isinstance(value, str):
                raise ConfigError(f"{path}: {key} must be a string")
            updates[key] = (path.parent / Path(value).expanduser()).resolve()

    if "engine_options" in data:
        options = data["engine_options"]
        if not isinstance(options, dict):
            raise ConfigError(f"{path}: engine_options must be an object")
        merged = dict(DEFAULT_ENGINE_OPTIONS)
        merged.update({str(key): str(value) for key, value in options.items()})
        updates["engine_options"] = merged

    for key in ("extension", "delimiter"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value:
                raise ConfigError(f"{path}: {key} must be a non-empty string")
            updates[key] = value

    if "poll_interval_ms" in data:
        interval = data["poll_interval_ms"]
        if not isinstance(interval, int) or isinstance(interval, bool) or interval <= 0:
            raise ConfigError(f"{path}: poll_interval_ms must be a positive integer")
        updates["poll_interval_ms"] = interval

    return replace(config, **updates)


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigError",
    "DEFAULT_ENGINE_OPTIONS",
    "DEFAULT_EXTENSION",
    "ENGINE_JAR_ENV",
    "ViewerConfig",
    "load_config",
    "parse_option_overrides",
]
