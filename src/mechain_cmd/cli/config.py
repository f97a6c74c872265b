"""Configuration helpers for the mechain-cmd CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mechain_cmd.keystore import DEFAULT_KEY_FILE
from mechain_cmd.logging_utils import resolve_level
from mechain_cmd.types import DEFAULT_PAGE_SIZE

DEFAULT_CONFIG_PATH = Path.home() / ".mechain_cmd" / "config.toml"
DEFAULT_GATEWAY_BASE = "http://localhost:8080"
DEFAULT_CHAIN_ID = "mechain_5151-1"
GATEWAY_BASE_ENV_VAR = "MECHAIN_GATEWAY_BASE"
CHAIN_ID_ENV_VAR = "MECHAIN_CHAIN_ID"
KEY_FILE_ENV_VAR = "MECHAIN_KEY_FILE"


@dataclass(frozen=True)
class CLIConfig:
    gateway_base: str = DEFAULT_GATEWAY_BASE
    chain_id: str = DEFAULT_CHAIN_ID
    key_file: str = str(DEFAULT_KEY_FILE)
    tx_timeout_seconds: int = 60
    poll_seconds: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sessions_dir: str = str(Path.home() / ".mechain_cmd" / "sessions")
    log_level: str = "warning"


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _to_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a positive integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be a positive integer") from exc
    if parsed < 1:
        raise ConfigError(f"{field_name} must be a positive integer")
    return parsed


def _non_empty(source: dict[str, Any], key: str, default: str, env_var: str | None = None) -> str:
    env_value = os.getenv(env_var) if env_var else None
    if env_value and env_value.strip():
        return env_value.strip()
    value = str(source.get(key, default)).strip()
    if not value:
        raise ConfigError(f"{key} must not be empty")
    return value


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        parsed = _load_toml(config_path)
    else:
        parsed = {}

    section = parsed.get("cli")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[cli] must be a table")

    defaults = CLIConfig()
    log_level = str(source.get("log_level", defaults.log_level)).strip().lower()
    try:
        resolve_level(log_level)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    return CLIConfig(
        gateway_base=_non_empty(source, "gateway_base", defaults.gateway_base, GATEWAY_BASE_ENV_VAR),
        chain_id=_non_empty(source, "chain_id", defaults.chain_id, CHAIN_ID_ENV_VAR),
        key_file=_non_empty(source, "key_file", defaults.key_file, KEY_FILE_ENV_VAR),
        tx_timeout_seconds=_to_positive_int(
            source.get("tx_timeout_seconds", defaults.tx_timeout_seconds), "tx_timeout_seconds"
        ),
        poll_seconds=_to_positive_int(source.get("poll_seconds", defaults.poll_seconds), "poll_seconds"),
        page_size=_to_positive_int(source.get("page_size", defaults.page_size), "page_size"),
        sessions_dir=_non_empty(source, "sessions_dir", defaults.sessions_dir),
        log_level=log_level,
    )
