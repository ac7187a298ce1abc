"""Environment overrides layered on top of ``config.toml``."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from .config import CONFIG_FILE, AppConfig

ENV_PREFIX = "CLEANMARK_"
_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class Settings:
    config_path: Path = CONFIG_FILE
    enable_local_api: bool | None = None
    max_input_bytes: int | None = None
    parallelism: int | None = None

    def apply_to(self, config: AppConfig) -> AppConfig:
        """Override the runtime section with every variable that was set."""
        runtime = config.runtime
        if self.enable_local_api is not None:
            runtime.enable_local_api = self.enable_local_api
        if self.max_input_bytes is not None:
            runtime.max_input_bytes = self.max_input_bytes
        if self.parallelism is not None:
            runtime.parallelism = max(1, self.parallelism)
        return config


def _env(name: str) -> str | None:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_flag(name: str) -> bool | None:
    value = _env(name)
    if value is None:
        return None
    if value.lower() in _TRUE:
        return True
    if value.lower() in _FALSE:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {value!r}")


def _env_int(name: str) -> int | None:
    value = _env(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {value!r}") from exc


@lru_cache
def get_settings() -> Settings:
    config_path = _env("CONFIG_PATH")
    return Settings(
        config_path=Path(config_path) if config_path else CONFIG_FILE,
        enable_local_api=_env_flag("ENABLE_LOCAL_API"),
        max_input_bytes=_env_int("MAX_INPUT_BYTES"),
        parallelism=_env_int("PARALLELISM"),
    )


__all__ = ["ENV_PREFIX", "Settings", "get_settings"]
