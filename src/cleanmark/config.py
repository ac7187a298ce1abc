from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .models import ConversionOptions


CONFIG_FILE = Path("config.toml")
DEFAULT_MAX_INPUT_BYTES = 5 * 1024 * 1024


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    log_file: str | None = "log.jsonl"
    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES
    parallelism: int = 1
    enable_local_api: bool = False

    @property
    def log_path(self) -> Path | None:
        if not self.log_file:
            return None
        return self.output_dir / self.log_file


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    defaults: ConversionOptions = field(default_factory=ConversionOptions)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    log_file = data.get("log_file", "log.jsonl")
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        log_file=str(log_file) if log_file else None,
        max_input_bytes=int(data.get("max_input_bytes", DEFAULT_MAX_INPUT_BYTES)),
        parallelism=max(1, int(data.get("parallelism", 1))),
        enable_local_api=bool(data.get("enable_local_api", False)),
    )


def _build_defaults(data: Mapping[str, object] | None) -> ConversionOptions:
    if not data:
        return ConversionOptions()
    try:
        return ConversionOptions.from_mapping(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid [defaults] configuration: {exc}") from exc


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else None


def load_config(path: Path | None = None) -> AppConfig:
    """Read ``config.toml``; missing files and sections fall back to defaults."""
    raw = _read_toml(path or CONFIG_FILE)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        defaults=_build_defaults(_section(raw, "defaults")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "max_input_bytes": config.runtime.max_input_bytes,
            "parallelism": config.runtime.parallelism,
            "enable_local_api": config.runtime.enable_local_api,
        },
        "defaults": config.defaults.as_dict(),
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)
