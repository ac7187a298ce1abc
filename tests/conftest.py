from pathlib import Path

import pytest

from cleanmark.config import AppConfig, RuntimeConfig
from cleanmark.service import ConversionService


def build_config(output_dir: Path | None = None, **runtime) -> AppConfig:
    config = RuntimeConfig(**runtime)
    if output_dir is None:
        config.log_file = None
    else:
        config.output_dir = output_dir
    return AppConfig(runtime=config)


@pytest.fixture
def service() -> ConversionService:
    return ConversionService(build_config())
