from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from .. import __version__
from ..config import AppConfig, load_config
from ..service import ConversionService
from ..settings import get_settings
from .routers import convert, health


def create_app(
    config: AppConfig | None = None,
    *,
    config_path: Path | None = None,
    require_enabled: bool = True,
) -> FastAPI:
    if config is None:
        settings = get_settings()
        config = settings.apply_to(load_config(config_path or settings.config_path))
    if require_enabled and not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    app = FastAPI(title="cleanmark", version=__version__)
    app.state.service = ConversionService(config)

    app.include_router(health.router)
    app.include_router(convert.router)
    return app


__all__ = ["create_app"]
