"""ASGI entry point for ``uvicorn main:app``."""

from fastapi import FastAPI, HTTPException

from cleanmark import __version__
from cleanmark.api import create_app

try:
    app = create_app()
except RuntimeError as exc:
    disabled_reason = str(exc)
    app = FastAPI(title="cleanmark (disabled)", version=__version__)

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    async def api_disabled(path: str) -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail=f"{disabled_reason} Set enable_local_api = true in config.toml or CLEANMARK_ENABLE_LOCAL_API=1.",
        )
