"""Read-only web view of the register bank: FastAPI app served by uvicorn in the slave's event loop."""

import logging
from importlib import resources

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from . import __version__
from .registers import RegisterBank

logger = logging.getLogger(__name__)

_FRONTEND_PACKAGE = "pyrtu_slave.frontend"

_ASSETS: dict[str, str] = {
    "index.js": "text/javascript",
    "style.css": "text/css",
}


class TagsResponse(BaseModel):
    tags: list[int]


def _read_asset(name: str) -> str:
    with resources.files(_FRONTEND_PACKAGE).joinpath(name).open("r", encoding="utf-8") as f:
        return f.read()


def create_dashboard_app(bank: RegisterBank) -> FastAPI:
    """Dashboard app over bank. Only ever reads bank snapshots."""
    app = FastAPI(
        title="pyrtu-slave web view",
        description="Holding register monitor",
        version=__version__,
    )

    @app.get("/api", response_model=TagsResponse)
    async def get_tags() -> TagsResponse:
        return TagsResponse(tags=bank.snapshot())

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(_read_asset("index.html"))

    @app.get("/{name}")
    async def asset(name: str) -> Response:
        media_type = _ASSETS.get(name)
        if media_type is None:
            raise HTTPException(status_code=404, detail="Not Found")
        return Response(_read_asset(name), media_type=media_type)

    return app


def create_dashboard_server(bank: RegisterBank, host: str, port: int) -> uvicorn.Server:
    """uvicorn server for the dashboard; await its serve() inside a running loop."""
    config = uvicorn.Config(
        create_dashboard_app(bank),
        host=host,
        port=port,
        log_level="debug" if logger.isEnabledFor(logging.DEBUG) else "warning",
        access_log=False,
    )
    return uvicorn.Server(config)
