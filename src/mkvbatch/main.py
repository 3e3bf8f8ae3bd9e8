"""Main entry point for the mkvbatch API server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mkvbatch import __version__
from mkvbatch.api.deps import init_inspector, init_queue, to_http_error
from mkvbatch.api.routes import health, media, queue, session
from mkvbatch.config import settings
from mkvbatch.errors import MKVBatchError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize resources on startup, clean up on shutdown."""
    init_queue()
    init_inspector(ffprobe_path=settings.ffprobe_path)
    logger.info("mkvbatch %s ready (ffprobe: %s)", __version__, settings.ffprobe_path)
    yield


async def domain_error_handler(request: Request, exc: MKVBatchError) -> JSONResponse:
    """Render domain errors that escaped a route as JSON HTTP errors."""
    error = to_http_error(exc)
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="mkvbatch",
        description="Track matching and mux job assembly for batch MKV remuxing",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(MKVBatchError, domain_error_handler)

    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(queue.router)
    app.include_router(media.router)

    return app


app = create_app()


def main() -> None:
    """Run the application."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings.ensure_directories()
    uvicorn.run(
        "mkvbatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
