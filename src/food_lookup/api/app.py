"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from food_lookup.api.food import router as food_router
from food_lookup.app_logging import configure_logging
from food_lookup.containers import AppContainer
from food_lookup.domain.errors import CallerInputError, UpstreamUnavailable


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.debug)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(food_router)

    @app.exception_handler(CallerInputError)
    async def caller_input_error(
        request: Request, exc: CallerInputError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UpstreamUnavailable)
    async def upstream_unavailable(
        request: Request, exc: UpstreamUnavailable
    ) -> JSONResponse:
        logger.warning("Upstream unavailable for %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content={"detail": "Food database is unavailable, try again later"},
            headers={"Retry-After": "5"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
