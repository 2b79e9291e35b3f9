"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi import Path as PathParam
from fastapi.responses import JSONResponse

from food_capture.api.models import (
    CaptureResponse,
    DepthAnalysisModel,
    NutritionRecordModel,
    ServerSettingsBody,
)
from food_capture.app_logging import configure_logging
from food_capture.containers import AppContainer
from food_capture.domain.errors import (
    CaptureBusyError,
    CaptureError,
    MissingArtifactError,
)
from food_capture.services.response_mapper import format_records


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Uploading frames to %s", app.state.container.endpoint.process_url
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/capture", response_model=None)
    async def capture(request: Request) -> CaptureResponse | JSONResponse:
        """Capture a frame pair, upload it and return nutrition records."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.orchestrator.capture_and_upload()
        except CaptureBusyError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=str(exc)
            ) from exc
        if not result.success:
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content={"status": "failed", "key": result.key, "cause": result.cause},
            )
        return CaptureResponse(
            key=result.key,
            attempts=result.upload.attempts if result.upload else 0,
            records=[NutritionRecordModel(**asdict(r)) for r in result.records],
            summary=format_records(result.records),
        )

    @app.get("/settings/server")
    async def get_server_settings(request: Request) -> ServerSettingsBody:
        """Return the processing service base URI."""
        state_container: AppContainer = request.app.state.container
        return ServerSettingsBody(base_uri=state_container.endpoint.base_uri)

    @app.put("/settings/server")
    async def update_server_settings(
        body: ServerSettingsBody, request: Request
    ) -> ServerSettingsBody:
        """Point later uploads at a new processing service."""
        state_container: AppContainer = request.app.state.container
        state_container.endpoint.update(body.base_uri)
        logger.info("Server URI updated to: %s", state_container.endpoint.base_uri)
        return ServerSettingsBody(base_uri=state_container.endpoint.base_uri)

    @app.get("/frames/{key}/depth")
    async def depth_analysis(
        request: Request,
        key: str = PathParam(pattern=r"^[0-9_]+$"),
    ) -> DepthAnalysisModel:
        """Return full-frame statistics for a stored depth frame."""
        state_container: AppContainer = request.app.state.container
        try:
            analysis = state_container.orchestrator.analyze_depth(key)
        except MissingArtifactError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        except CaptureError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        return DepthAnalysisModel(key=key, **asdict(analysis))

    return app
