"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from food_capture.adapters.local_artifact_sink import LocalArtifactSink
from food_capture.adapters.processing_client import HttpxProcessingClient
from food_capture.adapters.replay_sensor import (
    ReplayColorSource,
    ReplayDepthSource,
    UnavailableSource,
)
from food_capture.config import ServerEndpoint, Settings
from food_capture.services.capture import CaptureOrchestrator, FrameSource
from food_capture.services.depth_codec import DepthCodec
from food_capture.services.frame_store import FrameStore
from food_capture.services.response_mapper import ResponseMapper
from food_capture.services.rgb_codec import RgbCodec
from food_capture.services.upload import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    endpoint: ServerEndpoint
    frame_store: FrameStore
    upload_service: UploadService
    response_mapper: ResponseMapper
    orchestrator: CaptureOrchestrator
    close_resources: Callable[[], Awaitable[None]]


def build_container(
    settings: Settings | None = None,
    depth_source: FrameSource | None = None,
    color_source: FrameSource | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    endpoint = ServerEndpoint(base_uri=resolved_settings.server_base_uri)
    frame_store = FrameStore(LocalArtifactSink.create(resolved_settings.artifact_dir))
    processing_client = HttpxProcessingClient.create(
        endpoint,
        timeout_seconds=resolved_settings.upload_timeout_seconds,
        connect_timeout_seconds=resolved_settings.connect_timeout_seconds,
    )
    upload_service = UploadService(
        client=processing_client,
        frame_store=frame_store,
        max_attempts=resolved_settings.upload_max_attempts,
        backoff_seconds=resolved_settings.upload_backoff_seconds,
    )
    response_mapper = ResponseMapper()
    if resolved_settings.replay_dir:
        replay_dir = Path(resolved_settings.replay_dir).expanduser()
        depth_source = depth_source or ReplayDepthSource(replay_dir)
        color_source = color_source or ReplayColorSource(replay_dir)
    orchestrator = CaptureOrchestrator(
        depth_source=depth_source or UnavailableSource("Depth"),
        color_source=color_source or UnavailableSource("RGB"),
        depth_codec=DepthCodec(),
        rgb_codec=RgbCodec(),
        frame_store=frame_store,
        upload_service=upload_service,
        response_mapper=response_mapper,
        settle_delay_seconds=resolved_settings.settle_delay_seconds,
        mirror_rgb=resolved_settings.mirror_rgb,
    )

    async def close_resources() -> None:
        await processing_client.close()

    return AppContainer(
        settings=resolved_settings,
        endpoint=endpoint,
        frame_store=frame_store,
        upload_service=upload_service,
        response_mapper=response_mapper,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
