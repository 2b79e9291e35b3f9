"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np
import pytest

from food_capture.config import ServerEndpoint, Settings
from food_capture.containers import AppContainer
from food_capture.domain.frames import SensorImage, SensorPlane
from food_capture.domain.upload import ProcessingResponse, UploadPayload
from food_capture.services.capture import CaptureOrchestrator, FrameSource
from food_capture.services.depth_codec import DepthCodec
from food_capture.services.frame_store import ArtifactSink, FrameStore
from food_capture.services.response_mapper import ResponseMapper
from food_capture.services.rgb_codec import RgbCodec
from food_capture.services.upload import ProcessingClient, UploadService

EGG_RESPONSE: dict[str, object] = {
    "success": True,
    "data": {
        "frame_id": "130043.51440302501",
        "volumes": [
            {
                "object_name": "egg",
                "volume_cups": 0.41,
                "uncertainty_cups": 0.041,
            }
        ],
    },
    "macronutrients": {
        "data": [
            {
                "requested_food": "egg",
                "found": True,
                "macros": {
                    "calories": 596.66,
                    "protein": 46.68,
                    "fat": 42.68,
                    "carbs": 2.28,
                },
                "volume": 0.41,
                "calculated_weight": 100,
            }
        ]
    },
}

FIXED_CAPTURE_TIME = datetime(2025, 3, 14, 9, 26, 53, 589000)
FIXED_KEY = "20250314_092653_589"


def strided_plane(
    values: np.ndarray, row_padding: int = 0, pixel_padding: int = 0
) -> SensorPlane:
    """Lay out a 2D array as a padded plane, filling padding with 0xFF."""
    height, width = values.shape[:2]
    bytes_per_pixel = values.dtype.itemsize * (
        values.shape[2] if values.ndim == 3 else 1
    )
    pixel_stride = bytes_per_pixel + pixel_padding
    row_stride = width * pixel_stride + row_padding
    buffer = bytearray(b"\xff" * (row_stride * height))
    for y in range(height):
        for x in range(width):
            offset = y * row_stride + x * pixel_stride
            buffer[offset : offset + bytes_per_pixel] = values[y, x].tobytes()
    return SensorPlane(
        data=bytes(buffer), row_stride=row_stride, pixel_stride=pixel_stride
    )


def depth_image(
    millimeters: np.ndarray, row_padding: int = 0, timestamp: float = 12.5
) -> SensorImage:
    """Build a DepthUint16 sensor image from a grid of millimeters."""
    values = millimeters.astype("<u2")
    height, width = values.shape
    return SensorImage(
        width=width,
        height=height,
        format="DepthUint16",
        timestamp=timestamp,
        planes=[strided_plane(values, row_padding=row_padding)],
    )


def color_image(pixels: np.ndarray, timestamp: float = 12.5) -> SensorImage:
    """Build an RGBA32 sensor image from an ``H x W x 4`` array."""
    height, width = pixels.shape[:2]
    return SensorImage(
        width=width,
        height=height,
        format="RGBA32",
        timestamp=timestamp,
        planes=[strided_plane(pixels.astype(np.uint8), row_padding=8)],
    )


@dataclass
class InMemoryArtifactSink(ArtifactSink):
    """In-memory artifact sink for tests."""

    artifacts: dict[str, bytes] = field(default_factory=dict)

    def write(self, name: str, data: bytes) -> None:
        self.artifacts[name] = data

    def read(self, name: str) -> bytes | None:
        return self.artifacts.get(name)

    def exists(self, name: str) -> bool:
        return name in self.artifacts

    def delete(self, name: str) -> None:
        self.artifacts.pop(name, None)


@dataclass
class ScriptedProcessingClient(ProcessingClient):
    """Processing client replaying scripted responses or errors."""

    script: list[ProcessingResponse | Exception] = field(default_factory=list)
    calls: list[UploadPayload] = field(default_factory=list)

    async def submit(self, payload: UploadPayload) -> ProcessingResponse:
        self.calls.append(payload)
        step = self.script.pop(0) if self.script else ok_response()
        if isinstance(step, Exception):
            raise step
        return step


@dataclass
class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class StaticFrameSource(FrameSource):
    """Frame source returning a fixed image, optionally after a gate opens."""

    image: SensorImage | None
    gate: asyncio.Event | None = None
    acquired: int = 0

    async def acquire(self) -> SensorImage | None:
        self.acquired += 1
        if self.gate is not None:
            await self.gate.wait()
        return self.image


def ok_response(payload: dict[str, object] | None = None) -> ProcessingResponse:
    return ProcessingResponse(
        status_code=200, body=json.dumps(payload or EGG_RESPONSE)
    )


def build_orchestrator(  # noqa: PLR0913
    *,
    depth_source: FrameSource,
    color_source: FrameSource,
    client: ProcessingClient,
    sink: InMemoryArtifactSink | None = None,
    sleep: RecordingSleep | None = None,
) -> CaptureOrchestrator:
    frame_store = FrameStore(sink if sink is not None else InMemoryArtifactSink())
    recorder = sleep or RecordingSleep()
    upload_service = UploadService(
        client=client, frame_store=frame_store, sleep=recorder
    )
    return CaptureOrchestrator(
        depth_source=depth_source,
        color_source=color_source,
        depth_codec=DepthCodec(),
        rgb_codec=RgbCodec(),
        frame_store=frame_store,
        upload_service=upload_service,
        response_mapper=ResponseMapper(),
        clock=lambda: FIXED_CAPTURE_TIME,
        sleep=recorder,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        server_base_uri="http://processing.test:5000",
        artifact_dir=str(tmp_path / "artifacts"),
    )


@pytest.fixture
def depth_grid() -> np.ndarray:
    grid = np.full((9, 9), 2500, dtype=np.uint16)
    grid[2:7, 2:7] = 800
    grid[4, 4] = 750
    return grid


@pytest.fixture
def color_pixels() -> np.ndarray:
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(6, 8, 4), dtype=np.uint8)


@pytest.fixture
def processing_client() -> ScriptedProcessingClient:
    return ScriptedProcessingClient()


@pytest.fixture
def sink() -> InMemoryArtifactSink:
    return InMemoryArtifactSink()


@pytest.fixture
def container(
    settings: Settings,
    depth_grid: np.ndarray,
    color_pixels: np.ndarray,
    processing_client: ScriptedProcessingClient,
    sink: InMemoryArtifactSink,
) -> AppContainer:
    orchestrator = build_orchestrator(
        depth_source=StaticFrameSource(depth_image(depth_grid)),
        color_source=StaticFrameSource(color_image(color_pixels)),
        client=processing_client,
        sink=sink,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        endpoint=ServerEndpoint(base_uri=settings.server_base_uri),
        frame_store=orchestrator.frame_store,
        upload_service=orchestrator.upload_service,
        response_mapper=orchestrator.response_mapper,
        orchestrator=orchestrator,
        close_resources=close_resources,
    )
