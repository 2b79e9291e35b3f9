"""Capture, store and upload orchestration."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from food_capture.domain.errors import (
    CaptureBusyError,
    CaptureError,
    InvalidLayoutError,
    MalformedResponseError,
)
from food_capture.domain.frames import (
    DepthAnalysis,
    PlaneLayout,
    SensorImage,
    frame_key,
)
from food_capture.domain.nutrition import NutritionRecord
from food_capture.domain.upload import UploadOutcome
from food_capture.services.depth_codec import DepthCodec, resolve_depth_format
from food_capture.services.frame_store import FrameStore
from food_capture.services.response_mapper import ResponseMapper
from food_capture.services.rgb_codec import RgbCodec
from food_capture.services.upload import UploadService

_logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Sensor capability that yields the latest image."""

    async def acquire(self) -> SensorImage | None:
        """Return the latest image, or None when none is available."""


@dataclass(frozen=True)
class CaptureResult:
    """Single success/failure signal for one capture cycle."""

    success: bool
    key: str
    records: list[NutritionRecord] = field(default_factory=list)
    cause: str | None = None
    upload: UploadOutcome | None = None


@dataclass
class CaptureOrchestrator:
    """Sequences capture, encode, store, upload and response mapping."""

    depth_source: FrameSource
    color_source: FrameSource
    depth_codec: DepthCodec
    rgb_codec: RgbCodec
    frame_store: FrameStore
    upload_service: UploadService
    response_mapper: ResponseMapper
    settle_delay_seconds: float = 0.1
    mirror_rgb: bool = True
    clock: Callable[[], datetime] = datetime.now
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _guard: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def busy(self) -> bool:
        """Whether a capture cycle is in progress."""
        return self._guard.locked()

    async def capture_and_upload(self) -> CaptureResult:
        """Run one full cycle, rejecting re-entry with ``CaptureBusyError``."""
        if self._guard.locked():
            raise CaptureBusyError
        async with self._guard:
            return await self._run_cycle(frame_key(self.clock()))

    async def capture_depth(self, key: str) -> bool:
        """Capture, encode and store one depth frame.

        Returns False when the sensor had no frame or the store failed; codec
        errors propagate.
        """
        image = await self.depth_source.acquire()
        if image is None:
            _logger.warning("No depth image available for %s", key)
            return False
        if not image.planes:
            raise InvalidLayoutError("Depth image has no planes")
        plane = image.planes[0]
        depth_format = resolve_depth_format(image.format)
        layout = PlaneLayout(
            width=image.width,
            height=image.height,
            row_stride=plane.row_stride,
            pixel_stride=plane.pixel_stride,
            bytes_per_pixel=depth_format.bytes_per_pixel,
        )
        raw = self.depth_codec.pack(plane.data, layout, depth_format)
        metadata = self.depth_codec.compute_metadata(
            plane, image.width, image.height, depth_format, image.timestamp
        )
        try:
            self.frame_store.save_depth(key, raw, metadata)
        except OSError:
            _logger.exception("Failed to save depth frame %s", key)
            return False
        _logger.info(
            "Depth %s: %sx%s center=%.3fm min=%.3fm max=%.3fm",
            key,
            metadata.width,
            metadata.height,
            metadata.center_pixel_depth,
            metadata.min_depth,
            metadata.max_depth,
        )
        return True

    async def capture_rgb(self, key: str) -> bool:
        """Capture, encode and store one color frame."""
        image = await self.color_source.acquire()
        if image is None:
            _logger.warning("No RGB image available for %s", key)
            return False
        if not image.planes:
            raise InvalidLayoutError("RGB image has no planes")
        pixels = self.rgb_codec.convert(
            image.planes[0],
            image.width,
            image.height,
            image.format,
            mirror_y=self.mirror_rgb,
        )
        encoded = self.rgb_codec.encode_image(pixels, image.width, image.height)
        metadata = self.rgb_codec.compute_metadata(
            image.width, image.height, image.timestamp
        )
        try:
            self.frame_store.save_rgb(key, encoded, metadata)
        except OSError:
            _logger.exception("Failed to save RGB frame %s", key)
            return False
        return True

    def analyze_depth(self, key: str) -> DepthAnalysis:
        """Load a stored depth frame and summarize the full grid."""
        metadata, raw = self.frame_store.load_depth(key)
        grid = self.depth_codec.round_trip(metadata, raw)
        return self.depth_codec.analyze(grid)

    async def _run_cycle(self, key: str) -> CaptureResult:
        results = await asyncio.gather(
            self.capture_depth(key), self.capture_rgb(key), return_exceptions=True
        )
        for result in results:
            if isinstance(result, CaptureError):
                _logger.error("Capture %s aborted: %s", key, result)
                return CaptureResult(success=False, key=key, cause=str(result))
            if isinstance(result, BaseException):
                raise result

        await self.sleep(self.settle_delay_seconds)

        outcome = await self.upload_service.upload(self.frame_store.request_for(key))
        if not outcome.succeeded:
            return CaptureResult(
                success=False, key=key, cause=str(outcome.error), upload=outcome
            )
        try:
            records = self.response_mapper.map(outcome.body or "")
        except MalformedResponseError as exc:
            _logger.error("Capture %s response rejected: %s", key, exc)
            return CaptureResult(
                success=False, key=key, cause=str(exc), upload=outcome
            )
        _logger.info("Capture %s mapped %s food record(s)", key, len(records))
        return CaptureResult(success=True, key=key, records=records, upload=outcome)
