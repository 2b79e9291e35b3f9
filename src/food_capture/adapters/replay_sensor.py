"""File-backed frame sources that replay previously captured frames."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from food_capture.domain.frames import (
    ColorFormat,
    DepthFrameMetadata,
    SensorImage,
    SensorPlane,
)
from food_capture.services.capture import FrameSource

_logger = logging.getLogger(__name__)


@dataclass
class ReplayDepthSource(FrameSource):
    """Replays the newest ``depth_frame_*.raw`` artifact in a directory."""

    directory: Path

    async def acquire(self) -> SensorImage | None:
        """Load the newest raw depth artifact and its metadata."""
        raw_path = _newest(self.directory, "depth_frame_*.raw")
        if raw_path is None:
            _logger.warning("No depth frames to replay in %s", self.directory)
            return None
        meta_path = raw_path.with_suffix(".meta")
        if not meta_path.is_file():
            _logger.warning("Depth frame %s has no metadata", raw_path.name)
            return None
        metadata = DepthFrameMetadata.model_validate_json(meta_path.read_text())
        bytes_per_pixel = metadata.format.bytes_per_pixel
        return SensorImage(
            width=metadata.width,
            height=metadata.height,
            format=metadata.format.value,
            timestamp=time.monotonic(),
            planes=[
                SensorPlane(
                    data=raw_path.read_bytes(),
                    row_stride=metadata.width * bytes_per_pixel,
                    pixel_stride=bytes_per_pixel,
                )
            ],
        )


@dataclass
class ReplayColorSource(FrameSource):
    """Replays the newest ``rgb_frame_*.png`` image in a directory.

    Rows are emitted bottom-up, the order a device camera delivers them.
    """

    directory: Path

    async def acquire(self) -> SensorImage | None:
        """Load the newest PNG as an RGB24 sensor plane."""
        image_path = _newest(self.directory, "rgb_frame_*.png")
        if image_path is None:
            _logger.warning("No RGB frames to replay in %s", self.directory)
            return None
        with Image.open(image_path) as image:
            pixels = np.asarray(image.convert("RGB"))
        height, width = pixels.shape[:2]
        return SensorImage(
            width=width,
            height=height,
            format=ColorFormat.RGB24.value,
            timestamp=time.monotonic(),
            planes=[
                SensorPlane(
                    data=np.ascontiguousarray(pixels[::-1]).tobytes(),
                    row_stride=width * ColorFormat.RGB24.bytes_per_pixel,
                    pixel_stride=ColorFormat.RGB24.bytes_per_pixel,
                )
            ],
        )


@dataclass
class UnavailableSource(FrameSource):
    """Source used when no sensor is attached."""

    name: str

    async def acquire(self) -> SensorImage | None:
        """Always report that no frame is available."""
        _logger.warning("%s sensor is not attached", self.name)
        return None


def _newest(directory: Path, pattern: str) -> Path | None:
    candidates = sorted(directory.glob(pattern))
    return candidates[-1] if candidates else None
