"""Frame, plane and metadata models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from food_capture.domain.errors import InvalidLayoutError

# Largest finite float32; the persisted min/max start from these bounds.
FLOAT32_MAX = 3.4028234663852886e38
NO_DEPTH_MIN = FLOAT32_MAX
NO_DEPTH_MAX = -FLOAT32_MAX


class DepthFormat(StrEnum):
    """Pixel formats a depth plane can carry."""

    UINT16_MILLIMETERS = "DepthUint16"
    FLOAT32_METERS = "DepthFloat32"

    @property
    def bytes_per_pixel(self) -> int:
        """Return the packed size of one pixel."""
        if self is DepthFormat.UINT16_MILLIMETERS:
            return 2
        return 4


class ColorFormat(StrEnum):
    """Interleaved color layouts understood by the RGB codec."""

    RGB24 = "RGB24"
    RGBA32 = "RGBA32"
    BGRA32 = "BGRA32"

    @property
    def bytes_per_pixel(self) -> int:
        """Return the packed size of one pixel."""
        if self is ColorFormat.RGB24:
            return 3
        return 4


@dataclass(frozen=True)
class PlaneLayout:
    """Byte layout of one strided plane.

    Pixel (x, y) starts at ``y * row_stride + x * pixel_stride``. Rows may be
    padded, so the buffer is never assumed to be tightly packed.
    """

    width: int
    height: int
    row_stride: int
    pixel_stride: int
    bytes_per_pixel: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidLayoutError(
                f"Plane dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.pixel_stride < self.bytes_per_pixel:
            raise InvalidLayoutError(
                f"pixel_stride {self.pixel_stride} is smaller than "
                f"{self.bytes_per_pixel} bytes per pixel"
            )
        if self.row_stride < self.pixel_stride * self.width:
            raise InvalidLayoutError(
                f"row_stride {self.row_stride} is smaller than "
                f"pixel_stride * width ({self.pixel_stride * self.width})"
            )

    @classmethod
    def packed(cls, width: int, height: int, bytes_per_pixel: int) -> "PlaneLayout":
        """Return the layout of a tightly packed plane."""
        return cls(
            width=width,
            height=height,
            row_stride=width * bytes_per_pixel,
            pixel_stride=bytes_per_pixel,
            bytes_per_pixel=bytes_per_pixel,
        )

    @property
    def packed_size(self) -> int:
        """Size of the plane once stride padding is stripped."""
        return self.width * self.height * self.bytes_per_pixel

    @property
    def required_length(self) -> int:
        """Minimum buffer length that covers the last addressed byte."""
        return self.offset(self.width - 1, self.height - 1) + self.bytes_per_pixel

    def offset(self, x: int, y: int) -> int:
        """Return the byte offset of pixel (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height}")
        return y * self.row_stride + x * self.pixel_stride

    def check_buffer(self, length: int) -> None:
        """Raise if a buffer of ``length`` bytes cannot hold this plane."""
        if length < self.required_length:
            raise InvalidLayoutError(
                f"Plane buffer holds {length} bytes, layout needs "
                f"{self.required_length}"
            )


@dataclass(frozen=True)
class SensorPlane:
    """One plane of a sensor image."""

    data: bytes
    row_stride: int
    pixel_stride: int


@dataclass(frozen=True)
class SensorImage:
    """Image handle returned by a sensor capability."""

    width: int
    height: int
    format: str
    timestamp: float
    planes: list[SensorPlane] = field(default_factory=list)


class DepthFrameMetadata(BaseModel):
    """Metadata persisted next to a raw depth artifact."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    format: DepthFormat
    timestamp: float
    center_pixel_depth: float
    min_depth: float
    max_depth: float

    @property
    def has_valid_depth(self) -> bool:
        """Whether the sample window contained at least one valid reading."""
        return self.min_depth <= self.max_depth


class RgbFrameMetadata(BaseModel):
    """Metadata persisted next to an RGB image artifact."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    timestamp: float


@dataclass(frozen=True)
class DepthAnalysis:
    """Full-frame statistics of a decoded depth grid."""

    width: int
    height: int
    center_depth: float
    frame_min_depth: float | None
    frame_max_depth: float | None
    sample_window: list[list[float]]


def frame_key(captured_at: datetime) -> str:
    """Return the artifact key for a capture started at ``captured_at``."""
    millis = captured_at.microsecond // 1000
    return f"{captured_at:%Y%m%d_%H%M%S}_{millis:03d}"
