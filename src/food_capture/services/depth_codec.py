"""Depth plane decoding and frame statistics."""

from dataclasses import dataclass

import numpy as np

from food_capture.domain.errors import InvalidLayoutError, UnsupportedFormatError
from food_capture.domain.frames import (
    NO_DEPTH_MAX,
    NO_DEPTH_MIN,
    DepthAnalysis,
    DepthFormat,
    DepthFrameMetadata,
    PlaneLayout,
    SensorPlane,
)

_DTYPES = {
    DepthFormat.UINT16_MILLIMETERS: np.dtype("<u2"),
    DepthFormat.FLOAT32_METERS: np.dtype("<f4"),
}

_FORMAT_ALIASES = {
    "uint16millimeters": DepthFormat.UINT16_MILLIMETERS,
    "float32meters": DepthFormat.FLOAT32_METERS,
}


def resolve_depth_format(value: DepthFormat | str) -> DepthFormat:
    """Return the depth format named by ``value``."""
    if isinstance(value, DepthFormat):
        return value
    try:
        return DepthFormat(value)
    except ValueError:
        alias = _FORMAT_ALIASES.get(str(value).replace("_", "").lower())
        if alias is None:
            raise UnsupportedFormatError(
                f"Depth format not supported: {value}"
            ) from None
        return alias


@dataclass
class DepthCodec:
    """Decodes strided depth planes into distances in meters."""

    window_size: int = 5

    def decode(  # noqa: PLR0913
        self,
        plane_bytes: bytes,
        row_stride: int,
        pixel_stride: int,
        width: int,
        height: int,
        depth_format: DepthFormat | str,
    ) -> np.ndarray:
        """Decode a whole plane into a ``height x width`` grid of meters."""
        resolved = resolve_depth_format(depth_format)
        layout = PlaneLayout(
            width=width,
            height=height,
            row_stride=row_stride,
            pixel_stride=pixel_stride,
            bytes_per_pixel=resolved.bytes_per_pixel,
        )
        return _to_meters(_strided_view(plane_bytes, layout, resolved), resolved)

    def decode_pixel(
        self,
        plane_bytes: bytes,
        layout: PlaneLayout,
        depth_format: DepthFormat | str,
        x: int,
        y: int,
    ) -> float:
        """Decode the single pixel at (x, y)."""
        resolved = resolve_depth_format(depth_format)
        layout.check_buffer(len(plane_bytes))
        value = np.frombuffer(
            plane_bytes, dtype=_DTYPES[resolved], count=1, offset=layout.offset(x, y)
        )
        return float(_to_meters(value, resolved)[0])

    def compute_metadata(
        self,
        plane: SensorPlane,
        width: int,
        height: int,
        depth_format: DepthFormat | str,
        timestamp: float,
    ) -> DepthFrameMetadata:
        """Compute center depth and min/max over the center sample window.

        Readings that are zero or negative are invalid sensor returns and never
        update min/max. When the window holds no valid reading, min and max
        keep their ``NO_DEPTH_MIN``/``NO_DEPTH_MAX`` starting values.
        """
        resolved = resolve_depth_format(depth_format)
        layout = PlaneLayout(
            width=width,
            height=height,
            row_stride=plane.row_stride,
            pixel_stride=plane.pixel_stride,
            bytes_per_pixel=resolved.bytes_per_pixel,
        )
        center = self.decode_pixel(
            plane.data, layout, resolved, width // 2, height // 2
        )
        view = _strided_view(plane.data, layout, resolved)
        rows, cols = self._window_bounds(width, height)
        window = _to_meters(view[rows, cols], resolved)
        valid = window[window > 0]
        min_depth = float(valid.min()) if valid.size else NO_DEPTH_MIN
        max_depth = float(valid.max()) if valid.size else NO_DEPTH_MAX
        return DepthFrameMetadata(
            width=width,
            height=height,
            format=resolved,
            timestamp=timestamp,
            center_pixel_depth=center,
            min_depth=min_depth,
            max_depth=max_depth,
        )

    def pack(
        self, plane_bytes: bytes, layout: PlaneLayout, depth_format: DepthFormat | str
    ) -> bytes:
        """Strip stride padding, returning the tightly packed raw artifact."""
        resolved = resolve_depth_format(depth_format)
        if layout.bytes_per_pixel != resolved.bytes_per_pixel:
            raise InvalidLayoutError(
                f"Layout uses {layout.bytes_per_pixel} bytes per pixel, "
                f"{resolved} needs {resolved.bytes_per_pixel}"
            )
        view = _strided_view(plane_bytes, layout, resolved)
        return np.ascontiguousarray(view).tobytes()

    def round_trip(self, metadata: DepthFrameMetadata, raw_bytes: bytes) -> np.ndarray:
        """Rebuild the dense grid from a packed raw artifact and its metadata."""
        resolved = resolve_depth_format(metadata.format)
        layout = PlaneLayout.packed(
            metadata.width, metadata.height, resolved.bytes_per_pixel
        )
        return self.decode(
            raw_bytes,
            layout.row_stride,
            layout.pixel_stride,
            layout.width,
            layout.height,
            resolved,
        )

    def sample_window(self, grid: np.ndarray) -> np.ndarray:
        """Return the sample window centered on the grid."""
        height, width = grid.shape
        rows, cols = self._window_bounds(width, height)
        return grid[rows, cols]

    def analyze(self, grid: np.ndarray) -> DepthAnalysis:
        """Summarize a dense grid over the whole frame."""
        height, width = grid.shape
        valid = grid[grid > 0]
        return DepthAnalysis(
            width=width,
            height=height,
            center_depth=float(grid[height // 2, width // 2]),
            frame_min_depth=float(valid.min()) if valid.size else None,
            frame_max_depth=float(valid.max()) if valid.size else None,
            sample_window=self.sample_window(grid).round(3).tolist(),
        )

    def _window_bounds(self, width: int, height: int) -> tuple[slice, slice]:
        half = self.window_size // 2
        start_x = max(width // 2 - half, 0)
        start_y = max(height // 2 - half, 0)
        cols = slice(start_x, min(start_x + self.window_size, width))
        rows = slice(start_y, min(start_y + self.window_size, height))
        return rows, cols


def _strided_view(
    plane_bytes: bytes, layout: PlaneLayout, depth_format: DepthFormat
) -> np.ndarray:
    """View raw plane bytes as a ``height x width`` array without copying."""
    layout.check_buffer(len(plane_bytes))
    return np.ndarray(
        shape=(layout.height, layout.width),
        dtype=_DTYPES[depth_format],
        buffer=plane_bytes,
        strides=(layout.row_stride, layout.pixel_stride),
    )


def _to_meters(values: np.ndarray, depth_format: DepthFormat) -> np.ndarray:
    if depth_format is DepthFormat.UINT16_MILLIMETERS:
        return values.astype(np.float64) / 1000.0
    return values.astype(np.float64)
