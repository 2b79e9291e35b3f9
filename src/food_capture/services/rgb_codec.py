"""Color plane conversion and PNG encoding."""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from food_capture.domain.errors import EncodeFailedError, UnsupportedFormatError
from food_capture.domain.frames import (
    ColorFormat,
    PlaneLayout,
    RgbFrameMetadata,
    SensorPlane,
)

_logger = logging.getLogger(__name__)

# Byte positions of R, G and B inside one input pixel.
_CHANNEL_ORDER = {
    ColorFormat.RGB24: [0, 1, 2],
    ColorFormat.RGBA32: [0, 1, 2],
    ColorFormat.BGRA32: [2, 1, 0],
}


def resolve_color_format(value: ColorFormat | str) -> ColorFormat:
    """Return the color format named by ``value``."""
    if isinstance(value, ColorFormat):
        return value
    try:
        return ColorFormat(str(value).upper())
    except ValueError:
        raise UnsupportedFormatError(f"Color format not supported: {value}") from None


@dataclass
class RgbCodec:
    """Converts strided color planes to packed RGB24 and PNG."""

    image_format: str = "PNG"

    def convert(  # noqa: PLR0913
        self,
        plane: SensorPlane,
        width: int,
        height: int,
        input_format: ColorFormat | str,
        output_format: ColorFormat | str = ColorFormat.RGB24,
        mirror_y: bool = True,
    ) -> bytes:
        """Convert a strided plane into packed, row-major RGB24 bytes.

        ``mirror_y`` flips the rows so the first row of the output is the top
        of the image; sensor planes start at the bottom row.
        """
        source = resolve_color_format(input_format)
        target = resolve_color_format(output_format)
        if target is not ColorFormat.RGB24:
            raise UnsupportedFormatError(f"Output format not supported: {target}")
        layout = PlaneLayout(
            width=width,
            height=height,
            row_stride=plane.row_stride,
            pixel_stride=plane.pixel_stride,
            bytes_per_pixel=source.bytes_per_pixel,
        )
        layout.check_buffer(len(plane.data))
        pixels = np.ndarray(
            shape=(height, width, source.bytes_per_pixel),
            dtype=np.uint8,
            buffer=plane.data,
            strides=(layout.row_stride, layout.pixel_stride, 1),
        )
        rgb = pixels[..., _CHANNEL_ORDER[source]]
        if mirror_y:
            rgb = rgb[::-1]
        converted = np.ascontiguousarray(rgb).tobytes()
        if not converted:
            raise EncodeFailedError("Color conversion produced no data")
        return converted

    def encode_image(self, pixel_buffer: bytes, width: int, height: int) -> bytes:
        """Compress a packed RGB24 buffer into a still image."""
        expected = width * height * ColorFormat.RGB24.bytes_per_pixel
        if not pixel_buffer or len(pixel_buffer) != expected:
            raise EncodeFailedError(
                f"Expected {expected} RGB24 bytes for {width}x{height}, "
                f"got {len(pixel_buffer)}"
            )
        image = Image.frombytes("RGB", (width, height), pixel_buffer)
        output = io.BytesIO()
        image.save(output, format=self.image_format)
        encoded = output.getvalue()
        if not encoded:
            raise EncodeFailedError("Image encoder returned no data")
        _logger.debug("Encoded %sx%s image into %s bytes", width, height, len(encoded))
        return encoded

    def compute_metadata(
        self, width: int, height: int, timestamp: float
    ) -> RgbFrameMetadata:
        """Return the metadata stored next to the encoded image."""
        return RgbFrameMetadata(width=width, height=height, timestamp=timestamp)
