"""Paired artifact persistence for captured frames."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from food_capture.domain.errors import CorruptArtifactError, MissingArtifactError
from food_capture.domain.frames import DepthFrameMetadata, RgbFrameMetadata
from food_capture.domain.upload import UploadRequest

_logger = logging.getLogger(__name__)


class ArtifactSink(Protocol):
    """Named byte storage for artifacts."""

    def write(self, name: str, data: bytes) -> None:
        """Store ``data`` under ``name``, replacing any previous content."""

    def read(self, name: str) -> bytes | None:
        """Return the bytes stored under ``name``, or None when absent."""

    def exists(self, name: str) -> bool:
        """Return whether an artifact named ``name`` exists."""

    def delete(self, name: str) -> None:
        """Remove ``name`` if present."""


@dataclass
class FrameStore:
    """Stores raw, image and metadata artifacts under a shared frame key."""

    sink: ArtifactSink
    base_path: str = ""

    def request_for(self, key: str) -> UploadRequest:
        """Return the artifact names for a frame key."""
        return UploadRequest(key=key, base_path=self.base_path)

    def save_depth(self, key: str, raw: bytes, metadata: DepthFrameMetadata) -> None:
        """Write the raw depth artifact and its metadata."""
        request = self.request_for(key)
        self.sink.write(request.depth_raw_name, raw)
        self.sink.write(
            request.depth_meta_name, metadata.model_dump_json(indent=2).encode()
        )
        _logger.info("Depth frame saved: %s", request.depth_raw_name)

    def save_rgb(self, key: str, image: bytes, metadata: RgbFrameMetadata) -> None:
        """Write the encoded RGB image and its metadata."""
        request = self.request_for(key)
        self.sink.write(request.rgb_image_name, image)
        self.sink.write(
            request.rgb_meta_name, metadata.model_dump_json(indent=2).encode()
        )
        _logger.info("RGB frame saved: %s", request.rgb_image_name)

    def read_bytes(self, name: str) -> bytes:
        """Return artifact bytes or raise ``MissingArtifactError``."""
        data = self.sink.read(name)
        if data is None:
            raise MissingArtifactError(name)
        return data

    def read_text(self, name: str) -> str:
        """Return a UTF-8 text artifact."""
        try:
            return self.read_bytes(name).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptArtifactError(name, exc.reason) from exc

    def load_depth(self, key: str) -> tuple[DepthFrameMetadata, bytes]:
        """Read back a depth frame's metadata and packed raw bytes."""
        request = self.request_for(key)
        meta_text = self.read_text(request.depth_meta_name)
        raw = self.read_bytes(request.depth_raw_name)
        try:
            metadata = DepthFrameMetadata.model_validate_json(meta_text)
        except ValidationError as exc:
            raise CorruptArtifactError(
                request.depth_meta_name, f"{exc.error_count()} invalid field(s)"
            ) from exc
        return metadata, raw

    def has_frame_pair(self, key: str) -> bool:
        """Return whether all four artifacts of a frame pair exist."""
        request = self.request_for(key)
        return all(self.sink.exists(name) for name in request.artifact_names())

    def delete_depth(self, key: str) -> None:
        """Delete the raw depth artifact together with its metadata."""
        request = self.request_for(key)
        self.sink.delete(request.depth_raw_name)
        self.sink.delete(request.depth_meta_name)

    def delete_rgb(self, key: str) -> None:
        """Delete the RGB image together with its metadata."""
        request = self.request_for(key)
        self.sink.delete(request.rgb_image_name)
        self.sink.delete(request.rgb_meta_name)
