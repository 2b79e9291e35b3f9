"""Upload request and outcome models."""

from dataclasses import dataclass, field
from enum import StrEnum

from food_capture.domain.errors import CaptureError

DEPTH_RAW_SUFFIX = ".raw"
META_SUFFIX = ".meta"
RGB_IMAGE_SUFFIX = ".png"


class UploadState(StrEnum):
    """States of the upload protocol."""

    BUILDING = "BUILDING"
    SENDING = "SENDING"
    RETRYING = "RETRYING"
    SUCCEEDED = "SUCCEEDED"
    FAILED_PERMANENT = "FAILED_PERMANENT"


@dataclass(frozen=True)
class UploadRequest:
    """Names of the four artifacts that make up one frame pair."""

    key: str
    base_path: str = ""

    @property
    def depth_raw_name(self) -> str:
        return self._name(f"depth_frame_{self.key}{DEPTH_RAW_SUFFIX}")

    @property
    def depth_meta_name(self) -> str:
        return self._name(f"depth_frame_{self.key}{META_SUFFIX}")

    @property
    def rgb_image_name(self) -> str:
        return self._name(f"rgb_frame_{self.key}{RGB_IMAGE_SUFFIX}")

    @property
    def rgb_meta_name(self) -> str:
        return self._name(f"rgb_frame_{self.key}{META_SUFFIX}")

    def _name(self, filename: str) -> str:
        if not self.base_path:
            return filename
        return f"{self.base_path.rstrip('/')}/{filename}"

    def artifact_names(self) -> list[str]:
        """Return every artifact name in the order they are read."""
        return [
            self.rgb_image_name,
            self.depth_raw_name,
            self.rgb_meta_name,
            self.depth_meta_name,
        ]


@dataclass(frozen=True)
class UploadPayload:
    """Artifact contents read once and reused across attempts."""

    rgb_image_name: str
    rgb_image: bytes
    depth_image_name: str
    depth_image: bytes
    rgb_meta: str
    depth_meta: str


@dataclass(frozen=True)
class ProcessingResponse:
    """Status and body returned by the processing service."""

    status_code: int
    body: str


@dataclass
class UploadOutcome:
    """Terminal result of one upload run."""

    state: UploadState
    attempts: int = 0
    transitions: list[UploadState] = field(default_factory=list)
    body: str | None = None
    error: CaptureError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is UploadState.SUCCEEDED
