"""Error types raised across the capture and upload pipeline."""


class CaptureError(Exception):
    """Base class for capture pipeline failures."""

    retryable: bool = False


class UnsupportedFormatError(CaptureError):
    """A codec was asked to interpret a pixel format it does not know."""


class InvalidLayoutError(CaptureError):
    """Stride descriptors are smaller than the tightly packed size."""


class EncodeFailedError(CaptureError):
    """Image conversion or compression produced no output."""


class MissingArtifactError(CaptureError):
    """An artifact required for upload is absent from the frame store."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing artifact: {name}")
        self.name = name


class CorruptArtifactError(CaptureError):
    """A stored artifact cannot be interpreted."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Corrupt artifact {name}: {reason}")
        self.name = name


class TransportError(CaptureError):
    """The request could not be sent or the response could not be read."""

    retryable = True


class HttpStatusError(CaptureError):
    """The processing service answered with a non-success status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"Processing service returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body


class ServerError(HttpStatusError):
    """5xx response from the processing service."""

    retryable = True


class ClientError(HttpStatusError):
    """Request rejected by the processing service."""


class MalformedResponseError(CaptureError):
    """Response body does not match the nutrition payload schema."""


class CaptureBusyError(CaptureError):
    """A capture is already in progress."""

    def __init__(self) -> None:
        super().__init__("A capture is already in progress")
