"""Upload protocol with bounded retry and linear backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol

from food_capture.domain.errors import (
    CaptureError,
    ClientError,
    CorruptArtifactError,
    HttpStatusError,
    MissingArtifactError,
    ServerError,
    TransportError,
)
from food_capture.domain.upload import (
    ProcessingResponse,
    UploadOutcome,
    UploadPayload,
    UploadRequest,
    UploadState,
)
from food_capture.services.frame_store import FrameStore

_logger = logging.getLogger(__name__)

_SERVER_ERROR_MIN = 500


class ProcessingClient(Protocol):
    """Interface for the remote processing service."""

    async def submit(self, payload: UploadPayload) -> ProcessingResponse:
        """Send one multipart request and return the raw response.

        Raises ``TransportError`` when no status could be read.
        """


@dataclass
class UploadService:
    """Runs the upload state machine for one frame pair at a time."""

    client: ProcessingClient
    frame_store: FrameStore
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def upload(self, request: UploadRequest) -> UploadOutcome:
        """Upload a frame pair and return the terminal outcome."""
        outcome = UploadOutcome(
            state=UploadState.BUILDING, transitions=[UploadState.BUILDING]
        )
        try:
            artifacts = self._read_artifacts(request)
        except (MissingArtifactError, CorruptArtifactError) as exc:
            _logger.error("Upload %s aborted: %s", request.key, exc)
            return _finish(outcome, UploadState.FAILED_PERMANENT, error=exc)

        while True:
            payload = _build_payload(request, artifacts)
            outcome.attempts += 1
            _transition(outcome, UploadState.SENDING)
            try:
                response = await self.client.submit(payload)
                _raise_for_status(response)
            except (TransportError, HttpStatusError) as exc:
                _logger.warning(
                    "Upload %s failed (attempt %s/%s): %s",
                    request.key,
                    outcome.attempts,
                    self.max_attempts,
                    exc,
                )
                if not exc.retryable or outcome.attempts >= self.max_attempts:
                    return _finish(outcome, UploadState.FAILED_PERMANENT, error=exc)
                _transition(outcome, UploadState.RETRYING)
                await self.sleep(outcome.attempts * self.backoff_seconds)
                continue
            _logger.info(
                "Upload %s succeeded after %s attempt(s)",
                request.key,
                outcome.attempts,
            )
            return _finish(outcome, UploadState.SUCCEEDED, body=response.body)

    def _read_artifacts(self, request: UploadRequest) -> dict[str, bytes | str]:
        artifacts: dict[str, bytes | str] = {
            name: self.frame_store.read_bytes(name)
            for name in (request.rgb_image_name, request.depth_raw_name)
        }
        for name in (request.rgb_meta_name, request.depth_meta_name):
            artifacts[name] = self.frame_store.read_text(name)
        return artifacts


def _build_payload(
    request: UploadRequest, artifacts: dict[str, bytes | str]
) -> UploadPayload:
    """Assemble a fresh payload from cached artifact bytes."""
    return UploadPayload(
        rgb_image_name=PurePosixPath(request.rgb_image_name).name,
        rgb_image=artifacts[request.rgb_image_name],
        depth_image_name=PurePosixPath(request.depth_raw_name).name,
        depth_image=artifacts[request.depth_raw_name],
        rgb_meta=artifacts[request.rgb_meta_name],
        depth_meta=artifacts[request.depth_meta_name],
    )


def _raise_for_status(response: ProcessingResponse) -> None:
    """Raise the error matching a non-success status."""
    if 200 <= response.status_code < 300:  # noqa: PLR2004
        return
    if response.status_code >= _SERVER_ERROR_MIN:
        raise ServerError(response.status_code, response.body)
    raise ClientError(response.status_code, response.body)


def _transition(outcome: UploadOutcome, state: UploadState) -> None:
    outcome.state = state
    outcome.transitions.append(state)


def _finish(
    outcome: UploadOutcome,
    state: UploadState,
    *,
    body: str | None = None,
    error: CaptureError | None = None,
) -> UploadOutcome:
    _transition(outcome, state)
    outcome.body = body
    outcome.error = error
    return outcome
