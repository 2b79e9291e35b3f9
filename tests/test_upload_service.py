"""Tests for the upload retry state machine."""

import asyncio

import pytest

from food_capture.domain.errors import (
    ClientError,
    CorruptArtifactError,
    MissingArtifactError,
    ServerError,
    TransportError,
)
from food_capture.domain.upload import (
    ProcessingResponse,
    UploadOutcome,
    UploadRequest,
    UploadState,
)
from food_capture.services.frame_store import FrameStore
from food_capture.services.upload import UploadService
from tests.conftest import (
    InMemoryArtifactSink,
    RecordingSleep,
    ScriptedProcessingClient,
    ok_response,
)

KEY = "20250101_120000_000"


@pytest.fixture
def stored_sink() -> InMemoryArtifactSink:
    return InMemoryArtifactSink(
        artifacts={
            f"rgb_frame_{KEY}.png": b"png-bytes",
            f"rgb_frame_{KEY}.meta": b'{"width": 4}',
            f"depth_frame_{KEY}.raw": b"\x01\x02\x03\x04",
            f"depth_frame_{KEY}.meta": b'{"width": 2}',
        }
    )


def _service(
    sink: InMemoryArtifactSink, client: ScriptedProcessingClient, sleep: RecordingSleep
) -> UploadService:
    return UploadService(client=client, frame_store=FrameStore(sink), sleep=sleep)


def _upload(
    sink: InMemoryArtifactSink, client: ScriptedProcessingClient, sleep: RecordingSleep
) -> UploadOutcome:
    return asyncio.run(_service(sink, client, sleep).upload(UploadRequest(KEY)))


def test_success_on_first_attempt(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(script=[ok_response()])
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert outcome.state is UploadState.SUCCEEDED
    assert outcome.succeeded
    assert outcome.attempts == 1
    assert outcome.transitions == [
        UploadState.BUILDING,
        UploadState.SENDING,
        UploadState.SUCCEEDED,
    ]
    assert outcome.body is not None
    assert "egg" in outcome.body
    assert sleep.delays == []
    payload = client.calls[0]
    assert payload.rgb_image_name == f"rgb_frame_{KEY}.png"
    assert payload.rgb_image == b"png-bytes"
    assert payload.depth_image_name == f"depth_frame_{KEY}.raw"
    assert payload.depth_image == b"\x01\x02\x03\x04"
    assert payload.rgb_meta == '{"width": 4}'
    assert payload.depth_meta == '{"width": 2}'


def test_client_error_is_not_retried(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(
        script=[ProcessingResponse(status_code=404, body="not found")]
    )
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert len(client.calls) == 1
    assert outcome.state is UploadState.FAILED_PERMANENT
    assert isinstance(outcome.error, ClientError)
    assert outcome.error.status_code == 404
    assert sleep.delays == []


def test_server_errors_back_off_linearly(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(
        script=[
            ProcessingResponse(status_code=503, body="busy"),
            ProcessingResponse(status_code=503, body="busy"),
            ok_response(),
        ]
    )
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert len(client.calls) == 3
    assert sleep.delays == [1.0, 2.0]
    assert outcome.state is UploadState.SUCCEEDED
    assert outcome.attempts == 3
    assert outcome.transitions == [
        UploadState.BUILDING,
        UploadState.SENDING,
        UploadState.RETRYING,
        UploadState.SENDING,
        UploadState.RETRYING,
        UploadState.SENDING,
        UploadState.SUCCEEDED,
    ]


def test_exhausted_retries_keep_last_error(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(
        script=[
            ProcessingResponse(status_code=500, body="a"),
            TransportError("reset"),
            ProcessingResponse(status_code=502, body="c"),
        ]
    )
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert len(client.calls) == 3
    assert sleep.delays == [1.0, 2.0]
    assert outcome.state is UploadState.FAILED_PERMANENT
    assert isinstance(outcome.error, ServerError)
    assert outcome.error.status_code == 502
    assert outcome.body is None


def test_transport_error_is_retried(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(
        script=[TransportError("timed out"), ok_response()]
    )
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert outcome.succeeded
    assert len(client.calls) == 2
    assert sleep.delays == [1.0]


def test_missing_artifact_makes_no_network_call(
    stored_sink: InMemoryArtifactSink,
) -> None:
    del stored_sink.artifacts[f"depth_frame_{KEY}.meta"]
    client = ScriptedProcessingClient()
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert client.calls == []
    assert outcome.attempts == 0
    assert outcome.state is UploadState.FAILED_PERMANENT
    assert isinstance(outcome.error, MissingArtifactError)
    assert outcome.error.name == f"depth_frame_{KEY}.meta"


def test_payload_is_rebuilt_for_each_attempt(
    stored_sink: InMemoryArtifactSink,
) -> None:
    client = ScriptedProcessingClient(
        script=[ProcessingResponse(status_code=500, body=""), ok_response()]
    )
    service = _service(stored_sink, client, RecordingSleep())

    asyncio.run(service.upload(UploadRequest(KEY)))

    first, second = client.calls
    assert first is not second
    assert first == second


def test_informational_status_is_terminal(stored_sink: InMemoryArtifactSink) -> None:
    client = ScriptedProcessingClient(
        script=[ProcessingResponse(status_code=304, body="")]
    )

    outcome = asyncio.run(
        _service(stored_sink, client, RecordingSleep()).upload(UploadRequest(KEY))
    )

    assert len(client.calls) == 1
    assert isinstance(outcome.error, ClientError)


def test_undecodable_metadata_fails_without_network_call(
    stored_sink: InMemoryArtifactSink,
) -> None:
    stored_sink.artifacts[f"rgb_frame_{KEY}.meta"] = b"\xff\xfe"
    client = ScriptedProcessingClient()
    sleep = RecordingSleep()

    outcome = _upload(stored_sink, client, sleep)

    assert client.calls == []
    assert outcome.attempts == 0
    assert outcome.state is UploadState.FAILED_PERMANENT
    assert outcome.transitions == [
        UploadState.BUILDING,
        UploadState.FAILED_PERMANENT,
    ]
    assert isinstance(outcome.error, CorruptArtifactError)
    assert outcome.error.name == f"rgb_frame_{KEY}.meta"
