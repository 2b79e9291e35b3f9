"""HTTP client for the remote food processing service."""

from dataclasses import dataclass

import httpx

from food_capture.config import ServerEndpoint
from food_capture.domain.errors import TransportError
from food_capture.domain.upload import ProcessingResponse, UploadPayload
from food_capture.services.upload import ProcessingClient


@dataclass
class HttpxProcessingClient(ProcessingClient):
    """HTTPX-backed client posting frame pairs as multipart/form-data."""

    endpoint: ServerEndpoint
    http_client: httpx.AsyncClient
    timeout: httpx.Timeout

    @classmethod
    def create(
        cls,
        endpoint: ServerEndpoint,
        timeout_seconds: float = 300.0,
        connect_timeout_seconds: float = 10.0,
    ) -> "HttpxProcessingClient":
        """Create a processing client with a managed httpx session."""
        return cls(
            endpoint=endpoint,
            http_client=httpx.AsyncClient(),
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
        )

    async def submit(self, payload: UploadPayload) -> ProcessingResponse:
        """POST the frame pair to ``{base_uri}/process``."""
        files = {
            "rgb_image": (payload.rgb_image_name, payload.rgb_image, "image/png"),
            "depth_image": (
                payload.depth_image_name,
                payload.depth_image,
                "application/octet-stream",
            ),
        }
        data = {"rgb_meta": payload.rgb_meta, "depth_meta": payload.depth_meta}
        try:
            response = await self.http_client.post(
                self.endpoint.process_url,
                data=data,
                files=files,
                timeout=self.timeout,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"Upload transport failure: {exc!r}") from exc
        return ProcessingResponse(status_code=response.status_code, body=response.text)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
