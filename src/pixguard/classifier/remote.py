"""
Remote image-understanding delegate.

The heuristic classifier may ask an external service for a second opinion once
all local checks pass. The service sits behind a narrow interface: send image
bytes, receive a boolean, or fail with RemoteClassifierUnavailable.
"""

from __future__ import annotations

import base64
from typing import Optional, Protocol, runtime_checkable

import httpx

from ..errors import RemoteClassifierUnavailable
from ..imaging import ImageBytes
from ..logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ImageClassifierDelegate(Protocol):
    def is_vehicle_image(self, image: ImageBytes) -> bool:
        """Return True if the image shows a vehicle. May raise RemoteClassifierUnavailable."""
        ...


def encode_data_url(image: ImageBytes) -> str:
    """Encode an image payload as a base64 data URL."""
    payload = base64.b64encode(image.data).decode('ascii')
    return f"data:{image.mime_type};base64,{payload}"


class HttpImageClassifierDelegate:
    """
    Delegate posting the image to an HTTP validation endpoint.

    Request body is ``{"image": "data:<mime>;base64,..."}``; the endpoint answers
    ``{"isCarImage": bool}``. Every failure mode, including timeouts, maps to
    RemoteClassifierUnavailable so callers can fail closed.
    """

    def __init__(self,
                 url: str,
                 api_key: Optional[str] = None,
                 timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self._url = url
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._timeout = timeout
        self._transport = transport

    def is_vehicle_image(self, image: ImageBytes) -> bool:
        try:
            with httpx.Client(
                headers=self._headers, timeout=self._timeout, transport=self._transport
            ) as client:
                response = client.post(self._url, json={"image": encode_data_url(image)})
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException as exc:
            raise RemoteClassifierUnavailable(
                f"Remote classifier timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise RemoteClassifierUnavailable(
                f"Remote classifier returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteClassifierUnavailable(f"Remote classifier request failed: {exc}") from exc
        except ValueError as exc:
            raise RemoteClassifierUnavailable(f"Remote classifier sent invalid JSON: {exc}") from exc

        verdict = body.get("isCarImage") if isinstance(body, dict) else None
        if not isinstance(verdict, bool):
            raise RemoteClassifierUnavailable(
                f"Remote classifier response missing boolean 'isCarImage': {body!r}"
            )

        logger.debug(f"Remote classifier verdict for {image.file_name or 'upload'}: {verdict}")
        return verdict
