"""Tests for the HTTP remote classifier delegate."""

import base64
import json

import httpx
import pytest

from pixguard.errors import RemoteClassifierUnavailable
from pixguard.imaging import ImageBytes
from pixguard.classifier.remote import (
    HttpImageClassifierDelegate,
    ImageClassifierDelegate,
    encode_data_url,
)

URL = "https://classifier.example/functions/v1/validate-car-image"


def delegate_with(handler, **kwargs) -> HttpImageClassifierDelegate:
    return HttpImageClassifierDelegate(URL, transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def image():
    return ImageBytes(b"\xff\xd8\xffpayload", "image/jpeg", "IMG.jpg")


class TestEncoding:
    def test_data_url(self, image):
        url = encode_data_url(image)
        assert url.startswith("data:image/jpeg;base64,")
        assert base64.b64decode(url.split(",", 1)[1]) == image.data


class TestHttpDelegate:
    def test_satisfies_protocol(self):
        assert isinstance(HttpImageClassifierDelegate(URL), ImageClassifierDelegate)

    def test_sends_image_and_reads_verdict(self, image):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"isCarImage": True, "message": "Valid car image"})

        assert delegate_with(handler, api_key="secret").is_vehicle_image(image) is True
        assert seen["body"]["image"] == encode_data_url(image)
        assert seen["auth"] == "Bearer secret"

    def test_negative_verdict(self, image):
        handler = lambda request: httpx.Response(200, json={"isCarImage": False})
        assert delegate_with(handler).is_vehicle_image(image) is False

    def test_timeout_is_unavailable(self, image):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RemoteClassifierUnavailable, match="timed out"):
            delegate_with(handler, timeout=0.5).is_vehicle_image(image)

    def test_transport_error_is_unavailable(self, image):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteClassifierUnavailable):
            delegate_with(handler).is_vehicle_image(image)

    def test_server_error_is_unavailable(self, image):
        handler = lambda request: httpx.Response(500, json={"error": "boom", "isCarImage": False})
        with pytest.raises(RemoteClassifierUnavailable, match="500"):
            delegate_with(handler).is_vehicle_image(image)

    def test_invalid_json_is_unavailable(self, image):
        handler = lambda request: httpx.Response(200, content=b"<html>")
        with pytest.raises(RemoteClassifierUnavailable):
            delegate_with(handler).is_vehicle_image(image)

    @pytest.mark.parametrize("body", [{}, {"isCarImage": "yes"}, ["isCarImage"]])
    def test_missing_verdict_is_unavailable(self, image, body):
        handler = lambda request: httpx.Response(200, json=body)
        with pytest.raises(RemoteClassifierUnavailable):
            delegate_with(handler).is_vehicle_image(image)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            HttpImageClassifierDelegate(URL, timeout=0)
