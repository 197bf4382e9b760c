from __future__ import annotations

import asyncio
import json as jsonlib
from typing import Any

import httpx
import pytest

import levelup_site.imagen.client as client_mod
from levelup_site.common.schema import GenerationRequest


class _FakeResponse:
    def __init__(self, json_data: Any = None, status_code: int = 200, raw: str | None = None) -> None:
        self._json = json_data
        self.status_code = status_code
        self._raw = raw

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", "https://imagen.test")
            response = httpx.Response(self.status_code, request=request)
            raise httpx.HTTPStatusError("upstream error", request=request, response=response)

    def json(self) -> Any:
        if self._raw is not None:
            return jsonlib.loads(self._raw)
        return self._json

def _fake_client(response: _FakeResponse | None = None, error: Exception | None = None, calls: list | None = None):
    class _FakeAsyncClient:
        def __init__(self, timeout: float | int | None = None) -> None:  # signature-compatible
            self.timeout = timeout

        async def __aenter__(self) -> "_FakeAsyncClient":
            return self

        async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
            return None

        async def post(self, url: str, headers: dict[str, str] | None = None, json: dict[str, Any] | None = None) -> _FakeResponse:  # noqa: A002
            if calls is not None:
                calls.append({"url": url, "headers": headers, "json": json, "timeout": self.timeout})
            if error is not None:
                raise error
            return response

    return _FakeAsyncClient

@pytest.fixture(autouse=True)
def _api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_KEY", "test-key")

def _ok_body(encoded: str) -> dict[str, Any]:
    return {"predictions": [{"bytesBase64Encoded": encoded, "mimeType": "image/png"}]}

def test_build_payload_shape() -> None:
    payload = client_mod.build_payload(GenerationRequest(prompt="a logo"))
    assert payload == {
        "instances": [{"prompt": "a logo"}],
        "parameters": {
            "sampleCount": 1,
            "aspectRatio": "1:1",
            "outputOptions": {"mimeType": "image/png"},
        },
    }

def test_generate_images_posts_to_predict(monkeypatch: pytest.MonkeyPatch, png_b64: str) -> None:
    calls: list = []
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(_FakeResponse(_ok_body(png_b64)), calls=calls))

    images = asyncio.run(client_mod.generate_images(GenerationRequest(prompt="a logo"), model="imagen-test"))

    assert len(images) == 1
    assert images[0].image_bytes == png_b64
    assert images[0].data_url().startswith("data:image/png;base64,")
    assert calls[0]["url"].endswith("/v1beta/models/imagen-test:predict")
    assert calls[0]["headers"] == {"x-goog-api-key": "test-key"}
    assert calls[0]["json"]["instances"][0]["prompt"] == "a logo"
    assert calls[0]["timeout"] == client_mod.IMAGEN_TIMEOUT

def test_gemini_api_key_is_accepted(monkeypatch: pytest.MonkeyPatch, png_b64: str) -> None:
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
    calls: list = []
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(_FakeResponse(_ok_body(png_b64)), calls=calls))

    asyncio.run(client_mod.generate_images(GenerationRequest(prompt="x")))
    assert calls[0]["headers"]["x-goog-api-key"] == "gemini-key"

def test_missing_api_key_fails_without_calling(monkeypatch: pytest.MonkeyPatch, png_b64: str) -> None:
    monkeypatch.delenv("API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    calls: list = []
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(_FakeResponse(_ok_body(png_b64)), calls=calls))

    with pytest.raises(client_mod.GenerationError, match="API_KEY"):
        asyncio.run(client_mod.generate_images(GenerationRequest(prompt="x")))
    assert calls == []

def test_http_error_becomes_generation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(_FakeResponse({}, status_code=429)))
    with pytest.raises(client_mod.GenerationError, match="429"):
        asyncio.run(client_mod.generate_images(GenerationRequest(prompt="x")))

def test_transport_error_becomes_generation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(error=httpx.ConnectError("no route")))
    with pytest.raises(client_mod.GenerationError, match="no route"):
        asyncio.run(client_mod.generate_images(GenerationRequest(prompt="x")))

def test_non_json_body_becomes_generation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(client_mod.httpx, "AsyncClient", _fake_client(_FakeResponse(raw="<html>oops")))
    with pytest.raises(client_mod.GenerationError, match="Malformed"):
        asyncio.run(client_mod.generate_images(GenerationRequest(prompt="x")))

@pytest.mark.parametrize(
    "body",
    [
        [],
        {},
        {"predictions": []},
        {"predictions": [{"mimeType": "image/png"}]},
        {"predictions": ["not-a-dict"]},
        {"predictions": [{"bytesBase64Encoded": "not base64!!"}]},
    ],
)
def test_parse_predictions_rejects_unusable_bodies(body: Any) -> None:
    with pytest.raises(client_mod.GenerationError):
        client_mod.parse_predictions(body)

def test_parse_predictions_defaults_mime(png_b64: str) -> None:
    images = client_mod.parse_predictions({"predictions": [{"bytesBase64Encoded": png_b64}]}, "image/png")
    assert images[0].mime_type == "image/png"
