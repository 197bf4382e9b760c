from __future__ import annotations

import base64

import pytest

from levelup_site.common.schema import GeneratedImage, GenerationRequest

PNG_B64 = base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image-bytes").decode("ascii")


@pytest.fixture
def png_image() -> GeneratedImage:
    return GeneratedImage(image_bytes=PNG_B64, mime_type="image/png")


@pytest.fixture
def requests_by_slot() -> dict[str, GenerationRequest]:
    return {
        "logo": GenerationRequest(prompt="logo prompt"),
        "illustration": GenerationRequest(prompt="illustration prompt"),
    }


@pytest.fixture
def png_b64() -> str:
    return PNG_B64
