"""Async client for the Gemini API Imagen `predict` endpoint.

Sends one prompt with its output configuration and returns the generated
images, still base64 encoded. Every failure is raised as GenerationError.
"""
from __future__ import annotations
import base64
import binascii
import logging
import os
import time
from typing import Any

import httpx

from levelup_site.common.schema import GeneratedImage, GenerationRequest

LOGGER = logging.getLogger("levelup.imagen")

GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
IMAGEN_MODEL = os.getenv("IMAGEN_MODEL", "imagen-4.0-generate-001")
IMAGEN_TIMEOUT = float(os.getenv("IMAGEN_TIMEOUT", "120"))


class GenerationError(RuntimeError):
    """Image generation failed: transport, upstream, response shape or config."""


def get_api_key() -> str | None:
    return os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY")


def build_payload(request: GenerationRequest) -> dict[str, Any]:
    return {
        "instances": [{"prompt": request.prompt}],
        "parameters": {
            "sampleCount": request.number_of_images,
            "aspectRatio": request.aspect_ratio,
            "outputOptions": {"mimeType": request.output_mime_type},
        },
    }


def parse_predictions(data: Any, default_mime: str = "image/png") -> list[GeneratedImage]:
    """
    Extract generated images from a predict response body.

    Args:
        data: Decoded JSON body.
        default_mime: MIME type used when a prediction omits one.

    Raises:
        GenerationError: if the body has no usable image.
    """
    if not isinstance(data, dict):
        raise GenerationError("Malformed Imagen response: body is not an object")
    predictions = data.get("predictions")
    if not predictions:
        # Safety filters drop images silently and return an empty list.
        raise GenerationError("Imagen returned no images")

    images = []
    for pred in predictions:
        encoded = pred.get("bytesBase64Encoded") if isinstance(pred, dict) else None
        if not encoded:
            raise GenerationError("Malformed Imagen response: prediction without image bytes")
        try:
            base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise GenerationError(f"Malformed Imagen response: invalid base64 ({e})") from e
        images.append(GeneratedImage(image_bytes=encoded, mime_type=pred.get("mimeType") or default_mime))
    return images


async def generate_images(request: GenerationRequest, model: str | None = None) -> list[GeneratedImage]:
    """
    Call Imagen once for the given request.

    Args:
        request: Prompt and output configuration.
        model: Model id; defaults to $IMAGEN_MODEL.

    Returns:
        Generated images in the order returned by the API.
    """
    api_key = get_api_key()
    if not api_key:
        raise GenerationError("API_KEY is not configured")

    model = model or IMAGEN_MODEL
    url = f"{GEMINI_BASE_URL}/v1beta/models/{model}:predict"
    headers = {"x-goog-api-key": api_key}

    start = time.time()
    try:
        async with httpx.AsyncClient(timeout=IMAGEN_TIMEOUT) as client:
            r = await client.post(url, headers=headers, json=build_payload(request))
            r.raise_for_status()
            data = r.json()
    except httpx.HTTPStatusError as e:
        raise GenerationError(f"Imagen returned HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise GenerationError(f"Imagen request failed: {e}") from e
    except ValueError as e:
        raise GenerationError(f"Malformed Imagen response: {e}") from e

    images = parse_predictions(data, request.output_mime_type)
    LOGGER.info("Imagen %s returned %d image(s) in %dms", model, len(images), int((time.time() - start) * 1000))
    return images
