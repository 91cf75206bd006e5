"""Gemini provider."""

from __future__ import annotations

import os
from typing import Any, Sequence

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import ImageRef
from .base import GenerationFailure, GenerationRequest, UpscaleFailure, UpscaleRequest

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"

_ENHANCE_TEMPLATE = (
    "You are a professional art director. Rewrite this user brief into a detailed image "
    'generation prompt focusing on lighting and composition: "{text}"'
)


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        image_model: str | None = None,
        text_model: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.image_model = image_model or DEFAULT_IMAGE_MODEL
        self.text_model = text_model or DEFAULT_TEXT_MODEL
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise GenerationFailure("GEMINI_API_KEY or GOOGLE_API_KEY not set.")
        self._client = genai.Client(api_key=api_key)
        return self._client

    def generate(self, request: GenerationRequest, index: int) -> ImageRef:
        client = self._get_client()
        parts = _build_message_parts(request.instruction_text, [ref.image for ref in request.reference_images])
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio=request.aspect_ratio),
        )
        try:
            response = client.models.generate_content(
                model=self.image_model,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
        except genai_errors.APIError as exc:
            raise GenerationFailure(f"Gemini rejected candidate {index + 1}: {exc}") from exc
        blobs = _extract_image_bytes(getattr(response, "candidates", None) or [])
        if not blobs:
            raise GenerationFailure("Gemini returned no images.")
        return blobs[0]

    def upscale(self, request: UpscaleRequest) -> ImageRef:
        client = self._get_client()
        parts = _build_message_parts(request.instruction_text, [request.image])
        try:
            response = client.models.generate_content(
                model=self.image_model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except genai_errors.APIError as exc:
            raise UpscaleFailure(f"Gemini upscale failed: {exc}") from exc
        blobs = _extract_image_bytes(getattr(response, "candidates", None) or [])
        if not blobs:
            raise UpscaleFailure("Upscale failed: no image returned.")
        return blobs[0]

    def enhance_text(self, text: str) -> str:
        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.text_model,
                contents=_ENHANCE_TEMPLATE.format(text=text),
            )
        except genai_errors.APIError as exc:
            raise GenerationFailure(f"Gemini prompt enhancement failed: {exc}") from exc
        rewritten = getattr(response, "text", None)
        if isinstance(rewritten, str) and rewritten.strip():
            return rewritten.strip()
        return text


def _build_message_parts(text: str, images: Sequence[ImageRef]) -> list[types.Part]:
    parts: list[types.Part] = [types.Part(text=text)]
    for image in images:
        parts.append(types.Part(inline_data=types.Blob(data=image.data, mime_type=image.mime_type)))
    return parts


def _extract_image_bytes(candidates: Sequence[Any]) -> list[ImageRef]:
    # Only the first candidate is read; each call asks for a single image.
    images: list[ImageRef] = []
    for candidate in candidates[:1]:
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or getattr(candidate, "parts", None) or []
        for part in parts:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data is None:
                continue
            if isinstance(data, str):
                data = data.encode("latin1")
            if isinstance(data, (bytes, bytearray)):
                mime_type = getattr(inline_data, "mime_type", None) or "image/png"
                images.append(ImageRef(data=bytes(data), mime_type=mime_type))
    return images
