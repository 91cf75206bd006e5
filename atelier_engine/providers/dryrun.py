"""Dry-run image provider (offline)."""

from __future__ import annotations

import hashlib
from io import BytesIO

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from ..config import ImageRef
from .base import GenerationRequest, UpscaleRequest

_RATIO_SIZES = {
    "1:1": (512, 512),
    "3:4": (384, 512),
    "4:3": (512, 384),
    "9:16": (288, 512),
    "16:9": (512, 288),
}


class DryRunProvider:
    name = "dryrun"

    def generate(self, request: GenerationRequest, index: int) -> ImageRef:
        width, height = _resolve_size(request.aspect_ratio)
        image = Image.new("RGB", (width, height), _color_from_prompt(request.instruction_text, index))
        draw = ImageDraw.Draw(image)
        text = f"dryrun {request.mode} #{index + 1}\n{request.instruction_text[:60]}"
        draw.text((16, 16), text, fill=(255, 255, 255), font=ImageFont.load_default())
        return _encode_png(image)

    def upscale(self, request: UpscaleRequest) -> ImageRef:
        with Image.open(BytesIO(request.image.data)) as source:
            enlarged = source.convert("RGB").resize((source.width * 2, source.height * 2))
        return _encode_png(enlarged.filter(ImageFilter.SHARPEN))

    def enhance_text(self, text: str) -> str:
        return f"{text}, dramatic studio lighting, balanced composition, high detail"


def _resolve_size(aspect_ratio: str) -> tuple[int, int]:
    return _RATIO_SIZES.get((aspect_ratio or "").strip(), (512, 512))


def _color_from_prompt(prompt: str, index: int) -> tuple[int, int, int]:
    digest = hashlib.sha256(f"{prompt}:{index}".encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]


def _encode_png(image: Image.Image) -> ImageRef:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return ImageRef(data=buf.getvalue(), mime_type="image/png")
