from __future__ import annotations

from io import BytesIO

from PIL import Image

from atelier_engine.providers.base import GenerationRequest, UpscaleRequest
from atelier_engine.providers.dryrun import DryRunProvider


def test_dryrun_generate_follows_aspect_ratio() -> None:
    provider = DryRunProvider()
    image = provider.generate(GenerationRequest(instruction_text="boat", aspect_ratio="16:9"), 0)
    assert image.mime_type == "image/png"
    with Image.open(BytesIO(image.data)) as decoded:
        assert decoded.size == (512, 288)


def test_dryrun_candidates_differ_by_index() -> None:
    provider = DryRunProvider()
    request = GenerationRequest(instruction_text="boat", candidate_count=2)
    assert provider.generate(request, 0) != provider.generate(request, 1)


def test_dryrun_upscale_doubles_size() -> None:
    provider = DryRunProvider()
    source = provider.generate(GenerationRequest(instruction_text="boat", aspect_ratio="3:4"), 0)
    result = provider.upscale(UpscaleRequest(image=source))
    with Image.open(BytesIO(result.data)) as decoded:
        assert decoded.size == (768, 1024)


def test_dryrun_enhance_appends_detail() -> None:
    assert DryRunProvider().enhance_text("boat").startswith("boat, ")
