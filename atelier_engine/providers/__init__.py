"""Provider registry."""

from __future__ import annotations

from .base import ProviderRegistry
from .dryrun import DryRunProvider
from .gemini import GeminiProvider


def default_registry(image_model: str | None = None, text_model: str | None = None) -> ProviderRegistry:
    return ProviderRegistry(
        [
            DryRunProvider(),
            GeminiProvider(image_model=image_model, text_model=text_model),
        ]
    )
