"""Provider base classes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from ..config import ImageRef

UPSCALE_INSTRUCTION = "Upscale this image to 4k, enhancing textures and lighting details."


class GenerationFailure(RuntimeError):
    """The generation service rejected a call, timed out or returned no image."""


class BatchFailure(GenerationFailure):
    def __init__(self, index: int, total: int, cause: BaseException) -> None:
        super().__init__(f"Candidate {index + 1} of {total} failed: {cause}")
        self.index = index
        self.total = total


class UpscaleFailure(GenerationFailure):
    pass


@dataclass(frozen=True)
class ReferenceImage:
    image: ImageRef
    role: str  # "source", "subject" or "style"


@dataclass(frozen=True)
class GenerationRequest:
    instruction_text: str
    reference_images: tuple[ReferenceImage, ...] = ()
    aspect_ratio: str = "1:1"
    candidate_count: int = 1
    mode: str = "create"


@dataclass(frozen=True)
class UpscaleRequest:
    image: ImageRef
    instruction_text: str = UPSCALE_INSTRUCTION


class ImageProvider(Protocol):
    name: str

    def generate(self, request: GenerationRequest, index: int) -> ImageRef:
        """Produce exactly one image for candidate ``index`` of ``request``."""
        ...

    def upscale(self, request: UpscaleRequest) -> ImageRef:
        ...

    def enhance_text(self, text: str) -> str:
        ...


class ProviderRegistry:
    def __init__(self, providers: Iterable[ImageProvider]) -> None:
        self._providers = {provider.name: provider for provider in providers}

    def get(self, name: str) -> ImageProvider | None:
        return self._providers.get(name)

    def list(self) -> list[str]:
        return sorted(self._providers.keys())
