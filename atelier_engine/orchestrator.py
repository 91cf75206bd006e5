"""Generation orchestration: compile once, fan out, join."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor

from .config import ConfigModel, ImageRef
from .prompts.compiler import Mode, ValidationGap, check_preconditions, compile_for_mode, resolve_mode
from .providers.base import (
    BatchFailure,
    GenerationFailure,
    GenerationRequest,
    ImageProvider,
    ReferenceImage,
    UpscaleFailure,
    UpscaleRequest,
)
from .runs.events import EventWriter
from .settings import MAX_CANDIDATES

SUBJECT_TAG = "[IMAGE 1: MAIN SUBJECT/IDENTITY SOURCE]"
STYLE_TAG = "[IMAGE 2: REFERENCE STYLE/POSE/CLOTHING]"

# Modes whose batch size follows config.image_count; the rest always ask for one image.
MULTI_CANDIDATE_MODES = frozenset({Mode.CREATE, Mode.VARIATION})


def candidate_count(config: ConfigModel, mode: Mode) -> int:
    if mode not in MULTI_CANDIDATE_MODES:
        return 1
    return max(1, min(MAX_CANDIDATES, int(config.image_count)))


def build_request(
    config: ConfigModel,
    prior_image: ImageRef | None = None,
    is_variation: bool = False,
    is_reformat: bool = False,
) -> GenerationRequest | ValidationGap:
    mode = resolve_mode(prior_image is not None, is_variation=is_variation, is_reformat=is_reformat)
    gap = check_preconditions(mode, prior_image)
    if gap is not None:
        return gap
    text = compile_for_mode(config, mode)
    references: list[ReferenceImage] = []
    if mode is Mode.CREATE:
        tags: list[str] = []
        if config.subject_image is not None:
            references.append(ReferenceImage(image=config.subject_image, role="subject"))
            tags.append(SUBJECT_TAG)
        if config.secondary_image is not None:
            references.append(ReferenceImage(image=config.secondary_image, role="style"))
            tags.append(STYLE_TAG)
        if tags:
            text = f"{text} {' '.join(tags)}"
    elif prior_image is not None:
        references.append(ReferenceImage(image=prior_image, role="source"))
    return GenerationRequest(
        instruction_text=text,
        reference_images=tuple(references),
        aspect_ratio=config.aspect_ratio,
        candidate_count=candidate_count(config, mode),
        mode=mode.value,
    )


class GenerationOrchestrator:
    """Drive one batch of candidate calls against a single provider.

    Every candidate in a batch shares the same request; results come back in
    issue order. A failure in any candidate fails the whole batch once all
    calls have settled. Nothing is retried.
    """

    def __init__(
        self,
        provider: ImageProvider,
        events: EventWriter | None = None,
        max_workers: int = MAX_CANDIDATES,
    ) -> None:
        self.provider = provider
        self.events = events
        self.max_workers = max(1, max_workers)

    def _emit(self, event_type: str, **payload: object) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)

    def generate(
        self,
        config: ConfigModel,
        prior_image: ImageRef | None = None,
        is_variation: bool = False,
        is_reformat: bool = False,
    ) -> list[ImageRef] | ValidationGap:
        request = build_request(config, prior_image, is_variation=is_variation, is_reformat=is_reformat)
        if isinstance(request, ValidationGap):
            return request
        return self.run(request)

    def run(self, request: GenerationRequest) -> list[ImageRef]:
        total = request.candidate_count
        self._emit(
            "generation_requested",
            provider=self.provider.name,
            mode=request.mode,
            candidate_count=total,
            aspect_ratio=request.aspect_ratio,
            reference_roles=[ref.role for ref in request.reference_images],
            instruction=request.instruction_text,
        )
        started_at = time.monotonic()
        if total <= 1:
            outcomes = [self._attempt(request, 0)]
        else:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, total)) as pool:
                futures: list[Future[ImageRef | BaseException]] = [
                    pool.submit(self._attempt, request, idx) for idx in range(total)
                ]
                outcomes = [future.result() for future in futures]
        elapsed = max(time.monotonic() - started_at, 0.0)

        for idx, outcome in enumerate(outcomes):
            if not isinstance(outcome, BaseException):
                continue
            self._emit(
                "generation_failed",
                provider=self.provider.name,
                mode=request.mode,
                index=idx,
                candidate_count=total,
                error=str(outcome),
                elapsed_s=elapsed,
            )
            if total == 1:
                if isinstance(outcome, GenerationFailure):
                    raise outcome
                raise GenerationFailure(str(outcome)) from outcome
            raise BatchFailure(idx, total, outcome) from outcome

        images = [outcome for outcome in outcomes if isinstance(outcome, ImageRef)]
        self._emit(
            "generation_completed",
            provider=self.provider.name,
            mode=request.mode,
            ref_ids=[image.ref_id for image in images],
            elapsed_s=elapsed,
        )
        return images

    def _attempt(self, request: GenerationRequest, index: int) -> ImageRef | BaseException:
        try:
            image = self.provider.generate(request, index)
        except Exception as exc:
            return exc
        if not isinstance(image, ImageRef):
            return GenerationFailure(f"Candidate {index + 1} returned no image data.")
        self._emit("candidate_completed", index=index, ref_id=image.ref_id)
        return image

    def upscale(self, image: ImageRef) -> ImageRef:
        request = UpscaleRequest(image=image)
        started_at = time.monotonic()
        try:
            result = self.provider.upscale(request)
        except Exception as exc:
            self._emit("upscale_failed", provider=self.provider.name, source=image.ref_id, error=str(exc))
            if isinstance(exc, UpscaleFailure):
                raise
            raise UpscaleFailure(str(exc)) from exc
        self._emit(
            "upscale_completed",
            provider=self.provider.name,
            source=image.ref_id,
            ref_id=result.ref_id,
            elapsed_s=max(time.monotonic() - started_at, 0.0),
        )
        return result
