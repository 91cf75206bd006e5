"""Studio session driver.

Owns the live ``SessionState``, triggers the orchestrator and converts every
failure into a conversational message. Callers never see a generation error.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any

from .config import ConfigModel, ImageRef, with_reference_image
from .orchestrator import GenerationOrchestrator, build_request
from .prompts.compiler import ValidationGap, resolve_mode
from .providers.base import ProviderRegistry
from .runs.archive import ProjectArchive, ProjectSnapshot, snapshot_session
from .runs.events import EventWriter
from .settings import EngineSettings
from . import session as transitions
from .session import ARCHIVED_GREETING, SessionState, Status


class StudioSession:
    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        archive: ProjectArchive | None = None,
        events: EventWriter | None = None,
        config: ConfigModel | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.archive = archive if archive is not None else ProjectArchive()
        self.events = events if events is not None else orchestrator.events
        self.session_id = self.events.session_id if self.events is not None else uuid.uuid4().hex
        self._state = transitions.new_session(config)
        self._emit("session_started", provider=orchestrator.provider.name)

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        registry: ProviderRegistry,
        archive: ProjectArchive | None = None,
    ) -> "StudioSession":
        provider = registry.get(settings.provider)
        if provider is None:
            available = ", ".join(registry.list())
            raise RuntimeError(f"No provider available for {settings.provider} (available: {available})")
        events = EventWriter(settings.events_path, uuid.uuid4().hex)
        orchestrator = GenerationOrchestrator(provider, events=events, max_workers=settings.max_workers)
        return cls(orchestrator, archive=archive, events=events)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> Status:
        return self._state.status

    def _emit(self, event_type: str, **payload: Any) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)

    # -- configuration -------------------------------------------------------

    def update_config(self, **changes: Any) -> ConfigModel:
        self._state = transitions.update_config(self._state, **changes)
        return self._state.config

    def attach_image(self, slot: str, path: str | Path) -> ConfigModel:
        self._state = replace(self._state, config=with_reference_image(self._state.config, slot, path))
        return self._state.config

    def enhance_prompt(self) -> str:
        original = self._state.config.subject_description
        if not original:
            return original
        try:
            rewritten = self.orchestrator.provider.enhance_text(original)
        except Exception as exc:
            self._emit("prompt_enhance_failed", error=str(exc))
            return original
        rewritten = rewritten or original
        self.update_config(subject_description=rewritten)
        self._emit("prompt_enhanced", chars_in=len(original), chars_out=len(rewritten))
        return rewritten

    # -- generation triggers -------------------------------------------------

    def generate(self) -> SessionState | ValidationGap:
        return self._execute(self._state.config, prior_image=None)

    def chat(self, text: str) -> SessionState | ValidationGap:
        config = self.update_config(subject_description=text.strip())
        return self._execute(config, prior_image=self._state.active_image)

    def variation(self) -> SessionState | ValidationGap:
        return self._execute(self._state.config, prior_image=self._state.active_image, is_variation=True)

    def change_aspect_ratio(self, ratio: str) -> SessionState | ValidationGap | None:
        if self._state.config.aspect_ratio == ratio:
            return None
        config = self.update_config(aspect_ratio=ratio)
        if self._state.active_image is None:
            self._state = transitions.log_user_message(self._state, f"Aspect ratio set to {ratio}")
            return self._state
        return self._execute(config, prior_image=self._state.active_image, is_reformat=True)

    def _execute(
        self,
        config: ConfigModel,
        prior_image: ImageRef | None,
        is_variation: bool = False,
        is_reformat: bool = False,
    ) -> SessionState | ValidationGap:
        # config is frozen: later edits cannot reach the in-flight request.
        request = build_request(config, prior_image, is_variation=is_variation, is_reformat=is_reformat)
        if isinstance(request, ValidationGap):
            self._emit("validation_gap", action=request.action, reason=request.reason)
            return request
        mode = resolve_mode(prior_image is not None, is_variation=is_variation, is_reformat=is_reformat)
        self._state = transitions.begin_generation(self._state, mode, config)
        try:
            images = self.orchestrator.run(request)
        except Exception:
            self._state = transitions.fail_generation(self._state)
            return self._state
        self._state = transitions.resolve_generation(self._state, mode, images)
        if self._state.status is Status.CANDIDATE_SELECTION:
            self._emit("candidates_ready", count=len(images), ref_ids=[image.ref_id for image in images])
        return self._state

    def select_candidate(self, choice: ImageRef | int | str) -> SessionState | ValidationGap:
        image = self._find_candidate(choice)
        if image is None:
            return ValidationGap(action="select", reason=f"No pending candidate matches {choice!r}")
        self._state = transitions.select_candidate(self._state, image)
        self._emit("candidate_selected", ref_id=image.ref_id)
        return self._state

    def select_history(self, index: int) -> SessionState | ValidationGap:
        history = self._state.history
        if not 0 <= index < len(history):
            return ValidationGap(action="history", reason=f"No history image at position {index + 1}")
        self._state = transitions.select_history(self._state, index)
        self._emit("history_selected", index=index, ref_id=history[index].ref_id)
        return self._state

    def _find_candidate(self, choice: ImageRef | int | str) -> ImageRef | None:
        candidates = self._state.candidates
        if isinstance(choice, ImageRef):
            return choice if choice in candidates else None
        if isinstance(choice, int):
            return candidates[choice] if 0 <= choice < len(candidates) else None
        for image in candidates:
            if image.ref_id == choice:
                return image
        return None

    # -- upscale and comparison ----------------------------------------------

    def upscale(self) -> SessionState | ValidationGap:
        before = self._state.active_image
        if before is None:
            return ValidationGap(action="upscale", reason="upscale needs an existing image to work from")
        self._state = transitions.begin_upscale(self._state)
        try:
            after = self.orchestrator.upscale(before)
        except Exception:
            self._state = transitions.fail_upscale(self._state)
            return self._state
        self._state = transitions.resolve_upscale(self._state, before, after)
        return self._state

    def close_comparison(self) -> SessionState:
        self._state = transitions.close_comparison(self._state)
        return self._state

    # -- projects ------------------------------------------------------------

    def archive_project(self) -> ProjectSnapshot | None:
        snapshot = None
        if transitions.has_meaningful_content(self._state):
            snapshot = self.archive.add(snapshot_session(self._state))
            self._emit(
                "project_archived",
                project_id=snapshot.project_id,
                name=snapshot.name,
                history=len(snapshot.history),
                messages=len(snapshot.messages),
            )
        self._state = transitions.reset(self._state, greeting=ARCHIVED_GREETING)
        return snapshot

    def restore_project(self, project_id: str) -> SessionState | ValidationGap:
        snapshot = self.archive.find(project_id)
        if snapshot is None:
            return ValidationGap(action="restore", reason=f"No archived project matches {project_id!r}")
        self._state = transitions.restore(
            self._state,
            config=copy.deepcopy(snapshot.config),
            history=copy.deepcopy(snapshot.history),
            active_image=snapshot.last_image,
            messages=copy.deepcopy(snapshot.messages),
        )
        self._emit("project_restored", project_id=snapshot.project_id, name=snapshot.name)
        return self._state

    def reset(self) -> SessionState:
        self._state = transitions.reset(self._state)
        self._emit("session_reset")
        return self._state
