"""Session state and its transitions.

``SessionState`` is an immutable value. Every transition below takes the current
state and returns a new one; none of them touch the orchestrator or any I/O.
``history`` is newest-first: ``history[0]`` is the most recently resolved image.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Sequence

from .config import ConfigModel, ImageRef, default_config
from .prompts.compiler import Mode
from .utils import now_utc_iso

GREETING = "Hi! I'm your design assistant. Shall we create something amazing today?"
RESET_GREETING = "Project reset. Let's start again!"
ARCHIVED_GREETING = "Project archived. Let's start a new one!"
FAILURE_TEXT = "Sorry, I had a problem generating the image. Please try again."
UPSCALE_REQUEST_TEXT = "Enhance resolution (upscale)"
UPSCALE_DONE_TEXT = "Image restored and enhanced successfully."
UPSCALE_FAILURE_TEXT = "Upscale failed."
SELECTED_TEXT = "Option selected. It is now the active image."

_DONE_TEXT = {
    Mode.VARIATION: "Variation generated.",
    Mode.REFORMAT: "Format adjusted successfully.",
}


class Status(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    CANDIDATE_SELECTION = "candidate_selection"
    COMPARING = "comparing"


@dataclass(frozen=True)
class Message:
    role: str  # "user" or "model"
    text: str | None = None
    image: ImageRef | None = None
    candidates: tuple[ImageRef, ...] = ()
    message_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: str = field(default_factory=now_utc_iso)


@dataclass(frozen=True)
class Comparison:
    before: ImageRef
    after: ImageRef


@dataclass(frozen=True)
class SessionState:
    config: ConfigModel = field(default_factory=default_config)
    active_image: ImageRef | None = None
    candidates: tuple[ImageRef, ...] = ()
    history: tuple[ImageRef, ...] = ()
    messages: tuple[Message, ...] = ()
    comparison: Comparison | None = None
    status: Status = Status.IDLE
    resume_status: Status = Status.IDLE
    is_typing: bool = False


def new_session(config: ConfigModel | None = None, greeting: str = GREETING) -> SessionState:
    return SessionState(
        config=config or default_config(),
        messages=(Message(role="model", text=greeting),),
    )


def _append(state: SessionState, message: Message) -> tuple[Message, ...]:
    return state.messages + (message,)


def _settled(candidates: Sequence[ImageRef]) -> Status:
    return Status.CANDIDATE_SELECTION if candidates else Status.IDLE


def _resolve_single(state: SessionState, image: ImageRef, text: str) -> SessionState:
    return replace(
        state,
        active_image=image,
        history=(image,) + state.history,
        candidates=(),
        comparison=None,
        messages=_append(state, Message(role="model", text=text, image=image)),
        status=Status.IDLE,
        resume_status=Status.IDLE,
        is_typing=False,
    )


def update_config(state: SessionState, **changes: Any) -> SessionState:
    return replace(state, config=state.config.with_updates(**changes))


def log_user_message(state: SessionState, text: str) -> SessionState:
    return replace(state, messages=_append(state, Message(role="user", text=text)))


def request_summary(config: ConfigModel, mode: Mode) -> str:
    if mode is Mode.REFORMAT:
        return f"Adjust format to {config.aspect_ratio} (keep subject)"
    if mode is Mode.VARIATION:
        return "Create a creative variation of this image"
    if mode is Mode.REFINE:
        return f"Refine image: {config.subject_description}"
    return f"Create image ({config.niche}) - {config.subject_description or 'automatic'}"


def begin_generation(state: SessionState, mode: Mode, config: ConfigModel | None = None) -> SessionState:
    summary = request_summary(config or state.config, mode)
    return replace(
        state,
        comparison=None,
        resume_status=Status.IDLE,
        messages=_append(state, Message(role="user", text=summary)),
        status=Status.PROCESSING,
        is_typing=True,
    )


def resolve_generation(state: SessionState, mode: Mode, images: Sequence[ImageRef]) -> SessionState:
    if not images:
        return fail_generation(state)
    if len(images) == 1:
        return _resolve_single(state, images[0], _DONE_TEXT.get(mode, "Design generated successfully."))
    candidates = tuple(images)
    prompt = f"{len(candidates)} options generated. Pick the one you like best."
    return replace(
        state,
        candidates=candidates,
        messages=_append(state, Message(role="model", text=prompt, candidates=candidates)),
        status=Status.CANDIDATE_SELECTION,
        is_typing=False,
    )


def fail_generation(state: SessionState, text: str = FAILURE_TEXT) -> SessionState:
    return replace(
        state,
        messages=_append(state, Message(role="model", text=text)),
        status=_settled(state.candidates),
        is_typing=False,
    )


def select_candidate(state: SessionState, image: ImageRef) -> SessionState:
    return _resolve_single(state, image, SELECTED_TEXT)


def select_history(state: SessionState, index: int) -> SessionState:
    """Make ``history[index]`` the active image; history and messages stay as they are.

    An open comparison is closed, since its ``after`` image would no longer be active.
    """
    return replace(close_comparison(state), active_image=state.history[index])


def begin_upscale(state: SessionState) -> SessionState:
    resume = state.resume_status if state.status is Status.COMPARING else _settled(state.candidates)
    return replace(
        state,
        messages=_append(state, Message(role="user", text=UPSCALE_REQUEST_TEXT)),
        status=Status.PROCESSING,
        resume_status=resume,
        is_typing=True,
    )


def resolve_upscale(state: SessionState, before: ImageRef, after: ImageRef) -> SessionState:
    return replace(
        state,
        active_image=after,
        history=(after,) + state.history,
        comparison=Comparison(before=before, after=after),
        messages=_append(state, Message(role="model", text=UPSCALE_DONE_TEXT, image=after)),
        status=Status.COMPARING,
        is_typing=False,
    )


def fail_upscale(state: SessionState) -> SessionState:
    status = Status.COMPARING if state.comparison is not None else state.resume_status
    return replace(
        state,
        messages=_append(state, Message(role="model", text=UPSCALE_FAILURE_TEXT)),
        status=status,
        is_typing=False,
    )


def close_comparison(state: SessionState) -> SessionState:
    if state.status is not Status.COMPARING:
        return state
    return replace(state, comparison=None, status=state.resume_status, resume_status=Status.IDLE)


def has_meaningful_content(state: SessionState) -> bool:
    if state.active_image is not None:
        return True
    if len(state.config.subject_description.strip()) > 3:
        return True
    return len(state.messages) > 1


def reset(state: SessionState, greeting: str = RESET_GREETING) -> SessionState:
    return new_session(greeting=greeting)


def restore(
    state: SessionState,
    config: ConfigModel,
    history: Sequence[ImageRef],
    active_image: ImageRef | None,
    messages: Sequence[Message],
) -> SessionState:
    return SessionState(
        config=config,
        active_image=active_image,
        candidates=(),
        history=tuple(history),
        messages=tuple(messages),
        comparison=None,
        status=Status.IDLE,
    )
