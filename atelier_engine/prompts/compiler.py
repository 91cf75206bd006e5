"""Compile a creative configuration into a mode-specific instruction.

Each mode owns an ordered template: a tuple of clause functions that receive a
``ClauseContext`` and return a sentence (or ``None`` to contribute nothing).
``compile_instruction`` resolves the mode, runs its template in order and joins
the non-empty clauses with single spaces. Nothing here reads the clock, the
environment or any mutable global, so identical inputs always compile to an
identical string.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..config import ConfigModel, ImageRef
from ..styles import get_style


class Mode(str, Enum):
    CREATE = "create"
    REFINE = "refine"
    VARIATION = "variation"
    REFORMAT = "reformat"


# Modes that must be given exactly one prior image to work from.
SOURCE_IMAGE_MODES = frozenset({Mode.REFINE, Mode.VARIATION, Mode.REFORMAT})

_DIRECTION_PHRASES = {
    "top-left": "top left",
    "top-center": "top",
    "top-right": "top right",
    "middle-left": "left",
    "center": "front",
    "middle-right": "right",
    "bottom-left": "bottom left",
    "bottom-center": "bottom",
    "bottom-right": "bottom right",
}

_COMPOSITION_PHRASES = {
    "top": "Composition: place the subject at the top of the frame, leaving negative space below.",
    "bottom": "Composition: place the subject at the bottom of the frame, leaving negative space above.",
    "center": "Composition: subject perfectly centered, symmetrical framing.",
}


@dataclass(frozen=True)
class ValidationGap:
    """An action was asked for without the input it needs."""

    action: str
    reason: str


@dataclass(frozen=True)
class ClauseContext:
    config: ConfigModel
    mode: Mode


Clause = Callable[[ClauseContext], Optional[str]]


def resolve_mode(has_prior_image: bool, is_variation: bool = False, is_reformat: bool = False) -> Mode:
    if is_reformat:
        return Mode.REFORMAT
    if is_variation:
        return Mode.VARIATION
    if has_prior_image:
        return Mode.REFINE
    return Mode.CREATE


def check_preconditions(mode: Mode, prior_image: ImageRef | None) -> ValidationGap | None:
    if mode in SOURCE_IMAGE_MODES and prior_image is None:
        return ValidationGap(action=mode.value, reason=f"{mode.value} needs an existing image to work from")
    return None


def zoom_phrase(zoom: float) -> str:
    if zoom <= 3:
        return "Close-up detail shot."
    if zoom <= 7:
        return "Medium waist-up shot."
    return "Wide full-body shot."


def direction_phrase(direction: str) -> str:
    return _DIRECTION_PHRASES.get(direction, "side")


def _format_degrees(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:g}"


# -- shared sub-prompts ------------------------------------------------------


def camera_clause(ctx: ClauseContext) -> str:
    config = ctx.config
    return (
        f"Camera: {zoom_phrase(config.camera_zoom)} "
        f"Angle: {_format_degrees(config.camera_angle)} degrees rotation, "
        f"{_format_degrees(config.camera_vertical)} degrees vertical tilt. "
        f"{_COMPOSITION_PHRASES.get(config.subject_position, _COMPOSITION_PHRASES['center'])}"
    )


def rim_light_clause(ctx: ClauseContext) -> str | None:
    config = ctx.config
    if not config.rim_light:
        return None
    return (
        "DRAMATIC LIGHTING: Strong volumetric rim light (backlight/contour light) coming from the "
        f"{direction_phrase(config.lighting_direction)}. "
        f"The rim light color is {config.lighting_color}. "
        "This light should trace the edges of the subject strongly."
    )


def fill_light_clause(ctx: ClauseContext) -> str | None:
    if not ctx.config.fill_light:
        return None
    return "Add soft, diffused fill light to reveal details in the shadows."


# -- create ------------------------------------------------------------------


def create_opening_clause(ctx: ClauseContext) -> str:
    return "Create a professional high-end advertising image."


def subject_clause(ctx: ClauseContext) -> str | None:
    description = ctx.config.subject_description.strip()
    if not description:
        return None
    return f"Subject: {description}."


def secondary_reference_clause(ctx: ClauseContext) -> str | None:
    if ctx.config.secondary_image is None:
        return None
    return "Integrate elements/style from the second reference image provided into the main composition."


def style_clause(ctx: ClauseContext) -> str | None:
    style = get_style(ctx.config.niche)
    if style is None:
        return None
    return f"Style: {style.prompt_modifier}."


def finish_clause(ctx: ClauseContext) -> str:
    return f"Background color: {ctx.config.background_color}. Quality: 8k, photorealistic, cinematic."


# -- refine ------------------------------------------------------------------


def refine_opening_clause(ctx: ClauseContext) -> str:
    return "Edit mode. This is an edit task on the provided image."


def requested_change_clause(ctx: ClauseContext) -> str | None:
    instruction = ctx.config.subject_description.strip()
    if not instruction:
        return None
    return f"Requested change: {instruction}."


def preserve_clause(ctx: ClauseContext) -> str:
    return (
        "Apply only the requested change. Preserve the subject identity, composition and style "
        "of the provided image everywhere else."
    )


# -- variation ---------------------------------------------------------------


def variation_clause(ctx: ClauseContext) -> str:
    return (
        "Create a creative variation of the provided reference image. Keep the same subject, style "
        "and composition, but vary the pose and the nuances of the lighting."
    )


# -- reformat ----------------------------------------------------------------


def identity_lock_clause(ctx: ClauseContext) -> str:
    return (
        "IDENTITY LOCK: Do not redraw, alter or regenerate the existing subject. "
        "Every existing element of the source image must stay exactly as it is."
    )


def edge_analysis_clause(ctx: ClauseContext) -> str:
    return (
        "EDGE ANALYSIS: Inspect the texture, color and lighting along the borders of the supplied "
        "source image before extending it."
    )


def edge_extension_clause(ctx: ClauseContext) -> str:
    return (
        f"SEAMLESS EXTENSION: Extend the frame to a {ctx.config.aspect_ratio} aspect ratio by continuing "
        "the dominant edge type (studio backdrop, gradient, environment or pattern) seamlessly past "
        "the original borders."
    )


def no_padding_clause(ctx: ClauseContext) -> str:
    return "Never fill the new area with flat color padding, borders or letterboxing."


def lighting_continuity_clause(ctx: ClauseContext) -> str:
    return (
        "LIGHTING CONTINUITY: Match the direction, color and falloff of the existing lighting "
        "across the extended areas."
    )


TEMPLATES: dict[Mode, tuple[Clause, ...]] = {
    Mode.REFORMAT: (
        identity_lock_clause,
        edge_analysis_clause,
        edge_extension_clause,
        no_padding_clause,
        lighting_continuity_clause,
    ),
    Mode.VARIATION: (variation_clause,),
    Mode.REFINE: (
        refine_opening_clause,
        requested_change_clause,
        rim_light_clause,
        fill_light_clause,
        camera_clause,
        preserve_clause,
    ),
    Mode.CREATE: (
        create_opening_clause,
        subject_clause,
        secondary_reference_clause,
        camera_clause,
        rim_light_clause,
        fill_light_clause,
        style_clause,
        finish_clause,
    ),
}


def compile_for_mode(config: ConfigModel, mode: Mode) -> str:
    ctx = ClauseContext(config=config, mode=mode)
    clauses = (clause(ctx) for clause in TEMPLATES[mode])
    return " ".join(text for text in clauses if text)


def compile_instruction(
    config: ConfigModel,
    prior_image: ImageRef | None = None,
    is_variation: bool = False,
    is_reformat: bool = False,
) -> str:
    mode = resolve_mode(prior_image is not None, is_variation=is_variation, is_reformat=is_reformat)
    return compile_for_mode(config, mode)
