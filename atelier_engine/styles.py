"""Style (niche) catalog."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StyleOption:
    style_id: str
    label: str
    prompt_modifier: str


STYLES: tuple[StyleOption, ...] = (
    StyleOption(
        "auto",
        "AI decides",
        "analyze the subject and context to determine the best professional design style, lighting, "
        "and composition automatically for high aesthetic impact",
    ),
    StyleOption(
        "marketing",
        "Marketing",
        "professional digital marketing aesthetic, high conversion, abstract tech elements, "
        "deep blue and neon accents, clean typography space",
    ),
    StyleOption(
        "dental",
        "Dentistry",
        "pristine medical aesthetic, bright white and teal lighting, clean, sterile environment, "
        "confident smiling professional vibe",
    ),
    StyleOption(
        "workshop",
        "Workshop",
        "gritty garage texture, dramatic lighting, metallic surfaces, high contrast, "
        "warm orange and steel gray tones",
    ),
    StyleOption(
        "fashion",
        "Fashion",
        "editorial studio lighting, minimal background, focus on texture and fabric, "
        "high fashion pose, soft shadows",
    ),
    StyleOption(
        "tech",
        "Technology",
        "modern minimalist, isometric 3D elements, glassmorphism, soft gradients, futuristic",
    ),
)

DEFAULT_STYLE_ID = STYLES[0].style_id

_STYLE_MAP = {style.style_id: style for style in STYLES}


def get_style(style_id: str | None) -> StyleOption | None:
    if not style_id:
        return None
    return _STYLE_MAP.get(style_id)


def style_ids() -> list[str]:
    return [style.style_id for style in STYLES]
