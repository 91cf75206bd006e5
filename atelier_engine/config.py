"""Creative configuration record and reference images."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, fields, replace
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from .styles import DEFAULT_STYLE_ID

SUBJECT_POSITIONS = ("center", "top", "bottom")
ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")
LIGHTING_DIRECTIONS = (
    "top-left",
    "top-center",
    "top-right",
    "middle-left",
    "center",
    "middle-right",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)
IMAGE_SLOTS = ("subject_image", "secondary_image")

# (low, high) bounds for numeric fields.
NUMERIC_BOUNDS: dict[str, tuple[float, float]] = {
    "camera_angle": (-180.0, 180.0),
    "camera_vertical": (-90.0, 90.0),
    "camera_zoom": (1.0, 10.0),
    "image_count": (1, 4),
}

_SUFFIX_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@dataclass(frozen=True)
class ImageRef:
    """Opaque handle to binary image data."""

    data: bytes
    mime_type: str = "image/png"

    @property
    def ref_id(self) -> str:
        return hashlib.sha256(self.data).hexdigest()[:12]

    def __repr__(self) -> str:
        return f"ImageRef(ref_id={self.ref_id!r}, mime_type={self.mime_type!r}, bytes={len(self.data)})"


@dataclass(frozen=True)
class ConfigModel:
    subject_image: ImageRef | None = None
    secondary_image: ImageRef | None = None
    subject_description: str = ""
    subject_position: str = "center"
    camera_angle: float = 0
    camera_vertical: float = 0
    camera_zoom: float = 5
    niche: str = DEFAULT_STYLE_ID
    studio_light_active: bool = False
    rim_light: bool = False
    fill_light: bool = False
    lighting_direction: str = "top-right"
    lighting_color: str = "#00ff00"
    background_color: str = "#111111"
    aspect_ratio: str = "1:1"
    image_count: int = 1

    def with_updates(self, **changes: Any) -> "ConfigModel":
        """Return a copy with ``changes`` applied; ``self`` is never touched."""
        return replace(self, **changes)


def default_config() -> ConfigModel:
    return ConfigModel()


def config_field_names() -> list[str]:
    return [item.name for item in fields(ConfigModel)]


def clamp(name: str, value: float) -> float:
    bounds = NUMERIC_BOUNDS.get(name)
    if bounds is None:
        return value
    low, high = bounds
    clamped = max(low, min(high, value))
    if name == "image_count":
        return int(round(clamped))
    return clamped


def coerce_field(name: str, raw: str) -> Any:
    """Parse a user-entered string into a clamped value for ``name``.

    Raises ValueError for unknown fields or values outside an enumerated set.
    """
    if name not in config_field_names() or name in IMAGE_SLOTS:
        raise ValueError(f"Unknown config field: {name}")
    text = raw.strip()
    if name in NUMERIC_BOUNDS:
        return clamp(name, float(text))
    if name in {"studio_light_active", "rim_light", "fill_light"}:
        lowered = text.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"Expected on/off for {name}, got {raw!r}")
    enumerated = {
        "subject_position": SUBJECT_POSITIONS,
        "aspect_ratio": ASPECT_RATIOS,
        "lighting_direction": LIGHTING_DIRECTIONS,
    }.get(name)
    if enumerated is not None and text not in enumerated:
        raise ValueError(f"{name} must be one of: {', '.join(enumerated)}")
    return text


def load_image_ref(path: str | Path) -> ImageRef:
    source = Path(path).expanduser()
    data = source.read_bytes()
    return ImageRef(data=data, mime_type=_guess_mime(source, data))


def with_reference_image(config: ConfigModel, slot: str, path: str | Path) -> ConfigModel:
    if slot not in IMAGE_SLOTS:
        raise ValueError(f"Unknown image slot: {slot}")
    return config.with_updates(**{slot: load_image_ref(path)})


def _guess_mime(path: Path, data: bytes) -> str:
    mime = _SUFFIX_MIME.get(path.suffix.lower())
    if mime:
        return mime
    try:
        with Image.open(BytesIO(data)) as image:
            detected = Image.MIME.get(image.format or "")
    except (UnidentifiedImageError, OSError):
        detected = None
    return detected or "image/png"
