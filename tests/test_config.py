from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from atelier_engine.config import (
    ConfigModel,
    ImageRef,
    clamp,
    coerce_field,
    default_config,
    load_image_ref,
    with_reference_image,
)


def test_default_config_values() -> None:
    config = default_config()
    assert config.niche == "auto"
    assert config.camera_zoom == 5
    assert config.background_color == "#111111"
    assert config.lighting_color == "#00ff00"
    assert config.lighting_direction == "top-right"
    assert config.aspect_ratio == "1:1"
    assert config.image_count == 1
    assert config.subject_image is None


def test_with_updates_returns_new_value() -> None:
    config = ConfigModel()
    updated = config.with_updates(subject_description="lamp", camera_zoom=2)
    assert updated.subject_description == "lamp"
    assert updated.camera_zoom == 2
    assert config.subject_description == ""
    assert config.camera_zoom == 5


def test_config_is_frozen() -> None:
    config = ConfigModel()
    with pytest.raises(AttributeError):
        config.camera_zoom = 9  # type: ignore[misc]


def test_clamp_bounds() -> None:
    assert clamp("camera_angle", 270) == 180
    assert clamp("camera_vertical", -120) == -90
    assert clamp("camera_zoom", 0.2) == 1
    assert clamp("image_count", 9) == 4
    assert clamp("image_count", 0) == 1
    assert clamp("unbounded", 42) == 42


def test_coerce_field_parses_and_validates() -> None:
    assert coerce_field("camera_zoom", "12") == 10
    assert coerce_field("image_count", "3") == 3
    assert coerce_field("rim_light", "on") is True
    assert coerce_field("fill_light", "off") is False
    assert coerce_field("aspect_ratio", "9:16") == "9:16"
    assert coerce_field("background_color", " #000000 ") == "#000000"
    with pytest.raises(ValueError):
        coerce_field("aspect_ratio", "2:1")
    with pytest.raises(ValueError):
        coerce_field("subject_image", "x.png")
    with pytest.raises(ValueError):
        coerce_field("not_a_field", "1")


def test_load_image_ref_uses_suffix_then_content(tmp_path: Path) -> None:
    jpg = tmp_path / "face.jpg"
    jpg.write_bytes(b"not really a jpeg")
    assert load_image_ref(jpg).mime_type == "image/jpeg"

    blob = tmp_path / "upload.bin"
    Image.new("RGB", (4, 4), (10, 20, 30)).save(blob, format="PNG")
    ref = load_image_ref(blob)
    assert ref.mime_type == "image/png"
    assert ref.data == blob.read_bytes()


def test_reference_slots_are_independent(tmp_path: Path) -> None:
    subject = tmp_path / "subject.png"
    style = tmp_path / "style.webp"
    subject.write_bytes(b"subject")
    style.write_bytes(b"style")

    a = with_reference_image(with_reference_image(ConfigModel(), "subject_image", subject), "secondary_image", style)
    b = with_reference_image(with_reference_image(ConfigModel(), "secondary_image", style), "subject_image", subject)
    assert a == b
    assert a.secondary_image == ImageRef(data=b"style", mime_type="image/webp")
    with pytest.raises(ValueError):
        with_reference_image(ConfigModel(), "background", subject)
