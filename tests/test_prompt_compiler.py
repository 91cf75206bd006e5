from __future__ import annotations

from atelier_engine.config import ConfigModel, ImageRef
from atelier_engine.prompts.compiler import (
    Mode,
    ValidationGap,
    check_preconditions,
    compile_for_mode,
    compile_instruction,
    direction_phrase,
    resolve_mode,
    zoom_phrase,
)

PRIOR = ImageRef(data=b"prior-image")


def test_compile_is_deterministic() -> None:
    config = ConfigModel(subject_description="neon sneaker", rim_light=True, fill_light=True, camera_zoom=8)
    first = compile_instruction(config)
    second = compile_instruction(ConfigModel(subject_description="neon sneaker", rim_light=True, fill_light=True, camera_zoom=8))
    assert first == second
    assert compile_instruction(config, PRIOR, is_reformat=True) == compile_instruction(config, PRIOR, is_reformat=True)


def test_mode_priority_is_fixed() -> None:
    assert resolve_mode(True, is_variation=True, is_reformat=True) is Mode.REFORMAT
    assert resolve_mode(True, is_variation=True) is Mode.VARIATION
    assert resolve_mode(True) is Mode.REFINE
    assert resolve_mode(False) is Mode.CREATE

    text = compile_instruction(ConfigModel(), PRIOR, is_variation=True, is_reformat=True)
    assert text.startswith("IDENTITY LOCK:")
    assert "creative variation" not in text


def test_zoom_thresholds() -> None:
    assert zoom_phrase(3) == "Close-up detail shot."
    assert zoom_phrase(3.5) == "Medium waist-up shot."
    assert zoom_phrase(7) == "Medium waist-up shot."
    assert zoom_phrase(7.1) == "Wide full-body shot."
    assert "Close-up detail shot." in compile_instruction(ConfigModel(camera_zoom=3))
    assert "Medium waist-up shot." in compile_instruction(ConfigModel(camera_zoom=3.5))
    assert "Wide full-body shot." in compile_instruction(ConfigModel(camera_zoom=7.1))


def test_camera_clause_has_literal_degrees_and_composition() -> None:
    text = compile_instruction(ConfigModel(camera_angle=-45, camera_vertical=12.5, subject_position="top"))
    assert "Angle: -45 degrees rotation, 12.5 degrees vertical tilt." in text
    assert "subject at the top of the frame, leaving negative space below" in text

    bottom = compile_instruction(ConfigModel(subject_position="bottom"))
    assert "negative space above" in bottom
    center = compile_instruction(ConfigModel())
    assert "perfectly centered, symmetrical" in center


def test_no_lighting_clause_when_rim_and_fill_are_off() -> None:
    text = compile_instruction(ConfigModel(rim_light=False, fill_light=False))
    assert "DRAMATIC LIGHTING" not in text
    assert "rim light" not in text
    assert "fill light" not in text


def test_rim_light_maps_center_to_front_and_embeds_color() -> None:
    text = compile_instruction(ConfigModel(rim_light=True, lighting_direction="center", lighting_color="#ff0066"))
    assert "coming from the front." in text
    assert "The rim light color is #ff0066." in text
    assert "fill light" not in text


def test_unmapped_direction_falls_back_to_side() -> None:
    assert direction_phrase("nowhere") == "side"
    assert direction_phrase("middle-left") == "left"
    text = compile_instruction(ConfigModel(rim_light=True, lighting_direction="diagonal"))
    assert "coming from the side." in text


def test_fill_light_is_independent_of_rim_light() -> None:
    text = compile_instruction(ConfigModel(rim_light=False, fill_light=True))
    assert "Add soft, diffused fill light to reveal details in the shadows." in text
    assert "DRAMATIC LIGHTING" not in text


def test_create_clause_order_and_content() -> None:
    config = ConfigModel(
        subject_description="studio portrait",
        secondary_image=ImageRef(data=b"style"),
        niche="fashion",
        rim_light=True,
        background_color="#222222",
    )
    text = compile_instruction(config)
    assert text.startswith("Create a professional high-end advertising image.")
    order = [
        "Subject: studio portrait.",
        "Integrate elements/style from the second reference image",
        "Camera:",
        "DRAMATIC LIGHTING",
        "Style: editorial studio lighting",
        "Background color: #222222. Quality: 8k, photorealistic, cinematic.",
    ]
    positions = [text.index(fragment) for fragment in order]
    assert positions == sorted(positions)


def test_create_without_description_or_known_style() -> None:
    text = compile_instruction(ConfigModel(niche="does-not-exist"))
    assert "Subject:" not in text
    assert "Style:" not in text
    assert "second reference image" not in text
    assert text.endswith("Quality: 8k, photorealistic, cinematic.")


def test_refine_embeds_instruction_and_derived_subprompts() -> None:
    config = ConfigModel(subject_description="make the sky stormy", fill_light=True, camera_zoom=9)
    text = compile_instruction(config, PRIOR)
    assert text.startswith("Edit mode.")
    assert "Requested change: make the sky stormy." in text
    assert text.index("fill light") < text.index("Camera: Wide full-body shot.")
    assert text.endswith("of the provided image everywhere else.")
    assert "Background color" not in text
    assert "Style:" not in text


def test_variation_is_a_single_short_instruction() -> None:
    text = compile_instruction(ConfigModel(subject_description="ignored", rim_light=True), PRIOR, is_variation=True)
    assert text.startswith("Create a creative variation of the provided reference image.")
    assert "pose" in text
    assert "Camera:" not in text
    assert "ignored" not in text


def test_reformat_clauses_in_order_without_background() -> None:
    text = compile_for_mode(ConfigModel(aspect_ratio="16:9", background_color="#abcdef"), Mode.REFORMAT)
    order = ["IDENTITY LOCK", "EDGE ANALYSIS", "SEAMLESS EXTENSION", "letterboxing", "LIGHTING CONTINUITY"]
    positions = [text.index(fragment) for fragment in order]
    assert positions == sorted(positions)
    assert "16:9 aspect ratio" in text
    assert "Background color" not in text
    assert "#abcdef" not in text


def test_source_image_modes_require_a_prior_image() -> None:
    gap = check_preconditions(Mode.REFORMAT, None)
    assert isinstance(gap, ValidationGap)
    assert gap.action == "reformat"
    assert isinstance(check_preconditions(Mode.VARIATION, None), ValidationGap)
    assert check_preconditions(Mode.VARIATION, PRIOR) is None
    assert check_preconditions(Mode.CREATE, None) is None
