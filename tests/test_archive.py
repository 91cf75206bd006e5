from __future__ import annotations

import json
from pathlib import Path

from atelier_engine.config import ConfigModel, ImageRef
from atelier_engine.runs.archive import ProjectArchive, ProjectSnapshot, project_name
from atelier_engine.session import Message


def _snapshot(name: str = "poster") -> ProjectSnapshot:
    image = ImageRef(data=b"\x89PNG-fake", mime_type="image/png")
    config = ConfigModel(subject_description=name, subject_image=ImageRef(data=b"subject", mime_type="image/jpeg"))
    messages = (
        Message(role="model", text="hello"),
        Message(role="model", text="2 options", candidates=(image, ImageRef(data=b"other"))),
    )
    return ProjectSnapshot(name=name, config=config, history=(image,), last_image=image, messages=messages)


def test_project_name_truncates_and_defaults() -> None:
    assert project_name("x" * 40) == "x" * 30
    assert project_name("  neon   sign ") == "neon sign"
    assert project_name("") == "Untitled project"


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    archive = ProjectArchive()
    original = archive.add(_snapshot())
    path = tmp_path / "projects.json"

    archive.save(path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == 1
    assert payload["projects"][0]["id"] == original.project_id

    loaded = ProjectArchive.load(path)
    assert len(loaded) == 1
    restored = loaded.get(original.project_id)
    assert restored is not None
    assert restored.config == original.config
    assert restored.history == original.history
    assert restored.last_image == original.last_image
    assert restored.messages[1].candidates == original.messages[1].candidates
    assert restored.timestamp == original.timestamp


def test_load_missing_file_is_empty(tmp_path: Path) -> None:
    assert len(ProjectArchive.load(tmp_path / "absent.json")) == 0


def test_find_by_position_id_and_prefix() -> None:
    archive = ProjectArchive()
    first = archive.add(_snapshot("first"))
    second = archive.add(_snapshot("second"))

    assert archive.find("1") is first
    assert archive.find("2") is second
    assert archive.find(second.project_id) is second
    assert archive.find(first.project_id[:10]) is first
    assert archive.find("zzz") is None
    assert [project.name for project in archive.list()] == ["first", "second"]
