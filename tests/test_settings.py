from __future__ import annotations

import os
from pathlib import Path

import pytest

from atelier_engine.settings import EngineSettings
from atelier_engine.utils import load_dotenv


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("ATELIER_PROVIDER", "ATELIER_IMAGE_MODEL", "ATELIER_TEXT_MODEL", "ATELIER_MAX_WORKERS", "ATELIER_EVENTS"):
        monkeypatch.delenv(key, raising=False)
    settings = EngineSettings.from_env()
    assert settings.provider == "gemini"
    assert settings.image_model == "gemini-2.5-flash-image"
    assert settings.text_model == "gemini-2.5-flash"
    assert settings.max_workers == 4
    assert settings.events_path is None


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ATELIER_PROVIDER", " DryRun ")
    monkeypatch.setenv("ATELIER_MAX_WORKERS", "16")
    monkeypatch.setenv("ATELIER_EVENTS", str(tmp_path / "events.jsonl"))
    settings = EngineSettings.from_env()
    assert settings.provider == "dryrun"
    assert settings.max_workers == 4
    assert settings.events_path == tmp_path / "events.jsonl"

    monkeypatch.setenv("ATELIER_MAX_WORKERS", "lots")
    assert EngineSettings.from_env().max_workers == 4


def test_load_dotenv_respects_existing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "# keys\nexport GEMINI_API_KEY='from-file'\nATELIER_PROVIDER=dryrun\nbroken line\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("ATELIER_PROVIDER", "gemini")

    assert load_dotenv(env_path)
    assert os.environ["GEMINI_API_KEY"] == "from-file"
    assert os.environ["ATELIER_PROVIDER"] == "gemini"
    assert not load_dotenv(tmp_path / "missing.env")
