"""Environment-driven engine settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .providers.gemini import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL
from .utils import getenv_int

MAX_CANDIDATES = 4


@dataclass(frozen=True)
class EngineSettings:
    provider: str = "gemini"
    image_model: str = DEFAULT_IMAGE_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    max_workers: int = MAX_CANDIDATES
    events_path: Path | None = None

    @classmethod
    def from_env(cls) -> "EngineSettings":
        events = os.getenv("ATELIER_EVENTS")
        return cls(
            provider=(os.getenv("ATELIER_PROVIDER") or "gemini").strip().lower(),
            image_model=os.getenv("ATELIER_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            text_model=os.getenv("ATELIER_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
            max_workers=max(1, min(getenv_int("ATELIER_MAX_WORKERS", MAX_CANDIDATES), MAX_CANDIDATES)),
            events_path=Path(events).expanduser() if events else None,
        )
