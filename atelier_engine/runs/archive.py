"""Archived projects: snapshot, restore, export."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from ..config import ConfigModel, ImageRef
from ..session import Message, SessionState
from ..utils import decode_b64, encode_b64, now_utc_iso, read_json, write_json

ARCHIVE_SCHEMA_VERSION = 1
NAME_LIMIT = 30
UNTITLED = "Untitled project"


@dataclass(frozen=True)
class ProjectSnapshot:
    name: str
    config: ConfigModel
    history: tuple[ImageRef, ...]
    last_image: ImageRef | None
    messages: tuple[Message, ...]
    project_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: str = field(default_factory=now_utc_iso)


def project_name(description: str) -> str:
    text = " ".join(description.split())
    return text[:NAME_LIMIT] if text else UNTITLED


def snapshot_session(state: SessionState) -> ProjectSnapshot:
    return ProjectSnapshot(
        name=project_name(state.config.subject_description),
        config=copy.deepcopy(state.config),
        history=copy.deepcopy(state.history),
        last_image=state.active_image,
        messages=copy.deepcopy(state.messages),
    )


class ProjectArchive:
    def __init__(self) -> None:
        self._projects: list[ProjectSnapshot] = []

    def __len__(self) -> int:
        return len(self._projects)

    def add(self, snapshot: ProjectSnapshot) -> ProjectSnapshot:
        self._projects.append(snapshot)
        return snapshot

    def list(self) -> list[ProjectSnapshot]:
        return list(self._projects)

    def get(self, project_id: str) -> ProjectSnapshot | None:
        for project in self._projects:
            if project.project_id == project_id:
                return project
        return None

    def find(self, key: str) -> ProjectSnapshot | None:
        """Look up by id, id prefix or 1-based position."""
        if key.isdigit():
            position = int(key)
            if 1 <= position <= len(self._projects):
                return self._projects[position - 1]
        exact = self.get(key)
        if exact is not None:
            return exact
        matches = [project for project in self._projects if project.project_id.startswith(key)]
        return matches[0] if len(matches) == 1 else None

    def save(self, path: Path) -> None:
        payload = {
            "schema_version": ARCHIVE_SCHEMA_VERSION,
            "projects": [_snapshot_to_dict(project) for project in self._projects],
        }
        write_json(path, payload)

    @classmethod
    def load(cls, path: Path) -> "ProjectArchive":
        archive = cls()
        payload = read_json(path, {})
        if not isinstance(payload, dict):
            return archive
        projects = payload.get("projects", [])
        if isinstance(projects, list):
            for item in projects:
                if isinstance(item, dict):
                    archive.add(_snapshot_from_dict(item))
        return archive


def _image_to_dict(image: ImageRef | None) -> dict[str, str] | None:
    if image is None:
        return None
    return {"mime_type": image.mime_type, "data": encode_b64(image.data)}


def _image_from_dict(payload: Mapping[str, Any] | None) -> ImageRef | None:
    if not payload:
        return None
    return ImageRef(data=decode_b64(str(payload["data"])), mime_type=str(payload.get("mime_type") or "image/png"))


def _config_to_dict(config: ConfigModel) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for item in fields(config):
        value = getattr(config, item.name)
        result[item.name] = _image_to_dict(value) if isinstance(value, ImageRef) else value
    return result


def _config_from_dict(payload: Mapping[str, Any]) -> ConfigModel:
    known = {item.name for item in fields(ConfigModel)}
    values = {key: value for key, value in payload.items() if key in known}
    for slot in ("subject_image", "secondary_image"):
        values[slot] = _image_from_dict(values.get(slot))
    return ConfigModel(**values)


def _message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "message_id": message.message_id,
        "role": message.role,
        "text": message.text,
        "image": _image_to_dict(message.image),
        "candidates": [_image_to_dict(image) for image in message.candidates],
        "timestamp": message.timestamp,
    }


def _message_from_dict(payload: Mapping[str, Any]) -> Message:
    candidates = tuple(
        image for image in (_image_from_dict(item) for item in payload.get("candidates") or []) if image
    )
    return Message(
        role=str(payload.get("role") or "model"),
        text=payload.get("text"),
        image=_image_from_dict(payload.get("image")),
        candidates=candidates,
        message_id=str(payload.get("message_id") or uuid.uuid4().hex[:12]),
        timestamp=str(payload.get("timestamp") or now_utc_iso()),
    )


def _snapshot_to_dict(snapshot: ProjectSnapshot) -> dict[str, Any]:
    return {
        "id": snapshot.project_id,
        "name": snapshot.name,
        "timestamp": snapshot.timestamp,
        "config": _config_to_dict(snapshot.config),
        "history": [_image_to_dict(image) for image in snapshot.history],
        "last_image": _image_to_dict(snapshot.last_image),
        "messages": [_message_to_dict(message) for message in snapshot.messages],
    }


def _snapshot_from_dict(payload: Mapping[str, Any]) -> ProjectSnapshot:
    history = tuple(image for image in (_image_from_dict(item) for item in payload.get("history") or []) if image)
    return ProjectSnapshot(
        name=str(payload.get("name") or UNTITLED),
        config=_config_from_dict(payload.get("config") or {}),
        history=history,
        last_image=_image_from_dict(payload.get("last_image")),
        messages=tuple(_message_from_dict(item) for item in payload.get("messages") or []),
        project_id=str(payload.get("id") or uuid.uuid4().hex),
        timestamp=str(payload.get("timestamp") or now_utc_iso()),
    )
