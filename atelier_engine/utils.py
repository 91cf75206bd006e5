"""Shared helpers: timestamps, JSON files, event payloads and environment."""

from __future__ import annotations

import base64
import json
import os
import tomllib
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from .config import ImageRef

# Keys whose values may hold raw or encoded image data.
_BINARY_KEYS = frozenset({"b64_json", "image_bytes", "data", "inline_data"})


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sanitize_payload(payload: Any) -> Any:
    """Make an event payload JSON-safe without ever writing image bytes."""
    if payload is None or isinstance(payload, (str, int, float, bool)):
        return payload
    if isinstance(payload, ImageRef):
        return {"ref_id": payload.ref_id, "mime_type": payload.mime_type, "bytes": len(payload.data)}
    if isinstance(payload, (bytes, bytearray)):
        return f"<bytes:{len(payload)}>"
    if isinstance(payload, Path):
        return str(payload)
    if is_dataclass(payload):
        return sanitize_payload(asdict(payload))
    if isinstance(payload, Mapping):
        return {
            str(key): "<omitted>" if str(key).lower() in _BINARY_KEYS else sanitize_payload(value)
            for key, value in payload.items()
        }
    if isinstance(payload, (list, tuple, set, frozenset)):
        return [sanitize_payload(item) for item in payload]
    return str(payload)


def encode_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_b64(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"))


def read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return default


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def getenv_int(key: str, default: int) -> int:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_env_line(line: str) -> tuple[str, str] | None:
    """Split one ``.env`` line into ``(key, value)``; comments and junk give None."""
    text = line.strip()
    if text.startswith("export "):
        text = text[len("export ") :].lstrip()
    if not text or text.startswith("#") or "=" not in text:
        return None
    key, value = (part.strip() for part in text.split("=", 1))
    if not key:
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        value = value[1:-1]
    return key, value


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = parse_env_line(line)
        if parsed is None:
            continue
        key, value = parsed
        if override or key not in os.environ:
            os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    root = _find_project_root(cwd)
    if root is not None and (root / ".env").exists():
        return root / ".env"
    return cwd / ".env"


def _find_project_root(start: Path) -> Path | None:
    for candidate in (start, *start.parents):
        if (candidate / "atelier_engine").is_dir():
            return candidate
        pyproject = candidate / "pyproject.toml"
        if not pyproject.exists():
            continue
        try:
            name = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {}).get("name")
        except (OSError, tomllib.TOMLDecodeError):
            continue
        if name == "atelier":
            return candidate
    return None
