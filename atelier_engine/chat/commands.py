"""Slash-command registry and parser for the studio chat."""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str  # "none", "raw", "path", "pair"
    help: str


@dataclass
class Intent:
    action: str
    raw: str
    text: str | None = None
    command_args: dict[str, Any] = field(default_factory=dict)


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("generate", "generate", "none", "create a new image from the current settings"),
    CommandSpec("variation", "variation", "none", "creative variation of the active image"),
    CommandSpec("upscale", "upscale", "none", "enhance resolution and open a before/after comparison"),
    CommandSpec("compare", "show_comparison", "none", "show the current before/after pair"),
    CommandSpec("close_compare", "close_comparison", "none", "close the comparison"),
    CommandSpec("ratio", "set_ratio", "raw", "change aspect ratio (reformats the active image)"),
    CommandSpec("count", "set_count", "raw", "number of candidates per create/variation (1-4)"),
    CommandSpec("select", "select", "raw", "pick a pending candidate by number or id"),
    CommandSpec("history", "history", "raw", "list earlier images, or make one active: /history 2"),
    CommandSpec("style", "set_style", "raw", "choose a style/niche"),
    CommandSpec("set", "set_field", "pair", "set any config field: /set camera_zoom 8"),
    CommandSpec("subject", "set_subject_image", "path", "attach the main subject image"),
    CommandSpec("reference", "set_secondary_image", "path", "attach a style/element reference image"),
    CommandSpec("enhance", "enhance", "none", "rewrite the description as a detailed brief"),
    CommandSpec("config", "show_config", "none", "show the current settings"),
    CommandSpec("archive", "archive", "none", "archive this project and start a new one"),
    CommandSpec("projects", "list_projects", "none", "list archived projects"),
    CommandSpec("restore", "restore", "raw", "restore an archived project by number or id"),
    CommandSpec("save", "save_archive", "path", "write archived projects to a JSON file"),
    CommandSpec("reset", "reset", "none", "discard the session without archiving"),
    CommandSpec("help", "help", "none", "show this help"),
    CommandSpec("quit", "quit", "none", "leave the chat"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMANDS}

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$")


def _parse_path_arg(arg: str) -> str:
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    return " ".join(part for part in parts if part)


def help_lines() -> list[str]:
    return [f"/{spec.command:<14} {spec.help}" for spec in COMMANDS]


def parse_intent(text: str) -> Intent:
    raw = text.strip()
    if not raw:
        return Intent(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Intent(action="chat", raw=text, text=raw)
    command = match.group(1).lower()
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=text, command_args={"command": command, "arg": arg})
    if spec.arg_kind == "raw":
        return Intent(action=spec.action, raw=text, command_args={"value": arg})
    if spec.arg_kind == "path":
        return Intent(action=spec.action, raw=text, command_args={"path": _parse_path_arg(arg)})
    if spec.arg_kind == "pair":
        name, _, value = arg.partition(" ")
        return Intent(action=spec.action, raw=text, command_args={"field": name.strip(), "value": value.strip()})
    return Intent(action=spec.action, raw=text)
