"""Interactive studio chat loop."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TextIO
import sys

from .commands import help_lines, parse_intent, Intent
from ..cli_progress import ProgressTicker
from ..config import ImageRef, coerce_field
from ..prompts.compiler import ValidationGap
from ..session import SessionState, Status
from ..studio import StudioSession
from ..styles import get_style, style_ids

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


def write_image(out_dir: Path, image: ImageRef, label: str) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    ext = _EXTENSIONS.get(image.mime_type, "png")
    path = out_dir / f"{label}-{image.ref_id}.{ext}"
    if not path.exists():
        path.write_bytes(image.data)
    return path


class ChatLoop:
    def __init__(
        self,
        studio: StudioSession,
        out_dir: Path,
        read_line: Callable[[str], str] = input,
        stream: TextIO | None = None,
    ) -> None:
        self.studio = studio
        self.out_dir = out_dir
        self.read_line = read_line
        self.stream = stream or sys.stdout
        self._shown_messages = 0

    def say(self, text: str) -> None:
        self.stream.write(f"{text}\n")
        self.stream.flush()

    def run(self) -> None:
        self.say("Studio chat started. Describe what you want, or type /help for commands.")
        self._flush_messages()
        while True:
            try:
                line = self.read_line("> ")
            except (EOFError, KeyboardInterrupt):
                break
            if not self.handle(parse_intent(line)):
                break

    def handle(self, intent: Intent) -> bool:
        """Apply one intent; return False when the loop should stop."""
        action = intent.action
        args = intent.command_args
        if action == "noop":
            return True
        if action == "quit":
            return False
        if action == "help":
            for line in help_lines():
                self.say(line)
            return True
        if action == "unknown":
            self.say(f"Unknown command /{args.get('command')}. Type /help for commands.")
            return True

        if action == "chat":
            self._run_with_progress("Generating", lambda: self.studio.chat(intent.text or ""))
        elif action == "generate":
            self._run_with_progress("Generating", self.studio.generate)
        elif action == "variation":
            self._run_with_progress("Generating variation", self.studio.variation)
        elif action == "upscale":
            self._run_with_progress("Upscaling", self.studio.upscale)
        elif action == "set_ratio":
            self._set_ratio(str(args.get("value") or ""))
        elif action == "set_count":
            self._set_field("image_count", str(args.get("value") or ""))
        elif action == "set_field":
            self._set_field(str(args.get("field") or ""), str(args.get("value") or ""))
        elif action == "set_style":
            self._set_style(str(args.get("value") or ""))
        elif action == "select":
            self._select(str(args.get("value") or ""))
        elif action == "history":
            self._history(str(args.get("value") or ""))
        elif action == "show_comparison":
            self._show_comparison()
        elif action == "close_comparison":
            self.studio.close_comparison()
            self.say(f"Comparison closed ({self.studio.status.value}).")
        elif action in {"set_subject_image", "set_secondary_image"}:
            self._attach(action, str(args.get("path") or ""))
        elif action == "enhance":
            self._enhance()
        elif action == "show_config":
            self._show_config()
        elif action == "archive":
            self._archive()
        elif action == "list_projects":
            self._list_projects()
        elif action == "restore":
            self._restore(str(args.get("value") or ""))
        elif action == "save_archive":
            self._save_archive(str(args.get("path") or ""))
        elif action == "reset":
            self.studio.reset()
            self._shown_messages = 0
        self._flush_messages()
        return True

    def _run_with_progress(self, label: str, trigger: Callable[[], SessionState | ValidationGap]) -> None:
        ticker = ProgressTicker(label, stream=self.stream)
        ticker.start_ticking()
        try:
            result = trigger()
        finally:
            ticker.stop()
        if isinstance(result, ValidationGap):
            self.say(f"Cannot {result.action}: {result.reason}.")

    def _set_ratio(self, value: str) -> None:
        try:
            ratio = coerce_field("aspect_ratio", value)
        except ValueError as exc:
            self.say(str(exc))
            return
        if ratio == self.studio.state.config.aspect_ratio:
            self.say(f"Aspect ratio is already {ratio}.")
            return
        if self.studio.state.active_image is None:
            self.studio.change_aspect_ratio(ratio)
            return
        self._run_with_progress(f"Reformatting to {ratio}", lambda: self.studio.change_aspect_ratio(ratio))

    def _set_field(self, name: str, value: str) -> None:
        try:
            coerced = coerce_field(name, value)
        except ValueError as exc:
            self.say(str(exc))
            return
        if name == "aspect_ratio":
            self._set_ratio(value)
            return
        self.studio.update_config(**{name: coerced})
        self.say(f"{name} = {coerced}")

    def _set_style(self, value: str) -> None:
        style = get_style(value.strip().lower())
        if style is None:
            self.say(f"Unknown style. Choose one of: {', '.join(style_ids())}")
            return
        self.studio.update_config(niche=style.style_id)
        self.say(f"Style set to {style.label}.")

    def _select(self, value: str) -> None:
        choice: int | str = int(value) - 1 if value.isdigit() else value
        result = self.studio.select_candidate(choice)
        if isinstance(result, ValidationGap):
            self.say(f"Cannot select: {result.reason}.")

    def _history(self, value: str) -> None:
        history = self.studio.state.history
        if not value:
            if not history:
                self.say("No images yet.")
                return
            active = self.studio.state.active_image
            for idx, image in enumerate(history, start=1):
                marker = "*" if image == active else " "
                self.say(f"{marker} {idx}. {write_image(self.out_dir, image, f'history-{idx}')}")
            return
        if not value.isdigit():
            self.say("/history takes a number from the list")
            return
        result = self.studio.select_history(int(value) - 1)
        if isinstance(result, ValidationGap):
            self.say(f"Cannot select history: {result.reason}.")
            return
        self.say(f"History image {value} is now the active image.")

    def _show_comparison(self) -> None:
        comparison = self.studio.state.comparison
        if comparison is None or self.studio.status is not Status.COMPARING:
            self.say("No comparison open.")
            return
        self.say(f"Before: {write_image(self.out_dir, comparison.before, 'before')}")
        self.say(f"After:  {write_image(self.out_dir, comparison.after, 'after')}")

    def _attach(self, action: str, raw_path: str) -> None:
        slot = "subject_image" if action == "set_subject_image" else "secondary_image"
        path = Path(raw_path).expanduser()
        if not raw_path or not path.is_file():
            self.say(f"Image not found: {raw_path or '(missing path)'}")
            return
        try:
            self.studio.attach_image(slot, path)
        except OSError as exc:
            self.say(f"Could not read {path}: {exc}")
            return
        self.say(f"Attached {path.name} as {slot.replace('_', ' ')}.")

    def _enhance(self) -> None:
        before = self.studio.state.config.subject_description
        if not before:
            self.say("Nothing to enhance yet. Describe the subject first with /set subject_description ...")
            return
        after = self.studio.enhance_prompt()
        if after == before:
            self.say("Enhancement unavailable; description unchanged.")
            return
        self.say(f"Description: {after}")

    def _show_config(self) -> None:
        config = self.studio.state.config
        for name, value in vars(config).items():
            if isinstance(value, ImageRef):
                value = f"<image {value.ref_id}>"
            self.say(f"{name:<20} {value}")

    def _archive(self) -> None:
        snapshot = self.studio.archive_project()
        self._shown_messages = 0
        if snapshot is None:
            self.say("Nothing worth archiving; started a fresh project.")
            return
        self.say(f"Archived '{snapshot.name}' ({snapshot.project_id[:8]}).")

    def _list_projects(self) -> None:
        projects = self.studio.archive.list()
        if not projects:
            self.say("No archived projects.")
            return
        for idx, project in enumerate(projects, start=1):
            self.say(f"{idx}. {project.name} [{project.project_id[:8]}] {project.timestamp} ({len(project.history)} images)")

    def _restore(self, key: str) -> None:
        result = self.studio.restore_project(key)
        if isinstance(result, ValidationGap):
            self.say(f"Cannot restore: {result.reason}.")
            return
        self._shown_messages = 0

    def _save_archive(self, raw_path: str) -> None:
        if not raw_path:
            self.say("/save requires a path")
            return
        path = Path(raw_path).expanduser()
        self.studio.archive.save(path)
        self.say(f"Saved {len(self.studio.archive)} project(s) to {path}")

    def _flush_messages(self) -> None:
        messages = self.studio.state.messages
        for message in messages[self._shown_messages :]:
            speaker = "you" if message.role == "user" else "studio"
            if message.text:
                self.say(f"[{speaker}] {message.text}")
            if message.image is not None:
                self.say(f"        image: {write_image(self.out_dir, message.image, 'image')}")
            for idx, image in enumerate(message.candidates, start=1):
                self.say(f"        option {idx}: {write_image(self.out_dir, image, f'option-{idx}')}")
        self._shown_messages = len(messages)
