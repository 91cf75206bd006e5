from __future__ import annotations

from pathlib import Path

from atelier_engine.chat.commands import parse_intent
from atelier_engine.chat.loop import ChatLoop
from atelier_engine.orchestrator import GenerationOrchestrator
from atelier_engine.providers.dryrun import DryRunProvider
from atelier_engine.session import Status
from atelier_engine.studio import StudioSession


class FakeStream:
    def __init__(self) -> None:
        self.buffer: list[str] = []

    def isatty(self) -> bool:
        return False

    def write(self, data: str) -> None:
        self.buffer.append(data)

    def flush(self) -> None:
        return None

    @property
    def text(self) -> str:
        return "".join(self.buffer)


def test_parse_intent_variants() -> None:
    assert parse_intent("   ").action == "noop"
    chat = parse_intent("a red sports car")
    assert chat.action == "chat"
    assert chat.text == "a red sports car"
    assert parse_intent("/ratio 16:9").command_args == {"value": "16:9"}
    pair = parse_intent("/set camera_zoom 8")
    assert pair.action == "set_field"
    assert pair.command_args == {"field": "camera_zoom", "value": "8"}
    path = parse_intent('/subject "my photos/face.png"')
    assert path.action == "set_subject_image"
    assert path.command_args == {"path": "my photos/face.png"}
    unknown = parse_intent("/teleport now")
    assert unknown.action == "unknown"
    assert unknown.command_args["command"] == "teleport"


def _loop(tmp_path: Path, lines: list[str]) -> tuple[ChatLoop, FakeStream]:
    studio = StudioSession(GenerationOrchestrator(DryRunProvider()))
    stream = FakeStream()
    feed = iter(lines)

    def read_line(_prompt: str) -> str:
        try:
            return next(feed)
        except StopIteration:
            raise EOFError from None

    return ChatLoop(studio, tmp_path / "out", read_line=read_line, stream=stream), stream


def test_chat_session_flow(tmp_path: Path) -> None:
    loop, stream = _loop(
        tmp_path,
        [
            "/count 2",
            "a glass perfume bottle",
            "/select 2",
            "/ratio 16:9",
            "/upscale",
            "/close_compare",
            "/archive",
            "/projects",
            "/restore 1",
            "/quit",
            "never read",
        ],
    )
    loop.run()

    studio = loop.studio
    assert studio.status is Status.IDLE
    assert studio.state.config.aspect_ratio == "16:9"
    assert len(studio.state.history) == 3
    assert len(studio.archive) == 1
    text = stream.text
    assert "option 2:" in text
    assert "Option selected." in text
    assert "Format adjusted successfully." in text
    assert "1. a glass perfume bottle" in text
    written = sorted(path.name for path in (tmp_path / "out").iterdir())
    assert any(name.startswith("option-1-") for name in written)


def test_chat_reports_gaps_and_bad_values(tmp_path: Path) -> None:
    loop, stream = _loop(tmp_path, ["/variation", "/ratio 5:4", "/set camera_zoom nine", "/restore 9", "/teleport"])
    loop.run()
    text = stream.text
    assert "Cannot variation:" in text
    assert "Cannot restore:" in text
    assert "Unknown command /teleport" in text
    assert loop.studio.state.config.aspect_ratio == "1:1"
    assert loop.studio.state.config.camera_zoom == 5


def test_save_archive_writes_file(tmp_path: Path) -> None:
    target = tmp_path / "archive.json"
    loop, stream = _loop(tmp_path, ["/set subject_description desk lamp", "/archive", f"/save {target}"])
    loop.run()
    assert target.exists()
    assert "Saved 1 project(s)" in stream.text


def test_history_lists_and_selects(tmp_path: Path) -> None:
    loop, stream = _loop(tmp_path, ["/history", "/generate", "a blue vase", "/history", "/history 2", "/history 9", "/history x"])
    loop.run()
    studio = loop.studio
    text = stream.text
    assert "No images yet." in text
    assert "* 1. " in text
    assert "History image 2 is now the active image." in text
    assert "Cannot select history:" in text
    assert "/history takes a number" in text
    assert studio.state.active_image == studio.state.history[1]
    assert len(studio.state.history) == 2


def test_attach_rejects_directories_and_unreadable_files(tmp_path: Path) -> None:
    image_path = tmp_path / "face.png"
    image_path.write_bytes(b"not really a png")
    loop, stream = _loop(tmp_path, [f"/subject {tmp_path}", f"/reference {image_path}"])

    def refuse(slot: str, path: Path) -> None:
        raise PermissionError(13, "Permission denied", str(path))

    loop.studio.attach_image = refuse
    loop.run()
    text = stream.text
    assert f"Image not found: {tmp_path}" in text
    assert f"Could not read {image_path}" in text
    assert loop.studio.state.config.subject_image is None
    assert loop.studio.state.config.secondary_image is None
