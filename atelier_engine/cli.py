"""Atelier CLI entrypoints."""

from __future__ import annotations

import argparse
from pathlib import Path

from .chat.loop import ChatLoop, write_image
from .cli_progress import ProgressTicker
from .config import ASPECT_RATIOS, LIGHTING_DIRECTIONS, SUBJECT_POSITIONS, clamp
from .prompts.compiler import ValidationGap
from .providers import default_registry
from .runs.archive import ProjectArchive
from .session import Status
from .settings import EngineSettings
from .studio import StudioSession
from .styles import style_ids
from .utils import load_dotenv


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atelier", description="Atelier design studio engine")
    parser.add_argument("--provider", help="Override ATELIER_PROVIDER (gemini or dryrun)")
    parser.add_argument("--events", help="Path to events.jsonl (overrides ATELIER_EVENTS)")
    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Interactive studio chat")
    chat.add_argument("--out", required=True, help="Directory for generated images")
    chat.add_argument("--archive", help="Archived projects JSON file (loaded and saved on exit)")

    create = sub.add_parser("create", help="One-shot image creation")
    create.add_argument("--out", required=True, help="Directory for generated images")
    create.add_argument("--subject", default="", help="Subject description")
    create.add_argument("--subject-image", dest="subject_image", help="Main subject reference image")
    create.add_argument("--reference-image", dest="reference_image", help="Style/element reference image")
    create.add_argument("--style", default="auto", choices=style_ids())
    create.add_argument("--ratio", default="1:1", choices=ASPECT_RATIOS)
    create.add_argument("--count", type=int, default=1)
    create.add_argument("--zoom", type=float, default=5)
    create.add_argument("--angle", type=float, default=0)
    create.add_argument("--tilt", type=float, default=0)
    create.add_argument("--position", default="center", choices=SUBJECT_POSITIONS)
    create.add_argument("--rim-light", dest="rim_light", action="store_true")
    create.add_argument("--fill-light", dest="fill_light", action="store_true")
    create.add_argument("--light-direction", dest="lighting_direction", default="top-right", choices=LIGHTING_DIRECTIONS)
    create.add_argument("--light-color", dest="lighting_color", default="#00ff00")
    create.add_argument("--background", dest="background_color", default="#111111")
    create.add_argument("--enhance", action="store_true", help="Rewrite the subject as a detailed brief first")

    return parser


def _settings_from_args(args: argparse.Namespace) -> EngineSettings:
    settings = EngineSettings.from_env()
    overrides: dict[str, object] = {}
    if args.provider:
        overrides["provider"] = args.provider.strip().lower()
    if args.events:
        overrides["events_path"] = Path(args.events).expanduser()
    if overrides:
        settings = EngineSettings(**{**vars(settings), **overrides})
    return settings


def _build_studio(args: argparse.Namespace, archive: ProjectArchive | None = None) -> StudioSession:
    settings = _settings_from_args(args)
    registry = default_registry(image_model=settings.image_model, text_model=settings.text_model)
    return StudioSession.from_settings(settings, registry, archive=archive)


def _handle_chat(args: argparse.Namespace) -> int:
    archive_path = Path(args.archive).expanduser() if args.archive else None
    archive = ProjectArchive.load(archive_path) if archive_path else None
    studio = _build_studio(args, archive=archive)
    loop = ChatLoop(studio, Path(args.out))
    loop.run()
    if archive_path:
        studio.archive.save(archive_path)
        print(f"Archive saved to {archive_path}")
    return 0


def _handle_create(args: argparse.Namespace) -> int:
    studio = _build_studio(args)
    studio.update_config(
        subject_description=args.subject,
        niche=args.style,
        aspect_ratio=args.ratio,
        image_count=int(clamp("image_count", args.count)),
        camera_zoom=clamp("camera_zoom", args.zoom),
        camera_angle=clamp("camera_angle", args.angle),
        camera_vertical=clamp("camera_vertical", args.tilt),
        subject_position=args.position,
        rim_light=args.rim_light,
        fill_light=args.fill_light,
        lighting_direction=args.lighting_direction,
        lighting_color=args.lighting_color,
        background_color=args.background_color,
    )
    if args.subject_image:
        studio.attach_image("subject_image", args.subject_image)
    if args.reference_image:
        studio.attach_image("secondary_image", args.reference_image)
    if args.enhance:
        studio.enhance_prompt()

    ticker = ProgressTicker("Generating images", done_label="Generated in")
    ticker.start_ticking()
    try:
        result = studio.generate()
    finally:
        ticker.stop()
    if isinstance(result, ValidationGap):
        print(f"Cannot {result.action}: {result.reason}")
        return 1

    out_dir = Path(args.out)
    if result.status is Status.CANDIDATE_SELECTION:
        for idx, image in enumerate(result.candidates, start=1):
            print(f"Option {idx}: {write_image(out_dir, image, f'option-{idx}')}")
        return 0
    if result.active_image is None:
        print(result.messages[-1].text)
        return 1
    print(f"Image: {write_image(out_dir, result.active_image, 'image')}")
    return 0


def main() -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args()
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    if args.command == "create":
        raise SystemExit(_handle_create(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
