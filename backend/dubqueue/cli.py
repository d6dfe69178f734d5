"""
dubqueue CLI - thin entrypoint for operator commands.

Design Principles:
==================
- CLI is a dispatcher only
- No compilation or queue logic inside CLI
- Surface errors verbatim from the domain layer
- Exit non-zero on failure

Exit Codes:
===========
- 0: Success
- 1: Validation error (bad input, missing preset, duplicate output, busy queue)
- 2: Execution error (every job in the run failed)
- 3: Partial completion (some jobs failed or the run was cancelled)
- 4: System error (file system, permissions, etc.)
"""

import argparse
import functools
import json
import logging
import sys
from typing import List, Optional

from .compiler import PlanError
from .config import AppConfig, load_config
from .execution import RenderError, build_command, format_duration
from .jobs import QueueError, RenderQueue, build_render_job
from .materials import (
    DEFAULT_LOGO_SETTINGS,
    LogoAnchor,
    MaterialError,
    MaterialType,
    attach,
    probe_material,
)
from .metadata import probe_media
from .presets import PresetError
from .services import build_preset_store, build_queue

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_EXECUTION = 2
EXIT_PARTIAL = 3
EXIT_SYSTEM = 4

_VALIDATION_ERRORS = (QueueError, PlanError, MaterialError, PresetError, RenderError)


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_presets(args: argparse.Namespace, config: AppConfig) -> int:
    """List preset names, or print one preset as JSON with --show."""
    preset_store = build_preset_store(config)

    if args.show:
        preset = preset_store.load(args.show)
        print(json.dumps(preset.model_dump(mode="json"), indent=2))
        return EXIT_OK

    names = preset_store.list_names()
    if not names:
        print(f"No presets in {config.presets_dir}")
    for name in names:
        print(name)
    return EXIT_OK


def cmd_queue_list(args: argparse.Namespace, config: AppConfig) -> int:
    render_queue = build_queue(config)
    jobs = render_queue.jobs()
    if not jobs:
        print("Queue is empty")
        return EXIT_OK

    for job in jobs:
        line = f"{job.sequence_id:>3}  {job.status.value:<10}  {job.preset_name:<20}  {job.output_path}  [{job.id}]"
        if job.failure_reason:
            line += f"\n       {job.failure_reason}"
        print(line)
    return EXIT_OK


def cmd_queue_add(args: argparse.Namespace, config: AppConfig) -> int:
    """Build a job from material paths and add it to the queue."""
    probe = functools.partial(probe_media, ffprobe_path=config.ffprobe_path)

    sources = [
        (MaterialType.INTRO, args.intro),
        (MaterialType.VIDEO, args.video),
        (MaterialType.OUTRO, args.outro),
        (MaterialType.LOGO, args.logo),
        (MaterialType.SUBTITLES, args.subtitles),
    ]
    sources += [(MaterialType.AUDIO, path) for path in args.audio or []]

    materials = []
    for material_type, path in sources:
        if path:
            materials = attach(materials, probe_material(path, material_type, probe=probe))

    logo = DEFAULT_LOGO_SETTINGS.with_anchor(LogoAnchor(args.anchor))
    if args.position:
        logo = logo.with_manual_position(args.position[0], args.position[1])
    logo = logo.with_opacity_percent(args.opacity).with_scale_percent(args.scale)

    job = build_render_job(materials, args.preset, logo, output_folder=args.output_folder, title=args.title)
    job.output_path = args.output or ""
    job.gpu_acceleration = not args.no_gpu

    render_queue = build_queue(config)
    stored = render_queue.enqueue(job)
    print(f"Queued #{stored.sequence_id}: {stored.output_path} [{stored.id}]")
    return EXIT_OK


def cmd_queue_remove(args: argparse.Namespace, config: AppConfig) -> int:
    render_queue = build_queue(config)
    job = render_queue.remove(args.job_id)
    print(f"Removed: {job.output_path} [{job.id}]")
    return EXIT_OK


def cmd_queue_clear(args: argparse.Namespace, config: AppConfig) -> int:
    render_queue = build_queue(config)
    removed = render_queue.clear()
    print(f"Queue cleared: {removed} jobs removed")
    return EXIT_OK


def cmd_queue_run(args: argparse.Namespace, config: AppConfig) -> int:
    """
    Process all Pending jobs, printing progress until the run ends.

    Ctrl+C cancels the run; the running and remaining jobs are marked
    Cancelled.
    """
    render_queue = build_queue(config)
    render_queue.start(shutdown=args.shutdown)
    try:
        while not render_queue.wait(timeout=args.interval):
            _print_progress(render_queue)
    except KeyboardInterrupt:
        logger.info("[QUEUE] Interrupted from the terminal")
        print("\nCancelling...", file=sys.stderr)
        render_queue.cancel()
        render_queue.wait()

    summary = render_queue.last_summary
    if summary is None:
        return EXIT_SYSTEM

    print(
        f"Run finished in {format_duration(summary.elapsed_seconds)}: "
        f"{summary.completed} completed, {summary.failed} failed, {summary.cancelled} cancelled"
    )
    if summary.failed == 0 and summary.cancelled == 0:
        return EXIT_OK
    if summary.completed == 0 and not summary.was_cancelled:
        return EXIT_EXECUTION
    return EXIT_PARTIAL


def _print_progress(render_queue: RenderQueue) -> None:
    progress = render_queue.progress()
    stats = ""
    if progress.fps is not None:
        stats += f"  {progress.fps:.1f} fps"
    if progress.speed is not None:
        stats += f"  {progress.speed:.2f}x"
    print(
        f"[{progress.percent:5.1f}%] {progress.completed_count}/{progress.total} "
        f"elapsed {format_duration(progress.elapsed_seconds)} "
        f"remaining {format_duration(progress.remaining_seconds)}  "
        f"{progress.current_title or ''}{stats}",
        file=sys.stderr,
    )


def cmd_plan(args: argparse.Namespace, config: AppConfig) -> int:
    """Dry run: print the encoder command a queued job would run."""
    render_queue = build_queue(config)
    job = render_queue.get(args.job_id)
    preset = render_queue.preset_store.load(job.preset_name)
    executor = render_queue.executor
    plan = executor.prepare(job, preset)

    for warning in plan.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(json.dumps(build_command(plan, preset, job, executor.ffmpeg_path), indent=2))
    return EXIT_OK


def cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    """Run the HTTP control API."""
    import uvicorn

    from .main import create_app

    app = create_app(config)
    print(f"Starting dubqueue API on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dubqueue",
        description="dubqueue - compile and queue ffmpeg render jobs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to execute")

    # Presets
    parser_presets = subparsers.add_parser("presets", help="List presets")
    parser_presets.add_argument("--show", metavar="NAME", help="Print one preset as JSON")
    parser_presets.set_defaults(func=cmd_presets)

    # Queue
    parser_queue = subparsers.add_parser("queue", help="Inspect and edit the render queue")
    queue_commands = parser_queue.add_subparsers(dest="queue_command", required=True)

    parser_list = queue_commands.add_parser("list", help="Show queued jobs")
    parser_list.set_defaults(func=cmd_queue_list)

    parser_add = queue_commands.add_parser("add", help="Queue a project")
    parser_add.add_argument("--preset", required=True, help="Preset name")
    parser_add.add_argument("--video", required=True, help="Main video")
    parser_add.add_argument("--intro", help="Intro clip")
    parser_add.add_argument("--outro", help="Outro clip")
    parser_add.add_argument("--logo", help="Logo image")
    parser_add.add_argument("--subtitles", help="Subtitle file to burn in")
    parser_add.add_argument("--audio", action="append", help="Extra audio track (repeatable)")
    parser_add.add_argument("--output", help="Output file (default: preset file name pattern)")
    parser_add.add_argument("--output-folder", help="Output folder (default: main video folder)")
    parser_add.add_argument("--title", help="Title used in the file name pattern")
    parser_add.add_argument(
        "--anchor",
        choices=[anchor.value for anchor in LogoAnchor],
        default=LogoAnchor.BOTTOM_RIGHT.value,
        help="Logo corner (default: BottomRight)",
    )
    parser_add.add_argument(
        "--position", nargs=2, type=float, metavar=("X", "Y"),
        help="Manual logo position in pixels (overrides --anchor)",
    )
    parser_add.add_argument("--opacity", type=float, default=100.0, help="Logo opacity percent (default: 100)")
    parser_add.add_argument("--scale", type=float, default=100.0, help="Logo scale percent (default: 100)")
    parser_add.add_argument("--no-gpu", action="store_true", help="Force software encoders")
    parser_add.set_defaults(func=cmd_queue_add)

    parser_remove = queue_commands.add_parser("remove", help="Remove a job")
    parser_remove.add_argument("job_id")
    parser_remove.set_defaults(func=cmd_queue_remove)

    parser_clear = queue_commands.add_parser("clear", help="Remove every job")
    parser_clear.set_defaults(func=cmd_queue_clear)

    parser_run = queue_commands.add_parser("run", help="Process Pending jobs")
    parser_run.add_argument("--shutdown", action="store_true", help="Shut down the machine when this run completes")
    parser_run.add_argument("--interval", type=float, default=1.0, help="Progress print interval in seconds")
    parser_run.set_defaults(func=cmd_queue_run)

    # Plan
    parser_plan = subparsers.add_parser("plan", help="Print the encoder command for a queued job")
    parser_plan.add_argument("job_id")
    parser_plan.set_defaults(func=cmd_plan)

    # Serve
    parser_serve = subparsers.add_parser("serve", help="Run the HTTP control API")
    parser_serve.add_argument("--host", default="127.0.0.1")
    parser_serve.add_argument("--port", type=int, default=8085)
    parser_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entrypoint.

    Parses arguments, dispatches to a subcommand and maps failures to exit codes.
    """
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging(config)

    try:
        return args.func(args, config)
    except _VALIDATION_ERRORS as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    except OSError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return EXIT_SYSTEM


if __name__ == "__main__":
    sys.exit(main())
