"""mkvbatch command-line interface with subcommands.

Usage:
    mkvbatch-cli inspect PATH... [--kind video|audio|subtitle|chapter|attachment] [-s session.json]
    mkvbatch-cli add-tracks session.json --kind audio|subtitle PATH... [--preset preset.json]
    mkvbatch-cli assemble session.json [-o jobs.json]
    mkvbatch-cli preview session.json [--destination DIR] [--overwrite-source]
    mkvbatch-cli aggregate session.json --kind audio
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from mkvbatch.config import settings
from mkvbatch.errors import MKVBatchError
from mkvbatch.models.external import ExternalFile, ExternalKind
from mkvbatch.models.media import VideoFile
from mkvbatch.models.mux import MuxSettings
from mkvbatch.models.preset import Preset
from mkvbatch.models.track import TrackKind
from mkvbatch.services.aggregation import build_aggregate_rows
from mkvbatch.services.assembly import JobAssembler
from mkvbatch.services.inspection import FFprobeInspector, ScanSession
from mkvbatch.services.preflight import fast_mux_available, validate_jobs
from mkvbatch.store import EntityStore, StoreSnapshot
from mkvbatch.tabs import TabState


def _load_store(path: str) -> EntityStore:
    session_path = Path(path)
    if not session_path.exists():
        print(f"Error: session file not found: {session_path}", file=sys.stderr)
        sys.exit(1)
    try:
        snapshot = StoreSnapshot.model_validate_json(session_path.read_text(encoding="utf-8"))
    except ValidationError as e:
        print(f"Error: invalid session file {session_path}:\n{e}", file=sys.stderr)
        sys.exit(1)
    return EntityStore.from_snapshot(snapshot)


def _write_json(data: str, output: str | None) -> None:
    if output:
        Path(output).write_text(data, encoding="utf-8")
        print(f"Saved: {output}")
    else:
        print(data)


# --- inspect subcommand ---


async def cmd_inspect(args: argparse.Namespace) -> None:
    """Probe files and add them to a session file."""
    kind = None if args.kind == "video" else ExternalKind(args.kind)
    inspector = FFprobeInspector(settings.ffprobe_path)

    store = EntityStore()
    if args.session and Path(args.session).exists():
        store = _load_store(args.session)

    scan = ScanSession(args.paths, kind=kind)
    await scan.run(
        inspector,
        include_tracks=not args.no_tracks,
        batch_size=settings.inspect_batch_size,
    )
    count = scan.commit(store)

    for item in scan.results():
        if isinstance(item, VideoFile):
            print(f"  video  {item.file_name}  ({len(item.tracks)} tracks, {item.duration or '?'})")
        elif isinstance(item, ExternalFile):
            print(f"  {item.kind.value:<8} {item.file_name}  ({item.language or 'und'})")
    print(f"Inspected {count} file(s)")

    if args.session:
        _write_json(store.snapshot().model_dump_json(by_alias=True, indent=2), args.session)


# --- add-tracks subcommand ---


def _load_preset(path: str) -> Preset:
    try:
        return Preset.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        print(f"Error: cannot read preset {path}: {e}", file=sys.stderr)
        sys.exit(1)


async def cmd_add_tracks(args: argparse.Namespace) -> None:
    """Probe audio or subtitle files and add them as one bulk track slot."""
    store = _load_store(args.session)
    kind = ExternalKind(args.kind)

    tab = TabState(kind)
    if args.preset:
        tab.apply_preset(_load_preset(args.preset))
    options = {
        "language": args.language,
        "track_name": args.track_name,
        "delay": args.delay,
        "mux_after": args.mux_after,
    }
    slot = tab.active_slot
    tab.update_slot(slot, **{k: v for k, v in options.items() if v is not None})
    if args.default:
        tab.update_slot(slot, is_default=True)
    if args.forced:
        tab.update_slot(slot, is_forced=True)

    scan = ScanSession(args.paths, kind=kind)
    results = await scan.run(
        FFprobeInspector(settings.ffprobe_path),
        include_tracks=not args.no_tracks,
        batch_size=settings.inspect_batch_size,
    )
    files = tab.configure_files(slot, [r for r in results if isinstance(r, ExternalFile)])
    store.add_externals(kind, files)

    by_id = {e.file_id: e for e in store.match_report(kind).entries}
    for ext in files:
        entry = by_id[ext.id]
        target = store.get_video(entry.video_id) if entry.video_id else None
        owner = target.file_name if target else "-"
        print(f"  {ext.file_name} -> {owner}  ({entry.method.value}, {ext.language})")
    print(f"Added {len(files)} {kind.value} file(s)")

    _write_json(store.snapshot().model_dump_json(by_alias=True, indent=2), args.session)


# --- assemble subcommand ---


async def cmd_assemble(args: argparse.Namespace) -> None:
    """Assemble job requests from a session file."""
    store = _load_store(args.session)
    jobs = JobAssembler(store).assemble()

    for entry in store.match_report().entries:
        if entry.video_id is None:
            print(f"  unmatched: {entry.file_name}", file=sys.stderr)

    payload = json.dumps(
        [job.model_dump(mode="json", by_alias=True) for job in jobs],
        ensure_ascii=False,
        indent=2,
    )
    _write_json(payload, args.output)


# --- preview subcommand ---


async def cmd_preview(args: argparse.Namespace) -> None:
    """Validate a session without muxing."""
    store = _load_store(args.session)
    destination = args.destination
    if destination is None and settings.destination_dir is not None:
        destination = str(settings.destination_dir)
    mux_settings = MuxSettings(
        destination_dir=destination or "",
        overwrite_source=args.overwrite_source or settings.overwrite_source,
        abort_on_errors=settings.abort_on_errors,
        max_parallel_jobs=settings.max_parallel_jobs,
    )

    jobs = JobAssembler(store).assemble()
    results = validate_jobs(jobs, mux_settings, match_report=store.match_report())

    total = 0
    for result in results:
        output = result.plan.output if result.plan else "-"
        print(f"{result.job_id}: {output}")
        for warning in result.warnings:
            print(f"  ! {warning}")
        total += len(result.warnings)

    print(f"\n{len(jobs)} job(s), {total} warning(s)")
    if fast_mux_available(store, mux_settings):
        print("Header-only edits: mkvpropedit fast path available")


# --- aggregate subcommand ---


async def cmd_aggregate(args: argparse.Namespace) -> None:
    """Print the consensus rows of one track kind."""
    store = _load_store(args.session)
    rows = build_aggregate_rows(store.videos, TrackKind(args.kind))
    for row in rows:
        name = "<multiple>" if row.name_is_divergent else row.track_name
        print(
            f"#{row.position + 1}  copy={row.copy_track!s:<5} default={row.set_default!s:<5} "
            f"forced={row.set_forced!s:<5} lang={row.language}  name={name}  "
            f"({row.contributor_count} file(s))"
        )


# --- Main CLI ---


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        prog="mkvbatch-cli",
        description="mkvbatch - batch MKV track matching and job assembly",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- inspect ---
    p_inspect = subparsers.add_parser("inspect", help="Probe media files with ffprobe")
    p_inspect.add_argument("paths", nargs="+", help="Files to inspect")
    p_inspect.add_argument(
        "--kind",
        choices=["video", *(k.value for k in ExternalKind)],
        default="video",
        help="Entity kind to create (default: video)",
    )
    p_inspect.add_argument("-s", "--session", type=str, help="Session file to update")
    p_inspect.add_argument("--no-tracks", action="store_true", help="Skip embedded streams")

    # --- add-tracks ---
    p_add = subparsers.add_parser("add-tracks", help="Add audio or subtitle files to a session")
    p_add.add_argument("session", type=str, help="Session JSON file")
    p_add.add_argument("paths", nargs="+", help="Files to add")
    p_add.add_argument(
        "--kind", choices=["audio", "subtitle"], required=True, help="Track kind of the files"
    )
    p_add.add_argument("--preset", type=str, help="Preset JSON seeding language and folder")
    p_add.add_argument("--language", type=str, help="Track language (ISO 639-2)")
    p_add.add_argument("--track-name", type=str, help="Track name")
    p_add.add_argument("--delay", type=str, help="Sync delay in seconds, e.g. -0.250")
    p_add.add_argument("--mux-after", type=str, help="video, audio, track-N or end")
    p_add.add_argument("--default", action="store_true", help="Flag tracks as default")
    p_add.add_argument("--forced", action="store_true", help="Flag tracks as forced")
    p_add.add_argument("--no-tracks", action="store_true", help="Skip embedded streams")

    # --- assemble ---
    p_assemble = subparsers.add_parser("assemble", help="Build job requests")
    p_assemble.add_argument("session", type=str, help="Session JSON file")
    p_assemble.add_argument("-o", "--output", type=str, help="Output JSON path")

    # --- preview ---
    p_preview = subparsers.add_parser("preview", help="Validate jobs without muxing")
    p_preview.add_argument("session", type=str, help="Session JSON file")
    p_preview.add_argument("--destination", type=str, help="Destination directory")
    p_preview.add_argument("--overwrite-source", action="store_true", help="Replace source files")

    # --- aggregate ---
    p_aggregate = subparsers.add_parser("aggregate", help="Show consensus track rows")
    p_aggregate.add_argument("session", type=str, help="Session JSON file")
    p_aggregate.add_argument(
        "--kind",
        choices=[k.value for k in TrackKind],
        default="audio",
        help="Track kind (default: audio)",
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "inspect": cmd_inspect,
        "add-tracks": cmd_add_tracks,
        "assemble": cmd_assemble,
        "preview": cmd_preview,
        "aggregate": cmd_aggregate,
    }
    try:
        asyncio.run(commands[args.command](args))
    except MKVBatchError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
