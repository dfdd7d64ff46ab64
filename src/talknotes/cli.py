"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import time
from typing import List, Optional

from .capture import CaptureSession
from .config import load_config, resolve_api_key
from .errors import PersistenceError, TalkNotesError
from .logging_utils import setup_logging
from .models import CONTENT_CATEGORIES, VIEW_CATEGORIES, Note, NoteFilter
from .note_store import NoteStore
from .preferences import ThemePreference
from .recorder import list_input_devices
from .storage import JsonFileStore
from .transcriber import TranscriptionClient

logger = logging.getLogger("talknotes")


def _format_row(note: Note) -> str:
    star = "*" if note.is_favorited else " "
    first_line = note.text.split("\n", 1)[0]
    if len(first_line) > 50:
        first_line = first_line[:47] + "..."
    return f"[{note.id}] {star} {note.title} ({note.category}, {note.created_at[:10]}) {first_line}"


def _format_detail(note: Note) -> str:
    lines = [
        f"Title: {note.title}",
        f"Category: {note.category}",
        f"Created: {note.created_at}",
        f"Favorite: {'yes' if note.is_favorited else 'no'}",
        f"Color: {note.color}",
        "",
    ]
    if note.category == "todo":
        for index, line in enumerate(note.text.split("\n")):
            lines.append(f"{index:>3}: {line}")
    else:
        lines.append(note.text)
    return "\n".join(lines)


def _parse_id(value: str):
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="talknotes")
    parser.add_argument("--config", default="talknotes_config.yml", help="Config.")
    parser.add_argument("--data-dir", help="Override the notes data directory.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    add_cmd = sub.add_parser("add", help="Add a typed note.")
    add_cmd.add_argument("text", help="Note text. Use \\n for new lines.")
    add_cmd.add_argument("--title", default="", help="Note title.")
    add_cmd.add_argument("--category", choices=CONTENT_CATEGORIES, help="Category.")

    list_cmd = sub.add_parser("list", help="List notes.")
    list_cmd.add_argument(
        "--view",
        default="all",
        choices=VIEW_CATEGORIES + CONTENT_CATEGORIES,
        help="View or category.",
    )
    list_cmd.add_argument("--search", default="", help="Search title and text.")

    show_cmd = sub.add_parser("show", help="Show one note.")
    show_cmd.add_argument("id")

    edit_cmd = sub.add_parser("edit", help="Edit a note.")
    edit_cmd.add_argument("id")
    edit_cmd.add_argument("--title", help="New title.")
    edit_cmd.add_argument("--text", help="New text.")

    fav_cmd = sub.add_parser("favorite", help="Toggle favorite.")
    fav_cmd.add_argument("id")

    todo_cmd = sub.add_parser("todo", help="Toggle a checklist line.")
    todo_cmd.add_argument("id")
    todo_cmd.add_argument("line", type=int, help="Zero-based line index.")

    for name, help_text in (
        ("delete", "Move a note to trash."),
        ("restore", "Restore a note from trash."),
        ("purge", "Delete a trashed note permanently."),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("id")

    sub.add_parser("empty-trash", help="Permanently delete everything in trash.")

    export_cmd = sub.add_parser("export", help="Export active notes to JSON.")
    export_cmd.add_argument("--out-dir", default=os.getcwd(), help="Output directory.")

    import_cmd = sub.add_parser("import", help="Replace active notes from JSON.")
    import_cmd.add_argument("path", help="Path to exported JSON.")

    record_cmd = sub.add_parser("record", help="Record a voice note.")
    record_cmd.add_argument("--category", choices=CONTENT_CATEGORIES, help="Category.")
    record_cmd.add_argument(
        "--duration", type=float, help="Seconds. Omit to stop with Enter."
    )
    record_cmd.add_argument("--device", help="Preferred device name substring.")
    record_cmd.add_argument("--rate", type=int, help="Sample rate.")

    devices_cmd = sub.add_parser("devices", help="List input devices.")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")

    theme_cmd = sub.add_parser("theme", help="Show or change the theme preference.")
    theme_cmd.add_argument("value", nargs="?", choices=["light", "dark", "toggle"])

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    cfg = load_config(args.config)
    if args.data_dir:
        cfg.data_dir = args.data_dir
    setup_logging(
        cfg.resolved_log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=args.verbose,
    )

    try:
        return _dispatch(args, cfg)
    except PersistenceError as exc:
        logger.warning("Unsaved change: %s", exc.detail)
        print(f"Warning: {exc.message}")
        return 1
    except TalkNotesError as exc:
        logger.error("%s failed: %s", args.command, exc.message)
        print(f"Error: {exc.message}")
        if exc.detail:
            print(exc.detail)
        return 1


def _dispatch(args, cfg) -> int:
    if args.command == "devices":
        devices = list_input_devices()
        if args.match:
            devices = [
                d for d in devices if args.match.lower() in d.get("name", "").lower()
            ]
        for device in devices:
            name = device.get("name", "Unknown")
            index = device.get("index", "?")
            channels = device.get("max_input_channels", 0)
            print(f"[{index}] {name} (inputs: {channels})")
        return 0

    kv = JsonFileStore(cfg.data_dir)

    if args.command == "theme":
        pref = ThemePreference(kv, system_default=cfg.theme_default)
        if args.value == "toggle":
            pref.toggle()
        elif args.value:
            pref.set(args.value)
        print(pref.value)
        return 0

    store = NoteStore(kv)

    if args.command == "add":
        note = store.create(
            args.text.replace("\\n", "\n"),
            args.title,
            args.category or cfg.default_category,
        )
        print(f"Saved [{note.id}] {note.title}")
        return 0

    if args.command == "list":
        notes = store.query(NoteFilter(view=args.view, search=args.search))
        if not notes:
            print("No notes.")
        for note in notes:
            print(_format_row(note))
        return 0

    if args.command == "show":
        note_id = _parse_id(args.id)
        note = store.get(note_id) or store.get_trashed(note_id)
        if note is None:
            print(f"Note {args.id} not found.")
            return 1
        print(_format_detail(note))
        return 0

    if args.command == "edit":
        text = args.text.replace("\\n", "\n") if args.text is not None else None
        note = store.update(_parse_id(args.id), text=text, title=args.title)
        return _report(note, args.id, "Updated")

    if args.command == "favorite":
        note = store.toggle_favorite(_parse_id(args.id))
        return _report(note, args.id, "Favorited" if note and note.is_favorited else "Unfavorited")

    if args.command == "todo":
        note = store.toggle_todo_line(_parse_id(args.id), args.line)
        if note is None:
            print(f"Note {args.id} or line {args.line} not found.")
            return 1
        print(note.text.split("\n")[args.line])
        return 0

    if args.command == "delete":
        return _report(store.soft_delete(_parse_id(args.id)), args.id, "Moved to trash")

    if args.command == "restore":
        return _report(store.restore(_parse_id(args.id)), args.id, "Restored")

    if args.command == "purge":
        return _report(store.purge(_parse_id(args.id)), args.id, "Permanently deleted")

    if args.command == "empty-trash":
        print(f"Permanently deleted {store.clear_trash()} notes")
        return 0

    if args.command == "export":
        path = store.export_to_file(args.out_dir)
        print(f"Wrote {path}")
        return 0

    if args.command == "import":
        count = store.import_from_file(args.path)
        print(f"Notes imported successfully! ({count})")
        return 0

    if args.command == "record":
        return _record(args, cfg, store)

    return 0


def _report(note: Optional[Note], raw_id: str, verb: str) -> int:
    if note is None:
        print(f"Note {raw_id} not found.")
        return 1
    print(f"{verb} [{note.id}] {note.title}")
    return 0


def _record(args, cfg, store: NoteStore) -> int:
    if args.device:
        cfg.audio.device_name = args.device
    if args.rate:
        cfg.audio.sample_rate_hz = args.rate

    client = TranscriptionClient(
        api_key=resolve_api_key(cfg),
        model=cfg.transcription.model,
        base_url=cfg.transcription.base_url,
        timeout_seconds=cfg.transcription.timeout_seconds,
    )
    session = None
    try:
        session = CaptureSession(
            store,
            client,
            category=args.category or cfg.default_category,
            audio=cfg.audio,
        )
        session.start()
        if args.duration:
            print(f"Recording for {args.duration:g}s...")
            time.sleep(args.duration)
        else:
            input("Recording... press Enter to stop. ")
        print("Transcribing...")
        note = session.stop()
    except KeyboardInterrupt:
        if session is not None:
            session.reset()
        print("Recording cancelled.")
        return 1
    finally:
        client.close()

    if note is None:
        print("Recording discarded.")
        return 1
    print(f"Saved [{note.id}] {note.title}")
    print(note.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
