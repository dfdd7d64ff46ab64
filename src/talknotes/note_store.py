"""Active and trashed note collections with persistence."""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .errors import PersistenceError, StorageError, ValidationError
from .models import (
    CHECKED,
    CONTENT_CATEGORIES,
    DEFAULT_CATEGORY,
    PALETTE,
    UNCHECKED,
    UNTITLED,
    VIEW_CATEGORIES,
    Note,
    NoteFilter,
)
from .note_io import dump_notes, load_notes
from .storage import KeyValueStore, ensure_dir, export_filename

logger = logging.getLogger("talknotes")

ACTIVE_KEY = "talknotes_notes_v1"
TRASH_KEY = "talknotes_deleted_v1"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created_key(note: Note) -> datetime:
    value = note.created_at.replace("Z", "+00:00")
    try:
        stamp = datetime.fromisoformat(value)
    except ValueError:
        return _EPOCH
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp


def _id_key(note: Note) -> int:
    return note.id if isinstance(note.id, int) and not isinstance(note.id, bool) else 0


def _valid_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


class NoteStore:
    """Owns the active and trash collections.

    Every mutating method writes the affected collection(s) to the key-value
    store before returning. When that write fails the in-memory change is kept
    and :class:`PersistenceError` is raised with the would-be return value in
    ``result``.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._kv = kv
        self._clock = clock or _utcnow
        self._active: List[Note] = self._load(ACTIVE_KEY)
        self._trash: List[Note] = self._load(TRASH_KEY)

    # -- loading and saving -------------------------------------------------

    def _load(self, key: str) -> List[Note]:
        try:
            raw = self._kv.get(key)
        except StorageError as exc:
            logger.error("Failed to read %s: %s", key, exc.detail or exc.message)
            return []
        if not raw:
            return []
        try:
            notes = load_notes(raw)
        except ValidationError as exc:
            logger.error("Failed to parse %s: %s", key, exc.detail or exc.message)
            return []
        logger.info("Loaded %s notes from %s", len(notes), key)
        return notes

    def _persist(self, result: Any, *keys: str) -> Any:
        failed = []
        for key in keys:
            notes = self._active if key == ACTIVE_KEY else self._trash
            try:
                self._kv.set(key, dump_notes(notes))
            except StorageError as exc:
                logger.error("Failed to save %s: %s", key, exc.detail or exc.message)
                failed.append(key)
        if failed:
            raise PersistenceError(
                "Changes could not be saved and are kept in memory only.",
                result=result,
                detail=", ".join(failed),
            )
        return result

    # -- read access ----------------------------------------------------------

    @property
    def active(self) -> Tuple[Note, ...]:
        return tuple(replace(note) for note in self._active)

    @property
    def trash(self) -> Tuple[Note, ...]:
        return tuple(replace(note) for note in self._trash)

    def get(self, note_id) -> Optional[Note]:
        note = self._find(self._active, note_id)
        return replace(note) if note else None

    def get_trashed(self, note_id) -> Optional[Note]:
        note = self._find(self._trash, note_id)
        return replace(note) if note else None

    @staticmethod
    def _find(notes: List[Note], note_id) -> Optional[Note]:
        return next((note for note in notes if note.id == note_id), None)

    def _next_id(self, taken: Iterable, now: Optional[datetime] = None) -> int:
        ints = [i for i in taken if isinstance(i, int) and not isinstance(i, bool)]
        highest = max(ints, default=0)
        candidate = int((now or self._clock()).timestamp() * 1000)
        return max(candidate, highest + 1)

    def _all_ids(self) -> List:
        return [note.id for note in self._active] + [note.id for note in self._trash]

    # -- mutations ------------------------------------------------------------

    def create(self, text: str, title: str = "", category: str = DEFAULT_CATEGORY) -> Note:
        if not text or not text.strip():
            raise ValidationError("Note text must not be empty.")
        if category not in CONTENT_CATEGORIES:
            raise ValidationError(
                f"Unknown category: {category}",
                detail=f"Choose one of {', '.join(CONTENT_CATEGORIES)}.",
            )

        now = self._clock()
        note = Note(
            id=self._next_id(self._all_ids(), now),
            title=(title or "").strip() or UNTITLED,
            text=text,
            category=category,
            created_at=now.isoformat(timespec="milliseconds"),
            is_favorited=False,
            color_index=len(self._active) % len(PALETTE),
        )
        self._active.insert(0, note)
        logger.info("Created note %s (%s)", note.id, category)
        return self._persist(replace(note), ACTIVE_KEY)

    def update(
        self,
        note_id,
        text: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Optional[Note]:
        note = self._find(self._active, note_id)
        if note is None:
            return None
        if text is not None:
            note.text = text
        if title is not None:
            note.title = title.strip() or UNTITLED
        logger.info("Updated note %s", note_id)
        return self._persist(replace(note), ACTIVE_KEY)

    def toggle_favorite(self, note_id) -> Optional[Note]:
        note = self._find(self._active, note_id)
        if note is None:
            return None
        note.is_favorited = not note.is_favorited
        return self._persist(replace(note), ACTIVE_KEY)

    def toggle_todo_line(self, note_id, line_index: int) -> Optional[Note]:
        """Cycle the checklist marker on one line of a note.

        ``[ ] x`` becomes ``[x] x`` and back; a plain line gains ``[ ] `` and
        never returns to plain through toggling.
        """
        note = self._find(self._active, note_id)
        if note is None:
            return None
        lines = note.text.split("\n")
        if not 0 <= line_index < len(lines):
            return None

        line = lines[line_index]
        if line.startswith(UNCHECKED):
            lines[line_index] = CHECKED + line[len(UNCHECKED):]
        elif line.startswith(CHECKED):
            lines[line_index] = UNCHECKED + line[len(CHECKED):]
        else:
            lines[line_index] = UNCHECKED + line
        note.text = "\n".join(lines)
        return self._persist(replace(note), ACTIVE_KEY)

    def soft_delete(self, note_id) -> Optional[Note]:
        note = self._find(self._active, note_id)
        if note is None:
            return None
        self._active.remove(note)
        self._trash.insert(0, replace(note))
        logger.info("Moved note %s to trash", note_id)
        return self._persist(replace(note), ACTIVE_KEY, TRASH_KEY)

    def restore(self, note_id) -> Optional[Note]:
        note = self._find(self._trash, note_id)
        if note is None:
            return None
        self._trash.remove(note)
        self._active.insert(0, replace(note))
        logger.info("Restored note %s", note_id)
        return self._persist(replace(note), ACTIVE_KEY, TRASH_KEY)

    def purge(self, note_id) -> Optional[Note]:
        note = self._find(self._trash, note_id)
        if note is None:
            return None
        self._trash.remove(note)
        logger.info("Permanently deleted note %s", note_id)
        return self._persist(note, TRASH_KEY)

    def clear_trash(self) -> int:
        count = len(self._trash)
        if not count:
            return 0
        self._trash = []
        logger.info("Emptied trash (%s notes)", count)
        return self._persist(count, TRASH_KEY)

    # -- queries --------------------------------------------------------------

    def query(self, note_filter: Optional[NoteFilter] = None) -> List[Note]:
        note_filter = note_filter or NoteFilter()
        view = note_filter.view
        if view not in VIEW_CATEGORIES and view not in CONTENT_CATEGORIES:
            raise ValidationError(f"Unknown view: {view}")

        if view == "trash":
            return [replace(note) for note in self._trash]

        if view == "favorites":
            matches = [note for note in self._active if note.is_favorited]
        else:
            needle = (note_filter.search or "").lower()
            matches = [
                note
                for note in self._active
                if (needle in note.title.lower() or needle in note.text.lower())
                and (view == "all" or note.category == view)
            ]

        ordered = sorted(
            matches,
            key=lambda n: (bool(n.is_favorited), _created_key(n), _id_key(n)),
            reverse=True,
        )
        return [replace(note) for note in ordered]

    # -- import / export ------------------------------------------------------

    def export_all(self) -> str:
        return dump_notes(self._active, indent=2)

    def import_all(self, text: str) -> int:
        imported = load_notes(text)

        taken = {note.id for note in self._trash if _valid_id(note.id)}
        for note in imported:
            if not _valid_id(note.id) or note.id in taken:
                fresh = self._next_id(taken)
                logger.warning("Imported note id %r collides; using %s", note.id, fresh)
                note.id = fresh
            taken.add(note.id)

        self._active = imported
        logger.info("Imported %s notes", len(imported))
        return self._persist(len(imported), ACTIVE_KEY)

    def export_to_file(self, directory: str, dt: Optional[datetime] = None) -> str:
        ensure_dir(directory)
        path = os.path.join(directory, export_filename(dt))
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(self.export_all())
        logger.info("Exported %s notes to %s", len(self._active), path)
        return path

    def import_from_file(self, path: str) -> int:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                text = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ValidationError(f"Could not read {path}", detail=str(exc)) from exc
        return self.import_all(text)
