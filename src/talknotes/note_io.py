"""Note record conversion and JSON documents."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from .errors import ValidationError
from .models import DEFAULT_CATEGORY, UNTITLED, Note


def note_to_record(note: Note) -> Dict[str, Any]:
    return {
        "id": note.id,
        "title": note.title,
        "text": note.text,
        "category": note.category,
        "createdAt": note.created_at,
        "isFavorited": note.is_favorited,
        "colorIndex": note.color_index,
    }


def _string(record: Dict[str, Any], key: str, default: str) -> str:
    value = record.get(key)
    return value if isinstance(value, str) else default


def note_from_record(record: Dict[str, Any]) -> Note:
    """Build a note from a stored record, filling in missing fields.

    Missing, null or mistyped values fall back to defaults. Records written by
    older versions carried no ``colorIndex``; they get 0.
    """
    color_index = record.get("colorIndex")
    if not isinstance(color_index, int) or isinstance(color_index, bool):
        color_index = 0
    return Note(
        id=record.get("id", 0),
        title=_string(record, "title", "") or UNTITLED,
        text=_string(record, "text", ""),
        category=_string(record, "category", DEFAULT_CATEGORY),
        created_at=_string(record, "createdAt", ""),
        is_favorited=record.get("isFavorited") is True,
        color_index=color_index,
    )


def dump_notes(notes: Sequence[Note], indent: int | None = None) -> str:
    payload = [note_to_record(note) for note in notes]
    return json.dumps(payload, indent=indent)


def load_notes(text: str) -> List[Note]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "Invalid file format. Please select a valid JSON file.", detail=str(exc)
        ) from exc

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValidationError("Expected a JSON list of note objects.")
    return [note_from_record(item) for item in payload]
