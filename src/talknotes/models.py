"""Data models for TalkNotes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


UNTITLED = "Untitled Note"

CONTENT_CATEGORIES: Tuple[str, ...] = ("work", "personal", "ideas", "meetings", "todo")
VIEW_CATEGORIES: Tuple[str, ...] = ("all", "favorites", "trash")
DEFAULT_CATEGORY = "personal"

PALETTE: Tuple[str, ...] = ("yellow", "rose", "violet", "lime", "sky")

UNCHECKED = "[ ] "
CHECKED = "[x] "


@dataclass
class Note:
    id: int
    title: str
    text: str
    category: str
    created_at: str
    is_favorited: bool = False
    color_index: int = 0

    @property
    def color(self) -> str:
        return PALETTE[self.color_index % len(PALETTE)]


@dataclass(frozen=True)
class NoteFilter:
    view: str = "all"
    search: str = ""


@dataclass(frozen=True)
class AudioPayload:
    data: bytes
    mime_type: str = "audio/wav"
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class TranscriptionResult:
    title: str
    transcription: str
