"""Structured extraction of transcription results."""

from __future__ import annotations

import json
import logging
from typing import Optional

from .models import UNTITLED, TranscriptionResult

logger = logging.getLogger("talknotes")


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals are ignored. The text is scanned once;
    when the outermost open brace never closes, the earliest-starting span
    that did close wins.
    """
    first = text.find("{")
    if first == -1:
        return None

    opened = []
    best = None
    in_string = False
    escaped = False
    for pos in range(first, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            opened.append(pos)
        elif char == "}" and opened:
            start = opened.pop()
            if not opened:
                return text[start:pos + 1]
            if best is None or start < best[0]:
                best = (start, pos + 1)
    return text[best[0]:best[1]] if best else None


def parse_result(raw: str) -> TranscriptionResult:
    raw = raw or ""
    candidate = find_json_object(raw)
    if candidate is not None:
        try:
            payload = json.loads(candidate)
        except ValueError as exc:
            logger.debug("Result JSON did not decode: %s", exc)
        else:
            if isinstance(payload, dict) and isinstance(payload.get("transcription"), str):
                title = payload.get("title")
                title = title.strip() if isinstance(title, str) else ""
                return TranscriptionResult(
                    title=title or UNTITLED,
                    transcription=payload["transcription"],
                )
            logger.debug("Result JSON lacks a transcription string.")

    logger.debug("Falling back to raw transcription text (%s chars).", len(raw))
    return TranscriptionResult(title=UNTITLED, transcription=raw)
