"""Remote transcription over the Gemini generateContent API."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import RemoteError
from .models import AudioPayload

logger = logging.getLogger("talknotes")

NOTE_PROMPT = (
    "Transcribe this audio. Also generate a short, concise title (max 5 words). "
    "Format the output as a clean JSON object with 'title' and 'transcription' keys. "
    'Example: {"title": "My Great Idea", "transcription": "This is my idea..."}'
)

TODO_PROMPT = (
    "Transcribe this audio as a to-do list. Each distinct task should be on a new "
    "line, prefixed with '[ ] '. Also, generate a concise title (max 5 words). "
    "Format the output as a clean JSON object with 'title' and 'transcription' keys. "
    'Example: {"title": "Grocery List", "transcription": "[ ] Milk\\n[ ] Eggs\\n[ ] Bread"}'
)

PROMPTS = {"note": NOTE_PROMPT, "todo": TODO_PROMPT}


def mode_for_category(category: str) -> str:
    return "todo" if category == "todo" else "note"


def build_request_body(payload: AudioPayload, mode: str) -> Dict[str, Any]:
    if mode not in PROMPTS:
        raise ValueError(f"Unsupported transcription mode: {mode}")
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": PROMPTS[mode]},
                    {
                        "inlineData": {
                            "mimeType": payload.mime_type,
                            "data": base64.b64encode(payload.data).decode("ascii"),
                        }
                    },
                ],
            }
        ]
    }


def extract_text(body: Any) -> Optional[str]:
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class TranscriptionClient:
    """Single request/response transcription calls.

    Pass ``client`` to reuse an ``httpx.Client`` (tests hand in one backed by
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = client is None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def transcribe(self, payload: AudioPayload, mode: str = "note") -> str:
        body = build_request_body(payload, mode)
        if not self.api_key:
            raise RemoteError(
                "No API key configured for transcription.",
                detail="Set transcription.api_key in the config or GEMINI_API_KEY.",
            )

        logger.info(
            "Transcription request: mode=%s bytes=%s model=%s",
            mode,
            len(payload.data),
            self.model,
        )
        try:
            response = self._client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.error("Transcription transport failure: %s", exc)
            raise RemoteError("Transcription failed.", detail=str(exc)) from exc

        if not response.is_success:
            logger.error("Transcription API error: %s", response.status_code)
            raise RemoteError(
                f"API Error: {response.status_code}",
                status_code=response.status_code,
                detail=response.text[:500],
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError(
                "Invalid API response structure.",
                status_code=response.status_code,
                detail=str(exc),
            ) from exc

        text = extract_text(data)
        if text is None:
            raise RemoteError(
                "Invalid API response structure.", status_code=response.status_code
            )
        return text

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
