"""Voice capture session: record, transcribe, parse, commit."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Callable, List, Optional

from .audio_utils import encode_wav
from .config import AudioConfig
from .errors import PersistenceError, SessionStateError, ValidationError
from .models import CONTENT_CATEGORIES, DEFAULT_CATEGORY, Note
from .note_store import NoteStore
from .recorder import MicrophoneStream
from .result_parser import parse_result
from .transcriber import TranscriptionClient, mode_for_category

logger = logging.getLogger("talknotes")

# Held by whichever session is between start() and the end of its pipeline.
_CAPTURE_SLOT = threading.Lock()


class SessionState(str, enum.Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    STOPPING = "stopping"
    AWAITING_TRANSCRIPTION = "awaiting_transcription"
    ERROR = "error"


class CaptureSession:
    """One recording-to-note attempt at a time.

    ``stream_factory`` is called with ``on_chunk`` plus the audio settings and
    must return an object with ``open()`` and ``close()``; it defaults to
    :class:`MicrophoneStream`.
    """

    def __init__(
        self,
        store: NoteStore,
        transcriber: TranscriptionClient,
        category: str = DEFAULT_CATEGORY,
        audio: Optional[AudioConfig] = None,
        stream_factory: Callable[..., Any] = MicrophoneStream,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
    ):
        if category not in CONTENT_CATEGORIES:
            raise ValidationError(
                f"Unknown category: {category}",
                detail=f"Choose one of {', '.join(CONTENT_CATEGORIES)}.",
            )
        self.store = store
        self.transcriber = transcriber
        self.category = category
        self.audio = audio or AudioConfig()
        self.stream_factory = stream_factory
        self.on_state_change = on_state_change
        self.state = SessionState.IDLE
        self.last_error: Optional[Exception] = None
        self._chunks: List[Any] = []
        self._stream = None
        self._holds_slot = False
        self._generation = 0

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        logger.info("Capture session: %s", state.value)
        if self.on_state_change is not None:
            self.on_state_change(state)

    def _on_chunk(self, chunk) -> None:
        if self.state is SessionState.CAPTURING:
            self._chunks.append(chunk)

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        try:
            if stream is not None:
                stream.close()
        finally:
            self._chunks = []
            if self._holds_slot:
                self._holds_slot = False
                _CAPTURE_SLOT.release()

    def _fail(self, exc: Exception) -> None:
        self._release()
        self.last_error = exc
        logger.error("Capture session failed: %s", getattr(exc, "message", exc))
        self._set_state(SessionState.ERROR)
        self._set_state(SessionState.IDLE)

    def start(self) -> Optional[Note]:
        """Begin capturing; while already capturing this behaves as :meth:`stop`."""
        if self.state is SessionState.CAPTURING:
            return self.stop()
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot start while {self.state.value}.")
        if not _CAPTURE_SLOT.acquire(blocking=False):
            raise SessionStateError("Another capture session is already active.")
        self._holds_slot = True
        self.last_error = None
        self._chunks = []

        try:
            self._stream = self.stream_factory(
                on_chunk=self._on_chunk,
                sample_rate_hz=self.audio.sample_rate_hz,
                channels=self.audio.channels,
                device_name=self.audio.device_name,
            )
            self._set_state(SessionState.CAPTURING)
            self._stream.open()
        except Exception as exc:
            self._fail(exc)
            raise
        return None

    def stop(self) -> Optional[Note]:
        """Finish capturing and run the transcription pipeline.

        Returns the committed note, or ``None`` when :meth:`reset` abandoned
        the session while the remote call was in flight.
        """
        if self.state is not SessionState.CAPTURING:
            raise SessionStateError(f"Cannot stop while {self.state.value}.")

        generation = self._generation
        self._set_state(SessionState.STOPPING)
        try:
            stream, self._stream = self._stream, None
            if stream is not None:
                stream.close()
            chunks, self._chunks = self._chunks, []
            if not chunks:
                raise ValidationError("No audio was captured.")
            payload = encode_wav(
                chunks,
                sample_rate_hz=self.audio.sample_rate_hz,
                channels=self.audio.channels,
            )

            self._set_state(SessionState.AWAITING_TRANSCRIPTION)
            raw = self.transcriber.transcribe(payload, mode_for_category(self.category))
            if generation != self._generation:
                logger.info("Discarding late transcription result")
                return None
            result = parse_result(raw)
            note = self.store.create(result.transcription, result.title, self.category)
        except PersistenceError:
            self._release()
            self._set_state(SessionState.IDLE)
            raise
        except Exception as exc:
            if generation != self._generation:
                logger.info("Discarding late transcription failure: %s", exc)
                return None
            self._fail(exc)
            raise
        finally:
            if generation == self._generation:
                self._release()

        self._set_state(SessionState.IDLE)
        return note

    def toggle(self) -> Optional[Note]:
        return self.start()

    def reset(self) -> None:
        """Abandon the session from any state and free the device."""
        self._generation += 1
        self._release()
        if self.state is not SessionState.IDLE:
            self._set_state(SessionState.IDLE)
