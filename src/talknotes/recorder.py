"""Microphone discovery and chunked capture."""

from __future__ import annotations

import logging
from typing import Optional, List, Dict, Any, Callable

from .errors import DeviceError

logger = logging.getLogger("talknotes")


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise DeviceError("sounddevice is required for device detection.") from exc

    try:
        devices = sd.query_devices()
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise DeviceError("Audio devices could not be listed.", detail=str(exc)) from exc
    return [d for d in devices if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise DeviceError("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]
        logger.warning("Input device %r not found; using %s", prefer_name, candidates[0].get("name"))
    return candidates[0]


def find_input_device(prefer_name: Optional[str] = None) -> dict:
    candidates = list_input_devices()
    return select_preferred_device(candidates, prefer_name=prefer_name)


class MicrophoneStream:
    """An input stream that hands each int16 chunk to ``on_chunk``.

    ``open`` acquires the device and ``close`` releases it; ``close`` is safe
    to call more than once.
    """

    def __init__(
        self,
        on_chunk: Callable[[Any], None],
        sample_rate_hz: int = 16000,
        channels: int = 1,
        device_name: Optional[str] = None,
    ):
        self.on_chunk = on_chunk
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.device_name = device_name
        self._stream = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        try:
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise DeviceError("sounddevice is required for recording.") from exc

        device = find_input_device(self.device_name)
        device_index = device.get("index")

        def _callback(indata, _frames, _time, status):
            if status:
                logger.debug("Input stream status: %s", status)
            self.on_chunk(indata.copy())

        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate_hz,
                channels=self.channels,
                dtype="int16",
                device=device_index,
                callback=_callback,
            )
            stream.start()
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise DeviceError(
                "Microphone access denied.", detail=f"{device.get('name')}: {exc}"
            ) from exc

        self._stream = stream
        logger.info("Microphone open: %s", device.get("name"))

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        logger.info("Microphone closed")
