"""Audio helpers."""

from __future__ import annotations

import io
import wave
from typing import Sequence

import numpy as np

from .models import AudioPayload


def encode_wav(
    chunks: Sequence[np.ndarray],
    sample_rate_hz: int,
    channels: int = 1,
) -> AudioPayload:
    """Join captured int16 chunks into one in-memory WAV payload."""
    if chunks:
        data = np.concatenate([np.asarray(c).reshape(-1, channels) for c in chunks])
    else:
        data = np.zeros((0, channels), dtype=np.int16)
    if data.dtype != np.int16:
        data = data.astype(np.int16)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(channels)
        handle.setsampwidth(2)
        handle.setframerate(sample_rate_hz)
        handle.writeframes(data.tobytes())

    return AudioPayload(
        data=buffer.getvalue(),
        mime_type="audio/wav",
        duration_seconds=data.shape[0] / float(sample_rate_hz),
    )
