"""Configuration handling."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional
import yaml

from .models import DEFAULT_CATEGORY
from .storage import default_data_dir

API_KEY_ENV = "GEMINI_API_KEY"


@dataclass
class AudioConfig:
    sample_rate_hz: int = 16000
    channels: int = 1
    device_name: Optional[str] = None


@dataclass
class TranscriptionConfig:
    api_key: Optional[str] = None
    model: str = "gemini-2.0-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: float = 60.0


@dataclass
class Config:
    data_dir: str = field(default_factory=default_data_dir)
    log_dir: Optional[str] = None
    default_category: str = DEFAULT_CATEGORY
    theme_default: str = "light"
    audio: AudioConfig = field(default_factory=AudioConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)

    @property
    def resolved_log_dir(self) -> str:
        return self.log_dir or os.path.join(self.data_dir, "logs")


def load_config(path: str) -> Config:
    if not os.path.exists(path):
        return Config()

    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    audio = AudioConfig(**data.get("audio", {}))
    transcription = TranscriptionConfig(**data.get("transcription", {}))

    return Config(
        data_dir=data.get("data_dir") or default_data_dir(),
        log_dir=data.get("log_dir"),
        default_category=data.get("default_category", DEFAULT_CATEGORY),
        theme_default=data.get("theme_default", "light"),
        audio=audio,
        transcription=transcription,
    )


def save_config(path: str, config: Config) -> None:
    data = {
        "data_dir": config.data_dir,
        "log_dir": config.log_dir,
        "default_category": config.default_category,
        "theme_default": config.theme_default,
        "audio": {
            "sample_rate_hz": config.audio.sample_rate_hz,
            "channels": config.audio.channels,
            "device_name": config.audio.device_name,
        },
        "transcription": {
            "api_key": config.transcription.api_key,
            "model": config.transcription.model,
            "base_url": config.transcription.base_url,
            "timeout_seconds": config.transcription.timeout_seconds,
        },
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False)


def resolve_api_key(config: Config) -> Optional[str]:
    return config.transcription.api_key or os.environ.get(API_KEY_ENV)
