from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .capabilities.types import DEFAULT_PITCH_ALGORITHM, PitchAlgorithm


class ArtworkSettings(BaseModel):
    embedded: bool = True
    remote: bool = True
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    useragent: str = "audio-items/0.1 (+https://example.com)"
    network_retries: int = Field(default=1, ge=0)
    network_retry_backoff_seconds: float = Field(default=0.5, ge=0)
    worker_concurrency: int = Field(default=2, ge=1)


class PlaybackSettings(BaseModel):
    baseline_pitch_algorithm: PitchAlgorithm = DEFAULT_PITCH_ALGORITHM

    @field_validator("baseline_pitch_algorithm", mode="before")
    @classmethod
    def _coerce_algorithm(cls, value: object) -> PitchAlgorithm:
        return PitchAlgorithm.coerce(value)


class Settings(BaseModel):
    artwork: ArtworkSettings = ArtworkSettings()
    playback: PlaybackSettings = PlaybackSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "audio-items.yaml", cwd / "audio-items.yml"):
        if candidate.exists():
            return candidate
    return None


def load_settings(explicit_path: Optional[Path] = None) -> Settings:
    path = find_config(explicit_path)
    if path is None:
        return Settings()
    return Settings.load(path)
