"Playable audio items with optional, independently queryable capabilities."

from importlib import metadata

from .capabilities import (
    AssetOptions,
    AssetOptionsProviding,
    InitialTime,
    InitialTiming,
    PitchAlgorithm,
    TimePitch,
    TimePitching,
    capabilities_of,
    has_capability,
    query_capability,
    register_capability,
)
from .carriers import asset_options_item, initial_time_item, time_pitching_item
from .errors import ItemConstructionError
from .models import AudioItem, DefaultAudioItem, SourceType

__all__ = [
    "AssetOptions",
    "AssetOptionsProviding",
    "AudioItem",
    "DefaultAudioItem",
    "InitialTime",
    "InitialTiming",
    "ItemConstructionError",
    "PitchAlgorithm",
    "SourceType",
    "TimePitch",
    "TimePitching",
    "__version__",
    "asset_options_item",
    "capabilities_of",
    "has_capability",
    "initial_time_item",
    "query_capability",
    "register_capability",
    "time_pitching_item",
]


def __getattr__(name: str) -> str:
    if name == "__version__":
        try:
            return metadata.version("audio-items")
        except metadata.PackageNotFoundError:  # pragma: no cover - during editable dev installs
            return "0.0.0"
    raise AttributeError(name)
