from __future__ import annotations

from typing import Any, Mapping, Optional

from .capabilities.types import DEFAULT_PITCH_ALGORITHM, AssetOptions, InitialTime, PitchAlgorithm, TimePitch
from .models import DefaultAudioItem, SourceType

# Each factory bundles exactly one capability; pass `capabilities=` to
# DefaultAudioItem directly (or use `with_capabilities`) to combine several.


def time_pitching_item(
    source_url: str,
    source_type: SourceType | str,
    *,
    pitch_algorithm: PitchAlgorithm | str = DEFAULT_PITCH_ALGORITHM,
    **fields: Any,
) -> DefaultAudioItem:
    return DefaultAudioItem(
        source_url=source_url,
        source_type=source_type,
        capabilities=(TimePitch(pitch_algorithm),),
        **fields,
    )


def initial_time_item(
    source_url: str,
    source_type: SourceType | str,
    *,
    initial_time: float = 0.0,
    **fields: Any,
) -> DefaultAudioItem:
    return DefaultAudioItem(
        source_url=source_url,
        source_type=source_type,
        capabilities=(InitialTime(initial_time),),
        **fields,
    )


def asset_options_item(
    source_url: str,
    source_type: SourceType | str,
    *,
    options: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> DefaultAudioItem:
    return DefaultAudioItem(
        source_url=source_url,
        source_type=source_type,
        capabilities=(AssetOptions(options or {}),),
        **fields,
    )
