from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .capabilities.core import query_capability
from .capabilities.protocols import AssetOptionsProviding, InitialTiming, TimePitching
from .capabilities.types import DEFAULT_PITCH_ALGORITHM, PitchAlgorithm
from .config import Settings
from .models import AudioItem, SourceType, json_safe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaybackOptions:
    """What an engine needs to schedule an item, with every capability resolved to a concrete value."""

    source_url: str
    source_type: SourceType
    pitch_algorithm: PitchAlgorithm
    initial_time: float = 0.0
    asset_options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    @property
    def is_live_stream(self) -> bool:
        return self.source_type is SourceType.STREAM

    def to_record(self) -> Dict[str, object]:
        return {
            "source_url": self.source_url,
            "source_type": self.source_type.value,
            "pitch_algorithm": self.pitch_algorithm.value,
            "initial_time": self.initial_time,
            "asset_options": {key: json_safe(value) for key, value in self.asset_options.items()},
            "is_live_stream": self.is_live_stream,
        }


def playback_options(
    item: AudioItem,
    *,
    baseline_algorithm: Optional[PitchAlgorithm] = None,
    settings: Optional[Settings] = None,
) -> PlaybackOptions:
    if baseline_algorithm is None:
        baseline_algorithm = settings.playback.baseline_pitch_algorithm if settings is not None else DEFAULT_PITCH_ALGORITHM

    pitch = query_capability(item, TimePitching)
    timing = query_capability(item, InitialTiming)
    assets = query_capability(item, AssetOptionsProviding)
    logger.debug(
        "Capabilities for %s: pitch=%s timing=%s assets=%s",
        item.get_source_url(),
        pitch is not None,
        timing is not None,
        assets is not None,
    )

    return PlaybackOptions(
        source_url=item.get_source_url(),
        source_type=item.get_source_type(),
        pitch_algorithm=pitch.get_pitch_algorithm_type() if pitch is not None else baseline_algorithm,
        initial_time=timing.get_initial_time() if timing is not None else 0.0,
        asset_options=MappingProxyType(dict(assets.get_asset_options())) if assets is not None else MappingProxyType({}),
    )
