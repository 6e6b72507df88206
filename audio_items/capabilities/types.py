from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from types import MappingProxyType
from typing import Any, Mapping

from ..errors import ItemConstructionError


class PitchAlgorithm(str, Enum):
    """Time-stretch algorithms a playback engine can apply."""

    LOW_QUALITY_ZERO_LATENCY = "LowQualityZeroLatency"
    TIME_DOMAIN = "TimeDomain"
    SPECTRAL = "Spectral"
    VARISPEED = "Varispeed"

    @classmethod
    def coerce(cls, value: object) -> "PitchAlgorithm":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            cleaned = value.strip()
            for member in cls:
                if cleaned.lower() in (member.value.lower(), member.name.lower()):
                    return member
        raise ItemConstructionError(f"Unknown pitch algorithm: {value!r}")


DEFAULT_PITCH_ALGORITHM = PitchAlgorithm.LOW_QUALITY_ZERO_LATENCY


@dataclass(frozen=True, slots=True)
class TimePitch:
    algorithm: PitchAlgorithm = DEFAULT_PITCH_ALGORITHM

    def __post_init__(self) -> None:
        object.__setattr__(self, "algorithm", PitchAlgorithm.coerce(self.algorithm))

    def get_pitch_algorithm_type(self) -> PitchAlgorithm:
        return self.algorithm


@dataclass(frozen=True, slots=True)
class InitialTime:
    seconds: float = 0.0

    def __post_init__(self) -> None:
        value = self.seconds
        if isinstance(value, bool) or not isinstance(value, Real):
            raise ItemConstructionError(f"Initial time must be a number of seconds, got {value!r}")
        value = float(value)
        if math.isnan(value) or math.isinf(value) or value < 0.0:
            raise ItemConstructionError(f"Initial time must be finite and >= 0, got {value!r}")
        object.__setattr__(self, "seconds", value)

    def get_initial_time(self) -> float:
        return self.seconds


@dataclass(frozen=True, slots=True)
class AssetOptions:
    # Keys and values belong to the asset loader; only the key type is checked.
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        raw = self.options if self.options is not None else {}
        if not isinstance(raw, Mapping):
            raise ItemConstructionError(f"Asset options must be a mapping, got {type(raw).__name__}")
        bad_keys = [key for key in raw if not isinstance(key, str)]
        if bad_keys:
            raise ItemConstructionError(f"Asset option keys must be strings: {bad_keys!r}")
        object.__setattr__(self, "options", MappingProxyType(dict(raw)))

    def get_asset_options(self) -> Mapping[str, Any]:
        return self.options

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetOptions):
            return NotImplemented
        return dict(self.options) == dict(other.options)

    def __hash__(self) -> int:
        return hash((AssetOptions, frozenset(self.options)))
