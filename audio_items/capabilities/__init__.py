from __future__ import annotations

from .core import (
    CapabilityRegistry,
    capabilities_of,
    has_capability,
    query_capability,
    register_capability,
    registry,
    resolve_contract,
)
from .protocols import AssetOptionsProviding, InitialTiming, TimePitching
from .types import DEFAULT_PITCH_ALGORITHM, AssetOptions, InitialTime, PitchAlgorithm, TimePitch

__all__ = [
    "AssetOptions",
    "AssetOptionsProviding",
    "CapabilityRegistry",
    "DEFAULT_PITCH_ALGORITHM",
    "InitialTime",
    "InitialTiming",
    "PitchAlgorithm",
    "TimePitch",
    "TimePitching",
    "capabilities_of",
    "has_capability",
    "query_capability",
    "register_capability",
    "registry",
    "resolve_contract",
]
