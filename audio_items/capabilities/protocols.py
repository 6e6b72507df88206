from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from .types import PitchAlgorithm


@runtime_checkable
class TimePitching(Protocol):
    """Selects the time-stretch algorithm the engine uses for an item."""

    def get_pitch_algorithm_type(self) -> PitchAlgorithm: ...


@runtime_checkable
class InitialTiming(Protocol):
    """Starts playback at an offset (seconds) instead of the beginning."""

    def get_initial_time(self) -> float: ...


@runtime_checkable
class AssetOptionsProviding(Protocol):
    """Initialization options handed untouched to the asset loader."""

    def get_asset_options(self) -> Mapping[str, Any]: ...
