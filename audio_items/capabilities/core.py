from __future__ import annotations

import logging
from importlib import metadata
from threading import Lock
from typing import Any, Iterable, Optional, TypeVar

from .protocols import AssetOptionsProviding, InitialTiming, TimePitching

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "audio_items.capabilities"

T = TypeVar("T")

BUILTIN_CAPABILITIES: dict[str, type] = {
    "time_pitching": TimePitching,
    "initial_timing": InitialTiming,
    "asset_options": AssetOptionsProviding,
}


def _select_entry_points(group: str) -> Iterable[Any]:
    try:
        return metadata.entry_points().select(group=group)
    except Exception:  # pragma: no cover - depends on runtime packaging
        return []


class CapabilityRegistry:
    """
    Name -> contract table used for capability discovery.

    Contracts are runtime-checkable protocols. Third-party packages can add
    their own through the `audio_items.capabilities` entry point group; each
    entry point must load the protocol class itself.
    """

    def __init__(self, *, load_entry_points: bool = True) -> None:
        self._lock = Lock()
        self._load_lock = Lock()
        self._contracts: dict[str, type] = dict(BUILTIN_CAPABILITIES)
        self._entry_points_loaded = not load_entry_points

    def register(self, name: str, contract: type) -> None:
        name = name.strip()
        if not name:
            raise ValueError("Capability name must not be empty")
        if not getattr(contract, "_is_runtime_protocol", False):
            raise TypeError(f"{contract!r} is not a runtime-checkable protocol")
        with self._lock:
            existing = self._contracts.get(name)
            if existing is not None and existing is not contract:
                raise ValueError(f"Capability {name!r} is already registered to {existing.__name__}")
            self._contracts[name] = contract
        logger.debug("Registered capability %s -> %s", name, contract.__name__)

    def contracts(self) -> dict[str, type]:
        self._ensure_entry_points()
        with self._lock:
            return dict(self._contracts)

    def resolve(self, name_or_contract: str | type) -> type:
        if not isinstance(name_or_contract, str):
            return name_or_contract
        contracts = self.contracts()
        try:
            return contracts[name_or_contract]
        except KeyError:
            raise KeyError(f"Unknown capability: {name_or_contract!r}") from None

    def name_of(self, contract: type) -> Optional[str]:
        for name, registered in self.contracts().items():
            if registered is contract:
                return name
        return None

    def _ensure_entry_points(self) -> None:
        if self._entry_points_loaded:
            return
        with self._load_lock:
            if self._entry_points_loaded:
                return
            for ep in _select_entry_points(ENTRY_POINT_GROUP):
                try:
                    self.register(ep.name, ep.load())
                except Exception as exc:  # pragma: no cover - plugin errors
                    logger.warning("Failed to load capability %s from %s: %s", getattr(ep, "name", ep), ENTRY_POINT_GROUP, exc)
            self._entry_points_loaded = True


registry = CapabilityRegistry()


def register_capability(name: str, contract: type) -> None:
    registry.register(name, contract)


def resolve_contract(name_or_contract: str | type) -> type:
    return registry.resolve(name_or_contract)


def query_capability(item: object, contract: type[T] | str) -> Optional[T]:
    """
    Return the object that provides `contract` for `item`, or None.

    The item itself wins when it satisfies the contract structurally;
    otherwise the first attached component that does. Absence is always
    None, never a default value.
    """
    resolved = resolve_contract(contract)
    if isinstance(item, resolved):
        return item  # type: ignore[return-value]
    for component in getattr(item, "capabilities", None) or ():
        if isinstance(component, resolved):
            return component  # type: ignore[return-value]
    return None


def has_capability(item: object, contract: type | str) -> bool:
    return query_capability(item, contract) is not None


def capabilities_of(item: object) -> frozenset[str]:
    return frozenset(
        name for name, contract in registry.contracts().items() if query_capability(item, contract) is not None
    )


def contracts_satisfied_by(component: object) -> list[str]:
    return [name for name, contract in registry.contracts().items() if isinstance(component, contract)]
