from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Optional, Protocol, runtime_checkable

from PIL import Image

from .capabilities.core import contracts_satisfied_by, resolve_contract
from .errors import ItemConstructionError

if TYPE_CHECKING:
    from .artwork import ArtworkResolver

logger = logging.getLogger(__name__)

ArtworkCallback = Callable[[Optional[Image.Image]], None]


class SourceType(str, Enum):
    """How the media behind an item is delivered; consumers schedule and buffer accordingly."""

    STREAM = "stream"
    FILE = "file"


@runtime_checkable
class AudioItem(Protocol):
    """
    Surface every playable item exposes to a playback engine.

    `resolve_artwork` is single-shot: the callback runs exactly once, either
    before the call returns or later from another thread, with the image or
    None. There is no error channel and no cancellation.
    """

    def get_source_id(self) -> Optional[str]: ...

    def get_source_url(self) -> str: ...

    def get_artist(self) -> Optional[str]: ...

    def get_title(self) -> Optional[str]: ...

    def get_album_title(self) -> Optional[str]: ...

    def get_artwork_url(self) -> Optional[str]: ...

    def get_source_type(self) -> SourceType: ...

    def resolve_artwork(self, callback: ArtworkCallback) -> None: ...


@dataclass(frozen=True, slots=True)
class DefaultAudioItem:
    source_url: str
    source_type: SourceType
    source_id: Optional[str] = None
    artist: Optional[str] = None
    title: Optional[str] = None
    album_title: Optional[str] = None
    artwork_url: Optional[str] = None
    artwork: Optional[Image.Image] = field(default=None, compare=False, repr=False)
    artwork_resolver: Optional["ArtworkResolver"] = field(default=None, compare=False, repr=False)
    capabilities: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.source_url, str) or not self.source_url.strip():
            raise ItemConstructionError(f"source_url must be a non-empty string, got {self.source_url!r}")
        object.__setattr__(self, "source_type", _coerce_source_type(self.source_type))
        object.__setattr__(self, "capabilities", _check_components(self.capabilities))

    def get_source_id(self) -> Optional[str]:
        return self.source_id

    def get_source_url(self) -> str:
        return self.source_url

    def get_artist(self) -> Optional[str]:
        return self.artist

    def get_title(self) -> Optional[str]:
        return self.title

    def get_album_title(self) -> Optional[str]:
        return self.album_title

    def get_artwork_url(self) -> Optional[str]:
        return self.artwork_url

    def get_source_type(self) -> SourceType:
        return self.source_type

    def resolve_artwork(self, callback: ArtworkCallback) -> None:
        if self.artwork is not None or self.artwork_resolver is None:
            callback(self.artwork)
            return
        from .artwork import SingleShotCallback

        logger.debug("Resolving artwork for %s via %s", self.source_url, type(self.artwork_resolver).__name__)
        self.artwork_resolver.resolve(self, SingleShotCallback(callback, label=self.source_url))

    def with_capabilities(self, *components: object) -> "DefaultAudioItem":
        """Copy with `components` attached, replacing any component that provides the same capability."""
        added = _check_components(components)
        provided = {name for component in added for name in contracts_satisfied_by(component)}
        kept = tuple(
            component
            for component in self.capabilities
            if not provided.intersection(contracts_satisfied_by(component))
        )
        return replace(self, capabilities=kept + added)

    def without_capability(self, contract: type | str) -> "DefaultAudioItem":
        """
        Copy without the component providing `contract`.

        A component that also provides other capabilities cannot be removed
        this way; detach it with `dataclasses.replace` instead.
        """
        resolved = resolve_contract(contract)
        for component in self.capabilities:
            if isinstance(component, resolved) and len(contracts_satisfied_by(component)) > 1:
                raise ItemConstructionError(
                    f"{component!r} provides {contracts_satisfied_by(component)}; removing it would drop more than {contract!r}"
                )
        kept = tuple(component for component in self.capabilities if not isinstance(component, resolved))
        return replace(self, capabilities=kept)

    def to_record(self) -> Dict[str, object]:
        return {
            "source_id": self.source_id,
            "source_url": self.source_url,
            "source_type": self.source_type.value,
            "artist": self.artist,
            "title": self.title,
            "album_title": self.album_title,
            "artwork_url": self.artwork_url,
            "artwork": describe_image(self.artwork),
            "capabilities": {
                name: _capability_record(name, component)
                for component in self.capabilities
                for name in contracts_satisfied_by(component)
            },
        }


def json_safe(value: object) -> object:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return [json_safe(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): json_safe(item) for key, item in value.items()}
    return repr(value)


def describe_image(image: Optional[Image.Image]) -> Optional[str]:
    if image is None:
        return None
    width, height = image.size
    return f"<image {width}x{height} {image.mode}>"


def _coerce_source_type(value: object) -> SourceType:
    if isinstance(value, SourceType):
        return value
    if isinstance(value, str):
        try:
            return SourceType(value.strip().lower())
        except ValueError:
            pass
    raise ItemConstructionError(f"source_type must be one of {[m.value for m in SourceType]}, got {value!r}")


def _check_components(components: Iterable[object] | None) -> tuple[Any, ...]:
    if components is None:
        return ()
    if isinstance(components, (str, bytes)) or not isinstance(components, Iterable):
        raise ItemConstructionError(f"capabilities must be an iterable of components, got {components!r}")
    checked = tuple(components)
    seen: dict[str, object] = {}
    for component in checked:
        names = contracts_satisfied_by(component)
        if not names:
            raise ItemConstructionError(f"{component!r} does not provide any known capability")
        for name in names:
            if name in seen:
                raise ItemConstructionError(f"Capability {name!r} is provided twice: {seen[name]!r} and {component!r}")
            seen[name] = component
    return checked


_CAPABILITY_RECORDERS: dict[str, Callable[[Any], object]] = {
    "time_pitching": lambda component: component.get_pitch_algorithm_type().value,
    "initial_timing": lambda component: component.get_initial_time(),
    "asset_options": lambda component: {
        key: json_safe(value)
        for key, value in component.get_asset_options().items()
    },
}


def _capability_record(name: str, component: object) -> object:
    recorder = _CAPABILITY_RECORDERS.get(name)
    if recorder is None:
        return repr(component)
    return recorder(component)
