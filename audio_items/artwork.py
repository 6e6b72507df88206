from __future__ import annotations

import asyncio
import io
import logging
import socket
import time
import urllib.error
import urllib.parse
import urllib.request
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Callable, Optional, Protocol, TypeVar

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen.mp4 import MP4
from PIL import Image

from .config import ArtworkSettings
from .models import ArtworkCallback, AudioItem, SourceType

logger = logging.getLogger(__name__)

T = TypeVar("T")

FRONT_COVER = 3


class ArtworkResolver(Protocol):
    """Looks artwork up for an item; same single-shot callback contract as `AudioItem.resolve_artwork`."""

    def resolve(self, item: AudioItem, callback: ArtworkCallback) -> None: ...


class SingleShotCallback:
    """Forwards the first result to `callback` and drops every later one."""

    def __init__(self, callback: ArtworkCallback, *, label: str = "") -> None:
        self._callback = callback
        self._label = label
        self._lock = Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self, image: Optional[Image.Image] = None) -> None:
        with self._lock:
            if self._fired:
                logger.debug("Ignoring repeated artwork result for %s", self._label)
                return
            self._fired = True
        self._callback(image)


def decode_image(data: bytes, *, label: str = "") -> Optional[Image.Image]:
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.debug("Could not decode artwork for %s: %s", label, exc)
        return None
    return image


def local_path(url: str) -> Optional[Path]:
    try:
        parsed = urllib.parse.urlparse(url)
    except ValueError as exc:
        logger.debug("Unparseable source URL %r: %s", url, exc)
        return None
    if parsed.scheme == "file":
        return Path(urllib.request.url2pathname(parsed.path))
    # Single-letter schemes are Windows drive letters.
    if parsed.scheme and len(parsed.scheme) > 1:
        return None
    return Path(url).expanduser()


class EmbeddedArtworkResolver:
    """Reads cover art embedded in local audio files."""

    SUPPORTED_EXTS = {".mp3", ".flac", ".m4a"}

    def resolve(self, item: AudioItem, callback: ArtworkCallback) -> None:
        try:
            image = self.load(item)
        except Exception as exc:
            logger.warning("Embedded artwork lookup failed for %s: %s", item.get_source_url(), exc)
            image = None
        callback(image)

    def load(self, item: AudioItem) -> Optional[Image.Image]:
        if item.get_source_type() is not SourceType.FILE:
            return None
        path = local_path(item.get_source_url())
        if path is None or not path.is_file():
            logger.debug("No local file behind %s", item.get_source_url())
            return None
        readers = {
            ".mp3": self._read_mp3,
            ".flac": self._read_flac,
            ".m4a": self._read_mp4,
        }
        reader = readers.get(path.suffix.lower())
        if not reader:
            logger.debug("Skipping unsupported extension %s", path)
            return None
        try:
            data = reader(path)
        except (MutagenError, OSError) as exc:
            logger.debug("Embedded artwork read failed for %s: %s", path, exc)
            return None
        if not data:
            return None
        return decode_image(data, label=str(path))

    @staticmethod
    def _read_mp3(path: Path) -> Optional[bytes]:
        try:
            tags = ID3(path)
        except ID3NoHeaderError:
            return None
        frames = tags.getall("APIC")
        if not frames:
            return None
        for frame in frames:
            if frame.type == FRONT_COVER:
                return frame.data
        return frames[0].data

    @staticmethod
    def _read_flac(path: Path) -> Optional[bytes]:
        pictures = FLAC(path).pictures
        if not pictures:
            return None
        for picture in pictures:
            if picture.type == FRONT_COVER:
                return picture.data
        return pictures[0].data

    @staticmethod
    def _read_mp4(path: Path) -> Optional[bytes]:
        tags = MP4(path).tags
        if not tags:
            return None
        covers = tags.get("covr") or []
        return bytes(covers[0]) if covers else None


class RemoteArtworkResolver:
    """
    Downloads `get_artwork_url()` over HTTP(S) on a worker pool.

    The callback runs on a worker thread. Transient network errors are
    retried with exponential backoff; every failure ends in `None`.
    """

    ALLOWED_SCHEMES = {"http", "https"}

    def __init__(self, settings: Optional[ArtworkSettings] = None, *, executor: Optional[Executor] = None) -> None:
        self.settings = settings or ArtworkSettings()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.worker_concurrency,
            thread_name_prefix="artwork",
        )

    def resolve(self, item: AudioItem, callback: ArtworkCallback) -> None:
        url = item.get_artwork_url()
        if not url or self._scheme(url) not in self.ALLOWED_SCHEMES:
            callback(None)
            return
        try:
            self._executor.submit(self._resolve_in_worker, url, callback)
        except RuntimeError as exc:
            logger.debug("Artwork worker pool unavailable for %s: %s", url, exc)
            callback(None)

    @staticmethod
    def _scheme(url: str) -> str:
        try:
            return urllib.parse.urlparse(url).scheme.lower()
        except ValueError as exc:
            logger.debug("Unparseable artwork URL %r: %s", url, exc)
            return ""

    def fetch(self, url: str) -> Optional[Image.Image]:
        data = self._run_with_retries(lambda: self._download(url), url=url)
        if data is None:
            return None
        return decode_image(data, label=url)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "RemoteArtworkResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _resolve_in_worker(self, url: str, callback: ArtworkCallback) -> None:
        try:
            image = self.fetch(url)
        except Exception as exc:
            logger.warning("Artwork fetch failed for %s: %s", url, exc)
            image = None
        try:
            callback(image)
        except Exception:
            logger.exception("Artwork callback raised for %s", url)

    def _download(self, url: str) -> Optional[bytes]:
        req = urllib.request.Request(url, headers={"User-Agent": self.settings.useragent})
        limit = self.settings.max_bytes
        try:
            with urllib.request.urlopen(req, timeout=self.settings.timeout_seconds) as resp:
                data = resp.read(limit + 1)
        except urllib.error.HTTPError as exc:
            logger.debug("Artwork HTTP error %s for %s: %s", exc.code, url, exc)
            return None
        if len(data) > limit:
            logger.warning("Artwork at %s exceeds %d bytes; skipping", url, limit)
            return None
        return data

    def _run_with_retries(self, fn: Callable[[], Optional[T]], *, url: str) -> Optional[T]:
        attempts = max(1, 1 + self.settings.network_retries)
        backoff = self.settings.network_retry_backoff_seconds
        last_exc: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except Exception as exc:
                if not self._is_transient_network_error(exc):
                    raise
                last_exc = exc
                if attempt >= attempts:
                    break
                sleep_for = max(0.0, backoff) * (2 ** (attempt - 1))
                if sleep_for:
                    time.sleep(sleep_for)
        if last_exc:
            logger.warning("Artwork fetch failed for %s after %d attempt(s): %s", url, attempts, last_exc)
        return None

    @staticmethod
    def _is_transient_network_error(exc: Exception) -> bool:
        return isinstance(exc, (socket.gaierror, urllib.error.URLError, TimeoutError, ConnectionError))


class ChainedArtworkResolver:
    """Asks each resolver in turn until one produces an image."""

    def __init__(self, *resolvers: ArtworkResolver) -> None:
        self.resolvers = tuple(resolvers)

    def resolve(self, item: AudioItem, callback: ArtworkCallback) -> None:
        self._attempt(item, callback, 0)

    def close(self) -> None:
        for resolver in self.resolvers:
            close = getattr(resolver, "close", None)
            if callable(close):
                close()

    def _attempt(self, item: AudioItem, callback: ArtworkCallback, index: int) -> None:
        if index >= len(self.resolvers):
            callback(None)
            return

        def _next(image: Optional[Image.Image]) -> None:
            if image is not None:
                callback(image)
                return
            self._attempt(item, callback, index + 1)

        guard = SingleShotCallback(_next, label=item.get_source_url())
        resolver = self.resolvers[index]
        try:
            resolver.resolve(item, guard)
        except Exception as exc:
            if guard.fired:
                raise
            logger.warning("%s failed for %s: %s", type(resolver).__name__, item.get_source_url(), exc)
            guard(None)


def create_artwork_resolver(settings: Optional[ArtworkSettings] = None) -> Optional[ArtworkResolver]:
    settings = settings or ArtworkSettings()
    resolvers: list[ArtworkResolver] = []
    if settings.embedded:
        resolvers.append(EmbeddedArtworkResolver())
    if settings.remote:
        resolvers.append(RemoteArtworkResolver(settings))
    if not resolvers:
        return None
    if len(resolvers) == 1:
        return resolvers[0]
    return ChainedArtworkResolver(*resolvers)


async def resolve_artwork_async(item: AudioItem, *, timeout: Optional[float] = None) -> Optional[Image.Image]:
    """
    Await `item.resolve_artwork` from a coroutine.

    Results arriving after a timeout or cancellation are discarded.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[Optional[Image.Image]] = loop.create_future()
    label = item.get_source_url()

    def _deliver(image: Optional[Image.Image]) -> None:
        if not future.done():
            future.set_result(image)

    def _callback(image: Optional[Image.Image]) -> None:
        try:
            loop.call_soon_threadsafe(_deliver, image)
        except RuntimeError:
            logger.debug("Event loop closed before artwork for %s arrived", label)

    item.resolve_artwork(SingleShotCallback(_callback, label=label))
    try:
        return await asyncio.wait_for(future, timeout)
    except asyncio.TimeoutError:
        logger.debug("Timed out waiting for artwork for %s", label)
        return None
