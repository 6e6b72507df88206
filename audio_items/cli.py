from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from .artwork import ArtworkResolver, create_artwork_resolver, resolve_artwork_async
from .capabilities.types import AssetOptions, InitialTime, PitchAlgorithm, TimePitch
from .config import load_settings
from .errors import ItemConstructionError
from .models import DefaultAudioItem, SourceType, describe_image
from .playback import playback_options

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


def configure_logging(level_name: str) -> None:
    log_level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter(LOG_FORMAT))
    root_logger.addHandler(handler)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_asset_option(raw: str) -> tuple[str, object]:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    try:
        parsed: object = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    return key.strip(), parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect playable audio items and their capabilities")
    parser.add_argument("--config", type=Path, help="Path to audio-items.yaml")
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    inspect_parser = subparsers.add_parser("inspect", help="Build an item and show what an engine would see")
    inspect_parser.add_argument("url", help="Source URL or local path")
    inspect_parser.add_argument(
        "--type",
        dest="source_type",
        choices=[member.value for member in SourceType],
        required=True,
    )
    inspect_parser.add_argument("--id", dest="source_id", default=None)
    inspect_parser.add_argument("--title", default=None)
    inspect_parser.add_argument("--artist", default=None)
    inspect_parser.add_argument("--album", dest="album_title", default=None)
    inspect_parser.add_argument("--artwork-url", default=None)
    inspect_parser.add_argument(
        "--pitch-algorithm",
        default=None,
        help=f"One of: {', '.join(member.value for member in PitchAlgorithm)}",
    )
    inspect_parser.add_argument("--initial-time", type=float, default=None, help="Start offset in seconds")
    inspect_parser.add_argument(
        "--asset-option",
        action="append",
        type=parse_asset_option,
        default=[],
        metavar="KEY=VALUE",
        help="Asset loader option; VALUE is parsed as JSON when possible (repeatable)",
    )
    inspect_parser.add_argument(
        "--resolve-artwork",
        action="store_true",
        help="Look up embedded or remote artwork",
    )
    inspect_parser.add_argument(
        "--artwork-timeout",
        type=float,
        default=None,
        help="Give up waiting for artwork after this many seconds",
    )
    subparsers.add_parser("algorithms", help="List available time-pitch algorithms")
    return parser


def build_item(args: argparse.Namespace, resolver: Optional[ArtworkResolver] = None) -> DefaultAudioItem:
    components: list[object] = []
    if args.pitch_algorithm is not None:
        components.append(TimePitch(args.pitch_algorithm))
    if args.initial_time is not None:
        components.append(InitialTime(args.initial_time))
    if args.asset_option:
        components.append(AssetOptions(dict(args.asset_option)))
    return DefaultAudioItem(
        source_url=args.url,
        source_type=args.source_type,
        source_id=args.source_id,
        artist=args.artist,
        title=args.title,
        album_title=args.album_title,
        artwork_url=args.artwork_url,
        artwork_resolver=resolver,
        capabilities=tuple(components),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    settings = load_settings(args.config)

    match args.command:
        case "algorithms":
            for member in PitchAlgorithm:
                print(member.value)
        case "inspect":
            resolver = create_artwork_resolver(settings.artwork) if args.resolve_artwork else None
            try:
                try:
                    item = build_item(args, resolver)
                except ItemConstructionError as exc:
                    parser.error(str(exc))
                report: dict[str, object] = {
                    "item": item.to_record(),
                    "playback": playback_options(item, settings=settings).to_record(),
                }
                if args.resolve_artwork:
                    image = asyncio.run(resolve_artwork_async(item, timeout=args.artwork_timeout))
                    report["resolved_artwork"] = describe_image(image)
                print(json.dumps(report, indent=2, sort_keys=True))
            finally:
                close = getattr(resolver, "close", None)
                if callable(close):
                    close()
        case _:
            parser.error("Unknown command")


if __name__ == "__main__":
    main()
