import dataclasses
import unittest

from PIL import Image

from audio_items.capabilities.types import InitialTime, PitchAlgorithm, TimePitch
from audio_items.errors import ItemConstructionError
from audio_items.models import AudioItem, DefaultAudioItem, SourceType


class _StartAndPitch:
    def get_initial_time(self) -> float:
        return 5.0

    def get_pitch_algorithm_type(self) -> PitchAlgorithm:
        return PitchAlgorithm.SPECTRAL


class TestDefaultAudioItem(unittest.TestCase):
    def test_accessors_return_constructed_values(self) -> None:
        for url, source_type in (
            ("https://x/a.mp3", SourceType.STREAM),
            ("/music/a.flac", SourceType.FILE),
            ("file:///music/b.m4a", SourceType.FILE),
        ):
            item = DefaultAudioItem(source_url=url, source_type=source_type)
            self.assertEqual(item.get_source_url(), url)
            self.assertIs(item.get_source_type(), source_type)

    def test_stream_scenario(self) -> None:
        item = DefaultAudioItem(source_url="https://x/a.mp3", source_type=SourceType.STREAM, title="Song")
        self.assertEqual(item.get_title(), "Song")
        self.assertIsNone(item.get_artist())
        self.assertIsNone(item.get_album_title())
        self.assertIsNone(item.get_artwork_url())
        self.assertIsNone(item.get_source_id())
        self.assertIs(item.get_source_type(), SourceType.STREAM)

    def test_optional_metadata_is_returned(self) -> None:
        item = DefaultAudioItem(
            source_url="/music/a.flac",
            source_type=SourceType.FILE,
            source_id="track-1",
            artist="Nina Simone",
            title="Sinnerman",
            album_title="Pastel Blues",
            artwork_url="https://img/cover.jpg",
        )
        self.assertEqual(item.get_source_id(), "track-1")
        self.assertEqual(item.get_artist(), "Nina Simone")
        self.assertEqual(item.get_album_title(), "Pastel Blues")
        self.assertEqual(item.get_artwork_url(), "https://img/cover.jpg")

    def test_source_type_accepts_string_value(self) -> None:
        item = DefaultAudioItem(source_url="https://x/live", source_type="Stream")
        self.assertIs(item.get_source_type(), SourceType.STREAM)

    def test_missing_or_empty_url_is_rejected(self) -> None:
        for bad in ("", "   ", None, 42):
            with self.assertRaises(ItemConstructionError):
                DefaultAudioItem(source_url=bad, source_type=SourceType.FILE)  # type: ignore[arg-type]

    def test_unknown_source_type_is_rejected(self) -> None:
        for bad in ("podcast", None, 1):
            with self.assertRaises(ItemConstructionError):
                DefaultAudioItem(source_url="/a.mp3", source_type=bad)  # type: ignore[arg-type]

    def test_construction_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            DefaultAudioItem(source_url="", source_type=SourceType.FILE)

    def test_items_are_frozen(self) -> None:
        item = DefaultAudioItem(source_url="/a.mp3", source_type=SourceType.FILE)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            item.title = "changed"  # type: ignore[misc]
        updated = dataclasses.replace(item, title="changed")
        self.assertEqual(updated.get_title(), "changed")
        self.assertIsNone(item.get_title())

    def test_satisfies_base_contract(self) -> None:
        item = DefaultAudioItem(source_url="/a.mp3", source_type=SourceType.FILE)
        self.assertIsInstance(item, AudioItem)

    def test_equality_ignores_artwork(self) -> None:
        image = Image.new("RGB", (2, 2))
        first = DefaultAudioItem(source_url="/a.mp3", source_type=SourceType.FILE, artwork=image)
        second = DefaultAudioItem(source_url="/a.mp3", source_type=SourceType.FILE)
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))

    def test_with_capabilities_replaces_same_capability(self) -> None:
        item = DefaultAudioItem(
            source_url="/a.mp3",
            source_type=SourceType.FILE,
            capabilities=(InitialTime(3.0), TimePitch("Spectral")),
        )
        updated = item.with_capabilities(InitialTime(7.5))
        self.assertEqual(len(updated.capabilities), 2)
        self.assertIn(InitialTime(7.5), updated.capabilities)
        self.assertIn(TimePitch("Spectral"), updated.capabilities)
        self.assertIn(InitialTime(3.0), item.capabilities)

    def test_without_capability(self) -> None:
        item = DefaultAudioItem(
            source_url="/a.mp3",
            source_type=SourceType.FILE,
            capabilities=(InitialTime(3.0), TimePitch()),
        )
        stripped = item.without_capability("initial_timing")
        self.assertEqual(stripped.capabilities, (TimePitch(),))

    def test_without_capability_refuses_to_drop_other_capabilities(self) -> None:
        item = DefaultAudioItem(
            source_url="/a.mp3",
            source_type=SourceType.FILE,
            capabilities=(_StartAndPitch(),),
        )
        with self.assertRaises(ItemConstructionError):
            item.without_capability("initial_timing")
        self.assertEqual(len(item.capabilities), 1)

    def test_duplicate_capability_is_rejected(self) -> None:
        with self.assertRaises(ItemConstructionError):
            DefaultAudioItem(
                source_url="/a.mp3",
                source_type=SourceType.FILE,
                capabilities=(InitialTime(1.0), InitialTime(2.0)),
            )

    def test_component_without_capability_is_rejected(self) -> None:
        with self.assertRaises(ItemConstructionError):
            DefaultAudioItem(source_url="/a.mp3", source_type=SourceType.FILE, capabilities=(object(),))

    def test_to_record_is_json_friendly(self) -> None:
        import json

        item = DefaultAudioItem(
            source_url="https://x/a.mp3",
            source_type=SourceType.STREAM,
            title="Song",
            artwork=Image.new("RGB", (4, 3)),
            capabilities=(InitialTime(12.5), TimePitch("Varispeed")),
        )
        record = item.to_record()
        json.dumps(record)
        self.assertEqual(record["source_type"], "stream")
        self.assertEqual(record["artwork"], "<image 4x3 RGB>")
        self.assertEqual(record["capabilities"], {"initial_timing": 12.5, "time_pitching": "Varispeed"})


if __name__ == "__main__":
    unittest.main()
