"""Tests for the perla video producer: step order and temp file cleanup."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import make_item
from pi_perle_stack.errors import ConfigurationError, ProductionFailed
from pi_perle_stack.services.video_producer import PerlaVideoProducer


class FakeNarrator:
    def __init__(self, error=None, write=True):
        self.error = error
        self.write = write
        self.texts = []

    def synthesize(self, text, output_path):
        self.texts.append(text)
        if self.write:
            Path(output_path).write_bytes(b"ID3")
        if self.error:
            raise self.error
        return {"file_path": output_path}


class FakeRenderer:
    def __init__(self, error=None):
        self.error = error

    def render(self, text, output_path, now=None):
        Path(output_path).write_bytes(b"\x89PNG")
        if self.error:
            raise self.error
        return output_path


class FakeAssembler:
    def __init__(self, error=None):
        self.error = error

    def compose(self, image_path, audio_path, output_path):
        Path(output_path).write_bytes(b"partial")
        if self.error:
            raise self.error
        return {"duration": 4.5, "file_size_mb": 0.1, "resolution": "1080x1920"}


def _producer(tmp_path, narrator=None, renderer=None, assembler=None):
    return PerlaVideoProducer(
        narrator=narrator or FakeNarrator(),
        renderer=renderer or FakeRenderer(),
        assembler=assembler or FakeAssembler(),
        videos_dir=tmp_path / "videos",
        temp_dir=tmp_path / "videos" / "temp",
    )


def _files(root: Path):
    return sorted(p.name for p in root.rglob("*") if p.is_file())


class TestProduce:
    def test_success_keeps_only_video(self, tmp_path):
        item = make_item("Buongiorno gruppo 😂")
        narrator = FakeNarrator()
        artifact = _producer(tmp_path, narrator=narrator).produce(item)

        assert artifact.perla_id == item.id
        assert artifact.duration == 4.5
        video = Path(artifact.video_path)
        assert video.is_file()
        assert video.name.startswith(f"video-{item.id}-")
        assert _files(tmp_path / "videos") == [video.name]
        assert narrator.texts == ["Buongiorno gruppo"]

    @pytest.mark.parametrize(
        "kwargs,step",
        [
            ({"narrator": FakeNarrator(error=RuntimeError("tts down"))}, "narration"),
            ({"renderer": FakeRenderer(error=OSError("no font"))}, "render"),
            ({"assembler": FakeAssembler(error=RuntimeError("ffmpeg"))}, "compose"),
        ],
    )
    def test_failure_cleans_everything(self, tmp_path, kwargs, step):
        producer = _producer(tmp_path, **kwargs)
        with pytest.raises(ProductionFailed) as excinfo:
            producer.produce(make_item("Buongiorno gruppo"))
        assert excinfo.value.step == step
        assert _files(tmp_path / "videos") == []

    def test_missing_audio_is_narration_failure(self, tmp_path):
        producer = _producer(tmp_path, narrator=FakeNarrator(write=False))
        with pytest.raises(ProductionFailed) as excinfo:
            producer.produce(make_item("Buongiorno gruppo"))
        assert excinfo.value.step == "narration"

    def test_text_without_speakable_content(self, tmp_path):
        narrator = FakeNarrator()
        producer = _producer(tmp_path, narrator=narrator)
        with pytest.raises(ProductionFailed):
            producer.produce(make_item("😂😂😂😂😂😂😂😂😂😂"))
        assert narrator.texts == []

    def test_configuration_error_propagates(self, tmp_path):
        narrator = MagicMock()
        narrator.synthesize.side_effect = ConfigurationError("ELEVENLABS_API_KEY not set")
        with pytest.raises(ConfigurationError):
            _producer(tmp_path, narrator=narrator).produce(make_item("Buongiorno gruppo"))
        assert _files(tmp_path / "videos") == []
