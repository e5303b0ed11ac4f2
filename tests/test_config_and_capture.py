"""
Configuration and Capture Tests
===============================

YAML/env configuration loading and capture sources.
"""

import base64
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from pydantic import ValidationError

from vision_narrator.config import load_config
from vision_narrator.stream import CameraFrameSource, StaticFrameSource, synthetic_still
from vision_narrator.stream import capture as capture_module
from vision_narrator.stream.capture import is_blank


class TestConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("NARRATOR_PORT", raising=False)
        monkeypatch.delenv("NARRATOR_MIN_INTERVAL_MS", raising=False)

        settings = load_config(str(tmp_path / "missing.yaml"))

        assert settings.gate.min_interval_ms == 4500
        assert settings.queue.capacity == 10
        assert settings.detection.similarity_threshold == 0.7
        assert settings.processor.admission_mode == "direct"
        assert settings.server.port == 8002

    def test_yaml_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NARRATOR_MIN_INTERVAL_MS", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("gate:\n  min_interval_ms: 3000\nsession:\n  history_size: 3\n")

        settings = load_config(str(path))

        assert settings.gate.min_interval_ms == 3000
        assert settings.session.history_size == 3

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("gate:\n  min_interval_ms: 3000\n")
        monkeypatch.setenv("NARRATOR_MIN_INTERVAL_MS", "6000")
        monkeypatch.setenv("NARRATOR_ADMISSION_MODE", "queued")

        settings = load_config(str(path))

        assert settings.gate.min_interval_ms == 6000
        assert settings.processor.admission_mode == "queued"

    def test_invalid_values_rejected(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NARRATOR_QUEUE_CAPACITY", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("queue:\n  capacity: 0\n")

        with pytest.raises(ValidationError):
            load_config(str(path))


class TestCapture:
    """Tests for capture helpers and the static source."""

    def test_synthetic_still_is_jpeg(self):
        data = base64.b64decode(synthetic_still(64, 48))
        assert data[:2] == b"\xff\xd8"

    def test_synthetic_still_is_deterministic(self):
        assert synthetic_still(32, 32, seed=1) == synthetic_still(32, 32, seed=1)

    def test_is_blank(self):
        assert is_blank(np.zeros((10, 10, 3), dtype=np.uint8)) is True
        assert is_blank(np.full((10, 10, 3), 128, dtype=np.uint8)) is False

    def test_static_source_cycles(self):
        source = StaticFrameSource(["a", "b"])
        assert [source.capture() for _ in range(3)] == ["a", "b", "a"]

    def test_empty_static_source(self):
        assert StaticFrameSource([]).capture() is None

    def test_from_paths(self, tmp_path):
        path = tmp_path / "still.jpg"
        path.write_bytes(b"\xff\xd8jpeg")

        source = StaticFrameSource.from_paths([str(path)])

        assert base64.b64decode(source.capture()) == b"\xff\xd8jpeg"


class FakeVideoCapture:
    """VideoCapture stand-in that records overlapping device access."""

    active = 0
    max_active = 0
    guard = threading.Lock()

    def __init__(self, device):
        self.device = device

    def set(self, prop, value):
        return True

    def isOpened(self):
        return True

    def read(self):
        with FakeVideoCapture.guard:
            FakeVideoCapture.active += 1
            FakeVideoCapture.max_active = max(FakeVideoCapture.max_active, FakeVideoCapture.active)
        time.sleep(0.02)
        with FakeVideoCapture.guard:
            FakeVideoCapture.active -= 1
        return True, np.full((48, 64, 3), 128, dtype=np.uint8)

    def release(self):
        pass


class TestCameraFrameSource:
    """Tests for CameraFrameSource with a fake device."""

    def test_concurrent_captures_do_not_overlap(self, monkeypatch):
        monkeypatch.setattr(capture_module.cv2, "VideoCapture", FakeVideoCapture)
        FakeVideoCapture.active = 0
        FakeVideoCapture.max_active = 0
        source = CameraFrameSource(width=32, height=24)

        with ThreadPoolExecutor(max_workers=4) as pool:
            stills = list(pool.map(lambda _: source.capture(), range(8)))

        assert FakeVideoCapture.max_active == 1
        assert all(base64.b64decode(still)[:2] == b"\xff\xd8" for still in stills)
        source.close()
