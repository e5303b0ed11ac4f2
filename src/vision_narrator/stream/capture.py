"""
Capture Sources
===============

Producers of base64-encoded JPEG stills for the samplers.

This is the ONLY place in the codebase that encodes images.

Components:
    - FrameSource: Protocol for capture surfaces
    - StaticFrameSource: Cycles over fixed stills (tests, demos)
    - CameraFrameSource: OpenCV camera capture, resized and JPEG-encoded

Design Rules:
    - capture() never raises on a bad read, it returns None
    - Output is raw base64 (no data-URL prefix)
"""

import base64
import logging
import threading
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when a capture source cannot be opened."""
    pass


class FrameSource(Protocol):
    """
    Protocol for capture surfaces.

    Implementations return the current still as base64 JPEG,
    or None when no frame is available.
    """

    def capture(self) -> Optional[str]:
        ...

    def close(self) -> None:
        ...


def encode_jpeg_b64(image: np.ndarray, quality: int = 80) -> str:
    """
    Encode a BGR image as base64 JPEG.

    Raises:
        CaptureError: If OpenCV fails to encode the image
    """
    ok, buf = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise CaptureError("cv2.imencode failed")
    return base64.b64encode(buf.tobytes()).decode("ascii")


def is_blank(image: np.ndarray, threshold: float = 2.0) -> bool:
    """Whether an image is (nearly) uniformly black."""
    return image.size == 0 or float(np.mean(image)) < threshold


def synthetic_still(width: int = 320, height: int = 240, seed: int = 0) -> str:
    """Deterministic noise still, used when no real stills are configured."""
    rng = np.random.default_rng(seed)
    image = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    return encode_jpeg_b64(image)


class StaticFrameSource:
    """
    Capture source that cycles over fixed stills.

    Example:
        source = StaticFrameSource.from_paths(["a.jpg", "b.jpg"])
        still = source.capture()
    """

    def __init__(self, stills: Sequence[str]) -> None:
        self._stills: List[str] = list(stills)
        self._index: int = 0

    @classmethod
    def from_paths(cls, paths: Sequence[str]) -> "StaticFrameSource":
        """Load image files as base64 stills."""
        stills = []
        for path in paths:
            data = Path(path).read_bytes()
            stills.append(base64.b64encode(data).decode("ascii"))
        logger.info(f"StaticFrameSource loaded {len(stills)} still(s)")
        return cls(stills)

    def capture(self) -> Optional[str]:
        if not self._stills:
            return None
        still = self._stills[self._index % len(self._stills)]
        self._index += 1
        return still

    def close(self) -> None:
        pass


class CameraFrameSource:
    """
    OpenCV camera capture.

    Frames are resized to a fixed size and JPEG-encoded.
    The device is opened lazily and reopened after a failed read.
    Samplers capture from worker threads, so device access is locked.

    Attributes:
        device: OpenCV device index
        width: Output width in pixels
        height: Output height in pixels
        jpeg_quality: JPEG quality (1-100)
    """

    def __init__(
        self,
        device: int = 0,
        width: int = 320,
        height: int = 240,
        jpeg_quality: int = 80,
    ) -> None:
        self.device = device
        self.width = width
        self.height = height
        self.jpeg_quality = jpeg_quality
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures: int = 0
        self._lock = threading.Lock()

    def _open(self) -> None:
        if self._cap is not None:
            self._cap.release()
        self._cap = cv2.VideoCapture(self.device)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        if self._cap.isOpened():
            logger.info(f"Camera opened: device={self.device}")
        else:
            logger.warning(f"Camera failed to open: device={self.device}")

    def _read(self) -> Optional[np.ndarray]:
        """Read one raw frame. Device access is serialised across threads."""
        with self._lock:
            if self._cap is None or not self._cap.isOpened():
                self._open()
                if not self._cap.isOpened():
                    return None

            ok, image = self._cap.read()
            if not ok or image is None:
                self._read_failures += 1
                logger.warning(f"Camera read failed (total failures: {self._read_failures})")
                self._cap.release()
                self._cap = None
                return None
            return image

    def capture(self) -> Optional[str]:
        image = self._read()
        if image is None:
            return None

        if is_blank(image):
            logger.debug("Skipping blank camera frame")
            return None

        resized = cv2.resize(image, (self.width, self.height), interpolation=cv2.INTER_AREA)
        return encode_jpeg_b64(resized, self.jpeg_quality)

    def close(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                logger.info(f"Camera released: device={self.device}")
