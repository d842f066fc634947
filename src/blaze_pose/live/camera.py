"""Webcam frame source.

Wraps cv2.VideoCapture and exposes only new frames, so the frame loop never
processes the same image twice.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Anything the live runner can pull RGB frames from."""

    def start(self) -> bool: ...

    def read(self) -> Optional[np.ndarray]: ...

    @property
    def is_open(self) -> bool: ...

    def close(self) -> None: ...


class CameraCapture:
    """OpenCV webcam capture producing RGB frames.

    Usage:
        camera = CameraCapture(index=0, width=640, height=480, fps=30)
        if camera.start():
            frame = camera.read()  # (H, W, 3) uint8 RGB, or None
        camera.close()
    """

    def __init__(
        self,
        index: int = 0,
        width: int = 640,
        height: int = 480,
        fps: int = 30,
    ):
        self.index = index
        self.width = width
        self.height = height
        self.fps = fps
        self._capture: Optional[cv2.VideoCapture] = None

    def start(self) -> bool:
        """Open the device and request the capture format.

        Returns:
            True if the device opened.
        """
        if self._capture is not None:
            return self._capture.isOpened()

        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            logger.error("Failed to open camera %d", self.index)
            capture.release()
            return False

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        capture.set(cv2.CAP_PROP_FPS, self.fps)
        self._capture = capture

        logger.info(
            "Camera %d opened at %dx%d @ %.0f fps",
            self.index,
            int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            capture.get(cv2.CAP_PROP_FPS),
        )
        return True

    def read(self) -> Optional[np.ndarray]:
        """Grab the next frame, or None if no new frame is available."""
        if self._capture is None:
            return None
        ok, bgr = self._capture.read()
        if not ok or bgr is None:
            return None
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> CameraCapture:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class VideoFileSource(CameraCapture):
    """Frame source reading a video file instead of a device.

    A file capture stays open after its last frame, so the first failed
    read marks the source exhausted and ``is_open`` turns False.
    """

    def __init__(self, path: str):
        super().__init__(index=0)
        self.path = path
        self.exhausted = False

    def start(self) -> bool:
        if self._capture is not None:
            return self._capture.isOpened()
        capture = cv2.VideoCapture(self.path)
        if not capture.isOpened():
            logger.error("Failed to open video %s", self.path)
            capture.release()
            return False
        self._capture = capture
        self.exhausted = False
        return True

    def read(self) -> Optional[np.ndarray]:
        if self._capture is None or self.exhausted:
            return None
        frame = super().read()
        if frame is None:
            logger.info("End of video %s", self.path)
            self.exhausted = True
        return frame

    @property
    def is_open(self) -> bool:
        return not self.exhausted and super().is_open

    @property
    def frame_count(self) -> int:
        if self._capture is None:
            return 0
        return int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT))

    @property
    def frame_rate(self) -> float:
        if self._capture is None:
            return 0.0
        return float(self._capture.get(cv2.CAP_PROP_FPS))
