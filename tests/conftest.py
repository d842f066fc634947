"""Shared fixtures for pose pipeline tests.

Fake backends and frame sources stand in for ONNX Runtime and OpenCV so the
coordinate pipeline can be exercised without model files or a camera.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from blaze_pose.config import PipelineConfig
from blaze_pose.core.anchors import generate_anchors
from blaze_pose.inference.backend import InferenceBackend


logging.getLogger("PIL").setLevel(logging.WARNING)


class FakeBackend(InferenceBackend):
    """Backend returning fixed outputs and recording its inputs."""

    def __init__(self, outputs: Sequence[np.ndarray], input_shape: Tuple[int, ...] = (1, 224, 224, 3)):
        super().__init__()
        self.outputs = [np.asarray(o, dtype=np.float32) for o in outputs]
        self.input_shape = input_shape
        self.inputs: List[np.ndarray] = []
        self.released = False

    def load(self, model_path: str) -> None:
        pass

    def run(self, input_tensor: np.ndarray) -> List[np.ndarray]:
        self.inputs.append(input_tensor)
        return self.outputs

    def get_input_shape(self) -> Tuple[int, ...]:
        return self.input_shape

    def get_output_shapes(self) -> List[Tuple[int, ...]]:
        return [o.shape for o in self.outputs]

    @property
    def is_loaded(self) -> bool:
        return True

    def release(self) -> None:
        self.released = True


class FakeFrameSource:
    """Frame source yielding a scripted sequence of frames (None = no new frame)."""

    def __init__(self, frames: Sequence[Optional[np.ndarray]], start_ok: bool = True, close_when_empty: bool = True):
        self.frames = list(frames)
        self.start_ok = start_ok
        self.close_when_empty = close_when_empty
        self.started = False
        self.closed = False
        self.reads = 0

    def start(self) -> bool:
        self.started = True
        return self.start_ok

    def read(self) -> Optional[np.ndarray]:
        self.reads += 1
        if not self.frames:
            return None
        return self.frames.pop(0)

    @property
    def is_open(self) -> bool:
        if self.closed:
            return False
        return bool(self.frames) or not self.close_when_empty

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def anchors():
    return generate_anchors()


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def frame():
    """640x480 RGB test frame with a horizontal gradient."""
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    img[..., 0] = np.linspace(0, 255, 640, dtype=np.uint8)[None, :]
    img[..., 1] = 128
    return img


def make_detector_outputs(
    index: int,
    offsets: Sequence[float],
    logit: float = 5.0,
    num_anchors: int = 2254,
) -> List[np.ndarray]:
    """Raw detector outputs with one winning anchor."""
    boxes = np.zeros((1, num_anchors, 12), dtype=np.float32)
    boxes[0, index, :len(offsets)] = offsets
    scores = np.full((1, num_anchors, 1), -10.0, dtype=np.float32)
    scores[0, index, 0] = logit
    return [boxes, scores]


def make_landmarks(
    num_keypoints: int = 33,
    xy: Tuple[float, float] = (128.0, 128.0),
    visibility: float = 5.0,
    presence: float = 5.0,
) -> np.ndarray:
    """Raw landmarker output with every keypoint at the same position."""
    values = np.zeros((num_keypoints, 5), dtype=np.float32)
    values[:, 0] = xy[0]
    values[:, 1] = xy[1]
    values[:, 3] = visibility
    values[:, 4] = presence
    return values.reshape(1, -1)
