"""Landmark decoding and projection to display space.

The landmarker emits 5 values per keypoint: x, y (landmarker pixels),
depth, visibility and presence. Positions are mapped back to image space
with the crop transform, then to an aspect-correct display space centered
on the image and scaled by its height.
"""

from dataclasses import dataclass
from typing import List, Tuple
import numpy as np

from blaze_pose.core.affine import apply

NUM_KEYPOINTS = 33
VALUES_PER_KEYPOINT = 5
VISIBILITY_THRESHOLD = 0.5

LANDMARK_NAMES = [
    "nose",
    "left_eye_inner",
    "left_eye",
    "left_eye_outer",
    "right_eye_inner",
    "right_eye",
    "right_eye_outer",
    "left_ear",
    "right_ear",
    "mouth_left",
    "mouth_right",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_pinky",
    "right_pinky",
    "left_index",
    "right_index",
    "left_thumb",
    "right_thumb",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
    "left_heel",
    "right_heel",
    "left_foot_index",
    "right_foot_index",
]


@dataclass(frozen=True)
class KeypointSample:
    """One landmark in image space."""
    index: int
    position: np.ndarray  # (x, y) image space
    depth: float          # Landmarker units, relative to the hips
    visibility: float
    presence: float

    @property
    def visible(self) -> bool:
        return (self.visibility > VISIBILITY_THRESHOLD
                and self.presence > VISIBILITY_THRESHOLD)


@dataclass(frozen=True)
class DisplayKeypoint:
    """One landmark in display space, ready for a preview layer."""
    index: int
    name: str
    position: Tuple[float, float, float]
    visible: bool


def image_to_display(
    position: np.ndarray,
    image_width: float,
    image_height: float,
) -> np.ndarray:
    """Center on the image and scale by its height."""
    half = 0.5 * np.array([image_width, image_height], dtype=np.float32)
    return (np.asarray(position, dtype=np.float32) - half) / np.float32(image_height)


def decode_keypoints(
    raw: np.ndarray,
    matrix: np.ndarray,
    num_keypoints: int = NUM_KEYPOINTS,
) -> List[KeypointSample]:
    """Map raw landmarker output to image-space samples.

    Args:
        raw: Landmarker output, any shape with at least 5 * num_keypoints values.
        matrix: Crop transform M2 (landmarker space -> image space).
        num_keypoints: Number of landmarks to read.
    """
    values = np.asarray(raw, dtype=np.float32).reshape(-1)
    needed = VALUES_PER_KEYPOINT * num_keypoints
    if values.shape[0] < needed:
        raise ValueError(
            f"Landmark tensor has {values.shape[0]} values, need {needed}"
        )

    rows = values[:needed].reshape(num_keypoints, VALUES_PER_KEYPOINT)
    samples = []
    for i, (x, y, depth, visibility, presence) in enumerate(rows):
        samples.append(KeypointSample(
            index=i,
            position=apply(matrix, (x, y)),
            depth=float(depth),
            visibility=float(visibility),
            presence=float(presence),
        ))
    return samples


def project_keypoints(
    raw: np.ndarray,
    matrix: np.ndarray,
    image_width: float,
    image_height: float,
    num_keypoints: int = NUM_KEYPOINTS,
) -> List[DisplayKeypoint]:
    """Map raw landmarker output straight to display space."""
    projected = []
    for sample in decode_keypoints(raw, matrix, num_keypoints):
        xy = image_to_display(sample.position, image_width, image_height)
        z = sample.depth / image_height
        name = LANDMARK_NAMES[sample.index] if sample.index < len(LANDMARK_NAMES) else str(sample.index)
        projected.append(DisplayKeypoint(
            index=sample.index,
            name=name,
            position=(float(xy[0]), float(xy[1]), float(z)),
            visible=sample.visible,
        ))
    return projected
