"""Detection-to-crop resolution.

Turns the best detector anchor into the rotated, scaled crop window sampled
for the landmark stage.

Coordinate frames:
- Detector space: square ``detector_size`` pixels, y down (tensor rows).
- Image space: source frame pixels, origin bottom-left, y up.
- Landmarker space: square ``landmarker_size`` pixels, y down.

``M1`` maps detector space to image space (letterboxed around the longer
side). ``M2`` maps landmarker space to image space.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union
import logging
import math

import numpy as np

from blaze_pose.core.affine import (
    apply,
    compose,
    mul,
    rotation_matrix,
    scale_matrix,
    translation_matrix,
)
from blaze_pose.core.detection import DetectionResult, NUM_OFFSETS

logger = logging.getLogger(__name__)

DETECTOR_INPUT_SIZE = 224
LANDMARKER_INPUT_SIZE = 256

# Crop radius as a multiple of the keypoint distance
BOX_DILATION = 1.25


@dataclass(frozen=True)
class CropWindow:
    """Second-stage crop plus the image-space geometry it was built from."""
    matrix: np.ndarray           # M2: landmarker space -> image space
    detector_matrix: np.ndarray  # M1: detector space -> image space
    scale: float                 # Image pixels per detector pixel
    radius: float                # Crop half-extent in image pixels
    theta: float                 # Image-space angle of the keypoint axis
    angle: float                 # Rotation applied to the crop (pi/2 - theta)
    box_center: np.ndarray       # Object box center (image space)
    box_size: np.ndarray         # Object box size (image space, height may be negative)
    circle_center: np.ndarray    # First stabilizing keypoint (image space)
    degenerate: bool = False     # Keypoints coincided, theta fell back to 0

    @property
    def circle_radius(self) -> float:
        return self.radius


def detector_transform(
    image_width: float,
    image_height: float,
    detector_size: int = DETECTOR_INPUT_SIZE,
) -> Tuple[np.ndarray, float]:
    """Build M1, the detector-space to image-space transform.

    The detector sees a square window of side max(W, H) centered on the
    image; the y axis is flipped because image space is y-up.

    Returns:
        Tuple of (M1, scale).
    """
    size = max(image_width, image_height)
    scale = size / float(detector_size)

    origin = 0.5 * (np.array([image_width, image_height], dtype=np.float32)
                    + np.array([-size, size], dtype=np.float32))
    m1 = mul(translation_matrix(origin), scale_matrix((scale, -scale)))
    return m1, scale


def landmarker_transform(
    center: np.ndarray,
    radius: float,
    theta: float,
    landmarker_size: int = LANDMARKER_INPUT_SIZE,
) -> np.ndarray:
    """Build M2 for a crop of half-extent ``radius`` around ``center``.

    The crop's up axis is aligned with the direction ``theta``.
    """
    half = 0.5 * landmarker_size
    scale2 = radius / half
    return compose(
        translation_matrix(center),
        scale_matrix((scale2, -scale2)),
        rotation_matrix(0.5 * math.pi - theta),
        translation_matrix((-half, -half)),
    )


def resolve_crop(
    image_width: float,
    image_height: float,
    anchor: Sequence[float],
    detection: Union[DetectionResult, Sequence[float], np.ndarray],
    detector_size: int = DETECTOR_INPUT_SIZE,
    landmarker_size: int = LANDMARKER_INPUT_SIZE,
    dilation: float = BOX_DILATION,
) -> CropWindow:
    """Compute the landmark crop for one detection.

    Args:
        image_width: Source frame width in pixels.
        image_height: Source frame height in pixels.
        anchor: Normalized (x, y) of the selected anchor.
        detection: DetectionResult or its raw 8 offsets.
        detector_size: Detector input size.
        landmarker_size: Landmarker input size.
        dilation: Crop radius multiplier on the keypoint distance.

    Returns:
        CropWindow in image space.
    """
    if isinstance(detection, DetectionResult):
        offsets = detection.offsets
    else:
        offsets = np.asarray(detection, dtype=np.float32)
    if offsets.shape[0] < NUM_OFFSETS:
        raise ValueError(f"Expected {NUM_OFFSETS} offsets, got {offsets.shape[0]}")

    m1, scale = detector_transform(image_width, image_height, detector_size)

    anchor_position = detector_size * np.array(anchor[:2], dtype=np.float32)
    center = offsets[0:2]
    size = offsets[2:4]

    face = apply(m1, anchor_position + center)
    face_top_right = apply(m1, anchor_position + center + 0.5 * size)
    kp1 = apply(m1, anchor_position + offsets[4:6])
    kp2 = apply(m1, anchor_position + offsets[6:8])

    delta = kp2 - kp1
    length = float(np.hypot(delta[0], delta[1]))
    radius = dilation * length
    theta = math.atan2(float(delta[1]), float(delta[0]))

    degenerate = length == 0.0
    if degenerate:
        logger.warning(
            "Stabilizing keypoints coincide at (%.1f, %.1f); axis angle falls back to 0",
            kp1[0], kp1[1],
        )

    m2 = landmarker_transform(kp1, radius, theta, landmarker_size)

    return CropWindow(
        matrix=m2,
        detector_matrix=m1,
        scale=scale,
        radius=radius,
        theta=theta,
        angle=0.5 * math.pi - theta,
        box_center=face,
        box_size=2.0 * (face_top_right - face),
        circle_center=kp1,
        degenerate=degenerate,
    )
