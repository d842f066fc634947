"""Two-stage pose pipeline.

Stage 1 runs the pose detector on a letterboxed 224x224 view of the frame
and keeps the best anchor. Stage 2 runs the landmarker on a rotated crop
around the two stabilizing keypoints and projects its 33 landmarks back
to display space.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

import numpy as np

from blaze_pose.config import PipelineConfig
from blaze_pose.core.anchors import (
    AnchorTable,
    FormatError,
    SsdAnchorOptions,
    generate_anchors,
    load_anchors_file,
)
from blaze_pose.core.crop import CropWindow, detector_transform, resolve_crop
from blaze_pose.core.detection import DetectionResult, select_best_detection
from blaze_pose.core.keypoints import (
    DisplayKeypoint,
    image_to_display,
    project_keypoints,
)
from blaze_pose.core.sampling import sample_image_affine
from blaze_pose.inference.backend import InferenceBackend

logger = logging.getLogger(__name__)


def _check_anchor_count(anchors: AnchorTable, expected: int) -> None:
    if len(anchors) != expected:
        raise FormatError(
            f"Anchor table has {len(anchors)} rows, config expects {expected}"
        )


@dataclass(frozen=True)
class PoseResult:
    """Pipeline output for one frame, in display space.

    Display space is centered on the image and scaled by its height, y up.
    """
    active: bool
    score: float
    box_center: Optional[np.ndarray] = None
    box_size: Optional[np.ndarray] = None
    circle_center: Optional[np.ndarray] = None
    circle_radius: float = 0.0
    keypoints: List[DisplayKeypoint] = field(default_factory=list)
    crop: Optional[CropWindow] = None

    def to_dict(self) -> dict:
        """JSON-friendly view."""
        if not self.active:
            return {"active": False, "score": self.score}
        return {
            "active": True,
            "score": self.score,
            "box": {
                "center": [float(v) for v in self.box_center],
                "size": [float(v) for v in self.box_size],
            },
            "circle": {
                "center": [float(v) for v in self.circle_center],
                "radius": self.circle_radius,
            },
            "keypoints": [
                {"name": kp.name, "position": list(kp.position), "visible": kp.visible}
                for kp in self.keypoints
            ],
        }


class PosePipeline:
    """BlazePose-style detector + landmarker pipeline.

    Owns both backends; call close() (or use as a context manager) to
    release them.
    """

    def __init__(
        self,
        detector: InferenceBackend,
        landmarker: InferenceBackend,
        anchors: AnchorTable,
        config: Optional[PipelineConfig] = None,
    ):
        """Initialize pipeline.

        Args:
            detector: Loaded pose detector backend.
            landmarker: Loaded pose landmarker backend.
            anchors: Detector anchor table.
            config: Pipeline settings (defaults if None).
        """
        self.config = config or PipelineConfig()
        _check_anchor_count(anchors, self.config.num_anchors)
        self.detector = detector
        self.landmarker = landmarker
        self.anchors = anchors
        self.frames_processed = 0

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "PosePipeline":
        """Validate config, load anchors and both ONNX models."""
        from blaze_pose.inference.onnx_backend import create_backend

        config.validate()
        if config.anchors_path:
            anchors = load_anchors_file(config.anchors_path, config.num_anchors)
        else:
            anchors = generate_anchors(SsdAnchorOptions(input_size=config.detector_input_size))
            logger.info("Generated %d SSD anchors", len(anchors))
        _check_anchor_count(anchors, config.num_anchors)

        detector = create_backend(config.detector_model, config.provider_priority)
        try:
            landmarker = create_backend(config.landmarker_model, config.provider_priority)
        except Exception:
            detector.close()
            raise
        try:
            return cls(detector, landmarker, anchors, config)
        except Exception:
            detector.close()
            landmarker.close()
            raise

    def detect_pose(self, frame: np.ndarray) -> DetectionResult:
        """Stage 1: run the detector on the letterboxed frame."""
        h, w = frame.shape[:2]
        size = self.config.detector_input_size
        m1, _ = detector_transform(w, h, size)

        detector_input = sample_image_affine(frame, m1, size)
        boxes, scores = self.detector.schedule(detector_input).result()[:2]
        return select_best_detection(boxes, scores)

    def detect_landmarks(self, frame: np.ndarray, crop: CropWindow) -> np.ndarray:
        """Stage 2: run the landmarker on the crop window."""
        landmarker_input = sample_image_affine(
            frame, crop.matrix, self.config.landmarker_input_size
        )
        return self.landmarker.schedule(landmarker_input).result()[0]

    def process(self, frame: np.ndarray) -> PoseResult:
        """Run both stages on an RGB frame of shape (H, W, 3), uint8."""
        h, w = frame.shape[:2]
        self.frames_processed += 1

        detection = self.detect_pose(frame)
        if detection.score < self.config.score_threshold:
            return PoseResult(active=False, score=detection.score)

        crop = resolve_crop(
            w, h,
            self.anchors[detection.index],
            detection,
            detector_size=self.config.detector_input_size,
            landmarker_size=self.config.landmarker_input_size,
            dilation=self.config.box_dilation,
        )

        landmarks = self.detect_landmarks(frame, crop)
        keypoints = project_keypoints(
            landmarks, crop.matrix, w, h, self.config.num_keypoints
        )

        return PoseResult(
            active=True,
            score=detection.score,
            box_center=image_to_display(crop.box_center, w, h),
            box_size=crop.box_size / np.float32(h),
            circle_center=image_to_display(crop.circle_center, w, h),
            circle_radius=crop.radius / h,
            keypoints=keypoints,
            crop=crop,
        )

    def close(self) -> None:
        """Release both backends. Safe to call more than once."""
        self.detector.close()
        self.landmarker.close()

    def __enter__(self) -> "PosePipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
