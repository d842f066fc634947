"""Coordinate pipeline for two-stage pose detection."""

from blaze_pose.core.anchors import (
    AnchorTable,
    FormatError,
    NUM_POSE_ANCHORS,
    SsdAnchorOptions,
    format_anchors,
    generate_anchors,
    load_anchors,
    load_anchors_file,
)
from blaze_pose.core.crop import CropWindow, detector_transform, resolve_crop
from blaze_pose.core.detection import DetectionResult, select_best_detection
from blaze_pose.core.keypoints import (
    DisplayKeypoint,
    KeypointSample,
    LANDMARK_NAMES,
    decode_keypoints,
    image_to_display,
    project_keypoints,
)
from blaze_pose.core.sampling import sample_image_affine

__all__ = [
    "AnchorTable",
    "FormatError",
    "NUM_POSE_ANCHORS",
    "SsdAnchorOptions",
    "format_anchors",
    "generate_anchors",
    "load_anchors",
    "load_anchors_file",
    "CropWindow",
    "detector_transform",
    "resolve_crop",
    "DetectionResult",
    "select_best_detection",
    "DisplayKeypoint",
    "KeypointSample",
    "LANDMARK_NAMES",
    "decode_keypoints",
    "image_to_display",
    "project_keypoints",
    "sample_image_affine",
]
