"""Inference backends and the two-stage pose pipeline."""

from blaze_pose.inference.backend import InferenceBackend
from blaze_pose.inference.pipeline import PosePipeline, PoseResult

__all__ = [
    "InferenceBackend",
    "PosePipeline",
    "PoseResult",
]
