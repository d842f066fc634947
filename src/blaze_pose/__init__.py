"""Blaze Pose - live two-stage pose detection with ONNX Runtime."""

__version__ = "0.1.0"
