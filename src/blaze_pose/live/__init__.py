"""Live capture and frame loop."""

from blaze_pose.live.camera import CameraCapture, FrameSource, VideoFileSource
from blaze_pose.live.runner import LiveRunner, RunnerState

__all__ = ["CameraCapture", "FrameSource", "VideoFileSource", "LiveRunner", "RunnerState"]
