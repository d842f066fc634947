"""Run live pose detection on a webcam feed.

Usage:
    uv run python -m blaze_pose.scripts.run_live --models models/
    uv run python -m blaze_pose.scripts.run_live --config pose.json --max-frames 300
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time

from blaze_pose.config import ConfigError, PipelineConfig, config_from_models_dir
from blaze_pose.core.anchors import FormatError
from blaze_pose.inference.pipeline import PosePipeline, PoseResult
from blaze_pose.live.camera import CameraCapture
from blaze_pose.live.runner import LiveRunner, RunnerState


class FpsReporter:
    """Prints detection status roughly once per second."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self.frames = 0
        self.detections = 0
        self.last_report = time.monotonic()

    def __call__(self, result: PoseResult) -> None:
        self.frames += 1
        if result.active:
            self.detections += 1

        now = time.monotonic()
        elapsed = now - self.last_report
        if elapsed >= self.interval and elapsed > 0:
            visible = sum(kp.visible for kp in result.keypoints)
            status = f"pose score={result.score:.2f} visible={visible}" if result.active else "no pose"
            print(f"{self.frames / elapsed:5.1f} FPS | "
                  f"{self.detections}/{self.frames} frames with pose | {status}")
            self.frames = 0
            self.detections = 0
            self.last_report = now


def load_config(args: argparse.Namespace) -> PipelineConfig:
    if args.config:
        config = PipelineConfig.from_json(args.config)
    elif args.models:
        config = config_from_models_dir(args.models)
    else:
        config = PipelineConfig()

    if args.camera is not None:
        config.camera_index = args.camera
    if args.threshold is not None:
        config.score_threshold = args.threshold
    if args.provider is not None:
        config.provider_priority = args.provider
    return config


def main():
    parser = argparse.ArgumentParser(description="Live webcam pose detection")
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to pipeline config JSON"
    )
    parser.add_argument(
        "--models", type=str, default=None,
        help="Directory holding pose_detection.onnx and a pose_landmarks_detector_*.onnx"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device index"
    )
    parser.add_argument(
        "--threshold", type=float, default=None,
        help="Detector score threshold (default 0.75)"
    )
    parser.add_argument(
        "--provider", type=str, default=None,
        choices=["auto", "desktop", "mobile", "mobile-npu", "nnapi", "xnnpack", "cuda", "coreml", "cpu"],
        help="ONNX Runtime execution provider preset"
    )
    parser.add_argument(
        "--max-frames", type=int, default=None,
        help="Stop after N processed frames"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        config = load_config(args)
        pipeline = PosePipeline.from_config(config)
    except (ConfigError, FormatError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    camera = CameraCapture(
        index=config.camera_index,
        width=config.camera_width,
        height=config.camera_height,
        fps=config.camera_fps,
    )
    runner = LiveRunner(
        pipeline,
        camera,
        camera_timeout=config.camera_timeout,
        on_result=FpsReporter(),
        max_frames=args.max_frames,
    )

    # Ctrl+C cancels between frames instead of interrupting inference
    signal.signal(signal.SIGINT, lambda signum, frame: runner.cancel())

    print("Starting live pose detection (Ctrl+C to quit)")
    state = runner.run()
    print(f"\nStopped: {state.name} after {runner.frames_processed} frames")

    if state is RunnerState.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
