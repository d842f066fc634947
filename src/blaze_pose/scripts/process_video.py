"""Run the pose pipeline over a video file and save per-frame results.

Usage:
    uv run python -m blaze_pose.scripts.process_video input.mp4 --models models/ -o poses.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm

from blaze_pose.config import ConfigError, PipelineConfig, config_from_models_dir
from blaze_pose.core.anchors import FormatError
from blaze_pose.inference.pipeline import PosePipeline
from blaze_pose.live.camera import VideoFileSource


def process_video(
    pipeline: PosePipeline,
    source: VideoFileSource,
    show_progress: bool = True,
) -> list[dict[str, Any]]:
    """Process every frame of an opened video source.

    Returns:
        One JSON-friendly result dict per frame, with its frame index.
    """
    results = []
    total = source.frame_count or None
    with tqdm(total=total, desc="Frames", disable=not show_progress) as pbar:
        while True:
            frame = source.read()
            if frame is None:
                break
            result = pipeline.process(frame).to_dict()
            result["frame"] = len(results)
            results.append(result)
            pbar.update(1)
    return results


def main():
    parser = argparse.ArgumentParser(description="Run pose detection on a video file")
    parser.add_argument("video", type=str, help="Input video path")
    parser.add_argument(
        "--output", "-o", type=str, default=None,
        help="Output JSON path (default: <video>.poses.json)"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to pipeline config JSON"
    )
    parser.add_argument(
        "--models", type=str, default=None,
        help="Directory holding the detector and landmarker models"
    )
    parser.add_argument(
        "--threshold", type=float, default=None,
        help="Detector score threshold (default 0.75)"
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Hide progress bar"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    try:
        if args.config:
            config = PipelineConfig.from_json(args.config)
        elif args.models:
            config = config_from_models_dir(args.models)
        else:
            config = PipelineConfig()
        if args.threshold is not None:
            config.score_threshold = args.threshold
        pipeline = PosePipeline.from_config(config)
    except (ConfigError, FormatError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    source = VideoFileSource(args.video)
    with pipeline, source:
        if not source.is_open:
            print(f"ERROR: could not open {args.video}")
            sys.exit(1)
        fps = source.frame_rate
        results = process_video(pipeline, source, show_progress=not args.quiet)

    output = Path(args.output) if args.output else Path(args.video).with_suffix(".poses.json")
    with open(output, "w") as f:
        json.dump({"video": args.video, "fps": fps, "frames": results}, f, indent=2)

    detected = sum(1 for r in results if r["active"])
    print(f"\nProcessed {len(results)} frames, pose found in {detected}")
    print(f"Results written to: {output}")


if __name__ == "__main__":
    main()
