"""Blaze Pose - live two-stage pose detection.

Usage:
    # Live webcam
    uv run python -m blaze_pose.scripts.run_live --models models/

    # Video file to JSON
    uv run python -m blaze_pose.scripts.process_video clip.mp4 --models models/

    # Quick demo on a single image
    uv run python main.py photo.jpg --models models/
"""

import argparse
import sys

import numpy as np
from PIL import Image

from blaze_pose.config import ConfigError, config_from_models_dir
from blaze_pose.core.anchors import FormatError
from blaze_pose.inference.pipeline import PosePipeline


def main():
    """Run the pose pipeline once on an image and print the landmarks."""
    parser = argparse.ArgumentParser(description="Blaze Pose quick demo")
    parser.add_argument("image", type=str, help="Image path")
    parser.add_argument("--models", type=str, default="models", help="Model directory")
    args = parser.parse_args()

    print("Blaze Pose - Quick Demo")
    print("=" * 40)

    frame = np.array(Image.open(args.image).convert("RGB"))
    try:
        config = config_from_models_dir(args.models)
        pipeline = PosePipeline.from_config(config)
    except (ConfigError, FormatError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    with pipeline:
        result = pipeline.process(frame)

    print(f"Image: {frame.shape[1]}x{frame.shape[0]}")
    print(f"Detector score: {result.score:.3f}")
    if not result.active:
        print("No pose above threshold")
        return

    print(f"Box center: ({result.box_center[0]:+.3f}, {result.box_center[1]:+.3f}) "
          f"size: ({result.box_size[0]:.3f}, {result.box_size[1]:.3f})")
    print(f"Crop radius: {result.circle_radius:.3f} "
          f"rotation: {np.degrees(result.crop.angle):.1f} deg")
    for kp in result.keypoints:
        x, y, z = kp.position
        flag = "visible" if kp.visible else "hidden"
        print(f"  {kp.index:2d} {kp.name:18s} ({x:+.3f}, {y:+.3f}, {z:+.3f}) {flag}")


if __name__ == "__main__":
    main()
