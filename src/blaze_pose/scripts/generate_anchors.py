"""Write the pose detector's SSD anchor table as CSV.

Usage:
    uv run python -m blaze_pose.scripts.generate_anchors -o models/anchors.csv
"""

import argparse
from pathlib import Path

from blaze_pose.core.anchors import SsdAnchorOptions, format_anchors, generate_anchors


def main():
    parser = argparse.ArgumentParser(description="Generate BlazePose detector anchors")
    parser.add_argument(
        "--output", "-o", type=str, default="anchors.csv",
        help="Output CSV path (default: anchors.csv)"
    )
    parser.add_argument(
        "--input-size", type=int, default=224,
        help="Detector input size (default: 224)"
    )
    args = parser.parse_args()

    table = generate_anchors(SsdAnchorOptions(input_size=args.input_size))
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(format_anchors(table))

    print(f"Wrote {len(table)} anchors to {output}")


if __name__ == "__main__":
    main()
