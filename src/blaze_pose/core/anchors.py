"""Anchor table for the BlazePose detector.

Each row is a normalized (x, y) reference center in detector-input space,
one per detector output channel. The table is parsed once from a CSV text
blob (or generated from SSD anchor options) and is read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple, Union
import logging

import numpy as np

logger = logging.getLogger(__name__)

# Pose detector output channels (224x224 input)
NUM_POSE_ANCHORS = 2254


class FormatError(ValueError):
    """Anchor source text does not match the expected table layout."""


class AnchorTable:
    """Immutable N x 2 table of normalized anchor centers."""

    def __init__(self, anchors: np.ndarray):
        anchors = np.array(anchors, dtype=np.float32)
        if anchors.ndim != 2 or anchors.shape[1] != 2:
            raise FormatError(
                f"Anchor table must have shape (N, 2), got {anchors.shape}"
            )
        anchors.setflags(write=False)
        self._anchors = anchors

    def __len__(self) -> int:
        return self._anchors.shape[0]

    def __getitem__(self, index: int) -> Tuple[float, float]:
        # Negative indices never come from the detector's argmax
        if not 0 <= index < len(self):
            raise IndexError(
                f"Anchor index {index} out of range for table of {len(self)}"
            )
        row = self._anchors[index]
        return float(row[0]), float(row[1])

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        for i in range(len(self)):
            yield self[i]

    def as_array(self) -> np.ndarray:
        """Read-only (N, 2) float32 view of the table."""
        return self._anchors


def load_anchors(text: str, num_anchors: int) -> AnchorTable:
    """Parse a newline-delimited, comma-separated anchor table.

    Args:
        text: CSV text, one anchor per line. Only the first two columns
            (x, y) are used; blank lines are ignored.
        num_anchors: Exact number of rows expected.

    Returns:
        AnchorTable with ``num_anchors`` rows.

    Raises:
        FormatError: Row count mismatch or malformed row.
    """
    rows: List[Tuple[float, float]] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        fields = line.split(",")
        if len(fields) < 2:
            raise FormatError(
                f"Line {line_no}: expected at least 2 values, got {len(fields)}"
            )
        try:
            rows.append((float(fields[0]), float(fields[1])))
        except ValueError as e:
            raise FormatError(f"Line {line_no}: {e}") from e

    if len(rows) != num_anchors:
        raise FormatError(
            f"Expected {num_anchors} anchors, found {len(rows)}"
        )

    return AnchorTable(np.array(rows, dtype=np.float32))


def load_anchors_file(
    path: Union[str, Path],
    num_anchors: int = NUM_POSE_ANCHORS,
) -> AnchorTable:
    """Load an anchor table from a CSV file."""
    table = load_anchors(Path(path).read_text(), num_anchors)
    logger.info("Loaded %d anchors from %s", len(table), path)
    return table


@dataclass
class SsdAnchorOptions:
    """SSD anchor layout used by the BlazePose detector.

    Attributes:
        input_size: Square detector input size in pixels.
        strides: Stride of each anchor layer. Consecutive layers with the
            same stride share one feature map.
        anchors_per_layer: Anchors emitted per location for each layer
            (aspect ratio 1.0 plus the interpolated scale).
        anchor_offset: Offset of the anchor center inside its cell.
    """
    input_size: int = 224
    strides: Sequence[int] = (8, 16, 32, 32, 32)
    anchors_per_layer: int = 2
    anchor_offset: float = 0.5


def generate_anchors(options: SsdAnchorOptions = SsdAnchorOptions()) -> AnchorTable:
    """Generate fixed-size SSD anchor centers.

    For the default options this yields 28*28*2 + 14*14*2 + 7*7*6 = 2254
    anchors, in the order the pose detector emits them.
    """
    centers = []
    layer = 0
    strides = list(options.strides)
    while layer < len(strides):
        stride = strides[layer]
        # Merge consecutive layers with the same stride
        per_location = 0
        last = layer
        while last < len(strides) and strides[last] == stride:
            per_location += options.anchors_per_layer
            last += 1

        fm = int(np.ceil(options.input_size / stride))
        for y in range(fm):
            y_center = (y + options.anchor_offset) / fm
            for x in range(fm):
                x_center = (x + options.anchor_offset) / fm
                centers.extend([(x_center, y_center)] * per_location)
        layer = last

    return AnchorTable(np.array(centers, dtype=np.float32))


def format_anchors(table: AnchorTable) -> str:
    """Serialize an anchor table to the CSV form read by load_anchors."""
    return "\n".join(f"{x:.6f},{y:.6f}" for x, y in table) + "\n"
