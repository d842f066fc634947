"""Detector output selection.

The pose detector emits one raw score and one regression row per anchor.
Only the best-scoring anchor is kept for the landmark stage.
"""

from dataclasses import dataclass
from typing import Tuple
import numpy as np

# Offsets used by the crop stage: center (2), size (2), keypoint 1 (2), keypoint 2 (2)
NUM_OFFSETS = 8


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-x))


@dataclass(frozen=True)
class DetectionResult:
    """Best anchor of one detector pass.

    Offsets are in detector-input pixels, relative to the anchor position.
    """
    index: int          # Anchor row index
    score: float        # Sigmoid confidence
    offsets: np.ndarray  # (8,) float32

    @property
    def center_offset(self) -> Tuple[float, float]:
        return (float(self.offsets[0]), float(self.offsets[1]))

    @property
    def size_offset(self) -> Tuple[float, float]:
        return (float(self.offsets[2]), float(self.offsets[3]))

    @property
    def keypoint1_offset(self) -> Tuple[float, float]:
        """First stabilizing keypoint (crop center)."""
        return (float(self.offsets[4]), float(self.offsets[5]))

    @property
    def keypoint2_offset(self) -> Tuple[float, float]:
        """Second stabilizing keypoint (sets crop scale and rotation)."""
        return (float(self.offsets[6]), float(self.offsets[7]))


def select_best_detection(
    raw_boxes: np.ndarray,
    raw_scores: np.ndarray,
    score_clip: float = 100.0,
) -> DetectionResult:
    """Arg-max filter raw detector outputs.

    Args:
        raw_boxes: Regression output, shape (N, K) or (1, N, K) with K >= 8.
        raw_scores: Logits, shape (N,), (N, 1) or (1, N, 1).
        score_clip: Logits are clipped to [-clip, clip] before the sigmoid.

    Returns:
        DetectionResult for the highest-scoring anchor.
    """
    boxes = np.asarray(raw_boxes, dtype=np.float32)
    boxes = boxes.reshape(-1, boxes.shape[-1])
    scores = np.asarray(raw_scores, dtype=np.float32).reshape(-1)

    if boxes.shape[1] < NUM_OFFSETS:
        raise ValueError(
            f"Detector box rows need at least {NUM_OFFSETS} values, got {boxes.shape[1]}"
        )
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(
            f"Box count {boxes.shape[0]} does not match score count {scores.shape[0]}"
        )

    index = int(np.argmax(scores))
    logit = np.clip(scores[index], -score_clip, score_clip)

    return DetectionResult(
        index=index,
        score=float(_sigmoid(logit)),
        offsets=boxes[index, :NUM_OFFSETS].copy(),
    )
