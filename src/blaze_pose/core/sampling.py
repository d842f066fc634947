"""Affine image resampling for model inputs.

Backend-agnostic implementation using Pillow. Tensor pixel centers are
mapped through an affine matrix into image space (origin bottom-left,
y up) and sampled bilinearly; samples outside the frame are black.
"""

import numpy as np
from PIL import Image


def sample_image_affine(
    frame: np.ndarray,
    matrix: np.ndarray,
    size: int,
) -> np.ndarray:
    """Resample a frame into a square model input.

    Args:
        frame: RGB image of shape (H, W, 3), uint8.
        matrix: Tensor space -> image space transform (3x3).
        size: Output side length in pixels.

    Returns:
        Tensor of shape (1, size, size, 3), float32 in [0, 1].
    """
    height = frame.shape[0]

    # Pillow maps output (x, y) to input (a*x + b*y + c, d*x + e*y + f)
    # with y down, so flip the matrix's y row into row coordinates.
    m = np.asarray(matrix, dtype=np.float64)
    data = (
        m[0, 0], m[0, 1], m[0, 2],
        -m[1, 0], -m[1, 1], height - m[1, 2],
    )

    pil_img = Image.fromarray(frame)
    sampled = pil_img.transform(
        (size, size),
        Image.Transform.AFFINE,
        data,
        resample=Image.Resampling.BILINEAR,
        fillcolor=(0, 0, 0),
    )

    tensor = np.asarray(sampled, dtype=np.float32) / 255.0
    return tensor[None, ...]
