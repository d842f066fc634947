"""2D affine transforms over homogeneous coordinates.

Matrices are 3x3 float32 arrays. Composition order is preserved exactly:
``mul(a, b)`` applies ``b`` first, then ``a``.
"""

from typing import Sequence, Union
import numpy as np

Point = Union[Sequence[float], np.ndarray]


def translation_matrix(t: Point) -> np.ndarray:
    """Pure translation by (tx, ty)."""
    return np.array([
        [1, 0, t[0]],
        [0, 1, t[1]],
        [0, 0, 1],
    ], dtype=np.float32)


def scale_matrix(s: Point) -> np.ndarray:
    """Anisotropic scale by (sx, sy). Negative factors flip the axis."""
    return np.array([
        [s[0], 0, 0],
        [0, s[1], 0],
        [0, 0, 1],
    ], dtype=np.float32)


def rotation_matrix(theta: float) -> np.ndarray:
    """Counter-clockwise rotation by theta radians."""
    c = np.cos(theta)
    s = np.sin(theta)
    return np.array([
        [c, -s, 0],
        [s, c, 0],
        [0, 0, 1],
    ], dtype=np.float32)


def mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Compose two transforms (b is applied first)."""
    return np.matmul(a, b).astype(np.float32)


def compose(*matrices: np.ndarray) -> np.ndarray:
    """Compose transforms left to right: compose(A, B, C) == mul(mul(A, B), C)."""
    result = np.eye(3, dtype=np.float32)
    for m in matrices:
        result = mul(result, m)
    return result


def apply(m: np.ndarray, p: Point) -> np.ndarray:
    """Apply transform to a 2D point (w = 1 implied).

    Returns:
        float32 array of shape (2,).
    """
    x = np.float32(p[0])
    y = np.float32(p[1])
    return np.array([
        m[0, 0] * x + m[0, 1] * y + m[0, 2],
        m[1, 0] * x + m[1, 1] * y + m[1, 2],
    ], dtype=np.float32)
