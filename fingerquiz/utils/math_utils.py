"""Small numpy helpers for normalized hand landmarks."""

import numpy as np
from typing import Iterable, Tuple, Union

PointLike = Union[Tuple[float, float], np.ndarray]


def landmarks_to_array(landmarks: Iterable) -> np.ndarray:
    """(N, 3) float array of (x, y, z). Landmarks without `.z` get 0."""
    rows = [(lm.x, lm.y, getattr(lm, 'z', None) or 0.0) for lm in landmarks]
    return np.asarray(rows, dtype=float).reshape(-1, 3)


def normalized_to_pixels(norm_xy: PointLike, frame_shape: Tuple[int, ...]) -> np.ndarray:
    """
    Normalized (x, y) in 0..1 -> integer pixel (x, y), clipped to the frame.
    Accepts one point (2,) or a batch (N, 2) and returns the same shape.
    """
    h, w = int(frame_shape[0]), int(frame_shape[1])
    pts = np.asarray(norm_xy, dtype=float)
    if pts.shape[-1:] != (2,) or pts.ndim > 2:
        raise ValueError(f"norm_xy must be shape (2,) or (N,2), got {pts.shape}")

    size = np.array([w, h], dtype=float)
    return np.clip(pts * size, 0, size - 1).astype(int)


def euclidean(a, b):
    """Distance between points; row-wise when given (N, D) arrays."""
    return np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float), axis=-1)


__all__ = [
    "landmarks_to_array",
    "normalized_to_pixels",
    "euclidean",
]
