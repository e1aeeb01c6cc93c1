"""
Mathematical utilities for transform data.

Provides functions for:
- Quaternion normalization (x, y, z, w order)
- Building and applying 4x4 affine matrices
"""

import numpy as np
from scipy.spatial.transform import Rotation


IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])


def normalize_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Input vector

    Returns:
        Normalized vector (or zero vector if input is zero)
    """
    norm = np.linalg.norm(v)
    if norm < 1e-10:
        return np.zeros_like(v)
    return v / norm


def normalize_quaternion(q: np.ndarray) -> np.ndarray:
    """
    Normalize a quaternion [x, y, z, w].

    A zero quaternion maps to identity.
    """
    q = np.asarray(q, dtype=np.float64)
    n = normalize_vector(q)
    if not n.any():
        return IDENTITY_QUATERNION.copy()
    return n


def compose_matrix(
    translation: np.ndarray,
    rotation: np.ndarray,
    scale: np.ndarray,
) -> np.ndarray:
    """
    Build a TRS matrix.

    Args:
        translation: 3D translation
        rotation: Quaternion [x, y, z, w]
        scale: Per-axis scale

    Returns:
        4x4 matrix applying scale, then rotation, then translation
    """
    matrix = np.eye(4)
    matrix[:3, :3] = Rotation.from_quat(rotation).as_matrix() * np.asarray(scale, dtype=np.float64)
    matrix[:3, 3] = translation
    return matrix


def transform_point(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    """
    Transform a point by a 4x4 affine matrix.

    Args:
        matrix: 4x4 matrix
        point: 3D point

    Returns:
        Transformed point
    """
    return matrix[:3, :3] @ np.asarray(point, dtype=np.float64) + matrix[:3, 3]


def inverse_transform(matrix: np.ndarray) -> np.ndarray:
    """
    Compute the inverse of a 4x4 affine matrix.

    Args:
        matrix: 4x4 matrix (rotation, scale and translation)

    Returns:
        Inverse 4x4 matrix
    """
    inv_linear = np.linalg.inv(matrix[:3, :3])
    inverse = np.eye(4)
    inverse[:3, :3] = inv_linear
    inverse[:3, 3] = -inv_linear @ matrix[:3, 3]
    return inverse
