"""Utility modules for clip2vrma."""

from clip2vrma.utils.math_utils import (
    compose_matrix,
    inverse_transform,
    normalize_quaternion,
    normalize_vector,
    transform_point,
)

__all__ = [
    "compose_matrix",
    "inverse_transform",
    "normalize_quaternion",
    "normalize_vector",
    "transform_point",
]
