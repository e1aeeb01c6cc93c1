"""
Coordinate conversion from host space to interchange space.

Positions mirror the X axis; rotations negate the Y and Z imaginary
components. Both are the same handedness flip expressed on a point and
on a quaternion.
"""

import numpy as np
from scipy.spatial.transform import Rotation

from clip2vrma.utils.math_utils import transform_point


def convert_position(world_position: np.ndarray, world_to_local: np.ndarray) -> np.ndarray:
    """
    Express a world position in the root's local space, X mirrored.

    Args:
        world_position: Point in host world space
        world_to_local: 4x4 world-to-local matrix of the root transform

    Returns:
        (-p.x, p.y, p.z) where p is the local point
    """
    p = transform_point(world_to_local, world_position)
    return np.array([-p[0], p[1], p[2]])


def convert_rotation(parent_rotation: np.ndarray, rotation: np.ndarray) -> np.ndarray:
    """
    Parent-relative rotation with Y and Z negated.

    Args:
        parent_rotation: World rotation [x, y, z, w] of the effective parent
        rotation: World rotation [x, y, z, w] of the bone

    Returns:
        Quaternion (q.x, -q.y, -q.z, q.w) for q = inverse(parent) * rotation
    """
    q = (Rotation.from_quat(parent_rotation).inv() * Rotation.from_quat(rotation)).as_quat()
    return np.array([q[0], -q[1], -q[2], q[3]])
