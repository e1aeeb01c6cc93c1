"""
Animation clip storage and curve evaluation.

Provides classes for keyframed animation data:
- Keyframe / AnimationCurve: a single scalar channel with Hermite evaluation
- TransformCurves: position and rotation curves for one transform
- CurveBinding: a scalar curve bound to a property on a scene path
- KeyframeClip: a complete clip that can be sampled onto an avatar
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from clip2vrma.utils.math_utils import normalize_quaternion


BLEND_SHAPE_PREFIX = "blendShape."


@dataclass
class Keyframe:
    """
    A single key of an animation curve.

    Tangents are slopes (value units per second). When either side of a
    segment has no tangent the segment is interpolated linearly; an
    infinite out tangent holds the value until the next key.
    """
    time: float
    value: float
    in_tangent: Optional[float] = None
    out_tangent: Optional[float] = None


class AnimationCurve:
    """Scalar curve evaluated continuously between its keyframes."""

    def __init__(self, keys: Optional[Sequence[Keyframe]] = None):
        self.keys: List[Keyframe] = sorted(keys or [], key=lambda k: k.time)
        self._times = np.array([k.time for k in self.keys], dtype=np.float64)

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "AnimationCurve":
        """
        Create a curve from (time, value[, in_tangent, out_tangent]) tuples.
        """
        return cls([Keyframe(*point) for point in points])

    @classmethod
    def constant(cls, value: float) -> "AnimationCurve":
        return cls([Keyframe(0.0, value)])

    @property
    def num_keys(self) -> int:
        return len(self.keys)

    @property
    def duration(self) -> float:
        """Time of the last key."""
        return self.keys[-1].time if self.keys else 0.0

    def evaluate(self, time: float) -> float:
        """
        Get the interpolated value at a specific time.

        Values before the first key and after the last key are clamped.
        """
        if not self.keys:
            return 0.0
        if time <= self.keys[0].time:
            return self.keys[0].value
        if time >= self.keys[-1].time:
            return self.keys[-1].value

        index = int(np.searchsorted(self._times, time, side="right")) - 1
        k0 = self.keys[index]
        k1 = self.keys[index + 1]

        dt = k1.time - k0.time
        if dt <= 0.0:
            return k1.value

        if k0.out_tangent is not None and math.isinf(k0.out_tangent):
            return k0.value

        s = (time - k0.time) / dt
        if k0.out_tangent is None or k1.in_tangent is None:
            return (1 - s) * k0.value + s * k1.value

        # Cubic Hermite basis
        s2 = s * s
        s3 = s2 * s
        h00 = 2 * s3 - 3 * s2 + 1
        h10 = s3 - 2 * s2 + s
        h01 = -2 * s3 + 3 * s2
        h11 = s3 - s2
        return (
            h00 * k0.value
            + h10 * dt * k0.out_tangent
            + h01 * k1.value
            + h11 * dt * k1.in_tangent
        )


@dataclass
class TransformCurves:
    """Local position (x, y, z) and rotation (x, y, z, w) curves of one transform."""
    position: Optional[Tuple[AnimationCurve, AnimationCurve, AnimationCurve]] = None
    rotation: Optional[Tuple[AnimationCurve, AnimationCurve, AnimationCurve, AnimationCurve]] = None

    def evaluate_position(self, time: float) -> Optional[np.ndarray]:
        if self.position is None:
            return None
        return np.array([c.evaluate(time) for c in self.position])

    def evaluate_rotation(self, time: float) -> Optional[np.ndarray]:
        if self.rotation is None:
            return None
        # Component-wise curves do not stay on the unit sphere
        return normalize_quaternion(np.array([c.evaluate(time) for c in self.rotation]))


@dataclass
class CurveBinding:
    """A scalar curve bound to a property of the transform at ``path``."""
    path: str
    property_name: str
    curve: AnimationCurve

    @property
    def blend_shape_name(self) -> Optional[str]:
        """Blend shape name if this binding drives a blend shape weight."""
        if self.property_name.startswith(BLEND_SHAPE_PREFIX):
            return self.property_name[len(BLEND_SHAPE_PREFIX):]
        return None


@dataclass
class KeyframeClip:
    """
    A keyframed animation clip.

    Transform tracks are keyed by path relative to the avatar root
    ("Armature/Hips/Spine"). Blend shape weights use the host's native
    0-100 scale.
    """
    name: str = "untitled"
    duration: float = 0.0
    transform_tracks: Dict[str, TransformCurves] = field(default_factory=dict)
    curve_bindings: List[CurveBinding] = field(default_factory=list)

    def sample_animation(self, avatar, time: float):
        """
        Pose the avatar's transforms at ``time``.

        This mutates the avatar in place; callers must pass a working copy.
        Tracks whose path does not resolve on the avatar are skipped.
        """
        for path, curves in self.transform_tracks.items():
            transform = avatar.find(path)
            if transform is None:
                continue

            position = curves.evaluate_position(time)
            if position is not None:
                transform.local_position = position

            rotation = curves.evaluate_rotation(time)
            if rotation is not None:
                transform.local_rotation = rotation
