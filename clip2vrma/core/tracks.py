"""
Track accumulation.

Collects resampled frames into flat per-channel arrays ready to be
appended to the container.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

from clip2vrma.core.resampler import Frame
from clip2vrma.core.skeleton_adapter import ResolvedSkeleton
from clip2vrma.data.expressions import ExpressionBinding
from clip2vrma.data.humanoid import HumanBone


@dataclass
class ExpressionTrack:
    """Weight curve of one expression with its own time axis."""
    binding: ExpressionBinding
    times: np.ndarray
    weights: np.ndarray

    @property
    def values(self) -> np.ndarray:
        """Weights as (n, 3) vectors (weight, 0, 0) for a translation channel."""
        values = np.zeros((len(self.weights), 3), dtype=np.float32)
        values[:, 0] = self.weights
        return values


@dataclass
class AnimationTracks:
    """All sequences of an exported clip, aligned on one time axis."""
    times: np.ndarray
    root_positions: np.ndarray
    rotations: Dict[HumanBone, np.ndarray] = field(default_factory=dict)
    expressions: List[ExpressionTrack] = field(default_factory=list)

    @property
    def num_frames(self) -> int:
        return len(self.times)


class TrackBuilder:
    """
    Accumulates frames.

    Rotation sequences follow the skeleton's canonical bone order and
    expression sequences follow the order of ``expressions``.
    """

    def __init__(self, skeleton: ResolvedSkeleton, expressions: Sequence[ExpressionBinding] = ()):
        self.bones = [r.bone for r in skeleton.bones_in_order()]
        self.expressions = list(expressions)

        self._times: List[float] = []
        self._positions: List[np.ndarray] = []
        self._rotations: Dict[HumanBone, List[np.ndarray]] = {b: [] for b in self.bones}
        self._weights: List[List[float]] = [[] for _ in self.expressions]

    @property
    def num_frames(self) -> int:
        return len(self._times)

    def add_frame(self, frame: Frame):
        """Append one frame to every sequence."""
        if self._times and frame.time < self._times[-1]:
            raise ValueError(
                f"Frame time {frame.time} precedes previous frame {self._times[-1]}"
            )

        self._times.append(frame.time)
        self._positions.append(frame.root_position)
        for bone in self.bones:
            self._rotations[bone].append(frame.rotations[bone])
        for weights, binding in zip(self._weights, self.expressions):
            weights.append(frame.weights[binding.key])

    def build(self) -> AnimationTracks:
        """Produce float32 arrays, one entry per frame in every sequence."""
        times = np.array(self._times, dtype=np.float32)
        tracks = AnimationTracks(
            times=times,
            root_positions=np.array(self._positions, dtype=np.float32).reshape(-1, 3),
        )
        for bone in self.bones:
            tracks.rotations[bone] = np.array(self._rotations[bone], dtype=np.float32).reshape(-1, 4)
        for binding, weights in zip(self.expressions, self._weights):
            tracks.expressions.append(ExpressionTrack(
                binding=binding,
                times=times.copy(),
                weights=np.array(weights, dtype=np.float32),
            ))
        return tracks
