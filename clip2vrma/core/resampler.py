"""
Fixed-rate resampling of pose and expression curves.

Source clips may be keyed at any density; output is always sampled at
SAMPLE_RATE frames per second over the clip duration.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence

import numpy as np

from clip2vrma.core.coordinates import convert_position, convert_rotation
from clip2vrma.core.skeleton_adapter import ResolvedSkeleton
from clip2vrma.data.clip import KeyframeClip
from clip2vrma.data.expressions import ExpressionBinding, ExpressionKey
from clip2vrma.data.humanoid import ROOT_BONE, HumanBone
from clip2vrma.data.scene import Avatar, PoseSnapshot

SAMPLE_RATE = 30

# Source weights are authored as percentages
EXPRESSION_VALUE_SCALE = 100.0


def frame_count(duration: float) -> int:
    """Number of frames sampled for a clip of ``duration`` seconds."""
    # 4.1 * 30 evaluates to 122.99999999999999; round off float noise first
    return math.floor(round(duration * SAMPLE_RATE, 9)) + 1


def sample_times(duration: float) -> List[float]:
    """Sample times, 1/SAMPLE_RATE apart, never past the clip end."""
    return [min(i / SAMPLE_RATE, duration) for i in range(frame_count(duration))]


def normalize_weight(value: float) -> float:
    """Map a 0-100 source weight to the 0-1 output range."""
    return float(np.clip(value / EXPRESSION_VALUE_SCALE, 0.0, 1.0))


@dataclass
class Frame:
    """One resampled frame in interchange coordinates."""
    time: float
    root_position: np.ndarray
    rotations: Dict[HumanBone, np.ndarray] = field(default_factory=dict)
    weights: Dict[ExpressionKey, float] = field(default_factory=dict)


def convert_pose(skeleton: ResolvedSkeleton, snapshot: PoseSnapshot, time: float = 0.0) -> Frame:
    """
    Convert a world-space snapshot into root position and parent-relative rotations.
    """
    root = snapshot[None]
    frame = Frame(
        time=time,
        root_position=convert_position(snapshot[ROOT_BONE].position, root.world_to_local),
    )
    for resolved in skeleton.bones_in_order():
        parent = snapshot[resolved.effective_parent]
        frame.rotations[resolved.bone] = convert_rotation(
            parent.rotation, snapshot[resolved.bone].rotation
        )
    return frame


class Resampler:
    """
    Samples a clip on a working avatar at fixed time steps.

    Sampling mutates ``avatar``; each frame's snapshot is fully read
    before the next sample overwrites the pose.
    """

    def __init__(
        self,
        clip: KeyframeClip,
        avatar: Avatar,
        skeleton: ResolvedSkeleton,
        expressions: Sequence[ExpressionBinding] = (),
    ):
        self.clip = clip
        self.avatar = avatar
        self.skeleton = skeleton
        self.expressions = list(expressions)

    @property
    def num_frames(self) -> int:
        return frame_count(self.clip.duration)

    def frames(self) -> Iterator[Frame]:
        """Yield frames in time order."""
        for time in sample_times(self.clip.duration):
            self.clip.sample_animation(self.avatar, time)
            frame = convert_pose(self.skeleton, self.skeleton.capture(), time)
            for binding in self.expressions:
                frame.weights[binding.key] = normalize_weight(binding.curve.evaluate(time))
            yield frame
