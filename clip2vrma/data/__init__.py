"""
Data structures for humanoid animation export.

Provides:
- Humanoid bone vocabulary and canonical hierarchy
- Expression presets and keys
- Host scene graph and pose snapshots
- Keyframed clips and curve evaluation
"""

from clip2vrma.data.humanoid import HUMAN_BONE_PARENTS, ROOT_BONE, HumanBone
from clip2vrma.data.expressions import (
    ExpressionBinding,
    ExpressionDefinition,
    ExpressionKey,
    ExpressionPreset,
    MorphBinding,
    PresetSlots,
)
from clip2vrma.data.clip import (
    AnimationCurve,
    CurveBinding,
    Keyframe,
    KeyframeClip,
    TransformCurves,
)
from clip2vrma.data.scene import Avatar, PoseSnapshot, Transform, working_copy

__all__ = [
    "HUMAN_BONE_PARENTS",
    "ROOT_BONE",
    "HumanBone",
    "ExpressionBinding",
    "ExpressionKey",
    "ExpressionPreset",
    "ExpressionDefinition",
    "MorphBinding",
    "PresetSlots",
    "AnimationCurve",
    "CurveBinding",
    "Keyframe",
    "KeyframeClip",
    "TransformCurves",
    "Avatar",
    "PoseSnapshot",
    "Transform",
    "working_copy",
]
