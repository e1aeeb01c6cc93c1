"""Shared fixtures: a small humanoid avatar and clips to export."""

import math

import numpy as np
import pytest

from clip2vrma.data.clip import (
    BLEND_SHAPE_PREFIX,
    AnimationCurve,
    CurveBinding,
    KeyframeClip,
    TransformCurves,
)
from clip2vrma.data.humanoid import HumanBone
from clip2vrma.data.scene import Avatar, Transform

# Rotation of 90 degrees about +Y, [x, y, z, w]
QUARTER_TURN_Y = np.array([0.0, math.sin(math.pi / 4), 0.0, math.cos(math.pi / 4)])


def build_avatar(with_hips: bool = True) -> Avatar:
    """
    Armature
      Face
      Hips (0, 1, 0)
        Spine
          Chest
            Neck        (no upperChest on this rig)
              Head
            LeftUpperArm (no shoulder either)
        LeftUpperLeg
    """
    root = Transform("Armature")
    Transform("Face", parent=root)
    hips = Transform("Hips", local_position=[0.0, 1.0, 0.0], parent=root)
    spine = Transform("Spine", local_position=[0.0, 0.1, 0.0], parent=hips)
    chest = Transform("Chest", local_position=[0.0, 0.15, 0.0], parent=spine)
    neck = Transform("Neck", local_position=[0.0, 0.2, 0.0], parent=chest)
    Transform("Head", local_position=[0.0, 0.1, 0.0], parent=neck)
    Transform("LeftUpperArm", local_position=[0.2, 0.15, 0.0], parent=chest)
    Transform("LeftUpperLeg", local_position=[0.1, -0.05, 0.0], parent=hips)

    humanoid = {
        HumanBone.SPINE: "Hips/Spine",
        HumanBone.CHEST: "Hips/Spine/Chest",
        HumanBone.NECK: "Hips/Spine/Chest/Neck",
        HumanBone.HEAD: "Hips/Spine/Chest/Neck/Head",
        HumanBone.LEFT_UPPER_ARM: "Hips/Spine/Chest/LeftUpperArm",
        HumanBone.LEFT_UPPER_LEG: "Hips/LeftUpperLeg",
    }
    if with_hips:
        humanoid[HumanBone.HIPS] = "Hips"
    return Avatar(root, humanoid, name="TestAvatar")


def blend_shape(channel: str, points, path: str = "Face") -> CurveBinding:
    return CurveBinding(
        path=path,
        property_name=f"{BLEND_SHAPE_PREFIX}{channel}",
        curve=AnimationCurve.from_points(points),
    )


def build_clip(channels=("Blink", "Smile"), duration: float = 1.0) -> KeyframeClip:
    """Hips turned a quarter about Y and slid along X; one ramp per channel."""
    const = AnimationCurve.constant
    hips = TransformCurves(
        position=(
            AnimationCurve.from_points([(0.0, 0.0), (duration, 0.5)]),
            const(1.0),
            const(0.0),
        ),
        rotation=tuple(const(float(v)) for v in QUARTER_TURN_Y),
    )
    clip = KeyframeClip(name="wave", duration=duration, transform_tracks={"Hips": hips})
    for channel in channels:
        clip.curve_bindings.append(
            blend_shape(channel, [(0.0, 0.0), (duration / 2, 100.0), (duration, 0.0)])
        )
    return clip


@pytest.fixture
def avatar() -> Avatar:
    return build_avatar()


@pytest.fixture
def clip() -> KeyframeClip:
    return build_clip()


def assert_same_rotation(a, b, atol=1e-6):
    """Quaternions q and -q describe the same rotation."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    assert np.allclose(a, b, atol=atol) or np.allclose(a, -b, atol=atol), f"{a} != {b}"
