"""
Humanoid skeleton definitions.

Provides the canonical VRM 1.0 humanoid bone vocabulary and the static
parent hierarchy between those bones:
- Torso and head (hips, spine, chest, neck, head, eyes, jaw)
- Legs and feet
- Arms and hands
- Fingers (3 joints per finger)
"""

from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class HumanBone(Enum):
    """Canonical humanoid bones, in VRM 1.0 naming."""

    # Torso
    HIPS = "hips"
    SPINE = "spine"
    CHEST = "chest"
    UPPER_CHEST = "upperChest"
    NECK = "neck"

    # Head
    HEAD = "head"
    LEFT_EYE = "leftEye"
    RIGHT_EYE = "rightEye"
    JAW = "jaw"

    # Legs
    LEFT_UPPER_LEG = "leftUpperLeg"
    LEFT_LOWER_LEG = "leftLowerLeg"
    LEFT_FOOT = "leftFoot"
    LEFT_TOES = "leftToes"
    RIGHT_UPPER_LEG = "rightUpperLeg"
    RIGHT_LOWER_LEG = "rightLowerLeg"
    RIGHT_FOOT = "rightFoot"
    RIGHT_TOES = "rightToes"

    # Arms
    LEFT_SHOULDER = "leftShoulder"
    LEFT_UPPER_ARM = "leftUpperArm"
    LEFT_LOWER_ARM = "leftLowerArm"
    LEFT_HAND = "leftHand"
    RIGHT_SHOULDER = "rightShoulder"
    RIGHT_UPPER_ARM = "rightUpperArm"
    RIGHT_LOWER_ARM = "rightLowerArm"
    RIGHT_HAND = "rightHand"

    # Left fingers
    LEFT_THUMB_METACARPAL = "leftThumbMetacarpal"
    LEFT_THUMB_PROXIMAL = "leftThumbProximal"
    LEFT_THUMB_DISTAL = "leftThumbDistal"
    LEFT_INDEX_PROXIMAL = "leftIndexProximal"
    LEFT_INDEX_INTERMEDIATE = "leftIndexIntermediate"
    LEFT_INDEX_DISTAL = "leftIndexDistal"
    LEFT_MIDDLE_PROXIMAL = "leftMiddleProximal"
    LEFT_MIDDLE_INTERMEDIATE = "leftMiddleIntermediate"
    LEFT_MIDDLE_DISTAL = "leftMiddleDistal"
    LEFT_RING_PROXIMAL = "leftRingProximal"
    LEFT_RING_INTERMEDIATE = "leftRingIntermediate"
    LEFT_RING_DISTAL = "leftRingDistal"
    LEFT_LITTLE_PROXIMAL = "leftLittleProximal"
    LEFT_LITTLE_INTERMEDIATE = "leftLittleIntermediate"
    LEFT_LITTLE_DISTAL = "leftLittleDistal"

    # Right fingers
    RIGHT_THUMB_METACARPAL = "rightThumbMetacarpal"
    RIGHT_THUMB_PROXIMAL = "rightThumbProximal"
    RIGHT_THUMB_DISTAL = "rightThumbDistal"
    RIGHT_INDEX_PROXIMAL = "rightIndexProximal"
    RIGHT_INDEX_INTERMEDIATE = "rightIndexIntermediate"
    RIGHT_INDEX_DISTAL = "rightIndexDistal"
    RIGHT_MIDDLE_PROXIMAL = "rightMiddleProximal"
    RIGHT_MIDDLE_INTERMEDIATE = "rightMiddleIntermediate"
    RIGHT_MIDDLE_DISTAL = "rightMiddleDistal"
    RIGHT_RING_PROXIMAL = "rightRingProximal"
    RIGHT_RING_INTERMEDIATE = "rightRingIntermediate"
    RIGHT_RING_DISTAL = "rightRingDistal"
    RIGHT_LITTLE_PROXIMAL = "rightLittleProximal"
    RIGHT_LITTLE_INTERMEDIATE = "rightLittleIntermediate"
    RIGHT_LITTLE_DISTAL = "rightLittleDistal"

    @classmethod
    def from_name(cls, name: str) -> "HumanBone":
        """
        Look up a bone by its VRM name.

        Accepts the exact VRM name ("leftUpperArm") or, case-insensitively,
        either the VRM name or the enum member name ("LEFT_UPPER_ARM").

        Raises:
            ValueError: If the name is not a humanoid bone
        """
        try:
            return cls(name)
        except ValueError:
            pass

        folded = name.replace("_", "").lower()
        for bone in cls:
            if bone.value.lower() == folded:
                return bone
        raise ValueError(f"Unknown humanoid bone: {name}")


ROOT_BONE = HumanBone.HIPS


def _finger_parents(side: str) -> dict:
    """Build parent entries for the 15 finger bones of one hand."""
    hand = HumanBone(f"{side}Hand")
    parents = {}
    for finger, joints in (
        ("Thumb", ("Metacarpal", "Proximal", "Distal")),
        ("Index", ("Proximal", "Intermediate", "Distal")),
        ("Middle", ("Proximal", "Intermediate", "Distal")),
        ("Ring", ("Proximal", "Intermediate", "Distal")),
        ("Little", ("Proximal", "Intermediate", "Distal")),
    ):
        parent = hand
        for joint in joints:
            bone = HumanBone(f"{side}{finger}{joint}")
            parents[bone] = parent
            parent = bone
    return parents


def _build_parent_table() -> Mapping[HumanBone, Optional[HumanBone]]:
    """Create the canonical bone -> parent bone table."""
    B = HumanBone
    parents = {
        B.HIPS: None,
        B.SPINE: B.HIPS,
        B.CHEST: B.SPINE,
        B.UPPER_CHEST: B.CHEST,
        B.NECK: B.UPPER_CHEST,
        B.HEAD: B.NECK,
        B.LEFT_EYE: B.HEAD,
        B.RIGHT_EYE: B.HEAD,
        B.JAW: B.HEAD,

        B.LEFT_UPPER_LEG: B.HIPS,
        B.LEFT_LOWER_LEG: B.LEFT_UPPER_LEG,
        B.LEFT_FOOT: B.LEFT_LOWER_LEG,
        B.LEFT_TOES: B.LEFT_FOOT,
        B.RIGHT_UPPER_LEG: B.HIPS,
        B.RIGHT_LOWER_LEG: B.RIGHT_UPPER_LEG,
        B.RIGHT_FOOT: B.RIGHT_LOWER_LEG,
        B.RIGHT_TOES: B.RIGHT_FOOT,

        B.LEFT_SHOULDER: B.UPPER_CHEST,
        B.LEFT_UPPER_ARM: B.LEFT_SHOULDER,
        B.LEFT_LOWER_ARM: B.LEFT_UPPER_ARM,
        B.LEFT_HAND: B.LEFT_LOWER_ARM,
        B.RIGHT_SHOULDER: B.UPPER_CHEST,
        B.RIGHT_UPPER_ARM: B.RIGHT_SHOULDER,
        B.RIGHT_LOWER_ARM: B.RIGHT_UPPER_ARM,
        B.RIGHT_HAND: B.RIGHT_LOWER_ARM,
    }
    parents.update(_finger_parents("left"))
    parents.update(_finger_parents("right"))
    return MappingProxyType(parents)


# Immutable canonical hierarchy, injected into the skeleton adapter
HUMAN_BONE_PARENTS = _build_parent_table()


def iter_ancestors(
    bone: HumanBone,
    parents: Mapping[HumanBone, Optional[HumanBone]] = HUMAN_BONE_PARENTS,
) -> Iterator[HumanBone]:
    """Yield the canonical ancestors of a bone, nearest first."""
    current = parents.get(bone)
    while current is not None:
        yield current
        current = parents.get(current)
