"""
Skeleton resolution.

Turns the humanoid bones present on an avatar into the canonical bone
set, resolving each bone's effective parent: the nearest canonical
ancestor that is actually present, or the root transform.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional

from clip2vrma.core.errors import MissingRootBone
from clip2vrma.data.humanoid import HUMAN_BONE_PARENTS, ROOT_BONE, HumanBone, iter_ancestors
from clip2vrma.data.scene import Avatar, PoseSnapshot, Transform

logger = logging.getLogger(__name__)


@dataclass
class ProvidedSkeleton:
    """Bones found on the host avatar and the designated root transform."""
    bones: Dict[HumanBone, Transform]
    root_transform: Transform
    avatar_name: str = "avatar"


class HumanoidSkeletonProvider:
    """Enumerates the humanoid bones mapped on an avatar."""

    def provide(self, avatar: Avatar, avatar_root: Optional[Transform] = None) -> ProvidedSkeleton:
        """
        Collect present bones.

        Args:
            avatar: Avatar to inspect
            avatar_root: Transform positions are expressed relative to;
                defaults to the avatar's own root

        Returns:
            ProvidedSkeleton with every bone whose transform was found
        """
        bones = {}
        for bone in HumanBone:
            transform = avatar.get_bone_transform(bone)
            if transform is not None:
                bones[bone] = transform
            elif bone in avatar.humanoid:
                logger.warning(f"Bone {bone.value} maps to missing path '{avatar.humanoid[bone]}'")

        root = avatar_root if avatar_root is not None else avatar.root
        return ProvidedSkeleton(bones=bones, root_transform=root, avatar_name=avatar.name)


@dataclass(frozen=True)
class ResolvedBone:
    """
    A present bone with its effective parent.

    ``effective_parent`` is None when the bone hangs off the root transform.
    """
    bone: HumanBone
    transform: Transform
    effective_parent: Optional[HumanBone]


class ResolvedSkeleton:
    """Canonical bone set with resolved ancestry."""

    def __init__(self, bones: Mapping[HumanBone, ResolvedBone], root_transform: Transform):
        self._bones = dict(bones)
        self.root_transform = root_transform

    def __getitem__(self, bone: HumanBone) -> ResolvedBone:
        return self._bones[bone]

    def __contains__(self, bone: HumanBone) -> bool:
        return bone in self._bones

    def __len__(self) -> int:
        return len(self._bones)

    def bones_in_order(self) -> Iterator[ResolvedBone]:
        """Present bones in canonical enumeration order."""
        for bone in HumanBone:
            resolved = self._bones.get(bone)
            if resolved is not None:
                yield resolved

    def parent_transform(self, bone: HumanBone) -> Transform:
        parent = self._bones[bone].effective_parent
        if parent is None:
            return self.root_transform
        return self._bones[parent].transform

    def capture(self) -> PoseSnapshot:
        """
        Snapshot the world pose of every bone and of the root transform.

        The root transform is stored under the key None.
        """
        transforms = {bone: resolved.transform for bone, resolved in self._bones.items()}
        transforms[None] = self.root_transform
        return PoseSnapshot.capture(transforms)


def find_effective_parent(
    bone: HumanBone,
    present: Mapping[HumanBone, object],
    parents: Mapping[HumanBone, Optional[HumanBone]] = HUMAN_BONE_PARENTS,
) -> Optional[HumanBone]:
    """
    Walk the canonical hierarchy upward to the nearest present ancestor.

    Returns None if no ancestor is present (the bone attaches to the root
    transform). The walk never continues past the root bone.
    """
    if bone is ROOT_BONE:
        return None
    for ancestor in iter_ancestors(bone, parents):
        if ancestor in present:
            return ancestor
        if ancestor is ROOT_BONE:
            break
    return None


def resolve_skeleton(
    provided: ProvidedSkeleton,
    parents: Mapping[HumanBone, Optional[HumanBone]] = HUMAN_BONE_PARENTS,
) -> ResolvedSkeleton:
    """
    Resolve effective parents for every present bone.

    Args:
        provided: Provider result
        parents: Canonical bone -> parent table

    Returns:
        ResolvedSkeleton

    Raises:
        MissingRootBone: If the hips bone is not present
    """
    if ROOT_BONE not in provided.bones:
        raise MissingRootBone(provided.avatar_name)

    resolved = {}
    for bone, transform in provided.bones.items():
        parent = find_effective_parent(bone, provided.bones, parents)
        resolved[bone] = ResolvedBone(bone=bone, transform=transform, effective_parent=parent)

    flattened = [
        r.bone.value for r in resolved.values()
        if r.effective_parent is not None and parents.get(r.bone) is not r.effective_parent
    ]
    if flattened:
        logger.debug(f"Bones attached past missing ancestors: {', '.join(sorted(flattened))}")

    return ResolvedSkeleton(resolved, provided.root_transform)
