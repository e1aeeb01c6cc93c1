"""
Host scene graph.

Provides a minimal transform hierarchy standing in for the host engine's
live scene:
- Transform: a node with local position/rotation/scale and children
- Avatar: a transform hierarchy plus its humanoid bone mapping
- PoseSnapshot: immutable world-space state captured from transforms
- working_copy: scoped duplicate of an avatar, disposed on every exit path
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Hashable, Iterator, List, Mapping, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from clip2vrma.data.expressions import ExpressionDefinition
from clip2vrma.data.humanoid import HumanBone
from clip2vrma.utils.math_utils import (
    IDENTITY_QUATERNION,
    compose_matrix,
    inverse_transform,
    normalize_quaternion,
)

logger = logging.getLogger(__name__)


class Transform:
    """
    A node in the scene hierarchy.

    Local rotation is a quaternion [x, y, z, w]. World rotation ignores
    scale, matching how host engines report it.
    """

    def __init__(
        self,
        name: str,
        local_position: Optional[np.ndarray] = None,
        local_rotation: Optional[np.ndarray] = None,
        local_scale: Optional[np.ndarray] = None,
        parent: Optional["Transform"] = None,
    ):
        self.name = name
        self.local_position = np.zeros(3) if local_position is None else np.asarray(local_position, dtype=np.float64)
        self.local_rotation = (
            IDENTITY_QUATERNION.copy() if local_rotation is None
            else normalize_quaternion(local_rotation)
        )
        self.local_scale = np.ones(3) if local_scale is None else np.asarray(local_scale, dtype=np.float64)
        self.parent: Optional[Transform] = None
        self.children: List[Transform] = []

        if parent is not None:
            parent.add_child(self)

    def add_child(self, child: "Transform") -> "Transform":
        """Attach a child transform and return it."""
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    @property
    def local_matrix(self) -> np.ndarray:
        return compose_matrix(self.local_position, self.local_rotation, self.local_scale)

    @property
    def world_matrix(self) -> np.ndarray:
        """Local-to-world matrix."""
        if self.parent is None:
            return self.local_matrix
        return self.parent.world_matrix @ self.local_matrix

    @property
    def world_to_local_matrix(self) -> np.ndarray:
        return inverse_transform(self.world_matrix)

    @property
    def world_position(self) -> np.ndarray:
        return self.world_matrix[:3, 3].copy()

    @property
    def world_rotation(self) -> np.ndarray:
        """World rotation quaternion [x, y, z, w]."""
        rotation = Rotation.from_quat(self.local_rotation)
        node = self.parent
        while node is not None:
            rotation = Rotation.from_quat(node.local_rotation) * rotation
            node = node.parent
        return rotation.as_quat()

    def find(self, path: str) -> Optional["Transform"]:
        """
        Find a descendant by slash-separated path relative to this transform.

        An empty path returns this transform.
        """
        node = self
        for part in (p for p in path.split("/") if p):
            node = next((c for c in node.children if c.name == part), None)
            if node is None:
                return None
        return node

    def iter_descendants(self) -> Iterator["Transform"]:
        """Depth-first iteration over this transform and all descendants."""
        yield self
        for child in self.children:
            yield from child.iter_descendants()

    def duplicate(self) -> "Transform":
        """Create a deep copy of this subtree (without the parent link)."""
        clone = Transform(
            self.name,
            local_position=self.local_position.copy(),
            local_rotation=self.local_rotation.copy(),
            local_scale=self.local_scale.copy(),
        )
        for child in self.children:
            clone.add_child(child.duplicate())
        return clone

    def __repr__(self) -> str:
        return f"Transform({self.name!r})"


class Avatar:
    """
    A humanoid avatar: transform hierarchy plus humanoid bone mapping.

    The humanoid mapping assigns canonical bones to transform paths
    relative to the root. ``expressions`` are the avatar's own expression
    definitions, in declaration order.
    """

    def __init__(
        self,
        root: Transform,
        humanoid: Optional[Mapping[HumanBone, str]] = None,
        name: Optional[str] = None,
        expressions: Optional[Sequence[ExpressionDefinition]] = None,
    ):
        self.root = root
        self.humanoid: Dict[HumanBone, str] = dict(humanoid or {})
        self.name = name or root.name
        self.expressions: List[ExpressionDefinition] = list(expressions or [])
        self.disposed = False

    def find(self, path: str) -> Optional[Transform]:
        if self.disposed:
            raise RuntimeError(f"Avatar {self.name!r} has been disposed")
        return self.root.find(path)

    def get_bone_transform(self, bone: HumanBone) -> Optional[Transform]:
        """Get the transform mapped to a humanoid bone, if present."""
        path = self.humanoid.get(bone)
        if path is None:
            return None
        return self.find(path)

    def duplicate(self) -> "Avatar":
        return Avatar(self.root.duplicate(), self.humanoid, name=self.name, expressions=self.expressions)

    def dispose(self):
        """Release the hierarchy. The avatar is unusable afterwards."""
        for node in list(self.root.iter_descendants()):
            node.children = []
            node.parent = None
        self.disposed = True


@contextmanager
def working_copy(avatar: Avatar) -> Iterator[Avatar]:
    """
    Yield a disposable duplicate of ``avatar``.

    The duplicate is disposed when the block exits, whether it finishes,
    returns early or raises.
    """
    copy = avatar.duplicate()
    logger.debug(f"Created working copy of avatar '{avatar.name}'")
    try:
        yield copy
    finally:
        copy.dispose()
        logger.debug(f"Disposed working copy of avatar '{avatar.name}'")


@dataclass(frozen=True)
class TransformState:
    """World-space state of one transform at one instant."""
    position: np.ndarray
    rotation: np.ndarray
    world_to_local: np.ndarray


class PoseSnapshot:
    """
    Immutable world-space pose captured from a set of transforms.

    Arrays are copied and made read-only, so later mutation of the scene
    cannot leak into a snapshot.
    """

    def __init__(self, states: Mapping[Hashable, TransformState]):
        self._states = dict(states)

    @classmethod
    def capture(cls, transforms: Mapping[Hashable, Transform]) -> "PoseSnapshot":
        states = {}
        for key, transform in transforms.items():
            world = transform.world_matrix
            position = world[:3, 3].copy()
            rotation = transform.world_rotation
            world_to_local = inverse_transform(world)
            for array in (position, rotation, world_to_local):
                array.setflags(write=False)
            states[key] = TransformState(position, rotation, world_to_local)
        return cls(states)

    def __getitem__(self, key: Hashable) -> TransformState:
        return self._states[key]

    def __contains__(self, key: Hashable) -> bool:
        return key in self._states

    def __len__(self) -> int:
        return len(self._states)
