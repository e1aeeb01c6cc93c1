"""
VRM Animation export pipeline.

Resolves the skeleton and expressions, resamples the clip on a working
copy of the avatar, and assembles the glTF document, binary buffer and
VRMC_vrm_animation extension into GLB bytes.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from clip2vrma.config.settings import ExporterConfig
from clip2vrma.core.coordinates import convert_position
from clip2vrma.core.expression_resolver import resolve_bindings
from clip2vrma.core.extension import EXTENSION_NAME, ExtensionAssembler, order_expressions
from clip2vrma.core.resampler import Resampler, convert_pose
from clip2vrma.core.skeleton_adapter import (
    HumanoidSkeletonProvider,
    ResolvedSkeleton,
    resolve_skeleton,
)
from clip2vrma.core.tracks import AnimationTracks, TrackBuilder
from clip2vrma.data.clip import KeyframeClip
from clip2vrma.data.exporters.glb_container import GlbContainer
from clip2vrma.data.expressions import ExpressionKey
from clip2vrma.data.humanoid import HUMAN_BONE_PARENTS, ROOT_BONE, HumanBone
from clip2vrma.data.scene import Avatar, working_copy

logger = logging.getLogger(__name__)

INTERPOLATION = "LINEAR"


@dataclass
class ExportResult:
    """glTF document plus the container holding its binary data."""
    document: Dict[str, Any]
    container: GlbContainer
    tracks: AnimationTracks
    bone_nodes: Dict[HumanBone, int] = field(default_factory=dict)
    expression_nodes: Dict[ExpressionKey, int] = field(default_factory=dict)

    def to_glb(self) -> bytes:
        return self.container.to_glb(self.document)


class _AnimationBuilder:
    """Collects samplers and channels of one glTF animation."""

    def __init__(self, name: str):
        self.name = name
        self.samplers: List[Dict[str, Any]] = []
        self.channels: List[Dict[str, Any]] = []

    def add(self, input_accessor: int, output_accessor: int, node: int, path: str):
        sampler = len(self.samplers)
        self.samplers.append({
            "input": input_accessor,
            "output": output_accessor,
            "interpolation": INTERPOLATION,
        })
        self.channels.append({
            "sampler": sampler,
            "target": {"node": node, "path": path},
        })

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "channels": self.channels, "samplers": self.samplers}


def _vector(values) -> List[float]:
    return [float(v) for v in values]


class VrmAnimationExporter:
    """
    Exports a humanoid clip as a VRM Animation.

    The caller's avatar is never posed; all sampling happens on a
    disposable working copy.
    """

    def __init__(
        self,
        config: Optional[ExporterConfig] = None,
        provider: Optional[HumanoidSkeletonProvider] = None,
        parents: Mapping[HumanBone, Optional[HumanBone]] = HUMAN_BONE_PARENTS,
    ):
        self.config = config or ExporterConfig()
        self.provider = provider or HumanoidSkeletonProvider()
        self.parents = parents
        self.assembler = ExtensionAssembler(
            node_prefix=self.config.expression_node_prefix,
            spec_version=self.config.spec_version,
        )

    def _build_bone_nodes(
        self,
        skeleton: ResolvedSkeleton,
        nodes: List[Dict[str, Any]],
    ) -> Dict[HumanBone, int]:
        """Append the root node and one rest-pose node per present bone."""
        snapshot = skeleton.capture()
        rest = convert_pose(skeleton, snapshot)

        nodes.append({"name": skeleton.root_transform.name})
        bone_nodes: Dict[HumanBone, int] = {}
        children: Dict[int, List[int]] = {}

        # Canonical order lists every parent before its children
        for resolved in skeleton.bones_in_order():
            index = len(nodes)
            bone_nodes[resolved.bone] = index
            parent = resolved.effective_parent
            translation = convert_position(
                snapshot[resolved.bone].position, snapshot[parent].world_to_local
            )
            nodes.append({
                "name": resolved.transform.name,
                "translation": _vector(translation),
                "rotation": _vector(rest.rotations[resolved.bone]),
            })
            parent_index = 0 if parent is None else bone_nodes[parent]
            children.setdefault(parent_index, []).append(index)

        for parent_index, child_indices in children.items():
            nodes[parent_index]["children"] = child_indices
        return bone_nodes

    def build(
        self,
        avatar: Avatar,
        clip: KeyframeClip,
        expression_map: Optional[Mapping[str, ExpressionKey]] = None,
        avatar_root: Optional[str] = None,
    ) -> ExportResult:
        """
        Run the pipeline and return the assembled document.

        Args:
            avatar: Source avatar (left untouched)
            clip: Clip to export
            expression_map: Optional blend shape channel -> expression map;
                when given, unmapped channels are not exported
            avatar_root: Optional path of the transform root positions are
                relative to; defaults to the avatar root

        Raises:
            MissingRootBone: If the avatar has no hips bone
        """
        expressions = order_expressions(resolve_bindings(clip.curve_bindings, expression_map))
        nodes: List[Dict[str, Any]] = []

        with working_copy(avatar) as work:
            root = None
            if avatar_root is not None:
                root = work.find(avatar_root)
                if root is None:
                    raise ValueError(f"Avatar root '{avatar_root}' not found on '{avatar.name}'")

            skeleton = resolve_skeleton(self.provider.provide(work, root), self.parents)
            bone_nodes = self._build_bone_nodes(skeleton, nodes)

            resampler = Resampler(clip, work, skeleton, expressions)
            builder = TrackBuilder(skeleton, expressions)
            logger.debug(f"Sampling {resampler.num_frames} frames of '{clip.name}'")
            for frame in resampler.frames():
                builder.add_frame(frame)
            tracks = builder.build()

        allocation = self.assembler.allocate_expression_nodes(expressions, nodes)

        container = GlbContainer()
        animation = _AnimationBuilder(self.config.animation_name)

        # Bone channels share one time accessor
        time_accessor = container.append_sequence(tracks.times)
        animation.add(
            time_accessor,
            container.append_sequence(tracks.root_positions),
            bone_nodes[ROOT_BONE],
            "translation",
        )
        for bone, rotations in tracks.rotations.items():
            animation.add(
                time_accessor,
                container.append_sequence(rotations),
                bone_nodes[bone],
                "rotation",
            )

        # Expression channels carry their own time accessor
        for track, node in zip(tracks.expressions, allocation.node_indices):
            input_accessor = container.append_sequence(track.times)
            output_accessor = container.append_sequence(track.values)
            animation.add(input_accessor, output_accessor, node, "translation")

        document = {
            "asset": {"version": "2.0", "generator": self.config.generator},
            "extensionsUsed": [EXTENSION_NAME],
            "scene": 0,
            "scenes": [{"nodes": [0] + allocation.node_indices}],
            "nodes": nodes,
            "animations": [animation.to_dict()],
            "extensions": {EXTENSION_NAME: self.assembler.build(bone_nodes, allocation)},
        }

        logger.info(
            f"Exported '{clip.name}': {tracks.num_frames} frames, "
            f"{len(bone_nodes)} bones, {len(expressions)} expressions"
        )

        return ExportResult(
            document=document,
            container=container,
            tracks=tracks,
            bone_nodes=bone_nodes,
            expression_nodes={
                b.key: node for b, node in zip(allocation.bindings, allocation.node_indices)
            },
        )

    def export(
        self,
        avatar: Avatar,
        clip: KeyframeClip,
        expression_map: Optional[Mapping[str, ExpressionKey]] = None,
        avatar_root: Optional[str] = None,
    ) -> bytes:
        """Export to GLB bytes. See build() for arguments."""
        return self.build(avatar, clip, expression_map, avatar_root).to_glb()


def write_artifact(path: Path, data: bytes) -> Path:
    """
    Write bytes to ``path`` atomically.

    The data goes to a temporary file in the destination directory which
    then replaces ``path``; a failed write leaves no partial file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def export_to_file(
    path: Path,
    avatar: Avatar,
    clip: KeyframeClip,
    expression_map: Optional[Mapping[str, ExpressionKey]] = None,
    config: Optional[ExporterConfig] = None,
    avatar_root: Optional[str] = None,
) -> ExportResult:
    """Export and write the artifact; nothing is written if export fails."""
    result = VrmAnimationExporter(config).build(avatar, clip, expression_map, avatar_root)
    write_artifact(path, result.to_glb())
    logger.info(f"✓ Saved VRM animation to {path}")
    return result
