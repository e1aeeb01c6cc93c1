"""
VRMC_vrm_animation extension assembly.

Orders expressions, allocates their placeholder nodes and builds the
extension block referencing humanoid and expression nodes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from clip2vrma.data.expressions import ExpressionBinding, PresetSlots
from clip2vrma.data.humanoid import HumanBone

logger = logging.getLogger(__name__)

EXTENSION_NAME = "VRMC_vrm_animation"
SPEC_VERSION = "1.0"


def order_expressions(bindings: Sequence[ExpressionBinding]) -> List[ExpressionBinding]:
    """
    Sort expressions by key name (ordinal bytes) and drop duplicate keys.

    Ties are broken by source channel name, so the result does not depend
    on the order of ``bindings``. For a duplicated key the first binding
    in sorted order is kept.
    """
    ordered = []
    for binding in sorted(bindings, key=lambda b: b.sort_key):
        if ordered and ordered[-1].key == binding.key:
            logger.warning(
                f"Expression '{binding.key.name}' already bound to channel "
                f"'{ordered[-1].source_channel}', dropping channel '{binding.source_channel}'"
            )
            continue
        ordered.append(binding)
    return ordered


@dataclass
class ExpressionNodes:
    """Placeholder node allocation for ordered expressions."""
    bindings: List[ExpressionBinding]
    node_indices: List[int]
    preset: PresetSlots = field(default_factory=PresetSlots)
    custom: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        expressions: Dict[str, Any] = {"preset": self.preset.to_dict()}
        if self.custom:
            expressions["custom"] = {name: {"node": index} for name, index in self.custom.items()}
        return expressions


class ExtensionAssembler:
    """
    Allocates expression placeholder nodes and builds the extension.

    Args:
        node_prefix: Name prefix of placeholder nodes
        spec_version: Value of the extension's specVersion
    """

    def __init__(self, node_prefix: str = "__expression_", spec_version: str = SPEC_VERSION):
        self.node_prefix = node_prefix
        self.spec_version = spec_version

    def allocate_expression_nodes(
        self,
        bindings: Sequence[ExpressionBinding],
        nodes: List[Dict[str, Any]],
    ) -> ExpressionNodes:
        """
        Append one placeholder node per expression to ``nodes``.

        ``bindings`` must already be ordered with order_expressions.
        """
        allocation = ExpressionNodes(bindings=list(bindings), node_indices=[])
        for binding in bindings:
            index = len(nodes)
            nodes.append({"name": f"{self.node_prefix}{binding.key.name}"})
            allocation.node_indices.append(index)

            if binding.key.is_preset:
                allocation.preset[binding.key.preset] = index
            else:
                allocation.custom[binding.key.name] = index
        return allocation

    def build(
        self,
        bone_nodes: Mapping[HumanBone, int],
        expressions: ExpressionNodes,
    ) -> Dict[str, Any]:
        """Build the extension dictionary."""
        human_bones = {
            bone.value: {"node": bone_nodes[bone]}
            for bone in HumanBone if bone in bone_nodes
        }
        return {
            "specVersion": self.spec_version,
            "humanoid": {"humanBones": human_bones},
            "expressions": expressions.to_dict(),
        }
