"""
Expression channel resolution.

Maps source blend shape channel names to canonical expression keys,
either through an explicit map (hand written, or built from the avatar's
own expression definitions) or by matching preset names.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from clip2vrma.data.clip import CurveBinding
from clip2vrma.data.expressions import ExpressionBinding, ExpressionKey, ExpressionPreset
from clip2vrma.data.scene import Avatar

logger = logging.getLogger(__name__)


def resolve_expression(
    channel: str,
    expression_map: Optional[Mapping[str, ExpressionKey]] = None,
) -> Optional[ExpressionKey]:
    """
    Resolve one channel name.

    Args:
        channel: Source channel name (blend shape name)
        expression_map: Optional explicit channel -> key map

    Returns:
        The expression key, or None if the channel is not exported
    """
    if expression_map is not None:
        # With an explicit map only mapped channels are exported
        return expression_map.get(channel)

    preset = ExpressionPreset.match(channel)
    if preset is not None:
        return ExpressionKey.from_preset(preset)
    return ExpressionKey.custom(channel)


def resolve_bindings(
    curve_bindings: Sequence[CurveBinding],
    expression_map: Optional[Mapping[str, ExpressionKey]] = None,
) -> List[ExpressionBinding]:
    """
    Resolve every blend shape binding of a clip.

    Non blend shape bindings and unresolved channels are skipped.

    Returns:
        Expression bindings in source binding order
    """
    resolved = []
    seen = set()
    for binding in curve_bindings:
        channel = binding.blend_shape_name
        if channel is None:
            continue
        if channel in seen:
            logger.debug(f"Channel '{channel}' bound more than once, keeping first binding")
            continue
        seen.add(channel)

        key = resolve_expression(channel, expression_map)
        if key is None:
            logger.debug(f"Channel '{channel}' not in expression map, skipped")
            continue

        logger.debug(f"Channel '{channel}' -> {key}")
        resolved.append(ExpressionBinding(source_channel=channel, key=key, curve=binding.curve))

    return resolved


def build_expression_map(avatar: Avatar) -> Dict[str, ExpressionKey]:
    """
    Build a channel -> expression map from the avatar's expression definitions.

    Each expression is keyed by the blend shape of its first binding.
    Expressions without bindings, or whose first binding points at a path
    missing from the avatar, are skipped. When two expressions start with
    the same blend shape, the one declared first wins.

    Args:
        avatar: Avatar carrying expression definitions

    Returns:
        Map suitable for resolve_bindings
    """
    expression_map: Dict[str, ExpressionKey] = {}
    for definition in avatar.expressions:
        if not definition.bindings:
            continue

        first = definition.bindings[0]
        if avatar.find(first.path) is None:
            logger.debug(f"Expression '{definition.key}' binds missing path '{first.path}', skipped")
            continue

        if first.blend_shape in expression_map:
            logger.debug(
                f"Blend shape '{first.blend_shape}' already mapped to "
                f"{expression_map[first.blend_shape]}, ignoring {definition.key}"
            )
            continue
        expression_map[first.blend_shape] = definition.key

    logger.info(f"Built expression map with {len(expression_map)} entries")
    return expression_map
