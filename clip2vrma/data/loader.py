"""
Scene and clip document loader.

Reads a YAML (or JSON) document describing an avatar hierarchy, its
humanoid bone mapping and a keyframed clip:

    avatar:
      name: Sample
      root:
        name: Armature
        children:
          - name: Hips
            position: [0, 1, 0]
            rotation: [0, 0, 0, 1]      # x, y, z, w
      humanoid:
        hips: Hips                      # path relative to the root
      expressions:                      # optional; preset or custom name
        blink:
          - {path: Face, blend_shape: Fcl_EYE_Close}
    clip:
      name: wave
      duration: 2.0                     # defaults to the last key time
      tracks:
        Hips:
          rotation: {y: [[0, 0], [2, 0.38]], w: [[0, 1], [2, 0.92]]}
      blend_shapes:
        Face:
          Blink: [[0, 0], [0.5, 100], [1, 0]]

Keys are [time, value] or [time, value, in_tangent, out_tangent].
Missing position/rotation components hold the transform's rest value.
Malformed documents raise ValueError.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from clip2vrma.data.clip import (
    BLEND_SHAPE_PREFIX,
    AnimationCurve,
    CurveBinding,
    Keyframe,
    KeyframeClip,
    TransformCurves,
)
from clip2vrma.data.expressions import ExpressionDefinition, ExpressionKey, MorphBinding
from clip2vrma.data.humanoid import HumanBone
from clip2vrma.data.scene import Avatar, Transform


@dataclass
class SceneDocument:
    """Result of loading a document."""
    avatar: Avatar
    clip: KeyframeClip
    avatar_root: Optional[str] = None


def _mapping(value: Any, what: str, required: bool = False) -> Dict[str, Any]:
    if value is None and not required:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _parse_transform(data: Dict[str, Any]) -> Transform:
    data = _mapping(data, "Transform entry", required=True)
    if "name" not in data:
        raise ValueError("Transform entry without a name")
    transform = Transform(
        str(data["name"]),
        local_position=data.get("position"),
        local_rotation=data.get("rotation"),
        local_scale=data.get("scale"),
    )
    for child in data.get("children") or []:
        transform.add_child(_parse_transform(child))
    return transform


def _parse_keyframe(entry: Any) -> Keyframe:
    if isinstance(entry, dict):
        if "time" not in entry or "value" not in entry:
            raise ValueError(f"Keyframe needs 'time' and 'value': {entry!r}")
        return Keyframe(
            time=float(entry["time"]),
            value=float(entry["value"]),
            in_tangent=_optional_float(entry.get("in_tangent")),
            out_tangent=_optional_float(entry.get("out_tangent")),
        )
    if isinstance(entry, (list, tuple)) and len(entry) in (2, 4):
        return Keyframe(*(float(v) for v in entry))
    raise ValueError(f"Invalid keyframe: {entry!r}")


def parse_curve(entries: List[Any]) -> AnimationCurve:
    """Parse a list of keyframe entries into a curve."""
    if not isinstance(entries, list) or not entries:
        raise ValueError(f"Curve must be a non-empty list of keys: {entries!r}")
    return AnimationCurve([_parse_keyframe(e) for e in entries])


def _component_curves(
    data: Any,
    components: str,
    rest: Any,
) -> Tuple[AnimationCurve, ...]:
    data = _mapping(data, "Curve components", required=True)
    unknown = set(data) - set(components)
    if unknown:
        raise ValueError(f"Unknown curve components: {sorted(unknown)}")
    return tuple(
        parse_curve(data[c]) if c in data else AnimationCurve.constant(float(rest[i]))
        for i, c in enumerate(components)
    )


def _parse_expressions(data: Any) -> List[ExpressionDefinition]:
    definitions = []
    for name, bindings in _mapping(data, "Avatar expressions").items():
        if not isinstance(bindings, list):
            raise ValueError(f"Expression '{name}' bindings must be a list")
        definition = ExpressionDefinition(key=ExpressionKey.parse(str(name)))
        for entry in bindings:
            entry = _mapping(entry, f"Expression '{name}' binding", required=True)
            if "path" not in entry or "blend_shape" not in entry:
                raise ValueError(f"Expression '{name}' binding needs 'path' and 'blend_shape'")
            definition.bindings.append(
                MorphBinding(path=str(entry["path"]), blend_shape=str(entry["blend_shape"]))
            )
        definitions.append(definition)
    return definitions


def _parse_avatar(data: Dict[str, Any]) -> Avatar:
    if "root" not in data:
        raise ValueError("Avatar has no root transform")
    root = _parse_transform(data["root"])
    humanoid = {
        HumanBone.from_name(str(bone)): str(path)
        for bone, path in _mapping(data.get("humanoid"), "Humanoid mapping").items()
    }
    return Avatar(
        root,
        humanoid,
        name=data.get("name"),
        expressions=_parse_expressions(data.get("expressions")),
    )


def _parse_clip(data: Dict[str, Any], avatar: Avatar) -> KeyframeClip:
    clip = KeyframeClip(name=str(data.get("name", "untitled")))
    end_time = 0.0

    for path, track in _mapping(data.get("tracks"), "Clip tracks").items():
        track = _mapping(track, f"Track '{path}'", required=True)
        transform = avatar.find(path)
        if transform is None:
            raise ValueError(f"Track path '{path}' not found in avatar")
        curves = TransformCurves()
        if "position" in track:
            curves.position = _component_curves(track["position"], "xyz", transform.local_position)
        if "rotation" in track:
            curves.rotation = _component_curves(track["rotation"], "xyzw", transform.local_rotation)
        clip.transform_tracks[path] = curves
        for group in (curves.position or ()) + (curves.rotation or ()):
            end_time = max(end_time, group.duration)

    for path, shapes in _mapping(data.get("blend_shapes"), "Clip blend shapes").items():
        for shape, entries in _mapping(shapes, f"Blend shapes of '{path}'", required=True).items():
            curve = parse_curve(entries)
            clip.curve_bindings.append(
                CurveBinding(path=path, property_name=f"{BLEND_SHAPE_PREFIX}{shape}", curve=curve)
            )
            end_time = max(end_time, curve.duration)

    duration = data.get("duration")
    clip.duration = float(duration) if duration is not None else end_time
    if clip.duration < 0:
        raise ValueError(f"Clip duration must not be negative: {clip.duration}")
    return clip


def load_document(path: Path) -> SceneDocument:
    """
    Load an avatar and clip from a YAML/JSON document.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict) or "avatar" not in data or "clip" not in data:
        raise ValueError(f"Document must contain 'avatar' and 'clip' sections: {path}")

    try:
        avatar_data = _mapping(data["avatar"], "Avatar section", required=True)
        avatar = _parse_avatar(avatar_data)
        clip = _parse_clip(_mapping(data["clip"], "Clip section", required=True), avatar)
    except (TypeError, KeyError, IndexError) as e:
        raise ValueError(f"Malformed document {path}: {e}") from e

    return SceneDocument(avatar=avatar, clip=clip, avatar_root=avatar_data.get("root_path"))
