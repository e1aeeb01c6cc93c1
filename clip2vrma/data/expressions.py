"""
Expression (facial blend shape) definitions.

Provides:
- ExpressionPreset: the fixed VRM 1.0 preset vocabulary
- ExpressionKey: preset-or-custom expression identifier
- ExpressionBinding: a source curve channel bound to an expression
- MorphBinding / ExpressionDefinition: expressions declared on an avatar
- PresetSlots: fixed slot table with one entry per preset
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from clip2vrma.data.clip import AnimationCurve


CUSTOM_PREFIX = "custom:"


class ExpressionPreset(Enum):
    """Preset expressions defined by VRM 1.0."""

    # Emotions
    HAPPY = "happy"
    ANGRY = "angry"
    SAD = "sad"
    RELAXED = "relaxed"
    SURPRISED = "surprised"

    # Lip sync
    AA = "aa"
    IH = "ih"
    OU = "ou"
    EE = "ee"
    OH = "oh"

    # Blink
    BLINK = "blink"
    BLINK_LEFT = "blinkLeft"
    BLINK_RIGHT = "blinkRight"

    # Gaze
    LOOK_UP = "lookUp"
    LOOK_DOWN = "lookDown"
    LOOK_LEFT = "lookLeft"
    LOOK_RIGHT = "lookRight"

    NEUTRAL = "neutral"

    @classmethod
    def match(cls, name: str) -> Optional["ExpressionPreset"]:
        """Find the preset whose name matches case-insensitively."""
        folded = name.lower()
        for preset in cls:
            if preset.value.lower() == folded:
                return preset
        return None


@dataclass(frozen=True, eq=False)
class ExpressionKey:
    """
    Identifies an exported expression.

    Exactly one of ``preset`` or ``custom_name`` is set. Keys compare and
    sort by their display name using ordinal (byte-wise) comparison.
    """

    preset: Optional[ExpressionPreset] = None
    custom_name: Optional[str] = None

    def __post_init__(self):
        if (self.preset is None) == (self.custom_name is None):
            raise ValueError("ExpressionKey needs exactly one of preset or custom_name")

    @classmethod
    def from_preset(cls, preset: ExpressionPreset) -> "ExpressionKey":
        return cls(preset=preset)

    @classmethod
    def custom(cls, name: str) -> "ExpressionKey":
        return cls(custom_name=name)

    @classmethod
    def parse(cls, text: str) -> "ExpressionKey":
        """
        Parse an expression key from text (used by map files).

        "custom:<name>" always yields a custom key; otherwise the text is
        matched case-insensitively against the preset names and falls back
        to a custom key.
        """
        if text.startswith(CUSTOM_PREFIX):
            return cls.custom(text[len(CUSTOM_PREFIX):])
        preset = ExpressionPreset.match(text)
        if preset is not None:
            return cls.from_preset(preset)
        return cls.custom(text)

    @property
    def is_preset(self) -> bool:
        return self.preset is not None

    @property
    def name(self) -> str:
        """Display name: preset name or custom name."""
        if self.preset is not None:
            return self.preset.value
        return self.custom_name

    @property
    def sort_key(self) -> bytes:
        return self.name.encode("utf-8")

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExpressionKey):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __lt__(self, other: "ExpressionKey") -> bool:
        if not isinstance(other, ExpressionKey):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __str__(self) -> str:
        if self.preset is not None:
            return self.name
        return f"{CUSTOM_PREFIX}{self.name}"


@dataclass
class ExpressionBinding:
    """A source curve channel resolved to an expression key."""

    source_channel: str
    key: ExpressionKey
    curve: AnimationCurve

    @property
    def sort_key(self) -> Tuple[bytes, bytes]:
        return self.key.sort_key, self.source_channel.encode("utf-8")


@dataclass
class MorphBinding:
    """A blend shape on the renderer at ``path``."""

    path: str
    blend_shape: str


@dataclass
class ExpressionDefinition:
    """
    An expression declared on an avatar.

    Bindings list the blend shapes the expression drives; the first one
    names the source channel the expression is exported from.
    """

    key: ExpressionKey
    bindings: List[MorphBinding] = field(default_factory=list)


class PresetSlots:
    """
    Fixed-size table with one slot per expression preset.

    Slots are addressed directly by ExpressionPreset and iterate in preset
    declaration order.
    """

    def __init__(self):
        self._index = {preset: i for i, preset in enumerate(ExpressionPreset)}
        self._slots: List[Optional[int]] = [None] * len(self._index)

    def __setitem__(self, preset: ExpressionPreset, node_index: int):
        self._slots[self._index[preset]] = node_index

    def __getitem__(self, preset: ExpressionPreset) -> Optional[int]:
        return self._slots[self._index[preset]]

    def __contains__(self, preset: ExpressionPreset) -> bool:
        return self[preset] is not None

    def items(self) -> Iterator[Tuple[ExpressionPreset, int]]:
        """Iterate populated slots."""
        for preset, node_index in zip(ExpressionPreset, self._slots):
            if node_index is not None:
                yield preset, node_index

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {preset.value: {"node": node_index} for preset, node_index in self.items()}
