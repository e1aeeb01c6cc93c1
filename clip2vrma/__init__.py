"""
clip2vrma - Humanoid animation clip to VRM Animation exporter

Converts a keyframed humanoid animation (skeleton rotations, root motion and
facial blend shapes) into a VRM Animation (.vrma) file:

- Canonical VRM 1.0 humanoid skeleton resolution
- Fixed 30 FPS resampling independent of source key density
- Host to glTF coordinate conversion
- Preset and custom expression export
- Byte-reproducible GLB output

License: MIT
"""

__version__ = "1.0.0"
__author__ = "clip2vrma Contributors"
__license__ = "MIT"

from clip2vrma.core.errors import MissingRootBone, VrmaExportError
from clip2vrma.core.exporter import VrmAnimationExporter, export_to_file
from clip2vrma.data.expressions import ExpressionKey, ExpressionPreset
from clip2vrma.data.humanoid import HumanBone

__all__ = [
    "VrmAnimationExporter",
    "export_to_file",
    "MissingRootBone",
    "VrmaExportError",
    "ExpressionKey",
    "ExpressionPreset",
    "HumanBone",
]
