"""
Container writers for exported animation data.

Supports:
- GLB (binary glTF 2.0)
"""

from clip2vrma.data.exporters.glb_container import GlbContainer, read_accessor, read_glb

__all__ = [
    "GlbContainer",
    "read_accessor",
    "read_glb",
]
