"""
Core export pipeline.

Contains the main processing components:
- Skeleton resolution
- Expression resolution
- Fixed-rate resampling and coordinate conversion
- Track building and extension assembly
"""

from clip2vrma.core.errors import MissingRootBone, VrmaExportError
from clip2vrma.core.exporter import ExportResult, VrmAnimationExporter, export_to_file, write_artifact
from clip2vrma.core.expression_resolver import build_expression_map
from clip2vrma.core.resampler import SAMPLE_RATE, frame_count, sample_times

__all__ = [
    "MissingRootBone",
    "VrmaExportError",
    "ExportResult",
    "VrmAnimationExporter",
    "export_to_file",
    "write_artifact",
    "build_expression_map",
    "SAMPLE_RATE",
    "frame_count",
    "sample_times",
]
