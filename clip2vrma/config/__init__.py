"""Configuration module for clip2vrma."""

from clip2vrma.config.settings import (
    ExportConfig,
    ExporterConfig,
    LoggingConfig,
    OutputConfig,
    load_expression_map,
)

__all__ = [
    "ExportConfig",
    "ExporterConfig",
    "LoggingConfig",
    "OutputConfig",
    "load_expression_map",
]
