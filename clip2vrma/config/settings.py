"""
Configuration system for the animation exporter.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from clip2vrma import __version__
from clip2vrma.data.expressions import ExpressionKey


@dataclass
class ExporterConfig:
    """Output document settings."""

    animation_name: str = "vrm_animation"
    generator: str = f"clip2vrma {__version__}"

    # Placeholder nodes carrying expression weights are named prefix + key
    expression_node_prefix: str = "__expression_"
    spec_version: str = "1.0"


@dataclass
class OutputConfig:
    """Where and how artifacts are written."""

    output_dir: Path = field(default_factory=lambda: Path("."))
    overwrite: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class ExportConfig:
    """Main exporter configuration."""

    exporter: ExporterConfig = field(default_factory=ExporterConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Blend shape channel -> expression ("blink", "custom:Smirk", ...)
    expression_map: Optional[Dict[str, str]] = None

    @classmethod
    def from_yaml(cls, path: Path) -> "ExportConfig":
        """
        Load configuration from YAML file.

        Raises:
            ValueError: If the file is not valid YAML or has unknown keys
        """
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping: {path}")

        config = cls()

        try:
            if "exporter" in data:
                config.exporter = ExporterConfig(**data["exporter"])
            if "output" in data:
                output = dict(data["output"])
                if "output_dir" in output:
                    output["output_dir"] = Path(output["output_dir"])
                config.output = OutputConfig(**output)
            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
            if "expression_map" in data and data["expression_map"] is not None:
                config.expression_map = {str(k): str(v) for k, v in data["expression_map"].items()}
        except (TypeError, KeyError, AttributeError) as e:
            raise ValueError(f"Invalid configuration in {path}: {e}") from e

        return config

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        def dataclass_to_dict(obj):
            if hasattr(obj, "__dataclass_fields__"):
                return {
                    k: dataclass_to_dict(v) for k, v in obj.__dict__.items()
                }
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        data = dataclass_to_dict(self)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def parsed_expression_map(self) -> Optional[Dict[str, ExpressionKey]]:
        """Expression map with parsed keys, or None if no map is configured."""
        if self.expression_map is None:
            return None
        return {channel: ExpressionKey.parse(text) for channel, text in self.expression_map.items()}

    def validate(self) -> List[str]:
        """Validate configuration and return list of warnings."""
        issues = []

        if not isinstance(logging.getLevelName(self.logging.level.upper()), int):
            issues.append(f"Unknown log level: {self.logging.level}")

        if not self.exporter.animation_name:
            issues.append("Animation name is empty")

        if not self.exporter.expression_node_prefix:
            issues.append("Expression node prefix is empty; node names may clash with bones")

        if not self.output.output_dir.exists():
            issues.append(f"Output directory does not exist: {self.output.output_dir}")

        if self.expression_map is not None and not self.expression_map:
            issues.append("Expression map is empty; no expressions will be exported")

        return issues


def load_expression_map(path: Path) -> Dict[str, ExpressionKey]:
    """
    Load a standalone channel -> expression map from YAML.

    Example:
        Blink: blink
        Fcl_MTH_A: aa
        Smirk: custom:Smirk
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Expression map must be a mapping: {path}")
    return {str(channel): ExpressionKey.parse(str(text)) for channel, text in data.items()}
