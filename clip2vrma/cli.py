"""
Command-line interface for the VRM animation exporter.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from clip2vrma import __version__
from clip2vrma.config.settings import ExportConfig, load_expression_map
from clip2vrma.core.errors import VrmaExportError
from clip2vrma.core.exporter import VrmAnimationExporter, write_artifact
from clip2vrma.core.expression_resolver import build_expression_map
from clip2vrma.data.loader import load_document

console = Console()


def setup_logging(level: str = "INFO"):
    """Configure logging for the application."""
    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)
    if not root_logger.handlers:
        root_logger.addHandler(handler)

    # Unknown level names fall back to INFO
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.getLogger("clip2vrma").setLevel(resolved)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="clip2vrma",
        description="Export a humanoid animation clip as a VRM Animation (.vrma)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export with preset-name matching for blend shapes
  clip2vrma wave.yaml -o wave.vrma

  # Only export mapped blend shapes
  clip2vrma wave.yaml --expression-map face_map.yaml

  # Use a configuration file
  clip2vrma wave.yaml --config clip2vrma.yaml
        """,
    )

    parser.add_argument(
        "input",
        type=Path,
        nargs="?",
        help="Scene document (YAML or JSON) with avatar and clip",
    )

    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output .vrma path (default: <output_dir>/<clip name>.vrma)",
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file (YAML)",
    )

    parser.add_argument(
        "--expression-map", "-m",
        type=Path,
        metavar="MAP",
        help="YAML map of blend shape channel -> expression",
    )

    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing output file",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)

    if args.version:
        console.print(f"clip2vrma version {__version__}")
        return 0

    if args.input is None:
        console.print("[red]Error:[/red] an input document is required")
        return 2

    try:
        config = ExportConfig.from_yaml(args.config) if args.config else ExportConfig()
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {escape(str(e))}")
        return 1

    setup_logging("DEBUG" if args.verbose else config.logging.level)

    issues = config.validate()
    if issues:
        console.print("[yellow]Configuration warnings:[/yellow]")
        for issue in issues:
            console.print(f"  - {escape(issue)}")

    try:
        document = load_document(args.input)

        # Map file, then config map, then the avatar's own expressions
        if args.expression_map:
            expression_map = load_expression_map(args.expression_map)
        elif config.expression_map is not None:
            expression_map = config.parsed_expression_map()
        elif document.avatar.expressions:
            expression_map = build_expression_map(document.avatar)
        else:
            expression_map = None

        output_path = args.output or config.output.output_dir / f"{document.clip.name}.vrma"
        if output_path.exists() and not (config.output.overwrite or args.force):
            console.print(f"[red]Error:[/red] {output_path} exists (use --force to replace it)")
            return 1

        console.print(f"[bold green]Exporting clip:[/bold green] {document.clip.name}")
        exporter = VrmAnimationExporter(config.exporter)
        result = exporter.build(
            document.avatar,
            document.clip,
            expression_map,
            avatar_root=document.avatar_root,
        )
        data = result.to_glb()
        write_artifact(output_path, data)

    except (VrmaExportError, ValueError, OSError) as e:
        console.print(f"[red]Export failed:[/red] {escape(str(e))}")
        return 1

    console.print(f"[green]✓[/green] Saved: {output_path}")
    console.print(f"  Frames: {result.tracks.num_frames}")
    console.print(f"  Bones: {len(result.bone_nodes)}")
    console.print(f"  Expressions: {len(result.expression_nodes)}")
    console.print(f"  Size: {len(data)} bytes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
