"""Main CLI entry point for the feed-sniffer command-line tool.

Provides commands to classify feed documents on disk and to write out the
sanitized form of a document.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from feed_sniffer import __version__
from feed_sniffer.api import FeedFormatDetector
from feed_sniffer.character import (
    BOMDetector,
    CharacterSanitizer,
    bom_encoding,
    decode_document,
)
from feed_sniffer.shared.config import ConfigError, SnifferConfig
from feed_sniffer.shared.logging import get_logger
from feed_sniffer.shared.result import DiagnosticSeverity


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self) -> None:
        self.sniffer_config = SnifferConfig.compatible()
        self.output_format = "text"

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        The file may hold a ``preset`` name (``compatible`` or ``strict``), a
        ``sniffer`` object in :meth:`SnifferConfig.to_dict` form, and an
        ``output_format``.

        Raises:
            ConfigError: If the file cannot be read or holds invalid settings
        """
        config = cls()
        try:
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not load config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {config_path} must contain a JSON object")

        preset = data.get("preset")
        if preset == "strict":
            config.sniffer_config = SnifferConfig.strict()
        elif preset not in (None, "compatible"):
            raise ConfigError(f"Unknown preset: {preset}")

        if "sniffer" in data:
            config.sniffer_config = SnifferConfig.from_dict(data["sniffer"])

        config.output_format = data.get("output_format", config.output_format)
        if config.output_format not in ("text", "json"):
            raise ConfigError(f"Unknown output format: {config.output_format}")

        return config


class FeedFileProcessor:
    """Runs detection over files for the CLI."""

    def __init__(self, config: CLIConfig):
        self.config = config
        self.detector = FeedFormatDetector(config=config.sniffer_config)
        self.logger = get_logger(__name__, None, "cli_processor")

    def process_file(self, file_path: Path) -> Dict[str, Any]:
        """Classify one file and summarize the result."""
        result = self.detector.sniff_file(file_path)
        record: Dict[str, Any] = {
            "file": str(file_path),
            "format": result.format.value,
            "stripped_characters": result.stripped_count,
            "declared_encoding": result.declared_encoding,
        }

        errors = [
            diag.message for diag in result.diagnostics
            if diag.severity is DiagnosticSeverity.CRITICAL
        ]
        if errors:
            record["error"] = errors[0]
        elif result.scan_error:
            record["scan_error"] = result.scan_error

        self.logger.debug(
            "Processed file",
            extra={"file_path": str(file_path), "format": record["format"]}
        )
        return record


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="feed-sniffer",
        description="Detect the format of syndication feed documents",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true",
                           help="Enable debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true",
                           help="Only log errors")

    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--strict-chars", action="store_true",
                        help="Strip every character outside the XML 1.0 range")

    subparsers = parser.add_subparsers(dest="command")

    detect_parser = subparsers.add_parser("detect", help="Detect feed formats")
    detect_parser.add_argument("paths", nargs="+", type=Path, help="Feed documents")
    detect_parser.add_argument("--format", choices=["text", "json"], default=None,
                               help="Output format (default: text)")

    sanitize_parser = subparsers.add_parser(
        "sanitize", help="Write a document with illegal XML characters removed"
    )
    sanitize_parser.add_argument("path", type=Path, help="Feed document")
    sanitize_parser.add_argument("-o", "--output", type=Path,
                                 help="Output file (default: stdout)")

    return parser


def format_results(results: List[Dict[str, Any]], output_format: str) -> str:
    """Render detection records for display."""
    if output_format == "json":
        return json.dumps(results, indent=2)

    lines = []
    for record in results:
        line = f"{record['file']}: {record['format']}"
        if record.get("stripped_characters"):
            line += f" ({record['stripped_characters']} characters stripped)"
        if "error" in record:
            line += f" [error: {record['error']}]"
        lines.append(line)
    return "\n".join(lines)


def cmd_detect(args: argparse.Namespace, config: CLIConfig) -> int:
    """Handle the detect command."""
    processor = FeedFileProcessor(config)
    results = [processor.process_file(path) for path in args.paths]

    output_format = args.format or config.output_format
    print(format_results(results, output_format))

    recognized = sum(1 for record in results if record["format"] != "unknown")
    return 0 if recognized == len(results) else 1


def cmd_sanitize(args: argparse.Namespace, config: CLIConfig) -> int:
    """Handle the sanitize command.

    The output keeps the input's byte order mark and encoding, so an XML
    declaration in the document stays accurate.
    """
    try:
        raw_data = args.path.read_bytes()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sanitizer = CharacterSanitizer(config.sniffer_config.character)
    result = sanitizer.sanitize(decode_document(raw_data))

    bom = raw_data[:len(raw_data) - len(BOMDetector().strip(raw_data))]
    encoding = bom_encoding(raw_data)
    if encoding is not None:
        output = bom + result.text.encode(encoding, errors="surrogatepass")
    else:
        output = bom + result.text.encode("utf-8", errors="surrogateescape")

    if args.output:
        args.output.write_bytes(output)
        print(f"Stripped {len(result.stripped)} characters", file=sys.stderr)
    else:
        sys.stdout.buffer.write(output)
        sys.stdout.flush()
    return 0


def _configure_logging(args: argparse.Namespace, config: CLIConfig) -> None:
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, config.sniffer_config.global_.logging_level)
    logging.basicConfig(level=level)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = CLIConfig.from_file(args.config) if args.config else CLIConfig()
        if args.strict_chars:
            config.sniffer_config = config.sniffer_config.override(
                character__strict_char_range=True
            )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    _configure_logging(args, config)

    try:
        if args.command == "detect":
            return cmd_detect(args, config)
        if args.command == "sanitize":
            return cmd_sanitize(args, config)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
