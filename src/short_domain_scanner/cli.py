"""
Command-line interface for the short domain scanner.

This module provides the main CLI entry point with commands for:
- scan: Probe every short label of the registry
- self-test: Validate configuration and registry connectivity
- config: Configuration management

Configuration precedence, lowest first: defaults, JSON config file,
SCANNER_* environment variables (and `.env`), command-line flags.
"""

import argparse
import asyncio
import json
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_OUTPUT_DIR,
    LoggingConfig,
    RegistryConfig,
    ScanConfig,
    SystemConfig,
    apply_env_overrides,
)
from .enums import ProbeStatus
from .exceptions import ConfigurationError, PersistenceError
from .models import ProbeResult, ScanSummary
from .scanner import ShortDomainScanner
from .self_test import run_self_test


DEFAULT_CONFIG_PATH = Path.home() / ".short_domain_scanner" / "config.json"

EXIT_CANCELLED = 130


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        scan_data = data.get("scan", {})
        scan = ScanConfig(
            workers=scan_data.get("workers", 50),
            delay_seconds=scan_data.get("delay_seconds", 1.0),
            output_dir=Path(scan_data.get("output_dir", str(DEFAULT_OUTPUT_DIR))),
            full_scan=scan_data.get("full_scan", False),
            letters_only=scan_data.get("letters_only", False),
        )

        registry_data = data.get("registry", {})
        registry = RegistryConfig(
            host=registry_data.get("host", "whois.nic.ch"),
            port=registry_data.get("port", 4343),
            tld=registry_data.get("tld", "li"),
            timeout_seconds=registry_data.get("timeout_seconds", 10.0),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        return SystemConfig(
            scan=scan,
            registry=registry,
            logging=logging_config,
            simulation_mode=data.get("simulation_mode", False),
        )

    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "scan": {
                "workers": config.scan.workers,
                "delay_seconds": config.scan.delay_seconds,
                "output_dir": str(config.scan.output_dir),
                "full_scan": config.scan.full_scan,
                "letters_only": config.scan.letters_only,
            },
            "registry": {
                "host": config.registry.host,
                "port": config.registry.port,
                "tld": config.registry.tld,
                "timeout_seconds": config.registry.timeout_seconds,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "simulation_mode": config.simulation_mode,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def build_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """
    Assemble the configuration for a command.

    Returns:
        SystemConfig, or None if an explicitly given config file failed to load
    """
    config = SystemConfig()
    config_file = getattr(args, "config", None)
    if config_file:
        config = load_config_from_file(Path(config_file))
        if config is None:
            print(f"Error: Could not load config from {config_file}", file=sys.stderr)
            return None

    try:
        config = apply_env_overrides(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return None

    scan = replace(config.scan)
    registry = replace(config.registry)
    logging_config = replace(config.logging)

    if getattr(args, "workers", None) is not None:
        scan.workers = args.workers
    if getattr(args, "delay", None) is not None:
        scan.delay_seconds = args.delay
    if getattr(args, "output", None):
        scan.output_dir = Path(args.output)
    if getattr(args, "full_scan", False):
        scan.full_scan = True
    if getattr(args, "letters_only", False):
        scan.letters_only = True

    if getattr(args, "host", None):
        registry.host = args.host
    if getattr(args, "port", None) is not None:
        registry.port = args.port
    if getattr(args, "tld", None):
        registry.tld = args.tld
    if getattr(args, "timeout", None) is not None:
        registry.timeout_seconds = args.timeout

    if getattr(args, "verbose", False):
        logging_config.level = "debug"

    return SystemConfig(
        scan=scan,
        registry=registry,
        logging=logging_config,
        simulation_mode=config.simulation_mode or getattr(args, "dry_run", False),
    )


def print_result(result: ProbeResult, quiet: bool = False) -> None:
    """Print one line for a recorded probe result."""
    if result.status == ProbeStatus.AVAILABLE:
        print(f"✓ available: {result.domain}")
    elif quiet:
        return
    elif result.status == ProbeStatus.REGISTERED:
        print(f"✗ registered: {result.domain}")
    else:
        print(f"! {result.status.value}: {result.domain} - {result.message}")


def print_summary(summary: ScanSummary) -> None:
    print()
    print("Scan cancelled." if summary.cancelled else "Scan complete!")
    print(f"  Probed: {summary.dispatched}/{summary.total_candidates}")
    for status in ProbeStatus:
        print(f"  {status.value}: {summary.counts.get(status, 0)}")
    print(f"  Duration: {summary.duration_seconds:.1f}s")
    print(f"Found {summary.available_domains} available domain(s)")
    if summary.output_dir:
        print(f"Results saved to: {summary.output_dir}")


async def run_scan(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
    quiet: bool = False,
) -> int:
    """
    Run a scan and print its progress and summary.

    Returns:
        Exit code (0 on success, 1 on fatal error, 130 if cancelled)
    """
    try:
        scanner = ShortDomainScanner(config=config, logger=logger)
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    if config.simulation_mode:
        print("Simulation mode: no network requests will be made")

    for sequence in scanner.build_plan():
        print(f"Generated {len(sequence)} {sequence.name} candidate(s)")

    scanner.add_result_listener(lambda result: print_result(result, quiet=quiet))

    loop = asyncio.get_running_loop()
    handler_installed = True
    try:
        loop.add_signal_handler(signal.SIGINT, scanner.cancel)
    except (NotImplementedError, RuntimeError):
        handler_installed = False

    try:
        async with scanner:
            summary = await scanner.run()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1
    except PersistenceError as e:
        print(f"Error writing results: {e.message}", file=sys.stderr)
        if logger:
            logger.log_error("cli", "Failed to persist results", error=e)
        return 1
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)

    print_summary(summary)
    return EXIT_CANCELLED if summary.cancelled else 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Handle the 'scan' command."""
    config = build_config(args)
    if config is None:
        return 1

    try:
        logger = AuditLogger.from_config(
            output_format=config.logging.output_format,
            level=config.logging.level,
        )
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    return asyncio.run(run_scan(config=config, logger=logger, quiet=args.quiet))


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    config = build_config(args)
    if config is None:
        return 1

    result = asyncio.run(run_self_test(config=config, print_output=True))
    return 0 if result.success else 1


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Registry: {config.registry.host}:{config.registry.port} (.{config.registry.tld})")
        print(f"  Workers: {config.scan.workers}")
        print(f"  Delay: {config.scan.delay_seconds}s")
        print(f"  Output directory: {config.scan.output_dir}")
        print(f"  Full scan: {config.scan.full_scan}")
        print(f"  Letters only: {config.scan.letters_only}")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(SystemConfig(), config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1
        try:
            config.validate()
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_registry_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", help="Registry host (default: whois.nic.ch)")
    parser.add_argument("--port", type=int, help="Registry port (default: 4343)")
    parser.add_argument("--tld", help="Top-level domain appended to labels (default: li)")
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-probe timeout in seconds (default: 10)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - no real network requests",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="short-domain-scanner",
        description="Availability scanner for 1-4 character domain labels",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'scan' command
    scan_parser = subparsers.add_parser(
        "scan",
        help="Probe every short label of the registry",
    )
    scan_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum concurrent probes (default: 50)",
    )
    scan_parser.add_argument(
        "--delay", "-d",
        type=float,
        help="Delay in seconds between probe submissions (default: 1.0)",
    )
    scan_parser.add_argument(
        "--output", "-o",
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR})",
    )
    scan_parser.add_argument(
        "--full-scan", "-f",
        action="store_true",
        help="Scan every 4-character label instead of repeat patterns only",
    )
    scan_parser.add_argument(
        "--letters-only", "-l",
        action="store_true",
        help="Only use letters a-z (and hyphens)",
    )
    scan_parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print available domains and the summary",
    )
    scan_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    _add_registry_arguments(scan_parser)
    scan_parser.set_defaults(func=cmd_scan)

    # 'self-test' command
    self_test_parser = subparsers.add_parser(
        "self-test",
        help="Validate configuration and registry connectivity",
    )
    _add_registry_arguments(self_test_parser)
    self_test_parser.set_defaults(func=cmd_self_test)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
