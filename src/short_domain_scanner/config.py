"""
Configuration dataclasses for the short domain scanner.

This module defines the scan, registry endpoint and logging settings,
their validation, and the environment overrides read from a `.env` file.
"""

import ipaddress
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

import idna
from dotenv import load_dotenv

from .exceptions import ConfigurationError


DEFAULT_OUTPUT_DIR = Path("li_domain_results")

# Accepted log level names, lowest first
LOG_LEVELS = ("debug", "info", "warn", "error")


@dataclass
class RegistryConfig:
    """Line-based availability service to query."""

    host: str = "whois.nic.ch"
    port: int = 4343
    tld: str = "li"
    timeout_seconds: float = 10.0


@dataclass
class ScanConfig:
    """Settings for a single scan run."""

    workers: int = 50
    delay_seconds: float = 1.0
    output_dir: Path = DEFAULT_OUTPUT_DIR
    full_scan: bool = False
    letters_only: bool = False


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    simulation_mode: bool = False

    def validate(self) -> None:
        """
        Check all values, raising ConfigurationError on the first problem.

        The registry TLD is normalized in place to its ASCII form.
        """
        if self.scan.workers < 1:
            raise ConfigurationError(
                code="invalid_workers",
                message=f"workers must be a positive integer, got {self.scan.workers}",
                details={"workers": self.scan.workers},
            )
        if self.scan.delay_seconds < 0:
            raise ConfigurationError(
                code="invalid_delay",
                message=f"delay must be non-negative, got {self.scan.delay_seconds}",
                details={"delay_seconds": self.scan.delay_seconds},
            )
        if not 0 < self.registry.port < 65536:
            raise ConfigurationError(
                code="invalid_port",
                message=f"port out of range: {self.registry.port}",
                details={"port": self.registry.port},
            )
        if self.registry.timeout_seconds <= 0:
            raise ConfigurationError(
                code="invalid_timeout",
                message=f"timeout must be positive, got {self.registry.timeout_seconds}",
                details={"timeout_seconds": self.registry.timeout_seconds},
            )
        validate_host(self.registry.host)
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(
                code="invalid_log_level",
                message=f"Unsupported log level: {self.logging.level}",
                details={"allowed": list(LOG_LEVELS)},
            )
        if self.logging.output_format not in ("json", "text", "both"):
            raise ConfigurationError(
                code="invalid_log_format",
                message=f"Unsupported log format: {self.logging.output_format}",
            )
        self.registry.tld = normalize_tld(self.registry.tld)


def validate_host(host: str) -> None:
    """
    Check that host is an IP address or a hostname the resolver can encode.

    Raises:
        ConfigurationError: If the host is empty or not IDNA-valid
    """
    if not host:
        raise ConfigurationError(code="invalid_host", message="registry host is empty")
    try:
        ipaddress.ip_address(host)
        return
    except ValueError:
        pass
    try:
        idna.encode(host, uts46=True)
    except idna.IDNAError as e:
        raise ConfigurationError(
            code="invalid_host",
            message=f"registry host is not a valid hostname: {e}",
            details={"host": host, "idna_error": str(e)},
        )


def normalize_tld(tld: str) -> str:
    """
    Validate a TLD label and return its canonical ASCII form.

    Raises:
        ConfigurationError: If the label is empty, dotted or not IDNA-valid
    """
    label = (tld or "").strip().lower().lstrip(".")
    if not label or "." in label:
        raise ConfigurationError(
            code="invalid_tld",
            message=f"TLD must be a single label, got {tld!r}",
            details={"tld": tld},
        )
    try:
        return idna.encode(label, uts46=True).decode("ascii")
    except idna.IDNAError as e:
        raise ConfigurationError(
            code="invalid_tld",
            message=f"TLD is not a valid label: {e}",
            details={"tld": tld, "idna_error": str(e)},
        )


def _int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(
            code="invalid_env",
            message=f"{name} must be an integer, got {value!r}",
            details={"variable": name},
        )


def _float_env(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            code="invalid_env",
            message=f"{name} must be a number, got {value!r}",
            details={"variable": name},
        )


def apply_env_overrides(
    config: SystemConfig,
    dotenv_path: Optional[Path] = None,
) -> SystemConfig:
    """
    Return a copy of config with SCANNER_* environment variables applied.

    Variables are read from the process environment after loading a `.env`
    file (existing environment values win over the file).
    """
    load_dotenv(dotenv_path=dotenv_path)

    scan = replace(config.scan)
    registry = replace(config.registry)
    logging_config = replace(config.logging)

    workers = _int_env("SCANNER_WORKERS")
    if workers is not None:
        scan.workers = workers
    delay = _float_env("SCANNER_DELAY")
    if delay is not None:
        scan.delay_seconds = delay
    output_dir = os.getenv("SCANNER_OUTPUT_DIR")
    if output_dir:
        scan.output_dir = Path(output_dir)

    host = os.getenv("SCANNER_HOST")
    if host:
        registry.host = host.strip()
    port = _int_env("SCANNER_PORT")
    if port is not None:
        registry.port = port
    tld = os.getenv("SCANNER_TLD")
    if tld:
        registry.tld = tld.strip()
    timeout = _float_env("SCANNER_TIMEOUT")
    if timeout is not None:
        registry.timeout_seconds = timeout

    level = os.getenv("SCANNER_LOG_LEVEL")
    if level:
        logging_config.level = level.strip().lower()

    return SystemConfig(
        scan=scan,
        registry=registry,
        logging=logging_config,
        simulation_mode=config.simulation_mode,
    )
