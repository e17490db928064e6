"""
Short Domain Scanner - availability scanner for 1-4 character domain labels.

This package generates every admissible short label, probes a line-based
registry availability service for each under bounded concurrency and
submission pacing, and persists the aggregated results.
"""

__version__ = "0.1.0"
__author__ = "Short Domain Scanner Team"

from short_domain_scanner.exceptions import (
    ScannerError,
    ConfigurationError,
    NetworkError,
    ProtocolError,
    ProbeTimeoutError,
    PersistenceError,
)
from short_domain_scanner.enums import (
    ProbeStatus,
    ProbeErrorCode,
    LogLevel,
    REPLY_CODE_STATUS,
    SENTINEL_REPLY_CODE,
)
from short_domain_scanner.config import (
    RegistryConfig,
    ScanConfig,
    LoggingConfig,
    SystemConfig,
    apply_env_overrides,
)
from short_domain_scanner.models import (
    ProbeResult,
    ScanSnapshot,
    ScanSummary,
)
from short_domain_scanner.candidate_generator import (
    CandidateGenerator,
    CandidateSequence,
    is_valid_label,
)
from short_domain_scanner.probe_client import (
    ProbeClient,
    parse_reply,
)
from short_domain_scanner.controller import (
    ConcurrencyController,
)
from short_domain_scanner.result_aggregator import (
    ResultAggregator,
)
from short_domain_scanner.report_writer import (
    ReportWriter,
    read_results,
)
from short_domain_scanner.audit_logger import (
    AuditLogger,
    LogEntry,
)
from short_domain_scanner.scanner import (
    ShortDomainScanner,
)
from short_domain_scanner.self_test import (
    SelfTest,
    SelfTestResult,
    EndpointTestResult,
    ConfigValidationResult,
    run_self_test,
)
from short_domain_scanner.cli import (
    main as cli_main,
    create_parser,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "ScannerError",
    "ConfigurationError",
    "NetworkError",
    "ProtocolError",
    "ProbeTimeoutError",
    "PersistenceError",
    # Enums
    "ProbeStatus",
    "ProbeErrorCode",
    "LogLevel",
    "REPLY_CODE_STATUS",
    "SENTINEL_REPLY_CODE",
    # Configuration
    "RegistryConfig",
    "ScanConfig",
    "LoggingConfig",
    "SystemConfig",
    "apply_env_overrides",
    # Models
    "ProbeResult",
    "ScanSnapshot",
    "ScanSummary",
    # Candidate generation
    "CandidateGenerator",
    "CandidateSequence",
    "is_valid_label",
    # Probe client
    "ProbeClient",
    "parse_reply",
    # Concurrency
    "ConcurrencyController",
    # Aggregation
    "ResultAggregator",
    # Persistence
    "ReportWriter",
    "read_results",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Scanner
    "ShortDomainScanner",
    # Self-Test
    "SelfTest",
    "SelfTestResult",
    "EndpointTestResult",
    "ConfigValidationResult",
    "run_self_test",
    # CLI
    "cli_main",
    "create_parser",
    "load_config_from_file",
    "save_config_to_file",
]
