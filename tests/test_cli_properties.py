"""
Tests for the command-line interface and the startup self-test.
"""

import asyncio
import contextlib
import io
import os
import socket
import tempfile
from pathlib import Path
from unittest import mock

from short_domain_scanner.cli import (
    build_config,
    create_parser,
    main,
    run_scan,
    save_config_to_file,
)
from short_domain_scanner.config import RegistryConfig, ScanConfig, SystemConfig
from short_domain_scanner.exceptions import PersistenceError
from short_domain_scanner.self_test import SelfTest


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestArgumentParsing:

    def test_scan_flags(self) -> None:
        args = create_parser().parse_args(
            ["scan", "-w", "10", "-d", "0.5", "-o", "out", "-f", "-l", "--tld", "ch", "--dry-run"]
        )

        assert args.command == "scan"
        assert args.workers == 10
        assert args.delay == 0.5
        assert args.output == "out"
        assert args.full_scan
        assert args.letters_only
        assert args.tld == "ch"
        assert args.dry_run

    def test_flags_override_defaults(self) -> None:
        args = create_parser().parse_args(["scan", "-w", "5", "-d", "0", "--port", "9000", "-v"])

        with mock.patch.dict(os.environ, {}, clear=True):
            config = build_config(args)

        assert config is not None
        assert config.scan.workers == 5
        assert config.scan.delay_seconds == 0.0
        assert config.registry.port == 9000
        assert config.registry.host == "whois.nic.ch"
        assert config.logging.level == "debug"
        assert not config.simulation_mode

    def test_precedence_file_env_flags(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            save_config_to_file(
                SystemConfig(
                    scan=ScanConfig(workers=20, delay_seconds=2.0),
                    registry=RegistryConfig(tld="ch"),
                ),
                path,
            )
            args = create_parser().parse_args(["scan", "-c", str(path), "-d", "0.1"])

            with mock.patch.dict(os.environ, {"SCANNER_WORKERS": "30"}, clear=True):
                config = build_config(args)

        assert config is not None
        assert config.registry.tld == "ch"
        assert config.scan.workers == 30
        assert config.scan.delay_seconds == 0.1

    def test_missing_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            args = create_parser().parse_args(["scan", "-c", str(Path(tmpdir) / "none.json")])
            with contextlib.redirect_stderr(io.StringIO()):
                assert build_config(args) is None

    def test_no_command_prints_help(self) -> None:
        with contextlib.redirect_stdout(io.StringIO()) as out:
            assert main([]) == 0
        assert "scan" in out.getvalue()


class TestConfigCommand:

    def test_init_show_validate(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = str(Path(tmpdir) / "config.json")
            with contextlib.redirect_stdout(io.StringIO()) as out:
                assert main(["config", "init", "--path", path]) == 0
                assert main(["config", "init", "--path", path]) == 1
                assert main(["config", "init", "--path", path, "--force"]) == 0
                assert main(["config", "show", "--path", path]) == 0
                assert main(["config", "validate", "--path", path]) == 0

        assert "whois.nic.ch:4343" in out.getvalue()

    def test_validate_rejects_bad_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            save_config_to_file(SystemConfig(scan=ScanConfig(workers=0)), path)

            with contextlib.redirect_stderr(io.StringIO()) as err:
                assert main(["config", "validate", "--path", str(path)]) == 1

        assert "workers" in err.getvalue()


class TestScanCommand:

    def test_simulated_scan_writes_reports(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = SystemConfig(
                scan=ScanConfig(workers=20, delay_seconds=0.0, output_dir=Path(tmpdir)),
                simulation_mode=True,
            )
            with mock.patch(
                "short_domain_scanner.scanner.CandidateGenerator.build_scan_plan",
                side_effect=lambda full_scan, letters_only: [],
            ):
                with contextlib.redirect_stdout(io.StringIO()) as out:
                    exit_code = asyncio.run(run_scan(config, quiet=True))

            run_dirs = list(Path(tmpdir).iterdir())
            written = sorted(p.name for p in run_dirs[0].iterdir())

        assert exit_code == 0
        assert "Scan complete!" in out.getvalue()
        assert written == ["available_domains.txt", "scan_results.json"]

    def test_report_write_failure_exits_nonzero(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = SystemConfig(
                scan=ScanConfig(workers=5, delay_seconds=0.0, output_dir=Path(tmpdir)),
                simulation_mode=True,
            )
            failure = PersistenceError(code="io_error", message="disk full")
            with mock.patch(
                "short_domain_scanner.scanner.CandidateGenerator.build_scan_plan",
                side_effect=lambda full_scan, letters_only: [],
            ), mock.patch(
                "short_domain_scanner.scanner.ReportWriter.write",
                side_effect=failure,
            ) as write:
                with contextlib.redirect_stdout(io.StringIO()) as out, \
                        contextlib.redirect_stderr(io.StringIO()) as err:
                    exit_code = asyncio.run(run_scan(config, quiet=True))

        assert exit_code == 1
        assert write.call_count == 1
        assert "disk full" in err.getvalue()
        assert "Scan complete!" not in out.getvalue()

    def test_invalid_config_exit_code(self) -> None:
        config = SystemConfig(scan=ScanConfig(workers=0))
        with contextlib.redirect_stderr(io.StringIO()):
            assert asyncio.run(run_scan(config)) == 1


class TestSelfTest:

    def test_reachable_endpoint(self) -> None:
        async def scenario():
            async def handle(reader, writer):
                writer.close()

            server = await asyncio.start_server(handle, "127.0.0.1", 0)
            port = server.sockets[0].getsockname()[1]
            config = SystemConfig(registry=RegistryConfig(host="127.0.0.1", port=port))
            try:
                return await SelfTest(config).run()
            finally:
                server.close()
                await server.wait_closed()

        result = asyncio.run(scenario())

        assert result.success
        assert result.endpoint_result is not None
        assert result.endpoint_result.success
        assert result.endpoint_result.error is None

    def test_unreachable_endpoint(self) -> None:
        config = SystemConfig(registry=RegistryConfig(host="127.0.0.1", port=unused_port()))

        result = asyncio.run(SelfTest(config).run())

        assert not result.success
        assert result.endpoint_result is not None
        assert result.endpoint_result.error

    def test_invalid_config_skips_connectivity(self) -> None:
        config = SystemConfig(scan=ScanConfig(delay_seconds=-1))

        result = asyncio.run(SelfTest(config).run())

        assert not result.success
        assert not result.config_validation.valid
        assert result.endpoint_result is None

    def test_advisory_warnings(self) -> None:
        config = SystemConfig(scan=ScanConfig(workers=500, delay_seconds=0.0, full_scan=True))

        validation = SelfTest(config).validate_config()

        assert validation.valid
        assert len(validation.warnings) == 2
