"""
End-to-end tests for the scan orchestrator against a stub registry.
"""

import asyncio
import tempfile
from collections import Counter
from datetime import datetime
from io import StringIO
from pathlib import Path

from short_domain_scanner.audit_logger import AuditLogger
from short_domain_scanner.config import RegistryConfig, ScanConfig, SystemConfig
from short_domain_scanner.enums import LogLevel, ProbeErrorCode, ProbeStatus
from short_domain_scanner.exceptions import ConfigurationError
from short_domain_scanner.probe_client import ProbeClient
from short_domain_scanner.report_writer import read_results
from short_domain_scanner.scanner import ShortDomainScanner


async def start_stub_registry(replies: dict[str, str], default: str = "0:taken"):
    received: list[str] = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        line = await reader.readline()
        domain = line.decode("ascii").strip()
        received.append(domain)
        writer.write(replies.get(domain, default).encode("utf-8"))
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port, received


def make_config(output_dir: Path, port: int = 4343, workers: int = 3) -> SystemConfig:
    return SystemConfig(
        scan=ScanConfig(workers=workers, delay_seconds=0.0, output_dir=output_dir),
        registry=RegistryConfig(host="127.0.0.1", port=port, tld="li", timeout_seconds=2.0),
    )


class FlakyProbeClient(ProbeClient):
    """Refuses the connection for one domain and answers 'registered' otherwise."""

    def __init__(self, failing_domain: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.failing_domain = failing_domain
        self.queried: list[str] = []

    async def _exchange(self, domain: str) -> str:
        self.queried.append(domain)
        if domain == self.failing_domain:
            raise ConnectionRefusedError(111, "Connection refused")
        return "0:taken"


class TestEndToEndScan:

    def test_stub_registry_scenario(self) -> None:
        async def scenario(tmpdir: Path):
            server, port, received = await start_stub_registry(
                {"a.li": "1:ok", "b.li": "0:taken", "c.li": "-95:slow"}
            )
            try:
                async with ShortDomainScanner(make_config(tmpdir, port)) as scanner:
                    summary = await scanner.run(candidates=["a", "b", "c"])
                    snapshot = scanner.snapshot()
            finally:
                server.close()
                await server.wait_closed()
            return summary, snapshot, received

        with tempfile.TemporaryDirectory() as tmpdir:
            summary, snapshot, received = asyncio.run(scenario(Path(tmpdir)))
            persisted = read_results(summary.output_dir / "scan_results.json")
            available_report = (summary.output_dir / "available_domains.txt").read_text(encoding="utf-8")

        assert snapshot.available == ("a.li",)
        assert len(snapshot.results) == 3
        assert Counter(r.status for r in snapshot.results) == Counter(
            [ProbeStatus.AVAILABLE, ProbeStatus.REGISTERED, ProbeStatus.RATE_LIMITED]
        )
        assert sorted(received) == ["a.li", "b.li", "c.li"]

        assert summary.dispatched == summary.total_candidates == 3
        assert summary.available_domains == 1
        assert summary.counts[ProbeStatus.RATE_LIMITED] == 1
        assert summary.counts[ProbeStatus.ERROR] == 0
        assert not summary.cancelled

        assert len(persisted) == 3
        assert available_report.splitlines()[-1] == "a.li"

    def test_connection_failure_does_not_stop_later_candidates(self) -> None:
        async def scenario(tmpdir: Path):
            client = FlakyProbeClient(failing_domain="b.li", tld="li", timeout=1.0)
            scanner = ShortDomainScanner(make_config(tmpdir, workers=1), probe_client=client)
            summary = await scanner.run(candidates=["a", "b", "c", "d"])
            return client, scanner.snapshot(), summary

        with tempfile.TemporaryDirectory() as tmpdir:
            client, snapshot, summary = asyncio.run(scenario(Path(tmpdir)))

        assert client.queried == ["a.li", "b.li", "c.li", "d.li"]
        assert len(snapshot.results) == 4
        failed = [r for r in snapshot.results if r.status == ProbeStatus.ERROR]
        assert [r.domain for r in failed] == ["b.li"]
        assert failed[0].error_code == ProbeErrorCode.CONNECTION_REFUSED
        assert summary.counts[ProbeStatus.REGISTERED] == 3

    def test_unexpected_exchange_failures_are_recorded(self) -> None:
        class BrokenClient(ProbeClient):
            async def _exchange(self, domain: str) -> str:
                if domain == "b.li":
                    raise UnicodeError("label empty or too long")
                return "0:taken"

        async def scenario(tmpdir: Path):
            scanner = ShortDomainScanner(make_config(tmpdir), probe_client=BrokenClient(tld="li"))
            summary = await scanner.run(candidates=["a", "b", "c", "d"])
            return summary, scanner.snapshot()

        with tempfile.TemporaryDirectory() as tmpdir:
            summary, snapshot = asyncio.run(scenario(Path(tmpdir)))
            persisted = read_results(summary.output_dir / "scan_results.json")

        assert summary.dispatched == len(snapshot.results) == len(persisted) == 4
        assert summary.counts[ProbeStatus.ERROR] == 1
        failed = [r for r in persisted if r.status == ProbeStatus.ERROR]
        assert [r.domain for r in failed] == ["b.li"]

    def test_run_directory_matches_report_header(self) -> None:
        async def scenario(tmpdir: Path):
            config = make_config(tmpdir)
            config.simulation_mode = True
            scanner = ShortDomainScanner(config)
            await asyncio.sleep(1.1)
            return await scanner.run(candidates=["a"])

        with tempfile.TemporaryDirectory() as tmpdir:
            summary = asyncio.run(scenario(Path(tmpdir)))
            header = (summary.output_dir / "available_domains.txt").read_text(encoding="utf-8")

        scan_time = header.splitlines()[1][len("# Scan time: "):]
        stamped = datetime.strptime(summary.output_dir.name, "%Y%m%d_%H%M%S")
        assert stamped == datetime.strptime(scan_time, "%Y-%m-%d %H:%M:%S")
        assert stamped == datetime.fromisoformat(summary.started_at).replace(tzinfo=None, microsecond=0)

    def test_simulated_default_plan(self) -> None:
        async def scenario(tmpdir: Path):
            config = make_config(tmpdir, workers=50)
            config.scan.letters_only = True
            config.simulation_mode = True
            scanner = ShortDomainScanner(config)
            plan_total = sum(len(s) for s in scanner.build_plan())
            summary = await scanner.run()
            return plan_total, summary, scanner.snapshot()

        with tempfile.TemporaryDirectory() as tmpdir:
            plan_total, summary, snapshot = asyncio.run(scenario(Path(tmpdir)))

        assert summary.total_candidates == plan_total == len(snapshot.results)
        assert len({r.domain for r in snapshot.results}) == plan_total
        expected_available = sorted(
            {r.domain for r in snapshot.results if r.status == ProbeStatus.AVAILABLE}
        )
        assert list(snapshot.available) == expected_available
        assert summary.max_in_flight <= 50


class TestSetupFailures:

    def test_invalid_config_rejected_before_scanning(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = make_config(Path(tmpdir))
            config.scan.workers = 0
            try:
                ShortDomainScanner(config)
            except ConfigurationError as e:
                assert e.code == "invalid_workers"
            else:
                raise AssertionError("Expected ConfigurationError")

    def test_unencodable_host_rejected_before_scanning(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = make_config(Path(tmpdir))
            config.registry.host = "a" * 70 + ".example"
            try:
                ShortDomainScanner(config)
            except ConfigurationError as e:
                assert e.code == "invalid_host"
            else:
                raise AssertionError("Expected ConfigurationError")

    def test_unusable_output_dir_aborts_before_any_probe(self) -> None:
        with tempfile.NamedTemporaryFile() as blocker:
            client = FlakyProbeClient(failing_domain="", tld="li")
            scanner = ShortDomainScanner(make_config(Path(blocker.name)), probe_client=client)
            try:
                asyncio.run(scanner.run(candidates=["a", "b"]))
            except ConfigurationError:
                pass
            else:
                raise AssertionError("Expected ConfigurationError")

        assert client.queried == []

    def test_run_is_logged(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="json", output_stream=stream, level=LogLevel.INFO)

        async def scenario(tmpdir: Path) -> None:
            config = make_config(tmpdir)
            config.simulation_mode = True
            await ShortDomainScanner(config, logger=logger).run(candidates=["a"])

        with tempfile.TemporaryDirectory() as tmpdir:
            asyncio.run(scenario(Path(tmpdir)))

        components = {entry.component for entry in logger.entries}
        assert "ShortDomainScanner" in components
        assert all(entry.level != LogLevel.DEBUG for entry in logger.entries)
