"""
Probe client for the line-based registry availability service.

Each probe opens its own TCP connection, sends one line
``<label>.<tld>\\n`` and reads until the server closes the connection.
The reply has the form ``<code>:<message>`` and the code is classified
through the fixed table in ``enums.REPLY_CODE_STATUS``.

A probe never raises: connection failures, timeouts and unreadable
replies all end in a ProbeResult with status ERROR.
"""

import asyncio
import contextlib
import re
import socket
import zlib
from datetime import datetime, timezone
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .config import RegistryConfig
from .enums import (
    LogLevel,
    ProbeErrorCode,
    ProbeStatus,
    REPLY_CODE_STATUS,
    SENTINEL_REPLY_CODE,
)
from .exceptions import NetworkError, ProbeTimeoutError, ProtocolError
from .models import ProbeResult


_REPLY_CODE_PATTERN = re.compile(r"[+-]?\d+")


def parse_reply(raw_response: str) -> tuple[int, str, Optional[ProbeErrorCode]]:
    """
    Split a raw reply into (reply code, message, diagnostic).

    The reply is trimmed and split at its first colon. Without a colon the
    whole reply becomes the message; a code part that is not an integer
    gives the sentinel code. The diagnostic is None for known codes.
    """
    response = raw_response.strip()
    if ":" not in response:
        error_code = (
            ProbeErrorCode.EMPTY_RESPONSE if not response
            else ProbeErrorCode.MALFORMED_RESPONSE
        )
        return SENTINEL_REPLY_CODE, response, error_code

    code_part, message = response.split(":", 1)
    message = message.strip()
    if not _REPLY_CODE_PATTERN.fullmatch(code_part):
        return SENTINEL_REPLY_CODE, message, ProbeErrorCode.MALFORMED_RESPONSE

    code = int(code_part)
    if code not in REPLY_CODE_STATUS:
        return code, message, ProbeErrorCode.UNKNOWN_CODE
    return code, message, None


class ProbeClient:
    """
    Client for one registry endpoint.

    Args:
        host: Registry hostname
        port: Registry TCP port
        tld: Suffix appended to every candidate
        timeout: Deadline in seconds for a whole exchange
        simulation_mode: If True, replies are simulated and no socket is opened
        available_sink: Called with the full domain whenever a probe
            finds it available
        logger: Optional audit logger
    """

    # Upper bound for a single reply; the service answers with one short line
    MAX_RESPONSE_BYTES = 64 * 1024
    READ_CHUNK_SIZE = 4096

    def __init__(
        self,
        host: str = "whois.nic.ch",
        port: int = 4343,
        tld: str = "li",
        timeout: float = 10.0,
        simulation_mode: bool = False,
        available_sink: Optional[Callable[[str], None]] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._tld = tld
        self._timeout = timeout
        self._simulation_mode = simulation_mode
        self._available_sink = available_sink
        self._logger = logger

    @classmethod
    def from_config(
        cls,
        registry: RegistryConfig,
        simulation_mode: bool = False,
        available_sink: Optional[Callable[[str], None]] = None,
        logger: Optional[AuditLogger] = None,
    ) -> "ProbeClient":
        return cls(
            host=registry.host,
            port=registry.port,
            tld=registry.tld,
            timeout=registry.timeout_seconds,
            simulation_mode=simulation_mode,
            available_sink=available_sink,
            logger=logger,
        )

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def simulation_mode(self) -> bool:
        return self._simulation_mode

    def set_available_sink(self, sink: Optional[Callable[[str], None]]) -> None:
        self._available_sink = sink

    def domain_for(self, candidate: str) -> str:
        return f"{candidate}.{self._tld}"

    async def probe(self, candidate: str) -> ProbeResult:
        """
        Query the registry for one candidate label.

        Returns:
            ProbeResult classified from the reply, or an ERROR result
            describing why no usable reply was obtained
        """
        domain = self.domain_for(candidate)

        if self._simulation_mode:
            raw_response = self._simulated_reply(domain)
        else:
            try:
                raw_response = await self._query(domain)
            except NetworkError as e:
                error_code = (
                    ProbeErrorCode.TIMEOUT if isinstance(e, ProbeTimeoutError)
                    else ProbeErrorCode(e.code)
                )
                return self._error_result(domain, error_code, e.message)
            except ProtocolError as e:
                return self._error_result(domain, ProbeErrorCode.MALFORMED_RESPONSE, e.message)
            except Exception as e:
                return self.failure_result(candidate, e)

        result = self.build_result(domain, raw_response)

        if result.status == ProbeStatus.AVAILABLE and self._available_sink is not None:
            self._available_sink(domain)

        self._log(
            LogLevel.DEBUG,
            f"Probe finished for {domain}: {result.status.value}",
            {"domain": domain, "reply_code": result.reply_code},
        )
        return result

    def failure_result(self, candidate: str, error: Exception) -> ProbeResult:
        """ERROR result for a probe that failed with an unexpected exception."""
        return self._error_result(
            self.domain_for(candidate),
            ProbeErrorCode.NETWORK_ERROR,
            f"Unexpected {type(error).__name__}: {error}",
        )

    def build_result(self, domain: str, raw_response: str) -> ProbeResult:
        """Classify a raw reply for a domain."""
        code, message, error_code = parse_reply(raw_response)
        return ProbeResult(
            domain=domain,
            status=ProbeStatus.from_reply_code(code),
            reply_code=code,
            message=message,
            timestamp=_now(),
            error_code=error_code,
        )

    async def _query(self, domain: str) -> str:
        """
        Run one exchange under the probe deadline.

        Raises:
            ProbeTimeoutError: If the deadline passes
            NetworkError: If the connection fails
            ProtocolError: If the reply exceeds MAX_RESPONSE_BYTES
        """
        try:
            return await asyncio.wait_for(self._exchange(domain), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise ProbeTimeoutError(
                code=ProbeErrorCode.TIMEOUT.value,
                message=f"Probe timed out after {self._timeout}s",
                details={"domain": domain, "endpoint": self.endpoint},
            )
        except ConnectionRefusedError as e:
            raise NetworkError(
                code=ProbeErrorCode.CONNECTION_REFUSED.value,
                message=f"Connection refused by {self.endpoint}: {e}",
                details={"domain": domain, "endpoint": self.endpoint},
            )
        except OSError as e:
            raise NetworkError(
                code=ProbeErrorCode.NETWORK_ERROR.value,
                message=f"Socket error: {e}",
                details={"domain": domain, "endpoint": self.endpoint},
            )

    async def _exchange(self, domain: str) -> str:
        reader, writer = await asyncio.open_connection(self._host, self._port)
        try:
            sock = writer.get_extra_info("socket")
            if sock is not None:
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            writer.write(f"{domain}\n".encode("ascii"))
            await writer.drain()

            response_parts: list[bytes] = []
            received = 0
            while True:
                data = await reader.read(self.READ_CHUNK_SIZE)
                if not data:
                    break
                received += len(data)
                if received > self.MAX_RESPONSE_BYTES:
                    raise ProtocolError(
                        code="response_too_large",
                        message=f"Reply exceeded {self.MAX_RESPONSE_BYTES} bytes",
                        details={"domain": domain},
                    )
                response_parts.append(data)

            return b"".join(response_parts).decode("utf-8", errors="replace")
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

    def _error_result(
        self, domain: str, error_code: ProbeErrorCode, message: str
    ) -> ProbeResult:
        self._log(
            LogLevel.WARN,
            f"Probe failed for {domain}: {message}",
            {"domain": domain, "error_code": error_code.value},
        )
        return ProbeResult(
            domain=domain,
            status=ProbeStatus.ERROR,
            reply_code=SENTINEL_REPLY_CODE,
            message=message,
            timestamp=_now(),
            error_code=error_code,
        )

    def _simulated_reply(self, domain: str) -> str:
        """
        Deterministic reply for simulation mode.

        About one in ten domains is reported available and a few are
        rate limited; the rest are registered.
        """
        digest = zlib.crc32(domain.encode("utf-8"))
        if digest % 10 == 0:
            return "1:[SIMULATED] Domain is available"
        if digest % 97 == 0:
            return "-95:[SIMULATED] Rate limit exceeded"
        return "0:[SIMULATED] Domain is registered"

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "ProbeClient", message, data)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
