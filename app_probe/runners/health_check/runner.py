"""HTTP health check runner."""

import json
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from app_probe.errors import NetworkError, ProbeTimeoutError
from app_probe.models.config import HealthCheckConfig, TestExecutionContext, TestType
from app_probe.models.result import (
    HealthCheckResult,
    ProbeStatus,
    SslInfo,
    TestError,
    TestResultData,
)
from app_probe.probe_log import ProbeLog, error_data
from app_probe.runners.base import ProbeRunner
from app_probe.runners.health_check.certificate import (
    CertificateInspector,
    inspect_certificate,
)
from app_probe.runners.health_check.validation import (
    MAX_BODY_SIZE,
    approximate_timing,
    body_for_storage,
    decode_text,
    find_body_mismatch,
    parse_body,
)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True, kw_only=True)
class HttpExchange:
    """A decomposed response plus the full decoded body used for validation."""

    result: HealthCheckResult
    body: Any


@dataclass(frozen=True, kw_only=True)
class HealthCheckRunner(ProbeRunner):
    """Issues one HTTP request against a health endpoint and validates it."""

    test_type: ClassVar[TestType] = "health_check"
    log_name: ClassVar[str] = "HealthCheck"

    certificate_inspector: CertificateInspector = field(
        default=inspect_certificate, repr=False
    )

    async def execute(self, context: TestExecutionContext) -> TestResultData:
        """Run the health check; failures are reported in the result."""
        probe_log = self.open_log(context)
        started = time.perf_counter()
        exchange: HttpExchange | None = None
        status: ProbeStatus = "passed"
        error: TestError | None = None

        try:
            probe_log.info(f"Starting health check for {context.config.name}")
            config = context.health_check

            exchange = await self.perform_request(context, config, probe_log)

            failure = self.validate(config, exchange, probe_log)
            if failure is not None:
                status = "failed"
                error = TestError(message=failure, code="VALIDATION_FAILED")

            probe_log.info(f"Health check completed with status: {status}")

        except Exception as exc:
            status = "failed"
            error = self.error_from_exception(exc, probe_log)
            probe_log.error(f"Health check failed: {error.message}", error_data(exc))

        result = exchange.result if exchange is not None else None
        return self.build_result(
            context,
            probe_log,
            started=started,
            status=status,
            error=error,
            metrics=self.collect_metrics(result),
            health_check_data=result,
        )

    async def perform_request(
        self,
        context: TestExecutionContext,
        config: HealthCheckConfig,
        probe_log: ProbeLog,
    ) -> HttpExchange:
        """Issue the request and decompose the response.

        Raises:
            ProbeTimeoutError: If the request exceeded ``config.timeout``
            NetworkError: If the endpoint could not be reached

        """
        headers = CIMultiDict({"User-Agent": context.environment.user_agent})
        headers.update(config.headers)
        request_kwargs: dict[str, Any] = {}
        if config.body is not None and config.method in BODY_METHODS:
            request_kwargs["data"] = json.dumps(config.body)
            headers["Content-Type"] = "application/json"

        probe_log.debug(
            f"Making {config.method} request to {config.url}",
            {"headers": sorted(headers)},
            source="network",
        )

        started = time.perf_counter()
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=config.timeout / 1000)
            ) as session:
                async with session.request(
                    config.method,
                    config.url,
                    headers=headers,
                    allow_redirects=config.follow_redirects,
                    max_redirects=self.settings.max_redirects,
                    ssl=config.validate_ssl,
                    **request_kwargs,
                ) as response:
                    raw = await response.read()
                    response_time = self.elapsed_ms(started)
                    status = response.status
                    status_text = response.reason or ""
                    response_headers = {
                        str(key): ", ".join(response.headers.getall(key))
                        for key in response.headers
                    }
                    charset = response.charset
                    redirects = redirect_chain(response)
        except TimeoutError as exc:
            message = f"Request to {config.url} timed out after {config.timeout}ms"
            probe_log.error(message, source="network")
            raise ProbeTimeoutError(message) from exc
        except aiohttp.ClientError as exc:
            probe_log.error(f"HTTP request failed: {exc}", source="network")
            raise NetworkError(f"Network request failed: {exc}") from exc

        probe_log.info(
            f"Received response: {status} {status_text} in {response_time}ms",
            source="network",
        )

        ssl_info: SslInfo | None = None
        if URL(config.url).scheme == "https":
            ssl_info = await self.extract_ssl_info(config, probe_log)

        text = decode_text(raw, charset)
        parsed = parse_body(text)
        if len(text) > MAX_BODY_SIZE:
            probe_log.debug(f"Response body truncated to {MAX_BODY_SIZE} characters")

        result = HealthCheckResult(
            url=config.url,
            method=config.method,
            status=status,
            status_text=status_text,
            response_time=response_time,
            response_size=response_size(response_headers, raw),
            headers=response_headers,
            body=body_for_storage(parsed, text),
            redirects=redirects,
            ssl_info=ssl_info,
            timing=approximate_timing(response_time),
        )
        return HttpExchange(result=result, body=parsed)

    async def extract_ssl_info(
        self, config: HealthCheckConfig, probe_log: ProbeLog
    ) -> SslInfo | None:
        """Inspect the endpoint certificate; failures only log a warning."""
        try:
            return await self.certificate_inspector(config.url, config.timeout / 1000)
        except Exception as exc:
            probe_log.warning("Failed to extract SSL information", error_data(exc))
            return None

    def validate(
        self,
        config: HealthCheckConfig,
        exchange: HttpExchange,
        probe_log: ProbeLog,
    ) -> str | None:
        """Check status and body expectations.

        Returns:
            The failure reason, or None when the response is acceptable

        """
        result = exchange.result

        if result.status not in config.expected_status:
            expected = " or ".join(str(code) for code in config.expected_status)
            message = f"Expected status {expected}, got {result.status}"
            probe_log.error(message)
            return message

        if config.expected_response is not None:
            mismatch = find_body_mismatch(exchange.body, config.expected_response)
            if mismatch is not None:
                probe_log.debug(f"Body mismatch at {mismatch}")
                message = "Response body does not match expected content"
                probe_log.error(message, {"mismatch": mismatch})
                return message

        # Slow but answered is not a failure.
        if result.response_time > config.timeout:
            probe_log.warning(
                f"Response time {result.response_time}ms exceeded timeout "
                f"{config.timeout}ms"
            )

        probe_log.info("Health check validation passed")
        return None

    @staticmethod
    def collect_metrics(result: HealthCheckResult | None) -> dict[str, int]:
        """Numeric facts for dashboards and aggregation."""
        if result is None:
            return {"redirectCount": 0}
        return {
            "responseTime": result.response_time,
            "responseSize": result.response_size,
            "redirectCount": len(result.redirects),
            "statusCode": result.status,
        }


def redirect_chain(response: aiohttp.ClientResponse) -> list[str]:
    """URLs visited after the initial request, ending with the final one."""
    if not response.history:
        return []
    return [str(hop.url) for hop in response.history[1:]] + [str(response.url)]


def response_size(headers: Mapping[str, str], raw: bytes) -> int:
    """Size from ``Content-Length`` when present, else the body length."""
    for key, value in headers.items():
        if key.lower() == "content-length":
            try:
                return int(value)
            except ValueError:
                break
    return len(raw)
