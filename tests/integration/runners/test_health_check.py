"""Integration tests for the health check runner."""

import asyncio
import logging

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from app_probe.models.result import SslInfo
from app_probe.runners.health_check import HealthCheckRunner
from app_probe.runners.health_check.validation import TRUNCATION_MARKER
from app_probe.testing.factories import TestExecutionContextFactory

HEALTH_URL = "http://status.example.com/health"


@pytest.fixture
def runner() -> HealthCheckRunner:
    """Create a health check runner with a test logger."""
    return HealthCheckRunner(logger=logging.getLogger("tests.health_check"))


class TestScenarios:
    """End-to-end health check outcomes."""

    async def test_healthy_endpoint_passes(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """A 200 with the expected body passes."""
        aioresponses.get(
            HEALTH_URL, status=200, payload={"status": "healthy", "version": "1.4.0"}
        )
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL,
            expected_status=[200],
            expected_response={"status": "healthy"},
        )

        result = await runner.execute(context)

        assert result.status == "passed"
        assert result.error is None
        assert result.test_run_id == context.test_run_id
        assert result.application_id == context.application_id
        data = result.health_check_data
        assert data is not None
        assert data.status == 200
        assert data.body == {"status": "healthy", "version": "1.4.0"}
        assert data.ssl_info is None
        assert data.timing.total == data.response_time
        assert result.metrics["statusCode"] == 200
        assert result.metrics["redirectCount"] == 0
        assert result.login_test_data is None

    async def test_server_error_fails_validation(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """A 500 fails with VALIDATION_FAILED and keeps the response."""
        aioresponses.get(HEALTH_URL, status=500, body="Internal Server Error")
        context = TestExecutionContextFactory.for_health_check(url=HEALTH_URL)

        result = await runner.execute(context)

        assert result.status == "failed"
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.message == "Expected status 200, got 500"
        assert result.health_check_data is not None
        assert result.health_check_data.body == "Internal Server Error"

    async def test_any_expected_status_is_accepted(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Any of several expected statuses passes."""
        aioresponses.get(HEALTH_URL, status=204)
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL, expected_status=[200, 204]
        )

        result = await runner.execute(context)

        assert result.status == "passed"

    async def test_body_mismatch(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """A body missing expected content fails validation."""
        aioresponses.get(HEALTH_URL, status=200, payload={"status": "degraded"})
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL, expected_response={"status": "healthy"}
        )

        result = await runner.execute(context)

        assert result.status == "failed"
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.message == "Response body does not match expected content"

    async def test_large_body_is_truncated(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Bodies over 10 KiB are stored truncated."""
        aioresponses.get(HEALTH_URL, status=200, body="x" * 20_000)
        context = TestExecutionContextFactory.for_health_check(url=HEALTH_URL)

        result = await runner.execute(context)

        assert result.health_check_data is not None
        body = result.health_check_data.body
        assert isinstance(body, str)
        assert body.endswith(TRUNCATION_MARKER)
        assert len(body) == 10 * 1024 + len(TRUNCATION_MARKER)


class TestTransportFailures:
    """Tests for requests that never produce a response."""

    async def test_timeout(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Timeouts are reported as TIMEOUT without response data."""
        aioresponses.get(HEALTH_URL, exception=asyncio.TimeoutError())
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL, timeout=1000
        )

        result = await runner.execute(context)

        assert result.status == "failed"
        assert result.error is not None
        assert result.error.code == "TIMEOUT"
        assert result.error.stack
        assert result.health_check_data is None
        assert result.metrics == {"redirectCount": 0}

    async def test_connection_refused(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Connection failures are reported as NETWORK_ERROR."""
        aioresponses.get(
            HEALTH_URL, exception=aiohttp.ClientConnectionError("Connection refused")
        )
        context = TestExecutionContextFactory.for_health_check(url=HEALTH_URL)

        result = await runner.execute(context)

        assert result.status == "failed"
        assert result.error is not None
        assert result.error.code == "NETWORK_ERROR"
        assert any(entry.level == "error" for entry in result.logs)


class TestRequest:
    """Tests for the outgoing request."""

    async def test_sends_headers_and_json_body(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """POST bodies are JSON encoded; custom headers are merged."""
        aioresponses.post(HEALTH_URL, status=200, payload={"ok": True})
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL,
            method="POST",
            headers={"X-Probe": "1"},
            body={"ping": True},
        )

        await runner.execute(context)

        call = aioresponses.requests[("POST", URL(HEALTH_URL))][0]
        assert call.kwargs["headers"]["X-Probe"] == "1"
        assert call.kwargs["headers"]["User-Agent"] == context.environment.user_agent
        assert call.kwargs["headers"]["Content-Type"] == "application/json"
        assert call.kwargs["data"] == '{"ping": true}'

    async def test_get_ignores_body(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Bodies are only sent for POST, PUT and PATCH."""
        aioresponses.get(HEALTH_URL, status=200)
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL, body={"ignored": True}
        )

        await runner.execute(context)

        call = aioresponses.requests[("GET", URL(HEALTH_URL))][0]
        assert "data" not in call.kwargs

    async def test_configured_headers_replace_defaults_case_insensitively(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Lowercase header names override the defaults instead of duplicating."""
        aioresponses.post(HEALTH_URL, status=200)
        context = TestExecutionContextFactory.for_health_check(
            url=HEALTH_URL,
            method="POST",
            headers={"user-agent": "custom-agent/2", "content-type": "text/plain"},
            body={"ping": True},
        )

        await runner.execute(context)

        headers = aioresponses.requests[("POST", URL(HEALTH_URL))][0].kwargs["headers"]
        assert headers.getall("User-Agent") == ["custom-agent/2"]
        assert headers.getall("Content-Type") == ["application/json"]

    async def test_transport_lines_are_network_logs(
        self, runner: HealthCheckRunner, aioresponses: aioresponses_cls
    ) -> None:
        """Request and response lines are attributed to the network source."""
        aioresponses.get(HEALTH_URL, status=200)
        context = TestExecutionContextFactory.for_health_check(url=HEALTH_URL)

        result = await runner.execute(context)

        network = [e.message for e in result.logs if e.source == "network"]
        assert network[0].startswith(f"Making GET request to {HEALTH_URL}")
        assert network[1].startswith("Received response: 200")
        assert all(
            e.source == "test-runner"
            for e in result.logs
            if e.message.startswith("Health check")
        )


class TestSslInfo:
    """Tests for certificate inspection of HTTPS endpoints."""

    async def test_certificate_is_reported(
        self, aioresponses: aioresponses_cls
    ) -> None:
        """HTTPS endpoints report the inspected certificate."""
        url = "https://status.example.com/health"
        aioresponses.get(url, status=200)
        inspected: list[str] = []

        async def inspector(target: str, timeout: float) -> SslInfo:
            inspected.append(target)
            return SslInfo(
                valid=True, issuer="Example CA", subject="status.example.com"
            )

        runner = HealthCheckRunner(certificate_inspector=inspector)
        context = TestExecutionContextFactory.for_health_check(url=url)

        result = await runner.execute(context)

        assert inspected == [url]
        assert result.health_check_data is not None
        assert result.health_check_data.ssl_info == SslInfo(
            valid=True, issuer="Example CA", subject="status.example.com"
        )

    async def test_inspection_failure_is_a_warning(
        self, aioresponses: aioresponses_cls
    ) -> None:
        """A failed inspection leaves ssl_info unset and still passes."""
        url = "https://status.example.com/health"
        aioresponses.get(url, status=200)

        async def inspector(target: str, timeout: float) -> SslInfo:
            raise ConnectionResetError("reset by peer")

        runner = HealthCheckRunner(certificate_inspector=inspector)
        context = TestExecutionContextFactory.for_health_check(url=url)

        result = await runner.execute(context)

        assert result.status == "passed"
        assert result.health_check_data is not None
        assert result.health_check_data.ssl_info is None
        assert any(
            "SSL" in entry.message and entry.level == "warn"
            for entry in result.logs
        )
