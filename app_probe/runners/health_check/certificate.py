"""TLS certificate inspection for HTTPS health endpoints."""

import asyncio
import contextlib
import ssl
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from yarl import URL

from app_probe.models.result import SslInfo

type CertificateInspector = Callable[[str, float], Awaitable[SslInfo]]


async def inspect_certificate(url: str, timeout: float) -> SslInfo:
    """Fetch the peer certificate of an HTTPS URL.

    A certificate that fails verification is reported with ``valid=False``
    instead of raising; connection problems propagate to the caller.

    Args:
        url: HTTPS URL whose host and port are inspected
        timeout: Connection timeout in seconds

    Returns:
        Certificate metadata

    """
    parsed = URL(url)
    if not parsed.host:
        raise ValueError(f"URL has no host: {url}")
    host = parsed.host
    port = parsed.port or 443

    try:
        cert = await fetch_peer_certificate(
            host, port, ssl.create_default_context(), timeout
        )
    except ssl.SSLCertVerificationError:
        return SslInfo(valid=False)

    info = certificate_info(cert)
    now = datetime.now(timezone.utc)
    in_window = (info.valid_from is None or info.valid_from <= now) and (
        info.expires is None or now <= info.expires
    )
    return info.model_copy(update={"valid": in_window})


async def fetch_peer_certificate(
    host: str, port: int, context: ssl.SSLContext, timeout: float
) -> dict[str, Any]:
    """Open a TLS connection and return the decoded peer certificate."""
    _, writer = await asyncio.wait_for(
        asyncio.open_connection(host, port, ssl=context, server_hostname=host),
        timeout,
    )
    try:
        cert: dict[str, Any] = writer.get_extra_info("peercert") or {}
        return cert
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()


def certificate_info(cert: dict[str, Any]) -> SslInfo:
    """Extract issuer, subject and validity window from ``getpeercert()``."""
    issuer = _name_fields(cert.get("issuer", ()))
    subject = _name_fields(cert.get("subject", ()))
    return SslInfo(
        valid=True,
        issuer=issuer.get("organizationName") or issuer.get("commonName"),
        subject=subject.get("commonName"),
        valid_from=_cert_time(cert.get("notBefore")),
        expires=_cert_time(cert.get("notAfter")),
    )


def _name_fields(rdns: Any) -> dict[str, str]:
    return {key: value for rdn in rdns for key, value in rdn}


def _cert_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(ssl.cert_time_to_seconds(value), tz=timezone.utc)
