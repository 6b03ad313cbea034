"""Checked downloads for the demo video.

Only public HTTPS targets are fetched: no embedded credentials, no private,
loopback, link-local, multicast, or reserved addresses (checked both on DNS
resolution and on the connected peer). Redirects are followed manually so
every hop is validated, and the body is streamed into memory under a size cap.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from ipaddress import ip_address
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5
_REDIRECT_STATUSES = {301, 302, 303, 307, 308}
_BLOCKED_RANGES_MSG = (
    "private, loopback, link-local, multicast, and reserved addresses are not allowed"
)


class UrlPolicyError(Exception):
    """Raised when a URL or its response violates the download policy."""


def _is_blocked_ip(ip_str: str) -> bool:
    ip = ip_address(ip_str)
    return (
        ip.is_loopback or ip.is_private or ip.is_link_local
        or ip.is_multicast or ip.is_reserved
    )


async def _resolve_dns(hostname: str) -> list:
    """Resolve *hostname* on the event loop's resolver (non-blocking)."""
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(
        hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM,
    )


async def validate_url(url: str) -> None:
    """Reject non-HTTPS, credentialed, or internally-resolving URLs.

    Raises:
        UrlPolicyError: If any check fails.
    """
    parsed = urlparse(url)
    if parsed.scheme != "https":
        raise UrlPolicyError(f"Only HTTPS URLs are allowed, got '{parsed.scheme}://'")
    if parsed.username or parsed.password:
        raise UrlPolicyError("URLs with embedded credentials are not allowed")
    hostname = parsed.hostname
    if not hostname:
        raise UrlPolicyError("URL has no hostname")

    try:
        addr_infos = await _resolve_dns(hostname)
    except socket.gaierror as exc:
        raise UrlPolicyError(f"DNS resolution failed for '{hostname}': {exc}") from exc

    for *_, sockaddr in addr_infos:
        if _is_blocked_ip(sockaddr[0]):
            raise UrlPolicyError(
                f"URL resolves to blocked IP range ({sockaddr[0]}); {_BLOCKED_RANGES_MSG}"
            )


def _verify_peer_ip(response: httpx.Response) -> None:
    """Reject a response whose connected peer is in a blocked range (DNS rebinding)."""
    stream = response.extensions.get("network_stream")
    if stream is None:
        return
    peername = stream.get_extra_info("peername")
    if peername is None:
        return
    if _is_blocked_ip(peername[0]):
        raise UrlPolicyError(
            f"Peer IP {peername[0]} is in a blocked range; {_BLOCKED_RANGES_MSG}"
        )


async def fetch_checked(
    url: str,
    *,
    max_bytes: int,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """Download *url* into memory under the policy above.

    Args:
        url: HTTPS URL to fetch.
        max_bytes: Largest body accepted.
        timeout: Per-request httpx timeout in seconds.
        transport: Optional httpx transport (used by tests).

    Returns:
        The response body.

    Raises:
        UrlPolicyError: On a policy violation, too many redirects, or an
            oversized body.
        httpx.HTTPStatusError: On a non-success final status.
        httpx.HTTPError: On transport failures.
    """
    await validate_url(url)
    current_url = url
    redirects = 0

    async with httpx.AsyncClient(
        follow_redirects=False, timeout=timeout, transport=transport,
    ) as client:
        while True:
            async with client.stream("GET", current_url) as resp:
                _verify_peer_ip(resp)

                if resp.status_code in _REDIRECT_STATUSES:
                    location = resp.headers.get("location")
                    if not location:
                        raise UrlPolicyError(
                            f"Redirect response missing Location header (status {resp.status_code})"
                        )
                    if redirects >= MAX_REDIRECTS:
                        raise UrlPolicyError(f"Too many redirects (>{MAX_REDIRECTS})")
                    current_url = str(resp.url.join(location))
                    await validate_url(current_url)
                    redirects += 1
                    continue

                resp.raise_for_status()
                declared = resp.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > max_bytes:
                    raise UrlPolicyError(f"Response exceeds size limit ({max_bytes} bytes)")

                body = bytearray()
                async for chunk in resp.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > max_bytes:
                        raise UrlPolicyError(f"Response exceeds size limit ({max_bytes} bytes)")
                break

    logger.info("Downloaded %s (%d bytes, %d redirect(s))", url, len(body), redirects)
    return bytes(body)
