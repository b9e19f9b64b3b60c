"""URL checks applied before a job posting URL is handed to the agent.

The agent backend fetches the page itself, so this guards against handing
it internal addresses. Hostname resolution here can differ from the
backend's own resolution; the check is best effort.
"""

from __future__ import annotations

import ipaddress
import socket
from urllib.parse import urlparse


class SSRFError(ValueError):
    """Raised when a URL targets a private or internal address."""


_BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain"}

_BLOCKED_IPS = {
    ipaddress.ip_address("169.254.169.254"),  # cloud metadata
    ipaddress.ip_address("0.0.0.0"),
}


def _is_blocked(addr: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
    return (
        addr in _BLOCKED_IPS
        or addr.is_private
        or addr.is_loopback
        or addr.is_reserved
        or addr.is_link_local
    )


def validate_url(url: str, *, resolve: bool = True) -> str:
    """Return ``url`` if it is a public http(s) URL.

    Raises ValueError when malformed and SSRFError when it targets a
    blocked address. ``resolve=False`` skips DNS lookups.
    """
    parsed = urlparse(url.strip())

    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme!r}")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError(f"No hostname in URL: {url!r}")

    if hostname.lower() in _BLOCKED_HOSTNAMES:
        raise SSRFError(f"Blocked internal hostname: {hostname!r}")

    try:
        addr = ipaddress.ip_address(hostname)
    except ValueError:
        addr = None
    if addr is not None:
        if _is_blocked(addr):
            raise SSRFError(f"Blocked private/internal IP: {addr}")
        return url.strip()

    if not resolve:
        return url.strip()

    try:
        results = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise ValueError(f"Cannot resolve hostname {hostname!r}: {exc}") from exc

    for _family, _type, _proto, _canonname, sockaddr in results:
        resolved = ipaddress.ip_address(sockaddr[0])
        if _is_blocked(resolved):
            raise SSRFError(f"Hostname {hostname!r} resolves to blocked address: {resolved}")

    return url.strip()
