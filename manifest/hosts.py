"""
Outbound host allow-list for components.

Patterns look like ``scheme://host[:port]``. The host may be ``*`` or
``*.example.com``; the port may be ``*``, a number, or omitted when the
scheme has a well-known default. An empty allow-list permits nothing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

import requests

from manifest.errors import ManifestError

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "redis": 6379,
    "mysql": 3306,
    "postgres": 5432,
}

_PATTERN = re.compile(
    r"^(?P<scheme>\*|[a-z][a-z0-9+.-]*)://(?P<host>\*|(?:\*\.)?[A-Za-z0-9.-]+)(?::(?P<port>\*|\d{1,5}))?/?$"
)


class OutboundHostDenied(Exception):
    """Raised when a component contacts a host outside its allow-list."""
    pass


@dataclass(frozen=True)
class HostPattern:
    scheme: str
    host: str
    port: Optional[int]  # None means any port

    def matches(self, scheme: str, host: str, port: int) -> bool:
        if self.scheme != "*" and self.scheme != scheme:
            return False
        if self.port is not None and self.port != port:
            return False
        if self.host == "*":
            return True
        if self.host.startswith("*."):
            return host.endswith(self.host[1:])
        return host == self.host


def parse_host_pattern(pattern: str) -> HostPattern:
    """
    Parse an allow-list entry.

    Raises:
        ManifestError: If the pattern is malformed or omits a port the
            scheme has no default for
    """
    match = _PATTERN.match(pattern.strip())
    if not match:
        raise ManifestError(f"Invalid outbound host pattern: {pattern!r}")

    scheme = match.group("scheme")
    host = match.group("host").lower()
    port_text = match.group("port")

    if port_text == "*":
        port = None
    elif port_text:
        port = int(port_text)
        if not 0 < port < 65536:
            raise ManifestError(f"Invalid port in outbound host pattern: {pattern!r}")
    elif scheme in DEFAULT_PORTS:
        port = DEFAULT_PORTS[scheme]
    else:
        raise ManifestError(f"Outbound host pattern needs an explicit port: {pattern!r}")

    return HostPattern(scheme=scheme, host=host, port=port)


class OutboundHostPolicy:
    """Decides whether a component may contact a URL."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: List[HostPattern] = [parse_host_pattern(p) for p in patterns]

    def is_allowed(self, url: str) -> bool:
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        host = (parts.hostname or "").lower()
        if not scheme or not host:
            return False

        try:
            port = parts.port
        except ValueError:
            return False
        if port is None:
            port = DEFAULT_PORTS.get(scheme)
            if port is None:
                return False

        return any(pattern.matches(scheme, host, port) for pattern in self.patterns)

    def check(self, url: str):
        """Raise OutboundHostDenied unless the URL is allowed."""
        if not self.is_allowed(url):
            logger.warning(f"Blocked outbound request: url={url}")
            raise OutboundHostDenied(f"Destination not allowed: {url}")

    def session(self) -> requests.Session:
        """A requests session that checks every request, redirects included."""
        return _PolicySession(self)


class _PolicySession(requests.Session):

    def __init__(self, policy: OutboundHostPolicy):
        super().__init__()
        self.policy = policy

    def send(self, request, **kwargs):
        self.policy.check(request.url)
        return super().send(request, **kwargs)
