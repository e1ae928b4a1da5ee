"""
URL Validator - keep feed and article fetches off internal networks.

Feed URLs are user-supplied and article URLs come from third-party feeds,
so both are checked before any request is made.
"""

import ipaddress
import socket
from urllib.parse import urlparse


class SSRFError(Exception):
    """Raised when a URL points at a scheme or host we refuse to fetch."""
    pass


ALLOWED_SCHEMES = {"http", "https"}

BLOCKED_HOSTNAMES = {
    "localhost",
    "localhost.localdomain",
    "ip6-localhost",
    "ip6-loopback",
    "metadata",
    "metadata.google.internal",
}

BLOCKED_SUFFIXES = (".local", ".internal", ".localhost")


def is_ip_blocked(ip_str: str) -> bool:
    """Check if an IP address is private, loopback, link-local or reserved."""
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
        or ip.is_unspecified
    )


def validate_url(url: str, resolve_dns: bool = True) -> str:
    """
    Validate a URL before fetching it.

    Args:
        url: The URL to validate
        resolve_dns: Whether to resolve the hostname and check its addresses

    Returns:
        The URL unchanged

    Raises:
        SSRFError: If the URL fails validation
    """
    parsed = urlparse(url)

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise SSRFError(f"URL scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not parsed.hostname:
        raise SSRFError("URL must include a hostname")

    hostname = parsed.hostname.lower()

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(BLOCKED_SUFFIXES):
        raise SSRFError(f"Access to '{hostname}' is not allowed")

    try:
        literal_ip = ipaddress.ip_address(hostname)
    except ValueError:
        literal_ip = None

    if literal_ip is not None:
        if is_ip_blocked(str(literal_ip)):
            raise SSRFError(f"Access to IP address '{literal_ip}' is not allowed")
        return url

    if resolve_dns:
        try:
            addrinfo = socket.getaddrinfo(hostname, parsed.port or 80, proto=socket.IPPROTO_TCP)
        except (socket.gaierror, UnicodeError):
            # Unresolvable hosts fail at fetch time with a transport error
            return url
        for _, _, _, _, sockaddr in addrinfo:
            if is_ip_blocked(sockaddr[0]):
                raise SSRFError(
                    f"Hostname '{hostname}' resolves to blocked IP address '{sockaddr[0]}'"
                )

    return url

