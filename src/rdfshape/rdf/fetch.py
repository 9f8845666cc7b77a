"""
URL fetching for data, schema and shape map sources.

Remote content is always fetched in full before it is parsed, so a network
failure (NetworkError) stays distinguishable from a parse failure. Fetches
are never retried: one failed request surfaces immediately.

Classes:
    URLValidator: Scheme and private-address checks on client-supplied URLs
    UrlFetcher: requests-based GET with timeout and size limit
"""

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import urlparse

import requests

from ..cancellation import CancellationToken
from ..config import ServiceConfig
from ..errors import NetworkError

logger = logging.getLogger(__name__)


class URLValidator:
    """
    SSRF protection for client-supplied URLs.

    Usage:
        URLValidator.validate_url("https://example.org/data.ttl")
        URLValidator.validate_url(url, allow_private_ips=False)
    """

    DEFAULT_ALLOWED_SCHEMES = ("http", "https")

    @staticmethod
    def _is_private_address(address: str) -> bool:
        try:
            ip = ipaddress.ip_address(address)
        except ValueError:
            return False
        return (
            ip.is_private or ip.is_loopback or ip.is_link_local
            or ip.is_multicast or ip.is_reserved or ip.is_unspecified
        )

    @classmethod
    def _is_private_host(cls, hostname: str) -> bool:
        """Check whether a host is, or resolves to, a private address."""
        if cls._is_private_address(hostname):
            return True
        try:
            info = socket.getaddrinfo(hostname, None)
        except socket.gaierror:
            # Unresolvable hosts fail later in the fetch itself.
            logger.warning(f"Could not resolve hostname: {hostname}")
            return False
        return any(cls._is_private_address(sockaddr[0]) for _, _, _, _, sockaddr in info)

    @classmethod
    def validate_url(
        cls,
        url: str,
        allowed_schemes: Optional[Sequence[str]] = None,
        allow_private_ips: bool = True,
    ) -> str:
        """
        Validate a URL before fetching it.

        Args:
            url: URL to validate.
            allowed_schemes: Accepted schemes (default http and https).
            allow_private_ips: Accept hosts resolving to private addresses.

        Returns:
            The stripped URL.

        Raises:
            NetworkError: If the URL is malformed or not allowed.
        """
        if not isinstance(url, str) or not url.strip():
            raise NetworkError(str(url), "URL cannot be empty")
        url = url.strip()
        parsed = urlparse(url)
        schemes = tuple(allowed_schemes or cls.DEFAULT_ALLOWED_SCHEMES)
        if parsed.scheme.lower() not in schemes:
            raise NetworkError(
                url,
                f"Scheme '{parsed.scheme}' not allowed. Allowed schemes: {', '.join(schemes)}",
            )
        if not parsed.hostname:
            raise NetworkError(url, "URL has no host")
        if not allow_private_ips and cls._is_private_host(parsed.hostname):
            raise NetworkError(url, f"Access to private address '{parsed.hostname}' is not allowed")
        return url


@dataclass(frozen=True)
class FetchedContent:
    """Body and media type of a fetched resource."""
    url: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode('utf-8', errors='replace')


class UrlFetcher:
    """
    GET remote resources with requests, mapping failures to NetworkError.

    Example:
        >>> fetcher = UrlFetcher(ServiceConfig())
        >>> fetched = fetcher.fetch("https://example.org/data.ttl", accept="text/turtle")
        >>> fetched.text
    """

    def __init__(self, config: Optional[ServiceConfig] = None):
        self._config = config or ServiceConfig()

    def fetch(
        self,
        url: str,
        accept: Optional[str] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> FetchedContent:
        """
        Fetch a URL in full.

        Args:
            url: URL to fetch.
            accept: Optional media type sent in the Accept header.
            cancellation_token: Checked before the request is sent.

        Returns:
            FetchedContent with the response body.

        Raises:
            NetworkError: On invalid URL, connection failure, timeout,
                HTTP error status or oversized body.
            OperationCancelledException: If the request was cancelled.
        """
        url = URLValidator.validate_url(
            url,
            allowed_schemes=self._config.allowed_url_schemes,
            allow_private_ips=self._config.allow_private_ips,
        )
        if cancellation_token:
            cancellation_token.throw_if_cancelled(f"fetch {url}")

        headers = {"Accept": accept} if accept else {}
        timeout = self._config.fetch_timeout
        try:
            logger.debug(f"Fetching {url}")
            response = requests.get(url, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout:
            logger.error(f"Fetch of {url} timed out after {timeout}s")
            raise NetworkError(url, f"timed out after {timeout} seconds")
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error fetching {url}: {e}")
            raise NetworkError(url, f"connection failed: {e}")
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error fetching {url}: {e}")
            raise NetworkError(url, f"request failed: {e}")

        if response.status_code >= 400:
            raise NetworkError(
                url,
                f"HTTP {response.status_code} {response.reason or ''}".strip(),
                status_code=response.status_code,
            )

        content = response.content or b""
        if len(content) > self._config.max_fetch_bytes:
            raise NetworkError(
                url,
                f"response of {len(content)} bytes exceeds limit of "
                f"{self._config.max_fetch_bytes} bytes",
            )
        logger.debug(f"Fetched {len(content)} bytes from {url}")
        return FetchedContent(url, content, response.headers.get("Content-Type"))
