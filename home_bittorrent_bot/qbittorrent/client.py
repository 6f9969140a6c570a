"""qBittorrent Web API client for adding torrents.

qBittorrent uses cookie-based session authentication: the SID cookie issued
by /api/v2/auth/login is kept in the httpx cookie jar and sent with every
later request made by the same client instance.

Usage:
    async with QBittorrentClient("http://192.168.1.10:8080/") as client:
        await client.login("admin", "secret")
        await client.submit(MagnetSource("magnet:?xt=urn:btih:..."))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

import httpx
import structlog

from home_bittorrent_bot.qbittorrent.magnet import magnet_info_hash

logger = structlog.get_logger(__name__)

LOGIN_ENDPOINT = "/api/v2/auth/login"
ADD_TORRENT_ENDPOINT = "/api/v2/torrents/add"
VERSION_ENDPOINT = "/api/v2/app/version"

# Body qBittorrent returns when a torrent was accepted
SUCCESS_SENTINEL = "Ok."

TORRENT_FILENAME = "torrent.torrent"
TORRENT_MIME_TYPE = "application/x-bittorrent"


# ============================================================================
# Exceptions
# ============================================================================


class QBittorrentError(Exception):
    """Base exception for qBittorrent operations."""

    pass


class InvalidEndpointError(QBittorrentError):
    """Configured daemon address is not an absolute http(s) URL."""

    pass


class AuthenticationFailedError(QBittorrentError):
    """Login was refused or the daemon could not be reached."""

    pass


class SubmissionRejectedError(QBittorrentError):
    """The daemon did not accept a torrent.

    Attributes:
        status_code: HTTP status of the add request, if one was received.
        response_text: Raw response body, kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


# ============================================================================
# Torrent sources
# ============================================================================


class TorrentSource(ABC):
    """Something that can be added to qBittorrent as one multipart part."""

    field_name: ClassVar[str]

    @abstractmethod
    def to_multipart(self) -> dict[str, tuple[Any, ...]]:
        """Return the ``files`` mapping for httpx with exactly one part."""
        pass

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Short, log-safe description of the source."""
        pass


@dataclass(frozen=True)
class MagnetSource(TorrentSource):
    """A magnet link (or any URL qBittorrent can fetch)."""

    url: str

    field_name: ClassVar[str] = "urls"

    def to_multipart(self) -> dict[str, tuple[Any, ...]]:
        # No filename and no content type: a plain text part
        return {self.field_name: (None, self.url.encode("utf-8"))}

    def describe(self) -> dict[str, Any]:
        return {
            "kind": "magnet",
            "length": len(self.url),
            "info_hash": magnet_info_hash(self.url),
        }


@dataclass(frozen=True)
class TorrentFileSource(TorrentSource):
    """Raw contents of a .torrent file."""

    content: bytes

    field_name: ClassVar[str] = "torrents"

    def to_multipart(self) -> dict[str, tuple[Any, ...]]:
        return {self.field_name: (TORRENT_FILENAME, self.content, TORRENT_MIME_TYPE)}

    def describe(self) -> dict[str, Any]:
        return {"kind": "torrent_file", "size": len(self.content)}


# ============================================================================
# Client
# ============================================================================


def parse_endpoint(base_url: str) -> httpx.URL:
    """Parse and validate the daemon base URL.

    Raises:
        InvalidEndpointError: If the address is not an absolute http(s) URL.
    """
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidEndpointError(f"Invalid qBittorrent URL {base_url!r}: {e}") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidEndpointError(
            f"qBittorrent URL must be an absolute http(s) URL, got {base_url!r}"
        )
    return url


class QBittorrentClient:
    """Client for the qBittorrent Web API v2.

    One instance corresponds to one session with the daemon. The session is
    unauthenticated until login() succeeds.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize qBittorrent client.

        Args:
            base_url: Web UI base URL (e.g., http://192.168.1.10:8080/)
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport, mainly for tests

        Raises:
            InvalidEndpointError: If base_url is not an absolute http(s) URL.
        """
        self.base_url = parse_endpoint(base_url)
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._authenticated = False

    async def __aenter__(self) -> "QBittorrentClient":
        """Enter async context and open the HTTP transport."""
        # AsyncClient keeps a cookie jar for its whole lifetime
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: Any,
    ) -> None:
        """Exit async context and close client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._authenticated = False

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raising if not in context."""
        if self._client is None:
            raise RuntimeError("QBittorrentClient must be used as async context manager")
        return self._client

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def referer(self) -> str:
        """Base URL as sent in the Referer header of the login request."""
        referer = str(self.base_url)
        if self.base_url.path == "/" and not referer.endswith("/"):
            referer += "/"
        return referer

    def _url(self, endpoint: str) -> str:
        return str(self.base_url.join(endpoint))

    async def login(self, username: str, password: str) -> None:
        """Authenticate with qBittorrent and keep the session cookie.

        The daemon refuses logins without a Referer matching its own address.

        Raises:
            AuthenticationFailedError: On a non-success status or if the
                daemon cannot be reached.
        """
        try:
            response = await self.client.post(
                self._url(LOGIN_ENDPOINT),
                data={
                    "username": username,
                    "password": password,
                },
                headers={"Referer": self.referer},
            )
        except httpx.TimeoutException as e:
            raise AuthenticationFailedError("qBittorrent login timed out") from e
        except httpx.TransportError as e:
            raise AuthenticationFailedError(f"Failed to connect to qBittorrent: {e}") from e

        if not response.is_success:
            raise AuthenticationFailedError(
                f"qBittorrent authentication failed: {response.status_code}"
            )

        self._authenticated = True
        logger.debug("qbittorrent_authenticated", host=self.base_url.host)

    async def submit(self, source: TorrentSource) -> None:
        """Add a torrent to qBittorrent.

        The request counts as accepted only when the status is a success AND
        the body is exactly ``Ok.``.

        Raises:
            AuthenticationFailedError: If login() has not succeeded yet.
            SubmissionRejectedError: If the daemon did not accept the torrent.
        """
        if not self._authenticated:
            raise AuthenticationFailedError("Not logged in to qBittorrent")

        try:
            response = await self.client.post(
                self._url(ADD_TORRENT_ENDPOINT),
                files=source.to_multipart(),
            )
        except httpx.TimeoutException as e:
            raise SubmissionRejectedError("qBittorrent add request timed out") from e
        except httpx.TransportError as e:
            raise SubmissionRejectedError(f"Failed to connect to qBittorrent: {e}") from e

        text = response.text
        if not response.is_success:
            raise SubmissionRejectedError(
                f"Error adding torrent: {response.status_code} {text!r}",
                status_code=response.status_code,
                response_text=text,
            )

        if text != SUCCESS_SENTINEL:
            raise SubmissionRejectedError(
                f"Error adding torrent, expected {SUCCESS_SENTINEL!r} but got {text!r}",
                status_code=response.status_code,
                response_text=text,
            )

        logger.info("qbittorrent_torrent_added", **source.describe())

    async def query_version(self) -> str:
        """Get the qBittorrent application version, e.g. ``v4.6.2``.

        Raises:
            QBittorrentError: If the request fails.
        """
        try:
            response = await self.client.get(self._url(VERSION_ENDPOINT))
        except httpx.TransportError as e:
            raise QBittorrentError(f"Failed to connect to qBittorrent: {e}") from e

        if not response.is_success:
            raise QBittorrentError(f"qBittorrent version request failed: {response.status_code}")

        return response.text
