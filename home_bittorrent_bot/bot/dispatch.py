"""Ingestion dispatch: from an incoming message to a torrent in qBittorrent.

Each message is handled on its own: the gate classifies it, attachments are
downloaded, then a fresh qBittorrent session is opened, logged in and used
for exactly one submission. Every failure is logged here and turned into an
IngestionResult; nothing about the daemon is shown to the chat user.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog
from telegram import Message

from home_bittorrent_bot.bot.access import AccessGate, Classification, PayloadKind
from home_bittorrent_bot.bot.files import FetchError
from home_bittorrent_bot.bot.shutdown import ShutdownSignal
from home_bittorrent_bot.qbittorrent import (
    AuthenticationFailedError,
    MagnetSource,
    QBittorrentClient,
    QBittorrentError,
    SubmissionRejectedError,
    TorrentFileSource,
    TorrentSource,
    magnet_display_name,
)
from home_bittorrent_bot.qbittorrent.client import parse_endpoint

logger = structlog.get_logger(__name__)

FileFetcher = Callable[[str], Awaitable[bytes]]
ClientFactory = Callable[..., QBittorrentClient]


class IngestionStatus(str, Enum):
    """Terminal state of handling one message."""

    ENQUEUED = "enqueued"
    FETCH_FAILED = "fetch_failed"
    SUBMISSION_FAILED = "submission_failed"
    IGNORED = "ignored"
    REJECTED = "rejected"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of handling one message.

    Attributes:
        status: Terminal state.
        name: Torrent display name for the acknowledgment, if known.
    """

    status: IngestionStatus
    name: str | None = None

    @property
    def reply_text(self) -> str | None:
        """Text to send back to the chat, or None to stay silent."""
        if self.status == IngestionStatus.ENQUEUED:
            if self.name:
                return f"✅Торрент {self.name} добавлен в очередь"
            return "✅Торрент добавлен в очередь"
        if self.status == IngestionStatus.FETCH_FAILED:
            return "⛔Не удалось загрузить файл torrent"
        if self.status == IngestionStatus.SUBMISSION_FAILED:
            return "⛔Ошибка добавления торрента, смотри логи"
        if self.status == IngestionStatus.SHUTDOWN:
            return "👋Останавливаюсь"
        return None


@dataclass(frozen=True)
class DaemonSettings:
    """Where and as whom to log in to qBittorrent."""

    url: str
    username: str
    password: str = field(repr=False)
    timeout: float = 30.0


class IngestionDispatcher:
    """Runs the gate → fetch → login → submit pipeline for single messages.

    Holds no per-request state, so one instance serves concurrent handlers.
    """

    def __init__(
        self,
        gate: AccessGate,
        daemon: DaemonSettings,
        fetch_file: FileFetcher,
        shutdown: ShutdownSignal | None = None,
        client_factory: ClientFactory = QBittorrentClient,
    ):
        """Initialize the dispatcher.

        Args:
            gate: Allow-list gate
            daemon: qBittorrent endpoint and credentials
            fetch_file: Coroutine function returning attachment bytes by file id
            shutdown: Signal set by the shutdown phrase
            client_factory: Builds a client from (url, timeout=...)

        Raises:
            InvalidEndpointError: If the daemon URL is not an absolute http(s) URL.
        """
        parse_endpoint(daemon.url)
        self._gate = gate
        self._daemon = daemon
        self._fetch_file = fetch_file
        self._shutdown = shutdown or ShutdownSignal()
        self._client_factory = client_factory

    @property
    def gate(self) -> AccessGate:
        return self._gate

    @property
    def shutdown(self) -> ShutdownSignal:
        return self._shutdown

    def _new_client(self) -> QBittorrentClient:
        return self._client_factory(self._daemon.url, timeout=self._daemon.timeout)

    async def handle(self, message: Message) -> IngestionResult:
        """Handle one incoming message.

        Args:
            message: Telegram message

        Returns:
            IngestionResult describing what happened.
        """
        classification = self._gate.classify(message)

        if classification.kind == PayloadKind.REJECTED:
            return IngestionResult(IngestionStatus.REJECTED)

        if classification.kind == PayloadKind.IGNORED:
            return IngestionResult(IngestionStatus.IGNORED)

        if classification.kind == PayloadKind.SHUTDOWN:
            first = self._shutdown.request_shutdown()
            logger.info(
                "shutdown_requested",
                user_id=classification.user_id,
                already_requested=not first,
            )
            return IngestionResult(IngestionStatus.SHUTDOWN)

        if classification.kind == PayloadKind.TORRENT_FILE:
            return await self._handle_torrent_file(classification)

        source = MagnetSource(classification.magnet_link or "")
        return await self.ingest(
            source,
            user_id=classification.user_id,
            name=magnet_display_name(source.url),
        )

    async def _handle_torrent_file(self, classification: Classification) -> IngestionResult:
        try:
            content = await self._fetch_file(classification.file_id or "")
        except FetchError as e:
            logger.error(
                "attachment_fetch_failed",
                user_id=classification.user_id,
                file_id=classification.file_id,
                error=str(e),
            )
            return IngestionResult(IngestionStatus.FETCH_FAILED)
        except Exception as e:
            logger.exception(
                "attachment_fetch_unexpected_error",
                user_id=classification.user_id,
                error=str(e),
            )
            return IngestionResult(IngestionStatus.FETCH_FAILED)

        return await self.ingest(
            TorrentFileSource(content),
            user_id=classification.user_id,
            name=classification.file_name,
        )

    async def ingest(
        self,
        source: TorrentSource,
        user_id: int | None = None,
        name: str | None = None,
    ) -> IngestionResult:
        """Open a fresh session, log in and submit one torrent.

        A failed login means submit is never attempted.

        Args:
            source: Magnet link or torrent file
            user_id: Requesting Telegram user, for logs
            name: Display name for the acknowledgment

        Returns:
            ENQUEUED or SUBMISSION_FAILED result.
        """
        log = logger.bind(user_id=user_id, **source.describe())

        try:
            async with self._new_client() as client:
                await client.login(self._daemon.username, self._daemon.password)
                log.debug("qbittorrent_logged_in")
                await client.submit(source)

        except AuthenticationFailedError as e:
            log.error("qbittorrent_login_failed", error=str(e))
            return IngestionResult(IngestionStatus.SUBMISSION_FAILED)
        except SubmissionRejectedError as e:
            log.error(
                "torrent_submission_rejected",
                error=str(e),
                status_code=e.status_code,
                response_text=e.response_text,
            )
            return IngestionResult(IngestionStatus.SUBMISSION_FAILED)
        except QBittorrentError as e:
            log.error("torrent_submission_failed", error=str(e))
            return IngestionResult(IngestionStatus.SUBMISSION_FAILED)
        except Exception as e:
            log.exception("torrent_submission_unexpected_error", error=str(e))
            return IngestionResult(IngestionStatus.SUBMISSION_FAILED)

        log.info("torrent_enqueued", torrent_name=name)
        return IngestionResult(IngestionStatus.ENQUEUED, name=name)

    async def check_daemon(self) -> str | None:
        """Log in once and read the qBittorrent version.

        Used at startup for operator visibility; failures are logged, not raised.

        Returns:
            Version string, or None if the daemon could not be queried.
        """
        try:
            async with self._new_client() as client:
                await client.login(self._daemon.username, self._daemon.password)
                version = await client.query_version()
        except QBittorrentError as e:
            logger.warning("qbittorrent_check_failed", error=str(e))
            return None

        logger.info("qbittorrent_available", version=version)
        return version
