"""Shared fixtures: a fake qBittorrent Web UI and Telegram message factories."""

from unittest.mock import MagicMock

import httpx
import pytest
from telegram import Chat, Document, Message, User

from home_bittorrent_bot.qbittorrent import QBittorrentClient

DAEMON_URL = "http://192.168.1.10:8080/"


class FakeDaemon:
    """In-memory qBittorrent Web UI served through httpx.MockTransport.

    Attributes:
        requests: Every request received, in order.
        login_status: Status returned by /api/v2/auth/login.
        add_status: Status returned by /api/v2/torrents/add.
        add_body: Body returned by /api/v2/torrents/add.
        version: Body returned by /api/v2/app/version.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.login_status = 200
        self.add_status = 200
        self.add_body = "Ok."
        self.version = "v4.6.2"
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/v2/auth/login":
            if self.login_status != 200:
                return httpx.Response(self.login_status, text="Forbidden")
            return httpx.Response(
                200,
                text="Ok.",
                headers={"set-cookie": "SID=session-123; HttpOnly; path=/"},
            )

        if path == "/api/v2/torrents/add":
            if "SID=session-123" not in request.headers.get("cookie", ""):
                return httpx.Response(403, text="Forbidden")
            return httpx.Response(self.add_status, text=self.add_body)

        if path == "/api/v2/app/version":
            return httpx.Response(200, text=self.version)

        return httpx.Response(404, text="Not Found")

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def client_factory(self, url: str, timeout: float = 30.0) -> QBittorrentClient:
        return QBittorrentClient(url, timeout=timeout, transport=self.transport)


@pytest.fixture
def daemon():
    """Create a fake qBittorrent daemon."""
    return FakeDaemon()


@pytest.fixture
def make_message():
    """Factory for mock Telegram messages."""

    def _make(
        user_id: int | None = 42,
        text: str | None = None,
        file_id: str | None = None,
        file_name: str | None = "ubuntu.torrent",
    ) -> MagicMock:
        message = MagicMock(spec=Message)
        message.message_id = 1
        message.chat_id = 67890

        chat = MagicMock(spec=Chat)
        chat.id = 67890
        message.chat = chat

        if user_id is None:
            message.from_user = None
        else:
            user = MagicMock(spec=User)
            user.id = user_id
            user.username = "testuser"
            message.from_user = user

        if file_id is None:
            message.document = None
        else:
            document = MagicMock(spec=Document)
            document.file_id = file_id
            document.file_name = file_name
            message.document = document

        message.text = text
        return message

    return _make
