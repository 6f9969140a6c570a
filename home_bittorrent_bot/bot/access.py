"""Allow-list check and payload classification for incoming messages.

Messages from users outside the allow-list are dropped without a reply so
the bot does not reveal itself to strangers.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import structlog
from telegram import Message

from home_bittorrent_bot.qbittorrent.magnet import is_magnet_link

logger = structlog.get_logger(__name__)


class PayloadKind(str, Enum):
    """What an incoming message asks the bot to do."""

    MAGNET_LINK = "magnet_link"
    TORRENT_FILE = "torrent_file"
    SHUTDOWN = "shutdown"
    IGNORED = "ignored"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Classification:
    """Result of running a message through the gate.

    Attributes:
        kind: Payload kind.
        user_id: Sender id, if the message had a sender.
        magnet_link: Message text for MAGNET_LINK.
        file_id: Telegram file id for TORRENT_FILE.
        file_name: Original attachment name for TORRENT_FILE, if known.
    """

    kind: PayloadKind
    user_id: int | None = None
    magnet_link: str | None = None
    file_id: str | None = None
    file_name: str | None = None


def parse_allowed_user_ids(raw: str) -> frozenset[int]:
    """Parse the comma-separated allow-list from configuration.

    Entries that are not integers are dropped with a warning; empty entries
    (e.g. from a trailing comma) are skipped.

    Args:
        raw: Configuration value such as ``"42, 1337"``.

    Returns:
        Set of allowed Telegram user ids.
    """
    allowed: set[int] = set()
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            allowed.add(int(entry))
        except ValueError:
            logger.warning("allow_list_entry_invalid", entry=entry)

    logger.info("allowed_user_ids", user_ids=sorted(allowed))
    return frozenset(allowed)


class AccessGate:
    """Decides whether a message may trigger an ingestion and what kind.

    The allow-list is fixed at construction and safe to share between
    concurrently running handlers.
    """

    def __init__(self, allowed_user_ids: Iterable[int], shutdown_phrase: str | None = None):
        self._allowed_user_ids = frozenset(allowed_user_ids)
        self._shutdown_phrase = shutdown_phrase

    @property
    def allowed_user_ids(self) -> frozenset[int]:
        return self._allowed_user_ids

    def is_allowed(self, user_id: int | None) -> bool:
        return user_id is not None and user_id in self._allowed_user_ids

    def classify(self, message: Message) -> Classification:
        """Classify a message.

        Args:
            message: Incoming Telegram message

        Returns:
            Classification with REJECTED for unknown senders.
        """
        user = message.from_user
        user_id = user.id if user else None

        if not self.is_allowed(user_id):
            logger.debug("message_rejected", user_id=user_id)
            return Classification(kind=PayloadKind.REJECTED, user_id=user_id)

        document = message.document
        if document is not None:
            return Classification(
                kind=PayloadKind.TORRENT_FILE,
                user_id=user_id,
                file_id=document.file_id,
                file_name=document.file_name,
            )

        text = message.text
        if not text:
            return Classification(kind=PayloadKind.IGNORED, user_id=user_id)

        if self._shutdown_phrase and text.strip() == self._shutdown_phrase:
            return Classification(kind=PayloadKind.SHUTDOWN, user_id=user_id)

        if is_magnet_link(text):
            return Classification(kind=PayloadKind.MAGNET_LINK, user_id=user_id, magnet_link=text)

        return Classification(kind=PayloadKind.IGNORED, user_id=user_id)
