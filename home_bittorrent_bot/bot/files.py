"""Download Telegram attachments through the Bot API file endpoint."""

import httpx
import structlog
from telegram import Bot
from telegram.error import TelegramError

logger = structlog.get_logger(__name__)


class FetchError(Exception):
    """An attachment could not be downloaded from Telegram."""

    pass


async def fetch_attachment(bot: Bot, file_id: str) -> bytes:
    """Download the contents of an attachment.

    Args:
        bot: Telegram bot used to resolve and download the file
        file_id: Opaque Telegram file id

    Returns:
        File contents

    Raises:
        FetchError: If the file cannot be resolved or downloaded.
    """
    try:
        telegram_file = await bot.get_file(file_id)
        if not telegram_file.file_path:
            raise FetchError(f"Telegram returned no file path for {file_id}")

        data = await telegram_file.download_as_bytearray()
    except TelegramError as e:
        raise FetchError(f"Telegram file request failed: {e}") from e
    except httpx.HTTPError as e:
        raise FetchError(f"File download failed: {e}") from e

    logger.info("attachment_downloaded", file_id=file_id, size=len(data))
    return bytes(data)
