"""Message handlers for the Telegram bot."""

import structlog
from telegram import Update
from telegram.ext import ContextTypes

from home_bittorrent_bot.bot.dispatch import IngestionDispatcher

logger = structlog.get_logger(__name__)

# Key of the IngestionDispatcher in Application.bot_data
DISPATCHER_KEY = "dispatcher"


async def message_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle text messages and document uploads.

    Magnet links and .torrent files from allowed users are sent to
    qBittorrent; everything else gets no reply.

    Args:
        update: Telegram update object
        context: Callback context
    """
    message = update.effective_message
    if message is None:
        return

    dispatcher: IngestionDispatcher = context.bot_data[DISPATCHER_KEY]
    result = await dispatcher.handle(message)

    logger.debug(
        "message_handled",
        status=result.status.value,
        chat_id=message.chat_id,
    )

    text = result.reply_text
    if text is None:
        return

    try:
        await message.reply_text(text)
    except Exception as e:
        logger.error("reply_failed", chat_id=message.chat_id, error=str(e))


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors that escape handlers.

    Nothing is sent to the chat: the sender may not be an allowed user.

    Args:
        update: Telegram update object (or None)
        context: Callback context containing error information
    """
    logger.error(
        "telegram_error",
        error=str(context.error),
        exc_info=context.error,
    )
