"""Main entry point for the Telegram bot.

Builds the application from settings and runs it in polling mode until
an allowed user sends the shutdown phrase or the process is interrupted.
"""

import asyncio
import functools
import sys
from typing import NoReturn

from telegram import Update
from telegram.ext import Application, MessageHandler, filters

from home_bittorrent_bot.bot.access import AccessGate, parse_allowed_user_ids
from home_bittorrent_bot.bot.dispatch import DaemonSettings, IngestionDispatcher
from home_bittorrent_bot.bot.files import fetch_attachment
from home_bittorrent_bot.bot.handlers import DISPATCHER_KEY, error_handler, message_handler
from home_bittorrent_bot.bot.shutdown import ShutdownSignal
from home_bittorrent_bot.config import ConfigurationError, Settings, get_settings
from home_bittorrent_bot.discovery import resolve_daemon_url
from home_bittorrent_bot.logger import configure_logging, get_logger
from home_bittorrent_bot.qbittorrent import InvalidEndpointError

logger = get_logger(__name__)


def create_application(settings: Settings, daemon_url: str) -> Application:
    """Create and configure the Telegram bot application.

    Args:
        settings: Loaded settings
        daemon_url: qBittorrent Web UI base URL

    Returns:
        Configured Application instance with the dispatcher in bot_data

    Raises:
        InvalidEndpointError: If daemon_url is not an absolute http(s) URL.
    """
    logger.info("creating_application", environment=settings.environment)

    application = (
        Application.builder()
        .token(settings.bot_token.get_secret_value())
        .concurrent_updates(True)
        .build()
    )

    gate = AccessGate(
        parse_allowed_user_ids(settings.user_id),
        shutdown_phrase=settings.shutdown_phrase,
    )
    dispatcher = IngestionDispatcher(
        gate,
        DaemonSettings(
            url=daemon_url,
            username=settings.username,
            password=settings.password.get_secret_value(),
            timeout=settings.request_timeout,
        ),
        fetch_file=functools.partial(fetch_attachment, application.bot),
        shutdown=ShutdownSignal(),
    )
    application.bot_data[DISPATCHER_KEY] = dispatcher

    application.add_handler(MessageHandler(filters.TEXT | filters.Document.ALL, message_handler))
    application.add_error_handler(error_handler)

    logger.info("application_created", allowed_users=len(gate.allowed_user_ids))

    return application


async def run_polling(application: Application, poll_interval: float = 1.0) -> None:
    """Run the bot in polling mode until shutdown is requested.

    Args:
        application: The bot application instance
        poll_interval: Seconds between shutdown flag checks
    """
    dispatcher: IngestionDispatcher = application.bot_data[DISPATCHER_KEY]

    await application.initialize()
    await application.start()
    await application.updater.start_polling(
        allowed_updates=[Update.MESSAGE],
        drop_pending_updates=True,
    )

    logger.info("bot_started_polling", mode="polling")

    try:
        await dispatcher.check_daemon()
        await dispatcher.shutdown.wait(poll_interval)
        logger.info("bot_stopping", reason="shutdown_phrase")
    except (KeyboardInterrupt, SystemExit):
        logger.info("bot_stopping", reason="user_interrupt")
    finally:
        await application.updater.stop()
        await application.stop()
        await application.shutdown()
        logger.info("bot_stopped")


async def main_async() -> None:
    """Main async entry point for the bot."""
    settings = get_settings()
    configure_logging(
        settings.log_level,
        json_output=settings.is_production,
        secrets=(settings.bot_token.get_secret_value(), settings.password.get_secret_value()),
    )

    logger.info("bot_starting", settings=settings.get_safe_dict())

    daemon_url = resolve_daemon_url(settings.url, settings.daemon_port)
    application = create_application(settings, daemon_url)

    await run_polling(application, poll_interval=settings.shutdown_poll_interval)


def main() -> NoReturn:
    """Main entry point for the bot.

    Configuration problems abort the process with exit status 1.
    """
    configure_logging()

    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        logger.info("bot_interrupted")
        sys.exit(0)
    except (ConfigurationError, InvalidEndpointError) as e:
        logger.error("startup_failed", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception("bot_crashed", error=str(e))
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
