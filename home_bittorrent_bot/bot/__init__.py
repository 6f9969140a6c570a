"""Telegram bot module: allow-list gate, ingestion dispatch and handlers."""

from home_bittorrent_bot.bot import access, dispatch, files, handlers, main, shutdown

__all__ = ["access", "dispatch", "files", "handlers", "main", "shutdown"]
