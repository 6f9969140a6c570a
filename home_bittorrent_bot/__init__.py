"""Telegram bot that adds magnet links and .torrent files to qBittorrent."""

__version__ = "0.1.0"
