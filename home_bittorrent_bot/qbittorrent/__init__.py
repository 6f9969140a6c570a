"""qBittorrent integration module.

Provides a session-authenticated client for the qBittorrent Web API v2
and helpers for magnet links.
"""

from home_bittorrent_bot.qbittorrent.client import (
    AuthenticationFailedError,
    InvalidEndpointError,
    MagnetSource,
    QBittorrentClient,
    QBittorrentError,
    SubmissionRejectedError,
    TorrentFileSource,
    TorrentSource,
)
from home_bittorrent_bot.qbittorrent.magnet import (
    is_magnet_link,
    magnet_display_name,
    magnet_info_hash,
)

__all__ = [
    "QBittorrentClient",
    "QBittorrentError",
    "InvalidEndpointError",
    "AuthenticationFailedError",
    "SubmissionRejectedError",
    "TorrentSource",
    "MagnetSource",
    "TorrentFileSource",
    "is_magnet_link",
    "magnet_display_name",
    "magnet_info_hash",
]
