"""Helpers for inspecting magnet links."""

import base64
import binascii
from urllib.parse import parse_qs, urlsplit

MAGNET_PREFIX = "magnet:?"
BTIH_URN = "urn:btih:"


def is_magnet_link(text: str) -> bool:
    """Check whether text is a magnet URI (prefix match, case-sensitive)."""
    return text.startswith(MAGNET_PREFIX)


def magnet_display_name(magnet_link: str) -> str | None:
    """Get the URL-decoded ``dn`` (display name) parameter of a magnet link.

    Args:
        magnet_link: Magnet URI.

    Returns:
        Display name, or None if the link has none.
    """
    if not is_magnet_link(magnet_link):
        return None

    params = parse_qs(urlsplit(magnet_link).query)
    names = params.get("dn")
    if not names:
        return None
    return names[0].strip() or None


def magnet_info_hash(magnet_link: str) -> str | None:
    """Get the BitTorrent info hash of a magnet link as lowercase hex.

    Base32 hashes are converted to hex.

    Args:
        magnet_link: Magnet URI.

    Returns:
        Info hash, or None if the link has no decodable ``urn:btih:`` topic.
    """
    if not is_magnet_link(magnet_link):
        return None

    for topic in parse_qs(urlsplit(magnet_link).query).get("xt", []):
        if not topic.lower().startswith(BTIH_URN):
            continue
        value = topic[len(BTIH_URN) :]
        # 40 hex digits or 32 base32 characters
        if len(value) == 32:
            try:
                return base64.b32decode(value.upper()).hex()
            except binascii.Error:
                return None
        return value.lower() or None
    return None
