"""qBittorrent endpoint discovery.

When the bot runs in a container next to qBittorrent on the host, the Web UI
is reachable through the container's default gateway. An explicitly
configured URL always takes precedence.
"""

import socket
import struct
from pathlib import Path

import structlog

from home_bittorrent_bot.config import ConfigurationError

logger = structlog.get_logger(__name__)

DOCKERENV_PATH = Path("/.dockerenv")
CGROUP_PATH = Path("/proc/1/cgroup")
ROUTE_TABLE_PATH = Path("/proc/net/route")

CONTAINER_MARKERS = ("docker", "containerd", "kubepods", "lxc", "podman")

# RTF_GATEWAY flag from linux/route.h
RTF_GATEWAY = 0x2


def is_running_in_container(
    dockerenv_path: Path = DOCKERENV_PATH,
    cgroup_path: Path = CGROUP_PATH,
) -> bool:
    """Detect whether the process runs inside a container."""
    if dockerenv_path.exists():
        return True

    try:
        cgroup = cgroup_path.read_text()
    except OSError:
        return False
    return any(marker in cgroup for marker in CONTAINER_MARKERS)


def default_gateway(route_table_path: Path = ROUTE_TABLE_PATH) -> str | None:
    """Read the IPv4 default gateway from the kernel routing table.

    Returns:
        Gateway address in dotted notation, or None if there is no default route.
    """
    try:
        lines = route_table_path.read_text().splitlines()
    except OSError as e:
        logger.warning("route_table_unreadable", path=str(route_table_path), error=str(e))
        return None

    for line in lines[1:]:
        fields = line.split()
        if len(fields) < 4:
            continue
        destination, gateway, flags = fields[1], fields[2], fields[3]
        try:
            if destination != "00000000" or not int(flags, 16) & RTF_GATEWAY:
                continue
            # /proc/net/route stores addresses as little-endian hex
            return socket.inet_ntoa(struct.pack("<L", int(gateway, 16)))
        except (ValueError, struct.error):
            continue

    return None


def resolve_daemon_url(
    url: str | None,
    port: int,
    in_container: bool | None = None,
    route_table_path: Path = ROUTE_TABLE_PATH,
) -> str:
    """Decide which qBittorrent Web UI address to use.

    Args:
        url: Explicitly configured URL, if any.
        port: Web UI port used for a discovered gateway.
        in_container: Override container detection (detected when None).
        route_table_path: Routing table to read the gateway from.

    Returns:
        Base URL of the qBittorrent Web UI.

    Raises:
        ConfigurationError: If no URL is configured and none can be discovered.
    """
    if url:
        return url

    if in_container is None:
        in_container = is_running_in_container()

    if not in_container:
        raise ConfigurationError(
            "qBittorrent URL is not configured and the bot is not running in a container"
        )

    gateway = default_gateway(route_table_path)
    if gateway is None:
        raise ConfigurationError("qBittorrent URL is not configured and no default gateway found")

    discovered = f"http://{gateway}:{port}/"
    logger.info("qbittorrent_url_discovered", url=discovered)
    return discovered
