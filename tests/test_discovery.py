"""Tests for qBittorrent endpoint discovery."""

import pytest

from home_bittorrent_bot.config import ConfigurationError
from home_bittorrent_bot.discovery import (
    default_gateway,
    is_running_in_container,
    resolve_daemon_url,
)

ROUTE_TABLE = (
    "Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\t\tMTU\tWindow\tIRTT\n"
    "eth0\t000011AC\t00000000\t0001\t0\t0\t0\t0000FFFF\t0\t0\t0\n"
    "eth0\t00000000\t010011AC\t0003\t0\t0\t0\t00000000\t0\t0\t0\n"
)

ROUTE_TABLE_NO_DEFAULT = (
    "Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\t\tMTU\tWindow\tIRTT\n"
    "eth0\t000011AC\t00000000\t0001\t0\t0\t0\t0000FFFF\t0\t0\t0\n"
)


@pytest.fixture
def route_table(tmp_path):
    path = tmp_path / "route"
    path.write_text(ROUTE_TABLE)
    return path


class TestDefaultGateway:
    """Tests for default_gateway."""

    def test_reads_gateway(self, route_table):
        """Test little-endian hex is decoded to dotted notation."""
        assert default_gateway(route_table) == "172.17.0.1"

    def test_no_default_route(self, tmp_path):
        path = tmp_path / "route"
        path.write_text(ROUTE_TABLE_NO_DEFAULT)
        assert default_gateway(path) is None

    def test_missing_file(self, tmp_path):
        assert default_gateway(tmp_path / "missing") is None


class TestIsRunningInContainer:
    """Tests for is_running_in_container."""

    def test_dockerenv(self, tmp_path):
        dockerenv = tmp_path / ".dockerenv"
        dockerenv.touch()
        assert is_running_in_container(dockerenv, tmp_path / "cgroup") is True

    def test_cgroup(self, tmp_path):
        cgroup = tmp_path / "cgroup"
        cgroup.write_text("12:pids:/docker/4f3a9c\n")
        assert is_running_in_container(tmp_path / ".dockerenv", cgroup) is True

    def test_host(self, tmp_path):
        cgroup = tmp_path / "cgroup"
        cgroup.write_text("0::/init.scope\n")
        assert is_running_in_container(tmp_path / ".dockerenv", cgroup) is False

    def test_nothing_readable(self, tmp_path):
        assert is_running_in_container(tmp_path / ".dockerenv", tmp_path / "cgroup") is False


class TestResolveDaemonUrl:
    """Tests for resolve_daemon_url."""

    def test_explicit_url_wins(self, route_table):
        """Test a configured URL is used even inside a container."""
        url = resolve_daemon_url(
            "http://nas.lan:8080/", 8080, in_container=True, route_table_path=route_table
        )
        assert url == "http://nas.lan:8080/"

    def test_discovered_in_container(self, route_table):
        """Test the gateway is used inside a container."""
        url = resolve_daemon_url(None, 8081, in_container=True, route_table_path=route_table)
        assert url == "http://172.17.0.1:8081/"

    def test_not_in_container(self, route_table):
        """Test no URL outside a container is a configuration error."""
        with pytest.raises(ConfigurationError, match="not running in a container"):
            resolve_daemon_url(None, 8080, in_container=False, route_table_path=route_table)

    def test_no_gateway(self, tmp_path):
        """Test a container without default route is a configuration error."""
        path = tmp_path / "route"
        path.write_text(ROUTE_TABLE_NO_DEFAULT)
        with pytest.raises(ConfigurationError, match="no default gateway"):
            resolve_daemon_url(None, 8080, in_container=True, route_table_path=path)
