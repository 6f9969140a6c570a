"""Tests for the shutdown signal."""

import asyncio

import pytest

from home_bittorrent_bot.bot.shutdown import ShutdownSignal


def test_initially_running():
    assert ShutdownSignal().should_shutdown() is False


def test_request_shutdown():
    """Test the first request sets the flag and later ones report it was set."""
    signal = ShutdownSignal()

    assert signal.request_shutdown() is True
    assert signal.should_shutdown() is True
    assert signal.request_shutdown() is False
    assert signal.should_shutdown() is True


@pytest.mark.asyncio
async def test_wait_returns_after_request():
    """Test wait() notices the flag within a polling interval."""
    signal = ShutdownSignal()

    async def request_later():
        await asyncio.sleep(0.05)
        signal.request_shutdown()

    task = asyncio.create_task(request_later())
    await asyncio.wait_for(signal.wait(poll_interval=0.01), timeout=2.0)
    await task

    assert signal.should_shutdown() is True


@pytest.mark.asyncio
async def test_wait_returns_immediately_when_set():
    signal = ShutdownSignal()
    signal.request_shutdown()

    await asyncio.wait_for(signal.wait(poll_interval=10.0), timeout=1.0)
