"""Cooperative shutdown signal shared by handlers and the polling loop."""

import asyncio
import threading


class ShutdownSignal:
    """Single flag that can only go from "running" to "shutdown requested".

    request_shutdown() is called from a message handler; the polling loop
    checks should_shutdown() once per interval.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requested = False

    def request_shutdown(self) -> bool:
        """Request shutdown.

        Returns:
            True if this call set the flag, False if it was already set.
        """
        with self._lock:
            if self._requested:
                return False
            self._requested = True
            return True

    def should_shutdown(self) -> bool:
        with self._lock:
            return self._requested

    async def wait(self, poll_interval: float = 1.0) -> None:
        """Block until shutdown is requested, checking every poll_interval seconds."""
        while not self.should_shutdown():
            await asyncio.sleep(poll_interval)
