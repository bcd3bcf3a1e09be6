"""
Graceful Shutdown - cancellation token checked between compounding cycles.

An interrupt never aborts a cycle in flight; it only stops the loop the next
time it reaches the inter-cycle sleep.

Usage:
    token = CancellationToken()
    token.install_signal_handlers()

    while not token.is_cancelled:
        await run_cycle()
        if await token.wait(sleep_for):
            break
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop signal for the compounding loop."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason = ""

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "Shutdown requested") -> None:
        """Request a stop at the next sleep boundary."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info(f"Stop requested: {reason}")

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Sleep for up to `timeout` seconds, waking early on cancellation.

        Returns:
            True if cancelled, False if the timeout elapsed
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop = None) -> None:
        """Install OS signal handlers that cancel the token."""
        if sys.platform == 'win32':
            # Windows doesn't support loop signal handlers
            signal.signal(signal.SIGINT, self._signal_handler)
        else:
            loop = loop or asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(
                    sig,
                    lambda s=sig: self.cancel(f"Received signal {s.name}")
                )

        logger.debug("Signal handlers installed for graceful shutdown")

    def _signal_handler(self, signum, frame):
        self.cancel(f"Received signal {signal.Signals(signum).name}")
