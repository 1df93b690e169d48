"""Device queue for keyring operations.

A Ledger can only service one request at a time. Each keyring owns one
DeviceLock and every device-touching operation runs inside it, so bridge
replies can never interleave between two high-level calls.
"""

import asyncio
import logging
from typing import Optional

from ledger_keyring.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class DeviceLock:
    """Per-keyring exclusive access to the signing device.

    Example:
        lock = DeviceLock(timeout=30.0)
        async with lock.hold("sign_transaction"):
            reply = await transport.request(...)
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the lock.

        Args:
            timeout: Maximum time to wait for the device (None = wait forever)
        """
        self.timeout = timeout
        self._lock = asyncio.Lock()

    def locked(self) -> bool:
        return self._lock.locked()

    def hold(self, operation: str = "device_operation") -> "_DeviceLockContext":
        """Return a context manager that holds the device for one operation."""
        return _DeviceLockContext(self, operation)


class _DeviceLockContext:
    def __init__(self, owner: DeviceLock, operation: str):
        self.owner = owner
        self.operation = operation
        self._acquired = False

    async def __aenter__(self) -> "_DeviceLockContext":
        """Acquire the device."""
        lock = self.owner._lock
        timeout = self.owner.timeout

        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
            self._acquired = True

            logger.debug(f"Device acquired: {self.operation}")
            return self

        except asyncio.TimeoutError:
            logger.warning(f"Device queue timeout after {timeout}s: {self.operation}")
            raise LockTimeoutError(
                f"Could not acquire the device within {timeout}s for {self.operation}"
            )

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release the device."""
        if self._acquired:
            self.owner._lock.release()
            self._acquired = False
            logger.debug(f"Device released: {self.operation}")
        return False
