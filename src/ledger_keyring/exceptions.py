"""Exceptions raised by the keyring.

All errors derive from KeyringError so a wallet manager can catch the
whole family in one place. Nothing here is retried internally.
"""

from typing import Optional


class KeyringError(Exception):
    """Base class for keyring failures."""
    pass


class NotUnlockedError(KeyringError):
    """Raised when addresses are derived before the device was unlocked."""

    def __init__(self, message: str = "Ledger: device is locked, unlock it first"):
        super().__init__(message)


class UnknownAddressError(KeyringError):
    """Raised when an address cannot be mapped to a derivation index."""

    def __init__(self, address: str, max_index: int):
        self.address = address
        self.max_index = max_index
        super().__init__(
            f"Unknown address {address}: not found within the first {max_index} indexes"
        )


class BridgeError(KeyringError):
    """Raised when the bridge or the device reports a failure."""

    def __init__(self, message: str, action: Optional[str] = None):
        self.action = action
        super().__init__(message)


class BridgeTimeoutError(BridgeError):
    """Raised when the bridge does not reply in time."""
    pass


class InvalidSignatureError(KeyringError):
    """Raised when a signed transaction fails local verification."""

    def __init__(self, message: str = "Ledger: The transaction signature is not valid"):
        super().__init__(message)


class SignerMismatchError(KeyringError):
    """Raised when a message signature recovers to a different address."""

    def __init__(self, expected: str, recovered: str):
        self.expected = expected
        self.recovered = recovered
        super().__init__(
            f"Ledger: The signature doesnt match the right address "
            f"(expected {expected}, got {recovered})"
        )


class UnsupportedOperationError(KeyringError):
    """Raised for operations the device cannot perform."""

    def __init__(self, message: str = "Not supported on this device"):
        super().__init__(message)


class AccountNotFoundError(KeyringError):
    """Raised when removing an address the keyring does not hold."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address {address} not found in this keyring")


class LockTimeoutError(KeyringError):
    """Raised when the device queue cannot be entered within the timeout."""
    pass
