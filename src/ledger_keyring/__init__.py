"""Ledger hardware keyring driven through the Ledger bridge."""

from ledger_keyring.bridge import BridgePort, BridgeTransport
from ledger_keyring.config import KeyringSettings, get_settings
from ledger_keyring.exceptions import (
    AccountNotFoundError,
    BridgeError,
    BridgeTimeoutError,
    InvalidSignatureError,
    KeyringError,
    LockTimeoutError,
    NotUnlockedError,
    SignerMismatchError,
    UnknownAddressError,
    UnsupportedOperationError,
)
from ledger_keyring.keyring import KeyringEvent, LedgerBridgeKeyring
from ledger_keyring.signing import LegacyTransaction
from ledger_keyring.state import Account, KeyringSnapshot

__version__ = "0.1.0"

__all__ = [
    "Account",
    "AccountNotFoundError",
    "BridgeError",
    "BridgePort",
    "BridgeTimeoutError",
    "BridgeTransport",
    "InvalidSignatureError",
    "KeyringError",
    "KeyringEvent",
    "KeyringSettings",
    "KeyringSnapshot",
    "LedgerBridgeKeyring",
    "LegacyTransaction",
    "LockTimeoutError",
    "NotUnlockedError",
    "SignerMismatchError",
    "UnknownAddressError",
    "UnsupportedOperationError",
    "get_settings",
]
