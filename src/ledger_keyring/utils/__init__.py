"""Utility modules for the Ledger keyring."""

from ledger_keyring.utils.locks import DeviceLock

__all__ = ["DeviceLock"]
