"""HD wallet module for public-key address derivation."""

from ledger_keyring.hdwallet.base import (
    AddressInfo,
    ExtendedPublicKey,
    path_for_index,
    to_device_path,
)
from ledger_keyring.hdwallet.eth import ETHAddressDeriver, derive_address
from ledger_keyring.hdwallet.registry import PathRegistry

__all__ = [
    "AddressInfo",
    "ETHAddressDeriver",
    "ExtendedPublicKey",
    "PathRegistry",
    "derive_address",
    "path_for_index",
    "to_device_path",
]
