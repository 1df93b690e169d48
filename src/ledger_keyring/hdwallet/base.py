"""HD derivation primitives shared by the keyring.

Only the extended *public* key reported by the device is ever held here.
Private keys never leave the Ledger.
"""

from dataclasses import dataclass


@dataclass
class ExtendedPublicKey:
    """Public key plus chain code of the account root on the device.

    An empty key means the device is locked.
    """

    public_key: bytes = b""
    chain_code: bytes = b""

    @property
    def is_set(self) -> bool:
        return bool(self.public_key) and bool(self.chain_code)

    @classmethod
    def from_hex(cls, public_key: str, chain_code: str) -> "ExtendedPublicKey":
        """Build from the hex strings returned by the bridge."""
        return cls(
            public_key=bytes.fromhex(_strip_0x(public_key)),
            chain_code=bytes.fromhex(_strip_0x(chain_code)),
        )


@dataclass
class AddressInfo:
    """Information about a derived address."""

    address: str
    derivation_path: str
    index: int


def path_for_index(hd_path: str, index: int) -> str:
    """Full derivation path of an account below the root path."""
    return f"{hd_path}/{index}"


def to_device_path(path: str) -> str:
    """Convert ``m/44'/...`` to the ``44'/...`` form the device expects."""
    return str(path).replace("m/", "", 1)


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value
