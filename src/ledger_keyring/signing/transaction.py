"""Transactions the keyring can hand to the device.

The keyring only needs a handful of operations from a transaction, listed
in SignableTransaction. LegacyTransaction implements them for EIP-155
legacy transactions, the format the Ledger Ethereum app signs for Ubiq.

Signing flow:
1. prepare_for_device() sets v = chain id, r = s = 0
2. serialize() produces the unsigned EIP-155 payload sent to the bridge
3. apply_signature() stores the v/r/s returned by the device
4. verify_signature() recovers the sender locally before trusting it
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union, runtime_checkable

import rlp
from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import keccak, to_bytes, to_checksum_address

logger = logging.getLogger(__name__)

SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)


@runtime_checkable
class SignableTransaction(Protocol):
    """What the keyring needs from a transaction object."""

    chain_id: int
    to: bytes
    v: int
    r: int
    s: int

    def prepare_for_device(self) -> None: ...

    def serialize(self) -> bytes: ...

    def signing_hash(self) -> bytes: ...

    def apply_signature(self, v: bytes, r: bytes, s: bytes) -> None: ...

    def verify_signature(self, expected_sender: Optional[str] = None) -> bool: ...

    def recover_sender(self) -> str: ...


def _as_bytes(value: Union[bytes, str, None]) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return to_bytes(hexstr=value) if value else b""
    return bytes(value)


@dataclass
class LegacyTransaction:
    """EIP-155 legacy transaction.

    Attributes:
        nonce: Sender nonce
        gas_price: Gas price in wei
        gas: Gas limit
        to: Recipient address (20 bytes, empty for contract creation)
        value: Amount in wei
        data: Call data
        chain_id: EIP-155 chain id (Ubiq mainnet is 8)
        v, r, s: Signature components (zero while unsigned)
    """
    nonce: int = 0
    gas_price: int = 0
    gas: int = 21000
    to: Union[bytes, str] = b""
    value: int = 0
    data: Union[bytes, str] = b""
    chain_id: int = 8
    v: int = 0
    r: int = 0
    s: int = 0

    def __post_init__(self):
        self.to = _as_bytes(self.to)
        self.data = _as_bytes(self.data)

    def _fields(self, v: int, r: int, s: int) -> list:
        return [self.nonce, self.gas_price, self.gas, self.to, self.value, self.data, v, r, s]

    def prepare_for_device(self) -> None:
        """Reset the signature to the EIP-155 unsigned form."""
        self.v = self.chain_id
        self.r = 0
        self.s = 0

    def serialize(self) -> bytes:
        return rlp.encode(self._fields(self.v, self.r, self.s))

    def signing_hash(self) -> bytes:
        return keccak(rlp.encode(self._fields(self.chain_id, 0, 0)))

    def apply_signature(self, v: bytes, r: bytes, s: bytes) -> None:
        self.v = int.from_bytes(v, "big")
        self.r = int.from_bytes(r, "big")
        self.s = int.from_bytes(s, "big")

    def _recovery_id(self) -> int:
        if self.v in (0, 1):
            return self.v
        if self.v in (27, 28):
            return self.v - 27

        recovery_id = self.v - 35 - 2 * self.chain_id
        if recovery_id not in (0, 1):
            raise ValueError(f"v={self.v} does not match chain id {self.chain_id}")
        return recovery_id

    def recover_sender(self) -> str:
        """Recover the checksummed sender address from v/r/s."""
        signature = keys.Signature(vrs=(self._recovery_id(), self.r, self.s))
        public_key = signature.recover_public_key_from_msg_hash(self.signing_hash())
        return public_key.to_checksum_address()

    def verify_signature(self, expected_sender: Optional[str] = None) -> bool:
        """Check that v/r/s form a valid signature of this transaction.

        Args:
            expected_sender: If given, the recovered sender must match it

        Returns:
            True if the signature is valid
        """
        # Homestead: s must be in the lower half of the curve order
        if not (0 < self.r < SECP256K1_N and 0 < self.s <= SECP256K1_N // 2):
            return False

        try:
            sender = self.recover_sender()
        except (BadSignature, KeyValidationError, ValueError) as e:
            logger.debug(f"Signature recovery failed: {e}")
            return False

        if expected_sender is not None:
            return sender == to_checksum_address(expected_sender)
        return True

    @property
    def is_signed(self) -> bool:
        return self.r != 0 and self.s != 0
