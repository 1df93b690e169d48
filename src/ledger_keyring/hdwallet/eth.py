"""ETH address derivation from the device's extended public key.

Derivation path: <hd_path>/index (public, non-hardened children only)
Address format: 0x... (checksum encoded)

Works for Ubiq, ETH and other EVM-compatible chains.
"""

from typing import Optional

from bip_utils import Bip32ChainCode, Bip32KeyData, Bip32Secp256k1, EthAddrEncoder
from eth_utils import to_checksum_address

from ledger_keyring.exceptions import NotUnlockedError
from ledger_keyring.hdwallet.base import AddressInfo, ExtendedPublicKey


class ETHAddressDeriver:
    """Derives checksummed addresses below an unlocked account root.

    The BIP32 context is built once per extended key; derivation itself
    does no I/O.

    Example:
        deriver = ETHAddressDeriver(extended_key)
        info = deriver.derive(index=0)
        # AddressInfo(address="0x...", derivation_path="m/0", index=0)
    """

    def __init__(self, extended_key: ExtendedPublicKey, path_base: str = "m"):
        """Initialize the deriver.

        Args:
            extended_key: Public key and chain code reported by the device
            path_base: Prefix for relative child paths

        Raises:
            NotUnlockedError: If the extended key is empty
            ValueError: If the device returned an invalid key
        """
        if not extended_key.is_set:
            raise NotUnlockedError()

        self.extended_key = extended_key
        self.path_base = path_base

        try:
            key_data = Bip32KeyData(chain_code=Bip32ChainCode(extended_key.chain_code))
            self._bip32_ctx = Bip32Secp256k1.FromPublicKey(
                extended_key.public_key, key_data
            )
        except Exception as e:
            raise ValueError(f"Invalid extended public key: {e}")

    def address_at_path(self, path_suffix: str) -> str:
        """Derive the checksummed address at a path such as ``m/5`` or ``5``."""
        child = self._bip32_ctx.DerivePath(path_suffix)

        # ETH addresses come from the uncompressed key (keccak256 of pubkey[1:])
        pubkey = child.PublicKey().RawUncompressed().ToBytes()
        return to_checksum_address(EthAddrEncoder.EncodeKey(pubkey))

    def address_at(self, index: int) -> str:
        return self.address_at_path(f"{self.path_base}/{index}")

    def derive(self, index: int) -> AddressInfo:
        """Derive an address at the given child index."""
        return AddressInfo(
            address=self.address_at(index),
            derivation_path=f"{self.path_base}/{index}",
            index=index,
        )


def derive_address(
    extended_key: Optional[ExtendedPublicKey], path_suffix: str
) -> str:
    """Derive a checksummed address from an extended key and a child path.

    Raises:
        NotUnlockedError: If no extended key is available
    """
    if extended_key is None:
        raise NotUnlockedError()
    return ETHAddressDeriver(extended_key).address_at_path(path_suffix)
