"""Session cache mapping addresses to derivation indexes.

The registry is owned by a single keyring and lives for one unlock
session: it is cleared whenever the HD path changes or the device is
forgotten, so every cached index stays valid for the current root key.
"""

import logging
from typing import Optional

from eth_utils import to_checksum_address

from ledger_keyring.exceptions import UnknownAddressError
from ledger_keyring.hdwallet.eth import ETHAddressDeriver

logger = logging.getLogger(__name__)

DEFAULT_MAX_INDEX = 1000


class PathRegistry:
    """Checksummed address -> derivation index."""

    def __init__(self, max_index: int = DEFAULT_MAX_INDEX):
        self.max_index = max_index
        self._paths: dict[str, int] = {}

    def register(self, address: str, index: int) -> None:
        self._paths[to_checksum_address(address)] = index

    def get(self, address: str) -> Optional[int]:
        return self._paths.get(to_checksum_address(address))

    def clear(self) -> None:
        self._paths.clear()

    def as_dict(self) -> dict[str, int]:
        return dict(self._paths)

    def __contains__(self, address: str) -> bool:
        return to_checksum_address(address) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def resolve_index(self, address: str, deriver: ETHAddressDeriver) -> int:
        """Find the derivation index of an address.

        Checks the cache first, then re-derives indexes 0..max_index-1
        until one matches. The scan costs up to ``max_index`` derivations
        and does not populate the cache.

        Args:
            address: Address in any case
            deriver: Deriver for the currently unlocked root

        Returns:
            Derivation index

        Raises:
            UnknownAddressError: If no index within the bound matches
        """
        checksummed = to_checksum_address(address)

        index = self._paths.get(checksummed)
        if index is not None:
            return index

        logger.debug(f"{checksummed} not cached, scanning {self.max_index} indexes")
        for i in range(self.max_index):
            if deriver.address_at(i) == checksummed:
                return i

        raise UnknownAddressError(checksummed, self.max_index)
