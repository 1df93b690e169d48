"""Ledger bridge keyring.

Presents account management and signing to a wallet manager while the
keys stay on the Ledger. The keyring derives public addresses locally
from the extended public key reported on unlock and forwards every
signing request to the bridge, verifying the device's answer before
returning it.

Device states:
- Locked: no extended public key (fresh instance, path change, forget)
- Unlocked: extended public key read by a successful ``ledger-unlock``

Every public operation that talks to the device runs inside the
keyring's DeviceLock, so only one bridge request is in flight at a time.
"""

import logging
from enum import Enum
from typing import Any, Callable, Optional

from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import to_checksum_address

from ledger_keyring.bridge import BridgeAction, BridgePort, BridgeTransport
from ledger_keyring.config import KeyringSettings, get_settings
from ledger_keyring.exceptions import (
    AccountNotFoundError,
    BridgeError,
    InvalidSignatureError,
    KeyringError,
    SignerMismatchError,
    UnsupportedOperationError,
)
from ledger_keyring.hdwallet import (
    ETHAddressDeriver,
    ExtendedPublicKey,
    PathRegistry,
    path_for_index,
    to_device_path,
)
from ledger_keyring.history import TransactionHistoryClient
from ledger_keyring.signing import (
    SignableTransaction,
    assemble_signature,
    recover_personal_signer,
)
from ledger_keyring.state import Account, KeyringSnapshot
from ledger_keyring.utils import DeviceLock

logger = logging.getLogger(__name__)

KEYRING_TYPE = "Ledger Hardware"
PATH_BASE = "m"
ALREADY_UNLOCKED = "already unlocked"


class KeyringEvent(str, Enum):
    """Events reported to registered listeners."""
    UNLOCKED = "unlocked"
    LOCKED = "locked"
    ACCOUNTS_CHANGED = "accounts_changed"


KeyringListener = Callable[[KeyringEvent, Any], None]


def _hex_to_bytes(value: str) -> bytes:
    value = value[2:] if value.startswith(("0x", "0X")) else value
    if len(value) % 2:
        value = f"0{value}"
    return bytes.fromhex(value)


class LedgerBridgeKeyring:
    """Hardware keyring backed by the Ledger bridge.

    Usage:
        keyring = LedgerBridgeKeyring(port, opts=saved_snapshot)
        accounts = await keyring.get_first_page()
        keyring.set_account_to_unlock(accounts[2].index)
        await keyring.add_accounts(1)
        signed_tx = await keyring.sign_transaction(address, tx)
    """

    type = KEYRING_TYPE

    def __init__(
        self,
        port: BridgePort,
        opts: Optional[dict] = None,
        settings: Optional[KeyringSettings] = None,
    ):
        """Initialize keyring.

        Args:
            port: Surface that delivers messages to the bridge page
            opts: Snapshot previously returned by ``serialize()``
            settings: Keyring settings (defaults to environment settings)
        """
        self.settings = settings or get_settings()

        self.hd_path = self.settings.hd_path
        self.bridge_url = self.settings.bridge_url
        self.accounts: list[str] = []
        self.account_indexes: dict[str, int] = {}
        self.page = 0
        self.per_page = self.settings.per_page
        self.unlocked_account = 0
        self.network = self.settings.network
        self.paths = PathRegistry(max_index=self.settings.max_index)

        self._generation = 0
        self._extended_key = ExtendedPublicKey()
        self._deriver: Optional[ETHAddressDeriver] = None
        self._listeners: list[KeyringListener] = []
        self._device = DeviceLock(timeout=self.settings.queue_timeout)

        self.transport = BridgeTransport(
            port, self.bridge_url, timeout=self.settings.request_timeout
        )
        self._apply_snapshot(opts or {})

    # ======================
    # Persistence
    # ======================

    async def serialize(self) -> dict:
        """Return the persisted configuration snapshot."""
        return KeyringSnapshot(
            hd_path=self.hd_path,
            accounts=list(self.accounts),
            account_indexes=dict(self.account_indexes),
            bridge_url=self.bridge_url,
        ).to_dict()

    async def deserialize(self, opts: Optional[dict] = None) -> None:
        """Restore configuration from a snapshot; missing keys get defaults."""
        self._apply_snapshot(opts or {})

    def _apply_snapshot(self, opts: dict) -> None:
        snapshot = KeyringSnapshot.model_validate(opts)

        self.set_hd_path(snapshot.hd_path or self.settings.hd_path)
        self.bridge_url = snapshot.bridge_url or self.settings.bridge_url
        self.accounts = list(dict.fromkeys(to_checksum_address(a) for a in snapshot.accounts))
        self.account_indexes = {
            to_checksum_address(address): index
            for address, index in snapshot.account_indexes.items()
        }
        self.transport.set_bridge_url(self.bridge_url)

    # ======================
    # Events
    # ======================

    def add_listener(self, listener: KeyringListener) -> None:
        """Register a callback: ``listener(event, data)``."""
        self._listeners.append(listener)

    def remove_listener(self, listener: KeyringListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: KeyringEvent, data: Any = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, data)
            except Exception as e:
                logger.error(f"Keyring listener error for {event.value}: {e}")

    # ======================
    # Lock state
    # ======================

    def is_unlocked(self) -> bool:
        return self._extended_key.is_set

    def set_account_to_unlock(self, index) -> None:
        self.unlocked_account = int(index)

    def set_hd_path(self, hd_path: str) -> None:
        """Change the account root path; a different path locks the device."""
        if self.hd_path != hd_path:
            self._lock()
        self.hd_path = hd_path

    def _lock(self) -> None:
        was_unlocked = self.is_unlocked()
        self._generation += 1

        self._extended_key = ExtendedPublicKey()
        self._deriver = None
        self.paths.clear()

        if was_unlocked:
            logger.info("Ledger keyring locked")
            self._emit(KeyringEvent.LOCKED)

    async def unlock(self, hd_path: Optional[str] = None) -> Optional[str]:
        """Read the extended public key from the device.

        Args:
            hd_path: Explicit path to unlock instead of the keyring's root path

        Returns:
            Address reported by the device, or ``"already unlocked"``

        Raises:
            BridgeError: If the device refuses or the reply is unusable
        """
        async with self._device.hold("unlock"):
            return await self._unlock(hd_path)

    async def _unlock(self, hd_path: Optional[str] = None) -> Optional[str]:
        if self.is_unlocked() and not hd_path:
            return ALREADY_UNLOCKED

        action = BridgeAction.UNLOCK.value
        while True:
            generation = self._generation
            path = to_device_path(hd_path) if hd_path else self.hd_path
            payload = await self.transport.request(action, {"hdPath": path})
            if generation == self._generation:
                break
            # Locked while waiting: the reply belongs to a stale path
            logger.info(f"Discarding unlock reply for {path}, keyring was locked")

        try:
            extended_key = ExtendedPublicKey.from_hex(payload["publicKey"], payload["chainCode"])
            deriver = ETHAddressDeriver(extended_key, path_base=PATH_BASE)
        except (KeyError, TypeError, ValueError, KeyringError) as e:
            raise BridgeError(f"Ledger: invalid unlock reply: {e}", action=action)

        self._extended_key = extended_key
        self._deriver = deriver
        self.paths.clear()

        logger.info(f"Ledger keyring unlocked at {path}")
        self._emit(KeyringEvent.UNLOCKED, payload.get("address"))
        return payload.get("address")

    def forget_device(self) -> None:
        """Drop every account and lock the keyring."""
        self.accounts = []
        self.account_indexes = {}
        self.page = 0
        self.unlocked_account = 0
        self._lock()
        self._emit(KeyringEvent.ACCOUNTS_CHANGED, [])

    # ======================
    # Accounts
    # ======================

    async def add_accounts(self, n: int = 1) -> list[str]:
        """Replace the account list with ``n`` accounts from the unlock index."""
        async with self._device.hold("add_accounts"):
            await self._unlock()

            start = self.unlocked_account
            self.accounts = []
            self.account_indexes = {}
            for i in range(start, start + n):
                address = self._deriver.address_at(i)
                self.accounts.append(address)
                self.account_indexes[address] = i
            self.page = 0

        logger.info(f"Added {n} Ledger account(s) from index {start}")
        self._emit(KeyringEvent.ACCOUNTS_CHANGED, list(self.accounts))
        return list(self.accounts)

    async def get_accounts(self) -> list[str]:
        return list(self.accounts)

    def remove_account(self, address: str) -> None:
        """Remove an address (compared case-insensitively).

        Raises:
            AccountNotFoundError: If the keyring does not hold the address
        """
        target = address.lower()
        if target not in [a.lower() for a in self.accounts]:
            raise AccountNotFoundError(address)

        self.accounts = [a for a in self.accounts if a.lower() != target]
        self.account_indexes.pop(to_checksum_address(address), None)
        self._emit(KeyringEvent.ACCOUNTS_CHANGED, list(self.accounts))

    # ======================
    # Discovery pages
    # ======================

    async def get_first_page(self) -> list[Account]:
        return await self._get_page(1, reset=True)

    async def get_next_page(self) -> list[Account]:
        return await self._get_page(1)

    async def get_previous_page(self) -> list[Account]:
        return await self._get_page(-1)

    async def _get_page(self, increment: int, reset: bool = False) -> list[Account]:
        async with self._device.hold("get_page"):
            if reset:
                self.page = 0
            self.page += increment
            if self.page <= 0:
                self.page = 1

            start = (self.page - 1) * self.per_page
            await self._unlock()
            return self._get_accounts(start, start + self.per_page)

    def _get_accounts(self, start: int, end: int) -> list[Account]:
        accounts = []
        for i in range(start, end):
            info = self._deriver.derive(i)
            accounts.append(Account(address=info.address, index=info.index))
            self.paths.register(info.address, info.index)
        return accounts

    async def has_previous_transactions(self, address: str) -> bool:
        """Ask the network's explorer whether an address was ever used."""
        client = TransactionHistoryClient(
            self.settings.api_url(self.network), timeout=self.settings.history_timeout
        )
        return await client.has_transactions(address)

    # ======================
    # Signing
    # ======================

    def _path_from_address(self, address: str) -> str:
        index = self.paths.resolve_index(address, self._deriver)
        return path_for_index(self.hd_path, index)

    async def sign_transaction(
        self, address: str, tx: SignableTransaction
    ) -> SignableTransaction:
        """Sign a transaction on the device.

        Returns:
            The same transaction with v/r/s applied

        Raises:
            BridgeError: If the device refuses to sign
            InvalidSignatureError: If the returned signature does not verify
            UnknownAddressError: If the address is not derived from this device
        """
        async with self._device.hold("sign_transaction"):
            await self._unlock()

            tx.prepare_for_device()
            hd_path = to_device_path(self._path_from_address(address))

            payload = await self.transport.request(
                BridgeAction.SIGN_TRANSACTION.value,
                {
                    "tx": tx.serialize().hex(),
                    "hdPath": hd_path,
                    "to": f"0x{bytes(tx.to).hex()}".lower(),
                },
                error_message="Ledger: Unknown error while signing transaction",
            )

        try:
            tx.apply_signature(
                _hex_to_bytes(payload["v"]),
                _hex_to_bytes(payload["r"]),
                _hex_to_bytes(payload["s"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed signature from device: {e}")
            raise InvalidSignatureError()

        if not tx.verify_signature(expected_sender=address):
            raise InvalidSignatureError()

        return tx

    async def sign_message(self, address: str, data: str) -> str:
        return await self.sign_personal_message(address, data)

    async def sign_personal_message(self, address: str, message: str) -> str:
        """Sign a personal message (EIP-191) on the device.

        Args:
            address: Account to sign with
            message: 0x-prefixed hex data, or plain text

        Returns:
            0x-prefixed r||s||v signature

        Raises:
            BridgeError: If the device refuses to sign
            SignerMismatchError: If the signature recovers to another address
        """
        if message.startswith(("0x", "0X")):
            message_hex = message[2:]
        else:
            message_hex = message.encode("utf-8").hex()

        async with self._device.hold("sign_personal_message"):
            await self._unlock()
            hd_path = to_device_path(self._path_from_address(address))

            payload = await self.transport.request(
                BridgeAction.SIGN_PERSONAL_MESSAGE.value,
                {"hdPath": hd_path, "message": message_hex},
                error_message="Ledger: Unknown error while signing message",
            )

        try:
            signature = assemble_signature(payload["v"], payload["r"], payload["s"])
            signer = recover_personal_signer(message, signature)
        except (KeyError, TypeError, ValueError, BadSignature, KeyValidationError) as e:
            logger.warning(f"Could not recover message signer: {e}")
            raise InvalidSignatureError("Ledger: The message signature is not valid")

        expected = to_checksum_address(address)
        if signer != expected:
            raise SignerMismatchError(expected, signer)

        return signature

    async def sign_typed_data(self, address: str, typed_data: Any) -> str:
        raise UnsupportedOperationError()

    async def export_account(self, address: str) -> str:
        raise UnsupportedOperationError()

    def close(self) -> None:
        """Fail any request still waiting on the bridge."""
        self.transport.close()
