"""Pytest configuration and fixtures."""

import asyncio
from typing import Optional

import pytest
import rlp
from bip_utils import Bip32Secp256k1
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct
from eth_keys import keys
from eth_utils import keccak

from ledger_keyring.bridge import BridgePort, BridgeTransport
from ledger_keyring.config import KeyringSettings
from ledger_keyring.keyring import LedgerBridgeKeyring

BRIDGE_URL = "https://bridge.example.org/ledger/bridge.html"
BRIDGE_ORIGIN = "https://bridge.example.org/ledger"
HD_PATH = "m/44'/108'/0'/0"

# BIP32 test vector 1 seed
TEST_SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")


class RecordingPort(BridgePort):
    """Port that only records what was posted."""

    def __init__(self):
        self.messages: list[dict] = []

    async def post_message(self, message: dict) -> None:
        self.messages.append(message)


class FakeLedgerBridge(BridgePort):
    """Bridge double that answers like a Ledger running the Ethereum app.

    Modes:
        ok:      reply with valid data
        fail:    reply with success=False
        silent:  never reply
        corrupt: reply to signing requests with a signature from another key
    """

    def __init__(self, origin: str = BRIDGE_ORIGIN, seed: bytes = TEST_SEED):
        self.origin = origin
        self.mode = "ok"
        self.error: Optional[str] = "Ledger device: locked (0x6b0c)"
        self.echo_ids = True
        self.messages: list[dict] = []
        self.transport: Optional[BridgeTransport] = None
        self._master = Bip32Secp256k1.FromSeed(seed)

    def connect(self, transport: BridgeTransport) -> None:
        self.transport = transport

    # Key helpers

    def node(self, device_path: str):
        path = device_path[2:] if device_path.startswith("m/") else device_path
        return self._master.DerivePath(f"m/{path}")

    def private_key(self, device_path: str) -> keys.PrivateKey:
        return keys.PrivateKey(self.node(device_path).PrivateKey().Raw().ToBytes())

    def address_at(self, index: int, hd_path: str = HD_PATH) -> str:
        return self.private_key(f"{hd_path}/{index}").public_key.to_checksum_address()

    # BridgePort

    async def post_message(self, message: dict) -> None:
        self.messages.append(message)
        if self.mode == "silent":
            return
        asyncio.get_running_loop().call_soon(self._answer, message)

    def _answer(self, message: dict) -> None:
        action = message["action"]
        params = message["params"]

        if self.mode == "fail":
            reply = {"action": f"{action}-reply", "success": False, "payload": {"error": self.error}}
        elif action == "ledger-unlock":
            reply = self._unlock(params)
        elif action == "ledger-sign-transaction":
            reply = self._sign_transaction(params)
        elif action == "ledger-sign-personal-message":
            reply = self._sign_personal_message(params)
        else:
            reply = {"action": f"{action}-reply", "success": False, "payload": {}}

        if self.echo_ids and "messageId" in message:
            reply["messageId"] = message["messageId"]
        self.transport.handle_message(self.origin, reply)

    def _signing_key(self, hd_path: str) -> keys.PrivateKey:
        if self.mode == "corrupt":
            return keys.PrivateKey(b"\x42" * 32)
        return self.private_key(hd_path)

    def _unlock(self, params: dict) -> dict:
        node = self.node(params["hdPath"])
        public_key = node.PublicKey().RawUncompressed().ToBytes()
        address = keys.PublicKey(public_key[1:]).to_checksum_address()
        return {
            "action": "ledger-unlock-reply",
            "success": True,
            "payload": {
                "publicKey": public_key.hex(),
                "chainCode": node.ChainCode().ToBytes().hex(),
                "address": address,
            },
        }

    def _sign_transaction(self, params: dict) -> dict:
        raw = bytes.fromhex(params["tx"])
        chain_id = int.from_bytes(rlp.decode(raw)[6], "big")
        signature = self._signing_key(params["hdPath"]).sign_msg_hash(keccak(raw))
        v = format(chain_id * 2 + 35 + signature.v, "x")
        return {
            "action": "ledger-sign-transaction-reply",
            "success": True,
            "payload": {
                "v": v if len(v) % 2 == 0 else f"0{v}",
                "r": format(signature.r, "064x"),
                "s": format(signature.s, "064x"),
            },
        }

    def _sign_personal_message(self, params: dict) -> dict:
        signable = encode_defunct(primitive=bytes.fromhex(params["message"]))
        key = self._signing_key(params["hdPath"])
        signed = EthAccount.sign_message(signable, private_key=key.to_bytes())
        return {
            "action": "ledger-sign-personal-message-reply",
            "success": True,
            "payload": {
                "v": signed.v,
                "r": format(signed.r, "064x"),
                "s": format(signed.s, "064x"),
            },
        }


@pytest.fixture
def settings() -> KeyringSettings:
    """Settings isolated from the environment."""
    return KeyringSettings(
        _env_file=None,
        hd_path=HD_PATH,
        bridge_url=BRIDGE_URL,
        per_page=5,
        max_index=25,
        request_timeout=2.0,
        queue_timeout=None,
        network="mainnet",
        network_api_urls={
            "mainnet": "https://explorer.example.org",
            "testnet": "https://testnet.example.org",
        },
    )


@pytest.fixture
def device() -> FakeLedgerBridge:
    return FakeLedgerBridge()


@pytest.fixture
def keyring(device: FakeLedgerBridge, settings: KeyringSettings) -> LedgerBridgeKeyring:
    """Keyring wired to the fake bridge."""
    keyring = LedgerBridgeKeyring(device, settings=settings)
    device.connect(keyring.transport)
    return keyring
