"""Ledger bridge protocol and transport."""

from ledger_keyring.bridge.base import (
    BRIDGE_TARGET,
    BridgeAction,
    BridgePort,
    BridgeReply,
    BridgeRequest,
    bridge_origin,
)
from ledger_keyring.bridge.transport import BridgeTransport

__all__ = [
    "BRIDGE_TARGET",
    "BridgeAction",
    "BridgePort",
    "BridgeReply",
    "BridgeRequest",
    "BridgeTransport",
    "bridge_origin",
]
