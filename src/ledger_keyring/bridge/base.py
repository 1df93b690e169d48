"""Bridge wire protocol.

The keyring never talks to the Ledger directly. Requests are posted to a
hosted bridge page that relays them to the device:

    request: {"target": "LEDGER-IFRAME", "action": ..., "params": {...}, "messageId": ...}
    reply:   {"action": "<action>-reply", "success": bool, "payload": {...}}

The hosting surface (iframe, browser window, websocket relay, ...) is
provided by the embedding application as a BridgePort.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

BRIDGE_TARGET = "LEDGER-IFRAME"
REPLY_SUFFIX = "-reply"


class BridgeAction(str, Enum):
    """Actions understood by the Ledger bridge."""
    UNLOCK = "ledger-unlock"
    SIGN_TRANSACTION = "ledger-sign-transaction"
    SIGN_PERSONAL_MESSAGE = "ledger-sign-personal-message"


@dataclass
class BridgeRequest:
    """Outgoing bridge message.

    Attributes:
        action: Bridge action name
        params: Action parameters
        message_id: Correlation id echoed back by bridges that support it
    """
    action: str
    params: dict = field(default_factory=dict)
    message_id: Optional[str] = None

    @property
    def reply_action(self) -> str:
        return f"{self.action}{REPLY_SUFFIX}"

    def to_message(self) -> dict:
        message = {
            "target": BRIDGE_TARGET,
            "action": self.action,
            "params": self.params,
        }
        if self.message_id:
            message["messageId"] = self.message_id
        return message


@dataclass
class BridgeReply:
    """Reply received from the bridge."""
    action: str
    success: bool
    payload: dict = field(default_factory=dict)
    message_id: Optional[str] = None

    @property
    def error(self) -> Optional[str]:
        return self.payload.get("error")

    @classmethod
    def from_message(cls, data: dict) -> "BridgeReply":
        payload = data.get("payload")
        return cls(
            action=data["action"],
            success=bool(data.get("success")),
            payload=payload if isinstance(payload, dict) else {},
            message_id=data.get("messageId"),
        )


class BridgePort(ABC):
    """Outbound side of the surface hosting the bridge.

    Implementations deliver messages to the bridge page and feed every
    message they receive back to ``BridgeTransport.handle_message`` along
    with the sender's origin.
    """

    @abstractmethod
    async def post_message(self, message: dict[str, Any]) -> None:
        """Deliver a message to the bridge."""
        pass


def bridge_origin(bridge_url: str) -> str:
    """Origin replies must come from: the bridge URL minus its last segment."""
    return bridge_url.rsplit("/", 1)[0]
