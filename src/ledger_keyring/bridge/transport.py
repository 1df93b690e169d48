"""Request/reply transport over the Ledger bridge.

Every request gets its own entry in a pending table keyed by a generated
correlation id. An entry is removed exactly once: when its reply
arrives, when it times out, or when the awaiting task is cancelled.
Traffic that does not match a pending entry is ignored and never tears
down an unrelated listener.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from ledger_keyring.bridge.base import (
    REPLY_SUFFIX,
    BridgePort,
    BridgeReply,
    BridgeRequest,
    bridge_origin,
)
from ledger_keyring.exceptions import BridgeError, BridgeTimeoutError

logger = logging.getLogger(__name__)

_USE_DEFAULT: Any = object()


@dataclass
class _PendingRequest:
    request: BridgeRequest
    future: asyncio.Future


class BridgeTransport:
    """Async request/reply channel to the bridge.

    Usage:
        transport = BridgeTransport(port, bridge_url, timeout=120.0)
        # host wiring: on every inbound message
        transport.handle_message(origin, data)
        # caller side
        reply = await transport.request("ledger-unlock", {"hdPath": path})
    """

    def __init__(
        self,
        port: BridgePort,
        bridge_url: str,
        timeout: Optional[float] = None,
    ):
        """Initialize transport.

        Args:
            port: Surface that delivers messages to the bridge
            bridge_url: URL of the bridge page (replies must come from its origin)
            timeout: Default seconds to wait for a reply (None = wait forever)
        """
        self.port = port
        self.timeout = timeout
        self._bridge_url = bridge_url
        self._origin = bridge_origin(bridge_url)
        self._pending: dict[str, _PendingRequest] = {}

    @property
    def bridge_url(self) -> str:
        return self._bridge_url

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def set_bridge_url(self, bridge_url: str) -> None:
        self._bridge_url = bridge_url
        self._origin = bridge_origin(bridge_url)

    async def send(
        self,
        action: str,
        params: Optional[dict] = None,
        timeout: Optional[float] = _USE_DEFAULT,
    ) -> BridgeReply:
        """Post a request and wait for its reply.

        Args:
            action: Bridge action name
            params: Action parameters
            timeout: Seconds to wait, overrides the transport default

        Returns:
            The matching BridgeReply (successful or not)

        Raises:
            BridgeTimeoutError: If no reply arrives in time
        """
        if timeout is _USE_DEFAULT:
            timeout = self.timeout

        request = BridgeRequest(action=action, params=params or {}, message_id=uuid.uuid4().hex)
        future = asyncio.get_running_loop().create_future()

        # Register before posting so a synchronous reply cannot be missed
        self._pending[request.message_id] = _PendingRequest(request, future)
        logger.debug(f"Bridge request {action} ({request.message_id})")

        try:
            await self.port.post_message(request.to_message())
            if timeout:
                return await asyncio.wait_for(future, timeout=timeout)
            return await future

        except asyncio.TimeoutError:
            logger.warning(f"Bridge request {action} timed out after {timeout}s")
            raise BridgeTimeoutError(
                f"Ledger: no reply to {action} within {timeout}s", action=action
            )

        finally:
            self._pending.pop(request.message_id, None)

    async def request(
        self,
        action: str,
        params: Optional[dict] = None,
        error_message: str = "Unknown error",
        timeout: Optional[float] = _USE_DEFAULT,
    ) -> dict:
        """Send a request and return the payload of a successful reply.

        Raises:
            BridgeError: If the bridge reports a failure
        """
        reply = await self.send(action, params, timeout=timeout)
        if not reply.success:
            raise BridgeError(reply.error or error_message, action=action)
        return reply.payload

    def handle_message(self, origin: str, data: Any) -> bool:
        """Feed one inbound message from the hosting surface.

        Returns:
            True if the message resolved a pending request
        """
        if origin != self._origin:
            logger.debug(f"Ignoring bridge message from foreign origin {origin}")
            return False

        if not isinstance(data, dict):
            return False

        action = data.get("action")
        if not isinstance(action, str) or not action.endswith(REPLY_SUFFIX):
            return False

        message_id = self._match(action, data.get("messageId"))
        if message_id is None:
            logger.debug(f"Ignoring unmatched bridge message {action}")
            return False

        entry = self._pending.pop(message_id)
        if entry.future.done():
            return False

        entry.future.set_result(BridgeReply.from_message(data))
        logger.debug(f"Bridge reply {action} ({message_id})")
        return True

    def _match(self, action: str, message_id: Optional[str]) -> Optional[str]:
        """Find the pending request a reply belongs to."""
        if message_id:
            entry = self._pending.get(message_id)
            if entry and entry.request.reply_action == action:
                return message_id
            return None

        # Bridges that do not echo ids: oldest request for this action
        for pending_id, entry in self._pending.items():
            if entry.request.reply_action == action:
                return pending_id
        return None

    def close(self) -> None:
        """Fail every pending request."""
        pending = list(self._pending.values())
        self._pending.clear()

        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(
                    BridgeError("Ledger: bridge transport closed", action=entry.request.action)
                )
