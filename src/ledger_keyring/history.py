"""Transaction history lookups against an Etherscan-compatible explorer API.

Used by wallet managers to tell fresh accounts from used ones during
discovery. API Docs: https://docs.etherscan.io/api-endpoints/accounts
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class TransactionHistoryClient:
    """Minimal explorer client for one network."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            api_url: Explorer base URL (``/api`` is appended)
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (proxies, tests)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def has_transactions(self, address: str) -> bool:
        """Check whether an address has at least one transaction.

        Raises:
            httpx.HTTPError: On transport errors or non-2xx responses
        """
        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "tag": "latest",
            "page": 1,
            "offset": 1,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(f"{self.api_url}/api", params=params)
            response.raise_for_status()
            data = response.json()

        result = data.get("result") or []
        has_txs = data.get("status") != "0" and len(result) > 0
        logger.debug(f"History for {address}: {'used' if has_txs else 'fresh'}")
        return has_txs
