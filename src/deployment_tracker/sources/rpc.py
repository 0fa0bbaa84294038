"""JSON-RPC 2.0 node adapter.

Calls go through the shared FetchClient so RPC requests get the same timeout
and retry behavior as every other source. Values are decoded with web3's
helpers; balances stay exact integers in wei.
"""

from __future__ import annotations

import itertools
import logging
from decimal import Decimal
from typing import Any

from web3 import Web3

from deployment_tracker.sources.fetch import FetchClient, FetchError
from deployment_tracker.sources.models import Balance, CodeInfo

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://rpc.megaeth.com"
EMPTY_CODE = frozenset({"", "0x", "0x0"})


class RpcError(FetchError):
    """Raised when the node answers with a JSON-RPC error object."""

    def __init__(self, message: str, *, url: str | None = None, code: int | None = None) -> None:
        super().__init__(message, url=url)
        self.code = code


class ChainRpcClient:
    """JSON-RPC client bound to a single preferred endpoint.

    Example:
        ```python
        rpc = ChainRpcClient(fetch_client, rpc_url="https://rpc.megaeth.com")
        code = await rpc.get_code("0x...")
        if code.is_contract:
            balance = await rpc.get_balance("0x...")
        ```
    """

    def __init__(self, fetch_client: FetchClient, *, rpc_url: str = DEFAULT_RPC_URL) -> None:
        self._fetch = fetch_client
        self._rpc_url = rpc_url
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Execute a JSON-RPC call and return its ``result``.

        Raises:
            RpcError: If the response body carries an ``error`` member.
            FetchError: If the HTTP request itself failed.
        """
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        data = await self._fetch.fetch_json(
            self._rpc_url,
            method="POST",
            json_body=body,
            headers={"Content-Type": "application/json"},
        )
        if not isinstance(data, dict):
            raise RpcError(f"RPC {method}: malformed response", url=self._rpc_url)
        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RpcError(f"RPC error: {message}", url=self._rpc_url, code=code)
        return data.get("result")

    async def get_code(self, address: str) -> CodeInfo:
        """Get deployed bytecode; empty code means the address is not a contract."""
        code = await self.call("eth_getCode", [Web3.to_checksum_address(address), "latest"])
        code = code or "0x"
        return CodeInfo(code=code, is_contract=code.lower() not in EMPTY_CODE)

    async def get_transaction_count(self, address: str) -> int:
        result = await self.call(
            "eth_getTransactionCount", [Web3.to_checksum_address(address), "latest"]
        )
        return Web3.to_int(hexstr=result)

    async def get_balance(self, address: str) -> Balance:
        """Get the native balance; wei is an exact integer, eth a Decimal."""
        result = await self.call("eth_getBalance", [Web3.to_checksum_address(address), "latest"])
        wei = Web3.to_int(hexstr=result)
        return Balance(wei=wei, eth=Decimal(Web3.from_wei(wei, "ether")))

    async def get_block_number(self) -> int:
        result = await self.call("eth_blockNumber")
        return Web3.to_int(hexstr=result)
