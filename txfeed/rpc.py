import logging
from typing import Any, List, Optional, Union

import httpx

from .utils import to_hex_quantity


logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """Upstream node answered with an error envelope or an unusable response."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class AlchemyRpc:
    """
    Async JSON-RPC client for an Alchemy (or any EVM) endpoint.

    relay() hands back the raw envelope untouched; call() and the helpers
    unwrap `result` and raise RpcError on `{error}`.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._request_id = 0

    async def _post(self, method: str, params: Optional[list]):
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        res = await self._client.post(self.url, json=payload)
        try:
            return res, res.json()
        except ValueError:
            if res.status_code >= 400:
                raise RpcError(
                    f"Alchemy API error: {res.status_code} {res.reason_phrase}",
                    code=res.status_code,
                )
            raise RpcError("Alchemy API returned a non-JSON response")

    async def relay(self, method: str, params: Optional[list] = None) -> Any:
        """Upstream JSON body as-is, whatever the HTTP status."""
        _, data = await self._post(method, params)
        return data

    async def call(self, method: str, params: Optional[list] = None) -> Any:
        res, data = await self._post(method, params)
        error = data.get("error") if isinstance(data, dict) else None
        if error:
            if isinstance(error, dict):
                raise RpcError(error.get("message") or "Alchemy API error", code=error.get("code"))
            raise RpcError(str(error))
        if res.status_code >= 400:
            raise RpcError(
                f"Alchemy API error: {res.status_code} {res.reason_phrase}",
                code=res.status_code,
            )
        if not isinstance(data, dict):
            raise RpcError("Alchemy API returned a malformed envelope")
        return data.get("result")

    # -----------------------------
    # Chain reads
    # -----------------------------
    async def get_block(self, block: Union[int, str], full_transactions: bool = False) -> Optional[dict]:
        tag = to_hex_quantity(block) if isinstance(block, int) else block
        return await self.call("eth_getBlockByNumber", [tag, full_transactions])

    async def get_transaction(self, tx_hash: str) -> Optional[dict]:
        return await self.call("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    # -----------------------------
    # Wallet reads
    # -----------------------------
    async def get_balance(self, address: str) -> Optional[str]:
        return await self.call("eth_getBalance", [address, "latest"])

    async def get_token_balances(self, address: str) -> Optional[dict]:
        return await self.call("alchemy_getTokenBalances", [address])

    async def get_asset_transfers(
        self,
        from_block: Optional[str] = None,
        to_block: Optional[str] = None,
        from_address: Optional[str] = None,
        to_address: Optional[str] = None,
        category: Optional[List[str]] = None,
    ) -> Optional[dict]:
        params = {}
        if from_block:
            params["fromBlock"] = from_block
        if to_block:
            params["toBlock"] = to_block
        if from_address:
            params["fromAddress"] = from_address
        if to_address:
            params["toAddress"] = to_address
        if category:
            params["category"] = category
        return await self.call("alchemy_getAssetTransfers", [params])

    async def aclose(self) -> None:
        await self._client.aclose()
