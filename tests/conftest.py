"""
Pytest fixtures for the feed pipeline. The upstream node is replaced by an
in-memory FakeRpc so nothing touches the network.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

from txfeed.config import FeedSettings, Settings
from txfeed.context import FeedContext
from txfeed.rpc import RpcError
from txfeed.schemas import EnrichedTransaction

ONE_ETH = 10 ** 18
GWEI = 10 ** 9
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeRpc:
    """Serves blocks, transactions and receipts from dicts and records calls."""

    def __init__(self, head: int = 100):
        self.head = head
        self.blocks: Dict[int, List[str]] = {}
        self.txs: Dict[str, dict] = {}
        self.receipts: Dict[str, dict] = {}
        self.failing_blocks = set()
        self.failing_hashes = set()
        self.fail_head = False
        self.latency = 0.0
        self.on_block: Optional[Callable[[int], None]] = None
        self.calls: List[tuple] = []
        self.closed = False

        self.relay_response = {"jsonrpc": "2.0", "id": 1, "result": "0x10"}
        self.balance = hex(ONE_ETH)
        self.token_balances = {"tokenBalances": [{"contractAddress": "0xabc"}]}
        self.transfers = {"transfers": []}

    def add_tx(
        self,
        tx_hash: str,
        block: Optional[int] = None,
        value: int = ONE_ETH,
        gas_price: Optional[int] = 20 * GWEI,
        effective_gas_price: Optional[int] = 22 * GWEI,
        gas_used: Optional[int] = 21000,
        data: str = "0x",
        to: Optional[str] = "0x" + "b" * 40,
    ) -> None:
        tx = {"hash": tx_hash, "from": "0x" + "a" * 40, "to": to, "value": hex(value), "input": data}
        if gas_price is not None:
            tx["gasPrice"] = hex(gas_price)
        receipt = {"transactionHash": tx_hash}
        if effective_gas_price is not None:
            receipt["effectiveGasPrice"] = hex(effective_gas_price)
        if gas_used is not None:
            receipt["gasUsed"] = hex(gas_used)
        self.txs[tx_hash] = tx
        self.receipts[tx_hash] = receipt
        if block is not None:
            self.blocks.setdefault(block, []).append(tx_hash)

    async def get_block(self, block, full_transactions=False):
        self.calls.append(("eth_getBlockByNumber", block))
        await asyncio.sleep(self.latency)
        if block == "latest":
            if self.fail_head:
                raise RpcError("rate limited", code=429)
            return {"number": hex(self.head), "transactions": self.blocks.get(self.head, [])}
        if self.on_block is not None:
            self.on_block(block)
        if block in self.failing_blocks:
            raise RpcError(f"block {block} unavailable")
        if block not in self.blocks:
            return None
        return {"number": hex(block), "transactions": list(self.blocks[block])}

    async def get_transaction(self, tx_hash):
        self.calls.append(("eth_getTransactionByHash", tx_hash))
        await asyncio.sleep(self.latency)
        if tx_hash in self.failing_hashes:
            raise RpcError("upstream timeout")
        return self.txs.get(tx_hash)

    async def get_transaction_receipt(self, tx_hash):
        self.calls.append(("eth_getTransactionReceipt", tx_hash))
        await asyncio.sleep(self.latency)
        return self.receipts.get(tx_hash)

    async def relay(self, method, params=None):
        self.calls.append((method, params))
        if isinstance(self.relay_response, Exception):
            raise self.relay_response
        return self.relay_response

    async def get_balance(self, address):
        return self.balance

    async def get_token_balances(self, address):
        return self.token_balances

    async def get_asset_transfers(self, **filters):
        self.calls.append(("alchemy_getAssetTransfers", filters))
        return self.transfers

    async def aclose(self):
        self.closed = True

    def block_calls(self) -> List[int]:
        return [arg for method, arg in self.calls if method == "eth_getBlockByNumber" and arg != "latest"]

    def tx_calls(self, tx_hash: str) -> int:
        return sum(1 for method, arg in self.calls if method == "eth_getTransactionByHash" and arg == tx_hash)


def make_tx(tx_hash: str, seconds: int = 0, **overrides) -> EnrichedTransaction:
    fields = dict(
        tx_hash=tx_hash,
        from_address="0x" + "a" * 40,
        to_address="0x" + "b" * 40,
        value=str(ONE_ETH),
        gas_fee=str(20 * GWEI),
        observed_at=BASE_TIME + timedelta(seconds=seconds),
        label="💱 Standard Transfer",
    )
    fields.update(overrides)
    return EnrichedTransaction(**fields)


@pytest.fixture
def settings():
    return Settings(
        chain="ethereum",
        rpc_url="http://rpc.test",
        feed=FeedSettings(
            poll_interval=0.01,
            bootstrap_blocks=2,
            batch_size=5,
            batch_delay=0.0,
            capacity=100,
            autostart=False,
            shutdown_timeout=1.0,
        ),
    )


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def context(settings, rpc):
    return FeedContext(settings, rpc)
