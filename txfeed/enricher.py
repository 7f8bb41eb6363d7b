import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Set

from .context import FeedContext
from .labels import classify
from .schemas import EnrichedTransaction
from .utils import hex_to_int


logger = logging.getLogger(__name__)

Classifier = Callable[[Optional[str], Optional[str], Optional[float], Optional[float]], str]


def method_selector(call_data: Optional[str]) -> Optional[str]:
    """First 4 bytes of call data as 0x-prefixed hex, None for plain transfers."""
    if not call_data or call_data == "0x":
        return None
    return call_data[:10]


def compute_slippage(gas_price: Optional[int], effective_gas_price: Optional[int]) -> Optional[float]:
    if gas_price is None or effective_gas_price is None or gas_price == 0:
        return None
    return (effective_gas_price - gas_price) / gas_price * 100


def compute_price_impact(
    gas_used: Optional[int],
    effective_gas_price: Optional[int],
    value: Optional[int],
) -> Optional[float]:
    if gas_used is None or effective_gas_price is None or not value:
        return None
    return (gas_used * effective_gas_price) / value * 100


class TransactionEnricher:
    """
    Turns a transaction hash into an EnrichedTransaction and upserts it.

    A hash already being enriched is ignored, so overlapping batches or ticks
    cost at most one fetch pair per hash. Failures are logged and the hash is
    skipped; enrich() never raises.
    """

    def __init__(self, context: FeedContext, classifier: Classifier = classify):
        self.context = context
        self.classifier = classifier
        self._in_flight: Set[str] = set()

    @property
    def in_flight(self) -> Set[str]:
        return set(self._in_flight)

    async def enrich(self, tx_hash: str, block_number: Optional[int] = None) -> Optional[EnrichedTransaction]:
        if tx_hash in self._in_flight:
            return None
        self._in_flight.add(tx_hash)

        try:
            rpc = self.context.rpc
            tx, receipt = await asyncio.gather(
                rpc.get_transaction(tx_hash),
                rpc.get_transaction_receipt(tx_hash),
            )
            if not tx or not receipt:
                logger.debug("Skipping %s: transaction or receipt not found", tx_hash)
                return None

            enriched = self._build(tx_hash, tx, receipt, block_number)

            # results that land after teardown are dropped
            if not self.context.active:
                return None
            self.context.buffer.upsert(enriched)
            return enriched
        except Exception:
            logger.exception("Error processing transaction %s", tx_hash)
            return None
        finally:
            self._in_flight.discard(tx_hash)

    def _build(self, tx_hash: str, tx: dict, receipt: dict, block_number: Optional[int]) -> EnrichedTransaction:
        value = hex_to_int(tx.get("value")) or 0
        gas_price = hex_to_int(tx.get("gasPrice"))
        effective_gas_price = hex_to_int(receipt.get("effectiveGasPrice"))
        gas_used = hex_to_int(receipt.get("gasUsed"))

        selector = method_selector(tx.get("input") or tx.get("data"))
        slippage = compute_slippage(gas_price, effective_gas_price)
        price_impact = compute_price_impact(gas_used, effective_gas_price, value)

        gas_fee = effective_gas_price if effective_gas_price is not None else gas_price
        if block_number is None:
            block_number = hex_to_int(tx.get("blockNumber"))

        return EnrichedTransaction(
            tx_hash=tx_hash,
            from_address=tx.get("from") or "",
            to_address=tx.get("to") or "",
            value=str(value),
            gas_fee=str(gas_fee or 0),
            observed_at=datetime.now(timezone.utc),
            method_selector=selector,
            slippage=slippage,
            price_impact=price_impact,
            label=self.classifier(str(value), selector, slippage, price_impact),
            block_number=block_number,
            chain=self.context.chain,
        )
