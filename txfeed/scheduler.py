import asyncio
import logging
from typing import List, Optional, Sequence

from .context import FeedContext
from .enricher import TransactionEnricher


logger = logging.getLogger(__name__)


def partition(hashes: Sequence[str], size: int) -> List[List[str]]:
    """Split into contiguous batches of `size`; the last batch may be shorter."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [list(hashes[i:i + size]) for i in range(0, len(hashes), size)]


class BatchScheduler:
    """
    Drives the enricher over one block's hashes, one batch at a time.

    Each batch runs fully concurrent and must settle before the pacing delay
    and the next batch. Dispatch stops as soon as the pipeline should not run;
    batches already dispatched are left to finish.
    """

    def __init__(
        self,
        context: FeedContext,
        enricher: TransactionEnricher,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.context = context
        self.enricher = enricher
        self.batch_size = batch_size or context.settings.feed.batch_size
        self.batch_delay = context.settings.feed.batch_delay if batch_delay is None else batch_delay

    async def run(self, hashes: Sequence[str], block_number: Optional[int] = None) -> bool:
        """Returns True when every batch was dispatched."""
        batches = partition(hashes, self.batch_size)

        for i, batch in enumerate(batches):
            if not self.context.should_run():
                return False

            results = await asyncio.gather(
                *(self.enricher.enrich(h, block_number) for h in batch),
                return_exceptions=True,
            )
            for tx_hash, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("Enrichment task for %s failed: %r", tx_hash, result)

            is_last = i == len(batches) - 1
            if not is_last and self.context.should_run():
                await asyncio.sleep(self.batch_delay)

        return True
