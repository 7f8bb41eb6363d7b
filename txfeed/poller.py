"""
Block poller

Each tick reads the chain head and walks every block not yet seen:

- first tick: the head plus `bootstrap_blocks` blocks before it, oldest first
- later ticks: every block in (cursor, head], ascending
- head unchanged: nothing to do

A failed head read is reported on the context and the cursor stays put, so
the next tick retries. A failed historical block is logged and skipped; the
cursor still moves to head once the range has been attempted.
"""

import logging
from typing import List, Optional

from .context import FeedContext
from .scheduler import BatchScheduler
from .utils import hex_to_int


logger = logging.getLogger(__name__)


class BlockPoller:
    def __init__(self, context: FeedContext, scheduler: BatchScheduler, bootstrap_blocks: Optional[int] = None):
        self.context = context
        self.scheduler = scheduler
        self.bootstrap_blocks = (
            context.settings.feed.bootstrap_blocks if bootstrap_blocks is None else bootstrap_blocks
        )
        self.cursor: Optional[int] = None

    def plan(self, head: int) -> List[int]:
        """Block numbers to process for this head, in processing order."""
        if self.cursor is None:
            start = max(head - self.bootstrap_blocks, 0)
            return list(range(start, head + 1))
        if head > self.cursor:
            return list(range(self.cursor + 1, head + 1))
        return []

    async def fetch_head(self) -> int:
        block = await self.context.rpc.get_block("latest", False)
        number = hex_to_int(block.get("number")) if block else None
        if number is None:
            raise RuntimeError("Latest block unavailable")
        return number

    async def tick(self) -> bool:
        """
        Run one poll iteration. Returns True when the cursor moved.
        """
        ctx = self.context
        if not ctx.should_run():
            return False

        try:
            head = await self.fetch_head()
        except Exception as e:
            logger.error("Error polling for blocks: %s", e)
            if ctx.active:
                ctx.report_error(str(e) or "Failed to fetch blocks")
                ctx.loading = False
            return False

        if not ctx.active:
            return False
        ctx.clear_error()

        blocks = self.plan(head)
        if not blocks:
            ctx.loading = False
            return False

        completed: Optional[int] = None
        interrupted = False
        for number in blocks:
            if not ctx.should_run():
                interrupted = True
                break
            if not await self.process_block(number):
                interrupted = True
                break
            completed = number

        if not ctx.active:
            return False

        previous = self.cursor
        if not interrupted:
            self.cursor = head
        elif completed is not None:
            # resume after the last block that was fully dispatched
            self.cursor = completed
        ctx.loading = False

        if self.cursor != previous:
            logger.debug("Cursor advanced %s -> %s", previous, self.cursor)
            return True
        return False

    async def process_block(self, number: int) -> bool:
        """
        Enrich every transaction in block `number`.

        Returns False only when dispatch was cut short by pause or teardown;
        a block that could not be fetched counts as attempted.
        """
        try:
            block = await self.context.rpc.get_block(number, False)
        except Exception as e:
            logger.warning("Error processing block %s: %s", number, e)
            return True

        hashes = (block or {}).get("transactions") or []
        if not hashes:
            return True

        # without full transactions the node returns plain hashes
        hashes = [h if isinstance(h, str) else h.get("hash") for h in hashes]
        return await self.scheduler.run([h for h in hashes if h], block_number=number)
