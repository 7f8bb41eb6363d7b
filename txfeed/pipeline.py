import asyncio
import logging
import math
from typing import Optional

from .config import get_block_explorer_url
from .context import FeedContext
from .enricher import TransactionEnricher
from .poller import BlockPoller
from .scheduler import BatchScheduler
from .schemas import EnrichedTransaction, FeedItem, FeedState
from .utils import format_ether, format_time_ago, shorten_address


logger = logging.getLogger(__name__)


def next_tick_at(scheduled: float, now: float, interval: float) -> float:
    """
    Next slot on the fixed grid after `scheduled`.

    A tick that overran skips the slots it covered instead of queueing
    catch-up ticks, so the result is always later than `now` or equal to it.
    """
    next_tick = scheduled + interval
    if next_tick < now:
        missed = math.ceil((now - next_tick) / interval)
        next_tick += missed * interval
    return next_tick


class FeedPipeline:
    """
    Owns the polling loop and the pause/resume/visibility controls.

    Usage:
        pipeline = FeedPipeline(context)
        pipeline.start()
        ...
        pipeline.pause()    # readers see a frozen snapshot
        pipeline.resume()   # snapshot merged back into the live feed
        ...
        await pipeline.stop()
    """

    def __init__(self, context: FeedContext):
        self.context = context
        self.enricher = TransactionEnricher(context)
        self.scheduler = BatchScheduler(context, self.enricher)
        self.poller = BlockPoller(context, self.scheduler)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        if not self.context.active:
            raise RuntimeError("Feed pipeline was already stopped")
        self._task = asyncio.create_task(self._poll_loop(), name="feed-poll-loop")
        logger.info(
            "Feed pipeline started (interval=%ss, batch=%s)",
            self.context.settings.feed.poll_interval,
            self.context.settings.feed.batch_size,
        )

    async def stop(self) -> None:
        """
        Mark the pipeline inactive and wait for the current tick to drain.

        In-flight requests may finish; their results are discarded. A tick
        still running after the shutdown timeout is cancelled.
        """
        ctx = self.context
        ctx.active = False
        task, self._task = self._task, None
        if task is not None:
            try:
                await asyncio.wait_for(task, timeout=ctx.settings.feed.shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning("Feed pipeline did not drain in time, cancelled")
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Feed poll loop exited with an error")
        await ctx.close()
        logger.info("Feed pipeline stopped")

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.context.settings.feed.poll_interval
        next_tick = loop.time()

        while self.context.active:
            if self.context.should_run():
                try:
                    await self.poller.tick()
                except Exception as e:
                    logger.exception("Unexpected error in feed tick")
                    if self.context.active:
                        self.context.report_error(str(e) or "Failed to fetch blocks")

            now = loop.time()
            next_tick = next_tick_at(next_tick, now, interval)
            await asyncio.sleep(next_tick - now)

    # -----------------------------
    # Controls
    # -----------------------------
    def pause(self) -> None:
        if self.context.paused:
            return
        self.context.buffer.freeze()
        self.context.paused = True
        logger.info("Feed paused")

    def resume(self) -> None:
        if not self.context.paused:
            return
        self.context.buffer.thaw()
        self.context.paused = False
        logger.info("Feed resumed")

    def set_visible(self, visible: bool) -> None:
        self.context.visible = visible

    # -----------------------------
    # Read model
    # -----------------------------
    def _to_item(self, tx: EnrichedTransaction) -> FeedItem:
        chain = self.context.chain
        return FeedItem(
            **tx.model_dump(),
            value_eth=format_ether(tx.value),
            from_short=shorten_address(tx.from_address),
            to_short=shorten_address(tx.to_address),
            time_ago=format_time_ago(tx.observed_at),
            tx_url=get_block_explorer_url(chain, "tx", tx.tx_hash),
            wallet_url=get_block_explorer_url(chain, "address", tx.from_address),
        )

    def state(self) -> FeedState:
        ctx = self.context
        items = [self._to_item(t) for t in ctx.buffer.view()]
        return FeedState(
            transactions=items,
            count=len(items),
            capacity=ctx.buffer.capacity,
            loading=ctx.loading,
            error=ctx.error,
            paused=ctx.paused,
            visible=ctx.visible,
            active=ctx.active,
            cursor=self.poller.cursor,
        )
