import logging
from typing import Optional

from .config import Settings
from .feed_buffer import FeedBuffer
from .rpc import AlchemyRpc


logger = logging.getLogger(__name__)


class FeedContext:
    """
    Shared state of one feed pipeline run.

    Built once at startup and passed to every component. `active` is a
    one-way flag: after close() nothing may touch the cursor or the buffer.
    """

    def __init__(self, settings: Settings, rpc: AlchemyRpc, buffer: Optional[FeedBuffer] = None):
        self.settings = settings
        self.rpc = rpc
        self.buffer = buffer or FeedBuffer(settings.feed.capacity)

        self.active = True
        self.paused = False
        self.visible = True
        self.loading = True
        self.error: Optional[str] = None

    @property
    def chain(self) -> str:
        return self.settings.chain

    def should_run(self) -> bool:
        return self.active and not self.paused and self.visible

    def report_error(self, message: str) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    async def close(self) -> None:
        self.active = False
        await self.rpc.aclose()
        logger.info("Feed context closed")
