from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from openai import OpenAI

from txfeed.api import feed_router, rpc_router, strategy_router, wallet_router
from txfeed.config import Settings, load_settings
from txfeed.context import FeedContext
from txfeed.logging_config import setup_logging
from txfeed.pipeline import FeedPipeline
from txfeed.rpc import AlchemyRpc


def create_app(
    settings: Optional[Settings] = None,
    rpc: Optional[AlchemyRpc] = None,
    openai_client=None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ConfigurationError here aborts startup; the feed never runs
        cfg = settings or load_settings()
        client = rpc or AlchemyRpc(cfg.rpc_url, timeout=cfg.rpc_timeout)
        pipeline = FeedPipeline(FeedContext(cfg, client))

        app.state.settings = cfg
        app.state.pipeline = pipeline
        app.state.openai_client = openai_client or (
            OpenAI(api_key=cfg.openai_api_key) if cfg.openai_api_key else None
        )

        if cfg.feed.autostart:
            pipeline.start()
        try:
            yield
        finally:
            await pipeline.stop()

    app = FastAPI(
        title="Transaction Feed",
        description="Live feed of enriched and labelled on-chain transactions.",
        lifespan=lifespan,
    )

    app.include_router(feed_router)
    app.include_router(rpc_router)
    app.include_router(wallet_router)
    app.include_router(strategy_router)

    @app.api_route("/health", methods=["GET", "HEAD"], include_in_schema=False)
    def health():
        return {"status": "ok"}

    return app


setup_logging()
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
