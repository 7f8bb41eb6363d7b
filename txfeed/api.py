import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import ConfigurationError, get_chain_config
from .pipeline import FeedPipeline
from .rpc import RpcError
from .schemas import (
    FeedState,
    RpcRequest,
    StrategyRequest,
    StrategyResponse,
    VisibilityRequest,
    WalletSummary,
)
from .strategy import analyze_trading_pattern, generate_strategy
from .wallet import fetch_wallet_summary


logger = logging.getLogger(__name__)

feed_router = APIRouter(prefix="/feed", tags=["feed"])
rpc_router = APIRouter(tags=["rpc"])
wallet_router = APIRouter(prefix="/wallets", tags=["wallets"])
strategy_router = APIRouter(tags=["strategy"])


# -----------------------------
# Helpers
# -----------------------------
def get_pipeline(request: Request) -> FeedPipeline:
    return request.app.state.pipeline


def _is_evm_address(address: str) -> bool:
    if len(address) != 42 or not address.lower().startswith("0x"):
        return False
    try:
        int(address[2:], 16)
    except ValueError:
        return False
    return True


BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


def _is_solana_address(address: str) -> bool:
    return 32 <= len(address) <= 44 and set(address) <= BASE58_ALPHABET


def _unsupported_chain(name: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=f"Wallet analysis is not supported on {name}; only EVM chains are available",
    )


# -----------------------------
# /feed
# -----------------------------
@feed_router.get("", response_model=FeedState)
async def feed_state(pipeline: FeedPipeline = Depends(get_pipeline)):
    return pipeline.state()


@feed_router.post("/pause", response_model=FeedState)
async def pause_feed(pipeline: FeedPipeline = Depends(get_pipeline)):
    pipeline.pause()
    return pipeline.state()


@feed_router.post("/resume", response_model=FeedState)
async def resume_feed(pipeline: FeedPipeline = Depends(get_pipeline)):
    pipeline.resume()
    return pipeline.state()


@feed_router.post("/visibility", response_model=FeedState)
async def set_visibility(payload: VisibilityRequest, pipeline: FeedPipeline = Depends(get_pipeline)):
    pipeline.set_visible(payload.visible)
    return pipeline.state()


# -----------------------------
# /rpc
# -----------------------------
@rpc_router.post("/rpc")
async def relay_rpc(payload: RpcRequest, pipeline: FeedPipeline = Depends(get_pipeline)):
    if not payload.method:
        return JSONResponse({"error": "Method is required"}, status_code=400)

    try:
        data = await pipeline.context.rpc.relay(payload.method, payload.params or [])
    except (RpcError, httpx.HTTPError) as e:
        logger.error("Alchemy API error: %s", e)
        return JSONResponse(
            {"error": "Failed to fetch from Alchemy API", "details": str(e)},
            status_code=500,
        )
    return JSONResponse(data)


# -----------------------------
# /wallets/{address}
# -----------------------------
@wallet_router.get("/{address}", response_model=WalletSummary)
async def wallet_summary(
    address: str,
    limit: int = 20,
    chain: Optional[str] = None,
    pipeline: FeedPipeline = Depends(get_pipeline),
):
    if chain:
        try:
            chain_config = get_chain_config(chain.lower())
        except ConfigurationError:
            raise HTTPException(status_code=400, detail=f"Unknown chain: {chain}")
        if not chain_config["evm"]:
            raise _unsupported_chain(chain_config["name"])

    if not _is_evm_address(address):
        if _is_solana_address(address):
            raise _unsupported_chain(get_chain_config("solana")["name"])
        raise HTTPException(status_code=400, detail=f"Invalid address: {address}")

    try:
        return await fetch_wallet_summary(
            pipeline.context.rpc,
            address,
            chain=pipeline.context.chain,
            limit=limit,
        )
    except (RpcError, httpx.HTTPError) as e:
        logger.error("Wallet lookup failed for %s: %s", address, e)
        raise HTTPException(status_code=502, detail=str(e))


# -----------------------------
# /strategy
# -----------------------------
@strategy_router.post("/strategy", response_model=StrategyResponse)
def trading_strategy(payload: StrategyRequest, request: Request):
    if payload.transactions is None:
        raise HTTPException(status_code=400, detail="Invalid transactions data")

    client = request.app.state.openai_client
    if client is None:
        raise HTTPException(status_code=503, detail="OPENAI_API_KEY is not configured")

    settings = request.app.state.settings
    pattern = analyze_trading_pattern(payload.transactions)

    try:
        strategy_text = generate_strategy(
            client,
            settings.openai_model,
            pattern,
            symbol=settings.chain_config["symbol"],
        )
    except Exception:
        logger.exception("Strategy generation error")
        raise HTTPException(status_code=500, detail="Failed to generate strategy")

    return StrategyResponse(strategy=strategy_text, pattern=pattern)
