from pydantic import BaseModel
from typing import Any, Dict, Optional, List
from datetime import datetime


class EnrichedTransaction(BaseModel):
    tx_hash: str
    from_address: str
    to_address: str = ""
    value: str = "0"
    gas_fee: str = "0"
    observed_at: datetime
    method_selector: Optional[str] = None
    slippage: Optional[float] = None
    price_impact: Optional[float] = None
    label: str
    block_number: Optional[int] = None
    chain: str = "ethereum"


class FeedItem(EnrichedTransaction):
    value_eth: str
    from_short: str
    to_short: str
    time_ago: str
    tx_url: str
    wallet_url: str


class FeedState(BaseModel):
    transactions: List[FeedItem]
    count: int
    capacity: int
    loading: bool
    error: Optional[str] = None
    paused: bool
    visible: bool
    active: bool
    cursor: Optional[int] = None


class VisibilityRequest(BaseModel):
    visible: bool


class RpcRequest(BaseModel):
    method: Optional[str] = None
    params: Optional[List[Any]] = None


class WalletSummary(BaseModel):
    address: str
    chain: str
    balance: str
    balance_eth: str
    token_count: int
    transfers: List[Dict[str, Any]]


class TradingPattern(BaseModel):
    avg_volume: float
    max_volume: float
    min_volume: float
    most_active_hour: int
    buying_dips: bool


class StrategyRequest(BaseModel):
    transactions: Optional[List[Dict[str, Any]]] = None
    chain: str = "ethereum"


class StrategyResponse(BaseModel):
    strategy: str
    pattern: TradingPattern
