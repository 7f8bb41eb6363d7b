from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .schemas import TradingPattern


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, (int, float)):
        ts = datetime.fromtimestamp(raw, tz=timezone.utc)
    else:
        try:
            ts = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _volume(transfer: Dict[str, Any]) -> float:
    raw = transfer.get("value")
    if raw is None:
        raw = transfer.get("amount")
    try:
        return float(raw or 0)
    except (TypeError, ValueError):
        return 0.0


def analyze_trading_pattern(transfers: List[Dict[str, Any]]) -> TradingPattern:
    """
    Volume stats, most active UTC hour and dip-buying tendency of a
    wallet's transfers. Transfers without a timestamp count as "now".
    """
    if not transfers:
        return TradingPattern(
            avg_volume=0.0,
            max_volume=0.0,
            min_volume=0.0,
            most_active_hour=0,
            buying_dips=False,
        )

    volumes = [_volume(t) for t in transfers]

    timestamps = []
    for t in transfers:
        metadata = t.get("metadata") or {}
        raw = metadata.get("blockTimestamp") or t.get("blockTime") or t.get("timestamp")
        ts = _parse_timestamp(raw) if raw is not None else datetime.now(timezone.utc)
        if ts is not None:
            timestamps.append(ts)

    hour_counts = Counter(ts.astimezone(timezone.utc).hour for ts in timestamps)
    # ties go to the earliest hour
    most_active_hour = min(hour_counts, key=lambda h: (-hour_counts[h], h)) if hour_counts else 0

    increases = [cur > prev for prev, cur in zip(volumes, volumes[1:])]
    buying_dips = bool(increases) and sum(increases) / len(increases) > 0.6

    return TradingPattern(
        avg_volume=sum(volumes) / len(volumes),
        max_volume=max(volumes),
        min_volume=min(volumes),
        most_active_hour=most_active_hour,
        buying_dips=buying_dips,
    )


def build_strategy_prompt(pattern: TradingPattern, symbol: str = "ETH") -> str:
    return (
        "Based on the following trading pattern analysis, generate a PineScript v5 strategy:\n"
        f"- Average transaction volume: {pattern.avg_volume} {symbol}\n"
        f"- Maximum transaction: {pattern.max_volume} {symbol}\n"
        f"- Minimum transaction: {pattern.min_volume} {symbol}\n"
        f"- Most active trading hour: {pattern.most_active_hour}:00 UTC\n"
        f"- Tendency to buy dips: {'Yes' if pattern.buying_dips else 'No'}\n\n"
        "Generate a complete PineScript v5 strategy that matches this trading behavior. Include:\n"
        "1. Appropriate indicators (RSI, EMA, Volume)\n"
        "2. Entry and exit conditions\n"
        "3. Position sizing\n"
        "4. Risk management rules\n"
        "The strategy should be ready to copy-paste into TradingView."
    )


def generate_strategy(client, model: str, pattern: TradingPattern, symbol: str = "ETH") -> str:
    """`client` is an openai.OpenAI instance."""
    system_msg = (
        "You are an expert crypto trading strategy developer who specializes in PineScript v5. "
        "Generate complete, working strategies based on wallet analysis."
    )

    chat = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_msg},
            {"role": "user", "content": build_strategy_prompt(pattern, symbol)},
        ],
        temperature=0.7,
    )

    return (chat.choices[0].message.content or "").strip()
