"""
Human-readable transaction labels.

classify() is a pure function of a transaction's value (wei integer string),
method selector, slippage and price impact. Rules are checked top to bottom
and the first match wins. Zero or missing metrics never satisfy a metric rule.
"""

from decimal import InvalidOperation
from typing import Optional

from .utils import wei_to_ether


def _value_in_eth(value: Optional[str]) -> float:
    try:
        return float(wei_to_ether(value or "0"))
    except (TypeError, ValueError, InvalidOperation):
        return 0.0


def _classify_whale(value_eth: float, slippage, price_impact) -> str:
    if price_impact and price_impact > 5:
        return "🐋💥 Whale Liquidation"
    if price_impact and price_impact > 2:
        return "🐋📉 Whale Distribution"
    if price_impact and price_impact < 0.5 and value_eth > 500:
        return "🐋📈 Whale Accumulation"
    if slippage and slippage > 3:
        return "🐋💨 Whale Market Dump"
    if slippage and slippage < 0.1 and value_eth > 1000:
        return "🐋🎯 Strategic Whale"
    return "🐋 Whale Movement"


def _classify_method(method: str, value_eth: float, slippage, price_impact) -> Optional[str]:
    # DEX
    if "swap" in method:
        if slippage and slippage > 3:
            return "📉💨 Panic Sell"
        if price_impact and price_impact < 0.1:
            return "🤖⚡ MEV Sandwich"
        if value_eth > 50:
            return "🔄💰 Large Position Swap"
        if slippage and slippage < 0.1:
            return "🎯 Limit Swap"
        return "💱 DEX Trade"

    # Lending
    if "borrow" in method:
        if value_eth > 100:
            return "🏦💰 Large Loan"
        if slippage and slippage > 1:
            return "⚡💸 Flash Loan"
        return "💰 DeFi Borrow"

    if "repay" in method:
        if value_eth > 100:
            return "🏦✅ Large Repayment"
        if price_impact and price_impact > 2:
            return "🏦⚠️ Forced Repayment"
        return "💰 DeFi Repay"

    # Staking and yield
    if "stake" in method:
        if value_eth >= 32:
            return "🎯🔒 ETH2 Validator"
        if value_eth > 10:
            return "🌾💰 Large Stake"
        return "🌾 Yield Stake"

    if "deposit" in method:
        if value_eth > 50:
            return "💎🔒 Large Lock"
        if slippage and slippage < 0.1:
            return "🎯 Strategic Deposit"
        return "📥 Deposit"

    if "withdraw" in method:
        if value_eth > 50:
            return "💎🔓 Large Unlock"
        if price_impact and price_impact > 2:
            return "🚨 Forced Withdrawal"
        return "📤 Withdrawal"

    # NFTs
    if "mint" in method:
        if value_eth > 1:
            return "🎨💰 High-Value Mint"
        return "🎨 NFT Mint"

    if "transfer" in method and "721" in method:
        if value_eth > 1:
            return "🎭💰 High-Value NFT"
        return "🎭 NFT Transfer"

    if "vote" in method or "propose" in method:
        return "🏛️ Governance"

    if "bridge" in method or "portal" in method:
        if value_eth > 10:
            return "🌉💰 Large Bridge"
        return "🌉 Bridge Transfer"

    return None


def classify(
    value: Optional[str],
    method_selector: Optional[str],
    slippage: Optional[float],
    price_impact: Optional[float],
) -> str:
    value_eth = _value_in_eth(value)

    if value_eth > 100:
        return _classify_whale(value_eth, slippage, price_impact)

    if method_selector:
        label = _classify_method(method_selector.lower(), value_eth, slippage, price_impact)
        if label:
            return label

    # Market behaviour, needs both metrics
    if slippage and price_impact:
        if slippage > 5 and price_impact > 3:
            if value_eth > 50:
                return "💣💥 Major Market Move"
            return "📊⚠️ High Market Impact"
        if slippage < 0.1 and price_impact < 0.1:
            if value_eth > 10:
                return "⚡💰 Large Arbitrage"
            if value_eth > 1:
                return "⚡ Fast Arbitrage"
            return "🤖 Bot Trade"
        if slippage < 0.5:
            if value_eth > 10:
                return "💧💰 Large LP Add"
            if value_eth > 1:
                return "💧 Liquidity Add"
            return "💧 Small LP"

    if price_impact:
        if price_impact > 5:
            return "🚨💥 Emergency Exit"
        if price_impact > 3:
            return "🔥 Urgent Exit"
        if price_impact > 1 and value_eth > 5:
            return "⏰💨 Time-Sensitive"
        if price_impact < 0.05 and value_eth > 1:
            return "🎯 Precision Trade"

    if value_eth > 75:
        return "💎 Large Value Transfer"
    if value_eth > 25:
        return "💼 Significant Transfer"
    if value_eth > 5:
        return "📦 Medium Transfer"
    if value_eth > 1:
        return "💱 Standard Transfer"
    if value_eth > 0.1:
        return "🔹 Small Transfer"
    if value_eth > 0.01:
        return "📍 Micro Transfer"
    return "🌫️ Dust Transfer"
