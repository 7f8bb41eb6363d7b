from typing import List

from .rpc import AlchemyRpc
from .schemas import WalletSummary
from .utils import format_ether, hex_to_int


TRANSFER_CATEGORIES: List[str] = ["external", "internal", "erc20", "erc721", "erc1155"]


async def fetch_wallet_summary(
    rpc: AlchemyRpc,
    address: str,
    chain: str = "ethereum",
    limit: int = 20,
) -> WalletSummary:
    """
    Balance, token count and most recent outgoing transfers for an address.
    """
    balance_hex = await rpc.get_balance(address)
    token_balances = await rpc.get_token_balances(address) or {}
    transfers = await rpc.get_asset_transfers(
        from_block="0x0",
        from_address=address,
        category=TRANSFER_CATEGORIES,
    ) or {}

    balance = hex_to_int(balance_hex) or 0

    return WalletSummary(
        address=address,
        chain=chain,
        balance=str(balance),
        balance_eth=format_ether(balance),
        token_count=len(token_balances.get("tokenBalances") or []),
        transfers=(transfers.get("transfers") or [])[:limit],
    )
