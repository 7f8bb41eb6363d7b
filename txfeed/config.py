"""
Runtime configuration for the transaction feed.

Values come from the environment (a local .env is loaded first):
- ALCHEMY_API_KEY / ALCHEMY_KEY: upstream credentials (required)
- ETH_NETWORK_URL: full upstream URL, overrides the Alchemy key
- FEED_CHAIN: which CHAIN_CONFIG entry drives the feed (default: ethereum)
- FEED_POLL_INTERVAL, FEED_BOOTSTRAP_BLOCKS, FEED_BATCH_SIZE,
  FEED_BATCH_DELAY, FEED_CAPACITY, FEED_AUTOSTART: pipeline tuning
- RPC_TIMEOUT: per-request upstream timeout in seconds
- OPENAI_API_KEY / OPENAI_MODEL: strategy generator (optional)
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


ALCHEMY_URL_TEMPLATE = "https://eth-mainnet.g.alchemy.com/v2/{key}"

CHAIN_CONFIG = {
    "ethereum": {
        "mainnet": {
            "name": "Ethereum Mainnet",
            "network_url_env": "ETH_NETWORK_URL",
            "block_explorer": "https://etherscan.io",
            "symbol": "ETH",
            "evm": True,
        }
    },
    "solana": {
        "mainnet": {
            "name": "Solana Mainnet",
            "network_url_env": "SOLANA_NETWORK_URL",
            "block_explorer": "https://solscan.io",
            "symbol": "SOL",
            "evm": False,
        }
    },
}


class ConfigurationError(RuntimeError):
    """Raised when the service cannot start with the given environment."""


def get_chain_config(chain: str, network: str = "mainnet") -> dict:
    try:
        return CHAIN_CONFIG[chain][network]
    except KeyError:
        raise ConfigurationError(f"Unknown chain/network: {chain}/{network}")


def get_block_explorer_url(chain: str, kind: str, identifier: str) -> str:
    """kind is "tx" or "address"."""
    config = get_chain_config(chain)
    return f"{config['block_explorer']}/{kind}/{identifier}"


@dataclass
class FeedSettings:
    """Tuning for the block poller, batch scheduler and feed buffer."""
    poll_interval: float = 2.0      # seconds between ticks
    bootstrap_blocks: int = 2       # blocks before head processed on first tick
    batch_size: int = 5             # concurrent enrichments per batch
    batch_delay: float = 0.1        # pause between batches
    capacity: int = 100             # max transactions kept in the feed
    autostart: bool = True
    shutdown_timeout: float = 5.0   # how long stop() waits for in-flight work


@dataclass
class Settings:
    chain: str
    rpc_url: str
    rpc_timeout: float = 10.0
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"
    feed: FeedSettings = field(default_factory=FeedSettings)

    @property
    def chain_config(self) -> dict:
        return get_chain_config(self.chain)


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _resolve_rpc_url(chain_config: dict) -> str:
    url = (os.getenv(chain_config["network_url_env"]) or "").strip()
    if url:
        return url
    key = (os.getenv("ALCHEMY_API_KEY") or os.getenv("ALCHEMY_KEY") or "").strip()
    if not key:
        raise ConfigurationError("ALCHEMY_API_KEY is missing")
    return ALCHEMY_URL_TEMPLATE.format(key=key)


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises ConfigurationError when credentials are missing, a tuning value
    is malformed, or the selected chain cannot drive the EVM feed.
    """
    load_dotenv()

    chain = (os.getenv("FEED_CHAIN") or "ethereum").strip().lower()
    chain_config = get_chain_config(chain)
    if not chain_config["evm"]:
        raise ConfigurationError(f"{chain_config['name']} is not an EVM chain")

    feed = FeedSettings(
        poll_interval=_env_float("FEED_POLL_INTERVAL", 2.0),
        bootstrap_blocks=_env_int("FEED_BOOTSTRAP_BLOCKS", 2),
        batch_size=_env_int("FEED_BATCH_SIZE", 5),
        batch_delay=_env_float("FEED_BATCH_DELAY", 0.1),
        capacity=_env_int("FEED_CAPACITY", 100),
        autostart=_env_bool("FEED_AUTOSTART", True),
    )
    if feed.batch_size < 1 or feed.capacity < 1:
        raise ConfigurationError("FEED_BATCH_SIZE and FEED_CAPACITY must be positive")

    return Settings(
        chain=chain,
        rpc_url=_resolve_rpc_url(chain_config),
        rpc_timeout=_env_float("RPC_TIMEOUT", 10.0),
        openai_api_key=(os.getenv("OPENAI_API_KEY") or "").strip() or None,
        openai_model=(os.getenv("OPENAI_MODEL") or "gpt-4.1-mini").strip(),
        feed=feed,
    )
