"""Supported chains and their known native and wrapped tokens.

Wrapped ("Universal") tokens carry a ``u`` prefix on their symbol, e.g.
``uETH`` is the bridge-recognized representation of ``ETH``.
"""

from dataclasses import dataclass, field
from typing import Optional

from infinitydex.models import Token

WRAPPED_PREFIX = "u"


@dataclass
class ChainConfig:
    """Configuration for a blockchain."""

    name: str
    chain_id: int
    native_symbol: str
    explorer_url: str
    native_tokens: list[str] = field(default_factory=list)
    wrapped_tokens: list[str] = field(default_factory=list)


# ======================
# Chain Configurations
# ======================

CHAINS: dict[int, ChainConfig] = {
    1: ChainConfig(
        name="Ethereum",
        chain_id=1,
        native_symbol="ETH",
        explorer_url="https://etherscan.io",
        native_tokens=["ETH", "USDC", "USDT", "DAI"],
        wrapped_tokens=["uETH", "uUSDC", "uUSDT", "uDAI"],
    ),
    137: ChainConfig(
        name="Polygon",
        chain_id=137,
        native_symbol="MATIC",
        explorer_url="https://polygonscan.com",
        native_tokens=["MATIC", "USDC", "USDT", "DAI"],
        wrapped_tokens=["uMATIC", "uETH", "uUSDC", "uUSDT", "uDAI"],
    ),
    43114: ChainConfig(
        name="Avalanche",
        chain_id=43114,
        native_symbol="AVAX",
        explorer_url="https://snowtrace.io",
        native_tokens=["AVAX", "USDC", "USDT", "DAI"],
        wrapped_tokens=["uAVAX", "uETH", "uUSDC", "uUSDT", "uDAI"],
    ),
    56: ChainConfig(
        name="Binance Smart Chain",
        chain_id=56,
        native_symbol="BNB",
        explorer_url="https://bscscan.com",
        native_tokens=["BNB", "USDC", "USDT", "BUSD"],
        wrapped_tokens=["uBNB", "uETH", "uUSDC", "uUSDT", "uBUSD"],
    ),
}

# Token metadata independent of chain: symbol -> (name, decimals)
TOKEN_METADATA: dict[str, tuple[str, int]] = {
    "ETH": ("Ethereum", 18),
    "MATIC": ("Polygon", 18),
    "AVAX": ("Avalanche", 18),
    "BNB": ("BNB", 18),
    "USDC": ("USD Coin", 6),
    "USDT": ("Tether USD", 6),
    "DAI": ("Dai Stablecoin", 18),
    "BUSD": ("Binance USD", 18),
}


def get_chain_name(chain_id: int) -> str:
    """Human-readable chain name, ``Chain <id>`` if unknown."""
    chain = CHAINS.get(chain_id)
    return chain.name if chain else f"Chain {chain_id}"


def wrapped_symbol(symbol: str) -> str:
    """Symbol of the wrapped representation of ``symbol``."""
    if is_wrapped_symbol(symbol):
        return symbol
    return f"{WRAPPED_PREFIX}{symbol}"


def base_symbol(symbol: str) -> str:
    """Symbol with any wrapped prefix stripped (``uETH`` -> ``ETH``)."""
    if is_wrapped_symbol(symbol):
        return symbol[len(WRAPPED_PREFIX):]
    return symbol


def is_wrapped_symbol(symbol: str) -> bool:
    return (
        symbol.startswith(WRAPPED_PREFIX)
        and len(symbol) > len(WRAPPED_PREFIX)
        and symbol[len(WRAPPED_PREFIX):].isupper()
    )


def make_token(symbol: str, chain_id: int, address: str = "") -> Token:
    """Build a token from the metadata tables."""
    base = base_symbol(symbol)
    name, decimals = TOKEN_METADATA.get(base, (base, 18))
    wrapped = is_wrapped_symbol(symbol)
    return Token(
        symbol=symbol,
        name=f"Universal {name}" if wrapped else name,
        decimals=decimals,
        address=address,
        chain_id=chain_id,
        chain_name=get_chain_name(chain_id),
        is_wrapped=wrapped,
    )


def wrapped_token_for(token: Token) -> Token:
    """Wrapped counterpart of ``token`` on the same chain."""
    if token.is_wrapped:
        return token
    return Token(
        symbol=wrapped_symbol(token.symbol),
        name=f"Universal {token.name}",
        decimals=token.decimals,
        address=token.address,
        chain_id=token.chain_id,
        chain_name=token.chain_name,
        is_wrapped=True,
    )


def tokens_for_chain(chain_id: int) -> list[Token]:
    """All known native and wrapped tokens on a chain."""
    chain = CHAINS.get(chain_id)
    if chain is None:
        return []
    return [make_token(s, chain_id) for s in chain.native_tokens + chain.wrapped_tokens]


def find_token(symbol: str, chain_id: int) -> Optional[Token]:
    """Look up a known token by symbol and chain id."""
    for token in tokens_for_chain(chain_id):
        if token.symbol == symbol:
            return token
    return None
