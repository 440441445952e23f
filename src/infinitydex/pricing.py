"""Placeholder exchange-rate table and unit conversion.

Rates are keyed by base symbol so ``uETH -> uUSDC`` prices like
``ETH -> USDC``. These are for demonstration purposes only and are not a
pricing model.
"""

from decimal import ROUND_DOWN, Decimal, localcontext

from infinitydex.chains import base_symbol
from infinitydex.models import Token

# (from, to) -> units of `to` per unit of `from`
EXCHANGE_RATES: dict[tuple[str, str], Decimal] = {
    ("ETH", "USDC"): Decimal("2000"),
    ("USDC", "ETH"): Decimal("0.0005"),
}

# Simulated USD prices used for display-only fee totals
SIMULATED_USD_PRICES: dict[str, Decimal] = {
    "ETH": Decimal("2000"),
    "MATIC": Decimal("0.60"),
    "AVAX": Decimal("30"),
    "BNB": Decimal("300"),
    "USDC": Decimal("1"),
    "USDT": Decimal("1"),
    "DAI": Decimal("1"),
    "BUSD": Decimal("1"),
}

PRICE_IMPACT_PERCENT = 0.1

# Enough digits for uint256 amounts
AMOUNT_PRECISION = 80


def get_exchange_rate(from_symbol: str, to_symbol: str) -> Decimal:
    """Rate for a pair; same-asset pairs and unknown pairs get 1."""
    pair = (base_symbol(from_symbol), base_symbol(to_symbol))
    if pair[0] == pair[1]:
        return Decimal("1")
    return EXCHANGE_RATES.get(pair, Decimal("1"))


def convert_amount(amount: int, source_token: Token, dest_token: Token) -> int:
    """Convert smallest units of ``source_token`` into ``dest_token``.

    Scales by both tokens' decimals and truncates toward zero.
    """
    rate = get_exchange_rate(source_token.symbol, dest_token.symbol)
    with localcontext() as ctx:
        ctx.prec = AMOUNT_PRECISION
        value = Decimal(amount) * rate * Decimal(dest_token.unit) / Decimal(source_token.unit)
        return int(value.to_integral_value(rounding=ROUND_DOWN))


def usd_value(amount: int, token: Token) -> float:
    """Display-only USD value of an amount (unknown tokens priced at 1)."""
    price = SIMULATED_USD_PRICES.get(base_symbol(token.symbol), Decimal("1"))
    return float(Decimal(amount) / Decimal(token.unit) * price)
