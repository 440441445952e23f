"""Tests for route planning, the token registry and pricing."""

import pytest

from infinitydex.chains import (
    base_symbol,
    find_token,
    get_chain_name,
    is_wrapped_symbol,
    tokens_for_chain,
    wrapped_symbol,
    wrapped_token_for,
)
from infinitydex.errors import InvalidTokens
from infinitydex.models import StepType, Token
from infinitydex.pricing import convert_amount, get_exchange_rate
from infinitydex.routes import plan_route


class TestTokenRegistry:
    """Tests for chain and token lookups."""

    def test_chain_names(self):
        assert get_chain_name(1) == "Ethereum"
        assert get_chain_name(137) == "Polygon"
        assert get_chain_name(999) == "Chain 999"

    def test_wrapped_symbols(self):
        assert wrapped_symbol("ETH") == "uETH"
        assert wrapped_symbol("uETH") == "uETH"
        assert base_symbol("uUSDC") == "USDC"
        assert base_symbol("USDC") == "USDC"
        assert is_wrapped_symbol("uETH")
        assert not is_wrapped_symbol("ETH")

    def test_find_token(self):
        usdc = find_token("USDC", 137)

        assert usdc is not None
        assert usdc.decimals == 6
        assert usdc.chain_name == "Polygon"
        assert not usdc.is_wrapped
        assert find_token("DOGE", 1) is None
        assert find_token("ETH", 999) is None

    def test_wrapped_token_for(self, eth_mainnet):
        ueth = wrapped_token_for(eth_mainnet)

        assert ueth.symbol == "uETH"
        assert ueth.is_wrapped
        assert ueth.chain_id == 1
        assert ueth == find_token("uETH", 1)

    def test_tokens_for_chain(self):
        symbols = {token.symbol for token in tokens_for_chain(56)}
        assert {"BNB", "uBNB", "uETH"} <= symbols
        assert tokens_for_chain(999) == []


class TestPricing:
    """Tests for the placeholder rate table."""

    def test_exchange_rates(self):
        assert get_exchange_rate("ETH", "USDC") == 2000
        assert get_exchange_rate("uETH", "uUSDC") == 2000
        assert get_exchange_rate("ETH", "uETH") == 1
        assert get_exchange_rate("MATIC", "DAI") == 1

    def test_convert_scales_decimals(self, eth_mainnet, usdc_mainnet):
        assert convert_amount(10**18, eth_mainnet, usdc_mainnet) == 2000 * 10**6
        assert convert_amount(2000 * 10**6, usdc_mainnet, eth_mainnet) == 10**18

    def test_convert_keeps_large_amounts_exact(self, eth_mainnet):
        amount = 2**200 + 12345
        ueth = wrapped_token_for(eth_mainnet)
        assert convert_amount(amount, eth_mainnet, ueth) == amount

    def test_zero_decimal_token(self, usdc_mainnet):
        points = Token(symbol="PTS", decimals=0, chain_id=1, chain_name="Ethereum")

        assert points.unit == 1
        assert convert_amount(5, points, usdc_mainnet) == 5 * 10**6
        assert convert_amount(5 * 10**6, usdc_mainnet, points) == 5


class TestPlanRoute:
    """Tests for stage selection."""

    def test_cross_chain_native_to_native(self, make_request):
        plan = plan_route(make_request())

        assert plan.stages == [StepType.WRAP, StepType.TRANSFER, StepType.SWAP, StepType.UNWRAP]
        assert plan.path == ("ETH", "uETH", "uUSDC", "USDC")

    def test_same_chain_native_swap_only(self, make_request, usdc_mainnet):
        plan = plan_route(make_request(destination_token=usdc_mainnet))

        assert plan.stages == [StepType.SWAP]
        assert plan.path == ("ETH", "USDC")

    def test_cross_chain_same_asset_skips_swap(self, make_request):
        dest = find_token("USDC", 137)
        source = find_token("USDC", 1)
        plan = plan_route(make_request(source_token=source, destination_token=dest))

        assert plan.stages == [StepType.WRAP, StepType.TRANSFER, StepType.UNWRAP]
        assert plan.path == ("USDC", "uUSDC", "USDC")

    def test_wrapped_source_skips_wrap(self, make_request, ueth_mainnet):
        plan = plan_route(make_request(source_token=ueth_mainnet))

        assert StepType.WRAP not in plan.stages
        assert plan.stages == [StepType.TRANSFER, StepType.SWAP, StepType.UNWRAP]

    def test_wrapped_destination_skips_unwrap(self, make_request):
        dest = find_token("uUSDC", 137)
        plan = plan_route(make_request(destination_token=dest))

        assert plan.stages == [StepType.WRAP, StepType.TRANSFER, StepType.SWAP]
        assert plan.path == ("ETH", "uETH", "uUSDC")

    def test_wrap_only_on_same_chain(self, make_request, ueth_mainnet):
        plan = plan_route(make_request(destination_token=ueth_mainnet))

        assert plan.stages == [StepType.WRAP]

    def test_identical_tokens_rejected(self, make_request, eth_mainnet):
        with pytest.raises(InvalidTokens):
            plan_route(make_request(destination_token=eth_mainnet))
