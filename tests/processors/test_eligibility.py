from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from revamp_client.domain import ListedAsset, NetworkDescriptor
from revamp_client.processors.eligibility import (
    evaluate_eligibility,
    find_eligible_assets,
    required_amount,
)

ACCOUNT = "0x3333333333333333333333333333333333333333"


def _asset(token: str, rate: str, network: str = "BSC Mainnet") -> ListedAsset:
    return ListedAsset(
        token_address=token,
        network_name=network,
        name=f"Token {token[-1]}",
        symbol=f"T{token[-1]}",
        decimals=18,
        rate=Decimal(rate),
    )


TOKEN_A = "0x000000000000000000000000000000000000000A"
TOKEN_B = "0x000000000000000000000000000000000000000B"
TOKEN_C = "0x000000000000000000000000000000000000000C"


@pytest.fixture
def network():
    return NetworkDescriptor(
        chain_id=56,
        label="BSC Mainnet",
        currency="BNB",
        rpc_url="https://rpc.example",
        explorer_url="https://bscscan.com",
        contract_address="0x1111111111111111111111111111111111111111",
    )


def test_worked_example_excludes_both_assets():
    # p = 10: first needs 10/2 = 5 (has 4), second needs 10/5 = 2 (has 1)
    first = _asset(TOKEN_A, "2")
    second = _asset(TOKEN_B, "5")
    balances = {TOKEN_A: Decimal("4"), TOKEN_B: Decimal("1")}

    assert evaluate_eligibility(Decimal("10"), [first, second], balances) == []


def test_exact_balance_is_eligible():
    first = _asset(TOKEN_A, "2")
    second = _asset(TOKEN_B, "5")
    balances = {TOKEN_A: Decimal("5"), TOKEN_B: Decimal("1.9999")}

    assert evaluate_eligibility(Decimal("10"), [first, second], balances) == [first]


def test_failed_or_missing_balance_excludes_only_that_asset():
    first = _asset(TOKEN_A, "2")
    second = _asset(TOKEN_B, "5")
    third = _asset(TOKEN_C, "1")
    balances = {TOKEN_A: RuntimeError("rpc down"), TOKEN_B: Decimal("100")}

    assert evaluate_eligibility(Decimal("10"), [first, second, third], balances) == [
        second
    ]


def test_nothing_pending_means_nothing_eligible():
    asset = _asset(TOKEN_A, "2")
    assert evaluate_eligibility(Decimal("0"), [asset], {TOKEN_A: Decimal("9")}) == []


def test_required_amount():
    assert required_amount(Decimal("10"), _asset(TOKEN_A, "4")) == Decimal("2.5")


@pytest.mark.asyncio
async def test_find_eligible_assets_isolates_balance_failures(network):
    first = _asset(TOKEN_A, "2")
    second = _asset(TOKEN_B, "5")
    foreign = _asset(TOKEN_C, "1", network="Polygon Mainnet")

    async def token_balance(net, account, token, decimals):
        if token == TOKEN_A:
            raise ConnectionError("boom")
        return Decimal("3")

    fetcher = MagicMock()
    fetcher.token_balance = AsyncMock(side_effect=token_balance)

    eligible = await find_eligible_assets(
        fetcher, network, ACCOUNT, Decimal("10"), [first, second, foreign]
    )

    assert eligible == [second]
    queried = [call.args[2] for call in fetcher.token_balance.await_args_list]
    assert sorted(queried) == sorted([TOKEN_A, TOKEN_B])


@pytest.mark.asyncio
async def test_find_eligible_assets_skips_fetch_without_reward(network):
    fetcher = MagicMock()
    fetcher.token_balance = AsyncMock()

    assert (
        await find_eligible_assets(
            fetcher, network, ACCOUNT, Decimal("0"), [_asset(TOKEN_A, "1")]
        )
        == []
    )
    fetcher.token_balance.assert_not_awaited()
