from decimal import Decimal

import pytest

from revamp_client.domain import (
    AccountSnapshot,
    AssetFilter,
    AssetSortKey,
    ListedAsset,
    NetworkDescriptor,
    ProtocolTotals,
)


def _asset(symbol: str, name: str, blacklisted: bool = False) -> ListedAsset:
    return ListedAsset(
        token_address="0x" + symbol.lower().ljust(40, "0")[:40],
        network_name="BSC Mainnet",
        name=name,
        symbol=symbol,
        decimals=18,
        rate=Decimal("0.1234567"),
        blacklisted=blacklisted,
    )


ASSETS = [
    _asset("CAKE", "PancakeSwap Token"),
    _asset("USDT", "Tether USD"),
    _asset("SCAM", "Totally Legit", blacklisted=True),
]


def test_filter_matches_name_or_symbol_case_insensitively():
    assert [a.symbol for a in AssetFilter("cake").apply(ASSETS)] == ["CAKE"]
    assert [a.symbol for a in AssetFilter(" tether ").apply(ASSETS)] == ["USDT"]


def test_empty_filter_keeps_everything():
    assert AssetFilter().apply(ASSETS) == ASSETS


def test_filter_can_hide_blacklisted():
    shown = AssetFilter(include_blacklisted=False).apply(ASSETS)
    assert [a.symbol for a in shown] == ["CAKE", "USDT"]


def test_rate_str_is_fixed_width():
    assert ASSETS[0].rate_str == "0.12345670"


def test_fee_ratio_percent():
    totals = ProtocolTotals(
        total_native_contributed=Decimal(200), total_listing_fees=Decimal(5)
    )
    assert totals.fee_ratio_percent == Decimal("2.5")
    assert ProtocolTotals().fee_ratio_percent == 0


def test_network_urls_and_required_contract():
    network = NetworkDescriptor(
        chain_id=137,
        label="Polygon Mainnet",
        currency="POL",
        rpc_url="https://rpc.example",
        explorer_url="https://polygonscan.com/",
    )
    assert not network.is_supported
    assert network.tx_url("0xab") == "https://polygonscan.com/tx/0xab"
    assert network.address_url("0xcd") == "https://polygonscan.com/address/0xcd"
    with pytest.raises(ValueError, match="Polygon Mainnet"):
        network.contract_address_required


def test_snapshot_balances_are_read_only():
    snapshot = AccountSnapshot(
        account="0x" + "33" * 20,
        balances={"0xa": Decimal(1)},
        native_balance=Decimal(0),
        pending_reward=Decimal(0),
        contributed=Decimal(0),
        max_potential=Decimal(0),
        remaining_potential=Decimal(0),
    )
    with pytest.raises(TypeError):
        snapshot.balances["0xa"] = Decimal(2)


def _ranked(symbol, name, decimals, rate):
    return ListedAsset(
        token_address=f"0x{symbol}",
        network_name="BSC Mainnet",
        name=name,
        symbol=symbol,
        decimals=decimals,
        rate=Decimal(rate),
    )


RANKED = [
    _ranked("bbb", "Charlie", 18, "0.5"),
    _ranked("AAA", "alpha", 6, "2"),
    _ranked("CCC", "Bravo", 8, "1"),
]
HELD = {"0xbbb": Decimal(10), "0xCCC": Decimal(3)}


@pytest.mark.parametrize(
    "key, expected",
    [
        (AssetSortKey.NAME, ["AAA", "CCC", "bbb"]),
        (AssetSortKey.SYMBOL, ["AAA", "bbb", "CCC"]),
        (AssetSortKey.DECIMALS, ["AAA", "CCC", "bbb"]),
        (AssetSortKey.RATE, ["bbb", "CCC", "AAA"]),
        (AssetSortKey.ACCUMULATED, ["AAA", "CCC", "bbb"]),
    ],
)
def test_sort_keys_ascending_and_descending(key, expected):
    ascending = AssetFilter(sort_by=key).apply(RANKED, HELD)
    descending = AssetFilter(sort_by=key, descending=True).apply(RANKED, HELD)

    assert [a.symbol for a in ascending] == expected
    assert [a.symbol for a in descending] == expected[::-1]


def test_sort_applies_after_search():
    shown = AssetFilter("a", sort_by=AssetSortKey.RATE).apply(RANKED)
    assert [a.symbol for a in shown] == ["bbb", "CCC", "AAA"]
    shown = AssetFilter("bravo", sort_by=AssetSortKey.RATE).apply(RANKED)
    assert [a.symbol for a in shown] == ["CCC"]
