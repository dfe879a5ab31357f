from __future__ import annotations

import pytest

from revamp_client.domain import NetworkDescriptor
from revamp_client.network import NetworkResolver, NetworkStatus, load_networks, matches
from revamp_client.settings import RevampSettings

REVAMP = "0x1111111111111111111111111111111111111111"
POOL = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def settings():
    return RevampSettings(
        revamp_addresses={56: REVAMP, 999: REVAMP},
        shareholding_addresses={56: POOL},
        rpc_urls={56: "https://bsc.example"},
    )


@pytest.fixture
def resolver(settings):
    return NetworkResolver(load_networks(settings))


def _network(chain_id: int) -> NetworkDescriptor:
    return NetworkDescriptor(
        chain_id=chain_id,
        label=f"chain {chain_id}",
        currency="ETH",
        rpc_url="https://rpc.example",
        explorer_url="https://explorer.example",
    )


def test_load_networks_applies_overrides(settings):
    networks = {network.chain_id: network for network in load_networks(settings)}

    bsc = networks[56]
    assert bsc.contract_address == REVAMP
    assert bsc.shareholding_address == POOL
    assert bsc.rpc_url == "https://bsc.example"
    assert bsc.is_supported

    polygon = networks[137]
    assert polygon.contract_address is None
    assert not polygon.is_supported
    assert 999 not in networks


def test_load_networks_warns_on_unknown_chain(settings, caplog):
    with caplog.at_level("WARNING"):
        load_networks(settings)
    assert "999" in caplog.text


def test_resolve(resolver):
    assert resolver.resolve(56).label == "BSC Mainnet"
    assert resolver.resolve(31337) is None
    assert resolver.resolve(None) is None


@pytest.mark.parametrize(
    "selected, active, expected",
    [
        (None, None, False),
        (_network(1), None, False),
        (None, _network(1), False),
        (_network(1), _network(56), False),
        (_network(56), _network(56), True),
    ],
)
def test_matches_truth_table(selected, active, expected):
    assert matches(selected, active) is expected


def test_status_loading_is_distinct_from_unsupported(resolver):
    bsc = resolver.resolve(56)

    assert resolver.status(bsc, None) is NetworkStatus.LOADING
    assert resolver.status(bsc, 31337) is NetworkStatus.UNSUPPORTED


def test_status_known_chain_without_contract_is_unsupported(resolver):
    assert resolver.status(resolver.resolve(56), 137) is NetworkStatus.UNSUPPORTED


def test_status_mismatch_and_ok(resolver):
    bsc = resolver.resolve(56)
    polygon = resolver.resolve(137)

    assert resolver.status(polygon, 56) is NetworkStatus.MISMATCH
    assert resolver.status(None, 56) is NetworkStatus.MISMATCH
    assert resolver.status(bsc, 56) is NetworkStatus.OK


def test_explorer_links(resolver):
    bsc = resolver.resolve(56)

    assert bsc.tx_url("0xabc") == "https://bscscan.com/tx/0xabc"
    assert bsc.address_url(REVAMP) == f"https://bscscan.com/address/{REVAMP}"
