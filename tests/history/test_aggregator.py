from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from revamp_client.domain import HistoricalPoint, NetworkDescriptor
from revamp_client.history import HistoryAggregator, compute_windows
from revamp_client.settings import RevampSettings

E18 = 10**18


def _log(timestamp: int, price: int, volume: int = E18) -> dict:
    return {
        "event": "PriceHistory",
        "args": {"price": price, "volume": volume, "timestamp": timestamp},
    }


@pytest.fixture
def network():
    return NetworkDescriptor(
        chain_id=56,
        label="BSC Mainnet",
        currency="BNB",
        rpc_url="https://rpc.example",
        explorer_url="https://bscscan.com",
        contract_address="0x1111111111111111111111111111111111111111",
        shareholding_address="0x2222222222222222222222222222222222222222",
    )


@pytest.fixture
def settings():
    # 1 block per day for 100_000 days so the deployment block is the floor
    return RevampSettings(
        blocks_per_day=1,
        history_lookback_days=100_000,
        history_page_size=5_000,
        rpc_delay=0,
        rpc_jitter=0,
    )


def test_windows_from_deployment_block():
    assert compute_windows(1_000, 12_000, 6_500, 90, 5_000) == [
        (1_000, 5_999),
        (6_000, 10_999),
        (11_000, 12_000),
    ]


def test_windows_from_lookback_floor():
    windows = compute_windows(0, 1_000_000, 6_500, 90, 5_000)

    assert windows[0] == (1_000_000 - 585_000, 1_000_000 - 585_000 + 4_999)
    assert windows[-1][1] == 1_000_000
    assert len(windows) == 118


def test_windows_are_contiguous():
    windows = compute_windows(3, 20_003, 10, 10_000, 7)

    for (_, prev_end), (start, _) in zip(windows, windows[1:]):
        assert start == prev_end + 1


def test_single_block_and_empty_ranges():
    assert compute_windows(500, 500, 6_500, 90, 5_000) == [(500, 500)]
    assert compute_windows(600, 500, 6_500, 90, 5_000) == []


def test_rejects_non_positive_page():
    with pytest.raises(ValueError):
        compute_windows(0, 10, 1, 1, 0)


def _fetcher(pages: dict[tuple[int, int], object]) -> MagicMock:
    fetcher = MagicMock()
    fetcher.latest_block = AsyncMock(return_value=12_000)
    fetcher.deployment_block = AsyncMock(return_value=1_000)

    async def logs(net, from_block, to_block):
        result = pages[(from_block, to_block)]
        if isinstance(result, Exception):
            raise result
        return result

    fetcher.price_history_logs = AsyncMock(side_effect=logs)
    return fetcher


@pytest.mark.asyncio
async def test_load_merges_and_sorts_pages(network, settings):
    fetcher = _fetcher(
        {
            (1_000, 5_999): [_log(300, 3 * E18), _log(100, E18)],
            (6_000, 10_999): [_log(200, 2 * E18)],
            (11_000, 12_000): [_log(400, E18 // 2, volume=0)],
        }
    )

    points = await HistoryAggregator(fetcher, settings).load(network)

    assert [p.timestamp for p in points] == [100, 200, 300, 400]
    assert points[-1] == HistoricalPoint(
        timestamp=400, price=Decimal("0.5"), volume=Decimal(0)
    )
    assert fetcher.price_history_logs.await_count == 3


@pytest.mark.asyncio
async def test_failed_page_is_omitted(network, settings, caplog):
    fetcher = _fetcher(
        {
            (1_000, 5_999): [_log(100, E18)],
            (6_000, 10_999): ConnectionError("range too large"),
            (11_000, 12_000): [_log(400, E18)],
        }
    )

    with caplog.at_level("WARNING"):
        points = await HistoryAggregator(fetcher, settings).load(network)

    assert [p.timestamp for p in points] == [100, 400]
    assert "6000-10999" in caplog.text


@pytest.mark.asyncio
async def test_undecodable_log_is_skipped(network, settings):
    fetcher = _fetcher(
        {
            (1_000, 5_999): [{"args": {"price": 1}}, _log(100, E18)],
            (6_000, 10_999): [],
            (11_000, 12_000): [],
        }
    )

    points = await HistoryAggregator(fetcher, settings).load(network)

    assert [p.timestamp for p in points] == [100]


@pytest.mark.asyncio
async def test_latest_block_failure_yields_nothing(network, settings):
    fetcher = _fetcher({})
    fetcher.latest_block.side_effect = ConnectionError("down")

    assert await HistoryAggregator(fetcher, settings).load(network) == []
    fetcher.price_history_logs.assert_not_awaited()


@pytest.mark.asyncio
async def test_network_without_pool(settings):
    fetcher = _fetcher({})
    no_pool = NetworkDescriptor(
        chain_id=137,
        label="Polygon Mainnet",
        currency="POL",
        rpc_url="https://rpc.example",
        explorer_url="https://polygonscan.com",
        contract_address="0x1111111111111111111111111111111111111111",
    )

    assert await HistoryAggregator(fetcher, settings).load(no_pool) == []
    fetcher.latest_block.assert_not_awaited()
