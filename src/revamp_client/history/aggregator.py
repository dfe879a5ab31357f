"""Price history assembled from on-chain PriceHistory events."""

from __future__ import annotations

import asyncio
from typing import Any, Iterator, Mapping

from ..clients import ChainDataFetcher
from ..constants import NATIVE_DECIMALS
from ..domain import HistoricalPoint, NetworkDescriptor
from ..logger import get_logger
from ..settings import RevampSettings
from ..units import from_base_units

logger = get_logger(__name__)


def compute_windows(
    deployment_block: int,
    latest_block: int,
    blocks_per_day: int,
    lookback_days: int,
    page_size: int,
) -> list[tuple[int, int]]:
    """Split the lookback range into inclusive ``(from_block, to_block)`` pages.

    The range is ``[max(latest - blocks_per_day * lookback_days, deployment),
    latest]``; the last page is cut short at ``latest_block``.
    """
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    start = max(latest_block - blocks_per_day * lookback_days, deployment_block, 0)
    return list(_pages(start, latest_block, page_size))


def _pages(start: int, end: int, size: int) -> Iterator[tuple[int, int]]:
    from_block = start
    while from_block <= end:
        to_block = min(from_block + size - 1, end)
        yield from_block, to_block
        from_block = to_block + 1


def decode_point(log: Mapping[str, Any]) -> HistoricalPoint:
    args = log["args"]
    return HistoricalPoint(
        timestamp=int(args["timestamp"]),
        price=from_base_units(int(args["price"]), NATIVE_DECIMALS),
        volume=from_base_units(int(args["volume"]), NATIVE_DECIMALS),
    )


class HistoryAggregator:
    """Loads the shareholding price series for the lookback period.

    A page whose log query fails is logged and left out; the remaining pages
    still make up the series. Failed pages are not retried.
    """

    def __init__(self, fetcher: ChainDataFetcher, settings: RevampSettings):
        self.fetcher = fetcher
        self.settings = settings

    async def load(self, network: NetworkDescriptor) -> list[HistoricalPoint]:
        if network.shareholding_address is None:
            return []

        try:
            latest = await self.fetcher.latest_block(network)
        except Exception as e:
            logger.error("Could not read latest block on %s: %s", network.label, e)
            return []
        deployment = await self.fetcher.deployment_block(network)

        windows = compute_windows(
            deployment,
            latest,
            self.settings.blocks_per_day,
            self.settings.history_lookback_days,
            self.settings.history_page_size,
        )
        logger.debug(
            "Querying %d history page(s) on %s from block %s",
            len(windows),
            network.label,
            windows[0][0] if windows else latest,
        )

        results = await asyncio.gather(
            *[
                self.fetcher.price_history_logs(network, from_block, to_block)
                for from_block, to_block in windows
            ],
            return_exceptions=True,
        )

        points: list[HistoricalPoint] = []
        for (from_block, to_block), result in zip(windows, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "History page %d-%d failed, skipping: %s",
                    from_block,
                    to_block,
                    result,
                )
                continue
            for log in result:
                try:
                    points.append(decode_point(log))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning("Undecodable PriceHistory log %r: %s", log, e)

        points.sort(key=lambda point: point.timestamp)
        logger.info("Loaded %d price history points on %s", len(points), network.label)
        return points
