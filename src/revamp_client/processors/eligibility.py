from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Mapping, Union

from ..domain import ListedAsset, NetworkDescriptor
from ..logger import get_logger
from .rates import native_to_asset

if TYPE_CHECKING:
    from ..clients import ChainDataFetcher

logger = get_logger(__name__)

BalanceResult = Union[Decimal, BaseException]


def required_amount(pending_reward: Decimal, asset: ListedAsset) -> Decimal | None:
    """Asset units needed to reinvest ``pending_reward`` into ``asset``."""
    conversion = native_to_asset(pending_reward, asset.rate)
    return conversion.value


def evaluate_eligibility(
    pending_reward: Decimal,
    assets: Iterable[ListedAsset],
    balances: Mapping[str, BalanceResult],
) -> list[ListedAsset]:
    """Select the assets whose wallet balance covers ``pending_reward / rate``.

    Args:
        pending_reward: Claimable native-currency reward.
        assets: Candidate assets.
        balances: Wallet balance per token address. A missing entry or an
            exception in place of a balance excludes that asset only.

    Returns:
        Eligible assets in input order. Empty when there is nothing pending.
    """
    if pending_reward <= 0:
        return []

    eligible: list[ListedAsset] = []
    for asset in assets:
        balance = balances.get(asset.token_address)
        if balance is None or isinstance(balance, BaseException):
            logger.debug("No usable balance for %s; excluding", asset.symbol)
            continue
        required = required_amount(pending_reward, asset)
        if required is None:
            continue
        if balance >= required:
            eligible.append(asset)
    return eligible


async def find_eligible_assets(
    fetcher: ChainDataFetcher,
    network: NetworkDescriptor,
    account: str,
    pending_reward: Decimal,
    assets: Iterable[ListedAsset],
) -> list[ListedAsset]:
    """Fetch the account's balances for ``assets`` and evaluate eligibility."""
    if pending_reward <= 0:
        return []

    candidates = [asset for asset in assets if asset.network_name == network.label]
    results = await asyncio.gather(
        *[
            fetcher.token_balance(
                network, account, asset.token_address, asset.decimals
            )
            for asset in candidates
        ],
        return_exceptions=True,
    )

    balances: dict[str, BalanceResult] = {}
    for asset, result in zip(candidates, results):
        if isinstance(result, BaseException):
            logger.warning(
                "Balance of %s unavailable for %s: %s", asset.symbol, account, result
            )
        balances[asset.token_address] = result
    return evaluate_eligibility(pending_reward, candidates, balances)
