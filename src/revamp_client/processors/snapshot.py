from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Mapping

from ..constants import MAX_POTENTIAL_MULTIPLIER
from ..domain import AccountSnapshot, ListedAsset, NetworkDescriptor
from ..logger import get_logger

if TYPE_CHECKING:
    from ..clients import ChainDataFetcher

logger = get_logger(__name__)


def build_snapshot(
    account: str,
    balances: Mapping[str, Decimal],
    native_balance: Decimal,
    pending_reward: Decimal,
    contributed: Decimal,
) -> AccountSnapshot:
    """Assemble an AccountSnapshot.

    An account may earn at most ``MAX_POTENTIAL_MULTIPLIER`` times what it
    contributed; whatever is already pending counts against that cap.
    """
    max_potential = contributed * MAX_POTENTIAL_MULTIPLIER
    remaining = max(max_potential - pending_reward, Decimal(0))
    return AccountSnapshot(
        account=account,
        balances=balances,
        native_balance=native_balance,
        pending_reward=pending_reward,
        contributed=contributed,
        max_potential=max_potential,
        remaining_potential=remaining,
    )


async def load_snapshot(
    fetcher: ChainDataFetcher,
    network: NetworkDescriptor,
    account: str,
    assets: Iterable[ListedAsset],
) -> AccountSnapshot:
    assets = list(assets)
    native_balance, pending_reward, contributed, *asset_balances = await asyncio.gather(
        fetcher.native_balance(network, account),
        fetcher.pending_reward(network, account),
        fetcher.contribution(network, account),
        *[
            fetcher.balance(network, account, asset.token_address, asset.decimals)
            for asset in assets
        ],
    )
    balances = {
        asset.token_address: balance for asset, balance in zip(assets, asset_balances)
    }
    logger.debug(
        "Snapshot for %s: pending=%s contributed=%s",
        account,
        pending_reward,
        contributed,
    )
    return build_snapshot(
        account, balances, native_balance, pending_reward, contributed
    )
