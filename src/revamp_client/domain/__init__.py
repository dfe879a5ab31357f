"""Domain models shared across the client."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from ..constants import RATE_DISPLAY_PLACES


class AssetSortKey(str, Enum):
    NAME = "name"
    SYMBOL = "symbol"
    DECIMALS = "decimals"
    RATE = "rate"
    ACCUMULATED = "accumulated"


class FeeKind(str, Enum):
    LISTING = "listing"
    DELIST = "delist"
    CLAIM = "claim"


@dataclass(frozen=True, slots=True)
class NetworkDescriptor:
    """Static metadata for one supported chain."""

    chain_id: int
    label: str
    currency: str
    rpc_url: str
    explorer_url: str
    contract_address: Optional[str] = None
    shareholding_address: Optional[str] = None

    @property
    def is_supported(self) -> bool:
        return self.contract_address is not None

    @property
    def contract_address_required(self) -> str:
        if self.contract_address is None:
            raise ValueError(f"No revamp contract deployed on {self.label}")
        return self.contract_address

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/address/{address}"


@dataclass(frozen=True, slots=True)
class ListedAsset:
    """A token listed on the protocol, enriched with its ERC20 metadata."""

    token_address: str
    network_name: str
    name: str
    symbol: str
    decimals: int
    rate: Decimal  # native units per one asset unit
    logo_url: str = ""
    lister: Optional[str] = None
    listed_at: Optional[int] = None
    blacklisted: bool = False

    @property
    def rate_str(self) -> str:
        quantum = Decimal(1).scaleb(-RATE_DISPLAY_PLACES)
        return str(self.rate.quantize(quantum))


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """Balances and reward position of one account at one refresh."""

    account: str
    balances: Mapping[str, Decimal]
    native_balance: Decimal
    pending_reward: Decimal
    contributed: Decimal
    max_potential: Decimal
    remaining_potential: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "balances", MappingProxyType(dict(self.balances)))


@dataclass(frozen=True, slots=True)
class HistoricalPoint:
    timestamp: int
    price: Decimal
    volume: Decimal


@dataclass(frozen=True, slots=True)
class GlobalStats:
    """Shareholding pool statistics."""

    current_price: Decimal = Decimal(0)
    last_purchase_price: Decimal = Decimal(0)
    total_volume: Decimal = Decimal(0)
    total_holders: int = 0


@dataclass(frozen=True, slots=True)
class ShareholderStats:
    shares: Decimal = Decimal(0)
    sales_rewards: Decimal = Decimal(0)
    system_rewards: Decimal = Decimal(0)


@dataclass(frozen=True, slots=True)
class ProtocolTotals:
    total_native_contributed: Decimal = Decimal(0)
    total_listing_fees: Decimal = Decimal(0)

    @property
    def fee_ratio_percent(self) -> Decimal:
        """Listing fees as a percentage of everything contributed."""
        if self.total_native_contributed <= 0:
            return Decimal(0)
        return self.total_listing_fees / self.total_native_contributed * 100


@dataclass(frozen=True, slots=True)
class TopParticipant:
    address: str
    contributed: Decimal


@dataclass(frozen=True, slots=True)
class ProtocolFees:
    listing: Decimal = Decimal(0)
    delist: Decimal = Decimal(0)
    claim: Decimal = Decimal(0)


@dataclass(slots=True)
class AssetFilter:
    """Case-insensitive name/symbol search over listed assets, optionally sorted.

    Sorting by ``ACCUMULATED`` reads the amounts passed to ``apply``; assets
    missing from that mapping sort as zero. Without a sort key the input order
    is kept.
    """

    search: str = ""
    include_blacklisted: bool = True
    sort_by: Optional[AssetSortKey] = None
    descending: bool = False
    _needle: str = field(init=False, repr=False, default="")

    def __post_init__(self) -> None:
        self._needle = self.search.strip().lower()

    def _sort_key(
        self, asset: ListedAsset, accumulated: Mapping[str, Decimal]
    ) -> Union[str, int, Decimal]:
        if self.sort_by is AssetSortKey.NAME:
            return asset.name.lower()
        if self.sort_by is AssetSortKey.SYMBOL:
            return asset.symbol.lower()
        if self.sort_by is AssetSortKey.DECIMALS:
            return asset.decimals
        if self.sort_by is AssetSortKey.RATE:
            return asset.rate
        return accumulated.get(asset.token_address, Decimal(0))

    def apply(
        self,
        assets: list[ListedAsset],
        accumulated: Optional[Mapping[str, Decimal]] = None,
    ) -> list[ListedAsset]:
        shown = [
            asset
            for asset in assets
            if (self.include_blacklisted or not asset.blacklisted)
            and (
                self._needle in asset.name.lower()
                or self._needle in asset.symbol.lower()
            )
        ]
        if self.sort_by is None:
            return shown
        amounts = accumulated or {}
        return sorted(
            shown,
            key=lambda asset: self._sort_key(asset, amounts),
            reverse=self.descending,
        )
