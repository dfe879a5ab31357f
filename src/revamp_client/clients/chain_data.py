"""Read-only access to the revamp and shareholding contracts."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, TypeVar

from eth_typing import URI
from web3 import Web3
from web3.contract import Contract
from web3.types import EventData

from ..abi import load_erc20_abi, load_revamp_abi, load_shareholding_abi
from ..constants import (
    NATIVE_DECIMALS,
    PLACEHOLDER_DECIMALS,
    PLACEHOLDER_NAME,
    PLACEHOLDER_SYMBOL,
    RATE_DECIMALS,
)
from ..domain import (
    FeeKind,
    GlobalStats,
    ListedAsset,
    NetworkDescriptor,
    ProtocolFees,
    ProtocolTotals,
    ShareholderStats,
    TopParticipant,
)
from ..logger import get_logger
from ..settings import RevampSettings
from ..units import from_base_units
from .rpc import ThrottledRpc

logger = get_logger(__name__)

T = TypeVar("T")

FEE_FUNCTIONS: dict[FeeKind, str] = {
    FeeKind.LISTING: "listingFee",
    FeeKind.DELIST: "delistFee",
    FeeKind.CLAIM: "claimFee",
}

LISTED_TOKEN_FIELDS = ("token", "rate", "logoUrl", "lister", "listedAt", "blacklisted")

Web3Factory = Callable[[NetworkDescriptor], Web3]


def _record_field(record: Any, name: str) -> Any:
    """Read a struct field from either a decoded mapping or a positional tuple."""
    if isinstance(record, Mapping):
        return record[name]
    return record[LISTED_TOKEN_FIELDS.index(name)]


def _native(raw: int) -> Decimal:
    return from_base_units(raw, NATIVE_DECIMALS)


class ChainDataFetcher:
    """Typed, decimal-normalized contract reads for one or more networks.

    Single reads never raise: a failure is logged and degrades to a zero or
    placeholder value. ``list_assets`` yields an empty list when its primary
    read fails. ``required_fee``, ``token_balance``, ``allowance``,
    ``latest_block`` and ``price_history_logs`` back the transaction and
    history paths and propagate errors instead.
    """

    def __init__(
        self,
        settings: RevampSettings,
        *,
        web3_factory: Optional[Web3Factory] = None,
    ):
        self._settings = settings
        self._rpc = ThrottledRpc(settings)
        self._web3_factory = web3_factory or self._default_web3
        self._web3_cache: dict[int, Web3] = {}

    def _default_web3(self, network: NetworkDescriptor) -> Web3:
        return Web3(
            Web3.HTTPProvider(
                URI(network.rpc_url),
                request_kwargs={"timeout": self._settings.rpc_timeout},
            )
        )

    def web3(self, network: NetworkDescriptor) -> Web3:
        w3 = self._web3_cache.get(network.chain_id)
        if w3 is None:
            w3 = self._web3_factory(network)
            self._web3_cache[network.chain_id] = w3
        return w3

    def invalidate(self) -> None:
        """Drop cached connections, e.g. after a chain switch."""
        self._web3_cache.clear()

    def _contract(
        self, network: NetworkDescriptor, address: str, abi: list[dict]
    ) -> Contract:
        w3 = self.web3(network)
        return w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def revamp_contract(self, network: NetworkDescriptor) -> Contract:
        return self._contract(
            network, network.contract_address_required, load_revamp_abi()
        )

    def shareholding_contract(self, network: NetworkDescriptor) -> Optional[Contract]:
        if network.shareholding_address is None:
            return None
        return self._contract(
            network, network.shareholding_address, load_shareholding_abi()
        )

    def erc20_contract(self, network: NetworkDescriptor, token: str) -> Contract:
        return self._contract(network, token, load_erc20_abi())

    async def _read(
        self,
        description: str,
        fn: Callable[..., T],
        *args: Any,
        default: T,
    ) -> T:
        try:
            return await self._rpc(fn, *args)
        except Exception as e:
            logger.warning("Read failed (%s): %s", description, e)
            return default

    # --- assets -----------------------------------------------------------

    async def list_assets(self, network: NetworkDescriptor) -> list[ListedAsset]:
        """Fetch every listed token and enrich it with ERC20 metadata.

        Returns:
            One ListedAsset per valid on-chain record; an empty list when the
            network is unsupported or the registry read fails.
        """
        if not network.is_supported:
            return []

        try:
            core = self.revamp_contract(network)
            raw_records = await self._rpc(core.functions.getAllListedTokens().call)
        except Exception as e:
            logger.error(
                "Failed to load listed tokens on %s: %s", network.label, e
            )
            return []

        logger.debug("%s has %d listed token records", network.label, len(raw_records))

        results = await asyncio.gather(
            *[self._enrich(network, record) for record in raw_records],
            return_exceptions=True,
        )

        # token address is the key; a later record replaces an earlier one
        by_token: dict[str, ListedAsset] = {}
        for record, result in zip(raw_records, results):
            if isinstance(result, BaseException):
                logger.error("Failed to build listed asset from %r: %s", record, result)
            elif result is not None:
                if result.token_address in by_token:
                    logger.warning(
                        "Duplicate listing record for %s on %s",
                        result.token_address,
                        network.label,
                    )
                by_token[result.token_address] = result

        assets = list(by_token.values())
        logger.info("Loaded %d listed assets on %s", len(assets), network.label)
        return assets

    async def _enrich(
        self, network: NetworkDescriptor, record: Any
    ) -> Optional[ListedAsset]:
        token = Web3.to_checksum_address(_record_field(record, "token"))
        rate = from_base_units(int(_record_field(record, "rate")), RATE_DECIMALS)
        if rate <= 0:
            logger.warning("Skipping %s: non-positive rate %s", token, rate)
            return None

        name, symbol, decimals = await self.token_metadata(network, token)
        listed_at = _record_field(record, "listedAt")
        return ListedAsset(
            token_address=token,
            network_name=network.label,
            name=name,
            symbol=symbol,
            decimals=decimals,
            rate=rate,
            logo_url=_record_field(record, "logoUrl") or "",
            lister=_record_field(record, "lister"),
            listed_at=int(listed_at) if listed_at is not None else None,
            blacklisted=bool(_record_field(record, "blacklisted")),
        )

    async def token_metadata(
        self, network: NetworkDescriptor, token: str
    ) -> tuple[str, str, int]:
        """Return (name, symbol, decimals), or placeholders if any call fails."""
        contract = self.erc20_contract(network, token)
        try:
            name, symbol, decimals = await asyncio.gather(
                self._rpc(contract.functions.name().call),
                self._rpc(contract.functions.symbol().call),
                self._rpc(contract.functions.decimals().call),
            )
        except Exception as e:
            logger.warning("Could not fetch metadata for %s: %s", token, e)
            return PLACEHOLDER_NAME, PLACEHOLDER_SYMBOL, PLACEHOLDER_DECIMALS
        return str(name), str(symbol), int(decimals)

    # --- fees -------------------------------------------------------------

    async def fee(self, network: NetworkDescriptor, kind: FeeKind) -> Decimal:
        core = self.revamp_contract(network)
        fn = getattr(core.functions, FEE_FUNCTIONS[kind])
        raw = await self._read(
            f"{kind.value} fee on {network.label}", fn().call, default=0
        )
        return _native(raw)

    async def required_fee(self, network: NetworkDescriptor, kind: FeeKind) -> Decimal:
        """Like ``fee`` but raises on failure; used to fund writes."""
        core = self.revamp_contract(network)
        fn = getattr(core.functions, FEE_FUNCTIONS[kind])
        return _native(int(await self._rpc(fn().call)))

    async def fees(self, network: NetworkDescriptor) -> ProtocolFees:
        listing, delist, claim = await asyncio.gather(
            self.fee(network, FeeKind.LISTING),
            self.fee(network, FeeKind.DELIST),
            self.fee(network, FeeKind.CLAIM),
        )
        return ProtocolFees(listing=listing, delist=delist, claim=claim)

    # --- account ----------------------------------------------------------

    async def pending_reward(self, network: NetworkDescriptor, account: str) -> Decimal:
        core = self.revamp_contract(network)
        raw = await self._read(
            f"pending reward of {account}",
            core.functions.pendingReward(Web3.to_checksum_address(account)).call,
            default=0,
        )
        return _native(raw)

    async def contribution(self, network: NetworkDescriptor, account: str) -> Decimal:
        """Total native currency ``account`` has contributed to revamps."""
        core = self.revamp_contract(network)
        user = await self._read(
            f"user record of {account}",
            core.functions.users(Web3.to_checksum_address(account)).call,
            default=(0,),
        )
        if isinstance(user, Mapping):
            return _native(user["totalContributed"])
        return _native(user[0])

    async def token_balance(
        self,
        network: NetworkDescriptor,
        account: str,
        token: str,
        decimals: Optional[int] = None,
    ) -> Decimal:
        """Balance of ``token`` held by ``account``; raises on failure."""
        contract = self.erc20_contract(network, token)
        balance_call = self._rpc(
            contract.functions.balanceOf(Web3.to_checksum_address(account)).call
        )
        if decimals is None:
            raw, decimals = await asyncio.gather(
                balance_call, self._rpc(contract.functions.decimals().call)
            )
        else:
            raw = await balance_call
        return from_base_units(int(raw), int(decimals))

    async def balance(
        self,
        network: NetworkDescriptor,
        account: str,
        token: str,
        decimals: Optional[int] = None,
    ) -> Decimal:
        try:
            return await self.token_balance(network, account, token, decimals)
        except Exception as e:
            logger.warning("Balance of %s for %s unavailable: %s", token, account, e)
            return Decimal(0)

    async def native_balance(self, network: NetworkDescriptor, account: str) -> Decimal:
        w3 = self.web3(network)
        raw = await self._read(
            f"native balance of {account}",
            w3.eth.get_balance,
            Web3.to_checksum_address(account),
            default=0,
        )
        return _native(raw)

    async def allowance(
        self, network: NetworkDescriptor, owner: str, token: str, spender: str
    ) -> int:
        """Raw ERC20 allowance; raises on failure and is never cached."""
        contract = self.erc20_contract(network, token)
        return int(
            await self._rpc(
                contract.functions.allowance(
                    Web3.to_checksum_address(owner),
                    Web3.to_checksum_address(spender),
                ).call
            )
        )

    # --- aggregates -------------------------------------------------------

    async def protocol_totals(self, network: NetworkDescriptor) -> ProtocolTotals:
        core = self.revamp_contract(network)
        contributed, listing_fees = await asyncio.gather(
            self._read(
                "total native contributed",
                core.functions.totalNativeContributed().call,
                default=0,
            ),
            self._read(
                "total listing fees", core.functions.totalListingFees().call, default=0
            ),
        )
        return ProtocolTotals(
            total_native_contributed=_native(contributed),
            total_listing_fees=_native(listing_fees),
        )

    async def top_participants(
        self, network: NetworkDescriptor
    ) -> list[TopParticipant]:
        core = self.revamp_contract(network)
        addresses, amounts = await self._read(
            "top participants",
            core.functions.getTopParticipants().call,
            default=([], []),
        )
        return [
            TopParticipant(address=address, contributed=_native(amount))
            for address, amount in zip(addresses, amounts)
        ]

    async def accumulated_balances(
        self, network: NetworkDescriptor, assets: list[ListedAsset]
    ) -> dict[str, Decimal]:
        """Amount of each asset permanently held by the revamp contract."""
        holder = network.contract_address_required
        balances = await asyncio.gather(
            *[
                self.balance(network, holder, asset.token_address, asset.decimals)
                for asset in assets
            ]
        )
        return {
            asset.token_address: balance for asset, balance in zip(assets, balances)
        }

    async def total_supply(
        self, network: NetworkDescriptor, asset: ListedAsset
    ) -> Optional[Decimal]:
        contract = self.erc20_contract(network, asset.token_address)
        raw = await self._read(
            f"total supply of {asset.token_address}",
            contract.functions.totalSupply().call,
            default=None,
        )
        if raw is None:
            return None
        return from_base_units(int(raw), asset.decimals)

    # --- shareholding pool ------------------------------------------------

    async def global_stats(self, network: NetworkDescriptor) -> GlobalStats:
        pool = self.shareholding_contract(network)
        if pool is None:
            return GlobalStats()
        stats = await self._read(
            f"pool stats on {network.label}",
            pool.functions.getGlobalStats().call,
            default=None,
        )
        if stats is None:
            return GlobalStats()
        current, last, volume, holders = stats
        return GlobalStats(
            current_price=_native(current),
            last_purchase_price=_native(last),
            total_volume=_native(volume),
            total_holders=int(holders),
        )

    async def user_stats(
        self, network: NetworkDescriptor, account: str
    ) -> ShareholderStats:
        pool = self.shareholding_contract(network)
        if pool is None:
            return ShareholderStats()
        stats = await self._read(
            f"pool stats of {account}",
            pool.functions.getUserStats(Web3.to_checksum_address(account)).call,
            default=None,
        )
        if stats is None:
            return ShareholderStats()
        shares, sales, system = stats
        return ShareholderStats(
            shares=_native(shares),
            sales_rewards=_native(sales),
            system_rewards=_native(system),
        )

    # --- blocks and logs --------------------------------------------------

    async def latest_block(self, network: NetworkDescriptor) -> int:
        w3 = self.web3(network)
        return int(await self._rpc(lambda: w3.eth.block_number))

    async def deployment_block(self, network: NetworkDescriptor) -> int:
        """Block the pool was deployed at, or 0 if the pool does not say."""
        pool = self.shareholding_contract(network)
        if pool is None:
            return 0
        start = await self._read(
            f"pool start block on {network.label}",
            pool.functions.startBlock().call,
            default=0,
        )
        return int(start)

    async def price_history_logs(
        self, network: NetworkDescriptor, from_block: int, to_block: int
    ) -> list[EventData]:
        """Decoded PriceHistory events in ``[from_block, to_block]``.

        Raises on failure so callers can tell a failed window from an empty one.
        """
        pool = self.shareholding_contract(network)
        if pool is None:
            return []
        event = pool.events.PriceHistory()
        logs = await self._rpc(event.get_logs, from_block=from_block, to_block=to_block)
        return list(logs)
