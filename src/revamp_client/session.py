"""Application session: one wallet, one selected network, one current view.

The session owns the refresh cycle. Wallet ``chainChanged`` and
``accountsChanged`` events invalidate everything and trigger a full reload,
and so does every confirmed transaction. Results of a refresh that was
overtaken by a newer reload, or that finished after ``close()``, are dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .clients import ChainDataFetcher
from .domain import (
    AccountSnapshot,
    AssetFilter,
    AssetSortKey,
    GlobalStats,
    HistoricalPoint,
    ListedAsset,
    NetworkDescriptor,
    ProtocolFees,
    ProtocolTotals,
    ShareholderStats,
    TopParticipant,
)
from .history import HistoryAggregator
from .logger import get_logger
from .network import NetworkResolver, NetworkStatus, load_networks
from .processors import find_eligible_assets, load_snapshot
from .providers.base import ACCOUNTS_CHANGED, CHAIN_CHANGED, BaseWalletProvider
from .settings import RevampSettings
from .transactions import TransactionAttempt, TransactionOrchestrator

logger = get_logger(__name__)

ChangeHandler = Callable[["SessionState"], None]


@dataclass(frozen=True)
class SessionState:
    """Everything the session knows after one refresh."""

    selected_network: Optional[NetworkDescriptor] = None
    chain_id: Optional[int] = None
    status: NetworkStatus = NetworkStatus.LOADING
    account: Optional[str] = None
    assets: tuple[ListedAsset, ...] = ()
    fees: ProtocolFees = field(default_factory=ProtocolFees)
    snapshot: Optional[AccountSnapshot] = None
    eligible_assets: tuple[ListedAsset, ...] = ()
    global_stats: GlobalStats = field(default_factory=GlobalStats)
    user_stats: ShareholderStats = field(default_factory=ShareholderStats)
    totals: ProtocolTotals = field(default_factory=ProtocolTotals)
    top_participants: tuple[TopParticipant, ...] = ()
    history: tuple[HistoricalPoint, ...] = ()

    @property
    def writes_enabled(self) -> bool:
        return self.status is NetworkStatus.OK and self.account is not None

    def search(
        self,
        text: str = "",
        include_blacklisted: bool = True,
        sort_by: Optional[AssetSortKey] = None,
        descending: bool = False,
    ) -> list[ListedAsset]:
        return AssetFilter(text, include_blacklisted, sort_by, descending).apply(
            list(self.assets)
        )


class RevampSession:
    def __init__(
        self,
        settings: RevampSettings,
        provider: BaseWalletProvider,
        resolver: NetworkResolver,
        fetcher: ChainDataFetcher,
        orchestrator: TransactionOrchestrator,
        history: HistoryAggregator,
    ):
        self.settings = settings
        self.provider = provider
        self.resolver = resolver
        self.fetcher = fetcher
        self.orchestrator = orchestrator
        self.history = history

        self._state = SessionState(
            selected_network=resolver.resolve(settings.selected_chain_id)
        )
        self.orchestrator.selected_network = self._state.selected_network
        self._generation = 0
        self._closed = False
        self._change_handlers: list[ChangeHandler] = []
        self._reloads: set[asyncio.Task] = set()
        self._unsubscribe = [
            provider.subscribe(CHAIN_CHANGED, self._on_chain_changed),
            provider.subscribe(ACCOUNTS_CHANGED, self._on_accounts_changed),
            orchestrator.on_confirmed(self._on_confirmed),
        ]

    @classmethod
    def create(
        cls, settings: RevampSettings, provider: BaseWalletProvider
    ) -> RevampSession:
        """Wire up a session with default collaborators."""
        resolver = NetworkResolver(load_networks(settings))
        fetcher = ChainDataFetcher(settings)
        orchestrator = TransactionOrchestrator(provider, fetcher, resolver, settings)
        history = HistoryAggregator(fetcher, settings)
        return cls(settings, provider, resolver, fetcher, orchestrator, history)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def on_change(self, handler: ChangeHandler) -> Callable[[], None]:
        self._change_handlers.append(handler)
        return lambda: self._change_handlers.remove(handler)

    def select_network(self, network: Optional[NetworkDescriptor]) -> None:
        """Change the network the user operates on; takes effect on next refresh."""
        self._invalidate(selected=network)

    def _publish(self, state: SessionState) -> None:
        self._state = state
        for handler in list(self._change_handlers):
            try:
                handler(state)
            except Exception as e:
                logger.error("Session change handler failed: %s", e)

    def _invalidate(self, selected: Optional[NetworkDescriptor]) -> None:
        self._generation += 1
        self.fetcher.invalidate()
        self.orchestrator.selected_network = selected
        self._publish(SessionState(selected_network=selected))

    async def refresh(self) -> SessionState:
        """Reload everything for the current wallet and selected network."""
        if self._closed:
            return self._state
        generation = self._generation

        chain_id = await self.provider.get_chain_id()
        accounts = await self.provider.get_accounts()
        account = accounts[0] if accounts else None

        selected = self._state.selected_network or self.resolver.resolve(chain_id)
        state = SessionState(
            selected_network=selected,
            chain_id=chain_id,
            status=self.resolver.status(selected, chain_id),
            account=account,
        )
        if selected is not None and selected.is_supported:
            state = await self._load(state, selected, account)

        if self._closed or generation != self._generation:
            logger.debug("Discarding stale refresh (generation %d)", generation)
            return self._state
        self.orchestrator.selected_network = selected
        self._publish(state)
        return state

    async def _load(
        self,
        state: SessionState,
        network: NetworkDescriptor,
        account: Optional[str],
    ) -> SessionState:
        assets = await self.fetcher.list_assets(network)
        fees, global_stats, totals, top = await asyncio.gather(
            self.fetcher.fees(network),
            self.fetcher.global_stats(network),
            self.fetcher.protocol_totals(network),
            self.fetcher.top_participants(network),
        )
        state = replace(
            state,
            assets=tuple(assets),
            fees=fees,
            global_stats=global_stats,
            totals=totals,
            top_participants=tuple(top),
        )
        if account is None:
            return state

        snapshot, user_stats = await asyncio.gather(
            load_snapshot(self.fetcher, network, account, assets),
            self.fetcher.user_stats(network, account),
        )
        eligible = await find_eligible_assets(
            self.fetcher, network, account, snapshot.pending_reward, assets
        )
        return replace(
            state,
            snapshot=snapshot,
            user_stats=user_stats,
            eligible_assets=tuple(eligible),
        )

    async def refresh_history(self) -> tuple[HistoricalPoint, ...]:
        network = self._state.selected_network
        if self._closed or network is None:
            return ()
        generation = self._generation
        points = tuple(await self.history.load(network))
        if self._closed or generation != self._generation:
            return self._state.history
        self._publish(replace(self._state, history=points))
        return points

    def _schedule_reload(self) -> None:
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._reloads.add(task)
        task.add_done_callback(self._reload_done)

    def _reload_done(self, task: asyncio.Task) -> None:
        self._reloads.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Session reload failed: %s", task.exception())

    def _on_chain_changed(self, chain_id: int) -> None:
        logger.info("Wallet chain changed to %s; reloading", chain_id)
        self._invalidate(selected=self.resolver.resolve(chain_id))
        self._schedule_reload()

    def _on_accounts_changed(self, accounts: list[str]) -> None:
        logger.info("Wallet accounts changed; reloading")
        self._invalidate(selected=self._state.selected_network)
        self._schedule_reload()

    async def _on_confirmed(self, attempt: TransactionAttempt) -> None:
        logger.debug("Refreshing after confirmed %s", attempt.operation.value)
        await self.refresh()

    async def wait_for_reloads(self) -> None:
        """Wait until every scheduled reload has finished."""
        while self._reloads:
            await asyncio.gather(*list(self._reloads), return_exceptions=True)

    def close(self) -> None:
        """Stop publishing. Calls already in flight finish and are ignored."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        self._change_handlers.clear()
