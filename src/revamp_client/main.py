"""CLI entrypoint for the revamp client."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable

import typer

from . import formatter
from .clients import ChainDataFetcher
from .domain import AssetFilter, AssetSortKey, ListedAsset, NetworkDescriptor
from .errors import RevampError
from .history import HistoryAggregator
from .logger import setup_logging
from .network import NetworkResolver, load_networks
from .processors import find_eligible_assets, load_snapshot
from .providers import LocalWalletProvider
from .session import RevampSession
from .settings import RevampSettings
from .state import AppState
from .transactions import TransactionAttempt, TransactionOrchestrator

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Browse and operate the revamp protocol from the terminal.",
)

WriteAction = Callable[[TransactionOrchestrator], Awaitable[TransactionAttempt]]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("revamp_client")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [revamp] table).",
        ),
    ] = None,
    network: Annotated[
        int | None,
        typer.Option("--network", "-n", help="Chain id of the network to use."),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option(
            "--rpc-url",
            help="RPC endpoint for the selected network; overrides the default.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR).",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Load configuration and logging shared by every command."""
    if config_path:
        os.environ["REVAMP_CONFIG"] = str(config_path)

    init_kwargs: dict[str, Any] = {}
    if network is not None:
        init_kwargs["selected_chain_id"] = network
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()
    if rpc_url is not None:
        if network is None:
            raise typer.BadParameter(
                "--rpc-url needs --network", param_hint=["--rpc-url"]
            )
        init_kwargs["rpc_urls"] = {network: rpc_url}

    settings = RevampSettings(**init_kwargs)
    setup_logging(settings.log_level)
    state = AppState(
        settings=settings, logger=_build_logger(), networks=load_networks(settings)
    )

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2, default=str))
        raise typer.Exit(code=0)

    ctx.obj = state
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _selected_network(state: AppState) -> NetworkDescriptor:
    chain_id = state.settings.selected_chain_id
    if chain_id is None:
        raise typer.BadParameter(
            "select a network first",
            param_hint=["--network", "REVAMP_SELECTED_CHAIN_ID"],
        )
    network = NetworkResolver(state.networks).resolve(chain_id)
    if network is None:
        raise typer.BadParameter(f"unknown chain id {chain_id}", param_hint="--network")
    if not network.is_supported:
        raise typer.BadParameter(
            f"no revamp contract configured on {network.label}",
            param_hint=["--network", "REVAMP_REVAMP_ADDRESSES"],
        )
    return network


def _wallet(state: AppState, network: NetworkDescriptor) -> LocalWalletProvider:
    if state.settings.private_key is None:
        raise typer.BadParameter(
            "private_key is required for this command.",
            param_hint=["REVAMP_PRIVATE_KEY"],
        )
    return LocalWalletProvider(state.settings, network)


async def _find_asset(
    orchestrator: TransactionOrchestrator, token: str
) -> ListedAsset:
    network = orchestrator.selected_network
    assert network is not None
    for asset in await orchestrator.fetcher.list_assets(network):
        if asset.token_address.lower() == token.lower():
            return asset
    raise typer.BadParameter(f"{token} is not listed on {network.label}")


def _write(ctx: typer.Context, action: WriteAction) -> None:
    state: AppState = ctx.obj
    network = _selected_network(state)
    provider = _wallet(state, network)
    fetcher = ChainDataFetcher(state.settings)
    orchestrator = TransactionOrchestrator(
        provider,
        fetcher,
        NetworkResolver(state.networks),
        state.settings,
        selected_network=network,
    )
    try:
        attempt = asyncio.run(action(orchestrator))
    except RevampError as e:
        typer.secho(str(e), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from e

    formatter.print_attempt(network, attempt)
    if not attempt.succeeded:
        raise typer.Exit(code=1)


@app.command()
def networks(ctx: typer.Context) -> None:
    """List known networks and their deployments."""
    state: AppState = ctx.obj
    formatter.print_networks(state.networks)


@app.command()
def assets(
    ctx: typer.Context,
    search: Annotated[
        str, typer.Option("--search", "-s", help="Filter by name or symbol.")
    ] = "",
    hide_blacklisted: Annotated[
        bool, typer.Option("--hide-blacklisted", help="Omit blacklisted assets.")
    ] = False,
    sort: Annotated[
        AssetSortKey | None,
        typer.Option("--sort", help="Sort by this column.", case_sensitive=False),
    ] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending.")] = False,
) -> None:
    """Show listed assets, fees and revamped amounts."""
    state: AppState = ctx.obj
    network = _selected_network(state)
    fetcher = ChainDataFetcher(state.settings)

    async def load():
        listed = await fetcher.list_assets(network)
        fees, accumulated = await asyncio.gather(
            fetcher.fees(network), fetcher.accumulated_balances(network, listed)
        )
        return listed, fees, accumulated

    listed, fees, accumulated = asyncio.run(load())
    shown = AssetFilter(
        search,
        include_blacklisted=not hide_blacklisted,
        sort_by=sort,
        descending=desc,
    ).apply(listed, accumulated)
    formatter.print_assets(network, shown, fees, accumulated)


@app.command()
def account(
    ctx: typer.Context,
    address: Annotated[
        str | None,
        typer.Argument(help="Account to inspect; defaults to the configured wallet."),
    ] = None,
) -> None:
    """Show balances, pending reward and reinvest eligibility."""
    state: AppState = ctx.obj
    network = _selected_network(state)

    if address is None:
        session = RevampSession.create(state.settings, _wallet(state, network))
        try:
            view = asyncio.run(session.refresh())
        finally:
            session.close()
        if view.snapshot is None:
            raise typer.BadParameter("wallet exposes no account")
        formatter.print_account(
            network,
            view.snapshot,
            list(view.assets),
            list(view.eligible_assets),
            view.user_stats,
        )
        return

    fetcher = ChainDataFetcher(state.settings)

    async def load():
        listed = await fetcher.list_assets(network)
        snapshot, shareholding = await asyncio.gather(
            load_snapshot(fetcher, network, address, listed),
            fetcher.user_stats(network, address),
        )
        eligible = await find_eligible_assets(
            fetcher, network, address, snapshot.pending_reward, listed
        )
        return listed, snapshot, eligible, shareholding

    listed, snapshot, eligible, shareholding = asyncio.run(load())
    formatter.print_account(network, snapshot, listed, eligible, shareholding)


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show shareholding pool and protocol-wide statistics."""
    state: AppState = ctx.obj
    network = _selected_network(state)
    fetcher = ChainDataFetcher(state.settings)

    async def load():
        return await asyncio.gather(
            fetcher.global_stats(network),
            fetcher.protocol_totals(network),
            fetcher.top_participants(network),
        )

    pool, totals, top = asyncio.run(load())
    formatter.print_stats(network, pool, totals, top)


@app.command()
def history(
    ctx: typer.Context,
    limit: Annotated[
        int | None, typer.Option("--limit", help="Only show the latest N points.")
    ] = None,
) -> None:
    """Show the shareholding price history for the lookback period."""
    state: AppState = ctx.obj
    network = _selected_network(state)
    aggregator = HistoryAggregator(ChainDataFetcher(state.settings), state.settings)
    points = asyncio.run(aggregator.load(network))
    if limit is not None:
        points = points[-limit:] if limit > 0 else []
    formatter.print_history(network, points)


@app.command("list-asset")
def list_asset(
    ctx: typer.Context,
    token: Annotated[str, typer.Argument(help="Token contract address.")],
    rate: Annotated[str, typer.Argument(help="Native currency per whole token.")],
    logo_url: Annotated[str, typer.Option("--logo-url", help="Logo image URL.")] = "",
) -> None:
    """List a token, paying the listing fee."""
    _write(ctx, lambda orchestrator: orchestrator.list_asset(token, rate, logo_url))


@app.command()
def delist(
    ctx: typer.Context,
    token: Annotated[str, typer.Argument(help="Token contract address.")],
) -> None:
    """Delist a token, paying the delist fee."""
    _write(ctx, lambda orchestrator: orchestrator.delist_asset(token))


@app.command()
def join(
    ctx: typer.Context,
    token: Annotated[str, typer.Argument(help="Listed token to deposit.")],
    amount: Annotated[
        str | None, typer.Option("--amount", help="Token amount to deposit.")
    ] = None,
    native: Annotated[
        str | None, typer.Option("--native", help="Native amount to pair instead.")
    ] = None,
) -> None:
    """Deposit a listed token with native currency at its listed rate."""

    async def action(orchestrator: TransactionOrchestrator) -> TransactionAttempt:
        asset = await _find_asset(orchestrator, token)
        return await orchestrator.join(asset, token_amount=amount, native_amount=native)

    _write(ctx, action)


@app.command()
def claim(ctx: typer.Context) -> None:
    """Claim the pending revamp reward."""
    _write(ctx, lambda orchestrator: orchestrator.claim())


@app.command()
def reinvest(
    ctx: typer.Context,
    token: Annotated[str, typer.Argument(help="Eligible token to revamp into.")],
) -> None:
    """Revamp the whole pending reward into a listed token."""

    async def action(orchestrator: TransactionOrchestrator) -> TransactionAttempt:
        asset = await _find_asset(orchestrator, token)
        return await orchestrator.reinvest(asset)

    _write(ctx, action)


@app.command("buy-shares")
def buy_shares(
    ctx: typer.Context,
    amount: Annotated[str, typer.Argument(help="Native currency to spend.")],
) -> None:
    """Buy shareholding pool shares."""
    _write(ctx, lambda orchestrator: orchestrator.buy_shares(amount))


@app.command("claim-rewards")
def claim_rewards(ctx: typer.Context) -> None:
    """Claim shareholding rewards."""
    _write(ctx, lambda orchestrator: orchestrator.claim_rewards())


@app.command("reinvest-rewards")
def reinvest_rewards(ctx: typer.Context) -> None:
    """Turn unclaimed shareholding rewards into shares."""
    _write(ctx, lambda orchestrator: orchestrator.reinvest_rewards())


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
