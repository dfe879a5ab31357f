"""Rich console output for the CLI."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table

from .constants import AMOUNT_DISPLAY_PLACES, RATE_DISPLAY_PLACES
from .domain import (
    AccountSnapshot,
    GlobalStats,
    HistoricalPoint,
    ListedAsset,
    NetworkDescriptor,
    ProtocolFees,
    ProtocolTotals,
    ShareholderStats,
    TopParticipant,
)
from .processors.rates import truncate
from .transactions import TransactionAttempt, TxState

console = Console()


def _amount(value: Decimal, places: int = AMOUNT_DISPLAY_PLACES) -> str:
    return f"{truncate(value, places):,}"


def _truncate_address(address: Optional[str]) -> str:
    if not address:
        return "-"
    return f"{address[:6]}...{address[-4:]}"


def _key_value_table(style: str) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style=style)
    return table


def print_networks(networks: Iterable[NetworkDescriptor]) -> None:
    table = Table(title="Networks")
    table.add_column("Chain id", justify="right")
    table.add_column("Name")
    table.add_column("Currency")
    table.add_column("Revamp contract")
    table.add_column("Shareholding pool")
    for network in networks:
        table.add_row(
            str(network.chain_id),
            network.label,
            network.currency,
            network.contract_address or "[dim]not deployed[/]",
            network.shareholding_address or "[dim]-[/]",
        )
    console.print(table)


def print_assets(
    network: NetworkDescriptor,
    assets: list[ListedAsset],
    fees: ProtocolFees,
    accumulated: Optional[dict[str, Decimal]] = None,
) -> None:
    table = Table(title=f"Listed assets on {network.label}")
    table.add_column("Symbol", style="bold")
    table.add_column("Name")
    table.add_column("Token")
    table.add_column(f"Rate ({network.currency})", justify="right")
    table.add_column("Revamped", justify="right")
    table.add_column("Status")
    for asset in assets:
        held = (accumulated or {}).get(asset.token_address)
        table.add_row(
            asset.symbol,
            asset.name,
            asset.token_address,
            asset.rate_str,
            _amount(held) if held is not None else "-",
            "[red]blacklisted[/]" if asset.blacklisted else "[green]active[/]",
        )

    fee_table = _key_value_table("yellow")
    fee_table.add_row("Listing fee", f"{fees.listing} {network.currency}")
    fee_table.add_row("Delist fee", f"{fees.delist} {network.currency}")
    fee_table.add_row("Claim fee", f"{fees.claim} {network.currency}")
    console.print(Group(table, Panel(fee_table, title="[bold]Fees[/]")))


def print_account(
    network: NetworkDescriptor,
    snapshot: AccountSnapshot,
    assets: list[ListedAsset],
    eligible: list[ListedAsset],
    shareholding: Optional[ShareholderStats] = None,
) -> None:
    currency = network.currency
    summary = _key_value_table("cyan")
    summary.add_row("Account", snapshot.account)
    summary.add_row("Wallet", f"{_amount(snapshot.native_balance)} {currency}")
    summary.add_row("Pending", f"{_amount(snapshot.pending_reward)} {currency}")
    summary.add_row("Contributed", f"{_amount(snapshot.contributed)} {currency}")
    summary.add_row("Max potential", f"{_amount(snapshot.max_potential)} {currency}")
    summary.add_row("Cap left", f"{_amount(snapshot.remaining_potential)} {currency}")
    if shareholding is not None:
        summary.add_row("Shares", _amount(shareholding.shares))
        summary.add_row("Sales rewards", _amount(shareholding.sales_rewards))
        summary.add_row("System rewards", _amount(shareholding.system_rewards))

    balances = Table(title="Balances")
    balances.add_column("Symbol")
    balances.add_column("Balance", justify="right")
    balances.add_column("Reinvest", justify="center")
    eligible_tokens = {asset.token_address for asset in eligible}
    for asset in assets:
        balance = snapshot.balances.get(asset.token_address, Decimal(0))
        balances.add_row(
            asset.symbol,
            _amount(balance),
            "[green]yes[/]" if asset.token_address in eligible_tokens else "",
        )

    console.print(Panel(summary, title=f"[bold]{network.label} account[/]"))
    console.print(balances)


def print_stats(
    network: NetworkDescriptor,
    stats: GlobalStats,
    totals: ProtocolTotals,
    top: list[TopParticipant],
) -> None:
    currency = network.currency
    pool = _key_value_table("green")
    pool.add_row("Share price", f"{truncate(stats.current_price, RATE_DISPLAY_PLACES)}")
    pool.add_row(
        "Last purchase", f"{truncate(stats.last_purchase_price, RATE_DISPLAY_PLACES)}"
    )
    pool.add_row("Volume", f"{_amount(stats.total_volume)} {currency}")
    pool.add_row("Holders", str(stats.total_holders))

    protocol = _key_value_table("cyan")
    protocol.add_row(
        "Contributed", f"{_amount(totals.total_native_contributed)} {currency}"
    )
    protocol.add_row("Listing fees", f"{_amount(totals.total_listing_fees)} {currency}")
    protocol.add_row("Fee ratio", f"{truncate(totals.fee_ratio_percent, 2)}%")

    leaders = Table(title="Top participants")
    leaders.add_column("#", justify="right")
    leaders.add_column("Address")
    leaders.add_column(f"Contributed ({currency})", justify="right")
    for rank, participant in enumerate(top, start=1):
        leaders.add_row(
            str(rank),
            _truncate_address(participant.address),
            _amount(participant.contributed),
        )

    console.print(Panel(pool, title="[bold]Shareholding pool[/]", border_style="green"))
    console.print(Panel(protocol, title="[bold]Protocol[/]", border_style="blue"))
    console.print(leaders)


def print_history(network: NetworkDescriptor, points: list[HistoricalPoint]) -> None:
    table = Table(title=f"Price history on {network.label}")
    table.add_column("Timestamp", justify="right")
    table.add_column("Price", justify="right")
    table.add_column(f"Volume ({network.currency})", justify="right")
    for point in points:
        table.add_row(
            str(point.timestamp),
            str(truncate(point.price, RATE_DISPLAY_PLACES)),
            _amount(point.volume),
        )
    console.print(table)


def print_attempt(network: NetworkDescriptor, attempt: TransactionAttempt) -> None:
    table = _key_value_table("cyan")
    table.add_row("Operation", attempt.operation.value)
    table.add_row("States", " -> ".join(state.value for state in attempt.history))
    if attempt.approval_hash:
        table.add_row("Approval", network.tx_url(attempt.approval_hash))
    if attempt.hash:
        table.add_row("Transaction", network.tx_url(attempt.hash))
    if attempt.error:
        table.add_row("Error", f"[red]{attempt.error}[/]")
    ok = attempt.state is TxState.CONFIRMED
    console.print(
        Panel(
            table,
            title="[bold]Confirmed[/]" if ok else "[bold]Failed[/]",
            border_style="green" if ok else "red",
        )
    )
