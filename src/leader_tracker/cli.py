"""
Command-line interface for the leader tracker.

Usage:
    leader-tracker compare 0xabc... 0xdef... --window-hours 24 --days 30
    leader-tracker leaders --min-volume 1000 --max-markets 100
    leader-tracker first will-trump-win-2024
    leader-tracker profitable --max-traders 30
    leader-tracker history 0xabc...
    leader-tracker stats
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import get_config
from .engine import ComparisonResult, LeadershipEngine, MarketScanResult, ProfitabilityResult
from .storage.database import Database
from .storage.results import save_comparison, save_profitability, save_scan

app = typer.Typer(
    name="leader-tracker",
    help="Find Polymarket traders who consistently trade first",
    add_completion=False,
)

console = Console()


def setup_logging(debug: bool = False):
    """Configure logging."""
    level = logging.DEBUG if debug else getattr(logging, get_config().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def format_address(address: str) -> str:
    """Shorten an address to 0x1234...abcd."""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_duration(seconds: float) -> str:
    """Human-readable duration, e.g. 45s, 2.5m, 3.0h, 1.2d."""
    seconds = abs(seconds)
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{seconds / 60:.1f}m"
    if seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    return f"{seconds / 86400:.1f}d"


def format_number(num: float) -> str:
    """Compact number, e.g. 1.2M, -3.4K, 950."""
    if abs(num) >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if abs(num) >= 1000:
        return f"{num / 1000:.1f}K"
    return f"{num:.0f}"


def format_pnl(num: float) -> str:
    """Signed dollar amount, e.g. +$1.2K, -$350."""
    sign = "+" if num >= 0 else "-"
    return f"{sign}${format_number(abs(num))}"


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _rank_style(i: int) -> str:
    return "green" if i < 3 else "yellow" if i < 10 else "blue"


def print_comparison(result: ComparisonResult) -> None:
    """Print the trader comparison report."""
    console.print(Panel(
        f"History: {result.history_days} days | "
        f"Time window: {result.time_window_seconds / 3600:g}h | "
        f"Traders: {len(result.histories)}",
        title="Trader Comparison",
    ))

    table = Table(title="Trader Leadership Summary", show_header=True)
    table.add_column("Trader", style="cyan")
    table.add_column("Total Trades", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Times First", justify="right", style="green")
    table.add_column("First %", justify="right")
    table.add_column("Avg Lead", justify="right")
    table.add_column("Avg Follow", justify="right")

    for s in result.summaries:
        table.add_row(
            format_address(s.trader_address),
            str(s.total_trades),
            str(s.matched_market_count),
            str(s.times_leader),
            f"{s.leader_rate:.0%}",
            format_duration(s.avg_lead_seconds),
            format_duration(s.avg_follow_seconds),
        )
    console.print(table)

    console.print()
    console.print(f"[bold yellow]Matched trades ({len(result.matched_markets)} markets)[/bold yellow]")

    for i, market in enumerate(result.matched_markets[:20], start=1):
        console.print(f"[bold]{i}. {market.market_title or market.market_id}[/bold]")
        console.print(f"[dim]   Condition: {market.market_id[:20]}...[/dim]")

        start = market.participants[0].first_timestamp
        for j, p in enumerate(market.participants):
            marker = "[green]→ FIRST[/green]" if j == 0 else "[yellow]  FOLLOW[/yellow]"
            side = "[green]BUY [/green]" if p.first_side.value == "BUY" else "[red]SELL[/red]"
            since_first = f"[dim](+{format_duration(p.first_timestamp - start)})[/dim]" if j else ""
            console.print(
                f"   {marker} [cyan]{format_address(p.trader_address)}[/cyan] | {side} | "
                f"${p.first_usd_value:>8.2f} @ ${p.first_price:.3f} | "
                f"{format_timestamp(p.first_timestamp)} {since_first}"
            )
        console.print()

    if len(result.matched_markets) > 20:
        console.print(f"[dim]   ... and {len(result.matched_markets) - 20} more matched markets[/dim]")

    stats = result.gap_stats
    if stats.count:
        console.print(Panel(
            f"Total comparisons: {stats.count}\n"
            f"Minimum gap: {format_duration(stats.minimum)}\n"
            f"Maximum gap: {format_duration(stats.maximum)}\n"
            f"Median gap: {format_duration(stats.median)}\n"
            f"Average gap: {format_duration(stats.mean)}\n\n"
            f"< 1 minute:  {stats.under_one_minute} ({stats.share(stats.under_one_minute):.1%})\n"
            f"< 5 minutes: {stats.under_five_minutes} ({stats.share(stats.under_five_minutes):.1%})\n"
            f"< 1 hour:    {stats.under_one_hour} ({stats.share(stats.under_one_hour):.1%})",
            title="Time Difference Analysis",
        ))


def print_scan(result: MarketScanResult) -> None:
    """Print the leader ranking of a market scan."""
    ranked = result.ranked
    if not ranked:
        console.print("[yellow]No traders found matching criteria. Try lowering --min-first.[/yellow]")
        return

    table = Table(title="Top Leader Traders (by times trading first)", show_header=True)
    table.add_column("Rank", justify="right")
    table.add_column("Trader", style="cyan")
    table.add_column("1st Place", justify="right", style="green")
    table.add_column(f"Top {result.top_n}", justify="right")
    table.add_column("Markets", justify="right")
    table.add_column("Avg Pos", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Avg Delay", justify="right")

    for i, s in enumerate(ranked[:30]):
        style = _rank_style(i)
        table.add_row(
            f"[{style}]{i + 1}[/]",
            s.trader_address,
            str(s.times_leader),
            str(s.times_in_top_n),
            str(s.matched_market_count),
            f"{s.avg_entry_rank:.1f}",
            f"${format_number(s.matched_volume_usd)}",
            format_duration(s.avg_entry_delay_seconds),
        )
    console.print(table)

    if len(ranked) > 30:
        console.print(f"[dim]... and {len(ranked) - 30} more traders[/dim]")

    top10 = ranked[:10]
    avg_first_rate = sum(s.leader_rate for s in top10) / len(top10)
    avg_volume = sum(s.matched_volume_usd for s in top10) / len(top10)

    console.print(Panel(
        f"Markets analyzed: {len(result.markets)}\n"
        f"Total unique traders found: {result.total_traders}\n"
        f"Traders meeting criteria: {len(ranked)}\n"
        f'Top 10 avg "first" rate: {avg_first_rate:.1%} of their markets\n'
        f"Top 10 avg volume: ${format_number(avg_volume)}",
        title="Summary",
    ))

    console.print("[bold magenta]Recommended traders to follow:[/bold magenta]")
    for s in ranked[:5]:
        console.print(f"  [green]→[/green] [cyan]{s.trader_address}[/cyan]")
        console.print(
            f"    First {s.times_leader}x across {s.matched_market_count} markets "
            f"({s.leader_rate:.0%} first rate)"
        )
        console.print(f"    Profile: {s.profile_url}")


def _pnl_table(title: str, traders, style: str) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("Rank", justify="right")
    table.add_column("Trader", style="cyan")
    table.add_column("Total P&L", justify="right", style=style)
    table.add_column("Open P&L", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Positions", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Best Position")

    for i, t in enumerate(traders, start=1):
        best = t.best_position
        table.add_row(
            str(i),
            t.name or format_address(t.address),
            format_pnl(t.total_pnl),
            format_pnl(t.unrealized_pnl),
            f"${format_number(t.total_volume)}",
            str(t.position_count),
            f"{t.win_rate:.1f}%",
            f"{best.title[:40]} ({format_pnl(best.pnl)})" if best else "-",
        )
    return table


def print_profitability(result: ProfitabilityResult) -> None:
    """Print the profitable and losing trader report."""
    profitable = result.profitable
    losing = result.unprofitable

    if profitable:
        console.print(_pnl_table("Most Profitable Traders", profitable[:20], "green"))
    else:
        console.print("[yellow]No profitable traders found[/yellow]")

    if losing:
        # Biggest losers first
        console.print(_pnl_table("Biggest Losing Traders", losing[::-1][:10], "red"))

    total = len(result.traders)
    console.print(Panel(
        f"Total traders analyzed: {total}\n"
        f"Profitable traders: {len(profitable)} ({len(profitable) / total:.1%})\n"
        f"Unprofitable traders: {len(losing)}\n"
        f"Average P&L: {format_pnl(result.avg_pnl)}\n"
        f"Average win rate: {result.avg_win_rate:.1f}%",
        title="Summary",
    ))

    if profitable:
        console.print("[bold magenta]Recommended traders to follow:[/bold magenta]")
        for t in profitable[:5]:
            console.print(f"  [green]→[/green] [cyan]{t.name or t.address}[/cyan]")
            console.print(
                f"    P&L {format_pnl(t.total_pnl)} across {t.position_count} positions "
                f"({t.win_rate:.1f}% win rate)"
            )
            console.print(f"    Profile: {t.profile_url}")


async def _record_run(kind: str, summaries, market_count: int, config: dict) -> None:
    async with Database() as db:
        await db.save_run(kind, summaries, market_count=market_count, config=config)


@app.command()
def compare(
    addresses: Optional[list[str]] = typer.Argument(
        None,
        help="Trader addresses to compare (defaults to COMPARE_TRADERS)",
    ),
    window_hours: Optional[float] = typer.Option(
        None,
        "--window-hours", "-w",
        help="Max gap between first trades to count as a pair",
    ),
    days: Optional[int] = typer.Option(None, "--days", help="Days of history to analyze"),
    save: bool = typer.Option(True, "--save/--no-save", help="Save results to JSON and database"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Compare trading timing between two or more traders.
    """
    setup_logging(debug)
    config = get_config()
    traders = [a.strip().lower() for a in (addresses or config.compare_traders)]

    async def run_compare():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task(f"Fetching trade history for {len(traders)} traders...", total=None)
            async with LeadershipEngine() as engine:
                result = await engine.compare_traders(
                    traders,
                    time_window_hours=window_hours,
                    history_days=days,
                )

        print_comparison(result)

        if save:
            path = save_comparison(result)
            await _record_run(
                "comparison",
                result.summaries,
                market_count=len(result.matched_markets),
                config={"traders": result.traders, "window_hours": result.time_window_seconds / 3600},
            )
            console.print(f"[green]Results saved to: {path}[/green]")

    try:
        asyncio.run(run_compare())
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Usage: leader-tracker compare <address1> <address2> [address3] ...")
        console.print("Or set COMPARE_TRADERS to comma-separated addresses")
        raise typer.Exit(code=1)


@app.command()
def leaders(
    min_volume: Optional[float] = typer.Option(None, "--min-volume", help="Minimum market volume (USD)"),
    max_markets: Optional[int] = typer.Option(None, "--max-markets", "-m", help="Maximum markets to scan"),
    top_n: Optional[int] = typer.Option(None, "--top-n", "-n", help="Entry rank counted as top N"),
    min_first: Optional[int] = typer.Option(None, "--min-first", help="Minimum times first to rank"),
    save: bool = typer.Option(True, "--save/--no-save", help="Save results to JSON and database"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Scan active markets for traders who consistently trade first.
    """
    setup_logging(debug)

    async def run_scan():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Scanning market trades...", total=None)
            async with LeadershipEngine() as engine:
                result = await engine.scan_markets(
                    min_volume=min_volume,
                    max_markets=max_markets,
                    top_n=top_n,
                    min_leader_count=min_first,
                )

        if not result.markets:
            console.print("[red]No markets found. Try lowering --min-volume.[/red]")
            raise typer.Exit(code=1)

        print_scan(result)

        if save:
            path = save_scan(result)
            await _record_run(
                "market_scan",
                result.ranked,
                market_count=len(result.markets),
                config={"top_n": result.top_n, "min_leader_count": result.min_leader_count},
            )
            console.print(f"[green]Results saved to: {path}[/green]")

    asyncio.run(run_scan())


@app.command()
def first(
    market: str = typer.Argument(..., help="Market condition ID (0x...) or slug"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Show the order in which traders entered a market.
    """
    setup_logging(debug)

    async def run_first():
        async with LeadershipEngine() as engine:
            result = await engine.first_traders(market)

        if result.market:
            console.print(f"[green]Found market: {result.market.label}[/green]")
        else:
            console.print("[yellow]Could not find market info, using input as condition ID[/yellow]")

        if not result.entries:
            console.print("[red]No trades found for this market[/red]")
            raise typer.Exit(code=1)

        console.print(
            f"[bold]Total trades: {result.trade_count} | Unique traders: {len(result.entries)}[/bold]"
        )

        table = Table(title="First Traders in Market", show_header=True)
        table.add_column("Pos", justify="right")
        table.add_column("Trader", style="cyan")
        table.add_column("First Trade Time")
        table.add_column("Delay", justify="right")
        table.add_column("Side")
        table.add_column("Price", justify="right")
        table.add_column("Volume", justify="right")
        table.add_column("Total Vol", justify="right")

        for entry in result.entries[:20]:
            delay = entry.first_timestamp - result.first_timestamp
            style = _rank_style(entry.position - 1)
            table.add_row(
                f"[{style}]{entry.position}[/]",
                entry.trader_address,
                format_timestamp(entry.first_timestamp),
                "0s (FIRST)" if delay == 0 else format_duration(delay),
                entry.first_side.value,
                f"{entry.first_price:.2f}",
                f"${entry.first_usd_value:,.0f}",
                f"${entry.cumulative_usd_volume:,.0f}",
            )
        console.print(table)

        winner = result.first_entry
        console.print(Panel(
            f"[bold]Address:[/bold] {winner.trader_address}\n"
            f"[bold]Profile:[/bold] https://polymarket.com/profile/{winner.trader_address}\n"
            f"[bold]First trade:[/bold] {format_timestamp(winner.first_timestamp)}\n"
            f"[bold]Side:[/bold] {winner.first_side.value} @ ${winner.first_price:.2f}\n"
            f"[bold]Total volume in market:[/bold] ${winner.cumulative_usd_volume:,.2f}\n"
            f"[bold]Trade count:[/bold] {winner.trade_count_in_market}",
            title="First Trader",
        ))

    asyncio.run(run_first())


@app.command()
def profitable(
    addresses: Optional[list[str]] = typer.Argument(
        None,
        help="Trader addresses to analyze (defaults to the top of the leaderboard)",
    ),
    max_traders: Optional[int] = typer.Option(
        None,
        "--max-traders", "-m",
        help="Leaderboard traders to analyze",
    ),
    save: bool = typer.Option(True, "--save/--no-save", help="Save results to JSON"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Rank leaderboard traders by profit and loss.
    """
    setup_logging(debug)

    async def run_profitable():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Analyzing trader positions...", total=None)
            async with LeadershipEngine() as engine:
                result = await engine.profitable_traders(addresses, max_traders=max_traders)

        if not result.candidates:
            console.print("[red]No traders found on the leaderboard[/red]")
            raise typer.Exit(code=1)
        if not result.traders:
            console.print("[red]No trader had positions or activity to analyze[/red]")
            raise typer.Exit(code=1)

        print_profitability(result)

        if save:
            path = save_profitability(result)
            console.print(f"[green]Results saved to: {path}[/green]")

    asyncio.run(run_profitable())


@app.command()
def history(
    address: str = typer.Argument(..., help="Trader address"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of runs to show"),
):
    """
    Show a trader's placement across saved runs.
    """
    async def run():
        async with Database() as db:
            entries = await db.get_trader_runs(address, limit=limit)

        if not entries:
            console.print(f"[yellow]No saved runs include {address}[/yellow]")
            return

        table = Table(title=f"Leadership History: {format_address(address.lower())}", show_header=True)
        table.add_column("Run", justify="right")
        table.add_column("Time")
        table.add_column("Kind")
        table.add_column("Rank", justify="right")
        table.add_column("Times First", justify="right", style="green")
        table.add_column("Top N", justify="right")
        table.add_column("Markets", justify="right")
        table.add_column("Avg Lead", justify="right")

        for e in entries:
            table.add_row(
                str(e["run_id"]),
                e["created_at"].strftime("%m-%d %H:%M"),
                e["kind"],
                str(e["rank"]),
                str(e["times_leader"]),
                str(e["times_in_top_n"]),
                str(e["matched_market_count"]),
                format_duration(e["avg_lead_seconds"]),
            )
        console.print(table)

    asyncio.run(run())


@app.command()
def stats():
    """
    Show database statistics.
    """
    async def run():
        async with Database() as db:
            db_stats = await db.get_stats()
            recent = await db.get_recent_runs(limit=1)

        last_run = recent[0]["created_at"].strftime("%Y-%m-%d %H:%M") if recent else "-"
        console.print(Panel(
            f"[bold]Runs saved:[/bold] {db_stats['runs']}\n"
            f"[bold]Runs with traders:[/bold] {db_stats['runs_with_traders']}\n"
            f"[bold]Traders recorded:[/bold] {db_stats['traders']}\n"
            f"[bold]Last run:[/bold] {last_run}",
            title="Database Statistics",
        ))

    asyncio.run(run())


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
