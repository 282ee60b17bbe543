#!/usr/bin/env python3
"""
StockScratch - Scratch Ticket CLI

Usage:
    python -m tools.scratch_cli play ticket-1001 --type tokens
    python -m tools.scratch_cli play ticket-1001 --type diamond --bonus --json
    python -m tools.scratch_cli catalog --type mystic
    python -m tools.scratch_cli simulate all --rounds 20000
    python -m tools.scratch_cli verify ticket-1001 --type stocks --stocks 288 --shares AAPL=1.6
"""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import ScratchConfig, configure_logging
from sim_engine.scratch import (
    DEFAULT_CATALOG, TICKET_TYPES, ScratchTicketEngine, Ticket, TicketType,
    get_ticket_profile,
)
from sim_engine.scratch.grid import GRID_SIZE
from sim_engine.scratch.symbols import SymbolKind
from tools.scratch_montecarlo import ScratchMonteCarlo

console = Console()

_KIND_STYLE = {
    SymbolKind.TOKEN: "yellow",
    SymbolKind.CASH: "green",
    SymbolKind.STOCK: "blue",
    SymbolKind.MULTIPLIER: "bold red",
    SymbolKind.EMPTY: "dim",
}


def _cell_label(sym) -> str:
    if sym.is_empty:
        return "·"
    if sym.is_multiplier:
        return f"{int(sym.value)}x"
    if sym.ticker:
        return sym.ticker
    if sym.legacy:
        return sym.key.upper()
    prefix = "$" if sym.kind is SymbolKind.CASH else "◎"
    return f"{prefix}{int(sym.value)}"


def render_grid(outcome) -> Table:
    winning = set(outcome.winning_cells)
    table = Table(show_header=False, show_lines=True, padding=(0, 1))
    for _ in range(GRID_SIZE):
        table.add_column(justify="center", min_width=6)
    for r in range(GRID_SIZE):
        row = []
        for c in range(GRID_SIZE):
            idx = r * GRID_SIZE + c
            sym = outcome.grid.cells[idx].symbol
            style = _KIND_STYLE[sym.kind]
            if idx in winning:
                style += " reverse"
            row.append(f"[{style}]{_cell_label(sym)}[/]")
        table.add_row(*row)
    return table


def cmd_play(args) -> int:
    ticket = Ticket(id=args.seed, type=args.type, is_bonus=args.bonus)
    outcome = ScratchTicketEngine().play(ticket)
    if args.json:
        print(outcome.to_audit_json())
        return 0

    profile = get_ticket_profile(ticket.type)
    title = f"{profile.name} ({ticket.type.value}{', bonus' if ticket.is_bonus else ''})"
    console.print(Panel(render_grid(outcome), title=title, subtitle=f"seed={ticket.seed}",
                        expand=False))

    if not outcome.wins:
        console.print("[dim]No winning runs.[/dim]")
        return 0
    wins = Table(title="Winning runs")
    for col in ("Symbol", "Direction", "Count", "Multiplier", "Cells"):
        wins.add_column(col)
    for w in outcome.wins:
        wins.add_row(w.symbol_type, w.direction, str(w.count), f"{w.multiplier}x",
                     ",".join(str(i) for i in w.cells))
    console.print(wins)

    prize = outcome.prize
    console.print(f"[bold green]Prize:[/bold green] {prize.tokens:,} tokens, "
                  f"${prize.cash:,.2f} cash, ${prize.stock_value:,.2f} in stock")
    for ticker, holding in sorted(prize.stock_shares.items()):
        console.print(f"   {ticker}: {holding.shares} shares @ {holding.price_per_share}")
    return 0


def cmd_catalog(args) -> int:
    types = [TicketType.parse(args.type)] if args.type else list(TicketType)
    for ticket_type in types:
        table = Table(title=f"{get_ticket_profile(ticket_type).name} ({ticket_type.value})")
        table.add_column("Symbol")
        table.add_column("Weight", justify="right")
        table.add_column("Bonus", justify="right")
        base = DEFAULT_CATALOG.table(ticket_type, False)
        bonus = DEFAULT_CATALOG.table(ticket_type, True)
        for key in dict.fromkeys(base.keys() + bonus.keys()):
            table.add_row(key, f"{base.weight(key):.2f}", f"{bonus.weight(key):.2f}")
        table.add_row("[bold]total[/bold]", f"{base.total:.2f}", f"{bonus.total:.2f}")
        console.print(table)

    issues = DEFAULT_CATALOG.validate()
    if issues:
        for issue in issues:
            console.print(f"[red]   ✗ {issue}[/red]")
        return 1
    console.print("[green]✅ All tables valid (sum to 100, all tickers priced)[/green]")
    return 0


def cmd_simulate(args) -> int:
    mc = ScratchMonteCarlo(seed=args.seed)
    if args.type == "all":
        report = mc.simulate_all(n_tickets=args.rounds, include_bonus=not args.no_bonus)
        print(report.to_json() if args.json else report.summary())
        return 0
    result = mc.simulate(args.type, is_bonus=args.bonus, n_tickets=args.rounds)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.summary())
    return 0


def _amount_arg(value: str) -> Decimal:
    """argparse type for money and share amounts."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a decimal amount: {value!r}") from None
    if not amount.is_finite():
        raise argparse.ArgumentTypeError(f"not a finite amount: {value!r}")
    return amount


def _shares_arg(value: str) -> tuple[str, Decimal]:
    """argparse type for TICKER=N."""
    ticker, sep, amount = value.partition("=")
    if not sep or not ticker.strip():
        raise argparse.ArgumentTypeError(f"expected TICKER=N, got {value!r}")
    return ticker.strip().upper(), _amount_arg(amount)


def cmd_verify(args) -> int:
    ticket = Ticket(id=args.seed, type=args.type, is_bonus=args.bonus)
    claimed = {
        "tokens": args.tokens,
        "cash": args.cash,
        "stocks": args.stocks,
        "stockShares": {ticker: {"shares": amount} for ticker, amount in args.shares or []},
    }
    if ScratchTicketEngine().verify(ticket, claimed):
        console.print(f"[green]✅ Prize for {ticket.id} verified[/green]")
        return 0
    console.print(f"[red]❌ Prize for {ticket.id} does not match the ticket[/red]")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seeded scratch ticket engine")
    parser.add_argument("--log-level", type=str, default=None,
                        help=f"Logging level (default: {ScratchConfig.LOG_LEVEL})")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("play", help="Generate, scan and price a ticket")
    p.add_argument("seed", type=str, help="Ticket id / seed")
    p.add_argument("--type", choices=TICKET_TYPES, default="tokens")
    p.add_argument("--bonus", action="store_true")
    p.add_argument("--json", action="store_true", help="Print the audit record")
    p.set_defaults(func=cmd_play)

    p = sub.add_parser("catalog", help="Show probability tables")
    p.add_argument("--type", choices=TICKET_TYPES, default=None)
    p.set_defaults(func=cmd_catalog)

    p = sub.add_parser("simulate", help="Monte Carlo payout analysis")
    p.add_argument("type", nargs="?", choices=TICKET_TYPES + ["all"], default="all")
    p.add_argument("--rounds", type=int, default=ScratchConfig.MC_ROUNDS)
    p.add_argument("--seed", type=str, default=ScratchConfig.MC_SEED)
    p.add_argument("--bonus", action="store_true")
    p.add_argument("--no-bonus", action="store_true", help="Skip bonus variants for 'all'")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_simulate)

    p = sub.add_parser("verify", help="Check a claimed prize against the ticket seed")
    p.add_argument("seed", type=str)
    p.add_argument("--type", choices=TICKET_TYPES, default="tokens")
    p.add_argument("--bonus", action="store_true")
    p.add_argument("--tokens", type=int, default=0)
    p.add_argument("--cash", type=_amount_arg, default=Decimal("0"))
    p.add_argument("--stocks", type=_amount_arg, default=Decimal("0"),
                   help="Claimed stock value (shares at reference price + legacy stock)")
    p.add_argument("--shares", type=_shares_arg, action="append", metavar="TICKER=N")
    p.set_defaults(func=cmd_verify)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
