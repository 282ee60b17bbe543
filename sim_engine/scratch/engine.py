"""
StockScratch - Ticket Engine

Runs the full pipeline for one ticket and re-derives prizes for audit:

    Ticket -> seeded RNG -> Grid -> PatternScanner -> WinEntry[] -> Prize

Every step is pure, so play() is safe to call any number of times for the
same ticket; crediting at most once is the caller's job.

Usage:
    from sim_engine.scratch.engine import ScratchTicketEngine
    engine = ScratchTicketEngine()
    outcome = engine.play(Ticket(id="t-1001", type="tokens"))
    print(outcome.prize.tokens)
    engine.verify(ticket, claimed_prize)   # True when the claim re-derives
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Union

from sim_engine.scratch.catalog import SymbolCatalog
from sim_engine.scratch.grid import Grid, GridGenerator
from sim_engine.scratch.models import Ticket
from sim_engine.scratch.prize import Prize, PrizeCalculator
from sim_engine.scratch.rng import SeededRandomSource, fold_seed
from sim_engine.scratch.scanner import PatternScanner, WinEntry

logger = logging.getLogger("stockscratch.engine")


@dataclass(frozen=True)
class ScratchOutcome:
    """Result of playing a ticket, with everything needed to re-check it."""
    ticket: Ticket
    grid: Grid
    wins: tuple[WinEntry, ...]
    winning_cells: tuple[int, ...]
    prize: Prize

    @property
    def is_winner(self) -> bool:
        return not self.prize.is_empty

    def verification_data(self) -> dict:
        """Data needed to independently re-derive this outcome."""
        return {
            "ticket_id": self.ticket.id,
            "ticket_type": self.ticket.type.value,
            "is_bonus": self.ticket.is_bonus,
            "seed": self.ticket.seed,
            "seed_state": f"0x{fold_seed(self.ticket.seed):08x}",
            "grid": self.grid.keys(),
            "wins": [w.to_dict() for w in self.wins],
            "winning_cells": list(self.winning_cells),
            "prize": self.prize.to_dict(),
            "verification_steps": [
                "1. state = FNV-1a(seed) over UTF-16 code units (0 -> offset basis)",
                "2. For each of 25 cells: xorshift32(13,7,5), r = state / 2^32 * 100",
                "3. Pick the first table key whose cumulative weight >= r",
                "4. Scan rows, columns and both diagonals for runs of 3+",
                "5. Apply run multipliers, ticket multiplier and bonus",
            ],
        }

    def to_audit_json(self) -> str:
        return json.dumps(self.verification_data(), indent=2)


class ScratchTicketEngine:
    """Wires catalog, generator, scanner and calculator together."""

    def __init__(self, catalog: Optional[SymbolCatalog] = None,
                 price_table: Optional[Mapping[str, float]] = None,
                 scanner: Optional[PatternScanner] = None):
        self.generator = GridGenerator(catalog)
        self.scanner = scanner or PatternScanner()
        self.calculator = PrizeCalculator(price_table)

    def grid_for(self, ticket: Ticket) -> Grid:
        rng = SeededRandomSource.from_seed(ticket.seed)
        return self.generator.generate(ticket.type, ticket.is_bonus, rng)

    def play(self, ticket: Ticket) -> ScratchOutcome:
        grid = self.grid_for(ticket)
        wins, winning_cells = self.scanner.scan(grid)
        prize = self.calculator.calculate(wins, ticket.type, ticket.is_bonus)
        logger.info(f"Ticket {ticket.id} ({ticket.type.value}"
                    f"{', bonus' if ticket.is_bonus else ''}): {len(wins)} wins, "
                    f"tokens={prize.tokens} cash={prize.cash} stocks={prize.stock_value}")
        return ScratchOutcome(
            ticket=ticket,
            grid=grid,
            wins=tuple(wins),
            winning_cells=tuple(winning_cells),
            prize=prize,
        )

    def verify(self, ticket: Ticket, claimed: Union[Prize, dict]) -> bool:
        """Re-derive the ticket's prize and compare it with a claimed one."""
        expected = self.play(ticket).prize
        if isinstance(claimed, Prize):
            ok = claimed == expected
        else:
            ok = _matches_dict(expected, claimed)
        if not ok:
            logger.warning(f"Prize mismatch for ticket {ticket.id}: "
                           f"claimed={claimed} expected={expected.to_dict()}")
        return ok


def _matches_dict(expected: Prize, claimed: dict) -> bool:
    """Compare against the ``Prize.to_dict()`` wire form."""
    if int(claimed.get("tokens", 0)) != expected.tokens:
        return False
    if Decimal(str(claimed.get("cash", 0))) != expected.cash:
        return False
    # Legacy stock payouts only show up here, not in stockShares
    if Decimal(str(claimed.get("stocks", 0))) != expected.stock_value:
        return False
    claimed_shares = claimed.get("stockShares") or {}
    if set(claimed_shares) != set(expected.stock_shares):
        return False
    for ticker, holding in expected.stock_shares.items():
        entry = claimed_shares[ticker]
        shares = entry.get("shares") if isinstance(entry, dict) else entry
        if Decimal(str(shares)) != holding.shares:
            return False
    return True


_DEFAULT_ENGINE: Optional[ScratchTicketEngine] = None


def _default_engine() -> ScratchTicketEngine:
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        _DEFAULT_ENGINE = ScratchTicketEngine()
    return _DEFAULT_ENGINE


def play_ticket(ticket: Ticket) -> ScratchOutcome:
    return _default_engine().play(ticket)


def verify_prize(ticket: Ticket, claimed: Union[Prize, dict]) -> bool:
    return _default_engine().verify(ticket, claimed)
