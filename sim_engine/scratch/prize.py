"""
StockScratch - Prize Calculator

Turns a list of WinEntry records into a Prize. Pure: no I/O, no ledger
writes, so the crediting side can re-derive any prize from the ticket id.

    tokens  += sum(cell_values) * run multiplier * ticket multiplier
    cash    += sum(cell_values) * run multiplier * ticket multiplier
    shares  += shares_per_match * count * run multiplier * ticket multiplier
    legacy   15 units per match, same multiplier chain

Ticket multipliers: Mystic 10x, Diamond 50x, others 1x. Shares per match:
0.4 on Stocks tickets, 0.2 elsewhere. Bonus tickets pay +25% on every
component (tokens floored). Money uses Decimal, rounded half up to cents;
shares are rounded to 0.01.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional

from config.settings import ScratchConfig
from sim_engine.scratch.models import TICKET_PROFILES, TicketProfile, TicketType
from sim_engine.scratch.scanner import WinEntry
from sim_engine.scratch.symbols import DEFAULT_PRICE_TABLE, SymbolKind, get_symbol

logger = logging.getLogger("stockscratch.prize")

BONUS_RATE = Decimal(ScratchConfig.BONUS_RATE)
LEGACY_UNITS_PER_MATCH = Decimal(ScratchConfig.LEGACY_UNITS_PER_MATCH)
_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


def _dec(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockShares:
    ticker: str
    shares: Decimal
    price_per_share: Decimal

    @property
    def value(self) -> Decimal:
        return _cents(self.shares * self.price_per_share)

    def to_dict(self) -> dict:
        return {
            "shares": float(self.shares),
            "pricePerShare": float(self.price_per_share),
            "value": float(self.value),
        }


@dataclass(frozen=True)
class Prize:
    """Payout for one ticket."""
    tokens: int = 0
    cash: Decimal = _ZERO
    stock_shares: Mapping[str, StockShares] = field(default_factory=dict)
    stock_value: Decimal = _ZERO          # Share-derived cash value + legacy stock payouts

    @property
    def is_empty(self) -> bool:
        return self.tokens == 0 and self.cash == 0 and self.stock_value == 0 and not self.stock_shares

    @property
    def total_value(self) -> Decimal:
        """All components on one scale (1 token = 1 cash unit)."""
        return _cents(Decimal(self.tokens) + self.cash + self.stock_value)

    def to_dict(self) -> dict:
        return {
            "tokens": self.tokens,
            "cash": float(self.cash),
            "stocks": float(self.stock_value),
            "stockShares": {t: s.to_dict() for t, s in sorted(self.stock_shares.items())},
        }


# ═══════════════════════════════════════════════════════════════
# Calculator
# ═══════════════════════════════════════════════════════════════

class PrizeCalculator:
    """Computes prizes against a reference price table."""

    def __init__(self, price_table: Optional[Mapping[str, float]] = None,
                 profiles: Optional[Mapping[TicketType, TicketProfile]] = None):
        self.price_table = DEFAULT_PRICE_TABLE if price_table is None else price_table
        self.profiles = profiles or TICKET_PROFILES

    def calculate(self, win_entries: Iterable[WinEntry], ticket_type,
                  is_bonus: bool = False) -> Prize:
        ticket_type = TicketType.parse(ticket_type)
        profile = self.profiles[ticket_type]
        ticket_mult = Decimal(profile.payout_multiplier)
        shares_per_match = _dec(profile.shares_per_match)

        tokens = Decimal(0)
        cash = Decimal(0)
        legacy_stock = Decimal(0)
        shares: dict[str, Decimal] = {}

        for entry in win_entries:
            sym = get_symbol(entry.symbol_type)
            if sym is None or not sym.is_base:
                logger.warning(f"Unrecognized win symbol {entry.symbol_type!r}; contributes 0")
                continue
            run_mult = Decimal(entry.multiplier)

            if sym.legacy:
                payout = LEGACY_UNITS_PER_MATCH * entry.count * run_mult * ticket_mult
                if sym.kind is SymbolKind.TOKEN:
                    tokens += payout
                elif sym.kind is SymbolKind.CASH:
                    cash += payout
                else:
                    legacy_stock += payout
                continue

            if sym.kind is SymbolKind.STOCK:
                if sym.ticker not in self.price_table:
                    logger.warning(f"No reference price for {sym.ticker}; contributes 0")
                    continue
                won = shares_per_match * entry.count * run_mult * ticket_mult
                shares[sym.ticker] = shares.get(sym.ticker, Decimal(0)) + won
                continue

            values = entry.cell_values or (sym.value,) * entry.count
            payout = sum((_dec(v) for v in values), Decimal(0)) * run_mult * ticket_mult
            if sym.kind is SymbolKind.TOKEN:
                tokens += payout
            else:
                cash += payout

        if is_bonus:
            tokens = (tokens * BONUS_RATE).to_integral_value(rounding=ROUND_FLOOR)
            cash = cash * BONUS_RATE
            legacy_stock = legacy_stock * BONUS_RATE
            shares = {t: s * BONUS_RATE for t, s in shares.items()}

        stock_shares = {}
        stock_value = legacy_stock
        for ticker, amount in shares.items():
            holding = StockShares(
                ticker=ticker,
                shares=_cents(amount),
                price_per_share=_dec(self.price_table[ticker]),
            )
            stock_shares[ticker] = holding
            stock_value += holding.shares * holding.price_per_share

        return Prize(
            tokens=int(tokens.to_integral_value(rounding=ROUND_HALF_UP)),
            cash=_cents(cash),
            stock_shares=stock_shares,
            stock_value=_cents(stock_value),
        )


_DEFAULT_CALCULATOR = PrizeCalculator()


def calculate_prize(win_entries: Iterable[WinEntry], ticket_type, is_bonus: bool = False,
                    price_table: Optional[Mapping[str, float]] = None) -> Prize:
    calculator = _DEFAULT_CALCULATOR if price_table is None else PrizeCalculator(price_table)
    return calculator.calculate(win_entries, ticket_type, is_bonus)
