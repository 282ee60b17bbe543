"""
StockScratch - Symbol Catalog

Weighted symbol tables per (ticket type, bonus flag). Each table is an
ordered tuple of (symbol_key, weight) pairs that sums to 100; a cell is
resolved by drawing r = next() * 100 and walking the cumulative weights.

Tables are built once, frozen, and validated when the catalog is created:

    Tokens / Money / Stocks   fixed integer weights; bonus tickets move
                              weight out of "empty" with fixed deltas
    Mystic / Diamond          small raw weights over every symbol family,
                              rescaled so non-empty sums to 97 (empty = 3);
                              bonus raises every raw weight and lowers empty

Rescaling rule (Mystic/Diamond): scale each raw weight by target/raw_sum in
decimal arithmetic, round to 0.01 (half up), then put the residual on the
largest weight (first on ties) so the table closes at exactly 100.

Usage:
    from sim_engine.scratch.catalog import DEFAULT_CATALOG
    table = DEFAULT_CATALOG.table(TicketType.TOKENS, is_bonus=False)
    sym = DEFAULT_CATALOG.pick(TicketType.TOKENS, False, rng)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from types import MappingProxyType
from typing import Mapping, Optional

from sim_engine.scratch.models import TicketType
from sim_engine.scratch.symbols import (
    DEFAULT_PRICE_TABLE, EMPTY, Symbol, cheapest_stocks, get_symbol, stock_key,
)

logger = logging.getLogger("stockscratch.catalog")

TABLE_TOTAL = 100
WEIGHT_TOLERANCE = 0.001
_CENT = Decimal("0.01")


class CatalogError(ValueError):
    """A probability table is malformed."""


# ═══════════════════════════════════════════════════════════════
# Probability Table
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProbabilityTable:
    """Immutable ordered weight table for one (ticket type, bonus) pair."""
    ticket_type: TicketType
    is_bonus: bool
    entries: tuple[tuple[str, float], ...]

    @property
    def total(self) -> float:
        return sum(w for _, w in self.entries)

    def keys(self) -> list[str]:
        return [k for k, _ in self.entries]

    def weight(self, key: str) -> float:
        for k, w in self.entries:
            if k == key:
                return w
        return 0.0

    def pick_key(self, rng) -> str:
        """Weighted pick: first key whose cumulative weight >= r."""
        r = rng.next() * TABLE_TOTAL
        cumulative = 0.0
        for key, weight in self.entries:
            cumulative += weight
            if cumulative >= r:
                return key
        # Float drift past the last bucket
        return EMPTY.key

    def as_dict(self) -> dict[str, float]:
        return dict(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def _freeze(ticket_type: TicketType, is_bonus: bool,
            weights: Mapping[str, float]) -> ProbabilityTable:
    entries = tuple((k, float(w)) for k, w in weights.items() if w != 0)
    return ProbabilityTable(ticket_type=ticket_type, is_bonus=is_bonus, entries=entries)


# ═══════════════════════════════════════════════════════════════
# Table Definitions
# ═══════════════════════════════════════════════════════════════

TOKENS_WEIGHTS = {
    "token_10": 25, "token_50": 15, "token_100": 8, "token_500": 4, "token_1000": 2,
    "multiplier2x": 10, "multiplier10x": 1,
    "empty": 35,
}
TOKENS_BONUS_DELTAS = {
    "token_10": 3, "token_50": 3, "token_100": 2, "token_500": 1,
    "multiplier2x": 5,
    "empty": -14,
}

MONEY_WEIGHTS = {
    "cash_50": 25, "cash_500": 12, "cash_1000": 6, "cash_5000": 3, "cash_10000": 1,
    "multiplier2x": 10, "multiplier10x": 1,
    "empty": 42,
}
MONEY_BONUS_DELTAS = {
    "cash_50": 5, "cash_500": 5, "cash_1000": 2,
    "multiplier2x": 5,
    "empty": -17,
}

# Cheapest first; weights and bonus deltas line up with cheapest_stocks(4)
STOCK_TIER_WEIGHTS = (20, 16, 12, 8)
STOCK_TIER_BONUS_DELTAS = (6, 5, 4, 3)
STOCKS_FIXED_WEIGHTS = {"multiplier2x": 10, "multiplier10x": 1, "empty": 33}
STOCKS_FIXED_BONUS_DELTAS = {"multiplier2x": 5, "empty": -23}

MYSTIC_RAW = {
    "token_10": 2, "token_50": 2, "token_100": 2, "token_500": 1, "token_1000": 1,
    "cash_50": 2, "cash_500": 2, "cash_1000": 1, "cash_5000": 0.5, "cash_10000": 0.5,
    "stock_AAPL": 1, "stock_MSFT": 1, "stock_AMZN": 1, "stock_TSLA": 1,
    "multiplier2x": 3, "multiplier10x": 1,
}
DIAMOND_RAW = {
    "token_10": 3, "token_50": 3, "token_100": 3, "token_500": 2, "token_1000": 2,
    "cash_50": 3, "cash_500": 3, "cash_1000": 2, "cash_5000": 1, "cash_10000": 1,
    "stock_AAPL": 2, "stock_MSFT": 2, "stock_AMZN": 2, "stock_TSLA": 2,
    "multiplier2x": 5, "multiplier10x": 2,
}

# (raw weights, per-item bonus delta, empty weight, bonus empty weight)
SPREAD_PROFILES = {
    TicketType.MYSTIC: (MYSTIC_RAW, Decimal("0.5"), 3, 2),
    TicketType.DIAMOND: (DIAMOND_RAW, Decimal("1"), 3, 1),
}


def _apply_deltas(base: Mapping[str, float], deltas: Mapping[str, float]) -> dict[str, float]:
    out = dict(base)
    for key, delta in deltas.items():
        out[key] = out.get(key, 0) + delta
    return out


def rescale(raw: Mapping[str, float], empty_weight) -> dict[str, Decimal]:
    """Scale ``raw`` so it sums to 100 - empty_weight, then append ``empty``.

    Each weight is rounded to 0.01 (half up); the rounding residual goes to
    the largest weight so the non-empty part closes exactly.
    """
    target = Decimal(TABLE_TOTAL) - Decimal(str(empty_weight))
    raw_dec = {k: Decimal(str(v)) for k, v in raw.items()}
    raw_sum = sum(raw_dec.values())
    if raw_sum <= 0:
        raise CatalogError("cannot rescale a table with no positive weight")

    scaled = {
        k: (v * target / raw_sum).quantize(_CENT, rounding=ROUND_HALF_UP)
        for k, v in raw_dec.items()
    }
    residual = target - sum(scaled.values())
    if residual:
        largest = max(scaled, key=lambda k: scaled[k])
        scaled[largest] += residual

    scaled["empty"] = Decimal(str(empty_weight))
    return scaled


def _stocks_weights(is_bonus: bool) -> dict[str, float]:
    tiers = cheapest_stocks(len(STOCK_TIER_WEIGHTS))
    weights: dict[str, float] = {}
    for i, listing in enumerate(tiers):
        w = STOCK_TIER_WEIGHTS[i]
        if is_bonus:
            w += STOCK_TIER_BONUS_DELTAS[i]
        weights[stock_key(listing.ticker)] = w
    fixed = STOCKS_FIXED_WEIGHTS
    if is_bonus:
        fixed = _apply_deltas(fixed, STOCKS_FIXED_BONUS_DELTAS)
    weights.update(fixed)
    return weights


def _spread_weights(ticket_type: TicketType, is_bonus: bool) -> dict[str, Decimal]:
    raw, delta, empty_weight, bonus_empty = SPREAD_PROFILES[ticket_type]
    if is_bonus:
        raw = {k: Decimal(str(v)) + delta for k, v in raw.items()}
        empty_weight = bonus_empty
    return rescale(raw, empty_weight)


def table_weights(ticket_type: TicketType, is_bonus: bool) -> dict:
    """Ordered raw weight mapping for a (ticket type, bonus) pair."""
    if ticket_type is TicketType.TOKENS:
        return _apply_deltas(TOKENS_WEIGHTS, TOKENS_BONUS_DELTAS) if is_bonus else dict(TOKENS_WEIGHTS)
    if ticket_type is TicketType.MONEY:
        return _apply_deltas(MONEY_WEIGHTS, MONEY_BONUS_DELTAS) if is_bonus else dict(MONEY_WEIGHTS)
    if ticket_type is TicketType.STOCKS:
        return _stocks_weights(is_bonus)
    if ticket_type in SPREAD_PROFILES:
        return _spread_weights(ticket_type, is_bonus)
    raise ValueError(f"No probability table for ticket type: {ticket_type}")


def build_tables() -> dict[tuple[TicketType, bool], ProbabilityTable]:
    """Build every (ticket type, bonus) table."""
    tables = {}
    for ticket_type in TicketType:
        for is_bonus in (False, True):
            tables[(ticket_type, is_bonus)] = _freeze(
                ticket_type, is_bonus, table_weights(ticket_type, is_bonus)
            )
    return tables


# ═══════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════

def validate_table(table: ProbabilityTable,
                   price_table: Optional[Mapping[str, float]] = None) -> list[str]:
    """Return a list of problems with ``table`` (empty when valid)."""
    prices = DEFAULT_PRICE_TABLE if price_table is None else price_table
    label = f"{table.ticket_type.value}{'/bonus' if table.is_bonus else ''}"
    issues = []

    total = table.total
    if abs(total - TABLE_TOTAL) > WEIGHT_TOLERANCE:
        issues.append(f"{label}: weights sum to {total:.4f}, expected {TABLE_TOTAL}")

    seen = set()
    for key, weight in table.entries:
        if key in seen:
            issues.append(f"{label}: duplicate key {key}")
        seen.add(key)
        if weight < 0:
            issues.append(f"{label}: negative weight {weight} for {key}")
        sym = get_symbol(key)
        if sym is None:
            issues.append(f"{label}: unknown symbol {key}")
        elif sym.ticker is not None and sym.ticker not in prices:
            issues.append(f"{label}: ticker {sym.ticker} has no reference price")
    return issues


def validate_catalog(tables: Mapping[tuple[TicketType, bool], ProbabilityTable],
                     price_table: Optional[Mapping[str, float]] = None) -> list[str]:
    """Validate every table and check that each (type, bonus) pair is covered."""
    issues = []
    for ticket_type in TicketType:
        for is_bonus in (False, True):
            if (ticket_type, is_bonus) not in tables:
                issues.append(f"missing table for {ticket_type.value} (bonus={is_bonus})")
    for table in tables.values():
        issues.extend(validate_table(table, price_table))
    return issues


# ═══════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════

class SymbolCatalog:
    """Validated, read-only set of probability tables."""

    def __init__(self, tables: Optional[Mapping[tuple[TicketType, bool], ProbabilityTable]] = None,
                 price_table: Optional[Mapping[str, float]] = None,
                 validate: bool = True):
        self._tables = MappingProxyType(dict(tables if tables is not None else build_tables()))
        self.price_table = DEFAULT_PRICE_TABLE if price_table is None else price_table
        if validate:
            issues = validate_catalog(self._tables, self.price_table)
            if issues:
                raise CatalogError("Invalid symbol catalog: " + "; ".join(issues))
            logger.debug(f"Catalog validated: {len(self._tables)} tables")

    @property
    def tables(self) -> Mapping[tuple[TicketType, bool], ProbabilityTable]:
        return self._tables

    def table(self, ticket_type, is_bonus: bool = False) -> ProbabilityTable:
        key = (TicketType.parse(ticket_type), bool(is_bonus))
        try:
            return self._tables[key]
        except KeyError:
            raise ValueError(f"No probability table for {key[0].value} (bonus={key[1]})") from None

    def pick(self, ticket_type, is_bonus: bool, rng) -> Symbol:
        """Resolve one cell. Unknown keys resolve to ``empty``."""
        key = self.table(ticket_type, is_bonus).pick_key(rng)
        sym = get_symbol(key)
        if sym is None:
            logger.warning(f"Unresolved symbol key {key!r} in {ticket_type} table; using empty")
            return EMPTY
        return sym

    def validate(self) -> list[str]:
        return validate_catalog(self._tables, self.price_table)


DEFAULT_CATALOG = SymbolCatalog()
