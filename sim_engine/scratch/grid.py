"""
StockScratch - Grid Generator

A ticket's 5x5 grid is a pure function of (seed, ticket type, bonus flag):
25 independent weighted picks in row-major order from one seeded generator.
The grid is never the source of truth; it can always be re-derived.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from sim_engine.scratch.catalog import DEFAULT_CATALOG, SymbolCatalog
from sim_engine.scratch.models import TicketType
from sim_engine.scratch.rng import SeededRandomSource
from sim_engine.scratch.symbols import EMPTY, Symbol, get_symbol

logger = logging.getLogger("stockscratch.grid")

GRID_SIZE = 5
CELL_COUNT = GRID_SIZE * GRID_SIZE


@dataclass(frozen=True)
class Cell:
    index: int
    symbol: Symbol

    @property
    def row(self) -> int:
        return self.index // GRID_SIZE

    @property
    def col(self) -> int:
        return self.index % GRID_SIZE


@dataclass(frozen=True)
class Grid:
    """Immutable 25-cell grid, row-major."""
    cells: tuple[Cell, ...]

    def __post_init__(self):
        if len(self.cells) != CELL_COUNT:
            raise ValueError(f"Grid needs {CELL_COUNT} cells, got {len(self.cells)}")
        for i, cell in enumerate(self.cells):
            if cell.index != i:
                raise ValueError(f"Cell at position {i} has index {cell.index}")

    @classmethod
    def from_symbols(cls, symbols: Iterable[Symbol]) -> "Grid":
        return cls(tuple(Cell(i, s) for i, s in enumerate(symbols)))

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> "Grid":
        """Build a grid from 25 symbol keys (e.g. a stored or hand-made layout)."""
        symbols = []
        for key in keys:
            sym = get_symbol(key)
            if sym is None:
                raise ValueError(f"Unknown symbol: {key}")
            symbols.append(sym)
        return cls.from_symbols(symbols)

    def at(self, row: int, col: int) -> Symbol:
        return self.cells[row * GRID_SIZE + col].symbol

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE

    def keys(self) -> list[str]:
        return [c.symbol.key for c in self.cells]

    def rows(self) -> list[list[Symbol]]:
        return [
            [self.cells[r * GRID_SIZE + c].symbol for c in range(GRID_SIZE)]
            for r in range(GRID_SIZE)
        ]

    def __iter__(self):
        return iter(self.cells)

    def __len__(self) -> int:
        return CELL_COUNT


class GridGenerator:
    """Fills grids from a symbol catalog."""

    def __init__(self, catalog: Optional[SymbolCatalog] = None):
        self.catalog = catalog or DEFAULT_CATALOG

    def generate(self, ticket_type, is_bonus: bool, rng: SeededRandomSource) -> Grid:
        ticket_type = TicketType.parse(ticket_type)
        symbols = []
        for _ in range(CELL_COUNT):
            sym = self.catalog.pick(ticket_type, is_bonus, rng)
            symbols.append(sym if sym is not None else EMPTY)
        grid = Grid.from_symbols(symbols)
        logger.debug(f"Generated {ticket_type.value} grid (bonus={is_bonus}): "
                     f"{sum(1 for c in grid if not c.symbol.is_empty)} filled cells")
        return grid


def generate_grid(seed: Union[str, int], ticket_type, is_bonus: bool = False,
                  catalog: Optional[SymbolCatalog] = None) -> Grid:
    """Derive a ticket's grid from its seed with a fresh generator."""
    return GridGenerator(catalog).generate(
        ticket_type, is_bonus, SeededRandomSource.from_seed(seed)
    )
