"""
StockScratch - Pattern Scanner

Finds winning runs on a grid. A run is a contiguous line of one base symbol
along a scan direction, optionally interleaved with multiplier cells:

    [token_10, token_10, multiplier2x, token_10]   count=3, multiplier=2

Scan directions: horizontal (0,1), vertical (1,0), diagonal (1,1) and
anti-diagonal (1,-1). For every direction and start cell (row-major):

    1. empty start cells are skipped
    2. a start whose predecessor holds the same base symbol is skipped
       (the run was already walked from an earlier start)
    3. the maximal non-empty segment from the start is walked; leading
       multipliers are dropped, the first base symbol fixes the run, and
       a different base symbol closes it and opens the next one
    4. runs with count >= 3 become WinEntry records

Within one line and direction a base cell belongs to at most one run, so a
run reached again from a later start is not reported twice. A cell may still
win in several directions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from sim_engine.scratch.grid import GRID_SIZE, Grid
from sim_engine.scratch.symbols import Symbol

MIN_RUN = 3

DIRECTIONS: tuple[tuple[str, tuple[int, int]], ...] = (
    ("horizontal", (0, 1)),
    ("vertical", (1, 0)),
    ("diagonal", (1, 1)),
    ("anti_diagonal", (1, -1)),
)


@dataclass(frozen=True)
class WinEntry:
    """One winning run."""
    symbol_type: str
    count: int
    multiplier: int = 1
    cell_values: tuple = ()
    direction: str = ""
    cells: tuple[int, ...] = ()          # base + in-run multiplier indices

    def __post_init__(self):
        if self.count < 1:
            raise ValueError(f"WinEntry count must be >= 1, got {self.count}")
        if self.multiplier < 1:
            raise ValueError(f"WinEntry multiplier must be >= 1, got {self.multiplier}")

    @property
    def total_value(self):
        return sum(self.cell_values)

    def to_dict(self) -> dict:
        return {
            "symbolType": self.symbol_type,
            "count": self.count,
            "multiplier": self.multiplier,
            "cellValues": list(self.cell_values),
            "direction": self.direction,
            "cells": list(self.cells),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WinEntry":
        """Accepts both the camelCase wire form and snake_case keys.

        A missing or null multiplier means 1; anything below 1 is rejected.
        """
        symbol_type = data.get("symbolType", data.get("symbol_type"))
        count = int(data["count"])
        values = data.get("cellValues", data.get("cell_values")) or ()
        multiplier = data.get("multiplier")
        return cls(
            symbol_type=symbol_type,
            count=count,
            multiplier=1 if multiplier is None else int(multiplier),
            cell_values=tuple(values),
            direction=data.get("direction", ""),
            cells=tuple(data.get("cells", ())),
        )


class ScanResult(NamedTuple):
    wins: list[WinEntry]
    winning_cells: list[int]

    @property
    def has_win(self) -> bool:
        return bool(self.wins)


@dataclass
class _Run:
    symbol: Symbol
    base_cells: list[int] = field(default_factory=list)
    multiplier_cells: list[int] = field(default_factory=list)
    multiplier: int = 1

    @property
    def count(self) -> int:
        return len(self.base_cells)

    @property
    def cells(self) -> tuple[int, ...]:
        return tuple(sorted(self.base_cells + self.multiplier_cells))


class PatternScanner:
    """Stateless run detector."""

    min_run: int = MIN_RUN

    def scan(self, grid: Grid) -> ScanResult:
        wins: list[WinEntry] = []
        winning_cells: set[int] = set()

        for name, (dr, dc) in DIRECTIONS:
            claimed: set[int] = set()
            for row in range(GRID_SIZE):
                for col in range(GRID_SIZE):
                    start = grid.at(row, col)
                    if start.is_empty:
                        continue
                    if self._continues_predecessor(grid, row, col, dr, dc):
                        continue
                    if row * GRID_SIZE + col in claimed:
                        continue

                    segment = self._segment(grid, row, col, dr, dc)
                    for run in self._runs(segment):
                        first = run.base_cells[0]
                        if first in claimed:
                            continue
                        claimed.update(run.base_cells)
                        if run.count < self.min_run:
                            continue
                        wins.append(WinEntry(
                            symbol_type=run.symbol.key,
                            count=run.count,
                            multiplier=run.multiplier,
                            cell_values=(run.symbol.value,) * run.count,
                            direction=name,
                            cells=run.cells,
                        ))
                        winning_cells.update(run.cells)

        return ScanResult(wins=wins, winning_cells=sorted(winning_cells))

    @staticmethod
    def _continues_predecessor(grid: Grid, row: int, col: int, dr: int, dc: int) -> bool:
        """True if the previous cell on the line holds the same base symbol."""
        start = grid.at(row, col)
        if not start.is_base:
            return False
        pr, pc = row - dr, col - dc
        if not grid.in_bounds(pr, pc):
            return False
        prev = grid.at(pr, pc)
        return prev.is_base and prev.key == start.key

    @staticmethod
    def _segment(grid: Grid, row: int, col: int, dr: int, dc: int) -> list[tuple[int, Symbol]]:
        """Maximal contiguous non-empty cells from (row, col) along (dr, dc)."""
        segment = []
        r, c = row, col
        while grid.in_bounds(r, c):
            sym = grid.at(r, c)
            if sym.is_empty:
                break
            segment.append((r * GRID_SIZE + c, sym))
            r += dr
            c += dc
        return segment

    @staticmethod
    def _runs(segment: list[tuple[int, Symbol]]):
        """Split a segment into runs; multipliers attach to the open run."""
        i = 0
        n = len(segment)
        while i < n:
            while i < n and segment[i][1].is_multiplier:
                i += 1
            if i >= n:
                return
            run = _Run(symbol=segment[i][1])
            while i < n:
                idx, sym = segment[i]
                if sym.is_multiplier:
                    run.multiplier *= int(sym.value)
                    run.multiplier_cells.append(idx)
                elif sym.key == run.symbol.key:
                    run.base_cells.append(idx)
                else:
                    break
                i += 1
            yield run


_DEFAULT_SCANNER = PatternScanner()


def scan_grid(grid: Grid, scanner: Optional[PatternScanner] = None) -> ScanResult:
    """Scan ``grid``; unpacks as ``(wins, winning_cells)``."""
    return (scanner or _DEFAULT_SCANNER).scan(grid)
