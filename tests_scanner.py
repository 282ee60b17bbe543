#!/usr/bin/env python3
"""
Tests for the pattern scanner

Validates:
1. Reference scenarios (trailing multiplier, diagonal stock run, interleaved 10x)
2. Start-cell matrix: run at grid edge, after a different symbol, after a
   multiplier, after an empty cell
3. One maximal run per line and direction (no re-reported sub-runs)
4. Cross-direction wins share cells
5. Properties over generated grids: count >= 3, no empty cells, multiplier
   equals the product of in-run multiplier cells, idempotent scans
"""

import math
import sys
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.scratch import Grid, PatternScanner, TicketType, generate_grid, scan_grid
from sim_engine.scratch.symbols import get_symbol


def _grid(cells: dict) -> Grid:
    """Grid from {index: key}; unspecified cells are empty."""
    return Grid.from_keys([cells.get(i, "empty") for i in range(25)])


def _row(keys: list, row: int = 0) -> Grid:
    return _grid({row * 5 + c: k for c, k in enumerate(keys)})


def _summary(wins):
    return sorted((w.symbol_type, w.count, w.multiplier, w.direction) for w in wins)


# ============================================================
# Reference scenarios
# ============================================================

def test_trailing_multiplier_row():
    """[t10, t10, t10, 2x, empty] -> one run, count 3, multiplier 2."""
    wins, cells = scan_grid(_row(["token_10", "token_10", "token_10", "multiplier2x", "empty"]))
    assert len(wins) == 1, wins
    w = wins[0]
    assert (w.symbol_type, w.count, w.multiplier) == ("token_10", 3, 2)
    assert w.cell_values == (10, 10, 10)
    assert w.direction == "horizontal"
    assert cells == [0, 1, 2, 3]
    print("✅ trailing multiplier row")


def test_diagonal_stock_run():
    """stock_AAPL x4 on the main diagonal -> count 4, multiplier 1."""
    grid = _grid({0: "stock_AAPL", 6: "stock_AAPL", 12: "stock_AAPL", 18: "stock_AAPL"})
    wins, cells = scan_grid(grid)
    assert len(wins) == 1, wins
    w = wins[0]
    assert (w.symbol_type, w.count, w.multiplier, w.direction) == ("stock_AAPL", 4, 1, "diagonal")
    assert w.cell_values == (180,) * 4
    assert cells == [0, 6, 12, 18]
    print("✅ diagonal stock run")


def test_interleaved_ten_x():
    """[cash_50, 10x, cash_50, cash_50] -> one run, count 3, multiplier 10."""
    wins, cells = scan_grid(_row(["cash_50", "multiplier10x", "cash_50", "cash_50", "empty"]))
    assert _summary(wins) == [("cash_50", 3, 10, "horizontal")]
    assert cells == [0, 1, 2, 3]
    print("✅ interleaved 10x multiplier")


# ============================================================
# Start-cell matrix
# ============================================================

def test_run_at_grid_edge():
    """Runs touching the last column / last row are found once."""
    wins, cells = scan_grid(_row(["empty", "empty", "token_50", "token_50", "token_50"]))
    assert _summary(wins) == [("token_50", 3, 1, "horizontal")]
    assert cells == [2, 3, 4]

    column = _grid({14: "cash_500", 19: "cash_500", 24: "cash_500"})
    wins, cells = scan_grid(column)
    assert _summary(wins) == [("cash_500", 3, 1, "vertical")]
    assert cells == [14, 19, 24]
    print("✅ run at grid edge")


def test_run_after_different_symbol():
    """A different base symbol before the run does not hide it."""
    wins, _ = scan_grid(_row(["cash_50", "token_10", "token_10", "token_10", "empty"]))
    assert _summary(wins) == [("token_10", 3, 1, "horizontal")]

    wins, _ = scan_grid(_row(["token_10", "token_10", "token_50", "token_50", "token_50"]))
    assert _summary(wins) == [("token_50", 3, 1, "horizontal")]
    print("✅ run after a different symbol")


def test_run_after_multiplier():
    """A leading multiplier neither starts nor multiplies the run."""
    wins, cells = scan_grid(_row(["multiplier2x", "token_10", "token_10", "token_10", "empty"]))
    assert _summary(wins) == [("token_10", 3, 1, "horizontal")]
    assert cells == [1, 2, 3]
    print("✅ run after a multiplier")


def test_run_after_empty():
    wins, cells = scan_grid(_row(["empty", "stock_WMT", "stock_WMT", "stock_WMT", "empty"]))
    assert _summary(wins) == [("stock_WMT", 3, 1, "horizontal")]
    assert cells == [1, 2, 3]
    print("✅ run after an empty cell")


def test_multiplier_between_different_symbols_attaches_left():
    """[cash_50, 2x, t10, t10, t10]: the 2x belongs to the cash run."""
    wins, cells = scan_grid(_row(["cash_50", "multiplier2x", "token_10", "token_10", "token_10"]))
    assert _summary(wins) == [("token_10", 3, 1, "horizontal")]
    assert cells == [2, 3, 4]
    print("✅ multiplier attaches to the open run")


def test_sub_run_not_reported_twice():
    """[t10, 2x, t10, t10, t10] is one run of 4, not also a run of 3."""
    wins, cells = scan_grid(_row(["token_10", "multiplier2x", "token_10", "token_10", "token_10"]))
    assert _summary(wins) == [("token_10", 4, 2, "horizontal")]
    assert cells == [0, 1, 2, 3, 4]
    print("✅ sub-run not re-reported")


def test_full_row_single_entry():
    wins, _ = scan_grid(_row(["token_100"] * 5, row=2))
    assert _summary(wins) == [("token_100", 5, 1, "horizontal")]
    print("✅ full row is one entry")


def test_two_multipliers_multiply():
    wins, _ = scan_grid(_row(["cash_500", "multiplier2x", "cash_500", "multiplier10x", "cash_500"]))
    assert _summary(wins) == [("cash_500", 3, 20, "horizontal")]
    print("✅ multipliers multiply")


def test_short_runs_and_multiplier_rows_do_not_win():
    assert scan_grid(_row(["token_10", "token_10", "empty", "token_10", "token_10"])).wins == []
    assert scan_grid(_row(["multiplier2x"] * 5)).wins == []
    assert scan_grid(_row(["token_10", "token_10", "multiplier2x", "multiplier10x"])).wins == []
    assert scan_grid(_grid({})).wins == []
    print("✅ no false wins")


def test_empty_breaks_run():
    wins, _ = scan_grid(_row(["token_10", "token_10", "empty", "token_10", "token_10"]))
    assert wins == []
    print("✅ empty cell breaks a run")


def test_anti_diagonal():
    grid = _grid({4: "stock_GOOG", 8: "stock_GOOG", 12: "stock_GOOG"})
    wins, cells = scan_grid(grid)
    assert _summary(wins) == [("stock_GOOG", 3, 1, "anti_diagonal")]
    assert cells == [4, 8, 12]
    print("✅ anti-diagonal run")


def test_cross_shares_cell():
    """Row 2 and column 2 both win; the centre cell is in both."""
    cells = {10 + c: "token_10" for c in range(5)}
    cells.update({r * 5 + 2: "token_10" for r in range(5)})
    wins, winning = scan_grid(_grid(cells))
    assert _summary(wins) == [
        ("token_10", 5, 1, "horizontal"),
        ("token_10", 5, 1, "vertical"),
    ]
    assert all(12 in w.cells for w in wins)
    assert len(winning) == 9
    print("✅ cell shared across directions")


def test_uniform_grid():
    """All 25 cells equal: 5 rows, 5 columns, 5 + 5 diagonal runs of 3+."""
    wins, winning = scan_grid(Grid.from_keys(["token_10"] * 25))
    by_dir = {}
    for w in wins:
        by_dir.setdefault(w.direction, []).append(w.count)
    assert sorted(by_dir["horizontal"]) == [5] * 5
    assert sorted(by_dir["vertical"]) == [5] * 5
    assert sorted(by_dir["diagonal"]) == [3, 3, 4, 4, 5]
    assert sorted(by_dir["anti_diagonal"]) == [3, 3, 4, 4, 5]
    assert winning == list(range(25))
    print("✅ uniform grid")


# ============================================================
# Properties over generated grids
# ============================================================

def _generated_grids():
    for ticket_type in TicketType:
        for is_bonus in (False, True):
            for i in range(60):
                yield generate_grid(f"prop-{i}", ticket_type, is_bonus)


def test_properties_on_generated_grids():
    scanner = PatternScanner()
    n_wins = 0
    for grid in _generated_grids():
        first = scanner.scan(grid)
        second = scanner.scan(grid)
        # idempotent
        assert sorted(first.wins, key=repr) == sorted(second.wins, key=repr)
        assert first.winning_cells == second.winning_cells

        for w in first.wins:
            n_wins += 1
            assert w.count >= 3
            syms = [grid.cells[i].symbol for i in w.cells]
            assert not any(s.is_empty for s in syms)
            base = [s for s in syms if not s.is_multiplier]
            mults = [s for s in syms if s.is_multiplier]
            assert len(base) == w.count
            assert all(s.key == w.symbol_type for s in base)
            assert w.multiplier == math.prod(int(s.value) for s in mults)
            assert list(w.cell_values) == [get_symbol(w.symbol_type).value] * w.count

        for idx in first.winning_cells:
            assert not grid.cells[idx].symbol.is_empty
    assert n_wins > 0
    print(f"✅ properties hold over generated grids ({n_wins} wins)")


def test_win_entry_dict_round_trip():
    wins, _ = scan_grid(_row(["cash_50", "multiplier10x", "cash_50", "cash_50"]))
    from sim_engine.scratch import WinEntry
    assert WinEntry.from_dict(wins[0].to_dict()) == wins[0]
    legacy = WinEntry.from_dict({"symbolType": "token_50", "count": 3, "multiplier": 2})
    assert legacy.cell_values == () and legacy.multiplier == 2
    print("✅ WinEntry wire form")


def test_win_entry_rejects_non_positive_multiplier():
    """An explicit multiplier of 0 is an error, not a silent 1x."""
    from sim_engine.scratch import WinEntry
    for bad in ({"symbolType": "token_50", "count": 3, "multiplier": 0},
                {"symbolType": "token_50", "count": 3, "multiplier": -2},
                {"symbolType": "token_50", "count": 0}):
        try:
            WinEntry.from_dict(bad)
        except ValueError:
            pass
        else:
            raise AssertionError(f"accepted {bad}")
    try:
        WinEntry(symbol_type="cash_50", count=3, multiplier=0)
    except ValueError:
        pass
    else:
        raise AssertionError("accepted multiplier=0")
    assert WinEntry.from_dict({"symbolType": "token_50", "count": 3, "multiplier": None}).multiplier == 1
    print("✅ non-positive multipliers rejected")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    tests = [
        test_trailing_multiplier_row,
        test_diagonal_stock_run,
        test_interleaved_ten_x,
        test_run_at_grid_edge,
        test_run_after_different_symbol,
        test_run_after_multiplier,
        test_run_after_empty,
        test_multiplier_between_different_symbols_attaches_left,
        test_sub_run_not_reported_twice,
        test_full_row_single_entry,
        test_two_multipliers_multiply,
        test_short_runs_and_multiplier_rows_do_not_win,
        test_empty_breaks_run,
        test_anti_diagonal,
        test_cross_shares_cell,
        test_uniform_grid,
        test_properties_on_generated_grids,
        test_win_entry_dict_round_trip,
        test_win_entry_rejects_non_positive_multiplier,
    ]

    print(f"\n{'='*60}")
    print(f"Pattern Scanner Tests — {len(tests)} tests")
    print(f"{'='*60}\n")

    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"❌ {test.__name__}: {e}")
            failed += 1

    print(f"\n{'='*60}")
    print(f"Results: {passed} passed, {failed} failed, {passed + failed} total")
    print(f"{'='*60}")

    sys.exit(0 if failed == 0 else 1)
