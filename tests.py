#!/usr/bin/env python3
"""
StockScratch - Unit Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestCatalog     # run specific class

Test categories:
  TestSeededRandom   : FNV-1a folding, xorshift32 stepping, determinism
  TestCatalog        : Table closure, bonus deltas, rescaling, validation
  TestGridGenerator  : Determinism, fallback to empty, Grid invariants
  TestTicketModels   : Ticket/TicketType parsing, profiles
"""

import sys
import unittest
from decimal import Decimal
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from pydantic import ValidationError

from sim_engine.scratch import (
    DEFAULT_CATALOG, CatalogError, Grid, ProbabilityTable, SeededRandomSource,
    SymbolCatalog, Ticket, TicketType, generate_grid, get_ticket_profile,
)
from sim_engine.scratch.catalog import build_tables, rescale, validate_catalog
from sim_engine.scratch.grid import GridGenerator
from sim_engine.scratch.rng import FNV_OFFSET_BASIS, fold_seed


class _FixedRNG:
    """Returns the same draw every time."""

    def __init__(self, value: float):
        self.value = value

    def next(self) -> float:
        return self.value


# ============================================================
# Seeded RNG
# ============================================================

class TestSeededRandom(unittest.TestCase):

    def test_fnv1a_reference_vectors(self):
        """ASCII seeds fold exactly like byte-wise FNV-1a 32."""
        self.assertEqual(fold_seed(""), FNV_OFFSET_BASIS)
        self.assertEqual(fold_seed("a"), 0xE40C292C)
        self.assertEqual(fold_seed("foobar"), 0xBF9CF968)

    def test_non_ascii_seeds_fold_per_code_unit(self):
        """Seeds fold over UTF-16 code units, including surrogates."""
        from sim_engine.scratch.rng import FNV_PRIME, MASK_32

        def fold_units(units):
            state = FNV_OFFSET_BASIS
            for unit in units:
                state = ((state ^ unit) * FNV_PRIME) & MASK_32
            return state

        # U+00E9 is one code unit, 0xE9
        self.assertEqual(fold_seed("é"), 0x6C0B6C44)
        # U+1F600 is the surrogate pair D83D DE00
        self.assertEqual(fold_seed("😀"), fold_units([0xD83D, 0xDE00]))
        # a lone surrogate is still a code unit
        self.assertEqual(fold_seed("ab\ud800"), fold_units([0x61, 0x62, 0xD800]))
        self.assertNotEqual(fold_seed("ab\ud800"), fold_seed("ab"))

    def test_lone_surrogate_seed_generates_grid(self):
        grid = generate_grid("ab\ud800", "tokens")
        self.assertEqual(grid, generate_grid("ab\ud800", TicketType.TOKENS))
        self.assertEqual(len(grid.keys()), 25)

    def test_int_seed_matches_string_seed(self):
        self.assertEqual(fold_seed(1234), fold_seed("1234"))

    def test_xorshift_step(self):
        """13/7/5 xorshift from state 1."""
        rng = SeededRandomSource(1)
        self.assertEqual(rng.next_u32(), 272481)
        self.assertEqual(rng.state, 272481)

    def test_next_is_state_over_2_32(self):
        a = SeededRandomSource.from_seed("ticket-7")
        b = SeededRandomSource.from_seed("ticket-7")
        raw = a.next_u32()
        self.assertEqual(b.next(), raw / 2 ** 32)

    def test_range_and_determinism(self):
        a = SeededRandomSource.from_seed("abc")
        b = SeededRandomSource.from_seed("abc")
        seq_a = [a.next() for _ in range(500)]
        seq_b = [b.next() for _ in range(500)]
        self.assertEqual(seq_a, seq_b)
        self.assertTrue(all(0.0 <= x < 1.0 for x in seq_a))
        self.assertGreater(len(set(seq_a)), 490)

    def test_different_seeds_diverge(self):
        a = SeededRandomSource.from_seed("ticket-1")
        b = SeededRandomSource.from_seed("ticket-2")
        self.assertNotEqual([a.next() for _ in range(5)], [b.next() for _ in range(5)])

    def test_copy_is_independent(self):
        a = SeededRandomSource.from_seed("x")
        a.next()
        b = a.copy()
        self.assertEqual(a.next(), b.next())
        a.next()
        self.assertNotEqual(a.state, b.state)

    def test_zero_state_rejected(self):
        with self.assertRaises(ValueError):
            SeededRandomSource(0)


# ============================================================
# Symbol Catalog
# ============================================================

class TestCatalog(unittest.TestCase):

    def test_every_table_sums_to_100(self):
        for (ticket_type, is_bonus), table in DEFAULT_CATALOG.tables.items():
            with self.subTest(ticket_type=ticket_type, is_bonus=is_bonus):
                self.assertAlmostEqual(table.total, 100, delta=0.001)
                self.assertTrue(all(w > 0 for _, w in table.entries))

    def test_all_ten_tables_present(self):
        self.assertEqual(len(DEFAULT_CATALOG.tables), len(TicketType) * 2)
        self.assertEqual(DEFAULT_CATALOG.validate(), [])

    def test_tokens_tables(self):
        base = DEFAULT_CATALOG.table(TicketType.TOKENS, False).as_dict()
        self.assertEqual(base["token_10"], 25)
        self.assertEqual(base["empty"], 35)
        bonus = DEFAULT_CATALOG.table("tokens", True).as_dict()
        self.assertEqual(bonus["token_10"], 28)
        self.assertEqual(bonus["token_1000"], 2)
        self.assertEqual(bonus["multiplier2x"], 15)
        self.assertEqual(bonus["empty"], 21)

    def test_money_bonus_moves_weight_out_of_empty(self):
        base = DEFAULT_CATALOG.table(TicketType.MONEY, False).as_dict()
        bonus = DEFAULT_CATALOG.table(TicketType.MONEY, True).as_dict()
        self.assertEqual(base["empty"], 42)
        self.assertEqual(bonus["empty"], 25)
        self.assertEqual(bonus["cash_50"], 30)

    def test_stocks_use_four_cheapest_tickers(self):
        table = DEFAULT_CATALOG.table(TicketType.STOCKS, False)
        stock_keys = [k for k in table.keys() if k.startswith("stock_")]
        self.assertEqual(stock_keys, ["stock_WMT", "stock_GOOG", "stock_AMZN", "stock_JPM"])
        self.assertEqual([table.weight(k) for k in stock_keys], [20, 16, 12, 8])
        bonus = DEFAULT_CATALOG.table(TicketType.STOCKS, True)
        self.assertEqual(bonus.weight("stock_WMT"), 26)
        self.assertEqual(bonus.weight("empty"), 10)

    def test_mystic_rescaled_to_97_plus_3(self):
        table = DEFAULT_CATALOG.table(TicketType.MYSTIC, False)
        self.assertEqual(table.weight("empty"), 3)
        non_empty = sum(w for k, w in table.entries if k != "empty")
        self.assertAlmostEqual(non_empty, 97, delta=0.001)
        self.assertEqual(table.weight("token_10"), 8.82)
        # Rounding residual lands on the largest weight
        self.assertEqual(table.weight("multiplier2x"), 13.22)

    def test_spread_bonus_tables_lower_empty(self):
        self.assertEqual(DEFAULT_CATALOG.table(TicketType.MYSTIC, True).weight("empty"), 2)
        self.assertEqual(DEFAULT_CATALOG.table(TicketType.DIAMOND, False).weight("empty"), 3)
        self.assertEqual(DEFAULT_CATALOG.table(TicketType.DIAMOND, True).weight("empty"), 1)

    def test_rescale_residual_rule(self):
        even = rescale({"a": 1, "b": 1, "c": 1}, 1)
        self.assertEqual(even["a"], Decimal("33.00"))
        split = rescale({"a": 1, "b": 1, "c": 1}, 0)
        self.assertEqual(split["a"], Decimal("33.34"))
        self.assertEqual(split["b"], Decimal("33.33"))
        self.assertEqual(split["c"], Decimal("33.33"))
        self.assertEqual(sum(split.values()), Decimal("100"))

    def test_weighted_pick_boundaries(self):
        table = DEFAULT_CATALOG.table(TicketType.TOKENS, False)
        self.assertEqual(table.pick_key(_FixedRNG(0.0)), "token_10")
        self.assertEqual(table.pick_key(_FixedRNG(0.25)), "token_10")
        self.assertEqual(table.pick_key(_FixedRNG(0.2501)), "token_50")
        self.assertEqual(table.pick_key(_FixedRNG(0.9999)), "empty")

    def test_weighted_pick_falls_back_to_empty(self):
        short = ProbabilityTable(TicketType.TOKENS, False, (("token_10", 50.0),))
        self.assertEqual(short.pick_key(_FixedRNG(0.9)), "empty")

    def test_bad_total_rejected(self):
        tables = build_tables()
        tables[(TicketType.TOKENS, False)] = ProbabilityTable(
            TicketType.TOKENS, False, (("token_10", 60.0), ("empty", 30.0)))
        with self.assertRaises(CatalogError):
            SymbolCatalog(tables)

    def test_unknown_key_rejected(self):
        tables = build_tables()
        tables[(TicketType.MONEY, True)] = ProbabilityTable(
            TicketType.MONEY, True, (("cash_7", 50.0), ("empty", 50.0)))
        issues = validate_catalog(tables)
        self.assertTrue(any("cash_7" in i for i in issues))
        with self.assertRaises(ValueError):
            SymbolCatalog(tables)

    def test_unpriced_ticker_rejected(self):
        with self.assertRaises(CatalogError):
            SymbolCatalog(price_table={"AAPL": 180})

    def test_missing_table_reported(self):
        tables = build_tables()
        del tables[(TicketType.DIAMOND, True)]
        issues = validate_catalog(tables)
        self.assertTrue(any("missing table for diamond" in i for i in issues))


# ============================================================
# Grid Generator
# ============================================================

class TestGridGenerator(unittest.TestCase):

    def test_same_seed_same_grid(self):
        for ticket_type in TicketType:
            for is_bonus in (False, True):
                for seed in ("t-1", "t-2", "cmb8x0k1", 98765):
                    with self.subTest(t=ticket_type, b=is_bonus, s=seed):
                        first = generate_grid(seed, ticket_type, is_bonus)
                        second = generate_grid(seed, ticket_type, is_bonus)
                        self.assertEqual(first, second)
                        self.assertEqual(len(first.cells), 25)

    def test_seeds_produce_varied_grids(self):
        grids = {tuple(generate_grid(f"seed-{i}", "tokens").keys()) for i in range(20)}
        self.assertGreater(len(grids), 15)

    def test_cells_come_from_ticket_table(self):
        allowed = set(DEFAULT_CATALOG.table(TicketType.MONEY, False).keys())
        for i in range(30):
            grid = generate_grid(f"m-{i}", TicketType.MONEY)
            self.assertTrue(set(grid.keys()) <= allowed)

    def test_cell_indices_row_major(self):
        grid = generate_grid("layout", "stocks")
        for i, cell in enumerate(grid.cells):
            self.assertEqual(cell.index, i)
            self.assertEqual(cell.row * 5 + cell.col, i)

    def test_unresolved_key_becomes_empty(self):
        tables = build_tables()
        tables[(TicketType.TOKENS, False)] = ProbabilityTable(
            TicketType.TOKENS, False, (("token_3", 100.0),))
        catalog = SymbolCatalog(tables, validate=False)
        with self.assertLogs("stockscratch.catalog", level="WARNING"):
            grid = GridGenerator(catalog).generate(
                TicketType.TOKENS, False, SeededRandomSource.from_seed("x"))
        self.assertTrue(all(c.symbol.is_empty for c in grid.cells))

    def test_grid_round_trip_through_keys(self):
        grid = generate_grid("rt", "diamond", True)
        self.assertEqual(Grid.from_keys(grid.keys()), grid)

    def test_grid_rejects_wrong_size(self):
        with self.assertRaises(ValueError):
            Grid.from_keys(["empty"] * 24)
        with self.assertRaises(ValueError):
            Grid.from_keys(["token_7"] + ["empty"] * 24)


# ============================================================
# Ticket Models
# ============================================================

class TestTicketModels(unittest.TestCase):

    def test_seed_defaults_to_id(self):
        t = Ticket(id="abc-123", type="tokens")
        self.assertEqual(t.seed, "abc-123")
        self.assertFalse(t.is_bonus)

    def test_explicit_seed_kept(self):
        t = Ticket(id="abc", type="money", seed="other")
        self.assertEqual(t.seed, "other")

    def test_int_id_coerced(self):
        t = Ticket(id=42, type="stocks")
        self.assertEqual(t.id, "42")
        self.assertEqual(t.seed, "42")

    def test_legacy_random_alias(self):
        self.assertIs(TicketType.parse("random"), TicketType.MYSTIC)
        self.assertIs(Ticket(id="r", type="random").type, TicketType.MYSTIC)
        self.assertIs(TicketType.parse("DIAMOND"), TicketType.DIAMOND)

    def test_invalid_ticket_rejected(self):
        with self.assertRaises(ValidationError):
            Ticket(id="x", type="lottery")
        with self.assertRaises(ValidationError):
            Ticket(id="", type="tokens")
        with self.assertRaises(ValueError):
            TicketType.parse("lottery")

    def test_profiles(self):
        self.assertEqual(get_ticket_profile("mystic").payout_multiplier, 10)
        self.assertEqual(get_ticket_profile(TicketType.DIAMOND).payout_multiplier, 50)
        self.assertEqual(get_ticket_profile("tokens").payout_multiplier, 1)
        self.assertEqual(get_ticket_profile("stocks").shares_per_match, Decimal("0.4"))
        self.assertEqual(get_ticket_profile("money").shares_per_match, Decimal("0.2"))
        self.assertEqual(Ticket(id="p", type="diamond").profile.name, "Diamond Scratch")


if __name__ == "__main__":
    unittest.main()
