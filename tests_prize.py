#!/usr/bin/env python3
"""
Tests for the prize calculator

Validates:
1. Reference payouts: trailing 2x tokens, Diamond cash, Stocks shares, 10x cash
2. Share rates: 0.4 per match on Stocks tickets, 0.2 elsewhere, ticket multiplier applied
3. Legacy token/cash/stock symbols pay 15 units per match
4. Unknown symbols and unpriced tickers contribute nothing (with a warning)
5. Bonus: +25% on every component, tokens floored, never lower than the base prize
6. Wire form of Prize.to_dict()
"""

import logging
import sys
from decimal import Decimal
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from sim_engine.scratch import (
    PrizeCalculator, TicketType, WinEntry, calculate_prize, generate_grid, scan_grid,
)


def _win(symbol_type, count, multiplier=1, value=None):
    values = (value,) * count if value is not None else ()
    return WinEntry(symbol_type=symbol_type, count=count, multiplier=multiplier,
                    cell_values=values)


class _CaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def _capture_prize_logs():
    handler = _CaptureHandler()
    logger = logging.getLogger("stockscratch.prize")
    logger.addHandler(handler)
    return logger, handler


# ============================================================
# Reference payouts
# ============================================================

def test_tokens_with_trailing_multiplier():
    """token_10 x3 with a 2x on a Tokens ticket -> 60 tokens."""
    prize = calculate_prize([_win("token_10", 3, 2, 10)], "tokens")
    assert prize.tokens == 60
    assert prize.cash == Decimal("0")
    assert prize.stock_shares == {}
    assert prize.stock_value == Decimal("0")
    print("✅ 60 tokens")


def test_diamond_tokens_and_bonus():
    """The trailing-2x token row on Diamond -> 3000 tokens, 3750 with bonus."""
    wins = [_win("token_10", 3, 2, 10)]
    assert calculate_prize(wins, "diamond").tokens == 3000
    assert calculate_prize(wins, "diamond", is_bonus=True).tokens == 3750
    print("✅ Diamond 3000 / 3750 tokens")


def test_diamond_cash_run():
    """cash_50 x3 on Diamond -> 150 * 50 = 7500.00."""
    prize = calculate_prize([_win("cash_50", 3, 1, 50)], TicketType.DIAMOND)
    assert prize.cash == Decimal("7500.00")
    assert prize.tokens == 0
    print("✅ Diamond cash 7500.00")


def test_stocks_diagonal_shares():
    """stock_AAPL x4 on a Stocks ticket -> 1.60 shares worth 288.00."""
    prize = calculate_prize([_win("stock_AAPL", 4, 1, 180)], "stocks")
    holding = prize.stock_shares["AAPL"]
    assert holding.shares == Decimal("1.60")
    assert holding.price_per_share == Decimal("180")
    assert holding.value == Decimal("288.00")
    assert prize.stock_value == Decimal("288.00")
    assert prize.tokens == 0 and prize.cash == 0
    print("✅ 1.60 AAPL shares")


def test_interleaved_ten_x_cash():
    """cash_50 x3 with a 10x on a Money ticket -> 1500.00."""
    prize = calculate_prize([_win("cash_50", 3, 10, 50)], "money")
    assert prize.cash == Decimal("1500.00")
    print("✅ 10x cash 1500.00")


def test_wins_accumulate():
    wins = [
        _win("token_10", 3, 1, 10),
        _win("token_50", 4, 2, 50),
        _win("cash_500", 3, 1, 500),
    ]
    prize = calculate_prize(wins, "tokens")
    assert prize.tokens == 30 + 400
    assert prize.cash == Decimal("1500.00")
    print("✅ wins accumulate per component")


# ============================================================
# Share rates
# ============================================================

def test_share_rate_by_ticket_type():
    wins = [_win("stock_WMT", 3, 1, 60)]
    assert calculate_prize(wins, "stocks").stock_shares["WMT"].shares == Decimal("1.20")
    assert calculate_prize(wins, "tokens").stock_shares["WMT"].shares == Decimal("0.60")
    assert calculate_prize(wins, "mystic").stock_shares["WMT"].shares == Decimal("6.00")
    assert calculate_prize(wins, "diamond").stock_shares["WMT"].shares == Decimal("30.00")
    print("✅ share rates")


def test_shares_same_ticker_merge():
    wins = [_win("stock_GOOG", 3, 1, 130), _win("stock_GOOG", 3, 2, 130)]
    prize = calculate_prize(wins, "stocks")
    assert list(prize.stock_shares) == ["GOOG"]
    # 0.4 * 3 + 0.4 * 3 * 2
    assert prize.stock_shares["GOOG"].shares == Decimal("3.60")
    assert prize.stock_value == Decimal("468.00")
    print("✅ same-ticker shares merge")


# ============================================================
# Legacy symbols
# ============================================================

def test_legacy_symbols_flat_payout():
    assert calculate_prize([_win("token", 3)], "tokens").tokens == 45
    assert calculate_prize([_win("token", 3)], "diamond").tokens == 2250
    assert calculate_prize([_win("cash", 4, 2)], "money").cash == Decimal("120.00")
    prize = calculate_prize([_win("stock", 3)], "stocks")
    assert prize.stock_value == Decimal("45.00")
    assert prize.stock_shares == {}
    print("✅ legacy symbols pay 15 per match")


# ============================================================
# Unknown / unpriced
# ============================================================

def test_unknown_symbol_contributes_zero():
    logger, handler = _capture_prize_logs()
    try:
        prize = calculate_prize([_win("token_7", 3, 1, 7), _win("token_10", 3, 1, 10)], "tokens")
    finally:
        logger.removeHandler(handler)
    assert prize.tokens == 30
    assert any("token_7" in m for m in handler.messages)
    print("✅ unknown symbol ignored with warning")


def test_non_base_symbol_contributes_zero():
    prize = calculate_prize([_win("multiplier2x", 3), _win("empty", 5)], "tokens")
    assert prize.is_empty
    print("✅ multiplier/empty win entries ignored")


def test_unpriced_ticker_contributes_zero():
    calc = PrizeCalculator(price_table={"AAPL": 180})
    logger, handler = _capture_prize_logs()
    try:
        prize = calc.calculate([_win("stock_WMT", 3, 1, 60), _win("stock_AAPL", 3, 1, 180)],
                               "stocks")
    finally:
        logger.removeHandler(handler)
    assert "WMT" not in prize.stock_shares
    assert prize.stock_shares["AAPL"].shares == Decimal("1.20")
    assert prize.stock_value == Decimal("216.00")
    assert any("WMT" in m for m in handler.messages)
    print("✅ unpriced ticker ignored with warning")


def test_injected_price_table():
    calc = PrizeCalculator(price_table={"AAPL": "200.50"})
    prize = calc.calculate([_win("stock_AAPL", 3, 1, 180)], "stocks")
    assert prize.stock_shares["AAPL"].price_per_share == Decimal("200.50")
    assert prize.stock_value == Decimal("240.60")
    print("✅ injected price table used")


def test_missing_cell_values_fall_back_to_symbol_value():
    prize = calculate_prize([WinEntry(symbol_type="token_50", count=3, multiplier=2)], "tokens")
    assert prize.tokens == 300
    print("✅ cell value fallback")


def test_no_wins_is_empty():
    prize = calculate_prize([], "diamond", is_bonus=True)
    assert prize.is_empty
    assert prize.total_value == Decimal("0")
    print("✅ no wins -> empty prize")


# ============================================================
# Bonus
# ============================================================

def test_bonus_components():
    assert calculate_prize([_win("cash_50", 3, 1, 50)], "money", True).cash == Decimal("187.50")
    # 30 * 1.25 = 37.5 -> floored
    assert calculate_prize([_win("token_10", 3, 1, 10)], "tokens", True).tokens == 37
    shares = calculate_prize([_win("stock_AAPL", 4, 1, 180)], "stocks", True)
    assert shares.stock_shares["AAPL"].shares == Decimal("2.00")
    assert shares.stock_value == Decimal("360.00")
    legacy = calculate_prize([_win("stock", 3)], "stocks", True)
    assert legacy.stock_value == Decimal("56.25")
    print("✅ bonus +25%")


def test_bonus_never_lowers_prize():
    for ticket_type in TicketType:
        for i in range(40):
            wins, _ = scan_grid(generate_grid(f"bonus-{i}", ticket_type))
            base = calculate_prize(wins, ticket_type, False)
            bonus = calculate_prize(wins, ticket_type, True)
            assert bonus.tokens >= base.tokens
            assert bonus.cash >= base.cash
            assert bonus.stock_value >= base.stock_value
            for ticker, holding in base.stock_shares.items():
                assert bonus.stock_shares[ticker].shares >= holding.shares
    print("✅ bonus never lowers a prize")


# ============================================================
# Wire form
# ============================================================

def test_prize_to_dict():
    prize = calculate_prize(
        [_win("token_10", 3, 2, 10), _win("cash_50", 3, 1, 50), _win("stock_AAPL", 4, 1, 180)],
        "stocks",
    )
    d = prize.to_dict()
    assert set(d) == {"tokens", "cash", "stocks", "stockShares"}
    assert d["tokens"] == 60
    assert d["cash"] == 150.0
    assert d["stocks"] == 288.0
    assert d["stockShares"]["AAPL"] == {"shares": 1.6, "pricePerShare": 180.0, "value": 288.0}
    assert prize.total_value == Decimal("498.00")
    print("✅ Prize.to_dict wire form")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    tests = [
        test_tokens_with_trailing_multiplier,
        test_diamond_tokens_and_bonus,
        test_diamond_cash_run,
        test_stocks_diagonal_shares,
        test_interleaved_ten_x_cash,
        test_wins_accumulate,
        test_share_rate_by_ticket_type,
        test_shares_same_ticker_merge,
        test_legacy_symbols_flat_payout,
        test_unknown_symbol_contributes_zero,
        test_non_base_symbol_contributes_zero,
        test_unpriced_ticker_contributes_zero,
        test_injected_price_table,
        test_missing_cell_values_fall_back_to_symbol_value,
        test_no_wins_is_empty,
        test_bonus_components,
        test_bonus_never_lowers_prize,
        test_prize_to_dict,
    ]

    print(f"\n{'='*60}")
    print(f"Prize Calculator Tests — {len(tests)} tests")
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
