#!/usr/bin/env python3
"""
Tests for the ticket engine, Monte Carlo simulator and CLI

Validates:
1. play() is deterministic and agrees with generate -> scan -> calculate
2. verify() accepts the re-derived prize and rejects tampered claims
3. Audit JSON carries the seed state and the full grid
4. Monte Carlo runs are reproducible from their base seed
5. CLI subcommands (play, catalog, simulate, verify) exit cleanly
6. Settings and logging setup
"""

import json
import logging
import sys
from dataclasses import replace
from decimal import Decimal
from pathlib import Path

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from config.settings import LOGGER_NAME, ScratchConfig, configure_logging
from sim_engine.scratch import (
    ScratchTicketEngine, Ticket, TicketType, calculate_prize, generate_grid,
    WinEntry, play_ticket, scan_grid, verify_prize,
)
from sim_engine.scratch.engine import _matches_dict
from sim_engine.scratch.rng import fold_seed
from tools import scratch_cli
from tools.scratch_montecarlo import (
    UNIFORMITY_BINS, ScratchMonteCarlo, _win_distribution, chi2_critical, rng_uniformity,
)


def _first_winner(ticket_type="tokens", is_bonus=False, limit=500):
    """Scan seeds until a ticket with a non-empty prize turns up."""
    for i in range(limit):
        outcome = play_ticket(Ticket(id=f"winner-{i}", type=ticket_type, is_bonus=is_bonus))
        if outcome.is_winner:
            return outcome
    raise AssertionError(f"no winning {ticket_type} ticket in {limit} seeds")


# ============================================================
# Engine
# ============================================================

def test_play_is_deterministic():
    engine = ScratchTicketEngine()
    for ticket_type in TicketType:
        ticket = Ticket(id="det-1", type=ticket_type, is_bonus=True)
        assert engine.play(ticket) == engine.play(ticket)
    print("✅ play() deterministic")


def test_play_matches_pipeline():
    for ticket_type in TicketType:
        for is_bonus in (False, True):
            for i in range(15):
                ticket = Ticket(id=f"pipe-{i}", type=ticket_type, is_bonus=is_bonus)
                outcome = play_ticket(ticket)
                grid = generate_grid(ticket.seed, ticket_type, is_bonus)
                wins, cells = scan_grid(grid)
                assert outcome.grid == grid
                assert list(outcome.wins) == wins
                assert list(outcome.winning_cells) == cells
                assert outcome.prize == calculate_prize(wins, ticket_type, is_bonus)
    print("✅ play() matches generate/scan/calculate")


def test_seed_overrides_id():
    a = play_ticket(Ticket(id="row-1", type="money", seed="shared-seed"))
    b = play_ticket(Ticket(id="row-2", type="money", seed="shared-seed"))
    assert a.grid == b.grid
    assert a.prize == b.prize
    print("✅ explicit seed drives the grid")


def test_verify_accepts_rederived_prize():
    outcome = _first_winner("stocks")
    ticket = outcome.ticket
    assert verify_prize(ticket, outcome.prize)
    assert verify_prize(ticket, outcome.prize.to_dict())
    print("✅ verify() accepts the real prize")


def test_verify_rejects_tampered_claims():
    outcome = _first_winner("tokens")
    ticket = outcome.ticket
    inflated = replace(outcome.prize, tokens=outcome.prize.tokens + 1)
    assert not verify_prize(ticket, inflated)

    claim = outcome.prize.to_dict()
    claim["cash"] = float(outcome.prize.cash) + 0.01
    assert not verify_prize(ticket, claim)

    claim = outcome.prize.to_dict()
    claim["stockShares"] = {"AAPL": {"shares": 100}}
    assert not verify_prize(ticket, claim)

    claim = outcome.prize.to_dict()
    claim["stocks"] = float(outcome.prize.stock_value) + 999999
    assert not verify_prize(ticket, claim)

    stocks = _first_winner("stocks")
    claim = stocks.prize.to_dict()
    claim["stocks"] = float(stocks.prize.stock_value) + 100
    assert not verify_prize(stocks.ticket, claim)

    print("✅ verify() rejects tampered claims")


def test_verify_checks_legacy_stock_value():
    """Legacy stock payouts have no shares; only the stocks total carries them."""
    prize = calculate_prize([WinEntry("stock", 3, 1)], "stocks")
    assert prize.stock_value == Decimal("45.00") and prize.stock_shares == {}
    assert _matches_dict(prize, prize.to_dict())
    assert not _matches_dict(prize, {**prize.to_dict(), "stocks": 999999})
    assert not _matches_dict(prize, {**prize.to_dict(), "stocks": 0})
    print("✅ legacy stock value verified")


def test_audit_json():
    outcome = play_ticket(Ticket(id=4242, type="diamond", is_bonus=True))
    data = json.loads(outcome.to_audit_json())
    assert data["ticket_id"] == "4242"
    assert data["seed"] == "4242"
    assert data["ticket_type"] == "diamond"
    assert data["is_bonus"] is True
    assert data["seed_state"] == f"0x{fold_seed('4242'):08x}"
    assert len(data["grid"]) == 25
    assert data["grid"] == outcome.grid.keys()
    assert len(data["wins"]) == len(outcome.wins)
    assert set(data["prize"]) == {"tokens", "cash", "stocks", "stockShares"}
    assert data["verification_steps"]
    print("✅ audit JSON")


def test_random_alias_plays_as_mystic():
    a = play_ticket(Ticket(id="alias", type="random"))
    b = play_ticket(Ticket(id="alias", type="mystic"))
    assert a.ticket.type is TicketType.MYSTIC
    assert a.grid == b.grid
    print("✅ 'random' plays as Mystic")


# ============================================================
# Monte Carlo
# ============================================================

def test_montecarlo_reproducible():
    r1 = ScratchMonteCarlo(seed="mc-test").simulate("tokens", n_tickets=80)
    r2 = ScratchMonteCarlo(seed="mc-test").simulate("tokens", n_tickets=80)
    d1, d2 = r1.to_dict(), r2.to_dict()
    d1.pop("performance")
    d2.pop("performance")
    assert d1 == d2
    assert r1.n_tickets == 80
    assert r1.price == 25
    assert 0.0 <= r1.hit_frequency <= 1.0
    assert r1.rtp == pytest.approx(r1.mean_total_value / 25)
    print("✅ Monte Carlo reproducible")


def test_montecarlo_matches_engine():
    mc = ScratchMonteCarlo(seed="mc-check")
    result = mc.simulate("money", is_bonus=True, n_tickets=30)
    total = Decimal(0)
    for i in range(30):
        seed = mc.ticket_seed(TicketType.MONEY, True, i)
        total += play_ticket(Ticket(id=seed, type="money", is_bonus=True)).prize.total_value
    assert result.mean_total_value == pytest.approx(float(total) / 30)
    print("✅ Monte Carlo agrees with play()")


def test_montecarlo_distribution_sums_to_100():
    result = ScratchMonteCarlo(seed="mc-dist").simulate("diamond", n_tickets=60)
    assert sum(result.win_distribution.values()) == pytest.approx(100.0, abs=0.1)
    assert set(_win_distribution([], 25).values()) == {0}
    print("✅ distribution buckets sum to 100%")


def test_payout_buckets_by_price_multiple():
    dist = _win_distribution([0, 10, 25, 49.99, 50, 2499, 2500], 25)
    assert dist["0x"] == pytest.approx(100 / 7, abs=0.01)
    assert dist["0-1x"] == pytest.approx(100 / 7, abs=0.01)        # 10
    assert dist["1-2x"] == pytest.approx(200 / 7, abs=0.01)        # 25, 49.99
    assert dist["2-5x"] == pytest.approx(100 / 7, abs=0.01)        # 50
    assert dist["50-100x"] == pytest.approx(100 / 7, abs=0.01)     # 2499
    assert dist["100x+"] == pytest.approx(100 / 7, abs=0.01)       # 2500
    assert dist["5-10x"] == 0 and dist["10-50x"] == 0
    print("✅ payout buckets")


class _StepRNG:
    """Cycles through bin midpoints, or repeats one value."""

    def __init__(self, n_bins, constant=None):
        self.n_bins = n_bins
        self.constant = constant
        self.i = 0

    def next(self):
        if self.constant is not None:
            return self.constant
        value = (self.i % self.n_bins + 0.5) / self.n_bins
        self.i += 1
        return value


def test_chi2_critical_value():
    # tabulated chi-squared quantiles at alpha = 0.01
    assert chi2_critical(99) == pytest.approx(134.64, abs=0.3)
    assert chi2_critical(9) == pytest.approx(21.67, abs=0.3)
    assert chi2_critical(UNIFORMITY_BINS - 1) == chi2_critical(99)


def test_rng_uniformity_flags_skewed_generators():
    chi2, critical = rng_uniformity(_StepRNG(20), n_samples=2000, n_bins=20)
    assert chi2 == pytest.approx(0.0)
    assert critical == pytest.approx(chi2_critical(19))

    chi2, critical = rng_uniformity(_StepRNG(20, constant=0.5), n_samples=2000, n_bins=20)
    assert chi2 > critical

    # 1.0 is clamped into the last bin rather than overflowing
    chi2, _ = rng_uniformity(_StepRNG(10, constant=1.0), n_samples=100, n_bins=10)
    assert chi2 == pytest.approx((100 - 10) ** 2 / 10 + 9 * 10)


def test_montecarlo_simulate_all():
    report = ScratchMonteCarlo(seed="mc-all").simulate_all(n_tickets=20, include_bonus=False)
    assert [r.ticket_type for r in report.results] == [t.value for t in TicketType]
    assert report.total_tickets == 100
    assert isinstance(report.chi_squared, float)
    assert isinstance(report.chi_squared_pass, bool)
    assert report.chi_squared_critical == pytest.approx(chi2_critical(UNIFORMITY_BINS - 1))
    assert report.chi_squared_pass == (report.chi_squared < report.chi_squared_critical)
    data = json.loads(report.to_json())
    assert len(data["tickets"]) == 5
    assert "SIMULATION REPORT" in report.summary()
    print("✅ simulate_all report")


def test_montecarlo_rejects_non_positive_rounds():
    mc = ScratchMonteCarlo(seed="x")
    with pytest.raises(ValueError):
        mc.simulate("tokens", n_tickets=0)
    with pytest.raises(ValueError):
        mc.simulate("lottery", n_tickets=10)
    print("✅ invalid simulation input rejected")


# ============================================================
# CLI
# ============================================================

def test_cli_play(capsys):
    assert scratch_cli.main(["play", "cli-1", "--type", "stocks"]) == 0
    assert scratch_cli.main(["play", "cli-1", "--type", "diamond", "--bonus", "--json"]) == 0
    out = capsys.readouterr().out
    data = json.loads(out[out.index("{"):])
    assert data["ticket_type"] == "diamond" and data["is_bonus"] is True


def test_cli_catalog():
    assert scratch_cli.main(["catalog"]) == 0
    assert scratch_cli.main(["catalog", "--type", "mystic"]) == 0


def test_cli_simulate(capsys):
    assert scratch_cli.main(["simulate", "tokens", "--rounds", "10", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["n_tickets"] == 10


def test_cli_verify():
    outcome = _first_winner("stocks")
    prize = outcome.prize
    argv = ["verify", outcome.ticket.id, "--type", "stocks",
            "--tokens", str(prize.tokens), "--cash", str(prize.cash),
            "--stocks", str(prize.stock_value)]
    for ticker, holding in prize.stock_shares.items():
        argv += ["--shares", f"{ticker}={holding.shares}"]
    assert scratch_cli.main(argv) == 0

    bad = argv[:5] + [str(prize.tokens + 1)] + argv[6:]
    assert scratch_cli.main(bad) == 1

    inflated = argv[:9] + [str(prize.stock_value + 1)] + argv[10:]
    assert scratch_cli.main(inflated) == 1


@pytest.mark.parametrize("extra", [
    ["--cash", "abc"],
    ["--cash", "NaN"],
    ["--stocks", "1,5"],
    ["--shares", "AAPL=x"],
    ["--shares", "AAPL"],
    ["--shares", "=1.6"],
])
def test_cli_verify_rejects_malformed_amounts(extra, capsys):
    with pytest.raises(SystemExit) as exc:
        scratch_cli.main(["verify", "cli-1", "--type", "stocks"] + extra)
    assert exc.value.code == 2
    assert "argument --" in capsys.readouterr().err


def test_cli_amount_parsing():
    assert scratch_cli._amount_arg("12.50") == Decimal("12.50")
    assert scratch_cli._shares_arg("aapl=1.6") == ("AAPL", Decimal("1.6"))


# ============================================================
# Settings
# ============================================================

def test_settings_and_logging():
    cfg = ScratchConfig.as_dict()
    assert cfg["bonus_rate"] == "1.25"
    assert cfg["legacy_units_per_match"] == 15
    assert cfg["mc_rounds"] > 0

    logger = configure_logging("debug")
    n_handlers = len(logger.handlers)
    configure_logging("info")
    assert logger.name == LOGGER_NAME
    assert len(logger.handlers) == n_handlers
    assert logger.level == logging.INFO
    configure_logging("warning")
    print("✅ settings and logging")


# ============================================================
# Run all tests
# ============================================================

if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-q"]))
