"""
StockScratch - Monte Carlo Ticket Simulator

Plays N seeded tickets of each type through the real engine and reports:
  • Hit frequency (tickets paying anything)
  • Mean payout per component (tokens, cash, share value)
  • RTP against the ticket's shop price (all components counted 1:1)
  • Payout distribution in multiples of the ticket price
  • Which symbols win most often, and how often runs carry multipliers

Ticket seeds are f"{base_seed}:{type}:{bonus}:{i}", so every run is
reproducible and any single ticket can be replayed from its seed.

Usage:
    from tools.scratch_montecarlo import ScratchMonteCarlo
    mc = ScratchMonteCarlo(seed="audit-2026")
    result = mc.simulate("diamond", n_tickets=50_000)
    print(result.summary())

    report = mc.simulate_all(n_tickets=20_000)
    print(report.to_json())
"""

from __future__ import annotations

import bisect
import json
import logging
import math
import statistics
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from config.settings import ScratchConfig
from sim_engine.scratch.engine import ScratchTicketEngine
from sim_engine.scratch.models import Ticket, TicketType
from sim_engine.scratch.rng import SeededRandomSource

logger = logging.getLogger("stockscratch.montecarlo")


# ═══════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════

@dataclass
class SimulationResult:
    """Results for one (ticket type, bonus) simulation."""
    ticket_type: str
    is_bonus: bool
    n_tickets: int
    price: int

    hit_frequency: float = 0.0           # fraction of tickets with any payout
    mean_tokens: float = 0.0
    mean_cash: float = 0.0
    mean_stock_value: float = 0.0
    mean_total_value: float = 0.0
    rtp: float = 0.0                     # mean_total_value / price
    std_dev: float = 0.0
    max_total_value: float = 0.0
    median_win: float = 0.0              # median over winning tickets only
    mean_wins_per_ticket: float = 0.0
    multiplier_run_rate: float = 0.0     # fraction of winning runs with multiplier > 1

    win_distribution: dict = field(default_factory=dict)   # {price-multiple bucket: pct}
    symbol_frequency: dict = field(default_factory=dict)   # {symbol_type: winning runs}

    duration_seconds: float = 0.0
    tickets_per_second: float = 0.0
    seed: str = ""

    @property
    def label(self) -> str:
        return f"{self.ticket_type}{'+bonus' if self.is_bonus else ''}"

    def summary(self) -> str:
        lines = [
            f"═══ Monte Carlo: {self.label.upper()} ═══",
            f"  Tickets:     {self.n_tickets:,}",
            f"  Price:       {self.price}",
            f"  Hit Freq:    {self.hit_frequency*100:.2f}%",
            f"  Mean Tokens: {self.mean_tokens:,.2f}",
            f"  Mean Cash:   {self.mean_cash:,.2f}",
            f"  Mean Stocks: {self.mean_stock_value:,.2f}",
            f"  RTP:         {self.rtp*100:.2f}%",
            f"  Std Dev:     {self.std_dev:,.2f}",
            f"  Max Payout:  {self.max_total_value:,.2f}",
            f"  Speed:       {self.tickets_per_second:,.0f} tickets/sec",
        ]
        if self.symbol_frequency:
            top = sorted(self.symbol_frequency.items(), key=lambda kv: -kv[1])[:3]
            lines.append("  Top Symbols: " + ", ".join(f"{k}={v}" for k, v in top))
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "ticket_type": self.ticket_type,
            "is_bonus": self.is_bonus,
            "n_tickets": self.n_tickets,
            "price": self.price,
            "hit_frequency_pct": round(self.hit_frequency * 100, 2),
            "mean_payout": {
                "tokens": round(self.mean_tokens, 4),
                "cash": round(self.mean_cash, 4),
                "stock_value": round(self.mean_stock_value, 4),
                "total": round(self.mean_total_value, 4),
            },
            "rtp_pct": round(self.rtp * 100, 4),
            "volatility": {
                "std_dev": round(self.std_dev, 4),
                "max_total_value": round(self.max_total_value, 2),
                "median_win": round(self.median_win, 2),
            },
            "runs": {
                "mean_per_ticket": round(self.mean_wins_per_ticket, 4),
                "multiplier_run_rate_pct": round(self.multiplier_run_rate * 100, 2),
                "by_symbol": dict(sorted(self.symbol_frequency.items())),
            },
            "distribution": self.win_distribution,
            "performance": {
                "duration_s": round(self.duration_seconds, 2),
                "tickets_per_sec": int(self.tickets_per_second),
            },
            "seed": self.seed,
        }


@dataclass
class SimulationReport:
    """Simulation results across ticket types."""
    results: list[SimulationResult] = field(default_factory=list)
    generated_at: str = ""
    total_tickets: int = 0
    total_duration: float = 0.0
    chi_squared: float = 0.0
    chi_squared_critical: float = 0.0
    chi_squared_pass: bool = True

    def __post_init__(self):
        self.generated_at = datetime.now(timezone.utc).isoformat()

    def add(self, result: SimulationResult):
        self.results.append(result)
        self.total_tickets += result.n_tickets
        self.total_duration += result.duration_seconds

    def summary(self) -> str:
        lines = [
            "═══════════════════════════════════════════════════",
            "    SCRATCH TICKET SIMULATION REPORT",
            "═══════════════════════════════════════════════════",
            f"  Generated: {self.generated_at}",
            f"  Total Tickets: {self.total_tickets:,}",
            f"  Total Time: {self.total_duration:.1f}s",
            f"  RNG Uniformity: chi2={self.chi_squared:.1f} "
            f"(critical {self.chi_squared_critical:.1f}) "
            f"{'✅' if self.chi_squared_pass else '❌'}",
            "",
        ]
        for r in self.results:
            lines.append(
                f"  {r.label:14s} | "
                f"hit={r.hit_frequency*100:.1f}% "
                f"rtp={r.rtp*100:.1f}% "
                f"max={r.max_total_value:,.0f} "
                f"σ={r.std_dev:,.1f}"
            )
        return "\n".join(lines)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps({
            "report_type": "Scratch Ticket Simulation",
            "generated_at": self.generated_at,
            "total_tickets": self.total_tickets,
            "total_duration_s": round(self.total_duration, 2),
            "rng_uniformity": {
                "chi_squared": round(self.chi_squared, 4),
                "critical_value": round(self.chi_squared_critical, 4),
                "pass": self.chi_squared_pass,
            },
            "tickets": [r.to_dict() for r in self.results],
        }, indent=indent)


# ═══════════════════════════════════════════════════════════════
# Distribution Analysis
# ═══════════════════════════════════════════════════════════════

# Payout buckets in multiples of the ticket price: (upper bound, label).
# A payout of exactly 0 gets its own bucket; anything >= the last bound
# lands in OVERFLOW_BUCKET.
PAYOUT_BUCKETS: tuple[tuple[float, str], ...] = (
    (1, "0-1x"), (2, "1-2x"), (5, "2-5x"), (10, "5-10x"),
    (50, "10-50x"), (100, "50-100x"),
)
ZERO_BUCKET = "0x"
OVERFLOW_BUCKET = "100x+"
_BUCKET_EDGES = [edge for edge, _ in PAYOUT_BUCKETS]


def _payout_bucket(payout: float, price: float) -> str:
    if payout == 0:
        return ZERO_BUCKET
    i = bisect.bisect_right(_BUCKET_EDGES, payout / price)
    return PAYOUT_BUCKETS[i][1] if i < len(PAYOUT_BUCKETS) else OVERFLOW_BUCKET


def _win_distribution(payouts: list[float], price: float) -> dict:
    """Percent of tickets per payout bucket (all buckets present)."""
    labels = [ZERO_BUCKET] + [label for _, label in PAYOUT_BUCKETS] + [OVERFLOW_BUCKET]
    counts = Counter(_payout_bucket(p, price) for p in payouts)
    n = len(payouts)
    if not n:
        return {label: 0 for label in labels}
    return {label: round(counts[label] / n * 100, 2) for label in labels}


# ═══════════════════════════════════════════════════════════════
# Generator Uniformity
# ═══════════════════════════════════════════════════════════════

UNIFORMITY_SAMPLES = 100_000
UNIFORMITY_BINS = 100
UNIFORMITY_Z = 2.3263          # upper 1% point of N(0, 1), i.e. alpha = 0.01


def chi2_critical(dof: int, z: float = UNIFORMITY_Z) -> float:
    """Wilson-Hilferty approximation of the chi-squared upper quantile."""
    k = 2.0 / (9.0 * dof)
    return dof * (1.0 - k + z * math.sqrt(k)) ** 3


def rng_uniformity(rng, n_samples: int = UNIFORMITY_SAMPLES,
                   n_bins: int = UNIFORMITY_BINS) -> tuple[float, float]:
    """Chi-squared statistic of ``n_samples`` draws over ``n_bins`` equal bins.

    Returns (chi2, critical value at alpha=0.01 for n_bins - 1 degrees of freedom).
    """
    counts = Counter(min(int(rng.next() * n_bins), n_bins - 1) for _ in range(n_samples))
    expected = n_samples / n_bins
    chi2 = sum((counts[b] - expected) ** 2 / expected for b in range(n_bins))
    return chi2, chi2_critical(n_bins - 1)


# ═══════════════════════════════════════════════════════════════
# Simulator
# ═══════════════════════════════════════════════════════════════

class ScratchMonteCarlo:
    """Plays seeded tickets through the engine and aggregates payouts."""

    def __init__(self, seed: Optional[str] = None,
                 engine: Optional[ScratchTicketEngine] = None):
        self.base_seed = seed if seed is not None else ScratchConfig.MC_SEED
        self.engine = engine or ScratchTicketEngine()

    def ticket_seed(self, ticket_type: TicketType, is_bonus: bool, i: int) -> str:
        return f"{self.base_seed}:{ticket_type.value}:{int(is_bonus)}:{i}"

    def simulate(self, ticket_type, is_bonus: bool = False,
                 n_tickets: Optional[int] = None) -> SimulationResult:
        ticket_type = TicketType.parse(ticket_type)
        if n_tickets is None:
            n_tickets = ScratchConfig.MC_ROUNDS
        if n_tickets <= 0:
            raise ValueError("n_tickets must be positive")
        profile = self.engine.calculator.profiles[ticket_type]

        payouts: list[float] = []
        tokens_total = cash_total = stock_total = 0.0
        run_count = multiplier_runs = 0
        symbol_freq: dict[str, int] = {}

        t0 = time.time()
        for i in range(n_tickets):
            seed = self.ticket_seed(ticket_type, is_bonus, i)
            ticket = Ticket(id=seed, type=ticket_type, is_bonus=is_bonus)
            grid = self.engine.grid_for(ticket)
            wins, _ = self.engine.scanner.scan(grid)
            prize = self.engine.calculator.calculate(wins, ticket_type, is_bonus)

            tokens_total += prize.tokens
            cash_total += float(prize.cash)
            stock_total += float(prize.stock_value)
            payouts.append(float(prize.total_value))

            run_count += len(wins)
            for w in wins:
                symbol_freq[w.symbol_type] = symbol_freq.get(w.symbol_type, 0) + 1
                if w.multiplier > 1:
                    multiplier_runs += 1
        duration = time.time() - t0

        winners = [p for p in payouts if p > 0]
        mean_total = sum(payouts) / n_tickets
        result = SimulationResult(
            ticket_type=ticket_type.value,
            is_bonus=is_bonus,
            n_tickets=n_tickets,
            price=profile.price,
            hit_frequency=len(winners) / n_tickets,
            mean_tokens=tokens_total / n_tickets,
            mean_cash=cash_total / n_tickets,
            mean_stock_value=stock_total / n_tickets,
            mean_total_value=mean_total,
            rtp=mean_total / profile.price,
            std_dev=statistics.stdev(payouts) if n_tickets > 1 else 0.0,
            max_total_value=max(payouts),
            median_win=statistics.median(winners) if winners else 0.0,
            mean_wins_per_ticket=run_count / n_tickets,
            multiplier_run_rate=multiplier_runs / run_count if run_count else 0.0,
            win_distribution=_win_distribution(payouts, profile.price),
            symbol_frequency=symbol_freq,
            duration_seconds=duration,
            tickets_per_second=n_tickets / duration if duration > 0 else 0,
            seed=f"{self.base_seed}:{ticket_type.value}:{int(is_bonus)}",
        )
        logger.info(f"Simulated {result.label}: {n_tickets:,} tickets, "
                    f"hit={result.hit_frequency*100:.2f}% rtp={result.rtp*100:.2f}%")
        return result

    def simulate_all(self, n_tickets: Optional[int] = None,
                     include_bonus: bool = True) -> SimulationReport:
        """Simulate every ticket type (and its bonus variant)."""
        report = SimulationReport()
        chi2, critical = rng_uniformity(
            SeededRandomSource.from_seed(f"{self.base_seed}:uniformity")
        )
        report.chi_squared = chi2
        report.chi_squared_critical = critical
        report.chi_squared_pass = chi2 < critical
        for ticket_type in TicketType:
            flags = (False, True) if include_bonus else (False,)
            for is_bonus in flags:
                report.add(self.simulate(ticket_type, is_bonus, n_tickets))
        return report
