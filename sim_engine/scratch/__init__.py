"""
StockScratch - Scratch-Ticket Game Engine

Deterministic scratch tickets: a ticket's seed fixes its 5x5 grid, the grid
fixes its winning runs, and the runs fix its prize. Any step can be re-run
to audit a payout from the ticket id alone.

Usage:
    from sim_engine.scratch import generate_grid, scan_grid, calculate_prize
    grid = generate_grid("ticket-42", "tokens", is_bonus=False)
    wins, winning_cells = scan_grid(grid)
    prize = calculate_prize(wins, "tokens", is_bonus=False)
"""

from sim_engine.scratch.catalog import (
    DEFAULT_CATALOG, CatalogError, ProbabilityTable, SymbolCatalog, validate_catalog,
)
from sim_engine.scratch.engine import ScratchOutcome, ScratchTicketEngine, play_ticket, verify_prize
from sim_engine.scratch.grid import Cell, Grid, GridGenerator, generate_grid
from sim_engine.scratch.models import (
    TICKET_PROFILES, Ticket, TicketProfile, TicketType, get_ticket_profile,
)
from sim_engine.scratch.prize import Prize, PrizeCalculator, StockShares, calculate_prize
from sim_engine.scratch.rng import SeededRandomSource
from sim_engine.scratch.scanner import PatternScanner, ScanResult, WinEntry, scan_grid
from sim_engine.scratch.symbols import DEFAULT_PRICE_TABLE, SYMBOLS, Symbol, SymbolKind

TICKET_TYPES = [t.value for t in TicketType]

__all__ = [
    "CatalogError", "Cell", "DEFAULT_CATALOG", "DEFAULT_PRICE_TABLE", "Grid",
    "GridGenerator", "PatternScanner", "Prize", "PrizeCalculator",
    "ProbabilityTable", "SYMBOLS", "ScanResult", "ScratchOutcome",
    "ScratchTicketEngine", "SeededRandomSource", "StockShares", "Symbol",
    "SymbolCatalog", "SymbolKind", "TICKET_PROFILES", "TICKET_TYPES", "Ticket",
    "TicketProfile", "TicketType", "WinEntry", "calculate_prize",
    "generate_grid", "get_ticket_profile", "play_ticket", "scan_grid",
    "validate_catalog", "verify_prize",
]
