"""
StockScratch - Symbol Registry

Every symbol a scratch grid can show, keyed by its wire string:

    token_<amount>     token payout of <amount>
    cash_<amount>      cash payout of <amount>
    stock_<TICKER>     shares of <TICKER>; value is the reference share price
    token/cash/stock   legacy generic symbols (flat payout, value 1)
    multiplier2x/10x   multiply a run's payout, never count toward its length
    empty              blank cell
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional


class SymbolKind(str, Enum):
    TOKEN      = "token"
    CASH       = "cash"
    STOCK      = "stock"
    MULTIPLIER = "multiplier"
    EMPTY      = "empty"


@dataclass(frozen=True)
class Symbol:
    """One grid symbol. ``value`` is its payout unit."""
    key: str
    kind: SymbolKind
    value: float
    ticker: Optional[str] = None
    legacy: bool = False

    @property
    def is_multiplier(self) -> bool:
        return self.kind is SymbolKind.MULTIPLIER

    @property
    def is_empty(self) -> bool:
        return self.kind is SymbolKind.EMPTY

    @property
    def is_base(self) -> bool:
        """Token, cash or stock symbol that can form a run."""
        return not (self.is_multiplier or self.is_empty)

    def __str__(self) -> str:
        return self.key


# ═══════════════════════════════════════════════════════════════
# Stock Master List
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockListing:
    ticker: str
    price: float               # Reference price per share
    name: str


STOCK_LISTINGS: tuple[StockListing, ...] = (
    StockListing("AAPL", 180, "Apple Inc."),
    StockListing("MSFT", 350, "Microsoft Corp."),
    StockListing("GOOG", 130, "Alphabet Inc."),
    StockListing("AMZN", 145, "Amazon.com Inc."),
    StockListing("TSLA", 250, "Tesla Inc."),
    StockListing("META", 290, "Meta Platforms Inc."),
    StockListing("NVDA", 400, "NVIDIA Corp."),
    StockListing("JPM", 145, "JPMorgan Chase & Co."),
    StockListing("V", 230, "Visa Inc."),
    StockListing("WMT", 60, "Walmart Inc."),
    StockListing("JNJ", 155, "Johnson & Johnson"),
    StockListing("PG", 145, "Procter & Gamble Co."),
    StockListing("MA", 380, "Mastercard Inc."),
    StockListing("UNH", 480, "UnitedHealth Group Inc."),
    StockListing("HD", 330, "Home Depot Inc."),
)

# ticker -> reference price; callers with live market data inject their own
DEFAULT_PRICE_TABLE = MappingProxyType({s.ticker: s.price for s in STOCK_LISTINGS})

CASH_AMOUNTS = (50, 500, 1000, 5000, 10000)
TOKEN_AMOUNTS = (10, 50, 100, 500, 1000)
MULTIPLIER_VALUES = {"multiplier2x": 2, "multiplier10x": 10}


def cheapest_stocks(n: int = 4) -> list[StockListing]:
    """The ``n`` lowest-priced listings; ties keep master-list order."""
    return sorted(STOCK_LISTINGS, key=lambda s: s.price)[:n]


def stock_key(ticker: str) -> str:
    return f"stock_{ticker}"


# ═══════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════

def _build_registry() -> dict[str, Symbol]:
    reg: dict[str, Symbol] = {
        "token": Symbol("token", SymbolKind.TOKEN, 1, legacy=True),
        "cash": Symbol("cash", SymbolKind.CASH, 1, legacy=True),
        "stock": Symbol("stock", SymbolKind.STOCK, 1, legacy=True),
        "empty": Symbol("empty", SymbolKind.EMPTY, 0),
    }
    for key, value in MULTIPLIER_VALUES.items():
        reg[key] = Symbol(key, SymbolKind.MULTIPLIER, value)
    for amount in TOKEN_AMOUNTS:
        reg[f"token_{amount}"] = Symbol(f"token_{amount}", SymbolKind.TOKEN, amount)
    for amount in CASH_AMOUNTS:
        reg[f"cash_{amount}"] = Symbol(f"cash_{amount}", SymbolKind.CASH, amount)
    for listing in STOCK_LISTINGS:
        key = stock_key(listing.ticker)
        reg[key] = Symbol(key, SymbolKind.STOCK, listing.price, ticker=listing.ticker)
    return reg


SYMBOLS = MappingProxyType(_build_registry())
EMPTY = SYMBOLS["empty"]


def get_symbol(key: str) -> Optional[Symbol]:
    """Look up a symbol by key; ``None`` if unknown."""
    return SYMBOLS.get(key)


def symbol(key: str) -> Symbol:
    """Look up a symbol by key, raising on unknown keys."""
    sym = SYMBOLS.get(key)
    if sym is None:
        raise ValueError(f"Unknown symbol: {key}")
    return sym
