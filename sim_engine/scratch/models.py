"""
StockScratch - Ticket Models

Pydantic models for the records that cross the engine boundary: the ticket
handed over by checkout, and the per-type profile that fixes prices and
payout multipliers.

Usage:
    from sim_engine.scratch.models import Ticket, TicketType, get_ticket_profile
    ticket = Ticket(id="b1c2", type="diamond", is_bonus=True)
    profile = get_ticket_profile(ticket.type)   # Diamond Scratch, 50x
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class TicketType(str, Enum):
    TOKENS  = "tokens"
    MONEY   = "money"
    STOCKS  = "stocks"
    MYSTIC  = "mystic"
    DIAMOND = "diamond"

    @classmethod
    def _missing_(cls, value):
        # Case-insensitive; "random" is the stored name of Mystic Chance tickets
        if isinstance(value, str):
            v = value.strip().lower()
            if v == "random":
                return cls.MYSTIC
            for member in cls:
                if member.value == v:
                    return member
        return None

    @classmethod
    def parse(cls, value) -> "TicketType":
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown ticket type: {value}. Available: {[t.value for t in cls]}"
            ) from None


# ═══════════════════════════════════════════════════════════════
# Ticket Profiles
# ═══════════════════════════════════════════════════════════════

class TicketProfile(BaseModel):
    """Shop metadata and payout scaling for one ticket type."""
    model_config = ConfigDict(frozen=True)

    type: TicketType
    name: str
    price: int = Field(gt=0)                           # Purchase price in tokens
    description: str = ""
    payout_multiplier: int = Field(1, ge=1)            # Stacks on in-grid multipliers
    shares_per_match: Decimal = Field(Decimal("0.2"), gt=0)


TICKET_PROFILES: dict[TicketType, TicketProfile] = {
    TicketType.TOKENS: TicketProfile(
        type=TicketType.TOKENS, name="Golden Fortune", price=25,
        description="Win tokens! Try your luck with this golden ticket.",
    ),
    TicketType.MONEY: TicketProfile(
        type=TicketType.MONEY, name="Cash Splash", price=50,
        description="Win cash! This green ticket could turn into real money.",
    ),
    TicketType.STOCKS: TicketProfile(
        type=TicketType.STOCKS, name="Stock Surge", price=75,
        description="Win shares! Get a piece of the market with this blue ticket.",
        shares_per_match=Decimal("0.4"),
    ),
    TicketType.MYSTIC: TicketProfile(
        type=TicketType.MYSTIC, name="Mystic Chance", price=100,
        description="Win anything with a 10x multiplier! High risk, incredible rewards.",
        payout_multiplier=10,
    ),
    TicketType.DIAMOND: TicketProfile(
        type=TicketType.DIAMOND, name="Diamond Scratch", price=200,
        description="Win anything with a 50x multiplier! The ultimate premium ticket.",
        payout_multiplier=50,
    ),
}


def get_ticket_profile(ticket_type) -> TicketProfile:
    """Get the profile for a ticket type (enum member or string)."""
    return TICKET_PROFILES[TicketType.parse(ticket_type)]


# ═══════════════════════════════════════════════════════════════
# Ticket
# ═══════════════════════════════════════════════════════════════

class Ticket(BaseModel):
    """A purchased ticket. ``seed`` defaults to the ticket id."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    type: TicketType
    is_bonus: bool = False
    seed: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        # Database ids arrive as ints
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _parse_type(cls, v):
        return TicketType.parse(v)

    @field_validator("seed", mode="before")
    @classmethod
    def _default_seed(cls, v, info: ValidationInfo) -> Optional[str]:
        if v is None or v == "":
            return info.data.get("id")
        return str(v)

    @property
    def profile(self) -> TicketProfile:
        return TICKET_PROFILES[self.type]
