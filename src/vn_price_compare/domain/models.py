from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Exchange(str, Enum):
    HOSE = "HOSE"
    HNX = "HNX"


@dataclass(frozen=True, slots=True)
class SecurityQuote:
    symbol: str
    close_price: str | None
    open_price: str | None = None
    high_price: str | None = None
    low_price: str | None = None
    # Only set for rows scraped from HTML.
    raw_cells: tuple[str, ...] | None = None
    cell_count: int | None = None


@dataclass(frozen=True, slots=True)
class QuoteSnapshot:
    exchange: Exchange
    date_label: str
    quotes: list[SecurityQuote] = field(default_factory=list)
    html_length: int | None = None


@dataclass(frozen=True, slots=True)
class ComparisonRecord:
    symbol: str
    start_price: Decimal
    end_price: Decimal
    change_percent: Decimal
    price_change: Decimal

    @property
    def is_positive(self) -> bool:
        return self.change_percent >= 0
