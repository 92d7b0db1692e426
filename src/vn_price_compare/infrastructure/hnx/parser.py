from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from bs4 import BeautifulSoup, NavigableString, ParserRejectedMarkup, Tag

from vn_price_compare.domain.models import SecurityQuote

logger = logging.getLogger(__name__)

PLACEHOLDER = "-"
NO_PRICE = "0"

_NUMERIC = re.compile(r"\d[\d,]*")


@dataclass(frozen=True, slots=True)
class ColumnLayout:
    """
    Posições das colunas da tabela de preços da HNX.
    Se a HNX reordenar as colunas, crie um novo layout com outra versão
    em vez de espalhar índices pelo código.
    """

    version: str
    symbol: int
    first_price: int
    min_cells: int
    price_slots: int = 4
    raw_cells_cap: int = 8


# STT | Mã CK | Mã ISIN | Giá thay đổi | ...
HNX_LISTED_LAYOUT = ColumnLayout(version="2025-07", symbol=1, first_price=3, min_cells=4)


class PriceFallback(str, Enum):
    # open/high/low <- close, tudo "0" sem célula numérica
    CLOSE = "close"
    # slots ausentes ficam None; linha sem preço é descartada
    NONE = "none"


def extract_rows(html: str, log: logging.Logger | None = None) -> list[list[str]]:
    """
    Extrai o texto das células <td> de cada <tr> na ordem do documento.
    Linhas com <th> ou sem <td> são ignoradas. Não valida a estrutura:
    HTML quebrado devolve o que for possível (talvez lista vazia).
    """
    log = log or logger
    if not html:
        return []
    try:
        soup = BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        log.warning("HTML rejeitado pelo tokenizer | chars=%s | erro=%s", len(html), exc)
        return []

    rows: list[list[str]] = []
    for row in soup.find_all("tr"):
        if row.find("th") is not None:
            continue
        cells = [_cell_text(cell, row) for cell in _own_cells(row)]
        if cells:
            rows.append(cells)
    return rows


def normalize_row(
    cells: Sequence[str],
    layout: ColumnLayout = HNX_LISTED_LAYOUT,
    fallback: PriceFallback = PriceFallback.CLOSE,
) -> SecurityQuote | None:
    """Mapeia as células de uma linha para um SecurityQuote (ou None se não for uma cotação)."""
    if len(cells) < layout.min_cells:
        return None
    symbol = cells[layout.symbol].strip()
    if not symbol or symbol == PLACEHOLDER:
        return None

    prices = [cell for cell in cells[layout.first_price :] if _looks_numeric(cell)]
    prices = prices[: layout.price_slots]

    if fallback is PriceFallback.CLOSE:
        close = prices[0] if prices else NO_PRICE
        default: str | None = close
    else:
        if not prices:
            return None
        close = prices[0]
        default = None

    return SecurityQuote(
        symbol=symbol,
        close_price=close,
        open_price=_slot(prices, 1, default),
        high_price=_slot(prices, 2, default),
        low_price=_slot(prices, 3, default),
        raw_cells=tuple(cells[: layout.raw_cells_cap]),
        cell_count=len(cells),
    )


def normalize_rows(
    rows: Iterable[Sequence[str]],
    layout: ColumnLayout = HNX_LISTED_LAYOUT,
    fallback: PriceFallback = PriceFallback.CLOSE,
    log: logging.Logger | None = None,
) -> list[SecurityQuote]:
    log = log or logger
    quotes: list[SecurityQuote] = []
    skipped = 0
    for cells in rows:
        quote = normalize_row(cells, layout=layout, fallback=fallback)
        if quote is None:
            skipped += 1
            continue
        quotes.append(quote)
    log.debug(
        "Linhas normalizadas | layout=%s | cotações=%s | ignoradas=%s",
        layout.version,
        len(quotes),
        skipped,
    )
    return quotes


def parse_listed_html(
    html: str,
    layout: ColumnLayout = HNX_LISTED_LAYOUT,
    fallback: PriceFallback = PriceFallback.CLOSE,
    log: logging.Logger | None = None,
) -> list[SecurityQuote]:
    rows = extract_rows(html, log=log)
    return normalize_rows(rows, layout=layout, fallback=fallback, log=log)


def _own_cells(row: Tag) -> list[Tag]:
    # células de tabelas aninhadas pertencem às linhas internas
    return [cell for cell in row.find_all("td") if cell.find_parent("tr") is row]


def _cell_text(cell: Tag, row: Tag) -> str:
    # <td> sem fechamento engole as células seguintes da mesma linha;
    # o texto dessas células não pertence a esta
    parts = [text for text in cell.strings if not _belongs_to_sibling(text, cell, row)]
    return "".join(parts).replace("\xa0", " ").strip()


def _belongs_to_sibling(text: NavigableString, cell: Tag, row: Tag) -> bool:
    owner = text.find_parent("td")
    return owner is not cell and owner.find_parent("tr") is row


def _looks_numeric(cell: str) -> bool:
    return cell != PLACEHOLDER and _NUMERIC.search(cell) is not None


def _slot(prices: list[str], index: int, default: str | None) -> str | None:
    if len(prices) > index:
        return prices[index]
    return default
