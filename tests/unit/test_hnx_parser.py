from pathlib import Path

from vn_price_compare.domain.models import SecurityQuote
from vn_price_compare.infrastructure.hnx.parser import (
    HNX_LISTED_LAYOUT,
    ColumnLayout,
    PriceFallback,
    extract_rows,
    normalize_row,
    parse_listed_html,
)

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"


def _fixture_html() -> str:
    return (FIXTURES / "hnx_listed.html").read_text(encoding="utf-8")


def test_extract_rows_drops_header_rows() -> None:
    html = "<tr><th>H</th></tr><tr><td>1</td><td>AAA</td><td>x</td><td>10,000</td></tr>"
    assert extract_rows(html) == [["1", "AAA", "x", "10,000"]]


def test_extract_rows_decodes_entities_and_strips_markup() -> None:
    html = (
        "<tr><td>&nbsp;1&nbsp;</td><td><a href='#'><b>B&amp;B</b></a></td>"
        "<td>Gi&#225; m&#227;</td><td>\n  7,100\n</td></tr>"
    )
    assert extract_rows(html) == [["1", "B&B", "Gi\u00e1 m\u00e3", "7,100"]]


def test_extract_rows_skips_rows_without_data_cells() -> None:
    html = "<table><tr></tr><tr><td>1</td></tr><tr class='sep'>\n</tr></table>"
    assert extract_rows(html) == [["1"]]


def test_extract_rows_keeps_nested_table_cells_in_their_own_row() -> None:
    html = (
        "<table><tr><td>1</td><td>AAA</td>"
        "<td><table><tr><td>inner</td></tr></table></td>"
        "<td>10</td></tr></table>"
    )
    rows = extract_rows(html)
    assert rows[0] == ["1", "AAA", "inner", "10"]
    assert rows[1] == ["inner"]


def test_extract_rows_never_raises_on_broken_markup() -> None:
    assert extract_rows("") == []
    assert extract_rows("<tr><td>1<td>AAA</tr></table></div>") == [["1", "AAA"]]
    assert extract_rows("<<<>>> <tr <td>") == []
    assert extract_rows("no markup at all") == []


def test_extract_rows_from_fixture() -> None:
    rows = extract_rows(_fixture_html())
    assert len(rows) == 5
    assert rows[0][:4] == ["1", "AAV", "VN000000AAV4", "200"]
    assert rows[1][1] == "ACB"
    assert rows[-1] == ["T\u1ed5ng s\u1ed1: 3"]


def test_normalize_row_single_price_fills_every_slot() -> None:
    quote = normalize_row(["1", "AAA", "x", "10,000"])
    assert quote == SecurityQuote(
        symbol="AAA",
        close_price="10,000",
        open_price="10,000",
        high_price="10,000",
        low_price="10,000",
        raw_cells=("1", "AAA", "x", "10,000"),
        cell_count=4,
    )


def test_normalize_row_rejects_placeholder_symbol() -> None:
    assert normalize_row(["1", "-", "x", "10,000"]) is None
    assert normalize_row(["1", "", "x", "10,000"]) is None


def test_normalize_row_requires_four_cells() -> None:
    assert normalize_row(["1", "AAA", "10,000"]) is None


def test_normalize_row_takes_first_four_numeric_cells() -> None:
    cells = ["1", "AAA", "VN0001", "-", "7,100", "n/a", "6,900", "7,200", "6,800", "125,400"]
    quote = normalize_row(cells)
    assert quote is not None
    assert (quote.close_price, quote.open_price, quote.high_price, quote.low_price) == (
        "7,100",
        "6,900",
        "7,200",
        "6,800",
    )
    assert quote.raw_cells == tuple(cells[:8])
    assert quote.cell_count == 10


def test_normalize_row_without_prices_defaults_to_zero() -> None:
    quote = normalize_row(["4", "B&B", "VN000000BNB1", "-", "-"])
    assert quote is not None
    assert (quote.close_price, quote.open_price, quote.high_price, quote.low_price) == (
        "0",
        "0",
        "0",
        "0",
    )


def test_normalize_row_explicit_policy_keeps_missing_slots_empty() -> None:
    quote = normalize_row(["1", "AAA", "x", "10,000", "9,900"], fallback=PriceFallback.NONE)
    assert quote is not None
    assert quote.close_price == "10,000"
    assert quote.open_price == "9,900"
    assert quote.high_price is None
    assert quote.low_price is None
    assert normalize_row(["4", "B&B", "x", "-"], fallback=PriceFallback.NONE) is None


def test_normalize_row_follows_layout() -> None:
    layout = ColumnLayout(version="test", symbol=0, first_price=1, min_cells=2, raw_cells_cap=2)
    quote = normalize_row(["XYZ", "5", "6"], layout=layout)
    assert quote is not None
    assert quote.symbol == "XYZ"
    assert quote.close_price == "5"
    assert quote.open_price == "6"
    assert quote.raw_cells == ("XYZ", "5")


def test_parse_listed_html_from_fixture() -> None:
    quotes = parse_listed_html(_fixture_html())
    assert [quote.symbol for quote in quotes] == ["AAV", "ACB", "B&B"]

    aav, acb, bnb = quotes
    # a coluna de variação (índice 3) entra na busca posicional de preços
    assert aav.close_price == "200"
    assert aav.open_price == "7,100"
    assert acb.close_price == acb.open_price == acb.low_price == "22,500"
    assert bnb.close_price == "0"
    assert HNX_LISTED_LAYOUT.version == "2025-07"


def test_parse_listed_html_strict_policy_from_fixture() -> None:
    quotes = parse_listed_html(_fixture_html(), fallback=PriceFallback.NONE)
    assert [quote.symbol for quote in quotes] == ["AAV", "ACB"]


def test_extract_rows_splits_cells_without_closing_tags() -> None:
    html = "<table><tr><td>1<td>AAA<td>x<td>10,000</tr></table>"
    assert extract_rows(html) == [["1", "AAA", "x", "10,000"]]


def test_parse_listed_html_with_unclosed_cells_keeps_real_symbol() -> None:
    html = (
        "<table><tr><th>STT<th>Mã CK</tr>"
        "<tr><td>1<td><a href='#'>AAA</a><td>VN0001<td>-<td>10,000<td>9,800</tr>"
        "<tr><td>2<td>BBB<td>VN0002<td>-<td>&nbsp;5,500&nbsp;</tr></table>"
    )
    quotes = parse_listed_html(html)

    assert [quote.symbol for quote in quotes] == ["AAA", "BBB"]
    assert (quotes[0].close_price, quotes[0].open_price) == ("10,000", "9,800")
    assert quotes[1].close_price == "5,500"
    assert quotes[1].cell_count == 5
