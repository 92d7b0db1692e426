from __future__ import annotations

from datetime import date

import requests

from vn_price_compare.utils.dates import to_iso_date, to_slash_date

HOSE_QUOTE_REPORT_URL = "https://api.hsx.vn/mk/api/v1/market/quote-report"
HNX_LISTED_URL = (
    "https://hnx.vn/ModuleReportStockETFs/Report_MD_PriceVolatilyti/ListData_Listed"
)
HNX_ORIGIN = "https://hnx.vn"
HNX_REFERER = "https://hnx.vn/vi-vn/co-phieu-etfs/du-lieu-thi-truong-ny.html"
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
)
HNX_MAX_RECORDS = 1000


def hnx_search_key(day: date) -> str:
    # HNX only answers "as of" queries when the date appears on both ends.
    slash = to_slash_date(day)
    return f"{slash}|0|-1|-1|0|{slash}"


def build_hose_request(day: date) -> requests.Request:
    return requests.Request(
        method="POST",
        url=HOSE_QUOTE_REPORT_URL,
        params={"tradingBy": "VNINDEX", "date": to_iso_date(day)},
        headers={"Content-Type": "application/json"},
    )


def build_hnx_request(day: date, records: int = HNX_MAX_RECORDS) -> requests.Request:
    """
    Monta o POST form-encoded do relatório de preços listados da HNX.
    Os cabeçalhos Origin/Referer/X-Requested-With são usados pelo filtro
    anti-bot do site; sem eles a resposta vem vazia ou com erro.
    """
    page_size = max(1, min(records, HNX_MAX_RECORDS))
    form = {
        "p_keysearch": hnx_search_key(day),
        "pColOrder": "col_a",
        "pOrderType": "ASC",
        "pCurrentPage": "1",
        "pRecordOnPage": str(page_size),
        "pIsSearch": "1",
    }
    headers = {
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Content-Type": "application/x-www-form-urlencoded",
        "Origin": HNX_ORIGIN,
        "Referer": HNX_REFERER,
        "User-Agent": BROWSER_USER_AGENT,
        "X-Requested-With": "XMLHttpRequest",
    }
    return requests.Request(method="POST", url=HNX_LISTED_URL, headers=headers, data=form)
