from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import requests

from vn_price_compare.domain.models import Exchange, QuoteSnapshot
from vn_price_compare.infrastructure.hnx.parser import (
    HNX_LISTED_LAYOUT,
    ColumnLayout,
    PriceFallback,
    extract_rows,
    normalize_rows,
)
from vn_price_compare.infrastructure.request_builder import build_hnx_request
from vn_price_compare.infrastructure.transport import (
    DEFAULT_TIMEOUT,
    save_text_artifact,
    send,
)
from vn_price_compare.utils.dates import to_slash_date

logger = logging.getLogger(__name__)


class HnxQuoteClient:
    exchange = Exchange.HNX

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        layout: ColumnLayout = HNX_LISTED_LAYOUT,
        fallback: PriceFallback = PriceFallback.CLOSE,
        artifacts_dir: Path | None = None,
        session: requests.Session | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._timeout = timeout
        self._layout = layout
        self._fallback = fallback
        self._artifacts_dir = artifacts_dir
        self._session = session or requests.Session()
        self._log = log or logger

    def fetch_html(self, day: date) -> str:
        response = send(
            self._session,
            build_hnx_request(day),
            timeout=self._timeout,
            artifacts_dir=self._artifacts_dir,
            log=self._log,
        )
        return response.text or ""

    def fetch(self, day: date) -> QuoteSnapshot:
        date_label = to_slash_date(day)
        html = self.fetch_html(day)
        rows = extract_rows(html, log=self._log)
        quotes = normalize_rows(rows, layout=self._layout, fallback=self._fallback, log=self._log)

        self._log.info(
            "HNX carregada | data=%s | html_chars=%s | linhas=%s | cotações=%s",
            date_label,
            len(html),
            len(rows),
            len(quotes),
        )
        if html and not rows:
            self._log.warning(
                "HTML da HNX sem linhas de dados | data=%s | prévia=%r",
                date_label,
                html[:200],
            )
            if self._artifacts_dir is not None:
                path = save_text_artifact(self._artifacts_dir, "hnx_no_rows", html)
                self._log.warning("HTML de depuração salvo | caminho=%s", path)

        return QuoteSnapshot(
            exchange=self.exchange,
            date_label=date_label,
            quotes=quotes,
            html_length=len(html),
        )
