from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

import requests

from vn_price_compare.domain.errors import MalformedResponseError
from vn_price_compare.domain.models import Exchange, QuoteSnapshot, SecurityQuote
from vn_price_compare.infrastructure.request_builder import build_hose_request
from vn_price_compare.infrastructure.transport import DEFAULT_TIMEOUT, send
from vn_price_compare.utils.dates import to_iso_date

logger = logging.getLogger(__name__)

_NESTED_LIST_KEYS = ("items", "list", "content")


class HoseQuoteClient:
    exchange = Exchange.HOSE

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        artifacts_dir: Path | None = None,
        session: requests.Session | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._timeout = timeout
        self._artifacts_dir = artifacts_dir
        self._session = session or requests.Session()
        self._log = log or logger

    def fetch_payload(self, day: date) -> Any:
        """Devolve o JSON da HOSE como veio, sem interpretar."""
        response = send(
            self._session,
            build_hose_request(day),
            timeout=self._timeout,
            artifacts_dir=self._artifacts_dir,
            log=self._log,
        )
        try:
            return response.json()
        except (json.JSONDecodeError, requests.JSONDecodeError) as exc:
            raise MalformedResponseError(
                f"HOSE quote report is not valid JSON: {exc}"
            ) from exc

    def fetch(self, day: date) -> QuoteSnapshot:
        date_label = to_iso_date(day)
        payload = self.fetch_payload(day)
        quotes = quotes_from_payload(payload, log=self._log)
        self._log.info("HOSE carregada | data=%s | cotações=%s", date_label, len(quotes))
        return QuoteSnapshot(exchange=self.exchange, date_label=date_label, quotes=quotes)


def quotes_from_payload(payload: Any, log: logging.Logger | None = None) -> list[SecurityQuote]:
    """Converte o relatório de cotações da HOSE em SecurityQuote."""
    log = log or logger
    items = _unwrap_items(payload)
    quotes: list[SecurityQuote] = []
    skipped = 0
    for item in items:
        if not isinstance(item, dict):
            skipped += 1
            continue
        symbol = _first_non_empty(item.get("securitySymbol"), item.get("symbol"))
        close = _price_text(item.get("closePrice"))
        if not symbol or close is None:
            skipped += 1
            continue
        quotes.append(
            SecurityQuote(
                symbol=symbol.strip(),
                close_price=close,
                open_price=_price_text(item.get("openPrice")),
                high_price=_price_text(item.get("highPrice")),
                low_price=_price_text(item.get("lowPrice")),
            )
        )
    if skipped:
        log.debug("Itens da HOSE ignorados | total=%s", skipped)
    return quotes


def _unwrap_items(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in _NESTED_LIST_KEYS:
                if isinstance(data.get(key), list):
                    return data[key]
    keys = list(payload.keys())[:20] if isinstance(payload, dict) else type(payload).__name__
    raise MalformedResponseError(f"Unrecognized HOSE quote report envelope: {keys}")


def _price_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _first_non_empty(*values: Any) -> str | None:
    for value in values:
        if value:
            return str(value)
    return None
