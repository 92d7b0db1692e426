from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from vn_price_compare.domain.errors import (
    CompareError,
    InvalidDateRangeError,
    UpstreamTransportError,
)
from vn_price_compare.domain.models import (
    ComparisonRecord,
    Exchange,
    QuoteSnapshot,
    SecurityQuote,
)
from vn_price_compare.infrastructure.hnx.client import HnxQuoteClient
from vn_price_compare.infrastructure.hose.client import HoseQuoteClient
from vn_price_compare.infrastructure.transport import DEFAULT_TIMEOUT
from vn_price_compare.utils.money import ZERO, pct_change, quantize, to_decimal

logger = logging.getLogger(__name__)


class QuoteFetcher(Protocol):
    def fetch(self, day: date) -> QuoteSnapshot:
        ...


class SortKey(str, Enum):
    SYMBOL = "symbol"
    CHANGE = "change"
    START_PRICE = "start_price"
    END_PRICE = "end_price"


_SORT_KEYS = {
    SortKey.SYMBOL: lambda record: record.symbol,
    SortKey.CHANGE: lambda record: record.change_percent,
    SortKey.START_PRICE: lambda record: record.start_price,
    SortKey.END_PRICE: lambda record: record.end_price,
}


def build_record(start: SecurityQuote, end: SecurityQuote) -> ComparisonRecord:
    start_price = to_decimal(start.close_price)
    end_price = to_decimal(end.close_price)
    if start_price is None or end_price is None:
        logger.debug(
            "Preço de fechamento ilegível | símbolo=%s | início=%r | fim=%r",
            start.symbol,
            start.close_price,
            end.close_price,
        )
    start_value = quantize(start_price) if start_price is not None else ZERO
    end_value = quantize(end_price) if end_price is not None else ZERO
    return ComparisonRecord(
        symbol=start.symbol,
        start_price=start_value,
        end_price=end_value,
        change_percent=pct_change(start_price, end_price),
        price_change=end_value - start_value,
    )


def merge_join(
    start_quotes: Iterable[SecurityQuote],
    end_quotes: Iterable[SecurityQuote],
    log: logging.Logger | None = None,
) -> list[ComparisonRecord]:
    """
    Inner join por símbolo entre o snapshot inicial e o final.
    Mantém a ordem do snapshot inicial; símbolos presentes em só um dos
    lados ficam de fora. Símbolo repetido no snapshot final: vale o último.
    """
    log = log or logger
    end_by_symbol: dict[str, SecurityQuote] = {}
    duplicates = 0
    for quote in end_quotes:
        if quote.symbol in end_by_symbol:
            duplicates += 1
        end_by_symbol[quote.symbol] = quote
    if duplicates:
        log.debug("Símbolos duplicados no snapshot final | total=%s", duplicates)

    records: list[ComparisonRecord] = []
    for start in start_quotes:
        end = end_by_symbol.get(start.symbol)
        if end is None:
            continue
        records.append(build_record(start, end))
    return records


def sort_records(
    records: Iterable[ComparisonRecord],
    sort_by: SortKey | str,
    descending: bool = False,
) -> list[ComparisonRecord]:
    key = _SORT_KEYS[SortKey(sort_by)]
    return sorted(records, key=key, reverse=descending)


class ComparisonService:
    def __init__(
        self,
        fetchers: Mapping[Exchange, QuoteFetcher],
        max_workers: int = 2,
        deadline: float | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self._fetchers = dict(fetchers)
        self._max_workers = max_workers
        self._deadline = deadline
        self._log = log or logger

    def fetch_pair(
        self, exchange: Exchange | str, start_date: date, end_date: date
    ) -> tuple[QuoteSnapshot, QuoteSnapshot]:
        """Busca os dois dias em paralelo; falha de qualquer lado derruba o par."""
        exchange = Exchange(exchange)
        fetcher = self._fetchers.get(exchange)
        if fetcher is None:
            raise CompareError(f"No quote fetcher configured for {exchange.value}.")

        started_at = time.monotonic()
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix=f"fetch-{exchange.value}"
        )
        futures: list[Future] = []
        try:
            futures.append(executor.submit(fetcher.fetch, start_date))
            futures.append(executor.submit(fetcher.fetch, end_date))
            start_snapshot = self._result(futures[0], started_at)
            end_snapshot = self._result(futures[1], started_at)
        finally:
            self._settle(futures, started_at)
            executor.shutdown(wait=False, cancel_futures=True)

        self._log.debug(
            "Par de snapshots carregado | bolsa=%s | tempo=%.2fs",
            exchange.value,
            time.monotonic() - started_at,
        )
        return start_snapshot, end_snapshot

    def compare(
        self,
        exchange: Exchange | str,
        start_date: date,
        end_date: date,
        sort_by: SortKey | str | None = None,
        descending: bool = False,
    ) -> list[ComparisonRecord]:
        exchange = Exchange(exchange)
        if end_date < start_date:
            raise InvalidDateRangeError(
                f"End date {end_date.isoformat()} is before start date {start_date.isoformat()}."
            )

        start_snapshot, end_snapshot = self.fetch_pair(exchange, start_date, end_date)
        records = merge_join(start_snapshot.quotes, end_snapshot.quotes, log=self._log)
        if sort_by is not None:
            records = sort_records(records, sort_by, descending=descending)

        self._log.info(
            "Comparação concluída | bolsa=%s | início=%s | fim=%s | cotações_início=%s | cotações_fim=%s | registros=%s",
            exchange.value,
            start_snapshot.date_label,
            end_snapshot.date_label,
            len(start_snapshot.quotes),
            len(end_snapshot.quotes),
            len(records),
        )
        return records

    def _remaining(self, started_at: float) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - (time.monotonic() - started_at))

    def _result(self, future: Future, started_at: float) -> QuoteSnapshot:
        try:
            return future.result(timeout=self._remaining(started_at))
        except FutureTimeoutError as exc:
            raise UpstreamTransportError(
                f"Comparison deadline of {self._deadline:g}s exceeded."
            ) from exc

    def _settle(self, futures: list[Future], started_at: float) -> None:
        # a busca irmã de uma que falhou ainda roda; espera por ela dentro do prazo
        pending = [future for future in futures if not future.done()]
        if pending:
            wait(pending, timeout=self._remaining(started_at))
        for future in futures:
            future.add_done_callback(self._log_sibling_failure)

    def _log_sibling_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._log.debug("Busca paralela terminou com erro | erro=%s", exc)


def build_service(
    timeout: float = DEFAULT_TIMEOUT,
    deadline: float | None = None,
    artifacts_dir: Path | None = None,
) -> ComparisonService:
    fetchers: dict[Exchange, QuoteFetcher] = {
        Exchange.HOSE: HoseQuoteClient(timeout=timeout, artifacts_dir=artifacts_dir),
        Exchange.HNX: HnxQuoteClient(timeout=timeout, artifacts_dir=artifacts_dir),
    }
    return ComparisonService(fetchers, deadline=deadline)


def compare(
    exchange: Exchange | str,
    start_date: date,
    end_date: date,
    sort_by: SortKey | str | None = None,
    descending: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[ComparisonRecord]:
    return build_service(timeout=timeout).compare(
        exchange, start_date, end_date, sort_by=sort_by, descending=descending
    )


@dataclass(frozen=True, slots=True)
class ComparisonOutcome:
    token: int
    exchange: Exchange
    start_date: date
    end_date: date
    records: list[ComparisonRecord]


class ComparisonSession:
    """
    Guarda o último resultado aceito.
    Cada pedido recebe um token crescente; só o pedido mais recente pode
    publicar resultado. Falhas não apagam o resultado anterior.
    """

    def __init__(self, service: ComparisonService, log: logging.Logger | None = None) -> None:
        self._service = service
        self._log = log or logger
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._latest = 0
        self._current: ComparisonOutcome | None = None

    @property
    def current(self) -> ComparisonOutcome | None:
        return self._current

    def begin(self) -> int:
        with self._lock:
            self._latest = next(self._tokens)
            return self._latest

    def is_latest(self, token: int) -> bool:
        with self._lock:
            return token == self._latest

    def complete(self, outcome: ComparisonOutcome) -> bool:
        with self._lock:
            if outcome.token != self._latest:
                self._log.info(
                    "Resultado descartado (pedido superado) | token=%s | atual=%s",
                    outcome.token,
                    self._latest,
                )
                return False
            self._current = outcome
            return True

    def run(
        self,
        exchange: Exchange | str,
        start_date: date,
        end_date: date,
        sort_by: SortKey | str | None = None,
        descending: bool = False,
    ) -> ComparisonOutcome | None:
        token = self.begin()
        try:
            records = self._service.compare(
                exchange, start_date, end_date, sort_by=sort_by, descending=descending
            )
        except CompareError:
            if not self.is_latest(token):
                self._log.info("Falha de pedido superado ignorada | token=%s", token)
                return None
            raise
        outcome = ComparisonOutcome(
            token=token,
            exchange=Exchange(exchange),
            start_date=start_date,
            end_date=end_date,
            records=records,
        )
        return outcome if self.complete(outcome) else None
