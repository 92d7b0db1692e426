import json
from datetime import date
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from vn_price_compare.domain.errors import MalformedResponseError, UpstreamHTTPError
from vn_price_compare.domain.models import Exchange
from vn_price_compare.infrastructure.hose.client import HoseQuoteClient, quotes_from_payload

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures"


class DummyResponse:
    def __init__(self, text: str, status_code: int = 200) -> None:
        self.status_code = status_code
        self.text = text
        self.headers: dict = {"Content-Type": "application/json"}
        self.url = "https://api.hsx.vn/test"

    def json(self):
        return json.loads(self.text)


class DummySession(requests.Session):
    def __init__(self, response: DummyResponse) -> None:
        super().__init__()
        self._response = response
        self.sent: list[requests.PreparedRequest] = []

    def send(self, request, **kwargs):
        self.sent.append(request)
        return self._response


def test_fetch_payload_returns_json_as_is() -> None:
    text = (FIXTURES / "hose_quote_report.json").read_text(encoding="utf-8")
    session = DummySession(DummyResponse(text))
    client = HoseQuoteClient(session=session)

    payload = client.fetch_payload(date(2025, 7, 24))

    assert payload == json.loads(text)
    query = parse_qs(urlsplit(session.sent[0].url).query)
    assert query == {"tradingBy": ["VNINDEX"], "date": ["2025-07-24"]}


def test_fetch_decodes_quotes() -> None:
    text = (FIXTURES / "hose_quote_report.json").read_text(encoding="utf-8")
    client = HoseQuoteClient(session=DummySession(DummyResponse(text)))

    snapshot = client.fetch(date(2025, 7, 24))

    assert snapshot.exchange is Exchange.HOSE
    assert snapshot.date_label == "2025-07-24"
    assert snapshot.html_length is None
    assert [quote.symbol for quote in snapshot.quotes] == ["ACB", "FPT", "VCB"]
    acb = snapshot.quotes[0]
    assert acb.close_price == "22500"
    assert acb.high_price == "22700"
    assert acb.raw_cells is None
    assert snapshot.quotes[1].open_price is None


def test_fetch_rejects_invalid_json() -> None:
    client = HoseQuoteClient(session=DummySession(DummyResponse("<html>maintenance</html>")))

    with pytest.raises(MalformedResponseError):
        client.fetch_payload(date(2025, 7, 24))


class RequestsDecodeErrorResponse(DummyResponse):
    def json(self):
        # com simplejson instalado, o erro do requests não herda de json.JSONDecodeError
        raise requests.JSONDecodeError("Expecting value", self.text, 0)


def test_fetch_maps_requests_json_error_to_malformed_response() -> None:
    client = HoseQuoteClient(session=DummySession(RequestsDecodeErrorResponse("")))

    with pytest.raises(MalformedResponseError):
        client.fetch_payload(date(2025, 7, 24))


def test_fetch_raises_on_error_status() -> None:
    client = HoseQuoteClient(session=DummySession(DummyResponse("boom", status_code=502)))

    with pytest.raises(UpstreamHTTPError) as excinfo:
        client.fetch(date(2025, 7, 24))

    assert excinfo.value.status == 502


@pytest.mark.parametrize(
    "payload",
    [
        [{"securitySymbol": "ACB", "closePrice": 1}],
        {"data": [{"securitySymbol": "ACB", "closePrice": 1}]},
        {"data": {"items": [{"securitySymbol": "ACB", "closePrice": 1}]}},
        {"data": {"content": [{"symbol": "ACB", "closePrice": 1}]}},
    ],
)
def test_quotes_from_payload_accepts_known_envelopes(payload) -> None:
    quotes = quotes_from_payload(payload)
    assert [quote.symbol for quote in quotes] == ["ACB"]
    assert quotes[0].close_price == "1"


@pytest.mark.parametrize("payload", [{"result": []}, {"data": "nope"}, "text", None])
def test_quotes_from_payload_rejects_unknown_envelopes(payload) -> None:
    with pytest.raises(MalformedResponseError):
        quotes_from_payload(payload)


def test_quotes_from_payload_keeps_empty_list() -> None:
    assert quotes_from_payload({"data": []}) == []
