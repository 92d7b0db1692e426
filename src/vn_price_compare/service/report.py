from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Iterable, Mapping

from vn_price_compare.domain.models import ComparisonRecord

CSV_HEADERS = [
    "symbol",
    "change_percent",
    "start_price",
    "end_price",
    "price_change",
    "company_name",
]

VN30_SYMBOLS = frozenset(
    {
        "ACB", "BCM", "BID", "BVH", "CTG", "FPT", "GAS", "GVR", "HDB", "HPG",
        "LPB", "MBB", "MSN", "MWG", "PLX", "SAB", "SHB", "SSB", "SSI", "STB",
        "TCB", "TPB", "VCB", "VHM", "VIC", "VJC", "VNM", "VPB", "VRE",
    }
)


def load_company_names(path: Path) -> dict[str, str]:
    """
    Lê um mapa símbolo -> nome da empresa.
    Aceita {"VCB": "Vietcombank"} ou {"VCB": {"fullName": "Vietcombank"}}.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"Company map must be a JSON object: {path}")
    names: dict[str, str] = {}
    for symbol, value in raw.items():
        name = _company_name(value)
        if name:
            names[str(symbol)] = name
    return names


def company_name_for(symbol: str, names: Mapping[str, str] | None) -> str:
    if not names:
        return ""
    name = names.get(symbol) or ""
    # nome igual ao código não acrescenta nada
    return "" if name == symbol else name


def filter_vn30(records: Iterable[ComparisonRecord]) -> list[ComparisonRecord]:
    return [record for record in records if record.symbol in VN30_SYMBOLS]


def search_records(
    records: Iterable[ComparisonRecord],
    text: str,
    names: Mapping[str, str] | None = None,
) -> list[ComparisonRecord]:
    term = text.strip().lower()
    if not term:
        return list(records)
    return [
        record
        for record in records
        if term in record.symbol.lower() or term in company_name_for(record.symbol, names).lower()
    ]


def sort_by_company(
    records: Iterable[ComparisonRecord],
    names: Mapping[str, str] | None,
    descending: bool = False,
) -> list[ComparisonRecord]:
    return sorted(
        records,
        key=lambda record: company_name_for(record.symbol, names).casefold(),
        reverse=descending,
    )


def write_csv(
    records: Iterable[ComparisonRecord],
    output_path: Path,
    names: Mapping[str, str] | None = None,
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_HEADERS)
        writer.writeheader()
        for record in records:
            writer.writerow(
                {
                    "symbol": record.symbol,
                    "change_percent": str(record.change_percent),
                    "start_price": str(record.start_price),
                    "end_price": str(record.end_price),
                    "price_change": str(record.price_change),
                    "company_name": company_name_for(record.symbol, names),
                }
            )


def _company_name(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in ("fullName", "name", "shortName"):
            name = value.get(key)
            if isinstance(name, str) and name.strip():
                return name.strip()
    return None
