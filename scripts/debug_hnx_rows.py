#!/usr/bin/env python3
from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path

from vn_price_compare.infrastructure.hnx.parser import (
    HNX_LISTED_LAYOUT,
    extract_rows,
    normalize_row,
)


def main() -> None:
    html_path = Path(sys.argv[1]) if len(sys.argv) > 1 else _find_latest_html()
    page_source = html_path.read_text(encoding="utf-8")
    rows = extract_rows(page_source)

    print(f"HTML: {html_path} | chars={len(page_source)}")
    print(f"Layout: {HNX_LISTED_LAYOUT.version}")
    print(f"extract_rows() -> {len(rows)} row(s)")

    if not rows:
        print(f"<tr> tags: {page_source.count('<tr')} | <td> tags: {page_source.count('<td')}")
        return

    widths = Counter(len(row) for row in rows)
    print(f"Cell counts: {dict(sorted(widths.items()))}")

    rejected = []
    accepted = 0
    for row in rows:
        if normalize_row(row) is None:
            rejected.append(row)
        else:
            accepted += 1
    print(f"normalize_row() -> {accepted} quote(s) | {len(rejected)} rejected")

    for row in rows[:5]:
        print(f"- {row[:HNX_LISTED_LAYOUT.raw_cells_cap]}")
    if rejected:
        print("Rejected sample:")
        for row in rejected[:5]:
            print(f"- {row[:HNX_LISTED_LAYOUT.raw_cells_cap]}")


def _find_latest_html() -> Path:
    artifacts = Path("artifacts")
    if not artifacts.exists():
        raise SystemExit("artifacts/ not found")

    candidates = list(artifacts.glob("hnx_*.html"))
    if not candidates:
        raise SystemExit("No artifacts/hnx_*.html found")

    return max(candidates, key=lambda path: path.stat().st_mtime)


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise
