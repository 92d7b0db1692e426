from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import requests

from vn_price_compare.domain.errors import UpstreamHTTPError, UpstreamTransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20


def send(
    session: requests.Session,
    request: requests.Request,
    timeout: float = DEFAULT_TIMEOUT,
    artifacts_dir: Path | None = None,
    log: logging.Logger | None = None,
) -> requests.Response:
    """Envia a requisição uma única vez (sem retry) e valida o status."""
    log = log or logger
    prepared = session.prepare_request(request)
    try:
        response = session.send(prepared, timeout=timeout)
    except requests.RequestException as exc:
        log.warning("HTTP request failed | url=%s | error=%s", prepared.url, exc)
        raise UpstreamTransportError(f"Request to {prepared.url} failed: {exc}") from exc

    log.debug("HTTP response | url=%s | status=%s", prepared.url, response.status_code)
    if not 200 <= response.status_code < 300:
        body = response.text or ""
        if artifacts_dir is not None:
            save_http_artifact(artifacts_dir, response, prepared.url or request.url)
        log.warning(
            "HTTP error status | url=%s | status=%s | body=%s",
            prepared.url,
            response.status_code,
            body[:200],
        )
        raise UpstreamHTTPError(response.status_code, body)
    return response


def save_http_artifact(artifacts_dir: Path, response: requests.Response, url: str) -> Path:
    artifacts_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    status = response.status_code
    out = artifacts_dir / f"http_{status}_{ts}.json"
    snippet = response.text[:1000] if response.text else ""
    payload = {
        "url": response.url or url,
        "status": status,
        "headers": dict(response.headers),
        "body_snippet": snippet,
    }
    out.write_text(json.dumps(payload, ensure_ascii=True, indent=2), encoding="utf-8")
    return out


def save_text_artifact(artifacts_dir: Path, tag: str, text: str, suffix: str = "html") -> Path:
    artifacts_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    out = artifacts_dir / f"{tag}_{ts}.{suffix}"
    out.write_text(text, encoding="utf-8")
    return out
