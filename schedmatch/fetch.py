from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests

from schedmatch.config import HTTP_CONFIG
from schedmatch.model import ParsedSchedule
from schedmatch.parse import load_schedule_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def _normalize_url(url: str) -> str:
    """
    Calendar subscription links are often webcal://, which is plain https.
    """
    url = url.strip()
    if url.lower().startswith("webcal://"):
        return "https://" + url[len("webcal://") :]
    return url


def _download(url: str, timeout: Optional[float] = None) -> requests.Response:
    resp = requests.get(
        _normalize_url(url),
        timeout=timeout or HTTP_CONFIG["timeout"],
        headers={"Accept": "text/calendar, text/csv, */*"},
    )
    resp.raise_for_status()
    return resp


def fetch_calendar(url: str, timeout: Optional[float] = None, out_path: str | Path | None = None) -> str:
    """
    Download a calendar/CSV export and return its text. Optionally cache it
    to out_path.
    """
    logger.info(f"Fetching schedule from {url}")
    text = _download(url, timeout).text

    if out_path is not None:
        out = Path(out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")

    return text


def fetch_schedule(url: str, timeout: Optional[float] = None) -> ParsedSchedule:
    """
    Download and parse a schedule. The parser is chosen from the URL's file
    name, falling back to the response content type.
    """
    logger.info(f"Fetching schedule from {url}")
    resp = _download(url, timeout)
    name = Path(urlparse(_normalize_url(url)).path).name
    return load_schedule_text(name, resp.text, mime_type=resp.headers.get("Content-Type"))
