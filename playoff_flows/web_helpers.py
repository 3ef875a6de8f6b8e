import io, time, warnings, requests
from typing import Dict, List, Optional

import pandas as pd
from bs4 import BeautifulSoup

from playoff_flows.data_helpers import BOM, SPACE_RE, normalize_header, safe

# -------------------------
# Constants
# -------------------------


# --- WEB REQUEST CONFIG ---
UA = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
      "AppleWebKit/537.36 (KHTML, like Gecko) "
      "Chrome/126.0.0.0 Safari/537.36")


class SheetFetchError(RuntimeError):
    """A published sheet could not be fetched or is not CSV. Fatal to the render cycle."""


# -------------------------
# Helpers
# -------------------------


def _cache_busted(url: str, now: Optional[float] = None) -> str:
    """
    Append a t=<ms> query parameter so the sheet CDN never serves a stale export.
    """
    stamp = int((now if now is not None else time.time()) * 1000)
    return url + ("&" if "?" in url else "?") + f"t={stamp}"


def _html_error_text(text: str) -> Optional[str]:
    """
    Published sheets answer with an HTML page (sign-in, "not published", 404)
    instead of CSV when something is wrong. Return that page's title/text, or
    None if the body does not look like HTML.
    """
    head = text.lstrip()[:512].lower()
    if not (head.startswith("<!doctype html") or head.startswith("<html")):
        return None
    soup = BeautifulSoup(text, "html.parser")
    if soup.title and soup.title.string:
        return SPACE_RE.sub(" ", soup.title.string).strip()
    return SPACE_RE.sub(" ", soup.get_text(" ")).strip()[:120] or "HTML page"


def fetch_csv_text(url: str, timeout: int = 25) -> str:
    """
    Fetch a published CSV export once. Raises SheetFetchError on a missing URL,
    network failure, HTTP error status or an HTML response.
    """
    if not url:
        raise SheetFetchError("Missing CSV URL in sheet config")

    headers = {
        "User-Agent": UA,
        "Accept": "text/csv,text/plain;q=0.9,*/*;q=0.5",
        "Cache-Control": "no-store",
    }
    try:
        r = requests.get(_cache_busted(url), headers=headers, timeout=timeout)
        r.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        raise SheetFetchError(f"Failed to fetch CSV ({status})") from e
    except requests.RequestException as e:
        raise SheetFetchError(f"Failed to fetch CSV: {e}") from e

    # Sheets exports are UTF-8 whatever the Content-Type header claims
    text = r.content.decode("utf-8", errors="replace")
    page = _html_error_text(text)
    if page is not None:
        raise SheetFetchError(f"Expected CSV but got an HTML page: {page}")
    return text


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into a list of {header: value} dicts.

    Quoted fields may hold commas, doubled quotes and newlines. Headers lose
    all whitespace and any byte-order mark ("Team Name" -> "TeamName"), values
    are trimmed strings, and rows with no non-blank value are dropped. Fields
    past the header width are ignored, missing ones read as "". Blank text
    parses to an empty list.
    """
    if not text.lstrip(BOM).strip():
        return []

    try:
        with warnings.catch_warnings():
            # index_col=False drops fields past the header and warns about it
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                engine="python",
            )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise SheetFetchError(f"Malformed CSV: {e}") from e
    df.columns = [normalize_header(c) for c in df.columns]

    rows: List[Dict[str, str]] = []
    for record in df.to_dict(orient="records"):
        row = {str(k): safe(v) for k, v in record.items()}
        if any(v for v in row.values()):
            rows.append(row)
    return rows


def fetch_sheet(url: str, timeout: int = 25) -> List[Dict[str, str]]:
    """End-to-end: fetch and parse one published sheet."""
    return parse_csv(fetch_csv_text(url, timeout=timeout))
