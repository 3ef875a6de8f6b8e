from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional, Tuple, Union


# -------------------------
# Constants
# -------------------------

SPACE_RE = re.compile(r"\s+")
SLUG_RE = re.compile(r"[^a-z0-9]+")
BOM = "\ufeff"

# Placeholder shown wherever a team is not known yet
TBD = "TBD"


# -------------------------
# Helpers
# -------------------------


def safe(v: Any) -> str:
    """
    Convert v to a whitespace-trimmed string; None becomes "".
    """
    if v is None:
        return ""
    if isinstance(v, float) and math.isnan(v):
        return ""
    return str(v).strip()


def norm(v: Any) -> str:
    """
    Lookup key for names and statuses: trimmed, inner whitespace collapsed, lower-cased.
    """
    return SPACE_RE.sub(" ", safe(v)).lower()


def normalize_header(h: Any) -> str:
    """
    Normalize a CSV header: drop all whitespace and a leading byte-order mark.
    """
    key = SPACE_RE.sub("", safe(h))
    return key.lstrip(BOM)


def as_float_or_none(x):
    """
    Convert x to float, or return None if x is None, empty, invalid or not finite.
    """
    if x is None:
        return None
    if isinstance(x, str) and x.strip() == "":
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def as_number_or_none(x) -> Optional[Union[int, float]]:
    """
    Like as_float_or_none, but integral values come back as int (scores are runs).
    """
    f = as_float_or_none(x)
    if f is None:
        return None
    return int(f) if f.is_integer() else f


def as_int_or_none(x) -> Optional[int]:
    """
    Convert x to int if it holds an integral number, else None ("146" and "146.0" -> 146).
    """
    f = as_float_or_none(x)
    if f is None or not f.is_integer():
        return None
    return int(f)


def is_final(status: Any) -> bool:
    """
    A status marks a game complete when it reads "Final" or starts with "final" ("Final/6", "FINAL - OT").
    """
    return norm(status).startswith("final")


def slugify_team_name(name: str) -> str:
    """
    URL slug for a team name: "Mud Hens & Co." -> "mud-hens-and-co".
    """
    s = safe(name).lower().replace("&", "and")
    return SLUG_RE.sub("-", s).strip("-")


def first_present(row: Mapping[str, Any], keys: Iterable[str]) -> Optional[int]:
    """
    Return the first integral value found under any of the given header spellings.
    """
    for key in keys:
        n = as_int_or_none(row.get(key))
        if n is not None:
            return n
    return None


def normalize_pair(x: str, y: str) -> Tuple[str, str, int]:
    """
    Given two team names x and y, return a tuple (a, b, sign) where a <= b (lexicographically) and sign is +1 if x==a else -1.
    """
    return (x, y, +1) if x <= y else (y, x, -1)


def name_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive alphabetical key; exact spelling breaks the remaining tie."""
    return (name.casefold(), name)
