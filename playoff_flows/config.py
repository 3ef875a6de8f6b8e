from __future__ import annotations

import os
from datetime import date

from playoff_flows.data_classes import GatingPolicy

# -------------------------
# Config
# -------------------------


# --- SHEET FEED CONFIG ---
_SHEET_BASE = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vQ2NIyT2nQ0ymcFxNTG9qv-YsoQMSs01UPMYdYGVqcprvj5r5y6eA-Fcot73iVVjzM1QU6mUuvk82Kf/pub"
)

TEAMS_CSV_URL = os.getenv("TEAMS_CSV_URL", f"{_SHEET_BASE}?gid=0&single=true&output=csv")
GAMES_CSV_URL = os.getenv("GAMES_CSV_URL", f"{_SHEET_BASE}?gid=1880527815&single=true&output=csv")
PLAYOFFS_CSV_URL = os.getenv("PLAYOFFS_CSV_URL", f"{_SHEET_BASE}?gid=126919836&single=true&output=csv")

REQUEST_TIMEOUT = int(os.getenv("SHEET_REQUEST_TIMEOUT", "25"))  # seconds


# --- SEASON CONFIG ---
OPENING_DAY = os.getenv("LEAGUE_OPENING_DAY", "2026-04-11")
UNLOCK_WEEK = os.getenv("SEEDING_UNLOCK_WEEK", "7")
MIN_COMPLETED_DATES = os.getenv("SEEDING_MIN_COMPLETED_DATES", "0")

# Number of seeds listed in the "Current seeding" note
SEED_PREVIEW_COUNT = 10


# --- PRESENTATION CONFIG ---
DEFAULT_TEAM_LOGO = os.getenv("DEFAULT_TEAM_LOGO", "./logo.png")


def get_gating_policy(
    opening_day: str = OPENING_DAY,
    unlock_week: str = UNLOCK_WEEK,
    min_completed_dates: str = MIN_COMPLETED_DATES,
) -> GatingPolicy:
    """
    Build the seeding gate from the season config (environment variables by default).
    Raises ValueError if any of the values cannot be parsed.
    """
    try:
        day = date.fromisoformat(opening_day.strip())
    except ValueError:
        raise ValueError(f"Invalid opening day {opening_day!r}; expected YYYY-MM-DD")

    try:
        week = int(str(unlock_week).strip())
        min_dates = int(str(min_completed_dates).strip())
    except ValueError:
        raise ValueError(
            f"Invalid seeding gate config: unlock week {unlock_week!r}, "
            f"minimum completed dates {min_completed_dates!r}"
        )

    if week < 1 or min_dates < 0:
        raise ValueError(f"Seeding gate out of range: unlock week {week}, minimum completed dates {min_dates}")

    return GatingPolicy(opening_day=day, unlock_week=week, min_completed_dates=min_dates)
