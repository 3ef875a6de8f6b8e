#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
export_playoff_bracket.py

Runs one render cycle of the playoffs page (fetch sheets, standings, seeds,
bracket resolution) and writes the resulting bracket state as JSON.

Usage:
  python scripts/export_playoff_bracket.py --out playoffs.json

Optional:
  --today 2026-05-30            # evaluate the seeding gate as of this date
  --teams-url / --games-url / --playoffs-url   # override the sheet feeds
"""

import argparse
import json
import sys
from pathlib import Path

from playoff_flows.config import GAMES_CSV_URL, PLAYOFFS_CSV_URL, TEAMS_CSV_URL
from playoff_flows.playoff_bracket_pipeline import playoff_bracket_flow


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--out", default="-", help="Output JSON path ('-' for stdout)")
    ap.add_argument("--today", default=None, help="Date used for the seeding gate (YYYY-MM-DD)")
    ap.add_argument("--teams-url", default=TEAMS_CSV_URL, help="Teams sheet CSV URL")
    ap.add_argument("--games-url", default=GAMES_CSV_URL, help="Games sheet CSV URL")
    ap.add_argument("--playoffs-url", default=PLAYOFFS_CSV_URL, help="Playoffs sheet CSV URL")
    args = ap.parse_args()

    state = playoff_bracket_flow(
        today=args.today,
        teams_url=args.teams_url,
        games_url=args.games_url,
        playoffs_url=args.playoffs_url,
    )
    payload = json.dumps(state, indent=2, ensure_ascii=False)

    if args.out == "-":
        print(payload)
    else:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote playoff bracket state: {out_path}")

    if state.get("error"):
        sys.exit(state["error"])


if __name__ == "__main__":
    main()
