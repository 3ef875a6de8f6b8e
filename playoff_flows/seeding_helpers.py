from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Tuple

from playoff_flows.data_classes import GatingPolicy, HeadToHead, SeedTable, TeamStanding
from playoff_flows.data_helpers import name_sort_key
from playoff_flows.standings_helpers import head_to_head


# --------------------------- Tie Buckets ---------------------------

def tie_bucket_groups(standings: Dict[str, TeamStanding]) -> List[List[str]]:
    """
    Group teams with exactly equal win percentage, best bucket first.
    Teams inside a bucket are listed alphabetically; the cascade decides their order.
    """
    buckets: Dict[float, List[str]] = {}
    for team, row in standings.items():
        buckets.setdefault(row.win_percentage, []).append(team)
    return [sorted(buckets[wp], key=name_sort_key) for wp in sorted(buckets, reverse=True)]


def _secondary_key(row: TeamStanding) -> Tuple:
    """Run differential, runs for (both higher is better), runs against (lower is better), then name."""
    return (-row.run_differential, -row.runs_for, row.runs_against) + name_sort_key(row.team)


def _resolve_pair_by_h2h(pair: List[str], h2h: Dict[Tuple[str, str], HeadToHead]) -> Optional[List[str]]:
    """
    Order a two-team tie by direct head-to-head wins.
    Returns None if they never met or split the series evenly.
    """
    series = head_to_head(h2h, pair[0], pair[1])
    if series is None:
        return None
    x, y = pair
    x_wins, y_wins = series.wins_for(x), series.wins_for(y)
    if x_wins == y_wins:
        return None
    return [x, y] if x_wins > y_wins else [y, x]


def resolve_bucket(
    bucket: List[str],
    standings: Dict[str, TeamStanding],
    h2h: Dict[Tuple[str, str], HeadToHead],
) -> List[str]:
    """
    Order a single tie bucket.

    Step 1: a bucket of exactly two teams goes to the head-to-head winner, if any.
    Step 2: otherwise run differential, runs for, fewest runs against, team name.
    Head-to-head is never consulted for three or more tied teams.
    """
    if len(bucket) == 1:
        return bucket[:]

    if len(bucket) == 2:
        ordered = _resolve_pair_by_h2h(bucket, h2h)
        if ordered is not None:
            return ordered

    return sorted(bucket, key=lambda t: _secondary_key(standings[t]))


def order_teams(
    standings: Dict[str, TeamStanding],
    h2h: Dict[Tuple[str, str], HeadToHead],
) -> List[str]:
    """Full seed order: buckets by win percentage, each bucket resolved by the tie-break cascade."""
    final: List[str] = []
    for bucket in tie_bucket_groups(standings):
        final.extend(resolve_bucket(bucket, standings, h2h))
    return final


# --------------------------- Seed Table ---------------------------

def build_seed_table(
    standings: Dict[str, TeamStanding],
    h2h: Dict[Tuple[str, str], HeadToHead],
    gated: bool = False,
) -> SeedTable:
    return SeedTable(ordered=tuple(order_teams(standings, h2h)), gated=gated)


def is_seeding_gated(policy: Optional[GatingPolicy], today: date, completed_dates: int) -> bool:
    """No policy means seeds are always visible."""
    if policy is None:
        return False
    return policy.is_gated(today, completed_dates)


def seed_note(seeds: SeedTable, policy: Optional[GatingPolicy] = None, limit: int = 10) -> str:
    """
    Line shown above the bracket: the TBD-mode notice while gated, otherwise
    "Current seeding: S1: Red • S2: Yellow • ..." for the top `limit` seeds.
    """
    if seeds.gated:
        if policy is not None:
            return policy.note()
        return "Bracket is shown in TBD mode until seeding is final."
    preview = " • ".join(f"S{i}: {team}" for i, team in enumerate(seeds.ordered[:limit], start=1))
    return f"Current seeding: {preview}" if preview else ""
