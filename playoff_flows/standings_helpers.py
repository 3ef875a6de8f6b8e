from __future__ import annotations

from typing import Dict, Iterable, List, Set, Tuple

from playoff_flows.data_classes import GameResult, HeadToHead, SeedTable, TeamStanding
from playoff_flows.data_helpers import norm, normalize_pair


# --------------------------- Standings ---------------------------

def compute_standings(
    team_names: Iterable[str], games: Iterable[GameResult]
) -> Tuple[Dict[str, TeamStanding], Dict[Tuple[str, str], HeadToHead]]:
    """
    Aggregate finalized games into per-team standings and head-to-head series.

    Every rostered team starts at zero. Names in game rows are matched to the
    roster case-insensitively; a team seen only in games is added with the
    first spelling it appears under. Games that are not final, lack a team or
    lack a numeric score are skipped.

    Returns (standings keyed by display name, head-to-head keyed by (a, b) with a <= b).
    """
    standings: Dict[str, TeamStanding] = {}
    display: Dict[str, str] = {}  # normalized name -> display name

    def _team(name: str) -> TeamStanding:
        key = norm(name)
        if key not in display:
            display[key] = name
            standings[name] = TeamStanding(team=name)
        return standings[display[key]]

    for name in team_names:
        if name:
            _team(name)

    h2h: Dict[Tuple[str, str], HeadToHead] = {}

    for game in games:
        if not game.counts:
            continue
        team_a = _team(game.team_a)
        team_b = _team(game.team_b)
        score_a, score_b = game.score_a, game.score_b

        team_a.runs_for += score_a; team_a.runs_against += score_b
        team_b.runs_for += score_b; team_b.runs_against += score_a

        a, b, _sign = normalize_pair(team_a.team, team_b.team)
        series = h2h.setdefault((a, b), HeadToHead(a=a, b=b))

        if score_a > score_b:
            team_a.wins += 1; team_b.losses += 1
            winner = team_a.team
        elif score_b > score_a:
            team_b.wins += 1; team_a.losses += 1
            winner = team_b.team
        else:
            team_a.ties += 1; team_b.ties += 1
            series.ties += 1
            continue

        if winner == series.a:
            series.a_wins += 1
        else:
            series.b_wins += 1

    return standings, h2h


def completed_game_dates(games: Iterable[GameResult]) -> Set[str]:
    """Distinct non-empty dates that have at least one counted game."""
    return {g.date for g in games if g.counts and g.date}


def head_to_head(h2h: Dict[Tuple[str, str], HeadToHead], x: str, y: str) -> HeadToHead | None:
    """Look up the series between x and y regardless of argument order."""
    a, b, _sign = normalize_pair(x, y)
    return h2h.get((a, b))


def standings_table(standings: Dict[str, TeamStanding], seeds: SeedTable) -> List[Dict[str, object]]:
    """Standings rows in seed order, each tagged with its seed."""
    rows = []
    for team in seeds.ordered:
        row = standings[team].as_dict()
        row["seed"] = seeds.seed_of(team)
        rows.append(row)
    return rows
