from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from prefect import flow, task, get_run_logger

from playoff_flows.bracket_helpers import championship_columns, consolation_columns, layout_slot_ids, resolve_bracket
from playoff_flows.config import (
    DEFAULT_TEAM_LOGO,
    GAMES_CSV_URL,
    PLAYOFFS_CSV_URL,
    REQUEST_TIMEOUT,
    SEED_PREVIEW_COUNT,
    TEAMS_CSV_URL,
    get_gating_policy,
)
from playoff_flows.data_classes import (
    BracketSlot,
    BracketState,
    GameResult,
    GatingPolicy,
    HeadToHead,
    ResolvedSlot,
    Roster,
    SeedTable,
    TeamMeta,
    TeamStanding,
)
from playoff_flows.seeding_helpers import build_seed_table, is_seeding_gated, seed_note
from playoff_flows.standings_helpers import compute_standings, completed_game_dates, standings_table
from playoff_flows.web_helpers import SheetFetchError, fetch_sheet


# -------------------------
# Config
# -------------------------

BRACKET_MESSAGE = "Brackets auto-fill from standings and playoff results (Status=Final + scores)."

Standings = Dict[str, TeamStanding]
HeadToHeads = Dict[Tuple[str, str], HeadToHead]


# -------------------------
# Helpers
# -------------------------


def _parse_today(today: Optional[str]) -> date:
    return date.fromisoformat(today) if today else date.today()


def _updated_at() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def load_league(
    team_rows: List[Mapping[str, Any]],
    game_rows: List[Mapping[str, Any]],
    playoff_rows: List[Mapping[str, Any]],
) -> Tuple[Roster, List[GameResult], List[BracketSlot]]:
    """Typed snapshots of the three sheets; playoff rows without a numeric id are dropped."""
    roster = Roster.from_rows(team_rows)
    games = [GameResult.from_csv_row(r) for r in game_rows]
    slots = [s for s in (BracketSlot.from_csv_row(r) for r in playoff_rows) if s is not None]
    return roster, games, slots


def league_standings(roster: Roster, games: List[GameResult]) -> Tuple[Standings, HeadToHeads]:
    return compute_standings(roster.names(), games)


def league_seeds(
    standings: Standings,
    h2h: HeadToHeads,
    games: List[GameResult],
    policy: Optional[GatingPolicy],
    today: date,
) -> SeedTable:
    gated = is_seeding_gated(policy, today, len(completed_game_dates(games)))
    return build_seed_table(standings, h2h, gated=gated)


def team_metadata(
    roster: Roster, resolved: Mapping[int, ResolvedSlot], seeds: SeedTable, default_logo: str
) -> Dict[str, TeamMeta]:
    """Presentation metadata for every team that appears somewhere in the bracket."""
    names: List[str] = []
    for game in resolved.values():
        names.extend(n for n in (game.team_a, game.team_b) if n)
    for seed in (1, 2):
        team = seeds.lookup(seed)
        if team and not seeds.gated:
            names.append(team)
    return {name: roster.meta(name, default_logo) for name in sorted(set(names))}


def assemble_bracket_state(
    roster: Roster,
    seeds: SeedTable,
    resolved: Mapping[int, ResolvedSlot],
    policy: Optional[GatingPolicy],
    updated_at: str,
    default_logo: str = DEFAULT_TEAM_LOGO,
) -> BracketState:
    return BracketState(
        updated_at=updated_at,
        seed_note=seed_note(seeds, policy, limit=SEED_PREVIEW_COUNT),
        message=BRACKET_MESSAGE,
        seeds=seeds,
        championship=championship_columns(resolved, seeds),
        consolation=consolation_columns(resolved, seeds),
        teams=team_metadata(roster, resolved, seeds, default_logo),
    )


def render_playoffs(
    team_rows: List[Mapping[str, Any]],
    game_rows: List[Mapping[str, Any]],
    playoff_rows: List[Mapping[str, Any]],
    today: date,
    policy: Optional[GatingPolicy] = None,
    updated_at: str = "",
    default_logo: str = DEFAULT_TEAM_LOGO,
    standings_step: Callable[..., Tuple[Standings, HeadToHeads]] = league_standings,
    seeds_step: Callable[..., SeedTable] = league_seeds,
    bracket_step: Callable[..., Dict[int, ResolvedSlot]] = resolve_bracket,
) -> BracketState:
    """
    One render cycle over already-fetched rows: standings -> seeds -> resolved
    bracket -> page state. Nothing is kept between calls.

    The three steps default to the plain helpers; the flow passes its tasks so
    each step shows up as a task run.
    """
    roster, games, slots = load_league(team_rows, game_rows, playoff_rows)
    standings, h2h = standings_step(roster, games)
    seeds = seeds_step(standings, h2h, games, policy, today)
    resolved = bracket_step(slots, seeds, roster)
    return assemble_bracket_state(roster, seeds, resolved, policy, updated_at or _updated_at(), default_logo)


# -------------------------
# Prefect tasks & flow
# -------------------------


@task(name="Fetch Sheet", task_run_name="Fetch {label} sheet")
def fetch_sheet_rows(label: str, url: str) -> List[Dict[str, str]]:
    """
    Fetch and parse one published sheet. No retries: a failure ends the render cycle.
    """
    logger = get_run_logger()
    logger.info("Fetching %s sheet via %s", label, url)
    rows = fetch_sheet(url, timeout=REQUEST_TIMEOUT)
    logger.info("Parsed %d %s rows", len(rows), label)
    return rows


@task(name="Compute Standings")
def compute_standings_task(roster: Roster, games: List[GameResult]) -> Tuple[Standings, HeadToHeads]:
    """
    Task to aggregate finalized games into standings and head-to-head series.
    """
    logger = get_run_logger()
    skipped = [g for g in games if not g.counts]
    for g in skipped:
        logger.debug("Skipping game %s vs %s (%s): not final or incomplete", g.team_a, g.team_b, g.status or "no status")
    standings, h2h = league_standings(roster, games)
    logger.info("Computed standings for %d teams from %d final games", len(standings), len(games) - len(skipped))
    return standings, h2h


@task(name="Compute Seeds")
def compute_seeds_task(
    standings: Standings,
    h2h: HeadToHeads,
    games: List[GameResult],
    policy: Optional[GatingPolicy],
    today: date,
) -> SeedTable:
    """
    Task to order teams into seeds, hidden behind the gate until it opens.
    """
    logger = get_run_logger()
    seeds = league_seeds(standings, h2h, games, policy, today)
    if seeds.gated:
        logger.info(
            "Seeding gated on %s (%d completed league dates); seeds shown as TBD",
            today, len(completed_game_dates(games)),
        )
    else:
        logger.info("Seeds: %s", ", ".join(f"S{i}={t}" for i, t in enumerate(seeds.ordered, start=1)))
    return seeds


@task(name="Resolve Bracket")
def resolve_bracket_task(slots: List[BracketSlot], seeds: SeedTable, roster: Roster) -> Dict[int, ResolvedSlot]:
    """
    Task to resolve every playoff slot's team references.
    """
    logger = get_run_logger()
    resolved = resolve_bracket(slots, seeds, roster)
    known = sum(1 for g in resolved.values() for t in (g.team_a, g.team_b) if t)
    logger.info("Resolved %d of %d bracket participants across %d slots", known, 2 * len(resolved), len(resolved))

    missing = [game_id for game_id in layout_slot_ids() if game_id not in resolved]
    if missing:
        logger.warning("Playoffs sheet has no row for games %s; showing placeholders", missing)
    return resolved


@flow(name="Playoff Bracket Flow")
def playoff_bracket_flow(
    today: Optional[str] = None,
    teams_url: str = TEAMS_CSV_URL,
    games_url: str = GAMES_CSV_URL,
    playoffs_url: str = PLAYOFFS_CSV_URL,
) -> Dict[str, Any]:
    """
    Flow for one render cycle of the playoffs page. All three sheets are
    fetched before anything is computed; the first fetch failure replaces the
    whole page with a single error message.
    """
    logger = get_run_logger()
    updated_at = _updated_at()
    policy = get_gating_policy()
    today_date = _parse_today(today)
    logger.info("Running playoff bracket flow for %s", today_date.isoformat())

    try:
        team_rows = fetch_sheet_rows("teams", teams_url)
        game_rows = fetch_sheet_rows("games", games_url)
        playoff_rows = fetch_sheet_rows("playoffs", playoffs_url)
    except SheetFetchError as e:
        logger.error("Playoffs error: %s", e)
        return BracketState.failed(updated_at, f"Playoffs error: {e}").as_dict()

    state = render_playoffs(
        team_rows,
        game_rows,
        playoff_rows,
        today_date,
        policy,
        updated_at=updated_at,
        standings_step=compute_standings_task,
        seeds_step=compute_seeds_task,
        bracket_step=resolve_bracket_task,
    )
    return state.as_dict()


@flow(name="Standings Flow")
def standings_flow(teams_url: str = TEAMS_CSV_URL, games_url: str = GAMES_CSV_URL) -> List[Dict[str, Any]]:
    """
    Flow to fetch the regular season and return the standings table in seed order.
    """
    logger = get_run_logger()
    team_rows = fetch_sheet_rows("teams", teams_url)
    game_rows = fetch_sheet_rows("games", games_url)

    roster, games, _slots = load_league(team_rows, game_rows, [])
    standings, h2h = compute_standings_task(roster, games)

    rows = standings_table(standings, build_seed_table(standings, h2h))
    logger.info("Standings: %s", [(r["seed"], r["team"], r["record"]) for r in rows])
    return rows
