from datetime import date

import pytest
import requests
from prefect.logging import disable_run_logger
from prefect.testing.utilities import prefect_test_harness

from playoff_flows import web_helpers
from playoff_flows.data_classes import GameResult, GatingPolicy, Roster
from playoff_flows.playoff_bracket_pipeline import (
    compute_seeds_task,
    compute_standings_task,
    fetch_sheet_rows,
    playoff_bracket_flow,
    render_playoffs,
    resolve_bracket_task,
    standings_flow,
)
from playoff_flows.tests.data.test_league_2026 import (
    expected_resolved,
    ladder_games,
    raw_playoff_rows,
    teams_ten,
)

OPEN_POLICY = GatingPolicy(opening_day=date(2026, 4, 11), unlock_week=7)


def _csv(rows):
    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for r in rows:
        lines.append(",".join(r.get(h, "") for h in headers))
    return "\n".join(lines) + "\n"


class FakeResponse:
    def __init__(self, body: str, status_code: int = 200):
        self.content = body.encode("utf-8")
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


@pytest.fixture(scope="module")
def prefect_harness():
    with prefect_test_harness():
        yield


@pytest.fixture
def sheets(monkeypatch):
    """Serve the ten-team league's three sheets by URL."""
    bodies = {
        "https://sheets.test/teams": (_csv(teams_ten), 200),
        "https://sheets.test/games": (_csv(ladder_games), 200),
        "https://sheets.test/playoffs": (_csv([{"GameID": "", "GameId": "", "Game": "", **r} for r in raw_playoff_rows]), 200),
    }

    def _get(url, headers=None, timeout=None):
        base = url.split("?", 1)[0]
        body, status = bodies.get(base, ("", 404))
        return FakeResponse(body, status)

    monkeypatch.setattr(web_helpers.requests, "get", _get)
    return bodies


# Test render_playoffs end to end
def test_render_playoffs_small_league_seeds():
    team_rows = [{"TeamName": n} for n in ["Red", "Blue", "Green", "Yellow"]]
    game_rows = [
        {"TeamA": "Red", "TeamB": "Blue", "ScoreA": "5", "ScoreB": "2", "Status": "Final", "Date": "2026-04-11"},
        {"TeamA": "Green", "TeamB": "Yellow", "ScoreA": "3", "ScoreB": "3", "Status": "Final", "Date": "2026-04-11"},
        {"TeamA": "Red", "TeamB": "Green", "ScoreA": "4", "ScoreB": "1", "Status": "Final", "Date": "2026-04-18"},
    ]
    playoff_rows = [
        {"GameID": "146", "TeamA": "S1", "TeamB": "S2", "ScoreA": "3", "ScoreB": "1", "Status": "Final"},
        {"GameID": "148", "TeamA": "W146", "TeamB": "TBD-placeholder"},
    ]
    state = render_playoffs(team_rows, game_rows, playoff_rows, date(2026, 6, 1), OPEN_POLICY, updated_at="now")

    assert list(state.seeds.ordered) == ["Red", "Yellow", "Green", "Blue"]
    slots = state.slots()
    assert (slots[146].team_a, slots[146].team_b) == ("Red", "Yellow")
    assert slots[148].team_a == "Red"
    assert state.seed_note == "Current seeding: S1: Red • S2: Yellow • S3: Green • S4: Blue"


def test_render_playoffs_full_bracket():
    state = render_playoffs(teams_ten, ladder_games, raw_playoff_rows, date(2026, 6, 1), OPEN_POLICY, updated_at="now")
    slots = state.slots()

    for game_id, (team_a, team_b) in expected_resolved.items():
        assert (slots[game_id].team_a, slots[game_id].team_b) == (team_a, team_b), game_id

    data = state.as_dict()
    assert data["championship"][0]["entries"][0] == {"kind": "bye", "label": "S1 • Bye", "seed": 1, "team": "Aces"}
    assert data["teams"]["Aces"] == {"name": "Aces", "slug": "aces", "logo": "./logos/aces.png", "color": "#c00"}
    assert data["teams"]["Bandits"]["logo"] == "./logo.png"
    assert data["message"].startswith("Brackets auto-fill")


def test_render_playoffs_gated_before_unlock_week():
    state = render_playoffs(teams_ten, ladder_games, raw_playoff_rows, date(2026, 5, 1), OPEN_POLICY, updated_at="now")

    assert state.seeds.gated
    assert [state.seeds.lookup(n) for n in range(1, 11)] == ["TBD"] * 10
    assert state.seed_note.startswith("Bracket is shown in TBD mode until Week 7")
    assert state.as_dict()["championship"][0]["entries"][0]["team"] == "TBD"
    assert state.slots()[155].team_b == "Hawks"


def test_render_playoffs_gated_by_completed_dates():
    policy = GatingPolicy(opening_day=date(2026, 4, 11), unlock_week=7, min_completed_dates=8)
    state = render_playoffs(teams_ten, ladder_games, raw_playoff_rows, date(2026, 6, 1), policy, updated_at="now")
    assert state.seeds.gated
    assert all(not slot.team_a for slot in state.slots().values() if slot.slot.team_a_ref.startswith("S"))


def test_render_playoffs_recomputes_every_cycle():
    first = render_playoffs(teams_ten, ladder_games, raw_playoff_rows, date(2026, 6, 1), OPEN_POLICY, updated_at="now")
    flipped = [dict(r) for r in raw_playoff_rows]
    flipped[0] = {**flipped[0], "ScoreA": "1", "ScoreB": "8"}
    second = render_playoffs(teams_ten, ladder_games, flipped, date(2026, 6, 1), OPEN_POLICY, updated_at="now")
    third = render_playoffs(teams_ten, ladder_games, raw_playoff_rows, date(2026, 6, 1), OPEN_POLICY, updated_at="now")

    assert second.slots()[149].team_b == "Foxes"
    assert first == third


# Test tasks outside a flow run
def test_tasks_run_without_prefect_logging(sheets):
    with disable_run_logger():
        team_rows = fetch_sheet_rows.fn("teams", "https://sheets.test/teams")
        game_rows = fetch_sheet_rows.fn("games", "https://sheets.test/games")
        roster = Roster.from_rows(team_rows)
        games = [GameResult.from_csv_row(r) for r in game_rows]

        standings, h2h = compute_standings_task.fn(roster, games)
        seeds = compute_seeds_task.fn(standings, h2h, games, OPEN_POLICY, date(2026, 6, 1))
        resolved = resolve_bracket_task.fn([], seeds, roster)

    assert len(team_rows) == 10
    assert seeds.ordered[0] == "Aces"
    assert standings["Aces"].wins == 9
    assert resolved == {}


def test_fetch_task_raises_on_missing_sheet(sheets):
    with disable_run_logger():
        with pytest.raises(web_helpers.SheetFetchError):
            fetch_sheet_rows.fn("teams", "https://sheets.test/missing")


# Test the flow
def test_playoff_bracket_flow(prefect_harness, sheets):
    state = playoff_bracket_flow(
        today="2026-06-01",
        teams_url="https://sheets.test/teams",
        games_url="https://sheets.test/games",
        playoffs_url="https://sheets.test/playoffs",
    )

    assert "error" not in state
    final = state["championship"][2]["entries"][0]
    assert (final["game_id"], final["team_a"], final["team_b"]) == (150, "Aces", "TBD")


def test_playoff_bracket_flow_reports_single_error(prefect_harness, sheets):
    state = playoff_bracket_flow(
        today="2026-06-01",
        teams_url="https://sheets.test/teams",
        games_url="https://sheets.test/games",
        playoffs_url="https://sheets.test/missing",
    )

    assert set(state) == {"updated_at", "error"}
    assert state["error"] == "Playoffs error: Failed to fetch CSV (404)"


def test_playoff_bracket_flow_matches_render_playoffs(prefect_harness, sheets):
    state = playoff_bracket_flow(
        today="2026-06-01",
        teams_url="https://sheets.test/teams",
        games_url="https://sheets.test/games",
        playoffs_url="https://sheets.test/playoffs",
    )
    expected = render_playoffs(
        teams_ten, ladder_games, raw_playoff_rows, date(2026, 6, 1), OPEN_POLICY, updated_at=state["updated_at"]
    )

    assert state == expected.as_dict()


def test_playoff_bracket_flow_blank_playoffs_sheet(prefect_harness, sheets):
    sheets["https://sheets.test/playoffs"] = ("\ufeff\n", 200)
    state = playoff_bracket_flow(
        today="2026-06-01",
        teams_url="https://sheets.test/teams",
        games_url="https://sheets.test/games",
        playoffs_url="https://sheets.test/playoffs",
    )

    assert "error" not in state
    assert state["championship"][0]["entries"][0]["team"] == "Aces"
    final = state["championship"][2]["entries"][0]
    assert (final["game_id"], final["team_a"], final["team_b"], final["status"]) == (150, "TBD", "TBD", "Scheduled")


def test_standings_flow(prefect_harness, sheets):
    rows = standings_flow(teams_url="https://sheets.test/teams", games_url="https://sheets.test/games")

    assert [r["team"] for r in rows] == [t["TeamName"] for t in teams_ten]
    assert [r["seed"] for r in rows] == list(range(1, 11))
    assert rows[0]["record"] == "9-0-0"
    assert rows[-1]["record"] == "0-9-0"
