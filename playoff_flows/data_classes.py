from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypedDict, Union

from playoff_flows.data_helpers import (
    TBD,
    as_number_or_none,
    first_present,
    is_final,
    norm,
    safe,
    slugify_team_name,
)

Number = Union[int, float]

# Header spellings accepted for the playoff game id column
GAME_ID_HEADERS = ("GameID", "GameId", "Game")


# -------------------------
# Raw CSV rows
# -------------------------

# --- Raw row of the teams sheet ---
class RawTeamRow(TypedDict, total=False):
    TeamName: str
    TeamSlug: str
    TeamLogo: str
    TeamColor: str


# --- Raw row of the regular-season games sheet ---
class RawGameRow(TypedDict, total=False):
    TeamA: str
    TeamB: str
    ScoreA: str
    ScoreB: str
    Status: str
    Date: str


# --- Raw row of the playoffs sheet ---
class RawPlayoffRow(TypedDict, total=False):
    GameID: str
    GameId: str
    Game: str
    TeamA: str
    TeamB: str
    ScoreA: str
    ScoreB: str
    Status: str
    Date: str
    Time: str
    Field: str


# -------------------------
# Data Classes
# -------------------------

# --- Data class for a row in the teams sheet ---
@dataclass(frozen=True)
class TeamRow:
    name: str
    slug: str = ""
    logo: str = ""
    color: str = ""

    @classmethod
    def from_csv_row(cls, row: Mapping[str, Any]) -> Optional["TeamRow"]:
        """
        Create a TeamRow from a parsed CSV mapping.
        Returns None when the row has no TeamName.
        """
        name = safe(row.get("TeamName"))
        if not name:
            return None
        return cls(
            name=name,
            slug=safe(row.get("TeamSlug")),
            logo=safe(row.get("TeamLogo")),
            color=safe(row.get("TeamColor")),
        )


# --- Presentation metadata for one team ---
@dataclass(frozen=True)
class TeamMeta:
    name: str
    slug: str
    logo: str
    color: str = ""

    def as_dict(self) -> Dict[str, str]:
        return {"name": self.name, "slug": self.slug, "logo": self.logo, "color": self.color}


@dataclass(frozen=True)
class Roster:
    """
    Snapshot of the teams sheet for one render cycle, keyed by normalized name.
    The first row wins when a name is listed twice.
    """
    teams: Tuple[TeamRow, ...] = ()
    by_key: Mapping[str, TeamRow] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: List[Mapping[str, Any]]) -> "Roster":
        teams: List[TeamRow] = []
        by_key: Dict[str, TeamRow] = {}
        for row in rows:
            team = TeamRow.from_csv_row(row)
            if team is None or norm(team.name) in by_key:
                continue
            teams.append(team)
            by_key[norm(team.name)] = team
        return cls(teams=tuple(teams), by_key=by_key)

    @classmethod
    def from_names(cls, names: List[str]) -> "Roster":
        return cls.from_rows([{"TeamName": n} for n in names])

    def names(self) -> List[str]:
        return [t.name for t in self.teams]

    def lookup(self, name: str) -> Optional[TeamRow]:
        return self.by_key.get(norm(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and norm(name) in self.by_key

    def __len__(self) -> int:
        return len(self.teams)

    def meta(self, name: str, default_logo: str) -> TeamMeta:
        """Presentation metadata for a team; unknown teams get a slug and the default logo."""
        team = self.lookup(name)
        if team is None:
            return TeamMeta(name=name, slug=slugify_team_name(name), logo=default_logo)
        return TeamMeta(
            name=team.name or name,
            slug=team.slug or slugify_team_name(name),
            logo=team.logo or default_logo,
            color=team.color,
        )


# --- Data class for a row in the regular-season games sheet ---
@dataclass(frozen=True)
class GameResult:
    team_a: str
    team_b: str
    score_a: Optional[Number]
    score_b: Optional[Number]
    status: str = ""
    date: str = ""

    @classmethod
    def from_csv_row(cls, row: Mapping[str, Any]) -> "GameResult":
        return cls(
            team_a=safe(row.get("TeamA")),
            team_b=safe(row.get("TeamB")),
            score_a=as_number_or_none(row.get("ScoreA")),
            score_b=as_number_or_none(row.get("ScoreB")),
            status=safe(row.get("Status")),
            date=safe(row.get("Date")),
        )

    @property
    def is_final(self) -> bool:
        return is_final(self.status)

    @property
    def counts(self) -> bool:
        """True if the game is finalized with two distinct teams and two numeric scores."""
        return (
            self.is_final
            and bool(self.team_a)
            and bool(self.team_b)
            and norm(self.team_a) != norm(self.team_b)
            and self.score_a is not None
            and self.score_b is not None
        )


# --- Standings row for one team ---
@dataclass
class TeamStanding:
    team: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    runs_for: Number = 0
    runs_against: Number = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def run_differential(self) -> Number:
        return self.runs_for - self.runs_against

    @property
    def win_percentage(self) -> float:
        gp = self.games_played
        return (self.wins + 0.5 * self.ties) / gp if gp else 0.0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.ties}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "team": self.team,
            "W": self.wins,
            "L": self.losses,
            "T": self.ties,
            "RF": self.runs_for,
            "RA": self.runs_against,
            "RD": self.run_differential,
            "WP": round(self.win_percentage, 3),
            "record": self.record,
        }


# --- Head-to-head series between two teams ---
@dataclass
class HeadToHead:
    a: str  # team (lexicographically first)
    b: str  # team (lexicographically second)
    a_wins: int = 0
    b_wins: int = 0
    ties: int = 0

    def wins_for(self, team: str) -> int:
        if team == self.a:
            return self.a_wins
        if team == self.b:
            return self.b_wins
        raise KeyError(f"{team!r} is not part of the {self.a}/{self.b} series")


@dataclass(frozen=True)
class GatingPolicy:
    """
    Seeds stay hidden until the unlock week starts (week 1 = opening day) and
    at least `min_completed_dates` league dates have a final game.
    """
    opening_day: date
    unlock_week: int = 7
    min_completed_dates: int = 0

    @property
    def unlock_date(self) -> date:
        return self.opening_day + timedelta(weeks=self.unlock_week - 1)

    def is_gated(self, today: date, completed_dates: int) -> bool:
        return today < self.unlock_date or completed_dates < self.min_completed_dates

    def note(self) -> str:
        return (
            f"Bracket is shown in TBD mode until Week {self.unlock_week} "
            f"(after Week {self.unlock_week - 1} is complete)."
        )


@dataclass(frozen=True)
class SeedTable:
    """
    Seeds 1..N in order. While gated every lookup reads TBD; `ordered` stays
    available as a preview but is not authoritative.
    """
    ordered: Tuple[str, ...] = ()
    gated: bool = False

    def lookup(self, seed: int) -> Optional[str]:
        if seed < 1:
            return None
        if self.gated:
            return TBD
        if seed > len(self.ordered):
            return None
        return self.ordered[seed - 1]

    @property
    def by_seed(self) -> Dict[int, str]:
        return {i: self.lookup(i) or TBD for i in range(1, len(self.ordered) + 1)}

    def seed_of(self, team: str) -> Optional[int]:
        key = norm(team)
        for i, name in enumerate(self.ordered, start=1):
            if norm(name) == key:
                return i
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "gated": self.gated,
            "seeds": {str(k): v for k, v in self.by_seed.items()},
            "preview": list(self.ordered),
        }


# --- Data class for a row in the playoffs sheet ---
@dataclass(frozen=True)
class BracketSlot:
    game_id: int
    team_a_ref: str = ""
    team_b_ref: str = ""
    score_a: Optional[Number] = None
    score_b: Optional[Number] = None
    status: str = ""
    date: str = ""
    time: str = ""
    field: str = ""

    @classmethod
    def from_csv_row(cls, row: Mapping[str, Any]) -> Optional["BracketSlot"]:
        """
        Create a BracketSlot from a parsed CSV mapping.
        Returns None when no game id header holds an integer.
        """
        game_id = first_present(row, GAME_ID_HEADERS)
        if game_id is None:
            return None
        return cls(
            game_id=game_id,
            team_a_ref=safe(row.get("TeamA")),
            team_b_ref=safe(row.get("TeamB")),
            score_a=as_number_or_none(row.get("ScoreA")),
            score_b=as_number_or_none(row.get("ScoreB")),
            status=safe(row.get("Status")),
            date=safe(row.get("Date")),
            time=safe(row.get("Time")),
            field=safe(row.get("Field")),
        )

    @classmethod
    def placeholder(cls, game_id: int) -> "BracketSlot":
        return cls(game_id=game_id)

    @property
    def is_final(self) -> bool:
        return is_final(self.status)


@dataclass(frozen=True)
class ResolvedSlot:
    """A playoff slot with both participants resolved ("" while unknown)."""
    slot: BracketSlot
    team_a: str = ""
    team_b: str = ""

    @property
    def game_id(self) -> int:
        return self.slot.game_id

    @property
    def is_final(self) -> bool:
        return self.slot.is_final

    def _decided(self) -> Optional[Tuple[str, str]]:
        """(winner, loser) once the game is final, scored, untied and both teams are known."""
        s = self.slot
        if not s.is_final or s.score_a is None or s.score_b is None:
            return None
        if not self.team_a or not self.team_b or s.score_a == s.score_b:
            return None
        if s.score_a > s.score_b:
            return self.team_a, self.team_b
        return self.team_b, self.team_a

    def winner(self) -> Optional[str]:
        decided = self._decided()
        return decided[0] if decided else None

    def loser(self) -> Optional[str]:
        decided = self._decided()
        return decided[1] if decided else None

    def as_dict(self) -> Dict[str, Any]:
        s = self.slot
        final = s.is_final
        return {
            "game_id": s.game_id,
            "team_a_ref": s.team_a_ref,
            "team_b_ref": s.team_b_ref,
            "team_a": self.team_a or TBD,
            "team_b": self.team_b or TBD,
            "status": "Final" if final else (s.status or "Scheduled"),
            "final": final,
            "score_a": s.score_a if final else None,
            "score_b": s.score_b if final else None,
            "meta": " • ".join(p for p in (s.date, s.time, s.field) if p),
        }


# --- One box in a bracket column: a first-round bye or a game ---
@dataclass(frozen=True)
class BracketEntry:
    kind: str  # "bye" or "game"
    seed: Optional[int] = None
    team: str = ""
    game: Optional[ResolvedSlot] = None

    def as_dict(self) -> Dict[str, Any]:
        if self.kind == "bye":
            return {"kind": "bye", "label": f"S{self.seed} • Bye", "seed": self.seed, "team": self.team or TBD}
        return {"kind": "game", **(self.game.as_dict() if self.game else {})}


@dataclass(frozen=True)
class BracketColumn:
    title: str
    entries: Tuple[BracketEntry, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "entries": [e.as_dict() for e in self.entries]}


@dataclass(frozen=True)
class BracketState:
    """Everything the playoffs page shows for one render cycle."""
    updated_at: str
    seed_note: str = ""
    message: str = ""
    seeds: SeedTable = field(default_factory=SeedTable)
    championship: Tuple[BracketColumn, ...] = ()
    consolation: Tuple[BracketColumn, ...] = ()
    teams: Mapping[str, TeamMeta] = field(default_factory=dict)
    error: str = ""

    @classmethod
    def failed(cls, updated_at: str, error: str) -> "BracketState":
        return cls(updated_at=updated_at, error=error)

    def slots(self) -> Dict[int, ResolvedSlot]:
        out: Dict[int, ResolvedSlot] = {}
        for col in self.championship + self.consolation:
            for entry in col.entries:
                if entry.game is not None:
                    out[entry.game.game_id] = entry.game
        return out

    def as_dict(self) -> Dict[str, Any]:
        if self.error:
            return {"updated_at": self.updated_at, "error": self.error}
        return {
            "updated_at": self.updated_at,
            "seed_note": self.seed_note,
            "message": self.message,
            "seeds": self.seeds.as_dict(),
            "championship": [c.as_dict() for c in self.championship],
            "consolation": [c.as_dict() for c in self.consolation],
            "teams": {k: v.as_dict() for k, v in self.teams.items()},
        }
