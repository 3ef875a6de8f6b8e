from __future__ import annotations

import re
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from playoff_flows.data_classes import (
    BracketColumn,
    BracketEntry,
    BracketSlot,
    ResolvedSlot,
    Roster,
    SeedTable,
)
from playoff_flows.data_helpers import TBD, safe


# -------------------------
# Constants
# -------------------------

SEED_REF_RE = re.compile(r"^S(\d+)$", re.IGNORECASE)
RESULT_REF_RE = re.compile(r"^([WL])(\d+)$", re.IGNORECASE)

# Championship: byes for S1/S2 beside games 147/146, semis 148/149, final 150.
# Consolation: 151/152, then 153-155 (no final column).
# Each entry is ("bye", seed) or ("game", slot id), top to bottom.
CHAMPIONSHIP_LAYOUT: Tuple[Tuple[str, Tuple[Tuple[str, int], ...]], ...] = (
    ("Round 1", (("bye", 1), ("game", 147), ("bye", 2), ("game", 146))),
    ("Semifinals", (("game", 148), ("game", 149))),
    ("Championship", (("game", 150),)),
)

CONSOLATION_LAYOUT: Tuple[Tuple[str, Tuple[Tuple[str, int], ...]], ...] = (
    ("Round 1", (("game", 151), ("game", 152))),
    ("Round 2", (("game", 153), ("game", 154), ("game", 155))),
)


# --------------------------- References ---------------------------

@dataclass(frozen=True)
class TeamRef:
    name: str  # roster spelling


@dataclass(frozen=True)
class SeedRef:
    seed: int


@dataclass(frozen=True)
class WinnerRef:
    game_id: int


@dataclass(frozen=True)
class LoserRef:
    game_id: int


@dataclass(frozen=True)
class NoRef:
    raw: str = ""


Ref = Union[TeamRef, SeedRef, WinnerRef, LoserRef, NoRef]


def parse_ref(raw: str, roster: Roster) -> Ref:
    """
    Classify a raw slot reference. A roster team name always wins over the
    S<n> / W<id> / L<id> patterns; anything unrecognized is a NoRef.
    """
    text = safe(raw)
    if not text:
        return NoRef()

    team = roster.lookup(text)
    if team is not None:
        return TeamRef(team.name)

    m = SEED_REF_RE.match(text)
    if m:
        return SeedRef(int(m.group(1)))

    m = RESULT_REF_RE.match(text)
    if m:
        game_id = int(m.group(2))
        return WinnerRef(game_id) if m.group(1).upper() == "W" else LoserRef(game_id)

    return NoRef(text)


def depends_on(ref: Ref) -> Optional[int]:
    """The slot id a reference waits on, if any."""
    if isinstance(ref, (WinnerRef, LoserRef)):
        return ref.game_id
    return None


def resolve_ref(ref: Ref, seeds: SeedTable, resolved: Mapping[int, ResolvedSlot]) -> str:
    """
    Resolve one reference against the seed table and the slots resolved so far.
    Returns "" whenever the answer is not known yet.
    """
    if isinstance(ref, TeamRef):
        return ref.name
    if isinstance(ref, SeedRef):
        team = seeds.lookup(ref.seed)
        return "" if team is None or team == TBD else team
    if isinstance(ref, WinnerRef):
        game = resolved.get(ref.game_id)
        return (game.winner() or "") if game else ""
    if isinstance(ref, LoserRef):
        game = resolved.get(ref.game_id)
        return (game.loser() or "") if game else ""
    if isinstance(ref, NoRef):
        return ""
    raise TypeError(f"Unknown reference type: {type(ref).__name__}")


# --------------------------- Resolution ---------------------------

def index_slots(slots: Iterable[BracketSlot]) -> Dict[int, BracketSlot]:
    """Slots keyed by id; a later row with the same id replaces an earlier one."""
    return {slot.game_id: slot for slot in slots}


def evaluation_order(slot_refs: Mapping[int, Tuple[Ref, Ref]]) -> List[int]:
    """
    Slot ids ordered so every slot comes after the slots its W/L references
    point at. Ids are taken in ascending order among ready slots. Falls back to
    plain id order if the references form a cycle.
    """
    graph: Dict[int, set] = {}
    for game_id, refs in slot_refs.items():
        graph[game_id] = {d for d in map(depends_on, refs) if d is not None and d in slot_refs}

    sorter = TopologicalSorter(graph)
    order: List[int] = []
    try:
        sorter.prepare()
    except CycleError:
        return sorted(slot_refs)
    while sorter.is_active():
        ready = sorted(sorter.get_ready())
        order.extend(ready)
        sorter.done(*ready)
    return order


def resolve_pass(
    order: List[int],
    slots: Mapping[int, BracketSlot],
    slot_refs: Mapping[int, Tuple[Ref, Ref]],
    seeds: SeedTable,
    resolved: Mapping[int, ResolvedSlot],
) -> Dict[int, ResolvedSlot]:
    """One full pass over every slot, reading results of slots already visited in this pass."""
    current: Dict[int, ResolvedSlot] = dict(resolved)
    for game_id in order:
        ref_a, ref_b = slot_refs[game_id]
        current[game_id] = ResolvedSlot(
            slot=slots[game_id],
            team_a=resolve_ref(ref_a, seeds, current),
            team_b=resolve_ref(ref_b, seeds, current),
        )
    return current


def resolve_bracket(
    slots: Iterable[BracketSlot],
    seeds: SeedTable,
    roster: Roster,
    max_passes: Optional[int] = None,
) -> Dict[int, ResolvedSlot]:
    """
    Resolve every slot's TeamA/TeamB reference to a team name ("" if unknown).

    Slots are visited in dependency order and passes repeat until one changes
    nothing, so a further pass is always a no-op. `max_passes` defaults to the
    slot count plus one, enough for any acyclic bracket even in id order.
    """
    by_id = index_slots(slots)
    slot_refs = {
        game_id: (parse_ref(slot.team_a_ref, roster), parse_ref(slot.team_b_ref, roster))
        for game_id, slot in by_id.items()
    }
    order = evaluation_order(slot_refs)
    limit = max_passes if max_passes is not None else len(order) + 1

    resolved: Dict[int, ResolvedSlot] = {}
    for _ in range(limit):
        updated = resolve_pass(order, by_id, slot_refs, seeds, resolved)
        if updated == resolved:
            break
        resolved = updated
    return resolved


# --------------------------- Layout ---------------------------

def _layout_columns(
    layout: Tuple[Tuple[str, Tuple[Tuple[str, int], ...]], ...],
    resolved: Mapping[int, ResolvedSlot],
    seeds: SeedTable,
) -> Tuple[BracketColumn, ...]:
    columns = []
    for title, cells in layout:
        entries = []
        for kind, value in cells:
            if kind == "bye":
                team = seeds.lookup(value) or ""
                entries.append(BracketEntry(kind="bye", seed=value, team="" if team == TBD else team))
            else:
                game = resolved.get(value) or ResolvedSlot(slot=BracketSlot.placeholder(value))
                entries.append(BracketEntry(kind="game", game=game))
        columns.append(BracketColumn(title=title, entries=tuple(entries)))
    return tuple(columns)


def championship_columns(resolved: Mapping[int, ResolvedSlot], seeds: SeedTable) -> Tuple[BracketColumn, ...]:
    return _layout_columns(CHAMPIONSHIP_LAYOUT, resolved, seeds)


def consolation_columns(resolved: Mapping[int, ResolvedSlot], seeds: SeedTable) -> Tuple[BracketColumn, ...]:
    return _layout_columns(CONSOLATION_LAYOUT, resolved, seeds)


def layout_slot_ids() -> List[int]:
    """Every slot id the bracket layout shows."""
    return [
        value
        for layout in (CHAMPIONSHIP_LAYOUT, CONSOLATION_LAYOUT)
        for _title, cells in layout
        for kind, value in cells
        if kind == "game"
    ]
