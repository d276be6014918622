"""Scoring primitives shared by the standings and league engines.

Different screens count a match differently: how a set is counted, which
column sorts first, whether a loss is worth a point. Each rule is a named
option on :class:`StandingsPolicy` and the presets below bundle them.
"""

import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from ..schemas import League, ScoringTable

AggregationMode = Literal["raw_point_sum", "sets_won"]
SortPrimaryKey = Literal["points", "wins"]
LoserPointPolicy = Literal["zero", "one"]

AGGREGATION_MODES: tuple[str, ...] = ("raw_point_sum", "sets_won")
SORT_PRIMARY_KEYS: tuple[str, ...] = ("points", "wins")
LOSER_POINT_POLICIES: tuple[str, ...] = ("zero", "one")


@dataclass(frozen=True)
class StandingsPolicy:
    aggregation: AggregationMode = "raw_point_sum"
    sort_primary_key: SortPrimaryKey = "points"
    loser_points: LoserPointPolicy = "zero"

    win_points: int = 2
    draw_points: int = 1

    def __post_init__(self) -> None:
        if self.aggregation not in AGGREGATION_MODES:
            raise ValueError(f"Unknown aggregation mode: {self.aggregation!r}")
        if self.sort_primary_key not in SORT_PRIMARY_KEYS:
            raise ValueError(f"Unknown sort primary key: {self.sort_primary_key!r}")
        if self.loser_points not in LOSER_POINT_POLICIES:
            raise ValueError(f"Unknown loser point policy: {self.loser_points!r}")

    @property
    def loss_points(self) -> int:
        return 1 if self.loser_points == "one" else 0

    def outcome_points(self, won: bool, drawn: bool) -> int:
        if drawn:
            return self.draw_points
        return self.win_points if won else self.loss_points


GROUP_STANDINGS = StandingsPolicy()
WINS_FIRST = StandingsPolicy(sort_primary_key="wins")
PLAYER_DASHBOARD = StandingsPolicy(loser_points="one")
PERSONAL_HISTORY = StandingsPolicy(aggregation="sets_won")


def side_totals(set_scores: list[tuple[int, int]], aggregation: AggregationMode) -> tuple[int, int]:
    """Return the set-equivalent score of each side.

    ``raw_point_sum`` adds the recorded points of every played set;
    ``sets_won`` counts the sets in which a side outscored the other.
    """
    if aggregation == "sets_won":
        side1 = sum(1 for score1, score2 in set_scores if score1 > score2)
        side2 = sum(1 for score1, score2 in set_scores if score2 > score1)
        return side1, side2

    if aggregation != "raw_point_sum":
        raise ValueError(f"Unknown aggregation mode: {aggregation!r}")
    return sum(score1 for score1, _ in set_scores), sum(score2 for _, score2 in set_scores)


def match_outcome(side1_total: int, side2_total: int) -> int | None:
    if side1_total == side2_total:
        return None
    return 1 if side1_total > side2_total else 2


def normalize_name(name: str | None) -> str:
    return " ".join((name or "").split()).lower()


def name_sort_key(name: str | None) -> tuple[str, str]:
    # Accent-folded casefold first, raw text second so distinct spellings never tie.
    clean = " ".join((name or "").split())
    decomposed = unicodedata.normalize("NFKD", clean)
    folded = "".join(char for char in decomposed if not unicodedata.combining(char))
    return folded.casefold(), clean


def scoring_table_for(league: League, category: str | None) -> ScoringTable:
    if category and category in league.category_scoring_systems:
        return league.category_scoring_systems[category]
    return league.scoring_system


def points_for_position(table: ScoringTable, position: int | None) -> int:
    if position is None:
        return 0
    return table.get(position, 0)


COMPETITION_MODES: tuple[str, ...] = ("team", "individual")


def require_list(value: object, name: str) -> None:
    if value is None:
        raise ValueError(f"{name} is required; got None.")
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise ValueError(f"{name} must be a list, got {type(value).__name__}.")


def check_mode(mode: str) -> None:
    if mode not in COMPETITION_MODES:
        raise ValueError(f"Unknown competition mode {mode!r}; expected 'team' or 'individual'.")


def credited_entities(side: list[str], mode: str) -> list[str]:
    # A team match lists one team per side; anything extra is ignored.
    if mode == "team":
        return side[:1]
    return side
