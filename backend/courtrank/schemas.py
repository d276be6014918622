from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

DEFAULT_GROUP = "General"

MatchStatus = Literal["scheduled", "in_progress", "completed"]
TournamentStatus = Literal["scheduled", "in_progress", "completed"]
CompetitionMode = Literal["team", "individual"]

ScoringTable = dict[int, int]


class ORMBaseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _group_or_default(value: str | None) -> str:
    if value is None:
        return DEFAULT_GROUP
    value = " ".join(value.split())
    return value or DEFAULT_GROUP


def _int_keyed(table: dict) -> ScoringTable:
    return {int(position): int(points) for position, points in table.items()}


# ---------------------------------------------------------------------------
# Engine data model
# ---------------------------------------------------------------------------


class MatchResult(BaseModel):
    id: str
    group_name: str = DEFAULT_GROUP
    status: MatchStatus = "scheduled"
    round: str | None = None

    side1: list[str] = Field(min_length=1, max_length=2)
    side2: list[str] = Field(min_length=1, max_length=2)
    set_scores: list[tuple[int, int]] = Field(default_factory=list, max_length=3)

    @field_validator("group_name", mode="before")
    @classmethod
    def _default_group(cls, value: str | None) -> str:
        return _group_or_default(value)

    @property
    def is_countable(self) -> bool:
        return self.status == "completed" and len(self.set_scores) > 0


class MemberRef(BaseModel):
    id: str
    name: str
    account_id: str | None = None
    category: str | None = None


class Entity(BaseModel):
    id: str
    display_name: str
    group_name: str = DEFAULT_GROUP
    final_position: int | None = Field(default=None, ge=1)
    account_id: str | None = None
    category: str | None = None
    members: list[MemberRef] = Field(default_factory=list, max_length=2)

    @field_validator("group_name", mode="before")
    @classmethod
    def _default_group(cls, value: str | None) -> str:
        return _group_or_default(value)


class StandingRow(BaseModel):
    entity_id: str
    display_name: str
    group_name: str = DEFAULT_GROUP

    wins: int = 0
    draws: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    points: int = 0
    position: int = 0

    final_position: int | None = None
    account_id: str | None = None
    category: str | None = None
    members: list[MemberRef] = Field(default_factory=list)

    @computed_field
    @property
    def point_difference(self) -> int:
        return self.points_for - self.points_against

    @computed_field
    @property
    def matches_played(self) -> int:
        return self.wins + self.draws + self.losses


class League(BaseModel):
    id: str
    name: str
    start_date: date | None = None
    end_date: date | None = None
    scoring_system: ScoringTable = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    category_scoring_systems: dict[str, ScoringTable] = Field(default_factory=dict)

    @field_validator("scoring_system", mode="before")
    @classmethod
    def _normalise_table(cls, value: dict | None) -> ScoringTable:
        return _int_keyed(value or {})

    @field_validator("category_scoring_systems", mode="before")
    @classmethod
    def _normalise_category_tables(cls, value: dict | None) -> dict[str, ScoringTable]:
        return {category: _int_keyed(table or {}) for category, table in (value or {}).items()}

    @field_validator("categories", mode="before")
    @classmethod
    def _none_as_empty(cls, value: list[str] | None) -> list[str]:
        return value or []


class LeagueStanding(BaseModel):
    entity_name: str
    account_id: str | None = None
    total_points: int = 0
    tournaments_played: int = 0
    best_position: int | None = None
    player_category: str | None = None
    position: int = 0


class PlayerRecord(BaseModel):
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @computed_field
    @property
    def matches_played(self) -> int:
        return self.wins + self.draws + self.losses

    @computed_field
    @property
    def win_rate(self) -> int:
        if self.matches_played == 0:
            return 0
        return round(self.wins * 100 / self.matches_played)


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class PlayerAccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    player_category: str | None = Field(default=None, max_length=16)


class PlayerAccountRead(ORMBaseModel):
    id: int
    name: str
    player_category: str | None = None


class TournamentCreate(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    mode: CompetitionMode
    category: str | None = Field(default=None, max_length=32)
    start_date: date | None = None


class TournamentRead(ORMBaseModel):
    id: int
    name: str
    mode: CompetitionMode
    status: TournamentStatus
    category: str | None = None
    start_date: date | None = None


class TeamCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    group_name: str | None = Field(default=None, max_length=50)
    player1_id: int | None = Field(default=None, gt=0)
    player2_id: int | None = Field(default=None, gt=0)


class TeamRead(ORMBaseModel):
    id: int
    tournament_id: int
    name: str
    group_name: str | None = None
    final_position: int | None = None
    player1_id: int | None = None
    player2_id: int | None = None


class PlayerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    group_name: str | None = Field(default=None, max_length=50)
    account_id: int | None = Field(default=None, gt=0)


class PlayerRead(ORMBaseModel):
    id: int
    tournament_id: int
    name: str
    group_name: str | None = None
    final_position: int | None = None
    account_id: int | None = None


class MatchCreate(BaseModel):
    round: str = Field(default="group", min_length=1, max_length=32)
    group_name: str | None = Field(default=None, max_length=50)
    side1: list[int] = Field(min_length=1, max_length=2)
    side2: list[int] = Field(min_length=1, max_length=2)


class SetScoresUpdate(BaseModel):
    set_scores: list[tuple[int, int]] = Field(min_length=1, max_length=3)
    complete: bool = True

    @field_validator("set_scores")
    @classmethod
    def _non_negative(cls, value: list[tuple[int, int]]) -> list[tuple[int, int]]:
        for side1, side2 in value:
            if side1 < 0 or side2 < 0:
                raise ValueError("Set scores cannot be negative.")
        return value


class MatchStatusUpdate(BaseModel):
    status: MatchStatus


class MatchRead(BaseModel):
    id: int
    tournament_id: int
    round: str
    group_name: str | None = None
    status: MatchStatus
    side1: list[int]
    side2: list[int]
    side1_names: list[str] = Field(default_factory=list)
    side2_names: list[str] = Field(default_factory=list)
    set_scores: list[tuple[int, int]] = Field(default_factory=list)


class LeagueCreate(BaseModel):
    name: str = Field(min_length=2, max_length=150)
    start_date: date | None = None
    end_date: date | None = None
    scoring_system: ScoringTable = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    category_scoring_systems: dict[str, ScoringTable] = Field(default_factory=dict)

    @field_validator("scoring_system")
    @classmethod
    def _valid_table(cls, value: ScoringTable) -> ScoringTable:
        _check_scoring_table(value)
        return value

    @field_validator("category_scoring_systems")
    @classmethod
    def _valid_category_tables(cls, value: dict[str, ScoringTable]) -> dict[str, ScoringTable]:
        for table in value.values():
            _check_scoring_table(table)
        return value


def _check_scoring_table(table: ScoringTable) -> None:
    for position, points in table.items():
        if position < 1:
            raise ValueError("Scoring positions start at 1.")
        if points < 0:
            raise ValueError("Scoring points cannot be negative.")


class LeagueRead(ORMBaseModel):
    id: int
    name: str
    start_date: date | None = None
    end_date: date | None = None
    scoring_system: ScoringTable = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    category_scoring_systems: dict[str, ScoringTable] = Field(default_factory=dict)


class TournamentLeagueLink(BaseModel):
    tournament_id: int = Field(gt=0)
    league_category: str | None = Field(default=None, max_length=32)


class GroupStandings(BaseModel):
    group_name: str
    rows: list[StandingRow] = Field(default_factory=list)


class TournamentStandings(BaseModel):
    tournament_id: int
    mode: CompetitionMode
    groups: list[GroupStandings] = Field(default_factory=list)


class LeagueTable(BaseModel):
    league_id: int
    category: str = "all"
    category_counts: dict[str, int] = Field(default_factory=dict)
    rows: list[LeagueStanding] = Field(default_factory=list)


class FinalizeSummary(BaseModel):
    tournament_id: int
    placements: dict[str, int] = Field(default_factory=dict)
    leagues_recalculated: list[int] = Field(default_factory=list)
