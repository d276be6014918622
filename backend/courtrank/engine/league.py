"""League table built from the final standings of many tournaments.

Each tournament row is worth the points its position earns in the league's
scoring table. Teams are credited to their member players, so a doubles pair
scores for both partners. The same person is recognised across tournaments
by account id, falling back to a normalised name when no account is linked.
"""

import logging
from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass

from ..schemas import League, LeagueStanding, ScoringTable, StandingRow
from .scoring import (
    name_sort_key,
    normalize_name,
    points_for_position,
    require_list,
    scoring_table_for,
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
NO_CATEGORY = "none"


@dataclass(frozen=True)
class _Credit:
    entity_id: str
    name: str
    account_id: str | None
    category: str | None = None


def _credits(row: StandingRow) -> list[_Credit]:
    if row.members:
        return [_Credit(member.id, member.name, member.account_id, member.category) for member in row.members]
    return [_Credit(row.entity_id, row.display_name, row.account_id, row.category)]


class _Ledger:
    """Two-tier identity index: exact account id, then normalised name."""

    def __init__(self) -> None:
        self.entries: list[LeagueStanding] = []
        self._by_account: dict[str, LeagueStanding] = {}
        self._by_name: dict[str, LeagueStanding] = {}

    def resolve(self, credit: _Credit) -> LeagueStanding:
        name_key = normalize_name(credit.name)

        if credit.account_id:
            entry = self._by_account.get(credit.account_id)
            if entry is not None:
                return entry

            # A name-only record from an earlier tournament belongs to this account.
            candidate = self._by_name.get(name_key)
            if candidate is not None and candidate.account_id is None:
                candidate.account_id = credit.account_id
                self._by_account[credit.account_id] = candidate
                return candidate
        else:
            entry = self._by_name.get(name_key)
            if entry is not None:
                return entry

        entry = LeagueStanding(entity_name=" ".join(credit.name.split()), account_id=credit.account_id)
        self.entries.append(entry)
        if credit.account_id:
            self._by_account[credit.account_id] = entry
        self._by_name.setdefault(name_key, entry)
        return entry


def _resolve_category(credit: _Credit, entity_categories: Mapping[str, str | None]) -> str | None:
    # The map is keyed by entity id only; None there means explicitly uncategorised.
    if credit.entity_id in entity_categories:
        return entity_categories[credit.entity_id]
    return credit.category


def _table_for(league: League, category: str | None, tournament_category: str | None) -> ScoringTable:
    if category and category in league.category_scoring_systems:
        return league.category_scoring_systems[category]
    if category:
        logger.debug("League %s has no table for category %s; using fallback.", league.id, category)
    return scoring_table_for(league, tournament_category)


def _league_sort_key(entry: LeagueStanding) -> tuple:
    best = entry.best_position if entry.best_position is not None else float("inf")
    return (-entry.total_points, best, name_sort_key(entry.entity_name), entry.account_id or "")


def aggregate_league(
    league: League,
    per_tournament_standings: Mapping[Hashable, Sequence[StandingRow]],
    entity_categories: Mapping[str, str | None] | None = None,
    *,
    tournament_categories: Mapping[Hashable, str | None] | None = None,
) -> list[LeagueStanding]:
    """Recompute the whole league table from per-tournament final standings.

    ``entity_categories`` overrides, by entity id, the category each row carries.
    """
    if league is None:
        raise ValueError("league is required; got None.")
    if per_tournament_standings is None:
        raise ValueError("per_tournament_standings is required; got None.")
    categories = entity_categories or {}
    linked_categories = tournament_categories or {}

    ledger = _Ledger()
    for tournament_id, rows in per_tournament_standings.items():
        require_list(rows, f"standings of tournament {tournament_id}")
        tournament_category = linked_categories.get(tournament_id)
        counted: set[int] = set()

        for row in rows:
            position = row.position if row.position > 0 else None
            for credit in _credits(row):
                entry = ledger.resolve(credit)
                category = _resolve_category(credit, categories)
                if entry.player_category is None and category:
                    entry.player_category = category

                table = _table_for(league, category, tournament_category)
                entry.total_points += points_for_position(table, position)
                if position is not None and (entry.best_position is None or position < entry.best_position):
                    entry.best_position = position
                if id(entry) not in counted:
                    counted.add(id(entry))
                    entry.tournaments_played += 1

    ranked = sorted(ledger.entries, key=_league_sort_key)
    for position, entry in enumerate(ranked, start=1):
        entry.position = position

    logger.debug(
        "League %s aggregated: %d tournaments, %d entries.",
        league.id,
        len(per_tournament_standings),
        len(ranked),
    )
    return ranked


def filter_by_category(rows: Iterable[LeagueStanding], category: str = ALL_CATEGORIES) -> list[LeagueStanding]:
    """Keep the rows of one category and renumber them from 1.

    ``"all"`` keeps everything, ``"none"`` keeps rows without a category.
    Relative order is never changed.
    """
    if category == ALL_CATEGORIES:
        kept = list(rows)
    elif category == NO_CATEGORY:
        kept = [row for row in rows if not row.player_category]
    else:
        kept = [row for row in rows if row.player_category == category]

    return [row.model_copy(update={"position": position}) for position, row in enumerate(kept, start=1)]


def category_counts(rows: Iterable[LeagueStanding]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for row in rows:
        key = row.player_category or NO_CATEGORY
        counts[key] = counts.get(key, 0) + 1
    return counts
