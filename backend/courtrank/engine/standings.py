"""Group standings for a single tournament.

Rows are built from completed matches only. A match is worth ``win_points`` to
the winner and ``draw_points`` to both sides on a draw; what a loss is worth
depends on the policy. In individual (rotating-partner) mode both partners
receive the full credit of their side.
"""

import logging
from collections.abc import Iterable, Sequence

from ..schemas import CompetitionMode, Entity, MatchResult, PlayerRecord, StandingRow
from .scoring import (
    GROUP_STANDINGS,
    AggregationMode,
    StandingsPolicy,
    check_mode,
    credited_entities,
    match_outcome,
    name_sort_key,
    require_list,
    side_totals,
)

logger = logging.getLogger(__name__)

FINAL_GROUP = "Final"


def _new_row(entity: Entity) -> StandingRow:
    return StandingRow(
        entity_id=entity.id,
        display_name=entity.display_name,
        group_name=entity.group_name,
        final_position=entity.final_position,
        account_id=entity.account_id,
        category=entity.category,
        members=list(entity.members),
    )


def _accrue(
    table: dict[str, StandingRow],
    entity_ids: list[str],
    scored: int,
    conceded: int,
    won: bool,
    drawn: bool,
    policy: StandingsPolicy,
    match_id: str,
) -> None:
    for entity_id in entity_ids:
        row = table.get(entity_id)
        if row is None:
            logger.debug("Match %s references unknown entity %s; skipped.", match_id, entity_id)
            continue

        row.points_for += scored
        row.points_against += conceded
        if drawn:
            row.draws += 1
        elif won:
            row.wins += 1
        else:
            row.losses += 1
        row.points += policy.outcome_points(won=won, drawn=drawn)


def _sort_key(row: StandingRow, policy: StandingsPolicy) -> tuple:
    key: tuple = (-row.points, -row.point_difference, -row.points_for)
    if policy.sort_primary_key == "wins":
        key = (-row.wins, *key)
    return (*key, name_sort_key(row.display_name), row.entity_id)


def _place_overrides(ranked: list[StandingRow]) -> list[StandingRow]:
    """Put rows with a ``final_position`` into that slot.

    Rows without an override keep their computed order and fill whatever
    slots are left. Equal overrides fall back to computed order.
    """
    overridden = sorted(
        (row for row in ranked if row.final_position is not None),
        key=lambda row: row.final_position,
    )
    if not overridden:
        return ranked

    computed = [row for row in ranked if row.final_position is None]
    placed: list[StandingRow] = []
    next_override = 0
    next_computed = 0
    while next_override < len(overridden) or next_computed < len(computed):
        slot = len(placed) + 1
        take_override = next_override < len(overridden) and (
            overridden[next_override].final_position <= slot or next_computed >= len(computed)
        )
        if take_override:
            placed.append(overridden[next_override])
            next_override += 1
        else:
            placed.append(computed[next_computed])
            next_computed += 1
    return placed


def rank_rows(rows: Iterable[StandingRow], policy: StandingsPolicy = GROUP_STANDINGS) -> list[StandingRow]:
    """Sort and number copies of ``rows`` group by group. Groups come out in name order."""
    grouped: dict[str, list[StandingRow]] = {}
    for row in rows:
        grouped.setdefault(row.group_name, []).append(row)

    ranked: list[StandingRow] = []
    for group_name in sorted(grouped, key=name_sort_key):
        ordered = sorted(grouped[group_name], key=lambda row: _sort_key(row, policy))
        for position, row in enumerate(_place_overrides(ordered), start=1):
            ranked.append(row.model_copy(update={"position": position}))
    return ranked


def compute_standings(
    matches: Sequence[MatchResult],
    entities: Sequence[Entity],
    mode: CompetitionMode,
    policy: StandingsPolicy = GROUP_STANDINGS,
) -> list[StandingRow]:
    """Ranked standings for every group of a tournament, one row per entity.

    Team mode credits only the first id listed on each side.
    """
    require_list(matches, "matches")
    require_list(entities, "entities")
    check_mode(mode)

    table: dict[str, StandingRow] = {}
    for entity in entities:
        table.setdefault(entity.id, _new_row(entity))

    for match in matches:
        if not match.is_countable:
            continue

        total1, total2 = side_totals(match.set_scores, policy.aggregation)
        outcome = match_outcome(total1, total2)
        drawn = outcome is None

        _accrue(table, credited_entities(match.side1, mode), total1, total2, outcome == 1, drawn, policy, match.id)
        _accrue(table, credited_entities(match.side2, mode), total2, total1, outcome == 2, drawn, policy, match.id)

    return rank_rows(table.values(), policy)


def compute_final_standings(
    matches: Sequence[MatchResult],
    entities: Sequence[Entity],
    mode: CompetitionMode,
    policy: StandingsPolicy = GROUP_STANDINGS,
) -> list[StandingRow]:
    """Standings over the whole tournament as one table.

    This is what a finished tournament hands to league scoring: knockout
    placements (``final_position``) take their slots and everyone else is
    ordered by overall record.
    """
    require_list(entities, "entities")
    single_table = [entity.model_copy(update={"group_name": FINAL_GROUP}) for entity in entities]
    return compute_standings(matches, single_table, mode, policy)


def standings_by_group(rows: Iterable[StandingRow]) -> dict[str, list[StandingRow]]:
    grouped: dict[str, list[StandingRow]] = {}
    for row in rows:
        grouped.setdefault(row.group_name, []).append(row)
    return grouped


def player_record(
    matches: Sequence[MatchResult],
    entity_ids: Iterable[str],
    aggregation: AggregationMode = "sets_won",
) -> PlayerRecord:
    """Win/draw/loss record of one person across their matches.

    ``entity_ids`` holds every id the person is known by (one per tournament
    registration). Match history counts sets won by default.
    """
    require_list(matches, "matches")
    wanted = set(entity_ids)
    record = PlayerRecord()

    for match in matches:
        if not match.is_countable:
            continue

        if wanted.intersection(match.side1):
            side = 1
        elif wanted.intersection(match.side2):
            side = 2
        else:
            continue

        outcome = match_outcome(*side_totals(match.set_scores, aggregation))
        if outcome is None:
            record.draws += 1
        elif outcome == side:
            record.wins += 1
        else:
            record.losses += 1

    return record
