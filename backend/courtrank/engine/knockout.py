"""Final placements from knockout-stage placement matches.

The placements feed ``Entity.final_position`` and override group-stage order.
Positions are handed out in round order: final, 3rd place, 5th place,
7th place, consolation; winners of a round before its losers. Partners on the
same side are ordered by their group-stage record.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..schemas import CompetitionMode, MatchResult
from .scoring import AggregationMode, check_mode, credited_entities, match_outcome, require_list, side_totals

logger = logging.getLogger(__name__)

PLACEMENT_ROUNDS: tuple[tuple[str, ...], ...] = (
    ("final", "mixed_final"),
    ("3rd_place", "mixed_3rd_place"),
    ("5th_place",),
    ("7th_place",),
    ("consolation",),
)
GROUP_ROUND_PREFIX = "group"


@dataclass
class _GroupRecord:
    wins: int = 0
    games_won: int = 0
    games_lost: int = 0


def _is_group_round(match: MatchResult) -> bool:
    return match.round is None or match.round.startswith(GROUP_ROUND_PREFIX)


def _group_records(
    matches: list[MatchResult],
    mode: CompetitionMode,
    aggregation: AggregationMode,
) -> dict[str, _GroupRecord]:
    records: dict[str, _GroupRecord] = {}
    for match in matches:
        if not _is_group_round(match):
            continue

        total1, total2 = side_totals(match.set_scores, aggregation)
        outcome = match_outcome(total1, total2)
        for entity_id in credited_entities(match.side1, mode):
            record = records.setdefault(entity_id, _GroupRecord())
            record.games_won += total1
            record.games_lost += total2
            record.wins += 1 if outcome == 1 else 0
        for entity_id in credited_entities(match.side2, mode):
            record = records.setdefault(entity_id, _GroupRecord())
            record.games_won += total2
            record.games_lost += total1
            record.wins += 1 if outcome == 2 else 0
    return records


def _rank_within_side(entity_ids: list[str], records: dict[str, _GroupRecord]) -> list[str]:
    def key(entity_id: str) -> tuple[int, int, int, str]:
        record = records.get(entity_id, _GroupRecord())
        return (
            -record.wins,
            -(record.games_won - record.games_lost),
            -record.games_won,
            entity_id,
        )

    return sorted(entity_ids, key=key)


def _first_match(by_round: dict[str, MatchResult], labels: tuple[str, ...]) -> MatchResult | None:
    for label in labels:
        if label in by_round:
            return by_round[label]
    return None


def knockout_placements(
    matches: Sequence[MatchResult],
    mode: CompetitionMode,
    aggregation: AggregationMode = "raw_point_sum",
) -> dict[str, int]:
    """Map entity id to final position. Empty when no final has been played."""
    require_list(matches, "matches")
    check_mode(mode)

    completed = [match for match in matches if match.is_countable]
    by_round: dict[str, MatchResult] = {}
    for match in completed:
        if match.round:
            by_round.setdefault(match.round, match)

    if _first_match(by_round, PLACEMENT_ROUNDS[0]) is None:
        return {}

    records = _group_records(completed, mode, aggregation)
    placements: dict[str, int] = {}
    next_position = 1

    for labels in PLACEMENT_ROUNDS:
        match = _first_match(by_round, labels)
        if match is None:
            continue

        total1, total2 = side_totals(match.set_scores, aggregation)
        outcome = match_outcome(total1, total2)
        if outcome is None:
            logger.debug("Placement match %s (%s) has no winner; skipped.", match.id, match.round)
            continue

        side1 = credited_entities(match.side1, mode)
        side2 = credited_entities(match.side2, mode)
        winners, losers = (side1, side2) if outcome == 1 else (side2, side1)

        for entity_id in _rank_within_side(winners, records) + _rank_within_side(losers, records):
            if entity_id in placements:
                continue
            placements[entity_id] = next_position
            next_position += 1

    return placements
