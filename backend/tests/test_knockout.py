import pytest

from courtrank.engine.knockout import knockout_placements
from courtrank.engine.standings import compute_final_standings
from courtrank.schemas import Entity, MatchResult


def result(match_id, side1, side2, sets, round="group"):
    return MatchResult(id=match_id, side1=side1, side2=side2, set_scores=sets, status="completed", round=round)


def test_no_final_means_no_placements():
    matches = [
        result("m1", ["t1"], ["t2"], [(21, 10)]),
        result("m2", ["t3"], ["t4"], [(21, 10)], round="3rd_place"),
    ]

    assert knockout_placements(matches, "team") == {}


def test_unfinished_final_means_no_placements():
    final = MatchResult(id="f", side1=["t1"], side2=["t2"], round="final", status="in_progress", set_scores=[(11, 5)])

    assert knockout_placements([final], "team") == {}


def test_team_placements_follow_round_order():
    matches = [
        result("m1", ["t1"], ["t3"], [(21, 10)]),
        result("m5", ["t5"], ["t6"], [(10, 21)], round="5th_place"),
        result("m3", ["t3"], ["t4"], [(15, 21), (18, 21)], round="3rd_place"),
        result("m2", ["t1"], ["t2"], [(21, 19), (21, 17)], round="final"),
    ]

    assert knockout_placements(matches, "team") == {
        "t1": 1,
        "t2": 2,
        "t4": 3,
        "t3": 4,
        "t6": 5,
        "t5": 6,
    }


def test_mixed_final_label_counts_as_final():
    matches = [result("m1", ["t2"], ["t1"], [(21, 12)], round="mixed_final")]

    assert knockout_placements(matches, "team") == {"t2": 1, "t1": 2}


def test_partners_are_ordered_by_group_record():
    matches = [
        result("g1", ["p1", "p3"], ["p2", "p4"], [(10, 21)]),
        result("g2", ["p2", "p3"], ["p1", "p4"], [(21, 15)]),
        result("f", ["p1", "p2"], ["p3", "p4"], [(21, 18), (21, 16)], round="final"),
    ]

    placements = knockout_placements(matches, "individual")

    # p2 won both group matches and p1 neither; p4 beats p3 on point difference.
    assert placements == {"p2": 1, "p1": 2, "p4": 3, "p3": 4}


def test_drawn_placement_match_is_skipped():
    matches = [
        result("f", ["t1"], ["t2"], [(21, 15)], round="final"),
        result("b", ["t3"], ["t4"], [(21, 19), (19, 21)], round="3rd_place"),
        result("c", ["t5"], ["t6"], [(21, 15)], round="5th_place"),
    ]

    assert knockout_placements(matches, "team") == {"t1": 1, "t2": 2, "t5": 3, "t6": 4}


def test_placements_become_final_positions():
    matches = [
        result("g1", ["t1"], ["t2"], [(21, 5), (21, 5)]),
        result("f", ["t2"], ["t1"], [(21, 19), (22, 20)], round="final"),
    ]
    placements = knockout_placements(matches, "team")
    entities = [
        Entity(id=entity_id, display_name=entity_id, final_position=placements.get(entity_id))
        for entity_id in ("t1", "t2", "t3")
    ]

    rows = compute_final_standings(matches, entities, "team")

    assert [(row.entity_id, row.position) for row in rows] == [("t2", 1), ("t1", 2), ("t3", 3)]


def test_invalid_arguments_raise():
    with pytest.raises(ValueError):
        knockout_placements(None, "team")
    with pytest.raises(ValueError):
        knockout_placements([], "mixed")
