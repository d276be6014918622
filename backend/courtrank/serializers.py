from . import models, schemas

SET_COLUMNS = (
    ("team1_score_set1", "team2_score_set1"),
    ("team1_score_set2", "team2_score_set2"),
    ("team1_score_set3", "team2_score_set3"),
)


def _id(value: int | None) -> str | None:
    return str(value) if value is not None else None


def match_sides(match: models.Match) -> tuple[list[int], list[int]]:
    if match.team1_id is not None or match.team2_id is not None:
        side1 = [match.team1_id] if match.team1_id is not None else []
        side2 = [match.team2_id] if match.team2_id is not None else []
        return side1, side2

    side1 = [pid for pid in (match.player1_id, match.player2_id) if pid is not None]
    side2 = [pid for pid in (match.player3_id, match.player4_id) if pid is not None]
    return side1, side2


def match_set_scores(match: models.Match) -> list[tuple[int, int]]:
    # A set is recorded only when both sides have a value; unplayed sets stay absent.
    scores: list[tuple[int, int]] = []
    for column1, column2 in SET_COLUMNS:
        score1 = getattr(match, column1)
        score2 = getattr(match, column2)
        if score1 is None or score2 is None:
            continue
        scores.append((score1, score2))
    return scores


def match_to_result(match: models.Match) -> schemas.MatchResult | None:
    side1, side2 = match_sides(match)
    if not side1 or not side2:
        return None

    return schemas.MatchResult(
        id=str(match.id),
        group_name=match.group_name,
        status=match.status,
        round=match.round,
        side1=[str(entity_id) for entity_id in side1],
        side2=[str(entity_id) for entity_id in side2],
        set_scores=match_set_scores(match),
    )


def player_to_entity(player: models.Player) -> schemas.Entity:
    return schemas.Entity(
        id=str(player.id),
        display_name=player.name,
        group_name=player.group_name,
        final_position=player.final_position,
        account_id=_id(player.account_id),
        category=player.account.player_category if player.account else None,
    )


def _member(player: models.Player | None) -> list[schemas.MemberRef]:
    if player is None:
        return []
    return [
        schemas.MemberRef(
            id=str(player.id),
            name=player.name,
            account_id=_id(player.account_id),
            category=player.account.player_category if player.account else None,
        )
    ]


def team_to_entity(team: models.Team) -> schemas.Entity:
    return schemas.Entity(
        id=str(team.id),
        display_name=team.name,
        group_name=team.group_name,
        final_position=team.final_position,
        members=_member(team.player1) + _member(team.player2),
    )


def _side_names(match: models.Match) -> tuple[list[str], list[str]]:
    if match.team1_id is not None or match.team2_id is not None:
        return (
            [match.team1.name if match.team1 else "TBD"],
            [match.team2.name if match.team2 else "TBD"],
        )

    side1 = [player.name for player in (match.player1, match.player2) if player is not None]
    side2 = [player.name for player in (match.player3, match.player4) if player is not None]
    return side1, side2


def match_to_read(match: models.Match) -> schemas.MatchRead:
    side1, side2 = match_sides(match)
    side1_names, side2_names = _side_names(match)

    return schemas.MatchRead(
        id=match.id,
        tournament_id=match.tournament_id,
        round=match.round,
        group_name=match.group_name,
        status=match.status,
        side1=side1,
        side2=side2,
        side1_names=side1_names,
        side2_names=side2_names,
        set_scores=match_set_scores(match),
    )


def league_to_schema(league: models.League) -> schemas.League:
    return schemas.League(
        id=str(league.id),
        name=league.name,
        start_date=league.start_date,
        end_date=league.end_date,
        scoring_system=league.scoring_system,
        categories=league.categories,
        category_scoring_systems=league.category_scoring_systems,
    )


def standing_record_to_schema(record: models.LeagueStandingRecord) -> schemas.LeagueStanding:
    return schemas.LeagueStanding(
        entity_name=record.entity_name,
        account_id=_id(record.account_id),
        total_points=record.total_points,
        tournaments_played=record.tournaments_played,
        best_position=record.best_position,
        player_category=record.player_category,
        position=record.position,
    )
