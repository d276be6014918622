import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from . import models, schemas, serializers
from .engine.knockout import knockout_placements
from .engine.league import aggregate_league, category_counts, filter_by_category
from .engine.scoring import GROUP_STANDINGS, StandingsPolicy
from .engine.snapshot import StandingsSnapshot, fingerprint_inputs, refresh
from .engine.standings import compute_final_standings, compute_standings, player_record, standings_by_group

logger = logging.getLogger(__name__)

MAX_SET_POINTS = 99


def _normalize_text(value: str | None) -> str:
    return " ".join((value or "").split())


def _group_name(value: str | None) -> str | None:
    return _normalize_text(value) or None


# ---------------------------------------------------------------------------
# Player accounts
# ---------------------------------------------------------------------------


def create_account(db: Session, payload: schemas.PlayerAccountCreate) -> models.PlayerAccount:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Player name cannot be empty.")

    account = models.PlayerAccount(name=name, player_category=_normalize_text(payload.player_category) or None)
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def get_account_or_raise(db: Session, account_id: int) -> models.PlayerAccount:
    account = db.get(models.PlayerAccount, account_id)
    if not account:
        raise LookupError("Player account not found.")
    return account


def build_account_record(db: Session, account_id: int) -> schemas.PlayerRecord:
    account = get_account_or_raise(db, account_id)
    registrations = db.query(models.Player).filter(models.Player.account_id == account.id).all()
    player_ids = {player.id for player in registrations}
    if not player_ids:
        return schemas.PlayerRecord()

    teams = (
        db.query(models.Team)
        .filter((models.Team.player1_id.in_(player_ids)) | (models.Team.player2_id.in_(player_ids)))
        .all()
    )
    team_ids = {team.id for team in teams}
    tournament_ids = {player.tournament_id for player in registrations}

    individual_matches: list[schemas.MatchResult] = []
    team_matches: list[schemas.MatchResult] = []
    for match in db.query(models.Match).filter(models.Match.tournament_id.in_(tournament_ids)).all():
        result = serializers.match_to_result(match)
        if result is None:
            continue
        if match.team1_id is not None:
            team_matches.append(result)
        else:
            individual_matches.append(result)

    # Player and team ids share a number space, so each kind is tallied on its own.
    individual = player_record(individual_matches, {str(pid) for pid in player_ids})
    as_team = player_record(team_matches, {str(tid) for tid in team_ids})
    return schemas.PlayerRecord(
        wins=individual.wins + as_team.wins,
        draws=individual.draws + as_team.draws,
        losses=individual.losses + as_team.losses,
    )


# ---------------------------------------------------------------------------
# Tournaments, teams and players
# ---------------------------------------------------------------------------


def create_tournament(db: Session, payload: schemas.TournamentCreate) -> models.Tournament:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Tournament name cannot be empty.")

    tournament = models.Tournament(
        name=name,
        mode=payload.mode,
        status="scheduled",
        category=_normalize_text(payload.category) or None,
        start_date=payload.start_date,
    )
    db.add(tournament)
    db.commit()
    db.refresh(tournament)
    return tournament


def get_tournaments(db: Session) -> list[models.Tournament]:
    return db.query(models.Tournament).order_by(models.Tournament.id.asc()).all()


def get_tournament_or_raise(db: Session, tournament_id: int) -> models.Tournament:
    tournament = db.get(models.Tournament, tournament_id)
    if not tournament:
        raise LookupError("Tournament not found.")
    return tournament


def _assert_open(tournament: models.Tournament) -> None:
    if tournament.status == "completed":
        raise ValueError("Tournament is already completed.")


def create_player(db: Session, tournament_id: int, payload: schemas.PlayerCreate) -> models.Player:
    tournament = get_tournament_or_raise(db, tournament_id)
    _assert_open(tournament)

    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Player name cannot be empty.")

    if payload.account_id is not None:
        get_account_or_raise(db, payload.account_id)

    existing = (
        db.query(models.Player)
        .filter(
            models.Player.tournament_id == tournament.id,
            func.lower(models.Player.name) == name.lower(),
        )
        .first()
    )
    if existing:
        raise ValueError("A player with this name is already registered in this tournament.")

    player = models.Player(
        tournament_id=tournament.id,
        name=name,
        group_name=_group_name(payload.group_name),
        account_id=payload.account_id,
    )
    db.add(player)
    db.commit()
    db.refresh(player)
    return player


def create_team(db: Session, tournament_id: int, payload: schemas.TeamCreate) -> models.Team:
    tournament = get_tournament_or_raise(db, tournament_id)
    _assert_open(tournament)
    if tournament.mode != "team":
        raise ValueError("Teams can only be added to team tournaments.")

    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("Team name cannot be empty.")

    existing = (
        db.query(models.Team)
        .filter(
            models.Team.tournament_id == tournament.id,
            func.lower(models.Team.name) == name.lower(),
        )
        .first()
    )
    if existing:
        raise ValueError("A team with this name already exists in this tournament.")

    if payload.player1_id is not None and payload.player1_id == payload.player2_id:
        raise ValueError("A team needs two different players.")

    for player_id in (payload.player1_id, payload.player2_id):
        if player_id is None:
            continue
        player = db.get(models.Player, player_id)
        if not player or player.tournament_id != tournament.id:
            raise LookupError(f"Player {player_id} not found in this tournament.")

    team = models.Team(
        tournament_id=tournament.id,
        name=name,
        group_name=_group_name(payload.group_name),
        player1_id=payload.player1_id,
        player2_id=payload.player2_id,
    )
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


def _tournament_entities(db: Session, tournament: models.Tournament) -> list[schemas.Entity]:
    if tournament.mode == "team":
        teams = (
            db.query(models.Team)
            .options(
                selectinload(models.Team.player1).selectinload(models.Player.account),
                selectinload(models.Team.player2).selectinload(models.Player.account),
            )
            .filter(models.Team.tournament_id == tournament.id)
            .order_by(models.Team.id.asc())
            .all()
        )
        return [serializers.team_to_entity(team) for team in teams]

    players = (
        db.query(models.Player)
        .options(selectinload(models.Player.account))
        .filter(models.Player.tournament_id == tournament.id)
        .order_by(models.Player.id.asc())
        .all()
    )
    return [serializers.player_to_entity(player) for player in players]


def _tournament_matches(db: Session, tournament: models.Tournament) -> list[schemas.MatchResult]:
    matches = (
        db.query(models.Match)
        .filter(models.Match.tournament_id == tournament.id)
        .order_by(models.Match.id.asc())
        .all()
    )
    results = [serializers.match_to_result(match) for match in matches]
    return [result for result in results if result is not None]


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


def get_match_or_raise(db: Session, match_id: int) -> models.Match:
    match = (
        db.query(models.Match)
        .options(
            selectinload(models.Match.tournament),
            selectinload(models.Match.team1),
            selectinload(models.Match.team2),
            selectinload(models.Match.player1),
            selectinload(models.Match.player2),
            selectinload(models.Match.player3),
            selectinload(models.Match.player4),
        )
        .filter(models.Match.id == match_id)
        .first()
    )
    if not match:
        raise LookupError("Match not found.")
    return match


def list_matches(db: Session, tournament_id: int) -> list[models.Match]:
    get_tournament_or_raise(db, tournament_id)
    return (
        db.query(models.Match)
        .options(
            selectinload(models.Match.team1),
            selectinload(models.Match.team2),
            selectinload(models.Match.player1),
            selectinload(models.Match.player2),
            selectinload(models.Match.player3),
            selectinload(models.Match.player4),
        )
        .filter(models.Match.tournament_id == tournament_id)
        .order_by(models.Match.id.asc())
        .all()
    )


def create_match(db: Session, tournament_id: int, payload: schemas.MatchCreate) -> models.Match:
    tournament = get_tournament_or_raise(db, tournament_id)
    _assert_open(tournament)

    if set(payload.side1) & set(payload.side2):
        raise ValueError("The same entity cannot play on both sides.")
    if len(set(payload.side1)) != len(payload.side1) or len(set(payload.side2)) != len(payload.side2):
        raise ValueError("An entity is listed twice on the same side.")

    entity_model = models.Team if tournament.mode == "team" else models.Player
    for entity_id in payload.side1 + payload.side2:
        entity = db.get(entity_model, entity_id)
        if not entity or entity.tournament_id != tournament.id:
            raise LookupError(f"{entity_model.__name__} {entity_id} not found in this tournament.")

    match = models.Match(
        tournament_id=tournament.id,
        round=_normalize_text(payload.round) or "group",
        group_name=_group_name(payload.group_name),
        status="scheduled",
    )
    if tournament.mode == "team":
        if len(payload.side1) != 1 or len(payload.side2) != 1:
            raise ValueError("Team matches list exactly one team per side.")
        match.team1_id = payload.side1[0]
        match.team2_id = payload.side2[0]
    else:
        match.player1_id, match.player2_id = (payload.side1 + [None])[:2]
        match.player3_id, match.player4_id = (payload.side2 + [None])[:2]

    db.add(match)
    db.commit()
    return get_match_or_raise(db, match.id)


def update_set_scores(db: Session, match_id: int, payload: schemas.SetScoresUpdate) -> models.Match:
    match = get_match_or_raise(db, match_id)
    _assert_open(match.tournament)

    for score1, score2 in payload.set_scores:
        if score1 > MAX_SET_POINTS or score2 > MAX_SET_POINTS:
            raise ValueError(f"Set scores cannot exceed {MAX_SET_POINTS}.")

    padded = list(payload.set_scores) + [None] * (len(serializers.SET_COLUMNS) - len(payload.set_scores))
    for (column1, column2), pair in zip(serializers.SET_COLUMNS, padded):
        setattr(match, column1, pair[0] if pair else None)
        setattr(match, column2, pair[1] if pair else None)

    match.status = "completed" if payload.complete else "in_progress"
    if match.tournament.status == "scheduled":
        match.tournament.status = "in_progress"

    db.commit()
    return get_match_or_raise(db, match.id)


def update_match_status(db: Session, match_id: int, status: schemas.MatchStatus) -> models.Match:
    match = get_match_or_raise(db, match_id)
    _assert_open(match.tournament)

    match.status = status
    db.commit()
    return get_match_or_raise(db, match.id)


# ---------------------------------------------------------------------------
# Tournament standings and finalization
# ---------------------------------------------------------------------------


def build_tournament_standings(
    db: Session,
    tournament_id: int,
    policy: StandingsPolicy = GROUP_STANDINGS,
) -> schemas.TournamentStandings:
    tournament = get_tournament_or_raise(db, tournament_id)
    rows = compute_standings(
        _tournament_matches(db, tournament),
        _tournament_entities(db, tournament),
        tournament.mode,
        policy,
    )

    return schemas.TournamentStandings(
        tournament_id=tournament.id,
        mode=tournament.mode,
        groups=[
            schemas.GroupStandings(group_name=group_name, rows=group_rows)
            for group_name, group_rows in standings_by_group(rows).items()
        ],
    )


def _apply_placements(db: Session, tournament: models.Tournament, placements: dict[str, int]) -> None:
    entity_model = models.Team if tournament.mode == "team" else models.Player
    rows = db.query(entity_model).filter(entity_model.tournament_id == tournament.id).all()
    for row in rows:
        row.final_position = placements.get(str(row.id))


def finalize_tournament(db: Session, tournament_id: int) -> schemas.FinalizeSummary:
    tournament = get_tournament_or_raise(db, tournament_id)
    _assert_open(tournament)

    placements = knockout_placements(_tournament_matches(db, tournament), tournament.mode)
    if placements:
        _apply_placements(db, tournament, placements)

    tournament.status = "completed"
    db.commit()
    logger.info(
        "Tournament %s finalized with %d knockout placements.",
        tournament.id,
        len(placements),
    )

    league_ids = sorted({link.league_id for link in tournament.league_links})
    for league_id in league_ids:
        recalculate_league_standings(db, league_id)

    return schemas.FinalizeSummary(
        tournament_id=tournament.id,
        placements=placements,
        leagues_recalculated=league_ids,
    )


# ---------------------------------------------------------------------------
# Leagues
# ---------------------------------------------------------------------------


def create_league(db: Session, payload: schemas.LeagueCreate) -> models.League:
    name = _normalize_text(payload.name)
    if not name:
        raise ValueError("League name cannot be empty.")

    if payload.start_date and payload.end_date and payload.end_date < payload.start_date:
        raise ValueError("League end date cannot be before its start date.")

    categories = [_normalize_text(category) for category in payload.categories if _normalize_text(category)]
    unknown = set(payload.category_scoring_systems) - set(categories)
    if categories and unknown:
        raise ValueError(f"Scoring tables given for unknown categories: {', '.join(sorted(unknown))}.")

    existing = db.query(models.League).filter(func.lower(models.League.name) == name.lower()).first()
    if existing:
        raise ValueError("A league with this name already exists.")

    # JSON columns keep string keys, the way the tables arrive from clients.
    league = models.League(
        name=name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        scoring_system={str(position): points for position, points in payload.scoring_system.items()},
        categories=categories,
        category_scoring_systems={
            category: {str(position): points for position, points in table.items()}
            for category, table in payload.category_scoring_systems.items()
        },
    )
    db.add(league)
    db.commit()
    db.refresh(league)
    return league


def get_leagues(db: Session) -> list[models.League]:
    return db.query(models.League).order_by(models.League.name.asc()).all()


def get_league_or_raise(db: Session, league_id: int) -> models.League:
    league = db.get(models.League, league_id)
    if not league:
        raise LookupError("League not found.")
    return league


def link_tournament(db: Session, league_id: int, payload: schemas.TournamentLeagueLink) -> models.TournamentLeague:
    league = get_league_or_raise(db, league_id)
    tournament = get_tournament_or_raise(db, payload.tournament_id)

    existing = (
        db.query(models.TournamentLeague)
        .filter(
            models.TournamentLeague.league_id == league.id,
            models.TournamentLeague.tournament_id == tournament.id,
        )
        .first()
    )
    if existing:
        raise ValueError("Tournament is already part of this league.")

    league_category = _normalize_text(payload.league_category) or None
    if league_category and league.categories and league_category not in league.categories:
        raise ValueError(f"League has no category {league_category}.")

    link = models.TournamentLeague(
        league_id=league.id,
        tournament_id=tournament.id,
        league_category=league_category,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def league_inputs(
    db: Session,
    league: models.League,
) -> tuple[dict[int, list[schemas.StandingRow]], dict[int, str | None]]:
    links = (
        db.query(models.TournamentLeague)
        .options(selectinload(models.TournamentLeague.tournament))
        .filter(models.TournamentLeague.league_id == league.id)
        .order_by(models.TournamentLeague.tournament_id.asc())
        .all()
    )

    per_tournament: dict[int, list[schemas.StandingRow]] = {}
    tournament_categories: dict[int, str | None] = {}
    for link in links:
        tournament = link.tournament
        if tournament.status != "completed":
            continue

        per_tournament[tournament.id] = compute_final_standings(
            _tournament_matches(db, tournament),
            _tournament_entities(db, tournament),
            tournament.mode,
        )
        tournament_categories[tournament.id] = link.league_category or tournament.category

    # Player categories travel on the rows, read from each registration's account.
    return per_tournament, tournament_categories


def compute_league_standings(db: Session, league_id: int) -> list[schemas.LeagueStanding]:
    league = get_league_or_raise(db, league_id)
    per_tournament, tournament_categories = league_inputs(db, league)
    return aggregate_league(
        serializers.league_to_schema(league),
        per_tournament,
        tournament_categories=tournament_categories,
    )


def live_league_snapshot(
    db: Session,
    league_id: int,
    snapshot: StandingsSnapshot[schemas.LeagueStanding] | None = None,
) -> StandingsSnapshot[schemas.LeagueStanding]:
    league = get_league_or_raise(db, league_id)
    league_schema = serializers.league_to_schema(league)
    per_tournament, tournament_categories = league_inputs(db, league)
    fingerprint = fingerprint_inputs(league_schema, per_tournament, tournament_categories)

    return refresh(
        snapshot,
        fingerprint,
        lambda: aggregate_league(
            league_schema,
            per_tournament,
            tournament_categories=tournament_categories,
        ),
    )


def recalculate_league_standings(db: Session, league_id: int) -> list[schemas.LeagueStanding]:
    league = get_league_or_raise(db, league_id)
    standings = compute_league_standings(db, league.id)

    db.query(models.LeagueStandingRecord).filter(models.LeagueStandingRecord.league_id == league.id).delete()
    db.add_all(
        [
            models.LeagueStandingRecord(
                league_id=league.id,
                entity_name=row.entity_name,
                account_id=int(row.account_id) if row.account_id else None,
                total_points=row.total_points,
                tournaments_played=row.tournaments_played,
                best_position=row.best_position,
                player_category=row.player_category,
                position=row.position,
            )
            for row in standings
        ]
    )
    db.commit()

    logger.info("League %s recalculated: %d standings.", league.id, len(standings))
    return standings


def get_league_table(db: Session, league_id: int, category: str = "all") -> schemas.LeagueTable:
    league = get_league_or_raise(db, league_id)
    records = (
        db.query(models.LeagueStandingRecord)
        .filter(models.LeagueStandingRecord.league_id == league.id)
        .order_by(models.LeagueStandingRecord.position.asc())
        .all()
    )
    rows = [serializers.standing_record_to_schema(record) for record in records]
    return league_table_from_rows(league.id, rows, category)


def league_table_from_rows(
    league_id: int,
    rows: list[schemas.LeagueStanding],
    category: str = "all",
) -> schemas.LeagueTable:
    return schemas.LeagueTable(
        league_id=league_id,
        category=category,
        category_counts=category_counts(rows),
        rows=filter_by_category(rows, category),
    )
