from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import crud, export, schemas, serializers
from ..database import get_db
from ..engine.scoring import AggregationMode, LoserPointPolicy, SortPrimaryKey, StandingsPolicy

router = APIRouter(tags=["tournaments"])


def _not_found_or_bad_request(exc: Exception) -> HTTPException:
    if isinstance(exc, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def standings_policy(
    aggregation: AggregationMode = Query(default="raw_point_sum"),
    sort_primary: SortPrimaryKey = Query(default="points"),
    loser_points: LoserPointPolicy = Query(default="zero"),
) -> StandingsPolicy:
    return StandingsPolicy(aggregation=aggregation, sort_primary_key=sort_primary, loser_points=loser_points)


@router.get("/", response_model=list[schemas.TournamentRead])
def list_tournaments(db: Session = Depends(get_db)) -> list[schemas.TournamentRead]:
    return crud.get_tournaments(db)


@router.post("/", response_model=schemas.TournamentRead, status_code=status.HTTP_201_CREATED)
def create_tournament(tournament: schemas.TournamentCreate, db: Session = Depends(get_db)) -> schemas.TournamentRead:
    try:
        return crud.create_tournament(db, tournament)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/{tournament_id}/teams", response_model=schemas.TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(tournament_id: int, team: schemas.TeamCreate, db: Session = Depends(get_db)) -> schemas.TeamRead:
    try:
        return crud.create_team(db, tournament_id, team)
    except (LookupError, ValueError) as exc:
        raise _not_found_or_bad_request(exc) from exc


@router.post("/{tournament_id}/players", response_model=schemas.PlayerRead, status_code=status.HTTP_201_CREATED)
def create_player(tournament_id: int, player: schemas.PlayerCreate, db: Session = Depends(get_db)) -> schemas.PlayerRead:
    try:
        return crud.create_player(db, tournament_id, player)
    except (LookupError, ValueError) as exc:
        raise _not_found_or_bad_request(exc) from exc


@router.get("/{tournament_id}/matches", response_model=list[schemas.MatchRead])
def list_matches(tournament_id: int, db: Session = Depends(get_db)) -> list[schemas.MatchRead]:
    try:
        matches = crud.list_matches(db, tournament_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return [serializers.match_to_read(match) for match in matches]


@router.post("/{tournament_id}/matches", response_model=schemas.MatchRead, status_code=status.HTTP_201_CREATED)
def create_match(tournament_id: int, match: schemas.MatchCreate, db: Session = Depends(get_db)) -> schemas.MatchRead:
    try:
        created = crud.create_match(db, tournament_id, match)
    except (LookupError, ValueError) as exc:
        raise _not_found_or_bad_request(exc) from exc

    return serializers.match_to_read(created)


@router.get("/{tournament_id}/standings", response_model=schemas.TournamentStandings)
def tournament_standings(
    tournament_id: int,
    policy: StandingsPolicy = Depends(standings_policy),
    db: Session = Depends(get_db),
) -> schemas.TournamentStandings:
    try:
        return crud.build_tournament_standings(db, tournament_id, policy)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{tournament_id}/standings.csv")
def tournament_standings_csv(
    tournament_id: int,
    policy: StandingsPolicy = Depends(standings_policy),
    db: Session = Depends(get_db),
) -> Response:
    try:
        standings = crud.build_tournament_standings(db, tournament_id, policy)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    rows = [row for group in standings.groups for row in group.rows]
    return Response(
        content=export.tournament_standings_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=tournament_{tournament_id}_standings.csv"},
    )


@router.post("/{tournament_id}/finalize", response_model=schemas.FinalizeSummary)
def finalize_tournament(tournament_id: int, db: Session = Depends(get_db)) -> schemas.FinalizeSummary:
    try:
        return crud.finalize_tournament(db, tournament_id)
    except (LookupError, ValueError) as exc:
        raise _not_found_or_bad_request(exc) from exc
