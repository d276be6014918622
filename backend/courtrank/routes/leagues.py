from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from .. import crud, export, schemas, serializers
from ..database import get_db

router = APIRouter(tags=["leagues"])


@router.get("/", response_model=list[schemas.LeagueRead])
def list_leagues(db: Session = Depends(get_db)) -> list[schemas.LeagueRead]:
    return crud.get_leagues(db)


@router.post("/", response_model=schemas.LeagueRead, status_code=status.HTTP_201_CREATED)
def create_league(league: schemas.LeagueCreate, db: Session = Depends(get_db)) -> schemas.LeagueRead:
    try:
        return crud.create_league(db, league)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/{league_id}/tournaments", response_model=schemas.TournamentLeagueLink, status_code=status.HTTP_201_CREATED)
def link_tournament(
    league_id: int,
    payload: schemas.TournamentLeagueLink,
    db: Session = Depends(get_db),
) -> schemas.TournamentLeagueLink:
    try:
        link = crud.link_tournament(db, league_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return schemas.TournamentLeagueLink(tournament_id=link.tournament_id, league_category=link.league_category)


@router.post("/{league_id}/recalculate", response_model=schemas.LeagueTable)
def recalculate(league_id: int, db: Session = Depends(get_db)) -> schemas.LeagueTable:
    try:
        rows = crud.recalculate_league_standings(db, league_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return crud.league_table_from_rows(league_id, rows)


@router.get("/{league_id}/standings", response_model=schemas.LeagueTable)
def league_standings(
    league_id: int,
    request: Request,
    category: str = Query(default="all", min_length=1, max_length=32),
    live: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> schemas.LeagueTable:
    try:
        if not live:
            return crud.get_league_table(db, league_id, category)

        snapshots = request.app.state.league_snapshots
        snapshot = crud.live_league_snapshot(db, league_id, snapshots.get(league_id))
        snapshots[league_id] = snapshot
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return crud.league_table_from_rows(league_id, list(snapshot.rows), category)


@router.get("/{league_id}/standings.csv")
def league_standings_csv(
    league_id: int,
    category: str = Query(default="all", min_length=1, max_length=32),
    db: Session = Depends(get_db),
) -> Response:
    try:
        table = crud.get_league_table(db, league_id, category)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return Response(
        content=export.league_standings_csv(table.rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=league_{league_id}_standings.csv"},
    )


@router.get("/{league_id}/standings.pdf")
def league_standings_pdf(
    league_id: int,
    category: str = Query(default="all", min_length=1, max_length=32),
    db: Session = Depends(get_db),
) -> Response:
    try:
        league = crud.get_league_or_raise(db, league_id)
        table = crud.get_league_table(db, league_id, category)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return Response(
        content=export.league_standings_pdf(serializers.league_to_schema(league), table.rows, category),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=league_{league_id}_standings.pdf"},
    )
