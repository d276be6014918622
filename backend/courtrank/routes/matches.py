from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas, serializers
from ..database import get_db

router = APIRouter(tags=["matches"])


@router.patch("/{match_id}/score", response_model=schemas.MatchRead)
def update_set_scores(
    match_id: int,
    payload: schemas.SetScoresUpdate,
    db: Session = Depends(get_db),
) -> schemas.MatchRead:
    try:
        match = crud.update_set_scores(db, match_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return serializers.match_to_read(match)


@router.patch("/{match_id}/status", response_model=schemas.MatchRead)
def update_status(
    match_id: int,
    payload: schemas.MatchStatusUpdate,
    db: Session = Depends(get_db),
) -> schemas.MatchRead:
    try:
        match = crud.update_match_status(db, match_id, payload.status)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return serializers.match_to_read(match)
