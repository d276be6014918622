from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(tags=["accounts"])


@router.post("/", response_model=schemas.PlayerAccountRead, status_code=status.HTTP_201_CREATED)
def create_account(account: schemas.PlayerAccountCreate, db: Session = Depends(get_db)) -> schemas.PlayerAccountRead:
    try:
        return crud.create_account(db, account)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{account_id}/record", response_model=schemas.PlayerRecord)
def account_record(account_id: int, db: Session = Depends(get_db)) -> schemas.PlayerRecord:
    try:
        return crud.build_account_record(db, account_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
