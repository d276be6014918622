import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import SessionLocal, init_db
from .models import Tournament
from .routes import accounts, leagues, matches, tournaments

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CourtRank API",
    version="1.0.0",
    description=(
        "Badminton group standings, knockout placements and multi-tournament "
        "league tables."
    ),
)

cors_origins = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173",
)
allow_origins = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()

# Last computed live league table per league id. Sync handlers share it without a lock;
# a snapshot is only ever replaced whole, so concurrent refreshes leave the last one written.
app.state.league_snapshots = {}


def should_auto_seed() -> bool:
    value = os.getenv("AUTO_SEED_ON_EMPTY", "false").strip().lower()
    return value in {"1", "true", "yes", "on"}


def seed_if_empty() -> None:
    if not should_auto_seed():
        return

    db = SessionLocal()
    try:
        has_tournaments = db.query(Tournament.id).first() is not None
    finally:
        db.close()

    if has_tournaments:
        return

    from seed import seed

    logger.info("Database is empty; loading demo league.")
    seed()


seed_if_empty()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(accounts.router, prefix="/accounts")
app.include_router(tournaments.router, prefix="/tournaments")
app.include_router(matches.router, prefix="/matches")
app.include_router(leagues.router, prefix="/leagues")
