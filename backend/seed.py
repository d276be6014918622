import argparse
from datetime import date
from itertools import combinations

from courtrank import crud, schemas
from courtrank.database import Base, SessionLocal, engine

ACCOUNTS = {
    "Arjun Dixith": "A",
    "Swaroop": "A",
    "Karan": "A",
    "Lavanya": "A",
    "Nitesh": "B",
    "Himani": "B",
    "Pradeep": "B",
    "Hetal": "B",
}

LEAGUE = {
    "name": "Spring Ladder",
    "start_date": date(2026, 3, 1),
    "end_date": date(2026, 6, 30),
    "scoring_system": {1: 10, 2: 8, 3: 6, 4: 4, 5: 3, 6: 2, 7: 1, 8: 1},
    "categories": ["A", "B"],
    "category_scoring_systems": {
        "A": {1: 12, 2: 9, 3: 7, 4: 5},
        "B": {1: 10, 2: 7, 3: 5, 4: 3},
    },
}

# Rotating partners: each round pairs the first two names against the last two.
CLUB_NIGHT_ROUNDS = [
    ("Arjun Dixith", "Nitesh", "Swaroop", "Himani"),
    ("Arjun Dixith", "Himani", "Swaroop", "Nitesh"),
    ("Arjun Dixith", "Swaroop", "Nitesh", "Himani"),
    ("Karan", "Pradeep", "Lavanya", "Hetal"),
    ("Karan", "Hetal", "Lavanya", "Pradeep"),
    ("Karan", "Lavanya", "Pradeep", "Hetal"),
]
CLUB_NIGHT_SCORES = [
    [(21, 17), (21, 19)],
    [(18, 21), (21, 15), (21, 19)],
    [(21, 12), (21, 14)],
    [(21, 16), (19, 21), (21, 18)],
    [(15, 21), (17, 21)],
    [(21, 18), (21, 11)],
]

TEAM_CUP_TEAMS = {
    "Golden Monks": ("Arjun Dixith", "Hetal"),
    "Spartans": ("Swaroop", "Pradeep"),
    "Feather Fighters": ("Karan", "Himani"),
    "Smash Hawks": ("Lavanya", "Nitesh"),
}


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def demo_scores(match_no: int) -> list[tuple[int, int]]:
    return CLUB_NIGHT_SCORES[match_no % len(CLUB_NIGHT_SCORES)]


def seed_club_night(db, accounts: dict[str, int], league_id: int, demo_progress: bool) -> None:
    tournament = crud.create_tournament(
        db,
        schemas.TournamentCreate(name="Club Night 1", mode="individual", start_date=date(2026, 3, 14)),
    )
    players: dict[str, int] = {}
    for name, account_id in accounts.items():
        group = "Court 1" if name in CLUB_NIGHT_ROUNDS[0] else "Court 2"
        player = crud.create_player(
            db,
            tournament.id,
            schemas.PlayerCreate(name=name, group_name=group, account_id=account_id),
        )
        players[name] = player.id

    crud.link_tournament(db, league_id, schemas.TournamentLeagueLink(tournament_id=tournament.id))

    for match_no, (a, b, c, d) in enumerate(CLUB_NIGHT_ROUNDS):
        group = "Court 1" if a in CLUB_NIGHT_ROUNDS[0] else "Court 2"
        match = crud.create_match(
            db,
            tournament.id,
            schemas.MatchCreate(
                group_name=group,
                side1=[players[a], players[b]],
                side2=[players[c], players[d]],
            ),
        )
        if demo_progress:
            crud.update_set_scores(db, match.id, schemas.SetScoresUpdate(set_scores=demo_scores(match_no)))

    if demo_progress:
        crud.finalize_tournament(db, tournament.id)


def seed_team_cup(db, accounts: dict[str, int], league_id: int, demo_progress: bool) -> None:
    tournament = crud.create_tournament(
        db,
        schemas.TournamentCreate(name="Team Cup", mode="team", start_date=date(2026, 4, 18)),
    )
    teams: dict[str, int] = {}
    for team_name, (first, second) in TEAM_CUP_TEAMS.items():
        player1 = crud.create_player(db, tournament.id, schemas.PlayerCreate(name=first, account_id=accounts[first]))
        player2 = crud.create_player(db, tournament.id, schemas.PlayerCreate(name=second, account_id=accounts[second]))
        team = crud.create_team(
            db,
            tournament.id,
            schemas.TeamCreate(name=team_name, player1_id=player1.id, player2_id=player2.id),
        )
        teams[team_name] = team.id

    crud.link_tournament(db, league_id, schemas.TournamentLeagueLink(tournament_id=tournament.id))

    for match_no, (team1, team2) in enumerate(combinations(TEAM_CUP_TEAMS, 2)):
        match = crud.create_match(
            db,
            tournament.id,
            schemas.MatchCreate(side1=[teams[team1]], side2=[teams[team2]]),
        )
        if demo_progress:
            crud.update_set_scores(db, match.id, schemas.SetScoresUpdate(set_scores=demo_scores(match_no)))

    if demo_progress:
        names = list(TEAM_CUP_TEAMS)
        final = crud.create_match(
            db,
            tournament.id,
            schemas.MatchCreate(round="final", side1=[teams[names[0]]], side2=[teams[names[1]]]),
        )
        crud.update_set_scores(db, final.id, schemas.SetScoresUpdate(set_scores=[(21, 19), (22, 20)]))
        crud.finalize_tournament(db, tournament.id)


def seed(*, demo_progress: bool = False) -> None:
    reset_database()

    db = SessionLocal()
    try:
        accounts: dict[str, int] = {}
        for name, category in ACCOUNTS.items():
            account = crud.create_account(db, schemas.PlayerAccountCreate(name=name, player_category=category))
            accounts[name] = account.id

        league = crud.create_league(db, schemas.LeagueCreate(**LEAGUE))
        seed_club_night(db, accounts, league.id, demo_progress)
        seed_team_cup(db, accounts, league.id, demo_progress)
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo league.")
    parser.add_argument(
        "--demo-progress",
        action="store_true",
        help="Enter scores and finalize both tournaments so league tables are populated.",
    )
    args = parser.parse_args()

    seed(demo_progress=args.demo_progress)
    mode = "demo" if args.demo_progress else "fresh"
    print(f"Seed completed ({mode})")
