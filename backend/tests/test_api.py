import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from courtrank import models
from courtrank.database import Base, get_db
from courtrank.main import app


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    Base.metadata.create_all(bind=engine)
    return session_factory


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.league_snapshots = {}
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def post(client, url, payload):
    response = client.post(url, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def score(client, match_id, sets):
    response = client.patch(f"/matches/{match_id}/score", json={"set_scores": sets})
    assert response.status_code == 200, response.text
    return response.json()


def seed_team_league(client):
    accounts = {
        name: post(client, "/accounts/", {"name": name, "player_category": category})["id"]
        for name, category in (("Ana", "A"), ("Bea", "B"), ("Cai", None), ("Dan", "A"))
    }
    league = post(
        client,
        "/leagues/",
        {
            "name": "Spring Ladder",
            "scoring_system": {"1": 10, "2": 6, "3": 4},
            "categories": ["A", "B"],
            "category_scoring_systems": {"A": {"1": 12, "2": 8}},
        },
    )
    tournament = post(client, "/tournaments/", {"name": "Team Cup", "mode": "team"})

    players = {
        name: post(
            client,
            f"/tournaments/{tournament['id']}/players",
            {"name": name, "account_id": account_id},
        )["id"]
        for name, account_id in accounts.items()
    }
    smash = post(
        client,
        f"/tournaments/{tournament['id']}/teams",
        {"name": "Smash", "player1_id": players["Ana"], "player2_id": players["Bea"]},
    )
    drop = post(
        client,
        f"/tournaments/{tournament['id']}/teams",
        {"name": "Drop", "player1_id": players["Cai"], "player2_id": players["Dan"]},
    )
    post(client, f"/leagues/{league['id']}/tournaments", {"tournament_id": tournament["id"]})

    return accounts, league, tournament, smash, drop


def test_healthcheck(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_team_tournament_feeds_league_table(client):
    accounts, league, tournament, smash, drop = seed_team_league(client)
    match = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"side1": [smash["id"]], "side2": [drop["id"]]},
    )
    scored = score(client, match["id"], [[21, 15], [21, 18]])
    assert scored["status"] == "completed"
    assert scored["side1_names"] == ["Smash"]

    standings = client.get(f"/tournaments/{tournament['id']}/standings").json()
    rows = standings["groups"][0]["rows"]
    assert standings["groups"][0]["group_name"] == "General"
    assert [(row["display_name"], row["position"], row["points"]) for row in rows] == [
        ("Smash", 1, 2),
        ("Drop", 2, 0),
    ]
    assert rows[0]["point_difference"] == 9

    summary = client.post(f"/tournaments/{tournament['id']}/finalize").json()
    assert summary == {"tournament_id": tournament["id"], "placements": {}, "leagues_recalculated": [league["id"]]}

    table = client.get(f"/leagues/{league['id']}/standings").json()
    assert [(row["entity_name"], row["total_points"], row["position"]) for row in table["rows"]] == [
        ("Ana", 12, 1),
        ("Bea", 10, 2),
        ("Dan", 8, 3),
        ("Cai", 6, 4),
    ]
    assert table["category_counts"] == {"A": 2, "B": 1, "none": 1}
    assert table["rows"][0]["account_id"] == str(accounts["Ana"])

    category_a = client.get(f"/leagues/{league['id']}/standings", params={"category": "A"}).json()
    assert [(row["entity_name"], row["position"]) for row in category_a["rows"]] == [("Ana", 1), ("Dan", 2)]

    record = client.get(f"/accounts/{accounts['Ana']}/record").json()
    assert record == {"wins": 1, "draws": 0, "losses": 0, "matches_played": 1, "win_rate": 100}


def test_completed_tournament_is_read_only(client):
    _, _, tournament, smash, drop = seed_team_league(client)
    match = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"side1": [smash["id"]], "side2": [drop["id"]]},
    )
    client.post(f"/tournaments/{tournament['id']}/finalize")

    rescore = client.patch(f"/matches/{match['id']}/score", json={"set_scores": [[21, 3]]})
    again = client.post(f"/tournaments/{tournament['id']}/finalize")

    assert rescore.status_code == 400
    assert again.status_code == 400


def test_knockout_final_overrides_group_order(client):
    tournament = post(client, "/tournaments/", {"name": "Cup Final", "mode": "team"})
    alpha = post(client, f"/tournaments/{tournament['id']}/teams", {"name": "Alpha"})
    bravo = post(client, f"/tournaments/{tournament['id']}/teams", {"name": "Bravo"})

    group = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"side1": [alpha["id"]], "side2": [bravo["id"]]},
    )
    final = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"round": "final", "side1": [bravo["id"]], "side2": [alpha["id"]]},
    )
    score(client, group["id"], [[21, 15], [21, 15]])
    score(client, final["id"], [[21, 19], [22, 20]])

    summary = client.post(f"/tournaments/{tournament['id']}/finalize").json()
    assert summary["placements"] == {str(bravo["id"]): 1, str(alpha["id"]): 2}

    rows = client.get(f"/tournaments/{tournament['id']}/standings").json()["groups"][0]["rows"]
    assert [(row["display_name"], row["final_position"]) for row in rows] == [("Bravo", 1), ("Alpha", 2)]
    assert rows[1]["point_difference"] > rows[0]["point_difference"]


def test_individual_standings_with_policy_options(client):
    tournament = post(client, "/tournaments/", {"name": "Club Night", "mode": "individual"})
    players = [
        post(client, f"/tournaments/{tournament['id']}/players", {"name": name, "group_name": "Group A"})["id"]
        for name in ("Ana", "Bea", "Cai", "Dan")
    ]
    match = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"group_name": "Group A", "side1": players[:2], "side2": players[2:]},
    )
    score(client, match["id"], [[21, 19]])

    default = client.get(f"/tournaments/{tournament['id']}/standings").json()
    dashboard = client.get(
        f"/tournaments/{tournament['id']}/standings",
        params={"loser_points": "one", "aggregation": "sets_won", "sort_primary": "wins"},
    ).json()

    rows = default["groups"][0]["rows"]
    assert default["groups"][0]["group_name"] == "Group A"
    assert [(row["display_name"], row["points"], row["points_for"]) for row in rows] == [
        ("Ana", 2, 21),
        ("Bea", 2, 21),
        ("Cai", 0, 19),
        ("Dan", 0, 19),
    ]
    assert [row["points"] for row in dashboard["groups"][0]["rows"]] == [2, 2, 1, 1]
    assert dashboard["groups"][0]["rows"][0]["points_for"] == 1

    invalid = client.get(f"/tournaments/{tournament['id']}/standings", params={"aggregation": "games"})
    assert invalid.status_code == 422


def test_unlinked_player_never_takes_an_account_category(client):
    account = post(client, "/accounts/", {"name": "Ana", "player_category": "M3"})
    league = post(
        client,
        "/leagues/",
        {
            "name": "Autumn Ladder",
            "scoring_system": {"1": 25, "2": 20},
            "categories": ["M3"],
            "category_scoring_systems": {"M3": {"1": 10, "2": 5}},
        },
    )
    tournament = post(client, "/tournaments/", {"name": "Club Night", "mode": "individual"})
    zed = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Zed"})
    yan = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Yan"})
    post(
        client,
        f"/tournaments/{tournament['id']}/players",
        {"name": "Ana", "account_id": account["id"]},
    )
    assert zed["id"] == account["id"]

    post(client, f"/leagues/{league['id']}/tournaments", {"tournament_id": tournament["id"]})
    match = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"side1": [zed["id"]], "side2": [yan["id"]]},
    )
    score(client, match["id"], [[21, 12], [21, 14]])
    client.post(f"/tournaments/{tournament['id']}/finalize")

    table = client.get(f"/leagues/{league['id']}/standings").json()
    assert [(row["entity_name"], row["player_category"], row["total_points"]) for row in table["rows"]] == [
        ("Zed", None, 25),
        ("Yan", None, 20),
        ("Ana", "M3", 0),
    ]
    assert table["category_counts"] == {"none": 2, "M3": 1}


def test_match_validation(client, session_factory):
    tournament = post(client, "/tournaments/", {"name": "Club Night", "mode": "individual"})
    other = post(client, "/tournaments/", {"name": "Other Night", "mode": "individual"})
    ana = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Ana"})
    bea = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Bea"})
    stranger = post(client, f"/tournaments/{other['id']}/players", {"name": "Zoe"})

    same_side = client.post(
        f"/tournaments/{tournament['id']}/matches",
        json={"side1": [ana["id"]], "side2": [ana["id"]]},
    )
    foreign = client.post(
        f"/tournaments/{tournament['id']}/matches",
        json={"side1": [ana["id"]], "side2": [stranger["id"]]},
    )
    team_only = client.post(f"/tournaments/{tournament['id']}/teams", json={"name": "Pair"})
    duplicate = client.post(f"/tournaments/{tournament['id']}/players", json={"name": "ana"})

    assert same_side.status_code == 400
    assert foreign.status_code == 404
    assert team_only.status_code == 400
    assert duplicate.status_code == 400

    match = post(client, f"/tournaments/{tournament['id']}/matches", {"side1": [ana["id"]], "side2": [bea["id"]]})
    negative = client.patch(f"/matches/{match['id']}/score", json={"set_scores": [[-1, 21]]})
    too_many = client.patch(f"/matches/{match['id']}/score", json={"set_scores": [[21, 1]] * 4})
    assert negative.status_code == 422
    assert too_many.status_code == 422

    status_change = client.patch(f"/matches/{match['id']}/status", json={"status": "in_progress"})
    assert status_change.json()["status"] == "in_progress"

    with session_factory() as db:
        stored = db.get(models.Match, match["id"])
        assert (stored.player1_id, stored.player3_id) == (ana["id"], bea["id"])
        assert stored.player2_id is None


def test_partial_score_clears_later_sets(client):
    tournament = post(client, "/tournaments/", {"name": "Club Night", "mode": "individual"})
    ana = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Ana"})
    bea = post(client, f"/tournaments/{tournament['id']}/players", {"name": "Bea"})
    match = post(client, f"/tournaments/{tournament['id']}/matches", {"side1": [ana["id"]], "side2": [bea["id"]]})

    score(client, match["id"], [[21, 19], [19, 21], [21, 17]])
    response = client.patch(
        f"/matches/{match['id']}/score",
        json={"set_scores": [[11, 5]], "complete": False},
    )

    assert response.json()["set_scores"] == [[11, 5]]
    assert response.json()["status"] == "in_progress"

    tournaments = client.get("/tournaments/").json()
    assert tournaments[0]["status"] == "in_progress"


def test_missing_rows_return_404(client):
    assert client.get("/tournaments/999/standings").status_code == 404
    assert client.post("/tournaments/999/finalize").status_code == 404
    assert client.patch("/matches/999/score", json={"set_scores": [[21, 3]]}).status_code == 404
    assert client.get("/leagues/999/standings").status_code == 404
    assert client.get("/accounts/999/record").status_code == 404
    assert client.post("/leagues/999/recalculate").status_code == 404


def test_league_validation(client):
    negative = client.post("/leagues/", json={"name": "Bad League", "scoring_system": {"1": -5}})
    unknown_category = client.post(
        "/leagues/",
        json={"name": "Cat League", "categories": ["A"], "category_scoring_systems": {"B": {"1": 5}}},
    )
    post(client, "/leagues/", {"name": "Spring Ladder"})
    duplicate = client.post("/leagues/", json={"name": "spring ladder"})

    assert negative.status_code == 422
    assert unknown_category.status_code == 400
    assert duplicate.status_code == 400
    assert [league["name"] for league in client.get("/leagues/").json()] == ["Spring Ladder"]


def test_league_exports_and_live_table(client):
    _, league, tournament, smash, drop = seed_team_league(client)
    match = post(
        client,
        f"/tournaments/{tournament['id']}/matches",
        {"side1": [smash["id"]], "side2": [drop["id"]]},
    )
    score(client, match["id"], [[21, 15]])
    client.post(f"/tournaments/{tournament['id']}/finalize")

    recalculated = client.post(f"/leagues/{league['id']}/recalculate").json()
    assert [row["entity_name"] for row in recalculated["rows"]] == ["Ana", "Bea", "Dan", "Cai"]

    csv_response = client.get(f"/leagues/{league['id']}/standings.csv", params={"category": "none"})
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    lines = csv_response.text.strip().splitlines()
    assert lines[0].startswith("position,entity_name")
    assert lines[1].startswith("1,Cai")

    pdf_response = client.get(f"/leagues/{league['id']}/standings.pdf")
    assert pdf_response.status_code == 200
    assert pdf_response.headers["content-type"] == "application/pdf"
    assert pdf_response.content.startswith(b"%PDF")

    tournament_csv = client.get(f"/tournaments/{tournament['id']}/standings.csv")
    assert tournament_csv.text.splitlines()[1].startswith("General,1,Smash")

    live = client.get(f"/leagues/{league['id']}/standings", params={"live": True}).json()
    snapshot = app.state.league_snapshots[league["id"]]
    client.get(f"/leagues/{league['id']}/standings", params={"live": True})
    assert app.state.league_snapshots[league["id"]] is snapshot
    assert live["rows"] == recalculated["rows"]
