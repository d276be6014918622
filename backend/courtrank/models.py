from sqlalchemy import JSON, CheckConstraint, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base


class PlayerAccount(Base):
    __tablename__ = "player_accounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    player_category = Column(String(16), nullable=True, index=True)

    registrations = relationship("Player", back_populates="account")


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    mode = Column(String(16), nullable=False)
    status = Column(String(16), default="scheduled", nullable=False, index=True)
    category = Column(String(32), nullable=True)
    start_date = Column(Date, nullable=True)

    teams = relationship("Team", back_populates="tournament", cascade="all, delete-orphan")
    players = relationship("Player", back_populates="tournament", cascade="all, delete-orphan")
    matches = relationship("Match", back_populates="tournament", cascade="all, delete-orphan")
    league_links = relationship("TournamentLeague", back_populates="tournament", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("mode in ('team', 'individual')", name="ck_tournament_mode_valid"),
        CheckConstraint(
            "status in ('scheduled', 'in_progress', 'completed')",
            name="ck_tournament_status_valid",
        ),
    )


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    group_name = Column(String(50), nullable=True)
    final_position = Column(Integer, nullable=True)
    account_id = Column(Integer, ForeignKey("player_accounts.id"), nullable=True, index=True)

    tournament = relationship("Tournament", back_populates="players")
    account = relationship("PlayerAccount", back_populates="registrations")

    __table_args__ = (
        UniqueConstraint("name", "tournament_id", name="uq_player_name_tournament"),
        CheckConstraint("final_position is null or final_position >= 1", name="ck_player_final_position"),
    )


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    group_name = Column(String(50), nullable=True)
    final_position = Column(Integer, nullable=True)

    player1_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=True)

    tournament = relationship("Tournament", back_populates="teams")
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])

    __table_args__ = (
        UniqueConstraint("name", "tournament_id", name="uq_team_name_tournament"),
        CheckConstraint("final_position is null or final_position >= 1", name="ck_team_final_position"),
    )


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)

    round = Column(String(32), default="group", nullable=False, index=True)
    group_name = Column(String(50), nullable=True)
    status = Column(String(16), default="scheduled", nullable=False, index=True)

    # Team mode
    team1_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    team2_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)

    # Individual mode: players 1-2 on side 1, players 3-4 on side 2
    player1_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    player2_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    player3_id = Column(Integer, ForeignKey("players.id"), nullable=True)
    player4_id = Column(Integer, ForeignKey("players.id"), nullable=True)

    team1_score_set1 = Column(Integer, nullable=True)
    team2_score_set1 = Column(Integer, nullable=True)
    team1_score_set2 = Column(Integer, nullable=True)
    team2_score_set2 = Column(Integer, nullable=True)
    team1_score_set3 = Column(Integer, nullable=True)
    team2_score_set3 = Column(Integer, nullable=True)

    tournament = relationship("Tournament", back_populates="matches")
    team1 = relationship("Team", foreign_keys=[team1_id])
    team2 = relationship("Team", foreign_keys=[team2_id])
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])
    player3 = relationship("Player", foreign_keys=[player3_id])
    player4 = relationship("Player", foreign_keys=[player4_id])

    __table_args__ = (
        CheckConstraint(
            "status in ('scheduled', 'in_progress', 'completed')",
            name="ck_match_status_valid",
        ),
        CheckConstraint("team1_id is null or team1_id <> team2_id", name="ck_match_distinct_teams"),
    )


class League(Base):
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), unique=True, nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    scoring_system = Column(JSON, nullable=False, default=dict)
    categories = Column(JSON, nullable=False, default=list)
    category_scoring_systems = Column(JSON, nullable=False, default=dict)

    tournament_links = relationship("TournamentLeague", back_populates="league", cascade="all, delete-orphan")
    standings = relationship("LeagueStandingRecord", back_populates="league", cascade="all, delete-orphan")


class TournamentLeague(Base):
    __tablename__ = "tournament_leagues"

    id = Column(Integer, primary_key=True, index=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id"), nullable=False, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    league_category = Column(String(32), nullable=True)

    tournament = relationship("Tournament", back_populates="league_links")
    league = relationship("League", back_populates="tournament_links")

    __table_args__ = (UniqueConstraint("tournament_id", "league_id", name="uq_tournament_league"),)


class LeagueStandingRecord(Base):
    __tablename__ = "league_standings"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)

    entity_name = Column(String(100), nullable=False)
    account_id = Column(Integer, ForeignKey("player_accounts.id"), nullable=True)
    total_points = Column(Integer, default=0, nullable=False)
    tournaments_played = Column(Integer, default=0, nullable=False)
    best_position = Column(Integer, nullable=True)
    player_category = Column(String(16), nullable=True)
    position = Column(Integer, nullable=False)

    league = relationship("League", back_populates="standings")

    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_league_standing_points_nonnegative"),
        CheckConstraint("tournaments_played >= 0", name="ck_league_standing_played_nonnegative"),
    )
