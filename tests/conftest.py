"""
Pytest fixtures and configuration for GG Tracker tests
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ggtracker.db import enable_sqlite_foreign_keys, init_db
from ggtracker.models import Rating
from ggtracker.services import catalog, library


def _build_engine(url, **kwargs):
    engine = create_engine(url, connect_args={"check_same_thread": False}, **kwargs)
    enable_sqlite_foreign_keys(engine)
    init_db(bind=engine)
    return engine


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test"""
    engine = _build_engine("sqlite://", poolclass=StaticPool)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite so separate connections really are separate"""
    engine = _build_engine(f"sqlite:///{(tmp_path / 'ggtracker-test.db').as_posix()}")
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def write_log(engine):
    """Collect every INSERT/UPDATE/DELETE sent to the engine"""
    statements = []

    @event.listens_for(engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().split(" ", 1)[0].upper() in ("INSERT", "UPDATE", "DELETE"):
            statements.append(statement)

    yield statements
    event.remove(engine, "before_cursor_execute", _record)


class Seeder:
    """Small helper to populate genres, games, users and collections"""

    def __init__(self, db):
        self.db = db
        self.genres = {}

    def genre(self, name):
        if name not in self.genres:
            self.genres[name] = catalog.create_genre(self.db, name).id
        return self.genres[name]

    def game(self, name, genres=()):
        return catalog.create_game(self.db, name, genre_ids=[self.genre(g) for g in genres]).id

    def user(self, username="my_username"):
        return library.create_user(self.db, username, email=f"{username}@example.com").id

    def own(self, user_id, game_id, playtime=0, rating=Rating.UNRATED):
        return library.add_game_to_user(self.db, user_id, game_id, playtime=playtime, rating=rating)


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def scenario_a(seed):
    """User owns G1 (Action, RPG; 100h, liked); catalog also has G2 (Action) and G3 (Puzzle)"""
    user_id = seed.user()
    g1 = seed.game("G1", ["Action", "RPG"])
    g2 = seed.game("G2", ["Action"])
    g3 = seed.game("G3", ["Puzzle"])
    seed.own(user_id, g1, playtime=100, rating=Rating.LIKED)
    return {
        "user_id": user_id,
        "g1": g1,
        "g2": g2,
        "g3": g3,
        "action": seed.genres["Action"],
        "rpg": seed.genres["RPG"],
        "puzzle": seed.genres["Puzzle"],
    }


@pytest.fixture
def file_session_factory(file_engine):
    return sessionmaker(bind=file_engine, autocommit=False, autoflush=False)


@pytest.fixture
def seeder_cls():
    return Seeder
