import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .db import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class Rating(str, enum.Enum):
    LIKED = "liked"
    DISLIKED = "disliked"
    UNRATED = "unrated"


class SuggestionStatus(str, enum.Enum):
    PENDING = "pending"
    ADDED = "added"
    DISMISSED = "dismissed"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


game_genres = Table(
    "game_genres",
    Base.metadata,
    Column("game_id", Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(50), unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    owned_games = relationship("OwnedGame", back_populates="user", cascade="all, delete-orphan")
    suggestions = relationship("Suggestion", back_populates="user", cascade="all, delete-orphan")
    genre_weights = relationship("UserGenreWeight", back_populates="user", cascade="all, delete-orphan")


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(30), unique=True, nullable=False)

    games = relationship("Game", secondary=game_genres, back_populates="genres")


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    genres = relationship("Genre", secondary=game_genres, back_populates="games", order_by="Genre.id")
    owners = relationship("OwnedGame", back_populates="game", cascade="all, delete-orphan")
    suggestions = relationship("Suggestion", back_populates="game", cascade="all, delete-orphan")


class OwnedGame(Base):
    __tablename__ = "user_games"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    playtime = Column(Integer, nullable=False, default=0)
    rating = Column(
        Enum(Rating, native_enum=False, values_callable=_enum_values, length=10),
        nullable=False,
        default=Rating.UNRATED,
    )

    user = relationship("User", back_populates="owned_games")
    game = relationship("Game", back_populates="owners")


class Suggestion(Base):
    __tablename__ = "suggestions"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True)
    score = Column(Float, nullable=False, default=0.0)
    status = Column(
        Enum(SuggestionStatus, native_enum=False, values_callable=_enum_values, length=10),
        nullable=False,
        default=SuggestionStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="suggestions")
    game = relationship("Game", back_populates="suggestions")


# One pending row per user, enforced by the store where partial indexes exist.
Index(
    "uq_suggestions_one_pending_per_user",
    Suggestion.user_id,
    unique=True,
    sqlite_where=text("status = 'pending'"),
    postgresql_where=text("status = 'pending'"),
).ddl_if(dialect=("sqlite", "postgresql"))


class UserGenreWeight(Base):
    __tablename__ = "user_genre_weights"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)
    weight = Column(Float, nullable=False, default=0.0)

    user = relationship("User", back_populates="genre_weights")
