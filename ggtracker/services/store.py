"""Queries the recommendation engine runs against the relational store.

Every function takes the caller's ``Session`` and leaves transaction control
(commit/rollback) to the caller, so a service can group several of them into
one all-or-nothing unit. SQLAlchemy errors propagate unchanged; services wrap
their calls in ``data_access`` to roll back and convert them.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, NamedTuple, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..exceptions import DataAccessError, GameNotFound
from ..models import (
    Game,
    OwnedGame,
    Rating,
    Suggestion,
    SuggestionStatus,
    UserGenreWeight,
    game_genres,
)

logger = logging.getLogger(__name__)


class OwnedGameRecord(NamedTuple):
    game_id: int
    playtime: int
    rating: Rating


class SuggestionRecord(NamedTuple):
    game_id: int
    status: SuggestionStatus


def list_owned_games(db: Session, user_id: str) -> list[OwnedGameRecord]:
    rows = db.execute(
        select(OwnedGame.game_id, OwnedGame.playtime, OwnedGame.rating)
        .where(OwnedGame.user_id == user_id)
        .order_by(OwnedGame.game_id)
    ).all()
    return [
        OwnedGameRecord(game_id=row.game_id, playtime=int(row.playtime or 0), rating=row.rating or Rating.UNRATED)
        for row in rows
    ]


def list_genres_of_game(db: Session, game_id: int) -> list[int]:
    return list(
        db.execute(
            select(game_genres.c.genre_id)
            .where(game_genres.c.game_id == game_id)
            .order_by(game_genres.c.genre_id)
        ).scalars()
    )


def list_suggestion_history(
    db: Session,
    user_id: str,
    exclude_status: Optional[SuggestionStatus] = SuggestionStatus.PENDING,
) -> list[SuggestionRecord]:
    query = select(Suggestion.game_id, Suggestion.status).where(Suggestion.user_id == user_id)
    if exclude_status is not None:
        query = query.where(Suggestion.status != exclude_status)
    rows = db.execute(query.order_by(Suggestion.game_id)).all()
    return [SuggestionRecord(game_id=row.game_id, status=row.status) for row in rows]


def list_all_game_ids(db: Session) -> list[int]:
    return list(db.execute(select(Game.id).order_by(Game.id)).scalars())


def list_candidate_game_ids(db: Session, user_id: str) -> list[int]:
    """Games the user neither owns nor has been suggested, in id order."""
    owned = select(OwnedGame.game_id).where(OwnedGame.user_id == user_id)
    suggested = select(Suggestion.game_id).where(Suggestion.user_id == user_id)
    return list(
        db.execute(
            select(Game.id)
            .where(Game.id.not_in(owned), Game.id.not_in(suggested))
            .order_by(Game.id)
        ).scalars()
    )


def replace_user_genre_weights(db: Session, user_id: str, weights: dict[int, float]) -> None:
    db.execute(delete(UserGenreWeight).where(UserGenreWeight.user_id == user_id))
    if weights:
        db.add_all(
            UserGenreWeight(user_id=user_id, genre_id=genre_id, weight=float(weight))
            for genre_id, weight in weights.items()
        )
    db.flush()


def get_user_genre_weight(db: Session, user_id: str, genre_id: int) -> Optional[float]:
    return db.execute(
        select(UserGenreWeight.weight).where(
            UserGenreWeight.user_id == user_id,
            UserGenreWeight.genre_id == genre_id,
        )
    ).scalar_one_or_none()


def get_user_genre_weights(db: Session, user_id: str) -> dict[int, float]:
    rows = db.execute(
        select(UserGenreWeight.genre_id, UserGenreWeight.weight).where(UserGenreWeight.user_id == user_id)
    ).all()
    return {row.genre_id: float(row.weight) for row in rows}


def find_pending_suggestion(db: Session, user_id: str) -> Optional[Suggestion]:
    return (
        db.query(Suggestion)
        .filter(
            Suggestion.user_id == user_id,
            Suggestion.status == SuggestionStatus.PENDING,
        )
        .first()
    )


def insert_pending_suggestion(db: Session, user_id: str, game_id: int, score: float) -> Suggestion:
    row = Suggestion(
        user_id=user_id,
        game_id=game_id,
        score=float(score),
        status=SuggestionStatus.PENDING,
    )
    db.add(row)
    db.flush()
    return row


def update_suggestion_status(
    db: Session,
    user_id: str,
    game_id: int,
    status: SuggestionStatus,
    only_from: Optional[SuggestionStatus] = None,
) -> int:
    query = update(Suggestion).where(
        Suggestion.user_id == user_id,
        Suggestion.game_id == game_id,
    )
    if only_from is not None:
        query = query.where(Suggestion.status == only_from)
    result = db.execute(query.values(status=status).execution_options(synchronize_session=False))
    return result.rowcount or 0


def delete_suggestion(db: Session, user_id: str, game_id: int) -> int:
    result = db.execute(
        delete(Suggestion)
        .where(Suggestion.user_id == user_id, Suggestion.game_id == game_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def delete_all_suggestions(db: Session, user_id: str) -> int:
    result = db.execute(
        delete(Suggestion)
        .where(Suggestion.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def delete_suggestions_by_status(db: Session, user_id: str, status: SuggestionStatus) -> int:
    result = db.execute(
        delete(Suggestion)
        .where(Suggestion.user_id == user_id, Suggestion.status == status)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def list_suggestions_by_status(db: Session, user_id: str, status: SuggestionStatus) -> list[Suggestion]:
    return (
        db.query(Suggestion)
        .filter(Suggestion.user_id == user_id, Suggestion.status == status)
        .order_by(Suggestion.created_at, Suggestion.game_id)
        .all()
    )


def delete_genre_weights(db: Session, genre_id: int) -> int:
    result = db.execute(
        delete(UserGenreWeight)
        .where(UserGenreWeight.genre_id == genre_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def get_game_by_id(db: Session, game_id: int) -> Game:
    game = (
        db.query(Game)
        .options(selectinload(Game.genres))
        .filter(Game.id == game_id)
        .first()
    )
    if game is None:
        raise GameNotFound(game_id)
    return game


@contextmanager
def data_access(db: Session, message: str) -> Iterator[None]:
    """Roll back and re-raise any store failure as ``DataAccessError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("%s: %s", message, exc)
        raise DataAccessError(message) from exc
