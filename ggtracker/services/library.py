from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session, joinedload

from ..exceptions import (
    DuplicateGameError,
    InvalidInputError,
    OwnedGameNotFound,
    UserNotFound,
)
from ..models import Game, OwnedGame, Rating, User
from ..schemas import OwnedGameOut
from . import store

logger = logging.getLogger(__name__)


def normalize_rating(value: Any) -> Rating:
    """Accept a Rating, its string value, or the legacy liked/disliked boolean."""
    if value is None:
        return Rating.UNRATED
    if isinstance(value, Rating):
        return value
    if isinstance(value, bool):
        return Rating.LIKED if value else Rating.DISLIKED
    try:
        return Rating(str(value).strip().lower())
    except ValueError:
        raise InvalidInputError(f"{value!r} is not a valid rating") from None


def normalize_playtime(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"{value!r} is not a valid playtime")
    try:
        playtime = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{value!r} is not a valid playtime") from None
    if playtime < 0 or (playtime != value and str(playtime) != str(value).strip()):
        raise InvalidInputError(f"{value!r} is not a valid playtime")
    return playtime


def _get_owned(db: Session, user_id: str, game_id: int) -> Optional[OwnedGame]:
    return db.get(OwnedGame, (user_id, game_id))


def create_user(db: Session, username: str, email: Optional[str] = None) -> User:
    with store.data_access(db, "Error adding user"):
        user = User(username=username, email=email)
        db.add(user)
        db.commit()
        db.refresh(user)
    logger.info("User %s added with id %s", username, user.id)
    return user


def delete_user(db: Session, user_id: str) -> None:
    """Remove the user together with their collection, suggestions and weights."""
    with store.data_access(db, "Error deleting user"):
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFound(user_id)
        db.delete(user)
        db.commit()
    logger.info("User %s removed", user_id)


def can_user_add_game(db: Session, user_id: str, game_id: int) -> bool:
    with store.data_access(db, "Error checking collection"):
        return _get_owned(db, user_id, game_id) is None


def get_user_game(db: Session, user_id: str, game_id: int) -> OwnedGameOut:
    """Playtime and rating the user recorded for one owned game."""
    with store.data_access(db, "Error getting collection entry"):
        entry = _get_owned(db, user_id, game_id)
        if entry is None:
            raise OwnedGameNotFound(user_id, game_id)
        return OwnedGameOut.model_validate(entry)


def add_game_to_user(
    db: Session,
    user_id: str,
    game_id: int,
    playtime: Any = 0,
    rating: Any = Rating.UNRATED,
) -> OwnedGameOut:
    playtime = normalize_playtime(playtime)
    rating = normalize_rating(rating)
    with store.data_access(db, "Error adding game to collection"):
        if db.get(User, user_id) is None:
            raise UserNotFound(user_id)
        store.get_game_by_id(db, game_id)
        if not can_user_add_game(db, user_id, game_id):
            raise DuplicateGameError(user_id, game_id)

        entry = OwnedGame(user_id=user_id, game_id=game_id, playtime=playtime, rating=rating)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        result = OwnedGameOut.model_validate(entry)
    logger.info("Game %s added to the collection of user %s", game_id, user_id)
    return result


def update_user_game(
    db: Session,
    user_id: str,
    game_id: int,
    playtime: Any,
    rating: Any = None,
) -> OwnedGameOut:
    playtime = normalize_playtime(playtime)
    rating = normalize_rating(rating)
    with store.data_access(db, "Error updating collection entry"):
        entry = _get_owned(db, user_id, game_id)
        if entry is None:
            raise OwnedGameNotFound(user_id, game_id)
        entry.playtime = playtime
        entry.rating = rating
        db.commit()
        db.refresh(entry)
        result = OwnedGameOut.model_validate(entry)
    logger.info(
        "User %s set game %s to playtime %s and rating %s",
        user_id,
        game_id,
        playtime,
        rating.value,
    )
    return result


def remove_game_from_user(db: Session, user_id: str, game_id: int) -> bool:
    with store.data_access(db, "Error removing game from collection"):
        entry = _get_owned(db, user_id, game_id)
        if entry is None:
            return False
        db.delete(entry)
        db.commit()
    logger.info("Game %s removed from the collection of user %s", game_id, user_id)
    return True


def get_users_games(db: Session, user_id: str) -> list[OwnedGameOut]:
    with store.data_access(db, "Error getting collection"):
        entries = (
            db.query(OwnedGame)
            .options(joinedload(OwnedGame.game).selectinload(Game.genres))
            .filter(OwnedGame.user_id == user_id)
            .order_by(OwnedGame.game_id)
            .all()
        )
        return [OwnedGameOut.model_validate(entry) for entry in entries]
