from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from ..exceptions import DuplicateGenreError, GameNotFound, GenreNotFound, InvalidInputError
from ..models import Game, Genre, game_genres
from ..schemas import GameOut, GenreOut
from . import store

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _clean_name(value: Any, kind: str) -> str:
    name = str(value or "").strip()
    if not name:
        raise InvalidInputError(f"{kind} name must not be blank")
    return name


def _load_genres(db: Session, genre_ids: Iterable[int]) -> list[Genre]:
    wanted = list(dict.fromkeys(int(genre_id) for genre_id in genre_ids))
    if not wanted:
        return []
    found = {genre.id: genre for genre in db.query(Genre).filter(Genre.id.in_(wanted)).all()}
    for genre_id in wanted:
        if genre_id not in found:
            raise GenreNotFound(genre_id)
    return [found[genre_id] for genre_id in wanted]


def _get_genre_row(db: Session, genre_id: int) -> Genre:
    genre = db.get(Genre, genre_id)
    if genre is None:
        raise GenreNotFound(genre_id)
    return genre


def _ensure_genre_name_free(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Genre.id).filter(Genre.name == name)
    if exclude_id is not None:
        query = query.filter(Genre.id != exclude_id)
    if query.first() is not None:
        raise DuplicateGenreError(name)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _games_query(db: Session):
    return db.query(Game).options(selectinload(Game.genres)).order_by(Game.id)


def create_genre(db: Session, name: str) -> GenreOut:
    name = _clean_name(name, "Genre")
    with store.data_access(db, "Error adding genre"):
        _ensure_genre_name_free(db, name)
        genre = Genre(name=name)
        db.add(genre)
        db.commit()
        db.refresh(genre)
        result = GenreOut.model_validate(genre)
    logger.info("Genre %s added with id %s", result.name, result.id)
    return result


def get_genre(db: Session, genre_id: int) -> GenreOut:
    with store.data_access(db, "Error getting genre"):
        return GenreOut.model_validate(_get_genre_row(db, genre_id))


def list_genres(db: Session) -> list[GenreOut]:
    with store.data_access(db, "Error listing genres"):
        genres = db.query(Genre).order_by(Genre.id).all()
        return [GenreOut.model_validate(genre) for genre in genres]


def rename_genre(db: Session, genre_id: int, name: str) -> GenreOut:
    name = _clean_name(name, "Genre")
    with store.data_access(db, "Error editing genre"):
        genre = _get_genre_row(db, genre_id)
        _ensure_genre_name_free(db, name, exclude_id=genre_id)
        genre.name = name
        db.commit()
        db.refresh(genre)
        result = GenreOut.model_validate(genre)
    logger.info("Genre %s renamed to %s", genre_id, name)
    return result


def delete_genre(db: Session, genre_id: int) -> str:
    """Remove a genre, its game edges and every user's weight for it.

    Returns the removed genre's name.
    """
    with store.data_access(db, "Error deleting genre"):
        genre = _get_genre_row(db, genre_id)
        name = genre.name
        dropped = store.delete_genre_weights(db, genre_id)
        # ORM delete clears the game_genres edges through the secondary relationship.
        db.delete(genre)
        db.commit()
    logger.info("Genre %s (%s) removed along with %d weight rows", genre_id, name, dropped)
    return name


def create_game(
    db: Session,
    name: str,
    description: Optional[str] = None,
    image: Optional[str] = None,
    genre_ids: Iterable[int] = (),
) -> GameOut:
    name = _clean_name(name, "Game")
    with store.data_access(db, "Error adding game"):
        game = Game(name=name, description=description, image=image)
        game.genres = _load_genres(db, genre_ids)
        db.add(game)
        db.commit()
        db.refresh(game)
        result = GameOut.model_validate(game)
    logger.info("Game %s added with id %s", result.name, result.id)
    return result


def get_game(db: Session, game_id: int) -> GameOut:
    with store.data_access(db, "Error getting game"):
        return GameOut.model_validate(store.get_game_by_id(db, game_id))


def list_games(db: Session) -> list[GameOut]:
    with store.data_access(db, "Error listing games"):
        return [GameOut.model_validate(game) for game in _games_query(db).all()]


def search_games(db: Session, partial_name: str) -> list[GameOut]:
    """Games whose name contains ``partial_name``, case-insensitively, in id order."""
    term = _clean_name(partial_name, "Search")
    with store.data_access(db, "Error searching games"):
        games = (
            _games_query(db)
            .filter(Game.name.ilike(f"%{_escape_like(term)}%", escape="\\"))
            .all()
        )
        return [GameOut.model_validate(game) for game in games]


def list_games_by_genre(db: Session, genre_id: int) -> list[GameOut]:
    with store.data_access(db, "Error getting games of genre"):
        _get_genre_row(db, genre_id)
        games = (
            _games_query(db)
            .join(game_genres, game_genres.c.game_id == Game.id)
            .filter(game_genres.c.genre_id == genre_id)
            .all()
        )
        return [GameOut.model_validate(game) for game in games]


def update_game(
    db: Session,
    game_id: int,
    name: Any = _UNSET,
    description: Any = _UNSET,
    image: Any = _UNSET,
) -> GameOut:
    """Change only the fields that were passed; ``None`` clears description or image."""
    if name is not _UNSET:
        name = _clean_name(name, "Game")
    with store.data_access(db, "Error updating game"):
        game = store.get_game_by_id(db, game_id)
        if name is not _UNSET:
            game.name = name
        if description is not _UNSET:
            game.description = description
        if image is not _UNSET:
            game.image = image
        db.commit()
        db.refresh(game)
        result = GameOut.model_validate(game)
    logger.info("Game %s updated", game_id)
    return result


def set_game_genres(db: Session, game_id: int, genre_ids: Iterable[int]) -> GameOut:
    with store.data_access(db, "Error updating game genres"):
        game = store.get_game_by_id(db, game_id)
        game.genres = _load_genres(db, genre_ids)
        db.commit()
        db.refresh(game)
        result = GameOut.model_validate(game)
    logger.info("Game %s now has genres %s", game_id, [genre.id for genre in result.genres])
    return result


def delete_game(db: Session, game_id: int) -> None:
    with store.data_access(db, "Error deleting game"):
        game = db.get(Game, game_id)
        if game is None:
            raise GameNotFound(game_id)
        db.delete(game)
        db.commit()
    logger.info("Game %s removed from the catalog", game_id)
