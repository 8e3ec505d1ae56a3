from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Suggestion, SuggestionStatus
from ..schemas import GameOut, SuggestionOut
from . import store
from .locks import user_lock

logger = logging.getLogger(__name__)


def score_candidate(genre_ids: Iterable[int], weights: Mapping[int, float]) -> float:
    """Mean weight of a game's genres; genres without a weight count as 0."""
    genre_ids = list(genre_ids)
    if not genre_ids:
        return 0.0
    total = sum(float(weights.get(genre_id, 0.0)) for genre_id in genre_ids)
    return total / len(genre_ids)


def select_best_candidate(scored: Iterable[tuple[int, float]]) -> Optional[tuple[int, float]]:
    best: Optional[tuple[int, float]] = None
    for game_id, score in scored:
        # Strictly greater: on ties the earlier candidate keeps the slot.
        if best is None or score > best[1]:
            best = (game_id, score)
    return best


def _to_out(db: Session, row: Suggestion) -> SuggestionOut:
    game = store.get_game_by_id(db, row.game_id)
    return SuggestionOut(
        user_id=row.user_id,
        game_id=row.game_id,
        score=row.score,
        status=row.status,
        game=GameOut.model_validate(game),
    )


def _create_pending_suggestion(db: Session, user_id: str) -> bool:
    candidates = store.list_candidate_game_ids(db, user_id)
    if not candidates:
        logger.warning("No games left to suggest for user %s", user_id)
        return False

    weights = store.get_user_genre_weights(db, user_id)
    scored = (
        (game_id, score_candidate(store.list_genres_of_game(db, game_id), weights))
        for game_id in candidates
    )
    game_id, score = select_best_candidate(scored)

    try:
        store.insert_pending_suggestion(db, user_id, game_id, score)
        db.commit()
    except IntegrityError:
        db.rollback()
        # Another worker filled the pending slot first; theirs stands.
        if store.find_pending_suggestion(db, user_id) is None:
            raise
        logger.warning("Pending suggestion for user %s was created concurrently", user_id)
        return True

    logger.info(
        "Suggested game %s to user %s with score %.3f out of %d candidates",
        game_id,
        user_id,
        score,
        len(candidates),
    )
    return True


def get_pending_suggestion(db: Session, user_id: str) -> Optional[SuggestionOut]:
    """Return the user's pending suggestion, picking and storing one if needed.

    When a pending row already exists this is a plain read. Otherwise the
    best-scoring candidate is inserted as pending and then read back. ``None``
    means every game is already owned or was suggested before.
    """
    with user_lock(user_id), store.data_access(db, "Error getting pending suggestion"):
        pending = store.find_pending_suggestion(db, user_id)
        if pending is not None:
            logger.debug("Returning existing pending suggestion %s for user %s", pending.game_id, user_id)
            return _to_out(db, pending)

        if not _create_pending_suggestion(db, user_id):
            return None

        pending = store.find_pending_suggestion(db, user_id)
        if pending is None:
            return None
        return _to_out(db, pending)


def get_added_suggestions(db: Session, user_id: str) -> list[SuggestionOut]:
    with store.data_access(db, "Error getting added suggestions"):
        rows = store.list_suggestions_by_status(db, user_id, SuggestionStatus.ADDED)
        return [_to_out(db, row) for row in rows]


def _resolve_pending(db: Session, user_id: str, game_id: int, status: SuggestionStatus, message: str) -> bool:
    with user_lock(user_id), store.data_access(db, message):
        changed = store.update_suggestion_status(
            db,
            user_id,
            game_id,
            status,
            only_from=SuggestionStatus.PENDING,
        )
        db.commit()
    if changed:
        logger.info("User %s marked suggestion %s as %s", user_id, game_id, status.value)
    else:
        logger.info("No pending suggestion %s for user %s to mark as %s", game_id, user_id, status.value)
    return bool(changed)


def add_suggestion(db: Session, user_id: str, game_id: int) -> bool:
    return _resolve_pending(db, user_id, game_id, SuggestionStatus.ADDED, "Error adding suggestion")


def dismiss_suggestion(db: Session, user_id: str, game_id: int) -> bool:
    return _resolve_pending(db, user_id, game_id, SuggestionStatus.DISMISSED, "Error dismissing suggestion")


def delete_suggestion(db: Session, user_id: str, game_id: int) -> bool:
    with user_lock(user_id), store.data_access(db, "Error deleting suggestion"):
        deleted = store.delete_suggestion(db, user_id, game_id)
        db.commit()
    logger.info("Removed suggestion %s for user %s (%d rows)", game_id, user_id, deleted)
    return bool(deleted)


def clear_suggestions(db: Session, user_id: str) -> int:
    with user_lock(user_id), store.data_access(db, "Error clearing suggestions"):
        deleted = store.delete_all_suggestions(db, user_id)
        db.commit()
    logger.info("Cleared %d suggestions for user %s", deleted, user_id)
    return deleted


def clear_pending_suggestions(db: Session, user_id: str) -> int:
    with user_lock(user_id), store.data_access(db, "Error clearing pending suggestions"):
        deleted = store.delete_suggestions_by_status(db, user_id, SuggestionStatus.PENDING)
        db.commit()
    logger.info("Cleared %d pending suggestions for user %s", deleted, user_id)
    return deleted
