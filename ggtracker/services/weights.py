"""Per-user genre affinity weights.

Weights are never patched in place: every run recomputes them from the user's
collection and suggestion decisions and swaps the stored snapshot in one
transaction.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Iterable, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import (
    ADDED_SUGGESTION_WEIGHT,
    DISLIKED_PLAYTIME_MULTIPLIER,
    DISMISSED_SUGGESTION_WEIGHT,
    LIKED_PLAYTIME_MULTIPLIER,
)
from ..models import Rating, SuggestionStatus
from . import store
from .locks import user_lock

logger = logging.getLogger(__name__)


def rating_multiplier(rating: Optional[Union[Rating, str]]) -> float:
    # Disliked stays positive: long playtime on a disliked game still counts.
    if rating is None:
        return 0.0
    rating = Rating(rating)
    if rating is Rating.LIKED:
        return LIKED_PLAYTIME_MULTIPLIER
    if rating is Rating.DISLIKED:
        return DISLIKED_PLAYTIME_MULTIPLIER
    return 0.0


def suggestion_contribution(status: Union[SuggestionStatus, str]) -> float:
    status = SuggestionStatus(status)
    if status is SuggestionStatus.ADDED:
        return ADDED_SUGGESTION_WEIGHT
    if status is SuggestionStatus.DISMISSED:
        return DISMISSED_SUGGESTION_WEIGHT
    raise ValueError("pending suggestions carry no weight")


def compute_genre_weights(
    owned_games: Iterable[store.OwnedGameRecord],
    suggestion_history: Iterable[store.SuggestionRecord],
    genres_of: Callable[[int], Iterable[int]],
) -> dict[int, float]:
    """Fold playtime/rating and suggestion outcomes into a genre -> weight map.

    Owned games add ``rating_multiplier(rating) * playtime`` to each of their
    genres. Added and dismissed suggestions add a flat amount to each genre of
    the suggested game, whatever its playtime or genre count. Only genres that
    were touched appear in the result.
    """
    totals: defaultdict[int, float] = defaultdict(float)

    for owned in owned_games:
        contribution = rating_multiplier(owned.rating) * owned.playtime
        for genre_id in genres_of(owned.game_id):
            totals[genre_id] += contribution

    for decided in suggestion_history:
        if decided.status == SuggestionStatus.PENDING:
            continue
        contribution = suggestion_contribution(decided.status)
        for genre_id in genres_of(decided.game_id):
            totals[genre_id] += contribution

    return dict(totals)


def generate_weights(db: Session, user_id: str) -> dict[int, float]:
    with user_lock(user_id), store.data_access(db, "Error generating weights"):
        genre_cache: dict[int, list[int]] = {}

        def genres_of(game_id: int) -> list[int]:
            if game_id not in genre_cache:
                genre_cache[game_id] = store.list_genres_of_game(db, game_id)
            return genre_cache[game_id]

        owned_games = store.list_owned_games(db, user_id)
        history = store.list_suggestion_history(db, user_id, exclude_status=SuggestionStatus.PENDING)
        weights = compute_genre_weights(owned_games, history, genres_of)

        store.replace_user_genre_weights(db, user_id, weights)
        db.commit()

    logger.info(
        "Regenerated %d genre weights for user %s from %d owned games and %d decided suggestions",
        len(weights),
        user_id,
        len(owned_games),
        len(history),
    )
    return weights


def get_genre_weights(db: Session, user_id: str) -> dict[int, float]:
    with store.data_access(db, "Error reading genre weights"):
        return store.get_user_genre_weights(db, user_id)


def get_genre_weight(db: Session, user_id: str, genre_id: int) -> float:
    with store.data_access(db, "Error reading genre weight"):
        weight = store.get_user_genre_weight(db, user_id, genre_id)
    return 0.0 if weight is None else float(weight)
