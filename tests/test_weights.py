"""
Tests for genre weight computation and regeneration
"""
import pytest
from unittest.mock import MagicMock
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from ggtracker.exceptions import DataAccessError
from ggtracker.models import Rating, Suggestion, SuggestionStatus, UserGenreWeight
from ggtracker.services import library, store, suggestions, weights
from ggtracker.services.store import OwnedGameRecord, SuggestionRecord


class TestMultipliers:
    """Tests for the rating and suggestion contribution tables"""

    def test_liked_multiplier(self):
        assert weights.rating_multiplier(Rating.LIKED) == 2

    def test_disliked_multiplier_is_positive(self):
        """A disliked game still boosts its genres, just less than a liked one"""
        assert weights.rating_multiplier(Rating.DISLIKED) == 0.75

    def test_unrated_multiplier(self):
        assert weights.rating_multiplier(Rating.UNRATED) == 0
        assert weights.rating_multiplier(None) == 0

    def test_multiplier_accepts_string_values(self):
        assert weights.rating_multiplier("liked") == 2

    def test_multiplier_rejects_unknown_rating(self):
        with pytest.raises(ValueError):
            weights.rating_multiplier("meh")

    def test_suggestion_contributions(self):
        assert weights.suggestion_contribution(SuggestionStatus.ADDED) == 2
        assert weights.suggestion_contribution(SuggestionStatus.DISMISSED) == -1

    def test_pending_suggestion_has_no_contribution(self):
        with pytest.raises(ValueError):
            weights.suggestion_contribution(SuggestionStatus.PENDING)


class TestComputeGenreWeights:
    """Tests for the pure weight computation"""

    GENRES = {1: [10, 20], 2: [10], 3: [30], 4: [10, 20, 30], 5: []}

    def compute(self, owned=(), history=()):
        return weights.compute_genre_weights(owned, history, lambda game_id: self.GENRES[game_id])

    def test_no_history_gives_no_weights(self):
        assert self.compute() == {}

    def test_liked_playtime_is_doubled_per_genre(self):
        result = self.compute(owned=[OwnedGameRecord(1, 100, Rating.LIKED)])
        assert result == {10: 200.0, 20: 200.0}

    def test_disliked_heavy_playtime_still_adds(self):
        result = self.compute(owned=[OwnedGameRecord(2, 100, Rating.DISLIKED)])
        assert result == {10: 75.0}

    def test_unrated_games_touch_genres_with_zero(self):
        result = self.compute(owned=[OwnedGameRecord(3, 500, Rating.UNRATED)])
        assert result == {30: 0.0}

    def test_contributions_accumulate_across_games(self):
        result = self.compute(
            owned=[
                OwnedGameRecord(1, 10, Rating.LIKED),
                OwnedGameRecord(2, 4, Rating.DISLIKED),
            ]
        )
        assert result == {10: 23.0, 20: 20.0}

    def test_added_suggestion_is_flat_per_genre(self):
        """Added suggestions add +2 to every genre regardless of how many there are"""
        result = self.compute(history=[SuggestionRecord(4, SuggestionStatus.ADDED)])
        assert result == {10: 2.0, 20: 2.0, 30: 2.0}

    def test_dismissed_suggestion_is_flat_per_genre(self):
        """Dismissed suggestions subtract 1 from every genre, not split across genres"""
        result = self.compute(history=[SuggestionRecord(4, SuggestionStatus.DISMISSED)])
        assert result == {10: -1.0, 20: -1.0, 30: -1.0}

    def test_pending_history_rows_are_ignored(self):
        result = self.compute(history=[SuggestionRecord(1, SuggestionStatus.PENDING)])
        assert result == {}

    def test_game_without_genres_contributes_nothing(self):
        result = self.compute(owned=[OwnedGameRecord(5, 1000, Rating.LIKED)])
        assert result == {}


class TestGenerateWeights:
    """Tests for regenerating stored weights"""

    def test_scenario_a_weights(self, db, scenario_a):
        result = weights.generate_weights(db, scenario_a["user_id"])

        expected = {scenario_a["action"]: 200.0, scenario_a["rpg"]: 200.0}
        assert result == expected
        assert weights.get_genre_weights(db, scenario_a["user_id"]) == expected

    def test_single_weight_lookup(self, db, scenario_a):
        weights.generate_weights(db, scenario_a["user_id"])

        assert weights.get_genre_weight(db, scenario_a["user_id"], scenario_a["rpg"]) == 200.0
        assert weights.get_genre_weight(db, scenario_a["user_id"], scenario_a["puzzle"]) == 0.0

    def test_regeneration_is_idempotent(self, db, scenario_a):
        user_id = scenario_a["user_id"]
        weights.generate_weights(db, user_id)
        first = weights.get_genre_weights(db, user_id)
        weights.generate_weights(db, user_id)
        second = weights.get_genre_weights(db, user_id)

        assert first == second
        assert db.query(UserGenreWeight).filter_by(user_id=user_id).count() == 2

    def test_regeneration_drops_stale_genres(self, db, seed, scenario_a):
        """Weights are a full replace, not a patch over the previous snapshot"""
        user_id = scenario_a["user_id"]
        weights.generate_weights(db, user_id)
        library.remove_game_from_user(db, user_id, scenario_a["g1"])
        g4 = seed.game("G4", ["Puzzle"])
        seed.own(user_id, g4, playtime=3, rating=Rating.LIKED)

        weights.generate_weights(db, user_id)

        assert weights.get_genre_weights(db, user_id) == {scenario_a["puzzle"]: 6.0}

    def test_user_without_history_has_no_weights(self, db, seed):
        user_id = seed.user("newcomer")
        assert weights.generate_weights(db, user_id) == {}
        assert weights.get_genre_weights(db, user_id) == {}

    def test_scenario_b_dismissal_lowers_action(self, db, scenario_a):
        user_id = scenario_a["user_id"]
        weights.generate_weights(db, user_id)
        pending = suggestions.get_pending_suggestion(db, user_id)
        suggestions.dismiss_suggestion(db, user_id, pending.game_id)

        result = weights.generate_weights(db, user_id)

        assert result == {scenario_a["action"]: 199.0, scenario_a["rpg"]: 200.0}

    def test_added_suggestion_feeds_weights(self, db, scenario_a):
        user_id = scenario_a["user_id"]
        weights.generate_weights(db, user_id)
        pending = suggestions.get_pending_suggestion(db, user_id)
        suggestions.add_suggestion(db, user_id, pending.game_id)

        result = weights.generate_weights(db, user_id)

        assert result[scenario_a["action"]] == 202.0

    def test_weights_are_per_user(self, db, seed, scenario_a):
        other = seed.user("other_user")
        seed.own(other, scenario_a["g3"], playtime=10, rating=Rating.LIKED)

        weights.generate_weights(db, scenario_a["user_id"])
        weights.generate_weights(db, other)

        assert weights.get_genre_weights(db, other) == {scenario_a["puzzle"]: 20.0}
        assert scenario_a["puzzle"] not in weights.get_genre_weights(db, scenario_a["user_id"])


class TestGenerateWeightsFailures:
    """Tests for data access failures during regeneration"""

    def test_read_failure_raises_data_access_error(self):
        db = MagicMock(spec=Session)
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(DataAccessError, match="Error generating weights"):
            weights.generate_weights(db, "user-1")

        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    def test_failed_replace_keeps_previous_snapshot(self, db, scenario_a, monkeypatch):
        user_id = scenario_a["user_id"]
        weights.generate_weights(db, user_id)
        before = weights.get_genre_weights(db, user_id)

        def failing_replace(session, uid, new_weights):
            session.execute(delete(UserGenreWeight).where(UserGenreWeight.user_id == uid))
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(store, "replace_user_genre_weights", failing_replace)
        db.add(Suggestion(user_id=user_id, game_id=scenario_a["g2"], score=0.0, status=SuggestionStatus.DISMISSED))
        db.commit()

        with pytest.raises(DataAccessError):
            weights.generate_weights(db, user_id)

        assert weights.get_genre_weights(db, user_id) == before
