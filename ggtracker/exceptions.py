"""
GG Tracker - custom exceptions

Data-access failures are always surfaced as ``DataAccessError``; an empty
candidate pool is not an error and is reported as ``None`` by the engine.
"""


class GGTrackerError(Exception):
    """Base exception for GG Tracker"""

    def __init__(self, message: str, code: str = "GGTRACKER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self):
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
        }


class DataAccessError(GGTrackerError):
    """Reading from or writing to the store failed"""

    def __init__(self, message: str = "Unexpected database error"):
        super().__init__(message, code="DATABASE_ERROR")


class NotFoundError(GGTrackerError):
    """A row looked up by id does not exist"""

    def __init__(self, message: str, code: str = "NOT_FOUND"):
        super().__init__(message, code=code)


class GameNotFound(NotFoundError):
    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found", code="GAME_NOT_FOUND")


class GenreNotFound(NotFoundError):
    def __init__(self, genre_id):
        self.genre_id = genre_id
        super().__init__(f"Genre {genre_id} not found", code="GENRE_NOT_FOUND")


class UserNotFound(NotFoundError):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found", code="USER_NOT_FOUND")


class OwnedGameNotFound(NotFoundError):
    def __init__(self, user_id, game_id):
        self.user_id = user_id
        self.game_id = game_id
        super().__init__(
            f"Game {game_id} is not in the collection of user {user_id}",
            code="OWNED_GAME_NOT_FOUND",
        )


class InvalidInputError(GGTrackerError):
    """Collection values outside their domain (negative playtime, unknown rating)"""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_INPUT")


class DuplicateGameError(GGTrackerError):
    """The user already owns the game"""

    def __init__(self, user_id, game_id):
        self.user_id = user_id
        self.game_id = game_id
        super().__init__(
            f"User {user_id} already owns game {game_id}",
            code="DUPLICATE_GAME",
        )


class DuplicateGenreError(GGTrackerError):
    """A genre with that name already exists"""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Genre {name} already exists", code="DUPLICATE_GENRE")
