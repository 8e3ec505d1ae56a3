from typing import List, Optional
from pydantic import BaseModel, Field

from .models import Rating, SuggestionStatus


class GenreOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class GameOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image: Optional[str] = None
    genres: List[GenreOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OwnedGameOut(BaseModel):
    game_id: int
    playtime: int = Field(ge=0)
    rating: Rating = Rating.UNRATED
    game: Optional[GameOut] = None

    class Config:
        from_attributes = True


class SuggestionOut(BaseModel):
    user_id: str
    game_id: int
    score: float
    status: SuggestionStatus
    game: Optional[GameOut] = None

    class Config:
        from_attributes = True
