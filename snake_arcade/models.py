from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

DEFAULT_PLAYER_NAME = "Anonymous"
# largest value an INTEGER score column holds
MAX_SCORE = 2**31 - 1


class HighScoreCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    game: StrictStr = Field(..., min_length=1)
    score: StrictInt = Field(..., ge=0, le=MAX_SCORE)
    player_name: Optional[StrictStr] = Field(default=DEFAULT_PLAYER_NAME, alias="playerName")

    @field_validator("game")
    @classmethod
    def game_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("game must be a non-empty string")
        return value

    @field_validator("player_name")
    @classmethod
    def default_blank_name(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            return DEFAULT_PLAYER_NAME
        return value.strip()


class HighScoreRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    game: str
    score: int
    player_name: str = Field(..., alias="playerName")
    created_at: datetime = Field(..., alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; every timestamp is stored in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ErrorResponse(BaseModel):
    message: str
    field: str


class HealthResponse(BaseModel):
    status: str
