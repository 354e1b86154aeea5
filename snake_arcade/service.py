import logging
from typing import Any, List, Mapping, Union

from pydantic import ValidationError

from . import config
from .db import ScoreStore
from .models import HighScoreCreate, HighScoreRecord

logger = logging.getLogger(__name__)

SEED_SCORES = (
    ("snake", 150, "SnakeMaster"),
    ("snake", 100, "Python"),
    ("snake", 50, "Worm"),
)


class ScoreValidationError(ValueError):
    """Score payload rejected; `field` names the first offending field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    @classmethod
    def from_errors(cls, errors) -> "ScoreValidationError":
        first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        return cls(field=".".join(loc), message=first.get("msg", "Invalid request"))


class HighScoreService:
    def __init__(self, store: ScoreStore, limit: int = config.SCORE_LIMIT) -> None:
        self.store = store
        self.limit = limit

    def list(self, game: str) -> List[HighScoreRecord]:
        return self.store.list_top(game, limit=self.limit)

    def create(self, payload: Union[HighScoreCreate, Mapping[str, Any]]) -> HighScoreRecord:
        if not isinstance(payload, HighScoreCreate):
            if not isinstance(payload, Mapping):
                raise ScoreValidationError(field="", message="Expected a JSON object")
            try:
                payload = HighScoreCreate.model_validate(payload)
            except ValidationError as exc:
                error = ScoreValidationError.from_errors(exc.errors())
                logger.warning("Rejected score for field %r: %s", error.field, error.message)
                raise error from exc
        record = self.store.insert(payload.game, payload.score, payload.player_name)
        logger.info("Recorded %s score %d for %s (id=%d)", record.game, record.score, record.player_name, record.id)
        return record

    def seed_defaults(self) -> bool:
        """Insert the starter snake leaderboard if it is empty. Returns True when seeded."""
        if self.store.list_top("snake", limit=1):
            return False
        for game, score, player_name in SEED_SCORES:
            self.store.insert(game, score, player_name)
        logger.info("Seeded %d default snake scores", len(SEED_SCORES))
        return True
