import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from sqlalchemy import Column, DateTime, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from . import config
from .models import HighScoreRecord

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HighScoreModel(Base):
    __tablename__ = "high_scores"
    id = Column(Integer, primary_key=True, autoincrement=True)
    game = Column(String, nullable=False, index=True)
    score = Column(Integer, nullable=False)
    player_name = Column(String, nullable=False, default="Anonymous")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ScoreStore(Protocol):
    """Append-only storage of high-score records."""

    def insert(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        """Persist one record and return it with id and timestamp assigned."""
        ...

    def list_top(self, game: str, limit: int = 10) -> List[HighScoreRecord]:
        """Best records for a game, highest score first, ties by insertion order."""
        ...


class MemoryScoreStore:
    def __init__(self) -> None:
        self.records: Dict[str, List[HighScoreRecord]] = {}
        self._next_id = 1

    def insert(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        record = HighScoreRecord(
            id=self._next_id,
            game=game,
            score=score,
            player_name=player_name,
            created_at=_utcnow(),
        )
        self._next_id += 1
        self.records.setdefault(game, []).append(record)
        return record

    def list_top(self, game: str, limit: int = 10) -> List[HighScoreRecord]:
        # sorted() is stable, so equal scores keep insertion order
        entries = sorted(self.records.get(game, []), key=lambda record: record.score, reverse=True)
        return entries[:limit]

    def reset(self) -> None:
        self.records.clear()
        self._next_id = 1


class Database:
    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url or config.DB_URL
        self.engine = self._create_engine(self.database_url)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
        Base.metadata.create_all(self.engine)
        logger.info("High score store ready at %s", self.engine.url.render_as_string(hide_password=True))

    def _create_engine(self, url: str):
        kwargs = {"future": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    def _session(self):
        return self.SessionLocal()

    def insert(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        with self._session() as session:
            row = HighScoreModel(game=game, score=score, player_name=player_name)
            session.add(row)
            session.commit()
            return HighScoreRecord.model_validate(row)

    def list_top(self, game: str, limit: int = 10) -> List[HighScoreRecord]:
        with self._session() as session:
            rows = session.execute(
                select(HighScoreModel)
                .where(HighScoreModel.game == game)
                .order_by(HighScoreModel.score.desc(), HighScoreModel.id.asc())
                .limit(limit)
            ).scalars().all()
            return [HighScoreRecord.model_validate(row) for row in rows]

    def reset(self) -> None:
        with self._session() as session:
            session.query(HighScoreModel).delete()
            session.commit()


_db: Optional[Database] = None


def init_db(database_url: Optional[str] = None) -> Database:
    global _db
    _db = Database(database_url)
    return _db


def get_db() -> Database:
    """Process-wide database, created from DB_URL on first use."""
    if _db is None:
        return init_db()
    return _db
