import asyncio
import contextlib
import logging
import random
from dataclasses import replace
from typing import List, Optional, Protocol, Union

from .client import ScoreSubmissionError
from .engine import Direction, GameState, Phase, advance, initial_state, tick_interval
from .models import HighScoreRecord

logger = logging.getLogger(__name__)

GAME_TAG = "snake"


class ScoreSubmitter(Protocol):
    async def create_score(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        ...


class SessionStateError(RuntimeError):
    """Operation not allowed in the session's current phase."""


class GameSession:
    """Owns one player's GameState and drives it with an asyncio timer.

    Input handlers only write the pending direction; ``tick`` is the single
    place the state advances. Use ``async with`` (or call ``close``) so the
    timer task is released however the session ends.
    """

    def __init__(
        self,
        scores: ScoreSubmitter,
        rng: Optional[random.Random] = None,
        autostart_timer: bool = True,
    ) -> None:
        self.scores = scores
        self.rng = rng
        self.autostart_timer = autostart_timer
        self.player_name = ""
        self.last_error: Optional[str] = None
        self._state = initial_state()
        self._timer: Optional[asyncio.Task] = None
        self._cancelled: List[asyncio.Task] = []

    async def __aenter__(self) -> "GameSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def final_score(self) -> Optional[int]:
        return self._state.score if self.phase == Phase.GAME_OVER else None

    @property
    def can_submit(self) -> bool:
        return self.phase == Phase.GAME_OVER and bool(self.player_name.strip())

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        if self.phase != Phase.IDLE:
            return
        self._state = replace(self._state, phase=Phase.PLAYING)
        logger.debug("Session started")
        if self.autostart_timer:
            self._timer = asyncio.get_running_loop().create_task(self._run())

    def turn(self, direction: Union[Direction, str]) -> None:
        if self.phase != Phase.PLAYING:
            return
        if not isinstance(direction, Direction):
            direction = Direction(direction.upper())
        self._state = replace(self._state, pending_direction=direction)

    def tick(self) -> GameState:
        if self.phase != Phase.PLAYING:
            return self._state
        self._state = advance(self._state, rng=self.rng)
        if self.phase == Phase.GAME_OVER:
            self._stop_timer()
            logger.info("Game over with score %d", self._state.score)
        return self._state

    async def _run(self) -> None:
        while self.phase == Phase.PLAYING:
            await asyncio.sleep(tick_interval(self._state.score))
            self.tick()

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
            # collected by close()
            self._cancelled.append(timer)

    async def submit(self, player_name: Optional[str] = None) -> HighScoreRecord:
        if self.phase != Phase.GAME_OVER:
            raise SessionStateError("Scores can only be submitted after the game is over")
        if player_name is not None:
            self.player_name = player_name
        name = self.player_name.strip()
        if not name:
            raise SessionStateError("Enter a player name before saving the score")

        score = self._state.score
        try:
            record = await self.scores.create_score(GAME_TAG, score, name)
        except ScoreSubmissionError as exc:
            self.last_error = str(exc)
            logger.warning("Saving score %d for %s failed: %s", score, name, exc)
            raise
        logger.info("Saved score %d for %s", score, name)
        self._reset()
        return record

    def restart(self) -> None:
        """Discard the current run and immediately start a new one."""
        self._reset()
        self.start()

    def _reset(self) -> None:
        self._stop_timer()
        self._state = initial_state()
        self.player_name = ""
        self.last_error = None

    async def close(self) -> None:
        self._stop_timer()
        pending, self._cancelled = self._cancelled, []
        for timer in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
