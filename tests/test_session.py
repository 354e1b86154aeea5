import asyncio
import random
from datetime import datetime, timezone

import pytest

from snake_arcade.client import ScoreSubmissionError
from snake_arcade.engine import Direction, Phase, initial_state
from snake_arcade.models import HighScoreRecord
from snake_arcade.session import GameSession, SessionStateError


class FakeScores:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    async def create_score(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        self.calls.append((game, score, player_name))
        if self.fail:
            raise ScoreSubmissionError("Could not save score: connection refused")
        return HighScoreRecord(
            id=len(self.calls),
            game=game,
            score=score,
            player_name=player_name,
            created_at=datetime.now(timezone.utc),
        )


def manual_session(scores=None):
    return GameSession(scores or FakeScores(), rng=random.Random(3), autostart_timer=False)


def run_into_wall(session):
    # from (10,10) heading RIGHT the wall is 10 ticks away
    for _ in range(20):
        session.tick()
        if session.phase == Phase.GAME_OVER:
            return
    raise AssertionError("snake never hit the wall")


def test_start_only_from_idle():
    session = manual_session()
    assert session.phase == Phase.IDLE
    session.start()
    assert session.phase == Phase.PLAYING

    run_into_wall(session)
    session.start()
    assert session.phase == Phase.GAME_OVER


def test_tick_ignored_while_idle():
    session = manual_session()
    assert session.tick() == initial_state()


def test_input_ignored_outside_playing():
    session = manual_session()
    session.turn(Direction.UP)
    assert session.state.pending_direction == Direction.RIGHT

    session.start()
    run_into_wall(session)
    session.turn(Direction.UP)
    assert session.state.pending_direction == Direction.RIGHT


def test_turn_is_buffered_until_next_tick():
    session = manual_session()
    session.start()
    session.turn("up")
    assert session.state.direction == Direction.RIGHT
    assert session.state.pending_direction == Direction.UP

    session.tick()
    assert session.state.direction == Direction.UP
    assert session.state.head == (10, 9)


def test_last_buffered_turn_wins():
    session = manual_session()
    session.start()
    session.turn(Direction.UP)
    session.turn(Direction.LEFT)  # reverse of RIGHT, rejected at the tick
    session.tick()
    assert session.state.direction == Direction.RIGHT
    assert session.state.head == (11, 10)


def test_turn_rejects_unknown_direction():
    session = manual_session()
    session.start()
    with pytest.raises(ValueError):
        session.turn("sideways")


def test_game_over_exposes_final_score():
    session = manual_session()
    assert session.final_score is None
    session.start()
    run_into_wall(session)
    assert session.final_score == 0
    assert session.state.head == (19, 10)


@pytest.mark.asyncio
async def test_submit_requires_game_over_and_name():
    session = manual_session()
    with pytest.raises(SessionStateError):
        await session.submit("ada")

    session.start()
    run_into_wall(session)
    assert session.can_submit is False
    with pytest.raises(SessionStateError):
        await session.submit("   ")
    assert session.scores.calls == []


@pytest.mark.asyncio
async def test_submit_success_resets_to_idle():
    scores = FakeScores()
    session = manual_session(scores)
    session.start()
    run_into_wall(session)

    session.player_name = "  ada "
    assert session.can_submit
    record = await session.submit()

    assert scores.calls == [("snake", 0, "ada")]
    assert record.player_name == "ada"
    assert session.phase == Phase.IDLE
    assert session.state == initial_state()
    assert session.player_name == ""


@pytest.mark.asyncio
async def test_submit_failure_keeps_dialog_state():
    scores = FakeScores(fail=True)
    session = manual_session(scores)
    session.start()
    session.turn(Direction.DOWN)
    run_into_wall(session)
    final = session.state

    with pytest.raises(ScoreSubmissionError):
        await session.submit("ada")

    assert session.phase == Phase.GAME_OVER
    assert session.state == final
    assert session.player_name == "ada"
    assert "connection refused" in session.last_error

    scores.fail = False
    await session.submit()
    assert session.phase == Phase.IDLE
    assert session.last_error is None


def test_restart_starts_new_run():
    session = manual_session()
    session.start()
    run_into_wall(session)
    session.player_name = "ada"

    session.restart()
    assert session.phase == Phase.PLAYING
    assert session.state.snake == initial_state().snake
    assert session.state.score == 0
    assert session.player_name == ""


@pytest.mark.asyncio
async def test_timer_drives_ticks_until_game_over():
    async with GameSession(FakeScores(), rng=random.Random(3)) as session:
        session.start()
        assert session.timer_running
        for _ in range(200):
            if session.phase == Phase.GAME_OVER:
                break
            await asyncio.sleep(0.05)
        assert session.phase == Phase.GAME_OVER
        assert session.state.head == (19, 10)
        assert not session.timer_running


@pytest.mark.asyncio
async def test_close_cancels_timer():
    session = GameSession(FakeScores())
    session.start()
    timer = session._timer
    await session.close()
    assert timer.cancelled()
    assert not session.timer_running
    assert session.phase == Phase.PLAYING


@pytest.mark.asyncio
async def test_rejected_submit_changes_nothing():
    session = manual_session()
    with pytest.raises(SessionStateError):
        await session.submit("ada")
    assert session.player_name == ""

    session.start()
    run_into_wall(session)
    assert session.can_submit is False
    assert session.scores.calls == []


@pytest.mark.asyncio
async def test_restart_while_playing_collects_old_timer():
    session = GameSession(FakeScores())
    session.start()
    old_timer = session._timer

    session.restart()
    assert session.phase == Phase.PLAYING
    assert session._timer is not old_timer
    new_timer = session._timer

    await session.close()
    assert old_timer.done() and old_timer.cancelled()
    assert new_timer.done()
    assert not session.timer_running
