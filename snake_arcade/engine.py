"""Snake grid simulation.

Every function here is pure: a tick takes a ``GameState`` and returns a new
one. Randomness for food placement comes from an injectable ``random.Random``
so runs can be replayed.
"""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Tuple

GRID_SIZE = 20
FOOD_REWARD = 10
BASE_INTERVAL = 0.150  # seconds
DECAY = 0.99
MAX_FOOD_ATTEMPTS = 100


class Point(NamedTuple):
    x: int
    y: int


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class Phase(str, Enum):
    IDLE = "IDLE"
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"


_VECTORS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

INITIAL_SNAKE = (Point(10, 10),)
INITIAL_FOOD = Point(15, 15)


@dataclass(frozen=True)
class GameState:
    snake: Tuple[Point, ...]  # head first
    food: Point
    direction: Direction = Direction.RIGHT
    pending_direction: Direction = Direction.RIGHT
    score: int = 0
    phase: Phase = Phase.IDLE

    @property
    def head(self) -> Point:
        return self.snake[0]

    def to_dict(self) -> dict:
        return {
            "snake": [{"x": p.x, "y": p.y} for p in self.snake],
            "food": {"x": self.food.x, "y": self.food.y},
            "direction": self.direction.value,
            "score": self.score,
            "phase": self.phase.value,
        }


def initial_state() -> GameState:
    return GameState(snake=INITIAL_SNAKE, food=INITIAL_FOOD)


def opposite(direction: Direction) -> Direction:
    return _OPPOSITES[direction]


def in_bounds(point: Point) -> bool:
    return 0 <= point.x < GRID_SIZE and 0 <= point.y < GRID_SIZE


def tick_interval(score: int) -> float:
    """Seconds between ticks; about 1% faster for every food eaten."""
    return BASE_INTERVAL * DECAY ** (score / 10)


def random_food(snake: Iterable[Point], rng: Optional[random.Random] = None) -> Optional[Point]:
    """Uniformly random free cell, or None when the snake fills the grid."""
    rng = rng or random
    occupied = set(snake)
    for _ in range(MAX_FOOD_ATTEMPTS):
        candidate = Point(rng.randrange(GRID_SIZE), rng.randrange(GRID_SIZE))
        if candidate not in occupied:
            return candidate
    # crowded board: pick from the remaining cells directly
    free = [Point(x, y) for y in range(GRID_SIZE) for x in range(GRID_SIZE) if Point(x, y) not in occupied]
    if not free:
        return None
    return rng.choice(free)


def advance(
    state: GameState,
    requested_direction: Optional[Direction] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    """Run one tick.

    ``requested_direction`` defaults to the state's buffered pending direction.
    A reversal of the committed direction is ignored. Hitting a wall or the
    snake's own body ends the game without moving anything.
    """
    if state.phase == Phase.GAME_OVER:
        return state

    requested = requested_direction or state.pending_direction
    direction = state.direction if requested == opposite(state.direction) else requested

    dx, dy = _VECTORS[direction]
    head = Point(state.head.x + dx, state.head.y + dy)

    if not in_bounds(head) or head in state.snake:
        return replace(state, phase=Phase.GAME_OVER)

    snake = (head,) + state.snake
    if head != state.food:
        return replace(
            state,
            snake=snake[:-1],
            direction=direction,
            pending_direction=direction,
        )

    score = state.score + FOOD_REWARD
    food = random_food(snake, rng)
    if food is None:
        # nowhere left to put food; the board is full
        return replace(
            state,
            snake=snake,
            direction=direction,
            pending_direction=direction,
            score=score,
            phase=Phase.GAME_OVER,
        )
    return replace(
        state,
        snake=snake,
        food=food,
        direction=direction,
        pending_direction=direction,
        score=score,
    )
