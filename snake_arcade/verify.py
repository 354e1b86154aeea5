"""Smoke-check a running high-score API end to end."""

import asyncio
import random
import string
from typing import Any, Dict, List

import httpx

from . import config


def _random_player(prefix: str = "verifier") -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}-{suffix}"


def _require_status(response: httpx.Response, expected: int) -> Any:
    if response.status_code != expected:
        raise RuntimeError(f"{response.request.method} {response.request.url} expected {expected}, got {response.status_code}: {response.text}")
    if response.headers.get("content-type", "").startswith("application/json"):
        return response.json()
    return {}


async def verify(client: httpx.AsyncClient) -> None:
    player = _random_player()

    print("Checking /health...")
    _require_status(await client.get("/health"), 200)

    print("Checking snake leaderboard...")
    entries: List[Dict[str, Any]] = _require_status(await client.get("/api/scores/snake"), 200)
    if len(entries) > 10:
        raise RuntimeError(f"Leaderboard returned {len(entries)} entries")
    scores = [entry["score"] for entry in entries]
    if scores != sorted(scores, reverse=True):
        raise RuntimeError(f"Leaderboard is not sorted: {scores}")

    print(f"Submitting score for {player}...")
    created = _require_status(
        await client.post("/api/scores", json={"game": "snake", "score": 7, "playerName": player}),
        201,
    )
    assert created["playerName"] == player
    assert created["id"] is not None

    print("Submitting anonymous score...")
    anonymous = _require_status(await client.post("/api/scores", json={"game": "rps", "score": 1}), 201)
    assert anonymous["playerName"] == "Anonymous"

    print("Submitting invalid score...")
    rejected = _require_status(await client.post("/api/scores", json={"game": "snake", "score": "abc"}), 400)
    assert rejected["field"] == "score"


async def main() -> None:
    print(f"Using base URL: {config.API_BASE_URL}")
    async with httpx.AsyncClient(base_url=config.API_BASE_URL, timeout=10) as client:
        await verify(client)
    print("API verification completed successfully.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
