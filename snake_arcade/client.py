import json
from typing import Any, List, Optional

import httpx

from . import config
from .models import HighScoreRecord


class ScoreSubmissionError(RuntimeError):
    """The score API could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.field = field


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    message = f"{response.request.method} {response.request.url} failed with {response.status_code}"
    field = None
    if response.headers.get("content-type", "").startswith("application/json"):
        try:
            body = response.json()
        except json.JSONDecodeError:
            body = None
        if isinstance(body, dict):
            message = body.get("message", message)
            field = body.get("field")
    raise ScoreSubmissionError(message, status_code=response.status_code, field=field)


def _parse(response: httpx.Response, parse) -> Any:
    try:
        return parse(response.json())
    except (ValueError, TypeError) as exc:
        # ValueError covers JSONDecodeError and pydantic ValidationError
        raise ScoreSubmissionError(
            f"Unexpected response from {response.request.url}: {exc}", status_code=response.status_code
        ) from exc


class ScoreClient:
    """Async client for the high-score API."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._client = httpx.AsyncClient(base_url=base_url or config.API_BASE_URL, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ScoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_scores(self, game: str) -> List[HighScoreRecord]:
        try:
            response = await self._client.get(f"/api/scores/{game}")
        except httpx.HTTPError as exc:
            raise ScoreSubmissionError(f"Could not load scores: {exc}") from exc
        _raise_for_status(response)
        return _parse(response, lambda body: [HighScoreRecord.model_validate(entry) for entry in body])

    async def create_score(self, game: str, score: int, player_name: str) -> HighScoreRecord:
        payload = {"game": game, "score": score, "playerName": player_name}
        try:
            response = await self._client.post("/api/scores", json=payload)
        except httpx.HTTPError as exc:
            raise ScoreSubmissionError(f"Could not save score: {exc}") from exc
        _raise_for_status(response)
        return _parse(response, HighScoreRecord.model_validate)
