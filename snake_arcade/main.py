import logging
from typing import List

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from .db import get_db
from .models import ErrorResponse, HealthResponse, HighScoreCreate, HighScoreRecord
from .service import HighScoreService, ScoreValidationError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Snake Arcade API",
    version="1.0.0",
    description="High-score API backing the Snake web client. Lists and records leaderboard entries per game.",
)

# Allow the browser client to call the API from another origin/port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event() -> None:
    config.configure_logging()
    service = HighScoreService(get_db())
    service.seed_defaults()
    app.state.score_service = service


def get_service(request: Request) -> HighScoreService:
    return request.app.state.score_service


def _bad_request(error: ScoreValidationError) -> JSONResponse:
    body = ErrorResponse(message=error.message, field=error.field)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@app.exception_handler(ScoreValidationError)
async def score_validation_handler(request: Request, exc: ScoreValidationError) -> JSONResponse:
    return _bad_request(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors and errors[0].get("type") == "json_invalid":
        error = ScoreValidationError(field="", message="Request body is not valid JSON")
    else:
        error = ScoreValidationError.from_errors(errors)
    logger.warning("Rejected %s %s: %s (%s)", request.method, request.url.path, error.message, error.field or "body")
    return _bad_request(error)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/api/scores/{game}", response_model=List[HighScoreRecord])
def list_scores(game: str, service: HighScoreService = Depends(get_service)) -> List[HighScoreRecord]:
    return service.list(game)


@app.post(
    "/api/scores",
    status_code=status.HTTP_201_CREATED,
    response_model=HighScoreRecord,
    responses={400: {"model": ErrorResponse}},
)
def create_score(payload: HighScoreCreate, service: HighScoreService = Depends(get_service)) -> HighScoreRecord:
    return service.create(payload)


def run() -> None:
    import uvicorn

    uvicorn.run("snake_arcade.main:app", host=config.HOST, port=config.PORT)
