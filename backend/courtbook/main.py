from contextlib import asynccontextmanager
import logging
import os

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .routers import (
    players,
    sessions,
    games,
    selection,
    settings,
    export,
    sync,
)
from .config import API_PREFIX, SHEETS_CAPTCHA_TOKEN, SHEETS_SECRET, SHEETS_URL
from .db import create_all
from .exceptions import DomainException, ProblemDetail
from .services.ledger import Ledger
from .services.sheets import SheetsClient
from .services.storage import LedgerStore
from .services.sync import RemoteSync, apply_remote_state
from .utils.sentry import init_sentry

logger = logging.getLogger(__name__)

SENTRY_ENABLED = init_sentry()

# -----------------------------------------------------------------------------
# CORS configuration
# -----------------------------------------------------------------------------
allowed_origins_raw = os.getenv("ALLOWED_ORIGINS", "").strip()

if not allowed_origins_raw:
    raise ValueError(
        "ALLOWED_ORIGINS environment variable must be set to a comma-separated "
        "list of trusted origins."
    )

ALLOWED_ORIGINS = [o.strip() for o in allowed_origins_raw.split(",") if o.strip()]

if not ALLOWED_ORIGINS:
    raise ValueError("ALLOWED_ORIGINS must contain at least one non-empty origin.")
ALLOW_CREDENTIALS = os.getenv("ALLOW_CREDENTIALS", "true").lower() == "true"

# Fail fast if misconfigured: credentials + wildcard origins is unsafe
if "*" in ALLOWED_ORIGINS:
    raise ValueError(
        "ALLOWED_ORIGINS cannot include '*' (wildcard). Specify explicit, trusted origins."
    )


# -----------------------------------------------------------------------------
# Ledger lifecycle
# -----------------------------------------------------------------------------
def build_remote_sync() -> RemoteSync | None:
    if not SHEETS_URL:
        logger.info("SHEETS_URL not provided; remote sync disabled.")
        return None
    return RemoteSync(
        SheetsClient(SHEETS_URL, SHEETS_SECRET, captcha_token=SHEETS_CAPTCHA_TOKEN)
    )


async def load_ledger(store: LedgerStore) -> Ledger:
    """Local state first, then any non-empty remote collection on top."""
    ledger = Ledger(await store.load())
    if store.remote is not None:
        apply_remote_state(ledger, await store.remote.load_all())
        await store.flush(ledger, push=False)
    logger.info(
        "Loaded %d players, %d sessions, %d games",
        len(ledger.players),
        len(ledger.sessions),
        len(ledger.games),
    )
    return ledger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own ledger/store before startup.
    if getattr(app.state, "ledger", None) is None:
        await create_all()
        store = LedgerStore(remote=build_remote_sync())
        app.state.store = store
        app.state.ledger = await load_ledger(store)
    yield
    store = getattr(app.state, "store", None)
    if store is not None and store.remote is not None:
        await store.remote.client.aclose()


# -----------------------------------------------------------------------------
# FastAPI app
# -----------------------------------------------------------------------------
app = FastAPI(
    title="Courtbook API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = sync.limiter
app.add_exception_handler(RateLimitExceeded, sync.rate_limit_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("API_PREFIX=%r", API_PREFIX)


# -----------------------------------------------------------------------------
# Health checks
# -----------------------------------------------------------------------------
@app.get("/healthz", tags=["health"])  # Unprefixed for reverse proxy / uptime checks
def root_healthz():
    return {"status": "ok"}


# -----------------------------------------------------------------------------
# Error handling
# -----------------------------------------------------------------------------
@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    problem = ProblemDetail(
        type=exc.type,
        title=exc.title,
        detail=exc.detail,
        status=exc.status_code,
        code=exc.code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = getattr(exc, "code", f"http_{exc.status_code}")
    problem = ProblemDetail(
        title=detail,
        detail=detail,
        status=exc.status_code,
        code=code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    problem = ProblemDetail(
        title="Internal Server Error",
        status=500,
        detail=str(exc),
        code="internal_server_error",
    )
    return JSONResponse(
        status_code=500,
        content=problem.model_dump(),
        media_type="application/problem+json",
    )

# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
api_router = APIRouter(prefix=API_PREFIX, tags=["meta"])


@api_router.get("/healthz", tags=["health"])
def api_healthz():
    return {"status": "ok"}


@api_router.get("")
def api_root():
    return {"message": "Courtbook API. See /docs."}


v0_router = APIRouter(prefix="/v0")
v0_router.include_router(players.router)
v0_router.include_router(sessions.router)
v0_router.include_router(games.router)
v0_router.include_router(selection.router)
v0_router.include_router(settings.router)
v0_router.include_router(export.router)
v0_router.include_router(sync.router)

api_router.include_router(v0_router)
app.include_router(api_router)
