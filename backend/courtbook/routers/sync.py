import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from ..config import SYNC_PULL_RATE_LIMIT
from ..schemas import SyncResultOut
from ..services.ledger import Ledger
from ..services.storage import LedgerStore
from ..services.sync import apply_remote_state
from .deps import client_ip, get_ledger, get_store

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=client_ip)
router = APIRouter(prefix="/sync", tags=["sync"])


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    detail = exc.detail if isinstance(exc.detail, str) else ""
    if detail:
        message = f"rate limit exceeded: {detail}"
    else:
        message = "rate limit exceeded: please wait before submitting another request."
    return JSONResponse(
        status_code=429,
        content={
            "title": "Too Many Requests",
            "detail": message,
            "status": 429,
            "code": "rate_limit_exceeded",
        },
        media_type="application/problem+json",
    )


@router.post("/pull", response_model=SyncResultOut)
@limiter.limit(SYNC_PULL_RATE_LIMIT)
async def pull_remote(
    request: Request,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    """Reload every non-empty collection from the spreadsheet."""
    if store.remote is None:
        return SyncResultOut(configured=False)
    remote = await store.remote.load_all()
    overwritten = apply_remote_state(ledger, remote)
    # The data came from the remote, so only the local copy needs writing.
    await store.flush(ledger, push=False)
    logger.info("Pulled %d collections from remote", len(overwritten))
    return SyncResultOut(configured=True, overwritten=overwritten)
