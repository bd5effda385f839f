from fastapi import APIRouter, BackgroundTasks, Depends

from ..schemas import Settings, SettingsUpdate
from ..services.ledger import Ledger
from ..services.storage import LedgerStore
from .deps import get_ledger, get_store

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=Settings)
async def get_settings(ledger: Ledger = Depends(get_ledger)):
    return ledger.settings


@router.patch("", response_model=Settings)
async def update_settings(
    body: SettingsUpdate,
    background_tasks: BackgroundTasks,
    ledger: Ledger = Depends(get_ledger),
    store: LedgerStore = Depends(get_store),
):
    settings = ledger.update_settings(
        **body.model_dump(exclude_unset=True, exclude_none=True)
    )
    await store.flush(ledger, background_tasks)
    return settings
