# controllers/trackers.py
"""Maintenance endpoint the external scheduler calls at the start of a month."""

import logging
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException

from ..config import get_sweep_token
from ..dependencies import get_stores
from ..schemas import budget as schemas
from ..services.contracts import Stores
from ..services.notifier import sweep_stale_trackers

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_sweep_token(x_sweep_token: str = Header(None)) -> None:
    expected = get_sweep_token()
    if not expected:
        raise HTTPException(status_code=503, detail="Tracker sweep is not configured")
    if not x_sweep_token or not secrets.compare_digest(x_sweep_token, expected):
        raise HTTPException(status_code=403, detail="Invalid sweep token")


@router.post(
    "/sweep",
    response_model=schemas.SweepResult,
    dependencies=[Depends(verify_sweep_token)],
    summary="Delete stale threshold trackers",
)
async def sweep_trackers(stores: Stores = Depends(get_stores)):
    now = datetime.now()
    logger.info(f"Sweeping threshold trackers before {now.year}")
    deleted = await sweep_stale_trackers(stores.trackers, now)
    return schemas.SweepResult(year=now.year, deleted=deleted)
