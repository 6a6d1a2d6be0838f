"""Scheduler-triggered jobs.

POST /v1/cron/price-alert-check - Periodic price alert sweep (Bearer CRON_SECRET)
"""

from fastapi import APIRouter, Depends

from umoja.auth import require_cron_secret
from umoja.schemas import SweepResponse
from umoja.services.sweeper import AlertSweeper

router = APIRouter()


@router.post("/price-alert-check", response_model=SweepResponse, dependencies=[Depends(require_cron_secret)])
async def price_alert_check() -> SweepResponse:
    stats = await AlertSweeper().run()
    return SweepResponse(checked=stats.checked, triggered=stats.triggered)
