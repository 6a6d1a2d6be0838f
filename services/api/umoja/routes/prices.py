"""Price alert and price history endpoints.

POST   /v1/prices/alerts             - Farmer creates a price alert
GET    /v1/prices/alerts             - Farmer's active alerts
DELETE /v1/prices/alerts/{alert_id}  - Deactivate an alert
GET    /v1/prices/history            - Observations + stats for crop/county
"""

from fastapi import APIRouter, Depends, Query

from umoja.auth import require_role
from umoja.models.enums import Role
from umoja.schemas import (
    AlertListResponse,
    AlertResponse,
    CreateAlertRequest,
    PriceHistoryResponse,
    PriceObservationItem,
    PriceStatsResponse,
)
from umoja.services.alerts import create_alert, deactivate_alert, list_alerts
from umoja.services.caller import CallerContext
from umoja.services.prices import price_history

router = APIRouter()


@router.post("/alerts", response_model=AlertResponse, status_code=201)
async def create_price_alert(
    request: CreateAlertRequest,
    caller: CallerContext = Depends(require_role(Role.FARMER)),
) -> AlertResponse:
    alert = await create_alert(
        caller,
        crop_name=request.crop_name,
        county=request.county,
        target_price_per_unit=request.target_price_per_unit,
        unit=request.unit,
        notification_method=request.notification_method,
    )
    return AlertResponse.model_validate(alert)


@router.get("/alerts", response_model=AlertListResponse)
async def list_price_alerts(
    caller: CallerContext = Depends(require_role(Role.FARMER)),
) -> AlertListResponse:
    alerts = await list_alerts(caller)
    return AlertListResponse(alerts=[AlertResponse.model_validate(a) for a in alerts])


@router.delete("/alerts/{alert_id}")
async def delete_price_alert(
    alert_id: int,
    caller: CallerContext = Depends(require_role(Role.FARMER)),
) -> dict:
    alert = await deactivate_alert(caller, alert_id)
    return {"id": alert.id, "isActive": alert.is_active}


@router.get("/history", response_model=PriceHistoryResponse)
async def get_price_history(
    crop: str = Query(min_length=1, max_length=50, description="Crop name, e.g. Maize"),
    county: str = Query(min_length=1, max_length=100, examples=["Kiambu"]),
    days: int = Query(default=30, description="Trailing window: 7, 30 or 90"),
) -> PriceHistoryResponse:
    observations, stats = await price_history(crop, county, days=days)
    return PriceHistoryResponse(
        crop_name=crop,
        county=county,
        days=days,
        stats=PriceStatsResponse(
            count=stats.count,
            average=stats.average,
            minimum=stats.minimum,
            maximum=stats.maximum,
        ),
        observations=[PriceObservationItem.model_validate(o) for o in observations],
    )
