"""Schemas for price alerts, price history and the alert sweep."""

from datetime import datetime

from pydantic import BaseModel, Field

from umoja.models.enums import NotificationMethod, PriceObservationSource


class CreateAlertRequest(BaseModel):
    crop_name: str = Field(alias="cropName", min_length=1, max_length=50)
    county: str = Field(min_length=1, max_length=100)
    target_price_per_unit: float = Field(alias="targetPricePerUnit", gt=0)
    unit: str = Field(min_length=1, max_length=20)
    notification_method: NotificationMethod = Field(alias="notificationMethod", default=NotificationMethod.SMS)

    model_config = {"populate_by_name": True}


class AlertResponse(BaseModel):
    id: int
    crop_name: str = Field(alias="cropName")
    county: str
    target_price_per_unit: float = Field(alias="targetPricePerUnit")
    unit: str
    notification_method: NotificationMethod = Field(alias="notificationMethod")
    is_active: bool = Field(alias="isActive")
    last_triggered_at: datetime | None = Field(alias="lastTriggeredAt", default=None)

    model_config = {"populate_by_name": True, "from_attributes": True}


class AlertListResponse(BaseModel):
    alerts: list[AlertResponse]


class PriceObservationItem(BaseModel):
    price_per_unit: float = Field(alias="pricePerUnit")
    unit: str
    source: PriceObservationSource
    recorded_at: datetime = Field(alias="recordedAt")

    model_config = {"populate_by_name": True, "from_attributes": True}


class PriceStatsResponse(BaseModel):
    count: int
    average: float | None = None
    minimum: float | None = None
    maximum: float | None = None


class PriceHistoryResponse(BaseModel):
    crop_name: str = Field(alias="cropName")
    county: str
    days: int
    stats: PriceStatsResponse
    observations: list[PriceObservationItem]

    model_config = {"populate_by_name": True}


class SweepResponse(BaseModel):
    checked: int
    triggered: int
