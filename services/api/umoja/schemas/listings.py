"""Schemas for produce listings."""

from pydantic import BaseModel, Field

from umoja.models.enums import ListingStatus


class CreateListingRequest(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    crop_name: str = Field(alias="cropName", min_length=1, max_length=50)
    quantity_available: float = Field(alias="quantityAvailable", gt=0)
    unit: str = Field(min_length=1, max_length=20)
    price_per_unit: float = Field(alias="pricePerUnit", gt=0)
    pickup_county: str = Field(alias="pickupCounty", min_length=1, max_length=100)

    model_config = {"populate_by_name": True}


class ListingResponse(BaseModel):
    id: int
    farmer_id: int = Field(alias="farmerId")
    title: str
    crop_name: str = Field(alias="cropName")
    quantity_available: float = Field(alias="quantityAvailable")
    unit: str
    price_per_unit: float = Field(alias="pricePerUnit")
    pickup_county: str = Field(alias="pickupCounty")
    status: ListingStatus

    model_config = {"populate_by_name": True, "from_attributes": True}
