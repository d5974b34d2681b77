from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class OwnerRequest(CamelBaseModel):
    user_id: str | None = None
    guest_id: str | None = None
    guest_name: str | None = None

    @model_validator(mode="after")
    def _require_identity(self) -> OwnerRequest:
        if not (self.user_id or self.guest_id or self.guest_name):
            raise ValueError("owner requires userId, guestId or guestName")
        return self


class PlaceDishOrderRequest(CamelBaseModel):
    owner: OwnerRequest
    item_name: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    unit_price_cents: int = Field(ge=0)
    extra_price_cents: int = Field(default=0, ge=0)
    currency: str | None = None
    images: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Any] | None = None


class PayAmountRequest(CamelBaseModel):
    amount_cents: int
    currency: str | None = None
    owner: OwnerRequest | None = None


class PaySplitShareRequest(CamelBaseModel):
    owner: OwnerRequest


class InitializeSplitBillRequest(CamelBaseModel):
    number_of_people: int
    participants: list[OwnerRequest | None] = Field(default_factory=list)


class UpdateKitchenStatusRequest(CamelBaseModel):
    status: str


class LinkGuestToUserRequest(CamelBaseModel):
    guest_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
