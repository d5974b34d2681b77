from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class OwnerResponse(BaseModel):
    userId: str | None = None
    guestId: str | None = None
    guestName: str | None = None
    displayName: str


class AccountSummaryResponse(BaseModel):
    restaurantId: str
    tableId: str
    tableStatus: str
    active: bool
    sittingId: str | None = None
    sittingStatus: str | None = None
    paymentState: str | None = None
    totalAmount: MoneyResponse | None = None
    paidAmount: MoneyResponse | None = None
    remainingAmount: MoneyResponse | None = None
    itemCount: int = 0
    createdAt: datetime | None = None
    closedAt: datetime | None = None


class DishOrderResponse(BaseModel):
    dishId: str
    sittingId: str
    restaurantId: str
    tableId: str
    owner: OwnerResponse
    itemName: str
    quantity: int
    unitPrice: MoneyResponse
    extraPrice: MoneyResponse
    lineTotal: MoneyResponse
    kitchenStatus: str
    paymentStatus: str
    images: list[str] = Field(default_factory=list)
    customFields: dict[str, Any] | None = None
    createdAt: datetime
    paidAt: datetime | None = None


class RedistributionResponse(BaseModel):
    redistributed: bool
    newTotal: MoneyResponse | None = None
    amountPerPendingPerson: MoneyResponse | None = None
    pendingPeople: int = 0
    totalPeople: int = 0
    totalPaidBySplit: MoneyResponse | None = None
    newGuestsAdded: int = 0


class DishPlacementResponse(BaseModel):
    dish: DishOrderResponse
    account: AccountSummaryResponse
    openedSitting: bool
    redistribution: RedistributionResponse | None = None


class DishOrderListResponse(BaseModel):
    dishes: list[DishOrderResponse] = Field(default_factory=list)


class PaymentResponse(BaseModel):
    paymentId: str
    modality: str
    amount: MoneyResponse
    owner: OwnerResponse | None = None
    dishId: str | None = None
    closedSitting: bool
    replayed: bool = False
    createdAt: datetime
    account: AccountSummaryResponse


class SplitShareResponse(BaseModel):
    shareId: str
    owner: OwnerResponse
    expectedAmount: MoneyResponse
    amountPaid: MoneyResponse
    remainingAmount: MoneyResponse
    status: str
    originalTotal: MoneyResponse
    createdAt: datetime
    paidAt: datetime | None = None


class SplitBillResponse(BaseModel):
    numberOfPeople: int
    amountPerPerson: MoneyResponse
    originalTotal: MoneyResponse
    shares: list[SplitShareResponse] = Field(default_factory=list)


class SplitStatusSummaryResponse(BaseModel):
    totalPeople: int
    paidPeople: int
    pendingPeople: int
    totalCollected: MoneyResponse
    totalRemaining: MoneyResponse


class SplitStatusResponse(BaseModel):
    active: bool
    shares: list[SplitShareResponse] = Field(default_factory=list)
    summary: SplitStatusSummaryResponse


class ContributionsResponse(BaseModel):
    individualCents: int
    amountCents: int
    splitCents: int
    totalCents: int


class ParticipantResponse(BaseModel):
    owner: OwnerResponse
    contributions: ContributionsResponse
    joinedAt: datetime
    updatedAt: datetime


class ParticipantListResponse(BaseModel):
    participants: list[ParticipantResponse] = Field(default_factory=list)


class GuestLinkResponse(BaseModel):
    updatedDishes: int
    updatedParticipants: int
    updatedShares: int


class TableResponse(BaseModel):
    tableId: str
    restaurantId: str
    status: str


class TableRegistryResponse(BaseModel):
    tables: list[AccountSummaryResponse] = Field(default_factory=list)
