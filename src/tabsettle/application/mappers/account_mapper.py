from __future__ import annotations

from tabsettle.application.dto.requests import OwnerRequest
from tabsettle.application.dto.responses import (
    AccountSummaryResponse,
    ContributionsResponse,
    DishOrderResponse,
    GuestLinkResponse,
    MoneyResponse,
    OwnerResponse,
    ParticipantResponse,
    RedistributionResponse,
    SplitShareResponse,
    SplitStatusResponse,
    SplitStatusSummaryResponse,
    TableResponse,
)
from tabsettle.domain.account.participants import GuestLinkResult
from tabsettle.domain.account.split_bill import RedistributionOutcome, SplitStatus
from tabsettle.domain.common.money import Money
from tabsettle.domain.common.owner import Owner
from tabsettle.domain.dish.entities import DishOrder
from tabsettle.domain.participant.entities import Participant
from tabsettle.domain.sitting.entities import Sitting
from tabsettle.domain.split.entities import SplitShare
from tabsettle.domain.table.entities import Table


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def _optional_money(money: Money | None) -> MoneyResponse | None:
    if money is None:
        return None
    return to_money_response(money)


def to_owner_response(owner: Owner) -> OwnerResponse:
    return OwnerResponse(
        userId=owner.user_id,
        guestId=owner.guest_id,
        guestName=owner.guest_name,
        displayName=owner.display_name,
    )


def to_account_summary_response(table: Table, sitting: Sitting | None) -> AccountSummaryResponse:
    if sitting is None:
        return AccountSummaryResponse(
            restaurantId=str(table.restaurant_id),
            tableId=str(table.table_id),
            tableStatus=table.status.value,
            active=False,
        )
    return AccountSummaryResponse(
        restaurantId=str(table.restaurant_id),
        tableId=str(table.table_id),
        tableStatus=table.status.value,
        active=sitting.is_open,
        sittingId=str(sitting.sitting_id),
        sittingStatus=sitting.status.value,
        paymentState=sitting.payment_state.value,
        totalAmount=to_money_response(sitting.total),
        paidAmount=to_money_response(sitting.paid),
        remainingAmount=to_money_response(sitting.remaining),
        itemCount=sitting.item_count,
        createdAt=sitting.created_at,
        closedAt=sitting.closed_at,
    )


def to_dish_order_response(dish: DishOrder) -> DishOrderResponse:
    return DishOrderResponse(
        dishId=str(dish.dish_id),
        sittingId=str(dish.sitting_id),
        restaurantId=str(dish.restaurant_id),
        tableId=str(dish.table_id),
        owner=to_owner_response(dish.owner),
        itemName=dish.item_name,
        quantity=dish.quantity,
        unitPrice=to_money_response(dish.unit_price),
        extraPrice=to_money_response(dish.extra_price),
        lineTotal=to_money_response(dish.line_total),
        kitchenStatus=dish.kitchen_status.value,
        paymentStatus=dish.payment_status.value,
        images=list(dish.images),
        customFields=dish.custom_fields,
        createdAt=dish.created_at,
        paidAt=dish.paid_at,
    )


def to_redistribution_response(outcome: RedistributionOutcome) -> RedistributionResponse:
    return RedistributionResponse(
        redistributed=outcome.redistributed,
        newTotal=_optional_money(outcome.new_total),
        amountPerPendingPerson=_optional_money(outcome.amount_per_pending_person),
        pendingPeople=outcome.pending_people,
        totalPeople=outcome.total_people,
        totalPaidBySplit=_optional_money(outcome.total_paid_by_split),
        newGuestsAdded=outcome.new_guests_added,
    )


def to_split_share_response(share: SplitShare) -> SplitShareResponse:
    return SplitShareResponse(
        shareId=str(share.share_id),
        owner=to_owner_response(share.owner),
        expectedAmount=to_money_response(share.expected),
        amountPaid=to_money_response(share.amount_paid),
        remainingAmount=to_money_response(share.outstanding),
        status=share.status.value,
        originalTotal=to_money_response(share.original_total),
        createdAt=share.created_at,
        paidAt=share.paid_at,
    )


def to_split_status_response(status: SplitStatus) -> SplitStatusResponse:
    return SplitStatusResponse(
        active=status.active,
        shares=[to_split_share_response(share) for share in status.shares],
        summary=SplitStatusSummaryResponse(
            totalPeople=status.total_people,
            paidPeople=status.paid_people,
            pendingPeople=status.pending_people,
            totalCollected=to_money_response(status.total_collected),
            totalRemaining=to_money_response(status.total_remaining),
        ),
    )


def to_participant_response(participant: Participant) -> ParticipantResponse:
    contributions = participant.contributions
    return ParticipantResponse(
        owner=to_owner_response(participant.owner),
        contributions=ContributionsResponse(
            individualCents=contributions.individual_cents,
            amountCents=contributions.amount_cents,
            splitCents=contributions.split_cents,
            totalCents=contributions.total_cents,
        ),
        joinedAt=participant.joined_at,
        updatedAt=participant.updated_at,
    )


def to_guest_link_response(result: GuestLinkResult) -> GuestLinkResponse:
    return GuestLinkResponse(
        updatedDishes=result.updated_dishes,
        updatedParticipants=result.updated_participants,
        updatedShares=result.updated_shares,
    )


def to_table_response(table: Table) -> TableResponse:
    return TableResponse(
        tableId=str(table.table_id),
        restaurantId=str(table.restaurant_id),
        status=table.status.value,
    )


def owner_from_request(owner: OwnerRequest) -> Owner:
    return Owner(user_id=owner.user_id, guest_id=owner.guest_id, guest_name=owner.guest_name)
