# barbershop/routers/subscriptions_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends

from barbershop.context import SchedulingContext
from barbershop.deps import get_admin_context
from barbershop.schemas import (
    GeneratedOccurrences, SubscriptionCreate, SubscriptionPublic, SubscriptionUpdate,
)
from barbershop.subscriptions import (
    create_subscription, deactivate_subscription, get_subscription,
    list_subscriptions, top_up_subscription, update_subscription,
)

router = APIRouter(
    prefix="/subscriptions",
    tags=["subscriptions"],
)


@router.post("", response_model=SubscriptionPublic, status_code=201)
def add_subscription(
    subscription: SubscriptionCreate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return create_subscription(ctx, subscription)


@router.get("", response_model=List[SubscriptionPublic])
def get_subscriptions(
    barber_id: Optional[int] = None,
    active_only: bool = False,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return list_subscriptions(ctx, barber_id=barber_id, active_only=active_only)


@router.get("/{subscription_id}", response_model=SubscriptionPublic)
def read_subscription(
    subscription_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return get_subscription(ctx, subscription_id)


@router.patch("/{subscription_id}", response_model=SubscriptionPublic)
def edit_subscription(
    subscription_id: int,
    changes: SubscriptionUpdate,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return update_subscription(ctx, subscription_id, changes)


@router.post("/{subscription_id}/generate", response_model=GeneratedOccurrences)
def generate_appointments(
    subscription_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return top_up_subscription(ctx, subscription_id)


@router.post("/{subscription_id}/cancel", response_model=SubscriptionPublic)
def cancel_subscription(
    subscription_id: int,
    ctx: SchedulingContext = Depends(get_admin_context),
):
    return deactivate_subscription(ctx, subscription_id)
