"""
Subscription API Routes
Plan catalog and driver subscriptions
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from swapstation.api.dependencies import ok
from swapstation.core import messages
from swapstation.core.security import get_current_user
from swapstation.database import get_db
from swapstation.models import Account
from swapstation.schemas.subscription import SubscriptionPurchase
from swapstation.services import subscription_service

plans_router = APIRouter()
router = APIRouter()


@plans_router.get("/")
async def list_plans(db: Session = Depends(get_db)) -> dict:
    plans = subscription_service.list_active_plans(db)
    return ok({"plans": [subscription_service.serialize_plan(p) for p in plans]})


@plans_router.get("/{plan_id}")
async def get_plan(plan_id: int, db: Session = Depends(get_db)) -> dict:
    return ok({"plan": subscription_service.serialize_plan(subscription_service.get_plan(db, plan_id))})


@router.get("/")
async def list_subscriptions(
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    subscriptions = subscription_service.list_subscriptions(db, user)
    return ok({"subscriptions": [subscription_service.serialize_subscription(s) for s in subscriptions]})


@router.post("/", status_code=status.HTTP_201_CREATED)
async def purchase_subscription(
    payload: SubscriptionPurchase,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    subscription = subscription_service.purchase(db, user, payload)
    return ok(
        {"subscription": subscription_service.serialize_subscription(subscription)},
        messages.SUBSCRIPTION_CREATED,
    )


@router.get("/{subscription_id}")
async def get_subscription(
    subscription_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    subscription = subscription_service.get_subscription(db, user, subscription_id)
    return ok({"subscription": subscription_service.serialize_subscription(subscription)})


@router.post("/{subscription_id}/confirm-payment")
async def confirm_payment(
    subscription_id: str,
    user: Account = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    subscription = subscription_service.get_subscription(db, user, subscription_id)
    subscription = subscription_service.confirm_payment(db, subscription)
    return ok(
        {"subscription": subscription_service.serialize_subscription(subscription)},
        messages.PAYMENT_CONFIRMED,
    )
