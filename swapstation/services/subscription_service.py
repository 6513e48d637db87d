"""
Subscription plans and driver subscriptions.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from swapstation.core import messages
from swapstation.core.exceptions import BookingStateError, ConflictError, NotFoundError
from swapstation.core.timeutils import isoformat_utc, utcnow
from swapstation.models import Account, Subscription, SubscriptionPlan
from swapstation.schemas.subscription import SubscriptionPurchase
from swapstation.services.vehicles import get_owned_vehicle

logger = logging.getLogger(__name__)


def _money(value: Any) -> float:
    return float(value or 0)


def serialize_plan(plan: SubscriptionPlan) -> Dict[str, Any]:
    return {
        "plan_id": plan.plan_id,
        "plan_name": plan.plan_name,
        "description": plan.description,
        "plan_fee": _money(plan.plan_fee),
        "deposit_fee": _money(plan.deposit_fee),
        "penalty_fee": _money(plan.penalty_fee),
        "battery_cap": plan.battery_cap,
        "duration_days": plan.duration_days,
        "is_active": plan.is_active,
    }


def serialize_subscription(subscription: Subscription, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    status = subscription.status
    if status == "active" and subscription.end_date is not None and now >= subscription.end_date:
        status = "expired"
    plan = subscription.plan
    return {
        "subscription_id": subscription.subscription_id,
        "account_id": subscription.account_id,
        "vehicle_id": subscription.vehicle_id,
        "plan_id": subscription.plan_id,
        "plan": serialize_plan(plan) if plan else None,
        "status": status,
        "total_amount": _money(subscription.total_amount),
        "start_date": isoformat_utc(subscription.start_date),
        "end_date": isoformat_utc(subscription.end_date),
        "swaps_used": subscription.swaps_used,
        "swaps_remaining": max(plan.battery_cap - (subscription.swaps_used or 0), 0) if plan else None,
        "created_at": isoformat_utc(subscription.created_at),
    }


def list_active_plans(db: Session) -> List[SubscriptionPlan]:
    return (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.plan_fee.asc())
        .all()
    )


def get_plan(db: Session, plan_id: int, active_only: bool = True) -> SubscriptionPlan:
    query = db.query(SubscriptionPlan).filter(SubscriptionPlan.plan_id == plan_id)
    if active_only:
        query = query.filter(SubscriptionPlan.is_active.is_(True))
    plan = query.first()
    if plan is None:
        raise NotFoundError(messages.PLAN_NOT_FOUND)
    return plan


def _ensure_no_active_subscription(db: Session, vehicle_id: str, now: datetime) -> None:
    current = (
        db.query(Subscription)
        .filter(
            Subscription.vehicle_id == vehicle_id,
            Subscription.status == "active",
            Subscription.end_date > now,
        )
        .first()
    )
    if current is not None:
        raise ConflictError(messages.SUBSCRIPTION_ALREADY_ACTIVE)


def purchase(db: Session, account: Account, payload: SubscriptionPurchase, now: Optional[datetime] = None) -> Subscription:
    """Create a subscription awaiting payment for one of the account's vehicles."""
    now = now or utcnow()
    plan = get_plan(db, payload.plan_id)
    vehicle = get_owned_vehicle(db, account.account_id, payload.vehicle_id)

    _ensure_no_active_subscription(db, vehicle.vehicle_id, now)

    subscription = Subscription(
        account_id=account.account_id,
        vehicle_id=vehicle.vehicle_id,
        plan_id=plan.plan_id,
        status="pending_payment",
        total_amount=_money(plan.plan_fee) + _money(plan.deposit_fee),
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info(
        "Subscription %s created for vehicle %s on plan %s",
        subscription.subscription_id,
        vehicle.vehicle_id,
        plan.plan_id,
    )
    return subscription


def get_subscription(db: Session, account: Account, subscription_id: str) -> Subscription:
    subscription = (
        db.query(Subscription)
        .filter(
            Subscription.subscription_id == subscription_id,
            Subscription.account_id == account.account_id,
        )
        .first()
    )
    if subscription is None:
        raise NotFoundError(messages.SUBSCRIPTION_NOT_FOUND)
    return subscription


def confirm_payment(db: Session, subscription: Subscription, now: Optional[datetime] = None) -> Subscription:
    now = now or utcnow()
    if subscription.status != "pending_payment":
        raise BookingStateError(messages.SUBSCRIPTION_NOT_PENDING)
    _ensure_no_active_subscription(db, subscription.vehicle_id, now)
    subscription.status = "active"
    subscription.start_date = now
    subscription.end_date = now + timedelta(days=subscription.plan.duration_days)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription %s activated until %s", subscription.subscription_id, subscription.end_date)
    return subscription


def list_subscriptions(db: Session, account: Account) -> List[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.account_id == account.account_id)
        .order_by(Subscription.created_at.desc())
        .all()
    )
