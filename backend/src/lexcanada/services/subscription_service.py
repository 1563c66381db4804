"""
Subscription service.

Plans, subscription lifecycle through Stripe Checkout, and monthly usage
tracking. When Stripe is not configured (or a Stripe call fails during
sign-up) a local trial subscription is created instead so the account is
still usable.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lexcanada.core.config import get_config
from lexcanada.core.constants import (
    FEATURE_LIMIT_KEYS,
    TEMP_CUSTOMER_PREFIX,
    TEMP_SUBSCRIPTION_PREFIX,
    USAGE_FEATURES,
)
from lexcanada.core.errors import ConflictError, ExternalServiceError, NotFoundError, ValidationError
from lexcanada.models import SubscriptionPlan, User, UserSubscription, UserUsage

config = get_config()
logger = logging.getLogger(__name__)

stripe.api_key = (config.payments.stripe_secret_key or "").strip()

USAGE_PERIOD_DAYS = 30
BLOCKING_STATUSES = {
    "active": ("ACTIVE_SUBSCRIPTION", "You already have an active subscription"),
    "trialing": ("TRIAL_SUBSCRIPTION", "You already have an active trial subscription"),
}


def is_temporary_id(value: Optional[str]) -> bool:
    return not value or value.startswith(TEMP_CUSTOMER_PREFIX) or value.startswith(TEMP_SUBSCRIPTION_PREFIX)


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.utcfromtimestamp(value) if value else None


class SubscriptionService:
    """Subscription lifecycle for a single database session."""

    def __init__(self, db: Session):
        self.db = db

    # Plans

    def list_plans(self) -> List[SubscriptionPlan]:
        return (
            self.db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price)
            .all()
        )

    def resolve_plan(self, plan_id: str) -> SubscriptionPlan:
        """Find a plan by tier name or numeric id."""
        plan_id = str(plan_id).strip()
        query = self.db.query(SubscriptionPlan)
        if plan_id.isdigit():
            plan = query.filter(SubscriptionPlan.id == int(plan_id)).first()
        else:
            plan = query.filter(SubscriptionPlan.tier == plan_id.lower()).first()

        if not plan:
            raise NotFoundError("Subscription plan")
        return plan

    def plan_for_price(self, price_id: Optional[str]) -> Optional[SubscriptionPlan]:
        if not price_id:
            return None
        return self.db.query(SubscriptionPlan).filter(SubscriptionPlan.stripe_price_id == price_id).first()

    # Subscriptions

    def get_latest_subscription(self, user_id: int) -> Optional[UserSubscription]:
        return (
            self.db.query(UserSubscription)
            .filter(UserSubscription.user_id == user_id)
            .order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
            .first()
        )

    def get_current_subscription(self, user_id: int) -> UserSubscription:
        subscription = self.get_latest_subscription(user_id)
        if not subscription:
            raise NotFoundError("Subscription")
        return subscription

    def status_check(self, user_id: int) -> Dict[str, Any]:
        subscription = self.get_latest_subscription(user_id)
        if not subscription:
            return {
                "hasSubscription": False,
                "canCreateNew": True,
                "message": "No subscription found. User can create a new subscription.",
            }

        can_create_new = True
        message = ""
        if subscription.status == "active":
            can_create_new = False
            message = "User already has an active subscription"
        elif subscription.status == "trialing":
            can_create_new = False
            message = "User has an active trial subscription"
        elif subscription.status == "past_due":
            message = "User has a past due subscription, but can create a new one"
        elif subscription.status == "canceled":
            period_end = subscription.current_period_end
            if period_end and period_end > datetime.utcnow():
                message = f"User has canceled subscription but still has access until {period_end.strftime('%Y-%m-%d')}"
            else:
                message = "User has a canceled subscription that has expired"
        else:
            message = f"User has a subscription with status {subscription.status}"

        return {
            "hasSubscription": True,
            "canCreateNew": can_create_new,
            "subscriptionStatus": subscription.status,
            "details": {
                "id": subscription.id,
                "planId": subscription.plan_id,
                "status": subscription.status,
                "currentPeriodEnd": subscription.current_period_end.isoformat() if subscription.current_period_end else None,
                "trialEnd": subscription.trial_end.isoformat() if subscription.trial_end else None,
                "canceledAt": subscription.canceled_at.isoformat() if subscription.canceled_at else None,
            },
            "message": message,
        }

    def create_subscription(self, user: User, plan_id: str) -> Dict[str, Any]:
        """
        Start a subscription for the user.

        Returns a dict with the stored subscription, the Checkout URL (None for
        a local trial) and a message.
        """
        plan = self.resolve_plan(plan_id)

        existing = self.get_latest_subscription(user.id)
        if existing and existing.status in BLOCKING_STATUSES:
            code, message = BLOCKING_STATUSES[existing.status]
            raise ConflictError(message, details={"code": code, "subscription_id": existing.id})

        if config.payments.is_configured:
            try:
                return self._create_checkout_subscription(user, plan)
            except stripe.StripeError as e:
                logger.error(f"Stripe checkout failed for user {user.id}, falling back to local trial: {e}")

        return self._create_local_trial(user, plan)

    def _create_checkout_subscription(self, user: User, plan: SubscriptionPlan) -> Dict[str, Any]:
        customer_id = user.stripe_customer_id
        if is_temporary_id(customer_id):
            customer = stripe.Customer.create(
                email=user.email,
                name=user.full_name or user.username,
                metadata={"user_id": str(user.id)},
            )
            customer_id = customer["id"]
            user.stripe_customer_id = customer_id

        base_url = config.application.frontend_url.rstrip("/")
        session = stripe.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            line_items=[{"price": plan.stripe_price_id, "quantity": 1}],
            subscription_data={
                "trial_period_days": plan.trial_days or config.payments.stripe_trial_days,
                "metadata": {"user_id": str(user.id), "plan_id": str(plan.id)},
            },
            metadata={"user_id": str(user.id), "plan_id": str(plan.id)},
            success_url=f"{base_url}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/subscription-plans",
        )

        subscription = UserSubscription(
            user_id=user.id,
            plan_id=plan.id,
            stripe_customer_id=customer_id,
            stripe_checkout_session_id=session["id"],
            status="pending_payment",
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"Created checkout session {session['id']} for user {user.id} on plan {plan.tier}")
        return {
            "subscription": subscription,
            "url": session["url"],
            "status": subscription.status,
            "message": "Checkout session created",
        }

    def _create_local_trial(self, user: User, plan: SubscriptionPlan) -> Dict[str, Any]:
        now = datetime.utcnow()
        trial_end = now + timedelta(days=plan.trial_days or config.payments.stripe_trial_days)
        suffix = uuid.uuid4().hex[:12]

        if not user.stripe_customer_id:
            user.stripe_customer_id = f"{TEMP_CUSTOMER_PREFIX}{suffix}"

        subscription = UserSubscription(
            user_id=user.id,
            plan_id=plan.id,
            stripe_customer_id=user.stripe_customer_id,
            stripe_subscription_id=f"{TEMP_SUBSCRIPTION_PREFIX}{suffix}",
            status="trialing",
            current_period_start=now,
            current_period_end=trial_end,
            trial_start=now,
            trial_end=trial_end,
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"Created local trial subscription {subscription.id} for user {user.id}")
        return {
            "subscription": subscription,
            "url": None,
            "status": subscription.status,
            "message": "Trial subscription started",
        }

    def change_plan(self, user: User, plan_id: str) -> UserSubscription:
        subscription = self.get_current_subscription(user.id)
        plan = self.resolve_plan(plan_id)

        if config.payments.is_configured and not is_temporary_id(subscription.stripe_subscription_id):
            try:
                stripe_subscription = stripe.Subscription.retrieve(subscription.stripe_subscription_id)
                item_id = stripe_subscription["items"]["data"][0]["id"]
                stripe.Subscription.modify(
                    subscription.stripe_subscription_id,
                    items=[{"id": item_id, "price": plan.stripe_price_id}],
                    metadata={"user_id": str(user.id), "plan_id": str(plan.id)},
                )
            except stripe.StripeError as e:
                logger.error(f"Stripe plan change failed for {subscription.stripe_subscription_id}: {e}")
                raise ExternalServiceError("Stripe", "Could not update the subscription plan")

        subscription.plan_id = plan.id
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(f"User {user.id} moved to plan {plan.tier}")
        return subscription

    def cancel(self, user: User) -> UserSubscription:
        subscription = self.get_current_subscription(user.id)

        if config.payments.is_configured and not is_temporary_id(subscription.stripe_subscription_id):
            try:
                stripe.Subscription.cancel(subscription.stripe_subscription_id)
            except stripe.StripeError as e:
                # The local record is still cancelled; the webhook reconciles Stripe later
                logger.error(f"Stripe cancellation failed for {subscription.stripe_subscription_id}: {e}")

        subscription.status = "canceled"
        subscription.canceled_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(f"Subscription {subscription.id} canceled for user {user.id}")
        return subscription

    def reactivate(self, user: User) -> UserSubscription:
        subscription = self.get_current_subscription(user.id)
        if subscription.status != "canceled":
            raise ValidationError("Only canceled subscriptions can be reactivated")

        subscription.status = "active"
        subscription.canceled_at = None
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(f"Subscription {subscription.id} reactivated for user {user.id}")
        return subscription

    def billing_portal_url(self, user: User) -> Dict[str, str]:
        base_url = config.application.frontend_url.rstrip("/")
        subscription = self.get_latest_subscription(user.id)
        customer_id = user.stripe_customer_id or (subscription.stripe_customer_id if subscription else None)

        if is_temporary_id(customer_id) or not config.payments.is_configured:
            return {
                "url": f"{base_url}/subscription-plans",
                "message": "Billing is managed locally for this account",
            }

        try:
            portal = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=f"{base_url}/account/settings",
            )
        except stripe.StripeError as e:
            logger.error(f"Billing portal session failed for user {user.id}: {e}")
            return {
                "url": f"{base_url}/account/settings",
                "message": "Billing portal is temporarily unavailable",
            }
        return {"url": portal["url"]}

    def confirm(self, user: User, session_id: str) -> UserSubscription:
        subscription = (
            self.db.query(UserSubscription)
            .filter(UserSubscription.user_id == user.id)
            .filter(UserSubscription.status == "pending_payment")
            .order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
            .first()
        )
        if not subscription:
            raise NotFoundError("Pending subscription")

        now = datetime.utcnow()
        status = "active"
        if config.payments.is_configured:
            try:
                session = stripe.checkout.Session.retrieve(session_id, expand=["subscription"])
            except stripe.StripeError as e:
                logger.error(f"Could not read checkout session {session_id}: {e}")
                raise ExternalServiceError("Stripe", "Could not confirm the checkout session")
            stripe_subscription = session.get("subscription")
            if isinstance(stripe_subscription, str):
                subscription.stripe_subscription_id = stripe_subscription
            elif stripe_subscription:
                subscription.stripe_subscription_id = stripe_subscription.get("id")
                status = stripe_subscription.get("status") or status
                subscription.current_period_start = _from_timestamp(stripe_subscription.get("current_period_start"))
                subscription.current_period_end = _from_timestamp(stripe_subscription.get("current_period_end"))
                subscription.trial_start = _from_timestamp(stripe_subscription.get("trial_start"))
                subscription.trial_end = _from_timestamp(stripe_subscription.get("trial_end"))

        subscription.stripe_checkout_session_id = session_id
        subscription.status = status
        if not subscription.current_period_start:
            subscription.current_period_start = now
        self.db.commit()
        self.db.refresh(subscription)
        logger.info(f"Subscription {subscription.id} confirmed with status {status}")
        return subscription

    # Usage

    def get_or_create_usage(self, user_id: int) -> UserUsage:
        now = datetime.utcnow()
        usage = (
            self.db.query(UserUsage)
            .filter(UserUsage.user_id == user_id)
            .filter(UserUsage.period_end >= now)
            .order_by(UserUsage.period_start.desc())
            .first()
        )
        if usage:
            return usage

        usage = UserUsage(
            user_id=user_id,
            period_start=now,
            period_end=now + timedelta(days=USAGE_PERIOD_DAYS),
            document_gen_count=0,
            research_query_count=0,
            contract_analysis_count=0,
            ai_chat_message_count=0,
        )
        self.db.add(usage)
        self.db.flush()
        return usage

    def track_feature_usage(self, user_id: int, feature: str) -> UserUsage:
        if feature not in USAGE_FEATURES:
            raise ValidationError(f"Unknown usage feature: {feature}")

        usage = self.get_or_create_usage(user_id)
        column = f"{feature}_count"
        setattr(usage, column, (getattr(usage, column) or 0) + 1)
        self.db.commit()
        return usage

    def _entitled_plan(self, user_id: int) -> Optional[SubscriptionPlan]:
        subscription = self.get_latest_subscription(user_id)
        if not subscription:
            return None
        if subscription.status == "canceled":
            period_end = subscription.current_period_end
            if not period_end or period_end <= datetime.utcnow():
                return None
        elif subscription.status not in ("active", "trialing", "past_due"):
            return None
        return subscription.plan

    def check_usage_limits(self, user_id: int, feature: str) -> Dict[str, Any]:
        if feature not in USAGE_FEATURES:
            raise ValidationError(f"Unknown usage feature: {feature}")

        usage = self.get_or_create_usage(user_id)
        current = getattr(usage, f"{feature}_count") or 0

        plan = self._entitled_plan(user_id)
        if not plan:
            return {"has_reached_limit": True, "current_usage": current, "limit": 0}

        limit = (plan.features or {}).get(FEATURE_LIMIT_KEYS[feature])
        if limit is None or limit == -1:
            return {"has_reached_limit": False, "current_usage": current, "limit": None}
        return {"has_reached_limit": current >= limit, "current_usage": current, "limit": limit}

    def usage_summary(self, user_id: int) -> Dict[str, Any]:
        usage = self.get_or_create_usage(user_id)
        self.db.commit()
        plan = self._entitled_plan(user_id)
        return {
            "period_start": usage.period_start,
            "period_end": usage.period_end,
            "tier": plan.tier if plan else None,
            "features": {feature: self.check_usage_limits(user_id, feature) for feature in USAGE_FEATURES},
        }


def track_feature_usage(db: Session, user_id: int, feature: str) -> None:
    """Count one use of a feature; failures are logged and never block the caller."""
    try:
        SubscriptionService(db).track_feature_usage(user_id, feature)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to track {feature} usage for user {user_id}: {e}")
