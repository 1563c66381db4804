"""
Stripe webhook handling.

Verifies the signature when a webhook secret is configured, then keeps the
local UserSubscription rows in step with invoice and subscription events.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from lexcanada.core.config import get_config
from lexcanada.core.errors import NotFoundError, ValidationError
from lexcanada.models import User, UserSubscription
from lexcanada.services.email_service import email_service
from lexcanada.services.subscription_service import SubscriptionService

config = get_config()
logger = logging.getLogger(__name__)


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.utcfromtimestamp(value) if value else None


def parse_event(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Turn a raw webhook body into an event dict.

    Raises:
        ValidationError: missing signature header, bad signature or bad JSON
    """
    if not signature:
        raise ValidationError("Missing stripe-signature header")

    webhook_secret = (config.payments.stripe_webhook_secret or "").strip()
    if webhook_secret:
        try:
            stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise ValidationError("Invalid webhook signature")
        except ValueError as e:
            logger.error(f"Webhook payload could not be parsed: {e}")
            raise ValidationError("Invalid webhook payload")
    else:
        logger.warning("STRIPE_WEBHOOK_SECRET not set - skipping signature verification")

    try:
        event = json.loads(payload)
    except (ValueError, UnicodeDecodeError):
        raise ValidationError("Invalid webhook payload")
    if not isinstance(event, dict):
        raise ValidationError("Invalid webhook payload")
    return event


class StripeWebhookService:
    """Applies Stripe events to local subscription records."""

    def __init__(self, db: Session):
        self.db = db
        self.subscriptions = SubscriptionService(db)

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        logger.info(f"Stripe webhook received: id={event.get('id')} type={event_type}")

        handlers = {
            "invoice.payment_succeeded": self._handle_payment_succeeded,
            "invoice.payment_failed": self._handle_payment_failed,
            "customer.subscription.created": self._handle_subscription_change,
            "customer.subscription.updated": self._handle_subscription_change,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "customer.subscription.trial_will_end": self._handle_trial_will_end,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return {"handled": False}

        handled = handler(obj)
        self.db.commit()
        return {"handled": handled}

    def _find_subscription(self, stripe_subscription_id: Optional[str], customer_id: Optional[str] = None,
                           metadata: Optional[Dict[str, Any]] = None) -> Optional[UserSubscription]:
        query = self.db.query(UserSubscription)
        if stripe_subscription_id:
            subscription = query.filter(UserSubscription.stripe_subscription_id == stripe_subscription_id).first()
            if subscription:
                return subscription

        user_id = (metadata or {}).get("user_id")
        if user_id and str(user_id).isdigit():
            subscription = self.subscriptions.get_latest_subscription(int(user_id))
            if subscription:
                return subscription

        if customer_id:
            return (
                query.filter(UserSubscription.stripe_customer_id == customer_id)
                .order_by(UserSubscription.created_at.desc(), UserSubscription.id.desc())
                .first()
            )
        return None

    def _handle_payment_succeeded(self, invoice: Dict[str, Any]) -> bool:
        subscription = self._find_subscription(invoice.get("subscription"), invoice.get("customer"))
        if not subscription:
            logger.warning(f"No subscription found for paid invoice {invoice.get('id')}")
            return False

        subscription.status = "active"
        lines = (invoice.get("lines") or {}).get("data") or []
        period = (lines[0].get("period") if lines else None) or {}
        subscription.current_period_start = _from_timestamp(period.get("start")) or subscription.current_period_start
        subscription.current_period_end = _from_timestamp(period.get("end")) or subscription.current_period_end
        logger.info(f"Subscription {subscription.id} active after invoice {invoice.get('id')}")
        return True

    def _handle_payment_failed(self, invoice: Dict[str, Any]) -> bool:
        subscription = self._find_subscription(invoice.get("subscription"), invoice.get("customer"))
        if not subscription:
            logger.warning(f"No subscription found for failed invoice {invoice.get('id')}")
            return False

        subscription.status = "past_due"
        logger.warning(f"Subscription {subscription.id} is past due")
        return True

    def _handle_subscription_change(self, stripe_subscription: Dict[str, Any]) -> bool:
        metadata = stripe_subscription.get("metadata") or {}
        subscription = self._find_subscription(
            stripe_subscription.get("id"), stripe_subscription.get("customer"), metadata
        )
        if not subscription:
            logger.warning(f"No local subscription for Stripe subscription {stripe_subscription.get('id')}")
            return False

        subscription.stripe_subscription_id = stripe_subscription.get("id") or subscription.stripe_subscription_id
        subscription.stripe_customer_id = stripe_subscription.get("customer") or subscription.stripe_customer_id
        subscription.status = stripe_subscription.get("status") or subscription.status

        plan = None
        plan_id = metadata.get("plan_id")
        if plan_id:
            try:
                plan = self.subscriptions.resolve_plan(str(plan_id))
            except NotFoundError:
                logger.warning(f"Stripe metadata references unknown plan {plan_id}")
        else:
            for item in (stripe_subscription.get("items") or {}).get("data") or []:
                price = item.get("price")
                price_id = price.get("id") if isinstance(price, dict) else price
                plan = self.subscriptions.plan_for_price(price_id)
                if plan:
                    break
        if plan:
            subscription.plan_id = plan.id

        subscription.current_period_start = _from_timestamp(stripe_subscription.get("current_period_start"))
        subscription.current_period_end = _from_timestamp(stripe_subscription.get("current_period_end"))
        subscription.trial_start = _from_timestamp(stripe_subscription.get("trial_start"))
        subscription.trial_end = _from_timestamp(stripe_subscription.get("trial_end"))
        subscription.canceled_at = _from_timestamp(stripe_subscription.get("canceled_at"))
        logger.info(f"Subscription {subscription.id} synced with status {subscription.status}")
        return True

    def _handle_subscription_deleted(self, stripe_subscription: Dict[str, Any]) -> bool:
        subscription = self._find_subscription(
            stripe_subscription.get("id"), stripe_subscription.get("customer"), stripe_subscription.get("metadata")
        )
        if not subscription:
            return False

        subscription.status = "canceled"
        subscription.canceled_at = _from_timestamp(stripe_subscription.get("canceled_at")) or datetime.utcnow()
        logger.info(f"Subscription {subscription.id} canceled by Stripe")
        return True

    def _handle_trial_will_end(self, stripe_subscription: Dict[str, Any]) -> bool:
        subscription = self._find_subscription(
            stripe_subscription.get("id"), stripe_subscription.get("customer"), stripe_subscription.get("metadata")
        )
        trial_end = _from_timestamp(stripe_subscription.get("trial_end"))
        logger.info(f"Trial ending for Stripe subscription {stripe_subscription.get('id')} at {trial_end}")
        if not subscription:
            return False

        user = self.db.query(User).filter(User.id == subscription.user_id).first()
        if user:
            email_service.send_trial_ending_email(user.email, user.username, trial_end)
        return True
