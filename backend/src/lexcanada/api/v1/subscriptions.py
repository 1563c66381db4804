import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lexcanada.api.v1.auth import require_user_role
from lexcanada.core.database import get_db
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.models.user import User
from lexcanada.schemas import (
    BillingPortalResponse,
    CurrentSubscriptionResponse,
    StandardResponse,
    SubscriptionActionResponse,
    SubscriptionConfirmRequest,
    SubscriptionCreateRequest,
    SubscriptionPlanResponse,
    SubscriptionStatusCheck,
    UsageResponse,
    UserSubscriptionResponse,
)
from lexcanada.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter()


def _action_response(subscription, message: str, url=None) -> SubscriptionActionResponse:
    return SubscriptionActionResponse(
        subscription=UserSubscriptionResponse.model_validate(subscription),
        url=url,
        message=message,
        status=subscription.status,
    )


@router.get("/plans", response_model=StandardResponse)
def list_plans(db: Session = Depends(get_db)):
    """Active subscription plans."""
    with ResponseTimer() as timer:
        plans = SubscriptionService(db).list_plans()
        return create_success_response(
            data=[SubscriptionPlanResponse.model_validate(p) for p in plans],
            execution_time=timer.get_execution_time()
        )


@router.get("/status-check", response_model=StandardResponse)
def status_check(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Whether the caller may start a new subscription."""
    with ResponseTimer() as timer:
        status = SubscriptionService(db).status_check(current_user.id)
        return create_success_response(
            data=SubscriptionStatusCheck(**status),
            execution_time=timer.get_execution_time()
        )


@router.get("/current", response_model=StandardResponse)
def current_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        subscription = SubscriptionService(db).get_current_subscription(current_user.id)
        return create_success_response(
            data=CurrentSubscriptionResponse.model_validate(subscription),
            execution_time=timer.get_execution_time()
        )


@router.post("/create", response_model=StandardResponse, status_code=201)
def create_subscription(
    request: SubscriptionCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Start Stripe Checkout, or a local trial when Stripe is unavailable."""
    with ResponseTimer() as timer:
        result = SubscriptionService(db).create_subscription(current_user, request.plan_id)
        return create_success_response(
            data=_action_response(result["subscription"], result["message"], result["url"]),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.patch("/change-plan", response_model=StandardResponse)
def change_plan(
    request: SubscriptionCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        subscription = SubscriptionService(db).change_plan(current_user, request.plan_id)
        return create_success_response(
            data=_action_response(subscription, "Subscription plan updated"),
            execution_time=timer.get_execution_time()
        )


@router.post("/cancel", response_model=StandardResponse)
def cancel_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        subscription = SubscriptionService(db).cancel(current_user)
        return create_success_response(
            data=_action_response(subscription, "Subscription canceled"),
            execution_time=timer.get_execution_time()
        )


@router.post("/reactivate", response_model=StandardResponse)
def reactivate_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        subscription = SubscriptionService(db).reactivate(current_user)
        return create_success_response(
            data=_action_response(subscription, "Subscription reactivated"),
            execution_time=timer.get_execution_time()
        )


@router.post("/billing-portal", response_model=StandardResponse)
def billing_portal(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        portal = SubscriptionService(db).billing_portal_url(current_user)
        return create_success_response(
            data=BillingPortalResponse(**portal),
            execution_time=timer.get_execution_time()
        )


@router.post("/confirm", response_model=StandardResponse)
def confirm_subscription(
    request: SubscriptionConfirmRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Activate the pending subscription after Checkout completes."""
    with ResponseTimer() as timer:
        subscription = SubscriptionService(db).confirm(current_user, request.session_id)
        return create_success_response(
            data=_action_response(subscription, "Subscription confirmed"),
            execution_time=timer.get_execution_time()
        )


@router.get("/usage", response_model=StandardResponse)
def usage(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    with ResponseTimer() as timer:
        summary = SubscriptionService(db).usage_summary(current_user.id)
        return create_success_response(
            data=UsageResponse(**summary),
            execution_time=timer.get_execution_time()
        )
