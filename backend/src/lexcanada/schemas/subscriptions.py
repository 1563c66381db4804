"""
Subscription, plan and usage schemas.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class SubscriptionPlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    stripe_price_id: str
    interval: str
    features: Dict[str, Any]
    tier: str
    trial_days: int
    is_popular: bool
    is_active: bool


class UserSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plan_id: int
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CurrentSubscriptionResponse(UserSubscriptionResponse):
    plan: Optional[SubscriptionPlanResponse] = None


class SubscriptionCreateRequest(BaseModel):
    plan_id: str = Field(..., min_length=1, description="Plan tier (basic, professional, enterprise) or numeric id")


class SubscriptionConfirmRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class SubscriptionActionResponse(BaseModel):
    subscription: Optional[UserSubscriptionResponse] = None
    url: Optional[str] = None
    message: str
    status: Optional[str] = None


class SubscriptionStatusCheck(BaseModel):
    hasSubscription: bool
    canCreateNew: bool
    subscriptionStatus: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    message: str


class BillingPortalResponse(BaseModel):
    url: str
    message: Optional[str] = None


class FeatureUsage(BaseModel):
    has_reached_limit: bool
    current_usage: int
    limit: Optional[int] = None


class UsageResponse(BaseModel):
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    tier: Optional[str] = None
    features: Dict[str, FeatureUsage]
