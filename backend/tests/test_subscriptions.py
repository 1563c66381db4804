from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import stripe

from lexcanada.core.config import config
from lexcanada.core.errors import ValidationError
from lexcanada.data.seed import seed_plans
from lexcanada.models import SubscriptionPlan, User, UserSubscription
from lexcanada.services.subscription_service import SubscriptionService, is_temporary_id, track_feature_usage

BASE = "/api/v1/subscriptions"


@pytest.fixture(autouse=True)
def plans(db):
    seed_plans(db)
    db.commit()


@pytest.fixture
def stripe_configured(monkeypatch):
    monkeypatch.setattr(config.payments, "stripe_secret_key", "sk_test_lexcanada")
    customer_create = MagicMock(return_value={"id": "cus_live_123"})
    session_create = MagicMock(return_value={"id": "cs_test_456", "url": "https://checkout.stripe.com/c/pay/cs_test_456"})
    monkeypatch.setattr(stripe.Customer, "create", customer_create)
    monkeypatch.setattr(stripe.checkout.Session, "create", session_create)
    return customer_create, session_create


def subscribe(client, headers, plan_id="basic"):
    response = client.post(f"{BASE}/create", json={"plan_id": plan_id}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def latest_subscription(db, user):
    db.expire_all()
    return (
        db.query(UserSubscription)
        .filter(UserSubscription.user_id == user.id)
        .order_by(UserSubscription.id.desc())
        .first()
    )


class TestPlans:
    def test_listed_by_price(self, client):
        plans = client.get(f"{BASE}/plans").json()["data"]

        assert [p["tier"] for p in plans] == ["basic", "professional", "enterprise"]
        assert plans[1]["is_popular"] is True
        assert plans[0]["features"]["documentLimit"] == 10

    def test_temporary_ids(self):
        assert is_temporary_id(None)
        assert is_temporary_id("cus_temp_abc")
        assert is_temporary_id("sub_temp_abc")
        assert not is_temporary_id("sub_1PXyz")


class TestCreateSubscription:
    def test_local_trial_without_stripe(self, client, db, auth_headers, user):
        data = subscribe(client, auth_headers)

        assert data["url"] is None
        assert data["status"] == "trialing"
        subscription = data["subscription"]
        assert subscription["stripe_subscription_id"].startswith("sub_temp_")
        assert subscription["stripe_customer_id"].startswith("cus_temp_")
        assert subscription["trial_end"] is not None

    def test_plan_by_numeric_id(self, client, db, auth_headers):
        professional = db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == "professional").one()

        data = subscribe(client, auth_headers, plan_id=str(professional.id))

        assert data["subscription"]["plan_id"] == professional.id

    def test_unknown_plan(self, client, auth_headers):
        response = client.post(f"{BASE}/create", json={"plan_id": "platinum"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["data"]["message"] == "Subscription plan not found"

    def test_second_trial_conflicts(self, client, auth_headers):
        subscribe(client, auth_headers)

        response = client.post(f"{BASE}/create", json={"plan_id": "professional"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["data"]["details"]["code"] == "TRIAL_SUBSCRIPTION"

    def test_checkout_with_stripe(self, client, db, auth_headers, user, stripe_configured):
        customer_create, session_create = stripe_configured

        data = subscribe(client, auth_headers, plan_id="professional")

        assert data["status"] == "pending_payment"
        assert data["url"] == "https://checkout.stripe.com/c/pay/cs_test_456"
        customer_create.assert_called_once()
        kwargs = session_create.call_args.kwargs
        assert kwargs["customer"] == "cus_live_123"
        assert kwargs["line_items"] == [{"price": "price_professional_monthly", "quantity": 1}]
        assert kwargs["subscription_data"]["metadata"]["user_id"] == str(user.id)

        db.expire_all()
        assert db.query(User).filter(User.id == user.id).one().stripe_customer_id == "cus_live_123"

    def test_stripe_failure_falls_back_to_trial(self, client, auth_headers, stripe_configured):
        _, session_create = stripe_configured
        session_create.side_effect = stripe.StripeError("card processor unavailable")

        data = subscribe(client, auth_headers)

        assert data["status"] == "trialing"
        assert data["url"] is None


class TestStatusCheck:
    def test_without_subscription(self, client, auth_headers):
        data = client.get(f"{BASE}/status-check", headers=auth_headers).json()["data"]

        assert data["hasSubscription"] is False
        assert data["canCreateNew"] is True

    def test_trial_blocks_new_subscription(self, client, auth_headers):
        subscribe(client, auth_headers)

        data = client.get(f"{BASE}/status-check", headers=auth_headers).json()["data"]

        assert data["subscriptionStatus"] == "trialing"
        assert data["canCreateNew"] is False

    def test_past_due_allows_new_subscription(self, client, db, auth_headers, user):
        subscribe(client, auth_headers)
        subscription = latest_subscription(db, user)
        subscription.status = "past_due"
        db.commit()

        data = client.get(f"{BASE}/status-check", headers=auth_headers).json()["data"]

        assert data["canCreateNew"] is True

    def test_canceled_keeps_access_until_period_end(self, client, db, auth_headers, user):
        subscribe(client, auth_headers)
        subscription = latest_subscription(db, user)
        subscription.status = "canceled"
        subscription.current_period_end = datetime.utcnow() + timedelta(days=5)
        db.commit()

        data = client.get(f"{BASE}/status-check", headers=auth_headers).json()["data"]

        end = subscription.current_period_end.strftime("%Y-%m-%d")
        assert data["canCreateNew"] is True
        assert data["message"] == f"User has canceled subscription but still has access until {end}"

    def test_canceled_and_expired(self, client, db, auth_headers, user):
        subscribe(client, auth_headers)
        subscription = latest_subscription(db, user)
        subscription.status = "canceled"
        subscription.current_period_end = datetime.utcnow() - timedelta(days=1)
        db.commit()

        data = client.get(f"{BASE}/status-check", headers=auth_headers).json()["data"]

        assert data["subscriptionStatus"] == "canceled"
        assert data["message"] == "User has a canceled subscription that has expired"


class TestLifecycle:
    def test_current_includes_plan(self, client, auth_headers):
        subscribe(client, auth_headers)

        data = client.get(f"{BASE}/current", headers=auth_headers).json()["data"]

        assert data["plan"]["tier"] == "basic"

    def test_current_without_subscription(self, client, auth_headers):
        assert client.get(f"{BASE}/current", headers=auth_headers).status_code == 404

    def test_change_plan(self, client, auth_headers):
        subscribe(client, auth_headers)

        response = client.patch(f"{BASE}/change-plan", json={"plan_id": "enterprise"}, headers=auth_headers)

        assert response.status_code == 200
        assert client.get(f"{BASE}/current", headers=auth_headers).json()["data"]["plan"]["tier"] == "enterprise"

    def test_cancel_then_reactivate(self, client, auth_headers):
        subscribe(client, auth_headers)

        canceled = client.post(f"{BASE}/cancel", headers=auth_headers).json()["data"]["subscription"]
        assert canceled["status"] == "canceled"
        assert canceled["canceled_at"] is not None

        reactivated = client.post(f"{BASE}/reactivate", headers=auth_headers).json()["data"]["subscription"]
        assert reactivated["status"] == "active"
        assert reactivated["canceled_at"] is None

    def test_reactivate_requires_canceled(self, client, auth_headers):
        subscribe(client, auth_headers)

        response = client.post(f"{BASE}/reactivate", headers=auth_headers)

        assert response.status_code == 400

    def test_local_billing_portal(self, client, auth_headers):
        subscribe(client, auth_headers)

        data = client.post(f"{BASE}/billing-portal", headers=auth_headers).json()["data"]

        assert data["url"].endswith("/subscription-plans")

    def test_confirm_without_pending(self, client, auth_headers):
        response = client.post(f"{BASE}/confirm", json={"session_id": "cs_test_456"}, headers=auth_headers)

        assert response.status_code == 404

    def test_confirm_pending_checkout(self, client, auth_headers, stripe_configured, monkeypatch):
        subscribe(client, auth_headers)
        period_end = int((datetime.utcnow() + timedelta(days=7)).timestamp())
        monkeypatch.setattr(stripe.checkout.Session, "retrieve", MagicMock(return_value={
            "id": "cs_test_456",
            "subscription": {"id": "sub_1Real", "status": "trialing", "current_period_end": period_end},
        }))

        data = client.post(f"{BASE}/confirm", json={"session_id": "cs_test_456"}, headers=auth_headers).json()["data"]

        assert data["subscription"]["status"] == "trialing"
        assert data["subscription"]["stripe_subscription_id"] == "sub_1Real"
        assert data["subscription"]["current_period_end"] is not None


class TestUsage:
    def test_no_subscription_means_no_allowance(self, client, auth_headers):
        data = client.get(f"{BASE}/usage", headers=auth_headers).json()["data"]

        assert data["tier"] is None
        assert data["features"]["document_gen"] == {"has_reached_limit": True, "current_usage": 0, "limit": 0}

    def test_counts_against_plan_limits(self, client, db, auth_headers, user):
        subscribe(client, auth_headers)
        for _ in range(5):
            track_feature_usage(db, user.id, "contract_analysis")

        data = client.get(f"{BASE}/usage", headers=auth_headers).json()["data"]

        assert data["tier"] == "basic"
        assert data["features"]["contract_analysis"] == {"has_reached_limit": True, "current_usage": 5, "limit": 5}
        assert data["features"]["document_gen"]["has_reached_limit"] is False

    def test_unlimited_plan(self, client, auth_headers):
        subscribe(client, auth_headers, plan_id="enterprise")

        data = client.get(f"{BASE}/usage", headers=auth_headers).json()["data"]

        assert data["features"]["ai_chat_message"]["limit"] is None
        assert data["features"]["ai_chat_message"]["has_reached_limit"] is False

    def test_unknown_feature(self, db, user):
        with pytest.raises(ValidationError):
            SubscriptionService(db).track_feature_usage(user.id, "teleport")
