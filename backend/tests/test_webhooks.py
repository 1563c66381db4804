import asyncio
import json
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from lexcanada.core.errors import ValidationError
from lexcanada.data.seed import seed_plans
from lexcanada.models import DigitalSignature, GeneratedDocument, SubscriptionPlan, UserSubscription
from lexcanada.services import stripe_webhook_service
from lexcanada.services.stripe_webhook_service import parse_event

STRIPE_URL = "/api/v1/webhooks/stripe"
DOCUSEAL_URL = "/api/v1/webhooks/docuseal"


@pytest.fixture
def subscription(db, user):
    seed_plans(db)
    db.flush()
    basic = db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == "basic").one()
    subscription = UserSubscription(
        user_id=user.id,
        plan_id=basic.id,
        stripe_customer_id="cus_123",
        stripe_subscription_id="sub_123",
        status="trialing",
    )
    db.add(subscription)
    db.commit()
    return subscription


def post_event(client, event_type, obj):
    body = json.dumps({"id": "evt_1", "type": event_type, "data": {"object": obj}})
    return client.post(STRIPE_URL, content=body, headers={"stripe-signature": "t=1,v1=test"})


def reload(db, subscription):
    db.expire_all()
    return db.query(UserSubscription).filter(UserSubscription.id == subscription.id).one()


class TestParseEvent:
    def test_missing_signature(self, client):
        response = client.post(STRIPE_URL, content=b"{}")

        assert response.status_code == 400
        assert response.json()["data"]["message"] == "Missing stripe-signature header"

    def test_invalid_json(self):
        with pytest.raises(ValidationError):
            parse_event(b"not json", "t=1,v1=test")

    def test_verifies_when_secret_set(self, monkeypatch):
        construct = MagicMock()
        monkeypatch.setattr(stripe_webhook_service.config.payments, "stripe_webhook_secret", "whsec_test")
        monkeypatch.setattr(stripe_webhook_service.stripe.Webhook, "construct_event", construct)

        event = parse_event(b'{"type": "invoice.payment_succeeded"}', "t=1,v1=test")

        construct.assert_called_once_with(b'{"type": "invoice.payment_succeeded"}', "t=1,v1=test", "whsec_test")
        assert event["type"] == "invoice.payment_succeeded"


class TestStripeEvents:
    def test_handled_off_the_event_loop(self, client, monkeypatch):
        loops = []

        def record_loop(service, event):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)

        monkeypatch.setattr(stripe_webhook_service.StripeWebhookService, "handle_event", record_loop)

        response = post_event(client, "customer.subscription.trial_will_end", {"id": "sub_123"})

        assert response.json() == {"received": True}
        assert loops == [None]

    def test_payment_succeeded_activates(self, client, db, subscription):
        start, end = 1760000000, 1762592000

        response = post_event(client, "invoice.payment_succeeded", {
            "id": "in_1",
            "subscription": "sub_123",
            "customer": "cus_123",
            "lines": {"data": [{"period": {"start": start, "end": end}}]},
        })

        assert response.json() == {"received": True}
        stored = reload(db, subscription)
        assert stored.status == "active"
        assert stored.current_period_start == datetime.utcfromtimestamp(start)
        assert stored.current_period_end == datetime.utcfromtimestamp(end)

    def test_payment_failed_by_customer(self, client, db, subscription):
        post_event(client, "invoice.payment_failed", {"id": "in_2", "customer": "cus_123"})

        assert reload(db, subscription).status == "past_due"

    def test_subscription_updated_syncs_plan_from_price(self, client, db, subscription):
        post_event(client, "customer.subscription.updated", {
            "id": "sub_123",
            "customer": "cus_123",
            "status": "active",
            "items": {"data": [{"price": {"id": "price_enterprise_monthly"}}]},
        })

        stored = reload(db, subscription)
        assert stored.status == "active"
        assert stored.plan.tier == "enterprise"

    def test_subscription_created_matches_metadata(self, client, db, user, subscription):
        professional = db.query(SubscriptionPlan).filter(SubscriptionPlan.tier == "professional").one()

        post_event(client, "customer.subscription.created", {
            "id": "sub_new",
            "customer": "cus_other",
            "status": "trialing",
            "metadata": {"user_id": str(user.id), "plan_id": str(professional.id)},
        })

        stored = reload(db, subscription)
        assert stored.stripe_subscription_id == "sub_new"
        assert stored.plan_id == professional.id

    def test_subscription_deleted(self, client, db, subscription):
        post_event(client, "customer.subscription.deleted", {"id": "sub_123", "canceled_at": 1760000000})

        stored = reload(db, subscription)
        assert stored.status == "canceled"
        assert stored.canceled_at == datetime.utcfromtimestamp(1760000000)

    def test_trial_will_end_sends_email(self, client, subscription, monkeypatch):
        send = MagicMock(return_value=True)
        monkeypatch.setattr(stripe_webhook_service.email_service, "send_trial_ending_email", send)

        post_event(client, "customer.subscription.trial_will_end", {"id": "sub_123", "trial_end": 1760000000})

        send.assert_called_once_with("alice@example.ca", "alice", datetime.utcfromtimestamp(1760000000))

    def test_unknown_event_is_acknowledged(self, client, db, subscription):
        response = post_event(client, "charge.refunded", {"id": "ch_1"})

        assert response.status_code == 200
        assert reload(db, subscription).status == "trialing"

    def test_unmatched_invoice_is_acknowledged(self, client):
        response = post_event(client, "invoice.payment_succeeded", {"id": "in_3", "subscription": "sub_missing"})

        assert response.json() == {"received": True}


class TestDocuSealEvents:
    @pytest.fixture
    def signatures(self, db, user):
        document = GeneratedDocument(user_id=user.id, document_title="NDA", document_content="Terms")
        db.add(document)
        db.flush()
        rows = [
            DigitalSignature(
                document_id=document.id, user_id=user.id, submission_id="42", signer_id=signer_id,
                signer_name=name, signer_email=f"{name.lower()}@example.ca",
            )
            for signer_id, name in (("7", "Alice"), ("8", "Bob"))
        ]
        db.add_all(rows)
        db.commit()
        return rows

    def statuses(self, db):
        db.expire_all()
        return {s.signer_id: s.signature_status for s in db.query(DigitalSignature).all()}

    def test_signed_updates_one_signer(self, client, db, signatures):
        response = client.post(DOCUSEAL_URL, json={"event_type": "submission.signed", "data": {"submission_id": 42, "id": 7}})

        assert response.json() == {"status": "success"}
        assert self.statuses(db) == {"7": "signed", "8": "pending"}

    def test_completed_updates_all(self, client, db, signatures):
        client.post(DOCUSEAL_URL, json={"event": "submission.completed", "data": {"submission": {"id": 42}}})

        assert self.statuses(db) == {"7": "completed", "8": "completed"}
        assert all(s.verified_at is not None for s in db.query(DigitalSignature).all())

    def test_other_events_ignored(self, client, db, signatures):
        response = client.post(DOCUSEAL_URL, json={"event": "form.viewed", "data": {"submission_id": 42}})

        assert response.status_code == 200
        assert self.statuses(db) == {"7": "pending", "8": "pending"}
