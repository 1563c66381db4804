from lexcanada.models import Dispute

from conftest import DISPUTE, create_dispute


class TestCreateDispute:
    def test_starts_pending(self, client, auth_headers, user):
        dispute = create_dispute(client, auth_headers)

        assert dispute["status"] == "pending"
        assert dispute["user_id"] == user.id
        assert dispute["ai_analysis"] is None

    def test_invalid_type(self, client, auth_headers):
        response = client.post("/api/v1/disputes", json={**DISPUTE, "dispute_type": "maritime"}, headers=auth_headers)

        assert response.status_code == 400
        assert "dispute_type" in response.json()["data"]["details"]["errors"]


class TestReadDisputes:
    def test_list_newest_first_and_owner_only(self, client, auth_headers, other_headers):
        create_dispute(client, auth_headers, title="Older")
        create_dispute(client, auth_headers, title="Newer")
        create_dispute(client, other_headers, title="Someone else's")

        titles = [d["title"] for d in client.get("/api/v1/disputes", headers=auth_headers).json()["data"]]

        assert titles == ["Newer", "Older"]

    def test_other_user_is_forbidden(self, client, auth_headers, other_headers):
        dispute = create_dispute(client, auth_headers)

        assert client.get(f"/api/v1/disputes/{dispute['id']}", headers=other_headers).status_code == 403

    def test_missing(self, client, auth_headers):
        assert client.get("/api/v1/disputes/999", headers=auth_headers).status_code == 404


class TestUpdateDispute:
    def test_resolving_sets_resolved_at(self, client, auth_headers):
        dispute = create_dispute(client, auth_headers)

        response = client.patch(f"/api/v1/disputes/{dispute['id']}", json={"status": "resolved"}, headers=auth_headers)

        data = response.json()["data"]
        assert data["status"] == "resolved"
        assert data["resolved_at"] is not None

    def test_explicit_null_keeps_value(self, client, auth_headers):
        dispute = create_dispute(client, auth_headers)

        response = client.patch(
            f"/api/v1/disputes/{dispute['id']}",
            json={"title": None, "parties": "Alice, Gestion Roy, Bob (co-tenant)"},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert data["title"] == DISPUTE["title"]
        assert data["parties"] == "Alice, Gestion Roy, Bob (co-tenant)"

    def test_invalid_status(self, client, auth_headers):
        dispute = create_dispute(client, auth_headers)

        response = client.patch(f"/api/v1/disputes/{dispute['id']}", json={"status": "won"}, headers=auth_headers)

        assert response.status_code == 400


class TestDisputeAnalysis:
    def test_stores_model_analysis(self, client, db, auth_headers, fake_llm):
        fake_llm.complete_json.return_value = {
            "summary": "Deposit withheld without documented damage.",
            "key_issues": ["Condition of the unit", "Deposit rules"],
            "recommended_approach": "Mediation",
            "legal_considerations": ["Residential Tenancies Act, 2006"],
        }
        dispute = create_dispute(client, auth_headers)

        response = client.post(f"/api/v1/disputes/{dispute['id']}/analysis", headers=auth_headers)

        data = response.json()["data"]
        assert data["degraded"] is False
        assert data["key_issues"] == ["Condition of the unit", "Deposit rules"]
        stored = db.query(Dispute).filter(Dispute.id == dispute["id"]).one()
        assert stored.ai_analysis["summary"] == "Deposit withheld without documented damage."

    def test_fallback_analysis(self, client, auth_headers):
        dispute = create_dispute(client, auth_headers)

        data = client.post(f"/api/v1/disputes/{dispute['id']}/analysis", headers=auth_headers).json()["data"]

        assert data["degraded"] is True
        assert data["summary"] == "Landlord tenant dispute: Unreturned security deposit"
        assert data["legal_considerations"]

    def test_incomplete_model_reply_uses_fallback(self, client, auth_headers, fake_llm):
        fake_llm.complete_json.return_value = {"key_issues": ["x"]}
        dispute = create_dispute(client, auth_headers)

        data = client.post(f"/api/v1/disputes/{dispute['id']}/analysis", headers=auth_headers).json()["data"]

        assert data["degraded"] is True

    def test_string_fields_become_single_item_lists(self, client, auth_headers, fake_llm):
        fake_llm.complete_json.return_value = {
            "summary": "Deposit withheld.",
            "key_issues": "Deposit withheld",
            "legal_considerations": None,
        }
        dispute = create_dispute(client, auth_headers)

        data = client.post(f"/api/v1/disputes/{dispute['id']}/analysis", headers=auth_headers).json()["data"]

        assert data["key_issues"] == ["Deposit withheld"]
        assert data["legal_considerations"] == []
