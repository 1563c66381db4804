from datetime import datetime, timedelta

import pytest

from lexcanada.data.seed import CATEGORIES, seed_court_procedures
from lexcanada.models import CourtProcedure, UserCourtProcedure, UserProcedureNote
from lexcanada.services.court_procedure_service import compute_progress

BASE = "/api/v1/court-procedures"


@pytest.fixture
def catalogue(db):
    seed_court_procedures(db)
    db.commit()
    return db.query(CourtProcedure).filter(CourtProcedure.slug == "ontario-small-claims").one()


@pytest.fixture
def tracked(client, auth_headers, catalogue):
    response = client.post(f"{BASE}/user", json={"procedure_id": catalogue.id}, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestComputeProgress:
    @pytest.mark.parametrize("completed, total, expected", [
        ([], 7, 0),
        ([1, 2], 7, 29),
        ([1, 1, 2], 4, 50),
        ([1, 2, 3], 3, 100),
        ([1], 0, 0),
    ])
    def test_progress(self, completed, total, expected):
        assert compute_progress(completed, total) == expected


class TestCatalogue:
    def test_categories_in_display_order(self, client, catalogue):
        response = client.get(f"{BASE}/categories")

        assert [c["slug"] for c in response.json()["data"]] == [c["slug"] for c in CATEGORIES]

    def test_category_by_slug(self, client, catalogue):
        assert client.get(f"{BASE}/categories/small-claims").json()["data"]["icon"] == "coins"
        assert client.get(f"{BASE}/categories/unknown").status_code == 404

    def test_procedures_for_category(self, client, catalogue):
        response = client.get(f"{BASE}/categories/{catalogue.category_id}/procedures")

        assert [p["slug"] for p in response.json()["data"]] == ["ontario-small-claims"]

    def test_procedure_with_ordered_steps(self, client, catalogue):
        data = client.get(f"{BASE}/procedures/{catalogue.id}").json()["data"]

        assert data["jurisdiction"] == "Ontario"
        assert [s["step_order"] for s in data["steps"]] == list(range(1, 8))
        assert data["steps"][0]["title"] == "Prepare your claim"
        assert data["steps"][0]["warnings"]

    def test_missing_procedure(self, client):
        assert client.get(f"{BASE}/procedures/999").status_code == 404


class TestUserProcedures:
    def test_start_at_first_step(self, tracked, catalogue):
        assert tracked["status"] == "in_progress"
        assert tracked["progress"] == 0
        assert tracked["completed_steps"] == []
        assert tracked["current_step_id"] == catalogue.steps[0].id
        assert tracked["title"] == catalogue.name

    def test_detail_includes_procedure_and_step(self, client, auth_headers, tracked):
        data = client.get(f"{BASE}/user/{tracked['id']}", headers=auth_headers).json()["data"]

        assert data["procedure"]["slug"] == "ontario-small-claims"
        assert data["current_step"]["step_order"] == 1

    def test_completed_steps_drive_progress(self, client, auth_headers, tracked, catalogue):
        step_ids = [step.id for step in catalogue.steps[:2]]

        response = client.patch(
            f"{BASE}/user/{tracked['id']}",
            json={"completed_steps": step_ids, "current_step_id": catalogue.steps[2].id},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert data["progress"] == 29
        assert data["current_step_id"] == catalogue.steps[2].id

    def test_explicit_progress_wins(self, client, auth_headers, tracked, catalogue):
        response = client.patch(
            f"{BASE}/user/{tracked['id']}",
            json={"completed_steps": [catalogue.steps[0].id], "progress": 40},
            headers=auth_headers,
        )

        assert response.json()["data"]["progress"] == 40

    def test_unknown_step_ids_do_not_count(self, client, auth_headers, tracked, catalogue):
        response = client.patch(
            f"{BASE}/user/{tracked['id']}",
            json={"completed_steps": list(range(9991, 9998))},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["progress"] == 0
        assert data["completed_steps"] == []

    def test_foreign_ids_dropped_from_completed_steps(self, client, auth_headers, tracked, catalogue):
        first = catalogue.steps[0].id
        response = client.patch(
            f"{BASE}/user/{tracked['id']}",
            json={"completed_steps": [first, 9999, first]},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert data["completed_steps"] == [first]
        assert data["progress"] == 14

    def test_completing_sets_full_progress(self, client, auth_headers, tracked):
        data = client.patch(f"{BASE}/user/{tracked['id']}", json={"status": "completed"}, headers=auth_headers).json()["data"]

        assert data["progress"] == 100
        assert data["completed_at"] is not None

    def test_null_status_is_ignored(self, client, auth_headers, tracked):
        data = client.patch(
            f"{BASE}/user/{tracked['id']}", json={"status": None, "notes": "Filed at Toronto courthouse"}, headers=auth_headers
        ).json()["data"]

        assert data["status"] == "in_progress"
        assert data["notes"] == "Filed at Toronto courthouse"

    def test_other_user_is_forbidden(self, client, other_headers, tracked):
        assert client.get(f"{BASE}/user/{tracked['id']}", headers=other_headers).status_code == 403

    def test_delete_cascades_items(self, client, db, auth_headers, tracked):
        client.post(f"{BASE}/user/{tracked['id']}/notes", json={"content": "Keep receipts"}, headers=auth_headers)

        response = client.delete(f"{BASE}/user/{tracked['id']}", headers=auth_headers)

        assert response.status_code == 204
        assert db.query(UserCourtProcedure).count() == 0
        assert db.query(UserProcedureNote).count() == 0

    def test_list_only_own(self, client, auth_headers, other_headers, tracked):
        assert len(client.get(f"{BASE}/user", headers=auth_headers).json()["data"]) == 1
        assert client.get(f"{BASE}/user", headers=other_headers).json()["data"] == []


class TestPersonalization:
    def test_notes_crud(self, client, auth_headers, tracked):
        base = f"{BASE}/user/{tracked['id']}/notes"
        created = client.post(base, json={"content": "Call the clerk"}, headers=auth_headers)
        assert created.status_code == 201
        note_id = created.json()["data"]["id"]

        updated = client.patch(f"{base}/{note_id}", json={"content": "Called the clerk"}, headers=auth_headers)
        assert updated.json()["data"]["content"] == "Called the clerk"

        assert client.delete(f"{base}/{note_id}", headers=auth_headers).status_code == 204
        assert client.get(base, headers=auth_headers).json()["data"] == []

    def test_checklist_toggle(self, client, auth_headers, tracked):
        base = f"{BASE}/user/{tracked['id']}/checklist"
        item = client.post(base, json={"text": "Make copies of invoices"}, headers=auth_headers).json()["data"]

        assert item["category"] == "general"
        assert item["is_completed"] is False

        toggled = client.patch(f"{base}/{item['id']}", json={"is_completed": True}, headers=auth_headers).json()["data"]
        assert toggled["is_completed"] is True
        assert toggled["text"] == "Make copies of invoices"

    def test_document_fields_can_be_cleared(self, client, auth_headers, tracked):
        base = f"{BASE}/user/{tracked['id']}/documents"
        document = client.post(
            base,
            json={"name": "Form 7A", "file_type": "pdf", "file_url": "https://files.example.ca/7a.pdf"},
            headers=auth_headers,
        ).json()["data"]

        updated = client.patch(
            f"{base}/{document['id']}", json={"file_url": None, "name": None, "status": "submitted"}, headers=auth_headers
        ).json()["data"]

        assert updated["file_url"] is None
        assert updated["name"] == "Form 7A"
        assert updated["status"] == "submitted"

    def test_reminders_ordered_by_due_date(self, client, auth_headers, tracked):
        base = f"{BASE}/user/{tracked['id']}/reminders"
        now = datetime.utcnow()
        client.post(base, json={"title": "Later", "due_date": (now + timedelta(days=20)).isoformat()}, headers=auth_headers)
        client.post(base, json={"title": "Sooner", "due_date": (now + timedelta(days=2)).isoformat()}, headers=auth_headers)

        titles = [r["title"] for r in client.get(base, headers=auth_headers).json()["data"]]

        assert titles == ["Sooner", "Later"]

    def test_upcoming_reminders_window(self, client, auth_headers, tracked):
        base = f"{BASE}/user/{tracked['id']}/reminders"
        now = datetime.utcnow()
        for title, days in (("Overdue", -1), ("This week", 3), ("Next month", 30)):
            client.post(base, json={"title": title, "due_date": (now + timedelta(days=days)).isoformat()}, headers=auth_headers)
        done = client.post(
            base, json={"title": "Done", "due_date": (now + timedelta(days=1)).isoformat()}, headers=auth_headers
        ).json()["data"]
        client.patch(f"{base}/{done['id']}", json={"is_completed": True}, headers=auth_headers)

        upcoming = client.get(f"{BASE}/user/{tracked['id']}/reminders/upcoming", headers=auth_headers).json()["data"]
        wider = client.get(
            f"{BASE}/user/{tracked['id']}/reminders/upcoming", params={"days": 60}, headers=auth_headers
        ).json()["data"]

        assert [r["title"] for r in upcoming] == ["This week"]
        assert [r["title"] for r in wider] == ["This week", "Next month"]

    def test_item_from_another_procedure_is_not_found(self, client, auth_headers, tracked, catalogue):
        second = client.post(f"{BASE}/user", json={"procedure_id": catalogue.id}, headers=auth_headers).json()["data"]
        note = client.post(
            f"{BASE}/user/{tracked['id']}/notes", json={"content": "Belongs to the first"}, headers=auth_headers
        ).json()["data"]

        response = client.patch(
            f"{BASE}/user/{second['id']}/notes/{note['id']}", json={"content": "Moved"}, headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["data"]["message"] == "Note not found"

    def test_invalid_reminder_method(self, client, auth_headers, tracked):
        response = client.post(
            f"{BASE}/user/{tracked['id']}/reminders",
            json={"title": "X", "due_date": datetime.utcnow().isoformat(), "notify_method": "pigeon"},
            headers=auth_headers,
        )

        assert response.status_code == 422
