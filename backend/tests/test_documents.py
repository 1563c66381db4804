from unittest.mock import MagicMock

import pytest
import requests

from lexcanada.core.config import config
from lexcanada.core.errors import ExternalServiceError, ServiceUnavailableError, ValidationError
from lexcanada.models import DigitalSignature, DocumentTemplate, GeneratedDocument, UserUsage
from lexcanada.services.docuseal_service import DocuSealClient, SignatureService
from lexcanada.services.document_service import placeholder_variants, render_template

LEASE_TEMPLATE = {
    "template_type": "real_estate",
    "subcategory": "lease",
    "title": "Residential Lease",
    "description": "Simple residential lease",
    "language": "en",
    "template_content": "# Residential Lease\n\nLandlord: {{landlordName}}\nTenant: {{ Tenant Name }}\nRent: ${{monthlyRent}}",
    "fields": [
        {"name": "landlordName", "label": "Landlord Name", "type": "text", "required": True},
        {"name": "tenantName", "label": "Tenant Name", "type": "text", "required": True},
        {"name": "monthlyRent", "label": "Monthly Rent", "type": "number", "required": False},
    ],
}


@pytest.fixture
def template(db):
    record = DocumentTemplate(**LEASE_TEMPLATE)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def document(db, user):
    record = GeneratedDocument(
        user_id=user.id,
        document_title="Demand Letter",
        document_content="# Demand Letter\n\nPlease pay $500 by June 1.\n\n- Invoice 1042\n- Invoice 1043",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


class TestRenderTemplate:
    def test_placeholder_variants(self):
        assert placeholder_variants("firstName") == ["firstName", "First Name", "FIRST NAME"]
        assert placeholder_variants("city") == ["city"]

    def test_fills_all_variants(self):
        content = "{{firstName}} / {{First Name}} / {{FIRST NAME}} / {{ agreed }}"

        rendered = render_template(content, {"firstName": "Marie", "agreed": True})

        assert rendered == "Marie / Marie / Marie / Yes"

    def test_missing_required_fields(self):
        fields = [{"name": "tenantName", "label": "Tenant Name", "required": True}]

        with pytest.raises(ValidationError) as exc_info:
            render_template("{{tenantName}}", {"tenantName": "  "}, fields)

        assert exc_info.value.errors == {"tenantName": "Tenant Name is required"}


class TestTemplates:
    def test_list_filters_by_language_and_type(self, client, db, template):
        db.add(DocumentTemplate(**{**LEASE_TEMPLATE, "title": "Bail résidentiel", "language": "fr"}))
        db.commit()

        english = client.get("/api/v1/document-templates", params={"language": "en", "type": "real_estate"})
        french = client.get("/api/v1/document-templates", params={"language": "fr"})
        other = client.get("/api/v1/document-templates", params={"type": "family"})

        assert [t["title"] for t in english.json()["data"]] == ["Residential Lease"]
        assert [t["title"] for t in french.json()["data"]] == ["Bail résidentiel"]
        assert other.json()["data"] == []

    def test_get_unknown_template(self, client):
        response = client.get("/api/v1/document-templates/999")

        assert response.status_code == 404
        assert response.json()["data"]["message"] == "Document template not found"

    def test_create_requires_admin(self, client, auth_headers, admin_headers):
        forbidden = client.post("/api/v1/document-templates", json=LEASE_TEMPLATE, headers=auth_headers)
        created = client.post("/api/v1/document-templates", json=LEASE_TEMPLATE, headers=admin_headers)

        assert forbidden.status_code == 403
        assert created.status_code == 201
        assert created.json()["data"]["fields"][0]["name"] == "landlordName"


class TestGenerateDocument:
    def test_generates_from_template(self, client, db, user, auth_headers, template):
        response = client.post(
            "/api/v1/documents/generate",
            json={
                "template_id": template.id,
                "form_data": {"landlordName": "Gestion Roy", "tenantName": "Alice", "monthlyRent": 1450},
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["document_title"] == "Residential Lease"
        assert "Landlord: Gestion Roy" in data["document_content"]
        assert "Tenant: Alice" in data["document_content"]
        assert "Rent: $1450" in data["document_content"]
        assert data["document_data"]["tenantName"] == "Alice"
        assert db.query(UserUsage).filter(UserUsage.user_id == user.id).one().document_gen_count == 1

    def test_missing_required_field(self, client, auth_headers, template):
        response = client.post(
            "/api/v1/documents/generate",
            json={"template_id": template.id, "form_data": {"landlordName": "Gestion Roy"}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["data"]["details"]["errors"] == {"tenantName": "Tenant Name is required"}

    def test_enhanced_uses_model_output(self, client, db, auth_headers, fake_llm):
        fake_llm.complete.return_value.text = "# Enhanced Lease\n\nFull text."

        response = client.post(
            "/api/v1/documents/enhanced",
            json={
                "template": "Tenant: {{tenantName}}",
                "form_data": {"tenantName": "Alice"},
                "document_type": "lease",
                "jurisdiction": "Ontario",
                "save_document": True,
                "title": "My Lease",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["enhanced"] is True
        assert data["content"] == "# Enhanced Lease\n\nFull text."
        saved = db.query(GeneratedDocument).filter(GeneratedDocument.id == data["document_id"]).one()
        assert saved.document_data["jurisdiction"] == "Ontario"
        assert "Tenant: Alice" in fake_llm.complete.call_args[0][1][0]["content"]

    def test_enhanced_falls_back_to_rendered_template(self, client, auth_headers):
        response = client.post(
            "/api/v1/documents/enhanced",
            json={"template": "Tenant: {{tenantName}}", "form_data": {"tenantName": "Alice"}, "document_type": "lease"},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert data["enhanced"] is False
        assert data["content"] == "Tenant: Alice"
        assert data["document_id"] is None


class TestDocuments:
    def test_create_and_list_newest_first(self, client, auth_headers):
        for title in ("First", "Second"):
            client.post(
                "/api/v1/documents",
                json={"document_title": title, "document_content": f"{title} content"},
                headers=auth_headers,
            )

        response = client.get("/api/v1/documents", headers=auth_headers)

        assert [d["document_title"] for d in response.json()["data"]] == ["Second", "First"]

    def test_create_with_unknown_template(self, client, auth_headers):
        response = client.post(
            "/api/v1/documents",
            json={"document_title": "X", "document_content": "Y", "template_id": 42},
            headers=auth_headers,
        )

        assert response.status_code == 404

    def test_other_users_cannot_read(self, client, document, other_headers):
        response = client.get(f"/api/v1/documents/{document.id}", headers=other_headers)

        assert response.status_code == 403

    def test_preview_is_html(self, client, document, auth_headers):
        response = client.get(f"/api/v1/documents/{document.id}/preview", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<h1>Demand Letter</h1>" in response.text
        assert "<li>Invoice 1042</li>" in response.text


class TestExportEndpoints:
    def test_export_saved_document_as_pdf(self, client, document, auth_headers):
        response = client.get(f"/api/v1/documents/{document.id}/export", params={"format": "pdf"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == 'attachment; filename="demand-letter.pdf"'
        assert response.headers["x-export-degraded"] == "false"
        assert response.content.startswith(b"%PDF")

    def test_export_unsaved_content_as_docx(self, client, auth_headers):
        response = client.post(
            "/api/v1/documents/export",
            json={"content": "# Notice\n\nBody text", "format": "docx"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["x-export-format"] == "docx"
        assert response.content.startswith(b"PK")

    def test_unsupported_format(self, client, document, auth_headers):
        response = client.get(f"/api/v1/documents/{document.id}/export", params={"format": "odt"}, headers=auth_headers)

        assert response.status_code == 400
        assert "format" in response.json()["data"]["details"]["errors"]


class TestSignatures:
    def test_not_configured(self, client, document, auth_headers, monkeypatch):
        monkeypatch.setattr(config.signatures, "docuseal_template_id", "tpl_1")

        response = client.post(
            f"/api/v1/documents/{document.id}/signatures",
            json={"signers": [{"name": "Alice", "email": "alice@example.ca"}]},
            headers=auth_headers,
        )

        assert response.status_code == 503

    def test_not_configured_without_template(self, client, document, auth_headers):
        response = client.post(
            f"/api/v1/documents/{document.id}/signatures",
            json={"signers": [{"name": "Bob", "email": "bob@example.ca"}]},
            headers=auth_headers,
        )

        assert response.status_code == 503
        assert response.json()["success"] == 0

    def test_requires_template(self, client, document, auth_headers, monkeypatch):
        monkeypatch.setattr(config.signatures, "docuseal_api_key", "ds_key")

        response = client.post(
            f"/api/v1/documents/{document.id}/signatures",
            json={"signers": [{"name": "Alice", "email": "alice@example.ca"}]},
            headers=auth_headers,
        )

        assert response.status_code == 400

    def test_request_signatures_stores_rows(self, db, user, document):
        fake_client = MagicMock(spec=DocuSealClient)
        fake_client.create_submission.return_value = [
            {"id": 11, "submission_id": 500, "email": "alice@example.ca", "embed_src": "https://docuseal.co/s/a"},
            {"id": 12, "submission_id": 500, "email": "bob@example.ca", "embed_src": "https://docuseal.co/s/b"},
        ]
        service = SignatureService(db, client=fake_client)

        rows = service.request_signatures(
            document,
            user,
            [
                {"name": "Alice", "email": "Alice@example.ca", "role": "Landlord"},
                {"name": "Bob", "email": "bob@example.ca"},
            ],
            template_id="tpl_1",
        )

        assert [(r.signer_id, r.signing_url, r.signature_status) for r in rows] == [
            ("11", "https://docuseal.co/s/a", "pending"),
            ("12", "https://docuseal.co/s/b", "pending"),
        ]
        assert {r.submission_id for r in rows} == {"500"}
        fake_client.create_submission.assert_called_once()

    def test_list_signatures_endpoint(self, client, db, user, document, auth_headers):
        db.add(DigitalSignature(
            document_id=document.id,
            user_id=user.id,
            submission_id="500",
            signer_name="Alice",
            signer_email="alice@example.ca",
            signature_status="pending",
        ))
        db.commit()

        response = client.get(f"/api/v1/documents/{document.id}/signatures", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"][0]["signer_email"] == "alice@example.ca"


class TestDocuSealClient:
    def test_get_submission(self, monkeypatch):
        response = MagicMock()
        response.json.return_value = {"id": 500, "status": "completed"}
        request = MagicMock(return_value=response)
        monkeypatch.setattr(requests, "request", request)
        client = DocuSealClient(api_key="ds_key", api_url="https://docuseal.example.ca/api/", timeout=5)

        assert client.get_submission("500") == {"id": 500, "status": "completed"}
        request.assert_called_once_with(
            "GET", "https://docuseal.example.ca/api/submissions/500", headers={"X-Api-Key": "ds_key"}, timeout=5
        )

    def test_http_failure(self, monkeypatch):
        monkeypatch.setattr(requests, "request", MagicMock(side_effect=requests.ConnectionError("refused")))
        client = DocuSealClient(api_key="ds_key", api_url="https://docuseal.example.ca/api")

        with pytest.raises(ExternalServiceError):
            client.create_submission("tpl_1", [{"email": "alice@example.ca"}])

    def test_unconfigured(self):
        with pytest.raises(ServiceUnavailableError):
            DocuSealClient(api_key="").get_submission("500")
