"""
API Tests
=========

End-to-end flow through the HTTP API:
register -> assign -> submit document -> schedule meeting -> issue -> download

Also covers authentication, role checks and public tracking.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fastapi.testclient import TestClient

from enyaya.api import app
from enyaya.config import get_settings
from enyaya.db.models import Professional, ProfessionalType, User, UserRole
from enyaya.db.session import get_db_session, reset_engine

ADMIN = {"X-User-Email": "admin@enyaya.example.com"}
CLIENT = {"X-User-Email": "asha@example.com"}
PROFESSIONAL = {"X-User-Email": "meera@example.com"}
OTHER_PROFESSIONAL = {"X-User-Email": "rahul@example.com"}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def client(tmp_path, monkeypatch):
    """Test client on a fresh database and storage directory, email in dev mode."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "case-documents"))
    monkeypatch.setenv("BOOTSTRAP_ADMIN_EMAIL", "Admin@enyaya.example.com")
    for name in ("RESEND_API_KEY", "SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    reset_engine()

    # Use context manager so startup runs (DB init + bootstrap admin)
    with TestClient(app) as c:
        yield c

    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def seeded(client):
    """Client user plus two professionals with linked user accounts."""
    with get_db_session() as db:
        meera = Professional(name="Dr. Meera Iyer", email="meera@example.com", type=ProfessionalType.ARBITRATOR)
        rahul = Professional(name="Rahul Sen", email="rahul@example.com", type=ProfessionalType.MEDIATOR)
        db.add_all([meera, rahul])
        db.flush()
        db.add_all([
            User(email="asha@example.com", full_name="Asha Verma", role=UserRole.CLIENT),
            User(email="meera@example.com", role=UserRole.PROFESSIONAL, professional_id=meera.id),
            User(email="rahul@example.com", role=UserRole.PROFESSIONAL, professional_id=rahul.id),
        ])
        ids = {"meera": meera.id, "rahul": rahul.id}
    return ids


def _registration():
    return {
        "applicant": {"name": "Asha Verma", "phone": "9876543210", "email": "asha@example.com"},
        "respondent": {"name": "Bharat Traders", "email": "legal@bharat.example.com"},
        "contract_type": "Supply",
        "resolution_type": "arbitration",
        "dispute_description": "Goods delivered three months late.",
        "annual_income": 300000,
    }


def _issue_form(**overrides):
    form = {
        "document_type": "arbitration_award",
        "summary": "Delay established on the evidence.",
        "outcome": "Respondent pays INR 50,000.",
        "terms": "Payment within 30 days.",
        "respondent_advocate_name": "Adv. Khan",
        "respondent_advocate_phone": "9999999999",
    }
    form.update(overrides)
    return form


def _register_and_assign(client, professional_id):
    response = client.post("/api/v1/disputes", json=_registration(), headers=CLIENT)
    assert response.status_code == 201
    dispute = response.json()
    response = client.post(f"/api/v1/disputes/{dispute['id']}/assign",
                           json={"professional_id": professional_id}, headers=ADMIN)
    assert response.status_code == 200
    return response.json()


# =============================================================================
# Health & auth
# =============================================================================

class TestHealthEndpoint:
    """Tests for /health endpoint"""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert any("emails will only be logged" in w for w in data["warnings"])


class TestAuthentication:
    """Identity comes from request headers"""

    def test_missing_identity_is_401(self, client):
        response = client.get("/api/v1/disputes")
        assert response.status_code == 401

    def test_unknown_user_is_401(self, client):
        response = client.get("/api/v1/disputes", headers={"X-User-Email": "nobody@example.com"})
        assert response.status_code == 401

    def test_bootstrap_admin_created(self, client):
        response = client.get("/api/v1/professionals", headers=ADMIN)
        assert response.status_code == 200


# =============================================================================
# Full flow
# =============================================================================

class TestIssuanceFlow:
    """Register, assign, meet, issue and download"""

    def test_full_flow(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        dispute_id = dispute["id"]
        assert dispute["status"] == "Professional Assigned"
        assert dispute["legal_aid_eligible"] is True

        response = client.post(f"/api/v1/disputes/{dispute_id}/documents", headers=CLIENT, json={
            "submitted_by": "Applicant",
            "document_name": "Delivery challan",
            "document_description": "Shows receipt on 3 March",
        })
        assert response.status_code == 201

        response = client.post(f"/api/v1/disputes/{dispute_id}/meetings", headers=PROFESSIONAL, json={
            "meeting_date": "2026-11-02T15:00:00",
            "meeting_link": "https://meet.example.com/room-1",
        })
        assert response.status_code == 200
        assert response.json()["status"] == "Meeting Scheduled"

        response = client.post(f"/api/v1/disputes/{dispute_id}/issue", headers=PROFESSIONAL, json=_issue_form())
        assert response.status_code == 200
        issued = response.json()
        assert issued["success"] is True
        assert issued["status"] == "Arbitration Award Issued"
        assert issued["storage_key"].startswith(f"{dispute_id}/award-")

        response = client.get(f"/api/v1/disputes/{dispute_id}/award", headers=CLIENT)
        assert response.status_code == 200
        link = response.json()
        assert link["expires_in"] == 3600

        response = client.get(link["url"])
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

        response = client.get("/api/v1/notifications", headers=CLIENT)
        titles = [n["title"] for n in response.json()]
        assert "Final Document Issued" in titles
        assert "Meeting Scheduled" in titles
        assert "Professional Assigned" in titles

    def test_reissue_moves_pointer(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        url = f"/api/v1/disputes/{dispute['id']}/issue"

        first = client.post(url, headers=PROFESSIONAL, json=_issue_form()).json()
        second = client.post(url, headers=PROFESSIONAL,
                             json=_issue_form(document_type="mediation_report")).json()

        assert first["storage_key"] != second["storage_key"]
        response = client.get(f"/api/v1/disputes/{dispute['id']}", headers=ADMIN)
        data = response.json()
        assert data["award_pdf_url"] == second["storage_key"]
        assert data["status"] == "Mediation Report Issued"

    def test_track_by_case_code(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])

        response = client.get(f"/api/v1/track/{dispute['case_id']}")
        assert response.status_code == 200
        data = response.json()
        assert data["case_id"] == dispute["case_id"]
        assert data["status"] == "Professional Assigned"
        assert data["document_issued"] is False
        assert "applicant_email" not in data

    def test_track_unknown_case(self, client):
        response = client.get("/api/v1/track/ODR/2026/000000")
        assert response.status_code == 404


# =============================================================================
# Access control
# =============================================================================

class TestAccessControl:
    """Role and assignment checks"""

    def test_client_cannot_issue(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.post(f"/api/v1/disputes/{dispute['id']}/issue", headers=CLIENT, json=_issue_form())
        assert response.status_code == 403

    def test_unassigned_professional_cannot_issue(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.post(f"/api/v1/disputes/{dispute['id']}/issue", headers=OTHER_PROFESSIONAL,
                               json=_issue_form())
        assert response.status_code == 403

    def test_admin_cannot_schedule_meeting(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.post(f"/api/v1/disputes/{dispute['id']}/meetings", headers=ADMIN, json={
            "meeting_date": "2026-11-02T15:00:00",
            "meeting_link": "https://meet.example.com/room-1",
        })
        assert response.status_code == 403

    def test_blank_summary_rejected(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.post(f"/api/v1/disputes/{dispute['id']}/issue", headers=PROFESSIONAL,
                               json=_issue_form(summary="  "))
        assert response.status_code == 422

    def test_professional_lists_only_assigned(self, client, seeded):
        _register_and_assign(client, seeded["meera"])
        _register_and_assign(client, seeded["rahul"])

        mine = client.get("/api/v1/disputes", headers=PROFESSIONAL).json()
        assert len(mine) == 1
        assert mine[0]["assigned_professional_id"] == seeded["meera"]
        assert len(client.get("/api/v1/disputes", headers=ADMIN).json()) == 2

    def test_other_client_cannot_see_dispute(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        with get_db_session() as db:
            db.add(User(email="intruder@example.com", role=UserRole.CLIENT))

        response = client.get(f"/api/v1/disputes/{dispute['id']}", headers={"X-User-Email": "intruder@example.com"})
        assert response.status_code == 404

    def test_award_link_before_issue(self, client, seeded):
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.get(f"/api/v1/disputes/{dispute['id']}/award", headers=CLIENT)
        assert response.status_code == 404

    def test_invalid_download_token(self, client):
        response = client.get("/api/v1/files/not-a-valid-token")
        assert response.status_code == 403


# =============================================================================
# Administration
# =============================================================================

class TestAdministration:
    """Professionals and roles"""

    def test_create_professional(self, client):
        response = client.post("/api/v1/professionals", headers=ADMIN, json={
            "name": "Adv. Kavita Shah",
            "email": "kavita@example.com",
            "type": "legal_aid_advocate",
            "experience": 12,
        })
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "active"
        assert data["cases_handled"] == 0

    def test_inactive_professional_cannot_be_assigned(self, client, seeded):
        response = client.patch(f"/api/v1/professionals/{seeded['rahul']}", headers=ADMIN,
                                json={"status": "inactive"})
        assert response.status_code == 200

        dispute = client.post("/api/v1/disputes", json=_registration(), headers=CLIENT).json()
        response = client.post(f"/api/v1/disputes/{dispute['id']}/assign",
                               json={"professional_id": seeded["rahul"]}, headers=ADMIN)
        assert response.status_code == 409

    def test_role_change_requires_professional_profile(self, client, seeded):
        with get_db_session() as db:
            user_id = db.query(User).filter(User.email == "asha@example.com").one().id

        response = client.put(f"/api/v1/users/{user_id}/role", headers=ADMIN, json={"role": "professional"})
        assert response.status_code == 422

        response = client.put(f"/api/v1/users/{user_id}/role", headers=ADMIN,
                              json={"role": "professional", "professional_id": seeded["rahul"]})
        assert response.status_code == 200
        assert response.json()["role"] == "professional"

    def test_client_cannot_manage_roles(self, client, seeded):
        response = client.post("/api/v1/users", headers=CLIENT, json={"email": "new@example.com"})
        assert response.status_code == 403

    def test_mark_notification_read(self, client, seeded):
        _register_and_assign(client, seeded["meera"])
        notes = client.get("/api/v1/notifications?unread_only=true", headers=CLIENT).json()
        assert len(notes) == 1

        response = client.post(f"/api/v1/notifications/{notes[0]['id']}/read", headers=CLIENT)
        assert response.status_code == 200
        assert client.get("/api/v1/notifications?unread_only=true", headers=CLIENT).json() == []

    def test_admin_edits_dispute(self, client, seeded):
        dispute = client.post("/api/v1/disputes", json=_registration(), headers=CLIENT).json()

        response = client.patch(f"/api/v1/disputes/{dispute['id']}", headers=ADMIN,
                                json={"status": "Closed", "contract_type": "Sale"})
        assert response.status_code == 200
        assert response.json()["status"] == "Closed"
        assert response.json()["contract_type"] == "Sale"

        response = client.patch(f"/api/v1/disputes/{dispute['id']}", headers=CLIENT, json={"status": "Closed"})
        assert response.status_code == 403

    @pytest.mark.parametrize("field", [
        "contract_type", "resolution_type", "dispute_description", "status", "legal_aid_eligible",
    ])
    def test_dispute_null_field_rejected(self, client, seeded, field):
        dispute = client.post("/api/v1/disputes", json=_registration(), headers=CLIENT).json()

        response = client.patch(f"/api/v1/disputes/{dispute['id']}", headers=ADMIN, json={field: None})
        assert response.status_code == 422

        response = client.get(f"/api/v1/disputes/{dispute['id']}", headers=ADMIN)
        assert response.json()[field] == dispute[field]

    def test_dispute_blank_text_rejected(self, client, seeded):
        dispute = client.post("/api/v1/disputes", json=_registration(), headers=CLIENT).json()
        response = client.patch(f"/api/v1/disputes/{dispute['id']}", headers=ADMIN, json={"contract_type": ""})
        assert response.status_code == 422


class TestProfessionalEdits:
    """Partial professional updates"""

    @pytest.mark.parametrize("field", ["name", "email", "type", "experience", "status"])
    def test_null_field_rejected(self, client, seeded, field):
        response = client.patch(f"/api/v1/professionals/{seeded['meera']}", headers=ADMIN, json={field: None})
        assert response.status_code == 422

    def test_empty_name_rejected(self, client, seeded):
        response = client.patch(f"/api/v1/professionals/{seeded['meera']}", headers=ADMIN, json={"name": ""})
        assert response.status_code == 422

        # The signer name on later awards is untouched
        dispute = _register_and_assign(client, seeded["meera"])
        response = client.post(f"/api/v1/disputes/{dispute['id']}/issue", headers=PROFESSIONAL, json=_issue_form())
        assert response.status_code == 200

    def test_optional_contact_can_be_cleared(self, client, seeded):
        response = client.patch(f"/api/v1/professionals/{seeded['meera']}", headers=ADMIN,
                                json={"phone": "9000000000", "specialization": "Commercial"})
        assert response.json()["phone"] == "9000000000"

        response = client.patch(f"/api/v1/professionals/{seeded['meera']}", headers=ADMIN,
                                json={"phone": None, "specialization": None})
        assert response.status_code == 200
        assert response.json()["phone"] is None
        assert response.json()["specialization"] is None
        assert response.json()["name"] == "Dr. Meera Iyer"


class TestUserCreation:
    """Creating users with a role"""

    def test_create_client(self, client, seeded):
        response = client.post("/api/v1/users", headers=ADMIN,
                               json={"email": "New.User@example.com", "professional_id": seeded["rahul"]})
        assert response.status_code == 201
        assert response.json()["email"] == "new.user@example.com"
        assert response.json()["role"] == "client"

        with get_db_session() as db:
            user = db.query(User).filter(User.email == "new.user@example.com").one()
            assert user.professional_id is None

    def test_professional_requires_profile(self, client, seeded):
        response = client.post("/api/v1/users", headers=ADMIN,
                               json={"email": "pro@example.com", "role": "professional"})
        assert response.status_code == 422

    def test_professional_profile_must_exist(self, client, seeded):
        response = client.post("/api/v1/users", headers=ADMIN, json={
            "email": "pro@example.com", "role": "professional", "professional_id": "no-such-professional",
        })
        assert response.status_code == 422

    def test_create_professional_user(self, client, seeded):
        response = client.post("/api/v1/users", headers=ADMIN, json={
            "email": "pro@example.com", "role": "professional", "professional_id": seeded["rahul"],
        })
        assert response.status_code == 201

        response = client.get("/api/v1/disputes", headers={"X-User-Email": "pro@example.com"})
        assert response.status_code == 200
        assert response.json() == []

    def test_role_change_to_unknown_profile_rejected(self, client, seeded):
        with get_db_session() as db:
            user_id = db.query(User).filter(User.email == "asha@example.com").one().id

        response = client.put(f"/api/v1/users/{user_id}/role", headers=ADMIN,
                              json={"role": "professional", "professional_id": "no-such-professional"})
        assert response.status_code == 422
