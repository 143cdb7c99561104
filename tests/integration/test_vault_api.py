import io
import zipfile
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from expatvault.api import dependencies
from expatvault.api.main import app
from expatvault.core.security import create_access_token
from expatvault.models import Reminder, ReminderStatus, ReminderType
from expatvault.vault.export import BulkExportStreamer
from expatvault.vault.reminders import ReminderScheduler, ReminderService
from tests.stubs import NOW, StubDocumentStore, StubObjectStore, make_document


@pytest.fixture
def document_store():
    return StubDocumentStore(
        [
            make_document("d1", "Passport scan.pdf", document_type="passport", extracted_fields={"expiry_date": "2026-01-01"}),
            make_document("d2", "Lease.pdf"),
            make_document("theirs", "theirs.pdf", user_id="user-2"),
        ]
    )


@pytest.fixture
def object_store():
    return StubObjectStore({"user-1/d1": b"passport-bytes"})


@pytest.fixture
def client(document_store, object_store, reminder_repository, clock):
    deadline = NOW + timedelta(days=20)
    reminder_repository.rows["rem-1"] = Reminder(
        id="rem-1",
        document_id="d1",
        user_id="user-1",
        reminder_type=ReminderType.FOURTEEN_DAYS,
        reminder_date=deadline - timedelta(days=14),
        deadline_date=deadline,
    )

    app.dependency_overrides[dependencies.get_document_repository] = lambda: document_store
    app.dependency_overrides[dependencies.get_object_storage] = lambda: object_store
    app.dependency_overrides[dependencies.get_export_streamer] = lambda: BulkExportStreamer(
        documents=document_store, store=object_store, clock=clock
    )
    app.dependency_overrides[dependencies.get_reminder_scheduler] = lambda: ReminderScheduler(
        store=reminder_repository, clock=clock
    )
    app.dependency_overrides[dependencies.get_reminder_service] = lambda: ReminderService(
        repository=reminder_repository, documents=document_store, clock=clock
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1', claims={'email': 'anna@example.com'})}"}


def test_health_is_public(client):
    response = client.get("/api/admin/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_bulk_download_requires_authentication(client):
    response = client.post("/api/vault/bulk-download", json={"documentIds": ["d1"]})

    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"


def test_bulk_download_rejects_invalid_token(client):
    response = client.post(
        "/api/vault/bulk-download",
        json={"documentIds": ["d1"]},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


@pytest.mark.parametrize("body", [{}, {"documentIds": []}, {"documentIds": "d1"}])
def test_bulk_download_validates_body(client, auth_headers, body):
    response = client.post("/api/vault/bulk-download", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_bulk_download_with_no_owned_documents(client, auth_headers):
    response = client.post("/api/vault/bulk-download", json={"documentIds": ["theirs", "nope"]}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "no_documents_found"


def test_bulk_download_streams_zip(client, auth_headers):
    response = client.post("/api/vault/bulk-download", json={"documentIds": ["d1", "d2"]}, headers=auth_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert response.headers["content-disposition"] == 'attachment; filename="documents-2025-12-01.zip"'
    archive = zipfile.ZipFile(io.BytesIO(response.content))
    assert archive.namelist() == ["Passport_scan.pdf"]


def test_single_download(client, auth_headers):
    response = client.get("/api/vault/documents/d1/download", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == b"passport-bytes"
    assert response.headers["content-disposition"] == 'attachment; filename="Passport_scan.pdf"'


def test_single_download_missing_bytes(client, auth_headers):
    response = client.get("/api/vault/documents/d2/download", headers=auth_headers)

    assert response.status_code == 404


def test_schedule_reminders_from_stored_classification(client, auth_headers, reminder_repository):
    response = client.post("/api/vault/documents/d1/reminders", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "document_id": "d1",
        "created": 4,
        "errors": 0,
        "deadline_date": "2026-01-01",
        "source_field": "expiry_date",
    }
    # the seeded 14 day reminder is kept, not duplicated
    assert len([row for row in reminder_repository.rows.values() if row.document_id == "d1"]) == 4


def test_schedule_reminders_with_explicit_fields(client, auth_headers):
    response = client.post(
        "/api/vault/documents/d2/reminders",
        json={"document_type": "rental_contract", "extracted_fields": {"end_date": "06.12.2025"}},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["created"] == 1
    assert response.json()["source_field"] == "end_date"


def test_schedule_reminders_for_foreign_document(client, auth_headers):
    response = client.post("/api/vault/documents/theirs/reminders", headers=auth_headers)

    assert response.status_code == 404


def test_list_reminders(client, auth_headers):
    response = client.get("/api/vault/reminders", headers=auth_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["count"] == 1
    assert body["reminders"][0]["days_remaining"] == 20
    assert body["reminders"][0]["is_overdue"] is False
    assert body["reminders"][0]["document"] == {
        "id": "d1",
        "file_name": "Passport scan.pdf",
        "document_type": "passport",
        "download_url": "/api/vault/documents/d1/download",
    }


def test_list_reminders_rejects_unknown_status(client, auth_headers):
    response = client.get("/api/vault/reminders", params={"status": "archived"}, headers=auth_headers)

    assert response.status_code == 400


def test_snooze_reminder(client, auth_headers, reminder_repository):
    response = client.post("/api/vault/reminders/rem-1", json={"action": "snooze", "days": 15}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["reminder"]["status"] == "snoozed"
    assert reminder_repository.rows["rem-1"].snoozed_until == NOW + timedelta(days=15)


@pytest.mark.parametrize("days", [0, 31])
def test_snooze_out_of_range(client, auth_headers, days):
    response = client.post("/api/vault/reminders/rem-1", json={"action": "snooze", "days": days}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Days must be between 1 and 30"


@pytest.mark.parametrize("days", [True, "15", 15.5])
def test_snooze_days_must_be_an_integer(client, auth_headers, reminder_repository, days):
    response = client.post("/api/vault/reminders/rem-1", json={"action": "snooze", "days": days}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
    assert reminder_repository.rows["rem-1"].status == ReminderStatus.PENDING


def test_snooze_missing_reminder_with_bad_days(client, auth_headers):
    response = client.post("/api/vault/reminders/nope", json={"action": "snooze", "days": 0}, headers=auth_headers)

    assert response.status_code == 404


def test_complete_reminder(client, auth_headers, reminder_repository):
    response = client.post("/api/vault/reminders/rem-1", json={"action": "complete"}, headers=auth_headers)

    assert response.status_code == 200
    assert reminder_repository.rows["rem-1"].status == ReminderStatus.COMPLETED


def test_unknown_action(client, auth_headers):
    response = client.post("/api/vault/reminders/rem-1", json={"action": "archive"}, headers=auth_headers)

    assert response.status_code == 400


def test_action_on_missing_reminder(client, auth_headers):
    response = client.post("/api/vault/reminders/nope", json={"action": "complete"}, headers=auth_headers)

    assert response.status_code == 404


def test_delete_reminder(client, auth_headers, reminder_repository):
    response = client.delete("/api/vault/reminders/rem-1", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "rem-1" not in reminder_repository.rows
