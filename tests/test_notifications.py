from unittest.mock import patch

import pytest
from httpx import AsyncClient

from app.core.result import Err, ErrorKind
from app.domain.notifications.models import NotificationType
from app.domain.notifications.service import NotificationService
from app.domain.profiles.service import SettingsService
from app.workers.tasks import send_notification_email


def seed(db, user_id, count=3):
    service = NotificationService(db, send_email_copies=False)
    return [
        service.notify(user_id, NotificationType.APPOINTMENT_REQUESTED, f"Aviso {i}").value
        for i in range(count)
    ]


@pytest.mark.unit
class TestNotificationService:
    """Test notification storage and read state."""

    def test_notify_queues_email_copy(self, db_session, patient, queued_emails):
        result = NotificationService(db_session).notify(
            patient.id, NotificationType.DOCUMENT_SHARED, "Documento compartido", "Rayos X"
        )

        assert result.success
        assert result.value.is_read is False
        queued_emails.notification.assert_called_once_with(
            str(patient.id), "Documento compartido", "Rayos X"
        )

    def test_queue_failure_keeps_notification(self, db_session, patient, queued_emails):
        queued_emails.notification.side_effect = ConnectionError("broker down")

        result = NotificationService(db_session).notify(patient.id, NotificationType.DOCUMENT_SHARED, "Hola")

        assert result.success
        assert NotificationService(db_session).unread_count(patient.id) == 1

    def test_failed_insert_is_reported(self, db_session, patient, queued_emails):
        service = NotificationService(db_session)

        with patch.object(service.notification_repo, "create",
                          return_value=Err(ErrorKind.UNEXPECTED, "create-failed")):
            result = service.notify(patient.id, NotificationType.DOCUMENT_SHARED, "Hola")

        assert not result.success
        queued_emails.notification.assert_not_called()

    def test_mark_read_only_own(self, db_session, patient, other_patient):
        service = NotificationService(db_session)
        first, second, _ = seed(db_session, patient.id)

        assert not service.mark_read(first.id, other_patient.id).success
        assert service.mark_read(first.id, patient.id).success
        assert service.unread_count(patient.id) == 2
        assert second.id in [n.id for n in service.list_unread(patient.id)]

    def test_mark_all_read(self, db_session, patient):
        service = NotificationService(db_session)
        seed(db_session, patient.id)

        result = service.mark_all_read(patient.id)

        assert result.value == 3
        assert service.unread_count(patient.id) == 0
        assert len(service.list_notifications(patient.id)) == 3


@pytest.mark.unit
class TestNotificationEmailTask:
    """Test the e-mail copy worker."""

    def test_sends_to_profile_address(self, db_session, patient):
        with patch("app.workers.tasks.send_email") as send:
            outcome = send_notification_email(str(patient.id), "Cita confirmada", "Mañana 10:00")

        assert outcome == {"status": "success"}
        send.assert_called_once_with(patient.email, "Cita confirmada", "Mañana 10:00")

    def test_respects_email_setting(self, db_session, patient):
        SettingsService(db_session).update_my_settings(patient.id, {"email_notifications": False})

        with patch("app.workers.tasks.send_email") as send:
            outcome = send_notification_email(str(patient.id), "Cita confirmada")

        assert outcome["status"] == "skipped"
        send.assert_not_called()


@pytest.mark.integration
@pytest.mark.asyncio
class TestNotificationEndpoints:
    """Test notification endpoints."""

    async def test_bell_flow(self, client: AsyncClient, db_session, patient, patient_headers):
        notifications = seed(db_session, patient.id, count=12)

        count = await client.get("/api/v1/notifications/unread/count", headers=patient_headers)
        assert count.json() == {"unread": 12}

        unread = await client.get("/api/v1/notifications/unread", headers=patient_headers)
        assert len(unread.json()) == 10

        marked = await client.post(f"/api/v1/notifications/{notifications[0].id}/read",
                                   headers=patient_headers)
        assert marked.json() == {"success": True, "error": None, "updated": 1}

        marked_all = await client.post("/api/v1/notifications/read-all", headers=patient_headers)
        assert marked_all.json()["updated"] == 11

        count = await client.get("/api/v1/notifications/unread/count", headers=patient_headers)
        assert count.json() == {"unread": 0}

    async def test_mark_someone_elses_notification(
        self, client: AsyncClient, db_session, other_patient, patient_headers
    ):
        foreign = seed(db_session, other_patient.id, count=1)[0]

        response = await client.post(f"/api/v1/notifications/{foreign.id}/read", headers=patient_headers)

        assert response.status_code == 404

    async def test_requires_login(self, client: AsyncClient):
        response = await client.get("/api/v1/notifications/unread/count")

        assert response.status_code == 401
