import pytest
from httpx import AsyncClient

from app.core.exceptions import GuardRedirect
from app.core.permissions import (
    check_onboarding_complete, check_onboarding_pending, check_role, landing_for
)
from app.domain.profiles.models import OnboardingStep, PatientProfile, UserRole
from app.domain.profiles.repository import CareLinkRepository
from app.domain.profiles.service import ProfileService


@pytest.mark.unit
class TestRouteGuards:
    """Test onboarding and role guards on plain profiles."""

    def test_landing_for_onboarded_user(self, patient):
        assert landing_for(patient) == "/dashboard"

    def test_landing_without_step_goes_to_role(self, make_user):
        profile = make_user("nuevo@example.com", onboarded=False)
        assert landing_for(profile) == "/onboarding/role"

    def test_landing_for_each_wizard_step(self, make_user):
        expected = {
            OnboardingStep.BASIC: "/onboarding/basic",
            OnboardingStep.CONTACT: "/onboarding/contact",
            OnboardingStep.DONE: "/onboarding/done",
        }
        for index, (step, route) in enumerate(expected.items()):
            profile = make_user(f"step{index}@example.com", onboarded=False, onboarding_step=step)
            assert landing_for(profile) == route

    def test_details_step_depends_on_role(self, make_user):
        doctor = make_user("doc@example.com", UserRole.DOCTOR, onboarded=False,
                           onboarding_step=OnboardingStep.DETAILS)
        patient = make_user("pat@example.com", UserRole.PATIENT, onboarded=False,
                            onboarding_step=OnboardingStep.DETAILS)

        assert landing_for(doctor) == "/onboarding/doctor"
        assert landing_for(patient) == "/onboarding/patient"

    def test_unfinished_profile_is_redirected(self, make_user):
        profile = make_user("mid@example.com", onboarded=False, onboarding_step=OnboardingStep.CONTACT)

        with pytest.raises(GuardRedirect) as exc_info:
            check_onboarding_complete(profile)
        assert exc_info.value.redirect_to == "/onboarding/contact"

    def test_wrong_role_goes_to_dashboard(self, patient):
        with pytest.raises(GuardRedirect) as exc_info:
            check_role(patient, [UserRole.DOCTOR])
        assert exc_info.value.redirect_to == "/dashboard"

        check_role(patient, [UserRole.PATIENT, "doctor"])

    def test_wizard_closed_after_onboarding(self, patient):
        with pytest.raises(GuardRedirect):
            check_onboarding_pending(patient)


@pytest.mark.integration
@pytest.mark.asyncio
class TestGuardedEndpoints:
    """Test guard responses over HTTP."""

    async def test_unfinished_user_gets_redirect(self, client: AsyncClient, make_user, login):
        profile = make_user("wizard@example.com", onboarded=False, onboarding_step=OnboardingStep.BASIC)
        headers, _ = await login(profile)

        response = await client.get("/api/v1/profiles/doctors", headers=headers)

        assert response.status_code == 403
        assert response.json()["redirect_to"] == "/onboarding/basic"

    async def test_patient_cannot_list_doctor_patients(self, client: AsyncClient, patient_headers):
        response = await client.get("/api/v1/profiles/my-patients", headers=patient_headers)

        assert response.status_code == 403
        assert response.json()["redirect_to"] == "/dashboard"

    async def test_onboarded_user_cannot_reopen_wizard(self, client: AsyncClient, patient_headers):
        response = await client.post(
            "/api/v1/profiles/onboarding/role", headers=patient_headers, json={"role": "doctor"}
        )

        assert response.status_code == 403
        assert response.json()["redirect_to"] == "/dashboard"


@pytest.mark.integration
@pytest.mark.asyncio
class TestOnboardingWizard:
    """Test the onboarding wizard end to end."""

    async def test_doctor_wizard(self, client: AsyncClient, make_user, login):
        profile = make_user("nueva.doctora@example.com", onboarded=False)
        headers, _ = await login(profile)

        response = await client.post("/api/v1/profiles/onboarding/role", headers=headers,
                                     json={"role": "doctor"})
        assert response.status_code == 200
        assert response.json()["onboarding_step"] == "basic"

        response = await client.post("/api/v1/profiles/onboarding/basic", headers=headers,
                                     json={"full_name": "Dra. Elena Soto", "sex": "female"})
        assert response.json()["onboarding_step"] == "contact"

        response = await client.post("/api/v1/profiles/onboarding/contact", headers=headers,
                                     json={"phone": "+52 55 1234 5678"})
        assert response.json()["onboarding_step"] == "details"

        response = await client.post("/api/v1/profiles/onboarding/doctor", headers=headers, json={
            "specialty": "Cardiología",
            "clinic_name": "Clínica Norte",
            "years_experience": 12,
        })
        assert response.status_code == 200
        assert response.json()["specialty"] == "Cardiología"

        landing = await client.get("/api/v1/auth/landing", headers=headers)
        assert landing.json()["redirect_to"] == "/onboarding/done"

        response = await client.post("/api/v1/profiles/onboarding/complete", headers=headers)
        assert response.json()["onboarding_completed"] is True

        landing = await client.get("/api/v1/auth/landing", headers=headers)
        assert landing.json()["redirect_to"] == "/dashboard"

    async def test_admin_role_cannot_be_chosen(self, client: AsyncClient, make_user, login):
        profile = make_user("sneaky@example.com", onboarded=False)
        headers, _ = await login(profile)

        response = await client.post("/api/v1/profiles/onboarding/role", headers=headers,
                                     json={"role": "admin"})

        assert response.status_code == 422

    async def test_patient_cannot_save_doctor_details(self, client: AsyncClient, make_user, login):
        profile = make_user("paciente.nuevo@example.com", onboarded=False,
                            onboarding_step=OnboardingStep.DETAILS)
        headers, _ = await login(profile)

        response = await client.post("/api/v1/profiles/onboarding/doctor", headers=headers,
                                     json={"specialty": "Pediatría"})

        assert response.status_code == 409


@pytest.mark.unit
class TestPatientDetails:
    """Test clinical details storage and access."""

    def test_details_are_encrypted_at_rest(self, db_session, make_user):
        profile = make_user("clinico@example.com", onboarded=False, onboarding_step=OnboardingStep.DETAILS)
        service = ProfileService(db_session)

        details = service.save_patient_details(profile.id, {
            "allergies": "Penicilina",
            "blood_type": "O+",
            "emergency_contact_name": "María López",
        })

        assert details["allergies"] == "Penicilina"
        stored = db_session.query(PatientProfile).filter(PatientProfile.patient_id == profile.id).one()
        assert stored.allergies != "Penicilina"
        assert stored.blood_type != "O+"
        assert stored.emergency_contact_name == "María López"
        assert service.get_patient_details(profile.id)["blood_type"] == "O+"

    def test_view_access(self, db_session, patient, other_patient, doctor):
        service = ProfileService(db_session)

        assert service.can_view_patient(patient.id, patient.id)
        assert not service.can_view_patient(other_patient.id, patient.id)
        assert not service.can_view_patient(doctor.id, patient.id)

        CareLinkRepository(db_session).ensure(doctor.id, patient.id, created_by=doctor.id)
        assert service.can_view_patient(doctor.id, patient.id)
        assert [d.id for d in service.get_patient_doctors(patient.id)] == [doctor.id]

    def test_search_doctors(self, db_session, doctor, patient):
        service = ProfileService(db_session)
        service.doctor_repo.upsert(doctor.id, {"specialty": "Dermatología"})

        assert [d.id for d in service.search_doctors("derma")] == [doctor.id]
        assert [d.id for d in service.search_doctors("marta")] == [doctor.id]
        assert service.search_doctors("   ") == []


@pytest.mark.integration
@pytest.mark.asyncio
class TestProfileEndpoints:
    """Test profile and settings endpoints."""

    async def test_other_patient_details_forbidden(
        self, client: AsyncClient, patient, other_patient, login
    ):
        headers, _ = await login(other_patient)

        response = await client.get(f"/api/v1/profiles/patients/{patient.id}/details", headers=headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "permission-denied"

    async def test_update_profile_ignores_unknown_fields(self, client: AsyncClient, patient_headers):
        response = await client.patch("/api/v1/profiles/me", headers=patient_headers, json={
            "phone": "5512345678",
            "role": "admin",
        })

        assert response.status_code == 200
        assert response.json()["phone"] == "5512345678"
        assert response.json()["role"] == "patient"

    async def test_settings_defaults_and_update(self, client: AsyncClient, patient_headers):
        response = await client.get("/api/v1/profiles/settings", headers=patient_headers)
        assert response.json() == {
            "email_notifications": True,
            "appointment_reminders": True,
            "whatsapp_notifications": False,
        }

        response = await client.patch("/api/v1/profiles/settings", headers=patient_headers,
                                      json={"email_notifications": False})
        assert response.status_code == 200
        assert response.json()["email_notifications"] is False
        assert response.json()["appointment_reminders"] is True

    async def test_avatar_rejects_pdf(self, client: AsyncClient, patient_headers, sample_pdf):
        response = await client.post(
            "/api/v1/profiles/me/avatar",
            headers=patient_headers,
            files={"file": ("avatar.pdf", sample_pdf, "application/pdf")},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "upload-failed"

    async def test_avatar_upload(self, client: AsyncClient, patient_headers, storage):
        response = await client.post(
            "/api/v1/profiles/me/avatar",
            headers=patient_headers,
            files={"file": ("yo.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
        )

        assert response.status_code == 200
        assert response.json()["avatar_url"].startswith("https://files.test/public/")
        assert len(storage.files) == 1
