import httpx
import pytest

from clinic.core.security import UserRole
from clinic.main import app
from clinic.models import Appointment, AppointmentStatus, PaymentStatus
from clinic.services.payment_service import PaymentService, get_payment_service

from .helpers import auth_headers, days_from_now


@pytest.fixture
def patient(make_user):
    return make_user(UserRole.PATIENT, name="Pat Patient")

@pytest.fixture
def doctor(make_user):
    return make_user(UserRole.DOCTOR, name="Dana Doctor", consultation_fee=50.0)

@pytest.fixture
def staff(make_user):
    return make_user(UserRole.STAFF)


class TestBooking:

    def test_book_appointment(self, client, patient, doctor, payments, mailer):
        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": doctor.id, "date_time": days_from_now(3).isoformat(), "issues": "Chest pain"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 201

        data = response.json()
        appointment = data["appointment"]
        assert appointment["status"] == "Pending"
        assert appointment["payment_status"] == "Pending"
        assert appointment["doctor_name"] == "Dana Doctor"
        assert appointment["doctor_specialty"] == "Cardiology"
        assert appointment["payment_intent_id"] == "pi_test_1"
        assert data["client_secret"] == "pi_test_1_secret"

        # Fee is charged in minor units
        assert payments.amounts == [5000]
        assert [mail["to"] for mail in mailer.sent] == [patient.email]

    def test_book_unknown_doctor(self, client, patient, payments, db):
        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": 9999, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(patient),
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Doctor not found"
        assert db.query(Appointment).count() == 0
        assert payments.amounts == []

    def test_book_with_non_doctor_id(self, client, patient, make_user):
        other_patient = make_user(UserRole.PATIENT)

        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": other_patient.id, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(patient),
        )
        assert response.status_code == 404

    def test_payment_failure_still_books(self, client, patient, doctor, payments):
        payments.fail = True

        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": doctor.id, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(patient),
        )
        assert response.status_code == 201
        assert response.json()["client_secret"] is None
        assert response.json()["appointment"]["payment_intent_id"] is None

    def test_unreadable_provider_reply_still_books(self, client, patient, doctor, db, monkeypatch):
        async def gateway_page(self, url, **kwargs):
            return httpx.Response(200, text="<html>gateway</html>", request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx.AsyncClient, "post", gateway_page)
        app.dependency_overrides[get_payment_service] = lambda: PaymentService(
            "sk_test", api_base="https://payments.test/v1"
        )

        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": doctor.id, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(patient),
        )
        assert response.status_code == 201
        assert response.json()["client_secret"] is None
        assert response.json()["appointment"]["payment_intent_id"] is None
        assert db.query(Appointment).count() == 1

    def test_free_consultation_skips_payment(self, client, patient, make_user, payments):
        free_doctor = make_user(UserRole.DOCTOR, consultation_fee=0)

        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": free_doctor.id, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(patient),
        )
        assert response.status_code == 201
        assert response.json()["client_secret"] is None
        assert payments.amounts == []

    def test_only_patients_can_book(self, client, doctor):
        response = client.post(
            "/api/v1/patient/appointments",
            json={"doctor_id": doctor.id, "date_time": days_from_now(3).isoformat()},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 403


class TestPaymentConfirmation:

    def test_confirm_payment(self, client, patient, doctor, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(2))

        response = client.patch(
            f"/api/v1/patient/appointments/{appointment.id}/payment",
            json={"payment_intent_id": "pi_123", "status": "succeeded"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["payment_status"] == "Paid"
        assert data["status"] == "Pending"
        assert data["payment_intent_id"] == "pi_123"

    def test_confirm_payment_of_other_patient(self, client, patient, doctor, make_user, make_appointment, db):
        appointment = make_appointment(patient, doctor, days_from_now(2))
        intruder = make_user(UserRole.PATIENT)

        response = client.patch(
            f"/api/v1/patient/appointments/{appointment.id}/payment",
            json={"payment_intent_id": "pi_123"},
            headers=auth_headers(intruder),
        )
        assert response.status_code == 403

        db.refresh(appointment)
        assert appointment.payment_status == PaymentStatus.PENDING
        assert appointment.payment_intent_id is None

    def test_confirm_payment_not_succeeded(self, client, patient, doctor, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(2))

        response = client.patch(
            f"/api/v1/patient/appointments/{appointment.id}/payment",
            json={"payment_intent_id": "pi_123", "status": "requires_payment_method"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 400

    def test_confirm_payment_missing_appointment(self, client, patient):
        response = client.patch(
            "/api/v1/patient/appointments/4242/payment",
            json={"payment_intent_id": "pi_123"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 404


class TestListing:

    def test_upcoming_and_past(self, client, patient, doctor, make_appointment):
        upcoming = make_appointment(patient, doctor, days_from_now(5))
        make_appointment(patient, doctor, days_from_now(6), status=AppointmentStatus.CANCELLED)
        past = make_appointment(patient, doctor, days_from_now(-5), status=AppointmentStatus.COMPLETED)

        headers = auth_headers(patient)
        response = client.get("/api/v1/patient/appointments?status=upcoming", headers=headers)
        assert [item["id"] for item in response.json()["items"]] == [upcoming.id]

        response = client.get("/api/v1/patient/appointments?status=past", headers=headers)
        assert [item["id"] for item in response.json()["items"]] == [past.id]

        response = client.get("/api/v1/patient/appointments", headers=headers)
        assert response.json()["total"] == 3

    def test_patient_only_sees_own(self, client, patient, doctor, make_user, make_appointment):
        make_appointment(make_user(UserRole.PATIENT), doctor, days_from_now(5))

        response = client.get("/api/v1/patient/appointments", headers=auth_headers(patient))
        assert response.json()["items"] == []
        assert response.json()["total"] == 0

    def test_pagination_envelope(self, client, patient, doctor, make_appointment):
        for day in range(1, 26):
            make_appointment(patient, doctor, days_from_now(day))

        headers = auth_headers(patient)
        response = client.get("/api/v1/patient/appointments?page=1&limit=10", headers=headers)
        data = response.json()
        assert len(data["items"]) == 10
        assert data["currentPage"] == 1
        assert data["totalPages"] == 3
        assert data["total"] == 25

        response = client.get("/api/v1/patient/appointments?page=3&limit=10", headers=headers)
        assert len(response.json()["items"]) == 5

        response = client.get("/api/v1/patient/appointments?page=4&limit=10", headers=headers)
        assert response.json()["items"] == []
        assert response.json()["total"] == 25

    @pytest.mark.parametrize("query", ["page=0", "limit=0", "limit=101"])
    def test_pagination_bounds(self, client, patient, query):
        response = client.get(f"/api/v1/patient/appointments?{query}", headers=auth_headers(patient))
        assert response.status_code == 422

    def test_staff_filters_by_exact_status(self, client, staff, patient, doctor, make_appointment):
        scheduled = make_appointment(patient, doctor, days_from_now(1), status=AppointmentStatus.SCHEDULED)
        make_appointment(patient, doctor, days_from_now(2))

        response = client.get("/api/v1/staff/appointments?status=Scheduled", headers=auth_headers(staff))
        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [scheduled.id]

    def test_staff_unknown_status(self, client, staff):
        response = client.get("/api/v1/staff/appointments?status=Lost", headers=auth_headers(staff))
        assert response.status_code == 400


class TestScheduling:

    def test_staff_schedules_slot(self, client, staff, patient, doctor, make_appointment, mailer):
        booked = days_from_now(4)
        appointment = make_appointment(patient, doctor, booked)

        response = client.patch(
            f"/api/v1/staff/appointments/{appointment.id}/schedule",
            json={"slot": "2:30 PM"},
            headers=auth_headers(staff),
        )
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "Scheduled"
        assert data["date_time"] == booked.replace(hour=14, minute=30).isoformat()
        assert mailer.sent[-1]["to"] == patient.email

    def test_schedule_invalid_slot(self, client, staff, patient, doctor, make_appointment, db):
        appointment = make_appointment(patient, doctor, days_from_now(4))

        response = client.patch(
            f"/api/v1/staff/appointments/{appointment.id}/schedule",
            json={"slot": "25:00"},
            headers=auth_headers(staff),
        )
        assert response.status_code == 400

        db.refresh(appointment)
        assert appointment.status == AppointmentStatus.PENDING

    def test_schedule_missing_appointment(self, client, staff):
        response = client.patch(
            "/api/v1/staff/appointments/777/schedule",
            json={"slot": "9:00 AM"},
            headers=auth_headers(staff),
        )
        assert response.status_code == 404


class TestStatusUpdates:

    def test_doctor_updates_own_appointment(self, client, patient, doctor, make_appointment, mailer):
        appointment = make_appointment(patient, doctor, days_from_now(1))

        response = client.patch(
            f"/api/v1/doctor/appointments/{appointment.id}",
            json={"status": "Completed"},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Completed"
        assert mailer.sent[-1]["to"] == patient.email
        assert "Completed" in mailer.sent[-1]["html"]

    def test_doctor_cannot_touch_other_doctors_appointment(self, client, patient, doctor, make_user, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(1))
        other_doctor = make_user(UserRole.DOCTOR)

        response = client.patch(
            f"/api/v1/doctor/appointments/{appointment.id}",
            json={"status": "Cancelled"},
            headers=auth_headers(other_doctor),
        )
        assert response.status_code == 404

    def test_unknown_status_value(self, client, patient, doctor, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(1))

        response = client.patch(
            f"/api/v1/doctor/appointments/{appointment.id}",
            json={"status": "Teleported"},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 422

    def test_staff_updates_any_appointment(self, client, staff, patient, doctor, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(1))

        response = client.patch(
            f"/api/v1/staff/appointments/{appointment.id}",
            json={"status": "Rescheduled"},
            headers=auth_headers(staff),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Rescheduled"

    def test_status_update_records_notes(self, client, staff, patient, doctor, make_appointment, db):
        appointment = make_appointment(patient, doctor, days_from_now(1))

        response = client.patch(
            f"/api/v1/doctor/appointments/{appointment.id}",
            json={"status": "Completed", "notes": "Follow up in two weeks"},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 200
        assert response.json()["notes"] == "Follow up in two weeks"

        # Leaving notes out keeps what the doctor wrote
        response = client.patch(
            f"/api/v1/staff/appointments/{appointment.id}",
            json={"status": "Rescheduled"},
            headers=auth_headers(staff),
        )
        assert response.json()["notes"] == "Follow up in two weeks"

        response = client.patch(
            f"/api/v1/staff/appointments/{appointment.id}",
            json={"status": "Scheduled", "notes": "Moved by reception"},
            headers=auth_headers(staff),
        )
        assert response.json()["notes"] == "Moved by reception"

        db.refresh(appointment)
        assert appointment.notes == "Moved by reception"

    def test_notes_too_long(self, client, patient, doctor, make_appointment):
        appointment = make_appointment(patient, doctor, days_from_now(1))

        response = client.patch(
            f"/api/v1/doctor/appointments/{appointment.id}",
            json={"status": "Completed", "notes": "x" * 2001},
            headers=auth_headers(doctor),
        )
        assert response.status_code == 422

    def test_doctor_lists_own_appointments(self, client, patient, doctor, make_user, make_appointment):
        mine = make_appointment(patient, doctor, days_from_now(1))
        make_appointment(patient, make_user(UserRole.DOCTOR), days_from_now(1))

        response = client.get("/api/v1/doctor/appointments", headers=auth_headers(doctor))
        assert [item["id"] for item in response.json()["items"]] == [mine.id]
