import os
import itertools
import pytest

# Must be in place before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test_clinic.db"
os.environ["COOKIE_SECURE"] = "false"
os.environ["COOKIE_SAMESITE"] = "lax"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinic.main import app
from clinic.core.database import Base, get_db, redis_client
from clinic.core.security import AuthenticationError, UserRole, get_password_hash
from clinic.models import (
    Appointment, AppointmentStatus, Doctor, Patient, PaymentStatus, Staff, User,
)
from clinic.models.staff import Department
from clinic.services.email_service import EmailService, get_email_service
from clinic.services.oauth_service import GoogleIdentity, get_google_verifier
from clinic.services.payment_service import PaymentError, PaymentIntent, get_payment_service

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_clinic.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "Secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


class RecordingEmailService(EmailService):
    """Collects outgoing mail instead of talking to SMTP."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def send_email(self, to_email, subject, html):
        self.sent.append({"to": to_email, "subject": subject, "html": html})


class FakePaymentService:
    def __init__(self):
        self.amounts = []
        self.fail = False
        self._ids = itertools.count(1)

    async def create_payment_intent(self, amount):
        if self.fail:
            raise PaymentError("provider down")
        self.amounts.append(amount)
        intent_id = f"pi_test_{next(self._ids)}"
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret", amount=amount, currency="usd")


class FakeGoogleVerifier:
    def __init__(self):
        self.identities = {}

    async def verify(self, id_token):
        identity = self.identities.get(id_token)
        if identity is None:
            raise AuthenticationError("Invalid Google token")
        return identity

    def register(self, token, email, name="Google User"):
        self.identities[token] = GoogleIdentity(sub=f"google-{token}", email=email, name=name)


@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    redis_client.flushall()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def mailer():
    return RecordingEmailService()

@pytest.fixture
def payments():
    return FakePaymentService()

@pytest.fixture
def google():
    return FakeGoogleVerifier()

@pytest.fixture
def client(test_db, mailer, payments, google):
    app.dependency_overrides[get_email_service] = lambda: mailer
    app.dependency_overrides[get_payment_service] = lambda: payments
    app.dependency_overrides[get_google_verifier] = lambda: google
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    for dependency in (get_email_service, get_payment_service, get_google_verifier):
        app.dependency_overrides.pop(dependency, None)


@pytest.fixture
def make_user(db):
    """Insert a user with its role profile straight into the database."""
    counter = itertools.count(1)

    def _make_user(role=UserRole.PATIENT, name=None, email=None, **profile):
        n = next(counter)
        role = UserRole(role)
        user = User(
            name=name or f"{role.value.title()} {n}",
            email=email or f"{role.value}{n}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            is_banned=profile.pop("is_banned", False),
            profile_complete=True,
        )
        if role == UserRole.DOCTOR:
            user.doctor = Doctor(
                specialty=profile.get("specialty", "Cardiology"),
                qualifications=profile.get("qualifications", ["MBBS"]),
                experience=profile.get("experience", 5),
                consultation_fee=profile.get("consultation_fee", 50.0),
            )
        elif role == UserRole.PATIENT:
            user.patient = Patient(gender=profile.get("gender"))
        elif role == UserRole.STAFF:
            user.staff = Staff(
                department=profile.get("department", Department.RECEPTION),
                position=profile.get("position", "Receptionist"),
                employee_id=profile.get("employee_id", f"EMP-{n:04d}"),
            )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user

@pytest.fixture
def make_appointment(db):
    def _make_appointment(patient, doctor, date_time, status=AppointmentStatus.PENDING, issues="Headache"):
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            date_time=date_time,
            issues=issues,
            status=status,
            payment_status=PaymentStatus.PENDING,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make_appointment
