"""
Shared fixtures: in-memory SQLite database, API client and a seeded clinic.

The seeded doctor works Monday to Friday, 08:00-18:00 clinic time
(stored as 11:00-21:00 UTC). 2030-01-07 is a Monday.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.pop("RESEND_API_KEY", None)
os.environ.pop("N8N_WEBHOOK_URL", None)
os.environ.pop("CRON_API_KEY", None)

from datetime import date, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Appointment,
    Clinic,
    Doctor,
    HealthInsurancePlan,
    Patient,
    User,
    UserClinic,
)
from app.security_utils import create_jwt_token, hash_password  # noqa: E402

MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)
TEST_PASSWORD = "senha-segura-123"


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def create_user(db, clinic, name, email, user_type="admin", password=TEST_PASSWORD, must_change_password=False):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        user_type=user_type,
        must_change_password=must_change_password,
    )
    db.add(user)
    db.flush()
    if clinic is not None:
        db.add(UserClinic(user_id=user.id, clinic_id=clinic.id))
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_jwt_token({'sub': user.id})}"}


def create_appointment(db, clinic, patient, doctor, when_utc, status="agendado", plan=None, price=None):
    appointment = Appointment(
        clinic_id=clinic.id,
        patient_id=patient.id,
        doctor_id=doctor.id,
        health_insurance_plan_id=plan.id if plan else None,
        appointment_price_in_cents=price or doctor.appointment_price_in_cents,
        date=when_utc,
        status=status,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


@pytest.fixture
def clinic(db_session):
    clinic = Clinic(name="Clínica Saúde Total", address="Rua das Flores, 100")
    db_session.add(clinic)
    db_session.commit()
    db_session.refresh(clinic)
    return clinic


@pytest.fixture
def other_clinic(db_session):
    clinic = Clinic(name="Outra Clínica")
    db_session.add(clinic)
    db_session.commit()
    db_session.refresh(clinic)
    return clinic


@pytest.fixture
def admin(db_session, clinic):
    return create_user(db_session, clinic, "Ana Admin", "admin@clinica.com.br")


@pytest.fixture
def attendant(db_session, clinic):
    return create_user(db_session, clinic, "Bruno Atendente", "atendente@clinica.com.br", user_type="atendente")


@pytest.fixture
def doctor(db_session, clinic):
    doctor_user = create_user(
        db_session, clinic, "Carlos Mendes", "carlos@clinica.com.br", user_type="doctor"
    )
    doctor = Doctor(
        clinic_id=clinic.id,
        user_id=doctor_user.id,
        name="Carlos Mendes",
        email="carlos@clinica.com.br",
        specialty="Cardiologia",
        appointment_price_in_cents=20000,
        available_from_week_day=1,
        available_to_week_day=5,
        available_from_time="11:00:00",
        available_to_time="21:00:00",
    )
    db_session.add(doctor)
    db_session.commit()
    db_session.refresh(doctor)
    return doctor


@pytest.fixture
def patient(db_session, clinic):
    patient = Patient(
        clinic_id=clinic.id,
        name="Maria Souza",
        email="maria@example.com",
        phone_number="11987654321",
        sex="female",
    )
    db_session.add(patient)
    db_session.commit()
    db_session.refresh(patient)
    return patient


@pytest.fixture
def plan(db_session, clinic):
    plan = HealthInsurancePlan(clinic_id=clinic.id, name="Unimed", reimbursement_value_in_cents=8000)
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


@pytest.fixture
def appointment(db_session, clinic, patient, doctor):
    # Monday 09:00 clinic time
    return create_appointment(db_session, clinic, patient, doctor, datetime(2030, 1, 7, 12, 0))
