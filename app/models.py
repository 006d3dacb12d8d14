import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from .database import Base

USER_TYPES = ("admin", "doctor", "atendente")
APPOINTMENT_STATUSES = ("agendado", "confirmado", "cancelado", "concluido")
PAYMENT_STATUSES = ("pendente", "pago", "parcial")
PAYMENT_METHODS = (
    "dinheiro",
    "cartao_credito",
    "cartao_debito",
    "pix",
    "cheque",
    "transferencia_eletronica",
)
PATIENT_SEXES = ("male", "female")


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    logo_url = Column(String(500), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(60), nullable=True)
    zip_code = Column(String(20), nullable=True)
    cnpj = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    website = Column(String(500), nullable=True)
    business_hours = Column(Text, nullable=True)  # JSON string with opening hours
    appointment_duration_minutes = Column(Integer, default=30, nullable=False)
    allow_online_booking = Column(Boolean, default=True, nullable=False)
    require_email_confirmation = Column(Boolean, default=True, nullable=False)
    auto_confirm_appointments = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    members = relationship("UserClinic", back_populates="clinic", cascade="all, delete-orphan")
    doctors = relationship("Doctor", back_populates="clinic", cascade="all, delete-orphan")
    patients = relationship("Patient", back_populates="clinic", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="clinic", cascade="all, delete-orphan")
    health_insurance_plans = relationship(
        "HealthInsurancePlan", back_populates="clinic", cascade="all, delete-orphan"
    )
    security_configuration = relationship(
        "SecurityConfiguration", back_populates="clinic", uselist=False, cascade="all, delete-orphan"
    )


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    image = Column(String(500), nullable=True)
    user_type = Column(String(20), default="admin", nullable=False)  # admin, doctor, atendente
    password_hash = Column(String(255), nullable=False)
    must_change_password = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinics = relationship("UserClinic", back_populates="user", cascade="all, delete-orphan")
    doctor = relationship("Doctor", back_populates="user", uselist=False)

    @property
    def clinic(self):
        """First clinic the user belongs to (a user works for a single clinic)"""
        return self.clinics[0].clinic if self.clinics else None


class UserClinic(Base):
    __tablename__ = "users_to_clinics"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="clinics")
    clinic = relationship("Clinic", back_populates="members")


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    avatar_image_url = Column(String(500), nullable=True)
    # Legacy weekday range (0 = Sunday ... 6 = Saturday), times stored in UTC
    available_from_week_day = Column(Integer, default=1, nullable=False)
    available_to_week_day = Column(Integer, default=5, nullable=False)
    available_from_time = Column(String(8), default="08:00:00", nullable=False)
    available_to_time = Column(String(8), default="18:00:00", nullable=False)
    # Per-day hours as JSON {"monday": {"isOpen": true, "start": "11:00", "end": "21:00"}, ...} (UTC)
    business_hours = Column(Text, nullable=True)
    specialty = Column(String(120), nullable=False)
    appointment_price_in_cents = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="doctors")
    user = relationship("User", back_populates="doctor")
    appointments = relationship("Appointment", back_populates="doctor", cascade="all, delete-orphan")


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    avatar_image_url = Column(String(500), nullable=True)
    phone_number = Column(String(20), nullable=False)
    sex = Column(String(10), nullable=False)  # male, female
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="patients")
    appointments = relationship("Appointment", back_populates="patient", cascade="all, delete-orphan")
    medical_records = relationship("MedicalRecord", back_populates="patient", cascade="all, delete-orphan")


class HealthInsurancePlan(Base):
    __tablename__ = "health_insurance_plans"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    reimbursement_value_in_cents = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="health_insurance_plans")
    appointments = relationship("Appointment", back_populates="health_insurance_plan")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live appointment per doctor and slot; cancelled rows free the slot
        Index(
            "uq_appointments_doctor_date",
            "doctor_id",
            "date",
            unique=True,
            sqlite_where=text("status != 'cancelado'"),
            postgresql_where=text("status != 'cancelado'"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    date = Column(DateTime, nullable=False, index=True)  # naive UTC
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    health_insurance_plan_id = Column(
        String(36), ForeignKey("health_insurance_plans.id", ondelete="SET NULL"), nullable=True
    )
    appointment_price_in_cents = Column(Integer, nullable=False)
    status = Column(String(20), default="agendado", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    health_insurance_plan = relationship("HealthInsurancePlan", back_populates="appointments")
    payment = relationship(
        "AppointmentPayment", back_populates="appointment", uselist=False, cascade="all, delete-orphan"
    )


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    appointment_id = Column(String(36), ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True)
    symptoms = Column(Text, nullable=False)
    diagnosis = Column(Text, nullable=False)
    treatment = Column(Text, nullable=False)
    medication = Column(Text, nullable=False)
    medical_certificate = Column(Boolean, default=False, nullable=False)
    certificate_days = Column(Integer, nullable=True)
    observations = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="medical_records")
    doctor = relationship("Doctor")
    appointment = relationship("Appointment")


class AppointmentPayment(Base):
    __tablename__ = "appointment_payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, index=True)
    total_amount_in_cents = Column(Integer, nullable=False)
    paid_amount_in_cents = Column(Integer, default=0, nullable=False)
    remaining_amount_in_cents = Column(Integer, default=0, nullable=False)
    change_in_cents = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="pendente", nullable=False)  # pendente, pago, parcial
    notes = Column(Text, nullable=True)
    processed_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    # Naive UTC so range filters compare consistently across backends
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    appointment = relationship("Appointment", back_populates="payment")
    transactions = relationship(
        "PaymentTransaction",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentTransaction.created_at",
    )


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    payment_id = Column(
        String(36), ForeignKey("appointment_payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    payment_method = Column(String(40), nullable=False)
    amount_in_cents = Column(Integer, nullable=False)
    transaction_reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    payment = relationship("AppointmentPayment", back_populates="transactions")


class SecurityLog(Base):
    __tablename__ = "security_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)
    clinic_id = Column(String(36), nullable=True, index=True)
    action = Column(String(255), nullable=False)
    type = Column(String(40), nullable=False)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    success = Column(Boolean, default=True, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class SecurityConfiguration(Base):
    __tablename__ = "security_configurations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id", ondelete="CASCADE"), unique=True, nullable=False)
    enable_login_logging = Column(Boolean, default=True, nullable=False)
    enable_data_access_logging = Column(Boolean, default=True, nullable=False)
    enable_configuration_logging = Column(Boolean, default=True, nullable=False)
    log_retention_days = Column(Integer, default=90, nullable=False)
    session_timeout_minutes = Column(Integer, default=480, nullable=False)
    max_concurrent_sessions = Column(Integer, default=3, nullable=False)
    require_password_change = Column(Boolean, default=False, nullable=False)
    password_change_interval_days = Column(Integer, default=90, nullable=False)
    notify_failed_logins = Column(Boolean, default=True, nullable=False)
    notify_new_logins = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="security_configuration")
