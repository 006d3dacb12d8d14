"""Appointment repository - Database operations for appointments"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Doctor, HealthInsurancePlan, Patient
from ...utils.timezone import extract_time_slot, local_day_bounds_utc


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def _with_relations(query):
        return query.options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor),
            joinedload(Appointment.clinic),
            joinedload(Appointment.payment),
        )

    @staticmethod
    def get_appointments(
        db: Session,
        clinic_id: str,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        """Get clinic appointments, newest first"""
        query = AppointmentRepository._with_relations(db.query(Appointment)).filter(
            Appointment.clinic_id == clinic_id
        )
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.date.desc()).all()

    @staticmethod
    def get_appointment(db: Session, appointment_id: str, clinic_id: str) -> Optional[Appointment]:
        """Get an appointment scoped to a clinic"""
        return (
            AppointmentRepository._with_relations(db.query(Appointment))
            .filter(Appointment.id == appointment_id, Appointment.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def get_appointment_public(db: Session, appointment_id: str) -> Optional[Appointment]:
        """Get an appointment by ID alone (links sent to patients)"""
        return (
            AppointmentRepository._with_relations(db.query(Appointment))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_booked_slots(db: Session, clinic_id: str, doctor_id: str, day: date) -> list[str]:
        """Local "HH:MM:SS" slots taken by non-cancelled appointments on a local day"""
        start, end = local_day_bounds_utc(day)
        appointments = (
            db.query(Appointment)
            .filter(
                Appointment.clinic_id == clinic_id,
                Appointment.doctor_id == doctor_id,
                Appointment.date >= start,
                Appointment.date < end,
                Appointment.status != "cancelado",
            )
            .order_by(Appointment.date)
            .all()
        )
        return [extract_time_slot(a.date) for a in appointments]

    @staticmethod
    def get_appointments_between(
        db: Session, start: datetime, end: datetime, statuses: tuple[str, ...]
    ) -> list[Appointment]:
        """All clinics' appointments in a UTC range with one of the given statuses"""
        return (
            AppointmentRepository._with_relations(db.query(Appointment))
            .filter(Appointment.date >= start, Appointment.date < end, Appointment.status.in_(statuses))
            .order_by(Appointment.date)
            .all()
        )

    @staticmethod
    def get_patient(db: Session, patient_id: str, clinic_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id, Patient.clinic_id == clinic_id).first()

    @staticmethod
    def get_doctor(db: Session, doctor_id: str, clinic_id: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id, Doctor.clinic_id == clinic_id).first()

    @staticmethod
    def get_insurance_plan(db: Session, plan_id: str, clinic_id: str) -> Optional[HealthInsurancePlan]:
        return (
            db.query(HealthInsurancePlan)
            .filter(HealthInsurancePlan.id == plan_id, HealthInsurancePlan.clinic_id == clinic_id)
            .first()
        )

    @staticmethod
    def create_appointment(db: Session, clinic_id: str, **appointment_data) -> Appointment:
        """Create a new appointment"""
        appointment = Appointment(clinic_id=clinic_id, **appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Update an appointment with provided fields"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        """Delete an appointment"""
        db.delete(appointment)
        db.commit()
