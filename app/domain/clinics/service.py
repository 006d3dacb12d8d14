"""Clinic service - clinic profile, booking preferences and row counts"""

import json
import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import Appointment, Clinic, Doctor, MedicalRecord, Patient, SecurityLog, User
from ...security_utils import sanitize_text
from ..scheduling.availability import load_business_hours
from ..security.audit import log_configuration_change
from .schemas import ClinicResponse, ClinicUpdate

logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    "phone": "phone",
    "address": "address",
    "city": "city",
    "state": "state",
    "zipCode": "zip_code",
    "cnpj": "cnpj",
    "description": "description",
}


def build_clinic_response(clinic: Clinic) -> ClinicResponse:
    return ClinicResponse(
        id=clinic.id,
        name=clinic.name,
        logoUrl=clinic.logo_url,
        email=clinic.email,
        phone=clinic.phone,
        address=clinic.address,
        city=clinic.city,
        state=clinic.state,
        zipCode=clinic.zip_code,
        cnpj=clinic.cnpj,
        description=clinic.description,
        website=clinic.website,
        businessHours=load_business_hours(clinic.business_hours) or None,
        appointmentDurationMinutes=clinic.appointment_duration_minutes,
        allowOnlineBooking=clinic.allow_online_booking,
        requireEmailConfirmation=clinic.require_email_confirmation,
        autoConfirmAppointments=clinic.auto_confirm_appointments,
        created_at=clinic.created_at,
        updated_at=clinic.updated_at,
    )


class ClinicService:
    def __init__(self, db: Session):
        self.db = db

    def get_clinic(self, user: User) -> Clinic:
        clinic = self.db.query(Clinic).filter(Clinic.id == user.clinic.id).first()
        if not clinic:
            raise HTTPException(status_code=404, detail="Clínica não encontrada no banco de dados")
        return clinic

    def update_clinic(self, data: ClinicUpdate, user: User, request: Optional[Request] = None) -> Clinic:
        clinic = self.get_clinic(user)
        logger.info(f"📝 Updating clinic {clinic.id}: {data.name}")

        updates = {
            "name": sanitize_text(data.name),
            "logo_url": data.logoUrl,
            "email": str(data.email).lower() if data.email else None,
            "website": data.website,
            "business_hours": json.dumps(data.businessHours.as_dict()) if data.businessHours else None,
            "appointment_duration_minutes": data.appointmentDurationMinutes,
            "allow_online_booking": data.allowOnlineBooking,
            "require_email_confirmation": data.requireEmailConfirmation,
            "auto_confirm_appointments": data.autoConfirmAppointments,
        }
        for field, column in TEXT_FIELDS.items():
            value = getattr(data, field)
            updates[column] = sanitize_text(value) if value else None

        changes = {}
        for column, value in updates.items():
            if getattr(clinic, column) != value:
                changes[column] = {"before": getattr(clinic, column), "after": value}
                setattr(clinic, column, value)

        self.db.commit()
        self.db.refresh(clinic)

        log_configuration_change(self.db, user.id, clinic.id, "clinic", changes, request=request)
        logger.info(f"✅ Clinic {clinic.id} updated ({len(changes)} fields changed)")
        return clinic

    def get_stats(self, user: User) -> dict:
        """Row counts of the clinic's data"""
        clinic_id = user.clinic.id
        logger.info(f"📊 Counting records for clinic {clinic_id}")
        stats = {
            "doctors": self.db.query(Doctor).filter(Doctor.clinic_id == clinic_id).count(),
            "patients": self.db.query(Patient).filter(Patient.clinic_id == clinic_id).count(),
            "appointments": self.db.query(Appointment).filter(Appointment.clinic_id == clinic_id).count(),
            "medicalRecords": self.db.query(MedicalRecord).filter(MedicalRecord.clinic_id == clinic_id).count(),
            "securityLogs": self.db.query(SecurityLog).filter(SecurityLog.clinic_id == clinic_id).count(),
        }
        stats["totalRecords"] = sum(stats.values())
        return stats
