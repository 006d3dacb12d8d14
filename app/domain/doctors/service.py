"""Doctor service - Business logic for doctor operations"""

import json
import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...config import DEFAULT_DOCTOR_PASSWORD
from ...models import Appointment, Doctor, User
from ...security_utils import hash_password, sanitize_text
from ...utils.timezone import (
    convert_business_hours_from_utc,
    convert_business_hours_to_utc,
    local_time_to_utc,
    utc_time_to_local,
)
from ..scheduling.availability import load_business_hours, schedule_summary
from ..scheduling.repository import AppointmentRepository
from ..security.audit import log_data_operation
from .repository import DoctorRepository
from .schemas import DoctorResponse, DoctorUpsert

logger = logging.getLogger(__name__)

LEGACY_DEFAULTS = {
    "available_from_week_day": 1,
    "available_to_week_day": 5,
    "available_from_time": "08:00:00",
    "available_to_time": "18:00:00",
}


def build_doctor_response(doctor: Doctor) -> DoctorResponse:
    stored_hours = load_business_hours(doctor.business_hours)
    return DoctorResponse(
        id=doctor.id,
        name=doctor.name,
        email=doctor.email,
        avatarImageUrl=doctor.avatar_image_url,
        specialty=doctor.specialty,
        appointmentPriceInCents=doctor.appointment_price_in_cents,
        userId=doctor.user_id,
        availableFromWeekDay=doctor.available_from_week_day,
        availableToWeekDay=doctor.available_to_week_day,
        availableFromTime=utc_time_to_local(doctor.available_from_time),
        availableToTime=utc_time_to_local(doctor.available_to_time),
        businessHours=convert_business_hours_from_utc(stored_hours) if stored_hours else None,
        schedule=schedule_summary(doctor),
        created_at=doctor.created_at,
    )


def _legacy_time_to_utc(value: str) -> str:
    return f"{local_time_to_utc(value)}:00"


def schedule_fields(data: DoctorUpsert) -> dict:
    """Translate submitted hours (local time) into stored columns (UTC)"""
    if data.businessHours is not None:
        hours_utc = convert_business_hours_to_utc(data.businessHours.as_dict())
        return {**LEGACY_DEFAULTS, "business_hours": json.dumps(hours_utc)}

    if data.availableFromTime and data.availableToTime:
        return {
            "business_hours": None,
            "available_from_week_day": data.availableFromWeekDay
            if data.availableFromWeekDay is not None
            else 1,
            "available_to_week_day": data.availableToWeekDay if data.availableToWeekDay is not None else 5,
            "available_from_time": _legacy_time_to_utc(data.availableFromTime),
            "available_to_time": _legacy_time_to_utc(data.availableToTime),
        }

    return {}


class DoctorService:
    """Service layer for doctor business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def get_doctors(self, user: User) -> list[Doctor]:
        return self.repo.get_doctors(self.db, user.clinic.id)

    def get_doctor(self, doctor_id: str, user: User) -> Doctor:
        doctor = self.repo.get_doctor_by_id(self.db, doctor_id, user.clinic.id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Médico não encontrado")
        return doctor

    def get_current_doctor(self, user: User) -> Doctor:
        doctor = self.repo.get_doctor_by_user(self.db, user.id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Médico não encontrado para este usuário")
        return doctor

    def get_doctor_appointments(self, doctor_id: str, user: User) -> list[Appointment]:
        doctor = self.get_doctor(doctor_id, user)
        return AppointmentRepository.get_appointments(self.db, user.clinic.id, doctor_id=doctor.id)

    def create_doctor(self, data: DoctorUpsert, user: User, request: Optional[Request] = None) -> Doctor:
        """Create a doctor and the login the doctor will use"""
        email = data.email.lower()
        logger.info(f"🏥 Creating doctor {data.name} ({email}) for clinic {user.clinic.id}")

        if self.repo.get_user_by_email(self.db, email):
            log_data_operation(
                self.db, user.id, user.clinic.id, "create", "doctor",
                success=False, details={"email": email, "error": "email_in_use"}, request=request,
            )
            raise HTTPException(status_code=409, detail="Já existe um usuário com este email")

        try:
            doctor_user = self.repo.create_doctor_user(
                self.db, user.clinic.id, sanitize_text(data.name), email, hash_password(DEFAULT_DOCTOR_PASSWORD)
            )
            doctor = self.repo.create_doctor(
                self.db,
                user.clinic.id,
                user_id=doctor_user.id,
                name=sanitize_text(data.name),
                email=email,
                avatar_image_url=data.avatarImageUrl or None,
                specialty=sanitize_text(data.specialty),
                appointment_price_in_cents=data.appointmentPriceInCents,
                **{**LEGACY_DEFAULTS, **schedule_fields(data)},
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create doctor {email}: {e}")
            log_data_operation(
                self.db, user.id, user.clinic.id, "create", "doctor",
                success=False, details={"email": email, "error": str(e)}, request=request,
            )
            raise HTTPException(status_code=500, detail="Falha ao criar médico") from e

        log_data_operation(self.db, user.id, user.clinic.id, "create", "doctor", doctor.id, request=request)
        logger.info(f"✅ Doctor {doctor.id} created with user {doctor_user.id} (password change required)")
        return doctor

    def update_doctor(
        self, doctor_id: str, data: DoctorUpsert, user: User, request: Optional[Request] = None
    ) -> Doctor:
        doctor = self.get_doctor(doctor_id, user)
        email = data.email.lower()

        existing = self.repo.get_user_by_email(self.db, email)
        if existing and existing.id != doctor.user_id:
            raise HTTPException(status_code=409, detail="Já existe um usuário com este email")

        if doctor.user:
            doctor.user.name = sanitize_text(data.name)
            doctor.user.email = email
            doctor.user.user_type = "doctor"
        else:
            doctor_user = self.repo.create_doctor_user(
                self.db, user.clinic.id, sanitize_text(data.name), email, hash_password(DEFAULT_DOCTOR_PASSWORD)
            )
            doctor.user_id = doctor_user.id

        doctor = self.repo.update_doctor(
            self.db,
            doctor,
            name=sanitize_text(data.name),
            email=email,
            avatar_image_url=data.avatarImageUrl or None,
            specialty=sanitize_text(data.specialty),
            appointment_price_in_cents=data.appointmentPriceInCents,
            **schedule_fields(data),
        )
        log_data_operation(self.db, user.id, user.clinic.id, "update", "doctor", doctor.id, request=request)
        return doctor

    def delete_doctor(self, doctor_id: str, user: User, request: Optional[Request] = None) -> dict:
        """Delete a doctor together with the doctor's login"""
        doctor = self.get_doctor(doctor_id, user)
        doctor_user = doctor.user
        logger.info(f"🗑️ Deleting doctor {doctor.name} ({doctor.email})")

        self.repo.delete_doctor(self.db, doctor)
        if doctor_user and doctor_user.id != user.id:
            self.db.delete(doctor_user)
            self.db.commit()

        log_data_operation(self.db, user.id, user.clinic.id, "delete", "doctor", doctor_id, request=request)
        return {"message": "Médico excluído"}
