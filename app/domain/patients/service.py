"""Patient service - Business logic for patient operations"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import Appointment, MedicalRecord, Patient, User
from ...security_utils import sanitize_text
from ..scheduling.repository import AppointmentRepository
from ..security.audit import log_data_access, log_data_operation
from .repository import PatientRepository
from .schemas import MedicalRecordSummary, PatientResponse, PatientUpsert

logger = logging.getLogger(__name__)


def build_patient_response(patient: Patient) -> PatientResponse:
    return PatientResponse(
        id=patient.id,
        name=patient.name,
        email=patient.email,
        phoneNumber=patient.phone_number,
        sex=patient.sex,
        avatarImageUrl=patient.avatar_image_url,
        created_at=patient.created_at,
    )


def build_medical_record_summary(record: MedicalRecord) -> MedicalRecordSummary:
    return MedicalRecordSummary(
        id=record.id,
        doctorId=record.doctor_id,
        doctorName=record.doctor.name if record.doctor else None,
        doctorSpecialty=record.doctor.specialty if record.doctor else None,
        appointmentId=record.appointment_id,
        symptoms=record.symptoms,
        diagnosis=record.diagnosis,
        treatment=record.treatment,
        medication=record.medication,
        medicalCertificate=record.medical_certificate,
        certificateDays=record.certificate_days,
        observations=record.observations,
        created_at=record.created_at,
    )


class PatientService:
    """Service layer for patient business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def get_patients(self, user: User, search: Optional[str] = None) -> list[Patient]:
        return self.repo.get_patients(self.db, user.clinic.id, search)

    def get_patient(self, patient_id: str, user: User) -> Patient:
        patient = self.repo.get_patient_by_id(self.db, patient_id, user.clinic.id)
        if not patient:
            raise HTTPException(status_code=404, detail="Paciente não encontrado")
        return patient

    def create_patient(self, data: PatientUpsert, user: User, request: Optional[Request] = None) -> Patient:
        logger.info(f"🏥 Creating patient for clinic {user.clinic.id}")
        patient = self.repo.create_patient(
            self.db,
            user.clinic.id,
            name=sanitize_text(data.name),
            email=data.email.lower(),
            phone_number=data.phoneNumber,
            sex=data.sex,
            avatar_image_url=data.avatarImageUrl or None,
        )
        log_data_operation(self.db, user.id, user.clinic.id, "create", "patient", patient.id, request=request)
        logger.info(f"✅ Patient {patient.id} created")
        return patient

    def update_patient(
        self, patient_id: str, data: PatientUpsert, user: User, request: Optional[Request] = None
    ) -> Patient:
        patient = self.get_patient(patient_id, user)
        patient = self.repo.update_patient(
            self.db,
            patient,
            name=sanitize_text(data.name),
            email=data.email.lower(),
            phone_number=data.phoneNumber,
            sex=data.sex,
            avatar_image_url=data.avatarImageUrl or None,
        )
        log_data_operation(self.db, user.id, user.clinic.id, "update", "patient", patient.id, request=request)
        return patient

    def delete_patient(self, patient_id: str, user: User, request: Optional[Request] = None) -> dict:
        patient = self.get_patient(patient_id, user)
        snapshot = {"name": patient.name, "email": patient.email, "sex": patient.sex}

        try:
            self.repo.delete_patient(self.db, patient)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to delete patient {patient_id}: {e}")
            log_data_operation(
                self.db, user.id, user.clinic.id, "delete", "patient", patient_id,
                success=False, details={"error": "Falha na exclusão do paciente"}, request=request,
            )
            raise HTTPException(status_code=500, detail="Falha na exclusão do paciente") from e

        log_data_operation(
            self.db, user.id, user.clinic.id, "delete", "patient", patient_id,
            details={"deleted": snapshot}, request=request,
        )
        logger.info(f"🗑️ Patient {patient_id} deleted")
        return {"message": "Paciente excluído"}

    def get_patient_appointments(
        self, patient_id: str, user: User, request: Optional[Request] = None
    ) -> list[Appointment]:
        patient = self.get_patient(patient_id, user)
        log_data_access(
            self.db, user.id, user.clinic.id, "appointment", patient.id,
            action="list_patient", request=request,
        )
        return AppointmentRepository.get_appointments(self.db, user.clinic.id, patient_id=patient.id)

    def get_patient_medical_records(
        self, patient_id: str, user: User, request: Optional[Request] = None
    ) -> list[MedicalRecord]:
        patient = self.get_patient(patient_id, user)
        records = self.repo.get_medical_records(self.db, patient.id, user.clinic.id)
        log_data_access(
            self.db, user.id, user.clinic.id, "medical_record", patient.id,
            action="list_patient", request=request, details={"count": len(records)},
        )
        logger.info(f"📋 Found {len(records)} medical records for patient {patient.id}")
        return records
