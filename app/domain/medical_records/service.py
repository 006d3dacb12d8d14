"""Medical record service - consultation notes written by doctors"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, MedicalRecord, User
from ...security_utils import sanitize_text
from ..scheduling.repository import AppointmentRepository
from ..security.audit import log_data_access, log_data_operation
from .schemas import MedicalRecordUpsert

logger = logging.getLogger(__name__)

CLINICAL_FIELDS = ("symptoms", "diagnosis", "treatment", "medication")


def _record_snapshot(record: MedicalRecord) -> dict:
    return {
        "symptoms": record.symptoms,
        "diagnosis": record.diagnosis,
        "treatment": record.treatment,
        "medication": record.medication,
        "medicalCertificate": record.medical_certificate,
        "certificateDays": record.certificate_days,
    }


class MedicalRecordService:
    def __init__(self, db: Session):
        self.db = db

    def get_record(self, record_id: str, user: User, request: Optional[Request] = None) -> MedicalRecord:
        record = (
            self.db.query(MedicalRecord)
            .options(joinedload(MedicalRecord.doctor))
            .filter(MedicalRecord.id == record_id, MedicalRecord.clinic_id == user.clinic.id)
            .first()
        )
        if not record:
            raise HTTPException(status_code=404, detail="Prontuário não encontrado")
        log_data_access(self.db, user.id, user.clinic.id, "medical_record", record.id, request=request)
        return record

    def _check_references(self, data: MedicalRecordUpsert, user: User) -> Optional[Appointment]:
        clinic_id = user.clinic.id
        if not AppointmentRepository.get_patient(self.db, data.patientId, clinic_id):
            raise HTTPException(status_code=404, detail="Paciente não encontrado")
        if not AppointmentRepository.get_doctor(self.db, data.doctorId, clinic_id):
            raise HTTPException(status_code=404, detail="Médico não encontrado")

        if not data.appointmentId:
            return None
        appointment = AppointmentRepository.get_appointment(self.db, data.appointmentId, clinic_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Agendamento não encontrado")
        if appointment.patient_id != data.patientId:
            raise HTTPException(status_code=400, detail="Agendamento não pertence a este paciente")
        return appointment

    def upsert_record(
        self,
        data: MedicalRecordUpsert,
        user: User,
        record_id: Optional[str] = None,
        request: Optional[Request] = None,
    ) -> dict:
        """
        Create or update a medical record.

        A record tied to an appointment marks that appointment as concluded.
        The certificate day count is only kept when a certificate is issued.
        """
        is_update = record_id is not None
        appointment = self._check_references(data, user)
        operation = "update" if is_update else "create"

        fields = {field: sanitize_text(getattr(data, field)) for field in CLINICAL_FIELDS}
        fields.update(
            patient_id=data.patientId,
            doctor_id=data.doctorId,
            appointment_id=data.appointmentId,
            medical_certificate=data.medicalCertificate,
            certificate_days=data.certificateDays if data.medicalCertificate else None,
            observations=sanitize_text(data.observations) if data.observations else None,
        )

        before = None
        try:
            if is_update:
                record = (
                    self.db.query(MedicalRecord)
                    .filter(MedicalRecord.id == record_id, MedicalRecord.clinic_id == user.clinic.id)
                    .first()
                )
                if not record:
                    raise HTTPException(status_code=404, detail="Prontuário não encontrado")
                before = _record_snapshot(record)
                for key, value in fields.items():
                    setattr(record, key, value)
            else:
                record = MedicalRecord(clinic_id=user.clinic.id, **fields)
                self.db.add(record)

            if appointment is not None and appointment.status != "concluido":
                logger.info(f"🏥 Marking appointment {appointment.id} as concluded")
                appointment.status = "concluido"

            self.db.commit()
            self.db.refresh(record)
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save medical record: {e}")
            log_data_operation(
                self.db, user.id, user.clinic.id, operation, "medical_record", record_id,
                success=False,
                details={"error": "Falha na operação de prontuário", "patientId": data.patientId},
                request=request,
            )
            raise HTTPException(status_code=500, detail="Falha ao salvar prontuário") from e

        changes = {"before": before, "after": _record_snapshot(record)} if is_update else {
            "created": {"patientId": data.patientId, "doctorId": data.doctorId, **_record_snapshot(record)}
        }
        log_data_operation(
            self.db, user.id, user.clinic.id, operation, "medical_record", record.id,
            details=changes, request=request,
        )

        logger.info(f"✅ Medical record {record.id} saved")
        return {
            "success": True,
            "id": record.id,
            "message": "Prontuário atualizado com sucesso!" if is_update else "Prontuário criado com sucesso!",
        }
