"""Medical record schemas"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

REQUIRED_MESSAGES = {
    "symptoms": "Sintomas são obrigatórios.",
    "diagnosis": "Diagnóstico é obrigatório.",
    "treatment": "Tratamento é obrigatório.",
    "medication": "Medicação é obrigatória.",
}


class MedicalRecordUpsert(BaseModel):
    patientId: str
    doctorId: str
    appointmentId: Optional[str] = None
    symptoms: str
    diagnosis: str
    treatment: str
    medication: str
    medicalCertificate: bool = False
    certificateDays: Optional[int] = Field(default=None, ge=0, le=365)
    observations: Optional[str] = None

    @field_validator("symptoms", "diagnosis", "treatment", "medication")
    @classmethod
    def require_text(cls, v, info):
        v = v.strip()
        if not v:
            raise ValueError(REQUIRED_MESSAGES[info.field_name])
        return v

    @field_validator("observations")
    @classmethod
    def strip_observations(cls, v):
        return v.strip() if v else None


class MedicalRecordActionResponse(BaseModel):
    success: bool
    id: str
    message: str
