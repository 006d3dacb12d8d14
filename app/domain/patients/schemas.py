"""Patient domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...shared.validators import validate_br_phone

PatientSex = Literal["male", "female"]


class PatientUpsert(BaseModel):
    """Schema for creating or updating a patient"""

    name: str = Field(min_length=1)
    email: EmailStr
    phoneNumber: str
    sex: PatientSex
    avatarImageUrl: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório.")
        return v

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone(cls, v):
        if not v or not v.strip():
            raise ValueError("Número de telefone é obrigatório.")
        return validate_br_phone(v)


class PatientResponse(BaseModel):
    id: str
    name: str
    email: str
    phoneNumber: str
    sex: str
    avatarImageUrl: Optional[str] = None
    created_at: Optional[datetime] = None


class MedicalRecordSummary(BaseModel):
    id: str
    doctorId: str
    doctorName: Optional[str] = None
    doctorSpecialty: Optional[str] = None
    appointmentId: Optional[str] = None
    symptoms: str
    diagnosis: str
    treatment: str
    medication: str
    medicalCertificate: bool
    certificateDays: Optional[int] = None
    observations: Optional[str] = None
    created_at: Optional[datetime] = None
