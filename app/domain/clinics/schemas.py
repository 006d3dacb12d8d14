"""Clinic configuration schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..doctors.schemas import BusinessHours


class ClinicUpdate(BaseModel):
    """Clinic profile and booking preferences; hours are clinic local time"""

    name: str = Field(min_length=1, max_length=255)
    logoUrl: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    cnpj: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    businessHours: Optional[BusinessHours] = None
    appointmentDurationMinutes: int = Field(default=30, ge=15, le=120)
    allowOnlineBooking: bool = True
    requireEmailConfirmation: bool = True
    autoConfirmAppointments: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nome da clínica é obrigatório.")
        return v

    @field_validator("email", "logoUrl", "website", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return v or None


class ClinicResponse(BaseModel):
    id: str
    name: str
    logoUrl: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    cnpj: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    businessHours: Optional[dict] = None
    appointmentDurationMinutes: int
    allowOnlineBooking: bool
    requireEmailConfirmation: bool
    autoConfirmAppointments: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClinicStatsResponse(BaseModel):
    doctors: int
    patients: int
    appointments: int
    medicalRecords: int
    securityLogs: int
    totalRecords: int
