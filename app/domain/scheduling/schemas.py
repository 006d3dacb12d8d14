"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date as date_type
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_time_string

AppointmentStatus = Literal["agendado", "confirmado", "cancelado", "concluido"]


class AppointmentUpsert(BaseModel):
    """Schema for creating or editing an appointment (date and slot in clinic local time)"""

    patientId: str = Field(min_length=1)
    doctorId: str = Field(min_length=1)
    healthInsurancePlanId: Optional[str] = None
    appointmentPriceInCents: Optional[int] = Field(default=None, ge=1)
    date: date_type
    timeSlot: str

    @field_validator("timeSlot")
    @classmethod
    def validate_time_slot(cls, v):
        return validate_time_string(v)

    @field_validator("healthInsurancePlanId")
    @classmethod
    def empty_plan_is_none(cls, v):
        return v or None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class PersonSummary(BaseModel):
    id: str
    name: str
    email: Optional[str] = None


class DoctorSummary(PersonSummary):
    specialty: Optional[str] = None


class PaymentSummary(BaseModel):
    id: str
    status: str
    totalAmountInCents: int
    paidAmountInCents: int
    remainingAmountInCents: int


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: str
    date: datetime
    localDate: str
    timeSlot: str
    status: str
    appointmentPriceInCents: int
    healthInsurancePlanId: Optional[str] = None
    patient: PersonSummary
    doctor: DoctorSummary
    payment: Optional[PaymentSummary] = None
    created_at: Optional[datetime] = None


class AppointmentActionResponse(BaseModel):
    success: bool = True
    message: str
    appointment: dict


class ReminderResult(BaseModel):
    appointmentId: str
    patientEmail: str
    sent: bool


class ReminderRunResponse(BaseModel):
    sent: int
    failed: int
    total: int
    date: str
    results: list[ReminderResult] = []
