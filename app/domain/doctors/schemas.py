"""Doctor domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator, model_validator

from ...shared.validators import validate_time_string
from ...utils.timezone import parse_time_to_minutes
from ..scheduling.availability import DAY_KEYS


class DayHours(BaseModel):
    """Opening hours of one weekday, in clinic local time"""

    isOpen: bool = False
    start: Optional[str] = Field(default=None, validation_alias=AliasChoices("start", "startTime"))
    end: Optional[str] = Field(default=None, validation_alias=AliasChoices("end", "endTime"))

    @field_validator("start", "end")
    @classmethod
    def validate_times(cls, v):
        return validate_time_string(v) if v else None

    @model_validator(mode="after")
    def open_day_needs_hours(self):
        if self.isOpen:
            if not self.start or not self.end:
                raise ValueError("Dia aberto precisa de horário de início e fim")
            if parse_time_to_minutes(self.end) <= parse_time_to_minutes(self.start):
                raise ValueError("Horário de fim deve ser depois do início")
        return self


class BusinessHours(BaseModel):
    sunday: DayHours = DayHours()
    monday: DayHours = DayHours()
    tuesday: DayHours = DayHours()
    wednesday: DayHours = DayHours()
    thursday: DayHours = DayHours()
    friday: DayHours = DayHours()
    saturday: DayHours = DayHours()

    def as_dict(self) -> dict:
        return {key: getattr(self, key).model_dump() for key in DAY_KEYS}


class DoctorUpsert(BaseModel):
    """Schema for creating or updating a doctor"""

    name: str = Field(min_length=1)
    email: EmailStr
    avatarImageUrl: Optional[str] = None
    specialty: str = Field(min_length=1)
    appointmentPriceInCents: int = Field(ge=1)
    businessHours: Optional[BusinessHours] = None
    # Legacy weekday range, local time
    availableFromWeekDay: Optional[int] = Field(default=None, ge=0, le=6)
    availableToWeekDay: Optional[int] = Field(default=None, ge=0, le=6)
    availableFromTime: Optional[str] = None
    availableToTime: Optional[str] = None

    @field_validator("name", "specialty")
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Campo obrigatório")
        return v

    @field_validator("availableFromTime", "availableToTime")
    @classmethod
    def validate_legacy_times(cls, v):
        return validate_time_string(v) if v else None

    @model_validator(mode="after")
    def check_schedule(self):
        if self.businessHours is not None:
            if not any(getattr(self.businessHours, key).isOpen for key in DAY_KEYS):
                raise ValueError("Pelo menos um dia deve estar disponível para atendimento.")
        elif self.availableFromTime and self.availableToTime:
            if parse_time_to_minutes(self.availableFromTime) >= parse_time_to_minutes(self.availableToTime):
                raise ValueError("Horário inicial deve ser anterior ao horário final.")
        return self


class DoctorResponse(BaseModel):
    """Schema for doctor response; hours are in clinic local time"""

    id: str
    name: str
    email: str
    avatarImageUrl: Optional[str] = None
    specialty: str
    appointmentPriceInCents: int
    userId: Optional[str] = None
    availableFromWeekDay: int
    availableToWeekDay: int
    availableFromTime: Optional[str] = None
    availableToTime: Optional[str] = None
    businessHours: Optional[dict] = None
    schedule: list[dict] = []
    created_at: Optional[datetime] = None
