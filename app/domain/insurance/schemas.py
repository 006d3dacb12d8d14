"""Health insurance plan schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class InsurancePlanUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    reimbursementValueInCents: int = Field(default=0, ge=0)
    isActive: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nome do plano é obrigatório")
        return v


class InsurancePlanResponse(BaseModel):
    id: str
    name: str
    reimbursementValueInCents: int
    isActive: bool
    created_at: Optional[datetime] = None


class InsurancePlanActionResponse(BaseModel):
    success: bool
    planId: str
    message: str
