import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..domain.doctors.service import LEGACY_DEFAULTS, schedule_fields
from ..domain.doctors.schemas import DoctorUpsert
from ..domain.security.audit import log_data_operation
from ..models import Doctor, User, UserClinic
from ..security_utils import hash_password, sanitize_text
from ..shared.validators import validate_time_string
from ..utils.timezone import parse_time_to_minutes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


# ==================== Schemas ====================


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    userType: Literal["admin", "doctor", "atendente"]
    # Required when userType is "doctor"
    specialty: Optional[str] = None
    appointmentPriceInCents: Optional[int] = Field(default=None, ge=1)
    availableFromWeekDay: Optional[int] = Field(default=None, ge=0, le=6)
    availableToWeekDay: Optional[int] = Field(default=None, ge=0, le=6)
    availableFromTime: Optional[str] = None
    availableToTime: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Nome é obrigatório")
        return v

    @field_validator("availableFromTime", "availableToTime")
    @classmethod
    def validate_times(cls, v):
        return validate_time_string(v) if v else None

    @model_validator(mode="after")
    def doctor_fields(self):
        if self.userType != "doctor":
            return self
        if not self.specialty or not self.specialty.strip():
            raise ValueError("Especialidade é obrigatória para médicos")
        if self.appointmentPriceInCents is None:
            raise ValueError("Preço da consulta é obrigatório para médicos")
        if (
            self.availableFromWeekDay is None
            or self.availableToWeekDay is None
            or not self.availableFromTime
            or not self.availableToTime
        ):
            raise ValueError("Disponibilidade é obrigatória para médicos")
        if parse_time_to_minutes(self.availableFromTime) >= parse_time_to_minutes(self.availableToTime):
            raise ValueError("Horário inicial deve ser anterior ao horário final.")
        return self


class ClinicUserResponse(BaseModel):
    id: str
    name: str
    email: str
    userType: str
    mustChangePassword: bool = False
    doctorId: Optional[str] = None
    created_at: Optional[datetime] = None


def build_clinic_user_response(user: User) -> ClinicUserResponse:
    return ClinicUserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        userType=user.user_type,
        mustChangePassword=user.must_change_password,
        doctorId=user.doctor.id if user.doctor else None,
        created_at=user.created_at,
    )


# ==================== Endpoints ====================


@router.get("", response_model=list[ClinicUserResponse])
async def list_users(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All users that belong to the admin's clinic"""
    users = (
        db.query(User)
        .join(UserClinic, UserClinic.user_id == User.id)
        .filter(UserClinic.clinic_id == current_user.clinic.id)
        .order_by(User.name)
        .all()
    )
    return [build_clinic_user_response(u) for u in users]


@router.post("", response_model=ClinicUserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a clinic user; doctors also get their doctor profile"""
    clinic_id = current_user.clinic.id
    email = data.email.lower()
    logger.info(f"👤 Creating {data.userType} user {email} for clinic {clinic_id}")

    if db.query(User).filter(User.email == email).first():
        log_data_operation(
            db, current_user.id, clinic_id, "create", "user",
            success=False, details={"email": email, "error": "email_in_use"}, request=request,
        )
        raise HTTPException(status_code=409, detail="Já existe um usuário com este email")

    try:
        user = User(
            name=sanitize_text(data.name),
            email=email,
            password_hash=hash_password(data.password),
            user_type=data.userType,
        )
        db.add(user)
        db.flush()
        db.add(UserClinic(user_id=user.id, clinic_id=clinic_id))

        if data.userType == "doctor":
            schedule = schedule_fields(
                DoctorUpsert(
                    name=data.name,
                    email=email,
                    specialty=data.specialty,
                    appointmentPriceInCents=data.appointmentPriceInCents,
                    availableFromWeekDay=data.availableFromWeekDay,
                    availableToWeekDay=data.availableToWeekDay,
                    availableFromTime=data.availableFromTime,
                    availableToTime=data.availableToTime,
                )
            )
            db.add(
                Doctor(
                    clinic_id=clinic_id,
                    user_id=user.id,
                    name=user.name,
                    email=email,
                    specialty=sanitize_text(data.specialty.strip()),
                    appointment_price_in_cents=data.appointmentPriceInCents,
                    **{**LEGACY_DEFAULTS, **schedule},
                )
            )
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to create user {email}: {e}")
        log_data_operation(
            db, current_user.id, clinic_id, "create", "user",
            success=False, details={"email": email, "error": str(e)}, request=request,
        )
        raise HTTPException(status_code=500, detail="Falha ao criar usuário") from e

    log_data_operation(
        db, current_user.id, clinic_id, "create", "user", user.id,
        details={"email": email, "userType": data.userType}, request=request,
    )
    logger.info(f"✅ User {user.id} created ({data.userType})")
    return build_clinic_user_response(user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Remove a user of the clinic; admins cannot remove themselves"""
    clinic_id = current_user.clinic.id
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Você não pode excluir seu próprio usuário")

    user = (
        db.query(User)
        .join(UserClinic, UserClinic.user_id == User.id)
        .filter(User.id == user_id, UserClinic.clinic_id == clinic_id)
        .first()
    )
    if not user:
        log_data_operation(
            db, current_user.id, clinic_id, "delete", "user", user_id,
            success=False, details={"error": "not_found"}, request=request,
        )
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    snapshot = {"email": user.email, "userType": user.user_type}
    db.delete(user)
    db.commit()

    log_data_operation(
        db, current_user.id, clinic_id, "delete", "user", user_id, details=snapshot, request=request
    )
    logger.info(f"🗑️ User {user_id} deleted from clinic {clinic_id}")
    return {"success": True, "message": "Usuário excluído"}
