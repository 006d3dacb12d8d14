import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlalchemy.orm import Session, joinedload

from ..auth import get_current_user
from ..config import FRONTEND_URL, PASSWORD_RESET_MAX_AGE
from ..database import get_db
from ..domain.security.audit import log_audit_event
from ..email_service import send_password_reset_email
from ..models import Clinic, User, UserClinic
from ..security_utils import (
    create_jwt_token,
    generate_timed_token,
    hash_password,
    sanitize_text,
    verify_password,
    verify_timed_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

PASSWORD_RESET_SALT = "password-reset"
FORGOT_PASSWORD_MESSAGE = "Se o email estiver cadastrado, você receberá as instruções para recuperar sua senha."


# ==================== Schemas ====================


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    clinicName: str = Field(min_length=1, max_length=255)


class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: str = Field(min_length=6)
    confirmPassword: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.newPassword != self.confirmPassword:
            raise ValueError("As senhas não conferem")
        return self


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    newPassword: str = Field(min_length=6)


class ClinicSummary(BaseModel):
    id: str
    name: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    emailVerified: bool = False
    image: Optional[str] = None
    userType: str
    mustChangePassword: bool = False
    clinic: Optional[ClinicSummary] = None


class TokenResponse(BaseModel):
    accessToken: str
    tokenType: str = "bearer"
    user: UserResponse


def build_user_response(user: User) -> UserResponse:
    clinic = user.clinic
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        emailVerified=user.email_verified,
        image=user.image,
        userType=user.user_type,
        mustChangePassword=user.must_change_password,
        clinic=ClinicSummary(id=clinic.id, name=clinic.name) if clinic else None,
    )


def _reset_fingerprint(user: User) -> str:
    # Changing the password invalidates any reset link issued before
    return user.password_hash[-12:]


# ==================== Login & Registration ====================


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    email = data.email.lower()
    user = (
        db.query(User)
        .options(joinedload(User.clinics).joinedload(UserClinic.clinic))
        .filter(User.email == email)
        .first()
    )

    if not user or not verify_password(data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login for {email}")
        log_audit_event(
            db,
            action="login",
            type="failed_login",
            user_id=user.id if user else None,
            clinic_id=user.clinic.id if user and user.clinic else None,
            details={"email": email, "reason": "invalid_credentials"},
            success=False,
            request=request,
        )
        raise HTTPException(status_code=401, detail="Email ou senha inválidos")

    token = create_jwt_token({"sub": user.id, "type": user.user_type})
    log_audit_event(
        db,
        action="login",
        type="login",
        user_id=user.id,
        clinic_id=user.clinic.id if user.clinic else None,
        details={"email": email},
        request=request,
    )
    logger.info(f"✅ User logged in: {email}")
    return TokenResponse(accessToken=token, user=build_user_response(user))


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(data: RegisterRequest, request: Request, db: Session = Depends(get_db)):
    """Create a clinic together with its first admin user"""
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=409, detail="Já existe um usuário com este email")

    logger.info(f"🏥 Registering clinic {data.clinicName} for {email}")
    clinic = Clinic(name=sanitize_text(data.clinicName))
    user = User(
        name=sanitize_text(data.name),
        email=email,
        password_hash=hash_password(data.password),
        user_type="admin",
    )
    db.add_all([clinic, user])
    db.flush()
    db.add(UserClinic(user_id=user.id, clinic_id=clinic.id))
    db.commit()
    db.refresh(user)

    log_audit_event(
        db,
        action="register_clinic",
        type="user_created",
        user_id=user.id,
        clinic_id=clinic.id,
        details={"email": email, "clinicName": clinic.name},
        request=request,
    )
    logger.info(f"✅ Clinic {clinic.id} created with admin {user.id}")
    token = create_jwt_token({"sub": user.id, "type": user.user_type})
    return TokenResponse(accessToken=token, user=build_user_response(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return build_user_response(current_user)


# ==================== Passwords ====================


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Change own password; a user flagged to change it may skip the current one"""
    if not current_user.must_change_password:
        if not data.currentPassword or not verify_password(data.currentPassword, current_user.password_hash):
            log_audit_event(
                db,
                action="change_password",
                type="password_change",
                user_id=current_user.id,
                clinic_id=current_user.clinic.id if current_user.clinic else None,
                details={"reason": "wrong_current_password"},
                success=False,
                request=request,
            )
            raise HTTPException(status_code=400, detail="Senha atual incorreta")

    current_user.password_hash = hash_password(data.newPassword)
    current_user.must_change_password = False
    db.commit()

    log_audit_event(
        db,
        action="change_password",
        type="password_change",
        user_id=current_user.id,
        clinic_id=current_user.clinic.id if current_user.clinic else None,
        request=request,
    )
    logger.info(f"🔐 Password changed for user {current_user.id}")
    return {"success": True, "message": "Senha alterada com sucesso!"}


@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Email a reset link; the answer never reveals whether the email exists"""
    email = data.email.lower()
    user = db.query(User).filter(User.email == email).first()

    if not user:
        logger.info(f"📧 Password reset requested for unknown email {email}")
        return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}

    token = generate_timed_token({"uid": user.id, "fp": _reset_fingerprint(user)}, salt=PASSWORD_RESET_SALT)
    reset_link = f"{FRONTEND_URL}/authentication/reset-password?token={token}"

    try:
        await send_password_reset_email(user.email, user.name, reset_link)
        logger.info(f"📧 Password reset email sent to {email}")
    except Exception as e:
        logger.error(f"❌ Failed to send password reset email to {email}: {e}")
        return {"success": False, "message": "Erro interno. Tente novamente mais tarde."}

    return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, request: Request, db: Session = Depends(get_db)):
    """Set a new password from a reset link token"""
    payload = verify_timed_token(data.token, max_age=PASSWORD_RESET_MAX_AGE, salt=PASSWORD_RESET_SALT)
    if not payload:
        raise HTTPException(status_code=400, detail="Link de recuperação inválido ou expirado")

    user = db.query(User).filter(User.id == payload.get("uid")).first()
    if not user or payload.get("fp") != _reset_fingerprint(user):
        raise HTTPException(status_code=400, detail="Link de recuperação inválido ou expirado")

    user.password_hash = hash_password(data.newPassword)
    user.must_change_password = False
    db.commit()

    log_audit_event(
        db,
        action="reset_password",
        type="password_change",
        user_id=user.id,
        clinic_id=user.clinic.id if user.clinic else None,
        request=request,
    )
    logger.info(f"🔐 Password reset for user {user.id}")
    return {"success": True, "message": "Senha redefinida com sucesso!"}
