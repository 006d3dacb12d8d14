import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, joinedload

from .database import get_db
from .models import User, UserClinic
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the session JWT"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials

    # Basic token format validation before processing
    token_parts = token.split(".")
    if len(token_parts) != 3:
        logger.warning(f"⚠️ Malformed token received: {len(token_parts)} parts, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    payload = verify_jwt_token(token)
    if not payload:
        raise HTTPException(
            status_code=401,
            detail="Token has expired or is invalid. Please sign in again.",
            headers={"X-Token-Expired": "true"},
        )

    user_id = payload.get("sub")
    if not user_id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = (
        db.query(User)
        .options(joinedload(User.clinics).joinedload(UserClinic.clinic))
        .filter(User.id == user_id)
        .first()
    )
    if not user:
        logger.warning(f"⚠️ Token references unknown user {user_id}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def get_current_clinic_user(user: User = Depends(get_current_user)) -> User:
    """Authenticated user that belongs to a clinic"""
    if not user.clinic:
        logger.warning(f"⚠️ User {user.id} has no clinic")
        raise HTTPException(status_code=400, detail="Clinic not found")
    return user


def require_roles(*user_types: str):
    """Dependency factory restricting an endpoint to the given user types"""

    async def checker(user: User = Depends(get_current_clinic_user)) -> User:
        if user.user_type not in user_types:
            logger.warning(
                f"⚠️ User {user.id} ({user.user_type}) denied - requires one of {user_types}"
            )
            raise HTTPException(status_code=403, detail="Acesso negado")
        return user

    return checker


require_admin = require_roles("admin")
require_admin_or_attendant = require_roles("admin", "atendente")
