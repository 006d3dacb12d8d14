import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..domain.security.audit import log_configuration_change, log_data_access
from ..domain.security.monitoring import run_security_monitoring
from ..domain.security.schemas import (
    MonitoringReport,
    SecurityConfigurationResponse,
    SecurityConfigurationUpdate,
    SecurityLogResponse,
)
from ..models import SecurityConfiguration, SecurityLog, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/security", tags=["Security"])

# camelCase API field -> SecurityConfiguration column
CONFIGURATION_FIELDS = {
    "enableLoginLogging": "enable_login_logging",
    "enableDataAccessLogging": "enable_data_access_logging",
    "enableConfigurationLogging": "enable_configuration_logging",
    "logRetentionDays": "log_retention_days",
    "sessionTimeoutMinutes": "session_timeout_minutes",
    "maxConcurrentSessions": "max_concurrent_sessions",
    "requirePasswordChange": "require_password_change",
    "passwordChangeIntervalDays": "password_change_interval_days",
    "notifyFailedLogins": "notify_failed_logins",
    "notifyNewLogins": "notify_new_logins",
}


def get_or_create_configuration(db: Session, clinic_id: str) -> SecurityConfiguration:
    """Clinic security configuration, created with defaults on first access"""
    config = db.query(SecurityConfiguration).filter(SecurityConfiguration.clinic_id == clinic_id).first()
    if config:
        return config

    logger.info(f"🔐 Creating default security configuration for clinic {clinic_id}")
    config = SecurityConfiguration(clinic_id=clinic_id)
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


def serialize_configuration(config: SecurityConfiguration) -> dict:
    return {field: getattr(config, column) for field, column in CONFIGURATION_FIELDS.items()}


# ==================== Audit Logs ====================


@router.get("/logs", response_model=list[SecurityLogResponse])
async def get_security_logs(
    request: Request,
    limit: int = Query(50, ge=1, le=100),
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Most recent audit entries of the clinic"""
    since = datetime.utcnow() - timedelta(days=days)
    logs = (
        db.query(SecurityLog)
        .filter(SecurityLog.clinic_id == current_user.clinic.id, SecurityLog.timestamp >= since)
        .order_by(SecurityLog.timestamp.desc())
        .limit(limit)
        .all()
    )
    log_data_access(
        db, current_user.id, current_user.clinic.id, "security_logs",
        details={"limit": limit, "days": days, "returned": len(logs)}, request=request,
    )
    return [
        SecurityLogResponse(
            id=log.id,
            userId=log.user_id,
            action=log.action,
            type=log.type,
            details=log.details,
            ipAddress=log.ip_address,
            userAgent=log.user_agent,
            success=log.success,
            timestamp=log.timestamp,
        )
        for log in logs
    ]


# ==================== Configuration ====================


@router.get("/configuration", response_model=SecurityConfigurationResponse)
async def get_security_configuration(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return serialize_configuration(get_or_create_configuration(db, current_user.clinic.id))


@router.put("/configuration", response_model=SecurityConfigurationResponse)
async def update_security_configuration(
    data: SecurityConfigurationUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Update the fields that were sent; the rest keep their value"""
    config = get_or_create_configuration(db, current_user.clinic.id)
    before = serialize_configuration(config)

    submitted = data.model_dump(exclude_none=True)
    for field, value in submitted.items():
        setattr(config, CONFIGURATION_FIELDS[field], value)
    db.commit()
    db.refresh(config)

    after = serialize_configuration(config)
    changes = {
        field: {"before": before[field], "after": after[field]}
        for field in submitted
        if before[field] != after[field]
    }
    log_configuration_change(
        db, current_user.id, current_user.clinic.id, "security_configuration", changes, request=request
    )

    logger.info(f"✅ Security configuration updated for clinic {current_user.clinic.id}: {list(changes)}")
    return after


# ==================== Monitoring ====================


@router.get("/monitoring", response_model=MonitoringReport)
async def get_security_monitoring(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Alerts from recent failed logins, access patterns and configuration changes"""
    return run_security_monitoring(db, current_user.clinic.id)
