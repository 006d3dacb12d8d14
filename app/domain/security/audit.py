"""
Audit logging - persists security events as SecurityLog rows

Audit writes never raise: a failure to record an event is logged and the
caller's operation carries on.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ...models import SecurityLog
from ...security_utils import get_client_ip, log_security_event, sanitize_details

logger = logging.getLogger(__name__)

LOG_TYPES = (
    "login",
    "logout",
    "failed_login",
    "password_change",
    "user_created",
    "user_deleted",
    "user_updated",
    "permission_change",
    "data_access",
    "data_export",
    "system_access",
    "configuration_change",
)

OPERATION_LOG_TYPES = {
    "create": "user_created",
    "update": "user_updated",
    "delete": "user_deleted",
}


def log_audit_event(
    db: Session,
    action: str,
    type: str,
    user_id: Optional[str] = None,
    clinic_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    success: bool = True,
    request: Optional[Request] = None,
) -> Optional[SecurityLog]:
    """Record an audit entry. Returns the row, or None when it could not be stored."""
    if type not in LOG_TYPES:
        logger.warning(f"⚠️ Unknown audit log type '{type}' for action {action}")

    ip_address = get_client_ip(request)
    user_agent = request.headers.get("user-agent") if request is not None else None
    safe_details = sanitize_details(details or {})

    log_security_event(type, user_id=user_id, ip_address=ip_address, details={"action": action, **safe_details})

    try:
        entry = SecurityLog(
            user_id=user_id,
            clinic_id=clinic_id,
            action=action,
            type=type,
            details=safe_details,
            success=success,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        logger.error(f"❌ Failed to write audit log '{action}': {e}")
        try:
            db.rollback()
        except Exception as rollback_error:
            logger.error(f"❌ Rollback after audit failure also failed: {rollback_error}")
        return None


def log_data_access(
    db: Session,
    user_id: Optional[str],
    clinic_id: Optional[str],
    resource: str,
    resource_id: Optional[str] = None,
    action: str = "read",
    request: Optional[Request] = None,
    details: Optional[dict[str, Any]] = None,
):
    return log_audit_event(
        db,
        action=f"{action}_{resource}",
        type="data_access",
        user_id=user_id,
        clinic_id=clinic_id,
        details={"resource": resource, "resourceId": resource_id, **(details or {})},
        request=request,
    )


def log_configuration_change(
    db: Session,
    user_id: Optional[str],
    clinic_id: Optional[str],
    configuration_type: str,
    changes: dict[str, Any],
    request: Optional[Request] = None,
    success: bool = True,
):
    return log_audit_event(
        db,
        action=f"update_{configuration_type}",
        type="configuration_change",
        user_id=user_id,
        clinic_id=clinic_id,
        details={"configurationType": configuration_type, "changes": changes},
        success=success,
        request=request,
    )


def log_data_operation(
    db: Session,
    user_id: Optional[str],
    clinic_id: Optional[str],
    operation: str,
    resource: str,
    resource_id: Optional[str] = None,
    success: bool = True,
    details: Optional[dict[str, Any]] = None,
    request: Optional[Request] = None,
):
    """Audit a create/update/delete on a clinic resource"""
    return log_audit_event(
        db,
        action=f"{operation}_{resource}",
        type=OPERATION_LOG_TYPES.get(operation, "data_access"),
        user_id=user_id,
        clinic_id=clinic_id,
        details={"resource": resource, "resourceId": resource_id, **(details or {})},
        success=success,
        request=request,
    )
