"""
Security monitoring - scans recent audit entries and raises alerts

Each monitor looks at a sliding window of SecurityLog rows for one clinic.
A monitor that fails logs the error and reports no alerts.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...config import FAILED_LOGIN_THRESHOLD, FAILED_LOGIN_WINDOW_MINUTES
from ...models import SecurityLog

logger = logging.getLogger(__name__)

CRITICAL_FAILED_LOGINS = 10
ACCESS_WINDOW_MINUTES = 60
MAX_ACCESSES_PER_WINDOW = 100
MAX_DISTINCT_IPS = 3
CHANGE_WINDOW_MINUTES = 30
DATA_OPERATION_TYPES = ("data_access", "user_created", "user_updated", "user_deleted")


def _alert(alert_type: str, severity: str, message: str, clinic_id: str, details: dict, user_id=None) -> dict:
    return {
        "type": alert_type,
        "severity": severity,
        "message": message,
        "details": details,
        "clinicId": clinic_id,
        "userId": user_id,
        "timestamp": datetime.utcnow(),
    }


def monitor_failed_logins(db: Session, clinic_id: str, user_id: Optional[str] = None) -> list[dict]:
    """Failed logins per (user, IP) inside the window: 5+ is high, 10+ is critical"""
    since = datetime.utcnow() - timedelta(minutes=FAILED_LOGIN_WINDOW_MINUTES)
    try:
        query = db.query(SecurityLog.user_id, SecurityLog.ip_address, func.count(SecurityLog.id)).filter(
            SecurityLog.clinic_id == clinic_id,
            SecurityLog.type == "failed_login",
            SecurityLog.timestamp >= since,
        )
        if user_id:
            query = query.filter(SecurityLog.user_id == user_id)
        rows = query.group_by(SecurityLog.user_id, SecurityLog.ip_address).all()
    except Exception as e:
        logger.error(f"❌ Failed login monitor error: {e}")
        return []

    alerts = []
    for row_user_id, ip_address, attempts in rows:
        if attempts < FAILED_LOGIN_THRESHOLD:
            continue
        alerts.append(
            _alert(
                "failed_login_attempts",
                "critical" if attempts >= CRITICAL_FAILED_LOGINS else "high",
                f"{attempts} tentativas de login falhadas detectadas",
                clinic_id,
                {
                    "userId": row_user_id,
                    "ipAddress": ip_address,
                    "attempts": attempts,
                    "timeWindow": f"{FAILED_LOGIN_WINDOW_MINUTES} minutos",
                },
                row_user_id,
            )
        )
    return alerts


def monitor_unusual_access(db: Session, clinic_id: str) -> list[dict]:
    """Users with too many data accesses, or accesses from too many IPs, in the last hour"""
    since = datetime.utcnow() - timedelta(minutes=ACCESS_WINDOW_MINUTES)
    try:
        rows = (
            db.query(
                SecurityLog.user_id,
                func.count(SecurityLog.id),
                func.count(func.distinct(SecurityLog.ip_address)),
            )
            .filter(
                SecurityLog.clinic_id == clinic_id,
                SecurityLog.type == "data_access",
                SecurityLog.timestamp >= since,
                SecurityLog.user_id.isnot(None),
            )
            .group_by(SecurityLog.user_id)
            .all()
        )
    except Exception as e:
        logger.error(f"❌ Access pattern monitor error: {e}")
        return []

    alerts = []
    for row_user_id, accesses, distinct_ips in rows:
        if accesses > MAX_ACCESSES_PER_WINDOW:
            alerts.append(
                _alert(
                    "unusual_access_pattern",
                    "medium",
                    f"Usuário com {accesses} acessos em 1 hora",
                    clinic_id,
                    {"userId": row_user_id, "accessCount": accesses, "timeWindow": "1 hora"},
                    row_user_id,
                )
            )
        if distinct_ips > MAX_DISTINCT_IPS:
            alerts.append(
                _alert(
                    "unusual_access_pattern",
                    "high",
                    f"Usuário acessando de {distinct_ips} IPs diferentes",
                    clinic_id,
                    {"userId": row_user_id, "distinctIPs": distinct_ips, "timeWindow": "1 hora"},
                    row_user_id,
                )
            )
    return alerts


def monitor_configuration_changes(db: Session, clinic_id: str) -> list[dict]:
    since = datetime.utcnow() - timedelta(minutes=CHANGE_WINDOW_MINUTES)
    try:
        changes = (
            db.query(SecurityLog)
            .filter(
                SecurityLog.clinic_id == clinic_id,
                SecurityLog.type == "configuration_change",
                SecurityLog.timestamp >= since,
            )
            .order_by(SecurityLog.timestamp.desc())
            .all()
        )
    except Exception as e:
        logger.error(f"❌ Configuration change monitor error: {e}")
        return []

    return [
        _alert(
            "configuration_change",
            "medium",
            f"Configuração alterada: {change.action}",
            clinic_id,
            {"action": change.action, "userId": change.user_id, "timestamp": change.timestamp.isoformat()},
            change.user_id,
        )
        for change in changes
    ]


def monitor_failed_data_operations(db: Session, clinic_id: str) -> list[dict]:
    since = datetime.utcnow() - timedelta(minutes=CHANGE_WINDOW_MINUTES)
    try:
        failures = (
            db.query(SecurityLog)
            .filter(
                SecurityLog.clinic_id == clinic_id,
                SecurityLog.success.is_(False),
                SecurityLog.type.in_(DATA_OPERATION_TYPES),
                SecurityLog.timestamp >= since,
            )
            .all()
        )
    except Exception as e:
        logger.error(f"❌ Data operation monitor error: {e}")
        return []

    if not failures:
        return []
    return [
        _alert(
            "data_breach_attempt",
            "high",
            f"{len(failures)} tentativas de acesso não autorizado detectadas",
            clinic_id,
            {
                "attempts": len(failures),
                "actions": sorted({f.action for f in failures}),
                "timeWindow": f"{CHANGE_WINDOW_MINUTES} minutos",
            },
        )
    ]


def run_security_monitoring(db: Session, clinic_id: str) -> dict:
    """Run every monitor for a clinic and summarize alerts by severity"""
    alerts = (
        monitor_failed_logins(db, clinic_id)
        + monitor_unusual_access(db, clinic_id)
        + monitor_configuration_changes(db, clinic_id)
        + monitor_failed_data_operations(db, clinic_id)
    )
    summary = {"total": len(alerts), "low": 0, "medium": 0, "high": 0, "critical": 0}
    for alert in alerts:
        summary[alert["severity"]] += 1

    if summary["critical"] or summary["high"]:
        logger.warning(
            f"🚨 Security alerts for clinic {clinic_id}: "
            f"{summary['critical']} critical, {summary['high']} high"
        )
    return {"alerts": alerts, "summary": summary, "checkedAt": datetime.utcnow()}
