"""Security domain schemas"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

AlertSeverity = Literal["low", "medium", "high", "critical"]


class SecurityLogResponse(BaseModel):
    id: str
    userId: Optional[str] = None
    action: str
    type: str
    details: Optional[dict[str, Any]] = None
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    success: bool
    timestamp: datetime


class SecurityConfigurationUpdate(BaseModel):
    """Partial update; omitted fields keep their current value"""

    enableLoginLogging: Optional[bool] = None
    enableDataAccessLogging: Optional[bool] = None
    enableConfigurationLogging: Optional[bool] = None
    logRetentionDays: Optional[int] = Field(default=None, ge=1, le=365)
    sessionTimeoutMinutes: Optional[int] = Field(default=None, ge=30, le=1440)
    maxConcurrentSessions: Optional[int] = Field(default=None, ge=1, le=20)
    requirePasswordChange: Optional[bool] = None
    passwordChangeIntervalDays: Optional[int] = Field(default=None, ge=30, le=365)
    notifyFailedLogins: Optional[bool] = None
    notifyNewLogins: Optional[bool] = None


class SecurityConfigurationResponse(BaseModel):
    enableLoginLogging: bool
    enableDataAccessLogging: bool
    enableConfigurationLogging: bool
    logRetentionDays: int
    sessionTimeoutMinutes: int
    maxConcurrentSessions: int
    requirePasswordChange: bool
    passwordChangeIntervalDays: int
    notifyFailedLogins: bool
    notifyNewLogins: bool


class SecurityAlert(BaseModel):
    type: Literal[
        "failed_login_attempts",
        "unusual_access_pattern",
        "data_breach_attempt",
        "configuration_change",
    ]
    severity: AlertSeverity
    message: str
    details: dict[str, Any] = {}
    clinicId: str
    userId: Optional[str] = None
    timestamp: datetime


class MonitoringReport(BaseModel):
    alerts: list[SecurityAlert]
    summary: dict[str, int]
    checkedAt: datetime
