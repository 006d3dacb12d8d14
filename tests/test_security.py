"""Tests for audit logging, security configuration and monitoring alerts"""

from datetime import datetime, timedelta

import pytest

from app.domain.security.audit import OPERATION_LOG_TYPES, log_audit_event, log_data_operation
from app.domain.security.monitoring import monitor_failed_logins, run_security_monitoring
from app.models import SecurityLog
from app.security_utils import REDACTED, sanitize_details, sanitize_text
from tests.conftest import auth_headers


def add_failed_logins(db, clinic, user_id, count, ip="10.0.0.1", age=timedelta(minutes=1)):
    for _ in range(count):
        db.add(
            SecurityLog(
                clinic_id=clinic.id,
                user_id=user_id,
                action="login",
                type="failed_login",
                ip_address=ip,
                success=False,
                timestamp=datetime.utcnow() - age,
            )
        )
    db.commit()


class TestAuditLog:
    def test_operation_types(self):
        assert OPERATION_LOG_TYPES == {
            "create": "user_created",
            "update": "user_updated",
            "delete": "user_deleted",
        }

    def test_data_operation_entry(self, db_session, admin, clinic):
        entry = log_data_operation(db_session, admin.id, clinic.id, "update", "patient", "p-1")
        assert entry.type == "user_updated"
        assert entry.action == "update_patient"
        assert entry.details == {"resource": "patient", "resourceId": "p-1"}

    def test_sensitive_details_are_redacted(self, db_session, admin, clinic):
        entry = log_audit_event(
            db_session,
            action="login",
            type="login",
            user_id=admin.id,
            clinic_id=clinic.id,
            details={"email": admin.email, "password": "segredo", "nested": {"apiKey": "abc"}},
        )
        assert entry.details["password"] == REDACTED
        assert entry.details["nested"]["apiKey"] == REDACTED
        assert entry.details["email"] == admin.email

    def test_failures_never_raise(self, db_session, monkeypatch):
        def broken_commit():
            raise RuntimeError("database is gone")

        monkeypatch.setattr(db_session, "commit", broken_commit)
        assert log_audit_event(db_session, action="login", type="login") is None


class TestSanitization:
    def test_html_is_stripped(self):
        assert sanitize_text("<b>Maria</b> <script>x</script>") == "Maria x"
        assert sanitize_text(None) is None

    def test_datetimes_become_strings(self):
        assert sanitize_details({"at": datetime(2030, 1, 7, 9, 0)}) == {"at": "2030-01-07T09:00:00"}


class TestSecurityEndpoints:
    def test_logs_are_scoped_to_clinic(self, client, db_session, admin, clinic, other_clinic):
        log_audit_event(db_session, action="login", type="login", user_id=admin.id, clinic_id=clinic.id)
        log_audit_event(db_session, action="login", type="login", clinic_id=other_clinic.id)

        response = client.get("/security/logs", params={"limit": 10}, headers=auth_headers(admin))
        assert response.status_code == 200
        logs = response.json()
        assert len(logs) == 1
        assert logs[0]["userId"] == admin.id

    def test_limit_is_bounded(self, client, admin):
        response = client.get("/security/logs", params={"limit": 500}, headers=auth_headers(admin))
        assert response.status_code == 422

    def test_configuration_defaults_and_partial_update(self, client, db_session, admin):
        headers = auth_headers(admin)
        defaults = client.get("/security/configuration", headers=headers).json()
        assert defaults["logRetentionDays"] == 90
        assert defaults["sessionTimeoutMinutes"] == 480

        response = client.put(
            "/security/configuration", json={"logRetentionDays": 30, "notifyNewLogins": True}, headers=headers
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["logRetentionDays"] == 30
        assert updated["notifyNewLogins"] is True
        assert updated["sessionTimeoutMinutes"] == 480

        change = (
            db_session.query(SecurityLog)
            .filter(SecurityLog.type == "configuration_change")
            .one()
        )
        assert change.details["changes"] == {
            "logRetentionDays": {"before": 90, "after": 30},
            "notifyNewLogins": {"before": False, "after": True},
        }

    @pytest.mark.parametrize(
        "payload",
        [{"logRetentionDays": 0}, {"sessionTimeoutMinutes": 10}, {"maxConcurrentSessions": 50}],
    )
    def test_configuration_ranges(self, client, admin, payload):
        response = client.put("/security/configuration", json=payload, headers=auth_headers(admin))
        assert response.status_code == 422

    def test_admin_only(self, client, attendant):
        assert client.get("/security/logs", headers=auth_headers(attendant)).status_code == 403


class TestMonitoring:
    def test_below_threshold_raises_nothing(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 4)
        assert monitor_failed_logins(db_session, clinic.id) == []

    def test_five_failures_is_high(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 5)
        alerts = monitor_failed_logins(db_session, clinic.id)
        assert len(alerts) == 1
        assert alerts[0]["severity"] == "high"
        assert alerts[0]["details"]["attempts"] == 5

    def test_ten_failures_is_critical(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 10)
        assert monitor_failed_logins(db_session, clinic.id)[0]["severity"] == "critical"

    def test_old_failures_are_ignored(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 6, age=timedelta(hours=2))
        assert monitor_failed_logins(db_session, clinic.id) == []

    def test_failures_are_counted_per_ip(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 3, ip="10.0.0.1")
        add_failed_logins(db_session, clinic, admin.id, 3, ip="10.0.0.2")
        assert monitor_failed_logins(db_session, clinic.id) == []

    def test_report_summary(self, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 5)
        log_audit_event(
            db_session, action="update_clinic", type="configuration_change", user_id=admin.id, clinic_id=clinic.id
        )
        log_data_operation(db_session, admin.id, clinic.id, "delete", "patient", "p-1", success=False)

        report = run_security_monitoring(db_session, clinic.id)
        assert report["summary"] == {"total": 3, "low": 0, "medium": 1, "high": 2, "critical": 0}
        assert {a["type"] for a in report["alerts"]} == {
            "failed_login_attempts",
            "configuration_change",
            "data_breach_attempt",
        }

    def test_monitoring_endpoint(self, client, db_session, clinic, admin):
        add_failed_logins(db_session, clinic, admin.id, 10)
        response = client.get("/security/monitoring", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["summary"]["critical"] == 1
