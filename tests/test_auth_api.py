"""Tests for login, registration and password management"""

from urllib.parse import parse_qs, urlparse

import pytest

from app.models import Clinic, SecurityLog, User
from app.routes import auth as auth_routes
from app.security_utils import verify_password
from tests.conftest import TEST_PASSWORD, auth_headers, create_user


@pytest.fixture
def reset_emails(monkeypatch):
    sent = []

    async def send(to, user_name, reset_link):
        sent.append({"to": to, "name": user_name, "link": reset_link})
        return {"id": "email-1"}

    monkeypatch.setattr(auth_routes, "send_password_reset_email", send)
    return sent


def token_from_link(link):
    return parse_qs(urlparse(link).query)["token"][0]


class TestLogin:
    def test_login_returns_token_and_user(self, client, db_session, admin, clinic):
        response = client.post("/auth/login", json={"email": "ADMIN@clinica.com.br", "password": TEST_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["tokenType"] == "bearer"
        assert body["user"]["userType"] == "admin"
        assert body["user"]["clinic"] == {"id": clinic.id, "name": clinic.name}

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['accessToken']}"})
        assert me.json()["email"] == "admin@clinica.com.br"

        log = db_session.query(SecurityLog).filter(SecurityLog.type == "login").one()
        assert log.user_id == admin.id
        assert log.clinic_id == clinic.id

    def test_wrong_password_is_audited(self, client, db_session, admin, clinic):
        response = client.post("/auth/login", json={"email": admin.email, "password": "errada"})
        assert response.status_code == 401

        log = db_session.query(SecurityLog).filter(SecurityLog.type == "failed_login").one()
        assert log.success is False
        assert log.clinic_id == clinic.id
        assert "errada" not in str(log.details)

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "ninguem@example.com", "password": "x"})
        assert response.status_code == 401

    def test_doctor_with_temporary_password_must_change_it(self, client, db_session, clinic):
        create_user(db_session, clinic, "Dr. Novo", "novo@clinica.com.br", user_type="doctor", must_change_password=True)
        response = client.post("/auth/login", json={"email": "novo@clinica.com.br", "password": TEST_PASSWORD})
        assert response.json()["user"]["mustChangePassword"] is True

    def test_invalid_token_is_rejected(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestRegister:
    def test_register_creates_clinic_and_admin(self, client, db_session):
        response = client.post(
            "/auth/register",
            json={
                "name": "Fernanda Dias",
                "email": "fernanda@nova.com.br",
                "password": "umaSenhaForte1",
                "clinicName": "Clínica Nova",
            },
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["userType"] == "admin"
        assert body["user"]["clinic"]["name"] == "Clínica Nova"
        assert db_session.query(Clinic).filter(Clinic.name == "Clínica Nova").count() == 1

    def test_duplicate_email(self, client, admin):
        response = client.post(
            "/auth/register",
            json={"name": "X", "email": admin.email, "password": "umaSenhaForte1", "clinicName": "Y"},
        )
        assert response.status_code == 409


class TestChangePassword:
    def test_change_with_current_password(self, client, db_session, admin):
        response = client.post(
            "/auth/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "novaSenha9", "confirmPassword": "novaSenha9"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        db_session.refresh(admin)
        assert verify_password("novaSenha9", admin.password_hash)

        log = db_session.query(SecurityLog).filter(SecurityLog.type == "password_change").one()
        assert log.success is True

    def test_wrong_current_password(self, client, admin):
        response = client.post(
            "/auth/change-password",
            json={"currentPassword": "errada", "newPassword": "novaSenha9", "confirmPassword": "novaSenha9"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Senha atual incorreta"

    def test_confirmation_must_match(self, client, admin):
        response = client.post(
            "/auth/change-password",
            json={"currentPassword": TEST_PASSWORD, "newPassword": "novaSenha9", "confirmPassword": "outra123"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_forced_change_skips_current_password(self, client, db_session, clinic):
        user = create_user(
            db_session, clinic, "Dr. Novo", "novo@clinica.com.br", user_type="doctor", must_change_password=True
        )
        response = client.post(
            "/auth/change-password",
            json={"newPassword": "minhaSenha1", "confirmPassword": "minhaSenha1"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        db_session.refresh(user)
        assert user.must_change_password is False


class TestPasswordReset:
    def test_unknown_email_gets_generic_answer(self, client, reset_emails):
        response = client.post("/auth/forgot-password", json={"email": "ninguem@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == auth_routes.FORGOT_PASSWORD_MESSAGE
        assert reset_emails == []

    def test_reset_flow(self, client, db_session, admin, reset_emails):
        response = client.post("/auth/forgot-password", json={"email": admin.email})
        assert response.json()["message"] == auth_routes.FORGOT_PASSWORD_MESSAGE
        assert len(reset_emails) == 1
        link = reset_emails[0]["link"]
        assert "/authentication/reset-password?token=" in link

        token = token_from_link(link)
        reset = client.post("/auth/reset-password", json={"token": token, "newPassword": "recuperada1"})
        assert reset.status_code == 200
        db_session.refresh(admin)
        assert verify_password("recuperada1", admin.password_hash)

        # The link stops working once the password changed
        reused = client.post("/auth/reset-password", json={"token": token, "newPassword": "outraSenha2"})
        assert reused.status_code == 400

    def test_tampered_token(self, client, admin):
        response = client.post("/auth/reset-password", json={"token": "abc.def", "newPassword": "recuperada1"})
        assert response.status_code == 400

    def test_email_failure_is_reported(self, client, admin, monkeypatch):
        async def failing(to, user_name, reset_link):
            raise RuntimeError("smtp down")

        monkeypatch.setattr(auth_routes, "send_password_reset_email", failing)
        response = client.post("/auth/forgot-password", json={"email": admin.email})
        assert response.status_code == 200
        assert response.json()["success"] is False


class TestUsers:
    def test_list_clinic_users(self, client, admin, attendant, doctor, other_clinic, db_session):
        create_user(db_session, other_clinic, "Fora", "fora@outra.com")
        response = client.get("/users", headers=auth_headers(admin))
        assert response.status_code == 200
        emails = {u["email"] for u in response.json()}
        assert emails == {"admin@clinica.com.br", "atendente@clinica.com.br", "carlos@clinica.com.br"}
        doctors = [u for u in response.json() if u["userType"] == "doctor"]
        assert doctors[0]["doctorId"] == doctor.id

    def test_create_attendant(self, client, db_session, admin):
        response = client.post(
            "/users",
            json={"name": "Júlia", "email": "julia@clinica.com.br", "password": "senha1234", "userType": "atendente"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        assert response.json()["userType"] == "atendente"
        user = db_session.query(User).filter(User.email == "julia@clinica.com.br").one()
        assert user.clinic.id == admin.clinic.id

    def test_create_doctor_user_creates_doctor_profile(self, client, db_session, admin):
        response = client.post(
            "/users",
            json={
                "name": "Rafael Costa",
                "email": "rafael@clinica.com.br",
                "password": "senha1234",
                "userType": "doctor",
                "specialty": "Pediatria",
                "appointmentPriceInCents": 18000,
                "availableFromWeekDay": 1,
                "availableToWeekDay": 3,
                "availableFromTime": "09:00",
                "availableToTime": "13:00",
            },
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        user = db_session.query(User).filter(User.email == "rafael@clinica.com.br").one()
        assert user.doctor is not None
        assert user.doctor.specialty == "Pediatria"
        assert user.doctor.available_from_time == "12:00:00"
        assert response.json()["doctorId"] == user.doctor.id

    def test_doctor_user_needs_doctor_fields(self, client, admin):
        response = client.post(
            "/users",
            json={"name": "Sem", "email": "sem@clinica.com.br", "password": "senha1234", "userType": "doctor"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_short_password(self, client, admin):
        response = client.post(
            "/users",
            json={"name": "Curta", "email": "curta@clinica.com.br", "password": "123", "userType": "atendente"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    def test_delete_user(self, client, db_session, admin, attendant):
        attendant_id = attendant.id
        response = client.delete(f"/users/{attendant_id}", headers=auth_headers(admin))
        assert response.status_code == 200
        assert db_session.query(User).filter(User.id == attendant_id).first() is None

    def test_cannot_delete_self(self, client, admin):
        assert client.delete(f"/users/{admin.id}", headers=auth_headers(admin)).status_code == 400

    def test_cannot_delete_other_clinic_user(self, client, db_session, admin, other_clinic):
        outsider = create_user(db_session, other_clinic, "Fora", "fora@outra.com")
        assert client.delete(f"/users/{outsider.id}", headers=auth_headers(admin)).status_code == 404

    def test_attendant_cannot_manage_users(self, client, attendant):
        assert client.get("/users", headers=auth_headers(attendant)).status_code == 403
