from datetime import timedelta

import pytest

from swapstation.core import messages
from swapstation.core.exceptions import ValidationError
from swapstation.core.timeutils import utcnow
from swapstation.services import verification

from conftest import DRIVER_EMAIL, DRIVER_PASSWORD, login

NEW_ACCOUNT = {
    "fullname": "Trần Thị C",
    "email": "Tran.C@Example.com",
    "phone_number": "0911222333",
    "citizen_id": "079203004567",
    "driving_license": "790123456780",
    "password": "password1",
    "confirmPassword": "password1",
}


def verify_email(client, email):
    response = client.post("/api/auth/request-verification", json={"email": email})
    assert response.status_code == 200, response.text
    code = response.json()["payload"]["code"]
    response = client.post("/api/auth/verify-email", json={"email": email, "code": code})
    assert response.status_code == 200, response.text
    return response.json()


def test_register_then_login(client):
    verified = verify_email(client, NEW_ACCOUNT["email"])
    assert verified["payload"] == {"verified": True, "email": "tran.c@example.com"}
    assert verified["message"] == messages.EMAIL_VERIFIED

    response = client.post("/api/auth/register", json=NEW_ACCOUNT)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == messages.REGISTER_SUCCESS
    account = body["payload"]["account"]
    assert account["email"] == "tran.c@example.com"
    assert account["permission"] == "driver"
    assert "password_hash" not in account

    headers = login(client, "tran.c@example.com", "password1")
    profile = client.get("/api/auth/profile", headers=headers).json()
    assert profile["payload"]["account"]["fullname"] == "Trần Thị C"


def test_register_duplicate_email_conflicts(client):
    response = client.post("/api/auth/register", json={**NEW_ACCOUNT, "email": DRIVER_EMAIL})
    assert response.status_code == 409
    assert response.json()["errors"]["email"] == messages.EMAIL_IN_USE


def test_register_requires_verified_email(client):
    response = client.post("/api/auth/register", json=NEW_ACCOUNT)
    assert response.status_code == 422
    assert response.json()["errors"]["email"] == messages.EMAIL_NOT_VERIFIED

    # A code that was only requested, never confirmed, does not count.
    client.post("/api/auth/request-verification", json={"email": NEW_ACCOUNT["email"]})
    assert client.post("/api/auth/register", json=NEW_ACCOUNT).status_code == 422


def test_verification_code_checks(client):
    response = client.post("/api/auth/request-verification", json={"email": DRIVER_EMAIL})
    assert response.status_code == 409
    assert response.json()["message"] == messages.EMAIL_IN_USE

    response = client.post("/api/auth/request-verification", json={"email": "new.driver@example.com"})
    assert response.json()["message"] == messages.VERIFICATION_SENT
    assert response.json()["payload"]["expires_in"] == 600
    code = response.json()["payload"]["code"]
    assert len(code) == 6 and code.isdigit()

    wrong = "000000" if code != "000000" else "111111"
    response = client.post("/api/auth/verify-email", json={"email": "new.driver@example.com", "code": wrong})
    assert response.status_code == 422
    assert response.json()["errors"]["code"] == messages.OTP_INVALID

    response = client.post("/api/auth/verify-email", json={"email": "new.driver@example.com", "code": "12ab"})
    assert response.status_code == 422
    assert messages.OTP_FORMAT in response.json()["errors"].values()


def test_newer_code_replaces_older_one(db):
    now = utcnow()
    first = verification.issue_code(db, "a.driver@example.com", verification.REGISTER, now)
    first_code = first.code
    second = verification.issue_code(db, "a.driver@example.com", verification.REGISTER, now)

    if first_code != second.code:
        with pytest.raises(ValidationError):
            verification.verify_email(db, "a.driver@example.com", first_code, now)
    with pytest.raises(ValidationError) as excinfo:
        verification.verify_email(db, "a.driver@example.com", second.code, now + timedelta(minutes=11))
    assert excinfo.value.message == messages.OTP_INVALID

    verification.verify_email(db, "a.driver@example.com", second.code, now + timedelta(minutes=5))
    verification.consume_verification(db, "a.driver@example.com", now + timedelta(minutes=6))
    db.commit()
    with pytest.raises(ValidationError) as excinfo:
        verification.consume_verification(db, "a.driver@example.com", now + timedelta(minutes=6))
    assert excinfo.value.message == messages.EMAIL_NOT_VERIFIED


def test_register_invalid_form_returns_field_errors(client):
    response = client.post("/api/auth/register", json={**NEW_ACCOUNT, "phone_number": "12ab"})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert "Số điện thoại phải có 10-11 chữ số" in body["errors"].values()


def test_login_wrong_password(client):
    response = client.post("/api/auth/login", json={"email": DRIVER_EMAIL, "password": "wrongpass"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": messages.INVALID_CREDENTIALS}


def test_login_returns_tokens_and_account(client):
    response = client.post(
        "/api/auth/login",
        json={"email": DRIVER_EMAIL, "password": DRIVER_PASSWORD, "rememberMe": True},
    )
    payload = response.json()["payload"]
    assert payload["token"]
    assert payload["refresh_token"]
    assert payload["remember_me"] is True
    assert payload["account"]["email"] == DRIVER_EMAIL


def test_profile_requires_token(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json()["message"] == messages.INVALID_TOKEN

    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == messages.SESSION_EXPIRED


def test_refresh_issues_new_access_token(client):
    tokens = client.post(
        "/api/auth/login", json={"email": DRIVER_EMAIL, "password": DRIVER_PASSWORD}
    ).json()["payload"]

    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["refresh_token"]})
    assert response.status_code == 200
    new_token = response.json()["payload"]["token"]
    assert client.get("/api/auth/profile", headers={"Authorization": f"Bearer {new_token}"}).status_code == 200

    # An access token is not accepted as a refresh token.
    response = client.post("/api/auth/refresh", json={"refreshToken": tokens["token"]})
    assert response.status_code == 401


def test_update_profile_keeps_email(client, driver_headers):
    response = client.put(
        "/api/auth/profile",
        headers=driver_headers,
        json={
            "fullname": "Nguyễn Văn Ba",
            "email": "someone.else@example.com",
            "phone_number": "0912345678",
            "citizen_id": "001203004567",
            "driving_license": "790123456789",
        },
    )
    assert response.status_code == 200
    account = response.json()["payload"]["account"]
    assert account["fullname"] == "Nguyễn Văn Ba"
    assert account["phone_number"] == "0912345678"
    assert account["email"] == DRIVER_EMAIL


def test_change_password(client, driver_headers):
    response = client.post(
        "/api/auth/change-password",
        headers=driver_headers,
        json={"currentPassword": "nottheone", "newPassword": "newpass1", "confirmNewPassword": "newpass1"},
    )
    assert response.status_code == 422
    assert response.json()["errors"]["current_password"] == messages.WRONG_CURRENT_PASSWORD

    response = client.post(
        "/api/auth/change-password",
        headers=driver_headers,
        json={"currentPassword": DRIVER_PASSWORD, "newPassword": "newpass1", "confirmNewPassword": "newpass1"},
    )
    assert response.status_code == 200
    assert response.json()["message"] == messages.PASSWORD_CHANGED
    login(client, DRIVER_EMAIL, "newpass1")


def test_forgot_and_reset_password(client):
    response = client.post("/api/auth/forgot-password", json={"email": DRIVER_EMAIL})
    assert response.status_code == 200
    assert response.json()["message"] == messages.RESET_EMAIL_SENT
    token = response.json()["payload"]["reset_token"]

    response = client.post(
        "/api/auth/reset-password",
        json={"token": token, "newPassword": "resetpass1", "confirmPassword": "resetpass1"},
    )
    assert response.status_code == 200
    login(client, DRIVER_EMAIL, "resetpass1")

    # Tokens are single use.
    response = client.post(
        "/api/auth/reset-password",
        json={"token": token, "newPassword": "another12", "confirmPassword": "another12"},
    )
    assert response.status_code == 422
    assert response.json()["message"] == messages.RESET_TOKEN_INVALID


def test_forgot_password_unknown_email_looks_the_same(client):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert response.json()["message"] == messages.RESET_EMAIL_SENT
    assert response.json()["payload"] == {}


def test_logout(client, driver_headers):
    response = client.post("/api/auth/logout", headers=driver_headers)
    assert response.status_code == 200
    assert response.json()["message"] == messages.LOGOUT_OK


def test_reset_password_with_emailed_code(client):
    response = client.post("/api/auth/forgot-password", json={"email": DRIVER_EMAIL})
    code = response.json()["payload"]["reset_code"]

    body = {"email": DRIVER_EMAIL, "code": code, "newPassword": "otpreset1", "confirmPassword": "otpreset1"}
    response = client.post("/api/auth/reset-password", json=body)
    assert response.status_code == 200
    assert response.json()["message"] == messages.PASSWORD_RESET_OK
    login(client, DRIVER_EMAIL, "otpreset1")

    response = client.post("/api/auth/reset-password", json=body)
    assert response.status_code == 422
    assert response.json()["errors"]["code"] == messages.OTP_INVALID


def test_reset_password_needs_token_or_code(client):
    response = client.post(
        "/api/auth/reset-password",
        json={"email": DRIVER_EMAIL, "newPassword": "otpreset1", "confirmPassword": "otpreset1"},
    )
    assert response.status_code == 422
    assert response.json()["message"] == messages.RESET_CREDENTIAL_REQUIRED
