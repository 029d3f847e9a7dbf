import pytest

from app.core.sms import SmsResult

API = "/api/v1/auth"


@pytest.fixture
def sent_sms(monkeypatch):
    """Captures OTP codes instead of calling the SMS gateway."""
    sent = []

    async def fake_send_otp_sms(phone, code, purpose):
        sent.append({"phone": phone, "code": code, "purpose": purpose})
        return SmsResult(success=True, message_id="test")

    monkeypatch.setattr("app.services.auth_service.send_otp_sms", fake_send_otp_sms)
    return sent


async def _verify_phone(client, sent_sms, phone, purpose):
    response = await client.post(f"{API}/otp/send", json={"phone": phone, "purpose": purpose})
    assert response.status_code == 200
    code = sent_sms[-1]["code"]
    response = await client.post(f"{API}/otp/verify", json={"phone": phone, "code": code, "purpose": purpose})
    assert response.status_code == 200
    return response.json()["verificationToken"]


async def test_phone_registration_and_login(client, sent_sms):
    response = await client.post(f"{API}/otp/send", json={"phone": "+977 9812345678", "purpose": "REGISTER"})
    assert response.status_code == 200
    body = response.json()
    assert body["phone"] == "981****678"
    assert body["expiresIn"] == 300
    assert sent_sms[0]["purpose"] == "register"

    response = await client.post(
        f"{API}/otp/verify",
        json={"phone": "9812345678", "code": sent_sms[0]["code"], "purpose": "REGISTER"},
    )
    assert response.status_code == 200
    assert response.json()["purpose"] == "REGISTER"
    token = response.json()["verificationToken"]

    response = await client.post(f"{API}/register", json={
        "name": "Sita Rai",
        "phone": "9812345678",
        "password": "secret-pass",
        "verificationToken": token,
    })
    assert response.status_code == 201
    body = response.json()
    assert body["loginWith"] == "phone"
    assert body["user"]["phone_verified"] is True

    # verification tokens are single use
    response = await client.post(f"{API}/register", json={
        "phone": "9812345678",
        "password": "secret-pass",
        "verificationToken": token,
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Verification expired. Please request a new OTP."}

    response = await client.post(f"{API}/login", json={"identifier": "9812345678", "password": "secret-pass"})
    assert response.status_code == 200
    access_token = response.json()["access_token"]

    response = await client.get(f"{API}/me", headers={"Authorization": f"Bearer {access_token}"})
    assert response.status_code == 200
    assert response.json()["name"] == "Sita Rai"


async def test_wrong_otp_counts_attempts(client, sent_sms):
    await client.post(f"{API}/otp/send", json={"phone": "9812345678", "purpose": "REGISTER"})
    response = await client.post(
        f"{API}/otp/verify",
        json={"phone": "9812345678", "code": "000000", "purpose": "REGISTER"},
    )
    assert response.status_code == 400
    assert response.json() == {
        "error": "Invalid OTP code. 4 attempts remaining.",
        "remainingAttempts": 4,
    }


async def test_verify_without_otp(client):
    response = await client.post(
        f"{API}/otp/verify",
        json={"phone": "9812345678", "code": "123456", "purpose": "REGISTER"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "OTP expired or not found. Please request a new one."


async def test_otp_send_is_rate_limited_per_phone(client, sent_sms):
    for _ in range(3):
        response = await client.post(f"{API}/otp/send", json={"phone": "9812345678", "purpose": "REGISTER"})
        assert response.status_code == 200
    response = await client.post(f"{API}/otp/send", json={"phone": "9812345678", "purpose": "REGISTER"})
    assert response.status_code == 429
    assert response.json()["retryAfter"] > 0
    assert "Retry-After" in response.headers


async def test_otp_send_validates_phone_and_purpose(client, sent_sms):
    response = await client.post(f"{API}/otp/send", json={"phone": "12345", "purpose": "REGISTER"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid Nepal mobile number. Use format: 98XXXXXXXX"

    response = await client.post(f"{API}/otp/send", json={"phone": "9812345678", "purpose": "SIGNUP"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid purpose"
    assert sent_sms == []


async def test_forgot_password_for_unknown_phone_does_not_send(client, sent_sms):
    response = await client.post(f"{API}/otp/send", json={"phone": "9812345678", "purpose": "FORGOT_PASSWORD"})
    assert response.status_code == 200
    assert response.json()["message"] == "If this phone is registered, you will receive an OTP."
    assert sent_sms == []


async def test_reset_password(client, sent_sms, make_user):
    await make_user(phone="9812345678", password="old-password")
    token = await _verify_phone(client, sent_sms, "9812345678", "FORGOT_PASSWORD")

    response = await client.post(f"{API}/reset-password", json={
        "phone": "9812345678",
        "password": "new-password",
        "verificationToken": token,
    })
    assert response.status_code == 200

    response = await client.post(f"{API}/login", json={"identifier": "9812345678", "password": "old-password"})
    assert response.status_code == 401
    response = await client.post(f"{API}/login", json={"identifier": "9812345678", "password": "new-password"})
    assert response.status_code == 200


async def test_register_token_purpose_must_match(client, sent_sms, make_user):
    await make_user(phone="9812345678")
    token = await _verify_phone(client, sent_sms, "9812345678", "FORGOT_PASSWORD")
    response = await client.post(f"{API}/register", json={
        "phone": "9812345678",
        "password": "secret-pass",
        "verificationToken": token,
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid verification token for registration."


async def test_email_registration_login_and_logout(client):
    response = await client.post(f"{API}/register", json={
        "email": "Patient@Example.com",
        "password": "secret-pass",
        "accountType": "clinic",
    })
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "PROFESSIONAL"
    assert response.json()["loginWith"] == "email"

    response = await client.post(f"{API}/login", json={"identifier": "patient@example.com", "password": "secret-pass"})
    assert response.status_code == 200
    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

    response = await client.post(f"{API}/logout", headers=headers)
    assert response.status_code == 200

    response = await client.get(f"{API}/me", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


async def test_register_rejects_short_password_and_duplicates(client, make_user):
    await make_user(email="taken@example.com")
    response = await client.post(f"{API}/register", json={"email": "new@example.com", "password": "short"})
    assert response.status_code == 400
    assert response.json()["error"] == "Password must be at least 8 characters"

    response = await client.post(f"{API}/register", json={"email": "taken@example.com", "password": "secret-pass"})
    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


async def test_register_is_rate_limited_per_ip(client):
    headers = {"X-Forwarded-For": "203.0.113.9"}
    for i in range(5):
        response = await client.post(
            f"{API}/register",
            json={"email": f"user{i}@example.com", "password": "secret-pass"},
            headers=headers,
        )
        assert response.status_code == 201
    response = await client.post(
        f"{API}/register",
        json={"email": "user5@example.com", "password": "secret-pass"},
        headers=headers,
    )
    assert response.status_code == 429


async def test_login_with_bad_credentials(client, make_user):
    await make_user(email="someone@example.com", password="right-password")
    response = await client.post(f"{API}/login", json={"identifier": "someone@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}
