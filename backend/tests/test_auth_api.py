"""
API tests for authentication routes
"""
from unittest.mock import patch

from sqlalchemy import select

from halal_tools.models.user import User
from halal_tools.services.email_service import EmailService


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def test_signup_returns_token_and_user(client):
    response = client.post(
        "/api/auth/signup",
        json={
            "email": "New@Example.com",
            "name": "New User",
            "password": "pw123456",
            "country": "Pakistan",
            "frontendFreeUses": 1,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["token"]
    assert body["is_premium"] is False
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["country"] == "Pakistan"
    # Client-side counters are ignored
    assert body["user"]["free_uses"] == 5


def test_signup_duplicate_email(client, signup):
    signup(email="dup@example.com")
    response = client.post(
        "/api/auth/signup",
        json={"email": "dup@example.com", "name": "Again", "password": "pw"},
    )
    assert response.status_code == 400
    assert response.json()["type"] == "validation_error"


def test_signup_rejects_invalid_email(client):
    response = client.post("/api/auth/signup", json={"email": "nope", "name": "X", "password": "pw"})
    assert response.status_code == 422


def test_login_and_me(client, signup):
    signup(email="login@example.com", password="correct-horse")

    bad = client.post("/api/auth/login", json={"email": "login@example.com", "password": "wrong"})
    assert bad.status_code == 401

    response = client.post("/api/auth/login", json={"email": "login@example.com", "password": "correct-horse"})
    assert response.status_code == 200
    token = response.json()["token"]

    me = client.get("/api/auth/me", headers=_auth(token))
    assert me.status_code == 200
    assert me.json()["email"] == "login@example.com"
    assert me.json()["last_login"] is not None


def test_signup_and_login_with_over_long_password(client, signup):
    response = client.post(
        "/api/auth/signup",
        json={"email": "long@example.com", "name": "Long", "password": "p" * 80},
    )
    assert response.status_code == 400
    assert response.json()["type"] == "validation_error"

    signup(email="short@example.com", password="correct-horse")
    login = client.post("/api/auth/login", json={"email": "short@example.com", "password": "p" * 80})
    assert login.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers=_auth("bad-token")).status_code == 401


def test_free_uses_message(client, signup):
    _, token = signup()
    body = client.get("/api/auth/free-uses", headers=_auth(token)).json()
    assert body == {
        "remaining_uses": 5,
        "is_premium": False,
        "message": "You have 5 free uses remaining this month",
    }


def test_free_uses_premium(client, db, signup):
    user, token = signup()
    db.execute(select(User).where(User.email == user["email"])).scalar_one().is_premium = True
    db.commit()

    body = client.get("/api/auth/free-uses", headers=_auth(token)).json()
    assert body["remaining_uses"] == "unlimited"
    assert body["message"] == "You have unlimited uses with premium plan"


def test_forgot_and_reset_password(client, signup):
    signup(email="reset@example.com", password="before")

    with patch.object(EmailService, "send_password_reset_otp") as send:
        response = client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
    assert response.status_code == 200
    assert response.json() == {"message": "OTP sent to your email address."}
    to_address, otp = send.call_args.args
    assert to_address == "reset@example.com"

    response = client.post(
        "/api/auth/reset-password",
        json={"email": "reset@example.com", "otp": otp, "newPassword": "after", "confirmPassword": "after"},
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": "reset@example.com", "password": "after"})
    assert login.status_code == 200


def test_forgot_password_errors(client, signup):
    assert client.post("/api/auth/forgot-password", json={}).status_code == 400
    assert client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"}).status_code == 404

    signup(email="limit@example.com")
    with patch.object(EmailService, "send_password_reset_otp"):
        for _ in range(3):
            assert client.post("/api/auth/forgot-password", json={"email": "limit@example.com"}).status_code == 200
        response = client.post("/api/auth/forgot-password", json={"email": "limit@example.com"})
    assert response.status_code == 429
    assert response.json()["detail"] == "You have reached the daily OTP limit (3)"


def test_forgot_password_without_smtp(client, signup):
    signup(email="nosmtp@example.com")
    response = client.post("/api/auth/forgot-password", json={"email": "nosmtp@example.com"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Server error. Please try again later."


def test_reset_password_mismatch(client):
    response = client.post(
        "/api/auth/reset-password",
        json={"email": "a@example.com", "otp": "123456", "newPassword": "x", "confirmPassword": "y"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Passwords do not match"


def test_delete_account(client, db, signup):
    user, token = signup(email="gone@example.com")
    other, other_token = signup(email="stay@example.com")

    forbidden = client.delete(f"/api/auth/users/{user['id']}", headers=_auth(other_token))
    assert forbidden.status_code == 403

    assert client.delete(f"/api/auth/users/{user['id']}").status_code == 401

    response = client.delete(f"/api/auth/users/{user['id']}", headers=_auth(token))
    assert response.status_code == 204
    db.expire_all()
    assert db.execute(select(User).where(User.email == "gone@example.com")).first() is None
    assert client.get("/api/auth/me", headers=_auth(token)).status_code == 401
