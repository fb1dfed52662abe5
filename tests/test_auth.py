"""
Tests for authentication endpoints (signup and login).

These tests verify:
  - Successful signup creates a member with an empty wallet and returns a JWT
  - Duplicate email signup is rejected (409 duplicate_email)
  - Successful login returns a valid JWT
  - Wrong password and unknown email get the same 401 (anti-enumeration)
  - Malformed bodies are rejected as invalid_body
  - Protected endpoints reject missing or forged tokens
"""


# ---------------------------------------------------------------------------
# Signup Tests
# ---------------------------------------------------------------------------

class TestSignup:
    """Tests for POST /auth/signup."""

    async def test_signup_success(self, client):
        """A valid signup should return 201 with user_id, email, and token."""
        response = await client.post(
            "/auth/signup",
            json={
                "email": "newuser@example.com",
                "password": "StrongPass99!",
                "full_name": "Jane Doe",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["user_type"] == "member"
        assert "token" in data
        assert "user_id" in data

    async def test_signup_without_full_name(self, client):
        """full_name is optional."""
        response = await client.post(
            "/auth/signup",
            json={"email": "noname@example.com", "password": "StrongPass99!"},
        )
        assert response.status_code == 201

    async def test_new_user_starts_with_empty_wallet(self, client):
        """A fresh member has a zero balance and an empty ledger."""
        signup = await client.post(
            "/auth/signup",
            json={"email": "fresh@example.com", "password": "StrongPass99!"},
        )
        headers = {"Authorization": f"Bearer {signup.json()['token']}"}

        balance = await client.get("/wallet/me/balance", headers=headers)
        assert balance.status_code == 200
        assert balance.json()["balance"] == 0
        assert balance.json()["match"] is True

        transactions = await client.get("/wallet/me/transactions", headers=headers)
        assert transactions.json() == []
        assert transactions.headers["x-total-count"] == "0"

    async def test_signup_duplicate_email(self, client):
        """Signing up with an already-registered email should return 409."""
        signup_data = {"email": "duplicate@example.com", "password": "StrongPass99!"}

        response1 = await client.post("/auth/signup", json=signup_data)
        assert response1.status_code == 201

        response2 = await client.post("/auth/signup", json=signup_data)
        assert response2.status_code == 409
        assert response2.json()["error_type"] == "duplicate_email"
        assert "already registered" in response2.json()["detail"]

    async def test_signup_short_password(self, client):
        """Passwords shorter than 8 characters should be rejected."""
        response = await client.post(
            "/auth/signup",
            json={"email": "short@example.com", "password": "short"},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_body"

    async def test_signup_invalid_email(self, client):
        """Invalid email format should be rejected."""
        response = await client.post(
            "/auth/signup",
            json={"email": "not-an-email", "password": "StrongPass99!"},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_body"

    async def test_signup_missing_fields(self, client):
        """Missing required fields should be rejected."""
        response = await client.post(
            "/auth/signup",
            json={"email": "missing@example.com"},
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_body"


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client):
        """Login with correct credentials should return a token."""
        await client.post(
            "/auth/signup",
            json={"email": "login@example.com", "password": "CorrectPass123!"},
        )

        response = await client.post(
            "/auth/login",
            json={"email": "login@example.com", "password": "CorrectPass123!"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "token" in data
        assert data["token_type"] == "bearer"

    async def test_login_wrong_password(self, client):
        """Login with wrong password should return 401."""
        await client.post(
            "/auth/signup",
            json={"email": "wrongpw@example.com", "password": "CorrectPass123!"},
        )

        response = await client.post(
            "/auth/login",
            json={"email": "wrongpw@example.com", "password": "WrongPassword!"},
        )
        assert response.status_code == 401
        assert response.json()["error_type"] == "invalid_credentials"
        assert "Invalid email or password" in response.json()["detail"]

    async def test_login_nonexistent_email(self, client):
        """Login with an unknown email should return 401.

        The error message must be identical to the wrong-password case to
        prevent user enumeration attacks.
        """
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "SomePassword123!"},
        )
        assert response.status_code == 401
        assert "Invalid email or password" in response.json()["detail"]

    async def test_login_token_works_for_protected_endpoint(self, client):
        """The token from login should grant access to protected endpoints."""
        signup = await client.post(
            "/auth/signup",
            json={"email": "protected@example.com", "password": "ValidPass123!"},
        )

        login_response = await client.post(
            "/auth/login",
            json={"email": "protected@example.com", "password": "ValidPass123!"},
        )
        token = login_response.json()["token"]

        balance_response = await client.get(
            "/wallet/me/balance",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert balance_response.status_code == 200
        assert balance_response.json()["user_id"] == signup.json()["user_id"]


# ---------------------------------------------------------------------------
# Token Validation Tests
# ---------------------------------------------------------------------------

class TestTokenValidation:
    """Tests for JWT token validation on protected endpoints."""

    async def test_no_token_returns_401(self, client):
        response = await client.get("/wallet/me/balance")
        assert response.status_code == 401

    async def test_invalid_token_returns_401(self, client):
        """An invalid/forged token should return 401."""
        response = await client.get(
            "/wallet/me/balance",
            headers={"Authorization": "Bearer totally.fake.token"},
        )
        assert response.status_code == 401

    async def test_malformed_auth_header_returns_401(self, client):
        response = await client.get(
            "/wallet/me/balance",
            headers={"Authorization": "NotBearer sometoken"},
        )
        assert response.status_code == 401

    async def test_health_is_public(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
