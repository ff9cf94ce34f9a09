import logging


def test_register_login_profile_update_flow(client):
    resp = client.post(
        "/api/auth/register",
        json={
            "email": "Jane.Farmer@Example.com",
            "password": "Passw0rd!",
            "full_name": "Jane Farmer",
            "phone": "+250788123456",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"
    registered = body["data"]["user"]
    assert registered["email"] == "jane.farmer@example.com"
    assert registered["role"] == "farmer"
    assert registered["status"] == "active"
    assert "password" not in registered
    assert body["data"]["token"]

    resp = client.post("/api/auth/login", json={"email": "jane.farmer@example.com", "password": "Passw0rd!"})
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]
    headers = {"Authorization": f"Bearer {token}"}

    resp = client.get("/api/auth/profile", headers=headers)
    assert resp.status_code == 200
    profile = resp.json()["data"]
    assert profile["id"] == registered["id"]
    assert profile["phone"] == "+250788123456"
    assert "password" not in profile

    resp = client.put(
        "/api/auth/profile",
        json={"full_name": "Jane M. Farmer", "profile": {"province": "Eastern", "farm_size": 2.5}},
        headers=headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["full_name"] == "Jane M. Farmer"
    assert updated["profile"] == {"province": "Eastern", "farm_size": 2.5}

    resp = client.put("/api/auth/profile", json={"profile": {"district": "Kayonza"}}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["profile"] == {"province": "Eastern", "farm_size": 2.5, "district": "Kayonza"}


def test_register_rejects_duplicate_email(client):
    payload = {"email": "dup@example.com", "password": "Passw0rd!", "full_name": "Dup User"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    resp = client.post("/api/auth/register", json={**payload, "email": "DUP@example.com"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "USER_EXISTS"
    assert resp.json()["message"] == "User with this email already exists"


def test_register_validation_reports_fields(client):
    resp = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "weakpass", "full_name": "A"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["error"]["code"] == "REQ_VALIDATION_FAILED"
    fields = {e["field"] for e in body["error"]["details"]["errors"]}
    assert {"email", "password", "full_name"} <= fields
    password_error = next(e for e in body["error"]["details"]["errors"] if e["field"] == "password")
    assert password_error["value"] == "***REDACTED***"


def test_passwords_longer_than_bcrypt_limit_are_rejected(client, farmer):
    long_password = "Aa1!" + "x" * 80
    resp = client.post(
        "/api/auth/register",
        json={"email": "long@example.com", "password": long_password, "full_name": "Long Password"},
    )
    assert resp.status_code == 400
    errors = resp.json()["error"]["details"]["errors"]
    assert errors[0]["field"] == "password"
    assert errors[0]["message"] == "Password must be at most 72 bytes long"

    _, headers = farmer
    resp = client.put(
        "/api/auth/password",
        json={"currentPassword": "Passw0rd!", "newPassword": long_password},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["errors"][0]["field"] == "newPassword"

    login = client.post("/api/auth/login", json={"email": "farmer@example.com", "password": long_password})
    assert login.status_code == 401

    exactly_72 = "Aa1!" + "x" * 68
    resp = client.post(
        "/api/auth/register",
        json={"email": "edge@example.com", "password": exactly_72, "full_name": "Edge Password"},
    )
    assert resp.status_code == 201


def test_login_rejects_bad_credentials(client, farmer):
    resp = client.post("/api/auth/login", json={"email": "farmer@example.com", "password": "Wrong0ne!"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"

    resp = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "Passw0rd!"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"


def test_login_rejects_inactive_account(client, admin, farmer):
    farmer_user, _ = farmer
    _, admin_headers = admin
    resp = client.put(f"/api/users/{farmer_user['id']}/status", json={"status": "inactive"}, headers=admin_headers)
    assert resp.status_code == 200

    resp = client.post("/api/auth/login", json={"email": "farmer@example.com", "password": "Passw0rd!"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Account is inactive"


def test_inactive_user_token_is_rejected(client, admin, farmer):
    farmer_user, farmer_headers = farmer
    _, admin_headers = admin
    client.put(f"/api/users/{farmer_user['id']}/status", json={"status": "inactive"}, headers=admin_headers)

    resp = client.get("/api/auth/profile", headers=farmer_headers)
    assert resp.status_code == 401
    assert resp.json()["message"] == "User account is inactive"


def test_profile_requires_token(client):
    resp = client.get("/api/auth/profile")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "AUTH_UNAUTHORIZED"
    assert resp.json()["message"] == "Access token is required"


def test_profile_update_without_fields_is_rejected(client, farmer):
    _, headers = farmer
    resp = client.put("/api/auth/profile", json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "No valid fields provided for update"


def test_change_password_then_login_with_new_password(client, farmer):
    _, headers = farmer
    resp = client.put(
        "/api/auth/password",
        json={"currentPassword": "Wrong0ne!", "newPassword": "N3wPassw0rd!"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Current password is incorrect"

    resp = client.put(
        "/api/auth/password",
        json={"currentPassword": "Passw0rd!", "newPassword": "N3wPassw0rd!"},
        headers=headers,
    )
    assert resp.status_code == 200

    old = client.post("/api/auth/login", json={"email": "farmer@example.com", "password": "Passw0rd!"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": "farmer@example.com", "password": "N3wPassw0rd!"})
    assert new.status_code == 200


def test_refresh_verify_and_logout(client, farmer):
    user, headers = farmer
    resp = client.post("/api/auth/refresh", headers=headers)
    assert resp.status_code == 200
    fresh = {"Authorization": f"Bearer {resp.json()['data']['token']}"}

    resp = client.get("/api/auth/verify", headers=fresh)
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == user["id"]

    resp = client.post("/api/auth/logout", headers=fresh)
    assert resp.status_code == 200
    assert resp.json()["data"] is None


def test_response_carries_trace_headers(client):
    resp = client.get("/health", headers={"x-trace-id": "trace-abc", "x-request-id": "req-1"})
    assert resp.status_code == 200
    assert resp.headers["x-trace-id"] == "trace-abc"
    assert resp.headers["x-request-id"] == "req-1"
    assert resp.json()["meta"]["trace_id"] == "trace-abc"


def test_requests_are_logged_as_key_value_lines(client, caplog):
    caplog.set_level(logging.INFO, logger="app.main")
    client.get("/health")
    lines = [r.getMessage() for r in caplog.records if r.name == "app.main"]
    assert any(
        line.startswith("request_completed method=GET path=/health status=200 duration_ms=") for line in lines
    )
