def test_admin_lists_users_with_filters_and_pagination(client, admin, agent, farmer, make_user):
    _, headers = admin
    make_user(email="second.farmer@example.com", full_name="Second Farmer")

    resp = client.get("/api/users", params={"limit": 2}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["data"]) == 2
    assert body["meta"]["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 4,
        "totalPages": 2,
        "hasNext": True,
        "hasPrev": False,
    }
    assert all("password" not in u for u in body["data"])

    resp = client.get("/api/users", params={"role": "farmer"}, headers=headers)
    assert {u["email"] for u in resp.json()["data"]} == {"farmer@example.com", "second.farmer@example.com"}

    resp = client.get("/api/users", params={"search": "SECOND"}, headers=headers)
    assert [u["email"] for u in resp.json()["data"]] == ["second.farmer@example.com"]


def test_agent_can_list_farmers_but_not_all_users(client, agent, farmer, manager):
    _, headers = agent
    resp = client.get("/api/users/farmers", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Farmers retrieved successfully"
    assert [u["role"] for u in resp.json()["data"]] == ["farmer"]

    assert client.get("/api/users", headers=headers).status_code == 403
    assert client.get("/api/users/agents", headers=headers).status_code == 403


def test_role_listings_for_admin(client, admin, agent, manager):
    _, headers = admin
    agents = client.get("/api/users/agents", headers=headers).json()["data"]
    managers = client.get("/api/users/shop-managers", headers=headers).json()["data"]
    assert [u["email"] for u in agents] == ["agent@example.com"]
    assert [u["email"] for u in managers] == ["manager@example.com"]


def test_search_users(client, admin, farmer):
    _, headers = admin
    resp = client.get("/api/users/search", params={"q": "farmer@"}, headers=headers)
    assert resp.status_code == 200
    assert [u["email"] for u in resp.json()["data"]] == ["farmer@example.com"]

    resp = client.get("/api/users/search", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "REQ_VALIDATION_FAILED"


def test_get_user_validates_id_and_existence(client, farmer):
    user, headers = farmer
    resp = client.get(f"/api/users/{user['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == "farmer@example.com"

    resp = client.get("/api/users/not-an-id", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_ID"
    assert resp.json()["message"] == "Invalid ID format"

    resp = client.get("/api/users/65f0a1b2c3d4e5f601234567", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "User not found"


def test_non_admin_update_drops_role_and_status(client, farmer):
    user, headers = farmer
    resp = client.put(
        f"/api/users/{user['id']}",
        json={"full_name": "Renamed Farmer", "role": "admin", "status": "inactive"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["full_name"] == "Renamed Farmer"
    assert data["role"] == "farmer"
    assert data["status"] == "active"


def test_user_cannot_update_someone_else(client, farmer, agent):
    agent_user, _ = agent
    _, farmer_headers = farmer
    resp = client.put(f"/api/users/{agent_user['id']}", json={"full_name": "Hijacked"}, headers=farmer_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied"


def test_admin_updates_role_and_status(client, admin, farmer):
    user, _ = farmer
    _, headers = admin
    resp = client.put(f"/api/users/{user['id']}", json={"role": "agent"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "agent"

    resp = client.put(f"/api/users/{user['id']}/role", json={"role": "overlord"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid role value"

    resp = client.put(f"/api/users/{user['id']}/status", json={"status": "sleeping"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid status value"

    resp = client.put(f"/api/users/{user['id']}/role", json={"role": "shop_manager"}, headers=headers)
    assert resp.json()["data"]["role"] == "shop_manager"


def test_last_admin_cannot_be_demoted_or_deactivated(client, admin):
    user, headers = admin
    resp = client.put(f"/api/users/{user['id']}/role", json={"role": "farmer"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "LAST_ADMIN"

    resp = client.put(f"/api/users/{user['id']}/status", json={"status": "inactive"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot remove the last admin user"


def test_second_admin_allows_demotion(client, admin, make_user):
    _, headers = admin
    other, _ = make_user(email="admin2@example.com", role="admin", full_name="Other Admin")
    resp = client.put(f"/api/users/{other['id']}/role", json={"role": "agent"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "agent"


def test_delete_user_rules(client, admin, farmer):
    admin_user, headers = admin
    farmer_user, _ = farmer

    resp = client.delete(f"/api/users/{admin_user['id']}", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot delete your own account"

    resp = client.delete(f"/api/users/{farmer_user['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": farmer_user["id"], "deleted": True}

    resp = client.get(f"/api/users/{farmer_user['id']}", headers=headers)
    assert resp.status_code == 404
