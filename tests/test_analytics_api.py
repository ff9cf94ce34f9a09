SHIPPING = {
    "full_name": "Farmer One",
    "phone": "+250788000111",
    "street_address": "KG 11 Ave",
    "city": "Kigali",
    "province": "Kigali",
}

FUTURE_WINDOW = {"start_date": "2030-01-01T00:00:00Z", "end_date": "2030-12-31T00:00:00Z"}
REVERSED_WINDOW = {"start_date": "2030-01-01T00:00:00Z", "end_date": "2020-01-01T00:00:00Z"}


def _place(client, headers, product_id: str, quantity: int):
    resp = client.post(
        "/api/orders",
        json={"items": [{"product_id": product_id, "quantity": quantity}], "shipping_address": SHIPPING},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _sales_fixture(client, farmer, manager, product):
    """Two live orders (65.0 and 120.0) plus one cancelled order that analytics ignore."""
    _, headers = farmer
    _, manager_headers = manager
    first = _place(client, headers, product["id"], 2)
    _place(client, headers, product["id"], 4)
    cancelled = _place(client, headers, product["id"], 1)
    client.put(f"/api/orders/{cancelled['id']}/status", json={"status": "cancelled"}, headers=manager_headers)
    return first["order_date"]


def test_sales_analytics(client, farmer, manager, product):
    order_date = _sales_fixture(client, farmer, manager, product)
    _, headers = manager

    resp = client.get("/api/analytics/sales", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["period"]["end"] == order_date[:10]
    assert data["totals"] == {"orders": 2, "revenue": 185.0, "averageOrderValue": 92.5}
    assert data["trend"] == [{"date": order_date[:10], "orders": 2, "revenue": 185.0}]
    assert data["topProducts"] == [
        {"product_id": product["id"], "product_name": "Drip Line 16mm", "quantity_sold": 6, "revenue": 150.0}
    ]

    resp = client.get("/api/analytics/sales", params=FUTURE_WINDOW, headers=headers)
    assert resp.json()["data"]["totals"]["orders"] == 0
    assert resp.json()["data"]["trend"] == []
    assert resp.json()["data"]["period"] == {"start": "2030-01-01", "end": "2030-12-31"}


def test_product_analytics_joins_current_catalog(client, farmer, manager, product):
    order_date = _sales_fixture(client, farmer, manager, product)
    _, headers = manager

    resp = client.get("/api/analytics/products", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["products"] == [
        {
            "productId": product["id"],
            "productName": "Drip Line 16mm",
            "category": "irrigation",
            "currentStock": 43,
            "status": "available",
            "quantitySold": 6,
            "revenue": 150.0,
            "orders": 2,
            "lastOrdered": data["products"][0]["lastOrdered"],
        }
    ]
    assert data["products"][0]["lastOrdered"] >= order_date
    assert data["summary"] == {"totalProductsSold": 6, "totalRevenue": 150.0, "totalOrders": 2}


def test_user_analytics_is_admin_only(client, admin, farmer, manager, product):
    _sales_fixture(client, farmer, manager, product)
    _, admin_headers = admin
    _, headers = manager
    assert client.get("/api/analytics/users", headers=headers).status_code == 403

    resp = client.get("/api/analytics/users", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["registrations"]["total"] == 3
    assert len(data["registrations"]["trend"]) == 1
    assert data["registrations"]["trend"][0]["byRole"] == {"admin": 1, "farmer": 1, "shop_manager": 1}
    assert data["activity"] == {"activeUsers": 1}
    assert data["demographics"]["byRole"] == {"admin": 1, "agent": 0, "farmer": 1, "shop_manager": 1}
    assert data["demographics"]["byStatus"] == {"active": 3, "inactive": 0}

    resp = client.get("/api/analytics/users", params=FUTURE_WINDOW, headers=admin_headers)
    assert resp.json()["data"]["registrations"] == {"total": 0, "trend": []}
    assert resp.json()["data"]["activity"] == {"activeUsers": 0}


def test_monthly_order_trends(client, farmer, manager, product):
    order_date = _sales_fixture(client, farmer, manager, product)
    _, headers = manager

    resp = client.get("/api/analytics/orders/monthly", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["period"]["start"].endswith("-01")
    assert data["trends"] == [{"month": order_date[:7], "orders": 2, "revenue": 185.0, "averageOrderValue": 92.5}]
    assert data["summary"] == {"totalOrders": 2, "totalRevenue": 185.0, "overallAverageOrderValue": 92.5}

    resp = client.get("/api/analytics/orders/monthly", params=FUTURE_WINDOW, headers=headers)
    assert resp.json()["data"]["summary"] == {"totalOrders": 0, "totalRevenue": 0.0, "overallAverageOrderValue": 0.0}


def test_analytics_reject_reversed_windows_and_customers(client, admin, farmer):
    _, admin_headers = admin
    _, farmer_headers = farmer
    for path in (
        "/api/analytics/sales",
        "/api/analytics/products",
        "/api/analytics/users",
        "/api/analytics/orders/monthly",
    ):
        resp = client.get(path, params=REVERSED_WINDOW, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_DATE_RANGE"
        assert client.get(path, headers=farmer_headers).status_code == 403
