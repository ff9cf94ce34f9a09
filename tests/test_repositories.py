from __future__ import annotations

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from app.errors import DuplicateRecordError
from app.repositories.base import is_valid_object_id, match_document, new_object_id, sort_documents
from app.repositories.orders import InMemoryOrdersRepository, MongoOrdersRepository
from app.repositories.shops import InMemoryShopsRepository
from app.repositories.users import InMemoryUsersRepository, MongoUsersRepository
from app.store_backends import COLLECTION_INDEXES, MongoBackedStore


def _order(number: str, *, customer: str, total: float, items: list[dict]) -> dict:
    return {
        "order_number": number,
        "customer_id": customer,
        "total_amount": total,
        "status": "pending",
        "items": items,
    }


def test_object_ids():
    value = new_object_id()
    assert is_valid_object_id(value)
    assert not is_valid_object_id("not-an-id")
    assert not is_valid_object_id(None)
    assert not is_valid_object_id(b"123456789012")


def test_match_document_operators():
    doc = {
        "name": "Drip Line",
        "quantity": 5,
        "status": "available",
        "address": {"province": "Kigali"},
        "tags": ["irrigation", "drip"],
        "items": [{"product_id": "p1"}, {"product_id": "p2"}],
    }
    assert match_document(doc, {})
    assert match_document(doc, {"address.province": "Kigali"})
    assert match_document(doc, {"tags": "drip"})
    assert match_document(doc, {"items.product_id": {"$in": ["p2", "p9"]}})
    assert not match_document(doc, {"items.product_id": {"$nin": ["p1"]}})
    assert match_document(doc, {"quantity": {"$gt": 0, "$lte": 5}})
    assert not match_document(doc, {"quantity": {"$lt": 5}})
    assert match_document(doc, {"status": {"$ne": "discontinued"}})
    assert match_document(doc, {"name": {"$regex": "drip", "$options": "i"}})
    assert not match_document(doc, {"name": {"$regex": "drip"}})
    assert match_document(doc, {"brand": {"$exists": False}})
    assert match_document(doc, {"brand": None})
    assert match_document(doc, {"$or": [{"quantity": 0}, {"status": "available"}]})
    assert not match_document(doc, {"$and": [{"quantity": 5}, {"status": "out_of_stock"}]})
    assert not match_document(doc, {"quantity": {"$gt": "a"}})
    with pytest.raises(ValueError):
        match_document(doc, {"quantity": {"$mod": [2, 1]}})


def test_sort_documents_multi_key_with_missing_values():
    rows = [
        {"id": "a", "rating": 4.0, "total_orders": 1},
        {"id": "b", "rating": 4.0, "total_orders": 9},
        {"id": "c", "rating": 5.0, "total_orders": 0},
        {"id": "d"},
    ]
    ordered = sort_documents(rows, [("rating", -1), ("total_orders", -1)])
    assert [r["id"] for r in ordered] == ["c", "b", "a", "d"]
    assert [r["id"] for r in sort_documents(rows, [("rating", 1)])] == ["d", "a", "b", "c"]


def test_inmemory_repository_enforces_unique_fields_and_copies():
    records: dict[str, dict] = {}
    repo = InMemoryUsersRepository(records)
    first = repo.insert(doc={"email": "a@example.com", "role": "farmer"})
    second = repo.insert(doc={"email": "b@example.com", "role": "agent"})

    with pytest.raises(DuplicateRecordError) as excinfo:
        repo.insert(doc={"email": "a@example.com"})
    assert excinfo.value.field == "email"
    with pytest.raises(DuplicateRecordError):
        repo.update(doc_id=second["id"], fields={"email": "a@example.com"})

    fetched = repo.get(doc_id=first["id"])
    fetched["role"] = "admin"
    assert repo.get(doc_id=first["id"])["role"] == "farmer"
    assert repo.get_by_email(email=" A@Example.com ")["id"] == first["id"]
    assert repo.count_by(field="role") == {"farmer": 1, "agent": 1}
    assert repo.delete_many(query={"role": "agent"}) == 1
    assert repo.count() == 1
    assert repo.update(doc_id="missing", fields={"role": "x"}) is None


def test_inmemory_orders_aggregations():
    repo = InMemoryOrdersRepository({})
    repo.insert(doc=_order("ORD-1", customer="u1", total=65.0, items=[
        {"product_id": "p1", "product_name": "Drip", "quantity": 2, "total_price": 50.0},
    ]))
    repo.insert(doc=_order("ORD-2", customer="u2", total=120.0, items=[
        {"product_id": "p1", "product_name": "Drip", "quantity": 1, "total_price": 25.0},
        {"product_id": "p2", "product_name": "Crate", "quantity": 10, "total_price": 85.0},
    ]))
    assert repo.revenue_summary() == {"totalOrders": 2, "totalRevenue": 185.0, "averageOrderValue": 92.5}
    assert repo.revenue_summary(query={"customer_id": "nobody"})["averageOrderValue"] == 0.0
    top = repo.top_products(limit=1)
    assert top == [{"product_id": "p2", "product_name": "Crate", "quantity_sold": 10, "revenue": 85.0}]
    with pytest.raises(DuplicateRecordError):
        repo.insert(doc=_order("ORD-1", customer="u3", total=1.0, items=[]))


def test_inmemory_orders_group_by_period_and_product():
    repo = InMemoryOrdersRepository({})
    for number, date, total, quantity in [
        ("ORD-1", "2026-03-02T08:00:00.000+00:00", 65.0, 2),
        ("ORD-2", "2026-03-02T17:30:00.000+00:00", 120.0, 4),
        ("ORD-3", "2026-04-11T09:15:00.000+00:00", 37.5, 1),
    ]:
        order = _order(number, customer="u1", total=total, items=[
            {"product_id": "p1", "product_name": "Drip", "quantity": quantity, "total_price": 25.0 * quantity},
        ])
        repo.insert(doc={**order, "order_date": date})

    assert repo.sales_by_period(key_length=10) == [
        {"period": "2026-03-02", "orders": 2, "revenue": 185.0, "averageOrderValue": 92.5},
        {"period": "2026-04-11", "orders": 1, "revenue": 37.5, "averageOrderValue": 37.5},
    ]
    months = repo.sales_by_period(key_length=7, query={"order_date": {"$lt": "2026-04"}})
    assert [m["period"] for m in months] == ["2026-03"]

    (row,) = repo.product_sales()
    assert row["quantity_sold"] == 7
    assert row["revenue"] == 175.0
    assert row["orders"] == 3
    assert row["last_ordered"] == "2026-04-11T09:15:00.000+00:00"
    assert repo.distinct_count(field="customer_id") == 1
    assert repo.distinct_count(field="customer_id", query={"order_number": "none"}) == 0


def test_inmemory_users_registrations_by_day():
    repo = InMemoryUsersRepository({})
    for email, role, created in [
        ("a@example.com", "farmer", "2026-03-02T08:00:00.000+00:00"),
        ("b@example.com", "farmer", "2026-03-02T09:00:00.000+00:00"),
        ("c@example.com", "agent", "2026-03-02T10:00:00.000+00:00"),
        ("d@example.com", "admin", "2026-03-05T10:00:00.000+00:00"),
    ]:
        repo.insert(doc={"email": email, "role": role, "created_at": created})
    assert repo.registrations_by_day() == [
        {"date": "2026-03-02", "registrations": 3, "byRole": {"farmer": 2, "agent": 1}},
        {"date": "2026-03-05", "registrations": 1, "byRole": {"admin": 1}},
    ]


def test_inmemory_shops_allocate_sequential_ids():
    records: dict[int, dict] = {}
    repo = InMemoryShopsRepository(records)
    assert repo.next_id() == 1
    repo.insert(doc={"id": repo.next_id(), "shopName": "One"})
    repo.insert(doc={"id": repo.next_id(), "shopName": "Two"})
    assert sorted(records) == [1, 2]
    repo.delete(doc_id=2)
    assert repo.next_id() == 2


class FakeCursor:
    def __init__(self, rows: list[dict]):
        self.rows = rows
        self.calls: list[tuple] = []

    def sort(self, spec):
        self.calls.append(("sort", spec))
        return self

    def skip(self, n):
        self.calls.append(("skip", n))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    def __iter__(self):
        return iter(self.rows)


class FakeResult:
    def __init__(self, deleted_count: int):
        self.deleted_count = deleted_count


class FakeCollection:
    def __init__(self, rows: list[dict] | None = None):
        self.rows = rows or []
        self.calls: list[tuple] = []
        self.cursor = FakeCursor(self.rows)
        self.indexes: list[tuple] = []
        self.duplicate_on_insert = False
        self.aggregate_rows: list[dict] = [{"_id": "farmer", "count": 3}, {"_id": "admin", "count": 1}]

    def insert_one(self, doc):
        self.calls.append(("insert_one", doc))
        if self.duplicate_on_insert:
            raise DuplicateKeyError("E11000", code=11000, details={"keyPattern": {"email": 1}})
        self.rows.append(doc)

    def find_one(self, query, **kwargs):
        self.calls.append(("find_one", query))
        return self.rows[0] if self.rows else None

    def find(self, query):
        self.calls.append(("find", query))
        return self.cursor

    def count_documents(self, query):
        self.calls.append(("count_documents", query))
        return len(self.rows)

    def find_one_and_update(self, query, update, return_document=None):
        self.calls.append(("find_one_and_update", query, update))
        return {**self.rows[0], **update["$set"]} if self.rows else None

    def delete_one(self, query):
        self.calls.append(("delete_one", query))
        return FakeResult(1 if self.rows else 0)

    def delete_many(self, query):
        self.calls.append(("delete_many", query))
        removed = len(self.rows)
        self.rows.clear()
        return FakeResult(removed)

    def aggregate(self, pipeline):
        self.calls.append(("aggregate", pipeline))
        return self.aggregate_rows

    def distinct(self, field, query):
        self.calls.append(("distinct", field, query))
        return sorted({row[field] for row in self.rows if field in row})

    def create_index(self, keys, **options):
        self.indexes.append((keys, options))
        return options.get("name", "idx")


def test_mongo_repository_maps_ids_and_queries():
    oid = ObjectId()
    collection = FakeCollection([{"_id": oid, "email": "a@example.com", "role": "farmer"}])
    repo = MongoUsersRepository(collection=collection)

    row = repo.get(doc_id=str(oid))
    assert row == {"id": str(oid), "email": "a@example.com", "role": "farmer"}
    assert collection.calls[-1] == ("find_one", {"_id": oid})

    rows = repo.find(
        query={"id": {"$ne": str(oid)}, "$or": [{"role": "farmer"}, {"id": str(oid)}]},
        sort=[("id", -1), ("created_at", 1)],
        skip=10,
        limit=5,
    )
    assert rows[0]["id"] == str(oid)
    assert collection.calls[-1] == ("find", {"_id": {"$ne": oid}, "$or": [{"role": "farmer"}, {"_id": oid}]})
    assert collection.cursor.calls == [("sort", [("_id", -1), ("created_at", 1)]), ("skip", 10), ("limit", 5)]

    updated = repo.update(doc_id=str(oid), fields={"id": "ignored", "role": "agent"})
    assert updated["role"] == "agent"
    assert collection.calls[-1] == ("find_one_and_update", {"_id": oid}, {"$set": {"role": "agent"}})

    assert repo.count(query={"role": "farmer"}) == 1
    assert repo.count_by(field="role") == {"farmer": 3, "admin": 1}
    assert repo.delete(doc_id=str(oid)) is True


def test_mongo_repository_insert_and_duplicate_translation():
    collection = FakeCollection()
    repo = MongoUsersRepository(collection=collection)
    saved = repo.insert(doc={"email": "new@example.com"})
    assert is_valid_object_id(saved["id"])
    assert isinstance(collection.calls[-1][1]["_id"], ObjectId)

    collection.duplicate_on_insert = True
    with pytest.raises(DuplicateRecordError) as excinfo:
        repo.insert(doc={"email": "new@example.com"})
    assert excinfo.value.field == "email"


class FakeAdmin:
    def __init__(self, healthy: bool):
        self.healthy = healthy

    def command(self, name):
        if not self.healthy:
            raise ServerSelectionTimeoutError("no servers")
        return {"ok": 1}


class FakeDatabase(dict):
    def __missing__(self, name):
        collection = FakeCollection()
        self[name] = collection
        return collection


class FakeClient:
    def __init__(self, healthy: bool = True):
        self.admin = FakeAdmin(healthy)
        self.databases: dict[str, FakeDatabase] = {}
        self.closed = False

    def __getitem__(self, name):
        return self.databases.setdefault(name, FakeDatabase())

    def close(self):
        self.closed = True


def test_mongo_backed_store_creates_indexes_and_pings():
    client = FakeClient()
    backend = MongoBackedStore(uri="mongodb://localhost:27017/agri", db_name="agri", client=client)
    db = client.databases["agri"]
    assert set(db) == set(COLLECTION_INDEXES)
    assert [options["name"] for _, options in db["users"].indexes] == [
        "uix_users_email",
        "ix_users_role_status",
        "ix_users_created",
    ]
    assert backend.backend_name == "mongo"
    assert backend.ping() is True

    backend.reset()
    assert ("delete_many", {}) in db["orders"].calls
    backend.close()
    assert client.closed is True


def test_mongo_backed_store_reports_unreachable_database():
    backend = MongoBackedStore(
        uri="mongodb://localhost:27017/agri",
        db_name="agri",
        client=FakeClient(healthy=False),
        ensure_indexes=False,
    )
    assert backend.ping() is False


def test_mongo_orders_group_on_date_prefix():
    collection = FakeCollection([{"_id": ObjectId(), "customer_id": "u1"}, {"_id": ObjectId(), "customer_id": "u2"}])
    collection.aggregate_rows = [{"_id": "2026-03", "orders": 2, "revenue": 185.0, "averageOrderValue": 92.5}]
    repo = MongoOrdersRepository(collection=collection)

    rows = repo.sales_by_period(key_length=7, query={"status": {"$ne": "cancelled"}})
    assert rows == [{"period": "2026-03", "orders": 2, "revenue": 185.0, "averageOrderValue": 92.5}]
    _, pipeline = collection.calls[-1]
    assert pipeline[0] == {"$match": {"status": {"$ne": "cancelled"}}}
    assert pipeline[1]["$group"]["_id"] == {"$substrBytes": ["$order_date", 0, 7]}
    assert pipeline[-1] == {"$sort": {"_id": 1}}

    assert repo.distinct_count(field="customer_id", query={"id": str(collection.rows[0]["_id"])}) == 2
    assert collection.calls[-1] == ("distinct", "customer_id", {"_id": collection.rows[0]["_id"]})
