from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Mapping
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.errors import DuplicateRecordError

SortSpec = list[tuple[str, int]]


def new_object_id() -> str:
    return str(ObjectId())


def is_valid_object_id(value: object) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value) and len(value) == 24


def _resolve_path(doc: Any, path: str) -> list[Any]:
    values = [doc]
    for part in path.split("."):
        nxt: list[Any] = []
        for value in values:
            if isinstance(value, Mapping):
                if part in value:
                    nxt.append(value[part])
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, Mapping) and part in item:
                        nxt.append(item[part])
        values = nxt
    flattened: list[Any] = []
    for value in values:
        if isinstance(value, list):
            flattened.extend(value)
        flattened.append(value)
    return flattened


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    try:
        if op == "$gt":
            return actual > expected
        if op == "$gte":
            return actual >= expected
        if op == "$lt":
            return actual < expected
        if op == "$lte":
            return actual <= expected
    except TypeError:
        return False
    raise ValueError(f"unsupported operator: {op}")


def _match_condition(values: list[Any], condition: Any) -> bool:
    if isinstance(condition, Mapping) and any(str(k).startswith("$") for k in condition):
        for op, expected in condition.items():
            if op == "$options":
                continue
            if op == "$regex":
                flags = re.IGNORECASE if "i" in str(condition.get("$options", "")) else 0
                pattern = re.compile(expected, flags)
                if not any(isinstance(v, str) and pattern.search(v) for v in values):
                    return False
            elif op == "$in":
                if not any(v in expected for v in values):
                    return False
            elif op == "$nin":
                if any(v in expected for v in values):
                    return False
            elif op == "$ne":
                if any(v == expected for v in values):
                    return False
            elif op == "$exists":
                present = any(v is not None for v in values)
                if present != bool(expected):
                    return False
            elif op in {"$gt", "$gte", "$lt", "$lte"}:
                if not any(_compare(op, v, expected) for v in values):
                    return False
            else:
                raise ValueError(f"unsupported operator: {op}")
        return True
    if condition is None:
        return not values or any(v is None for v in values)
    return any(v == condition for v in values)


def match_document(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """Evaluate the subset of MongoDB query syntax the store builds."""
    for key, condition in query.items():
        if key == "$or":
            if not any(match_document(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(match_document(doc, sub) for sub in condition):
                return False
        elif not _match_condition(_resolve_path(doc, key), condition):
            return False
    return True


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    return (2, str(value))


def sort_documents(docs: Iterable[dict[str, Any]], sort: SortSpec | None) -> list[dict[str, Any]]:
    rows = list(docs)
    for field, direction in reversed(sort or []):
        rows.sort(
            key=lambda d: _sort_key((_resolve_path(d, field) or [None])[0]),
            reverse=direction < 0,
        )
    return rows


class InMemoryCollectionRepository:
    unique_fields: tuple[str, ...] = ()

    def __init__(self, records: dict[Any, dict[str, Any]]) -> None:
        self._records = records

    def _check_unique(self, doc: Mapping[str, Any]) -> None:
        for field in self.unique_fields:
            value = doc.get(field)
            if value is None:
                continue
            for other_id, other in self._records.items():
                if other_id != doc.get("id") and other.get(field) == value:
                    raise DuplicateRecordError(field)

    def insert(self, *, doc: dict[str, Any]) -> dict[str, Any]:
        item = copy.deepcopy(doc)
        item.setdefault("id", new_object_id())
        self._check_unique(item)
        self._records[item["id"]] = item
        return copy.deepcopy(item)

    def get(self, *, doc_id: Any) -> dict[str, Any] | None:
        row = self._records.get(doc_id)
        return copy.deepcopy(row) if row is not None else None

    def find_one(self, *, query: Mapping[str, Any], sort: SortSpec | None = None) -> dict[str, Any] | None:
        rows = self.find(query=query, sort=sort, limit=1)
        return rows[0] if rows else None

    def find(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        rows = [r for r in self._records.values() if match_document(r, query or {})]
        rows = sort_documents(rows, sort)
        rows = rows[skip:]
        if limit > 0:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    def count(self, *, query: Mapping[str, Any] | None = None) -> int:
        return sum(1 for r in self._records.values() if match_document(r, query or {}))

    def update(self, *, doc_id: Any, fields: Mapping[str, Any]) -> dict[str, Any] | None:
        row = self._records.get(doc_id)
        if row is None:
            return None
        updated = {**copy.deepcopy(row), **copy.deepcopy(dict(fields))}
        self._check_unique(updated)
        self._records[doc_id] = updated
        return copy.deepcopy(updated)

    def delete(self, *, doc_id: Any) -> bool:
        return self._records.pop(doc_id, None) is not None

    def delete_many(self, *, query: Mapping[str, Any]) -> int:
        doomed = [k for k, r in self._records.items() if match_document(r, query)]
        for key in doomed:
            del self._records[key]
        return len(doomed)

    def count_by(self, *, field: str, query: Mapping[str, Any] | None = None) -> dict[str, int]:
        counts: dict[str, int] = {}
        for row in self._records.values():
            if not match_document(row, query or {}):
                continue
            key = str(row.get(field))
            counts[key] = counts.get(key, 0) + 1
        return counts

    def distinct_count(self, *, field: str, query: Mapping[str, Any] | None = None) -> int:
        values = {
            str(row[field])
            for row in self._records.values()
            if row.get(field) is not None and match_document(row, query or {})
        }
        return len(values)


class MongoCollectionRepository:
    """Collection wrapper that exposes documents with a string `id` instead of `_id`."""

    unique_fields: tuple[str, ...] = ()

    def __init__(self, *, collection: Any) -> None:
        self._collection = collection

    @staticmethod
    def _to_db_id(doc_id: Any) -> Any:
        if isinstance(doc_id, str):
            try:
                return ObjectId(doc_id)
            except (InvalidId, TypeError):
                return doc_id
        return doc_id

    @classmethod
    def _to_mongo_query(cls, query: Mapping[str, Any] | None) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in (query or {}).items():
            if key in {"$or", "$and"}:
                out[key] = [cls._to_mongo_query(sub) for sub in value]
            elif key == "id":
                if isinstance(value, Mapping):
                    out["_id"] = {
                        op: [cls._to_db_id(v) for v in arg] if isinstance(arg, list) else cls._to_db_id(arg)
                        for op, arg in value.items()
                    }
                else:
                    out["_id"] = cls._to_db_id(value)
            else:
                out[key] = value
        return out

    @staticmethod
    def _from_db(row: Mapping[str, Any] | None) -> dict[str, Any] | None:
        if row is None:
            return None
        item = dict(row)
        raw_id = item.pop("_id", None)
        item["id"] = str(raw_id) if isinstance(raw_id, ObjectId) else raw_id
        return item

    @staticmethod
    def _duplicate_field(exc: DuplicateKeyError) -> str:
        details = exc.details or {}
        pattern = details.get("keyPattern") or details.get("keyValue") or {}
        if pattern:
            return str(next(iter(pattern)))
        return "value"

    def insert(self, *, doc: dict[str, Any]) -> dict[str, Any]:
        item = dict(doc)
        item["_id"] = self._to_db_id(item.pop("id", None) or new_object_id())
        try:
            self._collection.insert_one(item)
        except DuplicateKeyError as exc:
            raise DuplicateRecordError(self._duplicate_field(exc)) from exc
        return self._from_db(item) or {}

    def get(self, *, doc_id: Any) -> dict[str, Any] | None:
        return self._from_db(self._collection.find_one({"_id": self._to_db_id(doc_id)}))

    def find_one(self, *, query: Mapping[str, Any], sort: SortSpec | None = None) -> dict[str, Any] | None:
        rows = self.find(query=query, sort=sort, limit=1)
        return rows[0] if rows else None

    def find(
        self,
        *,
        query: Mapping[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        cursor = self._collection.find(self._to_mongo_query(query))
        if sort:
            cursor = cursor.sort([("_id" if field == "id" else field, direction) for field, direction in sort])
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [self._from_db(row) or {} for row in cursor]

    def count(self, *, query: Mapping[str, Any] | None = None) -> int:
        return int(self._collection.count_documents(self._to_mongo_query(query)))

    def update(self, *, doc_id: Any, fields: Mapping[str, Any]) -> dict[str, Any] | None:
        changes = {k: v for k, v in fields.items() if k != "id"}
        try:
            row = self._collection.find_one_and_update(
                {"_id": self._to_db_id(doc_id)},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise DuplicateRecordError(self._duplicate_field(exc)) from exc
        return self._from_db(row)

    def delete(self, *, doc_id: Any) -> bool:
        result = self._collection.delete_one({"_id": self._to_db_id(doc_id)})
        return int(result.deleted_count) > 0

    def delete_many(self, *, query: Mapping[str, Any]) -> int:
        result = self._collection.delete_many(self._to_mongo_query(query))
        return int(result.deleted_count)

    def aggregate(self, pipeline: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return list(self._collection.aggregate(pipeline))

    def count_by(self, *, field: str, query: Mapping[str, Any] | None = None) -> dict[str, int]:
        rows = self.aggregate(
            [
                {"$match": self._to_mongo_query(query)},
                {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
            ]
        )
        return {str(row["_id"]): int(row["count"]) for row in rows}

    def distinct_count(self, *, field: str, query: Mapping[str, Any] | None = None) -> int:
        return len(self._collection.distinct(field, self._to_mongo_query(query)))
