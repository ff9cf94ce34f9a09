from __future__ import annotations

import logging
from typing import Any

from app.domain import ROLES, USER_STATUSES
from app.errors import DuplicateRecordError, bad_request, business_rule, conflict, forbidden, not_found, unauthorized
from app.security import hash_password, verify_password

logger = logging.getLogger(__name__)

PUBLIC_USER_FIELDS = ("id", "email", "full_name", "phone", "role", "status", "profile", "created_at", "updated_at")


def _clean_profile(profile: dict[str, Any] | None) -> dict[str, Any]:
    return {k: v for k, v in (profile or {}).items() if v is not None}


class StoreUsersMixin:
    @staticmethod
    def public_user(user: dict[str, Any]) -> dict[str, Any]:
        return {field: user.get(field) for field in PUBLIC_USER_FIELDS if field in user}

    @staticmethod
    def user_summary(user: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": user["id"],
            "email": user["email"],
            "full_name": user["full_name"],
            "role": user["role"],
            "status": user["status"],
        }

    def _require_user(self, user_id: str) -> dict[str, Any]:
        self._require_object_id(user_id)
        user = self.users_repository.get(doc_id=user_id)
        if user is None:
            raise not_found("USER_NOT_FOUND", "User not found")
        return user

    def register_user(self, *, payload: dict[str, Any]) -> dict[str, Any]:
        email = str(payload["email"]).strip().lower()
        if self.users_repository.get_by_email(email=email) is not None:
            raise conflict("USER_EXISTS", "User with this email already exists")
        now = self._utcnow_iso()
        user = {
            "email": email,
            "password": hash_password(str(payload["password"]), rounds=self.bcrypt_rounds),
            "full_name": str(payload["full_name"]).strip(),
            "role": payload.get("role") or "farmer",
            "status": "active",
            "profile": _clean_profile(payload.get("profile")),
            "created_at": now,
            "updated_at": now,
        }
        if payload.get("phone"):
            user["phone"] = str(payload["phone"]).strip()
        try:
            saved = self.users_repository.insert(doc=user)
        except DuplicateRecordError:
            raise conflict("USER_EXISTS", "User with this email already exists") from None
        logger.info("user_registered user_id=%s role=%s", saved["id"], saved["role"])
        return self.public_user(saved)

    def authenticate_user(self, *, email: str, password: str) -> dict[str, Any]:
        user = self.users_repository.get_by_email(email=email)
        if user is None or not verify_password(password, user.get("password")):
            logger.info("login_rejected reason=invalid_credentials")
            raise unauthorized("Invalid credentials")
        if user.get("status") != "active":
            raise unauthorized("Account is inactive")
        return self.public_user(user)

    def get_user(self, *, user_id: str) -> dict[str, Any]:
        return self.public_user(self._require_user(user_id))

    def get_active_user(self, *, user_id: str) -> dict[str, Any]:
        """Resolve the account behind a bearer token."""
        user = self.users_repository.get(doc_id=user_id)
        if user is None:
            raise unauthorized("User not found")
        if user.get("status") != "active":
            raise unauthorized("User account is inactive")
        return self.public_user(user)

    def update_own_profile(self, *, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        user = self._require_user(user_id)
        changes: dict[str, Any] = {}
        if payload.get("full_name") is not None:
            changes["full_name"] = str(payload["full_name"]).strip()
        if payload.get("phone") is not None:
            changes["phone"] = str(payload["phone"]).strip()
        if payload.get("profile") is not None:
            changes["profile"] = {**(user.get("profile") or {}), **_clean_profile(payload["profile"])}
        if not changes:
            raise bad_request("NO_UPDATE_FIELDS", "No valid fields provided for update")
        changes["updated_at"] = self._utcnow_iso()
        saved = self.users_repository.update(doc_id=user_id, fields=changes)
        return self.public_user(saved or user)

    def change_password(self, *, user_id: str, current_password: str, new_password: str) -> None:
        user = self._require_user(user_id)
        if not verify_password(current_password, user.get("password")):
            raise bad_request("PASSWORD_INCORRECT", "Current password is incorrect")
        self.users_repository.update(
            doc_id=user_id,
            fields={
                "password": hash_password(new_password, rounds=self.bcrypt_rounds),
                "updated_at": self._utcnow_iso(),
            },
        )
        logger.info("password_changed user_id=%s", user_id)

    def list_users(self, *, filters: dict[str, Any], page: int, limit: int) -> dict[str, Any]:
        conditions: list[dict[str, Any]] = []
        if filters.get("role"):
            conditions.append({"role": filters["role"]})
        if filters.get("status"):
            conditions.append({"status": filters["status"]})
        if filters.get("search"):
            pattern = self._regex(str(filters["search"]))
            conditions.append({"$or": [{"full_name": pattern}, {"email": pattern}]})
        return self._paginate(
            self.users_repository,
            query=self._combine(conditions),
            sort=[("created_at", -1)],
            page=page,
            limit=limit,
            view=self.public_user,
        )

    def search_users(self, *, term: str, limit: int = 10) -> list[dict[str, Any]]:
        pattern = self._regex(term)
        rows = self.users_repository.find(
            query={"$or": [{"full_name": pattern}, {"email": pattern}]},
            sort=[("created_at", -1)],
            limit=limit,
        )
        return [self.public_user(r) for r in rows]

    def update_user(self, *, user_id: str, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        is_admin = actor.get("role") == "admin"
        if not is_admin and actor.get("id") != user_id:
            raise forbidden("Access denied")
        user = self._require_user(user_id)
        changes: dict[str, Any] = {}
        for field in ("full_name", "phone"):
            if payload.get(field) is not None:
                changes[field] = str(payload[field]).strip()
        if payload.get("profile") is not None:
            changes["profile"] = {**(user.get("profile") or {}), **_clean_profile(payload["profile"])}
        if is_admin:
            if payload.get("role") is not None:
                if payload["role"] not in ROLES:
                    raise bad_request("INVALID_ROLE", "Invalid role value")
                changes["role"] = payload["role"]
            if payload.get("status") is not None:
                if payload["status"] not in USER_STATUSES:
                    raise bad_request("INVALID_STATUS", "Invalid status value")
                changes["status"] = payload["status"]
        if not changes:
            raise bad_request("NO_UPDATE_FIELDS", "No valid fields provided for update")
        if changes.get("role", "admin") != "admin" or changes.get("status", "active") != "active":
            self._assert_not_last_admin(user)
        changes["updated_at"] = self._utcnow_iso()
        saved = self.users_repository.update(doc_id=user_id, fields=changes)
        return self.public_user(saved or user)

    def _assert_not_last_admin(self, user: dict[str, Any]) -> None:
        if user.get("role") != "admin" or user.get("status") != "active":
            return
        if self.users_repository.count(query={"role": "admin", "status": "active"}) <= 1:
            raise business_rule("LAST_ADMIN", "Cannot remove the last admin user")

    def set_user_status(self, *, user_id: str, status: str) -> dict[str, Any]:
        if status not in USER_STATUSES:
            raise bad_request("INVALID_STATUS", "Invalid status value")
        user = self._require_user(user_id)
        if status != "active":
            self._assert_not_last_admin(user)
        saved = self.users_repository.update(
            doc_id=user_id,
            fields={"status": status, "updated_at": self._utcnow_iso()},
        )
        logger.info("user_status_changed user_id=%s status=%s", user_id, status)
        return self.public_user(saved or user)

    def set_user_role(self, *, user_id: str, role: str) -> dict[str, Any]:
        if role not in ROLES:
            raise bad_request("INVALID_ROLE", "Invalid role value")
        user = self._require_user(user_id)
        if role != "admin":
            self._assert_not_last_admin(user)
        saved = self.users_repository.update(
            doc_id=user_id,
            fields={"role": role, "updated_at": self._utcnow_iso()},
        )
        logger.info("user_role_changed user_id=%s role=%s", user_id, role)
        return self.public_user(saved or user)

    def delete_user(self, *, user_id: str, actor_id: str) -> dict[str, Any]:
        self._require_object_id(user_id)
        if user_id == actor_id:
            raise business_rule("SELF_DELETE", "Cannot delete your own account")
        user = self._require_user(user_id)
        self._assert_not_last_admin(user)
        self.users_repository.delete(doc_id=user_id)
        self.farmer_profiles_repository.delete_many(query={"user_id": user_id})
        self.agent_profiles_repository.delete_many(query={"user_id": user_id})
        logger.info("user_deleted user_id=%s", user_id)
        return {"id": user_id, "deleted": True}

    def count_users_by_role(self) -> dict[str, int]:
        counts = self.users_repository.count_by(field="role")
        return {role: counts.get(role, 0) for role in ROLES}
