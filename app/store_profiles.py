from __future__ import annotations

import logging
from typing import Any

from app.domain import agent_location, next_agent_code, to_iso
from app.errors import DuplicateRecordError, bad_request, conflict, forbidden, not_found

logger = logging.getLogger(__name__)

FARMER_PROFILE_FIELDS = (
    "age",
    "id_number",
    "gender",
    "marital_status",
    "education_level",
    "province",
    "district",
    "sector",
    "cell",
    "village",
    "farm_age",
    "planted",
    "avocado_type",
    "mixed_percentage",
    "farm_size",
    "tree_count",
    "upi_number",
    "farm_province",
    "farm_district",
    "farm_sector",
    "farm_cell",
    "farm_village",
    "assistance",
    "image",
)
AGENT_PROFILE_FIELDS = (
    "province",
    "territory",
    "district",
    "sector",
    "cell",
    "village",
    "specialization",
    "experience",
    "certification",
    "statistics",
    "farmersAssisted",
    "totalTransactions",
    "performance",
    "profileImage",
)
AGENT_PERFORMANCE_FIELDS = ("farmersAssisted", "totalTransactions", "performance")
AGENT_ONLY_MESSAGE = "Access denied. This endpoint is for agents only"
USER_BASIC_FIELDS = ("full_name", "phone", "email")


def _pick(payload: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    return {f: payload[f] for f in fields if payload.get(f) is not None}


class StoreProfilesMixin:
    def _update_user_basics(self, user: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        changes = _pick(payload, USER_BASIC_FIELDS)
        if not changes:
            return user
        if "email" in changes:
            changes["email"] = str(changes["email"]).strip().lower()
        changes["updated_at"] = self._utcnow_iso()
        try:
            saved = self.users_repository.update(doc_id=user["id"], fields=changes)
        except DuplicateRecordError:
            raise conflict("USER_EXISTS", "User with this email already exists") from None
        return saved or user

    # farmers

    @staticmethod
    def _farmer_view(user: dict[str, Any], profile: dict[str, Any] | None) -> dict[str, Any]:
        farmer_profile: dict[str, Any] | None = None
        if profile is not None:
            farmer_profile = {f: profile.get(f) for f in FARMER_PROFILE_FIELDS}
            farmer_profile["assistance"] = profile.get("assistance") or []
            farmer_profile["image"] = profile.get("image") or None
        return {
            "farmer_id": user["id"],
            "user_info": {
                "id": user["id"],
                "email": user.get("email"),
                "full_name": user.get("full_name"),
                "phone": user.get("phone"),
                "status": user.get("status"),
                "created_at": user.get("created_at"),
                "updated_at": user.get("updated_at"),
            },
            "farmer_profile": farmer_profile,
        }

    def _resolve_farmer(self, *, actor: dict[str, Any], farmer_id: str | None) -> dict[str, Any]:
        """Farmers act on themselves; agents and admins must name a farmer."""
        role = actor.get("role")
        if farmer_id and role in {"agent", "admin"}:
            self._require_object_id(farmer_id)
            target = self.users_repository.get(doc_id=farmer_id)
        elif role == "farmer":
            target = self.users_repository.get(doc_id=actor["id"])
        else:
            raise forbidden(
                "Access denied. Only farmers can access their own info, or Agents/Admins can access via farmerId"
            )
        if target is None:
            raise not_found("USER_NOT_FOUND", "Target user not found")
        if target.get("role") != "farmer":
            raise bad_request("NOT_A_FARMER", "Target user is not a farmer")
        return target

    def _upsert_farmer_profile(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        now = self._utcnow_iso()
        existing = self.farmer_profiles_repository.get_by_user(user_id=user_id)
        if existing is None:
            doc = {"tree_count": 0, "assistance": [], **fields, "user_id": user_id, "created_at": now, "updated_at": now}
            return self.farmer_profiles_repository.insert(doc=doc)
        saved = self.farmer_profiles_repository.update(doc_id=existing["id"], fields={**fields, "updated_at": now})
        return saved or existing

    def get_farmer_information(self, *, actor: dict[str, Any], farmer_id: str | None = None) -> dict[str, Any]:
        target = self._resolve_farmer(actor=actor, farmer_id=farmer_id)
        profile = self.farmer_profiles_repository.get_by_user(user_id=target["id"])
        return self._farmer_view(target, profile)

    def update_farmer_information(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        target = self._resolve_farmer(actor=actor, farmer_id=payload.get("farmerId"))
        target = self._update_user_basics(target, payload)
        fields = _pick(payload, FARMER_PROFILE_FIELDS)
        if fields:
            profile = self._upsert_farmer_profile(target["id"], fields)
        else:
            profile = self.farmer_profiles_repository.get_by_user(user_id=target["id"])
        logger.info("farmer_information_updated user_id=%s actor_id=%s", target["id"], actor.get("id"))
        return self._farmer_view(target, profile)

    def create_farmer_profile(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        user = self.users_repository.get(doc_id=actor["id"])
        if user is None:
            raise not_found("USER_NOT_FOUND", "User not found")
        if user.get("role") != "farmer":
            raise forbidden("Only farmers can create farmer profiles")
        if self.farmer_profiles_repository.get_by_user(user_id=user["id"]) is not None:
            raise bad_request("PROFILE_EXISTS", "Farmer profile already exists")
        profile = self._upsert_farmer_profile(user["id"], _pick(payload, FARMER_PROFILE_FIELDS))
        logger.info("farmer_profile_created user_id=%s", user["id"])
        return self._farmer_view(user, profile)

    def update_tree_count(self, *, actor: dict[str, Any], tree_count: int | None) -> dict[str, Any]:
        if tree_count is None or tree_count < 0:
            raise bad_request("INVALID_TREE_COUNT", "Valid tree count is required")
        user = self.users_repository.get(doc_id=actor["id"])
        if user is None:
            raise not_found("USER_NOT_FOUND", "User not found")
        if user.get("role") != "farmer":
            raise forbidden("Only farmers can update tree count")
        profile = self._upsert_farmer_profile(user["id"], {"tree_count": tree_count})
        return self._farmer_view(user, profile)

    # agents

    @staticmethod
    def _agent_view(user: dict[str, Any], profile: dict[str, Any] | None) -> dict[str, Any]:
        agent_profile: dict[str, Any] | None = None
        if profile is not None:
            agent_profile = {
                "agentId": profile.get("agentId"),
                "location": agent_location(profile),
                **{f: profile.get(f) for f in AGENT_PROFILE_FIELDS},
                "farmersAssisted": profile.get("farmersAssisted") or 0,
                "totalTransactions": profile.get("totalTransactions") or 0,
            }
        return {
            "user_info": {
                "id": user["id"],
                "full_name": user.get("full_name"),
                "email": user.get("email"),
                "phone": user.get("phone"),
                "role": user.get("role"),
                "status": user.get("status"),
                "created_at": user.get("created_at"),
                "updated_at": user.get("updated_at"),
            },
            "agent_profile": agent_profile,
        }

    def _require_agent(self, actor: dict[str, Any], *, message: str = AGENT_ONLY_MESSAGE) -> dict[str, Any]:
        user = self.users_repository.get(doc_id=actor["id"])
        if user is None:
            raise not_found("USER_NOT_FOUND", "User not found")
        if user.get("role") != "agent":
            raise forbidden(message)
        return user

    def _normalize_agent_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        if fields.get("territory") is not None:
            now = self._utcnow_iso()
            territory = []
            for entry in fields["territory"]:
                item = dict(entry)
                assigned = item.get("assignedDate")
                item["assignedDate"] = to_iso(assigned) if assigned is not None else now
                item.setdefault("isPrimary", False)
                territory.append(item)
            fields["territory"] = territory
        return fields

    def _upsert_agent_profile(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        now = self._utcnow_iso()
        fields = self._normalize_agent_fields(fields)
        existing = self.agent_profiles_repository.get_by_user(user_id=user_id)
        if existing is not None:
            saved = self.agent_profiles_repository.update(doc_id=existing["id"], fields={**fields, "updated_at": now})
            return saved or existing
        doc = {
            "farmersAssisted": 0,
            "totalTransactions": 0,
            **fields,
            "user_id": user_id,
            "agentId": next_agent_code(self.agent_profiles_repository.last_agent_code()),
            "created_at": now,
            "updated_at": now,
        }
        saved = self.agent_profiles_repository.insert(doc=doc)
        logger.info("agent_profile_created user_id=%s agent_id=%s", user_id, saved["agentId"])
        return saved

    def get_agent_information(self, *, actor: dict[str, Any]) -> dict[str, Any]:
        user = self._require_agent(actor)
        return self._agent_view(user, self.agent_profiles_repository.get_by_user(user_id=user["id"]))

    def update_agent_information(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        user = self._update_user_basics(self._require_agent(actor), payload)
        fields = _pick(payload, AGENT_PROFILE_FIELDS)
        if fields:
            profile = self._upsert_agent_profile(user["id"], fields)
        else:
            profile = self.agent_profiles_repository.get_by_user(user_id=user["id"])
        return self._agent_view(user, profile)

    def create_agent_profile(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        user = self._require_agent(actor, message="Only agents can create agent profiles")
        if self.agent_profiles_repository.get_by_user(user_id=user["id"]) is not None:
            raise bad_request("PROFILE_EXISTS", "Agent profile already exists")
        profile = self._upsert_agent_profile(user["id"], _pick(payload, AGENT_PROFILE_FIELDS))
        return self._agent_view(user, profile)

    def update_agent_performance(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        user = self._require_agent(actor, message="Only agents can update performance metrics")
        fields = _pick(payload, AGENT_PERFORMANCE_FIELDS)
        if not fields:
            raise bad_request("NO_PERFORMANCE_DATA", "No valid performance data provided")
        profile = self._upsert_agent_profile(user["id"], fields)
        return self._agent_view(user, profile)
