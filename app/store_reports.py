from __future__ import annotations

import logging
from typing import Any

from app.domain import REPORT_TYPES, report_view, to_iso
from app.errors import bad_request, forbidden, not_found

logger = logging.getLogger(__name__)

REPORT_DATE_FIELDS = ("scheduled_date", "completed_date")
MAX_ATTACHMENTS_PER_UPLOAD = 5


class StoreReportsMixin:
    def _person_summary(self, user_id: str | None) -> dict[str, Any] | None:
        if not user_id:
            return None
        user = self.users_repository.get(doc_id=user_id)
        if user is None:
            return None
        return {"id": user["id"], "full_name": user.get("full_name"), "email": user.get("email")}

    def _report_view(self, report: dict[str, Any]) -> dict[str, Any]:
        item = report_view(report, now=self._now())
        item["agent"] = self._person_summary(report.get("agent_id"))
        item["farmer"] = self._person_summary(report.get("farmer_id"))
        return item

    def _require_report(self, report_id: str, *, actor: dict[str, Any]) -> dict[str, Any]:
        self._require_object_id(report_id)
        report = self.reports_repository.get(doc_id=report_id)
        if report is None:
            raise not_found("REPORT_NOT_FOUND", "Report not found")
        if actor.get("role") == "agent" and report.get("agent_id") != actor.get("id"):
            raise forbidden("Access denied")
        return report

    def _assert_user_role(self, user_id: str, *, role: str, field: str) -> None:
        self._require_object_id(user_id)
        user = self.users_repository.get(doc_id=user_id)
        if user is None or user.get("role") != role:
            raise bad_request("INVALID_REFERENCE", f"{field} must reference an existing {role}")

    def list_reports(self, *, actor: dict[str, Any], filters: dict[str, Any], page: int, limit: int) -> dict[str, Any]:
        conditions: list[dict[str, Any]] = []
        if actor.get("role") == "agent":
            conditions.append({"agent_id": actor["id"]})
        elif filters.get("agent_id"):
            conditions.append({"agent_id": filters["agent_id"]})
        for field in ("farmer_id", "report_type", "status", "priority"):
            if filters.get(field):
                conditions.append({field: filters[field]})
        date_range: dict[str, str] = {}
        if filters.get("date_from") is not None:
            date_range["$gte"] = to_iso(filters["date_from"])
        if filters.get("date_to") is not None:
            date_range["$lte"] = to_iso(filters["date_to"])
        if date_range:
            conditions.append({"scheduled_date": date_range})
        if filters.get("search"):
            pattern = self._regex(str(filters["search"]))
            conditions.append(
                {
                    "$or": [
                        {"title": pattern},
                        {"description": pattern},
                        {"findings": pattern},
                        {"recommendations": pattern},
                    ]
                }
            )
        return self._paginate(
            self.reports_repository,
            query=self._combine(conditions),
            sort=[("scheduled_date", -1)],
            page=page,
            limit=limit,
            view=self._report_view,
        )

    def get_report(self, *, report_id: str, actor: dict[str, Any]) -> dict[str, Any]:
        return self._report_view(self._require_report(report_id, actor=actor))

    def create_report(self, *, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        report = self._iso_fields(dict(payload), REPORT_DATE_FIELDS)
        if actor.get("role") == "agent":
            report["agent_id"] = actor["id"]
        elif not report.get("agent_id"):
            raise bad_request("AGENT_REQUIRED", "agent_id is required")
        else:
            self._assert_user_role(str(report["agent_id"]), role="agent", field="agent_id")
        if report.get("farmer_id"):
            self._assert_user_role(str(report["farmer_id"]), role="farmer", field="farmer_id")
        now = self._utcnow_iso()
        report["attachments"] = []
        if report.get("status") == "completed":
            report["completed_date"] = now
        report["created_at"] = now
        report["updated_at"] = now
        saved = self.reports_repository.insert(doc=report)
        logger.info("report_created report_id=%s agent_id=%s", saved["id"], saved["agent_id"])
        return self._report_view(saved)

    def update_report(self, *, report_id: str, actor: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
        report = self._require_report(report_id, actor=actor)
        changes = self._iso_fields(dict(payload), REPORT_DATE_FIELDS)
        if changes.get("farmer_id"):
            self._assert_user_role(str(changes["farmer_id"]), role="farmer", field="farmer_id")
        now = self._utcnow_iso()
        if changes.get("status") == "completed" and report.get("status") != "completed":
            changes["completed_date"] = now
        changes["updated_at"] = now
        saved = self.reports_repository.update(doc_id=report_id, fields=changes)
        return self._report_view(saved or report)

    def complete_report(self, *, report_id: str, actor: dict[str, Any]) -> dict[str, Any]:
        report = self._require_report(report_id, actor=actor)
        now = self._utcnow_iso()
        saved = self.reports_repository.update(
            doc_id=report_id,
            fields={"status": "completed", "completed_date": now, "updated_at": now},
        )
        logger.info("report_completed report_id=%s", report_id)
        return self._report_view(saved or report)

    def check_attachment_batch(self, *, report_id: str, actor: dict[str, Any], count: int) -> dict[str, Any]:
        report = self._require_report(report_id, actor=actor)
        if count < 1:
            raise bad_request("NO_FILES", "No files uploaded")
        if count > MAX_ATTACHMENTS_PER_UPLOAD:
            raise bad_request("TOO_MANY_FILES", f"At most {MAX_ATTACHMENTS_PER_UPLOAD} files can be uploaded at once")
        return report

    def add_report_attachments(self, *, report_id: str, actor: dict[str, Any], paths: list[str]) -> dict[str, Any]:
        report = self.check_attachment_batch(report_id=report_id, actor=actor, count=len(paths))
        attachments = [*(report.get("attachments") or []), *paths]
        saved = self.reports_repository.update(
            doc_id=report_id,
            fields={"attachments": attachments, "updated_at": self._utcnow_iso()},
        )
        return self._report_view(saved or report)

    def delete_report(self, *, report_id: str, actor: dict[str, Any]) -> dict[str, Any]:
        self._require_report(report_id, actor=actor)
        self.reports_repository.delete(doc_id=report_id)
        logger.info("report_deleted report_id=%s", report_id)
        return {"id": report_id, "deleted": True}

    def _overdue_query(self, agent_id: str | None) -> dict[str, Any]:
        query: dict[str, Any] = {
            "status": {"$nin": ["completed", "cancelled"]},
            "scheduled_date": {"$lt": self._utcnow_iso()},
        }
        if agent_id:
            query["agent_id"] = agent_id
        return query

    def overdue_reports(self, *, agent_id: str | None = None) -> list[dict[str, Any]]:
        rows = self.reports_repository.find(query=self._overdue_query(agent_id), sort=[("scheduled_date", 1)])
        return [self._report_view(r) for r in rows]

    def report_statistics(self, *, agent_id: str | None = None) -> dict[str, Any]:
        scope: dict[str, Any] = {"agent_id": agent_id} if agent_id else {}
        by_status = self.reports_repository.count_by(field="status", query=scope)
        by_type = self.reports_repository.count_by(field="report_type", query=scope)
        return {
            "total_reports": sum(by_status.values()),
            "completed_reports": by_status.get("completed", 0),
            "pending_reports": by_status.get("pending", 0),
            "overdue_reports": self.reports_repository.count(query=self._overdue_query(agent_id)),
            "reports_by_type": {t: by_type[t] for t in REPORT_TYPES if t in by_type},
        }
