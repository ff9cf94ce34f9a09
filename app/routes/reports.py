from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from app.routes._deps import created, ok, paginated, pagination, require_roles
from app.schemas import ReportCreateRequest, ReportUpdateRequest
from app.store import store
from app.uploads import MAX_UPLOAD_BYTES, PendingUpload, create_upload_storage_from_env

router = APIRouter(prefix="/api/reports", tags=["reports"])

field_staff = require_roles("admin", "agent")


def _scope_agent(user: dict[str, Any], agent_id: str | None) -> str | None:
    if user["role"] == "agent":
        return user["id"]
    return agent_id


@router.get("", summary="List field reports")
def list_reports(
    request: Request,
    agent_id: str | None = Query(default=None),
    farmer_id: str | None = Query(default=None),
    report_type: str | None = Query(default=None),
    status: str | None = Query(default=None),
    priority: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    search: str | None = Query(default=None),
    paging: dict[str, int] = Depends(pagination()),
    user: dict[str, Any] = Depends(field_staff),
):
    filters = {
        "agent_id": agent_id,
        "farmer_id": farmer_id,
        "report_type": report_type,
        "status": status,
        "priority": priority,
        "date_from": date_from,
        "date_to": date_to,
        "search": search,
    }
    result = store.list_reports(actor=user, filters=filters, **paging)
    return paginated(request, result, "Reports retrieved successfully")


@router.get("/statistics", summary="Report statistics")
def report_statistics(
    request: Request,
    agent_id: str | None = Query(default=None),
    user: dict[str, Any] = Depends(field_staff),
):
    data = store.report_statistics(agent_id=_scope_agent(user, agent_id))
    return ok(request, data, "Report statistics retrieved successfully")


@router.get("/overdue", summary="Reports past their scheduled date")
def overdue_reports(
    request: Request,
    agent_id: str | None = Query(default=None),
    user: dict[str, Any] = Depends(field_staff),
):
    data = store.overdue_reports(agent_id=_scope_agent(user, agent_id))
    return ok(request, data, "Overdue reports retrieved successfully")


@router.get("/{report_id}", summary="Get a report")
def get_report(report_id: str, request: Request, user: dict[str, Any] = Depends(field_staff)):
    return ok(request, store.get_report(report_id=report_id, actor=user), "Report retrieved successfully")


@router.post("", summary="File a report")
def create_report(payload: ReportCreateRequest, request: Request, user: dict[str, Any] = Depends(field_staff)):
    data = store.create_report(actor=user, payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Report created successfully")


@router.put("/{report_id}", summary="Update a report")
def update_report(
    report_id: str,
    payload: ReportUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(field_staff),
):
    data = store.update_report(report_id=report_id, actor=user, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Report updated successfully")


@router.post("/{report_id}/complete", summary="Mark a report completed")
def complete_report(report_id: str, request: Request, user: dict[str, Any] = Depends(field_staff)):
    data = store.complete_report(report_id=report_id, actor=user)
    return ok(request, data, "Report marked as completed")


@router.post("/{report_id}/attachments", summary="Attach files to a report")
async def add_attachments(
    report_id: str,
    request: Request,
    files: list[UploadFile] | None = File(default=None),
    user: dict[str, Any] = Depends(field_staff),
):
    uploads = [f for f in files or [] if f.filename]
    store.check_attachment_batch(report_id=report_id, actor=user, count=len(uploads))
    pending = [
        PendingUpload(
            filename=upload.filename or "attachment",
            content_bytes=await upload.read(MAX_UPLOAD_BYTES + 1),
            content_type=upload.content_type,
        )
        for upload in uploads
    ]
    paths = create_upload_storage_from_env().save_all(pending)
    data = store.add_report_attachments(report_id=report_id, actor=user, paths=paths)
    return ok(request, data, "Attachments uploaded successfully")


@router.delete("/{report_id}", summary="Delete a report")
def delete_report(report_id: str, request: Request, user: dict[str, Any] = Depends(require_roles("admin"))):
    return ok(request, store.delete_report(report_id=report_id, actor=user), "Report deleted successfully")
