from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from app.routes._deps import created, current_user, ok
from app.schemas import (
    AgentInformationUpdateRequest,
    AgentPerformanceRequest,
    AgentProfileFields,
    FarmerInformationUpdateRequest,
    FarmerProfileFields,
    TreeCountRequest,
)
from app.store import store

farmer_router = APIRouter(prefix="/api/farmer-information", tags=["farmer-information"])
agent_router = APIRouter(prefix="/api/agent-information", tags=["agent-information"])


@farmer_router.get("", summary="Farmer details and profile")
def get_farmer_information(
    request: Request,
    farmerId: str | None = Query(default=None),
    user: dict[str, Any] = Depends(current_user),
):
    data = store.get_farmer_information(actor=user, farmer_id=farmerId)
    return ok(request, data, "Farmer information retrieved successfully")


@farmer_router.put("", summary="Update farmer details and profile")
def update_farmer_information(
    payload: FarmerInformationUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.update_farmer_information(actor=user, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Farmer information updated successfully")


@farmer_router.post("/create", summary="Create the caller's farmer profile")
def create_farmer_profile(
    payload: FarmerProfileFields,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.create_farmer_profile(actor=user, payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Farmer profile created successfully")


@farmer_router.put("/tree-count", summary="Update the caller's tree count")
def update_tree_count(payload: TreeCountRequest, request: Request, user: dict[str, Any] = Depends(current_user)):
    data = store.update_tree_count(actor=user, tree_count=payload.tree_count)
    return ok(request, data, "Tree count updated successfully")


@agent_router.get("", summary="Agent details and profile")
def get_agent_information(request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, store.get_agent_information(actor=user), "Agent information retrieved successfully")


@agent_router.put("", summary="Update agent details and profile")
def update_agent_information(
    payload: AgentInformationUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.update_agent_information(actor=user, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Agent information updated successfully")


@agent_router.post("/create", summary="Create the caller's agent profile")
def create_agent_profile(
    payload: AgentProfileFields,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.create_agent_profile(actor=user, payload=payload.model_dump(exclude_none=True))
    return created(request, data, "Profile created successfully")


@agent_router.put("/performance", summary="Update performance metrics")
def update_agent_performance(
    payload: AgentPerformanceRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.update_agent_performance(actor=user, payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Performance metrics updated successfully")
