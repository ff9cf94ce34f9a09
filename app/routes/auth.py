from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from app.routes._deps import created, current_user, ok
from app.schemas import LoginRequest, PasswordChangeRequest, ProfileUpdateRequest, RegisterRequest
from app.security import issue_access_token
from app.store import store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_for(request: Request, user: dict[str, Any]) -> str:
    return issue_access_token(user=user, cfg=request.app.state.security_cfg)


@router.post("/register", summary="Register a new account")
def register(payload: RegisterRequest, request: Request):
    user = store.register_user(payload=payload.model_dump())
    data = {"token": _token_for(request, user), "user": store.user_summary(user)}
    return created(request, data, "User registered successfully")


@router.post("/login", summary="Exchange credentials for a token")
def login(payload: LoginRequest, request: Request):
    user = store.authenticate_user(email=payload.email, password=payload.password)
    logger.info("login_succeeded user_id=%s", user["id"])
    data = {"token": _token_for(request, user), "user": store.user_summary(user)}
    return ok(request, data, "Login successful")


@router.post("/logout", summary="Log out (tokens are stateless)")
def logout(request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, None, "Logout successful")


@router.get("/profile", summary="Current user's profile")
def get_profile(request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, user, "Profile retrieved successfully")


@router.put("/profile", summary="Update current user's profile")
def update_profile(
    payload: ProfileUpdateRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    data = store.update_own_profile(user_id=user["id"], payload=payload.model_dump(exclude_none=True))
    return ok(request, data, "Profile updated successfully")


@router.put("/password", summary="Change password")
def change_password(
    payload: PasswordChangeRequest,
    request: Request,
    user: dict[str, Any] = Depends(current_user),
):
    store.change_password(
        user_id=user["id"],
        current_password=payload.currentPassword,
        new_password=payload.newPassword,
    )
    return ok(request, None, "Password changed successfully")


@router.post("/refresh", summary="Issue a fresh token")
def refresh(request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, {"token": _token_for(request, user)}, "Token refreshed successfully")


@router.get("/verify", summary="Verify the bearer token")
def verify(request: Request, user: dict[str, Any] = Depends(current_user)):
    return ok(request, {"user": store.user_summary(user)}, "Token is valid")
