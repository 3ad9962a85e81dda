"""Authentication routes — /api/auth/signup, /api/auth/login."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from taskguardian.api.dependencies import Services, get_services
from taskguardian.api.schemas import ErrorResponse, LoginRequest, SessionResponse, SignupRequest

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/signup",
    response_model=SessionResponse,
    summary="Create a new user account",
    responses={
        401: {"model": ErrorResponse, "description": "Invalid role or missing required fields"},
        409: {"model": ErrorResponse, "description": "Username already exists"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    },
)
def signup(payload: Optional[SignupRequest] = None, services: Services = Depends(get_services)):
    payload = payload or SignupRequest()
    session = services.auth.signup(payload.username, payload.password, payload.role)
    return {"state": "success", "session": session}


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Authenticate user",
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials or missing required fields"}},
)
def login(payload: Optional[LoginRequest] = None, services: Services = Depends(get_services)):
    payload = payload or LoginRequest()
    session = services.auth.login(payload.name or payload.username, payload.password)
    return {"state": "success", "session": session}
