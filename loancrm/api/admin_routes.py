from fastapi import APIRouter, Depends, Request
from fastapi import status
from typing import Optional
import logging

from loancrm.schemas.admin_schemas import (
    AdminCreate,
    AdminLogin,
    AdminLoginResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
)
from loancrm.services.admin_service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin_service


# Admin registration (for initial setup)
@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(data: AdminCreate, service: AdminService = Depends(get_admin_service)) -> MessageResponse:
    await service.register(data)
    return MessageResponse(message="Admin registered successfully")


# Authenticates admin credentials and returns a bearer token
@router.post("/login", response_model=AdminLoginResponse)
async def login_admin(data: AdminLogin, service: AdminService = Depends(get_admin_service)) -> AdminLoginResponse:
    return await service.login(data)


# Emails a one-time passcode for a password reset
@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: Optional[ForgotPasswordRequest] = None,
    service: AdminService = Depends(get_admin_service),
) -> MessageResponse:
    await service.forgot_password(data.email if data else None)
    return MessageResponse(message="OTP sent to email")


# Verifies the passcode and sets a new password
@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, service: AdminService = Depends(get_admin_service)) -> MessageResponse:
    await service.reset_password(data)
    return MessageResponse(message="Password reset successful")
