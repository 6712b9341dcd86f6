from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional


class AdminCreate(BaseModel):
    username: str = Field(..., min_length=1, description="Display name of the admin")
    email: EmailStr = Field(..., description="Email address of the admin")
    password: str = Field(..., description="Password for the admin account")


class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class AdminPublic(BaseModel):
    username: str
    email: EmailStr


class AdminLoginResponse(BaseModel):
    token: str = Field(..., description="Bearer token for admin-only endpoints")
    admin: AdminPublic


class ForgotPasswordRequest(BaseModel):
    email: Optional[EmailStr] = Field(None, description="Admin email; defaults to the configured recovery address")


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str
    new_password: str = Field(..., alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


class AdminRecord(BaseModel):
    id: str = Field(..., alias="_id")
    username: str
    email: EmailStr
    hashed_password: str
    otp: Optional[str] = None
    otp_expires: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)

    def public(self) -> AdminPublic:
        return AdminPublic(username=self.username, email=self.email)
