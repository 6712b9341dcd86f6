from beanie import Document
from pydantic import EmailStr, Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime
from typing import Optional
from bson import ObjectId


class Admin(Document):
    username: str = Field(..., description="Display name of the admin")
    email: EmailStr = Field(..., description="Email address of the admin")
    hashed_password: str = Field(..., description="Bcrypt hash of the admin password")
    otp: Optional[str] = Field(None, description="Pending password-reset passcode")
    otp_expires: Optional[datetime] = Field(None, description="When the pending passcode stops being valid (UTC)")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp when the admin was created")

    class Settings:
        name = "admins"
        indexes = [
            IndexModel([("email", ASCENDING)], unique=True),
        ]

    class Config:
        populate_by_name = True
        arbitrary_types_allowed = True
        json_encoders = {
            ObjectId: str,
            datetime: lambda v: v.isoformat()
        }
