import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    PROJECT_NAME: str = "Loan Customer Records"
    MONGODB_URI: Optional[str] = None
    MONGODB_DB_NAME: Optional[str] = None
    JWT_SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    CLIENT_URL: str = "http://localhost:3000"
    MAIL_API_URL: Optional[str] = None
    MAIL_API_TOKEN: Optional[str] = None
    MAIL_SENDER: str = "MV ASSOCIATES <no-reply@mvassociates.org>"
    ADMIN_RECOVERY_EMAIL: Optional[str] = None
    OTP_TTL_MINUTES: int = 10
    NOTIFICATION_QUEUE_SIZE: int = Field(default=100, ge=1)
    REQUIRE_ADMIN_FOR_DELETE: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 5001

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and a .env file if present).

        This is the only place that reads the environment; everything else
        receives the resulting object.
        """
        load_dotenv()
        return cls(
            MONGODB_URI=os.getenv("MONGODB_URI"),
            MONGODB_DB_NAME=os.getenv("MONGODB_DB_NAME"),
            JWT_SECRET_KEY=os.getenv("JWT_SECRET_KEY"),
            JWT_ALGORITHM=os.getenv("JWT_ALGORITHM", "HS256"),
            JWT_ACCESS_TOKEN_EXPIRE_MINUTES=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60)),
            CLIENT_URL=os.getenv("CLIENT_URL", "http://localhost:3000"),
            MAIL_API_URL=os.getenv("MAIL_API_URL"),
            MAIL_API_TOKEN=os.getenv("MAIL_API_TOKEN"),
            MAIL_SENDER=os.getenv("MAIL_SENDER", "MV ASSOCIATES <no-reply@mvassociates.org>"),
            ADMIN_RECOVERY_EMAIL=os.getenv("ADMIN_RECOVERY_EMAIL"),
            OTP_TTL_MINUTES=int(os.getenv("OTP_TTL_MINUTES", 10)),
            NOTIFICATION_QUEUE_SIZE=int(os.getenv("NOTIFICATION_QUEUE_SIZE", 100)),
            REQUIRE_ADMIN_FOR_DELETE=_env_bool("REQUIRE_ADMIN_FOR_DELETE"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            PORT=int(os.getenv("PORT", 5001)),
        )

    # Support comma-separated CLIENT_URL values (e.g. "http://localhost:3000,http://localhost:3001")
    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in (self.CLIENT_URL or "").split(",") if o.strip()]


def mask_secret(val: Optional[str]) -> str:
    if not val:
        return "<missing>"
    if len(val) <= 8:
        return "*" * len(val)
    return f"{val[:4]}...{val[-4:]}"
