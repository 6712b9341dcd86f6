import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from loancrm.core.config import Settings
from loancrm.core.errors import AuthError, ConflictError, NotFoundError, NotificationError, ServiceError, ValidationError
from loancrm.core.security import (
    MIN_PASSWORD_LENGTH,
    create_access_token,
    decode_token,
    generate_otp,
    hash_password,
    is_valid_password,
    verify_password,
)
from loancrm.schemas.admin_schemas import (
    AdminCreate,
    AdminLogin,
    AdminLoginResponse,
    AdminRecord,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_OTP = "Invalid or expired OTP"


class AdminService:

    def __init__(self, admin_store, settings: Settings, notifier=None, clock: Callable[[], datetime] = datetime.utcnow):
        self.admin_store = admin_store
        self.settings = settings
        self.notifier = notifier
        self.clock = clock

    # Register a new admin account (initial setup)
    async def register(self, data: AdminCreate) -> AdminRecord:
        if await self.admin_store.get_by_email(data.email):
            raise ConflictError("Admin already exists")
        if not is_valid_password(data.password):
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        admin = await self.admin_store.insert({
            "username": data.username,
            "email": data.email,
            "hashed_password": hash_password(data.password),
            "created_at": self.clock(),
        })
        logger.info("Admin registered with ID: %s", admin.id)
        return admin

    # Authenticate an admin and issue a bearer token
    async def login(self, data: AdminLogin) -> AdminLoginResponse:
        logger.debug("Login attempt for email: %s", data.email)
        admin = await self.admin_store.get_by_email(data.email)
        if admin is None or not verify_password(data.password, admin.hashed_password):
            raise AuthError(INVALID_CREDENTIALS, status_code=400)

        try:
            token = create_access_token({"id": admin.id}, self.settings)
        except ValueError as e:
            logger.error("Token creation failed: %s", e)
            raise ServiceError("Could not create access token") from e
        logger.debug("Created access token for admin %s", admin.id)
        return AdminLoginResponse(token=token, admin=admin.public())

    # Resolve a bearer token to an existing admin or raise AuthError
    async def resolve_token(self, token: Optional[str]) -> AdminRecord:
        if not token:
            raise AuthError("No token, authorization denied")
        payload = decode_token(token, self.settings)
        if not payload or not payload.get("id"):
            logger.warning("Token validation failed")
            raise AuthError("Token is not valid")
        admin = await self.admin_store.get(str(payload["id"]))
        if admin is None:
            raise AuthError("Invalid token")
        return admin

    # Issue a one-time passcode and email it to the admin
    async def forgot_password(self, email: Optional[str] = None) -> None:
        target = email or self.settings.ADMIN_RECOVERY_EMAIL
        if not target:
            raise ValidationError("Email is required")
        admin = await self.admin_store.get_by_email(target)
        if admin is None:
            raise NotFoundError("Admin not found")

        if self.notifier is None or not self.notifier.configured:
            raise ServiceError("Mail service is not available")

        otp = generate_otp()
        ttl = self.settings.OTP_TTL_MINUTES
        await self.admin_store.update(admin.id, {"otp": otp, "otp_expires": self.clock() + timedelta(minutes=ttl)})

        # OTP delivery stays on the request path; an undelivered OTP is withdrawn
        try:
            await self.notifier.send_password_reset_otp(admin.email, otp, ttl)
        except NotificationError:
            await self._clear_otp(admin)
            raise
        logger.info("Password reset OTP issued for admin %s", admin.id)

    # Verify the passcode and set the new password
    async def reset_password(self, data: ResetPasswordRequest) -> None:
        admin = await self.admin_store.get_by_email(data.email)
        if admin is None or not admin.otp:
            raise AuthError(INVALID_OTP, status_code=400)

        if admin.otp_expires is None or self.clock() > admin.otp_expires:
            await self._clear_otp(admin)
            raise AuthError(INVALID_OTP, status_code=400)
        if admin.otp != data.otp:
            raise AuthError(INVALID_OTP, status_code=400)

        if not is_valid_password(data.new_password):
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        await self.admin_store.update(admin.id, {
            "hashed_password": hash_password(data.new_password),
            "otp": None,
            "otp_expires": None,
        })
        logger.info("Password reset for admin %s", admin.id)

    async def _clear_otp(self, admin: AdminRecord) -> None:
        await self.admin_store.update(admin.id, {"otp": None, "otp_expires": None})
        logger.info("OTP cleared for admin %s", admin.id)
