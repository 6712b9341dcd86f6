from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
import logging

from loancrm.core.errors import AuthError
from loancrm.schemas.admin_schemas import AdminRecord

logger = logging.getLogger(__name__)

# auto_error=False so a missing header produces our own 401 body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)


# Extracts and validates the bearer token to retrieve the calling admin
async def get_current_admin(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> AdminRecord:
    logger.debug("Authorization header present: %s", "<redacted>" if token else None)
    admin_service = request.app.state.admin_service
    try:
        return await admin_service.resolve_token(token)
    except AuthError:
        logger.warning("Admin authentication failed for %s %s", request.method, request.url.path)
        raise


# Applies the admin guard to deletes only when the deployment asks for it
async def get_delete_guard(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[AdminRecord]:
    if not request.app.state.settings.REQUIRE_ADMIN_FOR_DELETE:
        return None
    return await get_current_admin(request, token)
