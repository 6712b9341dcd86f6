from loancrm.core.config import Settings
from loancrm.core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    NotificationError,
    ServiceError,
    StoreError,
    ValidationError,
)
from loancrm.core.security import (
    create_access_token,
    decode_token,
    generate_otp,
    hash_password,
    is_valid_password,
    verify_password,
)
