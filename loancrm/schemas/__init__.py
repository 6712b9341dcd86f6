from loancrm.schemas.customer_schema import (
    DEFAULT_LOAN_TYPE,
    SORTABLE_FIELDS,
    CustomerCreate,
    CustomerRecord,
    CustomerResponse,
    CustomerStatusEnum,
    CustomerUpdate,
    PaginatedCustomers,
    PaginationInfo,
    SortOrderEnum,
)
from loancrm.schemas.stats_schema import CustomerStats, MonthlyStats
from loancrm.schemas.admin_schemas import (
    AdminCreate,
    AdminLogin,
    AdminLoginResponse,
    AdminPublic,
    AdminRecord,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
)
