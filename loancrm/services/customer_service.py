import logging
import math
from datetime import date, datetime, time
from typing import Any, Callable, Dict, List, Mapping, Optional

from loancrm.core.errors import ConflictError, NotFoundError, ValidationError
from loancrm.schemas.customer_schema import (
    DEFAULT_LOAN_TYPE,
    SORTABLE_FIELDS,
    CustomerCreate,
    CustomerRecord,
    CustomerStatusEnum,
    CustomerUpdate,
    PaginatedCustomers,
    PaginationInfo,
    SortOrderEnum,
)
from loancrm.services.filter_builder import (
    CREATED_AT,
    build_customer_filter,
    build_duplicate_filter,
    build_profile_filter,
    build_search_filter,
)
from loancrm.workers.notification_worker import RegistrationNotice

logger = logging.getLogger(__name__)

# Registration fields that must be present and non-blank
REQUIRED_REGISTRATION_FIELDS = ("firstname", "email", "phone", "accountnumber", "ifsc")

MAX_PAGE_SIZE = 100
NEWEST_FIRST = [(CREATED_AT, -1)]


def _as_datetime(value: Optional[date]) -> Optional[datetime]:
    # BSON has no date-only type; store dates as midnight
    if value is None or isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class CustomerService:

    def __init__(self, customer_store, notification_worker=None, clock: Callable[[], datetime] = datetime.utcnow):
        self.customer_store = customer_store
        self.notification_worker = notification_worker
        self.clock = clock
        logger.info("CustomerService initialized")

    # Validates, de-duplicates and persists a new customer, then queues the notifications
    async def register(self, payload: CustomerCreate) -> CustomerRecord:
        data = {key: _strip(value) for key, value in payload.model_dump().items()}
        self._validate_registration(data)

        duplicate = await self.customer_store.find_one(build_duplicate_filter(data["email"], data["phone"]))
        if duplicate:
            logger.info("Registration rejected: email or phone already registered (customer %s)", duplicate.id)
            raise ConflictError("Customer already registered")

        now = self.clock()
        data.update(
            dob=_as_datetime(data.get("dob")),
            loantype=data.get("loantype") or DEFAULT_LOAN_TYPE,
            loanamount=data.get("loanamount") or 0,
            status=CustomerStatusEnum.pending,
            created_at=now,
            updated_at=now,
        )
        customer = await self.customer_store.insert(data)
        logger.info("Customer registered with ID: %s", customer.id)

        if self.notification_worker is not None:
            self.notification_worker.submit(RegistrationNotice(customer=customer))
        return customer

    # Retrieves a customer by id or raises NotFoundError
    async def get_customer(self, customer_id: str) -> CustomerRecord:
        customer = await self.customer_store.get(customer_id)
        if customer is None:
            logger.warning("Customer %s not found", customer_id)
            raise NotFoundError("Customer not found")
        return customer

    # Retrieves a customer by the exact email and phone pair
    async def get_profile(self, email: Optional[str], phone: Optional[str]) -> CustomerRecord:
        customer = await self.customer_store.find_one(build_profile_filter(email, phone))
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    # Returns one page of customers with pagination metadata
    async def list_customers(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = CREATED_AT,
        sort_order: SortOrderEnum = SortOrderEnum.desc,
    ) -> PaginatedCustomers:
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        sort_field = SORTABLE_FIELDS.get(sort_by)
        if sort_field is None:
            raise ValidationError(
                f"Invalid sortBy: {sort_by}",
                error=f"sortBy must be one of: {', '.join(sorted(SORTABLE_FIELDS))}",
            )
        direction = 1 if SortOrderEnum(sort_order) == SortOrderEnum.asc else -1

        total = await self.customer_store.count()
        customers = await self.customer_store.find(
            sort=[(sort_field, direction)],
            skip=(page - 1) * limit,
            limit=limit,
        )
        pages = math.ceil(total / limit) if total else 0
        return PaginatedCustomers(
            customers=[c.to_response() for c in customers],
            pagination=PaginationInfo(
                page=page,
                limit=limit,
                total=total,
                pages=pages,
                hasNext=page < pages,
                hasPrev=page > 1,
            ),
        )

    # Applies a partial update; status may be changed here and only here
    async def update_customer(self, customer_id: str, payload: CustomerUpdate) -> CustomerRecord:
        changes = {key: _strip(value) for key, value in payload.model_dump(exclude_unset=True).items()}

        existing = await self.get_customer(customer_id)

        for required in REQUIRED_REGISTRATION_FIELDS:
            if required in changes and not changes[required]:
                raise ValidationError(f"{required} cannot be empty")
        if "loantype" in changes and not changes["loantype"]:
            changes["loantype"] = DEFAULT_LOAN_TYPE
        if "loanamount" in changes and changes["loanamount"] is None:
            changes["loanamount"] = 0
        if "status" in changes and changes["status"] is None:
            raise ValidationError("status cannot be empty")
        if "dob" in changes:
            changes["dob"] = _as_datetime(changes["dob"])

        new_email = changes.get("email") if changes.get("email") != existing.email else None
        new_phone = changes.get("phone") if changes.get("phone") != existing.phone else None
        if new_email or new_phone:
            clashes = await self.customer_store.find(build_duplicate_filter(new_email, new_phone))
            if any(other.id != existing.id for other in clashes):
                raise ConflictError("Another customer already uses this email or phone")

        changes["updated_at"] = self.clock()
        updated = await self.customer_store.update(customer_id, changes)
        if updated is None:
            raise NotFoundError("Customer not found")
        logger.info("Customer %s updated (%s)", customer_id, ", ".join(sorted(changes)))
        return updated

    # Hard-deletes a customer
    async def delete_customer(self, customer_id: str) -> None:
        deleted = await self.customer_store.delete(customer_id)
        if not deleted:
            logger.warning("Customer %s not found for deletion", customer_id)
            raise NotFoundError("Customer not found")
        logger.info("Customer %s deleted", customer_id)

    async def search(self, query: Optional[str]) -> List[CustomerRecord]:
        return await self.customer_store.find(build_search_filter(query), sort=NEWEST_FIRST)

    async def filter_customers(self, params: Mapping[str, Any]) -> List[CustomerRecord]:
        predicate = build_customer_filter(params, now=self.clock())
        return await self.customer_store.find(predicate, sort=NEWEST_FIRST)

    # Validates required registration fields before anything is written
    def _validate_registration(self, data: Dict[str, Any]) -> None:
        missing = [name for name in REQUIRED_REGISTRATION_FIELDS if not data.get(name)]
        if missing:
            raise ValidationError(
                "First name, email, phone, account number and IFSC code are required",
                error=f"Missing required fields: {', '.join(missing)}",
            )
