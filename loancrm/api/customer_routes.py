from fastapi import APIRouter, Depends, Query, Request
from fastapi import status
from typing import Any, Dict, List, Optional
import logging

from loancrm.core.auth_dependencies import get_current_admin, get_delete_guard
from loancrm.schemas.admin_schemas import AdminRecord, MessageResponse
from loancrm.schemas.customer_schema import (
    CustomerCreate,
    CustomerResponse,
    CustomerUpdate,
    PaginatedCustomers,
    SortOrderEnum,
)
from loancrm.schemas.stats_schema import CustomerStats
from loancrm.services.customer_service import CustomerService
from loancrm.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customers", tags=["Customers"])


def get_customer_service(request: Request) -> CustomerService:
    return request.app.state.customer_service


def get_stats_service(request: Request) -> StatsService:
    return request.app.state.stats_service


# Overall and current-year month-wise customer statistics
@router.get("/stats", response_model=CustomerStats)
async def customer_stats(
    current_admin: AdminRecord = Depends(get_current_admin),
    service: StatsService = Depends(get_stats_service),
) -> CustomerStats:
    return await service.compute()


# Registers a new customer; notifications are sent after the response
@router.post("/register", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def register_customer(
    payload: CustomerCreate,
    service: CustomerService = Depends(get_customer_service),
) -> CustomerResponse:
    customer = await service.register(payload)
    return CustomerResponse(message="Customer registered successfully", customer=customer.to_response())


# Fetches a customer by exact email and phone
@router.get("/profile")
async def customer_profile(
    email: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
    service: CustomerService = Depends(get_customer_service),
) -> Dict[str, Any]:
    customer = await service.get_profile(email, phone)
    return customer.to_response()


# Paginated list of all customers (admin only)
@router.get("/all", response_model=PaginatedCustomers)
async def list_customers(
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(10, description="Page size, at most 100"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: SortOrderEnum = Query(SortOrderEnum.desc, alias="sortOrder"),
    current_admin: AdminRecord = Depends(get_current_admin),
    service: CustomerService = Depends(get_customer_service),
) -> PaginatedCustomers:
    return await service.list_customers(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


# Partially updates a customer, including its status (admin only)
@router.put("/update/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    payload: CustomerUpdate,
    current_admin: AdminRecord = Depends(get_current_admin),
    service: CustomerService = Depends(get_customer_service),
) -> CustomerResponse:
    customer = await service.update_customer(customer_id, payload)
    logger.info("Customer %s updated by admin %s", customer_id, current_admin.id)
    return CustomerResponse(message="Customer updated successfully", customer=customer.to_response())


# Hard-deletes a customer
@router.delete("/delete/{customer_id}", response_model=MessageResponse)
async def delete_customer(
    customer_id: str,
    current_admin: Optional[AdminRecord] = Depends(get_delete_guard),
    service: CustomerService = Depends(get_customer_service),
) -> MessageResponse:
    await service.delete_customer(customer_id)
    return MessageResponse(message="Customer deleted successfully")


# Case-insensitive substring search across name, email and phone
@router.get("/search")
async def search_customers(
    q: Optional[str] = Query(None, description="Search text"),
    service: CustomerService = Depends(get_customer_service),
) -> List[Dict[str, Any]]:
    customers = await service.search(q)
    return [c.to_response() for c in customers]


# Filters customers by creation month/year, loan type, amount range and status
@router.get("/filter")
async def filter_customers(
    month: Optional[str] = Query(None, description="1-12"),
    year: Optional[str] = Query(None),
    loantype: Optional[str] = Query(None),
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    status_: Optional[str] = Query(None, alias="status"),
    service: CustomerService = Depends(get_customer_service),
) -> List[Dict[str, Any]]:
    params = {
        "month": month,
        "year": year,
        "loantype": loantype,
        "minAmount": min_amount,
        "maxAmount": max_amount,
        "status": status_,
    }
    customers = await service.filter_customers(params)
    return [c.to_response() for c in customers]


# Fetches a customer by id
@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    service: CustomerService = Depends(get_customer_service),
) -> Dict[str, Any]:
    customer = await service.get_customer(customer_id)
    return customer.to_response()
