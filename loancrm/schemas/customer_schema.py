from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

DEFAULT_LOAN_TYPE = "Home Loan"


class CustomerStatusEnum(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class CustomerCreate(BaseModel):
    # Presence of required fields is checked by the registration workflow so
    # that a missing field is reported as a 400 with a readable message.
    firstname: Optional[str] = Field(None, description="First name of the customer")
    lastname: Optional[str] = Field(None, description="Last name of the customer")
    gender: Optional[str] = Field(None, description="Gender of the customer")
    dob: Optional[date] = Field(None, description="Date of birth")
    email: Optional[str] = Field(None, description="Email address; with phone forms the natural key")
    phone: Optional[str] = Field(None, description="Phone number; with email forms the natural key")
    address: Optional[str] = Field(None, description="Postal address")
    bankname: Optional[str] = Field(None, description="Name of the lending bank")
    accountnumber: Optional[str] = Field(None, description="Bank account number")
    ifsc: Optional[str] = Field(None, description="Bank routing (IFSC) code")
    loantype: Optional[str] = Field(None, description="Loan type, defaults to Home Loan")
    loanamount: Optional[float] = Field(None, ge=0, description="Requested loan amount")

    model_config = ConfigDict(extra="ignore")


class CustomerUpdate(BaseModel):
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[date] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bankname: Optional[str] = None
    accountnumber: Optional[str] = None
    ifsc: Optional[str] = None
    loantype: Optional[str] = None
    loanamount: Optional[float] = Field(None, ge=0)
    status: Optional[CustomerStatusEnum] = None

    model_config = ConfigDict(extra="ignore")


class CustomerRecord(BaseModel):
    """A stored customer, keyed the way the collection stores it (``_id``,
    ``createdAt``, ``updatedAt``)."""

    id: str = Field(..., alias="_id")
    firstname: str
    lastname: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[datetime] = None
    email: str
    phone: str
    address: Optional[str] = None
    bankname: Optional[str] = None
    accountnumber: Optional[str] = None
    ifsc: Optional[str] = None
    loantype: str = DEFAULT_LOAN_TYPE
    loanamount: float = Field(0, ge=0)
    status: CustomerStatusEnum = CustomerStatusEnum.pending
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CustomerResponse(BaseModel):
    message: str
    customer: dict


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    hasNext: bool
    hasPrev: bool


class PaginatedCustomers(BaseModel):
    customers: List[dict]
    pagination: PaginationInfo


class SortOrderEnum(str, Enum):
    asc = "asc"
    desc = "desc"


# Fields a client may sort the customer list by, mapped to stored keys
SORTABLE_FIELDS = {
    "createdAt": "createdAt",
    "updatedAt": "updatedAt",
    "firstname": "firstname",
    "lastname": "lastname",
    "email": "email",
    "loanamount": "loanamount",
    "loantype": "loantype",
    "status": "status",
}
