from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from datetime import datetime
from typing import Optional
from bson import ObjectId

from loancrm.schemas.customer_schema import CustomerStatusEnum, DEFAULT_LOAN_TYPE


class Customer(Document):
    firstname: str = Field(..., description="First name of the customer")
    lastname: Optional[str] = Field(None, description="Last name of the customer")
    gender: Optional[str] = Field(None, description="Gender of the customer")
    dob: Optional[datetime] = Field(None, description="Date of birth (midnight UTC)")
    email: str = Field(..., description="Email address of the customer")
    phone: str = Field(..., description="Phone number of the customer")
    address: Optional[str] = Field(None, description="Postal address")
    bankname: Optional[str] = Field(None, description="Name of the lending bank")
    accountnumber: Optional[str] = Field(None, description="Bank account number")
    ifsc: Optional[str] = Field(None, description="Bank routing (IFSC) code")
    loantype: str = Field(default=DEFAULT_LOAN_TYPE, description="Type of loan requested")
    loanamount: float = Field(default=0, ge=0, description="Requested loan amount")
    status: CustomerStatusEnum = Field(default=CustomerStatusEnum.pending, description="Review status")
    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt", description="Insertion time (UTC)")
    updated_at: datetime = Field(default_factory=datetime.utcnow, alias="updatedAt", description="Last update time (UTC)")

    class Settings:
        name = "customers"  # Collection name in MongoDB
        indexes = [
            IndexModel([("email", ASCENDING)]),
            IndexModel([("phone", ASCENDING)]),
            IndexModel([("createdAt", ASCENDING)]),
        ]

    class Config:
        populate_by_name = True
        arbitrary_types_allowed = True
        json_encoders = {
            ObjectId: str,
            datetime: lambda v: v.isoformat()
        }
