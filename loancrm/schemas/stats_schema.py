from pydantic import BaseModel, Field
from typing import List


class MonthlyStats(BaseModel):
    month: int = Field(..., ge=1, le=12, description="Calendar month, 1-indexed")
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    loanTotal: float = Field(0, description="Sum of loan amounts created in the month")
    count: int = Field(0, description="Records created in the month")


class CustomerStats(BaseModel):
    totalCustomers: int = 0
    approvedCount: int = 0
    pendingCount: int = 0
    rejectedCount: int = 0
    totalLoanAmount: float = 0
    monthwise: List[MonthlyStats] = Field(default_factory=list)
