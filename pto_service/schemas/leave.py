from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import List, Optional

from pto_service.models.leave_policy import EligibilityRule

class LeaveRequestCreate(BaseModel):
    category: str = Field(..., examples=["Short-term leave"])
    type: str = Field(..., examples=["Vacation"])
    # Kept as text so unparsable dates come back as InvalidDateRange
    start_date: str = Field(..., examples=["2025-03-10"])
    end_date: str = Field(..., examples=["2025-03-14"])
    reason: Optional[str] = None

class LeaveRequestResponse(BaseModel):
    id: int
    user_id: int
    category: str
    type: str
    start_date: date
    end_date: date
    days_count: int
    status: str
    reason: Optional[str] = None
    approver_id: Optional[int] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SubmitResponse(BaseModel):
    request: LeaveRequestResponse
    computed_days: int
    approver_id: Optional[int] = None
    counts_against_balance: bool

class BalanceLineResponse(BaseModel):
    category: str
    type: str
    unlimited: bool
    used_days: float
    allowance_days: Optional[float] = None
    remaining_days: Optional[float] = None
    counts_against_balance: bool
    carryover_allowed: bool

class BalanceResponse(BaseModel):
    user: str
    is_student: bool
    balances: List[BalanceLineResponse]

class LeaveTypePolicyResponse(BaseModel):
    category: str
    name: str
    annual_allowance_days: Optional[float] = None
    is_unlimited: bool
    counts_against_balance: bool
    eligibility_rule: EligibilityRule
    carryover_allowed: bool

    model_config = ConfigDict(from_attributes=True)

class LeaveTypePolicyUpdate(BaseModel):
    """Admin patch; only the fields sent are applied."""
    annual_allowance_days: Optional[float] = Field(None, ge=0)
    is_unlimited: Optional[bool] = None
    counts_against_balance: Optional[bool] = None
    eligibility_rule: Optional[EligibilityRule] = None
    carryover_allowed: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

# Resolve forward references for Pydantic V2
SubmitResponse.model_rebuild()
BalanceResponse.model_rebuild()
