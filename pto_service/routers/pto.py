from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from pto_service.core.exceptions import unwrap
from pto_service.models.leave_request import LeaveStatus
from pto_service.models.user import User
from pto_service.routers.auth_deps import get_current_user, get_lifecycle, get_user_store
from pto_service.schemas.leave import (
    BalanceResponse,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveTypePolicyResponse,
    SubmitResponse,
)
from pto_service.services.leave_lifecycle import Decision, LeaveLifecycleService
from pto_service.services.user_store import UserStore

router = APIRouter(prefix="/pto")


@router.post("/requests", response_model=SubmitResponse)
def submit_request(
    payload: LeaveRequestCreate,
    current_user: User = Depends(get_current_user),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    submission = unwrap(lifecycle.submit(
        current_user,
        payload.category,
        payload.type,
        payload.start_date,
        payload.end_date,
        payload.reason,
    ))
    return SubmitResponse(
        request=LeaveRequestResponse.model_validate(submission.request),
        computed_days=submission.computed_days,
        approver_id=submission.request.approver_id,
        counts_against_balance=submission.policy.counts_against_balance,
    )


@router.post("/requests/{request_id}/approve", response_model=LeaveRequestResponse)
def approve_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    return unwrap(lifecycle.decide(request_id, current_user, Decision.APPROVE))


@router.post("/requests/{request_id}/deny", response_model=LeaveRequestResponse)
def deny_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    return unwrap(lifecycle.decide(request_id, current_user, Decision.DENY))


@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestResponse)
def cancel_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    return unwrap(lifecycle.cancel(request_id, current_user))


@router.get("/balance/{external_id}", response_model=BalanceResponse)
def get_balance(
    external_id: str,
    users: UserStore = Depends(get_user_store),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    user = users.get_by_external_id(external_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return BalanceResponse(
        user=user.name,
        is_student=bool(user.is_student),
        balances=[line.to_dict() for line in lifecycle.balance_summary(user)],
    )


@router.get("/requests", response_model=List[LeaveRequestResponse])
def list_requests(
    user_id: Optional[str] = Query(None, description="Chat platform id of the requester"),
    status: Optional[LeaveStatus] = None,
    users: UserStore = Depends(get_user_store),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    owner = None
    if user_id:
        owner = users.get_by_external_id(user_id)
        if not owner:
            raise HTTPException(status_code=404, detail="User not found")
    return lifecycle.list_requests(owner, status.value if status else None)


@router.get("/approvals", response_model=List[LeaveRequestResponse])
def pending_approvals(
    current_user: User = Depends(get_current_user),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    """Pending requests the caller may decide (all of them for admins)."""
    return lifecycle.pending_approvals(current_user)


@router.get("/types", response_model=List[LeaveTypePolicyResponse])
def list_types(lifecycle: LeaveLifecycleService = Depends(get_lifecycle)):
    return lifecycle.list_policies()
