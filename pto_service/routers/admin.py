from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from pto_service.core.exceptions import unwrap
from pto_service.models.user import User
from pto_service.routers.auth_deps import get_lifecycle, get_user_store, require_admin
from pto_service.schemas.leave import LeaveRequestResponse, LeaveTypePolicyResponse, LeaveTypePolicyUpdate
from pto_service.schemas.user import UserAdminUpdate, UserResponse
from pto_service.services.leave_lifecycle import LeaveLifecycleService
from pto_service.services.user_store import UserStore

router = APIRouter(
    prefix="/admin",
    dependencies=[Depends(require_admin)]
)

class PtoReportRow(BaseModel):
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

def _reports_to(users: UserStore, start: User, user_id: int) -> bool:
    """True when `user_id` appears in the manager chain above `start`."""
    seen = set()
    current = start
    while current is not None and current.manager_id is not None and current.id not in seen:
        if current.manager_id == user_id:
            return True
        seen.add(current.id)
        current = users.get_by_id(current.manager_id)
    return False

@router.post("/pto/requests/{request_id}/cancel", response_model=LeaveRequestResponse)
def admin_cancel_request(
    request_id: int,
    admin: User = Depends(require_admin),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    """Cancel any user's pending or approved request."""
    return unwrap(lifecycle.admin_cancel(request_id, admin))

@router.patch("/pto/types/{category}/{name}", response_model=LeaveTypePolicyResponse)
def update_pto_type(
    category: str,
    name: str,
    patch: LeaveTypePolicyUpdate,
    admin: User = Depends(require_admin),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    changes = patch.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Empty patch")
    return unwrap(lifecycle.update_policy(admin, category, name, changes))

@router.get("/reports/pto", response_model=List[PtoReportRow])
def pto_report(
    admin: User = Depends(require_admin),
    lifecycle: LeaveLifecycleService = Depends(get_lifecycle)
):
    """Every request with decision metadata, newest first."""
    return unwrap(lifecycle.report(admin))

@router.patch("/users/{external_id}", response_model=UserResponse)
def update_user(
    external_id: str,
    patch: UserAdminUpdate,
    users: UserStore = Depends(get_user_store)
):
    """Assign a manager or toggle the admin/student flags."""
    user = users.get_by_external_id(external_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = patch.model_dump(exclude_unset=True)
    if "manager_slack_id" in changes:
        manager_slack_id = changes.pop("manager_slack_id")
        if manager_slack_id is None:
            changes["manager_id"] = None
        else:
            manager = users.get_by_external_id(manager_slack_id)
            if not manager:
                raise HTTPException(status_code=400, detail=f"Manager {manager_slack_id} not found")
            if manager.id == user.id:
                raise HTTPException(status_code=400, detail="A user cannot be their own manager")
            if _reports_to(users, manager, user.id):
                raise HTTPException(
                    status_code=400,
                    detail=f"{manager_slack_id} already reports to {external_id}; that would create a cycle"
                )
            changes["manager_id"] = manager.id

    if not changes:
        raise HTTPException(status_code=400, detail="Empty patch")
    return users.update(user.id, changes)
