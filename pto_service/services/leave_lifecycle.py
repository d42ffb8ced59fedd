"""
Leave Request Lifecycle

This module owns the PTO request state machine and the policy checks that
guard it. Routers and the chat adapter call it; it never talks to either.

Flow for a submission:
- type is known and present in the policy store
- business days are computed (and must be positive)
- eligibility rule passes
- balance holds, for limited types that count against balance
- no overlapping pending/approved request
- a single insert, with the requester's manager as approver

Every check runs before the single terminal write, so a rejected operation
never leaves a partial record behind. Expected failures are returned as a
`Result`; only store failures raise.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from pto_service.core.results import ErrorKind, Result
from pto_service.models.leave_policy import LeaveTypePolicy
from pto_service.models.leave_request import LeaveRequest, LeaveStatus
from pto_service.models.user import User
from pto_service.services.balance import BalanceCalculator, BalanceLine, allowance_days, as_days, remaining_days
from pto_service.services.business_days import DateLike, count_business_days, parse_date
from pto_service.services.eligibility import check_eligibility
from pto_service.services.overlap import find_overlaps, summarize_overlaps
from pto_service.services.policy_store import PolicyStore, is_valid_pto
from pto_service.services.request_store import RequestStore
from pto_service.services.user_store import UserStore
from pto_service.services.base import BaseService


class Decision(str, enum.Enum):
    APPROVE = "approve"
    DENY = "deny"


DECISION_STATUS = {
    Decision.APPROVE: LeaveStatus.APPROVED.value,
    Decision.DENY: LeaveStatus.DENIED.value,
}

# The only legal moves; anything else is rejected
ALLOWED_TRANSITIONS = {
    LeaveStatus.PENDING.value: {
        LeaveStatus.APPROVED.value,
        LeaveStatus.DENIED.value,
        LeaveStatus.CANCELLED.value,
    },
    LeaveStatus.APPROVED.value: {LeaveStatus.CANCELLED.value},
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


@dataclass
class Submission:
    request: LeaveRequest
    computed_days: int
    policy: LeaveTypePolicy


class LeaveLifecycleService(BaseService):
    """Submit, decide and cancel PTO requests, plus the read side the adapters show."""

    def __init__(
        self,
        db: Session,
        policies: Optional[PolicyStore] = None,
        users: Optional[UserStore] = None,
        requests: Optional[RequestStore] = None,
        balances: Optional[BalanceCalculator] = None
    ):
        super().__init__(db)
        self.policies = policies or PolicyStore(db)
        self.users = users or UserStore(db)
        self.requests = requests or RequestStore(db)
        self.balances = balances or BalanceCalculator(db, self.policies)

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------
    def submit(
        self,
        user: User,
        category: str,
        leave_type: str,
        start: DateLike,
        end: DateLike,
        reason: Optional[str] = None
    ) -> Result[Submission]:
        if not is_valid_pto(category, leave_type):
            return Result.failure(
                ErrorKind.INVALID_TYPE, "Invalid PTO category/type", category=category, type=leave_type
            )
        policy = self.policies.get_policy(category, leave_type)
        if not policy:
            return Result.failure(
                ErrorKind.INVALID_TYPE, "Unknown PTO type", category=category, type=leave_type
            )

        counted = count_business_days(start, end)
        if not counted.ok:
            return Result(error=counted.error)
        days = counted.value
        if not days or days <= 0:
            return Result.failure(
                ErrorKind.INVALID_DATE_RANGE,
                "The selected dates contain no business days",
                start_date=str(start),
                end_date=str(end),
            )
        start_day, end_day = parse_date(start), parse_date(end)

        eligibility = check_eligibility(user, policy)
        if not eligibility.ok:
            return Result.failure(ErrorKind.INELIGIBLE, eligibility.reason, category=category, type=leave_type)

        if not policy.is_unlimited and policy.counts_against_balance:
            used = self.balances.used_days(user, category, leave_type)
            remaining = remaining_days(policy, used)
            if days > remaining:
                return Result.failure(
                    ErrorKind.BALANCE_EXCEEDED,
                    "Request exceeds remaining balance",
                    requested_days=days,
                    remaining_days=remaining,
                    allowance_days=allowance_days(policy),
                    used_days=as_days(used),
                    category=category,
                    type=leave_type,
                )

        overlaps = find_overlaps(self.requests, user, start_day, end_day)
        if overlaps:
            return Result.failure(
                ErrorKind.OVERLAP_CONFLICT,
                "Request overlaps with an existing PTO request",
                overlaps=summarize_overlaps(overlaps),
            )

        request = self.requests.insert(LeaveRequest(
            user_id=user.id,
            category=category,
            type=leave_type,
            start_date=start_day,
            end_date=end_day,
            days_count=days,
            status=LeaveStatus.PENDING.value,
            reason=(reason or "").strip() or None,
            approver_id=user.manager_id,
        ))
        self.log_info(
            f"PTO request {request.id} submitted",
            user_id=user.id, leave_type=leave_type, days=days, approver_id=user.manager_id
        )
        return Result.success(Submission(request=request, computed_days=days, policy=policy))

    # ------------------------------------------------------------------
    # Decide / cancel
    # ------------------------------------------------------------------
    def decide(self, request_id: int, decider: User, decision: Decision) -> Result[LeaveRequest]:
        request = self.requests.get_by_id(request_id)
        if not request:
            return Result.failure(ErrorKind.NOT_FOUND, "Request not found", request_id=request_id)

        if request.status != LeaveStatus.PENDING.value:
            return Result.failure(
                ErrorKind.NOT_PENDING,
                f"Request is not pending (current: {request.status})",
                request_id=request.id,
                status=request.status,
            )

        if not decider.is_admin:
            if request.approver_id is None:
                return Result.failure(
                    ErrorKind.NO_APPROVER_ASSIGNED, "Request has no approver assigned", request_id=request.id
                )
            if request.approver_id != decider.id:
                return Result.failure(
                    ErrorKind.NOT_AUTHORIZED,
                    "Not authorized: only the assigned approver or an admin can decide",
                    request_id=request.id,
                )

        return self._transition(request, DECISION_STATUS[Decision(decision)], decider)

    def approve(self, request_id: int, decider: User) -> Result[LeaveRequest]:
        return self.decide(request_id, decider, Decision.APPROVE)

    def deny(self, request_id: int, decider: User) -> Result[LeaveRequest]:
        return self.decide(request_id, decider, Decision.DENY)

    def cancel(self, request_id: int, actor: User) -> Result[LeaveRequest]:
        """Owner-only cancellation. Admins go through admin_cancel."""
        request = self.requests.get_by_id(request_id)
        if not request:
            return Result.failure(ErrorKind.NOT_FOUND, "Request not found", request_id=request_id)

        if request.user_id != actor.id:
            return Result.failure(
                ErrorKind.NOT_AUTHORIZED, "You can only cancel your own requests", request_id=request.id
            )

        return self._transition(request, LeaveStatus.CANCELLED.value, actor)

    def admin_cancel(self, request_id: int, admin: User) -> Result[LeaveRequest]:
        if not admin.is_admin:
            return Result.failure(ErrorKind.NOT_AUTHORIZED, "Not authorized (admin only)", request_id=request_id)

        request = self.requests.get_by_id(request_id)
        if not request:
            return Result.failure(ErrorKind.NOT_FOUND, "Request not found", request_id=request_id)

        return self._transition(request, LeaveStatus.CANCELLED.value, admin)

    def _transition(self, request: LeaveRequest, target: str, actor: User) -> Result[LeaveRequest]:
        if not can_transition(request.status, target):
            return Result.failure(
                ErrorKind.INVALID_STATE,
                f"Cannot move a {request.status} request to {target}. "
                f"Only pending or approved requests can be cancelled.",
                request_id=request.id,
                status=request.status,
            )

        previous = request.status
        updated = self.requests.update(request.id, {
            "status": target,
            "decided_by": actor.id,
            "decided_at": datetime.now(timezone.utc),
        })
        self.log_info(
            f"PTO request {request.id} {previous} -> {target}",
            request_id=request.id, actor_id=actor.id
        )
        return Result.success(updated)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        return self.requests.get_by_id(request_id)

    def balance_summary(self, user: User) -> List[BalanceLine]:
        return self.balances.balance_summary(user)

    def list_requests(self, user: Optional[User] = None, status: Optional[str] = None) -> List[LeaveRequest]:
        if user is not None:
            return self.requests.query_by_user(user.id, [status] if status else None)
        return self.requests.list_all(status)

    def recent_requests(self, user: User, limit: int = 5) -> List[LeaveRequest]:
        return self.requests.query_by_user(user.id, limit=limit)

    def pending_approvals(self, user: User) -> List[LeaveRequest]:
        """Admins see every pending request; everyone else sees the ones assigned to them."""
        if user.is_admin:
            return self.requests.query_by_status(LeaveStatus.PENDING.value)
        return self.requests.query_by_approver(user.id, LeaveStatus.PENDING.value)

    def report(self, admin: User) -> Result[List[LeaveRequest]]:
        if not admin.is_admin:
            return Result.failure(ErrorKind.NOT_AUTHORIZED, "Not authorized (admin only)")
        return Result.success(self.requests.list_all())

    def list_policies(self) -> List[LeaveTypePolicy]:
        return self.policies.list_policies()

    def update_policy(
        self,
        admin: User,
        category: str,
        name: str,
        patch: Dict[str, Any]
    ) -> Result[LeaveTypePolicy]:
        if not admin.is_admin:
            return Result.failure(ErrorKind.NOT_AUTHORIZED, "Not authorized (admin only)")
        policy = self.policies.update_policy(category, name, patch)
        if not policy:
            return Result.failure(ErrorKind.NOT_FOUND, "Unknown PTO type", category=category, type=name)
        return Result.success(policy)
