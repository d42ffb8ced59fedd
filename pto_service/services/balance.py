"""
Balance Calculator.

Usage is derived from approved requests every time, never stored, so
cancelling an approved request gives the days back automatically.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func

from pto_service.models.leave_policy import LeaveTypePolicy
from pto_service.models.leave_request import LeaveRequest, LeaveStatus
from pto_service.models.user import User
from pto_service.services.base import BaseService
from pto_service.services.eligibility import is_eligible
from pto_service.services.policy_store import PolicyStore


@dataclass
class BalanceLine:
    category: str
    type: str
    unlimited: bool
    used_days: int
    allowance_days: Optional[float] = None
    remaining_days: Optional[float] = None
    counts_against_balance: bool = False
    carryover_allowed: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def as_days(value: Optional[float]):
    """Render whole-day floats as ints (10.0 -> 10)."""
    if value is None:
        return None
    return int(value) if float(value).is_integer() else value


def allowance_days(policy: LeaveTypePolicy):
    return as_days(policy.annual_allowance_days or 0)


def remaining_days(policy: LeaveTypePolicy, used: float) -> Optional[float]:
    """
    None means unlimited (shown, never enforced). Types that do not count
    against balance always show the full allowance.
    """
    if policy.is_unlimited:
        return None
    allowance = allowance_days(policy)
    if policy.counts_against_balance:
        return as_days(max(allowance - used, 0))
    return allowance


class BalanceCalculator(BaseService):

    def __init__(self, db, policies: Optional[PolicyStore] = None):
        super().__init__(db)
        self.policies = policies or PolicyStore(db)

    def used_days(self, user: User, category: str, leave_type: str) -> int:
        with self.store_errors("used_days"):
            total = self.db.query(func.sum(LeaveRequest.days_count)).filter(
                LeaveRequest.user_id == user.id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.category == category,
                LeaveRequest.type == leave_type
            ).scalar()
        return int(total or 0)

    def used_by_type(self, user: User) -> Dict[Tuple[str, str], int]:
        with self.store_errors("used_by_type"):
            rows = self.db.query(
                LeaveRequest.category,
                LeaveRequest.type,
                func.sum(LeaveRequest.days_count)
            ).filter(
                LeaveRequest.user_id == user.id,
                LeaveRequest.status == LeaveStatus.APPROVED.value
            ).group_by(LeaveRequest.category, LeaveRequest.type).all()
        return {(category, name): int(total or 0) for category, name, total in rows}

    def balance_summary(self, user: User) -> List[BalanceLine]:
        """One line per leave type the user may request, ordered by category and name."""
        used_by = self.used_by_type(user)
        lines = []
        for policy in self.policies.list_policies():
            if not is_eligible(user, policy):
                continue
            used = used_by.get((policy.category, policy.name), 0)
            if policy.is_unlimited:
                lines.append(BalanceLine(
                    category=policy.category,
                    type=policy.name,
                    unlimited=True,
                    used_days=used,
                    counts_against_balance=policy.counts_against_balance,
                    carryover_allowed=policy.carryover_allowed,
                ))
                continue
            lines.append(BalanceLine(
                category=policy.category,
                type=policy.name,
                unlimited=False,
                used_days=used,
                allowance_days=allowance_days(policy),
                remaining_days=remaining_days(policy, used),
                counts_against_balance=policy.counts_against_balance,
                carryover_allowed=policy.carryover_allowed,
            ))
        return lines
