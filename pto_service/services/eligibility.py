"""
Eligibility rules for leave types.

Each `EligibilityRule` maps to a predicate in `ELIGIBILITY_RULES`. A new
rule is added by extending the enum and registering a predicate with
`register_rule`; callers only ever go through `check_eligibility`.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from pto_service.models.leave_policy import EligibilityRule, LeaveTypePolicy
from pto_service.models.user import User


@dataclass
class EligibilityOutcome:
    ok: bool
    reason: Optional[str] = None


Predicate = Callable[[User], EligibilityOutcome]

ELIGIBILITY_RULES: Dict[EligibilityRule, Predicate] = {}


def register_rule(rule: EligibilityRule) -> Callable[[Predicate], Predicate]:
    def decorator(predicate: Predicate) -> Predicate:
        ELIGIBILITY_RULES[rule] = predicate
        return predicate
    return decorator


@register_rule(EligibilityRule.NONE)
def _anyone(user: User) -> EligibilityOutcome:
    return EligibilityOutcome(ok=True)


@register_rule(EligibilityRule.STUDENTS_ONLY)
def _students_only(user: User) -> EligibilityOutcome:
    if user.is_student:
        return EligibilityOutcome(ok=True)
    return EligibilityOutcome(ok=False, reason="Only students can request this leave type")


def check_eligibility(user: User, policy: LeaveTypePolicy) -> EligibilityOutcome:
    try:
        rule = EligibilityRule(policy.eligibility_rule or EligibilityRule.NONE.value)
    except ValueError:
        return EligibilityOutcome(ok=False, reason=f"Unknown eligibility rule '{policy.eligibility_rule}'")

    predicate = ELIGIBILITY_RULES.get(rule)
    if predicate is None:
        return EligibilityOutcome(ok=False, reason=f"No predicate registered for rule '{rule.value}'")
    return predicate(user)


def is_eligible(user: User, policy: LeaveTypePolicy) -> bool:
    return check_eligibility(user, policy).ok
