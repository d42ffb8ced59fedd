"""
Policy Store accessor.

Reads the leave-type catalogue (`pto_types`) and applies the admin patch
operation. The known category/type pairs double as the `is_valid_pto`
whitelist used before any store lookup.
"""
from typing import Any, Dict, List, Optional

from pto_service.models.leave_policy import EligibilityRule, LeaveTypePolicy
from pto_service.services.base import BaseService

SHORT_TERM = "Short-term leave"
EXTENDED = "Extended leave"
OTHER = "Other"

KNOWN_LEAVE_TYPES: Dict[str, List[str]] = {
    SHORT_TERM: ["Vacation", "Out Sick", "Jury Duty", "Study", "Marriage", "Relocation"],
    EXTENDED: ["Parental Leave", "Medical Leave"],
    OTHER: ["Conference"],
}

# Seed values for an empty catalogue
DEFAULT_POLICIES: List[Dict[str, Any]] = [
    {"category": SHORT_TERM, "name": "Vacation", "annual_allowance_days": 15, "counts_against_balance": True, "carryover_allowed": True},
    {"category": SHORT_TERM, "name": "Out Sick", "annual_allowance_days": 10, "counts_against_balance": False},
    {"category": SHORT_TERM, "name": "Jury Duty", "is_unlimited": True, "counts_against_balance": False},
    {"category": SHORT_TERM, "name": "Study", "annual_allowance_days": 10, "counts_against_balance": True,
     "eligibility_rule": EligibilityRule.STUDENTS_ONLY.value},
    {"category": SHORT_TERM, "name": "Marriage", "annual_allowance_days": 5, "counts_against_balance": True},
    {"category": SHORT_TERM, "name": "Relocation", "annual_allowance_days": 2, "counts_against_balance": True},
    {"category": EXTENDED, "name": "Parental Leave", "annual_allowance_days": 90, "counts_against_balance": True},
    {"category": EXTENDED, "name": "Medical Leave", "is_unlimited": True, "counts_against_balance": False},
    {"category": OTHER, "name": "Conference", "is_unlimited": True, "counts_against_balance": False},
]

PATCHABLE_FIELDS = (
    "annual_allowance_days",
    "is_unlimited",
    "counts_against_balance",
    "eligibility_rule",
    "carryover_allowed",
)


def is_valid_pto(category: str, name: str) -> bool:
    return name in KNOWN_LEAVE_TYPES.get(category, [])


class PolicyStore(BaseService):

    def get_policy(self, category: str, name: str) -> Optional[LeaveTypePolicy]:
        with self.store_errors("get_policy"):
            return self.db.query(LeaveTypePolicy).filter(
                LeaveTypePolicy.category == category,
                LeaveTypePolicy.name == name
            ).first()

    def list_policies(self) -> List[LeaveTypePolicy]:
        with self.store_errors("list_policies"):
            return self.db.query(LeaveTypePolicy).order_by(
                LeaveTypePolicy.category.asc(),
                LeaveTypePolicy.name.asc()
            ).all()

    def update_policy(self, category: str, name: str, patch: Dict[str, Any]) -> Optional[LeaveTypePolicy]:
        """Apply an admin patch. Returns None when the type does not exist."""
        policy = self.get_policy(category, name)
        if not policy:
            return None

        for field, value in patch.items():
            if field not in PATCHABLE_FIELDS:
                raise ValueError(f"Field '{field}' cannot be patched")
            if field == "eligibility_rule" and isinstance(value, EligibilityRule):
                value = value.value
            setattr(policy, field, value)

        if policy.is_unlimited:
            policy.annual_allowance_days = None

        self.commit("update_policy")
        self.db.refresh(policy)
        self.log_info(f"Policy {category}::{name} updated", fields=sorted(patch))
        return policy

    def seed_defaults(self) -> int:
        """Insert any missing default policies. Returns how many were created."""
        created = 0
        for defaults in DEFAULT_POLICIES:
            if self.get_policy(defaults["category"], defaults["name"]):
                continue
            self.db.add(LeaveTypePolicy(**defaults))
            created += 1
        if created:
            self.commit("seed_defaults")
        return created
