from sqlalchemy import Column, Integer, String, Float, Boolean, UniqueConstraint
from pto_service.database import Base
import enum

class EligibilityRule(str, enum.Enum):
    NONE = "NONE"
    STUDENTS_ONLY = "STUDENTS_ONLY"

class LeaveTypePolicy(Base):
    __tablename__ = "pto_types"
    __table_args__ = (UniqueConstraint("category", "name", name="uq_pto_type_category_name"),)

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, nullable=False, index=True)  # e.g. "Short-term leave"
    name = Column(String, nullable=False, index=True)  # e.g. "Vacation"
    annual_allowance_days = Column(Float, nullable=True)  # Null when unlimited
    is_unlimited = Column(Boolean, default=False, nullable=False)
    counts_against_balance = Column(Boolean, default=True, nullable=False)
    eligibility_rule = Column(String, default=EligibilityRule.NONE.value, nullable=False)
    carryover_allowed = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<LeaveTypePolicy {self.category}::{self.name}>"
