"""
Policy Domain Models

ProductType catalog, PolicyStatus lifecycle, Policy and Commission records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


class ProductType(Enum):
    """Insurance product categories"""
    TERM_LIFE = "TERM_LIFE"
    WHOLE_LIFE = "WHOLE_LIFE"
    UNIVERSAL_LIFE = "UNIVERSAL_LIFE"
    FINAL_EXPENSE = "FINAL_EXPENSE"
    IUL = "IUL"
    HEALTH_ACA = "HEALTH_ACA"
    HEALTH_SHORT_TERM = "HEALTH_SHORT_TERM"
    MEDICARE_SUPPLEMENT = "MEDICARE_SUPPLEMENT"
    MEDICARE_ADVANTAGE = "MEDICARE_ADVANTAGE"
    DENTAL = "DENTAL"
    VISION = "VISION"
    DISABILITY_INCOME = "DISABILITY_INCOME"
    CRITICAL_ILLNESS = "CRITICAL_ILLNESS"
    LONG_TERM_CARE = "LONG_TERM_CARE"
    ANNUITY = "ANNUITY"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class PolicyStatus(Enum):
    """Policy lifecycle statuses"""
    QUOTED = "QUOTED"
    APPLIED = "APPLIED"
    UNDERWRITING = "UNDERWRITING"
    PENDING_REQUIREMENTS = "PENDING_REQUIREMENTS"
    APPROVED = "APPROVED"
    ISSUED = "ISSUED"
    DECLINED = "DECLINED"
    POSTPONED = "POSTPONED"
    WITHDRAWN = "WITHDRAWN"
    LAPSED = "LAPSED"
    SURRENDERED = "SURRENDERED"
    REPLACED = "REPLACED"


class PremiumMode(Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMI_ANNUAL = "SEMI_ANNUAL"
    ANNUAL = "ANNUAL"


class CommissionType(Enum):
    FIRST_YEAR = "FIRST_YEAR"
    RENEWAL = "RENEWAL"
    BONUS = "BONUS"


class CommissionStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CLAWED_BACK = "CLAWED_BACK"


@dataclass
class Policy:
    """Insurance application / issued policy tied to a lead"""
    id: str
    agent_id: str
    lead_id: str
    carrier: str
    product_type: ProductType
    face_amount: float
    premium: float
    commission_rate: float = 0.0
    commission_amount: float = 0.0
    status: PolicyStatus = PolicyStatus.APPLIED
    mode: PremiumMode = PremiumMode.MONTHLY
    term: Optional[int] = None  # years
    policy_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    effective_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"POL-{uuid4().hex[:8].upper()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "lead_id": self.lead_id,
            "carrier": self.carrier,
            "product_type": self.product_type.value,
            "face_amount": self.face_amount,
            "premium": self.premium,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "status": self.status.value,
            "mode": self.mode.value,
            "term": self.term,
            "policy_number": self.policy_number,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "effective_date": self.effective_date.isoformat() if self.effective_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Commission:
    """Agent payment tied to a policy"""
    id: str
    agent_id: str
    policy_id: str
    amount: float
    type: CommissionType = CommissionType.FIRST_YEAR
    status: CommissionStatus = CommissionStatus.PENDING
    scheduled_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"COM-{uuid4().hex[:8].upper()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "policy_id": self.policy_id,
            "amount": self.amount,
            "type": self.type.value,
            "status": self.status.value,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
        }
