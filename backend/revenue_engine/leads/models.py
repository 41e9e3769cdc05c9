"""
Lead Domain Models

LeadStatus pipeline, IntentLevel, ActivityType/ActivityOutcome, Lead, Activity.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4


class LeadStatus(Enum):
    """Lead pipeline statuses"""
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    ENGAGED = "ENGAGED"
    QUALIFIED = "QUALIFIED"
    PROPOSAL = "PROPOSAL"
    APPLICATION = "APPLICATION"
    UNDERWRITING = "UNDERWRITING"
    PLACED = "PLACED"
    NOT_PLACED = "NOT_PLACED"
    NOT_INTERESTED = "NOT_INTERESTED"
    LOST = "LOST"
    UNRESPONSIVE = "UNRESPONSIVE"


# Happy path, in order
PIPELINE_ORDER: List[LeadStatus] = [
    LeadStatus.NEW,
    LeadStatus.CONTACTED,
    LeadStatus.ENGAGED,
    LeadStatus.QUALIFIED,
    LeadStatus.PROPOSAL,
    LeadStatus.APPLICATION,
    LeadStatus.UNDERWRITING,
    LeadStatus.PLACED,
]

SIDE_EXITS = {
    LeadStatus.NOT_PLACED,
    LeadStatus.NOT_INTERESTED,
    LeadStatus.LOST,
    LeadStatus.UNRESPONSIVE,
}

TERMINAL_STATUSES = SIDE_EXITS | {LeadStatus.PLACED}

# Statuses excluded from "open" lead queries (top/hot leads)
CLOSED_STATUSES = {LeadStatus.PLACED, LeadStatus.NOT_INTERESTED, LeadStatus.LOST}


class IntentLevel(Enum):
    """Agent-assessed buying readiness"""
    HOT = "HOT"
    WARM = "WARM"
    COLD = "COLD"
    UNKNOWN = "UNKNOWN"
    NONE = "NONE"


class ActivityType(Enum):
    """Lead interaction types"""
    CALL_INBOUND = "CALL_INBOUND"
    CALL_OUTBOUND = "CALL_OUTBOUND"
    TEXT_SENT = "TEXT_SENT"
    TEXT_RECEIVED = "TEXT_RECEIVED"
    EMAIL_SENT = "EMAIL_SENT"
    EMAIL_RECEIVED = "EMAIL_RECEIVED"
    APPOINTMENT_SET = "APPOINTMENT_SET"
    MEETING_SCHEDULED = "MEETING_SCHEDULED"
    MEETING_COMPLETED = "MEETING_COMPLETED"
    PROPOSAL_SENT = "PROPOSAL_SENT"
    APPLICATION_SENT = "APPLICATION_SENT"
    NOTE = "NOTE"


class ActivityOutcome(Enum):
    """Result of an interaction"""
    POSITIVE = "POSITIVE"
    INTERESTED = "INTERESTED"
    SOLD = "SOLD"
    NEUTRAL = "NEUTRAL"
    CALLBACK = "CALLBACK"
    FOLLOW_UP_SET = "FOLLOW_UP_SET"
    LEFT_MESSAGE = "LEFT_MESSAGE"
    NO_ANSWER = "NO_ANSWER"
    NEGATIVE = "NEGATIVE"
    NOT_INTERESTED = "NOT_INTERESTED"


@dataclass
class Lead:
    """Insurance sales prospect"""
    id: str
    agent_id: str
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    intent_level: IntentLevel = IntentLevel.UNKNOWN
    score: int = 0
    source: Optional[str] = None
    notes: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"LEAD-{uuid4().hex[:8].upper()}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "status": self.status.value,
            "intent_level": self.intent_level.value,
            "score": self.score,
            "source": self.source,
            "notes": self.notes,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Activity:
    """Recorded interaction with a lead"""
    id: str
    agent_id: str
    lead_id: str
    type: ActivityType
    title: str
    outcome: Optional[ActivityOutcome] = None
    description: Optional[str] = None
    duration: Optional[int] = None  # minutes
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"ACT-{uuid4().hex[:8].upper()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "lead_id": self.lead_id,
            "type": self.type.value,
            "outcome": self.outcome.value if self.outcome else None,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
        }
