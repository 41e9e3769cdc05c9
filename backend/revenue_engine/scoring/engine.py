"""
Lead Scoring Engine

Pure score computation from a lead's status, intent and activity history.

Score = intent + status + activity (last 10, cap 40)
        + outcome (last 5 with an outcome, cap 30) - time decay,
clamped to 0..100 at the end.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from revenue_engine.leads.models import (
    Activity,
    ActivityOutcome,
    ActivityType,
    IntentLevel,
    Lead,
    LeadStatus,
)


BASE_SCORE = 0
MIN_SCORE = 0
MAX_SCORE = 100

INTENT_SCORES: Dict[IntentLevel, int] = {
    IntentLevel.HOT: 50,
    IntentLevel.WARM: 30,
    IntentLevel.COLD: 10,
    IntentLevel.UNKNOWN: 0,
    IntentLevel.NONE: -10,
}

STATUS_SCORES: Dict[LeadStatus, int] = {
    LeadStatus.NEW: 0,
    LeadStatus.CONTACTED: 5,
    LeadStatus.ENGAGED: 15,
    LeadStatus.QUALIFIED: 30,
    LeadStatus.PROPOSAL: 45,
    LeadStatus.APPLICATION: 60,
    LeadStatus.UNDERWRITING: 75,
    LeadStatus.PLACED: 100,
    LeadStatus.NOT_PLACED: -20,
    LeadStatus.NOT_INTERESTED: -30,
    LeadStatus.UNRESPONSIVE: -10,
    LeadStatus.LOST: -20,
}

ACTIVITY_SCORES: Dict[ActivityType, int] = {
    ActivityType.MEETING_COMPLETED: 20,
    ActivityType.APPLICATION_SENT: 40,
    ActivityType.PROPOSAL_SENT: 15,
    ActivityType.CALL_INBOUND: 10,
    ActivityType.CALL_OUTBOUND: 5,
    ActivityType.TEXT_RECEIVED: 8,
    ActivityType.TEXT_SENT: 3,
    ActivityType.EMAIL_RECEIVED: 7,
    ActivityType.EMAIL_SENT: 2,
    ActivityType.APPOINTMENT_SET: 15,
    ActivityType.MEETING_SCHEDULED: 2,
    ActivityType.NOTE: 2,
}

OUTCOME_SCORES: Dict[ActivityOutcome, int] = {
    ActivityOutcome.SOLD: 50,
    ActivityOutcome.INTERESTED: 15,
    ActivityOutcome.POSITIVE: 10,
    ActivityOutcome.NEUTRAL: 0,
    ActivityOutcome.CALLBACK: 0,
    ActivityOutcome.LEFT_MESSAGE: 0,
    ActivityOutcome.FOLLOW_UP_SET: 0,
    ActivityOutcome.NEGATIVE: -5,
    ActivityOutcome.NOT_INTERESTED: -15,
    ActivityOutcome.NO_ANSWER: -2,
}

ACTIVITY_WINDOW = 10
ACTIVITY_CAP = 40
OUTCOME_WINDOW = 5
OUTCOME_CAP = 30

# (days inactive, penalty), ascending; the largest reached threshold wins
TIME_DECAY_STEPS = ((30, 5), (60, 10), (90, 20))


def _check_complete(table: Mapping[Enum, int], enum_cls: type) -> None:
    missing = [m.name for m in enum_cls if m not in table]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} members without a score: {missing}")


# Adding an enum member without a weight fails at import time
_check_complete(INTENT_SCORES, IntentLevel)
_check_complete(STATUS_SCORES, LeadStatus)
_check_complete(ACTIVITY_SCORES, ActivityType)
_check_complete(OUTCOME_SCORES, ActivityOutcome)


@dataclass
class ScoreBreakdown:
    base: int = BASE_SCORE
    intent: int = 0
    status: int = 0
    activity: int = 0
    outcome: int = 0
    time_decay: int = 0

    @property
    def raw_total(self) -> int:
        return self.base + self.intent + self.status + self.activity + self.outcome - self.time_decay

    def to_dict(self) -> Dict[str, int]:
        return {
            "base_score": self.base,
            "intent_score": self.intent,
            "status_score": self.status,
            "activity_score": self.activity,
            "outcome_score": self.outcome,
            "time_decay": self.time_decay,
        }


@dataclass
class ScoreResult:
    score: int
    previous_score: int
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    reason: str = ""

    @property
    def change(self) -> int:
        return self.score - self.previous_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "previous_score": self.previous_score,
            "change": self.change,
            "breakdown": self.breakdown.to_dict(),
            "reason": self.reason,
        }


def intent_score(intent: IntentLevel) -> int:
    return INTENT_SCORES[intent]


def status_score(status: LeadStatus) -> int:
    return STATUS_SCORES[status]


def activity_score(activities: Sequence[Activity]) -> int:
    """Points for the most recent activities (newest first), capped."""
    total = sum(ACTIVITY_SCORES[a.type] for a in activities[:ACTIVITY_WINDOW])
    return min(ACTIVITY_CAP, total)


def outcome_score(activities: Sequence[Activity]) -> int:
    """Outcome modifiers for the most recent activities that carry an outcome, capped."""
    with_outcome = [a for a in activities if a.outcome is not None][:OUTCOME_WINDOW]
    total = sum(OUTCOME_SCORES[a.outcome] for a in with_outcome)
    return min(OUTCOME_CAP, total)


def time_decay(days_inactive: int) -> int:
    decay = 0
    for threshold, penalty in TIME_DECAY_STEPS:
        if days_inactive >= threshold:
            decay = penalty
    return decay


def days_since_last_touch(
    activities: Sequence[Activity],
    fallback: datetime,
    now: Optional[datetime] = None,
) -> int:
    now = now or datetime.utcnow()
    last = activities[0].timestamp if activities else fallback
    return max(0, (now - last).days)


def score_reason(breakdown: ScoreBreakdown) -> str:
    reasons: List[str] = []

    if breakdown.intent > 0:
        reasons.append(f"Intent: +{breakdown.intent}")
    if breakdown.status > 0:
        reasons.append(f"Status: +{breakdown.status}")
    if breakdown.activity > 0:
        reasons.append(f"Activities: +{breakdown.activity}")
    if breakdown.outcome > 0:
        reasons.append(f"Positive outcomes: +{breakdown.outcome}")
    if breakdown.outcome < 0:
        reasons.append(f"Negative outcomes: {breakdown.outcome}")
    if breakdown.time_decay > 0:
        reasons.append(f"Time decay: -{breakdown.time_decay}")

    return ", ".join(reasons) if reasons else "Initial score"


def clamp_score(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def compute_score(
    lead: Lead,
    activities: Sequence[Activity],
    now: Optional[datetime] = None,
) -> ScoreResult:
    """
    Compute a lead's score from its current state and activity history.

    Activities may be passed in any order; they are ranked newest first.
    The lead is not modified.
    """
    ordered = sorted(activities, key=lambda a: a.timestamp, reverse=True)

    breakdown = ScoreBreakdown(
        intent=intent_score(lead.intent_level),
        status=status_score(lead.status),
        activity=activity_score(ordered),
        outcome=outcome_score(ordered),
        time_decay=time_decay(days_since_last_touch(ordered, lead.updated_at, now)),
    )

    return ScoreResult(
        score=clamp_score(breakdown.raw_total),
        previous_score=lead.score,
        breakdown=breakdown,
        reason=score_reason(breakdown),
    )


# === Tiers ===

HOT_THRESHOLD = 70
WARM_THRESHOLD = 40
COLD_THRESHOLD = 10


def score_tier(score: int) -> str:
    """hot 70+, warm 40-69, cold 10-39, inactive 0-9"""
    if score >= HOT_THRESHOLD:
        return "hot"
    if score >= WARM_THRESHOLD:
        return "warm"
    if score >= COLD_THRESHOLD:
        return "cold"
    return "inactive"


def score_distribution(leads: Sequence[Lead]) -> Dict[str, int]:
    distribution = {"hot": 0, "warm": 0, "cold": 0, "inactive": 0, "total": len(leads)}
    for lead in leads:
        distribution[score_tier(lead.score)] += 1
    return distribution
