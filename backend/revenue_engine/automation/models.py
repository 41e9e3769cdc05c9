"""
Automation Models

Trigger kinds, campaign trigger conditions and the action union.
Conditions and actions are pydantic models validated when a campaign is
written, so the dispatcher only ever sees well-formed campaigns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from revenue_engine.leads.models import ActivityOutcome, IntentLevel, Lead, LeadStatus


class TriggerKind(Enum):
    """Pipeline events a campaign can react to"""
    LEAD_CREATED = "lead.created"
    LEAD_STATUS_CHANGED = "lead.status_changed"
    ACTIVITY_LOGGED = "activity.logged"
    POLICY_CREATED = "policy.created"
    POLICY_ISSUED = "policy.issued"
    COMMISSION_EARNED = "commission.earned"
    SCORE_CHANGED = "score.changed"
    CUSTOM = "custom"


class ActionKind(Enum):
    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    CREATE_TASK = "create_task"
    SCHEDULE_CALL = "schedule_call"
    UPDATE_LEAD_STATUS = "update_lead_status"
    UPDATE_LEAD_SCORE = "update_lead_score"
    ADD_TO_CAMPAIGN = "add_to_campaign"
    WEBHOOK = "webhook"
    LOG_NOTE = "log_note"


class TriggerCondition(BaseModel):
    """
    Campaign trigger predicate.

    ``trigger`` must equal the event kind. The remaining clauses are
    optional filters on the event's lead; an unset clause always passes.
    """
    trigger: TriggerKind
    min_score: Optional[int] = Field(default=None, ge=0, le=100)
    max_score: Optional[int] = Field(default=None, ge=0, le=100)
    lead_statuses: List[LeadStatus] = Field(default_factory=list)
    intent_levels: List[IntentLevel] = Field(default_factory=list)
    outcomes: List[ActivityOutcome] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_score_range(self) -> "TriggerCondition":
        if (
            self.min_score is not None
            and self.max_score is not None
            and self.min_score > self.max_score
        ):
            raise ValueError("min_score must not exceed max_score")
        return self

    @property
    def needs_lead(self) -> bool:
        return bool(
            self.min_score is not None
            or self.max_score is not None
            or self.lead_statuses
            or self.intent_levels
        )

    def matches(self, event: "TriggerEvent", lead: Optional[Lead] = None) -> bool:
        if self.trigger != event.kind:
            return False

        if self.needs_lead:
            if lead is None:
                return False
            if self.min_score is not None and lead.score < self.min_score:
                return False
            if self.max_score is not None and lead.score > self.max_score:
                return False
            if self.lead_statuses and lead.status not in self.lead_statuses:
                return False
            if self.intent_levels and lead.intent_level not in self.intent_levels:
                return False

        if self.outcomes:
            raw = event.data.get("outcome")
            if raw is None:
                return False
            if ActivityOutcome(raw) not in self.outcomes:
                return False

        return True


# === Actions ===

class SendEmailAction(BaseModel):
    type: Literal["send_email"] = "send_email"
    template: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None


class SendSmsAction(BaseModel):
    type: Literal["send_sms"] = "send_sms"
    template: Optional[str] = None
    body: Optional[str] = None


class CreateTaskAction(BaseModel):
    type: Literal["create_task"] = "create_task"
    task: str
    due_in_days: int = Field(default=1, ge=0)


class ScheduleCallAction(BaseModel):
    type: Literal["schedule_call"] = "schedule_call"
    note: Optional[str] = None
    due_in_days: int = Field(default=2, ge=0)


class UpdateLeadStatusAction(BaseModel):
    type: Literal["update_lead_status"] = "update_lead_status"
    status: LeadStatus


class UpdateLeadScoreAction(BaseModel):
    type: Literal["update_lead_score"] = "update_lead_score"


class AddToCampaignAction(BaseModel):
    type: Literal["add_to_campaign"] = "add_to_campaign"
    campaign_id: str


class WebhookAction(BaseModel):
    type: Literal["webhook"] = "webhook"
    url: str
    method: str = "POST"
    payload: Dict[str, Any] = Field(default_factory=dict)


class LogNoteAction(BaseModel):
    type: Literal["log_note"] = "log_note"
    note: str


CampaignAction = Annotated[
    Union[
        SendEmailAction,
        SendSmsAction,
        CreateTaskAction,
        ScheduleCallAction,
        UpdateLeadStatusAction,
        UpdateLeadScoreAction,
        AddToCampaignAction,
        WebhookAction,
        LogNoteAction,
    ],
    Field(discriminator="type"),
]

_actions_adapter = TypeAdapter(List[CampaignAction])


def parse_actions(raw: List[Dict[str, Any]]) -> List[CampaignAction]:
    """Validate a raw action list (raises pydantic.ValidationError)."""
    return _actions_adapter.validate_python(raw)


def dump_actions(actions: List[CampaignAction]) -> List[Dict[str, Any]]:
    return _actions_adapter.dump_python(actions, mode="json")


class CampaignDefinition(BaseModel):
    """Write-time shape of a campaign"""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    active: bool = True
    trigger_condition: TriggerCondition
    actions: List[CampaignAction] = Field(default_factory=list)


@dataclass
class Campaign:
    """Configured trigger-condition + action-list automation rule"""
    id: str
    agent_id: str
    name: str
    trigger_condition: TriggerCondition
    actions: List[CampaignAction] = field(default_factory=list)
    description: Optional[str] = None
    active: bool = True
    run_count: int = 0
    last_run_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"CMP-{uuid4().hex[:8].upper()}"

    @classmethod
    def from_definition(cls, agent_id: str, definition: CampaignDefinition) -> "Campaign":
        return cls(
            id="",
            agent_id=agent_id,
            name=definition.name,
            description=definition.description,
            active=definition.active,
            trigger_condition=definition.trigger_condition,
            actions=list(definition.actions),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "name": self.name,
            "description": self.description,
            "active": self.active,
            "trigger_condition": self.trigger_condition.model_dump(mode="json"),
            "actions": dump_actions(self.actions),
            "run_count": self.run_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class TriggerEvent:
    """Typed pipeline event handed to the dispatcher"""
    kind: TriggerKind
    agent_id: str
    lead_id: Optional[str] = None
    policy_id: Optional[str] = None
    activity_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    id: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if not self.id:
            self.id = f"EVT-{uuid4().hex[:8].upper()}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "agent_id": self.agent_id,
            "lead_id": self.lead_id,
            "policy_id": self.policy_id,
            "activity_id": self.activity_id,
            "data": self.data,
            "created_at": self.created_at.isoformat(),
        }
