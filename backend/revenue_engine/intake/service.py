"""
Lead Intake

Web-form inquiries enter here. A submission whose phone or email matches
an existing lead of the agent is merged into it; otherwise a new WARM lead
is created with a baseline score and forwarded as lead.created.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from revenue_engine.automation.dispatcher import TriggerDispatcher
from revenue_engine.automation.models import TriggerEvent, TriggerKind
from revenue_engine.core.errors import LeadValidationError
from revenue_engine.leads.models import (
    Activity,
    ActivityOutcome,
    ActivityType,
    IntentLevel,
    Lead,
    LeadStatus,
)
from revenue_engine.pipeline.service import LeadPipeline
from revenue_engine.store.base import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "Web Form"
BASELINE_SCORE = 30

CREATED_MESSAGE = (
    "Thank you! Your information has been received. One of our licensed "
    "agents will contact you within 24 hours."
)
MERGED_MESSAGE = "Thank you! We found your previous inquiry and will update you shortly."


class LeadInquiry(BaseModel):
    """Web-form payload (camelCase on the wire)"""
    # web forms post phone numbers as JSON numbers
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = Field(default=None, alias="dateOfBirth")
    coverage_amount: Optional[Union[float, str]] = Field(default=None, alias="coverageAmount")
    health_status: Optional[str] = Field(default=None, alias="healthStatus")
    health_conditions: Optional[Union[str, List[str]]] = Field(default=None, alias="healthConditions")
    source: Optional[str] = None
    product_type: Optional[str] = Field(default=None, alias="productType")

    def missing_fields(self) -> List[str]:
        missing = []
        for attr, wire in (("first_name", "firstName"), ("last_name", "lastName"), ("phone", "phone")):
            value = getattr(self, attr)
            if value is None or not value.strip():
                missing.append(wire)
        return missing

    @property
    def resolved_source(self) -> str:
        return (self.source or "").strip() or DEFAULT_SOURCE

    @property
    def conditions_text(self) -> str:
        if not self.health_conditions:
            return "none"
        if isinstance(self.health_conditions, list):
            return ", ".join(self.health_conditions)
        return self.health_conditions


@dataclass
class IntakeResult:
    lead: Lead
    created: bool
    message: str

    @property
    def lead_id(self) -> str:
        return self.lead.id


def _coverage(inquiry: LeadInquiry) -> str:
    if inquiry.coverage_amount in (None, ""):
        return "not specified"
    return str(inquiry.coverage_amount)


class LeadIntake:
    """Intake adapter in front of the pipeline"""

    def __init__(
        self,
        store: EntityStore,
        pipeline: LeadPipeline,
        dispatcher: TriggerDispatcher,
    ):
        self.store = store
        self.pipeline = pipeline
        self.dispatcher = dispatcher

    async def submit(self, agent_id: str, inquiry: LeadInquiry) -> IntakeResult:
        """
        Accept one inquiry.

        Raises:
            LeadValidationError: firstName, lastName or phone missing
        """
        missing = inquiry.missing_fields()
        if missing:
            raise LeadValidationError(missing)

        phone = inquiry.phone.strip()
        email = inquiry.email.strip() if inquiry.email and inquiry.email.strip() else None

        existing = await self.store.find_duplicate_lead(agent_id, phone, email)
        if existing is not None:
            lead = await self._merge(existing, inquiry, email)
            return IntakeResult(lead=lead, created=False, message=MERGED_MESSAGE)

        lead = await self._create(agent_id, inquiry, phone, email)
        return IntakeResult(lead=lead, created=True, message=CREATED_MESSAGE)

    async def _merge(self, lead: Lead, inquiry: LeadInquiry, email: Optional[str]) -> Lead:
        source = inquiry.resolved_source
        now = datetime.utcnow()
        detail = (
            f"via {source} on {now.isoformat()}: Looking for {inquiry.coverage_amount or 'coverage'}. "
            f"Health: {inquiry.health_status or 'not specified'}. Conditions: {inquiry.conditions_text}."
        )

        lead.first_name = inquiry.first_name.strip() or lead.first_name
        lead.last_name = inquiry.last_name.strip() or lead.last_name
        lead.email = email or lead.email
        lead.notes = (
            f"{lead.notes}\n\nNew inquiry {detail}" if lead.notes else f"Inquiry {detail}"
        )
        lead.updated_at = now
        await self.store.update_lead(lead)

        logger.info(f"Intake merged into existing lead {lead.id} ({lead.phone}, source={source})")

        await self.pipeline.log_activity(
            agent_id=lead.agent_id,
            lead_id=lead.id,
            type=ActivityType.EMAIL_RECEIVED,
            title="New inquiry via landing page",
            description=(
                f"Lead submitted new inquiry via {source}. "
                f"Coverage amount: {_coverage(inquiry)}."
            ),
            outcome=ActivityOutcome.INTERESTED,
        )
        return await self.pipeline.get_lead(lead.id)

    async def _create(
        self,
        agent_id: str,
        inquiry: LeadInquiry,
        phone: str,
        email: Optional[str],
    ) -> Lead:
        source = inquiry.resolved_source
        now = datetime.utcnow()
        notes = "\n".join([
            f"Inquiry via {source} on {now.isoformat()}",
            f"Looking for coverage: {_coverage(inquiry)}",
            f"Health status: {inquiry.health_status or 'not specified'}",
            f"Health conditions: {inquiry.conditions_text}",
            f"Product interest: {inquiry.product_type or 'not specified'}",
        ])

        lead = Lead(
            id="",
            agent_id=agent_id,
            first_name=inquiry.first_name.strip(),
            last_name=inquiry.last_name.strip(),
            phone=phone,
            email=email,
            status=LeadStatus.NEW,
            intent_level=IntentLevel.WARM,
            score=BASELINE_SCORE,
            source=source,
            notes=notes,
            date_of_birth=(
                datetime.combine(inquiry.date_of_birth, time()) if inquiry.date_of_birth else None
            ),
        )
        await self.store.create_lead(lead)

        # Baseline score stands until the next mutation recomputes it
        await self.store.create_activity(Activity(
            id="",
            agent_id=agent_id,
            lead_id=lead.id,
            type=ActivityType.EMAIL_RECEIVED,
            title="New lead captured via landing page",
            description=(
                f"Lead submitted inquiry via {source}. Coverage amount: {_coverage(inquiry)}. "
                f"Health status: {inquiry.health_status or 'not specified'}."
            ),
            outcome=ActivityOutcome.POSITIVE,
        ))

        logger.info(
            f"Intake created lead {lead.id} {lead.full_name} ({phone}, source={source}, "
            f"product={inquiry.product_type or 'General'})"
        )

        await self.dispatcher.dispatch(TriggerEvent(
            kind=TriggerKind.LEAD_CREATED,
            agent_id=agent_id,
            lead_id=lead.id,
            data={
                "lead_name": lead.full_name,
                "source": source,
                "product_type": inquiry.product_type,
                "coverage_amount": _coverage(inquiry),
            },
        ))
        return lead
