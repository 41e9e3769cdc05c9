"""
SQLAlchemy Entity Store

Persistent EntityStore (PostgreSQL / SQLite). Each call opens its own
session; returned objects are detached domain copies.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from revenue_engine.automation.models import Campaign, TriggerCondition, dump_actions, parse_actions
from revenue_engine.db.models import (
    ActivityRecord,
    CampaignRecord,
    CommissionRecord,
    LeadRecord,
    PolicyRecord,
)
from revenue_engine.leads.models import (
    Activity,
    ActivityOutcome,
    ActivityType,
    IntentLevel,
    Lead,
    LeadStatus,
)
from revenue_engine.policies.models import (
    Commission,
    CommissionStatus,
    CommissionType,
    Policy,
    PolicyStatus,
    PremiumMode,
    ProductType,
)
from revenue_engine.store.base import (
    LEAD_SORT_FIELDS,
    ActivityFilter,
    CommissionFilter,
    EntityStore,
    LeadFilter,
    PolicyFilter,
)

logger = logging.getLogger(__name__)


# === Conversions ===

def _lead_to_db(lead: Lead, row: Optional[LeadRecord] = None) -> LeadRecord:
    """Domain model -> DB model"""
    row = row or LeadRecord(id=lead.id)
    row.agent_id = lead.agent_id
    row.first_name = lead.first_name
    row.last_name = lead.last_name
    row.phone = lead.phone
    row.email = lead.email
    row.status = lead.status.value
    row.intent_level = lead.intent_level.value
    row.score = lead.score
    row.source = lead.source
    row.notes = lead.notes
    row.date_of_birth = lead.date_of_birth
    row.address = lead.address
    row.city = lead.city
    row.state = lead.state
    row.zip_code = lead.zip_code
    row.created_at = lead.created_at
    row.updated_at = lead.updated_at
    return row


def _lead_to_domain(row: LeadRecord) -> Lead:
    """DB model -> Domain model"""
    return Lead(
        id=row.id,
        agent_id=row.agent_id,
        first_name=row.first_name,
        last_name=row.last_name,
        phone=row.phone,
        email=row.email,
        status=LeadStatus(row.status),
        intent_level=IntentLevel(row.intent_level),
        score=row.score or 0,
        source=row.source,
        notes=row.notes,
        date_of_birth=row.date_of_birth,
        address=row.address,
        city=row.city,
        state=row.state,
        zip_code=row.zip_code,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _activity_to_db(activity: Activity, row: Optional[ActivityRecord] = None) -> ActivityRecord:
    row = row or ActivityRecord(id=activity.id)
    row.agent_id = activity.agent_id
    row.lead_id = activity.lead_id
    row.type = activity.type.value
    row.outcome = activity.outcome.value if activity.outcome else None
    row.title = activity.title
    row.description = activity.description
    row.duration = activity.duration
    row.meta = dict(activity.metadata or {})
    row.timestamp = activity.timestamp
    return row


def _activity_to_domain(row: ActivityRecord) -> Activity:
    return Activity(
        id=row.id,
        agent_id=row.agent_id,
        lead_id=row.lead_id,
        type=ActivityType(row.type),
        outcome=ActivityOutcome(row.outcome) if row.outcome else None,
        title=row.title,
        description=row.description,
        duration=row.duration,
        metadata=row.meta or {},
        timestamp=row.timestamp,
    )


def _policy_to_db(policy: Policy, row: Optional[PolicyRecord] = None) -> PolicyRecord:
    row = row or PolicyRecord(id=policy.id)
    row.agent_id = policy.agent_id
    row.lead_id = policy.lead_id
    row.carrier = policy.carrier
    row.product_type = policy.product_type.value
    row.face_amount = policy.face_amount
    row.premium = policy.premium
    row.commission_rate = policy.commission_rate
    row.commission_amount = policy.commission_amount
    row.status = policy.status.value
    row.mode = policy.mode.value
    row.term = policy.term
    row.policy_number = policy.policy_number
    row.issue_date = policy.issue_date
    row.effective_date = policy.effective_date
    row.created_at = policy.created_at
    row.updated_at = policy.updated_at
    return row


def _policy_to_domain(row: PolicyRecord) -> Policy:
    return Policy(
        id=row.id,
        agent_id=row.agent_id,
        lead_id=row.lead_id,
        carrier=row.carrier,
        product_type=ProductType(row.product_type),
        face_amount=row.face_amount,
        premium=row.premium,
        commission_rate=row.commission_rate or 0.0,
        commission_amount=row.commission_amount or 0.0,
        status=PolicyStatus(row.status),
        mode=PremiumMode(row.mode),
        term=row.term,
        policy_number=row.policy_number,
        issue_date=row.issue_date,
        effective_date=row.effective_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _commission_to_db(commission: Commission, row: Optional[CommissionRecord] = None) -> CommissionRecord:
    row = row or CommissionRecord(id=commission.id)
    row.agent_id = commission.agent_id
    row.policy_id = commission.policy_id
    row.amount = commission.amount
    row.type = commission.type.value
    row.status = commission.status.value
    row.scheduled_date = commission.scheduled_date
    row.paid_date = commission.paid_date
    row.notes = commission.notes
    row.created_at = commission.created_at
    return row


def _commission_to_domain(row: CommissionRecord) -> Commission:
    return Commission(
        id=row.id,
        agent_id=row.agent_id,
        policy_id=row.policy_id,
        amount=row.amount,
        type=CommissionType(row.type),
        status=CommissionStatus(row.status),
        scheduled_date=row.scheduled_date,
        paid_date=row.paid_date,
        notes=row.notes,
        created_at=row.created_at,
    )


def _campaign_to_db(campaign: Campaign, row: Optional[CampaignRecord] = None) -> CampaignRecord:
    row = row or CampaignRecord(id=campaign.id)
    row.agent_id = campaign.agent_id
    row.name = campaign.name
    row.description = campaign.description
    row.active = campaign.active
    row.trigger_condition = campaign.trigger_condition.model_dump(mode="json")
    row.actions = dump_actions(campaign.actions)
    row.run_count = campaign.run_count
    row.last_run_at = campaign.last_run_at
    row.created_at = campaign.created_at
    return row


def _campaign_to_domain(row: CampaignRecord) -> Campaign:
    return Campaign(
        id=row.id,
        agent_id=row.agent_id,
        name=row.name,
        description=row.description,
        active=bool(row.active),
        trigger_condition=TriggerCondition.model_validate(row.trigger_condition),
        actions=parse_actions(row.actions or []),
        run_count=row.run_count or 0,
        last_run_at=row.last_run_at,
        created_at=row.created_at,
    )


def _keyword(value: str) -> str:
    return f"%{value}%"


def _lead_conditions(criteria: LeadFilter) -> list:
    conditions = []
    if criteria.agent_id:
        conditions.append(LeadRecord.agent_id == criteria.agent_id)
    if criteria.status:
        conditions.append(LeadRecord.status == criteria.status.value)
    if criteria.statuses:
        conditions.append(LeadRecord.status.in_([s.value for s in criteria.statuses]))
    if criteria.exclude_statuses:
        conditions.append(LeadRecord.status.notin_([s.value for s in criteria.exclude_statuses]))
    if criteria.intent_level:
        conditions.append(LeadRecord.intent_level == criteria.intent_level.value)
    if criteria.min_score is not None:
        conditions.append(LeadRecord.score >= criteria.min_score)
    if criteria.max_score is not None:
        conditions.append(LeadRecord.score <= criteria.max_score)
    if criteria.source_contains:
        conditions.append(LeadRecord.source.ilike(_keyword(criteria.source_contains)))
    if criteria.keyword:
        pattern = _keyword(criteria.keyword)
        conditions.append(or_(
            LeadRecord.first_name.ilike(pattern),
            LeadRecord.last_name.ilike(pattern),
            LeadRecord.email.ilike(pattern),
            LeadRecord.phone.ilike(pattern),
            LeadRecord.notes.ilike(pattern),
        ))
    return conditions


class SqlStore(EntityStore):
    """Entity Store (SQLAlchemy version)"""

    def __init__(self, session_factory):
        """
        Args:
            session_factory: AsyncSessionLocal (callable returning an AsyncSession)
        """
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        return self._session_factory()

    # === Leads ===

    async def create_lead(self, lead: Lead) -> Lead:
        async with self._session() as session:
            session.add(_lead_to_db(lead))
            await session.commit()
            return lead

    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        async with self._session() as session:
            row = await session.get(LeadRecord, lead_id)
            return _lead_to_domain(row) if row else None

    async def update_lead(self, lead: Lead) -> Lead:
        async with self._session() as session:
            row = await session.get(LeadRecord, lead.id)
            if row is None:
                raise ValueError(f"Lead {lead.id} not found")
            _lead_to_db(lead, row)
            await session.commit()
            return lead

    async def delete_lead(self, lead_id: str) -> bool:
        async with self._session() as session:
            row = await session.get(LeadRecord, lead_id)
            if row is None:
                return False

            policy_ids = select(PolicyRecord.id).where(PolicyRecord.lead_id == lead_id)
            await session.execute(
                delete(CommissionRecord).where(CommissionRecord.policy_id.in_(policy_ids))
            )
            await session.execute(delete(PolicyRecord).where(PolicyRecord.lead_id == lead_id))
            await session.execute(delete(ActivityRecord).where(ActivityRecord.lead_id == lead_id))
            await session.delete(row)
            await session.commit()
            logger.info(f"Deleted lead {lead_id} with its activities and policies")
            return True

    async def list_leads(self, criteria: LeadFilter) -> List[Lead]:
        async with self._session() as session:
            sort_by = criteria.sort_by if criteria.sort_by in LEAD_SORT_FIELDS else "created_at"
            column = getattr(LeadRecord, sort_by)

            stmt = select(LeadRecord).where(*_lead_conditions(criteria))
            stmt = stmt.order_by(column.desc() if criteria.descending else column.asc())
            if criteria.offset:
                stmt = stmt.offset(criteria.offset)
            if criteria.limit is not None:
                stmt = stmt.limit(criteria.limit)

            result = await session.execute(stmt)
            return [_lead_to_domain(r) for r in result.scalars().all()]

    async def count_leads(self, criteria: LeadFilter) -> int:
        async with self._session() as session:
            result = await session.execute(
                select(func.count()).select_from(LeadRecord).where(*_lead_conditions(criteria))
            )
            return result.scalar() or 0

    async def find_duplicate_lead(
        self,
        agent_id: str,
        phone: str,
        email: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[Lead]:
        async with self._session() as session:
            match = LeadRecord.phone == phone
            if email:
                match = or_(match, LeadRecord.email == email)
            stmt = (
                select(LeadRecord)
                .where(LeadRecord.agent_id == agent_id, match)
                .order_by(LeadRecord.created_at.asc())
                .limit(1)
            )
            if exclude_id:
                stmt = stmt.where(LeadRecord.id != exclude_id)
            result = await session.execute(stmt)
            row = result.scalars().first()
            return _lead_to_domain(row) if row else None

    # === Activities ===

    async def create_activity(self, activity: Activity) -> Activity:
        async with self._session() as session:
            session.add(_activity_to_db(activity))
            await session.commit()
            return activity

    async def get_activity(self, activity_id: str) -> Optional[Activity]:
        async with self._session() as session:
            row = await session.get(ActivityRecord, activity_id)
            return _activity_to_domain(row) if row else None

    async def update_activity(self, activity: Activity) -> Activity:
        async with self._session() as session:
            row = await session.get(ActivityRecord, activity.id)
            if row is None:
                raise ValueError(f"Activity {activity.id} not found")
            _activity_to_db(activity, row)
            await session.commit()
            return activity

    async def delete_activity(self, activity_id: str) -> bool:
        async with self._session() as session:
            row = await session.get(ActivityRecord, activity_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    async def list_activities(self, criteria: ActivityFilter) -> List[Activity]:
        async with self._session() as session:
            stmt = select(ActivityRecord)

            if criteria.agent_id:
                stmt = stmt.where(ActivityRecord.agent_id == criteria.agent_id)
            if criteria.lead_id:
                stmt = stmt.where(ActivityRecord.lead_id == criteria.lead_id)
            if criteria.type:
                stmt = stmt.where(ActivityRecord.type == criteria.type.value)
            if criteria.since:
                stmt = stmt.where(ActivityRecord.timestamp >= criteria.since)
            if criteria.until:
                stmt = stmt.where(ActivityRecord.timestamp <= criteria.until)
            if criteria.keyword:
                pattern = _keyword(criteria.keyword)
                stmt = stmt.where(or_(
                    ActivityRecord.title.ilike(pattern),
                    ActivityRecord.description.ilike(pattern),
                ))

            stmt = stmt.order_by(ActivityRecord.timestamp.desc())
            if criteria.offset:
                stmt = stmt.offset(criteria.offset)
            if criteria.limit is not None:
                stmt = stmt.limit(criteria.limit)

            result = await session.execute(stmt)
            return [_activity_to_domain(r) for r in result.scalars().all()]

    # === Policies ===

    async def create_policy(self, policy: Policy) -> Policy:
        async with self._session() as session:
            session.add(_policy_to_db(policy))
            await session.commit()
            return policy

    async def get_policy(self, policy_id: str) -> Optional[Policy]:
        async with self._session() as session:
            row = await session.get(PolicyRecord, policy_id)
            return _policy_to_domain(row) if row else None

    async def update_policy(self, policy: Policy) -> Policy:
        async with self._session() as session:
            row = await session.get(PolicyRecord, policy.id)
            if row is None:
                raise ValueError(f"Policy {policy.id} not found")
            _policy_to_db(policy, row)
            await session.commit()
            return policy

    async def delete_policy(self, policy_id: str) -> bool:
        async with self._session() as session:
            row = await session.get(PolicyRecord, policy_id)
            if row is None:
                return False
            await session.execute(
                delete(CommissionRecord).where(CommissionRecord.policy_id == policy_id)
            )
            await session.delete(row)
            await session.commit()
            return True

    async def list_policies(self, criteria: PolicyFilter) -> List[Policy]:
        async with self._session() as session:
            stmt = select(PolicyRecord)

            if criteria.agent_id:
                stmt = stmt.where(PolicyRecord.agent_id == criteria.agent_id)
            if criteria.lead_id:
                stmt = stmt.where(PolicyRecord.lead_id == criteria.lead_id)
            if criteria.status:
                stmt = stmt.where(PolicyRecord.status == criteria.status.value)
            if criteria.product_type:
                stmt = stmt.where(PolicyRecord.product_type == criteria.product_type.value)
            if criteria.carrier_contains:
                stmt = stmt.where(PolicyRecord.carrier.ilike(_keyword(criteria.carrier_contains)))
            if criteria.keyword:
                pattern = _keyword(criteria.keyword)
                stmt = stmt.where(or_(
                    PolicyRecord.carrier.ilike(pattern),
                    PolicyRecord.policy_number.ilike(pattern),
                ))
            if criteria.created_since:
                stmt = stmt.where(PolicyRecord.created_at >= criteria.created_since)
            if criteria.created_until:
                stmt = stmt.where(PolicyRecord.created_at <= criteria.created_until)
            if criteria.issued_since:
                stmt = stmt.where(PolicyRecord.issue_date >= criteria.issued_since)

            stmt = stmt.order_by(PolicyRecord.created_at.desc())
            if criteria.offset:
                stmt = stmt.offset(criteria.offset)
            if criteria.limit is not None:
                stmt = stmt.limit(criteria.limit)

            result = await session.execute(stmt)
            return [_policy_to_domain(r) for r in result.scalars().all()]

    # === Commissions ===

    async def create_commission(self, commission: Commission) -> Commission:
        async with self._session() as session:
            session.add(_commission_to_db(commission))
            await session.commit()
            return commission

    async def get_commission(self, commission_id: str) -> Optional[Commission]:
        async with self._session() as session:
            row = await session.get(CommissionRecord, commission_id)
            return _commission_to_domain(row) if row else None

    async def update_commission(self, commission: Commission) -> Commission:
        async with self._session() as session:
            row = await session.get(CommissionRecord, commission.id)
            if row is None:
                raise ValueError(f"Commission {commission.id} not found")
            _commission_to_db(commission, row)
            await session.commit()
            return commission

    async def list_commissions(self, criteria: CommissionFilter) -> List[Commission]:
        async with self._session() as session:
            stmt = select(CommissionRecord)

            if criteria.agent_id:
                stmt = stmt.where(CommissionRecord.agent_id == criteria.agent_id)
            if criteria.policy_id:
                stmt = stmt.where(CommissionRecord.policy_id == criteria.policy_id)
            if criteria.status:
                stmt = stmt.where(CommissionRecord.status == criteria.status.value)
            if criteria.type:
                stmt = stmt.where(CommissionRecord.type == criteria.type.value)

            stmt = stmt.order_by(
                func.coalesce(CommissionRecord.scheduled_date, CommissionRecord.created_at).desc()
            )
            result = await session.execute(stmt)
            return [_commission_to_domain(r) for r in result.scalars().all()]

    # === Campaigns ===

    async def create_campaign(self, campaign: Campaign) -> Campaign:
        async with self._session() as session:
            session.add(_campaign_to_db(campaign))
            await session.commit()
            return campaign

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        async with self._session() as session:
            row = await session.get(CampaignRecord, campaign_id)
            return _campaign_to_domain(row) if row else None

    async def update_campaign(self, campaign: Campaign) -> Campaign:
        async with self._session() as session:
            row = await session.get(CampaignRecord, campaign.id)
            if row is None:
                raise ValueError(f"Campaign {campaign.id} not found")
            _campaign_to_db(campaign, row)
            await session.commit()
            return campaign

    async def list_campaigns(
        self,
        agent_id: str,
        active: Optional[bool] = None,
    ) -> List[Campaign]:
        async with self._session() as session:
            stmt = select(CampaignRecord).where(CampaignRecord.agent_id == agent_id)
            if active is not None:
                stmt = stmt.where(CampaignRecord.active == active)
            stmt = stmt.order_by(CampaignRecord.created_at.asc())

            result = await session.execute(stmt)
            return [_campaign_to_domain(r) for r in result.scalars().all()]
