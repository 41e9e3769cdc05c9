"""
Dashboard

Read-only aggregations over an agent's book: lead stats, conversion
funnel, hot / follow-up lists and the combined overview.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from revenue_engine.commissions.service import CommissionService
from revenue_engine.leads.models import CLOSED_STATUSES, Activity, Lead, LeadStatus
from revenue_engine.pipeline.service import LeadPipeline
from revenue_engine.scoring.engine import HOT_THRESHOLD, score_distribution
from revenue_engine.store.base import ActivityFilter, EntityStore, LeadFilter

FOLLOW_UP_STATUSES = [
    LeadStatus.NEW,
    LeadStatus.CONTACTED,
    LeadStatus.ENGAGED,
    LeadStatus.QUALIFIED,
    LeadStatus.PROPOSAL,
]


def _month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


class Dashboard:
    """Dashboard queries for one agent at a time"""

    def __init__(
        self,
        store: EntityStore,
        pipeline: LeadPipeline,
        commissions: CommissionService,
    ):
        self.store = store
        self.pipeline = pipeline
        self.commissions = commissions

    async def lead_stats(self, agent_id: str) -> Dict[str, Any]:
        leads = await self.store.list_leads(LeadFilter(agent_id=agent_id))
        month_start = _month_start(datetime.utcnow())

        by_status: Dict[str, int] = {}
        by_intent: Dict[str, int] = {}
        for lead in leads:
            by_status[lead.status.value] = by_status.get(lead.status.value, 0) + 1
            by_intent[lead.intent_level.value] = by_intent.get(lead.intent_level.value, 0) + 1

        return {
            "total": len(leads),
            "by_status": by_status,
            "by_intent": by_intent,
            "score_distribution": score_distribution(leads),
            "placed_this_month": sum(
                1 for l in leads
                if l.status == LeadStatus.PLACED and l.updated_at >= month_start
            ),
        }

    async def conversion_funnel(self, agent_id: str) -> Dict[str, int]:
        """Lead count per status, every status present."""
        funnel = {status.value: 0 for status in LeadStatus}
        for lead in await self.store.list_leads(LeadFilter(agent_id=agent_id)):
            funnel[lead.status.value] += 1
        return funnel

    async def top_leads(self, agent_id: str, limit: int = 10) -> List[Lead]:
        return await self.store.list_leads(LeadFilter(
            agent_id=agent_id,
            exclude_statuses=list(CLOSED_STATUSES),
            sort_by="score",
            descending=True,
            limit=limit,
        ))

    async def hot_leads(self, agent_id: str, min_score: int = HOT_THRESHOLD) -> List[Lead]:
        """Open leads at or above min_score, best first."""
        return await self.store.list_leads(LeadFilter(
            agent_id=agent_id,
            min_score=min_score,
            exclude_statuses=list(CLOSED_STATUSES),
            sort_by="score",
            descending=True,
        ))

    async def leads_needing_follow_up(self, agent_id: str, days: int = 7) -> List[Lead]:
        """Early-stage leads with no activity in the last ``days`` days."""
        cutoff = datetime.utcnow() - timedelta(days=days)
        recent = await self.store.list_activities(ActivityFilter(agent_id=agent_id, since=cutoff))
        touched = {a.lead_id for a in recent}

        leads = await self.store.list_leads(LeadFilter(
            agent_id=agent_id,
            statuses=FOLLOW_UP_STATUSES,
            sort_by="score",
            descending=True,
        ))
        return [lead for lead in leads if lead.id not in touched]

    async def leads_by_score_range(self, agent_id: str, min_score: int, max_score: int) -> List[Lead]:
        return await self.store.list_leads(LeadFilter(
            agent_id=agent_id,
            min_score=min_score,
            max_score=max_score,
            sort_by="score",
            descending=True,
        ))

    async def recent_activities(self, agent_id: str, limit: int = 10) -> List[Activity]:
        return await self.store.list_activities(ActivityFilter(agent_id=agent_id, limit=limit))

    async def overview(self, agent_id: str) -> Dict[str, Any]:
        hot = await self.hot_leads(agent_id)
        return {
            "agent_id": agent_id,
            "leads": await self.lead_stats(agent_id),
            "policies": await self.pipeline.policy_stats(agent_id),
            "commissions": await self.commissions.commission_summary(agent_id),
            "hot_leads": [lead.to_dict() for lead in hot[:5]],
            "recent_activities": [a.to_dict() for a in await self.recent_activities(agent_id, 5)],
            "generated_at": datetime.utcnow().isoformat(),
        }
