"""
In-memory Entity Store

Dict-backed storage used by tests, demos and the CLI's --memory mode.
"""

from typing import Dict, List, Optional

from revenue_engine.automation.models import Campaign
from revenue_engine.leads.models import Activity, Lead
from revenue_engine.policies.models import Commission, Policy
from revenue_engine.store.base import (
    LEAD_SORT_FIELDS,
    ActivityFilter,
    CommissionFilter,
    EntityStore,
    LeadFilter,
    PolicyFilter,
)


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle.lower() in value.lower()


def _lead_matches(lead: Lead, criteria: LeadFilter) -> bool:
    if criteria.agent_id and lead.agent_id != criteria.agent_id:
        return False
    if criteria.status and lead.status != criteria.status:
        return False
    if criteria.statuses and lead.status not in criteria.statuses:
        return False
    if criteria.exclude_statuses and lead.status in criteria.exclude_statuses:
        return False
    if criteria.intent_level and lead.intent_level != criteria.intent_level:
        return False
    if criteria.min_score is not None and lead.score < criteria.min_score:
        return False
    if criteria.max_score is not None and lead.score > criteria.max_score:
        return False
    if criteria.source_contains and not _contains(lead.source, criteria.source_contains):
        return False
    if criteria.keyword:
        fields = (lead.first_name, lead.last_name, lead.email, lead.phone, lead.notes)
        if not any(_contains(f, criteria.keyword) for f in fields):
            return False
    return True


def _activity_matches(activity: Activity, criteria: ActivityFilter) -> bool:
    if criteria.agent_id and activity.agent_id != criteria.agent_id:
        return False
    if criteria.lead_id and activity.lead_id != criteria.lead_id:
        return False
    if criteria.type and activity.type != criteria.type:
        return False
    if criteria.since and activity.timestamp < criteria.since:
        return False
    if criteria.until and activity.timestamp > criteria.until:
        return False
    if criteria.keyword:
        if not (
            _contains(activity.title, criteria.keyword)
            or _contains(activity.description, criteria.keyword)
        ):
            return False
    return True


def _policy_matches(policy: Policy, criteria: PolicyFilter) -> bool:
    if criteria.agent_id and policy.agent_id != criteria.agent_id:
        return False
    if criteria.lead_id and policy.lead_id != criteria.lead_id:
        return False
    if criteria.status and policy.status != criteria.status:
        return False
    if criteria.product_type and policy.product_type != criteria.product_type:
        return False
    if criteria.carrier_contains and not _contains(policy.carrier, criteria.carrier_contains):
        return False
    if criteria.keyword:
        if not (
            _contains(policy.carrier, criteria.keyword)
            or _contains(policy.policy_number, criteria.keyword)
        ):
            return False
    if criteria.created_since and policy.created_at < criteria.created_since:
        return False
    if criteria.created_until and policy.created_at > criteria.created_until:
        return False
    if criteria.issued_since:
        if policy.issue_date is None or policy.issue_date < criteria.issued_since:
            return False
    return True


def _page(items: list, offset: int, limit: Optional[int]) -> list:
    if limit is None:
        return items[offset:]
    return items[offset:offset + limit]


class InMemoryStore(EntityStore):
    """Entity Store kept in process memory"""

    def __init__(self):
        self._leads: Dict[str, Lead] = {}
        self._activities: Dict[str, Activity] = {}
        self._policies: Dict[str, Policy] = {}
        self._commissions: Dict[str, Commission] = {}
        self._campaigns: Dict[str, Campaign] = {}

    # === Leads ===

    async def create_lead(self, lead: Lead) -> Lead:
        self._leads[lead.id] = lead
        return lead

    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        return self._leads.get(lead_id)

    async def update_lead(self, lead: Lead) -> Lead:
        self._leads[lead.id] = lead
        return lead

    async def delete_lead(self, lead_id: str) -> bool:
        if lead_id not in self._leads:
            return False
        del self._leads[lead_id]

        self._activities = {
            k: a for k, a in self._activities.items() if a.lead_id != lead_id
        }
        policy_ids = {p.id for p in self._policies.values() if p.lead_id == lead_id}
        for policy_id in policy_ids:
            await self.delete_policy(policy_id)
        return True

    async def list_leads(self, criteria: LeadFilter) -> List[Lead]:
        results = [l for l in self._leads.values() if _lead_matches(l, criteria)]

        sort_by = criteria.sort_by if criteria.sort_by in LEAD_SORT_FIELDS else "created_at"
        results.sort(key=lambda l: getattr(l, sort_by), reverse=criteria.descending)

        return _page(results, criteria.offset, criteria.limit)

    async def count_leads(self, criteria: LeadFilter) -> int:
        return sum(1 for l in self._leads.values() if _lead_matches(l, criteria))

    async def find_duplicate_lead(
        self,
        agent_id: str,
        phone: str,
        email: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[Lead]:
        candidates = sorted(self._leads.values(), key=lambda l: l.created_at)
        for lead in candidates:
            if lead.agent_id != agent_id or lead.id == exclude_id:
                continue
            if lead.phone == phone:
                return lead
            if email and lead.email == email:
                return lead
        return None

    # === Activities ===

    async def create_activity(self, activity: Activity) -> Activity:
        self._activities[activity.id] = activity
        return activity

    async def get_activity(self, activity_id: str) -> Optional[Activity]:
        return self._activities.get(activity_id)

    async def update_activity(self, activity: Activity) -> Activity:
        self._activities[activity.id] = activity
        return activity

    async def delete_activity(self, activity_id: str) -> bool:
        if activity_id in self._activities:
            del self._activities[activity_id]
            return True
        return False

    async def list_activities(self, criteria: ActivityFilter) -> List[Activity]:
        results = [
            a for a in self._activities.values() if _activity_matches(a, criteria)
        ]
        results.sort(key=lambda a: a.timestamp, reverse=True)
        return _page(results, criteria.offset, criteria.limit)

    # === Policies ===

    async def create_policy(self, policy: Policy) -> Policy:
        self._policies[policy.id] = policy
        return policy

    async def get_policy(self, policy_id: str) -> Optional[Policy]:
        return self._policies.get(policy_id)

    async def update_policy(self, policy: Policy) -> Policy:
        self._policies[policy.id] = policy
        return policy

    async def delete_policy(self, policy_id: str) -> bool:
        if policy_id not in self._policies:
            return False
        del self._policies[policy_id]
        self._commissions = {
            k: c for k, c in self._commissions.items() if c.policy_id != policy_id
        }
        return True

    async def list_policies(self, criteria: PolicyFilter) -> List[Policy]:
        results = [p for p in self._policies.values() if _policy_matches(p, criteria)]
        results.sort(key=lambda p: p.created_at, reverse=True)
        return _page(results, criteria.offset, criteria.limit)

    # === Commissions ===

    async def create_commission(self, commission: Commission) -> Commission:
        self._commissions[commission.id] = commission
        return commission

    async def get_commission(self, commission_id: str) -> Optional[Commission]:
        return self._commissions.get(commission_id)

    async def update_commission(self, commission: Commission) -> Commission:
        self._commissions[commission.id] = commission
        return commission

    async def list_commissions(self, criteria: CommissionFilter) -> List[Commission]:
        results = list(self._commissions.values())

        if criteria.agent_id:
            results = [c for c in results if c.agent_id == criteria.agent_id]
        if criteria.policy_id:
            results = [c for c in results if c.policy_id == criteria.policy_id]
        if criteria.status:
            results = [c for c in results if c.status == criteria.status]
        if criteria.type:
            results = [c for c in results if c.type == criteria.type]

        results.sort(key=lambda c: c.scheduled_date or c.created_at, reverse=True)
        return results

    # === Campaigns ===

    async def create_campaign(self, campaign: Campaign) -> Campaign:
        self._campaigns[campaign.id] = campaign
        return campaign

    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self._campaigns.get(campaign_id)

    async def update_campaign(self, campaign: Campaign) -> Campaign:
        self._campaigns[campaign.id] = campaign
        return campaign

    async def list_campaigns(
        self,
        agent_id: str,
        active: Optional[bool] = None,
    ) -> List[Campaign]:
        results = [c for c in self._campaigns.values() if c.agent_id == agent_id]
        if active is not None:
            results = [c for c in results if c.active == active]
        results.sort(key=lambda c: c.created_at)
        return results
