"""
Entity Store Interface

Durable keyed storage for Lead, Activity, Policy, Commission and Campaign
records. The engine only talks to this interface; SQLAlchemy and in-memory
implementations live next to it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from revenue_engine.automation.models import Campaign
from revenue_engine.leads.models import Activity, ActivityType, IntentLevel, Lead, LeadStatus
from revenue_engine.policies.models import (
    Commission,
    CommissionStatus,
    CommissionType,
    Policy,
    PolicyStatus,
    ProductType,
)


LEAD_SORT_FIELDS = ("created_at", "updated_at", "score", "last_name")


@dataclass
class LeadFilter:
    """Filter for lead listings. Unset fields do not constrain the result."""
    agent_id: Optional[str] = None
    status: Optional[LeadStatus] = None
    statuses: Optional[List[LeadStatus]] = None
    exclude_statuses: Optional[List[LeadStatus]] = None
    intent_level: Optional[IntentLevel] = None
    min_score: Optional[int] = None
    max_score: Optional[int] = None
    source_contains: Optional[str] = None
    keyword: Optional[str] = None
    sort_by: str = "created_at"
    descending: bool = True
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class ActivityFilter:
    agent_id: Optional[str] = None
    lead_id: Optional[str] = None
    type: Optional[ActivityType] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    keyword: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class PolicyFilter:
    agent_id: Optional[str] = None
    lead_id: Optional[str] = None
    status: Optional[PolicyStatus] = None
    product_type: Optional[ProductType] = None
    carrier_contains: Optional[str] = None
    keyword: Optional[str] = None
    created_since: Optional[datetime] = None
    created_until: Optional[datetime] = None
    issued_since: Optional[datetime] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass
class CommissionFilter:
    agent_id: Optional[str] = None
    policy_id: Optional[str] = None
    status: Optional[CommissionStatus] = None
    type: Optional[CommissionType] = None


class EntityStore(ABC):
    """
    Entity Store abstract base class

    Listings return newest-first unless a sort order is requested.
    ``get_*`` returns None for unknown ids; raising NotFound is the
    caller's decision.
    """

    # === Leads ===

    @abstractmethod
    async def create_lead(self, lead: Lead) -> Lead:
        pass

    @abstractmethod
    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        pass

    @abstractmethod
    async def update_lead(self, lead: Lead) -> Lead:
        pass

    @abstractmethod
    async def delete_lead(self, lead_id: str) -> bool:
        """Delete a lead with its activities, policies and their commissions."""
        pass

    @abstractmethod
    async def list_leads(self, criteria: LeadFilter) -> List[Lead]:
        pass

    @abstractmethod
    async def count_leads(self, criteria: LeadFilter) -> int:
        pass

    @abstractmethod
    async def find_duplicate_lead(
        self,
        agent_id: str,
        phone: str,
        email: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Optional[Lead]:
        """First lead of the agent (other than exclude_id) matching the phone OR (when given) the email exactly."""
        pass

    # === Activities ===

    @abstractmethod
    async def create_activity(self, activity: Activity) -> Activity:
        pass

    @abstractmethod
    async def get_activity(self, activity_id: str) -> Optional[Activity]:
        pass

    @abstractmethod
    async def update_activity(self, activity: Activity) -> Activity:
        pass

    @abstractmethod
    async def delete_activity(self, activity_id: str) -> bool:
        pass

    @abstractmethod
    async def list_activities(self, criteria: ActivityFilter) -> List[Activity]:
        """Activities ordered by timestamp, newest first."""
        pass

    # === Policies ===

    @abstractmethod
    async def create_policy(self, policy: Policy) -> Policy:
        pass

    @abstractmethod
    async def get_policy(self, policy_id: str) -> Optional[Policy]:
        pass

    @abstractmethod
    async def update_policy(self, policy: Policy) -> Policy:
        pass

    @abstractmethod
    async def delete_policy(self, policy_id: str) -> bool:
        """Delete a policy and its commissions."""
        pass

    @abstractmethod
    async def list_policies(self, criteria: PolicyFilter) -> List[Policy]:
        pass

    # === Commissions ===

    @abstractmethod
    async def create_commission(self, commission: Commission) -> Commission:
        pass

    @abstractmethod
    async def get_commission(self, commission_id: str) -> Optional[Commission]:
        pass

    @abstractmethod
    async def update_commission(self, commission: Commission) -> Commission:
        pass

    @abstractmethod
    async def list_commissions(self, criteria: CommissionFilter) -> List[Commission]:
        """Commissions ordered by scheduled date, latest first."""
        pass

    # === Campaigns ===

    @abstractmethod
    async def create_campaign(self, campaign: Campaign) -> Campaign:
        pass

    @abstractmethod
    async def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        pass

    @abstractmethod
    async def update_campaign(self, campaign: Campaign) -> Campaign:
        pass

    @abstractmethod
    async def list_campaigns(
        self,
        agent_id: str,
        active: Optional[bool] = None,
    ) -> List[Campaign]:
        pass
