"""
Commission Service

Commission creation for issued policies, payment lifecycle
(PENDING -> PAID / CLAWED_BACK), renewals and summaries.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from revenue_engine.automation.dispatcher import TriggerDispatcher
from revenue_engine.automation.models import TriggerEvent, TriggerKind
from revenue_engine.commissions.calculator import (
    RENEWAL_RATES,
    CommissionQuote,
    calculate,
    round_money,
    scheduled_date_for,
)
from revenue_engine.core.errors import CommissionStateError, EntityNotFoundError
from revenue_engine.policies.models import (
    Commission,
    CommissionStatus,
    CommissionType,
    Policy,
    PolicyStatus,
)
from revenue_engine.store.base import CommissionFilter, EntityStore, PolicyFilter

logger = logging.getLogger(__name__)


# key = current status, value = allowed next statuses
VALID_TRANSITIONS: Dict[CommissionStatus, List[CommissionStatus]] = {
    CommissionStatus.PENDING: [CommissionStatus.PAID, CommissionStatus.CLAWED_BACK],
    CommissionStatus.PAID: [CommissionStatus.CLAWED_BACK],
    CommissionStatus.CLAWED_BACK: [],
}


def can_transition(current: CommissionStatus, target: CommissionStatus) -> Tuple[bool, str]:
    """
    Check if a commission status change is valid.

    Returns (ok, reason).
    """
    if current == target:
        return False, f"Commission is already {current.value}"

    allowed = VALID_TRANSITIONS.get(current, [])
    if target not in allowed:
        allowed_names = [s.value for s in allowed]
        return False, f"Cannot move commission from {current.value} to {target.value}. Allowed: {allowed_names}"

    return True, "OK"


class CommissionService:
    """Commission lifecycle"""

    def __init__(self, store: EntityStore, dispatcher: TriggerDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    # === Calculation / creation ===

    def quote(
        self,
        premium: float,
        policy: Policy,
        commission_type: CommissionType = CommissionType.FIRST_YEAR,
        rate: Optional[float] = None,
    ) -> CommissionQuote:
        return calculate(premium, policy.product_type, rate, commission_type)

    async def create_commission(
        self,
        policy: Policy,
        amount: float,
        commission_type: CommissionType,
        scheduled_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Commission:
        commission = Commission(
            id="",
            agent_id=policy.agent_id,
            policy_id=policy.id,
            amount=round_money(amount),
            type=commission_type,
            status=CommissionStatus.PENDING,
            scheduled_date=scheduled_date or scheduled_date_for(commission_type),
            notes=notes,
        )
        await self.store.create_commission(commission)

        logger.info(
            f"Commission created: {commission.id} {commission_type.value} "
            f"${commission.amount:.2f} for policy {policy.id} "
            f"(scheduled {commission.scheduled_date.date()})"
        )
        return commission

    async def emit_earned(self, policy: Policy, commission: Commission) -> None:
        await self.dispatcher.dispatch(TriggerEvent(
            kind=TriggerKind.COMMISSION_EARNED,
            agent_id=policy.agent_id,
            lead_id=policy.lead_id,
            policy_id=policy.id,
            data={
                "commission_id": commission.id,
                "amount": commission.amount,
                "commission_type": commission.type.value,
            },
        ))

    async def issue_first_year(self, policy: Policy) -> Optional[Commission]:
        """
        Create the FIRST_YEAR commission of a newly issued policy and freeze
        the policy's commission figures.

        Returns None if the policy already has a first-year commission.
        """
        existing = await self.store.list_commissions(CommissionFilter(
            policy_id=policy.id,
            type=CommissionType.FIRST_YEAR,
        ))
        if existing:
            logger.warning(
                f"Policy {policy.id} already has a first-year commission "
                f"({existing[0].id}), not creating another"
            )
            return None

        result = self.quote(
            policy.premium, policy, CommissionType.FIRST_YEAR, policy.commission_rate,
        )
        commission = await self.create_commission(policy, result.amount, CommissionType.FIRST_YEAR)

        policy.commission_rate = result.rate
        policy.commission_amount = result.amount
        policy.updated_at = datetime.utcnow()
        await self.store.update_policy(policy)

        logger.info(
            f"First-year commission for issued policy {policy.id}: "
            f"{result.rate:.1%} of ${policy.premium:.2f} = ${result.amount:.2f}"
        )
        return commission

    # === Payment lifecycle ===

    async def get_commission(self, commission_id: str) -> Commission:
        commission = await self.store.get_commission(commission_id)
        if commission is None:
            raise EntityNotFoundError("Commission", commission_id)
        return commission

    def _check(self, commission: Commission, target: CommissionStatus) -> None:
        ok, reason = can_transition(commission.status, target)
        if not ok:
            raise CommissionStateError(f"{commission.id}: {reason}")

    async def mark_paid(
        self,
        commission_id: str,
        paid_date: Optional[datetime] = None,
    ) -> Commission:
        commission = await self.get_commission(commission_id)
        self._check(commission, CommissionStatus.PAID)

        commission.status = CommissionStatus.PAID
        commission.paid_date = paid_date or datetime.utcnow()
        await self.store.update_commission(commission)

        logger.info(
            f"Commission paid: {commission.id} ${commission.amount:.2f} "
            f"(policy {commission.policy_id})"
        )
        return commission

    async def mark_policy_commission_paid(self, policy_id: str) -> Commission:
        """Pay the earliest-scheduled PENDING commission of a policy."""
        pending = await self.store.list_commissions(CommissionFilter(
            policy_id=policy_id,
            status=CommissionStatus.PENDING,
        ))
        if not pending:
            raise EntityNotFoundError("Pending commission for policy", policy_id)

        first = min(pending, key=lambda c: c.scheduled_date or c.created_at)
        return await self.mark_paid(first.id)

    async def clawback(self, commission_id: str, reason: str) -> Commission:
        if not reason or not reason.strip():
            raise CommissionStateError("A clawback requires a reason")

        commission = await self.get_commission(commission_id)
        self._check(commission, CommissionStatus.CLAWED_BACK)

        stamp = datetime.utcnow().strftime("%Y-%m-%d")
        audit = f"[{stamp}] Clawed back: {reason.strip()}"
        commission.status = CommissionStatus.CLAWED_BACK
        commission.notes = f"{commission.notes}\n{audit}" if commission.notes else audit
        await self.store.update_commission(commission)

        logger.warning(
            f"Commission clawed back: {commission.id} ${commission.amount:.2f} "
            f"(policy {commission.policy_id}) - {reason.strip()}"
        )
        return commission

    # === Renewals ===

    async def create_renewal_commission(self, policy_id: str) -> Optional[Commission]:
        """
        Create the next RENEWAL commission for an issued policy.

        No-op (returns None) when the policy is not ISSUED, the product
        pays no renewal, or a renewal is already pending.
        """
        policy = await self.store.get_policy(policy_id)
        if policy is None:
            raise EntityNotFoundError("Policy", policy_id)

        if policy.status != PolicyStatus.ISSUED:
            logger.warning(f"Cannot create renewal commission for non-issued policy: {policy_id}")
            return None

        if not RENEWAL_RATES.get(policy.product_type):
            logger.info(f"No renewal commission for product type: {policy.product_type.value}")
            return None

        pending = await self.store.list_commissions(CommissionFilter(
            policy_id=policy_id,
            type=CommissionType.RENEWAL,
            status=CommissionStatus.PENDING,
        ))
        if pending:
            logger.info(f"Renewal already pending for policy {policy_id} ({pending[0].id})")
            return None

        result = self.quote(policy.premium, policy, CommissionType.RENEWAL)
        commission = await self.create_commission(policy, result.amount, CommissionType.RENEWAL)
        await self.emit_earned(policy, commission)
        return commission

    async def create_due_renewals(self, agent_id: str) -> List[Commission]:
        """Run renewal creation over every issued policy of an agent."""
        policies = await self.store.list_policies(PolicyFilter(
            agent_id=agent_id,
            status=PolicyStatus.ISSUED,
        ))
        created = []
        for policy in policies:
            commission = await self.create_renewal_commission(policy.id)
            if commission is not None:
                created.append(commission)

        logger.info(f"Renewals for agent {agent_id}: {len(created)} created from {len(policies)} issued policies")
        return created

    # === Queries ===

    async def list_agent_commissions(
        self,
        agent_id: str,
        status: Optional[CommissionStatus] = None,
    ) -> List[Commission]:
        return await self.store.list_commissions(CommissionFilter(agent_id=agent_id, status=status))

    async def list_policy_commissions(self, policy_id: str) -> List[Commission]:
        return await self.store.list_commissions(CommissionFilter(policy_id=policy_id))

    async def commission_summary(self, agent_id: str) -> Dict[str, float]:
        commissions = await self.store.list_commissions(CommissionFilter(agent_id=agent_id))
        pending = [c for c in commissions if c.status == CommissionStatus.PENDING]
        paid = [c for c in commissions if c.status == CommissionStatus.PAID]
        clawed = [c for c in commissions if c.status == CommissionStatus.CLAWED_BACK]

        pending_amount = round_money(sum(c.amount for c in pending))
        paid_amount = round_money(sum(c.amount for c in paid))
        return {
            "pending_count": len(pending),
            "paid_count": len(paid),
            "clawed_back_count": len(clawed),
            "pending_amount": pending_amount,
            "paid_amount": paid_amount,
            "clawed_back_amount": round_money(sum(c.amount for c in clawed)),
            "total_amount": round_money(pending_amount + paid_amount),
        }
