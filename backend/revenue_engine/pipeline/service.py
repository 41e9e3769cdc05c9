"""
Lead Pipeline Service

Entry point for every lead, activity and policy mutation. Each mutation
updates the store, recomputes the lead's score and emits the matching
event to the TriggerDispatcher.
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from revenue_engine.automation.dispatcher import TriggerDispatcher
from revenue_engine.automation.models import TriggerEvent, TriggerKind
from revenue_engine.commissions.calculator import calculate, default_rate, round_money
from revenue_engine.commissions.service import CommissionService
from revenue_engine.core.errors import (
    DuplicateLeadError,
    EntityNotFoundError,
    InvalidValueError,
    LeadValidationError,
    RevenueEngineError,
    parse_enum,
)
from revenue_engine.leads.models import (
    Activity,
    ActivityOutcome,
    ActivityType,
    IntentLevel,
    Lead,
    LeadStatus,
)
from revenue_engine.pipeline.lead_state_machine import derive_status_from_activity, is_before
from revenue_engine.pipeline.policy_state_machine import (
    PolicyEffect,
    PolicyLifecycle,
    classify_change,
    is_pre_issue,
    lead_status_for_not_issued,
)
from revenue_engine.policies.models import (
    CommissionStatus,
    Policy,
    PolicyStatus,
    PremiumMode,
    ProductType,
)
from revenue_engine.scoring.engine import ScoreResult, compute_score
from revenue_engine.store.base import (
    ActivityFilter,
    CommissionFilter,
    EntityStore,
    LeadFilter,
    PolicyFilter,
)

logger = logging.getLogger(__name__)

LEAD_REQUIRED_FIELDS = ("first_name", "last_name", "phone")

LEAD_UPDATABLE_FIELDS = {
    "first_name", "last_name", "phone", "email", "status", "intent_level",
    "source", "notes", "date_of_birth", "address", "city", "state", "zip_code",
}

ACTIVITY_UPDATABLE_FIELDS = {"type", "outcome", "title", "description", "duration", "metadata"}

POLICY_UPDATABLE_FIELDS = {
    "carrier", "product_type", "face_amount", "premium", "commission_rate", "status",
    "issue_date", "effective_date", "term", "policy_number", "mode",
}


def _missing_required(values: Dict[str, Any]) -> List[str]:
    missing = []
    for name in LEAD_REQUIRED_FIELDS:
        value = values.get(name)
        if value is None or not str(value).strip():
            missing.append(name)
    return missing


def _non_negative(field: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidValueError(field, value)
    if number < 0:
        raise InvalidValueError(field, value)
    return number


def _count_by(values) -> Dict[str, int]:
    return dict(Counter(values))


class LeadPipeline:
    """
    Lead Pipeline

    Status changes are never rejected; dependent logic runs only when the
    status actually changes.
    """

    def __init__(
        self,
        store: EntityStore,
        dispatcher: TriggerDispatcher,
        commissions: CommissionService,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.commissions = commissions

    async def _emit(
        self,
        kind: TriggerKind,
        agent_id: str,
        lead_id: Optional[str] = None,
        policy_id: Optional[str] = None,
        activity_id: Optional[str] = None,
        **data: Any,
    ) -> None:
        await self.dispatcher.dispatch(TriggerEvent(
            kind=kind,
            agent_id=agent_id,
            lead_id=lead_id,
            policy_id=policy_id,
            activity_id=activity_id,
            data=data,
        ))

    # === Scoring ===

    async def recompute_score(self, lead_id: str) -> ScoreResult:
        """Recompute and persist a lead's score; emits score.changed when it moves."""
        lead = await self.get_lead(lead_id)
        activities = await self.store.list_activities(ActivityFilter(lead_id=lead_id))
        result = compute_score(lead, activities)

        if result.change == 0:
            return result

        lead.score = result.score
        await self.store.update_lead(lead)

        logger.info(
            f"Lead {lead.id}: {result.previous_score} -> {result.score} "
            f"({result.change:+d}) - {result.reason}"
        )

        await self._emit(
            TriggerKind.SCORE_CHANGED,
            lead.agent_id,
            lead_id=lead.id,
            previous_score=result.previous_score,
            new_score=result.score,
            change=result.change,
            reason=result.reason,
        )
        return result

    # === Leads ===

    async def get_lead(self, lead_id: str) -> Lead:
        lead = await self.store.get_lead(lead_id)
        if lead is None:
            raise EntityNotFoundError("Lead", lead_id)
        return lead

    async def create_lead(
        self,
        agent_id: str,
        first_name: str,
        last_name: str,
        phone: str,
        email: Optional[str] = None,
        status: Any = LeadStatus.NEW,
        intent_level: Any = IntentLevel.UNKNOWN,
        source: Optional[str] = None,
        notes: Optional[str] = None,
        date_of_birth: Optional[datetime] = None,
        address: Optional[str] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        zip_code: Optional[str] = None,
    ) -> Lead:
        """
        Create a lead, compute its initial score and emit lead.created.

        Raises:
            LeadValidationError: first name, last name or phone missing
            DuplicateLeadError: the agent already has a lead with this phone or email
        """
        missing = _missing_required({
            "first_name": first_name, "last_name": last_name, "phone": phone,
        })
        if missing:
            raise LeadValidationError(missing)

        phone = phone.strip()
        email = email.strip() if email else None

        existing = await self.store.find_duplicate_lead(agent_id, phone, email)
        if existing:
            logger.warning(f"Duplicate lead detected: {existing.id} (phone={phone}, email={email})")
            raise DuplicateLeadError(existing.id, phone, email)

        lead = Lead(
            id="",
            agent_id=agent_id,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            phone=phone,
            email=email,
            status=parse_enum(LeadStatus, status, "status"),
            intent_level=parse_enum(IntentLevel, intent_level, "intent_level"),
            score=0,
            source=source,
            notes=notes,
            date_of_birth=date_of_birth,
            address=address,
            city=city,
            state=state,
            zip_code=zip_code,
        )
        await self.store.create_lead(lead)
        logger.info(f"Lead created: {lead.id} {lead.full_name} ({phone}, source={source})")

        await self._emit(
            TriggerKind.LEAD_CREATED,
            agent_id,
            lead_id=lead.id,
            lead_name=lead.full_name,
            source=source,
        )
        await self.recompute_score(lead.id)
        return await self.get_lead(lead.id)

    async def update_lead(self, lead_id: str, **changes: Any) -> Lead:
        """
        Update lead fields.

        Recomputes the score when status or intent is given and emits
        lead.status_changed when the status actually changes.
        """
        unknown = set(changes) - LEAD_UPDATABLE_FIELDS
        if unknown:
            raise InvalidValueError("field", sorted(unknown)[0], sorted(LEAD_UPDATABLE_FIELDS))

        lead = await self.get_lead(lead_id)

        for name in LEAD_REQUIRED_FIELDS:
            if name in changes and (changes[name] is None or not str(changes[name]).strip()):
                raise LeadValidationError([name])

        new_status = None
        if "status" in changes:
            new_status = parse_enum(LeadStatus, changes.pop("status"), "status")
        if "intent_level" in changes:
            changes["intent_level"] = parse_enum(IntentLevel, changes["intent_level"], "intent_level")

        if "phone" in changes or "email" in changes:
            duplicate = await self.store.find_duplicate_lead(
                lead.agent_id,
                changes.get("phone", lead.phone),
                changes.get("email", lead.email),
                exclude_id=lead.id,
            )
            if duplicate is not None:
                raise DuplicateLeadError(
                    duplicate.id, changes.get("phone", lead.phone), changes.get("email")
                )

        for name, value in changes.items():
            setattr(lead, name, value)
        lead.updated_at = datetime.utcnow()
        await self.store.update_lead(lead)

        if changes:
            logger.info(f"Lead updated: {lead.id} fields={sorted(changes)}")

        if new_status is not None and new_status != lead.status:
            await self._change_status(lead, new_status, reason="manual update")
        elif new_status is not None or "intent_level" in changes:
            await self.recompute_score(lead.id)

        return await self.get_lead(lead.id)

    async def update_lead_status(self, lead_id: str, status: Any) -> Lead:
        return await self.update_lead(lead_id, status=status)

    async def update_intent_level(self, lead_id: str, intent_level: Any) -> Lead:
        return await self.update_lead(lead_id, intent_level=intent_level)

    async def _change_status(self, lead: Lead, new_status: LeadStatus, reason: str) -> bool:
        previous = lead.status
        if previous == new_status:
            return False

        lead.status = new_status
        lead.updated_at = datetime.utcnow()
        await self.store.update_lead(lead)
        logger.info(f"Lead {lead.id} status: {previous.value} -> {new_status.value} ({reason})")

        await self.recompute_score(lead.id)
        await self._emit(
            TriggerKind.LEAD_STATUS_CHANGED,
            lead.agent_id,
            lead_id=lead.id,
            previous_status=previous.value,
            new_status=new_status.value,
            lead_name=lead.full_name,
            reason=reason,
        )
        return True

    async def delete_lead(self, lead_id: str) -> None:
        lead = await self.get_lead(lead_id)
        await self.store.delete_lead(lead_id)
        logger.warning(f"Lead deleted: {lead_id} {lead.full_name}")

    async def list_leads(
        self,
        agent_id: str,
        status: Any = None,
        intent_level: Any = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        source: Optional[str] = None,
        sort_by: str = "created_at",
        descending: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> Dict[str, Any]:
        criteria = LeadFilter(
            agent_id=agent_id,
            status=parse_enum(LeadStatus, status, "status") if status else None,
            intent_level=parse_enum(IntentLevel, intent_level, "intent_level") if intent_level else None,
            min_score=min_score,
            max_score=max_score,
            source_contains=source,
            sort_by=sort_by,
            descending=descending,
            limit=limit,
            offset=offset,
        )
        leads = await self.store.list_leads(criteria)
        total = await self.store.count_leads(criteria)
        return {"leads": leads, "total": total, "limit": limit, "offset": offset}

    async def search_leads(self, agent_id: str, keyword: str, limit: int = 20) -> List[Lead]:
        return await self.store.list_leads(LeadFilter(
            agent_id=agent_id,
            keyword=keyword,
            sort_by="updated_at",
            limit=limit,
        ))

    async def bulk_import_leads(
        self,
        agent_id: str,
        rows: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Create leads one by one; failures are collected, not raised."""
        imported = 0
        errors: List[str] = []

        for row in rows:
            name = f"{row.get('first_name', '')} {row.get('last_name', '')}".strip()
            try:
                await self.create_lead(
                    agent_id=agent_id,
                    first_name=row.get("first_name"),
                    last_name=row.get("last_name"),
                    phone=row.get("phone"),
                    email=row.get("email"),
                    source=row.get("source"),
                    notes=row.get("notes"),
                )
                imported += 1
            except RevenueEngineError as e:
                errors.append(f"{name or '<unnamed>'}: {e}")

        logger.info(f"Bulk import completed: {imported} imported, {len(errors)} failed")
        return {"imported": imported, "failed": len(errors), "errors": errors}

    # === Activities ===

    async def get_activity(self, activity_id: str) -> Activity:
        activity = await self.store.get_activity(activity_id)
        if activity is None:
            raise EntityNotFoundError("Activity", activity_id)
        return activity

    async def log_activity(
        self,
        agent_id: str,
        lead_id: str,
        type: Any,
        title: str,
        outcome: Any = None,
        description: Optional[str] = None,
        duration: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Activity:
        """
        Record an activity, recompute the lead's score, emit activity.logged
        and apply any status advance the activity implies.
        """
        lead = await self.get_lead(lead_id)
        activity_type = parse_enum(ActivityType, type, "type")
        activity_outcome = parse_enum(ActivityOutcome, outcome, "outcome") if outcome else None

        activity = Activity(
            id="",
            agent_id=agent_id,
            lead_id=lead.id,
            type=activity_type,
            title=title,
            outcome=activity_outcome,
            description=description,
            duration=duration,
            metadata=metadata or {},
        )
        await self.store.create_activity(activity)
        logger.info(
            f"Activity logged: {activity.id} {activity_type.value} on lead {lead.id}"
            + (f" ({activity_outcome.value})" if activity_outcome else "")
        )

        await self.recompute_score(lead.id)
        await self._emit(
            TriggerKind.ACTIVITY_LOGGED,
            agent_id,
            lead_id=lead.id,
            activity_id=activity.id,
            activity_type=activity_type.value,
            outcome=activity_outcome.value if activity_outcome else None,
            lead_name=lead.full_name,
        )

        lead = await self.get_lead(lead.id)
        new_status = derive_status_from_activity(lead.status, activity_type, activity_outcome)
        if new_status is not None:
            await self._change_status(lead, new_status, reason=f"activity {activity_type.value}")

        return activity

    async def update_activity(self, activity_id: str, **changes: Any) -> Activity:
        unknown = set(changes) - ACTIVITY_UPDATABLE_FIELDS
        if unknown:
            raise InvalidValueError("field", sorted(unknown)[0], sorted(ACTIVITY_UPDATABLE_FIELDS))

        activity = await self.get_activity(activity_id)
        if "type" in changes:
            changes["type"] = parse_enum(ActivityType, changes["type"], "type")
        if changes.get("outcome") is not None:
            changes["outcome"] = parse_enum(ActivityOutcome, changes["outcome"], "outcome")

        for name, value in changes.items():
            setattr(activity, name, value)
        await self.store.update_activity(activity)
        logger.info(f"Activity updated: {activity.id} fields={sorted(changes)}")

        await self.recompute_score(activity.lead_id)
        return activity

    async def delete_activity(self, activity_id: str) -> None:
        activity = await self.get_activity(activity_id)
        await self.store.delete_activity(activity_id)
        logger.info(f"Activity deleted: {activity_id} (lead {activity.lead_id})")
        await self.recompute_score(activity.lead_id)

    async def list_lead_activities(
        self,
        lead_id: str,
        type: Any = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Activity]:
        return await self.store.list_activities(ActivityFilter(
            lead_id=lead_id,
            type=parse_enum(ActivityType, type, "type") if type else None,
            since=since,
            until=until,
            limit=limit,
            offset=offset,
        ))

    async def list_agent_activities(
        self,
        agent_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Activity]:
        return await self.store.list_activities(ActivityFilter(
            agent_id=agent_id, since=since, until=until, limit=limit, offset=offset,
        ))

    async def search_activities(self, agent_id: str, keyword: str, limit: int = 20) -> List[Activity]:
        return await self.store.list_activities(ActivityFilter(
            agent_id=agent_id, keyword=keyword, limit=limit,
        ))

    async def lead_activity_stats(self, lead_id: str) -> Dict[str, Any]:
        activities = await self.store.list_activities(ActivityFilter(lead_id=lead_id))
        return {
            "total": len(activities),
            "by_type": _count_by(a.type.value for a in activities),
            "by_outcome": _count_by(a.outcome.value for a in activities if a.outcome),
            "last_activity": activities[0].to_dict() if activities else None,
            "first_activity": activities[-1].to_dict() if activities else None,
        }

    async def agent_activity_stats(
        self,
        agent_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        activities = await self.store.list_activities(ActivityFilter(
            agent_id=agent_id, since=since, until=until,
        ))
        return {
            "total": len(activities),
            "by_type": _count_by(a.type.value for a in activities),
            "by_outcome": _count_by(a.outcome.value for a in activities if a.outcome),
            "total_duration": sum(a.duration or 0 for a in activities),
            "unique_leads": len({a.lead_id for a in activities}),
        }

    # === Policies ===

    async def get_policy(self, policy_id: str) -> Policy:
        policy = await self.store.get_policy(policy_id)
        if policy is None:
            raise EntityNotFoundError("Policy", policy_id)
        return policy

    async def create_policy(
        self,
        agent_id: str,
        lead_id: str,
        carrier: str,
        product_type: Any,
        face_amount: float,
        premium: float,
        commission_rate: Optional[float] = None,
        term: Optional[int] = None,
        policy_number: Optional[str] = None,
        mode: Any = PremiumMode.MONTHLY,
        status: Any = PolicyStatus.APPLIED,
        effective_date: Optional[datetime] = None,
    ) -> Policy:
        """
        Create a policy application for a lead.

        Logs an APPLICATION_SENT activity, moves the lead to APPLICATION if
        it is at an earlier stage, emits policy.created and runs the
        status side effects when created past APPLIED (e.g. as ISSUED).
        """
        lead = await self.get_lead(lead_id)
        product = parse_enum(ProductType, product_type, "product_type")
        initial_status = parse_enum(PolicyStatus, status, "status")
        premium = _non_negative("premium", premium)
        face_amount = _non_negative("face_amount", face_amount)
        if commission_rate is not None:
            commission_rate = _non_negative("commission_rate", commission_rate)

        quote = calculate(premium, product, commission_rate)
        policy = Policy(
            id="",
            agent_id=agent_id,
            lead_id=lead.id,
            carrier=carrier,
            product_type=product,
            face_amount=face_amount,
            premium=premium,
            commission_rate=quote.rate,
            commission_amount=quote.amount,
            status=initial_status,
            mode=parse_enum(PremiumMode, mode, "mode"),
            term=term,
            policy_number=policy_number,
            effective_date=effective_date,
        )
        await self.store.create_policy(policy)
        logger.info(
            f"Policy created: {policy.id} {product.value} with {carrier} for lead {lead.id} "
            f"(face ${face_amount:,.0f}, premium ${premium:,.2f}, commission ${quote.amount:,.2f})"
        )

        await self.log_activity(
            agent_id=agent_id,
            lead_id=lead.id,
            type=ActivityType.APPLICATION_SENT,
            title=f"Policy application submitted: {product.label}",
            description=(
                f"Application submitted to {carrier} for ${face_amount:,.0f} {product.label} "
                f"policy. Premium: ${premium:,.2f}"
            ),
        )

        lead = await self.get_lead(lead.id)
        if is_before(lead.status, LeadStatus.APPLICATION):
            await self._change_status(lead, LeadStatus.APPLICATION, reason=f"policy {policy.id} created")

        await self.recompute_score(lead.id)
        await self._emit(
            TriggerKind.POLICY_CREATED,
            agent_id,
            lead_id=lead.id,
            policy_id=policy.id,
            product_type=product.value,
            product=product.label,
            carrier=carrier,
            premium=premium,
            face_amount=face_amount,
        )

        effect = classify_change(PolicyStatus.APPLIED, initial_status)
        if effect is not None:
            await self._apply_policy_effect(policy, effect)

        return await self.get_policy(policy.id)

    async def update_policy(self, policy_id: str, **changes: Any) -> Policy:
        """
        Update policy fields.

        Before issuance a premium, product or rate change recomputes the
        commission figures; after issuance they stay frozen. A status change
        runs the issuance / underwriting / not-issued side effects.
        """
        unknown = set(changes) - POLICY_UPDATABLE_FIELDS
        if unknown:
            raise InvalidValueError("field", sorted(unknown)[0], sorted(POLICY_UPDATABLE_FIELDS))

        policy = await self.get_policy(policy_id)
        previous_status = policy.status

        if "product_type" in changes:
            changes["product_type"] = parse_enum(ProductType, changes["product_type"], "product_type")
        if "status" in changes:
            changes["status"] = parse_enum(PolicyStatus, changes["status"], "status")
        if "mode" in changes:
            changes["mode"] = parse_enum(PremiumMode, changes["mode"], "mode")
        for name in ("premium", "face_amount"):
            if name in changes:
                changes[name] = _non_negative(name, changes[name])
        if changes.get("commission_rate") is not None:
            changes["commission_rate"] = _non_negative("commission_rate", changes["commission_rate"])

        product_changed = (
            "product_type" in changes and changes["product_type"] != policy.product_type
        )
        pricing_changed = (
            "premium" in changes or product_changed or changes.get("commission_rate") is not None
        )

        for name, value in changes.items():
            if name == "commission_rate" and value is None:
                continue
            setattr(policy, name, value)

        if pricing_changed and is_pre_issue(previous_status):
            if changes.get("commission_rate") is not None:
                rate = changes["commission_rate"]
            elif product_changed:
                rate = default_rate(policy.product_type)
            else:
                rate = policy.commission_rate
            quote = calculate(policy.premium, policy.product_type, rate)
            policy.commission_rate = quote.rate
            policy.commission_amount = quote.amount
            logger.info(
                f"Policy {policy.id} commission recalculated: "
                f"{quote.rate:.1%} of ${policy.premium:,.2f} = ${quote.amount:,.2f}"
            )
        elif pricing_changed:
            logger.info(f"Policy {policy.id} already issued, commission figures kept")

        policy.updated_at = datetime.utcnow()
        await self.store.update_policy(policy)
        logger.info(f"Policy updated: {policy.id} fields={sorted(changes)}")

        if "status" in changes and policy.status != previous_status:
            if not PolicyLifecycle(previous_status).is_regular_move(policy.status):
                logger.warning(
                    f"Policy {policy.id} moved {previous_status.value} -> {policy.status.value} "
                    f"outside the usual lifecycle"
                )

        effect = classify_change(previous_status, policy.status)
        if effect is not None and "status" in changes:
            await self._apply_policy_effect(policy, effect)

        return await self.get_policy(policy.id)

    async def update_policy_status(
        self,
        policy_id: str,
        status: Any,
        issue_date: Optional[datetime] = None,
    ) -> Policy:
        changes: Dict[str, Any] = {"status": status}
        if issue_date is not None:
            changes["issue_date"] = issue_date
        return await self.update_policy(policy_id, **changes)

    async def _apply_policy_effect(self, policy: Policy, effect: PolicyEffect) -> None:
        if effect == PolicyEffect.ISSUED:
            await self._on_issued(policy)
        elif effect == PolicyEffect.UNDERWRITING:
            await self._on_underwriting(policy)
        elif effect == PolicyEffect.NOT_ISSUED:
            await self._on_not_issued(policy)

    async def _on_issued(self, policy: Policy) -> None:
        if policy.issue_date is None:
            policy.issue_date = datetime.utcnow()
            await self.store.update_policy(policy)

        commission = await self.commissions.issue_first_year(policy)

        lead = await self.get_lead(policy.lead_id)
        await self._change_status(lead, LeadStatus.PLACED, reason=f"policy {policy.id} issued")

        await self.log_activity(
            agent_id=policy.agent_id,
            lead_id=policy.lead_id,
            type=ActivityType.NOTE,
            title=f"Policy issued: {policy.product_type.label}",
            description=(
                f"Policy issued with {policy.carrier}. "
                f"Policy number: {policy.policy_number or 'Pending'}"
            ),
            outcome=ActivityOutcome.SOLD,
        )

        await self._emit(
            TriggerKind.POLICY_ISSUED,
            policy.agent_id,
            lead_id=policy.lead_id,
            policy_id=policy.id,
            product_type=policy.product_type.value,
            product=policy.product_type.label,
            carrier=policy.carrier,
            policy_number=policy.policy_number,
        )
        if commission is not None:
            await self.commissions.emit_earned(policy, commission)

        logger.info(f"Policy issued: {policy.id} ({policy.carrier})")

    async def _on_underwriting(self, policy: Policy) -> None:
        lead = await self.get_lead(policy.lead_id)
        await self._change_status(lead, LeadStatus.UNDERWRITING, reason=f"policy {policy.id} in underwriting")

        await self.log_activity(
            agent_id=policy.agent_id,
            lead_id=policy.lead_id,
            type=ActivityType.NOTE,
            title="Policy in underwriting",
            description=(
                f"Application for {policy.product_type.label} is now in underwriting "
                f"review with {policy.carrier}"
            ),
        )
        await self.recompute_score(policy.lead_id)
        logger.info(f"Policy in underwriting: {policy.id}")

    async def _on_not_issued(self, policy: Policy) -> None:
        label = policy.status.value.lower()
        lead = await self.get_lead(policy.lead_id)
        await self._change_status(
            lead,
            lead_status_for_not_issued(policy.status),
            reason=f"policy {policy.id} {label}",
        )

        await self.log_activity(
            agent_id=policy.agent_id,
            lead_id=policy.lead_id,
            type=ActivityType.NOTE,
            title=f"Policy {label}",
            description=f"{policy.product_type.label} application with {policy.carrier} was {label}",
        )
        await self.recompute_score(policy.lead_id)
        logger.warning(f"Policy {label}: {policy.id}")

    async def delete_policy(self, policy_id: str) -> None:
        await self.get_policy(policy_id)
        await self.store.delete_policy(policy_id)
        logger.warning(f"Policy deleted: {policy_id}")

    async def list_agent_policies(
        self,
        agent_id: str,
        status: Any = None,
        product_type: Any = None,
        carrier: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Policy]:
        return await self.store.list_policies(PolicyFilter(
            agent_id=agent_id,
            status=parse_enum(PolicyStatus, status, "status") if status else None,
            product_type=parse_enum(ProductType, product_type, "product_type") if product_type else None,
            carrier_contains=carrier,
            limit=limit,
            offset=offset,
        ))

    async def list_lead_policies(self, lead_id: str) -> List[Policy]:
        return await self.store.list_policies(PolicyFilter(lead_id=lead_id))

    async def search_policies(self, agent_id: str, keyword: str, limit: int = 20) -> List[Policy]:
        return await self.store.list_policies(PolicyFilter(
            agent_id=agent_id, keyword=keyword, limit=limit,
        ))

    async def policies_pending_requirements(self, agent_id: str) -> List[Policy]:
        """Oldest first."""
        policies = await self.store.list_policies(PolicyFilter(
            agent_id=agent_id, status=PolicyStatus.PENDING_REQUIREMENTS,
        ))
        return sorted(policies, key=lambda p: p.created_at)

    async def recently_issued_policies(self, agent_id: str, days: int = 30) -> List[Policy]:
        policies = await self.store.list_policies(PolicyFilter(
            agent_id=agent_id,
            status=PolicyStatus.ISSUED,
            issued_since=datetime.utcnow() - timedelta(days=days),
        ))
        return sorted(policies, key=lambda p: p.issue_date, reverse=True)

    async def policy_stats(
        self,
        agent_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        policies = await self.store.list_policies(PolicyFilter(
            agent_id=agent_id, created_since=since, created_until=until,
        ))
        issued = [p for p in policies if p.status == PolicyStatus.ISSUED]
        pending = await self.store.list_commissions(CommissionFilter(
            agent_id=agent_id, status=CommissionStatus.PENDING,
        ))
        return {
            "total": len(policies),
            "by_status": _count_by(p.status.value for p in policies),
            "by_product_type": _count_by(p.product_type.value for p in policies),
            "by_carrier": _count_by(p.carrier for p in policies),
            "total_face_amount": round_money(sum(p.face_amount for p in issued)),
            "total_annual_premium": round_money(sum(p.premium for p in issued)),
            "total_pending_commissions": round_money(sum(c.amount for c in pending)),
        }
