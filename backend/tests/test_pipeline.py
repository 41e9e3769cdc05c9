"""
Lead pipeline tests (in-memory store)
"""

from datetime import datetime

import pytest

from revenue_engine.core.errors import (
    DuplicateLeadError,
    EntityNotFoundError,
    InvalidValueError,
    LeadValidationError,
)
from revenue_engine.leads.models import ActivityOutcome, ActivityType, IntentLevel, LeadStatus
from revenue_engine.policies.models import CommissionStatus, CommissionType, PolicyStatus
from revenue_engine.store.base import ActivityFilter, CommissionFilter, PolicyFilter

from conftest import AGENT_ID


async def _lead(engine, **overrides):
    values = dict(agent_id=AGENT_ID, first_name="John", last_name="Smith", phone="555-0101")
    values.update(overrides)
    return await engine.pipeline.create_lead(**values)


async def _policy(engine, lead, **overrides):
    values = dict(
        agent_id=AGENT_ID,
        lead_id=lead.id,
        carrier="Acme Life",
        product_type="TERM_LIFE",
        face_amount=500000,
        premium=1200,
    )
    values.update(overrides)
    return await engine.pipeline.create_policy(**values)


class TestLeads:
    @pytest.mark.asyncio
    async def test_create_lead_scores_and_welcomes(self, engine, notifier):
        lead = await _lead(engine, email="john@example.com", intent_level="WARM")

        assert lead.id.startswith("LEAD-")
        assert lead.status == LeadStatus.NEW
        assert lead.score == 30
        assert len(notifier.sent) == 1
        assert notifier.sent[0].to == "john@example.com"
        assert notifier.sent[0].channel == "email"

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, engine):
        with pytest.raises(LeadValidationError) as exc:
            await _lead(engine, last_name=" ", phone="")
        assert exc.value.missing_fields == ["last_name", "phone"]

    @pytest.mark.asyncio
    async def test_duplicate_phone(self, engine):
        first = await _lead(engine)
        with pytest.raises(DuplicateLeadError) as exc:
            await _lead(engine, first_name="Other")
        assert exc.value.existing_lead_id == first.id

    @pytest.mark.asyncio
    async def test_same_phone_other_agent_is_allowed(self, engine):
        await _lead(engine)
        other = await _lead(engine, agent_id="agent-2")
        assert other.agent_id == "agent-2"

    @pytest.mark.asyncio
    async def test_update_cannot_take_another_leads_phone(self, engine):
        first = await _lead(engine, phone="555-1111", email="a@example.com")
        second = await _lead(engine, first_name="Mary", phone="555-2222")

        with pytest.raises(DuplicateLeadError) as exc:
            await engine.pipeline.update_lead(first.id, phone="555-2222")

        assert exc.value.existing_lead_id == second.id
        assert (await engine.pipeline.get_lead(first.id)).phone == "555-1111"

    @pytest.mark.asyncio
    async def test_update_keeps_own_contact_details(self, engine):
        lead = await _lead(engine, phone="555-1111", email="a@example.com")

        updated = await engine.pipeline.update_lead(lead.id, phone="555-1111", email="new@example.com")

        assert updated.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_invalid_status(self, engine):
        with pytest.raises(InvalidValueError):
            await _lead(engine, status="SOMEWHERE")

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, engine):
        lead = await _lead(engine)
        with pytest.raises(InvalidValueError):
            await engine.pipeline.update_lead(lead.id, score=99)

    @pytest.mark.asyncio
    async def test_update_intent_rescores(self, engine):
        lead = await _lead(engine)
        updated = await engine.pipeline.update_intent_level(lead.id, IntentLevel.HOT)
        assert updated.score == 50

    @pytest.mark.asyncio
    async def test_manual_status_change_is_never_rejected(self, engine):
        lead = await _lead(engine)
        updated = await engine.pipeline.update_lead_status(lead.id, "PLACED")
        assert updated.status == LeadStatus.PLACED

        updated = await engine.pipeline.update_lead_status(lead.id, LeadStatus.NEW)
        assert updated.status == LeadStatus.NEW

    @pytest.mark.asyncio
    async def test_get_missing_lead(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.pipeline.get_lead("LEAD-NOPE")

    @pytest.mark.asyncio
    async def test_list_and_search(self, engine):
        await _lead(engine, first_name="Alice", phone="555-0001", source="Facebook Ad")
        await _lead(engine, first_name="Bob", phone="555-0002", source="Referral")

        page = await engine.pipeline.list_leads(AGENT_ID, source="facebook")
        assert page["total"] == 1
        assert page["leads"][0].first_name == "Alice"

        found = await engine.pipeline.search_leads(AGENT_ID, "bob")
        assert [l.first_name for l in found] == ["Bob"]

    @pytest.mark.asyncio
    async def test_bulk_import_collects_failures(self, engine):
        result = await engine.pipeline.bulk_import_leads(AGENT_ID, [
            {"first_name": "Ann", "last_name": "Lee", "phone": "555-0301"},
            {"first_name": "No", "last_name": "Phone"},
            {"first_name": "Ann", "last_name": "Again", "phone": "555-0301"},
        ])

        assert result["imported"] == 1
        assert result["failed"] == 2
        assert len(result["errors"]) == 2

    @pytest.mark.asyncio
    async def test_delete_lead_cascades(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)
        await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        await engine.pipeline.delete_lead(lead.id)

        assert await store.get_lead(lead.id) is None
        assert await store.list_activities(ActivityFilter(lead_id=lead.id)) == []
        assert await store.list_policies(PolicyFilter(lead_id=lead.id)) == []
        assert await store.list_commissions(CommissionFilter(policy_id=policy.id)) == []


class TestActivities:
    @pytest.mark.asyncio
    async def test_outbound_call_contacts_new_lead(self, engine):
        lead = await _lead(engine)

        activity = await engine.pipeline.log_activity(
            AGENT_ID, lead.id, ActivityType.CALL_OUTBOUND, "Intro call",
        )

        lead = await engine.pipeline.get_lead(lead.id)
        assert activity.id.startswith("ACT-")
        assert lead.status == LeadStatus.CONTACTED
        # 5 status + 5 activity
        assert lead.score == 10

    @pytest.mark.asyncio
    async def test_outbound_call_keeps_qualified_lead(self, engine):
        lead = await _lead(engine, status="QUALIFIED")

        await engine.pipeline.log_activity(AGENT_ID, lead.id, "CALL_OUTBOUND", "Check-in")

        lead = await engine.pipeline.get_lead(lead.id)
        assert lead.status == LeadStatus.QUALIFIED

    @pytest.mark.asyncio
    async def test_positive_meeting_qualifies(self, engine):
        lead = await _lead(engine, status="ENGAGED")

        await engine.pipeline.log_activity(
            AGENT_ID, lead.id, "MEETING_COMPLETED", "Needs analysis", outcome="INTERESTED",
        )

        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.QUALIFIED

    @pytest.mark.asyncio
    async def test_activity_for_missing_lead(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.pipeline.log_activity(AGENT_ID, "LEAD-NOPE", "NOTE", "x")

    @pytest.mark.asyncio
    async def test_invalid_activity_type(self, engine):
        lead = await _lead(engine)
        with pytest.raises(InvalidValueError):
            await engine.pipeline.log_activity(AGENT_ID, lead.id, "FAX", "x")

    @pytest.mark.asyncio
    async def test_delete_activity_rescores(self, engine):
        lead = await _lead(engine, status="CONTACTED")
        activity = await engine.pipeline.log_activity(AGENT_ID, lead.id, "EMAIL_RECEIVED", "Reply")
        assert (await engine.pipeline.get_lead(lead.id)).score == 12

        await engine.pipeline.delete_activity(activity.id)

        assert (await engine.pipeline.get_lead(lead.id)).score == 5

    @pytest.mark.asyncio
    async def test_activity_stats(self, engine):
        lead = await _lead(engine)
        await engine.pipeline.log_activity(AGENT_ID, lead.id, "CALL_OUTBOUND", "1", outcome="NO_ANSWER")
        await engine.pipeline.log_activity(AGENT_ID, lead.id, "CALL_OUTBOUND", "2", outcome="POSITIVE")
        await engine.pipeline.log_activity(AGENT_ID, lead.id, "EMAIL_SENT", "3")

        stats = await engine.pipeline.lead_activity_stats(lead.id)

        assert stats["total"] == 3
        assert stats["by_type"] == {"CALL_OUTBOUND": 2, "EMAIL_SENT": 1}
        assert stats["by_outcome"] == {"NO_ANSWER": 1, "POSITIVE": 1}


class TestPolicies:
    @pytest.mark.asyncio
    async def test_create_policy_moves_lead_to_application(self, engine, store):
        lead = await _lead(engine)

        policy = await _policy(engine, lead)

        assert policy.status == PolicyStatus.APPLIED
        assert policy.commission_rate == 0.90
        assert policy.commission_amount == 1080.0
        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.APPLICATION
        assert await store.list_commissions(CommissionFilter(policy_id=policy.id)) == []

        activities = await store.list_activities(ActivityFilter(lead_id=lead.id))
        assert [a.type for a in activities] == [ActivityType.APPLICATION_SENT]

    @pytest.mark.asyncio
    async def test_create_policy_keeps_later_stage(self, engine):
        lead = await _lead(engine, status="UNDERWRITING")
        await _policy(engine, lead)
        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.UNDERWRITING

    @pytest.mark.asyncio
    async def test_issuing_creates_exactly_one_commission(self, engine, store, notifier):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        issued = await engine.pipeline.update_policy_status(policy.id, "ISSUED")
        await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        commissions = await store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert len(commissions) == 1
        assert commissions[0].type == CommissionType.FIRST_YEAR
        assert commissions[0].status == CommissionStatus.PENDING
        assert commissions[0].amount == 1080.0

        assert issued.issue_date is not None
        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.PLACED
        assert any("TERM LIFE" in m.body and "Acme Life" in m.body for m in notifier.sent)

    @pytest.mark.asyncio
    async def test_created_as_issued(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead, status="ISSUED", premium=1000, product_type="WHOLE_LIFE")

        commissions = await store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert [c.amount for c in commissions] == [550.0]
        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.PLACED

    @pytest.mark.asyncio
    async def test_issue_uses_explicit_rate(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead, commission_rate=0.5)

        await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        commissions = await store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert commissions[0].amount == 600.0

    @pytest.mark.asyncio
    async def test_issue_keeps_zero_rate(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead, premium=1200, commission_rate=0.0)
        assert policy.commission_amount == 0.0

        issued = await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        assert issued.commission_rate == 0.0
        assert issued.commission_amount == 0.0
        commissions = await store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert [c.amount for c in commissions] == [0.0]

    @pytest.mark.asyncio
    async def test_underwriting_moves_lead(self, engine):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        await engine.pipeline.update_policy_status(policy.id, "UNDERWRITING")

        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.UNDERWRITING

    @pytest.mark.asyncio
    async def test_withdrawn_loses_lead(self, engine):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        await engine.pipeline.update_policy_status(policy.id, "WITHDRAWN")

        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.LOST

    @pytest.mark.asyncio
    async def test_declined_leaves_lead_unplaced(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        await engine.pipeline.update_policy_status(policy.id, "DECLINED")

        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.NOT_PLACED
        assert await store.list_commissions(CommissionFilter(policy_id=policy.id)) == []

    @pytest.mark.asyncio
    async def test_premium_change_before_issue_recalculates(self, engine):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        updated = await engine.pipeline.update_policy(policy.id, premium=2000)

        assert updated.commission_amount == 1800.0

    @pytest.mark.asyncio
    async def test_product_change_before_issue_uses_new_table_rate(self, engine):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)

        updated = await engine.pipeline.update_policy(policy.id, product_type="WHOLE_LIFE")

        assert updated.commission_rate == 0.55
        assert updated.commission_amount == 660.0

    @pytest.mark.asyncio
    async def test_premium_change_after_issue_is_frozen(self, engine, store):
        lead = await _lead(engine)
        policy = await _policy(engine, lead)
        await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        updated = await engine.pipeline.update_policy(policy.id, premium=5000)

        assert updated.premium == 5000
        assert updated.commission_amount == 1080.0
        commissions = await store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert [c.amount for c in commissions] == [1080.0]

    @pytest.mark.asyncio
    async def test_negative_premium_rejected(self, engine):
        lead = await _lead(engine)
        with pytest.raises(InvalidValueError):
            await _policy(engine, lead, premium=-1)

    @pytest.mark.asyncio
    async def test_policy_for_missing_lead(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.pipeline.create_policy(
                AGENT_ID, "LEAD-NOPE", "Acme", "TERM_LIFE", 1000, 100,
            )

    @pytest.mark.asyncio
    async def test_policy_queries(self, engine):
        lead = await _lead(engine)
        issued = await _policy(engine, lead, policy_number="TL-778899")
        await engine.pipeline.update_policy_status(issued.id, "ISSUED", issue_date=datetime.utcnow())
        pending = await _policy(engine, lead, carrier="Beta Mutual", status="PENDING_REQUIREMENTS")

        assert [p.id for p in await engine.pipeline.recently_issued_policies(AGENT_ID)] == [issued.id]
        assert [p.id for p in await engine.pipeline.policies_pending_requirements(AGENT_ID)] == [pending.id]
        assert [p.id for p in await engine.pipeline.search_policies(AGENT_ID, "778899")] == [issued.id]

        stats = await engine.pipeline.policy_stats(AGENT_ID)
        assert stats["total"] == 2
        assert stats["by_status"] == {"ISSUED": 1, "PENDING_REQUIREMENTS": 1}
        assert stats["total_annual_premium"] == 1200.0
        assert stats["total_pending_commissions"] == 1080.0
