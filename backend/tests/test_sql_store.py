"""
SQLAlchemy store tests (aiosqlite file database)
"""

import pytest
import pytest_asyncio

from revenue_engine.automation.models import SendSmsAction, TriggerKind
from revenue_engine.core.errors import DuplicateLeadError
from revenue_engine.db.database import build_async_engine, build_session_factory, create_tables
from revenue_engine.engine import build_engine
from revenue_engine.leads.models import ActivityType, LeadStatus
from revenue_engine.policies.models import CommissionStatus, CommissionType, PolicyStatus
from revenue_engine.store.base import ActivityFilter, CommissionFilter, LeadFilter, PolicyFilter
from revenue_engine.store.sql import SqlStore

from conftest import AGENT_ID


@pytest_asyncio.fixture
async def sql_store(settings):
    db_engine = build_async_engine(settings)
    await create_tables(db_engine)
    yield SqlStore(build_session_factory(db_engine))
    await db_engine.dispose()


@pytest.fixture
def sql_engine(sql_store, settings, notifier):
    return build_engine(store=sql_store, settings=settings, notifier=notifier)


class TestSqlStore:
    @pytest.mark.asyncio
    async def test_lead_round_trip(self, sql_engine, sql_store):
        lead = await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-0900",
            email="nina@example.com", intent_level="WARM", source="Referral",
        )

        stored = await sql_store.get_lead(lead.id)

        assert stored.first_name == "Nina"
        assert stored.intent_level.value == "WARM"
        assert stored.score == 30
        assert (await sql_store.find_duplicate_lead(AGENT_ID, "000", "nina@example.com")).id == lead.id
        assert await sql_store.find_duplicate_lead("agent-2", "555-0900") is None

    @pytest.mark.asyncio
    async def test_duplicate_detection(self, sql_engine):
        await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-0900",
        )
        with pytest.raises(DuplicateLeadError):
            await sql_engine.pipeline.create_lead(
                agent_id=AGENT_ID, first_name="Other", last_name="Person", phone="555-0900",
            )

    @pytest.mark.asyncio
    async def test_update_cannot_take_another_leads_phone(self, sql_engine, sql_store):
        first = await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-1111",
            email="nina@example.com",
        )
        second = await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Omar", last_name="Diaz", phone="555-2222",
        )

        with pytest.raises(DuplicateLeadError):
            await sql_engine.pipeline.update_lead(first.id, phone="555-2222")

        assert (await sql_store.get_lead(first.id)).phone == "555-1111"
        assert (await sql_store.find_duplicate_lead(
            AGENT_ID, "555-2222", "nina@example.com", exclude_id=first.id,
        )).id == second.id

    @pytest.mark.asyncio
    async def test_filters_and_paging(self, sql_engine, sql_store):
        for i, intent in enumerate(["HOT", "WARM", "COLD"]):
            await sql_engine.pipeline.create_lead(
                agent_id=AGENT_ID, first_name=f"Lead{i}", last_name="Test",
                phone=f"555-091{i}", intent_level=intent,
            )

        by_score = await sql_store.list_leads(LeadFilter(agent_id=AGENT_ID, sort_by="score"))
        assert [l.score for l in by_score] == [50, 30, 10]

        page = await sql_store.list_leads(LeadFilter(agent_id=AGENT_ID, sort_by="score", limit=1, offset=1))
        assert [l.score for l in page] == [30]

        assert await sql_store.count_leads(LeadFilter(agent_id=AGENT_ID, min_score=20)) == 2
        found = await sql_store.list_leads(LeadFilter(agent_id=AGENT_ID, keyword="lead1"))
        assert [l.first_name for l in found] == ["Lead1"]

    @pytest.mark.asyncio
    async def test_activity_advances_lead(self, sql_engine, sql_store):
        lead = await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-0900",
        )

        await sql_engine.pipeline.log_activity(
            AGENT_ID, lead.id, "CALL_OUTBOUND", "Intro", metadata={"recording": "r-1"},
        )

        stored = await sql_store.get_lead(lead.id)
        assert stored.status == LeadStatus.CONTACTED
        assert stored.score == 10
        activities = await sql_store.list_activities(ActivityFilter(lead_id=lead.id))
        assert activities[0].type == ActivityType.CALL_OUTBOUND
        assert activities[0].metadata == {"recording": "r-1"}

    @pytest.mark.asyncio
    async def test_issue_flow_and_cascade(self, sql_engine, sql_store):
        lead = await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-0900",
        )
        policy = await sql_engine.pipeline.create_policy(
            AGENT_ID, lead.id, "Acme Life", "TERM_LIFE", 500000, 1200,
        )

        await sql_engine.pipeline.update_policy_status(policy.id, "ISSUED")
        await sql_engine.pipeline.update_policy_status(policy.id, "ISSUED")

        stored = await sql_store.get_policy(policy.id)
        assert stored.status == PolicyStatus.ISSUED
        assert stored.issue_date is not None
        commissions = await sql_store.list_commissions(CommissionFilter(policy_id=policy.id))
        assert len(commissions) == 1
        assert commissions[0].amount == 1080.0
        assert commissions[0].type == CommissionType.FIRST_YEAR
        assert (await sql_store.get_lead(lead.id)).status == LeadStatus.PLACED

        paid = await sql_engine.commissions.mark_paid(commissions[0].id)
        assert (await sql_store.get_commission(paid.id)).status == CommissionStatus.PAID

        await sql_engine.pipeline.delete_lead(lead.id)
        assert await sql_store.get_lead(lead.id) is None
        assert await sql_store.list_policies(PolicyFilter(lead_id=lead.id)) == []
        assert await sql_store.list_commissions(CommissionFilter(policy_id=policy.id)) == []

    @pytest.mark.asyncio
    async def test_campaign_round_trip(self, sql_engine, sql_store, notifier):
        campaign = await sql_engine.campaigns.create_campaign(AGENT_ID, {
            "name": "Hot lead alert",
            "trigger_condition": {"trigger": "score.changed", "min_score": 40, "lead_statuses": ["NEW"]},
            "actions": [{"type": "send_sms", "body": "Hi {first_name}"}],
        })

        stored = await sql_store.get_campaign(campaign.id)
        assert stored.trigger_condition.trigger == TriggerKind.SCORE_CHANGED
        assert stored.trigger_condition.lead_statuses == [LeadStatus.NEW]
        assert isinstance(stored.actions[0], SendSmsAction)

        await sql_engine.pipeline.create_lead(
            agent_id=AGENT_ID, first_name="Nina", last_name="Ruiz", phone="555-0900",
            intent_level="HOT",
        )

        assert "Hi Nina" in [m.body for m in notifier.sent]
        stored = await sql_store.get_campaign(campaign.id)
        assert stored.run_count == 1
        assert stored.last_run_at is not None

    @pytest.mark.asyncio
    async def test_missing_rows(self, sql_store):
        assert await sql_store.get_lead("LEAD-NOPE") is None
        assert await sql_store.delete_lead("LEAD-NOPE") is False
        assert await sql_store.get_campaign("CMP-NOPE") is None
