"""
Dashboard query tests
"""

from datetime import datetime, timedelta

import pytest

from revenue_engine.leads.models import Activity, ActivityType, LeadStatus

from conftest import AGENT_ID


async def _lead(engine, phone, **overrides):
    return await engine.pipeline.create_lead(
        agent_id=AGENT_ID, first_name="Lead", last_name=phone[-4:], phone=phone, **overrides,
    )


class TestDashboard:
    @pytest.mark.asyncio
    async def test_funnel_lists_every_status(self, engine):
        await _lead(engine, "555-0701")
        await _lead(engine, "555-0702", status="QUALIFIED")

        funnel = await engine.dashboard.conversion_funnel(AGENT_ID)

        assert set(funnel) == {s.value for s in LeadStatus}
        assert funnel["NEW"] == 1
        assert funnel["QUALIFIED"] == 1
        assert funnel["PLACED"] == 0

    @pytest.mark.asyncio
    async def test_hot_and_top_leads_skip_closed(self, engine):
        hot = await _lead(engine, "555-0711", intent_level="HOT", status="PROPOSAL")
        await _lead(engine, "555-0712", intent_level="HOT", status="PLACED")
        warm = await _lead(engine, "555-0713", intent_level="WARM")

        assert [l.id for l in await engine.dashboard.hot_leads(AGENT_ID)] == [hot.id]
        assert [l.id for l in await engine.dashboard.top_leads(AGENT_ID)] == [hot.id, warm.id]

    @pytest.mark.asyncio
    async def test_follow_up_skips_recently_touched(self, engine, store):
        quiet = await _lead(engine, "555-0721")
        busy = await _lead(engine, "555-0722")
        await _lead(engine, "555-0723", status="PLACED")
        await store.create_activity(Activity(
            id="", agent_id=AGENT_ID, lead_id=quiet.id, type=ActivityType.NOTE, title="old",
            timestamp=datetime.utcnow() - timedelta(days=20),
        ))
        await engine.pipeline.log_activity(AGENT_ID, busy.id, "EMAIL_SENT", "Quote")

        follow_up = await engine.dashboard.leads_needing_follow_up(AGENT_ID, days=7)

        assert [l.id for l in follow_up] == [quiet.id]

    @pytest.mark.asyncio
    async def test_score_range(self, engine):
        await _lead(engine, "555-0731", intent_level="COLD")
        mid = await _lead(engine, "555-0732", intent_level="WARM")
        await _lead(engine, "555-0733", intent_level="HOT")

        leads = await engine.dashboard.leads_by_score_range(AGENT_ID, 20, 40)

        assert [l.id for l in leads] == [mid.id]

    @pytest.mark.asyncio
    async def test_overview(self, engine):
        lead = await _lead(engine, "555-0741", intent_level="HOT", status="UNDERWRITING")
        policy = await engine.pipeline.create_policy(
            AGENT_ID, lead.id, "Acme Life", "TERM_LIFE", 250000, 1200,
        )
        await engine.pipeline.update_policy_status(policy.id, "ISSUED")

        overview = await engine.dashboard.overview(AGENT_ID)

        assert overview["agent_id"] == AGENT_ID
        assert overview["leads"]["total"] == 1
        assert overview["leads"]["placed_this_month"] == 1
        assert overview["policies"]["by_status"] == {"ISSUED": 1}
        assert overview["commissions"]["pending_amount"] == 1080.0
        assert overview["hot_leads"] == []
        assert len(overview["recent_activities"]) == 2
