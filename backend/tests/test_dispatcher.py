"""
Trigger dispatcher and campaign execution tests
"""

import pytest
from pydantic import ValidationError

from revenue_engine.automation.models import (
    ActionKind,
    AddToCampaignAction,
    CampaignDefinition,
    TriggerCondition,
    TriggerEvent,
    TriggerKind,
    parse_actions,
)
from revenue_engine.core.errors import EntityNotFoundError
from revenue_engine.leads.models import LeadStatus

from conftest import AGENT_ID


def _sms_bodies(notifier):
    return [m.body for m in notifier.sent if m.channel == "sms"]


async def _campaign(engine, trigger, actions, **condition):
    return await engine.campaigns.create_campaign(AGENT_ID, {
        "name": f"{trigger} campaign",
        "trigger_condition": {"trigger": trigger, **condition},
        "actions": actions,
    })


async def _lead(engine, phone="555-0500", **overrides):
    return await engine.pipeline.create_lead(
        agent_id=AGENT_ID, first_name="Sam", last_name="Reed", phone=phone, **overrides,
    )


class TestConditions:
    def test_min_over_max_rejected(self):
        with pytest.raises(ValidationError):
            TriggerCondition(trigger="score.changed", min_score=80, max_score=20)

    def test_unknown_action_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_actions([{"type": "send_fax"}])

    def test_unknown_trigger_rejected(self):
        with pytest.raises(ValidationError):
            CampaignDefinition.model_validate({
                "name": "x", "trigger_condition": {"trigger": "lead.deleted"},
            })

    def test_outcome_clause(self):
        condition = TriggerCondition(trigger="activity.logged", outcomes=["NO_ANSWER"])
        hit = TriggerEvent(kind=TriggerKind.ACTIVITY_LOGGED, agent_id=AGENT_ID, data={"outcome": "NO_ANSWER"})
        miss = TriggerEvent(kind=TriggerKind.ACTIVITY_LOGGED, agent_id=AGENT_ID, data={"outcome": "SOLD"})
        bare = TriggerEvent(kind=TriggerKind.ACTIVITY_LOGGED, agent_id=AGENT_ID)

        assert condition.matches(hit)
        assert not condition.matches(miss)
        assert not condition.matches(bare)

    def test_lead_clause_without_lead(self):
        condition = TriggerCondition(trigger="custom", min_score=10)
        event = TriggerEvent(kind=TriggerKind.CUSTOM, agent_id=AGENT_ID)
        assert not condition.matches(event)


class TestScoreThreshold:
    @pytest.mark.asyncio
    async def test_small_change_runs_nothing(self, engine, notifier):
        campaign = await _campaign(engine, "score.changed", [{"type": "send_sms", "body": "moved"}])
        lead = await _lead(engine)

        await engine.dispatcher.dispatch(TriggerEvent(
            kind=TriggerKind.SCORE_CHANGED,
            agent_id=AGENT_ID,
            lead_id=lead.id,
            data={"previous_score": 10, "new_score": 29, "change": 19},
        ))

        assert "moved" not in _sms_bodies(notifier)
        assert campaign.run_count == 0

    @pytest.mark.asyncio
    async def test_large_change_runs_each_action_once(self, engine, notifier):
        campaign = await _campaign(engine, "score.changed", [
            {"type": "send_sms", "body": "Hi {first_name}, score {new_score}"},
            {"type": "log_note", "note": "jumped {change}"},
        ])
        lead = await _lead(engine)

        await engine.pipeline.update_intent_level(lead.id, "HOT")

        assert _sms_bodies(notifier).count("Hi Sam, score 50") == 1
        lead = await engine.pipeline.get_lead(lead.id)
        assert lead.notes.count("jumped 50") == 1
        assert campaign.run_count == 1
        assert campaign.last_run_at is not None

    @pytest.mark.asyncio
    async def test_negative_change_counts(self, engine):
        lead = await _lead(engine, intent_level="HOT")
        campaign = await _campaign(engine, "score.changed", [{"type": "update_lead_score"}])

        await engine.pipeline.update_intent_level(lead.id, "UNKNOWN")

        assert campaign.run_count == 1

    @pytest.mark.asyncio
    async def test_lead_created_fires_before_first_score_change(self, engine):
        await _campaign(engine, "lead.created", [{"type": "log_note", "note": "created"}])
        await _campaign(engine, "score.changed", [{"type": "log_note", "note": "scored {new_score}"}])

        lead = await _lead(engine, intent_level="HOT")

        assert lead.score == 50
        assert lead.notes.index("created") < lead.notes.index("scored 50")

    @pytest.mark.asyncio
    async def test_min_score_condition(self, engine, notifier):
        await _campaign(engine, "score.changed", [{"type": "send_sms", "body": "hot"}], min_score=70)
        lead = await _lead(engine)

        await engine.pipeline.update_intent_level(lead.id, "HOT")

        assert "hot" not in _sms_bodies(notifier)


class TestExecution:
    @pytest.mark.asyncio
    async def test_failing_action_does_not_stop_others(self, engine, notifier):
        async def broken(action, ctx):
            raise RuntimeError("task service down")

        engine.dispatcher.executors[ActionKind.CREATE_TASK] = broken
        campaign = await _campaign(engine, "lead.created", [
            {"type": "create_task", "task": "Call {first_name}"},
            {"type": "send_sms", "body": "after the failure"},
        ])

        await _lead(engine)

        assert "after the failure" in _sms_bodies(notifier)
        assert campaign.run_count == 1

    @pytest.mark.asyncio
    async def test_inactive_campaign_is_skipped(self, engine, notifier):
        campaign = await _campaign(engine, "lead.created", [{"type": "send_sms", "body": "nope"}])
        await engine.campaigns.toggle_campaign(campaign.id)

        await _lead(engine)

        assert "nope" not in _sms_bodies(notifier)
        assert campaign.run_count == 0

    @pytest.mark.asyncio
    async def test_status_action_reenters_pipeline(self, engine):
        await _campaign(engine, "activity.logged", [
            {"type": "update_lead_status", "status": "UNRESPONSIVE"},
        ], outcomes=["NO_ANSWER"])
        lead = await _lead(engine)

        await engine.pipeline.log_activity(AGENT_ID, lead.id, "CALL_OUTBOUND", "Try 1", outcome="NO_ANSWER")

        # the activity-derived advance sees the status set by the campaign
        lead = await engine.pipeline.get_lead(lead.id)
        assert lead.status == LeadStatus.UNRESPONSIVE

    @pytest.mark.asyncio
    async def test_dispatch_depth_is_bounded(self, engine):
        ping_pong = await _campaign(engine, "lead.status_changed", [
            {"type": "update_lead_status", "status": "ENGAGED"},
            {"type": "update_lead_status", "status": "CONTACTED"},
        ])
        lead = await _lead(engine)

        await engine.pipeline.update_lead_status(lead.id, "CONTACTED")

        # each run emits two status changes: 1 + 2 + 4 + 8 runs up to depth 3
        assert ping_pong.run_count == 15
        assert (await engine.pipeline.get_lead(lead.id)).status == LeadStatus.CONTACTED

    @pytest.mark.asyncio
    async def test_conditions_see_earlier_campaigns(self, engine):
        await _campaign(engine, "lead.status_changed", [
            {"type": "update_lead_status", "status": "ENGAGED"},
        ], lead_statuses=["CONTACTED"])
        follow = await _campaign(engine, "lead.status_changed", [
            {"type": "log_note", "note": "engaged by automation"},
        ], lead_statuses=["ENGAGED"])
        lead = await _lead(engine)

        await engine.pipeline.update_lead_status(lead.id, "CONTACTED")

        lead = await engine.pipeline.get_lead(lead.id)
        assert lead.status == LeadStatus.ENGAGED
        assert follow.run_count >= 1
        assert "engaged by automation" in lead.notes

    @pytest.mark.asyncio
    async def test_add_to_campaign_chains_without_cycles(self, engine, store, notifier):
        first = await _campaign(engine, "lead.created", [])
        second = await _campaign(engine, "custom", [
            {"type": "send_sms", "body": "second ran"},
            {"type": "add_to_campaign", "campaign_id": first.id},
        ])
        first.actions = [AddToCampaignAction(campaign_id=second.id)]
        await store.update_campaign(first)

        await _lead(engine)

        assert _sms_bodies(notifier).count("second ran") == 1
        assert first.run_count == 1
        assert second.run_count == 1


class TestBuiltins:
    @pytest.mark.asyncio
    async def test_welcome_prefers_email(self, engine, notifier):
        await _lead(engine, email="sam@example.com")
        assert [m.channel for m in notifier.sent] == ["email"]
        assert notifier.sent[0].body.startswith("Hi Sam!")

    @pytest.mark.asyncio
    async def test_welcome_falls_back_to_sms(self, engine, notifier):
        await _lead(engine)
        assert [m.to for m in notifier.sent] == ["555-0500"]


class TestRunCampaign:
    @pytest.mark.asyncio
    async def test_broadcast_to_every_lead(self, engine, notifier):
        await _lead(engine, phone="555-0601")
        await _lead(engine, phone="555-0602")
        await _lead(engine, phone="555-0603")
        campaign = await _campaign(engine, "custom", [{"type": "send_sms", "body": "Hello {first_name}"}])
        notifier.clear()

        processed = await engine.campaigns.run_campaign(campaign.id)

        assert processed == 3
        assert _sms_bodies(notifier) == ["Hello Sam"] * 3
        assert campaign.run_count == 3

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, engine):
        with pytest.raises(EntityNotFoundError):
            await engine.campaigns.run_campaign("CMP-NOPE")
