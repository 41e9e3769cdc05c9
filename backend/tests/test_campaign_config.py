"""
YAML campaign definition tests
"""

from pathlib import Path

import pytest

from revenue_engine.automation.campaign_config import (
    CampaignConfigError,
    load_definitions,
    parse_definitions,
)
from revenue_engine.automation.models import ActionKind, SendSmsAction, TriggerKind

from conftest import AGENT_ID

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "campaigns.yaml"

CAMPAIGN_YAML = """
campaigns:
  - name: Hot lead alert
    trigger_condition:
      trigger: score.changed
      min_score: 70
    actions:
      - type: send_sms
        body: "Hi {first_name}"
  - name: Welcome call
    active: false
    trigger_condition:
      trigger: lead.created
    actions:
      - type: schedule_call
"""


class TestParsing:
    def test_parse(self, tmp_path):
        path = tmp_path / "campaigns.yaml"
        path.write_text(CAMPAIGN_YAML)

        definitions = load_definitions(path)

        assert [d.name for d in definitions] == ["Hot lead alert", "Welcome call"]
        hot = definitions[0]
        assert hot.trigger_condition.trigger == TriggerKind.SCORE_CHANGED
        assert hot.trigger_condition.min_score == 70
        assert isinstance(hot.actions[0], SendSmsAction)
        assert definitions[1].active is False
        assert definitions[1].actions[0].due_in_days == 2

    def test_empty_config(self):
        assert parse_definitions(None) == []
        assert parse_definitions({}) == []

    def test_campaigns_must_be_a_list(self):
        with pytest.raises(CampaignConfigError):
            parse_definitions({"campaigns": {"name": "x"}})

    def test_invalid_campaign_names_its_position(self):
        config = {"campaigns": [
            {"name": "ok", "trigger_condition": {"trigger": "custom"}},
            {"name": "bad", "trigger_condition": {"trigger": "custom"}, "actions": [{"type": "send_fax"}]},
        ]}
        with pytest.raises(CampaignConfigError, match="campaign #2"):
            parse_definitions(config)

    def test_broken_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("campaigns: [\n  - name: x\n")
        with pytest.raises(CampaignConfigError):
            load_definitions(path)

    def test_shipped_config_is_valid(self):
        definitions = load_definitions(REPO_CONFIG)
        assert len(definitions) == 4
        kinds = {ActionKind(a.type) for d in definitions for a in d.actions}
        assert ActionKind.SEND_EMAIL in kinds
        assert ActionKind.WEBHOOK in kinds


class TestSync:
    @pytest.mark.asyncio
    async def test_sync_creates_then_updates(self, engine, tmp_path):
        path = tmp_path / "campaigns.yaml"
        path.write_text(CAMPAIGN_YAML)

        assert await engine.campaigns.sync_campaigns_from_yaml(AGENT_ID, path) == {"created": 2, "updated": 0}

        hot = (await engine.campaigns.list_campaigns(AGENT_ID, active=True))[0]
        hot.run_count = 4
        await engine.store.update_campaign(hot)

        path.write_text(CAMPAIGN_YAML.replace("min_score: 70", "min_score: 80"))
        assert await engine.campaigns.sync_campaigns_from_yaml(AGENT_ID, path) == {"created": 0, "updated": 2}

        hot = await engine.campaigns.get_campaign(hot.id)
        assert hot.trigger_condition.min_score == 80
        assert hot.run_count == 4
        assert len(await engine.campaigns.list_campaigns(AGENT_ID)) == 2

    @pytest.mark.asyncio
    async def test_missing_file_is_a_no_op(self, engine, tmp_path):
        result = await engine.campaigns.sync_campaigns_from_yaml(AGENT_ID, tmp_path / "nope.yaml")
        assert result == {"created": 0, "updated": 0}

    @pytest.mark.asyncio
    async def test_export_can_be_reloaded(self, engine, tmp_path):
        source = tmp_path / "campaigns.yaml"
        source.write_text(CAMPAIGN_YAML)
        await engine.campaigns.sync_campaigns_from_yaml(AGENT_ID, source)

        target = tmp_path / "export" / "campaigns.yaml"
        assert await engine.campaigns.export_campaigns(AGENT_ID, target) == 2

        reloaded = load_definitions(target)
        assert [d.name for d in reloaded] == ["Hot lead alert", "Welcome call"]
        assert reloaded[0].trigger_condition.min_score == 70
        assert reloaded[0].actions[0].body == "Hi {first_name}"
