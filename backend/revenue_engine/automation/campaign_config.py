"""
Campaign Configuration

Campaign management (create / list / toggle / run) and YAML campaign
definitions, so operators can edit automation rules without code changes.

File format::

    campaigns:
      - name: Hot lead alert
        trigger_condition:
          trigger: score.changed
          min_score: 70
        actions:
          - type: send_sms
            body: "Hi {first_name}, do you have 5 minutes today?"

Definitions are validated with pydantic when loaded; a malformed
campaign never reaches the store.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from revenue_engine.automation.dispatcher import TriggerDispatcher
from revenue_engine.automation.models import (
    Campaign,
    CampaignDefinition,
    dump_actions,
)
from revenue_engine.core.errors import EntityNotFoundError, RevenueEngineError
from revenue_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


class CampaignConfigError(RevenueEngineError):
    """Raised when a campaign file cannot be read or validated."""


def parse_definitions(config: Optional[Dict[str, Any]], origin: str = "<config>") -> List[CampaignDefinition]:
    if not config:
        return []
    raw = config.get("campaigns", [])
    if not isinstance(raw, list):
        raise CampaignConfigError(f"{origin}: 'campaigns' must be a list")

    definitions = []
    for index, item in enumerate(raw):
        try:
            definitions.append(CampaignDefinition.model_validate(item))
        except ValidationError as e:
            raise CampaignConfigError(f"{origin}: campaign #{index + 1} is invalid: {e}") from e
    return definitions


def load_definitions(file_path: Union[str, Path]) -> List[CampaignDefinition]:
    """Read and validate a campaign YAML file."""
    path = Path(file_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise CampaignConfigError(f"Cannot read campaign file {path}: {e}") from e

    return parse_definitions(config, origin=str(path))


def dump_definitions(campaigns: List[Campaign]) -> str:
    payload = {
        "campaigns": [
            {
                "name": c.name,
                "description": c.description,
                "active": c.active,
                "trigger_condition": c.trigger_condition.model_dump(mode="json", exclude_defaults=True),
                "actions": dump_actions(c.actions),
            }
            for c in campaigns
        ]
    }
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


class CampaignManager:
    """
    Campaign management

    Write paths validate through CampaignDefinition; run paths go through
    the TriggerDispatcher.
    """

    def __init__(self, store: EntityStore, dispatcher: TriggerDispatcher):
        self.store = store
        self.dispatcher = dispatcher

    async def create_campaign(
        self,
        agent_id: str,
        definition: Union[CampaignDefinition, Dict[str, Any]],
    ) -> Campaign:
        if not isinstance(definition, CampaignDefinition):
            definition = CampaignDefinition.model_validate(definition)

        campaign = Campaign.from_definition(agent_id, definition)
        await self.store.create_campaign(campaign)
        logger.info(
            f"Campaign created: {campaign.id} '{campaign.name}' "
            f"on {campaign.trigger_condition.trigger.value} ({len(campaign.actions)} actions)"
        )
        return campaign

    async def get_campaign(self, campaign_id: str) -> Campaign:
        campaign = await self.store.get_campaign(campaign_id)
        if campaign is None:
            raise EntityNotFoundError("Campaign", campaign_id)
        return campaign

    async def list_campaigns(self, agent_id: str, active: Optional[bool] = None) -> List[Campaign]:
        return await self.store.list_campaigns(agent_id, active=active)

    async def toggle_campaign(self, campaign_id: str) -> Campaign:
        campaign = await self.get_campaign(campaign_id)
        campaign.active = not campaign.active
        await self.store.update_campaign(campaign)
        logger.info(
            f"Campaign '{campaign.name}' {'activated' if campaign.active else 'deactivated'}"
        )
        return campaign

    async def run_campaign(self, campaign_id: str) -> int:
        return await self.dispatcher.run_campaign(campaign_id)

    async def sync_definitions(
        self,
        agent_id: str,
        definitions: List[CampaignDefinition],
    ) -> Dict[str, int]:
        """
        Upsert definitions by campaign name. Run counters of existing
        campaigns are kept.
        """
        existing = {c.name: c for c in await self.store.list_campaigns(agent_id)}
        created = updated = 0

        for definition in definitions:
            campaign = existing.get(definition.name)
            if campaign is None:
                await self.create_campaign(agent_id, definition)
                created += 1
                continue

            campaign.description = definition.description
            campaign.active = definition.active
            campaign.trigger_condition = definition.trigger_condition
            campaign.actions = list(definition.actions)
            await self.store.update_campaign(campaign)
            updated += 1

        logger.info(f"Campaign sync for agent {agent_id}: {created} created, {updated} updated")
        return {"created": created, "updated": updated}

    async def sync_campaigns_from_yaml(
        self,
        agent_id: str,
        file_path: Union[str, Path],
    ) -> Dict[str, int]:
        path = Path(file_path)
        if not path.exists():
            logger.warning(f"Campaign file not found: {path}")
            return {"created": 0, "updated": 0}
        return await self.sync_definitions(agent_id, load_definitions(path))

    async def export_campaigns(self, agent_id: str, file_path: Union[str, Path]) -> int:
        campaigns = await self.store.list_campaigns(agent_id)
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(dump_definitions(campaigns))
        logger.info(f"Exported {len(campaigns)} campaigns to {path}")
        return len(campaigns)
