"""
Campaign API Endpoints
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends

from revenue_engine.api.deps import agent_id_param, current_engine
from revenue_engine.automation.models import CampaignDefinition
from revenue_engine.core.settings import get_settings
from revenue_engine.engine import Engine

router = APIRouter()


@router.post("", status_code=201, response_model=Dict[str, Any])
async def create_campaign(
    definition: CampaignDefinition,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    """Create campaign (condition and actions validated on write)"""
    campaign = await engine.campaigns.create_campaign(agent_id, definition)
    return campaign.to_dict()


@router.get("", response_model=List[Dict[str, Any]])
async def list_campaigns(
    active: Optional[bool] = None,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    campaigns = await engine.campaigns.list_campaigns(agent_id, active=active)
    return [c.to_dict() for c in campaigns]


@router.post("/sync", response_model=Dict[str, Any])
async def sync_campaigns(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    """Reload campaign definitions from CAMPAIGN_CONFIG."""
    return await engine.campaigns.sync_campaigns_from_yaml(agent_id, get_settings().campaign_config)


@router.get("/{campaign_id}", response_model=Dict[str, Any])
async def get_campaign(campaign_id: str, engine: Engine = Depends(current_engine)):
    campaign = await engine.campaigns.get_campaign(campaign_id)
    return campaign.to_dict()


@router.post("/{campaign_id}/toggle", response_model=Dict[str, Any])
async def toggle_campaign(campaign_id: str, engine: Engine = Depends(current_engine)):
    campaign = await engine.campaigns.toggle_campaign(campaign_id)
    return campaign.to_dict()


@router.post("/{campaign_id}/run", response_model=Dict[str, Any])
async def run_campaign(campaign_id: str, engine: Engine = Depends(current_engine)):
    """Manual broadcast to every lead of the campaign's agent"""
    processed = await engine.campaigns.run_campaign(campaign_id)
    return {"campaign_id": campaign_id, "leads_processed": processed}
