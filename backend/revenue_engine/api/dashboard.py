"""
Dashboard Endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from revenue_engine.api.deps import agent_id_param, current_engine
from revenue_engine.engine import Engine

router = APIRouter()


@router.get("", response_model=Dict[str, Any])
async def get_overview(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    """Lead, policy and commission overview"""
    return await engine.dashboard.overview(agent_id)


@router.get("/leads", response_model=Dict[str, Any])
async def lead_stats(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return await engine.dashboard.lead_stats(agent_id)


@router.get("/funnel", response_model=Dict[str, int])
async def conversion_funnel(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return await engine.dashboard.conversion_funnel(agent_id)


@router.get("/top-leads", response_model=List[Dict[str, Any]])
async def top_leads(
    limit: int = 10,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return [lead.to_dict() for lead in await engine.dashboard.top_leads(agent_id, limit=limit)]


@router.get("/hot-leads", response_model=List[Dict[str, Any]])
async def hot_leads(
    min_score: int = 70,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return [lead.to_dict() for lead in await engine.dashboard.hot_leads(agent_id, min_score=min_score)]


@router.get("/follow-up", response_model=List[Dict[str, Any]])
async def follow_up(
    days: int = 7,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    leads = await engine.dashboard.leads_needing_follow_up(agent_id, days=days)
    return [lead.to_dict() for lead in leads]


@router.get("/score-range", response_model=List[Dict[str, Any]])
async def score_range(
    min_score: int = 0,
    max_score: int = 100,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    leads = await engine.dashboard.leads_by_score_range(agent_id, min_score, max_score)
    return [lead.to_dict() for lead in leads]


@router.get("/recent-activities", response_model=List[Dict[str, Any]])
async def recent_activities(
    limit: int = 10,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return [a.to_dict() for a in await engine.dashboard.recent_activities(agent_id, limit=limit)]
