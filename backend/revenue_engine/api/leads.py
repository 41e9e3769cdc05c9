"""
Leads & Activities API Endpoints
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from revenue_engine.api.deps import agent_id_param, current_engine
from revenue_engine.engine import Engine

router = APIRouter()
activities_router = APIRouter()


# === Request Models ===

class LeadCreate(BaseModel):
    """Create lead"""
    first_name: str
    last_name: str
    phone: str
    email: Optional[str] = None
    status: str = "NEW"
    intent_level: str = "UNKNOWN"
    source: Optional[str] = None
    notes: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class LeadUpdate(BaseModel):
    """Update lead (only the fields sent are applied)"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    intent_level: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    date_of_birth: Optional[datetime] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str


class BulkImportRequest(BaseModel):
    leads: List[Dict[str, Any]]


class ActivityCreate(BaseModel):
    """Log activity"""
    type: str
    title: str
    outcome: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None
    metadata: Dict[str, Any] = {}


class ActivityUpdate(BaseModel):
    type: Optional[str] = None
    title: Optional[str] = None
    outcome: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


# === Lead Endpoints ===

@router.post("", status_code=201, response_model=Dict[str, Any])
async def create_lead(
    request: LeadCreate,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    lead = await engine.pipeline.create_lead(agent_id=agent_id, **request.model_dump())
    return lead.to_dict()


@router.get("", response_model=Dict[str, Any])
async def list_leads(
    status: Optional[str] = None,
    intent_level: Optional[str] = None,
    min_score: Optional[int] = None,
    max_score: Optional[int] = None,
    source: Optional[str] = None,
    sort_by: str = "created_at",
    descending: bool = True,
    limit: int = 100,
    offset: int = 0,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    """List leads"""
    page = await engine.pipeline.list_leads(
        agent_id,
        status=status,
        intent_level=intent_level,
        min_score=min_score,
        max_score=max_score,
        source=source,
        sort_by=sort_by,
        descending=descending,
        limit=limit,
        offset=offset,
    )
    page["leads"] = [lead.to_dict() for lead in page["leads"]]
    return page


@router.get("/search", response_model=List[Dict[str, Any]])
async def search_leads(
    q: str,
    limit: int = 20,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    leads = await engine.pipeline.search_leads(agent_id, q, limit=limit)
    return [lead.to_dict() for lead in leads]


@router.post("/import", response_model=Dict[str, Any])
async def bulk_import(
    request: BulkImportRequest,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    """Bulk import (failures are reported, not raised)"""
    return await engine.pipeline.bulk_import_leads(agent_id, request.leads)


@router.get("/{lead_id}", response_model=Dict[str, Any])
async def get_lead(lead_id: str, engine: Engine = Depends(current_engine)):
    lead = await engine.pipeline.get_lead(lead_id)
    result = lead.to_dict()
    result["activities"] = [
        a.to_dict() for a in await engine.pipeline.list_lead_activities(lead_id, limit=10)
    ]
    result["policies"] = [p.to_dict() for p in await engine.pipeline.list_lead_policies(lead_id)]
    return result


@router.patch("/{lead_id}", response_model=Dict[str, Any])
async def update_lead(
    lead_id: str,
    request: LeadUpdate,
    engine: Engine = Depends(current_engine),
):
    lead = await engine.pipeline.update_lead(lead_id, **request.model_dump(exclude_unset=True))
    return lead.to_dict()


@router.put("/{lead_id}/status", response_model=Dict[str, Any])
async def update_lead_status(
    lead_id: str,
    request: StatusUpdate,
    engine: Engine = Depends(current_engine),
):
    lead = await engine.pipeline.update_lead_status(lead_id, request.status)
    return lead.to_dict()


@router.delete("/{lead_id}")
async def delete_lead(lead_id: str, engine: Engine = Depends(current_engine)):
    await engine.pipeline.delete_lead(lead_id)
    return {"success": True, "message": f"Lead {lead_id} deleted"}


@router.post("/{lead_id}/rescore", response_model=Dict[str, Any])
async def rescore_lead(lead_id: str, engine: Engine = Depends(current_engine)):
    """Recompute the score now and return its breakdown."""
    result = await engine.pipeline.recompute_score(lead_id)
    return result.to_dict()


# === Lead activities ===

@router.post("/{lead_id}/activities", status_code=201, response_model=Dict[str, Any])
async def log_activity(
    lead_id: str,
    request: ActivityCreate,
    engine: Engine = Depends(current_engine),
):
    lead = await engine.pipeline.get_lead(lead_id)
    activity = await engine.pipeline.log_activity(
        agent_id=lead.agent_id,
        lead_id=lead_id,
        type=request.type,
        title=request.title,
        outcome=request.outcome,
        description=request.description,
        duration=request.duration,
        metadata=request.metadata,
    )
    return activity.to_dict()


@router.get("/{lead_id}/activities", response_model=List[Dict[str, Any]])
async def list_lead_activities(
    lead_id: str,
    type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    engine: Engine = Depends(current_engine),
):
    await engine.pipeline.get_lead(lead_id)
    activities = await engine.pipeline.list_lead_activities(
        lead_id, type=type, limit=limit, offset=offset,
    )
    return [a.to_dict() for a in activities]


@router.get("/{lead_id}/activities/stats", response_model=Dict[str, Any])
async def lead_activity_stats(lead_id: str, engine: Engine = Depends(current_engine)):
    await engine.pipeline.get_lead(lead_id)
    return await engine.pipeline.lead_activity_stats(lead_id)


# === Agent-wide activity endpoints ===

@activities_router.get("", response_model=List[Dict[str, Any]])
async def list_agent_activities(
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    activities = await engine.pipeline.list_agent_activities(
        agent_id, since=since, until=until, limit=limit, offset=offset,
    )
    return [a.to_dict() for a in activities]


@activities_router.get("/stats", response_model=Dict[str, Any])
async def agent_activity_stats(
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return await engine.pipeline.agent_activity_stats(agent_id, since=since, until=until)


@activities_router.get("/search", response_model=List[Dict[str, Any]])
async def search_activities(
    q: str,
    limit: int = 20,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    activities = await engine.pipeline.search_activities(agent_id, q, limit=limit)
    return [a.to_dict() for a in activities]


@activities_router.patch("/{activity_id}", response_model=Dict[str, Any])
async def update_activity(
    activity_id: str,
    request: ActivityUpdate,
    engine: Engine = Depends(current_engine),
):
    activity = await engine.pipeline.update_activity(
        activity_id, **request.model_dump(exclude_unset=True)
    )
    return activity.to_dict()


@activities_router.delete("/{activity_id}")
async def delete_activity(activity_id: str, engine: Engine = Depends(current_engine)):
    await engine.pipeline.delete_activity(activity_id)
    return {"success": True, "message": f"Activity {activity_id} deleted"}
