"""
Policies & Commissions API Endpoints
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from revenue_engine.api.deps import agent_id_param, current_engine
from revenue_engine.core.errors import parse_enum
from revenue_engine.engine import Engine
from revenue_engine.policies.models import CommissionStatus

router = APIRouter()
commissions_router = APIRouter()


# === Request Models ===

class PolicyCreate(BaseModel):
    """Create policy application"""
    lead_id: str
    carrier: str
    product_type: str
    face_amount: float
    premium: float
    commission_rate: Optional[float] = None
    term: Optional[int] = None
    policy_number: Optional[str] = None
    mode: str = "MONTHLY"
    status: str = "APPLIED"
    effective_date: Optional[datetime] = None


class PolicyUpdate(BaseModel):
    carrier: Optional[str] = None
    product_type: Optional[str] = None
    face_amount: Optional[float] = None
    premium: Optional[float] = None
    commission_rate: Optional[float] = None
    status: Optional[str] = None
    issue_date: Optional[datetime] = None
    effective_date: Optional[datetime] = None
    term: Optional[int] = None
    policy_number: Optional[str] = None
    mode: Optional[str] = None


class PolicyStatusUpdate(BaseModel):
    status: str
    issue_date: Optional[datetime] = None


class PaymentRequest(BaseModel):
    paid_date: Optional[datetime] = None


class ClawbackRequest(BaseModel):
    reason: str


# === Policy Endpoints ===

@router.post("", status_code=201, response_model=Dict[str, Any])
async def create_policy(request: PolicyCreate, engine: Engine = Depends(current_engine)):
    lead = await engine.pipeline.get_lead(request.lead_id)
    policy = await engine.pipeline.create_policy(agent_id=lead.agent_id, **request.model_dump())
    return policy.to_dict()


@router.get("", response_model=List[Dict[str, Any]])
async def list_policies(
    status: Optional[str] = None,
    product_type: Optional[str] = None,
    carrier: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    policies = await engine.pipeline.list_agent_policies(
        agent_id,
        status=status,
        product_type=product_type,
        carrier=carrier,
        limit=limit,
        offset=offset,
    )
    return [p.to_dict() for p in policies]


@router.get("/search", response_model=List[Dict[str, Any]])
async def search_policies(
    q: str,
    limit: int = 20,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return [p.to_dict() for p in await engine.pipeline.search_policies(agent_id, q, limit=limit)]


@router.get("/stats", response_model=Dict[str, Any])
async def policy_stats(
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return await engine.pipeline.policy_stats(agent_id, since=since, until=until)


@router.get("/pending-requirements", response_model=List[Dict[str, Any]])
async def pending_requirements(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return [p.to_dict() for p in await engine.pipeline.policies_pending_requirements(agent_id)]


@router.get("/recently-issued", response_model=List[Dict[str, Any]])
async def recently_issued(
    days: int = 30,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    policies = await engine.pipeline.recently_issued_policies(agent_id, days=days)
    return [p.to_dict() for p in policies]


@router.get("/{policy_id}", response_model=Dict[str, Any])
async def get_policy(policy_id: str, engine: Engine = Depends(current_engine)):
    policy = await engine.pipeline.get_policy(policy_id)
    result = policy.to_dict()
    result["commissions"] = [
        c.to_dict() for c in await engine.commissions.list_policy_commissions(policy_id)
    ]
    return result


@router.patch("/{policy_id}", response_model=Dict[str, Any])
async def update_policy(
    policy_id: str,
    request: PolicyUpdate,
    engine: Engine = Depends(current_engine),
):
    policy = await engine.pipeline.update_policy(policy_id, **request.model_dump(exclude_unset=True))
    return policy.to_dict()


@router.put("/{policy_id}/status", response_model=Dict[str, Any])
async def update_policy_status(
    policy_id: str,
    request: PolicyStatusUpdate,
    engine: Engine = Depends(current_engine),
):
    policy = await engine.pipeline.update_policy_status(
        policy_id, request.status, issue_date=request.issue_date,
    )
    return policy.to_dict()


@router.delete("/{policy_id}")
async def delete_policy(policy_id: str, engine: Engine = Depends(current_engine)):
    await engine.pipeline.delete_policy(policy_id)
    return {"success": True, "message": f"Policy {policy_id} deleted"}


@router.get("/{policy_id}/commissions", response_model=List[Dict[str, Any]])
async def list_policy_commissions(policy_id: str, engine: Engine = Depends(current_engine)):
    await engine.pipeline.get_policy(policy_id)
    return [c.to_dict() for c in await engine.commissions.list_policy_commissions(policy_id)]


@router.post("/{policy_id}/commissions/pay", response_model=Dict[str, Any])
async def pay_policy_commission(policy_id: str, engine: Engine = Depends(current_engine)):
    """Mark the earliest pending commission of the policy paid."""
    commission = await engine.commissions.mark_policy_commission_paid(policy_id)
    return commission.to_dict()


@router.post("/{policy_id}/commissions/renewal", response_model=Dict[str, Any])
async def create_renewal(policy_id: str, engine: Engine = Depends(current_engine)):
    commission = await engine.commissions.create_renewal_commission(policy_id)
    if commission is None:
        return {"created": False, "commission": None}
    return {"created": True, "commission": commission.to_dict()}


# === Commission Endpoints ===

@commissions_router.get("", response_model=List[Dict[str, Any]])
async def list_commissions(
    status: Optional[str] = None,
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    commissions = await engine.commissions.list_agent_commissions(
        agent_id,
        status=parse_enum(CommissionStatus, status, "status") if status else None,
    )
    return [c.to_dict() for c in commissions]


@commissions_router.get("/summary", response_model=Dict[str, Any])
async def commission_summary(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    return await engine.commissions.commission_summary(agent_id)


@commissions_router.post("/renewals", response_model=Dict[str, Any])
async def create_due_renewals(
    agent_id: str = Depends(agent_id_param),
    engine: Engine = Depends(current_engine),
):
    created = await engine.commissions.create_due_renewals(agent_id)
    return {"created": len(created), "commissions": [c.to_dict() for c in created]}


@commissions_router.get("/{commission_id}", response_model=Dict[str, Any])
async def get_commission(commission_id: str, engine: Engine = Depends(current_engine)):
    commission = await engine.commissions.get_commission(commission_id)
    return commission.to_dict()


@commissions_router.post("/{commission_id}/pay", response_model=Dict[str, Any])
async def mark_paid(
    commission_id: str,
    request: Optional[PaymentRequest] = None,
    engine: Engine = Depends(current_engine),
):
    paid_date = request.paid_date if request else None
    commission = await engine.commissions.mark_paid(commission_id, paid_date=paid_date)
    return commission.to_dict()


@commissions_router.post("/{commission_id}/clawback", response_model=Dict[str, Any])
async def clawback(
    commission_id: str,
    request: ClawbackRequest,
    engine: Engine = Depends(current_engine),
):
    commission = await engine.commissions.clawback(commission_id, request.reason)
    return commission.to_dict()
