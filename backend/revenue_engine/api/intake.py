"""
Lead Intake API Endpoints

Public web-form endpoint. Every inquiry is booked under the default agent.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from revenue_engine.api.deps import current_engine
from revenue_engine.core.errors import LeadValidationError
from revenue_engine.core.settings import get_settings
from revenue_engine.engine import Engine
from revenue_engine.intake.service import LeadInquiry

router = APIRouter()


@router.post("/leads")
async def submit_inquiry(inquiry: LeadInquiry, engine: Engine = Depends(current_engine)):
    """
    Web-form submission

    201 for a new lead, 200 when merged into an existing one.
    """
    try:
        result = await engine.intake.submit(get_settings().default_agent_id, inquiry)
    except LeadValidationError:
        return JSONResponse(
            status_code=400,
            content={
                "message": "Missing required fields",
                "required": ["firstName", "lastName", "phone"],
            },
        )

    return JSONResponse(
        status_code=201 if result.created else 200,
        content={
            "success": True,
            "message": result.message,
            "leadId": result.lead_id,
        },
    )
