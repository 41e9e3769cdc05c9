"""
Insurance Revenue Engine - FastAPI Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from revenue_engine import __version__
from revenue_engine.api import campaigns, dashboard, health, intake, leads, policies
from revenue_engine.api.errors import register_exception_handlers
from revenue_engine.core.settings import configure_logging, get_settings
from revenue_engine.engine import get_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()
    configure_logging(settings)

    # Startup
    engine = get_engine()

    from revenue_engine.store.sql import SqlStore
    if isinstance(engine.store, SqlStore):
        from revenue_engine.db.database import create_tables
        await create_tables()

    if settings.campaign_config:
        result = await engine.campaigns.sync_campaigns_from_yaml(
            settings.default_agent_id, settings.campaign_config,
        )
        logger.info(f"Campaigns loaded from {settings.campaign_config}: {result}")

    logger.info(f"Insurance Revenue Engine {__version__} is starting up ({type(engine.store).__name__})")
    yield
    # Shutdown
    logger.info("Insurance Revenue Engine is shutting down")


app = FastAPI(
    title="Insurance Revenue Engine",
    description="Lead pipeline, scoring, commissions and campaign automation for insurance agents",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Frontend / landing page URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(intake.router, prefix="/api", tags=["Lead Intake"])
app.include_router(leads.router, prefix="/api/v1/leads", tags=["Leads"])
app.include_router(leads.activities_router, prefix="/api/v1/activities", tags=["Activities"])
app.include_router(policies.router, prefix="/api/v1/policies", tags=["Policies"])
app.include_router(policies.commissions_router, prefix="/api/v1/commissions", tags=["Commissions"])
app.include_router(campaigns.router, prefix="/api/v1/campaigns", tags=["Campaigns"])
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Insurance Revenue Engine",
        "version": __version__,
        "status": "operational",
        "docs": "/docs",
    }
