"""
Engine wiring

Builds the store and services once and hands the same instances to every
adapter (FastAPI routers, CLI).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from revenue_engine.automation.campaign_config import CampaignManager
from revenue_engine.automation.dispatcher import TriggerDispatcher
from revenue_engine.automation.notifier import NotificationSender
from revenue_engine.commissions.service import CommissionService
from revenue_engine.core.settings import Settings, get_settings
from revenue_engine.intake.service import LeadIntake
from revenue_engine.pipeline.service import LeadPipeline
from revenue_engine.reporting.dashboard import Dashboard
from revenue_engine.store.base import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    store: EntityStore
    notifier: NotificationSender
    dispatcher: TriggerDispatcher
    commissions: CommissionService
    pipeline: LeadPipeline
    intake: LeadIntake
    campaigns: CampaignManager
    dashboard: Dashboard


def _default_store() -> EntityStore:
    from revenue_engine.db.database import AsyncSessionLocal
    from revenue_engine.store.sql import SqlStore

    return SqlStore(AsyncSessionLocal)


def build_engine(
    store: Optional[EntityStore] = None,
    settings: Optional[Settings] = None,
    notifier: Optional[NotificationSender] = None,
) -> Engine:
    """
    Wire an Engine.

    Without a store the SQLAlchemy store over DATABASE_URL is used.
    """
    settings = settings or get_settings()
    store = store if store is not None else _default_store()
    notifier = notifier or NotificationSender()

    dispatcher = TriggerDispatcher(
        store,
        notifier=notifier,
        score_change_threshold=settings.score_change_threshold,
        max_depth=settings.max_dispatch_depth,
    )
    commissions = CommissionService(store, dispatcher)
    pipeline = LeadPipeline(store, dispatcher, commissions)
    dispatcher.bind(pipeline)

    logger.debug(f"Engine built on {type(store).__name__}")
    return Engine(
        store=store,
        notifier=notifier,
        dispatcher=dispatcher,
        commissions=commissions,
        pipeline=pipeline,
        intake=LeadIntake(store, pipeline, dispatcher),
        campaigns=CampaignManager(store, dispatcher),
        dashboard=Dashboard(store, pipeline, commissions),
    )


# --- Lazy singleton ---

_engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Get the shared Engine, building it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def set_engine(engine: Optional[Engine]) -> None:
    global _engine
    _engine = engine
