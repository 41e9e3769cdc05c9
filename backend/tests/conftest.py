"""
Shared fixtures: in-memory store, recording notifier and a wired engine.
"""

from datetime import datetime, timedelta

import pytest

from revenue_engine.automation.notifier import NotificationSender
from revenue_engine.core.settings import Settings
from revenue_engine.engine import build_engine
from revenue_engine.leads.models import Activity, ActivityOutcome, ActivityType, Lead
from revenue_engine.store.memory import InMemoryStore

AGENT_ID = "agent-1"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        default_agent_id=AGENT_ID,
        campaign_config=str(tmp_path / "campaigns.yaml"),
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    return NotificationSender()


@pytest.fixture
def engine(store, settings, notifier):
    return build_engine(store=store, settings=settings, notifier=notifier)


def make_lead(**overrides) -> Lead:
    values = dict(
        id="",
        agent_id=AGENT_ID,
        first_name="Jane",
        last_name="Doe",
        phone="555-0100",
    )
    values.update(overrides)
    return Lead(**values)


def make_activity(
    activity_type: ActivityType,
    outcome: ActivityOutcome = None,
    days_ago: int = 0,
    lead_id: str = "LEAD-1",
) -> Activity:
    return Activity(
        id="",
        agent_id=AGENT_ID,
        lead_id=lead_id,
        type=activity_type,
        title=activity_type.value,
        outcome=outcome,
        timestamp=datetime.utcnow() - timedelta(days=days_ago),
    )
