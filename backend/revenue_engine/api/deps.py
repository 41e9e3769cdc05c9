"""
Shared router dependencies
"""

from typing import Optional

from fastapi import Query

from revenue_engine.core.settings import get_settings
from revenue_engine.engine import Engine, get_engine


def current_engine() -> Engine:
    return get_engine()


def agent_id_param(
    agent_id: Optional[str] = Query(default=None, description="Agent id (defaults to DEFAULT_AGENT_ID)"),
) -> str:
    return agent_id or get_settings().default_agent_id
