"""
Runtime settings

Read once from the process environment. The default agent id is only
consumed by adapters (HTTP, CLI); services always receive agent ids
explicitly.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def normalize_database_url(url: str) -> str:
    """Convert sync driver URLs to their async equivalents."""
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


@dataclass
class Settings:
    """Engine configuration"""
    database_url: str = "sqlite+aiosqlite:///./revenue_engine.db"
    debug: bool = False
    log_level: str = "INFO"
    default_agent_id: str = "1"
    score_change_threshold: int = 20
    max_dispatch_depth: int = 3
    campaign_config: str = "config/campaigns.yaml"

    @classmethod
    def from_env(cls) -> "Settings":
        debug = _env_bool("DEBUG")
        return cls(
            database_url=normalize_database_url(
                os.getenv("DATABASE_URL", cls.database_url)
            ),
            debug=debug,
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper(),
            default_agent_id=os.getenv("DEFAULT_AGENT_ID", cls.default_agent_id),
            score_change_threshold=int(
                os.getenv("SCORE_CHANGE_THRESHOLD", str(cls.score_change_threshold))
            ),
            max_dispatch_depth=int(
                os.getenv("MAX_DISPATCH_DEPTH", str(cls.max_dispatch_depth))
            ),
            campaign_config=os.getenv("CAMPAIGN_CONFIG", cls.campaign_config),
        )


def configure_logging(settings: "Settings") -> None:
    """Process-level logging setup, called by adapters only."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# --- Lazy singleton ---

_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the shared Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    global _settings
    _settings = settings
