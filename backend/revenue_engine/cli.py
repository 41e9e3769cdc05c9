"""
Revenue Engine CLI

Operator commands over the same services the HTTP API uses.

Usage:
    revenue-engine campaigns list
    revenue-engine campaigns toggle CMP-1A2B3C4D
    revenue-engine campaigns run CMP-1A2B3C4D
    revenue-engine campaigns sync --file config/campaigns.yaml
    revenue-engine renewals
    revenue-engine rescore
    revenue-engine dashboard funnel
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from revenue_engine.core.errors import RevenueEngineError
from revenue_engine.core.settings import configure_logging, get_settings
from revenue_engine.engine import Engine, build_engine
from revenue_engine.store.base import LeadFilter
from revenue_engine.store.memory import InMemoryStore

logger = logging.getLogger(__name__)


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


async def _open_engine(memory: bool) -> Engine:
    if memory:
        return build_engine(store=InMemoryStore())

    from revenue_engine.db.database import create_tables
    await create_tables()
    return build_engine()


# === Commands ===

async def cmd_campaigns(engine: Engine, args: argparse.Namespace) -> Any:
    manager = engine.campaigns
    if args.campaign_command == "list":
        campaigns = await manager.list_campaigns(args.agent_id)
        return [c.to_dict() for c in campaigns]
    if args.campaign_command == "toggle":
        return (await manager.toggle_campaign(args.campaign_id)).to_dict()
    if args.campaign_command == "run":
        processed = await manager.run_campaign(args.campaign_id)
        return {"campaign_id": args.campaign_id, "leads_processed": processed}
    if args.campaign_command == "sync":
        return await manager.sync_campaigns_from_yaml(
            args.agent_id, args.file or get_settings().campaign_config,
        )
    if args.campaign_command == "export":
        return {"exported": await manager.export_campaigns(args.agent_id, args.file)}
    raise ValueError(f"Unknown campaigns command: {args.campaign_command}")


async def cmd_renewals(engine: Engine, args: argparse.Namespace) -> Any:
    created = await engine.commissions.create_due_renewals(args.agent_id)
    return {"created": len(created), "commissions": [c.to_dict() for c in created]}


async def cmd_rescore(engine: Engine, args: argparse.Namespace) -> Any:
    """Recompute every lead's score (time decay moves scores without new activity)."""
    leads = await engine.store.list_leads(LeadFilter(agent_id=args.agent_id))
    changed = []
    for lead in leads:
        result = await engine.pipeline.recompute_score(lead.id)
        if result.change:
            changed.append({"lead_id": lead.id, **result.to_dict()})
    return {"leads": len(leads), "changed": len(changed), "changes": changed}


async def cmd_dashboard(engine: Engine, args: argparse.Namespace) -> Any:
    dashboard = engine.dashboard
    view = args.view
    if view == "overview":
        return await dashboard.overview(args.agent_id)
    if view == "funnel":
        return await dashboard.conversion_funnel(args.agent_id)
    if view == "hot":
        return [l.to_dict() for l in await dashboard.hot_leads(args.agent_id)]
    if view == "follow-up":
        return [l.to_dict() for l in await dashboard.leads_needing_follow_up(args.agent_id, args.days)]
    raise ValueError(f"Unknown dashboard view: {view}")


COMMANDS = {
    "campaigns": cmd_campaigns,
    "renewals": cmd_renewals,
    "rescore": cmd_rescore,
    "dashboard": cmd_dashboard,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revenue-engine",
        description="Insurance Revenue Engine operator commands",
    )
    parser.add_argument("--agent-id", default=None, help="Agent id (default: DEFAULT_AGENT_ID)")
    parser.add_argument("--memory", action="store_true", help="Use an in-memory store instead of DATABASE_URL")

    subparsers = parser.add_subparsers(dest="command", required=True)

    campaigns_parser = subparsers.add_parser("campaigns", help="Manage automation campaigns")
    campaign_sub = campaigns_parser.add_subparsers(dest="campaign_command", required=True)
    campaign_sub.add_parser("list", help="List campaigns")
    toggle_parser = campaign_sub.add_parser("toggle", help="Activate / deactivate a campaign")
    toggle_parser.add_argument("campaign_id", help="Campaign ID")
    run_parser = campaign_sub.add_parser("run", help="Run a campaign for every lead")
    run_parser.add_argument("campaign_id", help="Campaign ID")
    sync_parser = campaign_sub.add_parser("sync", help="Load campaign definitions from YAML")
    sync_parser.add_argument("--file", default=None, help="YAML file (default: CAMPAIGN_CONFIG)")
    export_parser = campaign_sub.add_parser("export", help="Write campaign definitions to YAML")
    export_parser.add_argument("file", help="Target YAML file")

    subparsers.add_parser("renewals", help="Create renewal commissions for issued policies")
    subparsers.add_parser("rescore", help="Recompute all lead scores")

    dashboard_parser = subparsers.add_parser("dashboard", help="Show dashboard data")
    dashboard_parser.add_argument(
        "view",
        nargs="?",
        default="overview",
        choices=["overview", "funnel", "hot", "follow-up"],
    )
    dashboard_parser.add_argument("--days", type=int, default=7, help="Follow-up window in days")

    return parser


async def run(args: argparse.Namespace, engine: Optional[Engine] = None) -> Any:
    engine = engine or await _open_engine(args.memory)
    return await COMMANDS[args.command](engine, args)


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    configure_logging(settings)

    args = build_parser().parse_args(argv)
    args.agent_id = args.agent_id or settings.default_agent_id

    try:
        result = asyncio.run(run(args))
    except RevenueEngineError as e:
        logger.error(str(e))
        _print({"error": type(e).__name__, "detail": str(e)})
        return 1

    _print(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
