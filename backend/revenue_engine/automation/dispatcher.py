"""
Trigger Dispatcher

Receives pipeline events, runs the built-in reactions, matches the agent's
active campaigns and executes their actions.

Events emitted while a dispatch is in progress (for example by an
UPDATE_LEAD_STATUS action) are queued and processed after the current
event, one level deeper. Events deeper than ``max_depth`` are dropped.
"""

import logging
from collections import deque
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Deque, Dict, Optional, Set, Tuple

from revenue_engine.automation.actions import EXECUTORS, ActionContext, ActionExecutor
from revenue_engine.automation.models import ActionKind, Campaign, TriggerEvent, TriggerKind
from revenue_engine.automation.notifier import NotificationSender
from revenue_engine.core.errors import EntityNotFoundError
from revenue_engine.leads.models import ActivityOutcome, Lead
from revenue_engine.scoring.engine import HOT_THRESHOLD, WARM_THRESHOLD
from revenue_engine.store.base import EntityStore, LeadFilter

if TYPE_CHECKING:
    from revenue_engine.pipeline.service import LeadPipeline

logger = logging.getLogger(__name__)

DEFAULT_SCORE_CHANGE_THRESHOLD = 20
DEFAULT_MAX_DISPATCH_DEPTH = 3
COOLING_THRESHOLD = 20

FOLLOW_UP_OUTCOMES = {ActivityOutcome.LEFT_MESSAGE, ActivityOutcome.NO_ANSWER}
PRIORITY_OUTCOMES = {ActivityOutcome.INTERESTED, ActivityOutcome.POSITIVE}


@dataclass
class _DispatchQueue:
    pending: Deque[Tuple[TriggerEvent, int]] = field(default_factory=deque)
    depth: int = 0


_active_queue: ContextVar[Optional[_DispatchQueue]] = ContextVar(
    "revenue_engine_dispatch_queue", default=None
)


def score_delta(event: TriggerEvent) -> int:
    data = event.data
    if "change" in data:
        return int(data["change"])
    return int(data.get("new_score", 0)) - int(data.get("previous_score", 0))


class TriggerDispatcher:
    """
    Trigger Dispatcher

    Per-campaign and per-action failures are logged and do not stop the
    remaining campaigns or actions.
    """

    def __init__(
        self,
        store: EntityStore,
        notifier: Optional[NotificationSender] = None,
        score_change_threshold: int = DEFAULT_SCORE_CHANGE_THRESHOLD,
        max_depth: int = DEFAULT_MAX_DISPATCH_DEPTH,
        executors: Optional[Dict[ActionKind, ActionExecutor]] = None,
    ):
        self.store = store
        self.notifier = notifier or NotificationSender()
        self.score_change_threshold = score_change_threshold
        self.max_depth = max_depth
        self.executors: Dict[ActionKind, ActionExecutor] = dict(
            EXECUTORS if executors is None else executors
        )
        self._pipeline: Optional["LeadPipeline"] = None

    def bind(self, pipeline: "LeadPipeline") -> None:
        """Attach the pipeline that lead-mutating actions re-enter."""
        self._pipeline = pipeline

    @property
    def pipeline(self) -> "LeadPipeline":
        if self._pipeline is None:
            raise RuntimeError("TriggerDispatcher is not bound to a LeadPipeline")
        return self._pipeline

    # === Entry point ===

    def is_significant(self, event: TriggerEvent) -> bool:
        if event.kind != TriggerKind.SCORE_CHANGED:
            return True
        return abs(score_delta(event)) >= self.score_change_threshold

    async def dispatch(self, event: TriggerEvent) -> None:
        if not self.is_significant(event):
            logger.debug(
                f"[Automation] score.changed for {event.lead_id} below threshold "
                f"({score_delta(event):+d}), dropped"
            )
            return

        queue = _active_queue.get()
        if queue is not None:
            depth = queue.depth + 1
            if depth > self.max_depth:
                logger.warning(
                    f"[Automation] {event.kind.value} for {event.lead_id} dropped: "
                    f"dispatch depth {depth} exceeds {self.max_depth}"
                )
                return
            queue.pending.append((event, depth))
            return

        queue = _DispatchQueue()
        queue.pending.append((event, 0))
        token = _active_queue.set(queue)
        try:
            await self._drain(queue)
        finally:
            _active_queue.reset(token)

    async def _drain(self, queue: _DispatchQueue) -> None:
        while queue.pending:
            current, depth = queue.pending.popleft()
            queue.depth = depth
            await self._process(current)

    async def _process(self, event: TriggerEvent) -> None:
        lead = await self._load_lead(event)
        logger.info(
            f"[Automation] {event.kind.value} agent={event.agent_id} lead={event.lead_id}"
        )

        try:
            await self._builtin_reactions(event, lead)
        except Exception:
            logger.exception(f"[Automation] Built-in reaction failed for {event.kind.value}")

        campaigns = await self.store.list_campaigns(event.agent_id, active=True)
        for campaign in campaigns:
            try:
                condition = campaign.trigger_condition
                # earlier campaigns may have changed the lead
                current = await self._load_lead(event) if condition.needs_lead else None
                if not condition.matches(event, current):
                    continue
                await self.execute_campaign(campaign, event)
            except Exception:
                logger.exception(
                    f"[Automation] Campaign {campaign.id} ({campaign.name}) failed "
                    f"on {event.kind.value}"
                )

    async def _load_lead(self, event: TriggerEvent) -> Optional[Lead]:
        if not event.lead_id:
            return None
        return await self.store.get_lead(event.lead_id)

    # === Campaign execution ===

    async def execute_campaign(
        self,
        campaign: Campaign,
        event: TriggerEvent,
        chain: Optional[Set[str]] = None,
    ) -> None:
        """Run every action of a campaign in order, then record the run."""
        chain = set(chain or ()) | {campaign.id}
        logger.info(
            f"[Automation] Executing campaign '{campaign.name}' ({campaign.id}) "
            f"on {event.kind.value}"
        )

        for action in campaign.actions:
            kind = ActionKind(action.type)
            run = self.executors.get(kind)
            if run is None:
                logger.warning(f"[Automation] No executor for action '{kind.value}', skipped")
                continue

            ctx = ActionContext(
                dispatcher=self,
                event=event,
                campaign=campaign,
                lead=await self._load_lead(event),
                chain=chain,
            )
            try:
                await run(action, ctx)
            except Exception:
                logger.exception(
                    f"[Automation] Action '{kind.value}' of campaign {campaign.id} failed"
                )

        stored = await self.store.get_campaign(campaign.id) or campaign
        stored.run_count += 1
        stored.last_run_at = datetime.utcnow()
        await self.store.update_campaign(stored)
        if stored is not campaign:
            campaign.run_count = stored.run_count
            campaign.last_run_at = stored.last_run_at

    async def run_campaign(self, campaign_id: str) -> int:
        """
        Operator broadcast: run a campaign once for every lead of its agent
        with a CUSTOM event. Returns the number of leads processed.
        """
        campaign = await self.store.get_campaign(campaign_id)
        if campaign is None:
            raise EntityNotFoundError("Campaign", campaign_id)

        leads = await self.store.list_leads(LeadFilter(agent_id=campaign.agent_id))
        logger.info(f"[Automation] Running campaign '{campaign.name}' for {len(leads)} leads")

        for lead in leads:
            event = TriggerEvent(
                kind=TriggerKind.CUSTOM,
                agent_id=campaign.agent_id,
                lead_id=lead.id,
                data={"lead_name": lead.full_name, "campaign_id": campaign.id},
            )
            queue = _DispatchQueue()
            token = _active_queue.set(queue)
            try:
                try:
                    await self.execute_campaign(campaign, event)
                except Exception:
                    logger.exception(
                        f"[Automation] Campaign {campaign.id} failed for lead {lead.id}"
                    )
                await self._drain(queue)
            finally:
                _active_queue.reset(token)

        logger.info(f"[Automation] Campaign '{campaign.name}' completed")
        return len(leads)

    # === Built-in reactions ===

    async def _builtin_reactions(self, event: TriggerEvent, lead: Optional[Lead]) -> None:
        if lead is None:
            return

        if event.kind == TriggerKind.LEAD_CREATED:
            await self.notifier.send_template(lead, "welcome")

        elif event.kind == TriggerKind.POLICY_ISSUED:
            await self.notifier.send_template(
                lead,
                "policy_issued",
                product=event.data.get("product", "insurance"),
                carrier=event.data.get("carrier", "the carrier"),
            )

        elif event.kind == TriggerKind.ACTIVITY_LOGGED:
            raw = event.data.get("outcome")
            outcome = ActivityOutcome(raw) if raw else None
            if outcome in FOLLOW_UP_OUTCOMES:
                logger.info(f"[Automation] Follow-up needed for lead {lead.id} (no answer)")
            elif outcome in PRIORITY_OUTCOMES:
                logger.info(f"[Automation] Interested lead {lead.id}, prioritize")
            elif outcome == ActivityOutcome.NOT_INTERESTED:
                logger.info(f"[Automation] Lead {lead.id} not interested, cooling down")

        elif event.kind == TriggerKind.LEAD_STATUS_CHANGED:
            logger.info(
                f"[Automation] Lead {lead.id} status "
                f"{event.data.get('previous_status')} -> {event.data.get('new_status')}"
            )

        elif event.kind == TriggerKind.COMMISSION_EARNED:
            logger.info(
                f"[Automation] Commission earned on {event.policy_id}: "
                f"${float(event.data.get('amount', 0)):.2f}"
            )

        elif event.kind == TriggerKind.SCORE_CHANGED:
            new_score = int(event.data.get("new_score", lead.score))
            if new_score >= HOT_THRESHOLD:
                logger.info(f"[Automation] HOT LEAD {lead.id} ({new_score}), follow up now")
            elif new_score >= WARM_THRESHOLD:
                logger.info(f"[Automation] Lead {lead.id} warming up ({new_score})")
            elif new_score < COOLING_THRESHOLD:
                logger.info(f"[Automation] Lead {lead.id} cooling ({new_score}), re-engage")
