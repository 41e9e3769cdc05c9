"""
Campaign Action Executors

One coroutine per ActionKind, registered with ``@executor``. The
dispatcher looks executors up by kind; a kind with no executor is logged
and skipped.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, Set

from revenue_engine.automation.models import (
    ActionKind,
    AddToCampaignAction,
    Campaign,
    CreateTaskAction,
    LogNoteAction,
    ScheduleCallAction,
    SendEmailAction,
    SendSmsAction,
    TriggerEvent,
    UpdateLeadScoreAction,
    UpdateLeadStatusAction,
    WebhookAction,
)
from revenue_engine.automation.notifier import OutboundMessage, lead_context, render
from revenue_engine.leads.models import Lead

if TYPE_CHECKING:
    from revenue_engine.automation.dispatcher import TriggerDispatcher

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """What an executor can see while a campaign runs"""
    dispatcher: "TriggerDispatcher"
    event: TriggerEvent
    campaign: Campaign
    lead: Optional[Lead] = None
    chain: Set[str] = field(default_factory=set)  # campaign ids in this run

    @property
    def lead_id(self) -> Optional[str]:
        return self.lead.id if self.lead else self.event.lead_id


ActionExecutor = Callable[..., Awaitable[None]]

EXECUTORS: Dict[ActionKind, ActionExecutor] = {}


def executor(kind: ActionKind):
    def decorator(fn: ActionExecutor) -> ActionExecutor:
        EXECUTORS[kind] = fn
        return fn
    return decorator


def _message_context(ctx: ActionContext) -> Dict[str, object]:
    extra = dict(ctx.event.data)
    extra["campaign"] = ctx.campaign.name
    if ctx.lead is None:
        return extra
    return lead_context(ctx.lead, **extra)


# === Messaging ===

@executor(ActionKind.SEND_EMAIL)
async def send_email(action: SendEmailAction, ctx: ActionContext) -> None:
    lead = ctx.lead
    if lead is None or not lead.email:
        logger.warning(f"[Automation] send_email skipped: no email for lead {ctx.lead_id}")
        return

    notifier = ctx.dispatcher.notifier
    if action.template and not action.body:
        await notifier.send_template(lead, action.template, channel="email", **ctx.event.data)
        return

    context = _message_context(ctx)
    await notifier.send(OutboundMessage(
        to=lead.email,
        subject=render(action.subject or ctx.campaign.name, context),
        body=render(action.body or "", context),
        channel="email",
    ))


@executor(ActionKind.SEND_SMS)
async def send_sms(action: SendSmsAction, ctx: ActionContext) -> None:
    lead = ctx.lead
    if lead is None or not lead.phone:
        logger.warning(f"[Automation] send_sms skipped: no phone for lead {ctx.lead_id}")
        return

    notifier = ctx.dispatcher.notifier
    if action.template and not action.body:
        await notifier.send_template(lead, action.template, channel="sms", **ctx.event.data)
        return

    await notifier.send(OutboundMessage(
        to=lead.phone,
        body=render(action.body or "", _message_context(ctx)),
        channel="sms",
    ))


# === Lead mutations ===

@executor(ActionKind.UPDATE_LEAD_STATUS)
async def update_lead_status(action: UpdateLeadStatusAction, ctx: ActionContext) -> None:
    if not ctx.lead_id:
        logger.warning("[Automation] update_lead_status skipped: event has no lead")
        return
    await ctx.dispatcher.pipeline.update_lead_status(ctx.lead_id, action.status)
    logger.info(f"[Automation] Lead {ctx.lead_id} status set to {action.status.value}")


@executor(ActionKind.UPDATE_LEAD_SCORE)
async def update_lead_score(action: UpdateLeadScoreAction, ctx: ActionContext) -> None:
    if not ctx.lead_id:
        logger.warning("[Automation] update_lead_score skipped: event has no lead")
        return
    await ctx.dispatcher.pipeline.recompute_score(ctx.lead_id)


@executor(ActionKind.LOG_NOTE)
async def log_note(action: LogNoteAction, ctx: ActionContext) -> None:
    lead = ctx.lead
    if lead is None:
        logger.warning("[Automation] log_note skipped: event has no lead")
        return

    stamp = datetime.utcnow().strftime("%Y-%m-%d")
    line = f"[{stamp}] {render(action.note, _message_context(ctx))}"
    lead.notes = f"{lead.notes}\n{line}" if lead.notes else line
    lead.updated_at = datetime.utcnow()
    await ctx.dispatcher.store.update_lead(lead)
    logger.info(f"[Automation] Note added to lead {lead.id}")


# === Simulated integrations ===

@executor(ActionKind.CREATE_TASK)
async def create_task(action: CreateTaskAction, ctx: ActionContext) -> None:
    due = (datetime.utcnow() + timedelta(days=action.due_in_days)).date()
    logger.info(
        f"[Automation] Task (simulated) for lead {ctx.lead_id}: "
        f"{render(action.task, _message_context(ctx))} (due {due})"
    )


@executor(ActionKind.SCHEDULE_CALL)
async def schedule_call(action: ScheduleCallAction, ctx: ActionContext) -> None:
    due = (datetime.utcnow() + timedelta(days=action.due_in_days)).date()
    logger.info(
        f"[Automation] Call (simulated) scheduled for lead {ctx.lead_id} on {due}"
        + (f": {action.note}" if action.note else "")
    )


@executor(ActionKind.WEBHOOK)
async def webhook(action: WebhookAction, ctx: ActionContext) -> None:
    payload = {"event": ctx.event.to_dict(), **action.payload}
    logger.info(
        f"[Automation] Webhook (simulated) {action.method.upper()} {action.url} "
        f"keys={sorted(payload)}"
    )


# === Chaining ===

@executor(ActionKind.ADD_TO_CAMPAIGN)
async def add_to_campaign(action: AddToCampaignAction, ctx: ActionContext) -> None:
    if action.campaign_id in ctx.chain:
        logger.warning(
            f"[Automation] Campaign cycle {ctx.campaign.id} -> {action.campaign_id} skipped"
        )
        return

    target = await ctx.dispatcher.store.get_campaign(action.campaign_id)
    if target is None:
        logger.warning(f"[Automation] add_to_campaign: campaign not found: {action.campaign_id}")
        return
    if not target.active:
        logger.info(f"[Automation] add_to_campaign: campaign {target.id} inactive, skipped")
        return

    await ctx.dispatcher.execute_campaign(target, ctx.event, chain=ctx.chain)
