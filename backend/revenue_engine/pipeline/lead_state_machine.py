"""
Lead Lifecycle State Machine

12 statuses, using the transitions library. Any explicit status change is
allowed (auto transitions ``to_<STATUS>``); activity-derived advances are
named triggers that only fire from their listed source statuses, so a lead
that has already moved past a stage is never pulled back.

Pure state logic, no DB/IO.
"""

from typing import Optional, Tuple

from transitions import Machine

from revenue_engine.leads.models import (
    PIPELINE_ORDER,
    TERMINAL_STATUSES,
    ActivityOutcome,
    ActivityType,
    LeadStatus,
)

STATES = [s.value for s in LeadStatus]

OPEN_STATES = [s.value for s in LeadStatus if s not in TERMINAL_STATUSES]

TRANSITIONS = [
    {"trigger": "make_contact",     "source": ["NEW"],                            "dest": "CONTACTED"},
    {"trigger": "engage",           "source": ["NEW", "CONTACTED"],               "dest": "ENGAGED"},
    {"trigger": "qualify",          "source": ["NEW", "CONTACTED", "ENGAGED"],    "dest": "QUALIFIED"},
    {"trigger": "decline_interest", "source": OPEN_STATES,                        "dest": "NOT_INTERESTED"},
    {"trigger": "send_proposal",    "source": ["QUALIFIED", "ENGAGED"],           "dest": "PROPOSAL"},
    {"trigger": "send_application", "source": ["PROPOSAL", "QUALIFIED"],          "dest": "APPLICATION"},
]

POSITIVE_MEETING_OUTCOMES = {ActivityOutcome.INTERESTED, ActivityOutcome.POSITIVE}


def activity_trigger(
    activity_type: ActivityType,
    outcome: Optional[ActivityOutcome] = None,
) -> Optional[str]:
    """Name of the lifecycle trigger an activity fires, if any."""
    if activity_type in (ActivityType.CALL_INBOUND, ActivityType.CALL_OUTBOUND):
        return "make_contact"
    if activity_type in (ActivityType.MEETING_SCHEDULED, ActivityType.APPOINTMENT_SET):
        return "engage"
    if activity_type == ActivityType.MEETING_COMPLETED:
        if outcome in POSITIVE_MEETING_OUTCOMES:
            return "qualify"
        if outcome == ActivityOutcome.NOT_INTERESTED:
            return "decline_interest"
        return None
    if activity_type == ActivityType.PROPOSAL_SENT:
        return "send_proposal"
    if activity_type == ActivityType.APPLICATION_SENT:
        return "send_application"
    return None


class LeadLifecycle:
    """Lead lifecycle state machine (pure validation, no IO)"""

    def __init__(self, initial_status: LeadStatus = LeadStatus.NEW):
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial_status.value,
            auto_transitions=True,
            send_event=False,
        )

    @property
    def status(self) -> LeadStatus:
        return LeadStatus(self.state)

    def try_trigger(self, trigger_name: str) -> Tuple[bool, str]:
        """
        Try to fire a named trigger.

        Returns:
            (True, new_state) on success
            (False, reason) when the trigger does not apply here
        """
        trigger_fn = getattr(self, trigger_name, None)
        if trigger_fn is None:
            return False, f"Unknown trigger: {trigger_name}"

        available = self.machine.get_triggers(self.state)
        if trigger_name not in available:
            return False, f"Cannot '{trigger_name}' from status '{self.state}'"

        trigger_fn()
        return True, self.state

    def apply_activity(
        self,
        activity_type: ActivityType,
        outcome: Optional[ActivityOutcome] = None,
    ) -> Optional[LeadStatus]:
        """Advance from an activity. Returns the new status, or None if unchanged."""
        trigger = activity_trigger(activity_type, outcome)
        if trigger is None:
            return None

        previous = self.state
        ok, _ = self.try_trigger(trigger)
        if not ok or self.state == previous:
            return None
        return self.status


def derive_status_from_activity(
    current: LeadStatus,
    activity_type: ActivityType,
    outcome: Optional[ActivityOutcome] = None,
) -> Optional[LeadStatus]:
    """New lead status implied by an activity, or None when the guard does not fire."""
    return LeadLifecycle(current).apply_activity(activity_type, outcome)


def is_before(status: LeadStatus, stage: LeadStatus) -> bool:
    """True when ``status`` is an earlier happy-path stage than ``stage``."""
    if status not in PIPELINE_ORDER or stage not in PIPELINE_ORDER:
        return False
    return PIPELINE_ORDER.index(status) < PIPELINE_ORDER.index(stage)

