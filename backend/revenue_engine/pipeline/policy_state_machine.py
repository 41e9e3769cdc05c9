"""
Policy Lifecycle State Machine

QUOTED -> APPLIED -> UNDERWRITING -> APPROVED -> ISSUED, with exits
PENDING_REQUIREMENTS / DECLINED / POSTPONED / WITHDRAWN and post-issue
LAPSED / SURRENDERED / REPLACED.

Explicit status edits are never rejected; the machine names the usual
moves and classifies which side effects a status change carries.
"""

from enum import Enum
from typing import Optional

from transitions import Machine

from revenue_engine.leads.models import LeadStatus
from revenue_engine.policies.models import PolicyStatus

STATES = [s.value for s in PolicyStatus]

PRE_ISSUE_STATES = ["QUOTED", "APPLIED", "UNDERWRITING", "PENDING_REQUIREMENTS", "APPROVED"]

TRANSITIONS = [
    {"trigger": "submit",               "source": "QUOTED",                                  "dest": "APPLIED"},
    {"trigger": "start_underwriting",   "source": ["APPLIED", "PENDING_REQUIREMENTS"],       "dest": "UNDERWRITING"},
    {"trigger": "request_requirements", "source": ["APPLIED", "UNDERWRITING"],               "dest": "PENDING_REQUIREMENTS"},
    {"trigger": "approve",              "source": ["UNDERWRITING", "PENDING_REQUIREMENTS"],  "dest": "APPROVED"},
    {"trigger": "issue",                "source": PRE_ISSUE_STATES,                          "dest": "ISSUED"},
    {"trigger": "decline",              "source": PRE_ISSUE_STATES,                          "dest": "DECLINED"},
    {"trigger": "postpone",             "source": PRE_ISSUE_STATES,                          "dest": "POSTPONED"},
    {"trigger": "withdraw",             "source": PRE_ISSUE_STATES,                          "dest": "WITHDRAWN"},
    {"trigger": "lapse",                "source": "ISSUED",                                  "dest": "LAPSED"},
    {"trigger": "surrender",            "source": "ISSUED",                                  "dest": "SURRENDERED"},
    {"trigger": "replace",              "source": "ISSUED",                                  "dest": "REPLACED"},
]

NOT_ISSUED_STATUSES = {PolicyStatus.DECLINED, PolicyStatus.POSTPONED, PolicyStatus.WITHDRAWN}

ISSUED_FAMILY = {
    PolicyStatus.ISSUED,
    PolicyStatus.LAPSED,
    PolicyStatus.SURRENDERED,
    PolicyStatus.REPLACED,
}


class PolicyEffect(Enum):
    """Side-effect family of a policy status change"""
    ISSUED = "issued"
    UNDERWRITING = "underwriting"
    NOT_ISSUED = "not_issued"


class PolicyLifecycle:
    """Policy lifecycle state machine (pure validation, no IO)"""

    def __init__(self, initial_status: PolicyStatus = PolicyStatus.APPLIED):
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial_status.value,
            auto_transitions=True,
            send_event=False,
        )

    @property
    def status(self) -> PolicyStatus:
        return PolicyStatus(self.state)

    def is_regular_move(self, target: PolicyStatus) -> bool:
        """True when a named trigger leads from the current status to ``target``."""
        for trigger in self.machine.get_triggers(self.state):
            if trigger.startswith("to_"):
                continue
            for transition in self.machine.events[trigger].transitions.get(self.state, []):
                if transition.dest == target.value:
                    return True
        return False


def classify_change(previous: PolicyStatus, new: PolicyStatus) -> Optional[PolicyEffect]:
    """
    Which side effects a status change carries.

    ISSUED and UNDERWRITING fire only on entry (a repeated status is not an
    entry); DECLINED / POSTPONED / WITHDRAWN fire whenever requested.
    """
    if new == PolicyStatus.ISSUED and previous != PolicyStatus.ISSUED:
        return PolicyEffect.ISSUED
    if new == PolicyStatus.UNDERWRITING and previous != PolicyStatus.UNDERWRITING:
        return PolicyEffect.UNDERWRITING
    if new in NOT_ISSUED_STATUSES:
        return PolicyEffect.NOT_ISSUED
    return None


def lead_status_for_not_issued(status: PolicyStatus) -> LeadStatus:
    """Withdrawn applications lose the lead; declined/postponed leave it unplaced."""
    if status == PolicyStatus.WITHDRAWN:
        return LeadStatus.LOST
    return LeadStatus.NOT_PLACED


def is_pre_issue(status: PolicyStatus) -> bool:
    return status.value in PRE_ISSUE_STATES
