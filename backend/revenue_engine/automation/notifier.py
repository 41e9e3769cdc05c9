"""
Notification Sender

Simulated email/SMS delivery. Messages are logged and kept in memory;
delivery failures never flow back into the pipeline.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from revenue_engine.leads.models import Lead

logger = logging.getLogger(__name__)


@dataclass
class OutboundMessage:
    to: str
    body: str
    channel: str  # "email" | "sms"
    subject: Optional[str] = None
    sent_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "channel": self.channel,
            "sent_at": self.sent_at.isoformat(),
        }


TEMPLATES: Dict[str, Dict[str, str]] = {
    "welcome": {
        "subject": "Welcome! Let's protect what matters most",
        "body": (
            "Hi {first_name}!\n\n"
            "Thanks for reaching out! I'm excited to help you explore the best "
            "insurance options to protect your family's future.\n\n"
            "I'll be reviewing your information and will reach out shortly to "
            "discuss your specific needs.\n\n"
            "Best regards"
        ),
    },
    "policy_issued": {
        "subject": "Great news! Your policy has been issued",
        "body": (
            "Congratulations {first_name}!\n\n"
            "Your {product} policy with {carrier} has been issued.\n\n"
            "You should receive your policy documents directly from the carrier "
            "within 7-10 business days.\n\n"
            "Thank you for your trust!\n\n"
            "Best regards"
        ),
    },
    "follow_up": {
        "subject": "Checking in",
        "body": (
            "Hi {first_name}, just following up on our last conversation. "
            "When is a good time to talk?"
        ),
    },
}


class _SafeDict(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def render(text: str, context: Dict[str, Any]) -> str:
    """Fill ``{placeholders}``; unknown ones are left as-is."""
    return text.format_map(_SafeDict(context))


def lead_context(lead: Lead, **extra: Any) -> Dict[str, Any]:
    context = {
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "full_name": lead.full_name,
        "score": lead.score,
        "status": lead.status.value,
    }
    context.update(extra)
    return context


def preferred_channel(lead: Lead) -> str:
    return "email" if lead.email else "sms"


class NotificationSender:
    """Simulated sender: log and remember"""

    def __init__(self):
        self.sent: List[OutboundMessage] = []

    async def send(self, message: OutboundMessage) -> None:
        self.sent.append(message)
        logger.info(
            f"[Notify] {message.channel.upper()} to {message.to}"
            + (f" - {message.subject}" if message.subject else "")
        )
        logger.debug(f"[Notify] body:\n{message.body}")

    async def send_template(
        self,
        lead: Lead,
        template: str,
        channel: Optional[str] = None,
        **extra: Any,
    ) -> Optional[OutboundMessage]:
        """Send a named template to a lead on its preferred channel."""
        definition = TEMPLATES.get(template)
        if definition is None:
            logger.warning(f"[Notify] Unknown template: {template}")
            return None

        channel = channel or preferred_channel(lead)
        to = lead.email if channel == "email" else lead.phone
        if not to:
            logger.warning(f"[Notify] Lead {lead.id} has no {channel} contact, skipped")
            return None

        context = lead_context(lead, **extra)
        message = OutboundMessage(
            to=to,
            subject=render(definition["subject"], context) if channel == "email" else None,
            body=render(definition["body"], context),
            channel=channel,
        )
        await self.send(message)
        return message

    def clear(self) -> None:
        self.sent.clear()
