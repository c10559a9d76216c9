"""
Notification composer.

Turns journey events into customer-facing WhatsApp messages and publishes
them, with a ready-to-open ``wa.me`` link, on a Redis channel.  Whatever
subscribes to that channel (the dispatcher console, an email bridge, a
WhatsApp Business integration) owns delivery.
"""

from __future__ import annotations

import json
import logging
from typing import Optional
from urllib.parse import quote

import redis.asyncio as aioredis

from src.config import settings
from src.domain.events import DriverDeparted, JourneyCompleted, JourneyEvent

logger = logging.getLogger(__name__)

IRISH_PREFIX = "353"


def normalise_irish_phone(raw: str) -> str:
    """``085 123 4567`` / ``85 123 4567`` / ``+353...`` -> ``353851234567``."""
    phone = "".join(ch for ch in raw if ch.isdigit())
    if phone.startswith(IRISH_PREFIX):
        return phone
    if phone.startswith("0"):
        return IRISH_PREFIX + phone[1:]
    if phone.startswith("8"):
        return IRISH_PREFIX + phone
    return phone


def whatsapp_link(phone: str, message: str) -> str:
    return f"https://wa.me/{normalise_irish_phone(phone)}?text={quote(message)}"


class MessageTemplates:
    def __init__(
        self,
        business_name: str,
        business_phone: str,
        tracking_base_url: str,
        review_url: str = "",
    ):
        self.business_name = business_name
        self.business_phone = business_phone
        self.tracking_base_url = tracking_base_url.rstrip("/")
        self.review_url = review_url

    def tracking_url(self, reference: str) -> str:
        if reference.startswith("http"):
            return reference
        return f"{self.tracking_base_url}/{reference.lstrip('/')}"

    def driver_departed(self, event: DriverDeparted) -> str:
        name = event.customer.name or "there"
        lines = [f"Hi {name},", "", f"Your chauffeur *{event.driver_name}* is on the way."]
        if event.scheduled_time:
            lines += [
                "",
                f"Scheduled pickup: *{event.scheduled_time}*",
                "Your driver will arrive a few minutes early and will be "
                "waiting for you at the pickup point.",
            ]
        if event.vehicle_type or event.vehicle_reg:
            lines += ["", f"Vehicle: {event.vehicle_type}"]
            if event.vehicle_reg:
                lines.append(f"Registration: *{event.vehicle_reg}*")
        lines += [
            "",
            "Track your driver live here:",
            self.tracking_url(event.tracking_reference),
            "",
            self.business_name,
            f"Tel: {self.business_phone}",
        ]
        return "\n".join(lines)

    def journey_completed(self, event: JourneyCompleted) -> str:
        name = event.customer.name or "there"
        lines = [
            f"Hi {name},",
            "",
            f"Thank you for traveling with {self.business_name}. "
            "We hope you had an excellent journey.",
        ]
        if self.review_url:
            lines += [
                "",
                "If you have a moment, we would really appreciate a Google review:",
                self.review_url,
            ]
        lines += ["", "We look forward to welcoming you again.", "", self.business_name]
        return "\n".join(lines)

    def render(self, event: JourneyEvent) -> str:
        if isinstance(event, DriverDeparted):
            return self.driver_departed(event)
        return self.journey_completed(event)


class WhatsAppNotificationComposer:
    def __init__(
        self,
        client: aioredis.Redis,
        channel: Optional[str] = None,
        templates: Optional[MessageTemplates] = None,
    ):
        self.redis = client
        self.channel = channel or settings.notification_channel
        self.templates = templates or MessageTemplates(
            settings.business_name,
            settings.business_phone,
            settings.tracking_base_url,
            settings.review_url,
        )

    def compose(self, event: JourneyEvent) -> dict:
        message = self.templates.render(event)
        payload = json.loads(event.model_dump_json())
        payload["message"] = message
        payload["whatsapp_url"] = (
            whatsapp_link(event.customer.phone, message) if event.customer.phone else None
        )
        return payload

    async def notify(self, event: JourneyEvent) -> None:
        payload = self.compose(event)
        receivers = await self.redis.publish(self.channel, json.dumps(payload))
        if not receivers:
            logger.warning(
                "No subscriber on %s for %s (%s)",
                self.channel,
                event.event_type,
                event.request_id,
            )

    async def publish_elapsed(self, request_id: str, elapsed_minutes: int) -> None:
        """Elapsed-time observer for on-board journeys."""
        await self.redis.publish(
            settings.elapsed_channel,
            json.dumps({"request_id": request_id, "elapsed_minutes": elapsed_minutes}),
        )
