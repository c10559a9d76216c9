"""WhatsApp notification composer."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from urllib.parse import unquote

import pytest

from src.domain.events import CustomerContact, DriverDeparted, JourneyCompleted
from src.infrastructure.notifications import (
    MessageTemplates,
    WhatsAppNotificationComposer,
    normalise_irish_phone,
    whatsapp_link,
)

NOW = datetime(2026, 11, 3, 10, 0, tzinfo=timezone.utc)

TEMPLATES = MessageTemplates(
    "Redmond Chauffeur Drive",
    "085 229 7379",
    "https://dispatch.example.ie",
    review_url="https://g.page/r/review",
)


def departed(**overrides) -> DriverDeparted:
    fields = dict(
        request_id="REQ-1",
        occurred_at=NOW,
        tracking_reference="/track/REQ-1",
        customer=CustomerContact(name="Aoife", phone="087 123 4567"),
        driver_name="Sean Redmond",
        vehicle_reg="231-D-4567",
        vehicle_type="Executive Saloon",
        scheduled_time="10:30",
    )
    fields.update(overrides)
    return DriverDeparted(**fields)


def completed(**overrides) -> JourneyCompleted:
    fields = dict(
        request_id="REQ-1",
        occurred_at=NOW,
        pickup_timestamp=NOW,
        completion_timestamp=NOW,
        actual_duration_minutes=17,
        customer=CustomerContact(name="Aoife", phone="087 123 4567"),
        driver_name="Sean Redmond",
    )
    fields.update(overrides)
    return JourneyCompleted(**fields)


class TestPhoneNumbers:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("085 229 7379", "353852297379"),
            ("85 229 7379", "353852297379"),
            ("+353 85 229 7379", "353852297379"),
            ("353871234567", "353871234567"),
            ("", ""),
        ],
    )
    def test_normalise(self, raw, expected):
        assert normalise_irish_phone(raw) == expected

    def test_whatsapp_link_encodes_message(self):
        link = whatsapp_link("087 123 4567", "Hi Aoife,\nOn the way")
        assert link.startswith("https://wa.me/353871234567?text=")
        assert unquote(link.split("text=", 1)[1]) == "Hi Aoife,\nOn the way"


class TestTemplates:
    def test_driver_departed_message(self):
        message = TEMPLATES.render(departed())
        assert message.startswith("Hi Aoife,")
        assert "*Sean Redmond*" in message
        assert "Scheduled pickup: *10:30*" in message
        assert "Registration: *231-D-4567*" in message
        assert "https://dispatch.example.ie/track/REQ-1" in message
        assert message.rstrip().endswith("Tel: 085 229 7379")

    def test_absolute_tracking_reference_kept(self):
        message = TEMPLATES.render(
            departed(tracking_reference="https://other.example/track/REQ-1")
        )
        assert "https://other.example/track/REQ-1" in message

    def test_departed_without_schedule_or_vehicle(self):
        message = TEMPLATES.render(
            departed(scheduled_time="", vehicle_type="", vehicle_reg="")
        )
        assert "Scheduled pickup" not in message
        assert "Vehicle:" not in message

    def test_completed_asks_for_review(self):
        message = TEMPLATES.render(completed())
        assert "Thank you for traveling with Redmond Chauffeur Drive" in message
        assert "https://g.page/r/review" in message

    def test_completed_without_review_link(self):
        templates = MessageTemplates("Redmond Chauffeur Drive", "085 229 7379", "http://x")
        message = templates.render(completed(customer=CustomerContact()))
        assert message.startswith("Hi there,")
        assert "review" not in message


class TestComposer:
    def test_compose_includes_link(self):
        composer = WhatsAppNotificationComposer(AsyncMock(), channel="test", templates=TEMPLATES)
        payload = composer.compose(departed())

        assert payload["event_type"] == "journey.driver_departed"
        assert payload["request_id"] == "REQ-1"
        assert payload["whatsapp_url"].startswith("https://wa.me/353871234567")
        assert "Sean Redmond" in payload["message"]

    def test_compose_without_phone(self):
        composer = WhatsAppNotificationComposer(AsyncMock(), channel="test", templates=TEMPLATES)
        payload = composer.compose(completed(customer=CustomerContact(name="Aoife")))
        assert payload["whatsapp_url"] is None

    @pytest.mark.asyncio
    async def test_notify_publishes_json(self):
        redis = AsyncMock()
        redis.publish = AsyncMock(return_value=1)
        composer = WhatsAppNotificationComposer(redis, channel="dispatch:test", templates=TEMPLATES)

        await composer.notify(completed())

        channel, body = redis.publish.call_args.args
        assert channel == "dispatch:test"
        assert json.loads(body)["actual_duration_minutes"] == 17

    @pytest.mark.asyncio
    async def test_publish_elapsed(self):
        redis = AsyncMock()
        redis.publish = AsyncMock(return_value=0)
        composer = WhatsAppNotificationComposer(redis, channel="dispatch:test", templates=TEMPLATES)

        await composer.publish_elapsed("REQ-1", 12)

        _, body = redis.publish.call_args.args
        assert json.loads(body) == {"request_id": "REQ-1", "elapsed_minutes": 12}
