"""
FastAPI dependency injection helpers.

The dispatch services are process-wide singletons built on startup by
``start_services`` and torn down by ``stop_services``; routes receive them
through the ``get_*`` dependencies so tests can override each one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.config import settings
from src.domain.journey import JourneyStateMachine, utcnow
from src.domain.pricing import FareEngine
from src.infrastructure.database import async_session_factory
from src.infrastructure.distance_provider import DistanceProvider
from src.infrastructure.locks import RedisLockProvider
from src.infrastructure.notifications import WhatsAppNotificationComposer
from src.infrastructure.redis_client import close_redis, get_redis
from src.infrastructure.repositories import BookingRepository
from src.workers.tracker import TrackerRegistry

logger = logging.getLogger(__name__)


@dataclass
class Services:
    repository: BookingRepository
    distance_provider: DistanceProvider
    trackers: TrackerRegistry
    journeys: JourneyStateMachine


_services: Optional[Services] = None


def build_services() -> Services:
    redis = get_redis()
    repository = BookingRepository(async_session_factory)
    provider = DistanceProvider()
    composer = WhatsAppNotificationComposer(redis)
    trackers = TrackerRegistry(
        repository,
        provider,
        clock=utcnow,
        tick_seconds=settings.elapsed_tick_seconds,
        geocode_timeout=settings.external_timeout_seconds,
    )
    trackers.add_observer(composer.publish_elapsed)
    journeys = JourneyStateMachine(
        repository,
        composer,
        RedisLockProvider(
            redis,
            ttl_seconds=settings.lock_ttl_seconds,
            wait_seconds=settings.lock_wait_seconds,
        ),
        trackers,
        radius_m=settings.proximity_radius_m,
        override_after_minutes=settings.override_after_minutes,
        tracking_url_template=f"{settings.tracking_base_url.rstrip('/')}/track/{{request_id}}",
    )
    return Services(repository, provider, trackers, journeys)


async def start_services() -> None:
    global _services
    _services = build_services()
    active = await _services.repository.list_tracked()
    await _services.journeys.resume(active)
    logger.info("Dispatch services started")


async def stop_services() -> None:
    global _services
    if _services is not None:
        await _services.trackers.stop_all()
        _services = None
    await close_redis()
    logger.info("Dispatch services stopped")


def _require() -> Services:
    if _services is None:
        raise RuntimeError("Dispatch services are not started")
    return _services


def get_state_machine() -> JourneyStateMachine:
    return _require().journeys


def get_repository() -> BookingRepository:
    return _require().repository


def get_distance_provider() -> DistanceProvider:
    return _require().distance_provider


def get_trackers() -> TrackerRegistry:
    return _require().trackers


def get_fare_engine() -> FareEngine:
    return FareEngine()
