"""
Construction of the watcher and controller from configuration.

Shared by the Cloud Function entry points and the operator CLI.
"""

from datetime import datetime
from typing import Optional

from rounds.lifecycle_controller import LifecycleController
from rounds.period_watcher import PeriodWatcher
from rounds.state_store import FirestoreStateStore
from shared.config.rounds_config import RoundsConfig, get_rounds_config
from shared.publishers.round_event_publisher import RoundEventPublisher
from shared.utils.datetime_service import DateTimeService


def build_state_store(config: RoundsConfig) -> FirestoreStateStore:
    from shared.clients.firestore_pool import get_firestore_client
    return FirestoreStateStore(get_firestore_client(config.project_id), config.groups_collection)


def build_publisher(config: RoundsConfig) -> RoundEventPublisher:
    return RoundEventPublisher(
        project_id=config.project_id,
        lifecycle_topic=config.lifecycle_controller_topic,
        notification_topic=config.notification_queue_topic,
    )


def build_watcher(config: Optional[RoundsConfig] = None, now: Optional[datetime] = None) -> PeriodWatcher:
    config = config or get_rounds_config()
    return PeriodWatcher(
        store=build_state_store(config),
        publisher=build_publisher(config),
        clock=DateTimeService(config.timezone, now=now),
        max_workers=config.watcher_max_workers,
    )


def build_controller(config: Optional[RoundsConfig] = None, now: Optional[datetime] = None) -> LifecycleController:
    config = config or get_rounds_config()
    return LifecycleController(
        store=build_state_store(config),
        publisher=build_publisher(config),
        clock=DateTimeService(config.timezone, now=now),
        schedule_defaults=config.schedule_defaults.to_settings(),
    )
