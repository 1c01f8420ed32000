"""
Round Lifecycle Configuration

Centralized configuration for the round watcher and controller.
These can be overridden via environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from shared.config.gcp_config import get_groups_collection, get_project_id
from shared.config.pubsub_topics import TOPICS


DEVELOPMENT = 'Development'


@dataclass
class RoundScheduleDefaults:
    """
    Schedule applied to new rounds of groups without a settings document.

    Each entry is the weekday and time of the following week at which the
    corresponding round deadline falls.
    """
    submissions_end_at: Dict[str, object] = field(default_factory=lambda: {
        'weekDay': 'tuesday', 'hour': 15, 'minute': 0, 'second': 0,
    })
    evaluations_start_at: Dict[str, object] = field(default_factory=lambda: {
        'weekDay': 'tuesday', 'hour': 15, 'minute': 0, 'second': 1,
    })
    evaluations_end_at: Dict[str, object] = field(default_factory=lambda: {
        'weekDay': 'sunday', 'hour': 23, 'minute': 0, 'second': 0,
    })

    def to_settings(self) -> Dict[str, Dict[str, object]]:
        """Render in the shape of a group's settings.rounds map."""
        return {
            'submissionsEndAt': dict(self.submissions_end_at),
            'evaluationsStartAt': dict(self.evaluations_start_at),
            'evaluationsEndAt': dict(self.evaluations_end_at),
        }


@dataclass
class RoundsConfig:
    """Main configuration for the round lifecycle functions."""

    environment: str = DEVELOPMENT
    timezone: str = 'America/Sao_Paulo'
    project_id: str = field(default_factory=get_project_id)
    groups_collection: str = field(default_factory=get_groups_collection)
    logging_level: str = 'INFO'

    # Cron expression of the Cloud Scheduler job driving the watcher
    watcher_schedule: str = '*/15 * * * *'
    watcher_max_workers: int = 8

    lifecycle_controller_topic: str = TOPICS.ROUND_LIFECYCLE_CONTROLLER
    notification_queue_topic: str = TOPICS.NOTIFICATION_QUEUE

    schedule_defaults: RoundScheduleDefaults = field(default_factory=RoundScheduleDefaults)

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @classmethod
    def from_environment(cls) -> 'RoundsConfig':
        """Load configuration from environment variables."""
        config = cls()

        config.environment = os.environ.get('ENVIRONMENT', config.environment)
        config.timezone = os.environ.get('ROUNDS_TIMEZONE', config.timezone)
        config.logging_level = os.environ.get('LOGGING_MINIMUM_LEVEL', config.logging_level).upper()
        config.watcher_schedule = os.environ.get('WATCHER_CRONTAB_SCHEDULE', config.watcher_schedule)
        config.lifecycle_controller_topic = os.environ.get(
            'ROUND_LIFECYCLE_CONTROLLER_TOPIC', config.lifecycle_controller_topic
        )
        config.notification_queue_topic = os.environ.get(
            'NOTIFICATION_QUEUE_TOPIC', config.notification_queue_topic
        )

        max_workers = os.environ.get('WATCHER_MAX_WORKERS')
        if max_workers:
            config.watcher_max_workers = max(1, int(max_workers))

        return config


# Singleton instance
_config: Optional[RoundsConfig] = None


def get_rounds_config() -> RoundsConfig:
    """Get the round lifecycle configuration (singleton)."""
    global _config
    if _config is None:
        _config = RoundsConfig.from_environment()
    return _config


def reload_rounds_config() -> RoundsConfig:
    """Reload configuration from environment."""
    global _config
    _config = RoundsConfig.from_environment()
    return _config
