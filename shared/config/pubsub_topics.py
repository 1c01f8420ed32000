"""
Pub/Sub Topics Configuration - Centralized topic definitions.

All topic names used by the round lifecycle functions.
"""

import os


class PubSubTopics:
    """
    Centralized Pub/Sub topic definitions.

    Topic names can be overridden per deployment through environment
    variables of the same name.

    Usage:
        from shared.config.pubsub_topics import TOPICS

        publisher.publish(TOPICS.NOTIFICATION_QUEUE, message)
    """

    # Published by: round_lifecycle_watcher (evaluation deadline reached)
    # Consumed by: round_lifecycle_controller
    ROUND_LIFECYCLE_CONTROLLER = os.environ.get(
        'ROUND_LIFECYCLE_CONTROLLER_TOPIC', 'round-lifecycle-controller'
    )

    # Published by: round_lifecycle_watcher, round_lifecycle_controller
    # Consumed by: the group notification bot
    NOTIFICATION_QUEUE = os.environ.get(
        'NOTIFICATION_QUEUE_TOPIC', 'notification-queue'
    )


# Singleton instance for easy import
TOPICS = PubSubTopics()
