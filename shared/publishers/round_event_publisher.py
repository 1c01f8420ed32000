"""
RoundEventPublisher - Pub/Sub publishing for the round lifecycle.

Publishes the three message kinds the watcher and controller produce:
- Lifecycle trigger {groupId, roundId} to the controller topic
- periodAboutToFinish notifications to the notification queue
- evaluationPeriodFinished notifications to the notification queue

Every message is validated against its pydantic model before publishing.
Publish failures are logged with full context and re-raised: the caller
must know the message did not go out (the watcher releases its ledger
claim, the function invocation fails and is retried).
"""

import json
from typing import Dict, Optional

from google.cloud import pubsub_v1

from shared.utils.structured_logging import StructuredLogger
from shared.validation.pubsub_models import (
    EvaluationPeriodFinishedMessage,
    LifecycleTriggerMessage,
    PeriodAboutToFinishMessage,
)

logger = StructuredLogger(__name__)

PUBLISH_TIMEOUT_SECONDS = 10.0


class RoundEventPublisher:
    """
    Publisher for round lifecycle messages.

    Usage:
        publisher = RoundEventPublisher(
            project_id='song-rounds',
            lifecycle_topic='round-lifecycle-controller',
            notification_topic='notification-queue',
        )
        publisher.publish_lifecycle_trigger(group_id='g1', round_id='r1')
    """

    def __init__(
        self,
        project_id: str = None,
        lifecycle_topic: str = None,
        notification_topic: str = None,
        client: Optional[pubsub_v1.PublisherClient] = None,
    ):
        """
        Initialize publisher.

        Args:
            project_id: GCP project ID (defaults to environment via gcp_config)
            lifecycle_topic: Controller topic name (defaults to TOPICS)
            notification_topic: Notification queue topic name (defaults to TOPICS)
            client: Optional PublisherClient (defaults to the shared pool)
        """
        if project_id:
            self.project_id = project_id
        else:
            from shared.config.gcp_config import get_project_id
            self.project_id = get_project_id()

        if lifecycle_topic is None or notification_topic is None:
            from shared.config.pubsub_topics import TOPICS
            lifecycle_topic = lifecycle_topic or TOPICS.ROUND_LIFECYCLE_CONTROLLER
            notification_topic = notification_topic or TOPICS.NOTIFICATION_QUEUE

        self.lifecycle_topic = lifecycle_topic
        self.notification_topic = notification_topic
        self._client = client

    @property
    def client(self) -> pubsub_v1.PublisherClient:
        """Lazy-load Pub/Sub client from the shared pool."""
        if self._client is None:
            from shared.clients.pubsub_pool import get_pubsub_publisher
            self._client = get_pubsub_publisher()
        return self._client

    def publish_lifecycle_trigger(self, group_id: str, round_id: str) -> str:
        """Ask the lifecycle controller to evaluate a round."""
        message = LifecycleTriggerMessage(group_id=group_id, round_id=round_id)
        return self.publish(self.lifecycle_topic, message.to_wire())

    def publish_period_about_to_finish(self, hours: int, stage: str, group_id: Optional[str] = None) -> str:
        """Notify that a stage deadline is `hours` away (0 = reached)."""
        message = PeriodAboutToFinishMessage(
            params={'hours': hours, 'stage': stage, 'group_id': group_id}
        )
        return self.publish(self.notification_topic, message.to_wire())

    def publish_evaluation_period_finished(self, winner: Optional[str], group_id: str) -> str:
        """Notify that a round finished, with its winner if there was one."""
        message = EvaluationPeriodFinishedMessage(
            params={'winner': winner, 'group_id': group_id}
        )
        return self.publish(self.notification_topic, message.to_wire())

    def publish(self, topic: str, message: Dict) -> str:
        """
        Publish message to Pub/Sub topic and wait for the server ack.

        Args:
            topic: Topic name (not full path)
            message: JSON-serializable message dictionary

        Returns:
            Message ID assigned by Pub/Sub

        Raises:
            Exception: Any publish or timeout error, after logging it
        """
        topic_path = self.client.topic_path(self.project_id, topic)
        message_bytes = json.dumps(message, default=str).encode('utf-8')

        try:
            future = self.client.publish(topic_path, message_bytes)
            message_id = future.result(timeout=PUBLISH_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error(
                f"Pub/Sub publish to {topic} failed",
                exc_info=True,
                extra={
                    'event_type': 'pubsub_publish_failed',
                    'topic': topic,
                    'message_type': message.get('type', 'lifecycleTrigger'),
                    'error_type': type(e).__name__,
                    'error_message': str(e),
                }
            )
            raise

        logger.info(
            f"Published to {topic}: {message.get('type', 'lifecycleTrigger')} "
            f"(message_id: {message_id})",
            extra={'event_type': 'pubsub_published', 'topic': topic, 'message_id': message_id}
        )
        return message_id
