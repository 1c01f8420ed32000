"""
Cloud Function: Round Lifecycle Controller

Receives {groupId, roundId} lifecycle triggers from the watcher and applies
the round's next transition: finish it and start a new round, open the
evaluation stage early, or nothing.

Triggered: Pub/Sub topic ROUND_LIFECYCLE_CONTROLLER_TOPIC

Malformed messages are logged and acknowledged (a retry cannot fix them).
Store and publish failures propagate so Pub/Sub redelivers the message.
A finish whose winner announcement failed leaves the round marked
unannounced; the redelivered trigger is stale by then and only re-publishes
the announcement.
"""

import base64
import binascii
import json
from typing import Dict

import functions_framework
from pydantic import ValidationError

from rounds.exceptions import InvalidLifecycleMessage
from rounds.runtime import build_controller
from shared.config.rounds_config import get_rounds_config
from shared.utils.structured_logging import StructuredLogger, configure_logging
from shared.validation.pubsub_models import LifecycleTriggerMessage

logger = StructuredLogger(__name__)

_logging_configured = False


def parse_pubsub_message(cloud_event) -> Dict:
    """
    Decode the JSON payload of a Pub/Sub CloudEvent.

    Raises:
        InvalidLifecycleMessage: If the event carries no decodable JSON payload
    """
    try:
        encoded = cloud_event.data['message']['data']
        return json.loads(base64.b64decode(encoded).decode('utf-8'))
    except (KeyError, TypeError, binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidLifecycleMessage(f"Invalid Pub/Sub message format: {e}") from e


def parse_lifecycle_trigger(cloud_event) -> LifecycleTriggerMessage:
    """Decode and validate a lifecycle trigger."""
    payload = parse_pubsub_message(cloud_event)
    try:
        return LifecycleTriggerMessage.model_validate(payload)
    except ValidationError as e:
        raise InvalidLifecycleMessage(f"Invalid lifecycle trigger {payload!r}: {e}") from e


@functions_framework.cloud_event
def round_lifecycle_controller(cloud_event):
    """Pub/Sub entry point."""
    global _logging_configured
    config = get_rounds_config()
    if not _logging_configured:
        configure_logging(
            level=config.logging_level,
            use_cloud_logging=not config.is_development,
            project_id=config.project_id,
        )
        _logging_configured = True

    try:
        message = parse_lifecycle_trigger(cloud_event)
    except InvalidLifecycleMessage as e:
        logger.error(f"Dropping lifecycle trigger: {e}", extra={'event_type': 'controller_invalid_message'})
        return {'status': 'invalid_message', 'error': str(e)}

    transition = build_controller(config).execute(message.group_id, message.round_id)
    return {
        'status': 'success',
        'group_id': message.group_id,
        'round_id': message.round_id,
        'transition': transition.value,
    }
