"""
Pub/Sub Publisher Pool

A PublisherClient batches and multiplexes messages internally, so a single
instance per process is shared by every publisher object.

Usage:
    from shared.clients.pubsub_pool import get_pubsub_publisher

    publisher = get_pubsub_publisher()
    future = publisher.publish(publisher.topic_path(project, topic), data)
"""

import logging
import threading
from typing import Optional

from google.cloud import pubsub_v1

logger = logging.getLogger(__name__)

_publisher: Optional[pubsub_v1.PublisherClient] = None
_lock = threading.Lock()


def get_pubsub_publisher() -> pubsub_v1.PublisherClient:
    """Get the process-wide Pub/Sub publisher client, creating it on first use."""
    global _publisher

    if _publisher is not None:
        return _publisher

    with _lock:
        if _publisher is None:
            logger.info("Creating new Pub/Sub publisher client")
            _publisher = pubsub_v1.PublisherClient()
        return _publisher


def get_publisher_count() -> int:
    """Number of live publisher clients (0 or 1)."""
    return 0 if _publisher is None else 1


def reset_publisher():
    """Drop the cached publisher. Intended for tests."""
    global _publisher
    with _lock:
        _publisher = None
