# shared/clients/__init__.py

"""
Shared Client Connection Pools

Thread-safe singletons for GCP client reuse across the watcher's worker
threads and across invocations served by a warm function instance.

Available pools:
- Firestore: get_firestore_client()
- Pub/Sub: get_pubsub_publisher()

Usage:
    from shared.clients import get_firestore_client, get_pubsub_publisher

    fs_client = get_firestore_client()
    doc = fs_client.collection("groups").document("123").get()
"""

from shared.clients.firestore_pool import (
    get_firestore_client,
    close_all_clients as close_all_firestore_clients,
    get_client_count as get_firestore_client_count,
)
from shared.clients.pubsub_pool import (
    get_pubsub_publisher,
    get_publisher_count as get_pubsub_publisher_count,
)

__all__ = [
    'get_firestore_client',
    'close_all_firestore_clients',
    'get_firestore_client_count',
    'get_pubsub_publisher',
    'get_pubsub_publisher_count',
]
