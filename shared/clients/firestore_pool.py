"""
Firestore Client Connection Pool

Provides thread-safe singleton pattern for Firestore client reuse across the
watcher's worker threads and repeated function invocations in a warm instance.

Usage:
    from shared.clients.firestore_pool import get_firestore_client

    client = get_firestore_client()  # Uses default from shared.config.gcp_config
    doc = client.collection('groups').document('abc').get()
"""

import atexit
import logging
import threading
from typing import Dict

from google.cloud import firestore

from shared.config.gcp_config import get_project_id as _get_default_project_id

logger = logging.getLogger(__name__)

# Global client cache (thread-safe)
_client_cache: Dict[str, firestore.Client] = {}
_cache_lock = threading.Lock()


def get_firestore_client(project_id: str = None) -> firestore.Client:
    """
    Get a cached Firestore client for the specified project.

    Creates a new client on first call for a given project, then reuses it
    for all subsequent calls. Thread-safe for concurrent access.

    Args:
        project_id: GCP project ID (defaults to value from shared.config.gcp_config)

    Returns:
        firestore.Client: Cached or newly created Firestore client
    """
    if project_id is None:
        project_id = _get_default_project_id()

    # Fast path: client already exists (no lock needed for read)
    if project_id in _client_cache:
        return _client_cache[project_id]

    with _cache_lock:
        # Double-check: another thread may have created it while we waited
        if project_id in _client_cache:
            return _client_cache[project_id]

        logger.info(f"Creating new Firestore client for project: {project_id}")
        client = firestore.Client(project=project_id)
        _client_cache[project_id] = client

        return client


def close_all_clients():
    """
    Close all cached Firestore clients.

    Called automatically on shutdown via atexit. After calling this, the next
    get_firestore_client() call creates a new client.
    """
    with _cache_lock:
        if not _client_cache:
            return

        logger.info(f"Closing {len(_client_cache)} cached Firestore client(s)...")

        for project_id, client in _client_cache.items():
            try:
                client.close()
            except Exception as e:
                logger.warning(f"Error closing Firestore client {project_id}: {e}")

        _client_cache.clear()


def get_client_count() -> int:
    """Get the number of cached Firestore clients."""
    return len(_client_cache)


atexit.register(close_all_clients)
