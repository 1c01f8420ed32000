"""
GCP Configuration
=================
Centralized configuration for Google Cloud Platform settings.

Provides consistent access to the project ID and the Firestore groups collection
used by the round lifecycle functions.

Usage:
    from shared.config.gcp_config import get_project_id
    project = get_project_id()
"""

import os


# Default project ID (can be overridden via environment variables)
DEFAULT_PROJECT_ID = 'song-rounds'

# Default root collection holding one document per group
DEFAULT_GROUPS_COLLECTION = 'groups'


def get_project_id() -> str:
    """
    Get the GCP project ID.

    Checks environment variables in order:
    1. GCP_PROJECT_ID (preferred/canonical)
    2. GCP_PROJECT (legacy, set by older Cloud Functions runtimes)
    3. Falls back to DEFAULT_PROJECT_ID

    Returns:
        GCP project ID string
    """
    return (
        os.environ.get('GCP_PROJECT_ID') or
        os.environ.get('GCP_PROJECT') or
        DEFAULT_PROJECT_ID
    )


def get_groups_collection() -> str:
    """Name of the Firestore collection that holds group documents."""
    return os.environ.get('FIRESTORE_GROUPS_COLLECTION') or DEFAULT_GROUPS_COLLECTION
