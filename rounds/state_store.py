"""
Firestore-backed state store for groups, rounds and evaluations.

Exposes the narrow read/write surface the watcher and controller need:
get-by-id, partial update, create-under-group, the "evaluations of a round"
query and a compare-and-set claim on a round's notification ledger.

Reads are retried on transient Firestore errors; anything that still fails
propagates to the caller.
"""

import logging
from typing import Any, Dict, List

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Evaluation, Group, Round
from rounds.notification_ledger import NotificationLedger, NotificationTag
from shared.utils.firestore_retry import (
    retry_firestore_read,
    retry_firestore_transaction,
    retry_on_firestore_error,
)

logger = logging.getLogger(__name__)

ROUNDS_SUBCOLLECTION = 'rounds'
EVALUATIONS_SUBCOLLECTION = 'evaluations'


def _ledger_field_path(tag: NotificationTag) -> str:
    # Tags contain ':' so the key segment must be quoted
    return FieldPath('notifications', tag.wire).to_api_repr()


@firestore.transactional
def _claim_in_transaction(transaction, round_ref, tag: NotificationTag) -> bool:
    snapshot = round_ref.get(transaction=transaction)
    if not snapshot.exists:
        raise RoundDataIntegrityError(f"Round document {round_ref.path} not found")

    ledger = NotificationLedger.from_document((snapshot.to_dict() or {}).get('notifications'))
    if not ledger.add(tag):
        return False

    transaction.update(round_ref, {_ledger_field_path(tag): True})
    return True


class FirestoreStateStore:
    """
    State store on Firestore.

    Usage:
        from shared.clients import get_firestore_client

        store = FirestoreStateStore(get_firestore_client(), groups_collection='groups')
        group = store.get_group('abc')
    """

    def __init__(self, client: firestore.Client, groups_collection: str = 'groups'):
        self.db = client
        self.groups_collection = groups_collection

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _group_ref(self, group_id: str):
        return self.db.collection(self.groups_collection).document(group_id)

    def _round_ref(self, group_id: str, round_id: str):
        return self._group_ref(group_id).collection(ROUNDS_SUBCOLLECTION).document(round_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @retry_firestore_read
    def list_groups(self) -> List[Group]:
        """Every group document in the collection."""
        return [
            Group.from_document(snapshot.id, snapshot.to_dict() or {})
            for snapshot in self.db.collection(self.groups_collection).stream()
        ]

    @retry_firestore_read
    def get_group(self, group_id: str) -> Group:
        snapshot = self._group_ref(group_id).get()
        if not snapshot.exists:
            raise RoundDataIntegrityError(f"Group {group_id} not found", group_id=group_id)
        return Group.from_document(snapshot.id, snapshot.to_dict() or {})

    @retry_firestore_read
    def get_round(self, group_id: str, round_id: str) -> Round:
        snapshot = self._round_ref(group_id, round_id).get()
        if not snapshot.exists:
            raise RoundDataIntegrityError(
                f"Round {round_id} of group {group_id} not found", group_id=group_id, round_id=round_id
            )
        return Round.from_document(snapshot.id, snapshot.to_dict() or {}, group_id=group_id)

    @retry_firestore_read
    def get_round_evaluations(self, group_id: str, round_id: str) -> List[Evaluation]:
        """All evaluations whose round field equals round_id."""
        query = (
            self._group_ref(group_id)
            .collection(EVALUATIONS_SUBCOLLECTION)
            .where(filter=FieldFilter('round', '==', round_id))
        )
        return [Evaluation.from_document(snapshot.id, snapshot.to_dict() or {}) for snapshot in query.stream()]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @retry_on_firestore_error
    def update_round(self, group_id: str, round_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing round document."""
        self._round_ref(group_id, round_id).update(fields)

    @retry_on_firestore_error
    def update_group(self, group_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing group document."""
        self._group_ref(group_id).update(fields)

    def create_round(self, group_id: str, document: Dict[str, Any]) -> str:
        """
        Add a round document under the group.

        Not retried: a timed-out add may still have succeeded, and a retry
        would leave an orphan round behind.

        Returns:
            ID of the new round document
        """
        _, round_ref = self._group_ref(group_id).collection(ROUNDS_SUBCOLLECTION).add(document)
        logger.info(f"Created round {round_ref.id} for group {group_id}")
        return round_ref.id

    @retry_firestore_transaction
    def claim_notification(self, group_id: str, round_id: str, tag: NotificationTag) -> bool:
        """
        Atomically record a notification in the round's ledger.

        Returns:
            True if this call recorded the tag, False if it was already present
        """
        transaction = self.db.transaction()
        return _claim_in_transaction(transaction, self._round_ref(group_id, round_id), tag)

    @retry_on_firestore_error
    def release_notification(self, group_id: str, round_id: str, tag: NotificationTag) -> None:
        """Remove a claimed tag whose notification could not be published."""
        self._round_ref(group_id, round_id).update({_ledger_field_path(tag): firestore.DELETE_FIELD})
