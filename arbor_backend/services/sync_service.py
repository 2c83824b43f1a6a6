"""Offline sync reconciliation for batches submitted by mobile clients."""
import logging
from pydantic import ValidationError as PydanticValidationError
from .tree_service import TreeService, next_edit_stamp, parse_payload
from arbor_shared.models import TREE_DESCRIPTIVE_FIELDS, now
from arbor_shared.validation import Validator
from arbor_shared.schemas import (
    Actor, TreeSubmission, TreeSyncRequest, TreeSyncResponse, SyncResults,
    SyncSuccessItem, SyncErrorItem, SyncConflictItem, format_pydantic_errors, serialize_tree
)

logger = logging.getLogger(__name__)

SERVER_VERSION_NEWER = 'Server version is newer'
VALIDATION_FAILED = 'Validation failed'


def _raw_local_id(item):
    """Best-effort localId of an item that may not have passed validation."""
    if isinstance(item, TreeSubmission):
        return item.local_id
    if isinstance(item, dict):
        local_id = item.get('localId', item.get('local_id'))
        return str(local_id) if local_id is not None else None
    return None


class SyncService:
    """Merge a client's offline batch into the shared dataset.

    Each item is looked up by its localId: unknown ids are created through
    TreeService, known ids are overwritten last-writer-wins. Items are
    processed in submission order and every failure stays local to its item.
    """

    def __init__(self, tree_service=None):
        self.tree_service = tree_service or TreeService()
        self.repository = self.tree_service.repository

    def sync_trees(self, batch, actor):
        """Reconcile a batch and report an outcome for every item.

        Args:
            batch: TreeSyncRequest or raw dict with trees, deviceId and
                lastSyncTimestamp
            actor: Actor resolved from the caller's token

        Returns:
            TreeSyncResponse: success, the three result buckets and the server
            timestamp at completion
        """
        results = SyncResults()
        try:
            request_data = parse_payload(TreeSyncRequest, batch)
            actor = Actor.coerce(actor)
            logger.info(
                f"Sync: processing {len(request_data.trees)} trees from device "
                f"{request_data.device_id} for user {actor.id if actor else None}"
            )

            for item in request_data.trees:
                self._sync_item(item, actor, results)

        except PydanticValidationError as e:
            logger.warning(f"Sync: malformed batch: {'; '.join(format_pydantic_errors(e))}")
            return TreeSyncResponse(success=False, results=SyncResults(), server_timestamp=now())
        except Exception as e:
            logger.error(f"Sync error: {e}", exc_info=True)
            return TreeSyncResponse(success=False, results=SyncResults(), server_timestamp=now())

        logger.info(
            f"Sync: device {request_data.device_id} finished with "
            f"{len(results.success)} succeeded, {len(results.errors)} errored, "
            f"{len(results.conflicts)} conflicted"
        )
        return TreeSyncResponse(success=True, results=results, server_timestamp=now())

    def _sync_item(self, item, actor, results):
        local_id = _raw_local_id(item)
        try:
            submission = parse_payload(TreeSubmission, item)
            errors = Validator.validate_tree_submission(submission, actor)
            if errors:
                logger.warning(f"Sync: rejected tree {local_id}: {[e.field for e in errors]}")
                results.errors.append(SyncErrorItem(local_id=submission.local_id, error=VALIDATION_FAILED))
                return

            existing = self.repository.find_by_unique_id(submission.local_id)

            if existing is None:
                self._create(submission, actor, results)
                return

            # The incoming write is stamped at reconciliation time, not at the
            # client's edit time, so it always wins against a stored dataEdit.
            existing_edit = existing.data_edit
            incoming_edit = now()
            if incoming_edit > existing_edit:
                self._overwrite(existing, submission, actor, results)
            else:
                logger.info(f"Sync: conflict on tree {submission.local_id}, server version is newer")
                results.conflicts.append(SyncConflictItem(
                    local_id=submission.local_id,
                    reason=SERVER_VERSION_NEWER,
                    server_data=serialize_tree(existing),
                ))

        except PydanticValidationError as e:
            message = '; '.join(format_pydantic_errors(e))
            logger.warning(f"Sync: invalid tree {local_id}: {message}")
            results.errors.append(SyncErrorItem(local_id=local_id, error=message))
        except Exception as e:
            self.repository.session.rollback()
            logger.error(f"Sync: failed to process tree {local_id}: {e}", exc_info=True)
            results.errors.append(SyncErrorItem(local_id=local_id, error=str(e)))

    def _create(self, submission, actor, results):
        created = self.tree_service.create_tree(submission, actor)
        if created.success:
            results.success.append(SyncSuccessItem(
                local_id=submission.local_id,
                id=created.data.sequence_id,
                unique_id=created.data.unique_id,
            ))
        else:
            results.errors.append(SyncErrorItem(local_id=submission.local_id, error=created.message))

    def _overwrite(self, existing, submission, actor, results):
        """Replace every descriptive field and take over ownership for ``actor``."""
        fields = submission.model_dump(include=set(TREE_DESCRIPTIVE_FIELDS))
        fields.update(
            user_id=str(actor.id),
            user_name=actor.display_name,
            user_email=actor.email or "",
            data_edit=next_edit_stamp(existing.data_edit),
        )
        record = self.repository.update(existing.unique_id, fields)
        logger.debug(f"Sync: overwrote tree {record.unique_id}")
        results.success.append(SyncSuccessItem(
            local_id=submission.local_id,
            id=record.sequence_id,
            unique_id=record.unique_id,
        ))
