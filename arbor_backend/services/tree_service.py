"""Lifecycle operations for tree survey records."""
import logging
import uuid
from datetime import timedelta
from pydantic import ValidationError as PydanticValidationError
from ..models import TreeRecord
from ..repositories.tree_repository import TreeRepository
from .result import ServiceResult
from arbor_shared.enums import ErrorKind
from arbor_shared.errors import DuplicateKeyError, RecordNotFoundError, StoreError
from arbor_shared.models import TREE_DESCRIPTIVE_FIELDS, now
from arbor_shared.schemas import Actor, TreeSubmission, TreeUpdate, TreeQueryParams, pydantic_field_errors
from arbor_shared.validation import Validator

logger = logging.getLogger(__name__)

TREE_NOT_FOUND = 'Tree not found'
TREE_ALREADY_EXISTS = 'Tree with this ID already exists'
DEFAULT_TREE_NUMBER = '1'


def next_edit_stamp(previous):
    """Return now(), nudged past ``previous`` so dataEdit strictly increases."""
    stamp = now()
    if previous is not None and stamp <= previous:
        stamp = previous + timedelta(microseconds=1)
    return stamp


def parse_payload(schema, data):
    """Validate a raw dict against ``schema``; pass schema instances through."""
    if isinstance(data, schema):
        return data
    return schema.model_validate(data or {})


class TreeService:
    """Create, update, delete and list tree records.

    Every method returns a ServiceResult; store failures are logged here and
    reported with a generic message.
    """

    def __init__(self, repository=None, default_page_size=50, max_page_size=200):
        self.repository = repository or TreeRepository()
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def create_tree(self, data, actor):
        """Register a new tree on behalf of ``actor``.

        Args:
            data: TreeSubmission or raw camelCase dict
            actor: Actor, token claims dict, or None

        Returns:
            ServiceResult with the stored TreeRecord as data
        """
        errors = Validator.validate_tree_submission(data, actor)
        if errors:
            logger.warning(f"Tree creation rejected: {[e.field for e in errors]}")
            return ServiceResult.fail('Validation failed', ErrorKind.VALIDATION, errors)

        try:
            submission = parse_payload(TreeSubmission, data)
        except PydanticValidationError as e:
            return ServiceResult.fail('Validation failed', ErrorKind.VALIDATION, pydantic_field_errors(e))

        actor = Actor.coerce(actor)
        try:
            if submission.local_id and self.repository.find_by_unique_id(submission.local_id):
                logger.info(f"Tree {submission.local_id} already exists, refusing duplicate create")
                return ServiceResult.fail(TREE_ALREADY_EXISTS, ErrorKind.CONFLICT)

            stamp = now()
            fields = submission.model_dump(include=set(TREE_DESCRIPTIVE_FIELDS))
            fields['numero_arvore'] = fields.get('numero_arvore') or DEFAULT_TREE_NUMBER
            record = TreeRecord(
                unique_id=submission.local_id or str(uuid.uuid4()),
                sequence_id=self.repository.next_sequence_id(),
                user_id=str(actor.id),
                user_name=actor.display_name,
                user_email=actor.email or "",
                data_cadastro=stamp,
                data_edit=stamp,
                **fields
            )
            self.repository.insert(record)
        except DuplicateKeyError:
            return ServiceResult.fail(TREE_ALREADY_EXISTS, ErrorKind.CONFLICT)
        except StoreError as e:
            logger.error(f"Tree creation error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to register tree', ErrorKind.STORE)

        logger.info(f"Created tree {record.unique_id} (#{record.sequence_id}) for user {record.user_id}")
        return ServiceResult.ok('Tree registered successfully', record)

    def update_tree(self, unique_id, partial):
        """Merge ``partial`` over an existing tree and refresh dataEdit.

        Only descriptive and geo fields present in ``partial`` are written;
        identity, creation time and ownership are never touched.
        """
        try:
            changes = parse_payload(TreeUpdate, partial).model_dump(
                include=set(TREE_DESCRIPTIVE_FIELDS), exclude_unset=True
            )
        except PydanticValidationError as e:
            return ServiceResult.fail('Validation failed', ErrorKind.VALIDATION, pydantic_field_errors(e))

        try:
            existing = self.repository.find_by_unique_id(unique_id)
            if existing is None:
                return ServiceResult.fail(TREE_NOT_FOUND, ErrorKind.NOT_FOUND)

            changes['data_edit'] = next_edit_stamp(existing.data_edit)
            record = self.repository.update(unique_id, changes)
        except RecordNotFoundError:
            return ServiceResult.fail(TREE_NOT_FOUND, ErrorKind.NOT_FOUND)
        except StoreError as e:
            logger.error(f"Tree update error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to update tree', ErrorKind.STORE)

        logger.info(f"Updated tree {unique_id}: {sorted(changes)}")
        return ServiceResult.ok('Tree updated successfully', record)

    def delete_tree(self, unique_id):
        try:
            self.repository.delete(unique_id)
        except RecordNotFoundError:
            return ServiceResult.fail(TREE_NOT_FOUND, ErrorKind.NOT_FOUND)
        except StoreError as e:
            logger.error(f"Delete tree error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to delete tree', ErrorKind.STORE)

        logger.info(f"Deleted tree {unique_id}")
        return ServiceResult.ok('Tree deleted successfully')

    def list_trees(self, criteria=None):
        """List trees with optional filters and mandatory pagination.

        Args:
            criteria: TreeQueryParams or dict with userId, cidade, search,
                page and limit

        Returns:
            ServiceResult with a list of TreeRecord and total/page/limit set
        """
        try:
            params = parse_payload(TreeQueryParams, criteria)
        except PydanticValidationError as e:
            return ServiceResult.fail('Invalid query parameters', ErrorKind.VALIDATION, pydantic_field_errors(e))

        limit = params.limit if 'limit' in params.model_fields_set else self.default_page_size
        limit = min(limit, self.max_page_size)
        filters = params.model_dump(include={'user_id', 'cidade', 'search'})
        try:
            records, total = self.repository.list_filtered(filters, page=params.page, limit=limit)
        except StoreError as e:
            logger.error(f"Tree retrieval error: {e}", exc_info=True)
            return ServiceResult.fail('Failed to retrieve trees', ErrorKind.STORE)

        return ServiceResult.ok(
            'Trees retrieved successfully', records,
            total=total, page=params.page, limit=limit
        )

    def list_trees_by_user(self, user_id, criteria=None):
        if isinstance(criteria, TreeQueryParams):
            return self.list_trees(criteria.model_copy(update={'user_id': str(user_id)}))
        params = {k: v for k, v in (criteria or {}).items() if k not in ('userId', 'user_id')}
        params['userId'] = str(user_id)
        return self.list_trees(params)
