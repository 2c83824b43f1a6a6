"""Record store for tree survey records."""
import logging
from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from ..models import db, TreeRecord, SequenceCounter
from arbor_shared.errors import DuplicateKeyError, RecordNotFoundError, StoreError

TREE_SEQUENCE = 'tree_records'

# Columns matched by the free-text search of the listing endpoint
SEARCH_COLUMNS = (
    TreeRecord.cidade,
    TreeRecord.nome_popular,
    TreeRecord.user_name,
    TreeRecord.cep,
    TreeRecord.numero_arvore,
)


class TreeRepository:
    """Database operations for tree records on the Flask-SQLAlchemy session.

    Writes commit on success and roll the session back before re-raising on
    failure. ``next_sequence_id`` does not commit: the counter increment joins
    the transaction of the insert that follows it.
    """

    def __init__(self, session=None):
        self._session = session
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def find_by_unique_id(self, unique_id):
        """Get a tree by its unique id, or None."""
        if not unique_id:
            return None
        try:
            return self.session.get(TreeRecord, unique_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to load tree {unique_id}") from e

    def insert(self, record):
        """Insert a new tree record.

        Raises:
            DuplicateKeyError: If the unique id (or sequence id) is already taken
            StoreError: On any other database failure
        """
        try:
            self.session.add(record)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            self.logger.warning(f"Duplicate key inserting tree {record.unique_id}: {e.orig}")
            raise DuplicateKeyError(record.unique_id) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to insert tree {record.unique_id}") from e
        return record

    def update(self, unique_id, fields):
        """Apply a partial update to an existing tree.

        Raises:
            RecordNotFoundError: If no tree has this unique id
            StoreError: On database failure
        """
        record = self.find_by_unique_id(unique_id)
        if record is None:
            raise RecordNotFoundError(unique_id)
        try:
            for key, value in fields.items():
                setattr(record, key, value)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to update tree {unique_id}") from e
        return record

    def delete(self, unique_id):
        """Delete a tree physically.

        Raises:
            RecordNotFoundError: If no tree has this unique id
            StoreError: On database failure
        """
        record = self.find_by_unique_id(unique_id)
        if record is None:
            raise RecordNotFoundError(unique_id)
        try:
            self.session.delete(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(f"Failed to delete tree {unique_id}") from e

    def list_filtered(self, criteria, page=1, limit=50):
        """List trees matching criteria, newest first.

        Args:
            criteria: dict with optional 'user_id', 'cidade' and 'search' keys
            page: 1-based page number
            limit: Page size

        Returns:
            tuple: (list of TreeRecord, total matching count)
        """
        stmt = select(TreeRecord)

        user_id = criteria.get('user_id')
        if user_id is not None:
            stmt = stmt.where(TreeRecord.user_id == str(user_id))

        cidade = criteria.get('cidade')
        if cidade:
            stmt = stmt.where(TreeRecord.cidade.icontains(cidade, autoescape=True))

        search = criteria.get('search')
        if search:
            stmt = stmt.where(or_(*(
                column.icontains(search, autoescape=True) for column in SEARCH_COLUMNS
            )))

        stmt_page = (
            stmt.order_by(TreeRecord.data_cadastro.desc(), TreeRecord.sequence_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        try:
            total = self.session.execute(
                select(func.count()).select_from(stmt.subquery())
            ).scalar_one()
            records = list(self.session.execute(stmt_page).scalars())
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to list trees") from e
        return records, total

    def next_sequence_id(self):
        """Atomically reserve the next sequence id.

        The counter row is incremented with a single UPDATE, which holds the
        row lock until the surrounding transaction ends. The first call seeds
        the counter from the highest sequence id already stored.
        """
        increment = (
            update(SequenceCounter)
            .where(SequenceCounter.name == TREE_SEQUENCE)
            .values(value=SequenceCounter.value + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            if self.session.execute(increment).rowcount == 0:
                self._seed_counter()
                self.session.execute(increment)
            return self.session.execute(
                select(SequenceCounter.value).where(SequenceCounter.name == TREE_SEQUENCE)
            ).scalar_one()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Failed to reserve sequence id") from e

    def _seed_counter(self):
        current_max = self.session.execute(select(func.max(TreeRecord.sequence_id))).scalar()
        try:
            self.session.add(SequenceCounter(name=TREE_SEQUENCE, value=current_max or 0))
            self.session.flush()
            self.logger.info(f"Seeded tree sequence counter at {current_max or 0}")
        except IntegrityError:
            # Another writer seeded it first; nothing else is pending yet
            self.session.rollback()
            self.logger.debug("Tree sequence counter already seeded")

    def ensure_sequence_counter(self):
        """Seed and commit the sequence counter if it does not exist yet."""
        if self.session.get(SequenceCounter, TREE_SEQUENCE) is None:
            self._seed_counter()
            self.session.commit()

    def count(self):
        return self.session.execute(select(func.count()).select_from(TreeRecord)).scalar_one()
