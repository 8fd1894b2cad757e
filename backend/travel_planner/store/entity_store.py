"""
Persistence boundary for the destination core.

Every service receives an EntityStore handle instead of querying models
directly. Soft-deleted rows are hidden unless explicitly requested.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional, Type, TypeVar
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from travel_planner.core.errors import BadRequest, DuplicateConflict, StorageUnavailable
from travel_planner.models.base import SoftDeleteMixin

logger = logging.getLogger(__name__)

T = TypeVar("T")

BUSINESS_KEY_INDEX = "uq_destination_business_key"


class EntityStore:
    """Request-scoped repository over a single SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Group several writes into a single commit.

        Writes inside the block are only flushed. The outermost block commits
        on success and rolls everything back if anything raises.
        """
        self._depth += 1
        try:
            yield self
            if self._depth == 1:
                self._run(self.db.commit)
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._depth -= 1

    def find_by(
        self,
        model: Type[T],
        *criteria: Any,
        include_deleted: bool = False,
        order_by: Any = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        """Return all rows of ``model`` matching every criterion."""
        query = self.db.query(model).filter(*criteria)
        if not include_deleted and issubclass(model, SoftDeleteMixin):
            query = query.filter(model.is_deleted == False)  # noqa: E712
        if order_by is not None:
            query = query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return self._run(query.all)

    def find_by_id(self, model: Type[T], entity_id: int, include_deleted: bool = False) -> Optional[T]:
        rows = self.find_by(model, model.id == entity_id, include_deleted=include_deleted)
        return rows[0] if rows else None

    def find_expired(self, model: Type[T], now: datetime) -> List[T]:
        """Soft-deleted rows whose undo window closed at or before ``now``."""
        return self.find_by(
            model,
            model.is_deleted == True,  # noqa: E712
            model.deleted_expiry <= now,
            include_deleted=True,
        )

    def save(self, entity: T) -> T:
        self.db.add(entity)
        self._write()
        return entity

    def soft_delete(self, entity: T, expiry: datetime) -> T:
        entity.is_deleted = True
        entity.deleted_expiry = expiry
        return self.save(entity)

    def restore(self, entity: T) -> T:
        entity.is_deleted = False
        entity.deleted_expiry = None
        return self.save(entity)

    def purge(self, entity: Any) -> None:
        self.db.delete(entity)
        self._write()

    def _write(self) -> None:
        if self._depth:
            self._run(self.db.flush)
        else:
            try:
                self._run(self.db.commit)
            except Exception:
                self.db.rollback()
                raise

    def _run(self, operation):
        try:
            return operation()
        except IntegrityError as e:
            if BUSINESS_KEY_INDEX in str(e.orig):
                raise DuplicateConflict("Destination already exists") from e
            logger.warning(f"Integrity error: {e.orig}")
            raise BadRequest("The request conflicts with existing data") from e
        except SQLAlchemyError as e:
            logger.error(f"Storage failure: {e}", exc_info=True)
            raise StorageUnavailable() from e
