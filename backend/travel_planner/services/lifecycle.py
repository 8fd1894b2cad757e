"""
Soft-delete / undo lifecycle shared by destinations, destination photos,
personal photos and destination proposals.

    Active -> SoftDeleted(expiry) -> Purged
                     |
                     +-> Active (undo, while the row still exists)

Deleting sets an expiry one undo window in the future. A periodic sweep
permanently removes rows whose expiry has passed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Type
import logging

from travel_planner.auth.middleware import CurrentUser
from travel_planner.core.config import settings
from travel_planner.core.errors import BadRequest, Forbidden, NotFound, StorageUnavailable
from travel_planner.models import (
    Destination,
    DestinationPhoto,
    DestinationProposal,
    PersonalPhoto,
)
from travel_planner.services.photo_storage import PhotoStorage
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)

# Children before parents, so cascades never remove rows the sweep still holds
PURGE_ORDER = (DestinationProposal, DestinationPhoto, Destination, PersonalPhoto)

# Dependent rows that follow their parent through delete and undo
CASCADE_CHILDREN = {
    Destination: ((DestinationPhoto, "destination_id"), (DestinationProposal, "destination_id")),
}

ENTITY_LABELS = {
    Destination: "destination",
    DestinationPhoto: "destination photo",
    DestinationProposal: "destination proposal",
    PersonalPhoto: "photo",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def undo_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utc_now()) + timedelta(minutes=settings.undo_window_minutes)


def _can_manage_destination(store: EntityStore, destination: Destination, user: CurrentUser) -> bool:
    # Ownerless (public-owned) destinations are admin-only
    return destination.owner_id is not None and destination.owner_id == user.user_id


def _can_manage_destination_photo(store: EntityStore, link: DestinationPhoto, user: CurrentUser) -> bool:
    photo = store.find_by_id(PersonalPhoto, link.personal_photo_id, include_deleted=True)
    return photo is not None and photo.owner_id == user.user_id


def _can_manage_proposal(store: EntityStore, proposal: DestinationProposal, user: CurrentUser) -> bool:
    return proposal.user_id == user.user_id


def _can_manage_personal_photo(store: EntityStore, photo: PersonalPhoto, user: CurrentUser) -> bool:
    return photo.owner_id == user.user_id


OWNERSHIP_POLICIES: Dict[Type, Callable[[EntityStore, object, CurrentUser], bool]] = {
    Destination: _can_manage_destination,
    DestinationPhoto: _can_manage_destination_photo,
    DestinationProposal: _can_manage_proposal,
    PersonalPhoto: _can_manage_personal_photo,
}


@dataclass
class PurgeReport:
    """Outcome of one purge sweep, per entity kind."""

    purged: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, int] = field(default_factory=dict)

    @property
    def total_purged(self) -> int:
        return sum(self.purged.values())

    @property
    def total_failed(self) -> int:
        return sum(self.failed.values())


class LifecycleManager:
    """Applies delete, undo and purge transitions through the entity store."""

    def __init__(self, store: EntityStore, photo_storage: Optional[PhotoStorage] = None):
        self.store = store
        self.photo_storage = photo_storage

    def can_manage(self, entity, user: CurrentUser) -> bool:
        if user.is_admin:
            return True
        policy = OWNERSHIP_POLICIES[type(entity)]
        return policy(self.store, entity, user)

    def delete(self, entity, user: CurrentUser, now: Optional[datetime] = None):
        label = ENTITY_LABELS[type(entity)]
        if not self.can_manage(entity, user):
            raise Forbidden(f"You are not permitted to delete this {label}")

        expiry = undo_expiry(now)
        with self.store.transaction():
            self.store.soft_delete(entity, expiry)
            for child in self._children(entity):
                self.store.soft_delete(child, expiry)
        logger.info(f"Soft deleted {label} {entity.id} by user {user.user_id}, undo possible until {expiry.isoformat()}")
        return entity

    def undo(
        self,
        entity,
        user: CurrentUser,
        label: Optional[str] = None,
        before_restore: Optional[Callable[[object], None]] = None,
    ):
        """Restore a soft-deleted entity.

        ``entity`` is the result of an include-deleted lookup, so None means
        the row does not exist at all (never created, or already purged).
        ``before_restore`` runs after the permission and state checks and may
        raise to leave the entity deleted.
        """
        if entity is None:
            raise NotFound(f"The {label or 'entity'} you are undoing does not exist.")

        label = ENTITY_LABELS[type(entity)]
        if not self.can_manage(entity, user):
            raise Forbidden("You do not have permission to undo this deletion.")
        if not entity.is_deleted:
            raise BadRequest(f"This {label} has not been deleted.")
        if before_restore is not None:
            before_restore(entity)

        deleted_with = entity.deleted_expiry
        with self.store.transaction():
            # Children deleted on their own keep their own undo
            for child in self._children(entity, deleted_with=deleted_with):
                self.store.restore(child)
            self.store.restore(entity)
        logger.info(f"Restored {label} {entity.id} by user {user.user_id}")
        return entity

    def _children(self, entity, deleted_with: Optional[datetime] = None) -> List:
        children = []
        for model, column in CASCADE_CHILDREN.get(type(entity), ()):
            criteria = [getattr(model, column) == entity.id]
            if deleted_with is None:
                children.extend(self.store.find_by(model, *criteria))
            else:
                children.extend(self.store.find_by(
                    model,
                    *criteria,
                    model.is_deleted == True,  # noqa: E712
                    model.deleted_expiry == deleted_with,
                    include_deleted=True,
                ))
        return children

    def purge_sweep(self, now: Optional[datetime] = None) -> PurgeReport:
        """Permanently remove every soft-deleted entity whose expiry has passed."""
        now = now or utc_now()
        report = PurgeReport()
        logger.info("-----------Purging expired soft-deleted entities-----------")

        for model in PURGE_ORDER:
            label = ENTITY_LABELS[model]
            purged = failed = 0
            for entity in self.store.find_expired(model, now):
                if self._purge_one(entity, label):
                    purged += 1
                else:
                    failed += 1
            report.purged[label] = purged
            report.failed[label] = failed
            logger.info(f"Purged {purged} expired {label} rows, {failed} failures")

        logger.info(f"Purge sweep finished: {report.total_purged} purged, {report.total_failed} failed")
        return report

    def _purge_one(self, entity, label: str) -> bool:
        entity_id = entity.id
        if isinstance(entity, PersonalPhoto) and self.photo_storage is not None:
            try:
                self.photo_storage.delete(entity.filename_hash)
            except OSError as e:
                # Keep the row so the next sweep retries the blob
                logger.error(f"Could not delete photo blob {entity.filename_hash}: {e}")
                return False
        try:
            self.store.purge(entity)
        except StorageUnavailable:
            logger.error(f"Could not purge {label} {entity_id}")
            return False
        return True
