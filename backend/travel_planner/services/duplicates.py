"""
Duplicate-destination detection and merging.

Two destinations describe the same place when they share a name (compared
case-insensitively), a type and a country. Type and country are compared
by id only.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import func

from travel_planner.core.errors import DuplicateConflict
from travel_planner.models import Destination, DestinationPhoto
from travel_planner.services.lifecycle import undo_expiry
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


@dataclass
class DestinationDraft:
    """The business-key fields of a destination that may not exist yet."""

    name: str
    type_id: int
    country_id: int
    owner_id: Optional[int] = None
    is_public: bool = False

    @classmethod
    def from_destination(cls, destination: Destination) -> "DestinationDraft":
        return cls(
            name=destination.name,
            type_id=destination.type_id,
            country_id=destination.country_id,
            owner_id=destination.owner_id,
            is_public=destination.is_public,
        )


class DuplicateResolver:
    def __init__(self, store: EntityStore):
        self.store = store

    def find_duplicates(
        self,
        candidate: DestinationDraft,
        requesting_user_id: Optional[int],
        exclude_id: Optional[int] = None,
    ) -> List[Destination]:
        """Active destinations sharing the candidate's business key."""
        criteria = [
            func.lower(Destination.name) == func.lower(candidate.name),
            Destination.type_id == candidate.type_id,
            Destination.country_id == candidate.country_id,
        ]
        if exclude_id is not None:
            criteria.append(Destination.id != exclude_id)

        matches = self.store.find_by(Destination, *criteria, order_by=Destination.id)
        if matches:
            logger.debug(
                f"Found {len(matches)} destinations matching '{candidate.name}' "
                f"for user {requesting_user_id}"
            )
        return matches

    def check_create(self, candidate: DestinationDraft, requesting_user_id: Optional[int]) -> None:
        """Reject a new destination that collides with an existing one.

        Any public match collides. A private match only collides when it
        belongs to the owner of the new destination.
        """
        for match in self.find_duplicates(candidate, requesting_user_id):
            if match.is_public:
                raise DuplicateConflict("Destination already exists")
            if match.owner_id is not None and match.owner_id == candidate.owner_id:
                raise DuplicateConflict("Destination already exists")

    def check_restore(self, destination: Destination, requesting_user_id: Optional[int]) -> None:
        """Reject undoing a delete when an active destination took over the key.

        Applies the create rules to the soft-deleted destination, which
        ``find_duplicates`` never returns itself.
        """
        self.check_create(DestinationDraft.from_destination(destination), requesting_user_id)

    def resolve_update(self, destination: Destination, requesting_user_id: Optional[int]) -> List[int]:
        """Return the ids of private duplicates an updated destination absorbs.

        Only a public destination absorbs duplicates. Every match is checked
        before anything is merged, so a public match rejects the update
        without side effects. A private destination absorbs nothing, and may
        not share its key with another destination of the same owner.
        """
        matches = self.find_duplicates(
            DestinationDraft.from_destination(destination),
            requesting_user_id,
            exclude_id=destination.id,
        )
        if not destination.is_public:
            if any(match.owner_id is not None and match.owner_id == destination.owner_id for match in matches):
                raise DuplicateConflict("There is already a Destination with the following information")
            return []

        if any(match.is_public for match in matches):
            raise DuplicateConflict("There is already a Destination with the following information")
        return [match.id for match in matches]

    def merge(self, target: Destination, duplicate_ids: List[int], now: Optional[datetime] = None) -> None:
        """Move photo links onto ``target`` and soft delete the duplicates.

        Runs inside the caller's transaction.
        """
        if not duplicate_ids:
            return

        expiry = undo_expiry(now)
        for duplicate_id in duplicate_ids:
            links = self.store.find_by(
                DestinationPhoto,
                DestinationPhoto.destination_id == duplicate_id,
                include_deleted=True,
            )
            for link in links:
                link.destination_id = target.id
                self.store.save(link)

            duplicate = self.store.find_by_id(Destination, duplicate_id)
            if duplicate is not None:
                self.store.soft_delete(duplicate, expiry)
            logger.info(
                f"Merged destination {duplicate_id} into {target.id}, moved {len(links)} photo links"
            )
