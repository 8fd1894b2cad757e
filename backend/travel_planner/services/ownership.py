"""
Ownership transfer for public destinations.

A public destination keeps its creator as owner until another user builds
on it (adds it to a trip or attaches a photo). From then on it is shared,
so the individual owner is cleared.
"""

import logging
from typing import Optional

from travel_planner.models import Destination

logger = logging.getLogger(__name__)


def destination_needs_save(destination: Destination, acting_user_id: Optional[int]) -> bool:
    return (
        destination.is_public
        and destination.owner_id is not None
        and destination.owner_id != acting_user_id
    )


def maybe_clear_owner(destination: Destination, acting_user_id: Optional[int]) -> Destination:
    """Clear the owner of a public destination used by someone else.

    Only mutates the object; the caller persists it. Applying it to a
    destination that is private, ownerless, or owned by the acting user
    leaves it unchanged.
    """
    if destination_needs_save(destination, acting_user_id):
        logger.info(
            f"Clearing owner {destination.owner_id} of destination {destination.id} "
            f"after use by user {acting_user_id}"
        )
        destination.owner_id = None
    return destination
