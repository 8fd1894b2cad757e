"""
Traveller-type proposals for public destinations.

    Pending -> Accepted (hard deleted, no undo)
    Pending -> Rejected (soft deleted) -> Pending (undo) | Purged
"""

from typing import Iterable, List, Optional
import logging

from travel_planner.auth.middleware import CurrentUser
from travel_planner.core.config import settings
from travel_planner.core.errors import BadRequest, Forbidden, NotFound
from travel_planner.models import Destination, DestinationProposal, User
from travel_planner.services.lifecycle import LifecycleManager
from travel_planner.services.lookups import resolve_traveller_types
from travel_planner.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


class ProposalWorkflow:
    def __init__(self, store: EntityStore, lifecycle: LifecycleManager):
        self.store = store
        self.lifecycle = lifecycle

    def require_user(self, user_id: int) -> User:
        user = self.store.find_by_id(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def create(self, destination_id: int, author_id: int, traveller_type_ids: Iterable[int]) -> DestinationProposal:
        author = self.require_user(author_id)

        destination = self.store.find_by_id(Destination, destination_id)
        if destination is None:
            raise NotFound("Destination not found")
        if not destination.is_public:
            raise Forbidden("Destination is not public")

        proposal = DestinationProposal(destination_id=destination.id, user_id=author.id)
        proposal.traveller_types = resolve_traveller_types(self.store, traveller_type_ids)
        self.store.save(proposal)
        logger.info(f"User {author_id} proposed traveller types for destination {destination_id}")
        return proposal

    def get(self, proposal_id: int) -> DestinationProposal:
        proposal = self.store.find_by_id(DestinationProposal, proposal_id)
        if proposal is None:
            raise NotFound("The proposal with the given ID does not exist.")
        return proposal

    def list(self, page: int = 1) -> List[DestinationProposal]:
        if page < 1:
            raise BadRequest("Page must be 1 or greater")
        page_size = settings.proposals_page_size
        return self.store.find_by(
            DestinationProposal,
            order_by=DestinationProposal.id,
            offset=(page - 1) * page_size,
            limit=page_size,
        )

    def modify(self, proposal_id: int, traveller_type_ids: Iterable[int]) -> DestinationProposal:
        proposal = self.store.find_by_id(DestinationProposal, proposal_id)
        if proposal is None:
            raise NotFound("Destination proposal not found")

        proposal.traveller_types = resolve_traveller_types(self.store, traveller_type_ids)
        return self.store.save(proposal)

    def accept(self, proposal_id: int) -> Destination:
        """Apply the proposed traveller types and remove the proposal for good."""
        proposal = self.store.find_by_id(DestinationProposal, proposal_id)
        if proposal is None:
            raise NotFound("Proposal could not be found")

        with self.store.transaction():
            destination = self.store.find_by_id(Destination, proposal.destination_id)
            if destination is None:
                raise NotFound("Destination not found")
            destination.traveller_types = list(proposal.traveller_types)
            self.store.save(destination)
            self.store.purge(proposal)

        logger.info(f"Accepted proposal {proposal_id} for destination {destination.id}")
        return destination

    def reject(self, proposal_id: int, user: CurrentUser) -> DestinationProposal:
        proposal = self.store.find_by_id(DestinationProposal, proposal_id)
        if proposal is None:
            raise NotFound("The destination proposal you want to reject does not exist.")
        return self.lifecycle.delete(proposal, user)

    def undo_reject(self, proposal_id: int, user: CurrentUser) -> DestinationProposal:
        proposal: Optional[DestinationProposal] = self.store.find_by_id(
            DestinationProposal, proposal_id, include_deleted=True
        )
        return self.lifecycle.undo(proposal, user, label="destination proposal")
