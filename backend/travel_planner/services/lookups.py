from typing import Iterable, List

from travel_planner.core.errors import BadRequest
from travel_planner.models import Country, DestinationType, TravellerType
from travel_planner.store.entity_store import EntityStore


def require_destination_type(store: EntityStore, type_id: int) -> DestinationType:
    destination_type = store.find_by_id(DestinationType, type_id)
    if destination_type is None:
        raise BadRequest("One of the fields you have selected does not exist.")
    return destination_type


def require_country(store: EntityStore, country_id: int) -> Country:
    country = store.find_by_id(Country, country_id)
    if country is None:
        raise BadRequest("One of the fields you have selected does not exist.")
    return country


def resolve_traveller_types(store: EntityStore, traveller_type_ids: Iterable[int]) -> List[TravellerType]:
    """Load traveller types by id, rejecting any unknown id."""
    wanted = set(traveller_type_ids or [])
    if not wanted:
        return []
    found = store.find_by(TravellerType, TravellerType.id.in_(wanted), order_by=TravellerType.id)
    missing = wanted - {traveller_type.id for traveller_type in found}
    if missing:
        raise BadRequest(f"Unknown traveller type ids: {sorted(missing)}")
    return found
