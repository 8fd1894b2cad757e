from fastapi import APIRouter, Depends
from typing import List

from travel_planner.api.dependencies import get_store
from travel_planner.api.destinations import CountryResponse, LookupResponse
from travel_planner.auth.middleware import get_current_user, CurrentUser
from travel_planner.models import Country, DestinationType, TravellerType
from travel_planner.store.entity_store import EntityStore

router = APIRouter(tags=["lookups"])


@router.get("/destinations/countries", response_model=List[CountryResponse])
async def get_countries(
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    return [CountryResponse.model_validate(country) for country in store.find_by(Country, order_by=Country.name)]


@router.get("/destinations/types", response_model=List[LookupResponse])
async def get_destination_types(
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    types = store.find_by(DestinationType, order_by=DestinationType.id)
    return [LookupResponse.model_validate(destination_type) for destination_type in types]


@router.get("/travellertypes", response_model=List[LookupResponse])
async def get_traveller_types(
    store: EntityStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    types = store.find_by(TravellerType, order_by=TravellerType.id)
    return [LookupResponse.model_validate(traveller_type) for traveller_type in types]
