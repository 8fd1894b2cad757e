from fastapi import Depends
from sqlalchemy.orm import Session

from travel_planner.core.config import settings
from travel_planner.core.database import get_db
from travel_planner.services.duplicates import DuplicateResolver
from travel_planner.services.lifecycle import LifecycleManager
from travel_planner.services.photo_storage import PhotoStorage
from travel_planner.services.proposals import ProposalWorkflow
from travel_planner.store.entity_store import EntityStore


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


def get_photo_storage() -> PhotoStorage:
    return PhotoStorage(settings.photo_storage_dir)


def get_lifecycle(
    store: EntityStore = Depends(get_store),
    photo_storage: PhotoStorage = Depends(get_photo_storage),
) -> LifecycleManager:
    return LifecycleManager(store, photo_storage)


def get_resolver(store: EntityStore = Depends(get_store)) -> DuplicateResolver:
    return DuplicateResolver(store)


def get_workflow(
    store: EntityStore = Depends(get_store),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
) -> ProposalWorkflow:
    return ProposalWorkflow(store, lifecycle)
