import pytest
from sqlalchemy.exc import OperationalError

from travel_planner.core.errors import DuplicateConflict, StorageUnavailable
from travel_planner.models import Country, Destination
from travel_planner.services.lifecycle import undo_expiry


@pytest.fixture
def make_destination(lookups, users):
    def make(name="Auckland", owner="traveller", is_public=False):
        return Destination(
            name=name,
            type_id=lookups["types"]["City"],
            country_id=lookups["countries"]["New Zealand"],
            owner_id=users[owner] if owner else None,
            is_public=is_public,
        )
    return make


def test_soft_deleted_rows_are_hidden_by_default(store, make_destination):
    destination = store.save(make_destination())
    store.soft_delete(destination, undo_expiry())

    assert store.find_by_id(Destination, destination.id) is None
    assert store.find_by_id(Destination, destination.id, include_deleted=True) is not None


def test_find_by_orders_and_pages(store):
    names = [country.name for country in store.find_by(Country, order_by=Country.name, offset=1, limit=2)]

    assert names == ["France", "Japan"]


def test_business_key_index_raises_duplicate_conflict(store, make_destination):
    store.save(make_destination(name="Auckland"))

    with pytest.raises(DuplicateConflict):
        store.save(make_destination(name="AUCKLAND"))


def test_soft_deleted_row_frees_the_business_key(store, make_destination):
    first = store.save(make_destination())
    store.soft_delete(first, undo_expiry())

    second = store.save(make_destination())

    assert second.id != first.id


def test_transaction_rolls_back_every_write(store, make_destination):
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.save(make_destination(name="Wellington"))
            raise RuntimeError("boom")

    assert store.find_by(Destination, Destination.name == "Wellington") == []


def test_driver_errors_become_storage_unavailable(store, monkeypatch):
    def fail():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(store.db, "commit", fail)

    with pytest.raises(StorageUnavailable):
        store.save(Country(name="Chile", iso_code="CL"))
