import pytest

from travel_planner.core.errors import DuplicateConflict
from travel_planner.models import Destination, DestinationPhoto, PersonalPhoto
from travel_planner.services.duplicates import DestinationDraft, DuplicateResolver
from travel_planner.services.lifecycle import undo_expiry


@pytest.fixture
def resolver(store):
    return DuplicateResolver(store)


@pytest.fixture
def make_destination(store, lookups, users):
    def make(name="Test City", owner="traveller", is_public=False, country="Peru"):
        destination = Destination(
            name=name,
            type_id=lookups["types"]["City"],
            country_id=lookups["countries"][country],
            owner_id=users[owner] if owner else None,
            is_public=is_public,
        )
        return store.save(destination)
    return make


def draft_for(lookups, users, name="Test City", owner="other", is_public=False, country="Peru"):
    return DestinationDraft(
        name=name,
        type_id=lookups["types"]["City"],
        country_id=lookups["countries"][country],
        owner_id=users[owner],
        is_public=is_public,
    )


def test_names_match_case_insensitively(resolver, make_destination, lookups, users):
    existing = make_destination(name="Test City")

    matches = resolver.find_duplicates(draft_for(lookups, users, name="tEST cITY"), users["other"])

    assert [match.id for match in matches] == [existing.id]


def test_different_country_is_not_a_duplicate(resolver, make_destination, lookups, users):
    make_destination(name="Test City", country="Peru")

    assert resolver.find_duplicates(draft_for(lookups, users, country="Japan"), users["other"]) == []


def test_create_conflicts_with_public_match(resolver, make_destination, lookups, users):
    make_destination(is_public=True)

    with pytest.raises(DuplicateConflict):
        resolver.check_create(draft_for(lookups, users, is_public=True), users["other"])


def test_create_conflicts_with_own_private_match(resolver, make_destination, lookups, users):
    make_destination(owner="other")

    with pytest.raises(DuplicateConflict):
        resolver.check_create(draft_for(lookups, users, owner="other"), users["other"])


def test_create_allows_private_match_of_another_user(resolver, make_destination, lookups, users):
    make_destination(owner="traveller")

    resolver.check_create(draft_for(lookups, users, owner="other"), users["other"])


def test_soft_deleted_rows_are_ignored(resolver, make_destination, store, lookups, users):
    existing = make_destination(is_public=True)
    store.soft_delete(existing, undo_expiry())

    resolver.check_create(draft_for(lookups, users, is_public=True), users["other"])


def test_update_rejects_second_public_destination(resolver, make_destination, users):
    make_destination(owner="traveller", is_public=True)
    updated = make_destination(owner="other", is_public=False)
    updated.is_public = True

    with pytest.raises(DuplicateConflict):
        resolver.resolve_update(updated, users["other"])


def test_private_update_absorbs_nothing(resolver, make_destination, users):
    make_destination(owner="traveller")
    updated = make_destination(owner="other")

    assert resolver.resolve_update(updated, users["other"]) == []


def test_public_update_merges_private_duplicates(resolver, make_destination, store, users):
    duplicate = make_destination(owner="traveller")
    photo = store.save(PersonalPhoto(filename_hash="abc.png", owner_id=users["traveller"], is_public=True))
    link = store.save(DestinationPhoto(destination_id=duplicate.id, personal_photo_id=photo.id))
    target = make_destination(owner="other", is_public=True)

    with store.transaction():
        duplicate_ids = resolver.resolve_update(target, users["other"])
        resolver.merge(target, duplicate_ids)

    assert duplicate_ids == [duplicate.id]
    assert store.find_by_id(DestinationPhoto, link.id).destination_id == target.id
    assert store.find_by_id(Destination, duplicate.id) is None
    assert store.find_by_id(Destination, duplicate.id, include_deleted=True).is_deleted


def test_private_update_onto_own_public_destination_conflicts(resolver, make_destination, users):
    make_destination(owner="traveller", is_public=True)
    updated = make_destination(name="Somewhere Else", owner="traveller")
    updated.name = "Test City"

    with pytest.raises(DuplicateConflict):
        resolver.resolve_update(updated, users["traveller"])


def test_non_ascii_names_match_themselves(resolver, make_destination, lookups, users):
    make_destination(name="Évian", is_public=True)

    with pytest.raises(DuplicateConflict):
        resolver.check_create(draft_for(lookups, users, name="Évian"), users["other"])


def test_restore_conflicts_with_newer_public_destination(resolver, make_destination, store, users):
    deleted = make_destination(owner="traveller", is_public=True)
    store.soft_delete(deleted, undo_expiry())
    make_destination(owner="other", is_public=True)

    with pytest.raises(DuplicateConflict):
        resolver.check_restore(deleted, users["traveller"])


def test_restore_without_newer_match_is_allowed(resolver, make_destination, store, users):
    deleted = make_destination(owner="traveller", is_public=True)
    store.soft_delete(deleted, undo_expiry())

    resolver.check_restore(deleted, users["traveller"])
