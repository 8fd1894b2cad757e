from datetime import timedelta

from travel_planner.services.lifecycle import utc_now
from travel_planner.tasks.purge import run_purge_sweep


def test_requires_authentication(client):
    response = client.get("/destinations")

    assert response.status_code == 401
    assert "request_id" in response.json()


def test_create_returns_created_destination(client, headers, users, destination_payload, lookups):
    payload = destination_payload(traveller_type_ids=[lookups["traveller_types"]["Gap Year"]])

    response = client.post(f"/users/{users['traveller']}/destinations", json=payload, headers=headers["traveller"])

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Test City"
    assert body["owner_id"] == users["traveller"]
    assert body["country"]["name"] == "Peru"
    assert [t["name"] for t in body["traveller_types"]] == ["Gap Year"]


def test_create_with_missing_fields_is_bad_request(client, headers, users):
    response = client.post(f"/users/{users['traveller']}/destinations", json={"name": "Nowhere"},
                           headers=headers["traveller"])

    assert response.status_code == 400


def test_create_with_unknown_country_is_bad_request(client, headers, users, destination_payload):
    payload = destination_payload()
    payload["country_id"] = 9999

    response = client.post(f"/users/{users['traveller']}/destinations", json=payload, headers=headers["traveller"])

    assert response.status_code == 400


def test_create_for_another_user_needs_admin(client, headers, users, destination_payload):
    url = f"/users/{users['other']}/destinations"

    assert client.post(url, json=destination_payload(), headers=headers["traveller"]).status_code == 403
    assert client.post(url, json=destination_payload(), headers=headers["admin"]).status_code == 201


def test_public_duplicate_is_conflict(client, create_destination, headers, users, destination_payload):
    create_destination(owner="traveller", is_public=True)

    response = client.post(
        f"/users/{users['other']}/destinations",
        json=destination_payload(name="test city", is_public=True),
        headers=headers["other"],
    )

    assert response.status_code == 409


def test_private_duplicates_of_different_users_coexist(create_destination):
    first = create_destination(owner="traveller")
    second = create_destination(owner="other")

    assert first["id"] != second["id"]


def test_listing_shows_public_destinations_by_name(client, create_destination, headers):
    create_destination(name="Zurich", is_public=True)
    create_destination(name="Arequipa", is_public=True)
    create_destination(name="Secret Beach")

    response = client.get("/destinations", headers=headers["other"])

    assert response.status_code == 200
    assert [d["name"] for d in response.json()] == ["Arequipa", "Zurich"]


def test_listing_search_and_offset(client, create_destination, headers):
    for name in ("Lima", "Lisbon", "Cusco"):
        create_destination(name=name, is_public=True)

    search = client.get("/destinations", params={"search": "li"}, headers=headers["other"])
    page = client.get("/destinations", params={"offset": "1"}, headers=headers["other"])
    bad = client.get("/destinations", params={"offset": "abc"}, headers=headers["other"])

    assert [d["name"] for d in search.json()] == ["Lima", "Lisbon"]
    assert [d["name"] for d in page.json()] == ["Lima", "Lisbon"]
    assert bad.status_code == 400


def test_search_wildcards_are_literal(client, create_destination, headers):
    create_destination(name="Lima", is_public=True)

    assert client.get("/destinations", params={"search": "L_ma"}, headers=headers["other"]).json() == []
    assert client.get("/destinations", params={"search": "%a"}, headers=headers["other"]).json() == []


def test_private_destination_is_forbidden_to_others(client, create_destination, headers):
    destination = create_destination(owner="traveller")

    assert client.get(f"/destinations/{destination['id']}", headers=headers["other"]).status_code == 403
    assert client.get(f"/destinations/{destination['id']}", headers=headers["traveller"]).status_code == 200
    assert client.get(f"/destinations/{destination['id']}", headers=headers["admin"]).status_code == 200


def test_unknown_destination_is_not_found(client, headers):
    assert client.get("/destinations/4242", headers=headers["traveller"]).status_code == 404


def test_user_destinations_hide_private_ones_from_others(client, create_destination, headers, users):
    create_destination(name="Open", is_public=True)
    create_destination(name="Hidden")
    url = f"/users/{users['traveller']}/destinations"

    assert [d["name"] for d in client.get(url, headers=headers["traveller"]).json()] == ["Hidden", "Open"]
    assert [d["name"] for d in client.get(url, headers=headers["other"]).json()] == ["Open"]


def test_update_changes_fields(client, create_destination, headers):
    destination = create_destination()

    response = client.put(f"/destinations/{destination['id']}", json={"district": "Miraflores"},
                          headers=headers["traveller"])

    assert response.status_code == 200
    assert response.json()["district"] == "Miraflores"


def test_update_by_stranger_is_forbidden(client, create_destination, headers):
    destination = create_destination()

    response = client.put(f"/destinations/{destination['id']}", json={"district": "X"}, headers=headers["other"])

    assert response.status_code == 403


def test_update_into_public_duplicate_is_bad_request(client, create_destination, headers):
    create_destination(name="Test City", owner="traveller", is_public=True)
    mine = create_destination(name="Almost Test City", owner="other")

    response = client.put(f"/destinations/{mine['id']}", json={"name": "Test City", "is_public": True},
                          headers=headers["other"])

    assert response.status_code == 400
    # Nothing was applied
    unchanged = client.get(f"/destinations/{mine['id']}", headers=headers["other"]).json()
    assert unchanged["name"] == "Almost Test City"
    assert unchanged["is_public"] is False


def test_private_rename_onto_own_public_destination_is_bad_request(client, create_destination, headers):
    create_destination(name="Test City", owner="traveller", is_public=True)
    mine = create_destination(name="Somewhere Else", owner="traveller")

    response = client.put(f"/destinations/{mine['id']}", json={"name": "Test City"}, headers=headers["traveller"])

    assert response.status_code == 400
    unchanged = client.get(f"/destinations/{mine['id']}", headers=headers["traveller"]).json()
    assert unchanged["name"] == "Somewhere Else"


def test_publishing_merges_private_duplicates(client, create_destination, upload_photo, headers, users):
    duplicate = create_destination(owner="traveller")
    photo = upload_photo(owner="traveller")
    link = client.post(f"/destinations/{duplicate['id']}/photos", json={"photo_id": photo["id"]},
                       headers=headers["traveller"])
    assert link.status_code == 201
    mine = create_destination(owner="other")

    response = client.put(f"/destinations/{mine['id']}", json={"is_public": True}, headers=headers["other"])

    assert response.status_code == 200
    assert client.get(f"/destinations/{duplicate['id']}", headers=headers["traveller"]).status_code == 404
    photos = client.get(f"/destinations/{mine['id']}/photos", headers=headers["traveller"]).json()
    assert [p["personal_photo_id"] for p in photos] == [photo["id"]]


def test_trip_by_another_user_clears_owner(client, create_destination, headers, users):
    a = create_destination(name="Test City", owner="traveller", is_public=True)
    b = create_destination(name="Other Place", owner="other", is_public=True)

    response = client.post(
        f"/users/{users['other']}/trips",
        json={"name": "Andes", "destinations": [{"destination_id": a["id"]}, {"destination_id": b["id"]}]},
        headers=headers["other"],
    )
    assert response.status_code == 201

    fetched = client.get(f"/destinations/{a['id']}", headers=headers["third"])
    assert fetched.status_code == 200
    assert fetched.json()["owner_id"] is None
    # The trip owner's own destination keeps its owner
    assert client.get(f"/destinations/{b['id']}", headers=headers["third"]).json()["owner_id"] == users["other"]


def test_delete_undo_and_purge(client, create_destination, headers):
    destination = create_destination(owner="traveller", is_public=True)
    url = f"/destinations/{destination['id']}"

    assert client.delete(url, headers=headers["traveller"]).status_code == 200
    assert client.get(url, headers=headers["traveller"]).status_code == 404
    explicit = client.get(url, params={"include_deleted": "true"}, headers=headers["traveller"])
    assert explicit.status_code == 200
    assert explicit.json()["is_deleted"] is True

    undo = client.put(f"{url}/undodelete", headers=headers["traveller"])
    assert undo.status_code == 200
    listing = client.get("/destinations", headers=headers["traveller"]).json()
    assert destination["id"] in [d["id"] for d in listing]

    assert client.delete(url, headers=headers["traveller"]).status_code == 200
    report = run_purge_sweep(now=utc_now() + timedelta(hours=2))
    assert report.purged["destination"] == 1
    assert client.put(f"{url}/undodelete", headers=headers["traveller"]).status_code == 404


def test_undo_into_public_duplicate_of_another_user_is_conflict(client, create_destination, headers):
    deleted = create_destination(owner="traveller", is_public=True)
    url = f"/destinations/{deleted['id']}"
    assert client.delete(url, headers=headers["traveller"]).status_code == 200
    replacement = create_destination(owner="other", is_public=True)

    response = client.put(f"{url}/undodelete", headers=headers["traveller"])

    assert response.status_code == 409
    listing = client.get("/destinations", params={"search": "Test City"}, headers=headers["third"]).json()
    assert [d["id"] for d in listing] == [replacement["id"]]
    still_deleted = client.get(url, params={"include_deleted": "true"}, headers=headers["traveller"]).json()
    assert still_deleted["is_deleted"] is True


def test_undo_into_own_duplicate_is_conflict(client, create_destination, headers):
    deleted = create_destination(owner="traveller")
    url = f"/destinations/{deleted['id']}"
    assert client.delete(url, headers=headers["traveller"]).status_code == 200
    replacement = create_destination(owner="traveller")

    response = client.put(f"{url}/undodelete", headers=headers["traveller"])

    assert response.status_code == 409
    assert client.get(url, headers=headers["traveller"]).status_code == 404
    assert client.get(f"/destinations/{replacement['id']}", headers=headers["traveller"]).status_code == 200


def test_undo_of_active_destination_is_bad_request(client, create_destination, headers):
    destination = create_destination()

    response = client.put(f"/destinations/{destination['id']}/undodelete", headers=headers["traveller"])

    assert response.status_code == 400


def test_delete_by_stranger_is_forbidden(client, create_destination, headers):
    destination = create_destination(is_public=True)

    assert client.delete(f"/destinations/{destination['id']}", headers=headers["other"]).status_code == 403
    assert client.delete(f"/destinations/{destination['id']}", headers=headers["admin"]).status_code == 200


def test_used_reports_trip_references(client, create_destination, headers, users):
    a = create_destination(name="A Town", is_public=True)
    b = create_destination(name="B Town", is_public=True)
    unused = create_destination(name="C Town", is_public=True)
    client.post(
        f"/users/{users['traveller']}/trips",
        json={"name": "Loop", "destinations": [{"destination_id": a["id"]}, {"destination_id": b["id"]}]},
        headers=headers["traveller"],
    )

    assert client.get(f"/destinations/{a['id']}/used", headers=headers["traveller"]).json() is True
    assert client.get(f"/destinations/{unused['id']}/used", headers=headers["traveller"]).json() is False


def test_lookup_endpoints(client, headers):
    countries = client.get("/destinations/countries", headers=headers["traveller"]).json()
    types = client.get("/destinations/types", headers=headers["traveller"]).json()
    traveller_types = client.get("/travellertypes", headers=headers["traveller"]).json()

    assert countries[0]["name"] == "Australia"
    assert "City" in [t["name"] for t in types]
    assert "Gap Year" in [t["name"] for t in traveller_types]
