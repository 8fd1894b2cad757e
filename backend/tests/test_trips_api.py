import pytest


@pytest.fixture
def stops(create_destination):
    names = ("Lima", "Cusco", "Puno")
    return [create_destination(name=name, is_public=True)["id"] for name in names]


def trip_body(destination_ids, name="Peru loop"):
    return {"name": name, "destinations": [{"destination_id": destination_id} for destination_id in destination_ids]}


def test_create_and_get_trip(client, headers, users, stops):
    created = client.post(f"/users/{users['traveller']}/trips", json=trip_body(stops), headers=headers["traveller"])

    assert created.status_code == 201
    trip_id = created.json()["trip_id"]

    trip = client.get(f"/users/{users['traveller']}/trips/{trip_id}", headers=headers["traveller"]).json()
    assert [stop["destination_id"] for stop in trip["trip_destinations"]] == stops
    assert [stop["position"] for stop in trip["trip_destinations"]] == [0, 1, 2]


def test_trip_needs_two_destinations(client, headers, users, stops):
    response = client.post(f"/users/{users['traveller']}/trips", json=trip_body(stops[:1]),
                           headers=headers["traveller"])

    assert response.status_code == 400


def test_consecutive_duplicates_are_rejected(client, headers, users, stops):
    body = trip_body([stops[0], stops[0], stops[1]])

    assert client.post(f"/users/{users['traveller']}/trips", json=body, headers=headers["traveller"]).status_code == 400


def test_returning_to_a_destination_later_is_allowed(client, headers, users, stops):
    body = trip_body([stops[0], stops[1], stops[0]])

    assert client.post(f"/users/{users['traveller']}/trips", json=body, headers=headers["traveller"]).status_code == 201


def test_unknown_destination_is_bad_request(client, headers, users, stops):
    body = trip_body([stops[0], 9999])

    assert client.post(f"/users/{users['traveller']}/trips", json=body, headers=headers["traveller"]).status_code == 400


def test_someone_elses_private_destination_is_unknown(client, create_destination, headers, users, stops):
    private = create_destination(name="Hideout", owner="other")
    body = trip_body([stops[0], private["id"]])

    assert client.post(f"/users/{users['traveller']}/trips", json=body, headers=headers["traveller"]).status_code == 400


def test_trips_of_another_user_are_forbidden(client, headers, users, stops):
    url = f"/users/{users['traveller']}/trips"

    assert client.post(url, json=trip_body(stops), headers=headers["other"]).status_code == 403
    assert client.get(url, headers=headers["other"]).status_code == 403
    assert client.get(url, headers=headers["admin"]).status_code == 200


def test_update_replaces_stops_and_clears_owner(client, create_destination, headers, users, stops):
    trip_id = client.post(f"/users/{users['traveller']}/trips", json=trip_body(stops[:2]),
                          headers=headers["traveller"]).json()["trip_id"]
    foreign = create_destination(name="Iquitos", owner="other", is_public=True)

    response = client.put(
        f"/users/{users['traveller']}/trips/{trip_id}",
        json=trip_body([stops[1], foreign["id"]], name="Amazon"),
        headers=headers["traveller"],
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Amazon"
    assert [stop["destination_id"] for stop in response.json()["trip_destinations"]] == [stops[1], foreign["id"]]
    assert client.get(f"/destinations/{foreign['id']}", headers=headers["third"]).json()["owner_id"] is None


def test_delete_trip(client, headers, users, stops):
    url = f"/users/{users['traveller']}/trips"
    trip_id = client.post(url, json=trip_body(stops), headers=headers["traveller"]).json()["trip_id"]

    assert client.delete(f"{url}/{trip_id}", headers=headers["other"]).status_code == 403
    assert client.delete(f"{url}/{trip_id}", headers=headers["traveller"]).status_code == 200
    assert client.get(f"{url}/{trip_id}", headers=headers["traveller"]).status_code == 404
    assert client.get(url, headers=headers["traveller"]).json() == []
