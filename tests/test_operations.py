"""
End to end tests of the atomic operations endpoint
"""
import datetime
import json

from .conftest import ATOMIC_CONTENT_TYPE
from .models import Lyric, MusicTrack, Performer, Playlist, RecordCompany, db

TRACK_ID = "8dd7ab31-bd1e-4d3a-b4a6-5f4cd4d1b1f6"


def first_error(response) -> dict:
    body = response.get_json()
    assert len(body["errors"]) == 1
    return body["errors"][0]


def test_create_resources_linked_by_local_id(post_operations) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "recordCompanies", "lid": "company-1", "attributes": {"name": "Sony"}}},
            {
                "op": "add",
                "data": {
                    "type": "musicTracks",
                    "attributes": {"title": "Thriller"},
                    "relationships": {"ownedBy": {"data": {"type": "recordCompanies", "lid": "company-1"}}},
                },
            },
        ]
    )

    assert response.status_code == 200
    assert response.headers["Content-Type"] == ATOMIC_CONTENT_TYPE
    body = response.get_json()
    assert body["jsonapi"] == {"version": "1.1", "ext": ["https://jsonapi.org/ext/atomic"]}
    company_data, track_data = [result["data"] for result in body["atomic:results"]]
    assert "lid" not in company_data
    assert "lid" not in track_data
    assert company_data["type"] == "recordCompanies"
    assert company_data["attributes"] == {"name": "Sony", "countryOfResidence": None}
    assert track_data["attributes"]["title"] == "Thriller"
    assert track_data["relationships"]["ownedBy"]["data"] == {"type": "recordCompanies", "id": company_data["id"]}

    track = db.session.get(MusicTrack, track_data["id"])
    assert str(track.ownedBy.id) == company_data["id"]


def test_local_id_declared_twice(post_operations) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "playlists", "lid": "p1", "attributes": {"name": "Road trip"}}},
            {"op": "add", "data": {"type": "playlists", "lid": "p1", "attributes": {"name": "Workout"}}},
        ]
    )

    assert response.status_code == 400
    error = first_error(response)
    assert error["title"] == "Another local ID with the same name is already defined at this point."
    assert error["source"]["pointer"] == "/atomic:operations[1]"
    assert db.session.query(Playlist).count() == 0


def test_local_id_used_while_defining(post_operations) -> None:
    response = post_operations(
        [
            {
                "op": "add",
                "data": {
                    "type": "recordCompanies",
                    "lid": "c1",
                    "attributes": {"name": "Sony"},
                    "relationships": {"parent": {"data": {"type": "recordCompanies", "lid": "c1"}}},
                },
            }
        ]
    )

    assert response.status_code == 400
    error = first_error(response)
    assert error["title"] == "Local ID cannot be both defined and used within the same operation."
    assert error["detail"] == "Local ID 'c1' cannot be both defined and used within the same operation."
    assert error["source"]["pointer"] == "/atomic:operations[0]"


def test_local_id_errors_are_reported_before_anything_executes(post_operations) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "playlists", "attributes": {"name": "Road trip"}}},
            {"op": "remove", "ref": {"type": "playlists", "lid": "unknown"}},
        ]
    )

    assert response.status_code == 400
    assert first_error(response)["source"]["pointer"] == "/atomic:operations[1]"
    assert db.session.query(Playlist).count() == 0


def test_first_failing_operation_aborts_the_batch(post_operations) -> None:
    response = post_operations(
        [
            {"op": "remove", "ref": {"type": "playlists", "id": "99"}},
            {"op": "add", "data": {"type": "playlists", "attributes": {"name": "Road trip"}}},
        ]
    )

    assert response.status_code == 404
    error = first_error(response)
    assert error["title"] == "The requested resource does not exist."
    assert error["detail"] == "Resource of type 'playlists' with ID '99' does not exist."
    assert error["source"]["pointer"] == "/atomic:operations[0]"
    assert db.session.query(Playlist).count() == 0


def test_earlier_writes_are_rolled_back(post_operations) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "playlists", "attributes": {"name": "Road trip"}}},
            {"op": "add", "data": {"type": "recordCompanies", "attributes": {"name": "EMI"}}},
            {"op": "update", "data": {"type": "musicTracks", "id": TRACK_ID, "attributes": {"genre": "Pop"}}},
        ]
    )

    assert response.status_code == 404
    assert first_error(response)["source"]["pointer"] == "/atomic:operations[2]"
    assert db.session.query(Playlist).count() == 0
    assert db.session.query(RecordCompany).count() == 0


def test_conflicting_id_values(post_operations, track) -> None:
    response = post_operations(
        [
            {
                "op": "update",
                "ref": {"type": "musicTracks", "id": TRACK_ID},
                "data": {"type": "musicTracks", "id": "other-id", "attributes": {"genre": "Pop"}},
            }
        ]
    )

    assert response.status_code == 409
    error = first_error(response)
    assert error["title"] == "Failed to deserialize request body: Conflicting 'id' values found."
    assert error["detail"] == f"Expected '{TRACK_ID}' instead of 'other-id'."
    assert error["source"]["pointer"] == "/atomic:operations[0]/data/id"
    assert db.session.get(MusicTrack, TRACK_ID).genre == "Rock"


def test_create_then_remove_by_local_id(post_operations) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "musicTracks", "lid": "t1", "attributes": {"title": "Yesterday"}}},
            {"op": "remove", "ref": {"type": "musicTracks", "lid": "t1"}},
        ]
    )

    assert response.status_code == 200
    first, second = response.get_json()["atomic:results"]
    assert first["data"]["attributes"]["title"] == "Yesterday"
    assert second == {"data": None}
    assert db.session.get(MusicTrack, first["data"]["id"]) is None


def test_update_without_side_effects_has_no_content(post_operations, track) -> None:
    response = post_operations([{"op": "update", "data": {"type": "musicTracks", "id": TRACK_ID, "attributes": {"genre": "Pop"}}}])

    assert response.status_code == 204
    assert response.data == b""
    assert db.session.get(MusicTrack, TRACK_ID).genre == "Pop"


def test_update_with_side_effects_returns_the_resource(post_operations) -> None:
    lyric = Lyric(text="Is this the real life?", format="txt")
    db.session.add(lyric)
    db.session.commit()

    response = post_operations([{"op": "update", "data": {"type": "lyrics", "id": str(lyric.id), "attributes": {"text": "  Mama  "}}}])

    assert response.status_code == 200
    (result,) = response.get_json()["atomic:results"]
    assert result["data"]["attributes"]["text"] == "Mama"


def test_results_are_aligned_with_operations(post_operations, track) -> None:
    response = post_operations(
        [
            {"op": "update", "data": {"type": "musicTracks", "id": TRACK_ID, "attributes": {"genre": "Pop"}}},
            {"op": "add", "data": {"type": "playlists", "attributes": {"name": "Favorites"}}},
            {"op": "update", "ref": {"type": "musicTracks", "id": TRACK_ID, "relationship": "ownedBy"}, "data": None},
        ]
    )

    assert response.status_code == 200
    results = response.get_json()["atomic:results"]
    assert len(results) == 3
    assert results[0] == {"data": None}
    assert results[1]["data"]["type"] == "playlists"
    assert results[2] == {"data": None}


def test_create_with_client_id_without_side_effects(post_operations) -> None:
    response = post_operations([{"op": "add", "data": {"type": "performers", "id": "5", "attributes": {"artistName": "Prince"}}}])

    assert response.status_code == 204
    assert db.session.get(Performer, 5).artistName == "Prince"


def test_create_with_existing_client_id(post_operations) -> None:
    db.session.add(Performer(id=5, artistName="Prince"))
    db.session.commit()

    response = post_operations([{"op": "add", "data": {"type": "performers", "id": "5", "attributes": {"artistName": "Madonna"}}}])

    assert response.status_code == 409
    error = first_error(response)
    assert error["title"] == "Another resource with the specified ID already exists."
    assert error["source"]["pointer"] == "/atomic:operations[0]"


def test_sparse_fieldsets(post_operations) -> None:
    response = post_operations(
        [{"op": "add", "data": {"type": "musicTracks", "attributes": {"title": "Imagine", "genre": "Pop"}}}],
        query_string={"fields[musicTracks]": "title"},
    )

    assert response.status_code == 200
    (result,) = response.get_json()["atomic:results"]
    assert result["data"]["attributes"] == {"title": "Imagine"}
    assert "relationships" not in result["data"]


def test_data_store_failure(post_operations) -> None:
    response = post_operations([{"op": "add", "data": {"type": "musicTracks", "attributes": {"genre": "Pop"}}}])

    assert response.status_code == 422
    error = first_error(response)
    assert error["title"] == "Failed to persist changes in the underlying data store."
    assert error["source"]["pointer"] == "/atomic:operations[0]"
    assert db.session.query(MusicTrack).count() == 0


def test_max_operations_is_configurable(app, post_operations) -> None:
    app.config["MAX_OPERATIONS_PER_REQUEST"] = 2
    operations = [{"op": "add", "data": {"type": "playlists", "attributes": {"name": str(i)}}} for i in range(3)]

    response = post_operations(operations)

    assert response.status_code == 413
    assert first_error(response)["source"]["pointer"] == "/atomic:operations"


def test_request_body_in_errors(app, post_operations) -> None:
    app.config["INCLUDE_REQUEST_BODY_IN_ERRORS"] = True
    operations = [{"op": "remove", "ref": {"type": "playlists", "id": "99"}}]

    response = post_operations(operations)

    error = first_error(response)
    assert json.loads(error["meta"]["requestBody"]) == {"atomic:operations": operations}


def test_request_body_is_omitted_by_default(post_operations) -> None:
    response = post_operations([{"op": "remove", "ref": {"type": "playlists", "id": "99"}}])

    assert "meta" not in first_error(response)


def test_plain_json_content_type_is_accepted(post_operations) -> None:
    response = post_operations([{"op": "add", "data": {"type": "playlists", "attributes": {"name": "x"}}}], content_type="application/json")

    assert response.status_code == 200


def test_unsupported_media_type(post_operations) -> None:
    response = post_operations([{"op": "add", "data": {"type": "playlists", "attributes": {"name": "x"}}}], content_type="text/plain")
    assert response.status_code == 415

    response = post_operations(
        [{"op": "add", "data": {"type": "playlists", "attributes": {"name": "x"}}}],
        content_type='application/vnd.api+json; ext="https://example.com/ext/other"',
    )
    assert response.status_code == 415
    assert db.session.query(Playlist).count() == 0


def test_request_body_must_be_an_object(client) -> None:
    response = client.post("/operations", data="[1, 2]", content_type=ATOMIC_CONTENT_TYPE)

    assert response.status_code == 400
    assert first_error(response)["title"] == "Invalid request body."


def test_missing_operations(client) -> None:
    response = client.post("/operations", data=json.dumps({"data": []}), content_type=ATOMIC_CONTENT_TYPE)

    assert response.status_code == 422
    assert first_error(response)["title"] == "Failed to deserialize request body: No operations found."


def test_results_only_carry_data(post_operations, track) -> None:
    response = post_operations(
        [
            {"op": "add", "data": {"type": "playlists", "attributes": {"name": "Favorites"}}, "meta": {"source": "test"}},
            {"op": "update", "data": {"type": "musicTracks", "id": TRACK_ID, "attributes": {"genre": "Pop"}}},
        ]
    )

    assert response.status_code == 200
    assert [set(result) for result in response.get_json()["atomic:results"]] == [{"data"}, {"data"}]


def test_update_with_utc_datetime_has_no_content(post_operations, track) -> None:
    response = post_operations(
        [{"op": "update", "data": {"type": "musicTracks", "id": TRACK_ID, "attributes": {"releasedAt": "1975-10-31T10:00:00Z"}}}]
    )

    assert response.status_code == 204
    assert db.session.get(MusicTrack, TRACK_ID).releasedAt.replace(tzinfo=None) == datetime.datetime(1975, 10, 31, 10, 0)
