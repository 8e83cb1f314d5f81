from types import SimpleNamespace

import pytest

from jsonapi_ops.errors import (
    InternalError,
    LocalIdConflictError,
    LocalIdNotAvailableError,
    LocalIdTypeMismatchError,
    LocalIdUsedWhileDefiningError,
)
from jsonapi_ops.local_ids import LocalIdTracker, LocalIdValidator
from jsonapi_ops.operations import CreateResource, DeleteResource, RelationshipData, ResourceIdentity, UpdateRelationship

COMPANIES = SimpleNamespace(name="recordCompanies")
TRACKS = SimpleNamespace(name="musicTracks")
OWNED_BY = SimpleNamespace(name="ownedBy", to_many=False)
PARENT = SimpleNamespace(name="parent", to_many=False)


def _create(index: int, resource_type: SimpleNamespace, lid: str = None, relationships: tuple = ()) -> CreateResource:
    return CreateResource(
        index=index,
        resource_type=resource_type,
        identity=ResourceIdentity(resource_type, lid=lid),
        meta=None,
        attributes={},
        relationships=relationships,
    )


def test_declare_then_resolve() -> None:
    tracker = LocalIdTracker()
    tracker.declare("c1", "recordCompanies")
    tracker.assign("c1", "recordCompanies", "7")

    assert tracker.resolve("c1", "recordCompanies") == "7"


def test_declare_twice_conflicts_regardless_of_type() -> None:
    tracker = LocalIdTracker()
    tracker.declare("x", "playlists")

    with pytest.raises(LocalIdConflictError) as exc_info:
        tracker.declare("x", "musicTracks")
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "Another local ID with name 'x' is already defined at this point."


def test_resolve_undeclared_or_unassigned() -> None:
    tracker = LocalIdTracker()
    with pytest.raises(LocalIdNotAvailableError):
        tracker.resolve("missing", "playlists")

    tracker.declare("p1", "playlists")
    with pytest.raises(LocalIdNotAvailableError) as exc_info:
        tracker.resolve("p1", "playlists")
    assert exc_info.value.title == "Server-generated value for local ID is not available at this point."


def test_check_type_names_both_types() -> None:
    tracker = LocalIdTracker()
    tracker.declare("c1", "recordCompanies")

    with pytest.raises(LocalIdTypeMismatchError) as exc_info:
        tracker.check_type("c1", "musicTracks")
    assert exc_info.value.detail == "Local ID 'c1' belongs to resource type 'recordCompanies' instead of 'musicTracks'."


def test_check_type_of_undeclared_lid_is_deferred_to_resolve() -> None:
    LocalIdTracker().check_type("unknown", "musicTracks")


def test_assign_requires_declaration_and_single_assignment() -> None:
    tracker = LocalIdTracker()
    with pytest.raises(InternalError):
        tracker.assign("t1", "musicTracks", "1")

    tracker.declare("t1", "musicTracks")
    tracker.assign("t1", "musicTracks", "1")
    with pytest.raises(InternalError):
        tracker.assign("t1", "musicTracks", "2")


def test_reset_discards_bindings() -> None:
    tracker = LocalIdTracker()
    tracker.declare("t1", "musicTracks")
    tracker.reset()

    assert tracker.is_empty()
    tracker.declare("t1", "musicTracks")


def test_validator_accepts_forward_reference_to_earlier_operation() -> None:
    operations = [
        _create(0, COMPANIES, lid="company-1"),
        _create(1, TRACKS, relationships=(RelationshipData(OWNED_BY, ResourceIdentity(COMPANIES, lid="company-1")),)),
    ]
    tracker = LocalIdTracker()

    LocalIdValidator(tracker).validate(operations)

    assert tracker.is_empty()


def test_validator_rejects_use_before_definition() -> None:
    operations = [
        _create(0, TRACKS, relationships=(RelationshipData(OWNED_BY, ResourceIdentity(COMPANIES, lid="company-1")),)),
        _create(1, COMPANIES, lid="company-1"),
    ]

    with pytest.raises(LocalIdNotAvailableError) as exc_info:
        LocalIdValidator().validate(operations)
    assert exc_info.value.pointer == "/atomic:operations[0]"


def test_validator_rejects_duplicate_declaration() -> None:
    operations = [_create(0, COMPANIES, lid="p1"), _create(1, COMPANIES, lid="p1")]

    with pytest.raises(LocalIdConflictError) as exc_info:
        LocalIdValidator().validate(operations)
    assert exc_info.value.pointer == "/atomic:operations[1]"


def test_validator_rejects_self_reference() -> None:
    parent = RelationshipData(PARENT, ResourceIdentity(COMPANIES, lid="c1"))
    operations = [_create(0, COMPANIES, lid="c1", relationships=(parent,))]

    with pytest.raises(LocalIdUsedWhileDefiningError) as exc_info:
        LocalIdValidator().validate(operations)
    assert exc_info.value.pointer == "/atomic:operations[0]"
    assert exc_info.value.detail == "Local ID 'c1' cannot be both defined and used within the same operation."


def test_validator_rejects_type_mismatch() -> None:
    operations = [
        _create(0, COMPANIES, lid="c1"),
        DeleteResource(index=1, resource_type=TRACKS, identity=ResourceIdentity(TRACKS, lid="c1"), meta=None),
    ]

    with pytest.raises(LocalIdTypeMismatchError) as exc_info:
        LocalIdValidator().validate(operations)
    assert exc_info.value.pointer == "/atomic:operations[1]"


def test_validator_checks_relationship_targets() -> None:
    operations = [
        _create(0, TRACKS, lid="t1"),
        UpdateRelationship(
            index=1,
            resource_type=TRACKS,
            identity=ResourceIdentity(TRACKS, lid="t1"),
            meta=None,
            relationship=RelationshipData(OWNED_BY, ResourceIdentity(COMPANIES, lid="nope")),
        ),
    ]

    with pytest.raises(LocalIdNotAvailableError) as exc_info:
        LocalIdValidator().validate(operations)
    assert exc_info.value.detail == "Server-generated value for local ID 'nope' is not available at this point."
