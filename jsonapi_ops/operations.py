"""
Typed atomic operations

The deserializer converts every element of the "atomic:operations" array into one of:
- CreateResource:          {"op": "add", "data": {resource object}}
- UpdateResource:          {"op": "update", "data": {resource object}} or with a "ref" to the resource
- DeleteResource:          {"op": "remove", "ref": {type, id/lid}}
- UpdateRelationship:      {"op": "update", "ref": {type, id/lid, relationship}, "data": ...}
- AddToRelationship:       {"op": "add", "ref": {type, id/lid, relationship}, "data": [...]}
- RemoveFromRelationship:  {"op": "remove", "ref": {type, id/lid, relationship}, "data": [...]}

Operations are immutable, resolving local ids produces new operation instances.
"""
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class ResourceIdentity:
    """
    Reference to a resource: the type and either the server "id" or the local "lid"
    """

    resource_type: Any  # ResourceType
    id: Optional[str] = None
    lid: Optional[str] = None

    @property
    def type_name(self) -> str:
        return self.resource_type.name

    @property
    def is_local(self) -> bool:
        return self.id is None and self.lid is not None

    def with_id(self, server_id: str) -> "ResourceIdentity":
        return replace(self, id=server_id, lid=None)

    def to_dict(self) -> dict:
        if self.id is not None:
            return {"type": self.type_name, "id": self.id}
        return {"type": self.type_name, "lid": self.lid}


RelatedData = Union[None, ResourceIdentity, Tuple[ResourceIdentity, ...]]


@dataclass(frozen=True)
class RelationshipData:
    """
    The new value of a relationship: None or an identity for to-one relationships,
    a tuple of identities for to-many relationships
    """

    field: Any  # RelField
    data: RelatedData

    @property
    def name(self) -> str:
        return self.field.name

    def identities(self) -> Iterator[ResourceIdentity]:
        if isinstance(self.data, tuple):
            yield from self.data
        elif self.data is not None:
            yield self.data

    def map_identities(self, func: Callable[[ResourceIdentity], ResourceIdentity]) -> "RelationshipData":
        if isinstance(self.data, tuple):
            return replace(self, data=tuple(func(item) for item in self.data))
        if self.data is None:
            return self
        return replace(self, data=func(self.data))


@dataclass(frozen=True)
class Operation:
    """
    Fields shared by all operations:
    - index: zero based position in the "atomic:operations" array
    - resource_type: ResourceType of the targeted resource
    - identity: the targeted resource, for a create this holds the client id or the declared lid
    - meta: the operation "meta" object
    """

    index: int
    resource_type: Any
    identity: ResourceIdentity
    meta: Optional[Dict[str, Any]]

    op_code = None

    @property
    def pointer(self) -> str:
        return f"/atomic:operations[{self.index}]"

    @property
    def declared_lid(self) -> Optional[str]:
        """
        :return: the local id defined by this operation
        """
        return None

    def relationship_data(self) -> Iterator[RelationshipData]:
        return iter(())

    def references(self) -> Iterator[ResourceIdentity]:
        """
        :return: the resources this operation refers to (and which must exist before it executes)
        """
        yield self.identity
        for rel_data in self.relationship_data():
            yield from rel_data.identities()

    def map_references(self, func: Callable[[ResourceIdentity], ResourceIdentity]) -> "Operation":
        """
        :return: a copy of the operation with `func` applied to every reference
        """
        return replace(self, identity=func(self.identity))


@dataclass(frozen=True)
class _ResourceOperation(Operation):
    attributes: Dict[str, Any]
    relationships: Tuple[RelationshipData, ...]

    def relationship_data(self):
        return iter(self.relationships)

    def map_references(self, func):
        result = super().map_references(func)
        return replace(result, relationships=tuple(rel.map_identities(func) for rel in self.relationships))


@dataclass(frozen=True)
class CreateResource(_ResourceOperation):
    op_code = "add"

    @property
    def declared_lid(self):
        return self.identity.lid

    def references(self):
        # the identity is declared by this operation, not referenced
        for rel_data in self.relationships:
            yield from rel_data.identities()

    def map_references(self, func):
        return replace(self, relationships=tuple(rel.map_identities(func) for rel in self.relationships))


@dataclass(frozen=True)
class UpdateResource(_ResourceOperation):
    op_code = "update"


@dataclass(frozen=True)
class DeleteResource(Operation):
    op_code = "remove"


@dataclass(frozen=True)
class _RelationshipOperation(Operation):
    relationship: RelationshipData

    def relationship_data(self):
        return iter((self.relationship,))

    def map_references(self, func):
        result = super().map_references(func)
        return replace(result, relationship=self.relationship.map_identities(func))


@dataclass(frozen=True)
class UpdateRelationship(_RelationshipOperation):
    op_code = "update"


@dataclass(frozen=True)
class AddToRelationship(_RelationshipOperation):
    op_code = "add"


@dataclass(frozen=True)
class RemoveFromRelationship(_RelationshipOperation):
    op_code = "remove"
