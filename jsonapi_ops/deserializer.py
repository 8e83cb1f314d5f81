"""
Conversion of the "atomic:operations" request document into typed operations

Every element is validated before anything is executed. The error pointers raised here are
relative to the operation element, `parse_document` prefixes them with "/atomic:operations[i]".
"""
import jsonapi_ops
from .errors import (
    AttributeNotAssignableError,
    ClientIdNotAllowedError,
    ConflictingIdValueError,
    ConflictingLidValueError,
    DeserializationError,
    ElementNotAllowedError,
    HrefNotSupportedError,
    IdAndLidMutuallyExclusiveError,
    IdOrLidRequiredError,
    IdRequiredError,
    IncompatibleResourceTypeError,
    InvalidOperationCodeError,
    LidRequiredError,
    MissingOperationsError,
    OperationNotAccessibleError,
    ReadOnlyAttributeError,
    RequiredElementError,
    ResourceIdReadOnlyError,
    ToManyRelationshipRequiredError,
    TooManyOperationsError,
    UnknownAttributeError,
    UnknownRefRelationshipError,
    UnknownRelationshipError,
    UnknownResourceTypeError,
    expected_value,
)
from .operations import (
    AddToRelationship,
    CreateResource,
    DeleteResource,
    RelationshipData,
    RemoveFromRelationship,
    ResourceIdentity,
    UpdateRelationship,
    UpdateResource,
)

OPERATIONS_KEY = "atomic:operations"
OP_CODES = ("add", "update", "remove")

RELATIONSHIP_OPERATIONS = {"add": AddToRelationship, "update": UpdateRelationship, "remove": RemoveFromRelationship}


class OperationParser:
    """
    Parses and validates the operations of a batch against the resource graph
    """

    def __init__(self, resource_graph, allow_unknown_fields=False, max_operations=None):
        """
        :param resource_graph: ResourceGraph of the exposed types
        :param allow_unknown_fields: skip unknown attributes and relationships instead of failing
        :param max_operations: maximum number of operations in a batch, None for unlimited
        """
        self.resource_graph = resource_graph
        self.allow_unknown_fields = allow_unknown_fields
        self.max_operations = max_operations

    def parse_document(self, payload):
        """
        :param payload: decoded request body
        :return: list of operations
        :raises DeserializationError: for the first invalid element
        """
        if not isinstance(payload, dict):
            raise expected_value("an object", payload)
        elements = payload.get(OPERATIONS_KEY)
        if elements is None:
            raise MissingOperationsError()
        if not isinstance(elements, list):
            raise expected_value("an array", elements, f"/{OPERATIONS_KEY}")
        if not elements:
            raise MissingOperationsError(pointer=f"/{OPERATIONS_KEY}")
        if self.max_operations and len(elements) > self.max_operations:
            raise TooManyOperationsError(len(elements), self.max_operations)

        operations = []
        for index, element in enumerate(elements):
            try:
                operations.append(self.parse_operation(element, index))
            except (DeserializationError, OperationNotAccessibleError) as exc:
                raise exc.prefix_pointer(f"/{OPERATIONS_KEY}[{index}]")
        jsonapi_ops.log.debug(f"Parsed {len(operations)} operations")
        return operations

    def parse_operation(self, element, index):
        """
        :param element: an element of the "atomic:operations" array
        :param index: position of the element
        :return: Operation
        """
        if not isinstance(element, dict):
            raise expected_value("an object", element)
        if "href" in element:
            raise HrefNotSupportedError()

        op_code = element.get("op")
        if op_code is None:
            raise RequiredElementError("op")
        if op_code not in OP_CODES:
            raise InvalidOperationCodeError(op_code)

        meta = element.get("meta")
        if meta is not None and not isinstance(meta, dict):
            raise expected_value("an object", meta, "/meta")

        ref = element.get("ref")
        if ref is not None:
            ref_type, ref_identity, rel_field = self._parse_ref(ref)
        else:
            ref_type = ref_identity = rel_field = None

        if op_code == "remove" and ref is None:
            raise RequiredElementError("ref")
        if op_code == "add" and ref is not None and rel_field is None:
            raise RequiredElementError("relationship", "/ref")

        if rel_field is not None:
            return self._parse_relationship_operation(element, index, op_code, ref_type, ref_identity, rel_field, meta)

        if op_code == "remove":
            if "data" in element:
                raise ElementNotAllowedError("data", "/data")
            self._check_accessible(ref_type, DeleteResource)
            return DeleteResource(index=index, resource_type=ref_type, identity=ref_identity, meta=meta)

        if "data" not in element:
            raise RequiredElementError("data")
        data = element["data"]
        if not isinstance(data, dict):
            raise expected_value("an object", data, "/data")

        if op_code == "add":
            return self._parse_create(data, index, meta)
        return self._parse_update(data, index, ref_type, ref_identity, meta)

    #
    # ref
    #
    def _parse_ref(self, ref):
        """
        :return: (resource type, identity, relationship field or None)
        """
        if not isinstance(ref, dict):
            raise expected_value("an object", ref, "/ref")
        resource_type = self._get_type(ref, "/ref")
        identity = self._parse_identity(ref, resource_type, "/ref", require=True)

        rel_field = None
        rel_name = ref.get("relationship")
        if rel_name is not None:
            if not isinstance(rel_name, str):
                raise expected_value("a string", rel_name, "/ref/relationship")
            rel_field = resource_type.relationships.get(rel_name)
            if rel_field is None or rel_field.target_type is None:
                raise UnknownRefRelationshipError(rel_name, resource_type.name)
        return resource_type, identity, rel_field

    #
    # resource operations
    #
    def _parse_create(self, data, index, meta):
        resource_type = self._get_type(data, "/data")
        self._check_accessible(resource_type, CreateResource)

        if "id" in data and "lid" in data:
            raise IdAndLidMutuallyExclusiveError("/data")
        if "id" in data and not resource_type.allow_client_generated_ids:
            raise ClientIdNotAllowedError("/data/id")
        if "id" not in data and resource_type.require_client_generated_ids:
            raise IdRequiredError("/data")
        identity = self._parse_identity(data, resource_type, "/data", require=False)

        attributes = self._parse_attributes(data, resource_type, creating=True)
        relationships = self._parse_relationships(data, resource_type)
        return CreateResource(
            index=index, resource_type=resource_type, identity=identity, meta=meta, attributes=attributes, relationships=relationships
        )

    def _parse_update(self, data, index, ref_type, ref_identity, meta):
        resource_type = self._get_type(data, "/data")
        if ref_type is not None and resource_type is not ref_type:
            raise IncompatibleResourceTypeError(resource_type.name, ref_type.name)
        self._check_accessible(resource_type, UpdateResource)

        identity = self._parse_identity(data, resource_type, "/data", require=True)
        if ref_identity is not None:
            self._check_same_identity(ref_identity, identity)

        attributes = self._parse_attributes(data, resource_type, creating=False)
        relationships = self._parse_relationships(data, resource_type)
        return UpdateResource(
            index=index, resource_type=resource_type, identity=identity, meta=meta, attributes=attributes, relationships=relationships
        )

    @staticmethod
    def _check_same_identity(ref_identity, identity):
        if ref_identity.id is not None:
            if identity.id is None:
                raise IdRequiredError("/data")
            if identity.id != ref_identity.id:
                raise ConflictingIdValueError(ref_identity.id, identity.id)
        else:
            if identity.lid is None:
                raise LidRequiredError("/data")
            if identity.lid != ref_identity.lid:
                raise ConflictingLidValueError(ref_identity.lid, identity.lid)

    def _parse_attributes(self, data, resource_type, creating):
        """
        :return: dict of attribute name => parsed value
        """
        attributes = data.get("attributes")
        if attributes is None:
            return {}
        if not isinstance(attributes, dict):
            raise expected_value("an object", attributes, "/data/attributes")

        result = {}
        for attr_name, attr_val in attributes.items():
            pointer = f"/data/attributes/{attr_name}"
            attr = resource_type.attributes.get(attr_name)
            if attr is None:
                if attr_name == "id":
                    raise ResourceIdReadOnlyError(pointer=pointer)
                if self.allow_unknown_fields:
                    jsonapi_ops.log.debug(f"Ignoring unknown attribute '{attr_name}' of '{resource_type.name}'")
                    continue
                raise UnknownAttributeError(attr_name, resource_type.name, pointer)
            if creating and not attr.allow_create:
                raise ReadOnlyAttributeError(attr_name, resource_type.name, pointer)
            if not creating and not attr.allow_change:
                if attr.allow_create:
                    raise AttributeNotAssignableError(attr_name, resource_type.name, pointer)
                raise ReadOnlyAttributeError(attr_name, resource_type.name, pointer)
            try:
                result[attr_name] = attr.parse(attr_val)
            except DeserializationError as exc:
                exc.pointer = pointer
                raise
        return result

    def _parse_relationships(self, data, resource_type):
        """
        :return: tuple of RelationshipData
        """
        relationships = data.get("relationships")
        if relationships is None:
            return ()
        if not isinstance(relationships, dict):
            raise expected_value("an object", relationships, "/data/relationships")

        result = []
        for rel_name, rel_obj in relationships.items():
            pointer = f"/data/relationships/{rel_name}"
            rel_field = resource_type.relationships.get(rel_name)
            if rel_field is None or rel_field.target_type is None:
                if self.allow_unknown_fields:
                    jsonapi_ops.log.debug(f"Ignoring unknown relationship '{rel_name}' of '{resource_type.name}'")
                    continue
                raise UnknownRelationshipError(rel_name, resource_type.name, pointer)
            if not isinstance(rel_obj, dict):
                raise expected_value("an object", rel_obj, pointer)
            if "data" not in rel_obj:
                raise RequiredElementError("data", pointer)
            result.append(self._parse_relationship_data(rel_obj["data"], rel_field, f"{pointer}/data"))
        return tuple(result)

    #
    # relationship operations
    #
    def _parse_relationship_operation(self, element, index, op_code, ref_type, ref_identity, rel_field, meta):
        op_class = RELATIONSHIP_OPERATIONS[op_code]
        if op_class is not UpdateRelationship and not rel_field.to_many:
            raise ToManyRelationshipRequiredError(rel_field.name)
        self._check_accessible(ref_type, op_class)
        if "data" not in element:
            raise RequiredElementError("data")
        relationship = self._parse_relationship_data(element["data"], rel_field, "/data")
        return op_class(index=index, resource_type=ref_type, identity=ref_identity, meta=meta, relationship=relationship)

    def _parse_relationship_data(self, data, rel_field, pointer):
        """
        :param data: the "data" of a relationship: null, a resource identifier or an array of resource identifiers
        :return: RelationshipData
        """
        target_type = rel_field.target_type
        if rel_field.to_many:
            if not isinstance(data, list):
                raise expected_value("an array", data, pointer)
            identities = []
            for i, item in enumerate(data):
                identities.append(self._parse_related_identifier(item, target_type, f"{pointer}[{i}]"))
            return RelationshipData(field=rel_field, data=tuple(identities))

        if data is None:
            return RelationshipData(field=rel_field, data=None)
        if isinstance(data, list):
            raise expected_value("an object or 'null'", data, pointer)
        return RelationshipData(field=rel_field, data=self._parse_related_identifier(data, target_type, pointer))

    def _parse_related_identifier(self, item, target_type, pointer):
        if not isinstance(item, dict):
            raise expected_value("an object", item, pointer)
        resource_type = self._get_type(item, pointer)
        if resource_type is not target_type:
            raise IncompatibleResourceTypeError(resource_type.name, target_type.name, f"{pointer}/type")
        return self._parse_identity(item, resource_type, pointer, require=True)

    #
    # helpers
    #
    def _get_type(self, obj, pointer):
        """
        :return: the ResourceType named by the "type" member of obj
        """
        type_name = obj.get("type")
        if type_name is None:
            raise RequiredElementError("type", pointer)
        if not isinstance(type_name, str):
            raise expected_value("a string", type_name, f"{pointer}/type")
        resource_type = self.resource_graph.get(type_name)
        if resource_type is None:
            raise UnknownResourceTypeError(type_name, f"{pointer}/type")
        return resource_type

    @staticmethod
    def _parse_identity(obj, resource_type, pointer, require):
        """
        :param require: whether one of "id" or "lid" must be present
        :return: ResourceIdentity, the id is converted to its canonical form
        """
        jsonapi_id = obj.get("id")
        lid = obj.get("lid")
        if jsonapi_id is not None and lid is not None:
            raise IdAndLidMutuallyExclusiveError(pointer)
        if jsonapi_id is None and lid is None:
            if require:
                raise IdOrLidRequiredError(pointer)
            return ResourceIdentity(resource_type)
        if lid is not None:
            if not isinstance(lid, str):
                raise expected_value("a string", lid, f"{pointer}/lid")
            return ResourceIdentity(resource_type, lid=lid)

        if not isinstance(jsonapi_id, str):
            raise expected_value("a string", jsonapi_id, f"{pointer}/id")
        try:
            return ResourceIdentity(resource_type, id=resource_type.parse_id(jsonapi_id))
        except DeserializationError as exc:
            exc.pointer = f"{pointer}/id"
            raise

    @staticmethod
    def _check_accessible(resource_type, op_class):
        if not resource_type.allows(op_class.op_code):
            raise OperationNotAccessibleError(op_class.op_code, resource_type.name)
