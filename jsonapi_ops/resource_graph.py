"""
The resource graph is the registry of the exposed resource types.

It is built once, when the models are exposed, from the SQLAlchemy mappers:
- the json:api type name of each model (`_s_type`)
- the attributes (mapped columns) with their read/write permissions
- the relationships with their direction and target type
- the id type that converts json:api ids to primary keys

Column permissions can be set on the column `info` dict, eg.
`db.Column(db.DateTime, info={"permissions": "r"})`:
- "r": the attribute is serialized
- "w": the attribute can be assigned when creating and updating resources
- "c": the attribute can only be assigned when creating resources
"""
from sqlalchemy.orm.interfaces import MANYTOONE
import jsonapi_ops
from .attr_parse import parse_attr
from .errors import InternalError

HTTP_METHOD_FOR_OP = {"add": "POST", "update": "PATCH", "remove": "DELETE"}


def _column_info(column, key, default):
    if key in column.info:
        return column.info[key]
    return getattr(column, key, default)


class AttrField:
    """
    Exposed attribute, backed by a mapped column
    """

    def __init__(self, name, column):
        self.name = name
        self.column = column
        permissions = _column_info(column, "permissions", "rw")
        self.readable = "r" in permissions
        self.allow_create = "w" in permissions or "c" in permissions
        self.allow_change = "w" in permissions

    def parse(self, value):
        return parse_attr(self.column, self.name, value)

    def __repr__(self):
        return f"<AttrField {self.name}>"


class RelField:
    """
    Exposed relationship
    """

    def __init__(self, name, relationship, graph):
        self.name = name
        self.relationship = relationship
        self.to_many = relationship.direction != MANYTOONE and relationship.uselist
        self._graph = graph

    @property
    def target_type(self):
        """
        :return: the ResourceType of the related model
        """
        return self._graph.get_by_model(self.relationship.mapper.class_)

    def __repr__(self):
        return f"<RelField {self.name} ({'to-many' if self.to_many else 'to-one'})>"


class ResourceType:
    """
    Metadata of an exposed model, this is what the deserializer and the persistence layer use
    instead of inspecting the models themselves
    """

    def __init__(self, model, graph):
        self.model = model
        self.name = model._s_type
        self.id_type = model.id_type
        self.allow_client_generated_ids = bool(model.allow_client_generated_ids or model.require_client_generated_ids)
        self.require_client_generated_ids = bool(model.require_client_generated_ids)
        self.http_methods = {method.upper() for method in model.http_methods}
        self.attributes = {}
        self.relationships = {}

        mapper = model.__mapper__
        pk_columns = set(mapper.primary_key)
        for prop in mapper.column_attrs:
            column = prop.columns[0]
            if prop.key.startswith("_") or prop.key in model.exclude_attrs or column in pk_columns:
                continue
            if column.foreign_keys or not _column_info(column, "expose", True):
                # foreign keys are exposed through the relationships
                continue
            self.attributes[prop.key] = AttrField(prop.key, column)

        for rel in mapper.relationships:
            if rel.key.startswith("_") or rel.key in model.exclude_rels or not getattr(rel, "expose", True):
                continue
            self.relationships[rel.key] = RelField(rel.key, rel, graph)

    def parse_id(self, jsonapi_id):
        """
        :return: canonical id string
        :raises IncompatibleIdValueError:
        """
        return self.id_type.validate_id(jsonapi_id)

    def allows(self, op_code):
        """
        :param op_code: add, update or remove
        :return: whether the model allows the operation
        """
        return HTTP_METHOD_FOR_OP[op_code] in self.http_methods

    def read_attributes(self, instance, fields=None):
        """
        :param fields: sparse fieldset, None for all readable attributes
        :return: dict of attribute name => value
        """
        result = {}
        for name, attr in self.attributes.items():
            if not attr.readable or fields is not None and name not in fields:
                continue
            result[name] = getattr(instance, name)
        return result

    def __repr__(self):
        return f"<ResourceType {self.name}>"


class ResourceGraph:
    """
    Registry of the exposed resource types, by json:api type name and by model
    """

    def __init__(self):
        self._types = {}
        self._models = {}

    def add(self, model):
        """
        Register a ResourceBase model
        :return: ResourceType
        """
        resource_type = ResourceType(model, self)
        existing = self._types.get(resource_type.name)
        if existing is not None and existing.model is not model:
            raise InternalError(f"Resource type '{resource_type.name}' is already used by {existing.model}")
        self._types[resource_type.name] = resource_type
        self._models[model] = resource_type
        model._s_resource_type = resource_type
        jsonapi_ops.log.info(f"Registered resource type {resource_type.name} ({model.__name__})")
        return resource_type

    def get(self, type_name):
        """
        :return: ResourceType or None if the type isn't exposed
        """
        return self._types.get(type_name)

    def get_by_model(self, model):
        return self._models.get(model)

    def __contains__(self, type_name):
        return type_name in self._types

    def __iter__(self):
        return iter(self._types.values())

    def __len__(self):
        return len(self._types)
