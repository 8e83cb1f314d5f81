#
# ResourceBase: the SQLAlchemy model mixin for exposed resources
#
from functools import lru_cache
from flask_sqlalchemy.model import Model
from .id_types import get_id_type
from .util import classproperty


class ResourceBase(Model):
    """This SQLAlchemy mixin marks a model as a json:api resource type and holds its json:api configuration

    The jsonapi id is generated from the primary keys of the columns

    Most of the class attributes and methods have the `_s_` prefix so they don't clash with
    column or relationship names of the model
    """

    http_methods = ["GET", "POST", "PATCH", "DELETE"]  # allowed operations: POST=add, PATCH=update, DELETE=remove
    allow_client_generated_ids = False  # Indicates whether the client is allowed to create the id
    require_client_generated_ids = False  # Indicates whether the client must create the id
    exclude_attrs = []  # list of attribute names that should not be exposed
    exclude_rels = []  # list of relationship names that should not be exposed

    _s_pk_delimiter = "_"
    _s_resource_type = None  # set when the model is registered in the resource graph

    @classproperty
    def _s_type(cls):
        """
        :return: the jsonapi "type", i.e. the tablename
        """
        return getattr(cls, "__tablename__", cls.__name__)

    @classproperty
    @lru_cache(maxsize=64)
    # pylint: disable=method-hidden
    def id_type(obj):
        """
        :return: the object's id type
        """
        id_type = get_id_type(obj)
        # monkey patch so we don't have to look it up next time
        obj.id_type = id_type
        return id_type

    @property
    def jsonapi_id(self):
        """
        :return: json:api id, None if the instance has not been flushed yet
        :rtype: str
        """
        return self.id_type.get_id(self)

    def _s_identifier(self):
        return {"type": self._s_type, "id": self.jsonapi_id}

    def _s_jsonapi_encode(self, fields=None):
        """
        :param fields: sparse fieldset: list of attribute and relationship names, None for all
        :return: Encoded object according to the jsonapi specification:
        `data = {
                "type": "...",
                "id": "...",
                "attributes": { ... },
                "relationships": { ... }
                }`
        """
        resource_type = self._s_resource_type
        data = {"type": self._s_type, "id": self.jsonapi_id}
        if resource_type is None:
            return data

        data["attributes"] = resource_type.read_attributes(self, fields)
        relationships = {}
        for rel_name, rel in resource_type.relationships.items():
            if fields is not None and rel_name not in fields:
                continue
            if rel.target_type is None:
                continue
            related = getattr(self, rel_name)
            if rel.to_many:
                relationships[rel_name] = {"data": [item._s_identifier() for item in related]}
            else:
                relationships[rel_name] = {"data": related._s_identifier() if related is not None else None}
        if relationships:
            data["relationships"] = relationships
        return data

    def __str__(self):
        return f"<{self._s_type} {self.jsonapi_id}>"
