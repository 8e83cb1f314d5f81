"""
Resource persistence: the operations are applied to the SQLAlchemy session

Changes are flushed after every write so the database generated values (ids, defaults, triggers)
are available to the next operations and to the side effect detection.
Nothing is committed here, the transaction is managed by `transaction.OperationsTransaction`.
"""
import datetime
from sqlalchemy.orm.collections import InstrumentedList
import jsonapi_ops
from .errors import RelatedResourceNotFoundError, ResourceAlreadyExistsError, ResourceNotFoundError


class ResourceService:
    """
    CRUD and relationship operations on the exposed models
    """

    def __init__(self, session):
        self.session = session

    def find(self, resource_type, jsonapi_id):
        """
        :return: the instance with the given id or None
        """
        primary_keys = resource_type.id_type.get_pks(jsonapi_id)
        return self.session.get(resource_type.model, primary_keys)

    def get_instance(self, resource_type, jsonapi_id):
        """
        :raises ResourceNotFoundError:
        """
        instance = self.find(resource_type, jsonapi_id)
        if instance is None:
            raise ResourceNotFoundError(resource_type.name, jsonapi_id)
        return instance

    def get_related(self, identity, rel_name):
        """
        :raises RelatedResourceNotFoundError:
        """
        instance = self.find(identity.resource_type, identity.id)
        if instance is None:
            raise RelatedResourceNotFoundError(identity.type_name, identity.id, rel_name)
        return instance

    #
    # resources
    #
    def create(self, operation):
        """
        :param operation: CreateResource with resolved references
        :return: (instance, side_effects): side_effects indicates whether the stored resource differs from the request
        """
        resource_type = operation.resource_type
        instance = resource_type.model()
        client_id = operation.identity.id
        if client_id is not None:
            if self.find(resource_type, client_id) is not None:
                raise ResourceAlreadyExistsError(resource_type.name, client_id)
            resource_type.id_type.set_id(instance, client_id)
        else:
            generated_id = resource_type.id_type.gen_id()
            if generated_id is not None:
                resource_type.id_type.set_id(instance, generated_id)

        before = self._snapshot(resource_type, instance)
        self._apply(instance, operation)
        self.session.add(instance)
        self.session.flush()
        self.session.refresh(instance)
        side_effects = self._has_side_effects(resource_type, instance, operation.attributes, before)
        jsonapi_ops.log.debug(f"Created {resource_type.name} '{instance.jsonapi_id}'")
        return instance, side_effects

    def update(self, operation):
        """
        :param operation: UpdateResource with resolved references
        :return: (instance, side_effects)
        """
        resource_type = operation.resource_type
        instance = self.get_instance(resource_type, operation.identity.id)
        before = self._snapshot(resource_type, instance)
        self._apply(instance, operation)
        self.session.flush()
        self.session.refresh(instance)
        return instance, self._has_side_effects(resource_type, instance, operation.attributes, before)

    def delete(self, operation):
        instance = self.get_instance(operation.resource_type, operation.identity.id)
        self.session.delete(instance)
        self.session.flush()

    #
    # relationships
    #
    def set_relationship(self, operation):
        """
        Replace the members of a to-many relationship or the target of a to-one relationship
        """
        instance = self.get_instance(operation.resource_type, operation.identity.id)
        self._assign_relationship(instance, operation.relationship)
        self.session.flush()

    def add_to_relationship(self, operation):
        """
        Add the targets to a to-many relationship, targets that are already related are skipped
        """
        instance = self.get_instance(operation.resource_type, operation.identity.id)
        relation = getattr(instance, operation.relationship.name)
        for child in self._related_instances(operation.relationship):
            if child not in relation:
                relation.append(child)
        self.session.flush()

    def remove_from_relationship(self, operation):
        """
        Remove the targets from a to-many relationship, targets that aren't related are ignored
        """
        instance = self.get_instance(operation.resource_type, operation.identity.id)
        relation = getattr(instance, operation.relationship.name)
        for child in self._related_instances(operation.relationship):
            if child in relation:
                relation.remove(child)
            else:
                jsonapi_ops.log.debug(f"{child} not in {operation.relationship.name}")
        self.session.flush()

    #
    # helpers
    #
    def _apply(self, instance, operation):
        for attr_name, attr_val in operation.attributes.items():
            setattr(instance, attr_name, attr_val)
        for rel_data in operation.relationships:
            self._assign_relationship(instance, rel_data)

    def _assign_relationship(self, instance, rel_data):
        if not rel_data.field.to_many:
            child = None if rel_data.data is None else self.get_related(rel_data.data, rel_data.name)
            setattr(instance, rel_data.name, child)
            return

        children = self._related_instances(rel_data)
        relation = getattr(instance, rel_data.name)
        # lazy="dynamic" relationships are replaced by assignment,
        # an InstrumentedList can be emptied and refilled in place
        if isinstance(relation, InstrumentedList):
            relation[:] = children
        else:
            setattr(instance, rel_data.name, children)

    def _related_instances(self, rel_data):
        """
        :return: the distinct instances referenced by a to-many relationship value, in request order
        """
        result = []
        for identity in rel_data.identities():
            child = self.get_related(identity, rel_data.name)
            if child not in result:
                result.append(child)
        return result

    @staticmethod
    def _snapshot(resource_type, instance):
        return {attr_name: getattr(instance, attr_name) for attr_name in resource_type.attributes}

    @staticmethod
    def _has_side_effects(resource_type, instance, requested, before):
        """
        Compare the stored attribute values with the requested values,
        attributes that weren't in the request are compared with their value before the write
        """
        for attr_name in resource_type.attributes:
            stored = getattr(instance, attr_name)
            expected = requested[attr_name] if attr_name in requested else before[attr_name]
            if not _same_value(stored, expected):
                jsonapi_ops.log.debug(f"Side effect on {resource_type.name}.{attr_name}: {expected!r} => {stored!r}")
                return True
        return False


def _same_value(stored, expected):
    """
    Compare a stored attribute value with the requested value,
    stores without timezone support (sqlite) return the wall time of an aware datetime or time
    """
    if (
        isinstance(expected, (datetime.datetime, datetime.time))
        and isinstance(stored, type(expected))
        and expected.tzinfo is not None
        and stored.tzinfo is None
    ):
        expected = expected.replace(tzinfo=None)
    return stored == expected
