"""
Execution of a single resolved operation against the persistence layer
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import jsonapi_ops
from .errors import InternalError
from .operations import (
    AddToRelationship,
    CreateResource,
    DeleteResource,
    RemoveFromRelationship,
    UpdateRelationship,
    UpdateResource,
)


@dataclass(frozen=True)
class OperationResult:
    """
    The outcome of one operation: the encoded resource or None ("data": null)
    """

    data: Optional[Dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return self.data is None

    def to_dict(self) -> dict:
        # results never carry "meta"
        return {"data": self.data}


class OperationExecutor:
    """
    Applies operations whose references have been resolved, the handler is looked up by operation class
    """

    def __init__(self, service, tracker, fields=None):
        """
        :param service: ResourceService
        :param tracker: LocalIdTracker of the batch, the created resources are bound to their lid
        :param fields: sparse fieldsets, dict of type name => list of field names
        """
        self.service = service
        self.tracker = tracker
        self.fields = fields or {}
        self._handlers = {
            CreateResource: self._create,
            UpdateResource: self._update,
            DeleteResource: self._delete,
            UpdateRelationship: self._update_relationship,
            AddToRelationship: self._add_to_relationship,
            RemoveFromRelationship: self._remove_from_relationship,
        }

    def execute(self, operation):
        """
        :param operation: operation without unresolved lids
        :return: OperationResult
        """
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise InternalError(f"Unsupported operation {type(operation).__name__}")
        jsonapi_ops.log.debug(f"Executing {type(operation).__name__} {operation.resource_type.name} ({operation.pointer})")
        return handler(operation)

    def _encode(self, instance):
        return OperationResult(instance._s_jsonapi_encode(self.fields.get(instance._s_type)))

    def _create(self, operation):
        instance, side_effects = self.service.create(operation)
        lid = operation.declared_lid
        if lid is not None:
            self.tracker.assign(lid, operation.resource_type.name, instance.jsonapi_id)
        if operation.identity.id is None or side_effects:
            return self._encode(instance)
        return OperationResult()

    def _update(self, operation):
        instance, side_effects = self.service.update(operation)
        if side_effects:
            return self._encode(instance)
        return OperationResult()

    def _delete(self, operation):
        self.service.delete(operation)
        return OperationResult()

    def _update_relationship(self, operation):
        self.service.set_relationship(operation)
        return OperationResult()

    def _add_to_relationship(self, operation):
        self.service.add_to_relationship(operation)
        return OperationResult()

    def _remove_from_relationship(self, operation):
        self.service.remove_from_relationship(operation)
        return OperationResult()
