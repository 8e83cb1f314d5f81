"""
Local ids ("lid") let an operation refer to a resource created by an earlier operation in the same batch,
before the server has assigned its id.

The tracker holds the lid bindings of one batch, it is discarded when the batch completes.
"""
import jsonapi_ops
from .errors import (
    InternalError,
    JsonapiError,
    LocalIdConflictError,
    LocalIdNotAvailableError,
    LocalIdTypeMismatchError,
)
from .resolver import ReferenceResolver


class _Binding:
    __slots__ = ("type_name", "server_id")

    def __init__(self, type_name):
        self.type_name = type_name
        self.server_id = None


class LocalIdTracker:
    """
    Map of lid => (resource type, server id)
    """

    def __init__(self):
        self._bindings = {}

    def reset(self):
        self._bindings.clear()

    def is_empty(self):
        return not self._bindings

    def declare(self, lid, type_name):
        """
        Declare a lid, the server id is assigned once the resource has been created
        :raises LocalIdConflictError: when the lid has already been declared in this batch
        """
        if lid in self._bindings:
            raise LocalIdConflictError(lid)
        self._bindings[lid] = _Binding(type_name)

    def assign(self, lid, type_name, server_id):
        """
        Bind the server id to a declared lid
        """
        binding = self._bindings.get(lid)
        if binding is None:
            raise InternalError(f"Local ID '{lid}' has not been declared.")
        if binding.server_id is not None:
            raise InternalError(f"Cannot reassign to existing local ID '{lid}'.")
        if binding.type_name != type_name:
            raise InternalError(f"Local ID '{lid}' was declared for type '{binding.type_name}' instead of '{type_name}'.")
        binding.server_id = server_id
        jsonapi_ops.log.debug(f"Local ID '{lid}' => {type_name} '{server_id}'")

    def resolve(self, lid, type_name):
        """
        :return: the server id bound to the lid
        :raises LocalIdNotAvailableError: when the lid hasn't been declared or has no server id yet
        """
        binding = self._bindings.get(lid)
        if binding is None or binding.server_id is None:
            raise LocalIdNotAvailableError(lid)
        self.check_type(lid, type_name)
        return binding.server_id

    def check_type(self, lid, type_name):
        """
        :raises LocalIdTypeMismatchError: when the lid was declared for another resource type
        """
        binding = self._bindings.get(lid)
        if binding is not None and binding.type_name != type_name:
            raise LocalIdTypeMismatchError(lid, binding.type_name, type_name)


class LocalIdValidator:
    """
    Check the lid usage of the whole batch before anything is written:
    the lids are resolved the same way as during execution, with placeholder server ids
    """

    placeholder_prefix = "placeholder-"

    def __init__(self, tracker=None):
        self.tracker = tracker if tracker is not None else LocalIdTracker()

    def validate(self, operations):
        """
        :param operations: the parsed operations, in batch order
        :raises JsonapiError: the first lid error, with its pointer prefixed by the operation pointer
        """
        resolver = ReferenceResolver(self.tracker)
        try:
            for operation in operations:
                try:
                    resolver.resolve(operation)
                    lid = operation.declared_lid
                    if lid is not None:
                        self.tracker.assign(lid, operation.resource_type.name, f"{self.placeholder_prefix}{operation.index}")
                except JsonapiError as exc:
                    raise exc.prefix_pointer(operation.pointer)
        finally:
            self.tracker.reset()
