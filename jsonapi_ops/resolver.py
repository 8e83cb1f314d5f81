# Replace the local ids in an operation with the server ids bound by earlier operations
from .errors import LocalIdUsedWhileDefiningError


class ReferenceResolver:
    """
    Resolves the resource identities of an operation with the batch lid tracker
    """

    def __init__(self, tracker):
        self.tracker = tracker

    def resolve(self, operation):
        """
        Declare the lid defined by the operation and resolve the lids it refers to

        :param operation: parsed operation
        :return: a copy of the operation where every reference carries a server id
        :raises LocalIdError:
        """
        lid = operation.declared_lid
        if lid is not None:
            for identity in operation.references():
                if identity.lid == lid:
                    raise LocalIdUsedWhileDefiningError(lid)
            self.tracker.declare(lid, operation.resource_type.name)

        return operation.map_references(self._resolve_identity)

    def _resolve_identity(self, identity):
        if not identity.is_local:
            return identity
        self.tracker.check_type(identity.lid, identity.type_name)
        server_id = self.tracker.resolve(identity.lid, identity.type_name)
        return identity.with_id(server_id)
