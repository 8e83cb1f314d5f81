"""
The atomic operations pipeline:

    request document
      => OperationParser: every element is parsed and validated
      => LocalIdValidator: the lid usage of the whole batch is checked
      => for every operation, in order, inside one transaction:
            ReferenceResolver => OperationExecutor
      => AtomicOutcome: the ordered results or the first error

Nothing is written when parsing or lid validation fails, and nothing is committed when an operation fails.
"""
from http import HTTPStatus
from sqlalchemy.exc import SQLAlchemyError
import jsonapi_ops
from .deserializer import OperationParser
from .errors import DataStoreUpdateError, JsonapiError
from .executor import OperationExecutor
from .local_ids import LocalIdTracker, LocalIdValidator
from .persistence import ResourceService
from .resolver import ReferenceResolver
from .transaction import OperationsTransaction

RESULTS_KEY = "atomic:results"


class AtomicOutcome:
    """
    Result of a batch: either the list of OperationResults or the error that aborted the batch
    """

    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error

    @property
    def succeeded(self):
        return self.error is None

    @property
    def status_code(self):
        """
        :return: the error status, 204 when none of the operations produced data, 200 otherwise
        """
        if self.error is not None:
            return self.error.status_code
        if all(result.is_empty for result in self.results):
            return HTTPStatus.NO_CONTENT.value
        return HTTPStatus.OK.value

    def to_document(self):
        """
        :return: the response document, None for 204 No Content
        """
        jsonapi = {"version": jsonapi_ops.JSONAPIOps.JSONAPI_VERSION, "ext": [jsonapi_ops.JSONAPIOps.ATOMIC_EXT]}
        if self.error is not None:
            return {"jsonapi": jsonapi, "errors": [self.error.to_dict()]}
        if self.status_code == HTTPStatus.NO_CONTENT:
            return None
        return {"jsonapi": jsonapi, RESULTS_KEY: [result.to_dict() for result in self.results]}


class OperationsProcessor:
    """
    Runs a batch of atomic operations
    """

    def __init__(self, resource_graph, session, allow_unknown_fields=False, max_operations=None, include_request_body=False):
        """
        :param resource_graph: ResourceGraph of the exposed types
        :param session: SQLAlchemy session
        :param allow_unknown_fields: ignore unknown attributes and relationships
        :param max_operations: maximum batch size, None for unlimited
        :param include_request_body: add the request body to the error "meta"
        """
        self.parser = OperationParser(resource_graph, allow_unknown_fields=allow_unknown_fields, max_operations=max_operations)
        self.session = session
        self.include_request_body = include_request_body

    def process(self, payload, fields=None, request_body=None):
        """
        :param payload: decoded request document
        :param fields: sparse fieldsets, dict of type name => field names
        :param request_body: raw request body, echoed in the error "meta" when enabled
        :return: AtomicOutcome
        """
        try:
            operations = self.parser.parse_document(payload)
            LocalIdValidator().validate(operations)
        except JsonapiError as exc:
            return self._failure(exc, request_body)

        tracker = LocalIdTracker()
        resolver = ReferenceResolver(tracker)
        executor = OperationExecutor(ResourceService(self.session), tracker, fields)
        results = []

        with OperationsTransaction(self.session) as transaction:
            for operation in operations:
                try:
                    resolved = resolver.resolve(operation)
                    results.append(executor.execute(resolved))
                    transaction.flush()
                except JsonapiError as exc:
                    return self._failure(exc.prefix_pointer(operation.pointer), request_body)
                except SQLAlchemyError as exc:
                    jsonapi_ops.log.exception(exc)
                    return self._failure(DataStoreUpdateError(str(exc), pointer=operation.pointer), request_body)
            try:
                transaction.commit()
            except SQLAlchemyError as exc:
                jsonapi_ops.log.exception(exc)
                return self._failure(DataStoreUpdateError(str(exc)), request_body)

        jsonapi_ops.log.info(f"Processed {len(results)} atomic operations")
        return AtomicOutcome(results=results)

    def _failure(self, error, request_body):
        if self.include_request_body and request_body is not None:
            error.request_body = request_body
        return AtomicOutcome(error=error)
