#
# The atomic operations endpoint: "POST /operations"
#
# https://jsonapi.org/ext/atomic/
# Request:
#   {"atomic:operations": [{"op": "add", "data": {"type": "articles", "lid": "a1", "attributes": {...}}}, ...]}
# Response:
#   200 {"atomic:results": [{"data": {...}}, {"data": null}, ...]}
#   204 when none of the operations returned data
#   4xx/5xx {"errors": [{...}]} when an operation failed, nothing is committed in that case
#
from flask import make_response, jsonify, request
from flask_restful import Resource
import jsonapi_ops
from .config import get_max_operations, is_enabled
from .processor import AtomicOutcome, OperationsProcessor
from .response import OpsResponse


def make_outcome_response(outcome):
    """
    :param outcome: AtomicOutcome
    :return: flask response with the atomic extension content type
    """
    document = outcome.to_document()
    if document is None:
        response = make_response("", outcome.status_code)
    else:
        response = make_response(jsonify(document), outcome.status_code)
    response.headers["Content-Type"] = OpsResponse.atomic_content_type()
    return response


def make_error_response(error):
    return make_outcome_response(AtomicOutcome(error=error))


class OperationsAPI(Resource):
    """
    Flask-RESTful resource for the atomic operations endpoint,
    `resource_graph` is set by `OpsAPI.expose_operations`
    """

    resource_graph = None

    def post(self, **kwargs):
        """
        Process the batch in the request body
        """
        payload = request.get_jsonapi_payload()
        processor = OperationsProcessor(
            self.resource_graph,
            jsonapi_ops.DB.session,
            allow_unknown_fields=is_enabled("ALLOW_UNKNOWN_FIELDS"),
            max_operations=get_max_operations(),
            include_request_body=is_enabled("INCLUDE_REQUEST_BODY_IN_ERRORS"),
        )
        outcome = processor.process(payload, fields=request.fields, request_body=request.get_data(as_text=True))
        return make_outcome_response(outcome)
