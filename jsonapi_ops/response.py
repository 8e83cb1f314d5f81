# Response class
from flask import Response
import jsonapi_ops


class OpsResponse(Response):
    """
    Responses are sent with the atomic extension media type
    """

    default_mimetype = "application/vnd.api+json"

    @staticmethod
    def atomic_content_type():
        return f'application/vnd.api+json; ext="{jsonapi_ops.JSONAPIOps.ATOMIC_EXT}"'
