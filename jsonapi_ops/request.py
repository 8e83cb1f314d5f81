"""
https://jsonapi.org/ext/atomic/#processing

Atomic operations are requested with the media type
"application/vnd.api+json; ext=\"https://jsonapi.org/ext/atomic\""

The request class parses the content type, the requested extensions and the sparse fieldsets,
the endpoint decorator responds with 415 Unsupported Media Type when `is_supported_media_type` is False
"""
import re
from flask import Request
from werkzeug.datastructures import TypeConversionDict
import jsonapi_ops
from .errors import ValidationError

JSON_CONTENT_TYPE = "application/json"
JSONAPI_CONTENT_TYPE = "application/vnd.api+json"


# pylint: disable=too-many-ancestors
class OpsRequest(Request):
    """
    Parse the jsonapi-related request arguments:
    - header: Content-Type should be "application/vnd.api+json" or "application/json"
    - query args: fields[type]
    - body: json object
    """

    jsonapi_content_types = [JSON_CONTENT_TYPE, JSONAPI_CONTENT_TYPE]
    is_jsonapi = False  # indicates whether this is a jsonapi request

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.extensions = set()
        self.media_type = None
        self.fields = {}
        self.parse_content_type()
        self.parse_jsonapi_args()

    def parse_content_type(self):
        """
        Check if the request content type is jsonapi and collect the requested extensions,
        the "ext" parameter holds a space separated list of extension uris
        """
        if not isinstance(self.content_type, str):
            return

        parts = self.content_type.split(";")
        self.media_type = parts[0].strip().lower()
        if self.media_type not in self.jsonapi_content_types:
            return

        self.is_jsonapi = True
        self.parameter_storage_class = TypeConversionDict

        for param in parts[1:]:
            name, _, value = param.strip().partition("=")
            if name.strip() == "ext" and value:
                self.extensions.update(value.strip().strip('"').split())

    @property
    def is_atomic(self):
        """
        jsonapi atomic operations extension, https://jsonapi.org/ext/atomic/
        """
        return jsonapi_ops.JSONAPIOps.ATOMIC_EXT in self.extensions

    @property
    def is_supported_media_type(self):
        """
        "application/json" is accepted as is,
        "application/vnd.api+json" must request the atomic extension if it requests any extension
        """
        if not self.is_jsonapi:
            return False
        if self.media_type == JSONAPI_CONTENT_TYPE and self.extensions:
            return self.is_atomic
        return True

    def get_jsonapi_payload(self):
        """
        :return: jsonapi request payload
        :raises ValidationError: when the body isn't a json object
        """
        result = self.get_json(force=True, silent=True)
        if not isinstance(result, dict):
            raise ValidationError("The request body must be a JSON object.", pointer="", title="Invalid request body.")
        return result

    def parse_jsonapi_args(self):
        """
        parse the sparse fieldsets: fields[type]=attr1,attr2
        https://jsonapi.org/format/#fetching-sparse-fieldsets
        """
        for arg, val in self.args.items():
            fields_attr = re.search(r"^fields\[([\w-]+)\]$", arg)
            if fields_attr:
                field_type = fields_attr.group(1)
                self.fields[field_type] = [field for field in val.split(",") if field]
