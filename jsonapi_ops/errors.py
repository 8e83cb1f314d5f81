# Exceptions
#
# All errors raised while processing a batch are JsonapiError instances, they carry
# the http status, title, detail and the json pointer of the request element that caused them.
# The pointers are relative to the operation when raised by the deserializer, resolver or executor,
# the processor prefixes them with the operation pointer, for example:
# {
#      "status": "409",
#      "title": "Failed to deserialize request body: Conflicting 'id' values found.",
#      "detail": "Expected '1' instead of '2'.",
#      "source": {"pointer": "/atomic:operations[0]/data/id"}
# }
#
# The application loglevel determines the level of detail shown to the user for internal errors.
# If set to debug, too much sensitive info might be shown !
#
import logging
from http import HTTPStatus
from sqlalchemy.exc import DontWrapMixin
import jsonapi_ops
from .config import is_debug
from .util import json_type_name

HIDDEN_LOG = "(debug logging disabled)"
DESERIALIZATION_PREFIX = "Failed to deserialize request body: "


class JsonapiError(Exception, DontWrapMixin):
    """
    Base class for the errors rendered in a json:api "errors" document
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    title = "An unhandled error occurred while processing this request."
    log_level = logging.ERROR

    def __init__(self, detail=None, pointer=None, title=None, status_code=None):
        """
        :param detail: human readable explanation specific to this occurrence of the problem
        :param pointer: json pointer to the request element, relative to the operation
        :param title: overrides the class title
        :param status_code: overrides the class HTTP status code
        """
        super().__init__(detail or title or self.title)
        if title is not None:
            self.title = title
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        self.pointer = pointer
        self.request_body = None
        jsonapi_ops.log.log(self.log_level, "%s: %s %s", self.__class__.__name__, self.title, detail or "")

    @property
    def message(self):
        return self.title

    def prefix_pointer(self, prefix):
        """
        Make the pointer absolute by prepending the pointer of the enclosing element
        """
        self.pointer = prefix + (self.pointer or "")
        return self

    def to_dict(self):
        """
        :return: json:api error object
        """
        result = {"status": str(self.status_code), "title": self.title}
        if self.detail is not None:
            result["detail"] = self.detail
        if self.pointer is not None:
            result["source"] = {"pointer": self.pointer}
        if self.request_body is not None:
            result["meta"] = {"requestBody": self.request_body}
        return result


class ValidationError(JsonapiError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    title = "Validation Error"
    log_level = logging.WARNING


class NotFoundError(JsonapiError):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    title = "The requested resource does not exist."
    log_level = logging.WARNING


class GenericError(JsonapiError):
    """
    This exception is raised when an unexpected error has been detected,
    the detail is only shown in debug mode
    """

    def __init__(self, detail=None, pointer=None, title=None, status_code=None):
        if not is_debug():
            detail = HIDDEN_LOG
        super().__init__(detail, pointer=pointer, title=title, status_code=status_code)


class InternalError(GenericError):
    """
    Broken invariant inside the pipeline, this is a bug rather than a client error
    """

    title = "An internal error occurred while processing the operations."


class UnsupportedMediaTypeError(JsonapiError):
    status_code = HTTPStatus.UNSUPPORTED_MEDIA_TYPE.value
    title = "The specified Content-Type header value is not supported."
    log_level = logging.WARNING


class TooManyOperationsError(JsonapiError):
    status_code = HTTPStatus.REQUEST_ENTITY_TOO_LARGE.value
    title = "Too many operations in request."
    log_level = logging.WARNING

    def __init__(self, count, maximum):
        super().__init__(
            f"The number of operations in this request ({count}) is higher than the maximum of {maximum}.",
            pointer="/atomic:operations",
        )


class OperationNotAccessibleError(JsonapiError):
    status_code = HTTPStatus.FORBIDDEN.value
    title = "The requested operation is not accessible."
    log_level = logging.WARNING

    def __init__(self, op_code, resource_type):
        super().__init__(f"The '{op_code}' resource operation is not accessible for resource type '{resource_type}'.", pointer="")


#
# Deserialization errors: malformed operations
#
class DeserializationError(JsonapiError):
    """
    The request body could not be converted to operations
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    log_level = logging.WARNING
    reason = "Invalid request body."

    def __init__(self, detail=None, pointer="", reason=None, status_code=None):
        reason = reason or self.reason
        super().__init__(detail, pointer=pointer, title=DESERIALIZATION_PREFIX + reason, status_code=status_code)


def expected_value(expected, value, pointer=""):
    """
    :param expected: description of the expected json value, eg. "an object"
    :param value: the value that was found instead
    :return: DeserializationError
    """
    if value is None:
        found = "'null'"
    elif isinstance(value, list):
        found = "an array"
    elif isinstance(value, dict):
        found = "an object"
    else:
        found = f"'{json_type_name(value)}'"
    return DeserializationError(pointer=pointer, reason=f"Expected {expected}, instead of {found}.")


class MissingOperationsError(DeserializationError):
    reason = "No operations found."


class InvalidOperationCodeError(DeserializationError):
    reason = "Unknown operation code found."

    def __init__(self, op_code, pointer="/op"):
        super().__init__(f"Operation code '{op_code}' is not supported.", pointer=pointer)


class HrefNotSupportedError(DeserializationError):
    reason = "The 'href' element is not supported."

    def __init__(self, pointer="/href"):
        super().__init__(pointer=pointer)


class RequiredElementError(DeserializationError):
    def __init__(self, element, pointer=""):
        super().__init__(pointer=pointer, reason=f"The '{element}' element is required.")


class IdRequiredError(RequiredElementError):
    def __init__(self, pointer=""):
        super().__init__("id", pointer=pointer)


class LidRequiredError(RequiredElementError):
    def __init__(self, pointer=""):
        super().__init__("lid", pointer=pointer)


class IdOrLidRequiredError(DeserializationError):
    reason = "The 'id' or 'lid' element is required."

    def __init__(self, pointer=""):
        super().__init__(pointer=pointer)


class IdAndLidMutuallyExclusiveError(DeserializationError):
    reason = "The 'id' and 'lid' element are mutually exclusive."

    def __init__(self, pointer=""):
        super().__init__(pointer=pointer)


class ElementNotAllowedError(DeserializationError):
    def __init__(self, element, pointer=""):
        super().__init__(pointer=pointer, reason=f"The '{element}' element is not allowed.")


class ClientIdNotAllowedError(DeserializationError):
    status_code = HTTPStatus.FORBIDDEN.value
    reason = "The use of client-generated IDs is disabled."

    def __init__(self, pointer="/data/id"):
        super().__init__(pointer=pointer)


class UnknownResourceTypeError(DeserializationError):
    reason = "Unknown resource type found."

    def __init__(self, type_name, pointer="/data/type"):
        super().__init__(f"Resource type '{type_name}' does not exist.", pointer=pointer)


class UnknownAttributeError(DeserializationError):
    reason = "Unknown attribute found."

    def __init__(self, attr_name, type_name, pointer=""):
        super().__init__(f"Attribute '{attr_name}' does not exist on resource type '{type_name}'.", pointer=pointer)


class UnknownRelationshipError(DeserializationError):
    reason = "Unknown relationship found."

    def __init__(self, rel_name, type_name, pointer=""):
        super().__init__(f"Relationship '{rel_name}' does not exist on resource type '{type_name}'.", pointer=pointer)


class UnknownRefRelationshipError(DeserializationError):
    reason = "The referenced relationship does not exist."

    def __init__(self, rel_name, type_name, pointer="/ref/relationship"):
        super().__init__(f"Resource type '{type_name}' does not contain a relationship named '{rel_name}'.", pointer=pointer)


class ToManyRelationshipRequiredError(DeserializationError):
    status_code = HTTPStatus.FORBIDDEN.value
    reason = "Only to-many relationships can be targeted through this operation."

    def __init__(self, rel_name, pointer="/ref/relationship"):
        super().__init__(f"Relationship '{rel_name}' is not a to-many relationship.", pointer=pointer)


class ReadOnlyAttributeError(DeserializationError):
    reason = "Attribute is read-only."

    def __init__(self, attr_name, type_name, pointer=""):
        super().__init__(f"Attribute '{attr_name}' on resource type '{type_name}' is read-only.", pointer=pointer)


class AttributeNotAssignableError(DeserializationError):
    reason = "Attribute value cannot be assigned when updating resource."

    def __init__(self, attr_name, type_name, pointer=""):
        super().__init__(f"The attribute '{attr_name}' on resource type '{type_name}' cannot be assigned to.", pointer=pointer)


class ResourceIdReadOnlyError(DeserializationError):
    reason = "Resource ID is read-only."


class IncompatibleAttributeValueError(DeserializationError):
    reason = "Incompatible attribute value found."


class IncompatibleIdValueError(DeserializationError):
    reason = "Incompatible 'id' value found."


class IncompatibleResourceTypeError(DeserializationError):
    status_code = HTTPStatus.CONFLICT.value
    reason = "Incompatible resource type found."

    def __init__(self, found_type, expected_type, pointer="/data/type"):
        super().__init__(f"Type '{found_type}' is not convertible to type '{expected_type}'.", pointer=pointer)


class ConflictingIdValueError(DeserializationError):
    status_code = HTTPStatus.CONFLICT.value
    reason = "Conflicting 'id' values found."

    def __init__(self, expected, found, pointer="/data/id"):
        super().__init__(f"Expected '{expected}' instead of '{found}'.", pointer=pointer)


class ConflictingLidValueError(DeserializationError):
    status_code = HTTPStatus.CONFLICT.value
    reason = "Conflicting 'lid' values found."

    def __init__(self, expected, found, pointer="/data/lid"):
        super().__init__(f"Expected '{expected}' instead of '{found}'.", pointer=pointer)


#
# Local ID errors: reported for the operation, without a more specific pointer
#
class LocalIdError(JsonapiError):
    status_code = HTTPStatus.BAD_REQUEST.value
    log_level = logging.WARNING

    def __init__(self, detail):
        super().__init__(detail, pointer="")


class LocalIdConflictError(LocalIdError):
    title = "Another local ID with the same name is already defined at this point."

    def __init__(self, lid):
        super().__init__(f"Another local ID with name '{lid}' is already defined at this point.")


class LocalIdNotAvailableError(LocalIdError):
    title = "Server-generated value for local ID is not available at this point."

    def __init__(self, lid):
        super().__init__(f"Server-generated value for local ID '{lid}' is not available at this point.")


class LocalIdTypeMismatchError(LocalIdError):
    title = "Incompatible type in Local ID usage."

    def __init__(self, lid, declared_type, expected_type):
        super().__init__(f"Local ID '{lid}' belongs to resource type '{declared_type}' instead of '{expected_type}'.")


class LocalIdUsedWhileDefiningError(LocalIdError):
    title = "Local ID cannot be both defined and used within the same operation."

    def __init__(self, lid):
        super().__init__(f"Local ID '{lid}' cannot be both defined and used within the same operation.")


#
# Execution errors
#
class ResourceNotFoundError(NotFoundError):
    def __init__(self, type_name, jsonapi_id):
        super().__init__(f"Resource of type '{type_name}' with ID '{jsonapi_id}' does not exist.", pointer="")


class RelatedResourceNotFoundError(NotFoundError):
    title = "A related resource does not exist."

    def __init__(self, type_name, jsonapi_id, rel_name):
        super().__init__(
            f"Related resource of type '{type_name}' with ID '{jsonapi_id}' in relationship '{rel_name}' does not exist.",
            pointer="",
        )


class ResourceAlreadyExistsError(JsonapiError):
    status_code = HTTPStatus.CONFLICT.value
    title = "Another resource with the specified ID already exists."
    log_level = logging.WARNING

    def __init__(self, type_name, jsonapi_id):
        super().__init__(f"Another resource of type '{type_name}' with ID '{jsonapi_id}' already exists.", pointer="")


class DataStoreUpdateError(GenericError):
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY.value
    title = "Failed to persist changes in the underlying data store."
