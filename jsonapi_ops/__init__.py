# flake8: noqa: F401
#
# JSON:API Atomic Operations for Flask-SQLAlchemy models
#
from .ops_init import DB, log, JSONAPIOps
from .errors import JsonapiError, ValidationError, GenericError, NotFoundError, DeserializationError
from .base import ResourceBase
from .resource_graph import ResourceGraph, ResourceType
from .operations import (
    ResourceIdentity,
    CreateResource,
    UpdateResource,
    DeleteResource,
    UpdateRelationship,
    AddToRelationship,
    RemoveFromRelationship,
)
from .local_ids import LocalIdTracker, LocalIdValidator
from .processor import OperationsProcessor, AtomicOutcome
from .transaction import in_batch
from .api import OpsAPI
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "OpsAPI",
    "JSONAPIOps",
    # db:
    "ResourceBase",
    "ResourceGraph",
    "ResourceType",
    # operations:
    "ResourceIdentity",
    "CreateResource",
    "UpdateResource",
    "DeleteResource",
    "UpdateRelationship",
    "AddToRelationship",
    "RemoveFromRelationship",
    "LocalIdTracker",
    "LocalIdValidator",
    "OperationsProcessor",
    "AtomicOutcome",
    "in_batch",
    # Errors:
    "JsonapiError",
    "ValidationError",
    "GenericError",
    "NotFoundError",
    "DeserializationError",
)
