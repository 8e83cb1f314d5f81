"""
flask_restful API subclass
"""
from functools import wraps
from typing import Callable
import werkzeug
from flask import request
from flask.app import Flask
from flask_restful import Api as FRApiBase
from flask_restful.representations.json import output_json
import jsonapi_ops
from .config import get_config
from .errors import GenericError, JsonapiError, UnsupportedMediaTypeError
from .json_encoder import OpsJSONProvider
from .jsonapi import OperationsAPI, make_error_response
from .resource_graph import ResourceGraph

DEFAULT_REPRESENTATIONS = [("application/vnd.api+json", output_json)]


class OpsAPI(FRApiBase):
    """
    Subclass of the flask_restful API class where we add the expose methods:
    the exposed models are registered in the resource graph and the atomic operations
    endpoint processes the batches for these models
    """

    def __init__(self, app: Flask, prefix: str = "", json_provider=OpsJSONProvider, **kwargs) -> None:
        """
        :param app: Flask app
        :param prefix: url prefix of the operations endpoint
        :param json_provider: flask json provider used to serialize the responses
        :param kwargs: app_db (Flask-SQLAlchemy instance) and JSONAPIOps configuration options
        """
        app_db = kwargs.pop("app_db", None)
        jsonapi_ops.JSONAPIOps(app, app_db=app_db, **kwargs)
        super().__init__(app, prefix=prefix, default_mediatype="application/vnd.api+json")
        app.json = json_provider(app)
        self.representations = dict(DEFAULT_REPRESENTATIONS)
        self.resource_graph = ResourceGraph()
        self.operations_url = None
        app.extensions["jsonapi_ops"] = self

    def expose_object(self, model, **properties):
        """
        Register a ResourceBase subclass in the resource graph,
        the operations endpoint is created when the first model is exposed
        :param model: ResourceBase subclass
        :return: ResourceType
        """
        resource_type = self.resource_graph.add(model)
        if self.operations_url is None:
            self.expose_operations(**properties)
        return resource_type

    def expose(self, *models, **properties):
        """
        Expose multiple models at once
        """
        for model in models:
            self.expose_object(model, **properties)

    def expose_operations(self, url=None, **properties):
        """
        Create the atomic operations endpoint

        creates a class of the form

        class Operations_API(OperationsAPI):
            resource_graph = self.resource_graph

        :param url: endpoint url, the OPERATIONS_URL config option by default
        :param properties: additional class properties
        """
        url = url or get_config("OPERATIONS_URL")
        properties["resource_graph"] = self.resource_graph
        api_class = api_decorator(type("Operations_API", (OperationsAPI,), properties))
        jsonapi_ops.log.info(f"Exposing atomic operations on {self.prefix}{url}")
        self.add_resource(api_class, url, endpoint="operations", methods=["POST"])
        self.operations_url = url


def api_decorator(cls):
    """Decorator for the API views: add the exception handling to the http methods
    :param cls: The class that will be decorated (e.g. OperationsAPI)
    :return: decorated class
    """
    for method_name in ["post"]:
        method = getattr(cls, method_name, None)
        if not method:
            continue
        setattr(cls, method_name, http_method_decorator(method))
    return cls


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the supported jsonapi HTTP methods
    - check the content type
    - convert all exceptions to a json:api error document and roll back the session

    :param fun:
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        """Wrap the method and perform error handling
        :param *args:
        :param **kwargs:
        :return: result of the wrapped method
        """
        try:
            if not request.is_supported_media_type:
                raise UnsupportedMediaTypeError(
                    f"Please specify 'application/vnd.api+json; ext=\"{jsonapi_ops.JSONAPIOps.ATOMIC_EXT}\"' "
                    f"instead of '{request.content_type}' for the Content-Type header value.",
                    pointer="",
                )
            return fun(*args, **kwargs)

        except JsonapiError as exc:
            error = exc

        except werkzeug.exceptions.HTTPException as exc:
            error = JsonapiError(exc.description, title=exc.name, status_code=exc.code)

        except Exception as exc:
            jsonapi_ops.log.exception(exc)
            error = GenericError(str(exc))

        jsonapi_ops.DB.session.rollback()
        return make_error_response(error)

    return method_wrapper
