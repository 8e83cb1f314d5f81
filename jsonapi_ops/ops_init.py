import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from .request import OpsRequest
from .response import OpsResponse
import jsonapi_ops
import flask.app


class JSONAPIOps:
    """This class configures the Flask application to process atomic operations
    :param app: a Flask application.
    :param LOGLEVEL: loglevel configuration variable, values from logging module (0: trace, .. 50: critical)
    """

    # Configuration settings are stored as class variables,
    # they can be overridden with the kwargs passed to init_app or the app.config
    LOGLEVEL = logging.WARNING
    OPERATIONS_URL = "/operations"
    MAX_OPERATIONS_PER_REQUEST = 10  # None or 0 means unlimited
    ALLOW_UNKNOWN_FIELDS = False  # silently ignore unknown attributes and relationships in the request body
    INCLUDE_REQUEST_BODY_IN_ERRORS = False  # echo the request body in the error "meta"
    ATOMIC_EXT = "https://jsonapi.org/ext/atomic"
    JSONAPI_VERSION = "1.1"

    def __init__(self, app: flask.app.Flask, *args, **kwargs) -> None:
        self.app = app
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(self, app: flask.app.Flask, app_db: SQLAlchemy = None, **kwargs) -> None:
        """
        Application initialization: set the request and response classes and the db handle
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        if app_db is None:
            app_db = app.extensions["sqlalchemy"]

        jsonapi_ops.DB = self.db = app_db

        app.request_class = OpsRequest
        app.response_class = OpsResponse

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for conf_name, conf_val in kwargs.items():
            setattr(JSONAPIOps, conf_name, conf_val)

        # pylint: disable=unused-argument,unused-variable
        @app.teardown_appcontext
        def shutdown_session(exception=None):
            """cfr. http://flask.pocoo.org/docs/0.12/patterns/sqlalchemy/"""
            self.db.session.remove()

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format used in the webserver logs
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# DB and logging initialization
#
DB = SQLAlchemy()

try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = JSONAPIOps.init_logging(LOGLEVEL)
