# jsonapi_ops to json encoding
import datetime
import decimal
from uuid import UUID
from flask.json.provider import DefaultJSONProvider
import jsonapi_ops
from .base import ResourceBase


class OpsJSONProvider(DefaultJSONProvider):
    """
    Flask JSON encoding of the attribute values stored by SQLAlchemy
    """

    mimetype = "application/vnd.api+json"
    sort_keys = False

    @staticmethod
    def default(obj):
        """
        override the default json encoding
        :param obj: object to be encoded
        :return: encoded/serialized object
        """
        if isinstance(obj, ResourceBase):
            return obj._s_jsonapi_encode()
        if isinstance(obj, datetime.timedelta):
            return str(obj)
        if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
            return obj.isoformat()
        if isinstance(obj, set):
            return list(obj)
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, decimal.Decimal):
            return float(obj)
        if isinstance(obj, bytes):
            jsonapi_ops.log.debug("OpsJSONProvider: serializing bytes obj")
            return obj.hex()
        return DefaultJSONProvider.default(obj)
