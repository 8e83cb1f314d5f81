import datetime
import decimal
import jsonapi_ops
import sqlalchemy
from .errors import IncompatibleAttributeValueError
from .util import json_type_name


def parse_attr(column, attr_name, attr_val):
    """
    Parse the supplied `attr_val` so it can be saved in the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_name: json:api attribute name, used in the error message
    :param attr_val: jsonapi attribute value
    :return: processed value
    :raises IncompatibleAttributeValueError: if the value can't be converted to the column type
    """
    if attr_val is None:
        return attr_val

    if getattr(column, "python_type", None):
        # It's possible for a column to specify a custom python_type to use for deserialization
        return _convert(column.python_type, attr_name, attr_val)

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        # This happens when a custom type has been implemented, in which case the user/dev should know how to handle it
        jsonapi_ops.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    return _convert(python_type, attr_name, attr_val)


def _convert(python_type, attr_name, attr_val):
    try:
        return _coerce(python_type, attr_val)
    except (ValueError, TypeError, ArithmeticError):
        raise IncompatibleAttributeValueError(
            f"Failed to convert attribute '{attr_name}' with value '{attr_val}' "
            f"of type '{json_type_name(attr_val)}' to type '{python_type.__name__}'."
        )


def _coerce(python_type, attr_val):
    """
    Parse datetime, date and time values in iso format,
    other values must have a json type that maps onto the python type
    """
    if python_type is datetime.datetime:
        return datetime.datetime.fromisoformat(_iso_string(attr_val))
    if python_type is datetime.date:
        return datetime.date.fromisoformat(_iso_string(attr_val))
    if python_type is datetime.time:
        return datetime.time.fromisoformat(_iso_string(attr_val))
    if python_type is bool:
        if not isinstance(attr_val, bool):
            raise TypeError(attr_val)
        return attr_val
    if python_type is int:
        if isinstance(attr_val, bool) or isinstance(attr_val, float) and not attr_val.is_integer():
            raise TypeError(attr_val)
        return int(attr_val)
    if python_type in (float, decimal.Decimal):
        if isinstance(attr_val, bool):
            raise TypeError(attr_val)
        return python_type(str(attr_val)) if python_type is decimal.Decimal else float(attr_val)
    if python_type is str:
        if not isinstance(attr_val, str):
            raise TypeError(attr_val)
        return attr_val
    if isinstance(attr_val, python_type):
        return attr_val
    return python_type(attr_val)


def _iso_string(attr_val):
    if not isinstance(attr_val, str):
        raise TypeError(attr_val)
    if attr_val.endswith("Z"):
        # javascript Date.toISOString()
        attr_val = attr_val[:-1] + "+00:00"
    return attr_val
