# Conversion between json:api "id" strings and the primary keys of the models
import uuid
import jsonapi_ops
from .errors import IncompatibleIdValueError


class ResourceID:
    """
    This class creates a jsonapi "id" from the classes PKs
    In case of a composite PK, the pks are joined with the delimiter
    eg.
    pkA = 1, pkB = 2, delimiter = '_' => jsonapi_id = '1_2'

    If you want to create a custom id_type, you can subclass ResourceID
    and set it as the `id_type` of the model
    """

    primary_keys = ["id"]
    columns = []
    delimiter = "_"
    parent_class = None

    @classmethod
    def gen_id(cls):
        """
        Generate a jsonapi id for a new instance,
        None means the database generates it (autoincrement)
        """
        if len(cls.columns) != 1:
            return None
        column = cls.columns[0]
        if column.default is not None or column.server_default is not None:
            return None
        if _python_type(column) is int:
            return None
        return str(uuid.uuid4())

    @classmethod
    def get_pks(cls, jsonapi_id):
        """
        Convert the jsonapi_id string to a pk dict
        in case the PK is composite it consists of PKs joined by cls.delimiter
        :return: primary key dict
        :raises IncompatibleIdValueError: when the id can't be converted to the pk column types
        """
        if len(cls.columns) == 1:
            values = [jsonapi_id]
        else:
            values = str(jsonapi_id).split(cls.delimiter)
        if len(values) != len(cls.columns):
            raise IncompatibleIdValueError(
                f"Failed to convert '{jsonapi_id}' of type 'String' to a key of {len(cls.columns)} values."
            )
        result = {}
        for pk_name, pk_col, val in zip(cls.primary_keys, cls.columns, values):
            python_type = _python_type(pk_col)
            if python_type is None:
                result[pk_name] = val
                continue
            try:
                result[pk_name] = python_type(val)
            except (ValueError, TypeError):
                raise IncompatibleIdValueError(
                    f"Failed to convert '{jsonapi_id}' of type 'String' to type '{python_type.__name__}'."
                )
        return result

    @classmethod
    def validate_id(cls, jsonapi_id):
        """
        :return: the canonical string representation of the id
        """
        pks = cls.get_pks(jsonapi_id)
        return cls.delimiter.join(str(pks[name]) for name in cls.primary_keys)

    @classmethod
    def get_id(cls, obj):
        """
        Retrieve the id string derived from the pks of obj
        """
        values = [getattr(obj, pk_name) for pk_name in cls.primary_keys]
        if any(val is None for val in values):
            return None
        return cls.delimiter.join(str(val) for val in values)

    @classmethod
    def set_id(cls, obj, jsonapi_id):
        """
        Set the primary key attributes of obj
        """
        for pk_name, val in cls.get_pks(jsonapi_id).items():
            setattr(obj, pk_name, val)


def _python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        # custom column types: the value is passed as is
        jsonapi_ops.log.debug(f"No python type for column {column}")
        return None


def get_id_type(cls, Super=ResourceID):
    """
    Create the id type of a mapped class from its primary key columns
    """
    mapper = cls.__mapper__
    columns = list(mapper.primary_key)
    primary_keys = [mapper.get_property_by_column(col).key for col in columns]
    delimiter = getattr(cls, "_s_pk_delimiter", "_")
    id_type_class = type(
        cls.__name__ + "_ID", (Super,), {"primary_keys": primary_keys, "columns": columns, "delimiter": delimiter, "parent_class": cls}
    )
    return id_type_class
