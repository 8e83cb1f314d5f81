#
from functools import _lru_cache_wrapper
from typing import Callable, Union


class ClassPropertyDescriptor:
    """
    ClassPropertyDescriptor
    """

    def __init__(self, fget: classmethod, fset: None = None) -> None:
        self.fget = fget
        self.fset = fset

    def __get__(self, obj, klass=None):
        if klass is None:
            klass = type(obj)
        return self.fget.__get__(obj, klass)()

    def __set__(self, obj, value):
        if not self.fset:
            raise AttributeError("can't set attribute")
        type_ = type(obj)
        return self.fset.__get__(obj, type_)(value)

    def setter(self, func: Callable) -> "ClassPropertyDescriptor":
        if not isinstance(func, (classmethod, staticmethod)):
            func = classmethod(func)
        self.fset = func
        return self


def classproperty(func: Union[Callable, _lru_cache_wrapper]) -> ClassPropertyDescriptor:
    """
    classproperty
    """
    if not isinstance(func, (classmethod, staticmethod)):
        func = classmethod(func)

    return ClassPropertyDescriptor(func)


def json_type_name(value) -> str:
    """
    :return: the JSON type name of a decoded json value, used in error messages
    """
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, (int, float)):
        return "Number"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "Array"
    return "Object"
