# Configuration settings should be set in app.config
# The JSONAPIOps class variables hold the defaults, environment variables are used as a last resort
import os
import logging
from flask import current_app
import jsonapi_ops
from typing import Any, Optional


def get_config(option: str, default: Any = None) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :param default: value returned when the option isn't configured anywhere
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # not configured in the app, or working outside of the app context
        result = getattr(jsonapi_ops.JSONAPIOps, option, os.environ.get(option, None))
    if result is None:
        return default
    return result


def get_max_operations() -> Optional[int]:
    """
    :return: the maximum number of operations in a batch, None if unlimited
    """
    value = get_config("MAX_OPERATIONS_PER_REQUEST")
    if not value:
        return None
    return int(value)


def is_enabled(option: str) -> bool:
    """
    Boolean options may be set in the environment, eg. ALLOW_UNKNOWN_FIELDS=1
    """
    value = get_config(option, False)
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return jsonapi_ops.log.getEffectiveLevel() < logging.INFO
