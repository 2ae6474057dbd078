"""Name-path normalization for artifact addressing."""

import json
from typing import Any

from cdmconfig.constants import LEGACY_NAME_PATH_SEPARATOR, NAME_PATH_SEPARATOR


def normalize_name_path(name_path: Any) -> Any:
    """
    Rewrite a name path into the canonical separator form.

    Accepts a plain string, a legacy slash-delimited string, a JSON-serialized
    list or a list. Empty values are returned unchanged.

    Examples:
        "a/b/c"       -> "a�b�c"
        "a�b�"        -> "a�b"
        ["a", "b"]    -> "�a�b"
    """
    if not name_path:
        return name_path

    value = name_path
    if isinstance(value, str):
        if NAME_PATH_SEPARATOR in value:
            return _trim_trailing_separator(value)
        value = _parse_list(value)

    if isinstance(value, list):
        return NAME_PATH_SEPARATOR + NAME_PATH_SEPARATOR.join(str(node) for node in value)

    value = value.replace(LEGACY_NAME_PATH_SEPARATOR, NAME_PATH_SEPARATOR)
    return _trim_trailing_separator(value)


def join_name_path(prefix: Any, file_name: str) -> str:
    """Append a file name to a (possibly empty) name-path prefix."""
    if prefix is None or (isinstance(prefix, str) and not prefix.strip()):
        return file_name
    normalized = normalize_name_path(prefix)
    if not normalized:
        return file_name
    return f"{normalized}{NAME_PATH_SEPARATOR}{file_name}"


def _parse_list(value: str) -> list[Any] | str:
    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    return parsed if isinstance(parsed, list) else value


def _trim_trailing_separator(value: str) -> str:
    if value.endswith(NAME_PATH_SEPARATOR):
        return value[: -len(NAME_PATH_SEPARATOR)]
    return value
