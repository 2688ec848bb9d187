"""
Common dict utilities shared across the library
"""

# Standard
from typing import Any

# Local
from . import constants

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting
        dflt:  Any
            Value returned when any part of the key is missing

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i + 1])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


def merge_patch(base: dict, patch: dict) -> dict:
    """Apply a JSON Merge Patch (rfc 7386) onto base. The merge is done in
    place, but the resulting dict is also returned for convenience.

    If both the base and the patch have a dict at a key, recursively merge.
    A None value in the patch removes the key. Anything else (including lists)
    overwrites.

    Args:
        base:  dict
            The document being patched
        patch:  dict
            The merge patch

    Returns:
        merged:  dict
            The patched base
    """
    for key, value in patch.items():
        if value is None:
            base.pop(key, None)
        elif isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = merge_patch(base[key], value)
        elif isinstance(value, dict):
            base[key] = merge_patch({}, value)
        else:
            base[key] = value
    return base
