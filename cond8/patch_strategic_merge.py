"""
This module implements the subset of Strategic Merge Patch needed to apply
status patches locally, following the semantics in:

* kubernetes: https://github.com/kubernetes/community/blob/master/contributors/devel/sig-api-machinery/strategic-merge-patch.md

Dicts merge recursively with None removing a key. Lists with a registered merge
key are aligned element by element on that key and honor the "$patch"
directive (merge, replace, delete). All other lists are overwritten.
"""  # pylint: disable=line-too-long

# Standard
from collections import OrderedDict
from typing import Dict, Optional
import copy

# First Party
import alog

log = alog.use_channel("PATCH")

DIRECTIVE_KEY = "$patch"
DIRECTIVE_REPLACE = "replace"
DIRECTIVE_MERGE = "merge"
DIRECTIVE_DELETE = "delete"

## Public ######################################################################


def patch_strategic_merge(
    resource_definition: dict,
    patch: dict,
    merge_patch_keys: Optional[Dict[str, str]] = None,
) -> dict:
    """Apply a Strategic Merge Patch to a resource

    Args:
        resource_definition:  dict
            The dict representation of the kubernetes resource
        patch:  dict
            The patch to apply
        merge_patch_keys:  Optional[Dict[str, str]]
            Mapping from "<Kind>.<path>" positions to the key used to align
            list elements at that position

    Returns:
        patched_resource_definition:  dict
            A patched copy of the resource_definition
    """
    return _strategic_merge(
        current=copy.deepcopy(resource_definition),
        desired=copy.deepcopy(patch),
        position=resource_definition.get("kind"),
        merge_patch_keys=merge_patch_keys or {},
    )


## Implementation ##############################################################


def _strategic_merge(
    current,
    desired,
    position: str,
    merge_patch_keys: Dict[str, str],
):
    """Recursive implementation of Strategic Merge Patch"""
    if isinstance(desired, dict) and isinstance(current, dict):
        log.debug4("Performing dict merge at [%s]", position)
        for key, val in desired.items():
            if val is None:
                current.pop(key, None)
            elif key not in current:
                current[key] = _strip_nulls(val)
            else:
                current[key] = _strategic_merge(
                    current[key],
                    val,
                    ".".join([position, key]),
                    merge_patch_keys,
                )
        return current

    if isinstance(desired, list) and isinstance(current, list):
        merge_key = merge_patch_keys.get(position)
        log.debug4("Performing list merge at [%s]. Merge key: %s", position, merge_key)
        if not merge_key:
            return desired
        return _merge_keyed_list(current, desired, position, merge_key, merge_patch_keys)

    log.debug4("Performing overwrite at [%s]", position)
    return _strip_nulls(desired)


def _merge_keyed_list(current, desired, position, merge_key, merge_patch_keys):
    """Align list elements on their merge key and merge each one"""
    for name, items in [("Current", current), ("Desired", desired)]:
        if not all(isinstance(itm, dict) and merge_key in itm for itm in items):
            raise ValueError(
                f"{name} at [{position}] contains elements without [{merge_key}]"
            )

    current_dict = OrderedDict([(itm[merge_key], itm) for itm in current])
    for item in desired:
        item_key = item[merge_key]
        directive = item.pop(DIRECTIVE_KEY, DIRECTIVE_MERGE)
        log.debug4("Element [%s] directive: %s", item_key, directive)
        if directive == DIRECTIVE_DELETE:
            if item_key not in current_dict:
                raise ValueError(
                    f"Invalid [{DIRECTIVE_DELETE}] on missing element [{item_key}]"
                )
            del current_dict[item_key]
        elif directive == DIRECTIVE_REPLACE or item_key not in current_dict:
            current_dict[item_key] = _strip_nulls(item)
        elif directive == DIRECTIVE_MERGE:
            current_dict[item_key] = _strategic_merge(
                current_dict[item_key], item, position, merge_patch_keys
            )
        else:
            raise ValueError(f"Invalid directive: [{directive}]")
    return list(current_dict.values())


def _strip_nulls(value):
    """Null values in newly added content mean "absent" """
    if isinstance(value, dict):
        return {key: _strip_nulls(val) for key, val in value.items() if val is not None}
    return value
