"""
This module builds the patches used to write conditions to the status
sub-resource and applies them locally for the dry run client.

Built-in kinds (whose API group has no ".") are patched with a Strategic Merge
Patch aligned on the condition type. Custom resources only support JSON Merge
Patch (rfc 7386), which replaces the conditions list as a whole. Both carry the
resourceVersion that the update was computed from so the server rejects the
write if the object changed in the meantime.
"""

# Standard
from typing import Dict, Optional
import copy

# First Party
import alog

# Local
from . import constants
from .conditions import Conditions
from .patch_strategic_merge import (
    DIRECTIVE_DELETE,
    DIRECTIVE_KEY,
    patch_strategic_merge,
)
from .utils import merge_patch, nested_get

log = alog.use_channel("PATCH")

## Public Interface ############################################################

MERGE_PATCH = "application/merge-patch+json"
STRATEGIC_MERGE_PATCH = "application/strategic-merge-patch+json"


def is_builtin_api_version(api_version: Optional[str]) -> bool:
    """Built-in kinds live in the core group or in a group without a "."
    (apps, batch, ...)
    """
    if not api_version or "/" not in api_version:
        return True
    return "." not in api_version.rsplit("/", 1)[0]


def status_patch_type(api_version: Optional[str]) -> str:
    """Pick the patch type supported by the resource's API group"""
    if is_builtin_api_version(api_version):
        return STRATEGIC_MERGE_PATCH
    return MERGE_PATCH


def make_status_patch(
    current: dict,
    conditions: Conditions,
    patch_type: str,
) -> dict:
    """Build the status patch that moves current to the given conditions

    Args:
        current:  dict
            The manifest as it was read from the cluster
        conditions:  Conditions
            The desired full list of conditions
        patch_type:  str
            MERGE_PATCH or STRATEGIC_MERGE_PATCH

    Returns:
        patch:  dict
            The patch body, including metadata.resourceVersion when known
    """
    desired = [condition.to_dict() for condition in conditions]
    if patch_type == MERGE_PATCH:
        patched_conditions = desired
    elif patch_type == STRATEGIC_MERGE_PATCH:
        patched_conditions = _strategic_conditions(current, desired)
    else:
        raise ValueError(f"Unsupported patch type [{patch_type}]")

    patch = {
        constants.STATUS_FIELD: {constants.CONDITIONS_FIELD: patched_conditions}
    }
    resource_version = nested_get(current, "metadata.resourceVersion")
    if resource_version is not None:
        patch["metadata"] = {"resourceVersion": resource_version}
    log.debug4("Status patch (%s): %s", patch_type, patch)
    return patch


def apply_status_patch(manifest: dict, patch: dict, patch_type: str) -> dict:
    """Apply a status patch locally the way the API server would

    Args:
        manifest:  dict
            The stored manifest
        patch:  dict
            The patch body
        patch_type:  str
            MERGE_PATCH or STRATEGIC_MERGE_PATCH

    Returns:
        patched:  dict
            A patched copy of the manifest
    """
    if patch_type == MERGE_PATCH:
        return merge_patch(copy.deepcopy(manifest), copy.deepcopy(patch))
    if patch_type == STRATEGIC_MERGE_PATCH:
        return patch_strategic_merge(
            manifest, patch, merge_patch_keys=condition_merge_keys(manifest)
        )
    raise ValueError(f"Unsupported patch type [{patch_type}]")


def condition_merge_keys(manifest: dict) -> Dict[str, str]:
    """Strategic merge keys for the conditions list of the manifest's kind"""
    return {
        ".".join([str(manifest.get("kind")), constants.CONDITIONS_PATH]): (
            constants.CONDITION_TYPE_KEY
        )
    }


## Implementation Details ######################################################


def _strategic_conditions(current: dict, desired: list) -> list:
    """Build the strategic merge list for the conditions. Fields dropped from a
    condition are nulled out and dropped conditions are deleted by directive.
    """
    stored = nested_get(current, constants.CONDITIONS_PATH) or []
    stored_by_type = {
        cond.get(constants.CONDITION_TYPE_KEY): cond
        for cond in stored
        if isinstance(cond, dict)
    }
    desired_types = {cond[constants.CONDITION_TYPE_KEY] for cond in desired}

    out = []
    for cond in desired:
        element = dict(cond)
        for key in stored_by_type.get(cond[constants.CONDITION_TYPE_KEY], {}):
            element.setdefault(key, None)
        out.append(element)
    for type_name in stored_by_type:
        if type_name not in desired_types:
            out.append(
                {constants.CONDITION_TYPE_KEY: type_name, DIRECTIVE_KEY: DIRECTIVE_DELETE}
            )
    return out
