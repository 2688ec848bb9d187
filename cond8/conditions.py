"""
Pure operations over a list of conditions.

None of these functions mutate their inputs. Functions that produce an updated
list return a new list holding copies of the conditions.
"""

# Standard
from datetime import datetime
from typing import List, Optional, Tuple

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from . import constants
from .condition import Condition, ConditionStatus, now

log = alog.use_channel("CONDS")

# A list of conditions, unique by type
Conditions = List[Condition]

## Public ######################################################################


def has_condition(conditions: Conditions, type_name: str) -> bool:
    """Check whether a condition of the given type is present"""
    return get_condition(conditions, type_name)[1] is not None


def get_condition(
    conditions: Conditions,
    type_name: str,
) -> Tuple[int, Optional[Condition]]:
    """Find the condition of the given type

    Args:
        conditions:  Conditions
            The list to search
        type_name:  str
            The condition type to look up

    Returns:
        index:  int
            The position of the condition or -1 if absent
        condition:  Optional[Condition]
            The condition itself or None if absent
    """
    for idx, condition in enumerate(conditions or []):
        if condition.type == type_name:
            return idx, condition
    return -1, None


def set_condition(
    conditions: Conditions,
    new_condition: Condition,
    timestamp: Optional[datetime] = None,
) -> Conditions:
    """Add or update a condition while preserving transition time semantics.

    * A new type is appended. Its lastTransitionTime is stamped unless the
      caller provided one.
    * An existing type is replaced in place. If the status did not change, the
      stored lastTransitionTime is carried forward so that reason, message and
      severity edits are not reported as transitions. If the status changed,
      the time is stamped unless the caller provided one.

    Args:
        conditions:  Conditions
            The current list
        new_condition:  Condition
            The desired state of one condition
        timestamp:  Optional[datetime]
            The time to use for "now" (defaults to the current UTC time)

    Returns:
        updated:  Conditions
            A new list with the condition applied
    """
    updated = [condition.copy() for condition in conditions or []]
    new_condition = new_condition.copy()
    idx, current = get_condition(updated, new_condition.type)

    if current is None:
        log.debug2("Adding new condition [%s]", new_condition.type)
        if new_condition.last_transition_time is None:
            new_condition.last_transition_time = timestamp or now()
        updated.append(new_condition)
        return updated

    if current.status == new_condition.status:
        log.debug3("Condition [%s] status unchanged", new_condition.type)
        new_condition.last_transition_time = (
            current.last_transition_time
            or new_condition.last_transition_time
            or timestamp
            or now()
        )
    else:
        log.debug2(
            "Condition [%s] transitioned %s -> %s",
            new_condition.type,
            current.status.value,
            new_condition.status.value,
        )
        if new_condition.last_transition_time is None:
            new_condition.last_transition_time = timestamp or now()
    updated[idx] = new_condition
    return updated


def remove_condition(conditions: Conditions, type_name: str) -> Conditions:
    """Remove the condition of the given type. Removing an absent type is a
    no-op.
    """
    return [
        condition.copy()
        for condition in conditions or []
        if condition.type != type_name
    ]


def is_condition_true(conditions: Conditions, type_name: str) -> bool:
    """True if the condition is present with status True"""
    return _has_status(conditions, type_name, ConditionStatus.TRUE)


def is_condition_false(conditions: Conditions, type_name: str) -> bool:
    """True if the condition is present with status False"""
    return _has_status(conditions, type_name, ConditionStatus.FALSE)


def is_condition_unknown(conditions: Conditions, type_name: str) -> bool:
    """True if the condition has status Unknown or is not present"""
    condition = get_condition(conditions, type_name)[1]
    return condition is None or condition.status == ConditionStatus.UNKNOWN


def conditions_changed(current: Conditions, new: Conditions) -> bool:
    """Compare two condition lists to determine if there is a meaningful change.
    A meaningful change is defined as any change besides a timestamp.

    Args:
        current:  Conditions
            The conditions currently stored on the resource
        new:  Conditions
            The proposed conditions

    Returns:
        changed:  bool
            True if the proposed conditions differ in anything other than
            lastTransitionTime
    """
    return bool(DeepDiff(_comparable(current), _comparable(new)))


## Implementation Details ######################################################


def _comparable(conditions: Conditions) -> List[dict]:
    """Wire representation without the timestamps"""
    out = []
    for condition in conditions or []:
        content = condition.to_dict()
        content.pop(constants.CONDITION_TIMESTAMP_KEY, None)
        out.append(content)
    return out


def _has_status(
    conditions: Conditions,
    type_name: str,
    status: ConditionStatus,
) -> bool:
    condition = get_condition(conditions, type_name)[1]
    return condition is not None and condition.status == status
