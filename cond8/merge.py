"""
The merge engine derives a single condition from a group of conditions.

* mirror: copy the Ready condition of one resource under a different type
* summary: roll all the conditions of one resource up into its Ready condition
* aggregate: roll the Ready conditions of many resources up into one condition

In all cases the worst state wins. False beats Unknown which beats True, and
among False conditions the highest severity wins. Ties go to the condition that
comes first in the selection, so results never depend on dict ordering.
"""

# Standard
from dataclasses import dataclass
from typing import Callable, List, Optional

# First Party
import alog

# Local
from . import constants
from .accessor import ConditionsGetter, ConditionsSetter, get, set_on
from .condition import (
    Condition,
    ConditionSeverity,
    ConditionStatus,
    false_condition,
    true_condition,
    unknown_condition,
)

log = alog.use_channel("MERGE")

## Options #####################################################################


@dataclass
class MergeOptions:
    """Accumulated settings for a single merge"""

    condition_types: Optional[List[str]] = None
    add_step_counter: bool = False
    step_counter_if_only_types: Optional[List[str]] = None
    step_counter: int = 0


MergeOption = Callable[[MergeOptions], None]


def with_conditions(*types: str) -> MergeOption:
    """Only merge the given condition types. The order given is the order used
    to break ties.
    """

    def _apply(options: MergeOptions):
        options.condition_types = list(types)

    return _apply


def with_step_counter() -> MergeOption:
    """Report "X of N completed" instead of the winning message"""
    return with_step_counter_if(True)


def with_step_counter_if(value: bool) -> MergeOption:
    """Enable or disable the step counter"""

    def _apply(options: MergeOptions):
        options.add_step_counter = value

    return _apply


def with_step_counter_if_only(*types: str) -> MergeOption:
    """Keep the step counter only if every merged condition has one of the given
    types. When active, N is the number of types given here.
    """

    def _apply(options: MergeOptions):
        options.step_counter_if_only_types = list(types)

    return _apply


## Merge Operations ############################################################


def mirror(from_: ConditionsGetter, target_type: str) -> Optional[Condition]:
    """Copy the Ready condition of from_ renamed to target_type

    Returns:
        condition:  Optional[Condition]
            The mirrored condition or None if from_ has no Ready condition
    """
    condition = get(from_, constants.READY_CONDITION)
    if condition is None:
        log.debug3("No %s condition to mirror", constants.READY_CONDITION)
        return None
    return condition.copy(type=target_type)


def summary(from_: ConditionsGetter, *options: MergeOption) -> Optional[Condition]:
    """Summarize the conditions of a single resource into a Ready condition

    Args:
        from_:  ConditionsGetter
            The resource to summarize. Any existing Ready condition is ignored.
        *options:  MergeOption
            with_conditions, with_step_counter, with_step_counter_if and
            with_step_counter_if_only

    Returns:
        ready:  Optional[Condition]
            The summary with a zero lastTransitionTime, or None if there is
            nothing to summarize
    """
    merge_options = _build_options(options)
    conditions = [
        condition
        for condition in from_.get_conditions()
        if condition.type != constants.READY_CONDITION
    ]

    # Select the conditions in scope, in the requested order if given
    if merge_options.condition_types is not None:
        selection = []
        for type_name in dict.fromkeys(merge_options.condition_types):
            match = next((c for c in conditions if c.type == type_name), None)
            if match is not None:
                selection.append(match)
    else:
        selection = conditions
    log.debug3("Summarizing %s", [condition.type for condition in selection])

    # The conditional step counter only holds if nothing outside the given set
    # was selected
    only_types = merge_options.step_counter_if_only_types
    if only_types is not None and any(c.type not in only_types for c in selection):
        log.debug4("Disabling step counter for conditions outside %s", only_types)
        merge_options.add_step_counter = False

    if merge_options.add_step_counter:
        if only_types is not None:
            merge_options.step_counter = len(only_types)
        elif merge_options.condition_types is not None:
            merge_options.step_counter = len(merge_options.condition_types)
        else:
            merge_options.step_counter = len(selection)

    return _merge(selection, constants.READY_CONDITION, merge_options)


def aggregate(
    from_list: List[ConditionsGetter],
    target_type: str,
    *options: MergeOption,
) -> Optional[Condition]:
    """Aggregate the Ready condition of many resources into one condition

    Each resource casts one vote with its Ready condition. A resource without a
    Ready condition counts toward the total but is never counted as completed.

    Args:
        from_list:  List[ConditionsGetter]
            The resources to aggregate
        target_type:  str
            The type of the resulting condition
        *options:  MergeOption
            with_step_counter_if(False) disables the "X of N completed" message

    Returns:
        condition:  Optional[Condition]
            The aggregate, or None if there are no Ready conditions to merge
    """
    if not from_list:
        return None
    merge_options = MergeOptions(add_step_counter=True)
    for option in options:
        option(merge_options)
    merge_options.step_counter = len(from_list)
    votes = [get(getter, constants.READY_CONDITION) for getter in from_list]
    return _merge(votes, target_type, merge_options)


def set_summary(to: ConditionsSetter, *options: MergeOption):
    """Set the Ready condition of a resource to the summary of its conditions"""
    set_on(to, summary(to, *options))


def set_mirror(to: ConditionsSetter, target_type: str, from_: ConditionsGetter):
    """Set target_type on a resource to the Ready condition of another"""
    set_on(to, mirror(from_, target_type))


def set_aggregate(
    to: ConditionsSetter,
    target_type: str,
    from_list: List[ConditionsGetter],
    *options: MergeOption,
):
    """Set target_type on a resource to the aggregate of many Ready conditions"""
    set_on(to, aggregate(from_list, target_type, *options))


## Implementation Details ######################################################

# Lower sorts first
_FALSE_PRIORITY = {
    ConditionSeverity.ERROR: 0,
    ConditionSeverity.WARNING: 1,
    ConditionSeverity.INFO: 2,
    ConditionSeverity.NONE: 3,
}
_UNKNOWN_PRIORITY = 4
_TRUE_PRIORITY = 5


def _build_options(options) -> MergeOptions:
    merge_options = MergeOptions()
    for option in options:
        option(merge_options)
    return merge_options


def _merge_priority(condition: Condition) -> int:
    if condition.status == ConditionStatus.FALSE:
        return _FALSE_PRIORITY[condition.severity]
    if condition.status == ConditionStatus.UNKNOWN:
        return _UNKNOWN_PRIORITY
    return _TRUE_PRIORITY


def _merge(
    conditions: List[Optional[Condition]],
    target_type: str,
    merge_options: MergeOptions,
) -> Optional[Condition]:
    """Pick the worst condition and build the target condition from it. None
    entries are skipped when voting but are part of the step counter total.
    """
    votes = [condition for condition in conditions if condition is not None]
    if not votes:
        return None

    # min() keeps the first of equal priorities
    winner = min(votes, key=_merge_priority)
    log.debug3("Merge winner for [%s]: %s", target_type, winner)
    if winner.status == ConditionStatus.TRUE:
        return true_condition(target_type)

    message = winner.message
    if merge_options.add_step_counter:
        true_count = sum(1 for vote in votes if vote.status == ConditionStatus.TRUE)
        message = constants.STEP_COUNTER_MESSAGE.format(
            true_count, merge_options.step_counter
        )

    if winner.status == ConditionStatus.FALSE:
        return false_condition(target_type, winner.reason, winner.severity, message)
    return unknown_condition(target_type, winner.reason, message)
