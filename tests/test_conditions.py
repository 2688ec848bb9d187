"""
Tests for the operations on a list of conditions
"""

# Standard
from unittest import mock

# First Party
import alog

# Local
from cond8 import conditions as conditions_module
from cond8.condition import (
    ConditionSeverity,
    ConditionStatus,
    false_condition,
    true_condition,
    unknown_condition,
)
from cond8.conditions import (
    conditions_changed,
    get_condition,
    has_condition,
    is_condition_false,
    is_condition_true,
    is_condition_unknown,
    remove_condition,
    set_condition,
)
from cond8.test_helpers.helpers import T0, T1, condition_list, configure_logging

configure_logging()

log = alog.use_channel("TEST")

## Helpers #####################################################################


def stamped(condition, timestamp=T0):
    return condition.copy(last_transition_time=timestamp)


## has_condition / get_condition ###############################################


def test_has_condition():
    conds = [stamped(true_condition("foo"))]
    assert has_condition(conds, "foo")
    assert not has_condition(conds, "bar")
    assert not has_condition([], "foo")
    assert not has_condition(None, "foo")


def test_get_condition_found():
    """Make sure the index and the condition are returned"""
    conds = [stamped(true_condition("foo")), stamped(true_condition("bar"))]
    idx, cond = get_condition(conds, "bar")
    assert idx == 1
    assert cond.type == "bar"


def test_get_condition_missing():
    """Make sure a missing type gives the sentinel pair"""
    assert get_condition([stamped(true_condition("foo"))], "bar") == (-1, None)
    assert get_condition([], "bar") == (-1, None)


## set_condition ###############################################################


def test_set_condition_appends_new_type():
    """Make sure a new type is appended and stamped with the given time"""
    conds = [stamped(true_condition("foo"))]
    result = set_condition(conds, true_condition("bar"), timestamp=T1)
    assert [c.type for c in result] == ["foo", "bar"]
    assert result[1].last_transition_time == T1


def test_set_condition_stamps_now_by_default():
    """Make sure the current time is used when no time is given"""
    with mock.patch.object(conditions_module, "now", return_value=T1):
        result = set_condition([], true_condition("foo"))
    assert result[0].last_transition_time == T1


def test_set_condition_keeps_caller_time_for_new_type():
    """Make sure a caller provided transition time is kept on insert"""
    result = set_condition([], stamped(true_condition("foo")), timestamp=T1)
    assert result[0].last_transition_time == T0


def test_set_condition_same_status_keeps_time():
    """Make sure edits that do not change the status keep the transition time"""
    conds = [stamped(false_condition("foo", "Old", ConditionSeverity.INFO, "old"))]
    new = false_condition("foo", "New", ConditionSeverity.ERROR, "new")
    result = set_condition(conds, new, timestamp=T1)
    assert len(result) == 1
    assert result[0].reason == "New"
    assert result[0].severity == ConditionSeverity.ERROR
    assert result[0].message == "new"
    assert result[0].last_transition_time == T0


def test_set_condition_same_status_ignores_caller_time():
    """Make sure a caller provided time does not override a stored one when
    the status is unchanged
    """
    conds = [stamped(true_condition("foo"))]
    result = set_condition(conds, stamped(true_condition("foo"), T1))
    assert result[0].last_transition_time == T0


def test_set_condition_same_status_fills_missing_time():
    """Make sure a stored condition with no time gets one"""
    conds = [true_condition("foo")]
    result = set_condition(conds, true_condition("foo"), timestamp=T1)
    assert result[0].last_transition_time == T1


def test_set_condition_status_change_updates_time():
    """Make sure a status change moves the transition time"""
    conds = [stamped(true_condition("foo"))]
    new = false_condition("foo", "Broken", ConditionSeverity.ERROR)
    result = set_condition(conds, new, timestamp=T1)
    assert result[0].status == ConditionStatus.FALSE
    assert result[0].last_transition_time == T1


def test_set_condition_keeps_position():
    """Make sure an update replaces the condition in place"""
    conds = condition_list(
        true_condition("a"), true_condition("b"), true_condition("c")
    )
    result = set_condition(conds, unknown_condition("b", "Reason"), timestamp=T1)
    assert [c.type for c in result] == ["a", "b", "c"]
    assert result[1].status == ConditionStatus.UNKNOWN


def test_set_condition_does_not_mutate_input():
    """Make sure the input list and its members are left alone"""
    original = stamped(true_condition("foo"))
    conds = [original]
    new = unknown_condition("foo", "Reason")
    result = set_condition(conds, new, timestamp=T1)
    assert conds == [original]
    assert original.status == ConditionStatus.TRUE
    assert new.last_transition_time is None
    assert result[0] is not new


def test_set_condition_idempotent():
    """Make sure setting the same condition twice is the same as once"""
    cond = false_condition("foo", "Reason", ConditionSeverity.WARNING, "msg")
    once = set_condition([], cond, timestamp=T0)
    twice = set_condition(once, cond, timestamp=T1)
    assert once == twice


def test_set_condition_unique_types():
    """Make sure a type is only ever present once"""
    conds = []
    for status_cond in [
        true_condition("foo"),
        unknown_condition("foo", "Reason"),
        true_condition("foo"),
    ]:
        conds = set_condition(conds, status_cond)
    assert len([c for c in conds if c.type == "foo"]) == 1


## remove_condition ############################################################


def test_remove_condition():
    conds = condition_list(true_condition("foo"), true_condition("bar"))
    result = remove_condition(conds, "foo")
    assert not has_condition(result, "foo")
    assert has_condition(result, "bar")
    assert has_condition(conds, "foo")


def test_remove_condition_missing_is_noop():
    conds = condition_list(true_condition("foo"))
    assert remove_condition(conds, "bar") == conds
    assert remove_condition([], "bar") == []


## is_condition_* ##############################################################


def test_is_condition_status_checks():
    conds = condition_list(
        true_condition("true1"),
        false_condition("false1", "Reason", ConditionSeverity.INFO),
        unknown_condition("unknown1", "Reason"),
    )
    assert is_condition_true(conds, "true1")
    assert not is_condition_true(conds, "false1")
    assert not is_condition_true(conds, "unknown1")
    assert not is_condition_true(conds, "missing")

    assert is_condition_false(conds, "false1")
    assert not is_condition_false(conds, "true1")
    assert not is_condition_false(conds, "missing")

    assert is_condition_unknown(conds, "unknown1")
    assert is_condition_unknown(conds, "missing")
    assert not is_condition_unknown(conds, "true1")


## conditions_changed ##########################################################


def test_conditions_changed_ignores_timestamps():
    """Make sure only the transition time changing is not a change"""
    current = [stamped(true_condition("foo"), T0)]
    new = [stamped(true_condition("foo"), T1)]
    assert not conditions_changed(current, new)


def test_conditions_changed_detects_changes():
    current = [stamped(true_condition("foo"))]
    assert conditions_changed(current, [])
    assert conditions_changed(current, current + [true_condition("bar")])
    assert conditions_changed(
        current, [stamped(unknown_condition("foo", "Reason"))]
    )
    assert conditions_changed(
        current, [stamped(true_condition("foo")).copy(message="new")]
    )


def test_conditions_changed_empty():
    assert not conditions_changed([], [])
