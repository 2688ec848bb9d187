"""
Tests for persisting conditions to the status sub-resource
"""

# Standard
from functools import partial
from threading import Barrier, Thread
import time

# Third Party
import pytest

# First Party
import alog

# Local
from cond8.condition import (
    ConditionSeverity,
    ConditionStatus,
    false_condition,
    true_condition,
)
from cond8.conditions import remove_condition, set_condition
from cond8.exceptions import (
    ConflictError,
    ResourceNotFoundError,
    RetryTimeoutError,
    SerializationError,
)
from cond8.patch import MERGE_PATCH, STRATEGIC_MERGE_PATCH
from cond8.persistence import apply_conditions
from cond8.retry import RetryPolicy
from cond8.status_client import DryRunStatusClient, ResourceRef
from cond8.test_helpers.helpers import (
    T0,
    FailOnce,
    FakeClock,
    MockStatusClient,
    configure_logging,
    library_config,
    make_ref,
    make_resource,
)

configure_logging()

log = alog.use_channel("TEST")

## Helpers #####################################################################

POLICY = RetryPolicy(interval=0.05, timeout=2.0)


def setter(condition):
    return partial(_set, condition=condition)


def _set(conditions, condition):
    return set_condition(conditions, condition)


def stored_conditions(client, ref):
    obj = client.get_object_current_state(
        ref.kind, ref.name, ref.namespace, ref.api_version
    )
    return (obj.get("status") or {}).get("conditions")


## Tests #######################################################################


def test_apply_conditions_writes_new_condition():
    """Make sure a new condition is written and reported as a change"""
    resource = make_resource()
    client = MockStatusClient(resources=[resource])
    ref = make_ref(resource)

    assert apply_conditions(client, ref, setter(true_condition("Ready")), clock=FakeClock())
    conditions = stored_conditions(client, ref)
    assert len(conditions) == 1
    assert conditions[0]["type"] == "Ready"
    assert conditions[0]["status"] == "True"
    assert "lastTransitionTime" in conditions[0]

    # Custom resources use a merge patch pinned to the version that was read
    kwargs = client.patch_status.call_args.kwargs
    assert kwargs["patch_type"] == MERGE_PATCH
    assert kwargs["patch"]["metadata"] == {"resourceVersion": "1"}


def test_apply_conditions_builtin_uses_strategic_merge():
    resource = make_resource(kind="Pod", api_version="v1")
    client = MockStatusClient(resources=[resource])
    assert apply_conditions(
        client, make_ref(resource), setter(true_condition("Ready")), clock=FakeClock()
    )
    assert client.patch_status.call_args.kwargs["patch_type"] == STRATEGIC_MERGE_PATCH


def test_apply_conditions_unchanged_skips_write():
    """Make sure a transform that changes nothing does not write"""
    resource = make_resource(
        conditions=[
            {
                "type": "Ready",
                "status": "True",
                "reason": "",
                "message": "",
                "lastTransitionTime": "2024-01-02T03:04:05Z",
            }
        ]
    )
    client = MockStatusClient(resources=[resource])
    ref = make_ref(resource)
    assert not apply_conditions(client, ref, setter(true_condition("Ready")))
    client.patch_status.assert_not_called()


def test_apply_conditions_preserves_other_status():
    """Make sure only the conditions change"""
    resource = make_resource(
        conditions=[
            {"type": "A", "status": "True", "lastTransitionTime": "2024-01-02T03:04:05Z"},
            {"type": "B", "status": "True", "lastTransitionTime": "2024-01-02T03:04:05Z"},
        ]
    )
    resource["status"]["phase"] = "Running"
    client = DryRunStatusClient([resource])
    ref = make_ref(resource)

    assert apply_conditions(
        client, ref, lambda conds: remove_condition(conds, "A"), clock=FakeClock()
    )
    obj = client.get_object_current_state(ref.kind, ref.name, ref.namespace)
    assert obj["status"]["phase"] == "Running"
    assert [c["type"] for c in obj["status"]["conditions"]] == ["B"]


def test_apply_conditions_keeps_transition_time():
    """Make sure an edit that keeps the status keeps the stored time"""
    resource = make_resource(
        kind="Pod",
        api_version="v1",
        conditions=[
            {
                "type": "Synced",
                "status": "False",
                "severity": "Info",
                "reason": "Old",
                "message": "",
                "lastTransitionTime": "2024-01-02T03:04:05Z",
            }
        ],
    )
    client = DryRunStatusClient([resource])
    ref = make_ref(resource)
    assert apply_conditions(
        client,
        ref,
        setter(false_condition("Synced", "New", ConditionSeverity.ERROR, "worse")),
        clock=FakeClock(),
    )
    assert stored_conditions(client, ref) == [
        {
            "type": "Synced",
            "status": "False",
            "severity": "Error",
            "reason": "New",
            "message": "worse",
            "lastTransitionTime": "2024-01-02T03:04:05Z",
        }
    ]


def test_apply_conditions_retries_conflict():
    """Make sure a conflict is retried against a fresh read"""
    resource = make_resource()
    client = MockStatusClient(
        resources=[resource], patch_status_fail=FailOnce(ConflictError)
    )
    ref = make_ref(resource)
    clock = FakeClock()
    seen = []

    def transform(conditions):
        seen.append(list(conditions))
        return set_condition(conditions, true_condition("Ready"))

    assert apply_conditions(client, ref, transform, retry_policy=POLICY, clock=clock)
    assert client.patch_status.call_count == 2
    assert client.get_object_current_state.call_count >= 2
    assert len(seen) == 2
    assert clock.sleeps == [0.05]
    assert stored_conditions(client, ref)[0]["type"] == "Ready"


def test_apply_conditions_sees_concurrent_write():
    """Make sure a retry after a conflict builds on the other writer's result"""
    resource = make_resource()
    client = DryRunStatusClient([resource])
    ref = make_ref(resource)
    calls = []

    def transform(conditions):
        calls.append(len(calls))
        if len(calls) == 1:
            # Another writer sneaks in between the read and the patch
            apply_conditions(client, ref, setter(true_condition("Other")))
        return set_condition(conditions, true_condition("Mine"))

    assert apply_conditions(client, ref, transform, retry_policy=POLICY, clock=FakeClock())
    assert len(calls) == 2
    assert {c["type"] for c in stored_conditions(client, ref)} == {"Other", "Mine"}


def test_apply_conditions_timeout():
    """Make sure persistent conflicts give up with a RetryTimeoutError"""
    resource = make_resource()
    client = MockStatusClient(resources=[resource], patch_status_fail=ConflictError)
    ref = make_ref(resource)
    with pytest.raises(RetryTimeoutError) as exc_info:
        apply_conditions(
            client,
            ref,
            setter(true_condition("Ready")),
            retry_policy=RetryPolicy(interval=1, timeout=3),
            clock=FakeClock(),
        )
    assert exc_info.value.attempts == 4
    assert exc_info.value.description == "Widget test/test_instance"
    assert "Widget test/test_instance" in str(exc_info.value)


def test_apply_conditions_missing_resource():
    """Make sure a missing resource is surfaced without retrying"""
    client = MockStatusClient()
    ref = ResourceRef("foo.bar.com/v1", "Widget", "missing", "test")
    clock = FakeClock()
    with pytest.raises(ResourceNotFoundError):
        apply_conditions(client, ref, setter(true_condition("Ready")), clock=clock)
    assert clock.sleeps == []


def test_apply_conditions_deleted_before_patch():
    """Make sure a resource deleted between read and patch is not retried"""
    resource = make_resource()
    client = DryRunStatusClient([resource])
    ref = make_ref(resource)
    clock = FakeClock()

    def transform(conditions):
        client.delete_object(ref.kind, ref.name, ref.namespace)
        return set_condition(conditions, true_condition("Ready"))

    with pytest.raises(ResourceNotFoundError):
        apply_conditions(client, ref, transform, clock=clock)
    assert clock.sleeps == []


def test_apply_conditions_malformed_stored_conditions():
    """Make sure malformed stored conditions are not repaired"""
    resource = make_resource()
    resource["status"] = {"conditions": {"type": "Ready"}}
    client = MockStatusClient(resources=[resource])
    with pytest.raises(SerializationError):
        apply_conditions(client, make_ref(resource), setter(true_condition("Ready")))
    client.patch_status.assert_not_called()


def test_apply_conditions_other_errors_abort():
    resource = make_resource()
    client = MockStatusClient(resources=[resource], patch_status_raise=True)
    with pytest.raises(AssertionError):
        apply_conditions(
            client, make_ref(resource), setter(true_condition("Ready")), clock=FakeClock()
        )
    client.patch_status.assert_called_once()


@pytest.mark.parametrize(
    ["kind", "api_version"],
    [("Widget", "foo.bar.com/v1"), ("Pod", "v1")],
)
def test_apply_conditions_concurrent_writers_converge(kind, api_version):
    """Make sure concurrent writers of distinct types all land and a shared
    removal sticks, for both merge and strategic merge patches
    """
    num_writers = 8
    resource = make_resource(
        kind=kind,
        api_version=api_version,
        conditions=[
            {
                "type": "Stale",
                "status": "False",
                "severity": "Info",
                "reason": "Old",
                "message": "",
                "lastTransitionTime": "2024-01-02T03:04:05Z",
            }
        ],
    )
    client = MockStatusClient(resources=[resource])
    ref = make_ref(resource)
    barrier = Barrier(num_writers)
    errors = []

    def slow_setter(type_name):
        def transform(conditions):
            time.sleep(0.01)
            conditions = remove_condition(conditions, "Stale")
            return set_condition(conditions, true_condition(type_name), timestamp=T0)

        return transform

    def writer(idx):
        try:
            barrier.wait()
            apply_conditions(client, ref, slow_setter(f"Type{idx}"))
        except Exception as err:  # pylint: disable=broad-except
            errors.append(err)

    with library_config(retry={"interval_seconds": 0.01, "timeout_seconds": 30.0}):
        threads = [Thread(target=writer, args=(idx,)) for idx in range(num_writers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert not errors
    conditions = stored_conditions(client, ref)
    assert sorted(c["type"] for c in conditions) == sorted(
        f"Type{idx}" for idx in range(num_writers)
    )
    assert all(c["status"] == ConditionStatus.TRUE.value for c in conditions)

    # Every write was pinned to the version it read
    expected_patch_type = (
        STRATEGIC_MERGE_PATCH if api_version == "v1" else MERGE_PATCH
    )
    for call in client.patch_status.call_args_list:
        assert call.kwargs["patch_type"] == expected_patch_type
        assert call.kwargs["patch"]["metadata"]["resourceVersion"]
