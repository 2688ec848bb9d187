"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import List, Optional
from unittest import mock
import copy
import inspect
import os

# First Party
import aconfig
import alog

# Local
from cond8.accessor import ConditionsSetter
from cond8.condition import Condition
from cond8.conditions import Conditions, set_condition
from cond8.config import library_config as config_detail_dict
from cond8.retry import Clock
from cond8.status_client import DryRunStatusClient, ResourceRef

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "test_instance"
TEST_NAMESPACE = "test"
TEST_CUSTOM_API_VERSION = "foo.bar.com/v1"
TEST_CUSTOM_KIND = "Widget"

# A fixed point in time used for transition times in tests
T0 = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 2, 4, 5, 6, tzinfo=timezone.utc)


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion. Dict values are merged into the existing section so
    that a single nested key can be overridden.
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        if isinstance(val, dict):
            merged = copy.deepcopy(dict(old_vals.get(key) or {}))
            merged.update(val)
            val = aconfig.Config(merged, override_env_vars=False)
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


## Conditions Helpers ##########################################################


class ConditionedObject(ConditionsSetter):
    """Simple in-memory Getter/Setter holding a list of conditions"""

    def __init__(self, conditions: Optional[Conditions] = None):
        self.conditions = list(conditions or [])

    def get_conditions(self) -> Conditions:
        return self.conditions

    def set_conditions(self, conditions: Conditions):
        self.conditions = list(conditions)


def condition_list(*conditions: Optional[Condition]) -> Conditions:
    """Build a list with set_condition semantics, skipping None entries"""
    result = []
    for condition in conditions:
        if condition is not None:
            result = set_condition(result, condition)
    return result


def getter_with_conditions(*conditions: Optional[Condition]) -> ConditionedObject:
    return ConditionedObject(condition_list(*conditions))


def make_resource(
    kind: str = TEST_CUSTOM_KIND,
    api_version: str = TEST_CUSTOM_API_VERSION,
    name: str = TEST_INSTANCE_NAME,
    namespace: Optional[str] = TEST_NAMESPACE,
    conditions: Optional[List[dict]] = None,
    **kwargs,
) -> dict:
    """Build a manifest dict, optionally with raw status conditions"""
    resource = copy.deepcopy(kwargs)
    resource.setdefault("kind", kind)
    resource.setdefault("apiVersion", api_version)
    metadata = resource.setdefault("metadata", {})
    metadata.setdefault("name", name)
    if namespace is not None:
        metadata.setdefault("namespace", namespace)
    if conditions is not None:
        resource.setdefault("status", {})["conditions"] = copy.deepcopy(conditions)
    return resource


def make_ref(resource: dict) -> ResourceRef:
    return ResourceRef.from_manifest(resource)


## Clock #######################################################################


class FakeClock(Clock):
    """Clock that only moves when slept on"""

    def __init__(self, start: float = 1000.0):
        self.current = start
        self.sleeps = []
        self._lock = Lock()

    def now(self) -> float:
        with self._lock:
            return self.current

    def sleep(self, seconds: float):
        with self._lock:
            log.debug4("Fake sleeping %fs", seconds)
            self.sleeps.append(seconds)
            self.current += seconds

    def advance(self, seconds: float):
        with self._lock:
            self.current += seconds


## Failable Mocks ##############################################################


def get_failable_method(fail_flag, method, failure_return=False):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        log.debug4(
            "Running failable mock of [%s] with fail flag: %s", str(method), fail_flag
        )
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            res = fail_flag()
            if res is not None:
                return res
        elif fail_flag == "assert":
            log.debug4("Asserting in failable mock")
            raise AssertionError(f"You told me to fail {method}!")
        elif fail_flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        log.debug4("Passing through (%s, **%s)", args, kwargs)
        return method(*args, **kwargs)

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class MockStatusClient(DryRunStatusClient):
    """The MockStatusClient wraps a standard DryRunStatusClient and adds
    configuration options to simulate failures in each of its operations.
    """

    def __init__(
        self,
        get_state_fail=False,
        get_state_raise=False,
        patch_status_fail=False,
        patch_status_raise=False,
        auto_enable=True,
        resources=None,
    ):
        """This StatusClient can be configured to have various failure cases
        and will mock the state of the cluster so that get_object_current_state
        will pull its information from the local dict.
        """
        resources = resources or []
        for resource in resources:
            resource.setdefault("apiVersion", "v1")
        super().__init__(resources)

        self.get_state_fail = "assert" if get_state_raise else get_state_fail
        self.patch_status_fail = "assert" if patch_status_raise else patch_status_fail

        # If auto-enabling, turn the mocks on now
        if auto_enable:
            self.enable_mocks()

    #######################
    ## Helpers for Tests ##
    #######################

    def enable_mocks(self):
        """Turn the mocks on"""
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.get_state_fail, super().get_object_current_state, None
            )
        )
        self.patch_status = mock.Mock(
            side_effect=get_failable_method(
                self.patch_status_fail, super().patch_status, None
            )
        )

    def get_obj(self, kind, name, namespace=None, api_version=None):
        return self.get_object_current_state(kind, name, namespace, api_version)

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None
