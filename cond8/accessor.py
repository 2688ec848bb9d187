"""
The accessor abstraction lets the merge engine and the list operations work the
same way over different representations of a resource.

* ConditionsGetter: anything that can report its conditions
* ConditionsSetter: anything whose conditions can be replaced

Two adapters are provided:

* ObjectConditions wraps a typed python object (a dataclass, a kubernetes
  client model, ...) that holds a list of Condition at an attribute path
* UnstructuredConditions wraps the dict representation of a manifest and
  converts status.conditions to and from the wire format
"""

# Standard
from datetime import datetime
from typing import Any, Optional
import abc

# First Party
import alog

# Local
from . import constants
from .condition import (
    Condition,
    ConditionSeverity,
    false_condition,
    true_condition,
    unknown_condition,
)
from .conditions import (
    Conditions,
    get_condition,
    is_condition_false,
    is_condition_true,
    is_condition_unknown,
    remove_condition,
    set_condition,
)
from .exceptions import assert_serializable
from .utils import nested_get

log = alog.use_channel("ACCSR")

## Interfaces ##################################################################


class ConditionsGetter(abc.ABC):
    """A resource that can report its conditions"""

    @abc.abstractmethod
    def get_conditions(self) -> Conditions:
        """Get the current list of conditions"""


class ConditionsSetter(ConditionsGetter):
    """A resource whose conditions can be replaced"""

    @abc.abstractmethod
    def set_conditions(self, conditions: Conditions):
        """Replace the list of conditions"""


## Adapters ####################################################################


class ObjectConditions(ConditionsSetter):
    """Adapter over a typed object whose conditions live at an attribute path"""

    def __init__(self, obj: Any, field: str = constants.CONDITIONS_PATH):
        """
        Args:
            obj:  Any
                The typed resource object
            field:  str
                Dotted attribute path to the list of Condition
        """
        self.obj = obj
        self._parts = field.split(constants.NESTED_DICT_DELIM)

    def get_conditions(self) -> Conditions:
        parent = self._parent(required=False)
        if parent is None:
            return []
        return list(getattr(parent, self._parts[-1], None) or [])

    def set_conditions(self, conditions: Conditions):
        parent = self._parent(required=True)
        setattr(parent, self._parts[-1], list(conditions))

    def _parent(self, required: bool):
        current = self.obj
        for part in self._parts[:-1]:
            child = getattr(current, part, None)
            if child is None:
                if not required:
                    return None
                raise AttributeError(
                    f"Cannot set conditions on {type(self.obj).__name__}: "
                    f"[{part}] is not set"
                )
            current = child
        return current


class UnstructuredConditions(ConditionsSetter):
    """Adapter over the dict representation of a manifest. The conditions are
    parsed from and written to status.conditions in the wire format.
    """

    def __init__(self, manifest: dict):
        self.manifest = manifest

    @property
    def name(self) -> Optional[str]:
        return nested_get(self.manifest, "metadata.name")

    def get_conditions(self) -> Conditions:
        """Parse the stored conditions

        Raises:
            SerializationError: if status.conditions is not a well formed list
        """
        status = self._status(create=False)
        raw_conditions = status.get(constants.CONDITIONS_FIELD) if status else None
        if raw_conditions is None:
            return []
        assert_serializable(
            isinstance(raw_conditions, list),
            f"{constants.CONDITIONS_PATH} of [{self.name}] must be a list",
        )
        log.debug4("Parsing %d conditions for %s", len(raw_conditions), self.name)
        return [Condition.from_dict(raw) for raw in raw_conditions]

    def set_conditions(self, conditions: Conditions):
        self._status(create=True)[constants.CONDITIONS_FIELD] = [
            condition.to_dict() for condition in conditions
        ]

    def _status(self, create: bool) -> Optional[dict]:
        status = self.manifest.get(constants.STATUS_FIELD)
        if status is None and create:
            status = self.manifest[constants.STATUS_FIELD] = {}
        assert_serializable(
            status is None or isinstance(status, dict),
            f"{constants.STATUS_FIELD} of [{self.name}] must be an object",
        )
        return status


## Getter Helpers ##############################################################


def has(getter: ConditionsGetter, type_name: str) -> bool:
    """Check whether the getter holds a condition of the given type"""
    return get_condition(getter.get_conditions(), type_name)[1] is not None


def get(getter: ConditionsGetter, type_name: str) -> Optional[Condition]:
    """Get a copy of the condition with the given type, or None"""
    condition = get_condition(getter.get_conditions(), type_name)[1]
    return condition.copy() if condition is not None else None


def is_true(getter: ConditionsGetter, type_name: str) -> bool:
    return is_condition_true(getter.get_conditions(), type_name)


def is_false(getter: ConditionsGetter, type_name: str) -> bool:
    return is_condition_false(getter.get_conditions(), type_name)


def is_unknown(getter: ConditionsGetter, type_name: str) -> bool:
    """A missing condition is reported as Unknown"""
    return is_condition_unknown(getter.get_conditions(), type_name)


def get_reason(getter: ConditionsGetter, type_name: str) -> str:
    condition = get(getter, type_name)
    return condition.reason if condition is not None else ""


def get_message(getter: ConditionsGetter, type_name: str) -> str:
    condition = get(getter, type_name)
    return condition.message if condition is not None else ""


def get_severity(
    getter: ConditionsGetter,
    type_name: str,
) -> Optional[ConditionSeverity]:
    condition = get(getter, type_name)
    return condition.severity if condition is not None else None


def get_last_transition_time(
    getter: ConditionsGetter,
    type_name: str,
) -> Optional[datetime]:
    condition = get(getter, type_name)
    return condition.last_transition_time if condition is not None else None


## Setter Helpers ##############################################################


def set_on(setter: ConditionsSetter, condition: Optional[Condition]):
    """Apply a condition to the setter using set_condition semantics. A None
    condition is a no-op.
    """
    if condition is None:
        return
    setter.set_conditions(set_condition(setter.get_conditions(), condition))


def mark_true(setter: ConditionsSetter, type_name: str):
    set_on(setter, true_condition(type_name))


def mark_false(
    setter: ConditionsSetter,
    type_name: str,
    reason: str,
    severity: ConditionSeverity,
    message: str = "",
    *message_args,
):
    set_on(setter, false_condition(type_name, reason, severity, message, *message_args))


def mark_unknown(
    setter: ConditionsSetter,
    type_name: str,
    reason: str,
    message: str = "",
    *message_args,
):
    set_on(setter, unknown_condition(type_name, reason, message, *message_args))


def delete_from(setter: ConditionsSetter, type_name: str):
    """Remove the condition with the given type if present"""
    setter.set_conditions(remove_condition(setter.get_conditions(), type_name))
