"""
This module holds the data model for a single status condition and its wire
representation inside a kubernetes manifest.

The wire schema of a condition is:
{
    "type": "<unique name within the list>",
    "status": "True" | "False" | "Unknown",
    "severity": "" | "Info" | "Warning" | "Error",   (omitted when empty)
    "reason": "<machine readable code>",
    "message": "<human readable detail>",
    "lastTransitionTime": "<RFC3339 UTC timestamp>",  (omitted when zero)
    "observedGeneration": <int>,                      (omitted when zero)
}
"""

# Standard
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

# Third Party
import dateutil.parser

# First Party
import alog

# Local
from . import constants
from .exceptions import (
    ConditionValidationError,
    SerializationError,
    assert_serializable,
)

log = alog.use_channel("COND")

## Public ######################################################################


class ConditionStatus(Enum):
    """The tri-state value of a condition"""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionSeverity(Enum):
    """Severity of a False condition. This is only used to choose between
    multiple False conditions when merging.
    """

    NONE = ""
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


@dataclass
class Condition:
    """A single named observation about the state of a resource"""

    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    severity: ConditionSeverity = ConditionSeverity.NONE
    reason: str = ""
    message: str = ""
    last_transition_time: Optional[datetime] = None
    observed_generation: int = 0

    def __post_init__(self):
        self.status = _to_enum(ConditionStatus, self.status, "status")
        self.severity = _to_enum(
            ConditionSeverity,
            ConditionSeverity.NONE if self.severity is None else self.severity,
            "severity",
        )

    def copy(self, **changes) -> "Condition":
        """Shallow copy with optional field overrides. All fields are
        immutable values, so this is equivalent to a deep copy.
        """
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to the wire representation used in a manifest's status"""
        out = {
            constants.CONDITION_TYPE_KEY: self.type,
            constants.CONDITION_STATUS_KEY: self.status.value,
        }
        if self.severity != ConditionSeverity.NONE:
            out[constants.CONDITION_SEVERITY_KEY] = self.severity.value
        out[constants.CONDITION_REASON_KEY] = self.reason
        out[constants.CONDITION_MESSAGE_KEY] = self.message
        if self.last_transition_time is not None:
            out[constants.CONDITION_TIMESTAMP_KEY] = format_timestamp(
                self.last_transition_time
            )
        if self.observed_generation:
            out[constants.CONDITION_GENERATION_KEY] = self.observed_generation
        return out

    @classmethod
    def from_dict(cls, data: Any) -> "Condition":
        """Parse the wire representation of a condition

        Args:
            data:  Any
                The decoded json content of a single condition

        Returns:
            condition:  Condition
                The parsed condition

        Raises:
            SerializationError: if the content is not a well formed condition
            ConditionValidationError: if status or severity are invalid
        """
        assert_serializable(
            isinstance(data, dict), f"Condition must be an object, got {type(data)}"
        )
        type_name = data.get(constants.CONDITION_TYPE_KEY)
        assert_serializable(
            isinstance(type_name, str) and bool(type_name),
            f"Condition is missing a valid type: {data}",
        )
        reason = data.get(constants.CONDITION_REASON_KEY) or ""
        message = data.get(constants.CONDITION_MESSAGE_KEY) or ""
        assert_serializable(
            isinstance(reason, str) and isinstance(message, str),
            f"Condition [{type_name}] has a non-string reason or message",
        )
        generation = data.get(constants.CONDITION_GENERATION_KEY) or 0
        assert_serializable(
            isinstance(generation, int) and not isinstance(generation, bool),
            f"Condition [{type_name}] has an invalid observedGeneration",
        )
        return cls(
            type=type_name,
            status=data.get(constants.CONDITION_STATUS_KEY),
            severity=data.get(constants.CONDITION_SEVERITY_KEY) or "",
            reason=reason,
            message=message,
            last_transition_time=parse_timestamp(
                data.get(constants.CONDITION_TIMESTAMP_KEY)
            ),
            observed_generation=generation,
        )


## Constructors ################################################################


def true_condition(type_name: str) -> Condition:
    """Create a condition with status True"""
    return Condition(type=type_name, status=ConditionStatus.TRUE)


def false_condition(
    type_name: str,
    reason: str,
    severity: ConditionSeverity,
    message: str = "",
    *message_args,
) -> Condition:
    """Create a condition with status False. The message may be a printf-style
    format string for the remaining positional args.
    """
    return Condition(
        type=type_name,
        status=ConditionStatus.FALSE,
        severity=severity,
        reason=reason,
        message=message % message_args if message_args else message,
    )


def unknown_condition(
    type_name: str,
    reason: str,
    message: str = "",
    *message_args,
) -> Condition:
    """Create a condition with status Unknown"""
    return Condition(
        type=type_name,
        status=ConditionStatus.UNKNOWN,
        reason=reason,
        message=message % message_args if message_args else message,
    )


## Comparison ##################################################################


def has_same_state(first: Optional[Condition], second: Optional[Condition]) -> bool:
    """Two conditions have the same state when everything but the transition
    time and observed generation matches
    """
    if first is None or second is None:
        return first is second
    return (
        first.type == second.type
        and first.status == second.status
        and first.severity == second.severity
        and first.reason == second.reason
        and first.message == second.message
    )


def conditions_match(first: list, second: list) -> bool:
    """Pairwise has_same_state over two condition lists of equal length"""
    return len(first) == len(second) and all(
        has_same_state(a, b) for a, b in zip(first, second)
    )


## Timestamps ##################################################################


def now() -> datetime:
    """The current time at the precision that survives serialization"""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(timestamp: datetime) -> str:
    """Format a datetime as an RFC3339 UTC string. Naive datetimes are treated
    as UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime(constants.RFC3339_FORMAT)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an RFC3339 string into an aware UTC datetime. None and the empty
    string are the zero time.
    """
    if value is None or value == "":
        return None
    assert_serializable(
        isinstance(value, str), f"Invalid lastTransitionTime type {type(value)}"
    )
    try:
        parsed = dateutil.parser.isoparse(value)
    except ValueError as err:
        log.debug("Failed to parse timestamp [%s]: %s", value, err)
        raise SerializationError(f"Invalid lastTransitionTime [{value}]") from err
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


## Implementation Details ######################################################


def _to_enum(enum_class, value, field_name):
    """Coerce a raw value to the given enum, raising a validation error for
    anything outside the enumerated set
    """
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except ValueError as err:
        raise ConditionValidationError(
            f"Invalid condition {field_name} [{value}]"
        ) from err
