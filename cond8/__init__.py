"""
Package exports
"""

# Local
from . import accessor, config, merge
from .accessor import (
    ConditionsGetter,
    ConditionsSetter,
    ObjectConditions,
    UnstructuredConditions,
)
from .condition import (
    Condition,
    ConditionSeverity,
    ConditionStatus,
    conditions_match,
    false_condition,
    has_same_state,
    true_condition,
    unknown_condition,
)
from .conditions import (
    Conditions,
    conditions_changed,
    get_condition,
    has_condition,
    is_condition_false,
    is_condition_true,
    is_condition_unknown,
    remove_condition,
    set_condition,
)
from .exceptions import (
    ConflictError,
    ResourceNotFoundError,
    RetryTimeoutError,
    SerializationError,
    assert_config,
    assert_serializable,
)
from .merge import (
    aggregate,
    mirror,
    summary,
    with_conditions,
    with_step_counter,
    with_step_counter_if,
    with_step_counter_if_only,
)
from .persistence import apply_conditions
from .retry import RetryPolicy, retry_on_conflict
from .status_client import (
    DryRunStatusClient,
    OpenshiftStatusClient,
    ResourceRef,
    StatusClientBase,
)
