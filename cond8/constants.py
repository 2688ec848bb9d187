"""
Shared module to hold constant values for the library
"""

# The condition type reserved for the roll-up produced by summary/aggregate
READY_CONDITION = "Ready"

# The location of the conditions list inside a resource manifest
STATUS_FIELD = "status"
CONDITIONS_FIELD = "conditions"
CONDITIONS_PATH = "status.conditions"

# Wire names for the condition fields
CONDITION_TYPE_KEY = "type"
CONDITION_STATUS_KEY = "status"
CONDITION_SEVERITY_KEY = "severity"
CONDITION_REASON_KEY = "reason"
CONDITION_MESSAGE_KEY = "message"
CONDITION_TIMESTAMP_KEY = "lastTransitionTime"
CONDITION_GENERATION_KEY = "observedGeneration"

# RFC3339 format used when serializing transition times (second precision, UTC)
RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Message template used by the step counter
STEP_COUNTER_MESSAGE = "{} of {} completed"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."
