"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class Cond8Error(Exception):
    """Base class for all cond8 exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should be treated as
        unrecoverable rather than as a reason to requeue the reconciliation
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class Cond8FatalError(Cond8Error):
    """A Cond8FatalError is one that indicates an unexpected, and likely
    unrecoverable, failure while reading or writing conditions.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class SerializationError(Cond8FatalError):
    """Exception caused when the stored conditions of a resource cannot be
    converted to or from their wire representation
    """


class ConditionValidationError(SerializationError):
    """Exception caused when a decoded condition holds a value outside of its
    enumerated set (status or severity)
    """


class ResourceNotFoundError(Cond8FatalError):
    """Exception caused when the resource whose status is being updated is not
    present in the cluster
    """


class ConfigError(Cond8FatalError):
    """Exception caused by invalid library configuration"""


## Expected Errors #############################################################


class Cond8ExpectedError(Cond8Error):
    """A Cond8ExpectedError is one that indicates an expected failure condition
    that is likely to resolve itself if the operation is retried or the
    reconciliation is requeued.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class ConflictError(Cond8ExpectedError):
    """Exception caused when a write is rejected because the resourceVersion it
    was based on is no longer current
    """


class RetryTimeoutError(Cond8ExpectedError):
    """Exception raised when a retried operation does not succeed before its
    overall deadline
    """

    def __init__(self, message: str = "", description: str = "", attempts: int = 0):
        self.description = description
        self.attempts = attempts
        super().__init__(message)


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating the library configuration.
    """
    if not condition:
        raise ConfigError(message)


def assert_serializable(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a SerializationError. This
    should be used when decoding stored conditions.
    """
    if not condition:
        raise SerializationError(message)
