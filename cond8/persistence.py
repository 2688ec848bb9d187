"""
Conflict-safe persistence of conditions to the status sub-resource.

Each attempt reads the latest copy of the resource, applies the caller's
transform to its conditions and sends a patch pinned to the resourceVersion
that was read. If another writer got there first, the server answers with a
conflict and the whole read/transform/patch cycle runs again on fresh data.
"""

# Standard
from typing import Callable, Optional

# First Party
import alog

# Local
from .accessor import UnstructuredConditions
from .conditions import Conditions, conditions_changed
from .exceptions import ResourceNotFoundError
from .patch import make_status_patch, status_patch_type
from .retry import Clock, RetryPolicy, retry_on_conflict
from .status_client import ResourceRef, StatusClientBase

log = alog.use_channel("PRSST")

ConditionsTransform = Callable[[Conditions], Conditions]

## Public ######################################################################


def apply_conditions(
    client: StatusClientBase,
    resource_ref: ResourceRef,
    transform: ConditionsTransform,
    *,
    retry_policy: Optional[RetryPolicy] = None,
    clock: Optional[Clock] = None,
) -> bool:
    """Apply a transform to the stored conditions of a resource, retrying on
    optimistic concurrency conflicts

    Args:
        client:  StatusClientBase
            The client used to read the resource and patch its status
        resource_ref:  ResourceRef
            The resource whose conditions are updated
        transform:  ConditionsTransform
            Function from the current conditions to the desired conditions. It
            may be called once per attempt and must not have side effects.
        retry_policy:  Optional[RetryPolicy]
            Retry interval and timeout (defaults to the library config)
        clock:  Optional[Clock]
            Clock used by the retry loop (defaults to the system clock)

    Returns:
        changed:  bool
            True if a patch was written, False if the conditions were already
            in the desired state

    Raises:
        ResourceNotFoundError: if the resource does not exist
        RetryTimeoutError: if conflicts persist past the retry timeout
        SerializationError: if the stored conditions are malformed
    """
    description = _describe(resource_ref)
    patch_type = status_patch_type(resource_ref.api_version)

    def _attempt() -> bool:
        current = client.get_object_current_state(
            kind=resource_ref.kind,
            name=resource_ref.name,
            namespace=resource_ref.namespace,
            api_version=resource_ref.api_version,
        )
        if current is None:
            raise ResourceNotFoundError(f"{description} not found")

        current_conditions = UnstructuredConditions(current).get_conditions()
        new_conditions = transform(
            [condition.copy() for condition in current_conditions]
        )
        if not conditions_changed(current_conditions, new_conditions):
            log.debug("No condition changes for %s", description)
            return False

        patch = make_status_patch(current, new_conditions, patch_type)
        client.patch_status(
            kind=resource_ref.kind,
            name=resource_ref.name,
            namespace=resource_ref.namespace,
            patch=patch,
            patch_type=patch_type,
            api_version=resource_ref.api_version,
        )
        log.debug2(
            "Wrote %d conditions for %s at version %s",
            len(new_conditions),
            description,
            patch.get("metadata", {}).get("resourceVersion"),
        )
        return True

    return retry_on_conflict(
        _attempt,
        description=description,
        policy=retry_policy,
        clock=clock,
    )


## Implementation Details ######################################################


def _describe(resource_ref: ResourceRef) -> str:
    if resource_ref.namespace:
        return f"{resource_ref.kind} {resource_ref.namespace}/{resource_ref.name}"
    return f"{resource_ref.kind} {resource_ref.name}"
