"""
The DryRunStatusClient implements the StatusClient interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map. Unlike a plain dict store, it enforces resourceVersion optimistic
locking so that concurrent writers see the same conflicts they would see from
a real API server.
"""

# Standard
from datetime import datetime, timezone
from threading import RLock
from typing import List, Optional
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import ConflictError, ResourceNotFoundError
from ..patch import apply_status_patch
from ..utils import nested_get
from .base import StatusClientBase

log = alog.use_channel("DRYRN")


class DryRunStatusClient(StatusClientBase):
    """
    Status client which doesn't actually talk to a cluster!
    """

    def __init__(self, resources: Optional[List[dict]] = None):
        """Construct with an optional set of resources to pre-populate the
        in-memory cluster
        """
        self._cluster_content = {}
        self._lock = RLock()
        self._resource_version = 0
        for resource in resources or []:
            self.put_object(resource)

    ## Interface ###############################################################

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.debug(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )
        with self._lock:
            found = self._find(kind, name, namespace, api_version)
            return copy.deepcopy(found) if found is not None else None

    def patch_status(
        self,
        kind,
        name,
        namespace,
        patch,
        patch_type,
        api_version=None,
    ):  # pylint: disable=too-many-arguments
        log.debug(
            "DRY RUN patch_status of [%s.%s/%s] in %s",
            api_version,
            kind,
            name,
            namespace,
        )
        log.debug4(patch)
        with self._lock:
            current = self._find(kind, name, namespace, api_version)
            if current is None:
                raise ResourceNotFoundError(
                    f"{namespace}/{api_version}/{kind}/{name} not found"
                )

            current_version = nested_get(current, "metadata.resourceVersion")
            patch_version = nested_get(patch, "metadata.resourceVersion")
            if patch_version is not None and patch_version != current_version:
                log.debug2(
                    "Rejecting stale patch for [%s/%s]: %s != %s",
                    kind,
                    name,
                    patch_version,
                    current_version,
                )
                raise ConflictError(
                    f"Operation cannot be fulfilled on {kind} {name}: the object "
                    "has been modified; please apply your changes to the latest "
                    "version and try again"
                )

            # Only the status may change through the status sub-resource
            patched = apply_status_patch(current, patch, patch_type)
            updated = copy.deepcopy(current)
            updated["status"] = patched.get("status")
            return self.put_object(updated)

    ## Dry Run Methods #########################################################

    def put_object(self, resource: dict) -> dict:
        """Store a full object, bumping its resourceVersion"""
        api_version = resource.get("apiVersion")
        kind = resource.get("kind")
        name = resource.get("metadata", {}).get("name")
        namespace = resource.get("metadata", {}).get("namespace")
        with self._lock:
            entries = (
                self._cluster_content.setdefault(namespace, {})
                .setdefault(kind, {})
                .setdefault(api_version, {})
            )
            resource = copy.deepcopy(resource)
            metadata = resource.setdefault("metadata", {})
            previous = entries.get(name, {}).get("metadata", {})
            metadata["uid"] = previous.get("uid", metadata.get("uid", str(uuid.uuid4())))
            metadata.setdefault(
                "creationTimestamp",
                previous.get(
                    "creationTimestamp",
                    datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                ),
            )
            self._resource_version += 1
            metadata["resourceVersion"] = str(self._resource_version)
            entries[name] = resource
            log.debug2(
                "DRY RUN stored [%s/%s/%s/%s] at version %s",
                namespace,
                kind,
                api_version,
                name,
                metadata["resourceVersion"],
            )
            return copy.deepcopy(resource)

    def delete_object(self, kind, name, namespace=None, api_version=None):
        """Remove an object from the in-memory cluster if present"""
        with self._lock:
            kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
            for api_ver, entries in kind_entries.items():
                if api_version in (None, api_ver):
                    entries.pop(name, None)

    ## Implementation Details ################################################

    def _find(self, kind, name, namespace, api_version):
        with self._lock:
            matches = [
                entries[name]
                for api_ver, entries in self._cluster_content.get(namespace, {})
                .get(kind, {})
                .items()
                if name in entries and api_version in (None, api_ver)
            ]
            log.debug3(
                "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
            )
            if len(matches) == 1:
                return matches[0]
            return None
