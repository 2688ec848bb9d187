"""
This defines the base class for the clients that read resources and patch
their status sub-resource.
"""

# Standard
from collections import namedtuple
from typing import Optional
import abc

# Local
from ..exceptions import assert_serializable


class ResourceRef(
    namedtuple(
        "ResourceRef",
        ["api_version", "kind", "name", "namespace"],
        defaults=[None],
    )
):
    """Identifies a single resource in the cluster"""

    __slots__ = ()

    @classmethod
    def from_manifest(cls, manifest: dict) -> "ResourceRef":
        """Pull the identifiers out of a manifest"""
        metadata = manifest.get("metadata") or {}
        assert_serializable(
            bool(manifest.get("kind")) and bool(metadata.get("name")),
            "Manifest must have a kind and metadata.name",
        )
        return cls(
            api_version=manifest.get("apiVersion"),
            kind=manifest.get("kind"),
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
        )

    def __str__(self):
        return f"{self.namespace}/{self.api_version}/{self.kind}/{self.name}"


class StatusClientBase(abc.ABC):
    """
    Base class for clients that the persistence layer uses to read a resource
    and patch its status. Implementations must raise ConflictError when a patch
    carries a stale resourceVersion and ResourceNotFoundError when the target
    does not exist.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        """Fetch the current state of a given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            current_state:  Optional[dict]
                The dict representation of the current object or None if it is
                not present
        """

    @abc.abstractmethod
    def patch_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        patch: dict,
        patch_type: str,
        api_version: Optional[str] = None,
    ) -> dict:
        """Patch the status sub-resource of an object

        Args:
            kind:  str
                The kind of the object to patch
            name:  str
                The full name of the object to patch
            namespace:  Optional[str]
                The namespace of the object. If None the object is cluster
                scoped.
            patch:  dict
                The patch body
            patch_type:  str
                The content type of the patch (merge or strategic merge)
            api_version:  Optional[str]
                The api_version of the resource to patch

        Returns:
            patched:  dict
                The dict representation of the object after the patch

        Raises:
            ConflictError: if the patch was based on a stale resourceVersion
            ResourceNotFoundError: if the object does not exist
        """
