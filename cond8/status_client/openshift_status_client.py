"""
This StatusClient is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when running in the cluster
or outside the cluster making live changes.
"""
# Standard
from typing import Optional

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import ConflictError as OpenshiftConflictError
from openshift.dynamic.exceptions import (
    ForbiddenError,
    NotFoundError,
    ResourceNotFoundError as OpenshiftResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes

# First Party
import alog

# Local
from ..exceptions import ConflictError, ResourceNotFoundError
from .base import StatusClientBase

log = alog.use_channel("OSFTS")

## Status Client ###############################################################


class OpenshiftStatusClient(StatusClientBase):
    """This StatusClient uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, client: Optional[DynamicClient] = None):
        """
        Args:
            client:  Optional[DynamicClient]
                A pre-configured client. If not given, one is created lazily
                from the in-cluster config or the local kubeconfig.
        """
        self._client = client

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            log.debug("Initializing openshift client")
            self._client = self._setup_client()
        return self._client

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Optional[dict]:
        """Fetch the current state with a direct call to the api client. A
        missing kind or object is reported as None. Forbidden errors propagate.
        """
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return None

        if not namespace:
            resources.namespaced = False

        try:
            resource = resources.get(name=name, namespace=namespace)
        except ForbiddenError:
            log.warning(
                "Fetching object [%s/%s] forbidden in namespace [%s]",
                kind,
                name,
                namespace,
            )
            raise
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return None

        return resource.to_dict()

    def patch_status(  # pylint: disable=too-many-arguments
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        patch: dict,
        patch_type: str,
        api_version: Optional[str] = None,
    ) -> dict:
        """Send the patch to the status sub-resource, translating the openshift
        errors into the library's own
        """
        resource_handle = self._get_resource_handle(kind, api_version)
        if not resource_handle:
            raise ResourceNotFoundError(f"Unknown resource kind [{api_version}/{kind}]")

        # If resource is not namespaced set kubernetes api namespaced to false
        if not namespace:
            resource_handle.namespaced = False

        log.debug2(
            "Patching status of [%s/%s] in %s with %s", kind, name, namespace, patch_type
        )
        log.debug4(patch)
        try:
            return resource_handle.status.patch(
                body=patch,
                name=name,
                namespace=namespace,
                content_type=patch_type,
            ).to_dict()
        except OpenshiftConflictError as err:
            log.debug2("Handling ConflictError: %s", err)
            raise ConflictError(
                f"Conflict patching status of {kind} {namespace}/{name}: {err}"
            ) from err
        except NotFoundError as err:
            raise ResourceNotFoundError(
                f"{kind} {namespace}/{name} not found while patching status"
            ) from err

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the process is
        running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")

            # Create Empty Config and load in-cluster information
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)

            # Generate ApiClient and return Openshift DynamicClient
            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(
        self, kind: str, api_version: Optional[str]
    ) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (OpenshiftResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No objects of kind [%s] found or multiple objects matching request found",
                kind,
            )
        return resources
