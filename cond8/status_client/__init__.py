"""
The status_client module holds the clients used to read resources and patch
their status sub-resource
"""

# Local
from .base import ResourceRef, StatusClientBase
from .dry_run_status_client import DryRunStatusClient
from .openshift_status_client import OpenshiftStatusClient
