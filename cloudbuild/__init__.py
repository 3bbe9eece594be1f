"""
CloudBuild CLI - A developer tool for building, code signing and cleaning up mobile apps in the cloud.
"""

__version__ = "0.1.0"
__author__ = "CloudBuild Community"

from .context import CloudContext, create_context
from .runtime.build_runtime import CloudBuildRuntime
from .runtime.clean_workspace_runtime import CleanWorkspaceRuntime
from .runtime.codesign_runtime import CodesignRuntime
from .services.operation_client import OperationHooks, RemoteOperationClient

__all__ = [
    "CloudContext",
    "create_context",
    "CloudBuildRuntime",
    "CleanWorkspaceRuntime",
    "CodesignRuntime",
    "OperationHooks",
    "RemoteOperationClient",
]
