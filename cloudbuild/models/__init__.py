"""
Models module for CloudBuild.

This module defines the wire and domain models shared by services and runtimes.
"""

from .build_models import (
    AndroidBuildData,
    BuildData,
    BuildResultData,
    CloudBuildOptions,
    CodesignData,
    CodesignResultData,
    Credentials,
    IOSBuildData,
    ProjectSettings,
    QrData,
)
from .operation_models import (
    BuildItem,
    Disposition,
    OperationHandle,
    OperationOutcome,
    OperationRequest,
    OperationResult,
    OperationState,
    ServerStatus,
)
from .project_models import EulaData, ProjectData

__all__ = [
    "AndroidBuildData",
    "BuildData",
    "BuildResultData",
    "CloudBuildOptions",
    "CodesignData",
    "CodesignResultData",
    "Credentials",
    "IOSBuildData",
    "ProjectSettings",
    "QrData",
    "BuildItem",
    "Disposition",
    "OperationHandle",
    "OperationOutcome",
    "OperationRequest",
    "OperationResult",
    "OperationState",
    "ServerStatus",
    "EulaData",
    "ProjectData",
]
