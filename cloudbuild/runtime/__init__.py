"""
Runtime module for CloudBuild.

This module contains the business logic for each CLI subcommand,
exposed as both CLI commands and Python SDK functions.
"""

from .build_command_helper import BuildCommandHelper
from .build_runtime import CloudBuildRuntime
from .clean_workspace_runtime import CleanWorkspaceRuntime
from .codesign_runtime import CodesignRuntime

__all__ = ["BuildCommandHelper", "CloudBuildRuntime", "CleanWorkspaceRuntime", "CodesignRuntime"]
