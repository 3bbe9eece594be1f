# Copyright The Volcano Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Composition root of CloudBuild.

Creates the concrete services once and hands them to the runtimes through
their constructors.
"""

from pathlib import Path
from typing import Callable, Optional, Union

import httpx

from cloudbuild.config import CloudConfig, load_config
from cloudbuild.runtime.build_command_helper import BuildCommandHelper
from cloudbuild.runtime.build_runtime import BUILD_HOOKS, CloudBuildRuntime
from cloudbuild.runtime.clean_workspace_runtime import CleanWorkspaceRuntime
from cloudbuild.runtime.codesign_runtime import CODESIGN_HOOKS, CodesignRuntime
from cloudbuild.services.cloud_project_service import CloudProjectService
from cloudbuild.services.eula_service import EulaService
from cloudbuild.services.operation_client import OperationHooks, RemoteOperationClient
from cloudbuild.services.project_data_service import ProjectDataService
from cloudbuild.services.prompter import Prompter
from cloudbuild.services.server_build_service import ServerBuildService
from cloudbuild.services.server_code_commit_service import ServerCodeCommitService
from cloudbuild.services.server_project_service import ServerProjectService
from cloudbuild.services.server_request_service import ServerRequestService
from cloudbuild.services.settings_service import UserSettingsService
from cloudbuild.utils.helpers import is_interactive
from cloudbuild.utils.http import create_async_client


class CloudContext:
    """Wired services for one CLI invocation or SDK session."""

    def __init__(
        self,
        config: CloudConfig,
        server_client: httpx.AsyncClient,
        storage_client: httpx.AsyncClient,
        prompter: Optional[Prompter] = None,
        eula_service: Optional[EulaService] = None,
        interactive: Callable[[], bool] = is_interactive,
    ) -> None:
        self.config = config
        self.server_client = server_client
        self.storage_client = storage_client
        self.prompter = prompter or Prompter()
        self.interactive = interactive

        self.project_data_service = ProjectDataService()
        self.settings_service = UserSettingsService(config.settings_file)
        self.eula_service = eula_service or EulaService(
            config.eula_url,
            self.settings_service,
            timeout=(config.connect_timeout, config.request_timeout),
        )

        self.request_service = ServerRequestService(config.server_url, server_client)
        self.server_build_service = ServerBuildService(self.request_service)
        self.server_code_commit_service = ServerCodeCommitService(self.request_service)
        self.server_project_service = ServerProjectService(self.request_service)
        self.cloud_project_service = CloudProjectService(
            self.server_project_service, self.server_code_commit_service
        )

    def operation_client(self, hooks: OperationHooks) -> RemoteOperationClient:
        return RemoteOperationClient(
            hooks,
            self.storage_client,
            poll_interval=self.config.poll_interval,
            poll_timeout=self.config.poll_timeout,
        )

    def codesign_runtime(self) -> CodesignRuntime:
        return CodesignRuntime(
            self.server_build_service,
            self.project_data_service,
            self.operation_client(CODESIGN_HOOKS),
        )

    def build_runtime(self) -> CloudBuildRuntime:
        return CloudBuildRuntime(self.server_build_service, self.operation_client(BUILD_HOOKS))

    def build_command_helper(self, project_dir: Union[str, Path] = ".") -> BuildCommandHelper:
        return BuildCommandHelper(self.build_runtime(), self.project_data_service, self.prompter, project_dir)

    def clean_workspace_runtime(self, project_dir: Union[str, Path] = ".") -> CleanWorkspaceRuntime:
        return CleanWorkspaceRuntime(
            self.cloud_project_service,
            self.eula_service,
            self.project_data_service,
            self.prompter,
            project_dir,
            interactive=self.interactive,
        )

    async def aclose(self) -> None:
        await self.server_client.aclose()
        await self.storage_client.aclose()
        self.eula_service.close()

    async def __aenter__(self) -> "CloudContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def create_context(config: Optional[CloudConfig] = None, prompter: Optional[Prompter] = None) -> CloudContext:
    """
    Create the services for the given configuration.

    The server client sends the bearer token; the storage client does not,
    since result locations are presigned URLs.
    """
    config = config or load_config()

    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if config.auth_token:
        headers["Authorization"] = f"Bearer {config.auth_token}"

    server_client = create_async_client(
        timeout=config.request_timeout,
        connect_timeout=config.connect_timeout,
        headers=headers,
    )
    storage_client = create_async_client(
        timeout=config.request_timeout,
        connect_timeout=config.connect_timeout,
    )
    return CloudContext(config, server_client, storage_client, prompter=prompter)
