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
Clean workspace runtime for CloudBuild.

This module implements the clean-workspace command: it resolves the
application identifier and project name from the arguments, the local
project or interactive prompts, and removes the remote workspace.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from cloudbuild.exceptions import ValidationError
from cloudbuild.services.cloud_project_service import CloudProjectService
from cloudbuild.services.eula_service import EulaService
from cloudbuild.services.project_data_service import ProjectDataService
from cloudbuild.services.prompter import Prompter
from cloudbuild.utils.helpers import is_interactive

logger = logging.getLogger(__name__)


class CleanWorkspaceRuntime:
    """Runtime for the clean-workspace command."""

    COMMAND_REQUIREMENTS_ERROR_MESSAGE = (
        "The command should be executed inside project or the app id "
        "and project name parameters must be provided."
    )

    def __init__(
        self,
        cloud_project_service: CloudProjectService,
        eula_service: EulaService,
        project_data_service: ProjectDataService,
        prompter: Prompter,
        project_dir: Union[str, Path] = ".",
        interactive: Callable[[], bool] = is_interactive,
    ) -> None:
        self.cloud_project_service = cloud_project_service
        self.eula_service = eula_service
        self.project_data_service = project_data_service
        self.prompter = prompter
        self.project_dir = project_dir
        self.interactive = interactive

    def can_execute(self, args: Optional[List[str]]) -> bool:
        if args is None or len(args) > 2:
            return False

        self.eula_service.ensure_eula_is_accepted(self.prompter, self.interactive())
        return True

    async def execute(self, args: List[str]) -> Dict[str, Any]:
        if len(args) == 0:
            try:
                # Project data is used only when no parameters are provided
                project_data = self.project_data_service.get_project_data(self.project_dir)
                app_identifier = project_data.project_id
                project_name = project_data.project_name
            except ValidationError as e:
                logger.debug(f"No project found in {self.project_dir}: {e}")
                app_identifier = self._prompt_for_app_id()
                project_name = self._prompt_for_project_name()
        elif len(args) == 1:
            app_identifier = self._get_parameter_value(args[0], self._prompt_for_app_id)
            project_name = self._prompt_for_project_name()
        else:
            app_identifier = self._get_parameter_value(args[0], self._prompt_for_app_id)
            project_name = self._get_parameter_value(args[1], self._prompt_for_project_name)

        return await self.cloud_project_service.cleanup_project(app_identifier, project_name)

    def _prompt_for_project_name(self) -> str:
        if not self.interactive():
            raise ValidationError(self.COMMAND_REQUIREMENTS_ERROR_MESSAGE)

        return self.prompter.get_string("Project name:", allow_empty=False)

    def _prompt_for_app_id(self) -> str:
        if not self.interactive():
            raise ValidationError(self.COMMAND_REQUIREMENTS_ERROR_MESSAGE)

        return self.prompter.get_string("App Id:", allow_empty=False)

    def _get_parameter_value(self, param: str, action: Callable[[], str]) -> str:
        if param.strip():
            return param

        return action()
