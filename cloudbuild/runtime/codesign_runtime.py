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
Codesign runtime for CloudBuild.

This module implements the codesign command functionality: generation of
iOS certificate and provisioning profile files by the build server.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cloudbuild.constants import CLOUD_TEMP_DIR_NAME, CODESIGN_FILES_DIR_NAME, CODESIGN_UNAVAILABLE_MESSAGE
from cloudbuild.exceptions import ValidationError
from cloudbuild.models.build_models import CodesignData, CodesignResultData
from cloudbuild.models.operation_models import Disposition
from cloudbuild.models.project_models import ProjectData
from cloudbuild.services.operation_client import (
    OperationHooks,
    RemoteOperationClient,
    annotate_build_id,
    new_build_id,
)
from cloudbuild.services.project_data_service import ProjectDataService
from cloudbuild.services.server_build_service import ServerBuildService
from cloudbuild.utils.helpers import sanitize_name

logger = logging.getLogger(__name__)

CODESIGN_HOOKS = OperationHooks(
    description="generation of iOS certificate and provision files",
    failed_error="Codesign failed.",
    failed_to_start_error="Failed to start generation of codesign files.",
    unavailable_message=CODESIGN_UNAVAILABLE_MESSAGE,
    dispositions=(Disposition.CERTIFICATE, Disposition.PROVISION),
    required_fields=("username", "password"),
    missing_fields_error="Codesign failed. Reason is missing code sign data",
)


class CodesignRuntime:
    """Runtime for the codesign command."""

    def __init__(
        self,
        server_build_service: ServerBuildService,
        project_data_service: ProjectDataService,
        operation_client: RemoteOperationClient,
    ) -> None:
        self.server_build_service = server_build_service
        self.project_data_service = project_data_service
        self.operation_client = operation_client

    async def generate_codesign_files(
        self,
        codesign_data: Optional[CodesignData],
        project_dir: Optional[Union[str, Path]],
    ) -> CodesignResultData:
        """
        Generate certificate and provisioning profile files in the cloud.

        Args:
            codesign_data: Apple credentials and generation options
            project_dir: Path to the project directory

        Returns:
            CodesignResultData with the downloaded file paths

        Raises:
            ValidationError: If credentials or the project path are missing
            RemoteOperationFailedError: If the server produced no codesign files
        """
        self._validate_parameters(codesign_data, project_dir)
        if codesign_data.clean is None:
            codesign_data = codesign_data.model_copy(update={"clean": True})

        build_id = new_build_id()
        try:
            return await self._execute_generation(codesign_data, Path(project_dir), build_id)
        except Exception as err:
            annotate_build_id(err, build_id)
            raise

    def get_server_operation_output_directory(self, project_dir: Union[str, Path], platform: str) -> Path:
        return Path(project_dir) / CLOUD_TEMP_DIR_NAME / CODESIGN_FILES_DIR_NAME / platform.lower()

    def _validate_parameters(self, codesign_data: Optional[CodesignData], project_dir: Any) -> None:
        if not codesign_data or not codesign_data.username or not codesign_data.password:
            raise ValidationError(
                "Codesign failed. Reason is missing code sign data. "
                "Apple Id and Apple Id password are required."
            )

        if not project_dir:
            raise ValidationError("Codesign failed. Reason is invalid project path.")

    async def _execute_generation(
        self,
        codesign_data: CodesignData,
        project_dir: Path,
        build_id: str,
    ) -> CodesignResultData:
        project_data = self.project_data_service.get_project_data(project_dir)
        request = self.operation_client.create_request(
            self._prepare_codesign_request(codesign_data, project_data),
            build_id=build_id,
        )

        outcome = await self.operation_client.execute(
            request,
            self.server_build_service.generate_codesign_files,
            self.get_server_operation_output_directory(project_data.project_dir, codesign_data.platform),
            codesign_data.platform,
        )

        return CodesignResultData(
            build_id=build_id,
            stderr=outcome.result.stderr,
            stdout=outcome.result.stdout,
            full_output=outcome.full_output,
            output_files_paths=outcome.output_files_paths,
        )

    def _prepare_codesign_request(self, codesign_data: CodesignData, project_data: ProjectData) -> Dict[str, Any]:
        return {
            "appId": project_data.project_id,
            "appName": sanitize_name(project_data.project_name),
            "clean": codesign_data.clean,
            "username": codesign_data.username,
            "password": codesign_data.password,
            "sharedCloud": codesign_data.shared_cloud,
            "devices": codesign_data.attached_devices,
        }
