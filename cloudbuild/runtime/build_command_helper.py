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
Helpers shared by the build related commands: turning command options into
build data, asking for Apple credentials and building for publishing.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from cloudbuild.constants import CLOUD_BUILD_CONFIGURATIONS, SUPPORTED_PLATFORMS
from cloudbuild.exceptions import ValidationError
from cloudbuild.models.build_models import (
    AndroidBuildData,
    BuildData,
    CloudBuildOptions,
    Credentials,
    IOSBuildData,
    ProjectSettings,
)
from cloudbuild.runtime.build_runtime import CloudBuildRuntime
from cloudbuild.services.project_data_service import ProjectDataService
from cloudbuild.services.prompter import Prompter
from cloudbuild.utils.helpers import get_project_id, is_android_platform, is_ios_platform, validate_platform_name

logger = logging.getLogger(__name__)


class BuildCommandHelper:
    """Shared logic of the build, codesign and publish-build commands."""

    def __init__(
        self,
        build_runtime: CloudBuildRuntime,
        project_data_service: ProjectDataService,
        prompter: Prompter,
        project_dir: Union[str, Path] = ".",
    ) -> None:
        self.build_runtime = build_runtime
        self.project_data_service = project_data_service
        self.prompter = prompter
        self.project_dir = project_dir

    def get_cloud_build_data(self, platform_arg: str, options: CloudBuildOptions) -> BuildData:
        """
        Translate command options and project metadata into build data.

        Raises:
            ValidationError: If the platform is not supported or no project is found
        """
        try:
            platform = validate_platform_name(platform_arg)
        except ValidationError as e:
            raise ValidationError(f"Currently only {' '.join(SUPPORTED_PLATFORMS)} platforms are supported.") from e
        logger.info(f"Executing cloud build with platform: {platform}.")

        project_data = self.project_data_service.get_project_data(self.project_dir)

        path_to_certificate = ""
        if is_android_platform(platform):
            path_to_certificate = str(Path(options.key_store_path).resolve()) if options.key_store_path else ""
        elif is_ios_platform(platform):
            path_to_certificate = str(Path(options.certificate).resolve()) if options.certificate else ""

        path_to_provision = str(Path(options.provision).resolve()) if options.provision else ""

        project_settings = ProjectSettings(
            project_dir=project_data.project_dir,
            project_id=get_project_id(project_data, platform),
            project_name=project_data.project_name,
            nativescript_data=project_data.nativescript_data,
            bundle=bool(options.bundle),
            clean=bool(options.clean),
            env=options.env,
        )

        build_configuration = (
            CLOUD_BUILD_CONFIGURATIONS.RELEASE if options.release else CLOUD_BUILD_CONFIGURATIONS.DEBUG
        )
        return BuildData(
            project_settings=project_settings,
            platform=platform,
            build_configuration=build_configuration,
            android_build_data=AndroidBuildData(
                path_to_certificate=path_to_certificate,
                certificate_password=options.key_store_password,
            ),
            ios_build_data=IOSBuildData(
                path_to_certificate=path_to_certificate,
                certificate_password=options.certificate_password,
                path_to_provision=path_to_provision,
                build_for_device=not options.emulator,
            ),
        )

    def get_apple_credentials(self, args: Optional[List[str]]) -> Credentials:
        args = args or []
        username = args[0] if len(args) > 0 else None
        password = args[1] if len(args) > 1 else None

        if not username:
            username = self.prompter.get_string("Apple ID", allow_empty=False)

        if not password:
            password = self.prompter.get_password("Apple ID password")

        return Credentials(username=username, password=password)

    async def build_for_publishing_platform(self, platform_arg: str, options: CloudBuildOptions) -> str:
        """Release build in the cloud; returns the remote URL of the package."""
        build_data = self.get_cloud_build_data(platform_arg, options)
        build_data.build_configuration = CLOUD_BUILD_CONFIGURATIONS.RELEASE

        result = await self.build_runtime.build(
            build_data.project_settings,
            build_data.platform,
            build_data.build_configuration,
            options.account_id,
            build_data.android_build_data,
            build_data.ios_build_data,
        )
        return result.qr_data.original_url
