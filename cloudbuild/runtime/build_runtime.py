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
Build runtime for CloudBuild.

This module implements the build command functionality: building iOS and
Android application packages on the build server and downloading them.
"""

import base64
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from cloudbuild.constants import BUILD_UNAVAILABLE_MESSAGE, CLOUD_BUILD_CONFIGURATIONS, CLOUD_TEMP_DIR_NAME
from cloudbuild.exceptions import ValidationError
from cloudbuild.models.build_models import (
    AndroidBuildData,
    BuildResultData,
    IOSBuildData,
    ProjectSettings,
    QrData,
)
from cloudbuild.models.operation_models import Disposition
from cloudbuild.services.operation_client import (
    OperationHooks,
    RemoteOperationClient,
    annotate_build_id,
    new_build_id,
)
from cloudbuild.services.server_build_service import ServerBuildService
from cloudbuild.utils.helpers import is_android_platform, is_ios_platform, sanitize_name, validate_platform_name

logger = logging.getLogger(__name__)

BUILD_HOOKS = OperationHooks(
    description="cloud build",
    failed_error="Build failed.",
    failed_to_start_error="Failed to start cloud build.",
    unavailable_message=BUILD_UNAVAILABLE_MESSAGE,
    dispositions=(Disposition.PACKAGE,),
    required_fields=("appId", "platform"),
    stream_logs=True,
    missing_fields_error="Build failed. Reason is missing project data",
)


class CloudBuildRuntime:
    """Runtime for the build command."""

    def __init__(
        self,
        server_build_service: ServerBuildService,
        operation_client: RemoteOperationClient,
    ) -> None:
        self.server_build_service = server_build_service
        self.operation_client = operation_client

    async def build(
        self,
        project_settings: ProjectSettings,
        platform: str,
        build_configuration: str,
        account_id: Optional[str] = None,
        android_build_data: Optional[AndroidBuildData] = None,
        ios_build_data: Optional[IOSBuildData] = None,
    ) -> BuildResultData:
        """
        Build the application package in the cloud.

        Args:
            project_settings: Project level settings
            platform: Target platform (Android or iOS)
            build_configuration: Debug or Release
            account_id: Account to run the build under
            android_build_data: Keystore information for Android builds
            ios_build_data: Certificate and provisioning information for iOS builds

        Returns:
            BuildResultData with the downloaded package paths

        Raises:
            ValidationError: If the signing information is incomplete
            RemoteOperationFailedError: If the server produced no package
        """
        platform = validate_platform_name(platform)
        android_build_data = android_build_data or AndroidBuildData()
        ios_build_data = ios_build_data or IOSBuildData()
        self.validate_build_properties(platform, build_configuration, android_build_data, ios_build_data)

        build_id = new_build_id()
        try:
            return await self._execute_build(
                project_settings, platform, build_configuration, account_id,
                android_build_data, ios_build_data, build_id,
            )
        except Exception as err:
            annotate_build_id(err, build_id)
            raise

    def validate_build_properties(
        self,
        platform: str,
        build_configuration: str,
        android_build_data: AndroidBuildData,
        ios_build_data: IOSBuildData,
    ) -> None:
        """Validate the signing information before anything is sent."""
        if is_android_platform(platform) and build_configuration == CLOUD_BUILD_CONFIGURATIONS.RELEASE:
            certificate = android_build_data.path_to_certificate
            if not certificate:
                raise ValidationError(
                    "When building for Release configuration, you must specify valid Certificate and its password."
                )
            self._validate_file_exists(certificate, "certificate")
            if not android_build_data.certificate_password:
                raise ValidationError(f"No password specified for certificate {certificate}.")
        elif is_android_platform(platform) and android_build_data.path_to_certificate:
            # Debug builds sign with the keystore when one is given
            self._validate_file_exists(android_build_data.path_to_certificate, "certificate")

        if is_ios_platform(platform) and ios_build_data.build_for_device:
            if (not ios_build_data.path_to_certificate
                    or not ios_build_data.certificate_password
                    or not ios_build_data.path_to_provision):
                raise ValidationError(
                    "When building for iOS you must specify valid Mobile Provision, Certificate and its password."
                )
            self._validate_file_exists(ios_build_data.path_to_certificate, "certificate")
            self._validate_file_exists(ios_build_data.path_to_provision, "provision")

    def get_server_operation_output_directory(self, project_dir: str, platform: str, emulator: bool) -> Path:
        return Path(project_dir) / CLOUD_TEMP_DIR_NAME / platform.lower() / ("emulator" if emulator else "device")

    async def _execute_build(
        self,
        project_settings: ProjectSettings,
        platform: str,
        build_configuration: str,
        account_id: Optional[str],
        android_build_data: AndroidBuildData,
        ios_build_data: IOSBuildData,
        build_id: str,
    ) -> BuildResultData:
        logger.info(f"Building {project_settings.project_name} for {platform} ({build_configuration}).")

        payload = self._prepare_build_request(
            project_settings, platform, build_configuration, account_id, android_build_data, ios_build_data
        )
        request = self.operation_client.create_request(payload, build_id=build_id)

        emulator = is_ios_platform(platform) and not ios_build_data.build_for_device
        outcome = await self.operation_client.execute(
            request,
            self.server_build_service.start_build,
            self.get_server_operation_output_directory(project_settings.project_dir, platform, emulator),
            platform,
        )

        packages = outcome.result.items_with(BUILD_HOOKS.dispositions)
        return BuildResultData(
            build_id=build_id,
            stderr=outcome.result.stderr,
            stdout=outcome.result.stdout,
            full_output=outcome.full_output,
            output_files_paths=outcome.output_files_paths,
            qr_data=QrData(original_url=packages[0].url),
        )

    def _prepare_build_request(
        self,
        project_settings: ProjectSettings,
        platform: str,
        build_configuration: str,
        account_id: Optional[str],
        android_build_data: AndroidBuildData,
        ios_build_data: IOSBuildData,
    ) -> Dict[str, Any]:
        request = {
            "appId": project_settings.project_id,
            "appName": sanitize_name(project_settings.project_name),
            "platform": platform,
            "configuration": build_configuration,
            "accountId": account_id,
            "clean": project_settings.clean,
            "bundle": project_settings.bundle,
            "env": project_settings.env,
            "nativescript": project_settings.nativescript_data,
            "buildForDevice": True,
        }

        if is_android_platform(platform) and android_build_data.path_to_certificate:
            request["certificate"] = self._read_base64(android_build_data.path_to_certificate)
            request["certificatePassword"] = android_build_data.certificate_password
        elif is_ios_platform(platform):
            request["buildForDevice"] = ios_build_data.build_for_device
            if ios_build_data.build_for_device:
                request["certificate"] = self._read_base64(ios_build_data.path_to_certificate)
                request["certificatePassword"] = ios_build_data.certificate_password
                request["provision"] = self._read_base64(ios_build_data.path_to_provision)

        return request

    def _validate_file_exists(self, file_path: str, kind: str) -> None:
        if not Path(file_path).is_file():
            raise ValidationError(f"The specified {kind}: {file_path} does not exist. Verify the location is correct.")

    def _read_base64(self, file_path: str) -> str:
        return base64.b64encode(Path(file_path).read_bytes()).decode('ascii')
